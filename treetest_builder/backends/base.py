from __future__ import annotations

from dataclasses import replace
from pathlib import Path

from ..config import Config
from ..errors import FixApplicationError, diag
from ..hir import ContextRecord, HelperUnit, HirRoot, TestUnit
from ..source import Block, Item, SourceDocument, Syntax, replace_item

INDENT = "    "

ROLE_TEST = "test"
ROLE_HELPER = "helper"
ROLE_OTHER = "other"


def fix_error(message: str, expected: str, got: str) -> FixApplicationError:
    return FixApplicationError(diag("E_FIX_ANCHOR_INVALID", message, expected, got))


class Backend:
    name = ""
    extension = ""
    syntax = Syntax(name="")
    container_label = ""
    failure_marker = ""
    function_kinds: frozenset[str] = frozenset()
    helpers_in_group = False
    container_is_file = False
    group_indent = INDENT

    def __init__(self, cfg: Config | None = None, title: str = "") -> None:
        self.cfg = cfg or Config(lang=self.name)
        self.title = title

    def output_path(self, tree_path: Path) -> Path:
        return tree_path.with_name(f"{tree_path.stem}_test.{self.extension}")

    # emission

    def render_header(self, hir: HirRoot) -> list[str]:
        return []

    def render_context(self, ctx: ContextRecord) -> list[str]:
        return []

    def render_helper(self, helper: HelperUnit) -> list[str]:
        raise NotImplementedError

    def render_group_open(self, hir: HirRoot) -> list[str]:
        return []

    def render_group_close(self, hir: HirRoot) -> list[str]:
        return []

    def render_test(self, unit: TestUnit, hir: HirRoot) -> list[str]:
        raise NotImplementedError

    def render_annotations(self, unit: TestUnit) -> list[str]:
        lines = []
        for annotation in unit.annotations:
            text = annotation.render()
            lines.append(f"// {text}" if text else "//")
        return lines

    # extraction

    def find_container(self, root: Block) -> Item | None:
        raise NotImplementedError

    def role(self, item: Item, in_container: bool) -> str | None:
        raise NotImplementedError

    def has_failure_marker(self, item: Item) -> bool:
        raise NotImplementedError

    def markers(self, item: Item) -> frozenset[str]:
        return frozenset(item.attrs)

    def group_block(self, doc: SourceDocument) -> Block | None:
        if self.container_is_file:
            return doc.root
        container = self.find_container(doc.root)
        return container.block if container is not None else None

    def set_group_block(self, doc: SourceDocument, block: Block) -> SourceDocument:
        if self.container_is_file:
            return replace(doc, root=block)
        container = self.find_container(doc.root)
        if container is None:
            raise fix_error("test container is missing", self.container_label, "none")
        return replace(doc, root=replace_item(doc.root, container, replace(container, block=block)))

    def helper_block(self, doc: SourceDocument) -> Block | None:
        if self.helpers_in_group:
            return self.group_block(doc)
        return doc.root

    def set_helper_block(self, doc: SourceDocument, block: Block) -> SourceDocument:
        if self.helpers_in_group:
            return self.set_group_block(doc, block)
        return replace(doc, root=block)

    def helper_insert_index(self, block: Block) -> int:
        return len(block.items)

    # fixing

    def add_failure_marker(self, item: Item) -> Item:
        raise NotImplementedError
