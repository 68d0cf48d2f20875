from __future__ import annotations

import re
from dataclasses import replace

from ..hir import ContextRecord, HelperUnit, HirRoot, TestUnit
from ..source import Block, Item, Syntax
from .base import INDENT, ROLE_HELPER, ROLE_OTHER, ROLE_TEST, Backend, fix_error

TEST_ATTR_RE = re.compile(r"^#\[(?:\w+::)*test(?:\(.*\))?\]$")
CFG_TEST_RE = re.compile(r"^#\[cfg\(.*\btest\b.*\)\]$")
SHOULD_PANIC = "#[should_panic]"

RUST_SYNTAX = Syntax(
    name="rust",
    nested_comments=True,
    raw_strings=True,
    char_literals=True,
    attributes=True,
    item_keywords=("fn", "mod", "struct", "enum", "union", "trait", "impl", "use", "static", "const", "type", "macro_rules"),
    container_keywords=frozenset({"mod"}),
    statement_keywords=frozenset({"use", "const", "static", "let", "type"}),
)


def _is_test(item: Item) -> bool:
    return any(TEST_ATTR_RE.match(attr) for attr in item.attrs)


class RustBackend(Backend):
    name = "rust"
    extension = "rs"
    syntax = RUST_SYNTAX
    container_label = "#[cfg(test)] mod tests"
    failure_marker = SHOULD_PANIC
    function_kinds = frozenset({"fn"})

    def render_context(self, ctx: ContextRecord) -> list[str]:
        return [
            f"/// {ctx.doc}",
            "#[derive(Debug, Default)]",
            f"struct {ctx.name} {{}}",
        ]

    def render_helper(self, helper: HelperUnit) -> list[str]:
        return [
            f"/// {helper.source_title}",
            f"fn {helper.ident}(ctx: TestContext) -> TestContext {{",
            f"{INDENT}ctx",
            "}",
        ]

    def render_group_open(self, hir: HirRoot) -> list[str]:
        group = hir.group
        name = group.name if group is not None else "tests"
        return ["#[cfg(test)]", f"mod {name} {{", f"{INDENT}use super::*;", ""]

    def render_group_close(self, hir: HirRoot) -> list[str]:
        return ["}"]

    def render_test(self, unit: TestUnit, hir: HirRoot) -> list[str]:
        lines = ["#[test]"]
        if unit.expect_failure:
            lines.append(SHOULD_PANIC)
        lines.append(f"fn {unit.ident}() {{")
        lines.extend(INDENT + line for line in self.render_annotations(unit))
        ctx = hir.context
        if ctx is not None:
            expr = f"{ctx.name}::default()"
            for call in hir.helper_calls(unit):
                expr = f"{call}({expr})"
            lines.append(f"{INDENT}let _ctx = {expr};")
        lines.append("}")
        return lines

    def find_container(self, root: Block) -> Item | None:
        for item in root.items:
            if item.kind != "mod" or item.block is None:
                continue
            if any(CFG_TEST_RE.match(attr) for attr in item.attrs):
                return item
        return None

    def role(self, item: Item, in_container: bool) -> str | None:
        if item.kind not in self.function_kinds:
            return None
        if in_container:
            return ROLE_TEST if _is_test(item) else ROLE_OTHER
        return ROLE_OTHER if _is_test(item) else ROLE_HELPER

    def helper_insert_index(self, block: Block) -> int:
        container = self.find_container(block)
        return block.index_of(container) if container is not None else len(block.items)

    def has_failure_marker(self, item: Item) -> bool:
        return any(attr.startswith("#[should_panic") for attr in item.attrs)

    def add_failure_marker(self, item: Item) -> Item:
        if not _is_test(item):
            raise fix_error("test attribute not found", "#[test]", ", ".join(item.attrs) or "none")
        offset = item.decl_offset
        insert = f"{SHOULD_PANIC}\n{item.indent}"
        return replace(item, head=item.head[:offset] + insert + item.head[offset:])
