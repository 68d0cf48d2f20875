from __future__ import annotations

import re
from dataclasses import replace

from ..hir import HelperUnit, HirRoot, TestUnit
from ..source import Block, Item, Syntax
from .base import INDENT, ROLE_HELPER, ROLE_OTHER, ROLE_TEST, Backend, fix_error

EXPECT_REVERT = "vm.expectRevert();"
VM_SKIP = "vm.skip(true);"
DEFAULT_CONTRACT_NAME = "TreeTest"

SOLIDITY_SYNTAX = Syntax(
    name="solidity",
    single_quote_strings=True,
    item_keywords=(
        "function",
        "modifier",
        "constructor",
        "receive",
        "fallback",
        "contract",
        "library",
        "interface",
        "event",
        "error",
        "struct",
        "enum",
        "pragma",
        "import",
        "using",
    ),
    container_keywords=frozenset({"contract", "library", "interface"}),
    statement_keywords=frozenset({"import", "using", "pragma"}),
)


def contract_name(title: str) -> str:
    head = title.split("::", 1)[0]
    name = re.sub(r"[^A-Za-z0-9_]", "", head)
    if not name or name[0].isdigit():
        return DEFAULT_CONTRACT_NAME
    return name


class SolidityBackend(Backend):
    name = "solidity"
    extension = "sol"
    syntax = SOLIDITY_SYNTAX
    container_label = "contract"
    failure_marker = "vm.expectRevert()"
    function_kinds = frozenset({"function", "modifier", "constructor", "receive", "fallback"})
    helpers_in_group = True

    def render_header(self, hir: HirRoot) -> list[str]:
        return [
            "// SPDX-License-Identifier: UNLICENSED",
            f"pragma solidity {self.cfg.solidity_version};",
            "",
            'import {Test} from "forge-std/Test.sol";',
        ]

    def render_helper(self, helper: HelperUnit) -> list[str]:
        return [
            f"/// {helper.source_title}",
            f"modifier {helper.ident}() {{",
            f"{INDENT}_;",
            "}",
        ]

    def render_group_open(self, hir: HirRoot) -> list[str]:
        return [f"contract {contract_name(hir.title)} is Test {{"]

    def render_group_close(self, hir: HirRoot) -> list[str]:
        return ["}"]

    def render_test(self, unit: TestUnit, hir: HirRoot) -> list[str]:
        modifiers = list(dict.fromkeys(hir.helper_calls(unit)))
        signature = " ".join([f"function {unit.ident}()", "external", *modifiers])
        lines = [f"{signature} {{"]
        lines.extend(INDENT + line for line in self.render_annotations(unit))
        if unit.expect_failure:
            lines.append(INDENT + EXPECT_REVERT)
        if self.cfg.emit_vm_skip:
            lines.append(INDENT + VM_SKIP)
        lines.append("}")
        return lines

    def find_container(self, root: Block) -> Item | None:
        contracts = [item for item in root.items if item.kind == "contract" and item.block is not None]
        if self.title:
            wanted = contract_name(self.title)
            for item in contracts:
                if item.name == wanted:
                    return item
        for item in contracts:
            if "Test" in item.words[item.words.index("contract") + 2 :]:
                return item
        return contracts[0] if contracts else None

    def role(self, item: Item, in_container: bool) -> str | None:
        if item.kind not in self.function_kinds:
            return None
        if not in_container:
            return ROLE_OTHER
        if item.kind == "modifier":
            return ROLE_HELPER
        if item.kind == "function" and item.name and item.name.startswith("test"):
            return ROLE_TEST
        return ROLE_OTHER

    def has_failure_marker(self, item: Item) -> bool:
        return "expectRevert" in item.body_words

    def markers(self, item: Item) -> frozenset[str]:
        return frozenset({"expectRevert"}) if self.has_failure_marker(item) else frozenset()

    def helper_insert_index(self, block: Block) -> int:
        index = 0
        for idx, item in enumerate(block.items):
            if item.kind == "modifier":
                index = idx + 1
        return index

    def add_failure_marker(self, item: Item) -> Item:
        if item.body is None:
            raise fix_error("function has no body", "function with {...} body", item.name or "unnamed")
        open_at, close_at = item.body[0] + 1, item.body[1] - 1
        inner = item.head[open_at:close_at]
        first = re.search(r"\n([ \t]*)\S", inner)
        indent = first.group(1) if first else item.indent + (item.indent or INDENT)
        if not inner.strip():
            body = f"\n{indent}{EXPECT_REVERT}\n{item.indent}"
            return replace(item, head=item.head[:open_at] + body + item.head[close_at:])
        insert = f"\n{indent}{EXPECT_REVERT}"
        return replace(item, head=item.head[:open_at] + insert + item.head[open_at:])
