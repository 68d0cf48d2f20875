from __future__ import annotations

import re
from dataclasses import replace

from ..hir import HelperUnit, HirRoot, TestUnit
from ..source import Block, Item, Syntax
from .base import INDENT, ROLE_HELPER, ROLE_TEST, Backend, fix_error

TEST_ATTR_RE = re.compile(r"^#\[test(?:\(.*\))?\]$")
PLAIN_TEST = "#[test]"
SHOULD_FAIL = "#[test(should_fail)]"

NOIR_SYNTAX = Syntax(
    name="noir",
    nested_comments=True,
    raw_strings=True,
    attributes=True,
    item_keywords=("fn", "mod", "contract", "struct", "trait", "impl", "use", "global", "type", "comptime"),
    container_keywords=frozenset({"mod", "contract"}),
    statement_keywords=frozenset({"use", "global", "type", "let"}),
)


def _is_test(item: Item) -> bool:
    return any(TEST_ATTR_RE.match(attr) for attr in item.attrs)


class NoirBackend(Backend):
    name = "noir"
    extension = "nr"
    syntax = NOIR_SYNTAX
    container_label = "file scope"
    failure_marker = SHOULD_FAIL
    function_kinds = frozenset({"fn"})
    container_is_file = True
    group_indent = ""

    def render_helper(self, helper: HelperUnit) -> list[str]:
        return [
            f"/// {helper.source_title}",
            f"fn {helper.ident}() {{}}",
        ]

    def render_test(self, unit: TestUnit, hir: HirRoot) -> list[str]:
        lines = [SHOULD_FAIL if unit.expect_failure else PLAIN_TEST]
        lines.append(f"unconstrained fn {unit.ident}() {{")
        lines.extend(INDENT + line for line in self.render_annotations(unit))
        lines.extend(f"{INDENT}{call}();" for call in hir.helper_calls(unit))
        lines.append("}")
        return lines

    def find_container(self, root: Block) -> Item | None:
        return None

    def role(self, item: Item, in_container: bool) -> str | None:
        if item.kind not in self.function_kinds:
            return None
        return ROLE_TEST if _is_test(item) else ROLE_HELPER

    def has_failure_marker(self, item: Item) -> bool:
        return any(attr.startswith("#[test(") and "should_fail" in attr for attr in item.attrs)

    def add_failure_marker(self, item: Item) -> Item:
        for attr, (start, end) in zip(item.attrs, item.attr_spans):
            if attr == PLAIN_TEST:
                return replace(item, head=item.head[:start] + SHOULD_FAIL + item.head[end:])
        raise fix_error("plain test attribute not found", PLAIN_TEST, ", ".join(item.attrs) or "none")
