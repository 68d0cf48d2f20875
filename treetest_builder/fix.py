from __future__ import annotations

from dataclasses import dataclass, replace

from .backends.base import ROLE_HELPER, ROLE_TEST, Backend, fix_error
from .check import (
    KIND_HELPER,
    AttributeMismatch,
    Expectations,
    MissingArtifact,
    OrderMismatch,
    Violation,
    check,
    expectations_from_hir,
)
from .errors import Diagnostic, FixApplicationError, SourceParseError
from .extract import extract_document
from .hir import HirRoot
from .source import Block, Item, SourceDocument, parse_source, with_items


@dataclass(frozen=True)
class FixResult:
    document: SourceDocument
    unresolved: int
    fixed: int
    failures: tuple[Diagnostic, ...] = ()


def _commit(doc: SourceDocument, backend: Backend) -> SourceDocument:
    try:
        return parse_source(doc.render(), backend.syntax)
    except SourceParseError as exc:
        d = exc.diagnostic
        raise fix_error(f"repaired source does not parse: {d.message}", d.expected, d.got) from exc


def _block_indent(block: Block, default: str) -> str:
    for item in block.items:
        if item.indent:
            return item.indent
    return default


def _split_leading(leading: str) -> tuple[str, str]:
    rest = leading.lstrip()
    return leading[: len(leading) - len(rest)], rest


def _build_item(lines: list[str], indent: str, backend: Backend) -> Item:
    text = "\n".join(indent + line if line else line for line in lines)
    parsed = parse_source(text, backend.syntax).root
    if len(parsed.items) != 1:
        raise fix_error("rendered declaration is not a single item", "1", str(len(parsed.items)))
    return parsed.items[0]


def _insert(block: Block, index: int, lines: list[str], default_indent: str, backend: Backend) -> Block:
    indent = _block_indent(block, default_indent)
    item = _build_item(lines, indent, backend)
    doc_lines = _split_leading(item.leading)[1]
    items = list(block.items)
    if index < len(items):
        follower = items[index]
        space, rest = _split_leading(follower.leading)
        item = replace(item, leading=(space if index == 0 else "\n\n" + indent) + doc_lines)
        items[index] = replace(follower, leading="\n\n" + indent + rest)
    else:
        space = "\n\n" + indent if items else "\n" + indent
        item = replace(item, leading=space + doc_lines)
    items.insert(index, item)
    if len(items) == 1 and "\n" not in block.trailer:
        block = replace(block, trailer="\n" + block.trailer)
    return with_items(block, items)


def _insert_helper(doc: SourceDocument, violation: MissingArtifact, hir: HirRoot, backend: Backend) -> SourceDocument:
    helper = hir.helper(violation.ident)
    if helper is None:
        raise fix_error("helper is not declared by the tree", violation.ident, "none")
    block = backend.helper_block(doc)
    if block is None:
        raise fix_error("helper scope is missing", backend.container_label, "none")
    default = backend.group_indent if backend.helpers_in_group else ""
    lines = backend.render_helper(helper)
    updated = _insert(block, backend.helper_insert_index(block), lines, default, backend)
    return backend.set_helper_block(doc, updated)


def _insert_test(doc: SourceDocument, violation: MissingArtifact, hir: HirRoot, backend: Backend) -> SourceDocument:
    units = hir.tests_named(violation.ident)
    if not units:
        raise fix_error("test is not declared by the tree", violation.ident, "none")
    block = backend.group_block(doc)
    if block is None:
        raise fix_error("test container is missing", backend.container_label, "none")
    present = len(extract_document(doc, backend).tests_named(violation.ident))
    unit = units[min(present, len(units) - 1)]
    lines = backend.render_test(unit, hir)
    updated = _insert(block, len(block.items), lines, backend.group_indent, backend)
    return backend.set_group_block(doc, updated)


def _mark_failure(doc: SourceDocument, violation: AttributeMismatch, backend: Backend) -> SourceDocument:
    block = backend.group_block(doc)
    if block is None:
        raise fix_error("test container is missing", backend.container_label, "none")
    matches = [item for item in block.items if item.name == violation.ident and backend.role(item, True) == ROLE_TEST]
    if violation.occurrence >= len(matches):
        raise fix_error("test function not found", violation.ident, "none")
    target = matches[violation.occurrence]
    if backend.has_failure_marker(target):
        return doc
    new_block = with_items(block, [backend.add_failure_marker(c) if c is target else c for c in block.items])
    return backend.set_group_block(doc, new_block)


def _apply(doc: SourceDocument, violation: Violation, hir: HirRoot, backend: Backend) -> SourceDocument:
    if isinstance(violation, MissingArtifact):
        if violation.kind == KIND_HELPER:
            return _insert_helper(doc, violation, hir, backend)
        return _insert_test(doc, violation, hir, backend)
    if isinstance(violation, AttributeMismatch):
        return _mark_failure(doc, violation, backend)
    raise fix_error("violation has no content fix", "fixable violation", type(violation).__name__)


def reorder(doc: SourceDocument, expected: Expectations, backend: Backend) -> SourceDocument:
    """Leading declarations and helpers stay first, then expected tests, then the rest."""
    block = backend.group_block(doc)
    if block is None:
        raise fix_error("test container is missing", backend.container_label, "none")
    items = list(block.items)

    prefix_len = 0
    while prefix_len < len(items) and backend.role(items[prefix_len], True) in (None, ROLE_HELPER):
        prefix_len += 1
    prefix = items[:prefix_len]
    rest = items[prefix_len:]

    used: set[int] = set()
    ordered: list[Item] = []
    for ident in expected.test_ids:
        for idx, item in enumerate(rest):
            if idx in used or item.name != ident or backend.role(item, True) != ROLE_TEST:
                continue
            used.add(idx)
            ordered.append(item)
            break
    ordered.extend(item for idx, item in enumerate(rest) if idx not in used)

    slots = [_split_leading(item.leading)[0] for item in rest]
    moved = [replace(item, leading=slot + _split_leading(item.leading)[1]) for slot, item in zip(slots, ordered)]
    return backend.set_group_block(doc, with_items(block, prefix + moved))


def _has_order_mismatch(violations: list[Violation]) -> bool:
    return any(isinstance(v, OrderMismatch) for v in violations)


def fix(doc: SourceDocument, violations: list[Violation], hir: HirRoot, backend: Backend) -> FixResult:
    expected = expectations_from_hir(hir, backend)
    failures: list[Diagnostic] = []
    fixed = 0

    for violation in violations:
        if isinstance(violation, OrderMismatch) or not violation.fixable:
            continue
        try:
            doc = _commit(_apply(doc, violation, hir, backend), backend)
        except FixApplicationError as exc:
            failures.append(exc.diagnostic)
            continue
        fixed += 1

    remaining = check(expected, extract_document(doc, backend))
    out_of_order = _has_order_mismatch(remaining)
    missing_tests = any(isinstance(v, MissingArtifact) and v.kind == KIND_TEST for v in remaining)
    if out_of_order and not missing_tests:
        try:
            doc = _commit(reorder(doc, expected, backend), backend)
        except FixApplicationError as exc:
            failures.append(exc.diagnostic)

    after = check(expected, extract_document(doc, backend))
    if out_of_order and not _has_order_mismatch(after):
        fixed += 1
    unresolved = len(after)
    return FixResult(document=doc, unresolved=unresolved, fixed=fixed, failures=tuple(failures))
