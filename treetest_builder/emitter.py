from __future__ import annotations

from .backends.base import Backend
from .hir import HirRoot


def _indent(lines: list[str], prefix: str) -> list[str]:
    return [prefix + line if line else line for line in lines]


def _join_blocks(blocks: list[list[str]]) -> list[str]:
    out: list[str] = []
    for idx, block in enumerate(blocks):
        if idx:
            out.append("")
        out.extend(block)
    return out


def emit(hir: HirRoot, backend: Backend) -> str:
    sections: list[list[str]] = []
    header = backend.render_header(hir)
    if header:
        sections.append(header)
    ctx = hir.context
    if ctx is not None:
        rendered = backend.render_context(ctx)
        if rendered:
            sections.append(rendered)

    helpers = [backend.render_helper(helper) for helper in hir.helpers]
    tests = [backend.render_test(unit, hir) for unit in hir.tests]
    if backend.helpers_in_group:
        inner = helpers + tests
    else:
        sections.extend(helpers)
        inner = tests

    opener = backend.render_group_open(hir)
    closer = backend.render_group_close(hir)
    body = [_indent(block, backend.group_indent) for block in inner]
    if opener or closer:
        sections.append(opener + _join_blocks(body) + closer)
    else:
        sections.extend(body)
    return "\n".join(_join_blocks(sections)) + "\n"
