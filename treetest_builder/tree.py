from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Union

from .errors import SpecParseError, diag

BRANCH_MARKERS = ("├──", "└──")
INDENT_UNITS = ("│   ", "    ")
INDENT_WIDTH = 4
CONDITION_RE = re.compile(r"^(?:when|given)\b", re.IGNORECASE)
ACTION_RE = re.compile(r"^it\b", re.IGNORECASE)


@dataclass(frozen=True)
class Span:
    line: int
    column: int


@dataclass(frozen=True)
class ActionDescription:
    text: str
    span: Span | None = None


@dataclass(frozen=True)
class Action:
    title: str
    children: tuple[ActionDescription, ...] = ()
    span: Span | None = None


@dataclass(frozen=True)
class Condition:
    title: str
    children: tuple["Condition | Action", ...] = ()
    span: Span | None = None


@dataclass(frozen=True)
class Root:
    title: str = ""
    children: tuple[Condition | Action, ...] = ()


SpecNode = Union[Root, Condition, Action, ActionDescription]


@dataclass
class _Pending:
    kind: str
    title: str
    span: Span
    depth: int
    children: list["_Pending"] = field(default_factory=list)


def _error(code: str, message: str, expected: str, got: str, line: int) -> SpecParseError:
    return SpecParseError(diag(code, message, expected, got, f"line {line}"))


def _split_branch(line: str, line_no: int) -> tuple[int, str, int]:
    for marker in BRANCH_MARKERS:
        idx = line.find(marker)
        if idx == -1:
            continue
        prefix = line[:idx]
        rest = prefix
        depth = 1
        while rest:
            unit = rest[:INDENT_WIDTH]
            if unit not in INDENT_UNITS:
                raise _error(
                    "E_TREE_INDENT_INVALID",
                    "indentation must be groups of '│   ' or '    '",
                    "│   |    ",
                    repr(prefix),
                    line_no,
                )
            rest = rest[INDENT_WIDTH:]
            depth += 1
        title_start = idx + len(marker)
        return depth, line[title_start:].strip(), title_start + 1
    raise _error(
        "E_TREE_MULTIPLE_ROOTS",
        "only one root is allowed per tree file",
        "├── or └── branch",
        line.strip(),
        line_no,
    )


def _node_kind(title: str, parent_kind: str, line_no: int) -> str:
    if parent_kind == "action":
        return "description"
    if parent_kind == "description":
        raise _error(
            "E_TREE_DESCRIPTION_NESTED",
            "action descriptions cannot have children",
            "description as leaf",
            title,
            line_no,
        )
    if CONDITION_RE.match(title):
        return "condition"
    if ACTION_RE.match(title):
        return "action"
    raise _error(
        "E_TREE_TITLE_KEYWORD",
        "branch titles must start with when/given, leaf titles with it",
        "When|Given|It ...",
        title,
        line_no,
    )


def _freeze(node: _Pending) -> Condition | Action | ActionDescription:
    if node.kind == "description":
        return ActionDescription(text=node.title, span=node.span)
    if node.kind == "action":
        descs = tuple(ActionDescription(text=c.title, span=c.span) for c in node.children)
        return Action(title=node.title, children=descs, span=node.span)
    return Condition(
        title=node.title,
        children=tuple(_freeze(c) for c in node.children),  # type: ignore[misc]
        span=node.span,
    )


def parse_tree(text: str) -> Root:
    normalized = text.replace("\r\n", "\n").replace("\r", "\n")
    lines = normalized.split("\n")

    root_title: str | None = None
    top: list[_Pending] = []
    stack: list[_Pending] = []

    for idx, line in enumerate(lines):
        line_no = idx + 1
        stripped = line.strip()
        if stripped == "" or stripped.startswith("//"):
            continue
        if root_title is None:
            if stripped.startswith(BRANCH_MARKERS) or stripped.startswith("│"):
                raise _error("E_TREE_ROOT_MISSING", "tree must start with a root line", "root title", stripped, line_no)
            root_title = stripped
            continue

        if stripped.strip("│ ") == "":
            continue
        depth, title, column = _split_branch(line, line_no)
        if title.startswith("//"):
            continue
        if not title:
            raise _error("E_TREE_TITLE_EMPTY", "branch title is empty", "non-empty title", "", line_no)
        if depth > len(stack) + 1:
            raise _error(
                "E_TREE_DEPTH_JUMP",
                "branch is nested deeper than its parent",
                f"depth <= {len(stack) + 1}",
                str(depth),
                line_no,
            )
        del stack[depth - 1 :]
        parent = stack[-1] if stack else None
        kind = _node_kind(title, parent.kind if parent else "root", line_no)
        node = _Pending(kind=kind, title=title, span=Span(line_no, column), depth=depth)
        if parent is None:
            top.append(node)
        else:
            parent.children.append(node)
        stack.append(node)

    if root_title is None:
        raise _error("E_TREE_EMPTY", "tree file has no content", "root title", "empty", 1)

    return Root(title=root_title, children=tuple(_freeze(n) for n in top))  # type: ignore[misc]
