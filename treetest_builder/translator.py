from __future__ import annotations

from typing import Iterable

from .config import Config
from .errors import StructureError, diag
from .hir import Annotation, ContextRecord, HelperUnit, HirNode, HirRoot, TestGroup, TestUnit
from .naming import expects_failure, slug, unit_name
from .tree import Action, ActionDescription, Condition, Root


def _structure_error(message: str, got: str) -> StructureError:
    return StructureError(
        diag("E_TRANSLATE_STRUCTURE_INVALID", message, "Root > Condition|Action > ActionDescription", got)
    )


def _check_title(title: str, kind: str) -> None:
    if not isinstance(title, str) or not title.strip():
        raise _structure_error(f"{kind} title is empty", repr(title))


def _collect_helpers(children: Iterable[object], seen: set[str], out: list[HelperUnit]) -> None:
    for child in children:
        if not isinstance(child, Condition):
            continue
        _check_title(child.title, "condition")
        ident = slug(child.title)
        if ident not in seen:
            seen.add(ident)
            out.append(HelperUnit(ident=ident, source_title=child.title.strip(), span=child.span))
        _collect_helpers(child.children, seen, out)


def _translate_action(action: Action, path: tuple[str, ...], cfg: Config) -> TestUnit:
    _check_title(action.title, "action")
    annotations = [Annotation(text=action.title, reformat=cfg.format_descriptions)]
    for child in action.children:
        if not isinstance(child, ActionDescription):
            raise _structure_error("actions may only contain descriptions", type(child).__name__)
        annotations.append(Annotation(text=child.text, reformat=cfg.format_descriptions))
    return TestUnit(
        ident=unit_name(slug(action.title), path),
        expect_failure=expects_failure(action.title, cfg.expect_failure_keywords),
        annotations=tuple(annotations),
        helper_path=path,
        span=action.span,
    )


def _collect_tests(children: Iterable[object], path: tuple[str, ...], cfg: Config, out: list[TestUnit]) -> None:
    for child in children:
        if isinstance(child, Condition):
            _check_title(child.title, "condition")
            _collect_tests(child.children, path + (slug(child.title),), cfg, out)
        elif isinstance(child, Action):
            out.append(_translate_action(child, path, cfg))
        else:
            raise _structure_error("branches may only contain conditions and actions", type(child).__name__)


def translate(tree: Root, cfg: Config) -> HirRoot:
    if not isinstance(tree, Root):
        raise _structure_error("translation input must be a Root", type(tree).__name__)
    _check_title(tree.title, "root")

    children: list[HirNode] = [ContextRecord()]
    if not cfg.skip_helpers:
        helpers: list[HelperUnit] = []
        _collect_helpers(tree.children, set(), helpers)
        children.extend(helpers)

    tests: list[TestUnit] = []
    _collect_tests(tree.children, (), cfg, tests)
    children.append(TestGroup(children=tuple(tests)))
    return HirRoot(title=tree.title.strip(), children=tuple(children))
