from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .naming import format_description
from .tree import Span

CONTEXT_NAME = "TestContext"
CONTEXT_DOC = "Context for test conditions"
TEST_GROUP_NAME = "tests"


@dataclass(frozen=True)
class Annotation:
    text: str
    reformat: bool = False

    def render(self) -> str:
        if self.reformat:
            return format_description(self.text)
        return self.text.strip()


@dataclass(frozen=True)
class ContextRecord:
    name: str = CONTEXT_NAME
    doc: str = CONTEXT_DOC


@dataclass(frozen=True)
class HelperUnit:
    ident: str
    source_title: str
    span: Span | None = None


@dataclass(frozen=True)
class TestUnit:
    ident: str
    expect_failure: bool
    annotations: tuple[Annotation, ...]
    helper_path: tuple[str, ...] = ()
    span: Span | None = None


@dataclass(frozen=True)
class TestGroup:
    name: str = TEST_GROUP_NAME
    children: tuple[TestUnit, ...] = ()


HirNode = Union[ContextRecord, HelperUnit, TestGroup]


@dataclass(frozen=True)
class HirRoot:
    title: str
    children: tuple[HirNode, ...]

    @property
    def context(self) -> ContextRecord | None:
        for child in self.children:
            if isinstance(child, ContextRecord):
                return child
        return None

    @property
    def helpers(self) -> tuple[HelperUnit, ...]:
        return tuple(c for c in self.children if isinstance(c, HelperUnit))

    @property
    def group(self) -> TestGroup | None:
        for child in self.children:
            if isinstance(child, TestGroup):
                return child
        return None

    @property
    def tests(self) -> tuple[TestUnit, ...]:
        group = self.group
        return group.children if group is not None else ()

    def helper(self, ident: str) -> HelperUnit | None:
        for helper in self.helpers:
            if helper.ident == ident:
                return helper
        return None

    def test(self, ident: str) -> TestUnit | None:
        for unit in self.tests:
            if unit.ident == ident:
                return unit
        return None

    def tests_named(self, ident: str) -> tuple[TestUnit, ...]:
        return tuple(unit for unit in self.tests if unit.ident == ident)

    def helper_calls(self, unit: TestUnit) -> tuple[str, ...]:
        known = {h.ident for h in self.helpers}
        return tuple(name for name in unit.helper_path if name in known)
