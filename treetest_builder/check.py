from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import ClassVar, Union

from .backends.base import Backend
from .errors import Diagnostic, SourceParseError, diag
from .extract import ExtractedFacts, extract
from .hir import HirRoot
from .source import SourceDocument

KIND_HELPER = "helper"
KIND_TEST = "test"


@dataclass(frozen=True)
class MissingSourceFile:
    code: ClassVar[str] = "E_CHECK_SOURCE_MISSING"
    fixable: ClassVar[bool] = False

    path: str

    def message(self) -> str:
        return f"Test file is missing: {self.path}"

    def to_diagnostic(self, path: str) -> Diagnostic:
        return diag(self.code, self.message(), "existing file", "none", path)


@dataclass(frozen=True)
class UnparseableSource:
    code: ClassVar[str] = "E_CHECK_SOURCE_UNPARSEABLE"
    fixable: ClassVar[bool] = False

    reason: str
    location: str = ""

    def message(self) -> str:
        where = f" at {self.location}" if self.location else ""
        return f"Source file could not be parsed{where}: {self.reason}"

    def to_diagnostic(self, path: str) -> Diagnostic:
        return diag(self.code, self.message(), "parseable source", self.reason, path)


@dataclass(frozen=True)
class MissingContainer:
    code: ClassVar[str] = "E_CHECK_CONTAINER_MISSING"
    fixable: ClassVar[bool] = False

    label: str

    def message(self) -> str:
        return f"Test container ({self.label}) is missing"

    def to_diagnostic(self, path: str) -> Diagnostic:
        return diag(self.code, self.message(), self.label, "none", path)


@dataclass(frozen=True)
class MissingArtifact:
    code: ClassVar[str] = "E_CHECK_ARTIFACT_MISSING"
    fixable: ClassVar[bool] = True

    kind: str
    ident: str

    def message(self) -> str:
        label = "Test function" if self.kind == KIND_TEST else "Helper function"
        return f"{label} '{self.ident}' is missing"

    def to_diagnostic(self, path: str) -> Diagnostic:
        return diag(self.code, self.message(), f"{self.kind} {self.ident}", "none", path)


@dataclass(frozen=True)
class AttributeMismatch:
    code: ClassVar[str] = "E_CHECK_ATTRIBUTE_MISMATCH"
    fixable: ClassVar[bool] = True

    ident: str
    expected: str
    found: str
    occurrence: int = 0

    def message(self) -> str:
        return (
            f"Test function '{self.ident}' has incorrect attributes: "
            f"expected {self.expected}, found {self.found}"
        )

    def to_diagnostic(self, path: str) -> Diagnostic:
        return diag(self.code, self.message(), self.expected, self.found, path)


@dataclass(frozen=True)
class OrderMismatch:
    code: ClassVar[str] = "E_CHECK_ORDER_MISMATCH"
    fixable: ClassVar[bool] = True

    expected: tuple[str, ...] = ()
    found: tuple[str, ...] = ()

    def message(self) -> str:
        return "Test function order does not match the tree order"

    def to_diagnostic(self, path: str) -> Diagnostic:
        return diag(self.code, self.message(), ", ".join(self.expected), ", ".join(self.found), path)


Violation = Union[
    MissingSourceFile,
    UnparseableSource,
    MissingContainer,
    MissingArtifact,
    AttributeMismatch,
    OrderMismatch,
]


@dataclass(frozen=True)
class ExpectedTest:
    ident: str
    expect_failure: bool


@dataclass(frozen=True)
class Expectations:
    helper_ids: tuple[str, ...]
    tests: tuple[ExpectedTest, ...]
    skip_helpers: bool = False
    failure_marker: str = ""
    container_label: str = ""

    @property
    def test_ids(self) -> tuple[str, ...]:
        return tuple(t.ident for t in self.tests)


def expectations_from_hir(hir: HirRoot, backend: Backend) -> Expectations:
    return Expectations(
        helper_ids=tuple(h.ident for h in hir.helpers),
        tests=tuple(ExpectedTest(u.ident, u.expect_failure) for u in hir.tests),
        skip_helpers=backend.cfg.skip_helpers,
        failure_marker=backend.failure_marker,
        container_label=backend.container_label,
    )


def is_ordered_subsequence(expected: tuple[str, ...] | list[str], actual: tuple[str, ...] | list[str]) -> bool:
    pos = 0
    for name in actual:
        if pos < len(expected) and expected[pos] == name:
            pos += 1
    return pos == len(expected)


def check(expected: Expectations, actual: ExtractedFacts) -> list[Violation]:
    if not actual.container_present:
        return [MissingContainer(expected.container_label)]

    violations: list[Violation] = []
    if not expected.skip_helpers:
        present = set(actual.helper_ids)
        for ident in expected.helper_ids:
            if ident not in present:
                violations.append(MissingArtifact(KIND_HELPER, ident))

    actual_tests = actual.test_ids
    seen: Counter[str] = Counter()
    for test in expected.tests:
        occurrence = seen[test.ident]
        seen[test.ident] += 1
        units = actual.tests_named(test.ident)
        if occurrence >= len(units):
            violations.append(MissingArtifact(KIND_TEST, test.ident))
            continue
        if test.expect_failure and not units[occurrence].expect_failure:
            violations.append(AttributeMismatch(test.ident, expected.failure_marker, "none", occurrence))

    if not is_ordered_subsequence(expected.test_ids, actual_tests):
        violations.append(OrderMismatch(expected.test_ids, actual_tests))
    return violations


def check_text(
    text: str, expected: Expectations, backend: Backend
) -> tuple[SourceDocument | None, list[Violation]]:
    try:
        doc, facts = extract(text, backend)
    except SourceParseError as exc:
        d = exc.diagnostic
        return None, [UnparseableSource(d.message, d.path)]
    return doc, check(expected, facts)
