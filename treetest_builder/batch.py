from __future__ import annotations

import glob
from dataclasses import dataclass
from pathlib import Path

from .backends import get_backend
from .backends.base import Backend
from .check import (
    MissingSourceFile,
    Violation,
    check_text,
    expectations_from_hir,
)
from .config import Config
from .emitter import emit
from .errors import BuilderError, Diagnostic, diag
from .fix import fix
from .hir import HirRoot
from .io_atomic import write_output
from .translator import translate
from .tree import parse_tree


@dataclass(frozen=True)
class ScaffoldOutcome:
    tree_path: Path
    output_path: Path
    text: str | None = None
    written: bool = False
    error: Diagnostic | None = None


@dataclass(frozen=True)
class CheckOutcome:
    tree_path: Path
    source_path: Path
    violations: tuple[Violation, ...] = ()
    fixed: int = 0
    unresolved: int = 0
    failures: tuple[Diagnostic, ...] = ()
    text: str | None = None
    written: bool = False
    error: Diagnostic | None = None

    @property
    def fixable(self) -> int:
        return sum(1 for v in self.violations if v.fixable)


def expand_paths(patterns: list[str]) -> tuple[list[Path], list[str]]:
    paths: list[Path] = []
    unmatched: list[str] = []
    for pattern in patterns:
        if glob.has_magic(pattern):
            matches = sorted(glob.glob(pattern))
            if not matches:
                unmatched.append(pattern)
            paths.extend(Path(m) for m in matches)
        else:
            paths.append(Path(pattern))
    return paths, unmatched


def _read(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise BuilderError(diag("E_IO_READ_FAILED", "file could not be read", "readable file", str(exc), str(path))) from exc


def load_hir(tree_path: Path, cfg: Config) -> HirRoot:
    try:
        return translate(parse_tree(_read(tree_path)), cfg)
    except BuilderError as exc:
        d = exc.diagnostic
        if d.path and d.path != str(tree_path):
            d = diag(d.code, d.message, d.expected, d.got, f"{tree_path}:{d.path}")
        raise type(exc)(d) from exc


def scaffold_file(tree_path: Path, cfg: Config, write: bool = False, force: bool = False) -> ScaffoldOutcome:
    output_path = get_backend(cfg).output_path(tree_path)
    try:
        hir = load_hir(tree_path, cfg)
    except BuilderError as exc:
        return ScaffoldOutcome(tree_path, output_path, error=exc.diagnostic)
    backend = get_backend(cfg, hir.title)
    text = emit(hir, backend)
    if not write:
        return ScaffoldOutcome(tree_path, output_path, text=text)
    error = write_output(output_path, text, force=force)
    return ScaffoldOutcome(tree_path, output_path, text=text, written=error is None, error=error)


def _check_source(
    tree_path: Path, source_path: Path, hir: HirRoot, backend: Backend, apply_fix: bool, write: bool
) -> CheckOutcome:
    if not source_path.exists():
        return CheckOutcome(tree_path, source_path, violations=(MissingSourceFile(str(source_path)),), unresolved=1)
    try:
        source = _read(source_path)
    except BuilderError as exc:
        return CheckOutcome(tree_path, source_path, error=exc.diagnostic)

    expected = expectations_from_hir(hir, backend)
    doc, violations = check_text(source, expected, backend)
    outcome = CheckOutcome(tree_path, source_path, violations=tuple(violations), unresolved=len(violations))
    if not apply_fix or doc is None or outcome.fixable == 0:
        return outcome

    result = fix(doc, violations, hir, backend)
    text = result.document.render()
    error = write_output(source_path, text) if write else None
    return CheckOutcome(
        tree_path,
        source_path,
        violations=tuple(violations),
        fixed=result.fixed,
        unresolved=result.unresolved,
        failures=result.failures,
        text=text,
        written=write and error is None,
        error=error,
    )


def check_file(tree_path: Path, cfg: Config, apply_fix: bool = False, write: bool = True) -> CheckOutcome:
    source_path = get_backend(cfg).output_path(tree_path)
    try:
        hir = load_hir(tree_path, cfg)
    except BuilderError as exc:
        return CheckOutcome(tree_path, source_path, error=exc.diagnostic)
    return _check_source(tree_path, source_path, hir, get_backend(cfg, hir.title), apply_fix, write)
