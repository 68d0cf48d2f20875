from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Diagnostic:
    code: str
    message: str
    expected: str
    got: str
    path: str

    def to_dict(self) -> dict[str, str]:
        return {
            "code": self.code,
            "message": self.message,
            "expected": self.expected,
            "got": self.got,
            "path": self.path,
        }


class BuilderError(Exception):
    def __init__(self, diagnostic: Diagnostic) -> None:
        super().__init__(f"{diagnostic.code}: {diagnostic.message}")
        self.diagnostic = diagnostic


class SpecParseError(BuilderError):
    pass


class StructureError(BuilderError):
    pass


class SourceParseError(BuilderError):
    pass


class FixApplicationError(BuilderError):
    pass


def diag(code: str, message: str, expected: str = "", got: str = "", path: str = "") -> Diagnostic:
    return Diagnostic(code=code, message=message, expected=expected, got=got, path=path)
