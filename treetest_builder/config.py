from __future__ import annotations

import json
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

LANGS = ("solidity", "rust", "noir")
DEFAULT_LANG = "solidity"
DEFAULT_SOLIDITY_VERSION = "0.8.0"
DEFAULT_EXPECT_FAILURE_KEYWORDS = (
    "panic",
    "panics",
    "revert",
    "reverts",
    "error",
    "errors",
    "fail",
    "fails",
)

_BOOL_KEYS = ("skip_helpers", "format_descriptions", "emit_vm_skip")


class ConfigError(RuntimeError):
    pass


@dataclass(frozen=True)
class Config:
    lang: str = DEFAULT_LANG
    skip_helpers: bool = False
    format_descriptions: bool = False
    emit_vm_skip: bool = False
    solidity_version: str = DEFAULT_SOLIDITY_VERSION
    expect_failure_keywords: tuple[str, ...] = DEFAULT_EXPECT_FAILURE_KEYWORDS

    def merged(self, **overrides: Any) -> "Config":
        values = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **values)


def _require_bool(raw: dict[str, Any], key: str, path: Path) -> bool | None:
    if key not in raw:
        return None
    value = raw[key]
    if not isinstance(value, bool):
        raise ConfigError(f"CONFIG_INVALID_VALUE: {path}: {key} must be a boolean")
    return value


def load_config(path: Path, base: Config | None = None) -> Config:
    if not path.exists():
        raise ConfigError(f"CONFIG_NOT_FOUND: {path}")
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"CONFIG_INVALID_JSON: {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"CONFIG_INVALID_VALUE: {path}: top level must be an object")

    overrides: dict[str, Any] = {key: _require_bool(raw, key, path) for key in _BOOL_KEYS}

    lang = raw.get("lang")
    if lang is not None and lang not in LANGS:
        raise ConfigError(f"CONFIG_INVALID_VALUE: {path}: lang must be one of {', '.join(LANGS)}")
    overrides["lang"] = lang

    version = raw.get("solidity_version")
    if version is not None and (not isinstance(version, str) or not version.strip()):
        raise ConfigError(f"CONFIG_INVALID_VALUE: {path}: solidity_version must be a non-empty string")
    overrides["solidity_version"] = version

    keywords = raw.get("expect_failure_keywords")
    if keywords is not None:
        if not isinstance(keywords, list) or not all(isinstance(k, str) and k.strip() for k in keywords):
            raise ConfigError(
                f"CONFIG_INVALID_VALUE: {path}: expect_failure_keywords must be a list of non-empty strings"
            )
        overrides["expect_failure_keywords"] = tuple(k.strip().casefold() for k in keywords)

    return (base or Config()).merged(**overrides)
