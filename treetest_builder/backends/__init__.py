from __future__ import annotations

from ..config import Config
from .base import Backend
from .noir import NoirBackend
from .rust import RustBackend
from .solidity import SolidityBackend

BACKENDS: dict[str, type[Backend]] = {
    "rust": RustBackend,
    "noir": NoirBackend,
    "solidity": SolidityBackend,
}


def get_backend(cfg: Config, title: str = "") -> Backend:
    try:
        cls = BACKENDS[cfg.lang]
    except KeyError as exc:
        raise ValueError(f"E_BACKEND_UNKNOWN: {cfg.lang}") from exc
    return cls(cfg, title)


__all__ = ["BACKENDS", "Backend", "NoirBackend", "RustBackend", "SolidityBackend", "get_backend"]
