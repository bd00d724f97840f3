"""Environment adapter for reporter configuration.

Parses ``ESM_*`` environment variables with shared truthy semantics. Unset or
unparsable values fall back to the supplied default so a typo in one variable
never prevents the reporter from being built with sane settings.
"""
from __future__ import annotations

import logging
import os
from collections.abc import Callable

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "on", "y"}


def _raw(name: str) -> str | None:
    v = os.getenv(name)
    if v is None:
        return None
    v = v.strip()
    return v if v != "" else None


def get_str(name: str, default: str = "") -> str:
    """Return the raw value of ``name``; an empty string is a real value here."""
    v = os.getenv(name)
    return default if v is None else v


def get_bool(name: str, default: bool = False) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in _TRUTHY


def get_int(name: str, default: int) -> int:
    v = _raw(name)
    if v is None:
        return default
    try:
        return int(v)
    except ValueError:
        logger.warning("env %s=%r is not an integer; using %s", name, v, default)
        return default


def get_float(name: str, default: float) -> float:
    v = _raw(name)
    if v is None:
        return default
    try:
        return float(v)
    except ValueError:
        logger.warning("env %s=%r is not a number; using %s", name, v, default)
        return default


def get_csv(name: str, default: list[str] | None = None, *, sep: str = ",", transform: Callable[[str], str] | None = None) -> list[str]:
    v = os.getenv(name)
    if v is None:
        return list(default or [])
    parts = [p.strip() for p in v.split(sep) if p.strip()]
    if transform:
        parts = [transform(p) for p in parts]
    return parts


__all__ = [
    "get_str",
    "get_bool",
    "get_int",
    "get_float",
    "get_csv",
]
