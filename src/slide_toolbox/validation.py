"""Validation helpers for paths, inputs and configuration."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

SUPPORTED_INPUT_SUFFIXES = {".odp", ".pptx"}
SUPPORTED_OUTPUT_SUFFIXES = {".odp", ".pdf"}

ERR_NULL_BYTES = "path contains null bytes"
ERR_ESCAPES_BASE = "path escapes base directory"
ERR_NOT_EXIST = "path does not exist"
ERR_FILE_NOT_FOUND = "File not found: {path}"
ERR_EXPECTED_FILE = "Expected a file, got directory: {path}"
ERR_UNSUPPORTED_TYPE = "File must be one of {types}: {path}"
ERR_MISSING_CONFIG = "Missing required config field: {key}"


class PathValidationError(ValueError):
    """Raised when a user-supplied path is invalid or unsafe."""


def validate_path(
    path: str | Path,
    *,
    base: str | Path | None = None,
    must_exist: bool = False,
) -> Path:
    """Return a sanitized absolute path.

    When ``base`` is given the resolved path must lie inside it; otherwise
    any location the OS permits is accepted.

    Raises:
        PathValidationError: The path contains null bytes, escapes ``base``
            or does not exist although ``must_exist`` is set.
    """
    if "\x00" in str(path):
        raise PathValidationError(ERR_NULL_BYTES)

    p = Path(path)
    if base is not None:
        base_path = Path(base).resolve()
        candidate = (base_path / p).resolve() if not p.is_absolute() else p.resolve()
        if base_path not in [candidate, *candidate.parents]:
            raise PathValidationError(ERR_ESCAPES_BASE)
    else:
        candidate = p.resolve()
    if must_exist and not candidate.exists():
        raise PathValidationError(ERR_NOT_EXIST)
    return candidate


def _normalise_suffix(ext: str) -> str:
    ext = ext.strip().lower()
    return ext if ext.startswith(".") else f".{ext}"


def validate_document_path(
    path: str | Path,
    *,
    allowed_suffixes: Iterable[str] | None = None,
) -> Path:
    """Validate an existing presentation file and return its absolute path.

    Args:
        path: Path to validate.
        allowed_suffixes: Accepted suffixes, case-insensitive. Defaults to
            :data:`SUPPORTED_INPUT_SUFFIXES`.
    """
    suffixes = SUPPORTED_INPUT_SUFFIXES
    if allowed_suffixes is not None:
        suffixes = {_normalise_suffix(suffix) for suffix in allowed_suffixes}

    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(ERR_FILE_NOT_FOUND.format(path=path))
    if p.is_dir():
        raise IsADirectoryError(ERR_EXPECTED_FILE.format(path=path))
    resolved = validate_path(p)
    if suffixes and resolved.suffix.lower() not in suffixes:
        kinds = ", ".join(sorted(ext.lstrip(".").upper() for ext in suffixes))
        raise ValueError(ERR_UNSUPPORTED_TYPE.format(types=kinds, path=path))
    return resolved


def validate_config(config: dict) -> dict:
    """Validate configuration values and return them unchanged.

    The configuration must include ``author`` and ``email`` fields.
    """
    for key in ("author", "email"):
        if not (config or {}).get(key):
            raise ValueError(ERR_MISSING_CONFIG.format(key=key))
    return config


def is_supported_input(path: str | Path) -> bool:
    """Return ``True`` when *path* points to a readable presentation type."""
    return Path(path).suffix.lower() in SUPPORTED_INPUT_SUFFIXES


__all__ = [
    "SUPPORTED_INPUT_SUFFIXES",
    "SUPPORTED_OUTPUT_SUFFIXES",
    "PathValidationError",
    "is_supported_input",
    "validate_config",
    "validate_document_path",
    "validate_path",
]
