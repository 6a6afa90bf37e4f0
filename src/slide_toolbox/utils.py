"""Common utilities for slide toolbox modules."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager, suppress
from functools import lru_cache
from pathlib import Path

import fitz  # type: ignore
from platformdirs import user_config_dir

from slide_toolbox.validation import validate_config, validate_path

# store configuration in a platform-specific user config directory
CONFIG_FILE = Path(user_config_dir("slide_toolbox")) / "slide_toolbox_config.json"

PRODUCER = "slide_toolbox"

# central logger for the project
logger = logging.getLogger("slide_toolbox")
logger.propagate = False


def configure_logging(
    level: str = "INFO", handler: logging.Handler | None = None
) -> logging.Logger:
    """Configure and return the package logger."""
    numeric = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(numeric)
    logger.handlers.clear()
    if handler is None:
        handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    logger.addHandler(handler)

    # forward warnings.warn() calls through the logging system
    logging.captureWarnings(True)
    wlog = logging.getLogger("py.warnings")
    wlog.setLevel(numeric)
    wlog.handlers.clear()
    wlog.addHandler(handler)
    wlog.propagate = False
    return logger


# configure default logging on import
configure_logging()


@lru_cache(maxsize=1)
def _load_author_info() -> tuple[str, str]:
    """Return configured author information with caching."""
    try:
        data = json.loads(CONFIG_FILE.read_text())
        validate_config(data)
        return data.get("author", ""), data.get("email", "")
    except (OSError, ValueError, AttributeError):
        return "", ""


def update_metadata(fitz_doc: fitz.Document, *, title: str | None = None) -> None:
    """Stamp producer, author and title into a PyMuPDF document."""
    metadata = dict(fitz_doc.metadata or {})
    if title:
        metadata["title"] = title
    metadata["producer"] = metadata.get("producer") or PRODUCER
    metadata["creator"] = metadata.get("creator") or PRODUCER
    author, _email = _load_author_info()
    metadata["author"] = metadata.get("author") or author
    fitz_doc.set_metadata(metadata)


@contextmanager
def atomic_write(path: str | Path) -> Iterator[Path]:
    """Yield a temporary sibling of ``path`` and move it into place on success.

    The temporary file lives in the destination directory so the final
    :func:`os.replace` never crosses file systems. It is removed when the body
    raises.
    """
    target = validate_path(path)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=target.parent)
    os.close(fd)
    tmp_path = Path(tmp_name)
    try:
        yield tmp_path
        os.replace(tmp_path, target)
    except BaseException:
        with suppress(FileNotFoundError):
            tmp_path.unlink()
        raise


__all__ = [
    "CONFIG_FILE",
    "PRODUCER",
    "atomic_write",
    "configure_logging",
    "logger",
    "update_metadata",
]
