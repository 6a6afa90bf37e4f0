"""Runtime registry mapping file suffixes to document codecs."""

from __future__ import annotations

import importlib
import threading
from collections.abc import Iterable, Iterator, Mapping
from importlib import metadata
from pathlib import Path
from typing import cast

from slide_toolbox.formats.base import BaseCodec
from slide_toolbox.model.document import Document
from slide_toolbox.utils import logger

_ENTRY_POINT_GROUP = "slide_toolbox.formats"
_BUILTIN_MODULE = "slide_toolbox.formats.builtin"

EntryPointIterable = Iterable[metadata.EntryPoint]


class CodecSelectionError(LookupError):
    """Raised when no registered codec handles a path."""


class CodecRegistry:
    """Thread-safe registry for document codecs."""

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._registry: dict[str, type[BaseCodec]] = {}
        self._instances: dict[type[BaseCodec], BaseCodec] = {}
        self._loaded = False
        self._lock = threading.RLock()

    def register(self, codec_cls: type[BaseCodec]) -> type[BaseCodec]:
        """Register ``codec_cls`` under its ``name`` attribute."""
        name = getattr(codec_cls, "name", "")
        if not isinstance(name, str) or not name.strip():
            msg = f"Codec class {codec_cls.__name__} must define a non-empty 'name' attribute."
            raise ValueError(msg)
        if not codec_cls.suffixes:
            msg = f"Codec '{name}' must declare at least one suffix."
            raise ValueError(msg)

        key = name.strip().lower()
        with self._lock:
            existing = self._registry.get(key)
            if existing is not None and existing is not codec_cls:
                msg = (
                    f"Codec '{name}' is already registered with {existing.__module__}."
                    f"{existing.__name__}"
                )
                raise ValueError(msg)
            self._registry[key] = codec_cls
            self._instances.pop(codec_cls, None)
        return codec_cls

    def available(self) -> tuple[str, ...]:
        """Return registered codec names in registration order."""
        self._load()
        with self._lock:
            return tuple(self._registry)

    def get(self, name: str) -> BaseCodec | None:
        """Return the codec registered as ``name`` or ``None``."""
        self._load()
        with self._lock:
            codec_cls = self._registry.get((name or "").strip().lower())
        return self._instance(codec_cls) if codec_cls is not None else None

    def suffixes(self, *, writable: bool = False) -> tuple[str, ...]:
        """Return the suffixes that can be read, or written with ``writable``."""
        self._load()
        with self._lock:
            classes = list(self._registry.values())
        found: list[str] = []
        for codec_cls in classes:
            if codec_cls.can_write() if writable else codec_cls.can_read():
                found.extend(s for s in codec_cls.suffixes if s not in found)
        return tuple(found)

    def reader_for(self, path: str | Path) -> BaseCodec:
        """Return a codec that can read ``path`` based on its suffix."""
        return self._select(Path(path), writable=False)

    def writer_for(self, path: str | Path) -> BaseCodec:
        """Return a codec that can write ``path`` based on its suffix."""
        return self._select(Path(path), writable=True)

    def _select(self, path: Path, *, writable: bool) -> BaseCodec:
        self._load()
        suffix = path.suffix.lower()
        with self._lock:
            classes = list(self._registry.values())
        for codec_cls in classes:
            capable = codec_cls.can_write() if writable else codec_cls.can_read()
            if capable and suffix in codec_cls.suffixes:
                return self._instance(codec_cls)
        action = "write" if writable else "read"
        supported = ", ".join(self.suffixes(writable=writable)) or "none"
        msg = f"No codec can {action} '{suffix or path.name}' files. Supported: {supported}."
        raise CodecSelectionError(msg)

    def _instance(self, codec_cls: type[BaseCodec]) -> BaseCodec:
        with self._lock:
            instance = self._instances.get(codec_cls)
            if instance is None:
                instance = self._instances[codec_cls] = codec_cls()
            return instance

    def _load(self) -> None:
        """Import the built-in codecs and entry point plugins once."""
        with self._lock:
            if self._loaded:
                return
            self._loaded = True
            importlib.import_module(_BUILTIN_MODULE)
            for entry in _iter_entry_points():
                codec_cls = _load_codec_from_entry(entry)
                if codec_cls is None:
                    continue
                try:
                    self.register(codec_cls)
                except ValueError as exc:
                    logger.debug("codec registration skipped: %s", exc)


# Module-level singleton instance
_REGISTRY_INSTANCE = CodecRegistry()


def register(codec_cls: type[BaseCodec]) -> type[BaseCodec]:
    """Register ``codec_cls`` under its ``name`` attribute."""
    return _REGISTRY_INSTANCE.register(codec_cls)


def available() -> tuple[str, ...]:
    """Return registered codec names in registration order."""
    return _REGISTRY_INSTANCE.available()


def reader_for(path: str | Path) -> BaseCodec:
    """Return a codec that can read ``path``."""
    return _REGISTRY_INSTANCE.reader_for(path)


def writer_for(path: str | Path) -> BaseCodec:
    """Return a codec that can write ``path``."""
    return _REGISTRY_INSTANCE.writer_for(path)


def load_document(path: str | Path) -> Document:
    """Decode ``path`` with the codec registered for its suffix."""
    codec = reader_for(path)
    logger.debug("loading %s with codec %s", path, codec.name)
    return codec.read(path)


def save_document(document: Document, path: str | Path) -> Path:
    """Encode ``document`` to ``path`` with the codec registered for its suffix."""
    codec = writer_for(path)
    logger.debug("saving %s with codec %s", path, codec.name)
    return codec.write(document, path)


def _iter_entry_points() -> Iterator[metadata.EntryPoint]:
    """Yield configured entry points while handling discovery errors."""
    try:
        collection = metadata.entry_points()
    except Exception as exc:  # noqa: BLE001
        logger.debug("codec entry point discovery failed: %s", exc)
        return iter(())

    if hasattr(collection, "select"):
        selected = cast(EntryPointIterable, collection.select(group=_ENTRY_POINT_GROUP))
        return iter(selected)

    legacy_points = cast(Mapping[str, EntryPointIterable], collection)
    return iter(legacy_points.get(_ENTRY_POINT_GROUP, ()))


def _load_codec_from_entry(entry: metadata.EntryPoint) -> type[BaseCodec] | None:
    """Return a codec class exposed by ``entry`` when available."""
    name = getattr(entry, "name", "<unknown>")
    try:
        payload = entry.load()
    except Exception as exc:  # noqa: BLE001
        logger.warning("codec entry point '%s' failed to load: %s", name, exc)
        return None

    if isinstance(payload, type) and issubclass(payload, BaseCodec):
        return payload
    if isinstance(payload, BaseCodec):
        return payload.__class__
    logger.warning("codec entry point '%s' did not expose a codec class", name)
    return None


__all__ = [
    "CodecRegistry",
    "CodecSelectionError",
    "available",
    "load_document",
    "reader_for",
    "register",
    "save_document",
    "writer_for",
]
