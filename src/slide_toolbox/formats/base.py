"""Abstract base class for document codecs."""

from __future__ import annotations

from abc import ABC
from pathlib import Path
from typing import ClassVar

from slide_toolbox.errors import UnsupportedFeatureError
from slide_toolbox.model.document import Document


class BaseCodec(ABC):
    """Define the interface the codec registry dispatches to.

    A codec overrides :meth:`read`, :meth:`write` or both. The registry
    uses :meth:`can_read` and :meth:`can_write` to decide which codec handles
    a path, so neither method takes parameters.
    """

    #: Canonical codec name used for registry lookups.
    name: ClassVar[str] = ""
    #: Lower-case file suffixes including the dot, e.g. ``(".odp",)``.
    suffixes: ClassVar[tuple[str, ...]] = ()

    @classmethod
    def can_read(cls) -> bool:
        return cls.read is not BaseCodec.read

    @classmethod
    def can_write(cls) -> bool:
        return cls.write is not BaseCodec.write

    def read(self, path: str | Path) -> Document:
        """Decode the file at ``path``.

        Raises:
            MalformedContainerError: The file is missing or not a container.
            MalformedDocumentError: The container lacks mandatory parts.
        """
        del path
        raise UnsupportedFeatureError(f"reading {self.name}")

    def write(self, document: Document, path: str | Path) -> Path:
        """Encode ``document`` to ``path`` and return the written path.

        Raises:
            EncodeError: The file could not be written.
        """
        del document, path
        raise UnsupportedFeatureError(f"writing {self.name}")


__all__ = ["BaseCodec"]
