"""Exception hierarchy shared by the model, codecs and renderer."""

from __future__ import annotations

from typing import Self


class SlideToolboxError(RuntimeError):
    """Base error carrying optional machine readable metadata."""

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        detail: str | None = None,
    ) -> None:
        """Initialise the error with an optional ``code`` and ``detail``."""
        full_message = f"{message}: {detail}" if detail else message
        super().__init__(full_message)
        self.code = code
        self.detail = detail


class MalformedContainerError(SlideToolboxError):
    """Raised when a file cannot be opened as a zip archive."""

    def __init__(self, path: object, *, detail: str | None = None) -> None:
        """Initialise the error for ``path``."""
        super().__init__(
            f"Not a valid document container: {path}",
            code="malformed_container",
            detail=detail,
        )
        self.path = path


class MalformedDocumentError(SlideToolboxError):
    """Raised when a container lacks its mandatory structural part."""

    def __init__(self, path: object, *, detail: str | None = None) -> None:
        """Initialise the error for ``path``."""
        super().__init__(
            f"Malformed presentation document: {path}",
            code="malformed_document",
            detail=detail,
        )
        self.path = path


class UnsupportedFeatureError(SlideToolboxError):
    """Describe a recognised construct that is dropped during import."""

    def __init__(self, feature: str, *, detail: str | None = None) -> None:
        """Initialise the error naming the dropped ``feature``."""
        super().__init__(
            f"Unsupported feature dropped: {feature}",
            code="unsupported_feature",
            detail=detail,
        )
        self.feature = feature


class IndexOutOfRangeError(SlideToolboxError, IndexError):
    """Raised when a model mutation references a missing slide or element."""

    @classmethod
    def slide(cls, index: int, total: int) -> Self:
        return cls(
            f"slide index {index} out of range 0..{total - 1}"
            if total
            else f"slide index {index} out of range (document has no slides)",
            code="slide_index",
        )

    @classmethod
    def element(cls, element_id: str, slide_index: int) -> Self:
        return cls(
            f"no element {element_id!r} on slide {slide_index}",
            code="element_id",
        )

    @classmethod
    def position(cls, index: int, total: int) -> Self:
        return cls(f"position {index} out of range 0..{total}", code="position")


class StyleNotFoundError(SlideToolboxError, KeyError):
    """Raised when an operation references an unknown named style."""

    def __init__(self, name: str) -> None:
        """Initialise the error for style ``name``."""
        super().__init__(f"unknown style: {name!r}", code="style_not_found")
        self.name = name

    def __str__(self) -> str:
        return RuntimeError.__str__(self)


class ImageDecodeFailure(SlideToolboxError):
    """Raised by the image cache when asset bytes cannot be decoded."""

    def __init__(self, key: str | None, *, detail: str | None = None) -> None:
        """Initialise the error for asset ``key``."""
        super().__init__(
            f"Could not decode image {key!r}",
            code="image_decode",
            detail=detail,
        )
        self.key = key


class FontResolutionFailure(SlideToolboxError):
    """Describe a font family that had to be substituted."""

    def __init__(self, family: str, fallback: str) -> None:
        """Initialise the error for ``family`` replaced by ``fallback``."""
        super().__init__(
            f"Font family {family!r} unavailable, using {fallback!r}",
            code="font_fallback",
        )
        self.family = family
        self.fallback = fallback


class EncodeError(SlideToolboxError):
    """Raised when a document cannot be written to its destination."""

    def __init__(self, path: object, *, detail: str | None = None) -> None:
        """Initialise the error for ``path``."""
        super().__init__(f"Could not write document: {path}", code="encode", detail=detail)
        self.path = path


__all__ = [
    "EncodeError",
    "FontResolutionFailure",
    "ImageDecodeFailure",
    "IndexOutOfRangeError",
    "MalformedContainerError",
    "MalformedDocumentError",
    "SlideToolboxError",
    "StyleNotFoundError",
    "UnsupportedFeatureError",
]
