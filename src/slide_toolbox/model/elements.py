"""Slide element variants.

Elements form a closed union (:data:`Element`). Every variant carries an
``id``, ``bounds`` and an optional ``style_name``; code that needs variant
specific behaviour dispatches with ``match``.
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum

from slide_toolbox.model.geometry import Rect
from slide_toolbox.model.style import (
    DEFAULT_SHAPE_FILL,
    Alignment,
    Color,
    FontStyle,
    Stroke,
    Style,
)

ERR_UNKNOWN_ELEMENT = "Unsupported element type: {kind}"
ERR_NEGATIVE_SIZE = "Element bounds must have non-negative size: {bounds}"
ERR_BAD_FONT_SIZE = "Font size must be positive: {size}"
ERR_BAD_STROKE = "Stroke width must not be negative: {width}"
ERR_BAD_ROTATION = "Rotation must be a finite number of degrees: {rotation!r}"
ERR_BAD_STYLE_NAME = "Style name must be a non-empty string: {name!r}"
ERR_NOT_A_STYLE = "Expected a Style, got {kind}"


def new_id() -> str:
    """Return a fresh element or slide identifier."""
    return uuid.uuid4().hex


@dataclass(frozen=True, slots=True)
class TextRun:
    text: str
    font: FontStyle = FontStyle()


@dataclass(frozen=True, slots=True)
class Paragraph:
    runs: tuple[TextRun, ...] = ()
    alignment: Alignment = Alignment.LEFT

    @property
    def text(self) -> str:
        return "".join(run.text for run in self.runs)


class ShapeKind(str, Enum):
    RECT = "rect"
    ELLIPSE = "ellipse"
    LINE = "line"


class ScaleMode(str, Enum):
    """How an image is placed into its bounds."""

    FIT = "fit"
    FILL = "fill"
    STRETCH = "stretch"


class _Default(Enum):
    STROKE = "default"


@dataclass(slots=True)
class TextElement:
    bounds: Rect
    paragraphs: tuple[Paragraph, ...] = ()
    fill: Color | None = None
    style_name: str | None = None
    id: str = field(default_factory=new_id)
    # degrees clockwise about the centre of ``bounds``
    rotation: float = 0.0

    @property
    def text(self) -> str:
        """Plain text content, paragraphs joined by newlines."""
        return "\n".join(paragraph.text for paragraph in self.paragraphs)

    @classmethod
    def from_text(
        cls,
        text: str,
        bounds: Rect,
        *,
        font: FontStyle | None = None,
        alignment: Alignment = Alignment.LEFT,
        style_name: str | None = None,
    ) -> TextElement:
        """Build a text element with one paragraph per line of ``text``."""
        run_font = font or FontStyle()
        paragraphs = tuple(
            Paragraph((TextRun(line, run_font),), alignment) for line in text.split("\n")
        )
        return cls(bounds=bounds, paragraphs=paragraphs, style_name=style_name)


@dataclass(slots=True)
class ShapeElement:
    """A rectangle, ellipse or line.

    Lines run from the top-left corner of ``bounds`` to its bottom-right
    corner, so negative extents flip them. Unless ``stroke`` is given, lines
    get the default :class:`Stroke` and other kinds no outline.
    """

    bounds: Rect
    kind: ShapeKind = ShapeKind.RECT
    fill: Color | None = DEFAULT_SHAPE_FILL
    stroke: Stroke | None = _Default.STROKE  # type: ignore[assignment]
    style_name: str | None = None
    id: str = field(default_factory=new_id)
    rotation: float = 0.0

    def __post_init__(self) -> None:
        self.kind = ShapeKind(self.kind)
        if self.stroke is _Default.STROKE:
            self.stroke = Stroke() if self.kind is ShapeKind.LINE else None
        # lines are never filled
        if self.kind is ShapeKind.LINE:
            self.fill = None


@dataclass(slots=True)
class ImageElement:
    bounds: Rect
    image_key: str | None = None
    mime: str = "image/png"
    scale_mode: ScaleMode = ScaleMode.FIT
    style_name: str | None = None
    id: str = field(default_factory=new_id)
    rotation: float = 0.0

    def __post_init__(self) -> None:
        self.scale_mode = ScaleMode(self.scale_mode)


Element = TextElement | ShapeElement | ImageElement
ELEMENT_TYPES: tuple[type, ...] = (TextElement, ShapeElement, ImageElement)


def validate_element(element: object) -> None:
    """Raise ``TypeError`` or ``ValueError`` when ``element`` is unusable."""
    if not isinstance(element, ELEMENT_TYPES):
        raise TypeError(ERR_UNKNOWN_ELEMENT.format(kind=type(element).__name__))
    bounds = element.bounds
    if not isinstance(bounds, Rect):
        raise TypeError(ERR_UNKNOWN_ELEMENT.format(kind=type(bounds).__name__))
    rotation = element.rotation
    if isinstance(rotation, bool) or not isinstance(rotation, int | float):
        raise TypeError(ERR_BAD_ROTATION.format(rotation=rotation))
    if not math.isfinite(rotation):
        raise ValueError(ERR_BAD_ROTATION.format(rotation=rotation))
    match element:
        case ShapeElement(kind=ShapeKind.LINE):
            pass
        case _:
            if bounds.width < 0 or bounds.height < 0:
                raise ValueError(ERR_NEGATIVE_SIZE.format(bounds=bounds))
    match element:
        case TextElement(paragraphs=paragraphs):
            for paragraph in paragraphs:
                for run in paragraph.runs:
                    if run.font.size <= 0:
                        raise ValueError(ERR_BAD_FONT_SIZE.format(size=run.font.size))
        case ShapeElement(stroke=Stroke(width=width)) if width < 0:
            raise ValueError(ERR_BAD_STROKE.format(width=width))


def validate_style(style: object) -> None:
    """Raise ``TypeError`` or ``ValueError`` when ``style`` would produce invalid elements."""
    if not isinstance(style, Style):
        raise TypeError(ERR_NOT_A_STYLE.format(kind=type(style).__name__))
    if not isinstance(style.name, str) or not style.name.strip():
        raise ValueError(ERR_BAD_STYLE_NAME.format(name=style.name))
    if style.font is not None and not style.font.size > 0:
        raise ValueError(ERR_BAD_FONT_SIZE.format(size=style.font.size))
    if style.stroke is not None and not style.stroke.width >= 0:
        raise ValueError(ERR_BAD_STROKE.format(width=style.stroke.width))


def copy_element(element: Element, *, fresh_id: bool = False) -> Element:
    """Return a copy of ``element``, optionally with a new identifier.

    The nested value types are immutable so a shallow ``replace`` is enough.
    """
    if fresh_id:
        return replace(element, id=new_id())
    return replace(element)


def apply_style(element: Element, style: Style) -> Element:
    """Return ``element`` with the properties of ``style`` written into it."""
    match element:
        case ShapeElement():
            fill = None if element.kind is ShapeKind.LINE else style.fill
            return replace(element, fill=fill, stroke=style.stroke, style_name=style.name)
        case TextElement():
            paragraphs = tuple(
                Paragraph(
                    tuple(
                        TextRun(run.text, style.font) if style.font else run
                        for run in paragraph.runs
                    ),
                    style.alignment or paragraph.alignment,
                )
                for paragraph in element.paragraphs
            )
            return replace(
                element,
                paragraphs=paragraphs,
                fill=style.fill,
                style_name=style.name,
            )
        case ImageElement():
            return replace(element, style_name=style.name)
    raise TypeError(ERR_UNKNOWN_ELEMENT.format(kind=type(element).__name__))


__all__ = [
    "ELEMENT_TYPES",
    "Element",
    "ImageElement",
    "Paragraph",
    "ScaleMode",
    "ShapeElement",
    "ShapeKind",
    "TextElement",
    "TextRun",
    "apply_style",
    "copy_element",
    "new_id",
    "validate_element",
    "validate_style",
]
