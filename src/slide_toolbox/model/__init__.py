"""In-memory presentation model."""

from __future__ import annotations

from slide_toolbox.model.geometry import DEFAULT_SLIDE_SIZE, Point, Rect, Size
from slide_toolbox.model.style import (
    BLACK,
    WHITE,
    Alignment,
    Color,
    FontStyle,
    Stroke,
    Style,
)
from slide_toolbox.model.elements import (
    Element,
    ImageElement,
    Paragraph,
    ScaleMode,
    ShapeElement,
    ShapeKind,
    TextElement,
    TextRun,
)
from slide_toolbox.model.slide import Slide
from slide_toolbox.model.images import DecodedImage, ImageCache, ImageStore
from slide_toolbox.model.fonts import FontResolver
from slide_toolbox.model.document import Document, Metadata

__all__ = [
    "BLACK",
    "DEFAULT_SLIDE_SIZE",
    "WHITE",
    "Alignment",
    "Color",
    "DecodedImage",
    "Document",
    "Element",
    "FontResolver",
    "FontStyle",
    "ImageCache",
    "ImageElement",
    "ImageStore",
    "Metadata",
    "Paragraph",
    "Point",
    "Rect",
    "ScaleMode",
    "ShapeElement",
    "ShapeKind",
    "Size",
    "Slide",
    "Stroke",
    "Style",
    "TextElement",
    "TextRun",
]
