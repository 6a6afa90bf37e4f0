"""Colors, strokes, fonts and named styles."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

ERR_INVALID_COLOR = "Invalid color value: {value!r}"

DEFAULT_FONT_FAMILY = "Sans"
DEFAULT_FONT_SIZE = 24.0
DEFAULT_STROKE_WIDTH = 2.0
HEX_DIGITS = 6


@dataclass(frozen=True, slots=True)
class Color:
    """An RGBA color with 0..255 integer channels."""

    r: int
    g: int
    b: int
    a: int = 255

    def __post_init__(self) -> None:
        for channel in (self.r, self.g, self.b, self.a):
            if not 0 <= channel <= 255:  # noqa: PLR2004
                raise ValueError(ERR_INVALID_COLOR.format(value=(self.r, self.g, self.b, self.a)))

    @classmethod
    def from_hex(cls, value: str, alpha: int = 255) -> Color:
        """Parse ``#rrggbb`` (the leading ``#`` is optional)."""
        text = (value or "").strip().lstrip("#")
        if len(text) != HEX_DIGITS:
            raise ValueError(ERR_INVALID_COLOR.format(value=value))
        try:
            r, g, b = (int(text[i : i + 2], 16) for i in (0, 2, 4))
        except ValueError as exc:
            raise ValueError(ERR_INVALID_COLOR.format(value=value)) from exc
        return cls(r, g, b, alpha)

    @classmethod
    def parse(cls, value: str | None) -> Color | None:
        """Return the color for ``value`` or ``None`` when it is not a hex color."""
        if not value:
            return None
        try:
            return cls.from_hex(value)
        except ValueError:
            return None

    def to_hex(self) -> str:
        return f"#{self.r:02x}{self.g:02x}{self.b:02x}"

    def with_alpha(self, alpha: int) -> Color:
        return Color(self.r, self.g, self.b, alpha)

    @property
    def opaque(self) -> bool:
        return self.a == 255  # noqa: PLR2004

    def as_unit_rgb(self) -> tuple[float, float, float]:
        """Return the color as three floats in ``0..1``, as PyMuPDF expects."""
        return (self.r / 255, self.g / 255, self.b / 255)

    def as_tuple(self) -> tuple[int, int, int, int]:
        return (self.r, self.g, self.b, self.a)


BLACK = Color(0, 0, 0)
WHITE = Color(255, 255, 255)
DEFAULT_SHAPE_FILL = Color(0x4A, 0x86, 0xCF)


class Alignment(str, Enum):
    """Horizontal paragraph alignment."""

    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


@dataclass(frozen=True, slots=True)
class Stroke:
    """Outline color and width in points."""

    color: Color = BLACK
    width: float = DEFAULT_STROKE_WIDTH


@dataclass(frozen=True, slots=True)
class FontStyle:
    """Character formatting of a text run."""

    family: str = DEFAULT_FONT_FAMILY
    size: float = DEFAULT_FONT_SIZE
    bold: bool = False
    italic: bool = False
    color: Color = BLACK


@dataclass(frozen=True, slots=True)
class Style:
    """A named set of properties applied to elements that reference it.

    ``fill`` and ``stroke`` are written into shapes (and ``fill`` into text
    boxes) as given, so ``None`` means *no fill* or *no outline*. ``font``
    and ``alignment`` are optional: ``None`` leaves the element's runs and
    paragraphs untouched.
    """

    name: str
    fill: Color | None = None
    stroke: Stroke | None = None
    font: FontStyle | None = None
    alignment: Alignment | None = None


__all__ = [
    "BLACK",
    "DEFAULT_SHAPE_FILL",
    "WHITE",
    "Alignment",
    "Color",
    "FontStyle",
    "Stroke",
    "Style",
]
