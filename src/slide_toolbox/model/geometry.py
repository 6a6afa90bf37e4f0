"""Point, size and rectangle value types in canonical points."""

from __future__ import annotations

import math
from dataclasses import dataclass

# 16:9 widescreen, 13.33 x 7.5 inches
DEFAULT_SLIDE_WIDTH = 960.0
DEFAULT_SLIDE_HEIGHT = 540.0


@dataclass(frozen=True, slots=True)
class Point:
    """A position in points."""

    x: float
    y: float

    def rotated(self, center: Point, degrees: float) -> Point:
        """Return the point turned clockwise by ``degrees`` about ``center``.

        The y axis points down, so a positive angle turns clockwise on screen.
        """
        if not degrees:
            return self
        angle = math.radians(degrees)
        cos, sin = math.cos(angle), math.sin(angle)
        dx, dy = self.x - center.x, self.y - center.y
        return Point(center.x + dx * cos - dy * sin, center.y + dx * sin + dy * cos)


@dataclass(frozen=True, slots=True)
class Size:
    """A width and height in points."""

    width: float
    height: float


DEFAULT_SLIDE_SIZE = Size(DEFAULT_SLIDE_WIDTH, DEFAULT_SLIDE_HEIGHT)


@dataclass(frozen=True, slots=True)
class Rect:
    """An axis aligned box given by its top-left corner and size.

    Line shapes reuse the type to describe their end points, so ``width`` and
    ``height`` may be negative. Use :meth:`normalized` when a box with
    non-negative extent is required.
    """

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Point:
        return Point(self.x + self.width / 2, self.y + self.height / 2)

    @property
    def size(self) -> Size:
        return Size(self.width, self.height)

    def contains(self, point: Point) -> bool:
        box = self.normalized()
        return box.x <= point.x <= box.right and box.y <= point.y <= box.bottom

    def normalized(self) -> Rect:
        """Return an equivalent rectangle with non-negative width and height."""
        x0, x1 = sorted((self.x, self.right))
        y0, y1 = sorted((self.y, self.bottom))
        return Rect(x0, y0, x1 - x0, y1 - y0)

    def translated(self, dx: float, dy: float) -> Rect:
        return Rect(self.x + dx, self.y + dy, self.width, self.height)

    def scaled(self, factor: float) -> Rect:
        """Return the rectangle with every coordinate multiplied by ``factor``."""
        return Rect(
            self.x * factor,
            self.y * factor,
            self.width * factor,
            self.height * factor,
        )

    def intersection(self, other: Rect) -> Rect | None:
        """Return the overlap of two rectangles or ``None`` when disjoint."""
        a = self.normalized()
        b = other.normalized()
        x0 = max(a.x, b.x)
        y0 = max(a.y, b.y)
        x1 = min(a.right, b.right)
        y1 = min(a.bottom, b.bottom)
        if x1 <= x0 or y1 <= y0:
            return None
        return Rect(x0, y0, x1 - x0, y1 - y0)

    def corners(self, degrees: float = 0.0) -> tuple[Point, Point, Point, Point]:
        """Return the four corners, turned by ``degrees`` about the centre."""
        center = self.center
        return tuple(  # type: ignore[return-value]
            Point(x, y).rotated(center, degrees)
            for x, y in (
                (self.x, self.y),
                (self.right, self.y),
                (self.right, self.bottom),
                (self.x, self.bottom),
            )
        )

    def rotated_bounds(self, degrees: float) -> Rect:
        """Return the axis aligned box around the rectangle turned about its centre."""
        points = self.corners(degrees)
        xs = [p.x for p in points]
        ys = [p.y for p in points]
        return Rect(min(xs), min(ys), max(xs) - min(xs), max(ys) - min(ys))

    def as_tuple(self) -> tuple[float, float, float, float]:
        return (self.x, self.y, self.width, self.height)


__all__ = [
    "DEFAULT_SLIDE_SIZE",
    "Point",
    "Rect",
    "Size",
]
