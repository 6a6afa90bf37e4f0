"""Pillow backed bitmap surface and slide thumbnails."""

from __future__ import annotations

import io
import math

import fitz  # type: ignore
from PIL import Image, ImageDraw, ImageFont

from slide_toolbox.config import load_config
from slide_toolbox.model.document import Document
from slide_toolbox.model.geometry import Rect, Size
from slide_toolbox.model.images import DecodedImage
from slide_toolbox.model.style import Color
from slide_toolbox.render.engine import render_slide
from slide_toolbox.render.surface import PlacedRun, fit_scale
from slide_toolbox.utils import logger

# line segments used to flatten one cubic Bezier
BEZIER_STEPS = 16

ERR_BAD_SIZE = "Bitmap size must be positive: {width}x{height}"

_Point = tuple[float, float]


def _bezier(p0: _Point, p1: _Point, p2: _Point, p3: _Point) -> list[_Point]:
    points = []
    for step in range(1, BEZIER_STEPS + 1):
        t = step / BEZIER_STEPS
        u = 1 - t
        points.append(
            (
                u**3 * p0[0] + 3 * u * u * t * p1[0] + 3 * u * t * t * p2[0] + t**3 * p3[0],
                u**3 * p0[1] + 3 * u * u * t * p1[1] + 3 * u * t * t * p2[1] + t**3 * p3[1],
            )
        )
    return points


class BitmapSurface:
    """Paint onto an RGBA :class:`PIL.Image.Image`.

    Every operation is drawn onto a transparent layer, restricted to the
    current clip, turned by the current rotation and alpha-composited onto
    :attr:`image`.
    """

    def __init__(self, width: int, height: int) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(ERR_BAD_SIZE.format(width=width, height=height))
        self.image = Image.new("RGBA", (width, height), (0, 0, 0, 0))
        self._subpaths: list[tuple[list[_Point], bool]] = []
        self._clip: Rect | None = None
        self._rotation: tuple[_Point, float] | None = None
        self._fonts: dict[tuple[str, int], ImageFont.FreeTypeFont | ImageFont.ImageFont] = {}

    @property
    def size(self) -> tuple[int, int]:
        return self.image.size

    def _composite(self, layer: Image.Image) -> None:
        if self._clip is not None:
            mask = Image.new("L", layer.size, 0)
            clip = self._clip
            ImageDraw.Draw(mask).rectangle(
                (clip.x, clip.y, clip.right - 1, clip.bottom - 1), fill=255
            )
            clipped = Image.new("RGBA", layer.size, (0, 0, 0, 0))
            clipped.paste(layer, (0, 0), mask)
            layer = clipped
        if self._rotation is not None:
            center, degrees = self._rotation
            # Pillow turns counter-clockwise
            layer = layer.rotate(-degrees, resample=Image.Resampling.BICUBIC, center=center)
        self.image.alpha_composite(layer)

    def _layer(self) -> tuple[Image.Image, ImageDraw.ImageDraw]:
        layer = Image.new("RGBA", self.image.size, (0, 0, 0, 0))
        return layer, ImageDraw.Draw(layer)

    # -- path construction -------------------------------------------

    def begin_path(self) -> None:
        self._subpaths = []

    def move_to(self, x: float, y: float) -> None:
        self._subpaths.append(([(x, y)], False))

    def _current(self) -> list[_Point]:
        if not self._subpaths:
            self._subpaths.append(([(0.0, 0.0)], False))
        return self._subpaths[-1][0]

    def line_to(self, x: float, y: float) -> None:
        self._current().append((x, y))

    def curve_to(self, x1: float, y1: float, x2: float, y2: float, x: float, y: float) -> None:
        points = self._current()
        points.extend(_bezier(points[-1], (x1, y1), (x2, y2), (x, y)))

    def close_path(self) -> None:
        if self._subpaths:
            points, _closed = self._subpaths[-1]
            self._subpaths[-1] = (points, True)

    # -- painting ----------------------------------------------------

    def fill(self, color: Color) -> None:
        layer, draw = self._layer()
        for points, _closed in self._subpaths:
            if len(points) >= 3:  # noqa: PLR2004
                draw.polygon(points, fill=color.as_tuple())
        self._composite(layer)

    def stroke(self, color: Color, width: float) -> None:
        layer, draw = self._layer()
        line_width = max(1, round(width))
        for points, closed in self._subpaths:
            if len(points) < 2:  # noqa: PLR2004
                continue
            outline = [*points, points[0]] if closed else points
            draw.line(outline, fill=color.as_tuple(), width=line_width, joint="curve")
        self._composite(layer)

    def set_clip(self, rect: Rect | None) -> None:
        self._clip = rect.normalized() if rect is not None else None

    def set_rotation(self, rect: Rect | None, degrees: float = 0.0) -> None:
        if rect is None or not degrees:
            self._rotation = None
            return
        center = rect.normalized().center
        self._rotation = ((center.x, center.y), degrees)

    def _font(self, fontname: str, size: float) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
        key = (fontname, max(1, round(size)))
        cached = self._fonts.get(key)
        if cached is None:
            try:
                buffer = fitz.Font(fontname=fontname).buffer
                cached = ImageFont.truetype(io.BytesIO(buffer), key[1])
            except OSError as exc:
                logger.debug("FreeType could not load %s (%s); using Pillow default", fontname, exc)
                cached = ImageFont.load_default(key[1])
            self._fonts[key] = cached
        return cached

    def draw_text_run(self, run: PlacedRun) -> None:
        layer, draw = self._layer()
        draw.text(
            (run.x, run.baseline),
            run.text,
            font=self._font(run.fontname, run.font.size),
            fill=run.font.color.as_tuple(),
            anchor="ls",
        )
        self._composite(layer)

    def draw_image(self, image: DecodedImage, rect: Rect) -> None:
        box = rect.normalized()
        width = max(1, round(box.width))
        height = max(1, round(box.height))
        resized = image.image.resize((width, height), Image.Resampling.LANCZOS)
        layer = Image.new("RGBA", self.image.size, (0, 0, 0, 0))
        layer.paste(resized, (round(box.x), round(box.y)))
        self._composite(layer)


def render_thumbnail(
    document: Document, index: int, max_size: tuple[int, int] | None = None
) -> Image.Image:
    """Render slide ``index`` scaled to fit ``max_size`` pixels."""
    if max_size is None:
        max_size = tuple(load_config()["thumbnail_size"])
    slide = document.slide(index)
    scale, _dx, _dy = fit_scale(slide.size, Size(*max_size))
    width = max(1, math.ceil(slide.size.width * scale - 1e-6))
    height = max(1, math.ceil(slide.size.height * scale - 1e-6))
    surface = BitmapSurface(width, height)
    render_slide(slide, scale, surface, images=document.images, fonts=document.fonts)
    return surface.image


__all__ = ["BitmapSurface", "render_thumbnail"]
