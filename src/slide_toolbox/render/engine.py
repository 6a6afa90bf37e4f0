"""Paint slides onto any :class:`~slide_toolbox.render.surface.Surface`."""

from __future__ import annotations

from dataclasses import replace

from slide_toolbox.errors import ImageDecodeFailure
from slide_toolbox.model.document import Document
from slide_toolbox.model.elements import (
    Element,
    ImageElement,
    ScaleMode,
    ShapeElement,
    ShapeKind,
    TextElement,
)
from slide_toolbox.model.fonts import FontResolver
from slide_toolbox.model.geometry import Rect
from slide_toolbox.model.images import DecodedImage, ImageCache
from slide_toolbox.model.slide import Slide
from slide_toolbox.model.style import Color
from slide_toolbox.render.surface import PlacedRun, Surface
from slide_toolbox.render.text import TextShaper
from slide_toolbox.utils import logger

# control point distance for a quarter circle drawn with a cubic Bezier
KAPPA = 0.5523

PLACEHOLDER_FILL = Color(0xF1, 0xF3, 0xF4)
PLACEHOLDER_BORDER = Color(0x9A, 0xA0, 0xA6)
PLACEHOLDER_STROKE_WIDTH = 1.0


def _rect_path(surface: Surface, rect: Rect) -> None:
    surface.begin_path()
    surface.move_to(rect.x, rect.y)
    surface.line_to(rect.right, rect.y)
    surface.line_to(rect.right, rect.bottom)
    surface.line_to(rect.x, rect.bottom)
    surface.close_path()


def _ellipse_path(surface: Surface, rect: Rect) -> None:
    cx, cy = rect.center.x, rect.center.y
    rx, ry = rect.width / 2, rect.height / 2
    ox, oy = rx * KAPPA, ry * KAPPA
    surface.begin_path()
    surface.move_to(cx + rx, cy)
    surface.curve_to(cx + rx, cy + oy, cx + ox, cy + ry, cx, cy + ry)
    surface.curve_to(cx - ox, cy + ry, cx - rx, cy + oy, cx - rx, cy)
    surface.curve_to(cx - rx, cy - oy, cx - ox, cy - ry, cx, cy - ry)
    surface.curve_to(cx + ox, cy - ry, cx + rx, cy - oy, cx + rx, cy)
    surface.close_path()


def _paint_shape(element: ShapeElement, scale: float, surface: Surface) -> None:
    bounds = element.bounds.scaled(scale)
    match element.kind:
        case ShapeKind.LINE:
            if element.stroke is None:
                return
            surface.begin_path()
            surface.move_to(bounds.x, bounds.y)
            surface.line_to(bounds.right, bounds.bottom)
            surface.stroke(element.stroke.color, element.stroke.width * scale)
            return
        case ShapeKind.ELLIPSE:
            _ellipse_path(surface, bounds.normalized())
        case _:
            _rect_path(surface, bounds.normalized())
    if element.fill is not None:
        surface.fill(element.fill)
    if element.stroke is not None:
        surface.stroke(element.stroke.color, element.stroke.width * scale)


def _paint_text(
    element: TextElement, scale: float, surface: Surface, shaper: TextShaper
) -> None:
    box = element.bounds.normalized()
    if element.fill is not None:
        _rect_path(surface, box.scaled(scale))
        surface.fill(element.fill)
    layout = shaper.layout(element.paragraphs, box.width)
    for line in layout.lines:
        baseline = (box.y + line.baseline) * scale
        for fragment in line.fragments:
            if not fragment.text.strip():
                continue
            surface.draw_text_run(
                PlacedRun(
                    text=fragment.text,
                    x=(box.x + line.offset + fragment.x) * scale,
                    baseline=baseline,
                    font=replace(fragment.font, size=fragment.font.size * scale),
                    fontname=shaper.fonts.fontname(fragment.font),
                    width=fragment.width * scale,
                )
            )


def paint_placeholder(rect: Rect, surface: Surface, scale: float = 1.0) -> None:
    """Paint the missing-image marker: a light box with a diagonal cross."""
    _rect_path(surface, rect)
    surface.fill(PLACEHOLDER_FILL)
    width = PLACEHOLDER_STROKE_WIDTH * scale
    surface.stroke(PLACEHOLDER_BORDER, width)
    surface.begin_path()
    surface.move_to(rect.x, rect.y)
    surface.line_to(rect.right, rect.bottom)
    surface.move_to(rect.right, rect.y)
    surface.line_to(rect.x, rect.bottom)
    surface.stroke(PLACEHOLDER_BORDER, width)


def image_rect(image: DecodedImage, bounds: Rect, mode: ScaleMode) -> Rect:
    """Return where ``image`` is drawn for ``bounds`` under ``mode``."""
    if mode is ScaleMode.STRETCH or image.width <= 0 or image.height <= 0:
        return bounds
    sx = bounds.width / image.width
    sy = bounds.height / image.height
    factor = min(sx, sy) if mode is ScaleMode.FIT else max(sx, sy)
    width = image.width * factor
    height = image.height * factor
    return Rect(
        bounds.x + (bounds.width - width) / 2,
        bounds.y + (bounds.height - height) / 2,
        width,
        height,
    )


def _paint_image(
    element: ImageElement, scale: float, surface: Surface, images: ImageCache | None
) -> None:
    bounds = element.bounds.normalized().scaled(scale)
    try:
        if images is None:
            raise ImageDecodeFailure(element.image_key, detail="no image cache")
        decoded = images.get(element.image_key)
    except ImageDecodeFailure as exc:
        logger.warning("%s; painting placeholder for element %s", exc, element.id)
        paint_placeholder(bounds, surface, scale)
        return
    target = image_rect(decoded, bounds, element.scale_mode)
    if element.scale_mode is ScaleMode.FILL:
        surface.set_clip(bounds)
        surface.draw_image(decoded, target)
        surface.set_clip(None)
    else:
        surface.draw_image(decoded, target)


def render_element(
    element: Element,
    scale: float,
    surface: Surface,
    *,
    images: ImageCache | None = None,
    shaper: TextShaper | None = None,
) -> None:
    """Paint a single element, turned about the centre of its bounds."""
    if element.rotation:
        surface.set_rotation(element.bounds.normalized().scaled(scale), element.rotation)
    try:
        match element:
            case ShapeElement():
                _paint_shape(element, scale, surface)
            case TextElement():
                _paint_text(element, scale, surface, shaper or TextShaper())
            case ImageElement():
                _paint_image(element, scale, surface, images)
    finally:
        if element.rotation:
            surface.set_rotation(None)


def render_slide(
    slide: Slide,
    scale: float,
    surface: Surface,
    *,
    images: ImageCache | None = None,
    fonts: FontResolver | None = None,
) -> None:
    """Paint ``slide`` onto ``surface``.

    The background is painted first, then the elements back to front.
    Coordinates are multiplied by ``scale`` to map points to device units.
    Images that cannot be decoded are replaced by a placeholder so the rest
    of the slide still renders.
    """
    shaper = TextShaper(fonts)
    if slide.background is not None:
        _rect_path(surface, Rect(0, 0, slide.size.width, slide.size.height).scaled(scale))
        surface.fill(slide.background)
    for element in slide.elements:
        render_element(element, scale, surface, images=images, shaper=shaper)


def render_document_slide(
    document: Document, index: int, scale: float, surface: Surface
) -> None:
    """Render slide ``index`` using the document's image cache and fonts."""
    render_slide(
        document.slide(index),
        scale,
        surface,
        images=document.images,
        fonts=document.fonts,
    )


__all__ = [
    "KAPPA",
    "image_rect",
    "paint_placeholder",
    "render_document_slide",
    "render_element",
    "render_slide",
]
