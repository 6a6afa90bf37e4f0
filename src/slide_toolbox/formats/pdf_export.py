"""Export documents as PDF, one page per slide, through PyMuPDF."""

from __future__ import annotations

import math
from pathlib import Path

import fitz  # type: ignore

from slide_toolbox.errors import EncodeError
from slide_toolbox.model.document import Document
from slide_toolbox.model.geometry import Rect
from slide_toolbox.model.images import DecodedImage, encode_png
from slide_toolbox.model.style import Color
from slide_toolbox.render.engine import render_slide
from slide_toolbox.render.surface import PlacedRun
from slide_toolbox.utils import atomic_write, logger, update_metadata

ERR_NO_SLIDES = "a PDF needs at least one page but the document has no slides"

_Segment = tuple[fitz.Point, ...]


def _frect(rect: Rect) -> fitz.Rect:
    box = rect.normalized()
    return fitz.Rect(box.x, box.y, box.right, box.bottom)


class PdfPageSurface:
    """Paint onto one :class:`fitz.Page`.

    Paths are drawn with :class:`fitz.Shape`, text with the Base-14 fonts the
    layout was measured with. While a clip is set, drawing goes to a scratch
    page of the same size which :meth:`set_clip` later places onto the real
    page with ``show_pdf_page(..., clip=...)``.

    While a rotation is set, drawing goes to a square scratch page centred
    on the rotated box; :meth:`set_rotation` later places it turned with
    ``show_pdf_page(..., rotate=...)``. Clips nest inside the rotation.
    """

    def __init__(self, page: fitz.Page, png_cache: dict[str, bytes] | None = None) -> None:
        self.page = page
        self._base = page
        self._target = page
        self._offset = (0.0, 0.0)
        self._subpaths: list[tuple[fitz.Point, list[_Segment], bool]] = []
        self._png_cache = png_cache if png_cache is not None else {}
        self._clip: Rect | None = None
        self._scratch: fitz.Document | None = None
        self._scratch_used = False
        self._turn: fitz.Document | None = None
        self._turn_center = fitz.Point(0, 0)
        self._turn_side = 0.0
        self._turn_degrees = 0.0
        self._turn_used = False

    def _point(self, x: float, y: float) -> fitz.Point:
        return fitz.Point(x - self._offset[0], y - self._offset[1])

    def _rect(self, rect: Rect) -> fitz.Rect:
        return _frect(rect.translated(-self._offset[0], -self._offset[1]))

    def _mark(self) -> None:
        self._scratch_used = self._scratch is not None
        self._turn_used = self._turn_used or self._turn is not None

    # -- path construction -------------------------------------------

    def begin_path(self) -> None:
        self._subpaths = []

    def move_to(self, x: float, y: float) -> None:
        self._subpaths.append((self._point(x, y), [], False))

    def _segments(self) -> list[_Segment]:
        if not self._subpaths:
            self.move_to(*self._offset)
        return self._subpaths[-1][1]

    def line_to(self, x: float, y: float) -> None:
        self._segments().append((self._point(x, y),))

    def curve_to(self, x1: float, y1: float, x2: float, y2: float, x: float, y: float) -> None:
        self._segments().append((self._point(x1, y1), self._point(x2, y2), self._point(x, y)))

    def close_path(self) -> None:
        if self._subpaths:
            start, segments, _closed = self._subpaths[-1]
            self._subpaths[-1] = (start, segments, True)

    # -- painting ----------------------------------------------------

    def _paint(self, *, fill: Color | None, stroke: Color | None, width: float = 1.0) -> None:
        for start, segments, closed in self._subpaths:
            if not segments:
                continue
            shape = self._target.new_shape()
            current = start
            for points in segments:
                if len(points) == 1:
                    current = shape.draw_line(current, points[0])
                else:
                    current = shape.draw_bezier(current, *points)
            paint = fill or stroke
            shape.finish(
                width=width,
                color=stroke.as_unit_rgb() if stroke else None,
                fill=fill.as_unit_rgb() if fill else None,
                closePath=closed or fill is not None,
                fill_opacity=paint.a / 255,
                stroke_opacity=paint.a / 255,
            )
            shape.commit()
            self._mark()

    def fill(self, color: Color) -> None:
        if color.a:
            self._paint(fill=color, stroke=None)

    def stroke(self, color: Color, width: float) -> None:
        if color.a and width > 0:
            self._paint(fill=None, stroke=color, width=width)

    def set_clip(self, rect: Rect | None) -> None:
        self._flush_clip()
        if rect is None:
            return
        self._clip = rect.normalized().translated(-self._offset[0], -self._offset[1])
        self._scratch = fitz.open()
        bounds = self._base.rect
        self._target = self._scratch.new_page(width=bounds.width, height=bounds.height)
        self._scratch_used = False

    def _flush_clip(self) -> None:
        if self._scratch is None or self._clip is None:
            return
        clip = _frect(self._clip)
        try:
            if self._scratch_used and not clip.is_empty:
                self._base.show_pdf_page(clip, self._scratch, 0, clip=clip)
        finally:
            self._scratch.close()
            self._scratch = None
            self._clip = None
            self._target = self._base

    def set_rotation(self, rect: Rect | None, degrees: float = 0.0) -> None:
        self._flush_clip()
        self._flush_rotation()
        if rect is None or not degrees:
            return
        center = rect.normalized().center
        bounds = self.page.rect
        # large enough for anything drawn on the page, wherever the centre is
        side = 2 * (bounds.width + bounds.height)
        self._turn = fitz.open()
        self._base = self._target = self._turn.new_page(width=side, height=side)
        self._offset = (center.x - side / 2, center.y - side / 2)
        self._turn_center = fitz.Point(center.x, center.y)
        self._turn_side = side
        self._turn_degrees = degrees
        self._turn_used = False

    def _flush_rotation(self) -> None:
        if self._turn is None:
            return
        angle = math.radians(self._turn_degrees)
        # show_pdf_page fits the bounding box of the turned page into the target
        half = self._turn_side * (abs(math.cos(angle)) + abs(math.sin(angle))) / 2
        center = self._turn_center
        target = fitz.Rect(center.x - half, center.y - half, center.x + half, center.y + half)
        try:
            if self._turn_used:
                # PDF space has y up, so a negative angle turns clockwise on the page
                self.page.show_pdf_page(
                    target, self._turn, 0, keep_proportion=False, rotate=-self._turn_degrees
                )
        finally:
            self._turn.close()
            self._turn = None
            self._offset = (0.0, 0.0)
            self._base = self._target = self.page

    def draw_text_run(self, run: PlacedRun) -> None:
        color = run.font.color
        if not run.text.strip() or not color.a:
            return
        self._target.insert_text(
            self._point(run.x, run.baseline),
            run.text,
            fontsize=run.font.size,
            fontname=run.fontname,
            color=color.as_unit_rgb(),
            fill_opacity=color.a / 255,
        )
        self._mark()

    def draw_image(self, image: DecodedImage, rect: Rect) -> None:
        target = self._rect(rect)
        if target.is_empty:
            return
        if image.pdf is not None:
            # SVG sources stay vector graphics
            with fitz.open(stream=image.pdf, filetype="pdf") as source:
                self._target.show_pdf_page(target, source, 0, keep_proportion=False)
        else:
            png = self._png_cache.get(image.key)
            if png is None:
                png = self._png_cache[image.key] = encode_png(image.image)
            self._target.insert_image(target, stream=png, keep_proportion=False)
        self._mark()

    def finish(self) -> None:
        """Place any pending clipped or rotated drawing onto the page."""
        self._flush_clip()
        self._flush_rotation()


def export_pdf(document: Document, path: str | Path) -> Path:
    """Write ``document`` as a PDF with one page per slide.

    Pages are sized to their slide in points. The file appears atomically.

    Raises:
        EncodeError: The document has no slides or the file could not be
            written.
    """
    target = Path(path)
    logger.info("Exporting PDF %s (%d slides)", target, len(document.slides))
    if not document.slides:
        raise EncodeError(target, detail=ERR_NO_SLIDES)
    png_cache: dict[str, bytes] = {}
    try:
        with atomic_write(target) as tmp, fitz.open() as pdf:
            for slide in document.slides:
                page = pdf.new_page(width=slide.size.width, height=slide.size.height)
                surface = PdfPageSurface(page, png_cache)
                render_slide(slide, 1.0, surface, images=document.images, fonts=document.fonts)
                surface.finish()
            update_metadata(pdf, title=document.title or None)
            pdf.save(tmp, garbage=3, deflate=True)
    except (OSError, ValueError) as exc:
        raise EncodeError(target, detail=str(exc)) from exc
    return target


__all__ = ["PdfPageSurface", "export_pdf"]
