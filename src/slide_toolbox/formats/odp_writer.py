"""Write documents as OpenDocument Presentation (``.odp``) packages."""

from __future__ import annotations

import math
import re
import zipfile
from datetime import datetime
from pathlib import Path

from lxml import etree

from slide_toolbox.errors import EncodeError
from slide_toolbox.formats.odp_constants import (
    ALIGN_TO_ODF,
    CONTENT_XML,
    MANIFEST_XML,
    META_XML,
    MIMETYPE_ENTRY,
    NS,
    ODF_VERSION,
    ODP_MIMETYPE,
    PICTURES_DIR,
    STYLES_XML,
    qn,
)
from slide_toolbox.model.document import Document
from slide_toolbox.model.elements import (
    Element,
    ImageElement,
    Paragraph,
    ShapeElement,
    ShapeKind,
    TextElement,
)
from slide_toolbox.model.geometry import Size
from slide_toolbox.model.images import MIME_EXTENSIONS
from slide_toolbox.model.slide import Slide
from slide_toolbox.model.style import Color, FontStyle, Stroke, Style
from slide_toolbox.units import format_length, format_points
from slide_toolbox.utils import PRODUCER, atomic_write, logger

_NCNAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_.-]*$")
_WHITESPACE_RE = re.compile(r"( {2,}|\t|\n)")

# derived geometry (line extents, rotated corners) keeps two more digits than
# plain positions so it stays within ODP_LENGTH_EPSILON after decoding
PRECISE_DIGITS = 6


def style_ncname(name: str) -> str:
    """Return ``name`` as a valid ``style:name`` value."""
    if _NCNAME_RE.match(name):
        return name
    escaped = re.sub(r"[^A-Za-z0-9_.-]", lambda m: f"_{ord(m.group()):x}_", name)
    return escaped if _NCNAME_RE.match(escaped) else f"_{escaped}"


def _opacity(color: Color) -> str:
    return f"{color.a / 255 * 100:.2f}%"


def _sub(parent: etree._Element, name: str, attrib: dict[str, str] | None = None) -> etree._Element:
    element = etree.SubElement(parent, qn(name))
    for key, value in (attrib or {}).items():
        element.set(qn(key), value)
    return element


def _graphic_attrs(fill: Color | None, stroke: Stroke | None) -> dict[str, str]:
    attrs: dict[str, str] = {}
    if fill is None:
        attrs["draw:fill"] = "none"
    else:
        attrs["draw:fill"] = "solid"
        attrs["draw:fill-color"] = fill.to_hex()
        if not fill.opaque:
            attrs["draw:opacity"] = _opacity(fill)
    if stroke is None:
        attrs["draw:stroke"] = "none"
    else:
        attrs["draw:stroke"] = "solid"
        attrs["svg:stroke-color"] = stroke.color.to_hex()
        attrs["svg:stroke-width"] = format_length(stroke.width)
        if not stroke.color.opaque:
            attrs["svg:stroke-opacity"] = _opacity(stroke.color)
    return attrs


def _text_attrs(font: FontStyle) -> dict[str, str]:
    return {
        "fo:font-family": font.family,
        "fo:font-size": format_points(font.size),
        "fo:color": font.color.to_hex(),
        "fo:font-weight": "bold" if font.bold else "normal",
        "fo:font-style": "italic" if font.italic else "normal",
    }


def _append_text(parent: etree._Element, text: str) -> None:
    """Append ``text`` to ``parent`` encoding tabs, breaks and space runs."""
    last: etree._Element | None = None

    def _chars(chunk: str) -> None:
        if not chunk:
            return
        if last is None:
            parent.text = (parent.text or "") + chunk
        else:
            last.tail = (last.tail or "") + chunk

    for piece in _WHITESPACE_RE.split(text):
        if piece == "\n":
            last = _sub(parent, "text:line-break")
        elif piece == "\t":
            last = _sub(parent, "text:tab")
        elif piece.startswith("  ") and not piece.strip(" "):
            _chars(" ")
            last = _sub(parent, "text:s", {"text:c": str(len(piece) - 1)})
        else:
            _chars(piece)


class _OdpWriter:
    """Build the XML parts of one package, deduplicating automatic styles."""

    def __init__(self, document: Document) -> None:
        self.document = document
        self._graphic: dict[tuple, str] = {}
        self._paragraph: dict[tuple, str] = {}
        self._text: dict[FontStyle, str] = {}
        self._page: dict[Color | None, str] = {}
        self._layouts: dict[Size, tuple[str, str]] = {}
        self._auto: etree._Element | None = None
        self.pictures: dict[str, tuple[str, bytes, str]] = {}

    # -- automatic styles --------------------------------------------

    def _style(self, name: str, family: str, parent: str | None = None) -> etree._Element:
        assert self._auto is not None
        attrs = {"style:name": name, "style:family": family}
        if parent is not None:
            attrs["style:parent-style-name"] = parent
        return _sub(self._auto, "style:style", attrs)

    def _graphic_style(
        self, fill: Color | None, stroke: Stroke | None, parent: str | None, *, frame: bool
    ) -> str:
        key = (fill, stroke, parent, frame)
        name = self._graphic.get(key)
        if name is None:
            name = f"gr{len(self._graphic) + 1}"
            self._graphic[key] = name
            attrs = _graphic_attrs(fill, stroke)
            if frame:
                attrs["draw:textarea-vertical-align"] = "top"
                attrs["fo:padding"] = "0cm"
            _sub(self._style(name, "graphic", parent), "style:graphic-properties", attrs)
        return name

    def _paragraph_style(self, paragraph: Paragraph) -> str:
        key = (paragraph.alignment,)
        name = self._paragraph.get(key)
        if name is None:
            name = f"P{len(self._paragraph) + 1}"
            self._paragraph[key] = name
            _sub(
                self._style(name, "paragraph"),
                "style:paragraph-properties",
                {"fo:text-align": ALIGN_TO_ODF[paragraph.alignment.value]},
            )
        return name

    def _text_style(self, font: FontStyle) -> str:
        name = self._text.get(font)
        if name is None:
            name = f"T{len(self._text) + 1}"
            self._text[font] = name
            _sub(self._style(name, "text"), "style:text-properties", _text_attrs(font))
        return name

    def _page_style(self, background: Color | None) -> str:
        name = self._page.get(background)
        if name is None:
            name = f"dp{len(self._page) + 1}"
            self._page[background] = name
            attrs = {"draw:fill": "none"}
            if background is not None:
                attrs = {"draw:fill": "solid", "draw:fill-color": background.to_hex()}
                if not background.opaque:
                    attrs["draw:opacity"] = _opacity(background)
            attrs["presentation:background-visible"] = "true"
            _sub(self._style(name, "drawing-page"), "style:drawing-page-properties", attrs)
        return name

    def _master_for(self, size: Size) -> str:
        if size not in self._layouts:
            number = len(self._layouts) + 1
            self._layouts[size] = (f"PM{number}", f"Master{number}")
        return self._layouts[size][1]

    def _parent_style(self, element: Element) -> str | None:
        if element.style_name and element.style_name in self.document.styles:
            return style_ncname(element.style_name)
        return None

    # -- elements ----------------------------------------------------

    def _geometry(self, element: Element) -> dict[str, str]:
        box = element.bounds
        if not element.rotation:
            return {
                "svg:x": format_length(box.x),
                "svg:y": format_length(box.y),
                "svg:width": format_length(box.width),
                "svg:height": format_length(box.height),
            }
        # ODF turns the shape counter-clockwise about its own top-left corner
        # and then moves that corner into place
        corner = box.corners(element.rotation)[0]
        angle = -math.radians(element.rotation)
        origin = " ".join(format_length(v, digits=PRECISE_DIGITS) for v in (corner.x, corner.y))
        return {
            "svg:width": format_length(box.width, digits=PRECISE_DIGITS),
            "svg:height": format_length(box.height, digits=PRECISE_DIGITS),
            "draw:transform": f"rotate ({angle:.12g}) translate ({origin})",
        }

    def _write_shape(self, page: etree._Element, element: ShapeElement) -> None:
        fill = None if element.kind is ShapeKind.LINE else element.fill
        style = self._graphic_style(fill, element.stroke, self._parent_style(element), frame=False)
        attrs = {"draw:style-name": style, "draw:id": element.id}
        if element.kind is ShapeKind.LINE:
            box = element.bounds
            start, _, end, _ = box.corners(element.rotation)
            attrs |= {
                "svg:x1": format_length(start.x, digits=PRECISE_DIGITS),
                "svg:y1": format_length(start.y, digits=PRECISE_DIGITS),
                "svg:x2": format_length(end.x, digits=PRECISE_DIGITS),
                "svg:y2": format_length(end.y, digits=PRECISE_DIGITS),
            }
            line = _sub(page, "draw:line", attrs)
            if element.rotation:
                # the end points above are already turned; keep the angle for our reader
                line.set(qn("slidetoolbox:rotation"), f"{element.rotation:.12g}")
            return
        tag = "draw:ellipse" if element.kind is ShapeKind.ELLIPSE else "draw:rect"
        _sub(page, tag, attrs | self._geometry(element))

    def _write_paragraphs(self, box: etree._Element, paragraphs: tuple[Paragraph, ...]) -> None:
        for paragraph in paragraphs:
            p = _sub(box, "text:p", {"text:style-name": self._paragraph_style(paragraph)})
            for run in paragraph.runs:
                span = _sub(p, "text:span", {"text:style-name": self._text_style(run.font)})
                _append_text(span, run.text)

    def _write_text(self, page: etree._Element, element: TextElement) -> None:
        style = self._graphic_style(element.fill, None, self._parent_style(element), frame=True)
        frame = _sub(
            page,
            "draw:frame",
            {"draw:style-name": style, "draw:id": element.id} | self._geometry(element),
        )
        self._write_paragraphs(_sub(frame, "draw:text-box"), element.paragraphs)

    def _write_image(self, page: etree._Element, element: ImageElement) -> None:
        style = self._graphic_style(None, None, self._parent_style(element), frame=False)
        frame = _sub(
            page,
            "draw:frame",
            {"draw:style-name": style, "draw:id": element.id} | self._geometry(element),
        )
        frame.set(qn("slidetoolbox:scale-mode"), element.scale_mode.value)
        image = _sub(frame, "draw:image")
        if element.image_key is None:
            return
        asset = self.document.assets.get(element.image_key)
        if asset is None:
            logger.warning(
                "Image asset %s of element %s is missing; writing a dangling reference",
                element.image_key,
                element.id,
            )
            extension = MIME_EXTENSIONS.get(element.mime, "png")
        else:
            extension = asset.extension
        href = f"{PICTURES_DIR}/{element.image_key}.{extension}"
        if asset is not None:
            self.pictures.setdefault(element.image_key, (href, asset.data, asset.mime))
        image.set(qn("xlink:href"), href)
        image.set(qn("xlink:type"), "simple")
        image.set(qn("xlink:show"), "embed")
        image.set(qn("xlink:actuate"), "onLoad")

    def _write_notes(self, page: etree._Element, notes: str) -> None:
        frame = _sub(
            _sub(page, "presentation:notes"),
            "draw:frame",
            {"presentation:class": "notes"},
        )
        box = _sub(frame, "draw:text-box")
        for line in notes.split("\n"):
            _append_text(_sub(box, "text:p"), line)

    def _write_slide(self, presentation: etree._Element, number: int, slide: Slide) -> None:
        page = _sub(
            presentation,
            "draw:page",
            {
                "draw:name": f"page{number}",
                "draw:style-name": self._page_style(slide.background),
                "draw:master-page-name": self._master_for(slide.size),
            },
        )
        page.set(qn("slidetoolbox:id"), slide.id)
        for element in slide.elements:
            match element:
                case ShapeElement():
                    self._write_shape(page, element)
                case TextElement():
                    self._write_text(page, element)
                case ImageElement():
                    self._write_image(page, element)
        if slide.notes:
            self._write_notes(page, slide.notes)

    # -- parts -------------------------------------------------------

    def content(self) -> bytes:
        root = etree.Element(qn("office:document-content"), nsmap=NS)
        root.set(qn("office:version"), ODF_VERSION)
        self._auto = _sub(root, "office:automatic-styles")
        presentation = _sub(_sub(root, "office:body"), "office:presentation")
        for number, slide in enumerate(self.document.slides, start=1):
            self._write_slide(presentation, number, slide)
        if not self.document.slides:
            self._master_for(self.document.default_slide_size)
        return etree.tostring(root, xml_declaration=True, encoding="UTF-8")

    def _write_named_style(self, parent: etree._Element, style: Style) -> None:
        element = _sub(
            parent,
            "style:style",
            {
                "style:name": style_ncname(style.name),
                "style:display-name": style.name,
                "style:family": "graphic",
            },
        )
        _sub(element, "style:graphic-properties", _graphic_attrs(style.fill, style.stroke))
        if style.alignment is not None:
            _sub(
                element,
                "style:paragraph-properties",
                {"fo:text-align": ALIGN_TO_ODF[style.alignment.value]},
            )
        if style.font is not None:
            _sub(element, "style:text-properties", _text_attrs(style.font))

    def styles(self) -> bytes:
        """Serialise ``styles.xml``; call after :meth:`content`."""
        root = etree.Element(qn("office:document-styles"), nsmap=NS)
        root.set(qn("office:version"), ODF_VERSION)
        named = _sub(root, "office:styles")
        for style in self.document.styles.values():
            self._write_named_style(named, style)
        auto = _sub(root, "office:automatic-styles")
        masters = _sub(root, "office:master-styles")
        for size, (layout, master) in self._layouts.items():
            _sub(
                _sub(auto, "style:page-layout", {"style:name": layout}),
                "style:page-layout-properties",
                {
                    "fo:page-width": format_length(size.width),
                    "fo:page-height": format_length(size.height),
                    "fo:margin-top": "0cm",
                    "fo:margin-bottom": "0cm",
                    "fo:margin-left": "0cm",
                    "fo:margin-right": "0cm",
                    "style:print-orientation": (
                        "landscape" if size.width >= size.height else "portrait"
                    ),
                },
            )
            _sub(
                masters,
                "style:master-page",
                {"style:name": master, "style:page-layout-name": layout},
            )
        return etree.tostring(root, xml_declaration=True, encoding="UTF-8")

    def meta(self) -> bytes:
        root = etree.Element(qn("office:document-meta"), nsmap=NS)
        root.set(qn("office:version"), ODF_VERSION)
        meta = _sub(root, "office:meta")
        _sub(meta, "meta:generator").text = PRODUCER
        metadata = self.document.metadata
        if self.document.title:
            _sub(meta, "dc:title").text = self.document.title
        if metadata.author:
            _sub(meta, "meta:initial-creator").text = metadata.author
            _sub(meta, "dc:creator").text = metadata.author
        if metadata.created is not None:
            _sub(meta, "meta:creation-date").text = metadata.created.isoformat()
        modified = metadata.modified or datetime.now()
        _sub(meta, "dc:date").text = modified.isoformat()
        return etree.tostring(root, xml_declaration=True, encoding="UTF-8")

    def manifest(self) -> bytes:
        root = etree.Element(qn("manifest:manifest"), nsmap={"manifest": NS["manifest"]})
        root.set(qn("manifest:version"), ODF_VERSION)
        entries = [
            ("/", ODP_MIMETYPE),
            (CONTENT_XML, "text/xml"),
            (STYLES_XML, "text/xml"),
            (META_XML, "text/xml"),
            *((href, mime) for href, _data, mime in self.pictures.values()),
        ]
        for path, media_type in entries:
            entry = _sub(
                root,
                "manifest:file-entry",
                {"manifest:full-path": path, "manifest:media-type": media_type},
            )
            if path == "/":
                entry.set(qn("manifest:version"), ODF_VERSION)
        return etree.tostring(root, xml_declaration=True, encoding="UTF-8")


def write_package(document: Document, archive: zipfile.ZipFile) -> None:
    """Write all parts of ``document`` into an open zip ``archive``."""
    writer = _OdpWriter(document)
    content = writer.content()
    styles = writer.styles()
    archive.writestr(
        zipfile.ZipInfo(MIMETYPE_ENTRY), ODP_MIMETYPE.encode("ascii"), zipfile.ZIP_STORED
    )
    archive.writestr(MANIFEST_XML, writer.manifest(), zipfile.ZIP_DEFLATED)
    archive.writestr(META_XML, writer.meta(), zipfile.ZIP_DEFLATED)
    archive.writestr(STYLES_XML, styles, zipfile.ZIP_DEFLATED)
    archive.writestr(CONTENT_XML, content, zipfile.ZIP_DEFLATED)
    for href, data, _mime in writer.pictures.values():
        archive.writestr(href, data, zipfile.ZIP_DEFLATED)


def write_odp(document: Document, path: str | Path) -> Path:
    """Write ``document`` to ``path`` atomically and return the final path.

    Raises:
        EncodeError: The package could not be written.
    """
    target = Path(path)
    logger.info("Writing ODP %s (%d slides)", target, len(document.slides))
    try:
        with atomic_write(target) as tmp, zipfile.ZipFile(tmp, "w") as archive:
            write_package(document, archive)
    except (OSError, ValueError) as exc:
        raise EncodeError(target, detail=str(exc)) from exc
    return target


__all__ = ["style_ncname", "write_odp", "write_package"]
