"""Read OpenDocument Presentation (``.odp``) packages into a :class:`Document`."""

from __future__ import annotations

import math
import posixpath
import re
import zipfile
import zlib
from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path

from lxml import etree

from slide_toolbox.errors import MalformedContainerError, MalformedDocumentError
from slide_toolbox.formats.odp_constants import (
    CONTENT_XML,
    META_XML,
    MIMETYPE_ENTRY,
    NS,
    ODF_TO_ALIGN,
    ODP_MIMETYPE,
    STYLES_XML,
    qn,
)
from slide_toolbox.model.document import Document, Metadata
from slide_toolbox.model.elements import (
    Element,
    ImageElement,
    Paragraph,
    ScaleMode,
    ShapeElement,
    ShapeKind,
    TextElement,
    TextRun,
    new_id,
    validate_element,
)
from slide_toolbox.model.geometry import DEFAULT_SLIDE_SIZE, Point, Rect, Size
from slide_toolbox.model.images import EXTENSION_MIMES, sniff_mime
from slide_toolbox.model.slide import Slide
from slide_toolbox.model.style import (
    BLACK,
    WHITE,
    Alignment,
    Color,
    FontStyle,
    Stroke,
    Style,
)
from slide_toolbox.units import parse_length
from slide_toolbox.utils import logger

ERR_MISSING_CONTENT = "content.xml is missing"
ERR_BAD_ROOT = "content.xml root is {tag}, expected office:document-content"
ERR_NO_PRESENTATION = "office:presentation element is missing"
ERR_BAD_XML = "{part} is not well-formed XML: {detail}"
ERR_BAD_MIMETYPE = "mimetype is {value!r}, expected an OpenDocument presentation"

DEFAULT_STROKE_WIDTH = 1.0

_SHAPE_TAGS = {qn("draw:rect"): ShapeKind.RECT, qn("draw:ellipse"): ShapeKind.ELLIPSE}
_CUSTOM_SHAPE_KINDS = {
    "rectangle": ShapeKind.RECT,
    "round-rectangle": ShapeKind.RECT,
    "ellipse": ShapeKind.ELLIPSE,
    "circle": ShapeKind.ELLIPSE,
}


@dataclass(slots=True)
class _StyleProps:
    """Properties of one ``style:style``; ``None`` means not set here."""

    name: str
    display_name: str
    family: str
    parent: str | None = None
    props: dict[str, str] = field(default_factory=dict)


class _StyleTable:
    """Look up style properties along ``style:parent-style-name`` chains."""

    def __init__(self) -> None:
        self.styles: dict[tuple[str, str], _StyleProps] = {}
        self.defaults: dict[str, _StyleProps] = {}
        self.named: list[_StyleProps] = []

    def load(self, container: etree._Element | None, *, named: bool = False) -> None:
        if container is None:
            return
        for element in container:
            if element.tag == qn("style:default-style"):
                family = element.get(qn("style:family"), "")
                self.defaults[family] = _StyleProps("", "", family, props=_collect_props(element))
            elif element.tag == qn("style:style"):
                name = element.get(qn("style:name"), "")
                family = element.get(qn("style:family"), "")
                style = _StyleProps(
                    name,
                    element.get(qn("style:display-name")) or name,
                    family,
                    element.get(qn("style:parent-style-name")),
                    _collect_props(element),
                )
                self.styles[(family, name)] = style
                if named and family == "graphic":
                    self.named.append(style)

    def chain(self, family: str, name: str | None) -> list[dict[str, str]]:
        """Return property dicts from the style itself up to the family default."""
        result: list[dict[str, str]] = []
        seen: set[str] = set()
        while name and name not in seen:
            seen.add(name)
            style = self.styles.get((family, name))
            if style is None:
                break
            result.append(style.props)
            name = style.parent
        default = self.defaults.get(family)
        if default is not None:
            result.append(default.props)
        return result

    def parent_of(self, family: str, name: str | None) -> _StyleProps | None:
        style = self.styles.get((family, name or ""))
        if style is None or not style.parent:
            return None
        return self.styles.get((family, style.parent))


def _collect_props(style: etree._Element) -> dict[str, str]:
    """Flatten the ``*-properties`` children of a style into ``prefix:local`` keys."""
    props: dict[str, str] = {}
    reverse = {uri: prefix for prefix, uri in NS.items()}
    for child in style:
        if not isinstance(child.tag, str) or not child.tag.endswith("-properties"):
            continue
        for key, value in child.attrib.items():
            uri, _, local = key[1:].partition("}")
            prefix = reverse.get(uri)
            if prefix is not None:
                props[f"{prefix}:{local}"] = value
    return props


def _lookup(chains: list[list[dict[str, str]]], key: str) -> str | None:
    for chain in chains:
        for props in chain:
            if key in props:
                return props[key]
    return None


def _length(value: str | None, default: float = 0.0) -> float:
    if value is None:
        return default
    try:
        return parse_length(value)
    except ValueError:
        logger.debug("ignoring malformed length %r", value)
        return default


def _alpha(opacity: str | None) -> int:
    if not opacity:
        return 255
    try:
        value = float(opacity.strip().rstrip("%"))
    except ValueError:
        return 255
    return max(0, min(255, round(value / 100 * 255)))


def _color(value: str | None, opacity: str | None = None) -> Color | None:
    color = Color.parse(value)
    if color is None:
        return None
    return color.with_alpha(_alpha(opacity))


def _fill(chains: list[list[dict[str, str]]]) -> Color | None:
    if _lookup(chains, "draw:fill") != "solid":
        return None
    return _color(_lookup(chains, "draw:fill-color"), _lookup(chains, "draw:opacity"))


def _stroke(chains: list[list[dict[str, str]]]) -> Stroke | None:
    mode = _lookup(chains, "draw:stroke")
    if mode is None or mode == "none":
        return None
    color = _color(_lookup(chains, "svg:stroke-color"), _lookup(chains, "svg:stroke-opacity"))
    width = _length(_lookup(chains, "svg:stroke-width"), DEFAULT_STROKE_WIDTH)
    return Stroke(color or BLACK, max(width, 0.0))


def _font(chains: list[list[dict[str, str]]], base: FontStyle) -> FontStyle:
    family = (
        _lookup(chains, "fo:font-family")
        or _lookup(chains, "style:font-name")
        or _lookup(chains, "style:font-family-generic")
        or base.family
    )
    size = base.size
    raw_size = _lookup(chains, "fo:font-size")
    if raw_size and not raw_size.endswith("%"):
        size = _length(raw_size, base.size) or base.size
    weight = _lookup(chains, "fo:font-weight")
    if weight is None:
        bold = base.bold
    else:
        bold = weight == "bold" or (weight.isdigit() and int(weight) >= 600)  # noqa: PLR2004
    style = _lookup(chains, "fo:font-style")
    italic = base.italic if style is None else style in {"italic", "oblique"}
    color = _color(_lookup(chains, "fo:color")) or base.color
    return FontStyle(family.strip("'\""), size, bold, italic, color)


def _alignment(chains: list[list[dict[str, str]]]) -> Alignment | None:
    value = _lookup(chains, "fo:text-align")
    if value is None:
        return None
    return Alignment(ODF_TO_ALIGN.get(value, "left"))


_TRANSFORM_RE = re.compile(r"([A-Za-z]+)\s*\(([^)]*)\)")

# affine map (a, b, c, d, e, f): x' = a*x + c*y + e, y' = b*x + d*y + f
_Matrix = tuple[float, float, float, float, float, float]
_IDENTITY: _Matrix = (1.0, 0.0, 0.0, 1.0, 0.0, 0.0)


def _then(first: _Matrix, second: _Matrix) -> _Matrix:
    """Return the map applying ``first`` and then ``second``."""
    a, b, c, d, e, f = first
    sa, sb, sc, sd, se, sf = second
    return (
        sa * a + sc * b,
        sb * a + sd * b,
        sa * c + sc * d,
        sb * c + sd * d,
        sa * e + sc * f + se,
        sb * e + sd * f + sf,
    )


def _apply(matrix: _Matrix, x: float, y: float) -> Point:
    a, b, c, d, e, f = matrix
    return Point(a * x + c * y + e, b * x + d * y + f)


def _transform(value: str | None) -> tuple[_Matrix, float] | None:
    """Parse ``draw:transform`` into a map and a clockwise angle in degrees.

    Only ``rotate`` and ``translate`` are understood; ODF applies the
    operations in the order they are written.
    """
    if not value:
        return None
    matrix = _IDENTITY
    rotation = 0.0
    try:
        for name, raw in _TRANSFORM_RE.findall(value):
            args = raw.replace(",", " ").split()
            match name.lower(), args:
                case "rotate", [angle]:
                    radians = float(angle)
                    cos, sin = math.cos(radians), math.sin(radians)
                    # counter-clockwise on screen
                    step: _Matrix = (cos, -sin, sin, cos, 0.0, 0.0)
                    rotation -= math.degrees(radians)
                case "translate", [tx]:
                    step = (1.0, 0.0, 0.0, 1.0, parse_length(tx), 0.0)
                case "translate", [tx, ty]:
                    step = (1.0, 0.0, 0.0, 1.0, parse_length(tx), parse_length(ty))
                case _:
                    logger.debug("ignoring transform %s(%s)", name, raw)
                    continue
            matrix = _then(matrix, step)
    except ValueError:
        logger.debug("ignoring malformed transform %r", value)
        return None
    return matrix, rotation


class _OdpReader:
    def __init__(self, path: Path, archive: zipfile.ZipFile) -> None:
        self.path = path
        self.archive = archive
        self.names = set(archive.namelist())
        self.styles = _StyleTable()
        self.document = Document()
        self.master_sizes: dict[str, Size] = {}
        self.named_styles: dict[str, str] = {}

    def _read_entry(self, name: str) -> bytes:
        try:
            return self.archive.read(name)
        except (zipfile.BadZipFile, zlib.error, EOFError) as exc:
            raise MalformedContainerError(self.path, detail=f"{name}: {exc}") from exc

    def _parse(self, part: str) -> etree._Element:
        parser = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=True)
        try:
            return etree.fromstring(self._read_entry(part), parser=parser)
        except etree.XMLSyntaxError as exc:
            raise MalformedDocumentError(
                self.path, detail=ERR_BAD_XML.format(part=part, detail=exc)
            ) from exc

    # -- styles.xml and meta.xml -------------------------------------

    def _read_styles(self) -> None:
        if STYLES_XML not in self.names:
            return
        root = self._parse(STYLES_XML)
        self.styles.load(root.find("office:styles", NS), named=True)
        auto = root.find("office:automatic-styles", NS)
        self.styles.load(auto)
        layouts: dict[str, Size] = {}
        if auto is not None:
            for layout in auto.iterfind("style:page-layout", NS):
                props = layout.find("style:page-layout-properties", NS)
                if props is None:
                    continue
                layouts[layout.get(qn("style:name"), "")] = Size(
                    _length(props.get(qn("fo:page-width")), DEFAULT_SLIDE_SIZE.width),
                    _length(props.get(qn("fo:page-height")), DEFAULT_SLIDE_SIZE.height),
                )
        for master in root.iterfind("office:master-styles/style:master-page", NS):
            size = layouts.get(master.get(qn("style:page-layout-name"), ""))
            if size is not None:
                self.master_sizes[master.get(qn("style:name"), "")] = size
        if layouts:
            self.document.default_slide_size = next(iter(layouts.values()))

    def _read_named_styles(self) -> None:
        for props in self.styles.named:
            chains = [self.styles.chain("graphic", props.name)]
            has_font = any(key.startswith(("fo:font", "fo:color")) for key in props.props)
            style = Style(
                name=props.display_name,
                fill=_fill(chains),
                stroke=_stroke(chains),
                font=_font(chains, FontStyle()) if has_font else None,
                alignment=_alignment(chains),
            )
            self.document.styles[style.name] = style
            self.named_styles[props.name] = style.name

    def _read_meta(self) -> None:
        if META_XML not in self.names:
            return
        meta = self._parse(META_XML).find("office:meta", NS)
        if meta is None:
            return

        def _text(path: str) -> str:
            return (meta.findtext(path, default="", namespaces=NS) or "").strip()

        def _date(path: str) -> datetime | None:
            value = _text(path)
            if not value:
                return None
            try:
                return datetime.fromisoformat(value)
            except ValueError:
                logger.debug("ignoring malformed date %r in %s", value, META_XML)
                return None

        self.document.title = _text("dc:title")
        self.document.metadata = Metadata(
            author=_text("meta:initial-creator") or _text("dc:creator"),
            created=_date("meta:creation-date"),
            modified=_date("dc:date"),
        )

    # -- content.xml -------------------------------------------------

    def _style_name(self, element: etree._Element) -> str | None:
        parent = self.styles.parent_of("graphic", element.get(qn("draw:style-name")))
        if parent is None:
            return None
        return self.named_styles.get(parent.name)

    def _graphic_chains(self, element: etree._Element) -> list[list[dict[str, str]]]:
        chains = [self.styles.chain("graphic", element.get(qn("draw:style-name")))]
        presentation_style = element.get(qn("presentation:style-name"))
        if presentation_style:
            chains.append(self.styles.chain("presentation", presentation_style))
        return chains

    @staticmethod
    def _bounds(element: etree._Element) -> Rect:
        return Rect(
            _length(element.get(qn("svg:x"))),
            _length(element.get(qn("svg:y"))),
            abs(_length(element.get(qn("svg:width")))),
            abs(_length(element.get(qn("svg:height")))),
        )

    def _placement(self, element: etree._Element) -> tuple[Rect, float]:
        """Return the unrotated bounds and the clockwise rotation of ``element``."""
        box = self._bounds(element)
        transform = _transform(element.get(qn("draw:transform")))
        if transform is None:
            return box, 0.0
        matrix, rotation = transform
        corner = _apply(matrix, box.x, box.y)
        center = Point(corner.x + box.width / 2, corner.y + box.height / 2).rotated(
            corner, rotation
        )
        bounds = Rect(center.x - box.width / 2, center.y - box.height / 2, box.width, box.height)
        return bounds, rotation

    @staticmethod
    def _line_placement(element: etree._Element) -> tuple[Rect, float]:
        start = Point(_length(element.get(qn("svg:x1"))), _length(element.get(qn("svg:y1"))))
        end = Point(_length(element.get(qn("svg:x2"))), _length(element.get(qn("svg:y2"))))
        transform = _transform(element.get(qn("draw:transform")))
        if transform is not None:
            matrix, _rotation = transform
            start, end = _apply(matrix, start.x, start.y), _apply(matrix, end.x, end.y)
        rotation = 0.0
        raw = element.get(qn("slidetoolbox:rotation"))
        if raw:
            try:
                rotation = float(raw)
            except ValueError:
                logger.debug("ignoring malformed rotation %r", raw)
            else:
                # turning about the midpoint leaves the midpoint in place
                middle = Point((start.x + end.x) / 2, (start.y + end.y) / 2)
                start, end = start.rotated(middle, -rotation), end.rotated(middle, -rotation)
        return Rect(start.x, start.y, end.x - start.x, end.y - start.y), rotation

    @staticmethod
    def _element_id(element: etree._Element) -> str:
        return (
            element.get(qn("draw:id"))
            or element.get("{http://www.w3.org/XML/1998/namespace}id")
            or new_id()
        )

    def _shape(self, element: etree._Element, kind: ShapeKind) -> ShapeElement:
        chains = self._graphic_chains(element)
        if kind is ShapeKind.LINE:
            bounds, rotation = self._line_placement(element)
            fill = None
        else:
            bounds, rotation = self._placement(element)
            fill = _fill(chains)
        return ShapeElement(
            bounds=bounds,
            kind=kind,
            fill=fill,
            stroke=_stroke(chains),
            style_name=self._style_name(element),
            id=self._element_id(element),
            rotation=rotation,
        )

    def _custom_shape(self, element: etree._Element) -> ShapeElement | None:
        geometry = element.find("draw:enhanced-geometry", NS)
        shape_type = geometry.get(qn("draw:type"), "") if geometry is not None else ""
        kind = _CUSTOM_SHAPE_KINDS.get(shape_type)
        if kind is None:
            shape = self._shape(element, ShapeKind.RECT)
            if shape.fill is None:
                logger.debug("dropping unsupported custom shape %r without fill", shape_type)
                return None
            logger.debug("approximating custom shape %r as rectangle", shape_type)
            return shape
        return self._shape(element, kind)

    def _runs(
        self,
        element: etree._Element,
        font: FontStyle,
        runs: list[TextRun],
    ) -> None:
        def _add(text: str | None, run_font: FontStyle) -> None:
            if not text:
                return
            if runs and runs[-1].font == run_font:
                runs[-1] = TextRun(runs[-1].text + text, run_font)
            else:
                runs.append(TextRun(text, run_font))

        _add(element.text, font)
        for child in element:
            match child.tag:
                case tag if tag == qn("text:s"):
                    count = child.get(qn("text:c"), "1")
                    _add(" " * (int(count) if count.isdigit() else 1), font)
                case tag if tag == qn("text:tab"):
                    _add("\t", font)
                case tag if tag == qn("text:line-break"):
                    _add("\n", font)
                case tag if tag == qn("text:span"):
                    span_font = _font(
                        [self.styles.chain("text", child.get(qn("text:style-name")))], font
                    )
                    before = (len(runs), runs[-1].text if runs else "")
                    self._runs(child, span_font, runs)
                    if (len(runs), runs[-1].text if runs else "") == before:
                        # an empty span still carries its font
                        runs.append(TextRun("", span_font))
                case tag if tag in (qn("text:a"), qn("text:meta"), qn("text:bookmark-ref")):
                    self._runs(child, font, runs)
                case _:
                    logger.debug("skipping inline element %s", child.tag)
            _add(child.tail, font)

    def _paragraphs(
        self, box: etree._Element, frame_chains: list[list[dict[str, str]]]
    ) -> list[Paragraph]:
        frame_font = _font(frame_chains, FontStyle())
        frame_alignment = _alignment(frame_chains) or Alignment.LEFT
        paragraphs: list[Paragraph] = []
        for p in box.iter(qn("text:p"), qn("text:h")):
            chains = [self.styles.chain("paragraph", p.get(qn("text:style-name")))]
            font = _font(chains, frame_font)
            runs: list[TextRun] = []
            self._runs(p, font, runs)
            paragraphs.append(Paragraph(tuple(runs), _alignment(chains) or frame_alignment))
        return paragraphs

    def _image(self, frame: etree._Element, image: etree._Element) -> ImageElement:
        href = image.get(qn("xlink:href"), "")
        key: str | None = None
        extension = posixpath.splitext(href)[1].lstrip(".").lower()
        mime = EXTENSION_MIMES.get(extension, "image/png")
        entry = posixpath.normpath(href.removeprefix("./")) if href else ""
        if entry and entry in self.names:
            data = self._read_entry(entry)
            mime = EXTENSION_MIMES.get(extension) or sniff_mime(data) or mime
            key = self.document.add_image(data, mime)
        elif href:
            key = posixpath.splitext(posixpath.basename(href))[0] or None
            logger.warning("Image %s referenced by %s is missing from the package", href, self.path)
        try:
            scale_mode = ScaleMode(
                frame.get(qn("slidetoolbox:scale-mode"), ScaleMode.STRETCH.value)
            )
        except ValueError:
            scale_mode = ScaleMode.STRETCH
        bounds, rotation = self._placement(frame)
        return ImageElement(
            bounds=bounds,
            image_key=key,
            mime=mime,
            scale_mode=scale_mode,
            style_name=self._style_name(frame),
            id=self._element_id(frame),
            rotation=rotation,
        )

    def _frame(self, frame: etree._Element) -> Element | None:
        text_box = frame.find("draw:text-box", NS)
        if text_box is not None:
            chains = self._graphic_chains(frame)
            bounds, rotation = self._placement(frame)
            return TextElement(
                bounds=bounds,
                paragraphs=tuple(self._paragraphs(text_box, chains)),
                fill=_fill(chains),
                style_name=self._style_name(frame),
                id=self._element_id(frame),
                rotation=rotation,
            )
        image = frame.find("draw:image", NS)
        if image is not None:
            return self._image(frame, image)
        logger.debug("skipping frame without text box or image on %s", self.path)
        return None

    def _elements(self, container: etree._Element) -> list[Element]:
        elements: list[Element] = []
        for child in container:
            if not isinstance(child.tag, str):
                continue
            element: Element | None = None
            match child.tag:
                case tag if tag in _SHAPE_TAGS:
                    element = self._shape(child, _SHAPE_TAGS[tag])
                case tag if tag == qn("draw:line"):
                    element = self._shape(child, ShapeKind.LINE)
                case tag if tag == qn("draw:custom-shape"):
                    element = self._custom_shape(child)
                case tag if tag == qn("draw:frame"):
                    element = self._frame(child)
                case tag if tag == qn("draw:g"):
                    elements.extend(self._elements(child))
                case tag if tag in (qn("presentation:notes"), qn("office:forms")):
                    pass
                case _:
                    logger.debug("skipping unsupported element %s", child.tag)
            if element is None:
                continue
            try:
                validate_element(element)
            except (TypeError, ValueError) as exc:
                logger.debug("dropping invalid element %s: %s", element.id, exc)
                continue
            elements.append(element)
        return elements

    @staticmethod
    def _notes(page: etree._Element) -> str:
        notes = page.find("presentation:notes", NS)
        if notes is None:
            return ""
        lines = []
        for box in notes.iterfind(".//draw:text-box", NS):
            for p in box.iter(qn("text:p"), qn("text:h")):
                runs: list[str] = [p.text or ""]
                for child in p:
                    if child.tag == qn("text:s"):
                        count = child.get(qn("text:c"), "1")
                        runs.append(" " * (int(count) if count.isdigit() else 1))
                    elif child.tag == qn("text:tab"):
                        runs.append("\t")
                    elif child.tag == qn("text:line-break"):
                        runs.append("\n")
                    else:
                        runs.append("".join(child.itertext()))
                    runs.append(child.tail or "")
                lines.append("".join(runs))
        return "\n".join(lines)

    def _background(self, page: etree._Element) -> Color | None:
        chains = [self.styles.chain("drawing-page", page.get(qn("draw:style-name")))]
        if _lookup(chains, "draw:fill") is None:
            return WHITE
        return _fill(chains)

    def _slide(self, page: etree._Element) -> Slide:
        size = self.master_sizes.get(
            page.get(qn("draw:master-page-name"), ""), self.document.default_slide_size
        )
        elements = self._elements(page)
        seen: set[str] = set()
        for position, element in enumerate(elements):
            if element.id in seen:
                elements[position] = element = replace(element, id=new_id())
            seen.add(element.id)
        return Slide(
            elements=elements,
            size=size,
            background=self._background(page),
            notes=self._notes(page),
            id=page.get(qn("slidetoolbox:id")) or new_id(),
        )

    def _check_mimetype(self) -> None:
        if MIMETYPE_ENTRY not in self.names:
            logger.debug("%s has no mimetype entry", self.path)
            return
        value = self._read_entry(MIMETYPE_ENTRY).decode("utf-8", errors="replace").strip()
        if not value.startswith(ODP_MIMETYPE):
            raise MalformedDocumentError(self.path, detail=ERR_BAD_MIMETYPE.format(value=value))

    def read(self) -> Document:
        self._check_mimetype()
        if CONTENT_XML not in self.names:
            raise MalformedDocumentError(self.path, detail=ERR_MISSING_CONTENT)
        content = self._parse(CONTENT_XML)
        if content.tag != qn("office:document-content"):
            raise MalformedDocumentError(self.path, detail=ERR_BAD_ROOT.format(tag=content.tag))
        presentation = content.find("office:body/office:presentation", NS)
        if presentation is None:
            raise MalformedDocumentError(self.path, detail=ERR_NO_PRESENTATION)
        self._read_styles()
        self._read_named_styles()
        self._read_meta()
        self.styles.load(content.find("office:automatic-styles", NS))
        for page in presentation.iterfind("draw:page", NS):
            self.document.slides.append(self._slide(page))
        return self.document


def read_odp(path: str | Path) -> Document:
    """Decode the ODP package at ``path``.

    Raises:
        MalformedContainerError: ``path`` is missing or not a zip archive.
        MalformedDocumentError: The package lacks a usable ``content.xml``.
    """
    source = Path(path)
    logger.info("Reading ODP %s", source)
    try:
        archive = zipfile.ZipFile(source)
    except (OSError, zipfile.BadZipFile) as exc:
        raise MalformedContainerError(source, detail=str(exc)) from exc
    with archive:
        document = _OdpReader(source, archive).read()
    logger.debug("Read %d slides from %s", len(document.slides), source)
    return document


__all__ = ["read_odp"]
