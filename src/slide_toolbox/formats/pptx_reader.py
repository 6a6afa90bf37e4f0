"""Read Office Open XML presentations (``.pptx``) into a :class:`Document`.

python-pptx opens the package and resolves parts and relationships. The
shape trees are then walked with lxml so that properties a slide inherits
from its layout, master, theme and presentation defaults can be flattened
onto every element; the model has no notion of inheritance.

Text properties are looked up nearest first:

1. the run's ``a:rPr``
2. the paragraph's ``a:pPr/a:defRPr``
3. the shape's ``a:lstStyle``
4. the matching layout placeholder's ``a:lstStyle``
5. the matching master placeholder's ``a:lstStyle``
6. the master ``p:txStyles`` entry for the placeholder type
7. the presentation ``p:defaultTextStyle``
8. built-in defaults
"""

from __future__ import annotations

import colorsys
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from lxml import etree
from pptx import Presentation
from pptx.exc import PackageNotFoundError
from pptx.opc.constants import RELATIONSHIP_TYPE as RT

from slide_toolbox.config import load_config
from slide_toolbox.errors import (
    MalformedContainerError,
    MalformedDocumentError,
    UnsupportedFeatureError,
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
    validate_element,
)
from slide_toolbox.model.geometry import Rect, Size
from slide_toolbox.model.images import MIME_PNG, normalize_mime
from slide_toolbox.model.slide import Slide
from slide_toolbox.model.style import (
    BLACK,
    DEFAULT_FONT_FAMILY,
    WHITE,
    Alignment,
    Color,
    FontStyle,
    Stroke,
)
from slide_toolbox.units import Unit, to_canonical
from slide_toolbox.utils import logger

if TYPE_CHECKING:
    from pptx.parts.slide import SlidePart
    from pptx.presentation import Presentation as PptxPresentation
    from pptx.slide import Slide as PptxSlide
    from pptx.slide import SlideMaster

ERR_NOT_FOUND = "file not found"
ERR_NOT_ZIP = "not a zip archive"
ERR_NO_SHAPE_TREE = "slide {number} has no p:cSld/p:spTree"
ERR_NO_LAYOUT = "slide {number} has no slide layout or master: {detail}"

NS: dict[str, str] = {
    "a": "http://schemas.openxmlformats.org/drawingml/2006/main",
    "p": "http://schemas.openxmlformats.org/presentationml/2006/main",
    "r": "http://schemas.openxmlformats.org/officeDocument/2006/relationships",
}

DEFAULT_FONT_SIZE = 18.0
# 9525 EMU, the DrawingML hairline
DEFAULT_LINE_WIDTH = 0.75
# percentages in DrawingML are expressed in 1/1000 of a percent
PERCENT = 100_000
# angles are expressed in 1/60000 of a degree
DEGREE = 60_000

_ALIGNMENTS = {
    "l": Alignment.LEFT,
    "just": Alignment.LEFT,
    "dist": Alignment.LEFT,
    "ctr": Alignment.CENTER,
    "r": Alignment.RIGHT,
}
_GEOMETRY_KINDS = {
    "rect": ShapeKind.RECT,
    "roundRect": ShapeKind.RECT,
    "snip1Rect": ShapeKind.RECT,
    "snip2SameRect": ShapeKind.RECT,
    "round1Rect": ShapeKind.RECT,
    "round2SameRect": ShapeKind.RECT,
    "flowChartProcess": ShapeKind.RECT,
    "flowChartAlternateProcess": ShapeKind.RECT,
    "ellipse": ShapeKind.ELLIPSE,
    "flowChartConnector": ShapeKind.ELLIPSE,
    "line": ShapeKind.LINE,
    "straightConnector1": ShapeKind.LINE,
}
_TITLE_TYPES = {"title", "ctrTitle"}
_BODY_TYPES = {"body", "subTitle", "obj"}
_MASTER_TYPES = {"title", "body", "dt", "ftr", "sldNum"}
_DEFAULT_COLOR_MAP = {"bg1": "lt1", "tx1": "dk1", "bg2": "lt2", "tx2": "dk2"}
_PRESET_COLORS = {
    "black": BLACK,
    "white": WHITE,
    "red": Color(255, 0, 0),
    "green": Color(0, 128, 0),
    "blue": Color(0, 0, 255),
    "yellow": Color(255, 255, 0),
    "gray": Color(128, 128, 128),
}
_GRAPHIC_FEATURES = {
    "table": "table",
    "chart": "chart",
    "ole": "OLE object",
    "diagram": "SmartArt diagram",
}
_MEDIA_TAGS = ("a:videoFile", "a:audioFile", "a:quickTimeFile")


def _qn(name: str) -> str:
    prefix, _, local = name.partition(":")
    return f"{{{NS[prefix]}}}{local}"


def _local(element: etree._Element) -> str:
    return etree.QName(element).localname


def _emu(value: str | None, default: float = 0.0) -> float:
    if value is None:
        return default
    try:
        return to_canonical(int(value), Unit.EMU)
    except ValueError:
        return default


def _flag(value: str | None) -> bool | None:
    if value is None:
        return None
    return value in ("1", "true", "on")


def _percent(element: etree._Element) -> float:
    try:
        return int(element.get("val", str(PERCENT))) / PERCENT
    except ValueError:
        return 1.0


def _percent_of(element: etree._Element, attr: str) -> float:
    try:
        return int(element.get(attr, "0")) / PERCENT
    except ValueError:
        return 0.0


def _channel(value: float) -> int:
    return max(0, min(255, round(value)))


def _apply_modifiers(color: Color, element: etree._Element) -> Color:
    """Apply ``a:alpha``, ``a:lumMod``/``a:lumOff``, ``a:tint`` and ``a:shade``."""
    r, g, b, a = color.as_tuple()
    lum_mod, lum_off = 1.0, 0.0
    for modifier in element:
        if not isinstance(modifier.tag, str):
            continue
        value = _percent(modifier)
        match _local(modifier):
            case "alpha":
                a = _channel(255 * value)
            case "lumMod":
                lum_mod = value
            case "lumOff":
                lum_off = value
            case "shade":
                r, g, b = (_channel(c * value) for c in (r, g, b))
            case "tint":
                r, g, b = (_channel(c + (255 - c) * (1 - value)) for c in (r, g, b))
    if lum_mod != 1.0 or lum_off:
        hue, lum, sat = colorsys.rgb_to_hls(r / 255, g / 255, b / 255)
        lum = max(0.0, min(1.0, lum * lum_mod + lum_off))
        r, g, b = (_channel(c * 255) for c in colorsys.hls_to_rgb(hue, lum, sat))
    return Color(r, g, b, a)


@dataclass(slots=True)
class _Theme:
    colors: dict[str, Color] = field(default_factory=dict)
    major_font: str | None = None
    minor_font: str | None = None
    line_widths: list[float] = field(default_factory=list)

    @classmethod
    def parse(cls, blob: bytes | None) -> _Theme:
        theme = cls()
        if not blob:
            return theme
        try:
            root = etree.fromstring(blob, etree.XMLParser(resolve_entities=False))
        except etree.XMLSyntaxError as exc:
            logger.debug("ignoring unreadable theme: %s", exc)
            return theme
        scheme = root.find("a:themeElements/a:clrScheme", NS)
        if scheme is not None:
            for entry in scheme:
                if not isinstance(entry.tag, str):
                    continue
                for value in entry:
                    color = None
                    match _local(value):
                        case "srgbClr":
                            color = Color.parse(value.get("val"))
                        case "sysClr":
                            color = Color.parse(value.get("lastClr"))
                    if color is not None:
                        theme.colors[_local(entry)] = color
                        break
        fonts = root.find("a:themeElements/a:fontScheme", NS)
        if fonts is not None:
            minor = fonts.find("a:minorFont/a:latin", NS)
            theme.minor_font = minor.get("typeface") if minor is not None else None
            major = fonts.find("a:majorFont/a:latin", NS)
            theme.major_font = major.get("typeface") if major is not None else None
        for line in root.iterfind("a:themeElements/a:fmtScheme/a:lnStyleLst/a:ln", NS):
            theme.line_widths.append(_emu(line.get("w"), DEFAULT_LINE_WIDTH))
        return theme


@dataclass(slots=True)
class _Context:
    """Per-slide lookup state: the inheritance trees and the master's theme."""

    slide: etree._Element
    layout: etree._Element
    master: etree._Element
    part: SlidePart
    theme: _Theme
    color_map: dict[str, str]

    def color(self, parent: etree._Element | None) -> Color | None:
        """Resolve the first DrawingML color child of ``parent``."""
        if parent is None:
            return None
        for child in parent:
            if not isinstance(child.tag, str):
                continue
            base: Color | None
            match _local(child):
                case "srgbClr":
                    base = Color.parse(child.get("val"))
                case "sysClr":
                    base = Color.parse(child.get("lastClr"))
                case "schemeClr":
                    name = child.get("val", "")
                    base = self.theme.colors.get(self.color_map.get(name, name))
                case "prstClr":
                    base = _PRESET_COLORS.get(child.get("val", ""))
                case "scrgbClr":
                    base = Color(
                        *(_channel(255 * _percent_of(child, attr)) for attr in ("r", "g", "b"))
                    )
                case _:
                    continue
            return None if base is None else _apply_modifiers(base, child)
        return None

    def fill(self, fill: etree._Element) -> Color | None:
        """Return the color painted by a fill element; ``None`` for no paint."""
        match _local(fill):
            case "solidFill":
                return self.color(fill)
            case "gradFill":
                stop = fill.find("a:gsLst/a:gs", NS)
                return self.color(stop)
            case "pattFill":
                return self.color(fill.find("a:fgClr", NS))
            case "blipFill":
                _drop("picture fill", "approximated as no fill")
        return None


_FILL_NAMES = ("noFill", "solidFill", "gradFill", "blipFill", "pattFill", "grpFill")
_FILL_TAGS = tuple(_qn(f"a:{name}") for name in _FILL_NAMES)


def _fill_element(props: etree._Element | None) -> etree._Element | None:
    if props is None:
        return None
    for child in props:
        if child.tag in _FILL_TAGS:
            return child
    return None


def _drop(feature: str, detail: str | None = None) -> None:
    logger.debug("%s", UnsupportedFeatureError(feature, detail=detail))


def _placeholder(shape: etree._Element) -> tuple[str, int | None] | None:
    ph = shape.find("*/p:nvPr/p:ph", NS)
    if ph is None:
        return None
    idx = ph.get("idx")
    return ph.get("type", "obj"), int(idx) if idx and idx.isdigit() else None


def _find_placeholder(
    tree: etree._Element, ph_type: str, idx: int | None, *, by_idx: bool
) -> etree._Element | None:
    candidates = [
        (shape, key)
        for shape in tree.iterfind("p:cSld/p:spTree/*", NS)
        if (key := _placeholder(shape)) is not None
    ]
    if by_idx and idx is not None:
        for shape, (_, other_idx) in candidates:
            if other_idx == idx:
                return shape
    for shape, (other_type, _) in candidates:
        if other_type == ph_type:
            return shape
    return None


@dataclass(frozen=True, slots=True)
class _Transform:
    """Map group child coordinates to slide coordinates."""

    sx: float = 1.0
    sy: float = 1.0
    dx: float = 0.0
    dy: float = 0.0

    def rect(self, x: float, y: float, width: float, height: float) -> Rect:
        return Rect(x * self.sx + self.dx, y * self.sy + self.dy, width * self.sx, height * self.sy)

    def group(self, xfrm: etree._Element | None) -> _Transform:
        if xfrm is None:
            return self
        off = xfrm.find("a:off", NS)
        ext = xfrm.find("a:ext", NS)
        ch_off = xfrm.find("a:chOff", NS)
        ch_ext = xfrm.find("a:chExt", NS)
        if off is None or ext is None or ch_off is None or ch_ext is None:
            return self
        ch_cx, ch_cy = _emu(ch_ext.get("cx")), _emu(ch_ext.get("cy"))
        sx = _emu(ext.get("cx")) / ch_cx if ch_cx else 1.0
        sy = _emu(ext.get("cy")) / ch_cy if ch_cy else 1.0
        dx = _emu(off.get("x")) - _emu(ch_off.get("x")) * sx
        dy = _emu(off.get("y")) - _emu(ch_off.get("y")) * sy
        return _Transform(
            self.sx * sx, self.sy * sy, self.sx * dx + self.dx, self.sy * dy + self.dy
        )


class _PptxReader:
    def __init__(self, path: Path, prs: PptxPresentation) -> None:
        self.path = path
        self.prs = prs
        self.document = Document()
        self.themes: dict[str, _Theme] = {}
        self.default_text_style = prs.part._element.find("p:defaultTextStyle", NS)

    # -- inheritance --------------------------------------------------

    def _theme(self, master: SlideMaster) -> _Theme:
        partname = str(master.part.partname)
        if partname not in self.themes:
            try:
                blob = master.part.part_related_by(RT.THEME).blob
            except KeyError:
                logger.debug("slide master %s has no theme", partname)
                blob = None
            self.themes[partname] = _Theme.parse(blob)
        return self.themes[partname]

    @staticmethod
    def _color_map(master: etree._Element) -> dict[str, str]:
        mapping = dict(_DEFAULT_COLOR_MAP)
        clr_map = master.find("p:clrMap", NS)
        if clr_map is not None:
            mapping.update(clr_map.attrib)
        return mapping

    def _chain(
        self, shape: etree._Element, ctx: _Context
    ) -> tuple[list[etree._Element], str | None]:
        """Return the shape followed by the placeholders it inherits from."""
        key = _placeholder(shape)
        if key is None:
            return [shape], None
        ph_type, idx = key
        chain = [shape]
        layout_ph = _find_placeholder(ctx.layout, ph_type, idx, by_idx=True)
        if layout_ph is not None:
            chain.append(layout_ph)
            layout_key = _placeholder(layout_ph)
            if layout_key is not None:
                ph_type = layout_key[0]
        master_type = {"ctrTitle": "title"}.get(ph_type, ph_type)
        if master_type not in _MASTER_TYPES:
            master_type = "body"
        master_ph = _find_placeholder(ctx.master, master_type, None, by_idx=False)
        if master_ph is not None:
            chain.append(master_ph)
        return chain, ph_type

    @staticmethod
    def _props(shape: etree._Element) -> etree._Element | None:
        return shape.find("p:spPr", NS)

    def _xfrm(self, chain: list[etree._Element]) -> etree._Element | None:
        for shape in chain:
            props = self._props(shape)
            xfrm = props.find("a:xfrm", NS) if props is not None else None
            if xfrm is not None and xfrm.find("a:off", NS) is not None:
                return xfrm
        return None

    def _bounds(self, chain: list[etree._Element], transform: _Transform) -> Rect | None:
        xfrm = self._xfrm(chain)
        if xfrm is None:
            return None
        off = xfrm.find("a:off", NS)
        ext = xfrm.find("a:ext", NS)
        width = _emu(ext.get("cx")) if ext is not None else 0.0
        height = _emu(ext.get("cy")) if ext is not None else 0.0
        return transform.rect(_emu(off.get("x")), _emu(off.get("y")), width, height)

    def _rotation(self, chain: list[etree._Element]) -> float:
        """Return the clockwise rotation in degrees from the effective ``a:xfrm``."""
        xfrm = self._xfrm(chain)
        raw = xfrm.get("rot") if xfrm is not None else None
        if not raw:
            return 0.0
        try:
            return int(raw) / DEGREE % 360
        except ValueError:
            logger.debug("ignoring malformed rotation %r", raw)
            return 0.0

    def _geometry(self, chain: list[etree._Element]) -> str:
        for shape in chain:
            props = self._props(shape)
            if props is None:
                continue
            preset = props.find("a:prstGeom", NS)
            if preset is not None:
                return preset.get("prst", "rect")
            if props.find("a:custGeom", NS) is not None:
                return "custom"
        return "rect"

    def _shape_fill(self, chain: list[etree._Element], ctx: _Context) -> Color | None:
        for shape in chain:
            fill = _fill_element(self._props(shape))
            if fill is not None:
                return ctx.fill(fill)
        fill_ref = chain[0].find("p:style/a:fillRef", NS)
        if fill_ref is not None and fill_ref.get("idx", "0") != "0":
            return ctx.color(fill_ref)
        return None

    def _shape_stroke(self, chain: list[etree._Element], ctx: _Context) -> Stroke | None:
        line_ref = chain[0].find("p:style/a:lnRef", NS)
        ref_color: Color | None = None
        ref_width = DEFAULT_LINE_WIDTH
        if line_ref is not None and line_ref.get("idx", "0") != "0":
            ref_color = ctx.color(line_ref)
            index = int(line_ref.get("idx", "1")) - 1
            if 0 <= index < len(ctx.theme.line_widths):
                ref_width = ctx.theme.line_widths[index]
        for shape in chain:
            props = self._props(shape)
            line = props.find("a:ln", NS) if props is not None else None
            if line is None:
                continue
            fill = _fill_element(line)
            color = ctx.fill(fill) if fill is not None else ref_color
            if color is None:
                return None
            return Stroke(color, _emu(line.get("w"), ref_width))
        if ref_color is None:
            return None
        return Stroke(ref_color, ref_width)

    # -- text ---------------------------------------------------------

    def _list_styles(
        self, chain: list[etree._Element], ph_type: str | None, ctx: _Context
    ) -> list[etree._Element]:
        styles = [
            style
            for shape in chain
            if (style := shape.find("p:txBody/a:lstStyle", NS)) is not None
        ]
        if ph_type in _TITLE_TYPES:
            name = "p:titleStyle"
        elif ph_type in _BODY_TYPES:
            name = "p:bodyStyle"
        else:
            name = "p:otherStyle"
        master_style = ctx.master.find(f"p:txStyles/{name}", NS)
        if master_style is not None:
            styles.append(master_style)
        if self.default_text_style is not None:
            styles.append(self.default_text_style)
        return styles

    def _typeface(self, value: str, ctx: _Context) -> str | None:
        if value.startswith("+mj"):
            return ctx.theme.major_font
        if value.startswith("+mn"):
            return ctx.theme.minor_font
        return value or None

    def _font(self, props: list[etree._Element], ctx: _Context) -> FontStyle:
        size = bold = italic = color = family = None
        for rpr in props:
            if size is None and (sz := rpr.get("sz")) is not None and sz.isdigit():
                size = int(sz) / 100
            if bold is None:
                bold = _flag(rpr.get("b"))
            if italic is None:
                italic = _flag(rpr.get("i"))
            if color is None:
                fill = _fill_element(rpr)
                if fill is not None and _local(fill) != "noFill":
                    color = ctx.fill(fill)
            if family is None:
                latin = rpr.find("a:latin", NS)
                if latin is not None:
                    family = self._typeface(latin.get("typeface", ""), ctx)
        return FontStyle(
            family=family or ctx.theme.minor_font or DEFAULT_FONT_FAMILY,
            size=size or DEFAULT_FONT_SIZE,
            bold=bool(bold),
            italic=bool(italic),
            color=color or BLACK,
        )

    def _paragraphs(
        self, shape: etree._Element, list_styles: list[etree._Element], ctx: _Context
    ) -> list[Paragraph]:
        body = shape.find("p:txBody", NS)
        if body is None:
            return []
        paragraphs: list[Paragraph] = []
        for p in body.iterfind("a:p", NS):
            ppr = p.find("a:pPr", NS)
            lvl = ppr.get("lvl", "0") if ppr is not None else "0"
            level = int(lvl) if lvl.isdigit() else 0
            levels = [ppr] if ppr is not None else []
            levels.extend(
                level_props
                for style in list_styles
                if (level_props := style.find(f"a:lvl{level + 1}pPr", NS)) is not None
            )
            defaults = [
                defrpr for props in levels if (defrpr := props.find("a:defRPr", NS)) is not None
            ]
            alignments = [props.get("algn") for props in levels]
            alignment = next(
                (_ALIGNMENTS[algn] for algn in alignments if algn in _ALIGNMENTS), Alignment.LEFT
            )
            runs: list[TextRun] = []
            for child in p:
                if not isinstance(child.tag, str):
                    continue
                match _local(child):
                    case "r" | "fld":
                        text = child.findtext("a:t", "", NS)
                    case "br":
                        text = "\n"
                    case _:
                        continue
                rpr = child.find("a:rPr", NS)
                font = self._font(([rpr] if rpr is not None else []) + defaults, ctx)
                if not text:
                    continue
                if runs and runs[-1].font == font:
                    runs[-1] = TextRun(runs[-1].text + text, font)
                else:
                    runs.append(TextRun(text, font))
            paragraphs.append(Paragraph(tuple(runs), alignment))
        return paragraphs

    # -- shapes -------------------------------------------------------

    def _sp(self, shape: etree._Element, transform: _Transform, ctx: _Context) -> list[Element]:
        chain, ph_type = self._chain(shape, ctx)
        bounds = self._bounds(chain, transform)
        if bounds is None:
            name = shape.find("*/p:cNvPr", NS)
            _drop("shape without geometry", name.get("name") if name is not None else None)
            return []
        paragraphs = self._paragraphs(shape, self._list_styles(chain, ph_type, ctx), ctx)
        has_text = any(paragraph.text.strip() for paragraph in paragraphs)
        if ph_type is not None and not has_text:
            return []
        geometry = self._geometry(chain)
        kind = _GEOMETRY_KINDS.get(geometry)
        fill = self._shape_fill(chain, ctx)
        stroke = self._shape_stroke(chain, ctx)
        rotation = self._rotation(chain)
        if kind is None and fill is not None:
            _drop(f"{geometry} geometry", "approximated as rectangle")
            kind = ShapeKind.RECT
        elif kind is None:
            _drop(f"{geometry} geometry", "shape has no fill")
        if has_text and kind is ShapeKind.RECT and stroke is None:
            return [
                TextElement(
                    bounds=bounds, paragraphs=tuple(paragraphs), fill=fill, rotation=rotation
                )
            ]
        elements: list[Element] = []
        if kind is not None and (fill is not None or stroke is not None):
            shape_bounds = self._line_bounds(chain, bounds) if kind is ShapeKind.LINE else bounds
            elements.append(
                ShapeElement(
                    bounds=shape_bounds, kind=kind, fill=fill, stroke=stroke, rotation=rotation
                )
            )
        if has_text:
            elements.append(
                TextElement(bounds=bounds, paragraphs=tuple(paragraphs), rotation=rotation)
            )
        return elements

    def _line_bounds(self, chain: list[etree._Element], bounds: Rect) -> Rect:
        """Return the bounds running from the line's start to its end."""
        xfrm = self._xfrm(chain)
        x, y, width, height = bounds.as_tuple()
        if xfrm is not None and _flag(xfrm.get("flipH")):
            x, width = x + width, -width
        if xfrm is not None and _flag(xfrm.get("flipV")):
            y, height = y + height, -height
        return Rect(x, y, width, height)

    def _connector(
        self, shape: etree._Element, transform: _Transform, ctx: _Context
    ) -> list[Element]:
        bounds = self._bounds([shape], transform)
        if bounds is None:
            return []
        geometry = self._geometry([shape])
        if _GEOMETRY_KINDS.get(geometry) is not ShapeKind.LINE:
            _drop(f"{geometry} connector", "approximated as straight line")
        stroke = self._shape_stroke([shape], ctx)
        if stroke is None:
            return []
        return [
            ShapeElement(
                bounds=self._line_bounds([shape], bounds),
                kind=ShapeKind.LINE,
                stroke=stroke,
                rotation=self._rotation([shape]),
            )
        ]

    def _picture(
        self, shape: etree._Element, transform: _Transform, ctx: _Context
    ) -> list[Element]:
        if any(shape.find(f"p:nvPicPr/p:nvPr/{tag}", NS) is not None for tag in _MEDIA_TAGS):
            _drop("media object")
            return []
        chain = [shape]
        if _placeholder(shape) is not None:
            chain, _ = self._chain(shape, ctx)
        bounds = self._bounds(chain, transform)
        if bounds is None:
            return []
        if shape.find("p:blipFill/a:srcRect", NS) is not None:
            _drop("image cropping")
        blip = shape.find("p:blipFill/a:blip", NS)
        rel_id = blip.get(_qn("r:embed")) if blip is not None else None
        key: str | None = None
        mime = MIME_PNG
        if rel_id:
            try:
                image_part = ctx.part.related_part(rel_id)
                mime = normalize_mime(image_part.content_type)
                key = self.document.add_image(image_part.blob, mime)
            except KeyError:
                logger.warning("Image relationship %s is missing in %s", rel_id, self.path)
            except ValueError as exc:
                logger.warning("Skipping image in %s: %s", self.path, exc)
                mime = MIME_PNG
        else:
            logger.warning("Picture without embedded image in %s", self.path)
        return [
            ImageElement(
                bounds=bounds,
                image_key=key,
                mime=mime,
                scale_mode=ScaleMode.STRETCH,
                rotation=self._rotation(chain),
            )
        ]

    def _shapes(
        self, tree: etree._Element, transform: _Transform, ctx: _Context
    ) -> list[Element]:
        elements: list[Element] = []
        for shape in tree:
            if not isinstance(shape.tag, str):
                continue
            match _local(shape):
                case "sp":
                    elements.extend(self._sp(shape, transform, ctx))
                case "cxnSp":
                    elements.extend(self._connector(shape, transform, ctx))
                case "pic":
                    elements.extend(self._picture(shape, transform, ctx))
                case "grpSp":
                    xfrm = shape.find("p:grpSpPr/a:xfrm", NS)
                    if xfrm is not None and xfrm.get("rot", "0") != "0":
                        _drop("group rotation", "children keep their own rotation")
                    group = transform.group(xfrm)
                    elements.extend(self._shapes(shape, group, ctx))
                case "graphicFrame":
                    uri = shape.find("a:graphic/a:graphicData", NS)
                    kind = uri.get("uri", "") if uri is not None else ""
                    feature = next(
                        (name for token, name in _GRAPHIC_FEATURES.items() if token in kind),
                        "graphic frame",
                    )
                    _drop(feature)
                case "nvGrpSpPr" | "grpSpPr" | "extLst":
                    pass
                case other:
                    _drop(other)
        return elements

    def _background(self, ctx: _Context) -> Color:
        for tree in (ctx.slide, ctx.layout, ctx.master):
            bg = tree.find("p:cSld/p:bg", NS)
            if bg is None:
                continue
            ref = bg.find("p:bgRef", NS)
            if ref is not None:
                color = ctx.color(ref)
            else:
                fill = _fill_element(bg.find("p:bgPr", NS))
                color = ctx.fill(fill) if fill is not None else None
            if color is not None:
                return color
        return WHITE

    def _slide(self, slide: PptxSlide, size: Size, number: int) -> Slide:
        tree = slide._element.find("p:cSld/p:spTree", NS)
        if tree is None:
            raise MalformedDocumentError(self.path, detail=ERR_NO_SHAPE_TREE.format(number=number))
        try:
            layout = slide.slide_layout
            master = layout.slide_master
        except KeyError as exc:
            raise MalformedDocumentError(
                self.path, detail=ERR_NO_LAYOUT.format(number=number, detail=exc)
            ) from exc
        ctx = _Context(
            slide=slide._element,
            layout=layout._element,
            master=master._element,
            part=slide.part,
            theme=self._theme(master),
            color_map=self._color_map(master._element),
        )
        if slide.has_notes_slide:
            _drop("speaker notes")
        if slide._element.find("p:timing", NS) is not None:
            _drop("animations")
        elements: list[Element] = []
        for element in self._shapes(tree, _Transform(), ctx):
            try:
                validate_element(element)
            except (TypeError, ValueError) as exc:
                logger.debug("dropping invalid element %s: %s", element.id, exc)
                continue
            elements.append(element)
        return Slide(elements=elements, size=size, background=self._background(ctx))

    def read(self) -> Document:
        if self.prs.slide_width and self.prs.slide_height:
            size = Size(
                to_canonical(self.prs.slide_width, Unit.EMU),
                to_canonical(self.prs.slide_height, Unit.EMU),
            )
        else:
            size = Size(*load_config()["default_slide_size"])
        properties = self.prs.core_properties
        self.document.default_slide_size = size
        self.document.title = properties.title or ""
        self.document.metadata = Metadata(
            author=properties.author or "",
            created=properties.created,
            modified=properties.modified,
        )
        for number, slide in enumerate(self.prs.slides, start=1):
            self.document.slides.append(self._slide(slide, size, number))
        return self.document


def read_pptx(path: str | Path) -> Document:
    """Decode the PowerPoint package at ``path``.

    Raises:
        MalformedContainerError: ``path`` is missing or not a zip archive.
        MalformedDocumentError: python-pptx cannot open the package as a
            presentation.
    """
    source = Path(path)
    logger.info("Reading PPTX %s", source)
    if not source.is_file():
        raise MalformedContainerError(source, detail=ERR_NOT_FOUND)
    if not zipfile.is_zipfile(source):
        raise MalformedContainerError(source, detail=ERR_NOT_ZIP)
    try:
        prs = Presentation(str(source))
    except (
        PackageNotFoundError,
        KeyError,
        ValueError,
        zipfile.BadZipFile,
        etree.XMLSyntaxError,
    ) as exc:
        raise MalformedDocumentError(source, detail=str(exc) or type(exc).__name__) from exc
    document = _PptxReader(source, prs).read()
    logger.debug("Read %d slides from %s", len(document.slides), source)
    return document


__all__ = ["read_pptx"]
