"""Built-in document templates.

Templates are JSON files shipped with the package. Geometry is given in
points for a 960x540 slide and scaled to the requested slide size.
"""

from __future__ import annotations

import json
from enum import Enum
from importlib import resources
from typing import Any

from slide_toolbox.model.elements import (
    Element,
    ShapeElement,
    ShapeKind,
    TextElement,
    apply_style,
)
from slide_toolbox.model.geometry import DEFAULT_SLIDE_SIZE, Rect, Size
from slide_toolbox.model.slide import Slide
from slide_toolbox.model.style import Alignment, Color, FontStyle, Stroke, Style

ERR_UNKNOWN_TEMPLATE = "Unknown template: {kind}"
ERR_BAD_TEMPLATE = "Template {name} is malformed: {detail}"


class TemplateKind(str, Enum):
    BLANK = "blank"
    TITLE_CONTENT = "title-content"
    PHOTO_ALBUM = "photo-album"


def _coerce_kind(kind: TemplateKind | str) -> TemplateKind:
    if isinstance(kind, TemplateKind):
        return kind
    key = str(kind).strip().lower().replace("_", "-")
    try:
        return TemplateKind(key)
    except ValueError as exc:
        raise ValueError(ERR_UNKNOWN_TEMPLATE.format(kind=kind)) from exc


def load_template(kind: TemplateKind | str) -> dict[str, Any]:
    """Return the raw JSON definition of ``kind``."""
    name = _coerce_kind(kind).value
    text = resources.files(__name__).joinpath(f"{name}.json").read_text(encoding="utf-8")
    return json.loads(text)


def _style_from_json(data: dict[str, Any]) -> Style:
    font = data.get("font")
    stroke = data.get("stroke")
    alignment = data.get("alignment")
    return Style(
        name=data["name"],
        fill=Color.parse(data.get("fill")),
        stroke=(
            Stroke(Color.from_hex(stroke["color"]), float(stroke.get("width", 1)))
            if stroke
            else None
        ),
        font=(
            FontStyle(
                family=font.get("family", "Sans"),
                size=float(font.get("size", 24)),
                bold=bool(font.get("bold", False)),
                italic=bool(font.get("italic", False)),
                color=Color.parse(font.get("color")) or FontStyle().color,
            )
            if font
            else None
        ),
        alignment=Alignment(alignment) if alignment else None,
    )


def _element_from_json(data: dict[str, Any], sx: float, sy: float) -> Element:
    x, y, w, h = (float(v) for v in data["bounds"])
    bounds = Rect(x * sx, y * sy, w * sx, h * sy)
    match data["type"]:
        case "text":
            return TextElement.from_text(data.get("text", ""), bounds)
        case "shape":
            return ShapeElement(bounds=bounds, kind=ShapeKind(data.get("kind", "rect")))
    raise ValueError(data["type"])


def build_template(
    kind: TemplateKind | str, slide_size: Size = DEFAULT_SLIDE_SIZE
) -> tuple[dict[str, Style], list[Slide]]:
    """Return the styles and slides of template ``kind`` sized to ``slide_size``."""
    data = load_template(kind)
    sx = slide_size.width / DEFAULT_SLIDE_SIZE.width
    sy = slide_size.height / DEFAULT_SLIDE_SIZE.height
    try:
        styles = {style.name: style for style in map(_style_from_json, data["styles"])}
        slides: list[Slide] = []
        for slide_data in data["slides"]:
            elements: list[Element] = []
            for element_data in slide_data["elements"]:
                element = _element_from_json(element_data, sx, sy)
                style_name = element_data.get("style")
                if style_name:
                    element = apply_style(element, styles[style_name])
                elements.append(element)
            slides.append(
                Slide(
                    elements=elements,
                    size=slide_size,
                    background=Color.parse(slide_data.get("background")),
                )
            )
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError(ERR_BAD_TEMPLATE.format(name=data.get("name"), detail=exc)) from exc
    return styles, slides


__all__ = ["TemplateKind", "build_template", "load_template"]
