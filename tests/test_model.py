from __future__ import annotations

import copy

import pytest

from conftest import RED, png_bytes
from slide_toolbox.errors import IndexOutOfRangeError, StyleNotFoundError
from slide_toolbox.model import (
    Alignment,
    Color,
    Document,
    FontStyle,
    ImageElement,
    Rect,
    ShapeElement,
    ShapeKind,
    Size,
    Slide,
    Stroke,
    Style,
    TextElement,
)


def _snapshot(doc: Document):
    return copy.deepcopy(doc.slides), dict(doc.styles), list(doc.assets)


def test_color_parsing():
    assert Color.from_hex("#ff8000") == Color(255, 128, 0)
    assert Color.from_hex("00ff00", alpha=10).a == 10
    assert Color.parse("nonsense") is None
    assert Color.parse(None) is None
    assert Color(1, 2, 3).to_hex() == "#010203"
    with pytest.raises(ValueError, match="Invalid color"):
        Color(256, 0, 0)
    with pytest.raises(ValueError, match="Invalid color"):
        Color.from_hex("#12345")


def test_rect_helpers():
    rect = Rect(10, 20, -4, -6)
    assert rect.normalized() == Rect(6, 14, 4, 6)
    assert Rect(0, 0, 10, 10).intersection(Rect(5, 5, 10, 10)) == Rect(5, 5, 5, 5)
    assert Rect(0, 0, 1, 1).intersection(Rect(2, 2, 1, 1)) is None
    assert Rect(1, 2, 3, 4).scaled(2) == Rect(2, 4, 6, 8)


def test_line_is_never_filled():
    line = ShapeElement(bounds=Rect(0, 0, -10, 5), kind=ShapeKind.LINE, fill=RED)
    assert line.fill is None


def test_add_slide_positions():
    doc = Document.empty()
    first = doc.add_slide()
    last = doc.add_slide()
    middle = doc.add_slide(1)
    assert doc.slides == [first, middle, last]
    assert first.size == doc.default_slide_size
    with pytest.raises(IndexOutOfRangeError):
        doc.add_slide(5)


def test_remove_and_move_slide():
    doc = Document.empty()
    slides = [doc.add_slide() for _ in range(3)]
    doc.move_slide(0, 2)
    assert doc.slides == [slides[1], slides[2], slides[0]]
    removed = doc.remove_slide(1)
    assert removed is slides[2]
    assert len(doc) == 2


def test_move_slide_out_of_range_leaves_document_unchanged():
    doc = Document.empty()
    slides = [doc.add_slide() for _ in range(2)]
    with pytest.raises(IndexOutOfRangeError, match="slide index 5"):
        doc.move_slide(0, 5)
    assert doc.slides == slides


def test_remove_slide_from_empty_document():
    doc = Document.empty()
    with pytest.raises(IndexOutOfRangeError, match="no slides"):
        doc.remove_slide(0)


def test_duplicate_slide_gets_fresh_ids(sample_document):
    original = sample_document.slides[0]
    copy_ = sample_document.duplicate_slide(0)
    assert sample_document.slides[1] is copy_
    assert copy_.id != original.id
    assert [e.id for e in copy_.elements] != [e.id for e in original.elements]
    assert [e.bounds for e in copy_.elements] == [e.bounds for e in original.elements]
    sample_document.update_element(1, copy_.elements[0].id, bounds=Rect(0, 0, 1, 1))
    assert original.elements[0].bounds == Rect(10, 10, 100, 50)


def test_add_element_z_order(sample_document):
    shape, text = sample_document.slides[0].elements
    back = sample_document.add_element(0, ShapeElement(bounds=Rect(0, 0, 5, 5)), index=0)
    assert sample_document.slides[0].elements == [back, shape, text]
    assert sample_document.slides[0].z_index(text.id) == 2


def test_add_element_rejects_duplicate_id(sample_document):
    shape = sample_document.slides[0].elements[0]
    before = _snapshot(sample_document)
    with pytest.raises(ValueError, match="already exists"):
        sample_document.add_element(0, ShapeElement(bounds=Rect(0, 0, 1, 1), id=shape.id))
    assert _snapshot(sample_document) == before


@pytest.mark.parametrize(
    "element",
    [
        ShapeElement(bounds=Rect(0, 0, -1, 5)),
        TextElement.from_text("x", Rect(0, 0, 10, 10), font=FontStyle(size=0)),
        ShapeElement(bounds=Rect(0, 0, 1, 1), stroke=Stroke(width=-1)),
    ],
)
def test_add_invalid_element_is_atomic(sample_document, element):
    before = _snapshot(sample_document)
    with pytest.raises(ValueError):
        sample_document.add_element(0, element)
    assert _snapshot(sample_document) == before


def test_add_element_rejects_foreign_type(sample_document):
    with pytest.raises(TypeError):
        sample_document.add_element(0, "not an element")


def test_add_element_with_unknown_style(sample_document):
    element = ShapeElement(bounds=Rect(0, 0, 1, 1), style_name="missing")
    with pytest.raises(StyleNotFoundError, match="missing"):
        sample_document.add_element(0, element)
    assert len(sample_document.slides[0].elements) == 2


def test_update_element(sample_document):
    shape = sample_document.slides[0].elements[0]
    updated = sample_document.update_element(0, shape.id, fill=Color(0, 255, 0))
    assert updated.fill == Color(0, 255, 0)
    assert sample_document.find_element(0, shape.id) is updated


def test_update_element_validates_before_mutating(sample_document):
    shape = sample_document.slides[0].elements[0]
    before = _snapshot(sample_document)
    with pytest.raises(ValueError):
        sample_document.update_element(0, shape.id, bounds=Rect(0, 0, -5, 5))
    with pytest.raises(ValueError, match="cannot be changed"):
        sample_document.update_element(0, shape.id, id="other")
    with pytest.raises(IndexOutOfRangeError):
        sample_document.update_element(0, "nope", fill=None)
    assert _snapshot(sample_document) == before


def test_move_and_remove_element(sample_document):
    shape, text = sample_document.slides[0].elements
    sample_document.move_element(0, shape.id, 1)
    assert sample_document.slides[0].elements == [text, shape]
    with pytest.raises(IndexOutOfRangeError):
        sample_document.move_element(0, shape.id, 2)
    assert sample_document.remove_element(0, text.id) is text
    assert sample_document.slides[0].elements == [shape]


def test_set_style_reapplies_to_users(sample_document):
    style = Style("accent", fill=RED, stroke=Stroke(Color(0, 0, 0), 3.0))
    sample_document.set_style(style)
    shape = sample_document.slides[0].elements[0]
    sample_document.apply_style(0, shape.id, "accent")

    changed = Style("accent", fill=Color(0, 0, 255), stroke=None)
    assert sample_document.set_style(changed) == 1
    restyled = sample_document.slides[0].elements[0]
    assert restyled.fill == Color(0, 0, 255)
    assert restyled.stroke is None
    assert restyled.style_name == "accent"


def test_text_style_rewrites_runs(sample_document):
    font = FontStyle(family="Serif", size=40, bold=True)
    sample_document.set_style(Style("title", font=font, alignment=Alignment.CENTER))
    text = sample_document.slides[0].elements[1]
    styled = sample_document.apply_style(0, text.id, "title")
    assert styled.paragraphs[0].runs[0].font == font
    assert styled.paragraphs[0].alignment is Alignment.CENTER
    assert styled.text == "Hello"


def test_apply_unknown_style(sample_document):
    text = sample_document.slides[0].elements[1]
    with pytest.raises(StyleNotFoundError):
        sample_document.apply_style(0, text.id, "nope")


def test_remove_style_keeps_properties(sample_document):
    sample_document.set_style(Style("accent", fill=RED))
    shape = sample_document.slides[0].elements[0]
    sample_document.apply_style(0, shape.id, "accent")
    sample_document.remove_style("accent")
    kept = sample_document.slides[0].elements[0]
    assert kept.style_name is None
    assert kept.fill == RED
    assert "accent" not in sample_document.styles


def test_images_are_content_addressed():
    doc = Document.empty()
    data = png_bytes()
    first = doc.add_image(data)
    second = doc.add_image(bytes(data), "image/png")
    assert first == second
    assert len(doc.assets) == 1
    assert doc.assets.get(first).mime == "image/png"
    with pytest.raises(ValueError):
        doc.add_image(b"not an image")


def test_image_cache_decodes_once():
    doc = Document.empty()
    key = doc.add_image(png_bytes((8, 4)))
    decoded = doc.images.get(key)
    assert decoded.size == (8.0, 4.0)
    assert doc.images.get(key) is decoded


def test_iter_elements(sample_document):
    sample_document.add_slide(slide=Slide(size=Size(100, 100)))
    sample_document.add_element(1, ImageElement(bounds=Rect(0, 0, 10, 10)))
    indices = [index for index, _ in sample_document.iter_elements()]
    assert indices == [0, 0, 1]


def test_empty_document_uses_configured_slide_size(author_config):
    author_config.write_text('{"default_slide_size": [720, 405]}')
    doc = Document.empty()
    assert doc.default_slide_size == Size(720.0, 405.0)
    assert doc.slides == []


def test_line_defaults_to_a_stroke():
    assert ShapeElement(bounds=Rect(0, 0, 10, 0), kind=ShapeKind.LINE).stroke == Stroke()
    assert ShapeElement(bounds=Rect(0, 0, 10, 10)).stroke is None
    bare = ShapeElement(bounds=Rect(0, 0, 10, 0), kind=ShapeKind.LINE, stroke=None)
    assert bare.stroke is None


def test_rotated_corners():
    rect = Rect(0, 0, 20, 10)
    top_left, _, bottom_right, _ = rect.corners(90)
    # a quarter turn clockwise about (10, 5) moves the top-left corner to the top right
    assert (top_left.x, top_left.y) == pytest.approx((15, -5))
    assert (bottom_right.x, bottom_right.y) == pytest.approx((5, 15))
    assert rect.rotated_bounds(90).as_tuple() == pytest.approx((5, -5, 10, 20))
    assert rect.rotated_bounds(0) == rect


@pytest.mark.parametrize("rotation", [float("nan"), float("inf")])
def test_non_finite_rotation_is_rejected(sample_document, rotation):
    before = _snapshot(sample_document)
    with pytest.raises(ValueError, match="Rotation"):
        sample_document.add_element(0, ShapeElement(bounds=Rect(0, 0, 1, 1), rotation=rotation))
    assert _snapshot(sample_document) == before


def test_rotation_must_be_a_number(sample_document):
    shape = sample_document.slides[0].elements[0]
    with pytest.raises(TypeError, match="Rotation"):
        sample_document.update_element(0, shape.id, rotation="45")
    assert sample_document.update_element(0, shape.id, rotation=45).rotation == 45


@pytest.mark.parametrize(
    "style",
    [
        Style("accent", stroke=Stroke(RED, -1.0)),
        Style("accent", font=FontStyle(size=0)),
        Style("", fill=RED),
    ],
)
def test_set_style_rejects_invalid_style(sample_document, style):
    sample_document.set_style(Style("accent", fill=RED))
    shape = sample_document.slides[0].elements[0]
    sample_document.apply_style(0, shape.id, "accent")
    before = _snapshot(sample_document)
    with pytest.raises(ValueError):
        sample_document.set_style(style)
    assert _snapshot(sample_document) == before


def test_set_style_rejects_non_style(sample_document):
    with pytest.raises(TypeError, match="Expected a Style"):
        sample_document.set_style({"name": "accent"})


def test_apply_style_validates_stored_style(sample_document):
    sample_document.styles["broken"] = Style("broken", stroke=Stroke(RED, -2.0))
    shape = sample_document.slides[0].elements[0]
    before = _snapshot(sample_document)
    with pytest.raises(ValueError, match="Stroke width"):
        sample_document.apply_style(0, shape.id, "broken")
    assert _snapshot(sample_document) == before


def test_add_slide_rejects_duplicate_element_ids():
    doc = Document.empty()
    slide = Slide(
        elements=[
            ShapeElement(bounds=Rect(0, 0, 1, 1), id="same"),
            ShapeElement(bounds=Rect(2, 2, 1, 1), id="same"),
        ]
    )
    with pytest.raises(ValueError, match="already exists"):
        doc.add_slide(slide=slide)
    assert doc.slides == []


def test_add_slide_rejects_slide_already_present(sample_document):
    slide = sample_document.slides[0]
    with pytest.raises(ValueError, match="already part of the document"):
        sample_document.add_slide(slide=slide)
    assert len(sample_document.slides) == 1
