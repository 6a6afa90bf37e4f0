from __future__ import annotations

import fitz  # type: ignore
import pytest

from conftest import RED, png_bytes
from slide_toolbox.errors import EncodeError
from slide_toolbox.formats import PdfPageSurface, export_pdf
from slide_toolbox.model import (
    Color,
    Document,
    ImageElement,
    Rect,
    ScaleMode,
    ShapeElement,
    Size,
    Slide,
    TextElement,
)
from slide_toolbox.render import render_document_slide


def test_one_page_per_slide(two_slide_document, tmp_path):
    path = export_pdf(two_slide_document, tmp_path / "deck.pdf")
    with fitz.open(path) as pdf:
        assert pdf.page_count == 2
        assert pdf[0].rect.width == pytest.approx(960)
        assert pdf[0].rect.height == pytest.approx(540)
        assert pdf[1].rect.width == pytest.approx(720)
        assert "Hello" in pdf[0].get_text()


def test_metadata_is_stamped(sample_document, tmp_path):
    path = export_pdf(sample_document, tmp_path / "deck.pdf")
    with fitz.open(path) as pdf:
        assert pdf.metadata["title"] == "Sample"
        assert pdf.metadata["author"] == "Tester"


def test_shapes_are_painted(sample_document, tmp_path):
    path = export_pdf(sample_document, tmp_path / "deck.pdf")
    with fitz.open(path) as pdf:
        drawings = pdf[0].get_drawings()
    fills = [d.get("fill") for d in drawings]
    assert (1.0, 0.0, 0.0) in fills


def test_zero_slides_rejected(tmp_path):
    target = tmp_path / "empty.pdf"
    with pytest.raises(EncodeError, match="no slides"):
        export_pdf(Document.empty(), target)
    assert not target.exists()


def test_images_are_embedded(tmp_path):
    doc = Document.empty(slide_size=Size(200, 100))
    doc.add_slide()
    key = doc.add_image(png_bytes((20, 10), (0, 0, 255)))
    doc.add_element(0, ImageElement(bounds=Rect(10, 10, 50, 50), image_key=key))
    doc.add_element(
        0, ImageElement(bounds=Rect(60, 10, 50, 50), image_key=key, scale_mode=ScaleMode.FILL)
    )
    doc.add_element(0, ImageElement(bounds=Rect(120, 10, 40, 40), image_key="gone"))
    path = export_pdf(doc, tmp_path / "images.pdf")
    with fitz.open(path) as pdf:
        assert len(pdf[0].get_images()) >= 1


def test_pdf_surface_draws_on_page(sample_document):
    with fitz.open() as pdf:
        page = pdf.new_page(width=960, height=540)
        surface = PdfPageSurface(page)
        render_document_slide(sample_document, 0, 1.0, surface)
        surface.finish()
        assert "Hello" in page.get_text()


def test_unwritable_target(sample_document, tmp_path):
    with pytest.raises(EncodeError):
        export_pdf(sample_document, tmp_path / "missing" / "deck.pdf")


def test_slides_keep_their_own_size(tmp_path):
    doc = Document.empty()
    doc.add_slide(slide=Slide(size=Size(300, 600)))
    with fitz.open(export_pdf(doc, tmp_path / "tall.pdf")) as pdf:
        assert pdf[0].rect.height == pytest.approx(600)


GREEN_SVG = (
    b'<svg xmlns="http://www.w3.org/2000/svg" width="40" height="20">'
    b'<rect width="40" height="20" fill="#00ff00"/></svg>'
)


def _fills(path) -> list[tuple[tuple[float, ...], fitz.Rect]]:
    with fitz.open(path) as pdf:
        return [(d["fill"], d["rect"]) for d in pdf[0].get_drawings() if d.get("fill")]


def test_svg_images_stay_vector(tmp_path):
    doc = Document.empty(slide_size=Size(200, 100))
    doc.add_slide()
    key = doc.add_image(GREEN_SVG)
    doc.add_element(0, ImageElement(bounds=Rect(10, 10, 80, 40), image_key=key))
    path = export_pdf(doc, tmp_path / "vector.pdf")
    with fitz.open(path) as pdf:
        assert pdf[0].get_images() == []
    green = [rect for fill, rect in _fills(path) if fill == pytest.approx((0.0, 1.0, 0.0))]
    assert green
    assert tuple(green[0]) == pytest.approx((10, 10, 90, 50), abs=0.5)


def test_text_fill_is_painted_behind_text(tmp_path):
    doc = Document.empty(slide_size=Size(300, 100))
    doc.add_slide()
    text = TextElement.from_text("Boxed", Rect(20, 20, 200, 40))
    text.fill = Color(255, 255, 0)
    doc.add_element(0, text)
    path = export_pdf(doc, tmp_path / "boxed.pdf")
    yellow = [rect for fill, rect in _fills(path) if fill == pytest.approx((1.0, 1.0, 0.0))]
    assert len(yellow) == 1
    assert tuple(yellow[0]) == pytest.approx((20, 20, 220, 60), abs=0.5)
    with fitz.open(path) as pdf:
        assert "Boxed" in pdf[0].get_text()


def test_rotated_shape_is_turned_about_its_centre(tmp_path):
    doc = Document.empty(slide_size=Size(300, 300))
    doc.add_slide()
    doc.add_element(0, ShapeElement(bounds=Rect(100, 100, 100, 20), fill=RED, rotation=90.0))
    path = export_pdf(doc, tmp_path / "rotated.pdf")
    red = [rect for fill, rect in _fills(path) if fill == pytest.approx((1.0, 0.0, 0.0))]
    assert len(red) == 1
    assert tuple(red[0]) == pytest.approx((140, 60, 160, 160), abs=0.5)


def test_rotated_text_keeps_its_words(tmp_path):
    doc = Document.empty(slide_size=Size(300, 300))
    doc.add_slide()
    text = TextElement.from_text("Sideways", Rect(50, 100, 200, 40))
    text.rotation = 45.0
    doc.add_element(0, text)
    with fitz.open(export_pdf(doc, tmp_path / "sideways.pdf")) as pdf:
        assert "Sideways" in pdf[0].get_text()
