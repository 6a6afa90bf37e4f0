import io
import json
from pathlib import Path

import pytest
from lxml import etree
from PIL import Image
from pptx import Presentation
from pptx.dml.color import RGBColor
from pptx.enum.shapes import MSO_SHAPE
from pptx.oxml.ns import qn
from pptx.util import Pt

from slide_toolbox import config, utils
from slide_toolbox.model import (
    Color,
    Document,
    FontStyle,
    Rect,
    ShapeElement,
    Size,
    Slide,
    TextElement,
)

RED = Color(255, 0, 0)


def png_bytes(size: tuple[int, int] = (8, 4), color: tuple[int, int, int] = (0, 128, 255)) -> bytes:
    with io.BytesIO() as buf:
        Image.new("RGB", size, color=color).save(buf, format="PNG")
        return buf.getvalue()


@pytest.fixture(autouse=True)
def author_config(tmp_path, monkeypatch):
    path = tmp_path / "slide_toolbox_config.json"
    path.write_text(json.dumps({"author": "Tester", "email": "tester@example.com"}))
    monkeypatch.setattr(utils, "CONFIG_FILE", path)
    monkeypatch.setattr(config, "CONFIG_PATH", path)
    utils._load_author_info.cache_clear()
    yield path
    utils._load_author_info.cache_clear()


@pytest.fixture
def sample_document() -> Document:
    """A 960x540 slide with a red rectangle and a line of text."""
    doc = Document.empty(slide_size=Size(960, 540))
    doc.title = "Sample"
    doc.add_slide()
    doc.add_element(0, ShapeElement(bounds=Rect(10, 10, 100, 50), fill=RED))
    doc.add_element(
        0,
        TextElement.from_text("Hello", Rect(10, 70, 200, 40), font=FontStyle(size=24)),
    )
    return doc


@pytest.fixture
def two_slide_document(sample_document: Document) -> Document:
    sample_document.add_slide(slide=Slide(size=Size(720, 540)))
    return sample_document


@pytest.fixture
def png_file(tmp_path: Path) -> Path:
    path = tmp_path / "picture.png"
    path.write_bytes(png_bytes((40, 20), (0, 200, 0)))
    return path


def _inject_title_size(layout, size_hundredths: int) -> None:
    """Give the layout's title placeholder a level 1 font size."""
    title = next(ph for ph in layout.placeholders if ph.placeholder_format.idx == 0)
    tx_body = title._element.find(qn("p:txBody"))
    lst_style = tx_body.find(qn("a:lstStyle"))
    if lst_style is None:
        lst_style = etree.Element(qn("a:lstStyle"))
        tx_body.insert(1, lst_style)
    for child in list(lst_style):
        lst_style.remove(child)
    level = etree.SubElement(lst_style, qn("a:lvl1pPr"))
    etree.SubElement(level, qn("a:defRPr"), sz=str(size_hundredths))


@pytest.fixture
def inherited_pptx(tmp_path: Path) -> str:
    """A deck whose slide title takes its font size from the layout."""
    prs = Presentation()
    layout = prs.slide_layouts[0]
    _inject_title_size(layout, 5400)
    slide = prs.slides.add_slide(layout)
    slide.shapes.title.text = "Inherited"
    path = tmp_path / "inherited.pptx"
    prs.save(str(path))
    return str(path)


@pytest.fixture
def shapes_pptx(tmp_path: Path, png_file: Path) -> str:
    """A blank-layout deck with a rectangle, an ellipse, a text box and a picture."""
    prs = Presentation()
    slide = prs.slides.add_slide(prs.slide_layouts[6])

    rect = slide.shapes.add_shape(MSO_SHAPE.RECTANGLE, Pt(10), Pt(20), Pt(100), Pt(50))
    rect.fill.solid()
    rect.fill.fore_color.rgb = RGBColor(0xFF, 0x00, 0x00)

    oval = slide.shapes.add_shape(MSO_SHAPE.OVAL, Pt(200), Pt(20), Pt(80), Pt(80))
    oval.fill.solid()
    oval.fill.fore_color.rgb = RGBColor(0x00, 0x00, 0xFF)

    box = slide.shapes.add_textbox(Pt(10), Pt(120), Pt(300), Pt(40))
    run = box.text_frame.paragraphs[0].add_run()
    run.text = "Hello"
    run.font.size = Pt(28)
    run.font.bold = True

    slide.shapes.add_picture(str(png_file), Pt(400), Pt(100), Pt(80), Pt(40))

    path = tmp_path / "shapes.pptx"
    prs.save(str(path))
    return str(path)
