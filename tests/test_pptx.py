from __future__ import annotations

import re
import zipfile
from pathlib import Path

import pytest
from pptx import Presentation
from pptx.dml.color import RGBColor
from pptx.enum.dml import MSO_THEME_COLOR
from pptx.enum.shapes import MSO_SHAPE
from pptx.oxml.ns import qn
from pptx.util import Pt

from conftest import RED
from slide_toolbox.errors import MalformedContainerError, MalformedDocumentError
from slide_toolbox.formats import read_pptx
from slide_toolbox.model import (
    BLACK,
    WHITE,
    Alignment,
    Color,
    ImageElement,
    Rect,
    ScaleMode,
    ShapeElement,
    ShapeKind,
    TextElement,
)


def _approx(rect: Rect):
    return pytest.approx(rect.as_tuple(), abs=1e-3)


def test_title_font_size_inherited_from_layout(inherited_pptx):
    doc = read_pptx(inherited_pptx)
    (title,) = doc.slides[0].elements
    assert isinstance(title, TextElement)
    assert title.text == "Inherited"
    assert title.paragraphs[0].runs[0].font.size == 54.0
    assert title.bounds.width > 0
    assert title.bounds.height > 0


def test_explicit_run_size_wins(tmp_path):
    prs = Presentation()
    slide = prs.slides.add_slide(prs.slide_layouts[0])
    slide.shapes.title.text = "Sized"
    slide.shapes.title.text_frame.paragraphs[0].runs[0].font.size = Pt(12)
    path = tmp_path / "sized.pptx"
    prs.save(str(path))

    (title,) = read_pptx(path).slides[0].elements
    assert title.paragraphs[0].runs[0].font.size == 12.0


def test_empty_placeholders_are_skipped(tmp_path):
    prs = Presentation()
    prs.slides.add_slide(prs.slide_layouts[1])
    path = tmp_path / "empty.pptx"
    prs.save(str(path))
    assert read_pptx(path).slides[0].elements == []


def test_slide_size_and_metadata(tmp_path):
    prs = Presentation()
    prs.slide_width = Pt(720)
    prs.slide_height = Pt(405)
    prs.core_properties.title = "Deck"
    prs.core_properties.author = "Grace"
    prs.slides.add_slide(prs.slide_layouts[6])
    path = tmp_path / "meta.pptx"
    prs.save(str(path))

    doc = read_pptx(path)
    assert doc.title == "Deck"
    assert doc.metadata.author == "Grace"
    assert doc.slides[0].size.width == pytest.approx(720)
    assert doc.slides[0].size.height == pytest.approx(405)


def test_shapes_text_and_pictures(shapes_pptx, png_file):
    doc = read_pptx(shapes_pptx)
    rect, oval, text, picture = doc.slides[0].elements

    assert isinstance(rect, ShapeElement)
    assert rect.kind is ShapeKind.RECT
    assert rect.fill == RED
    assert rect.bounds.as_tuple() == _approx(Rect(10, 20, 100, 50))

    assert isinstance(oval, ShapeElement)
    assert oval.kind is ShapeKind.ELLIPSE
    assert oval.fill == Color(0, 0, 255)

    assert isinstance(text, TextElement)
    assert text.text == "Hello"
    font = text.paragraphs[0].runs[0].font
    assert font.size == 28.0
    assert font.bold is True
    assert text.fill is None

    assert isinstance(picture, ImageElement)
    assert picture.scale_mode is ScaleMode.STRETCH
    assert picture.mime == "image/png"
    assert picture.bounds.as_tuple() == _approx(Rect(400, 100, 80, 40))
    assert doc.assets.get(picture.image_key).data == png_file.read_bytes()


def test_group_children_are_flattened(tmp_path):
    prs = Presentation()
    slide = prs.slides.add_slide(prs.slide_layouts[6])
    group = slide.shapes.add_group_shape()
    child = group.shapes.add_shape(MSO_SHAPE.RECTANGLE, Pt(100), Pt(50), Pt(40), Pt(20))
    child.fill.solid()
    child.fill.fore_color.rgb = RGBColor(0x00, 0xFF, 0x00)
    # stretch the group to twice its child extent
    xfrm = group._element.find(qn("p:grpSpPr")).find(qn("a:xfrm"))
    ext = xfrm.find(qn("a:ext"))
    ext.set("cx", str(int(ext.get("cx")) * 2))
    path = tmp_path / "group.pptx"
    prs.save(str(path))

    (shape,) = read_pptx(path).slides[0].elements
    assert shape.fill == Color(0, 255, 0)
    assert shape.bounds.as_tuple() == _approx(Rect(100, 50, 80, 20))


def test_missing_file(tmp_path):
    with pytest.raises(MalformedContainerError):
        read_pptx(tmp_path / "absent.pptx")


def test_not_a_zip(tmp_path):
    path = tmp_path / "bad.pptx"
    path.write_text("plain text")
    with pytest.raises(MalformedContainerError):
        read_pptx(path)


def test_zip_without_presentation(tmp_path):
    path = tmp_path / "other.pptx"
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr("hello.txt", "hi")
    with pytest.raises(MalformedDocumentError):
        read_pptx(path)


def test_registry_reads_pptx(shapes_pptx):
    from slide_toolbox.formats import load_document

    doc = load_document(Path(shapes_pptx))
    assert len(doc.slides) == 1


def _rewrite(path: Path, match: str, change) -> None:
    """Apply ``change`` to the bytes of every package entry whose name contains ``match``."""
    with zipfile.ZipFile(path) as source:
        entries = {info.filename: source.read(info.filename) for info in source.infolist()}
    with zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED) as target:
        for name, data in entries.items():
            target.writestr(name, change(data) if match in name else data)


def test_slide_without_shape_tree(tmp_path):
    prs = Presentation()
    slide = prs.slides.add_slide(prs.slide_layouts[6])
    c_sld = slide._element.find(qn("p:cSld"))
    c_sld.remove(c_sld.find(qn("p:spTree")))
    path = tmp_path / "no-tree.pptx"
    prs.save(str(path))
    with pytest.raises(MalformedDocumentError, match="spTree"):
        read_pptx(path)


def test_slide_without_layout_relationship(tmp_path):
    prs = Presentation()
    prs.slides.add_slide(prs.slide_layouts[6])
    path = tmp_path / "no-layout.pptx"
    prs.save(str(path))
    _rewrite(
        path,
        "slides/_rels/slide1.xml.rels",
        lambda data: re.sub(rb"<Relationship [^>]*/slideLayout\"[^>]*/>", b"", data),
    )
    with pytest.raises(MalformedDocumentError, match="slide layout"):
        read_pptx(path)


def test_rotation_is_read_from_xfrm(tmp_path, png_file):
    prs = Presentation()
    slide = prs.slides.add_slide(prs.slide_layouts[6])
    rect = slide.shapes.add_shape(MSO_SHAPE.RECTANGLE, Pt(10), Pt(20), Pt(100), Pt(50))
    rect.rotation = 30.0
    box = slide.shapes.add_textbox(Pt(10), Pt(120), Pt(300), Pt(40))
    box.text_frame.text = "Tilted"
    box.rotation = 90.0
    picture = slide.shapes.add_picture(str(png_file), Pt(400), Pt(100), Pt(80), Pt(40))
    picture.rotation = -10.0
    path = tmp_path / "rotated.pptx"
    prs.save(str(path))

    shape, text, image = read_pptx(path).slides[0].elements
    assert shape.rotation == pytest.approx(30.0)
    assert shape.bounds.as_tuple() == _approx(Rect(10, 20, 100, 50))
    assert text.rotation == pytest.approx(90.0)
    assert image.rotation == pytest.approx(350.0)


def _theme_fonts(data: bytes) -> bytes:
    data = data.replace(
        b'<a:majorFont><a:latin typeface="Calibri"/>', b'<a:majorFont><a:latin typeface="Georgia"/>'
    )
    return data.replace(
        b'<a:minorFont><a:latin typeface="Calibri"/>', b'<a:minorFont><a:latin typeface="Verdana"/>'
    )


def test_master_text_styles_and_theme_fonts(tmp_path):
    prs = Presentation()
    slide = prs.slides.add_slide(prs.slide_layouts[1])
    slide.shapes.title.text = "Heading"
    body = slide.placeholders[1].text_frame
    body.text = "Point"
    detail = body.add_paragraph()
    detail.text = "Detail"
    detail.level = 1
    path = tmp_path / "styles.pptx"
    prs.save(str(path))
    _rewrite(path, "ppt/theme/", _theme_fonts)

    title, content = read_pptx(path).slides[0].elements
    assert title.text == "Heading"
    assert title.paragraphs[0].alignment is Alignment.CENTER
    heading = title.paragraphs[0].runs[0].font
    assert (heading.family, heading.size, heading.color) == ("Georgia", 44.0, BLACK)
    point, sub_point = content.paragraphs
    assert (point.runs[0].font.family, point.runs[0].font.size) == ("Verdana", 32.0)
    assert (sub_point.runs[0].font.family, sub_point.runs[0].font.size) == ("Verdana", 28.0)
    assert point.alignment is Alignment.LEFT


def test_presentation_default_text_style(tmp_path):
    prs = Presentation()
    other = prs.slide_master._element.find(qn("p:txStyles")).find(qn("p:otherStyle"))
    del other.find(qn("a:lvl1pPr")).find(qn("a:defRPr")).attrib["sz"]
    default = prs.part._element.find(qn("p:defaultTextStyle"))
    default.find(qn("a:lvl1pPr")).find(qn("a:defRPr")).set("sz", "2000")
    slide = prs.slides.add_slide(prs.slide_layouts[6])
    slide.shapes.add_textbox(Pt(10), Pt(10), Pt(200), Pt(40)).text_frame.text = "Plain"
    path = tmp_path / "default-style.pptx"
    prs.save(str(path))

    (text,) = read_pptx(path).slides[0].elements
    assert text.paragraphs[0].runs[0].font.size == 20.0


def test_scheme_colors_resolve_through_theme(tmp_path):
    prs = Presentation()
    slide = prs.slides.add_slide(prs.slide_layouts[6])
    shape = slide.shapes.add_shape(MSO_SHAPE.RECTANGLE, Pt(10), Pt(10), Pt(50), Pt(50))
    shape.fill.solid()
    shape.fill.fore_color.theme_color = MSO_THEME_COLOR.ACCENT_2
    box = slide.shapes.add_textbox(Pt(100), Pt(10), Pt(200), Pt(40))
    paragraph = box.text_frame.paragraphs[0]
    run = paragraph.add_run()
    run.text = "Accent"
    run.font.color.theme_color = MSO_THEME_COLOR.ACCENT_1
    path = tmp_path / "scheme.pptx"
    prs.save(str(path))

    rect, text = read_pptx(path).slides[0].elements
    assert rect.fill == Color(0xC0, 0x50, 0x4D)
    assert text.paragraphs[0].runs[0].font.color == Color(0x4F, 0x81, 0xBD)


def test_background_inheritance(tmp_path):
    prs = Presentation()
    prs.slide_master.background.fill.solid()
    prs.slide_master.background.fill.fore_color.rgb = RGBColor(0x11, 0x22, 0x33)
    layout = prs.slide_layouts[6]
    layout.background.fill.solid()
    layout.background.fill.fore_color.rgb = RGBColor(0x44, 0x55, 0x66)
    prs.slides.add_slide(prs.slide_layouts[5])
    prs.slides.add_slide(layout)
    own = prs.slides.add_slide(layout)
    own.background.fill.solid()
    own.background.fill.fore_color.rgb = RGBColor(0x77, 0x88, 0x99)
    path = tmp_path / "backgrounds.pptx"
    prs.save(str(path))

    backgrounds = [slide.background for slide in read_pptx(path).slides]
    assert backgrounds == [
        Color(0x11, 0x22, 0x33),
        Color(0x44, 0x55, 0x66),
        Color(0x77, 0x88, 0x99),
    ]


def test_default_master_background_is_white(tmp_path):
    prs = Presentation()
    prs.slides.add_slide(prs.slide_layouts[6])
    path = tmp_path / "plain.pptx"
    prs.save(str(path))
    assert read_pptx(path).slides[0].background == WHITE
