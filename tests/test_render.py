from __future__ import annotations

import io
import logging

import pytest
from PIL import Image

from conftest import RED, png_bytes
from slide_toolbox.model import (
    Alignment,
    Color,
    Document,
    FontStyle,
    ImageElement,
    Paragraph,
    Rect,
    ScaleMode,
    ShapeElement,
    ShapeKind,
    Size,
    Slide,
    Stroke,
    TextElement,
    TextRun,
)
from slide_toolbox.render import (
    BitmapSurface,
    RecordingSurface,
    TextShaper,
    fit_scale,
    render_document_slide,
    render_slide,
    render_thumbnail,
)
from slide_toolbox.render.engine import PLACEHOLDER_FILL, image_rect
from slide_toolbox.utils import logger


def _record(document: Document, index: int = 0, scale: float = 1.0) -> list:
    surface = RecordingSurface()
    render_document_slide(document, index, scale, surface)
    return surface.commands


def test_rendering_is_deterministic(sample_document):
    assert _record(sample_document) == _record(sample_document)
    other = RecordingSurface()
    render_slide(sample_document.slides[0], 1.0, other, fonts=sample_document.fonts)
    assert other.commands == _record(sample_document)


def test_background_is_painted_first(sample_document):
    commands = _record(sample_document)
    first_fill = next(c for c in commands if c[0] == "fill")
    assert first_fill == ("fill", Color(255, 255, 255))
    assert commands.index(first_fill) < commands.index(("fill", RED))


def test_transparent_background_is_skipped():
    slide = Slide(size=Size(100, 100), background=None)
    surface = RecordingSurface()
    render_slide(slide, 1.0, surface)
    assert surface.commands == []


def test_scale_applies_to_geometry(sample_document):
    commands = _record(sample_document, scale=0.5)
    assert ("move_to", 5.0, 5.0) in commands
    assert ("line_to", 55.0, 5.0) in commands


def test_text_runs_are_placed(sample_document):
    runs = [c[1] for c in _record(sample_document) if c[0] == "text"]
    assert [run.text for run in runs] == ["Hello"]
    run = runs[0]
    assert run.x == pytest.approx(10)
    assert 70 < run.baseline < 110
    assert run.fontname == "helv"
    assert run.font.size == 24


def test_missing_image_paints_placeholder(caplog):
    doc = Document.empty()
    slide = doc.add_slide()
    doc.add_element(0, ImageElement(bounds=Rect(0, 0, 50, 50), image_key="missing"))
    doc.add_element(0, ShapeElement(bounds=Rect(60, 0, 10, 10), fill=RED))

    logger.propagate = True
    try:
        with caplog.at_level(logging.WARNING, logger="slide_toolbox"):
            surface = RecordingSurface()
            render_slide(slide, 1.0, surface, images=doc.images)
    finally:
        logger.propagate = False

    assert ("fill", PLACEHOLDER_FILL) in surface.commands
    assert surface.commands[-1] == ("fill", RED)
    assert "missing" in caplog.text


def test_undecodable_image_paints_placeholder():
    doc = Document.empty()
    doc.add_slide()
    key = doc.assets.add(b"\x89PNG\r\n\x1a\n broken", "image/png")
    doc.add_element(0, ImageElement(bounds=Rect(0, 0, 20, 20), image_key=key))
    commands = _record(doc)
    assert ("fill", PLACEHOLDER_FILL) in commands
    assert not [c for c in commands if c[0] == "image"]


def test_image_scale_modes():
    doc = Document.empty()
    key = doc.add_image(png_bytes((20, 10)))
    decoded = doc.images.get(key)
    bounds = Rect(0, 0, 100, 100)
    assert image_rect(decoded, bounds, ScaleMode.STRETCH) == bounds
    assert image_rect(decoded, bounds, ScaleMode.FIT) == Rect(0, 25, 100, 50)
    assert image_rect(decoded, bounds, ScaleMode.FILL) == Rect(-50, 0, 200, 100)


def test_fill_mode_clips_to_bounds():
    doc = Document.empty()
    doc.add_slide()
    key = doc.add_image(png_bytes((20, 10)))
    doc.add_element(
        0, ImageElement(bounds=Rect(0, 0, 100, 100), image_key=key, scale_mode=ScaleMode.FILL)
    )
    commands = _record(doc)
    names = [c[0] for c in commands]
    start = names.index("set_clip")
    assert names[start : start + 3] == ["set_clip", "image", "set_clip"]
    assert commands[start] == ("set_clip", Rect(0, 0, 100, 100))
    assert commands[start + 2] == ("set_clip", None)


def test_line_without_stroke_paints_nothing():
    slide = Slide(
        elements=[ShapeElement(bounds=Rect(0, 0, 10, 10), kind=ShapeKind.LINE, stroke=None)],
        background=None,
    )
    surface = RecordingSurface()
    render_slide(slide, 1.0, surface)
    assert surface.commands == []


def test_ellipse_uses_curves():
    slide = Slide(
        elements=[
            ShapeElement(
                bounds=Rect(0, 0, 10, 10),
                kind=ShapeKind.ELLIPSE,
                stroke=Stroke(Color(0, 0, 0), 1.0),
            )
        ],
        background=None,
    )
    surface = RecordingSurface()
    render_slide(slide, 1.0, surface)
    assert surface.ops().count("curve_to") == 4
    assert surface.ops()[-2:] == ["fill", "stroke"]


def test_text_wraps_and_aligns():
    shaper = TextShaper()
    font = FontStyle(size=20)
    paragraph = Paragraph((TextRun("one two three four five six", font),), Alignment.RIGHT)
    layout = shaper.layout([paragraph], 100)
    assert len(layout.lines) > 1
    for line in layout.lines:
        assert line.width <= 100
        assert line.offset == pytest.approx(100 - line.width)
    assert layout.height == pytest.approx(len(layout.lines) * 24)


def test_forced_breaks_and_empty_paragraphs():
    shaper = TextShaper()
    paragraphs = [
        Paragraph((TextRun("a\nb", FontStyle(size=10)),)),
        Paragraph(()),
    ]
    layout = shaper.layout(paragraphs, 500)
    assert [line.text for line in layout.lines] == ["a", "b", ""]


def test_long_word_breaks_between_characters():
    layout = TextShaper().layout([Paragraph((TextRun("W" * 40, FontStyle(size=20)),))], 50)
    assert len(layout.lines) > 1
    assert "".join(line.text for line in layout.lines) == "W" * 40


def test_unknown_font_family_falls_back_once():
    doc = Document.empty()
    font = FontStyle(family="Comic Sans MS")
    assert doc.fonts.fontname(font) == "helv"
    assert doc.fonts.fontname(FontStyle(family="Comic Sans MS", bold=True)) == "hebo"
    assert list(doc.fonts.failures) == ["Comic Sans MS"]
    assert doc.fonts.fontname(FontStyle(family="Times New Roman", italic=True)) == "tiit"


def test_fit_scale_centres_slide():
    scale, dx, dy = fit_scale(Size(960, 540), Size(480, 480))
    assert scale == pytest.approx(0.5)
    assert dx == pytest.approx(0)
    assert dy == pytest.approx(105)


def test_recording_replays_onto_bitmap(sample_document):
    recorded = RecordingSurface()
    render_document_slide(sample_document, 0, 0.1, recorded)
    bitmap = BitmapSurface(96, 54)
    recorded.replay(bitmap)
    assert bitmap.image.getpixel((5, 3)) == (255, 0, 0, 255)


def test_thumbnail_pixels(sample_document):
    image = render_thumbnail(sample_document, 0, (96, 54))
    assert image.size == (96, 54)
    assert image.getpixel((5, 3)) == (255, 0, 0, 255)
    assert image.getpixel((80, 45)) == (255, 255, 255, 255)


def test_thumbnail_uses_configured_size(sample_document):
    image = render_thumbnail(sample_document, 0)
    assert image.size == (320, 180)


def test_thumbnail_draws_images():
    doc = Document.empty(slide_size=Size(100, 100))
    doc.add_slide()
    key = doc.add_image(png_bytes((10, 10), (0, 0, 255)))
    doc.add_element(0, ImageElement(bounds=Rect(0, 0, 100, 100), image_key=key))
    image = render_thumbnail(doc, 0, (50, 50))
    assert image.getpixel((25, 25)) == (0, 0, 255, 255)


def test_missing_package_entry_renders_placeholder(tmp_path):
    from slide_toolbox.formats import read_odp, write_odp

    doc = Document.empty()
    doc.add_slide()
    doc.add_element(0, ImageElement(bounds=Rect(0, 0, 40, 40), image_key="absent"))
    doc.add_element(0, ShapeElement(bounds=Rect(50, 0, 10, 10), fill=RED))
    loaded = read_odp(write_odp(doc, tmp_path / "dangling.odp"))

    commands = _record(loaded)
    assert ("fill", PLACEHOLDER_FILL) in commands
    assert commands[-1] == ("fill", RED)


GREEN_SVG = (
    b'<svg xmlns="http://www.w3.org/2000/svg" width="40" height="20">'
    b'<rect width="40" height="20" fill="#00ff00"/></svg>'
)


def _encoded(fmt: str, color: tuple[int, int, int] = (255, 0, 0)) -> bytes:
    with io.BytesIO() as buf:
        Image.new("RGB", (16, 8), color=color).save(buf, format=fmt)
        return buf.getvalue()


@pytest.mark.parametrize(
    ("data", "mime"),
    [
        (_encoded("JPEG"), "image/jpeg"),
        (_encoded("WEBP"), "image/webp"),
        (GREEN_SVG, "image/svg+xml"),
    ],
)
def test_image_formats_decode(data, mime):
    doc = Document.empty()
    key = doc.add_image(data)
    assert doc.assets.get(key).mime == mime
    decoded = doc.images.get(key)
    assert decoded.image.mode == "RGBA"
    assert decoded.width / decoded.height == pytest.approx(2.0)
    assert (decoded.pdf is not None) == (mime == "image/svg+xml")


@pytest.mark.parametrize(
    ("data", "expected"),
    [
        (_encoded("JPEG"), (255, 0, 0)),
        (_encoded("WEBP"), (255, 0, 0)),
        (GREEN_SVG, (0, 255, 0)),
    ],
)
def test_thumbnail_draws_every_image_format(data, expected):
    doc = Document.empty(slide_size=Size(100, 100))
    doc.add_slide()
    key = doc.add_image(data)
    doc.add_element(
        0, ImageElement(bounds=Rect(0, 0, 100, 100), image_key=key, scale_mode=ScaleMode.STRETCH)
    )
    pixel = render_thumbnail(doc, 0, (50, 50)).getpixel((25, 25))
    # lossy codecs shift colors slightly
    assert pixel[:3] == pytest.approx(expected, abs=8)
    assert pixel[3] == 255


def test_rotation_wraps_element_commands():
    slide = Slide(
        elements=[ShapeElement(bounds=Rect(10, 20, 40, 10), fill=RED, rotation=30.0)],
        background=None,
    )
    surface = RecordingSurface()
    render_slide(slide, 2.0, surface)
    assert surface.commands[0] == ("set_rotation", Rect(20, 40, 80, 20), 30.0)
    assert surface.commands[-1] == ("set_rotation", None, 0.0)
    assert ("fill", RED) in surface.commands


def test_unrotated_elements_do_not_touch_rotation(sample_document):
    assert "set_rotation" not in [command[0] for command in _record(sample_document)]


def test_rotated_thumbnail_pixels():
    doc = Document.empty(slide_size=Size(100, 100))
    doc.add_slide()
    doc.add_element(0, ShapeElement(bounds=Rect(10, 45, 80, 10), fill=RED, rotation=90.0))
    image = render_thumbnail(doc, 0, (100, 100))
    # the horizontal bar now stands upright through the centre
    assert image.getpixel((50, 20)) == (255, 0, 0, 255)
    assert image.getpixel((50, 80)) == (255, 0, 0, 255)
    assert image.getpixel((20, 50)) == (255, 255, 255, 255)
