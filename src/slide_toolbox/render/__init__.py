"""Rendering engine and drawing surfaces."""

from __future__ import annotations

from slide_toolbox.render.surface import PlacedRun, RecordingSurface, Surface, fit_scale
from slide_toolbox.render.text import TextLayout, TextShaper
from slide_toolbox.render.engine import render_document_slide, render_slide
from slide_toolbox.render.bitmap import BitmapSurface, render_thumbnail

__all__ = [
    "BitmapSurface",
    "PlacedRun",
    "RecordingSurface",
    "Surface",
    "TextLayout",
    "TextShaper",
    "fit_scale",
    "render_document_slide",
    "render_slide",
    "render_thumbnail",
]
