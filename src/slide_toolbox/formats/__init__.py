"""Document codecs: ODP read/write, PPTX import and PDF export."""

from __future__ import annotations

from slide_toolbox.formats.odp_reader import read_odp
from slide_toolbox.formats.odp_writer import write_odp
from slide_toolbox.formats.pdf_export import PdfPageSurface, export_pdf
from slide_toolbox.formats.pptx_reader import read_pptx
from slide_toolbox.formats.registry import (
    CodecSelectionError,
    load_document,
    reader_for,
    save_document,
    writer_for,
)

__all__ = [
    "CodecSelectionError",
    "PdfPageSurface",
    "export_pdf",
    "load_document",
    "read_odp",
    "read_pptx",
    "reader_for",
    "save_document",
    "write_odp",
    "writer_for",
]
