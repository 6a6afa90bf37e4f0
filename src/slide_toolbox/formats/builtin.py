"""Codecs shipped with slide toolbox."""

from __future__ import annotations

from pathlib import Path
from typing import ClassVar

from slide_toolbox.formats.base import BaseCodec
from slide_toolbox.formats.odp_reader import read_odp
from slide_toolbox.formats.odp_writer import write_odp
from slide_toolbox.formats.pdf_export import export_pdf
from slide_toolbox.formats.pptx_reader import read_pptx
from slide_toolbox.formats.registry import register
from slide_toolbox.model.document import Document


class OdpCodec(BaseCodec):
    """OpenDocument Presentation, read and write."""

    name: ClassVar[str] = "odp"
    suffixes: ClassVar[tuple[str, ...]] = (".odp",)

    def read(self, path: str | Path) -> Document:
        return read_odp(path)

    def write(self, document: Document, path: str | Path) -> Path:
        return write_odp(document, path)


class PptxCodec(BaseCodec):
    """PowerPoint presentations, import only."""

    name: ClassVar[str] = "pptx"
    suffixes: ClassVar[tuple[str, ...]] = (".pptx",)

    def read(self, path: str | Path) -> Document:
        return read_pptx(path)


class PdfCodec(BaseCodec):
    """PDF export, one page per slide."""

    name: ClassVar[str] = "pdf"
    suffixes: ClassVar[tuple[str, ...]] = (".pdf",)

    def write(self, document: Document, path: str | Path) -> Path:
        return export_pdf(document, path)


register(OdpCodec)
register(PptxCodec)
register(PdfCodec)


__all__ = ["OdpCodec", "PdfCodec", "PptxCodec"]
