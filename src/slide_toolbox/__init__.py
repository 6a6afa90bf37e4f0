"""Slide toolbox: a presentation model with ODP, PPTX and PDF codecs."""

from slide_toolbox.utils import configure_logging, logger
from slide_toolbox.model import Document
from slide_toolbox.formats import (
    export_pdf,
    load_document,
    read_odp,
    read_pptx,
    save_document,
    write_odp,
)

__version__ = "0.1.0"

__all__ = [
    "Document",
    "__version__",
    "configure_logging",
    "export_pdf",
    "load_document",
    "logger",
    "read_odp",
    "read_pptx",
    "save_document",
    "write_odp",
]
