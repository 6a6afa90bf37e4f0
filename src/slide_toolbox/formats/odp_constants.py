"""OpenDocument namespaces and names shared by the ODP reader and writer."""

from __future__ import annotations

ODP_MIMETYPE = "application/vnd.oasis.opendocument.presentation"
ODF_VERSION = "1.2"

NS: dict[str, str] = {
    "office": "urn:oasis:names:tc:opendocument:xmlns:office:1.0",
    "style": "urn:oasis:names:tc:opendocument:xmlns:style:1.0",
    "text": "urn:oasis:names:tc:opendocument:xmlns:text:1.0",
    "draw": "urn:oasis:names:tc:opendocument:xmlns:drawing:1.0",
    "presentation": "urn:oasis:names:tc:opendocument:xmlns:presentation:1.0",
    "fo": "urn:oasis:names:tc:opendocument:xmlns:xsl-fo-compatible:1.0",
    "svg": "urn:oasis:names:tc:opendocument:xmlns:svg-compatible:1.0",
    "xlink": "http://www.w3.org/1999/xlink",
    "meta": "urn:oasis:names:tc:opendocument:xmlns:meta:1.0",
    "dc": "http://purl.org/dc/elements/1.1/",
    "manifest": "urn:oasis:names:tc:opendocument:xmlns:manifest:1.0",
    # private attributes for model details ODF has no slot for
    "slidetoolbox": "urn:slide-toolbox:xmlns:odp:1.0",
}

CONTENT_XML = "content.xml"
STYLES_XML = "styles.xml"
META_XML = "meta.xml"
MANIFEST_XML = "META-INF/manifest.xml"
MIMETYPE_ENTRY = "mimetype"
PICTURES_DIR = "Pictures"

ALIGN_TO_ODF = {"left": "start", "center": "center", "right": "end"}
ODF_TO_ALIGN = {
    "start": "left",
    "left": "left",
    "justify": "left",
    "center": "center",
    "end": "right",
    "right": "right",
}


def qn(name: str) -> str:
    """Return the Clark notation for a prefixed name such as ``draw:frame``."""
    prefix, _, local = name.partition(":")
    return f"{{{NS[prefix]}}}{local}"


__all__ = [
    "ALIGN_TO_ODF",
    "CONTENT_XML",
    "MANIFEST_XML",
    "META_XML",
    "MIMETYPE_ENTRY",
    "NS",
    "ODF_TO_ALIGN",
    "ODF_VERSION",
    "ODP_MIMETYPE",
    "PICTURES_DIR",
    "STYLES_XML",
    "qn",
]
