"""Image asset storage and the per-document decode cache."""

from __future__ import annotations

import hashlib
import io
import threading
from collections.abc import Iterator
from dataclasses import dataclass

import fitz  # type: ignore
from PIL import Image

from slide_toolbox.errors import ImageDecodeFailure

MIME_PNG = "image/png"
MIME_JPEG = "image/jpeg"
MIME_SVG = "image/svg+xml"
MIME_WEBP = "image/webp"

MIME_EXTENSIONS: dict[str, str] = {
    MIME_PNG: "png",
    MIME_JPEG: "jpg",
    MIME_SVG: "svg",
    MIME_WEBP: "webp",
}
EXTENSION_MIMES: dict[str, str] = {
    "png": MIME_PNG,
    "jpg": MIME_JPEG,
    "jpeg": MIME_JPEG,
    "svg": MIME_SVG,
    "webp": MIME_WEBP,
}

# SVG pages are rasterised at 2x for crisp thumbnails
SVG_RASTER_ZOOM = 2.0

ERR_UNKNOWN_MIME = "Unsupported image type: {mime}"
ERR_MISSING_ASSET = "asset not present in document"


def normalize_mime(mime: str | None) -> str:
    """Return the canonical MIME type for ``mime`` or a bare extension."""
    value = (mime or "").strip().lower()
    if value in MIME_EXTENSIONS:
        return value
    value = value.removeprefix("image/")
    if value == "svg+xml":
        return MIME_SVG
    if value in EXTENSION_MIMES:
        return EXTENSION_MIMES[value]
    raise ValueError(ERR_UNKNOWN_MIME.format(mime=mime))


def sniff_mime(data: bytes) -> str | None:
    """Guess the MIME type of ``data`` from its signature."""
    head = data[:512]
    if head.startswith(b"\x89PNG\r\n\x1a\n"):
        return MIME_PNG
    if head.startswith(b"\xff\xd8\xff"):
        return MIME_JPEG
    if head[:4] == b"RIFF" and head[8:12] == b"WEBP":
        return MIME_WEBP
    if b"<svg" in head.lower():
        return MIME_SVG
    return None


@dataclass(frozen=True, slots=True)
class Asset:
    data: bytes
    mime: str

    @property
    def extension(self) -> str:
        return MIME_EXTENSIONS[self.mime]


class ImageStore:
    """Content addressed storage for embedded image bytes.

    Keys are derived from the bytes, so adding the same picture twice stores
    it once.
    """

    def __init__(self) -> None:
        self._assets: dict[str, Asset] = {}

    @staticmethod
    def key_for(data: bytes) -> str:
        return hashlib.sha256(data).hexdigest()[:32]

    def add(self, data: bytes, mime: str) -> str:
        key = self.key_for(data)
        if key not in self._assets:
            self._assets[key] = Asset(bytes(data), normalize_mime(mime))
        return key

    def get(self, key: str | None) -> Asset | None:
        if key is None:
            return None
        return self._assets.get(key)

    def discard(self, key: str) -> None:
        self._assets.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._assets)

    def __contains__(self, key: object) -> bool:
        return key in self._assets

    def __iter__(self) -> Iterator[str]:
        return iter(self._assets)

    def __len__(self) -> int:
        return len(self._assets)


@dataclass(frozen=True, slots=True)
class DecodedImage:
    """A decoded picture ready for painting.

    ``image`` is always an RGBA :class:`PIL.Image.Image`. For SVG sources
    ``pdf`` holds the vector rendition as a one page PDF so that the PDF
    surface can embed it without rasterising.
    """

    key: str
    image: Image.Image
    width: float
    height: float
    pdf: bytes | None = None

    @property
    def size(self) -> tuple[float, float]:
        return (self.width, self.height)


def encode_png(image: Image.Image) -> bytes:
    """Return PNG-encoded bytes for ``image``."""
    with io.BytesIO() as buf:
        image.save(buf, format="PNG")
        return buf.getvalue()


def pixmap_to_image(pix: fitz.Pixmap) -> Image.Image:
    """Convert a PyMuPDF pixmap into an RGBA PIL image."""
    if pix.colorspace is None or pix.colorspace.n not in (1, 3):
        pix = fitz.Pixmap(fitz.csRGB, pix)
    mode = "RGBA" if pix.alpha else "RGB"
    return Image.frombytes(mode, (pix.width, pix.height), pix.samples).convert("RGBA")


def _decode_raster(key: str, data: bytes) -> DecodedImage:
    with Image.open(io.BytesIO(data)) as opened:
        opened.load()
        image = opened.convert("RGBA")
    return DecodedImage(key, image, float(image.width), float(image.height))


def _decode_svg(key: str, data: bytes) -> DecodedImage:
    with fitz.open(stream=data, filetype="svg") as svg:
        page = svg[0]
        width, height = page.rect.width, page.rect.height
        pix = page.get_pixmap(matrix=fitz.Matrix(SVG_RASTER_ZOOM, SVG_RASTER_ZOOM), alpha=True)
        pdf = svg.convert_to_pdf()
    return DecodedImage(key, pixmap_to_image(pix), float(width), float(height), pdf=pdf)


class ImageCache:
    """Lazily decode assets of one :class:`ImageStore`.

    Successful and failed decodes are both cached so a broken asset is only
    attempted (and reported) once per document.
    """

    def __init__(self, store: ImageStore) -> None:
        self._store = store
        self._decoded: dict[str, DecodedImage] = {}
        self._failed: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str | None) -> DecodedImage:
        """Return the decoded image for ``key``.

        Raises:
            ImageDecodeFailure: The asset is missing or cannot be decoded.
        """
        with self._lock:
            if key is None:
                raise ImageDecodeFailure(key, detail=ERR_MISSING_ASSET)
            if key in self._decoded:
                return self._decoded[key]
            if key in self._failed:
                raise ImageDecodeFailure(key, detail=self._failed[key])
            asset = self._store.get(key)
            if asset is None:
                raise ImageDecodeFailure(key, detail=ERR_MISSING_ASSET)
            try:
                if asset.mime == MIME_SVG:
                    decoded = _decode_svg(key, asset.data)
                else:
                    decoded = _decode_raster(key, asset.data)
            except Exception as exc:  # noqa: BLE001
                self._failed[key] = str(exc) or type(exc).__name__
                raise ImageDecodeFailure(key, detail=self._failed[key]) from exc
            self._decoded[key] = decoded
            return decoded

    def invalidate(self, key: str | None = None) -> None:
        with self._lock:
            if key is None:
                self._decoded.clear()
                self._failed.clear()
            else:
                self._decoded.pop(key, None)
                self._failed.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return key in self._decoded


__all__ = [
    "MIME_EXTENSIONS",
    "MIME_JPEG",
    "MIME_PNG",
    "MIME_SVG",
    "MIME_WEBP",
    "Asset",
    "DecodedImage",
    "ImageCache",
    "ImageStore",
    "encode_png",
    "normalize_mime",
    "pixmap_to_image",
    "sniff_mime",
]
