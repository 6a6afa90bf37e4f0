"""Per-document font family resolution onto the PDF Base-14 fonts.

Every surface measures and draws text with the same PyMuPDF built-in fonts,
which keeps line breaking identical between the canvas, thumbnails and
exported PDF pages.
"""

from __future__ import annotations

import fitz  # type: ignore

from slide_toolbox.config import load_config
from slide_toolbox.errors import FontResolutionFailure
from slide_toolbox.model.style import FontStyle
from slide_toolbox.utils import logger

# fontnames indexed by (bold, italic)
_BASE14: dict[str, dict[tuple[bool, bool], str]] = {
    "helv": {
        (False, False): "helv",
        (True, False): "hebo",
        (False, True): "heit",
        (True, True): "hebi",
    },
    "tiro": {
        (False, False): "tiro",
        (True, False): "tibo",
        (False, True): "tiit",
        (True, True): "tibi",
    },
    "cour": {
        (False, False): "cour",
        (True, False): "cobo",
        (False, True): "coit",
        (True, True): "cobi",
    },
}

_FAMILY_ALIASES: dict[str, str] = {
    **dict.fromkeys(
        (
            "helvetica",
            "helv",
            "arial",
            "sans",
            "sans-serif",
            "swiss",
            "liberation sans",
            "dejavu sans",
            "nimbus sans",
            "free sans",
        ),
        "helv",
    ),
    **dict.fromkeys(
        (
            "times",
            "times new roman",
            "times-roman",
            "tiro",
            "serif",
            "roman",
            "liberation serif",
            "dejavu serif",
            "nimbus roman",
            "free serif",
        ),
        "tiro",
    ),
    **dict.fromkeys(
        (
            "courier",
            "courier new",
            "cour",
            "mono",
            "monospace",
            "modern",
            "liberation mono",
            "dejavu sans mono",
            "nimbus mono",
            "free mono",
        ),
        "cour",
    ),
}

DEFAULT_BASE = "helv"


def _family_key(family: str | None) -> str | None:
    name = (family or "").strip().strip("'\"").lower()
    return _FAMILY_ALIASES.get(name)


class FontResolver:
    """Map font families onto Base-14 fontnames for one document.

    Unknown families resolve to the fallback family. Each substitution is
    logged once per family as a :class:`FontResolutionFailure` warning and
    recorded in :attr:`failures`.
    """

    def __init__(self, fallback: str | None = None) -> None:
        if fallback is None:
            fallback = load_config()["fallback_font"]
        self.fallback = fallback
        self._fallback_key = _family_key(fallback) or DEFAULT_BASE
        self._fonts: dict[str, fitz.Font] = {}
        self.failures: dict[str, FontResolutionFailure] = {}

    def base_family(self, family: str | None) -> str:
        key = _family_key(family)
        if key is not None:
            return key
        name = (family or "").strip()
        if name not in self.failures:
            failure = FontResolutionFailure(name, self.fallback)
            self.failures[name] = failure
            logger.warning("%s", failure)
        return self._fallback_key

    def fontname(self, font: FontStyle) -> str:
        """Return the Base-14 fontname for ``font``."""
        return _BASE14[self.base_family(font.family)][(font.bold, font.italic)]

    def font(self, fontname: str) -> fitz.Font:
        cached = self._fonts.get(fontname)
        if cached is None:
            cached = fitz.Font(fontname=fontname)
            self._fonts[fontname] = cached
        return cached

    def text_width(self, text: str, font: FontStyle) -> float:
        return self.font(self.fontname(font)).text_length(text, fontsize=font.size)

    def ascender(self, font: FontStyle) -> float:
        return self.font(self.fontname(font)).ascender * font.size

    def descender(self, font: FontStyle) -> float:
        """Return the (negative) descender of ``font`` in points."""
        return self.font(self.fontname(font)).descender * font.size


__all__ = ["FontResolver"]
