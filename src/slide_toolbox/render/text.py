"""Paragraph layout with greedy line breaking.

Widths and ascenders come from the PyMuPDF Base-14 fonts via
:class:`~slide_toolbox.model.fonts.FontResolver`, so every surface sees the
same line boxes.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from slide_toolbox.model.elements import Paragraph
from slide_toolbox.model.fonts import FontResolver
from slide_toolbox.model.style import Alignment, FontStyle

LINE_HEIGHT_FACTOR = 1.2

_TOKEN_RE = re.compile(r"\S+|\s+")


@dataclass(frozen=True, slots=True)
class Fragment:
    """Consecutive text of one font on a line, ``x`` relative to the line start."""

    text: str
    font: FontStyle
    x: float
    width: float


@dataclass(slots=True)
class LineBox:
    fragments: list[Fragment] = field(default_factory=list)
    width: float = 0.0
    height: float = 0.0
    ascent: float = 0.0
    descent: float = 0.0
    top: float = 0.0
    offset: float = 0.0

    @property
    def baseline(self) -> float:
        """Baseline distance from the top of the layout."""
        content = self.ascent - self.descent
        return self.top + (self.height - content) / 2 + self.ascent

    @property
    def text(self) -> str:
        return "".join(fragment.text for fragment in self.fragments)


@dataclass(slots=True)
class TextLayout:
    lines: list[LineBox]
    width: float

    @property
    def height(self) -> float:
        return sum(line.height for line in self.lines)


class _LineBuilder:
    """Accumulate pieces for one line and turn them into a :class:`LineBox`."""

    def __init__(self, fonts: FontResolver, default_font: FontStyle) -> None:
        self.fonts = fonts
        self.default_font = default_font
        self.pieces: list[tuple[str, FontStyle, float]] = []
        self.width = 0.0

    @property
    def empty(self) -> bool:
        return not self.pieces

    def add(self, text: str, font: FontStyle, width: float) -> None:
        self.pieces.append((text, font, width))
        self.width += width

    def finish(self) -> LineBox:
        while self.pieces and not self.pieces[-1][0].strip():
            _, _, width = self.pieces.pop()
            self.width -= width
        fragments: list[Fragment] = []
        x = 0.0
        for text, font, width in self.pieces:
            if fragments and fragments[-1].font == font:
                last = fragments[-1]
                fragments[-1] = Fragment(last.text + text, font, last.x, last.width + width)
            else:
                fragments.append(Fragment(text, font, x, width))
            x += width
        fonts = [f.font for f in fragments] or [self.default_font]
        line = LineBox(
            fragments=fragments,
            width=x,
            height=LINE_HEIGHT_FACTOR * max(f.size for f in fonts),
            ascent=max(self.fonts.ascender(f) for f in fonts),
            descent=min(self.fonts.descender(f) for f in fonts),
        )
        self.pieces = []
        self.width = 0.0
        return line


class TextShaper:
    """Lay out paragraphs inside a box of fixed width."""

    def __init__(self, fonts: FontResolver | None = None) -> None:
        self.fonts = fonts or FontResolver()

    def _segments(self, paragraph: Paragraph) -> Iterable[tuple[str, FontStyle] | None]:
        """Yield ``(token, font)`` pairs with ``None`` marking a forced break."""
        for run in paragraph.runs:
            for number, segment in enumerate(run.text.split("\n")):
                if number:
                    yield None
                for token in _TOKEN_RE.findall(segment):
                    yield token, run.font

    def _layout_paragraph(self, paragraph: Paragraph, width: float) -> list[LineBox]:
        default_font = paragraph.runs[0].font if paragraph.runs else FontStyle()
        builder = _LineBuilder(self.fonts, default_font)
        lines: list[LineBox] = []
        for item in self._segments(paragraph):
            if item is None:
                lines.append(builder.finish())
                continue
            token, font = item
            token_width = self.fonts.text_width(token, font)
            if not token.strip():
                if not builder.empty:
                    builder.add(token, font, token_width)
                continue
            if builder.width + token_width <= width:
                builder.add(token, font, token_width)
                continue
            if not builder.empty:
                lines.append(builder.finish())
            if token_width <= width:
                builder.add(token, font, token_width)
                continue
            # word wider than the box: break between characters
            for char in token:
                char_width = self.fonts.text_width(char, font)
                if not builder.empty and builder.width + char_width > width:
                    lines.append(builder.finish())
                builder.add(char, font, char_width)
        lines.append(builder.finish())
        for line in lines:
            slack = max(0.0, width - line.width)
            match paragraph.alignment:
                case Alignment.CENTER:
                    line.offset = slack / 2
                case Alignment.RIGHT:
                    line.offset = slack
                case _:
                    line.offset = 0.0
        return lines

    def layout(self, paragraphs: Sequence[Paragraph], width: float) -> TextLayout:
        """Return line boxes for ``paragraphs`` wrapped to ``width`` points."""
        lines: list[LineBox] = []
        top = 0.0
        for paragraph in paragraphs:
            for line in self._layout_paragraph(paragraph, width):
                line.top = top
                top += line.height
                lines.append(line)
        return TextLayout(lines, width)


__all__ = ["LINE_HEIGHT_FACTOR", "Fragment", "LineBox", "TextLayout", "TextShaper"]
