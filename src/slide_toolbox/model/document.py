"""The presentation document and its mutation API.

Every mutating method validates its arguments before touching any state, so
a raised exception leaves the document exactly as it was.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime

from slide_toolbox.config import load_config
from slide_toolbox.errors import IndexOutOfRangeError, StyleNotFoundError
from slide_toolbox.model.elements import (
    Element,
    apply_style,
    validate_element,
    validate_style,
)
from slide_toolbox.model.fonts import FontResolver
from slide_toolbox.model.geometry import DEFAULT_SLIDE_SIZE, Size
from slide_toolbox.model.images import ImageCache, ImageStore, sniff_mime
from slide_toolbox.model.slide import Slide
from slide_toolbox.model.style import Style
from slide_toolbox.templates import TemplateKind, build_template

ERR_IMMUTABLE_ID = "element id cannot be changed"
ERR_DUPLICATE_ID = "element id {element_id!r} already exists on slide {slide}"
ERR_SLIDE_PRESENT = "slide {slide_id!r} is already part of the document"
ERR_UNKNOWN_MIME = "cannot determine image type"


@dataclass(slots=True)
class Metadata:
    author: str = ""
    created: datetime | None = None
    modified: datetime | None = None


@dataclass(eq=False)
class Document:
    """A presentation: ordered slides plus shared styles and image assets."""

    slides: list[Slide] = field(default_factory=list)
    styles: dict[str, Style] = field(default_factory=dict)
    assets: ImageStore = field(default_factory=ImageStore)
    title: str = ""
    metadata: Metadata = field(default_factory=Metadata)
    default_slide_size: Size = DEFAULT_SLIDE_SIZE
    images: ImageCache = field(init=False, repr=False)
    fonts: FontResolver = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.images = ImageCache(self.assets)
        self.fonts = FontResolver()

    # -- construction -------------------------------------------------

    @classmethod
    def empty(cls, *, slide_size: Size | None = None) -> Document:
        """Return a document without slides."""
        if slide_size is None:
            width, height = load_config()["default_slide_size"]
            slide_size = Size(width, height)
        return cls(default_slide_size=slide_size, metadata=Metadata(created=datetime.now()))

    @classmethod
    def from_template(
        cls, kind: TemplateKind | str, *, slide_size: Size | None = None
    ) -> Document:
        """Return a new document populated from a built-in template."""
        doc = cls.empty(slide_size=slide_size)
        doc.styles, doc.slides = build_template(kind, doc.default_slide_size)
        return doc

    # -- lookup -------------------------------------------------------

    def __len__(self) -> int:
        return len(self.slides)

    def slide(self, index: int) -> Slide:
        """Return slide ``index`` or raise :class:`IndexOutOfRangeError`."""
        if not isinstance(index, int) or not 0 <= index < len(self.slides):
            raise IndexOutOfRangeError.slide(index, len(self.slides))
        return self.slides[index]

    def find_element(self, slide_index: int, element_id: str) -> Element:
        slide = self.slide(slide_index)
        return slide.elements[slide.index_of(element_id, slide_index)]

    def iter_elements(self) -> Iterator[tuple[int, Element]]:
        for index, slide in enumerate(self.slides):
            for element in slide.elements:
                yield index, element

    def get_style(self, name: str) -> Style:
        try:
            return self.styles[name]
        except KeyError:
            raise StyleNotFoundError(name) from None

    # -- slides -------------------------------------------------------

    def _check_position(self, index: int | None, total: int) -> int:
        if index is None:
            return total
        if not isinstance(index, int) or not 0 <= index <= total:
            raise IndexOutOfRangeError.position(index, total)
        return index

    def add_slide(self, index: int | None = None, slide: Slide | None = None) -> Slide:
        """Insert ``slide`` (a blank one by default) at ``index`` or the end."""
        position = self._check_position(index, len(self.slides))
        if slide is None:
            slide = Slide(size=self.default_slide_size)
        else:
            if any(existing is slide for existing in self.slides):
                raise ValueError(ERR_SLIDE_PRESENT.format(slide_id=slide.id))
            seen: set[str] = set()
            for element in slide.elements:
                self._validate_element(element)
                if element.id in seen:
                    raise ValueError(
                        ERR_DUPLICATE_ID.format(element_id=element.id, slide=position)
                    )
                seen.add(element.id)
        self.slides.insert(position, slide)
        return slide

    def remove_slide(self, index: int) -> Slide:
        self.slide(index)
        return self.slides.pop(index)

    def duplicate_slide(self, index: int) -> Slide:
        """Insert a deep copy of slide ``index`` right after it."""
        copy = self.slide(index).copy(fresh_ids=True)
        self.slides.insert(index + 1, copy)
        return copy

    def move_slide(self, from_index: int, to_index: int) -> None:
        self.slide(from_index)
        self.slide(to_index)
        self.slides.insert(to_index, self.slides.pop(from_index))

    # -- elements -----------------------------------------------------

    def _validate_element(self, element: Element) -> None:
        validate_element(element)
        if element.style_name is not None:
            self.get_style(element.style_name)

    def add_element(
        self, slide_index: int, element: Element, index: int | None = None
    ) -> Element:
        """Insert ``element`` on a slide; ``index`` is the z-position (end = front)."""
        slide = self.slide(slide_index)
        position = self._check_position(index, len(slide.elements))
        self._validate_element(element)
        if slide.get(element.id) is not None:
            raise ValueError(ERR_DUPLICATE_ID.format(element_id=element.id, slide=slide_index))
        slide.elements.insert(position, element)
        return element

    def remove_element(self, slide_index: int, element_id: str) -> Element:
        slide = self.slide(slide_index)
        return slide.elements.pop(slide.index_of(element_id, slide_index))

    def update_element(self, slide_index: int, element_id: str, **changes: object) -> Element:
        """Replace fields of an element.

        The replacement is built with :func:`dataclasses.replace` and validated
        before it is swapped in. The element type and ``id`` are fixed; unknown
        field names raise ``TypeError``.
        """
        slide = self.slide(slide_index)
        position = slide.index_of(element_id, slide_index)
        if "id" in changes:
            raise ValueError(ERR_IMMUTABLE_ID)
        updated = dataclasses.replace(slide.elements[position], **changes)
        self._validate_element(updated)
        slide.elements[position] = updated
        return updated

    def move_element(self, slide_index: int, element_id: str, to_index: int) -> None:
        """Move an element to z-position ``to_index`` on its slide."""
        slide = self.slide(slide_index)
        position = slide.index_of(element_id, slide_index)
        total = len(slide.elements)
        if not isinstance(to_index, int) or not 0 <= to_index < total:
            raise IndexOutOfRangeError.position(to_index, total - 1)
        slide.elements.insert(to_index, slide.elements.pop(position))

    # -- styles -------------------------------------------------------

    def set_style(self, style: Style) -> int:
        """Add or replace a named style and re-apply it to every user.

        Returns the number of elements that were updated.
        """
        validate_style(style)
        updates: list[tuple[Slide, int, Element]] = []
        for slide in self.slides:
            for position, element in enumerate(slide.elements):
                if element.style_name == style.name:
                    styled = apply_style(element, style)
                    validate_element(styled)
                    updates.append((slide, position, styled))
        self.styles[style.name] = style
        for slide, position, styled in updates:
            slide.elements[position] = styled
        return len(updates)

    def apply_style(self, slide_index: int, element_id: str, name: str) -> Element:
        slide = self.slide(slide_index)
        position = slide.index_of(element_id, slide_index)
        style = self.get_style(name)
        validate_style(style)
        styled = apply_style(slide.elements[position], style)
        validate_element(styled)
        slide.elements[position] = styled
        return styled

    def remove_style(self, name: str) -> Style:
        """Delete a style; elements keep their properties but lose the reference."""
        style = self.get_style(name)
        del self.styles[name]
        for slide in self.slides:
            for position, element in enumerate(slide.elements):
                if element.style_name == name:
                    slide.elements[position] = dataclasses.replace(element, style_name=None)
        return style

    # -- assets -------------------------------------------------------

    def add_image(self, data: bytes, mime: str | None = None) -> str:
        """Store image bytes and return their asset key."""
        mime = mime or sniff_mime(data)
        if mime is None:
            raise ValueError(ERR_UNKNOWN_MIME)
        return self.assets.add(data, mime)


__all__ = ["Document", "Metadata"]
