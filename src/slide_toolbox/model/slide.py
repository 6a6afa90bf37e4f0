"""Slides: ordered element lists with a size and background."""

from __future__ import annotations

from dataclasses import dataclass, field

from slide_toolbox.errors import IndexOutOfRangeError
from slide_toolbox.model.elements import Element, copy_element, new_id
from slide_toolbox.model.geometry import DEFAULT_SLIDE_SIZE, Size
from slide_toolbox.model.style import WHITE, Color


@dataclass(slots=True)
class Slide:
    """A single slide.

    ``elements`` is ordered back to front; an element's position in the list
    is its z-order.
    """

    elements: list[Element] = field(default_factory=list)
    size: Size = DEFAULT_SLIDE_SIZE
    background: Color | None = WHITE
    notes: str = ""
    id: str = field(default_factory=new_id)

    def index_of(self, element_id: str, slide_index: int = 0) -> int:
        for position, element in enumerate(self.elements):
            if element.id == element_id:
                return position
        raise IndexOutOfRangeError.element(element_id, slide_index)

    def z_index(self, element_id: str) -> int:
        """Return the stacking position of ``element_id`` (0 is the back)."""
        return self.index_of(element_id)

    def get(self, element_id: str) -> Element | None:
        return next((e for e in self.elements if e.id == element_id), None)

    def copy(self, *, fresh_ids: bool = False) -> Slide:
        """Return a deep copy of the slide, optionally with new identifiers."""
        return Slide(
            elements=[copy_element(e, fresh_id=fresh_ids) for e in self.elements],
            size=self.size,
            background=self.background,
            notes=self.notes,
            id=new_id() if fresh_ids else self.id,
        )


__all__ = ["Slide"]
