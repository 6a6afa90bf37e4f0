"""Drawing surface protocol and the recording display list."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from slide_toolbox.model.geometry import Rect, Size
from slide_toolbox.model.images import DecodedImage
from slide_toolbox.model.style import Color, FontStyle


@dataclass(frozen=True, slots=True)
class PlacedRun:
    """A shaped text fragment in device units.

    ``x`` is the left edge and ``baseline`` the baseline position. ``font``
    already carries the device font size; ``fontname`` is the Base-14 name
    the fragment was measured with.
    """

    text: str
    x: float
    baseline: float
    font: FontStyle
    fontname: str
    width: float


@runtime_checkable
class Surface(Protocol):
    """A paintable target.

    Path construction commands build the current path. :meth:`fill` and
    :meth:`stroke` paint it without consuming it; :meth:`begin_path` starts
    a new one.
    """

    def begin_path(self) -> None: ...

    def move_to(self, x: float, y: float) -> None: ...

    def line_to(self, x: float, y: float) -> None: ...

    def curve_to(
        self, x1: float, y1: float, x2: float, y2: float, x: float, y: float
    ) -> None: ...

    def close_path(self) -> None: ...

    def fill(self, color: Color) -> None: ...

    def stroke(self, color: Color, width: float) -> None: ...

    def set_clip(self, rect: Rect | None) -> None: ...

    def set_rotation(self, rect: Rect | None, degrees: float = 0.0) -> None:
        """Turn what follows clockwise about the centre of ``rect``; ``None`` resets."""

    def draw_text_run(self, run: PlacedRun) -> None: ...

    def draw_image(self, image: DecodedImage, rect: Rect) -> None: ...


Command = tuple[Any, ...]


class RecordingSurface:
    """Record drawing commands as a display list.

    Interactive views replay the list onto their toolkit canvas; tests
    compare lists to check that rendering is deterministic.
    """

    def __init__(self) -> None:
        self.commands: list[Command] = []

    def begin_path(self) -> None:
        self.commands.append(("begin_path",))

    def move_to(self, x: float, y: float) -> None:
        self.commands.append(("move_to", x, y))

    def line_to(self, x: float, y: float) -> None:
        self.commands.append(("line_to", x, y))

    def curve_to(self, x1: float, y1: float, x2: float, y2: float, x: float, y: float) -> None:
        self.commands.append(("curve_to", x1, y1, x2, y2, x, y))

    def close_path(self) -> None:
        self.commands.append(("close_path",))

    def fill(self, color: Color) -> None:
        self.commands.append(("fill", color))

    def stroke(self, color: Color, width: float) -> None:
        self.commands.append(("stroke", color, width))

    def set_clip(self, rect: Rect | None) -> None:
        self.commands.append(("set_clip", rect))

    def set_rotation(self, rect: Rect | None, degrees: float = 0.0) -> None:
        self.commands.append(("set_rotation", rect, degrees))

    def draw_text_run(self, run: PlacedRun) -> None:
        self.commands.append(("text", run))

    def draw_image(self, image: DecodedImage, rect: Rect) -> None:
        self.commands.append(("image", image.key, rect))

    def replay(self, target: Surface) -> None:
        """Send the recorded commands to another surface.

        Image commands only carry the asset key, so they are skipped here;
        views that replay images resolve the key through their document.
        """
        for name, *args in self.commands:
            match name:
                case "text":
                    target.draw_text_run(*args)
                case "image":
                    continue
                case _:
                    getattr(target, name)(*args)

    def ops(self) -> list[str]:
        """Return the command names, which is handy in assertions."""
        return [command[0] for command in self.commands]


def fit_scale(slide_size: Size, viewport: Size) -> tuple[float, float, float]:
    """Return ``(scale, dx, dy)`` that centres a slide inside ``viewport``."""
    if slide_size.width <= 0 or slide_size.height <= 0:
        return 1.0, 0.0, 0.0
    scale = min(viewport.width / slide_size.width, viewport.height / slide_size.height)
    dx = (viewport.width - slide_size.width * scale) / 2
    dy = (viewport.height - slide_size.height * scale) / 2
    return scale, dx, dy


__all__ = ["PlacedRun", "RecordingSurface", "Surface", "fit_scale"]
