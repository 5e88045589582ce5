"""Geometry types and layout providers.

A layout provider answers the two questions the overlay needs: where is this
node in viewport coordinates, and how large is the viewport.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol


@dataclass(frozen=True, slots=True)
class Rect:
    left: float = 0.0
    top: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    def translated(self, dx: float, dy: float) -> Rect:
        return Rect(self.left + dx, self.top + dy, self.width, self.height)


@dataclass(frozen=True, slots=True)
class OverlayGeometry:
    left: float
    top: float
    width: float
    height: float

    @classmethod
    def from_rect(cls, rect: Rect) -> OverlayGeometry:
        return cls(rect.left, rect.top, rect.width, rect.height)

    def to_dict(self) -> dict[str, float]:
        return {"left": self.left, "top": self.top, "width": self.width, "height": self.height}


class Layout(Protocol):
    def bounding_rect(self, node: Any) -> Rect: ...

    def viewport(self) -> tuple[float, float]: ...


class StaticLayout:
    """Layout with explicitly assigned boxes.

    Boxes are given in document coordinates; `scroll_to`/`scroll_by` shift what
    `bounding_rect` reports, the way scrolling shifts `getBoundingClientRect()`.
    Nodes without a box can still be measured by their `id` attribute through
    `set_size`, which is how the tooltip gets a size.
    """

    def __init__(self, viewport: tuple[float, float] = (1280.0, 720.0)) -> None:
        self._viewport = (float(viewport[0]), float(viewport[1]))
        self._boxes: dict[int, tuple[Any, Rect]] = {}
        self._sizes: dict[str, tuple[float, float]] = {}
        self.scroll_x = 0.0
        self.scroll_y = 0.0

    def set_rect(self, node: Any, rect: Rect) -> None:
        self._boxes[id(node)] = (node, rect)

    def set_size(self, element_id: str, width: float, height: float) -> None:
        self._sizes[element_id] = (float(width), float(height))

    def scroll_to(self, x: float, y: float) -> None:
        self.scroll_x = float(x)
        self.scroll_y = float(y)

    def scroll_by(self, dx: float, dy: float) -> None:
        self.scroll_to(self.scroll_x + dx, self.scroll_y + dy)

    def resize(self, width: float, height: float) -> None:
        self._viewport = (float(width), float(height))

    def bounding_rect(self, node: Any) -> Rect:
        entry = self._boxes.get(id(node))
        if entry is not None and entry[0] is node:
            return entry[1].translated(-self.scroll_x, -self.scroll_y)
        size = self._sizes.get(node.get("id") or "") if hasattr(node, "get") else None
        if size is not None:
            return Rect(0.0, 0.0, size[0], size[1])
        return Rect()

    def viewport(self) -> tuple[float, float]:
        return self._viewport
