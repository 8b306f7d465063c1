"""
Data models for rail navigation: camera, results and animation state.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Tuple

ZOOM_MIN = 0.1
ZOOM_MAX = 20.0


class NavResult(Enum):
    """Outcome of a line step."""

    OK = auto()
    PAGE_BOUNDARY_NEXT = auto()
    PAGE_BOUNDARY_PREV = auto()


class ScrollDirection(Enum):
    """Horizontal scroll direction while input is held."""

    FORWARD = auto()
    BACKWARD = auto()


@dataclass
class Camera:
    """
    Page-to-screen transform.

    A page point ``(px, py)`` is drawn at
    ``(px * zoom + offset_x, py * zoom + offset_y)``.
    """

    offset_x: float = 0.0
    offset_y: float = 0.0
    zoom: float = 1.0

    def set_zoom(self, zoom: float) -> None:
        self.zoom = min(max(zoom, ZOOM_MIN), ZOOM_MAX)

    def screen_to_page(self, sx: float, sy: float) -> Tuple[float, float]:
        """Inverse transform of a screen point into page coordinates."""
        return ((sx - self.offset_x) / self.zoom, (sy - self.offset_y) / self.zoom)

    def __repr__(self) -> str:
        return (
            f"Camera(offset=({self.offset_x:.1f}, {self.offset_y:.1f}), "
            f"zoom={self.zoom:.2f})"
        )


@dataclass
class SnapAnimation:
    """Eased camera move; times are seconds on the navigator's frame clock."""

    start_x: float
    start_y: float
    target_x: float
    target_y: float
    start_time: float
    duration: float

    def progress(self, now: float) -> float:
        if self.duration <= 0:
            return 1.0
        return min(max((now - self.start_time) / self.duration, 0.0), 1.0)


@dataclass
class ScrollState:
    """An active horizontal scroll hold."""

    direction: ScrollDirection
    hold_start: float
