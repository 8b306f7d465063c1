"""Rail navigation: camera, cursor state machine and animation."""

from .models import Camera, NavResult, ScrollDirection, ScrollState, SnapAnimation
from .rail_nav import RailNav, ease_out_cubic

__all__ = [
    "Camera",
    "NavResult",
    "ScrollDirection",
    "ScrollState",
    "SnapAnimation",
    "RailNav",
    "ease_out_cubic",
]
