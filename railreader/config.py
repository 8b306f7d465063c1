"""
Runtime configuration for rail navigation and page analysis.

The host owns persistence; this module only defines the values, their
defaults and a plain-dict form in which navigable classes are stored by
name.
"""

import logging
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, FrozenSet, Iterable

from .layout.models import (
    DEFAULT_NAVIGABLE_CLASSES,
    class_index_to_name,
    class_name_to_index,
    is_known_class,
)

logger = logging.getLogger(__name__)


@dataclass
class RailConfig:
    """
    All tuneable parameters for rail reading.

    Attributes:
        rail_zoom_threshold:      Zoom level at which rail mode activates.
        snap_duration_ms:         Duration of snap animations in milliseconds.
        scroll_speed_start:       Horizontal scroll speed when a hold starts
                                  (page points per second).
        scroll_speed_max:         Scroll speed reached after the ramp.
        scroll_ramp_time:         Seconds to ramp from start to max speed.
        analysis_lookahead_pages: Pages ahead to pre-analyse (0 = disabled).
        navigable_classes:        Layout class ids the rail stops on.
    """

    rail_zoom_threshold: float = 3.0
    snap_duration_ms: float = 300.0
    scroll_speed_start: float = 10.0
    scroll_speed_max: float = 30.0
    scroll_ramp_time: float = 1.5
    analysis_lookahead_pages: int = 2
    navigable_classes: FrozenSet[int] = field(
        default_factory=lambda: DEFAULT_NAVIGABLE_CLASSES
    )

    def __post_init__(self):
        self.navigable_classes = frozenset(
            c for c in self.navigable_classes if is_known_class(c)
        )
        self.validate()

    def validate(self) -> None:
        """
        Check value ranges.

        Raises:
            ValueError: On a non-positive threshold, duration or ramp, a
                        negative speed or lookahead, or a max speed below
                        the start speed.
        """
        if self.rail_zoom_threshold <= 0:
            raise ValueError("rail_zoom_threshold must be positive")
        if self.snap_duration_ms <= 0:
            raise ValueError("snap_duration_ms must be positive")
        if self.scroll_ramp_time <= 0:
            raise ValueError("scroll_ramp_time must be positive")
        if self.scroll_speed_start < 0 or self.scroll_speed_max < 0:
            raise ValueError("scroll speeds must be non-negative")
        if self.scroll_speed_max < self.scroll_speed_start:
            raise ValueError("scroll_speed_max must be >= scroll_speed_start")
        if self.analysis_lookahead_pages < 0:
            raise ValueError("analysis_lookahead_pages must be non-negative")

    def with_navigable(self, classes: Iterable[int]) -> "RailConfig":
        """Return a copy with a different navigable class set."""
        data = asdict(self)
        data["navigable_classes"] = frozenset(classes)
        return RailConfig(**data)

    # ------------------------------------------------------------------
    # Dict form
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Plain dict with navigable classes as sorted class names."""
        data = asdict(self)
        data["navigable_classes"] = sorted(
            class_index_to_name(c) for c in self.navigable_classes
        )
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RailConfig":
        """
        Build a config from a dict produced by ``to_dict``.

        Unknown keys and unknown class names are ignored; missing keys
        take their defaults.
        """
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in known}

        names = kwargs.pop("navigable_classes", None)
        if names is not None:
            ids = set()
            for name in names:
                idx = class_name_to_index(str(name))
                if idx is None:
                    logger.warning("Ignoring unknown layout class '%s'", name)
                    continue
                ids.add(idx)
            kwargs["navigable_classes"] = frozenset(ids)

        return cls(**kwargs)
