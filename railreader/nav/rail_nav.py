"""
Rail navigation state machine.

``RailNav`` walks the navigable blocks of one ``PageAnalysis`` line by
line.  Above the configured zoom threshold it is *active*: every cursor
move produces an eased snap of the camera to the start of the current
line, and held horizontal input scrolls along the line with a velocity
ramp, clamped so the viewport never leaves the active block.

Horizontal scrolling uses the continuous velocity-ramp design:
``speed = start + (max - start) * t²`` with ``t = hold / ramp`` capped at
1, integrated every frame as ``delta = speed * dt * zoom``.

All time is measured on a frame clock advanced by ``tick(dt)``, so the
navigator is deterministic for a given sequence of frame deltas.

The navigator belongs to the foreground frame loop and is not thread
safe.  Every public operation is total: on an empty navigable set or
while inactive it does nothing and returns a neutral value.
"""

import logging
from typing import Iterable, List, Optional, Tuple

from ..config import RailConfig
from ..layout.models import LayoutBlock, LineBand, PageAnalysis
from .models import Camera, NavResult, ScrollDirection, ScrollState, SnapAnimation

logger = logging.getLogger(__name__)

BLOCK_MARGIN_RATIO = 0.05
LINE_START_MARGIN_RATIO = 0.05


def ease_out_cubic(t: float) -> float:
    """``1 - (1 - t)^3`` with *t* clamped to [0, 1]."""
    t = min(max(t, 0.0), 1.0)
    return 1.0 - (1.0 - t) ** 3


def _block_lines(block: LayoutBlock) -> Tuple[LineBand, ...]:
    """The block's lines, or one band spanning it when none were detected."""
    if block.lines:
        return block.lines
    return (LineBand(y=block.bbox.y + block.bbox.h / 2.0, height=block.bbox.h),)


class RailNav:
    """
    Cursor and camera-animation state over one page's navigable blocks.

    Usage::

        nav = RailNav(config)
        nav.set_analysis(analysis)
        nav.update_zoom(camera, vw, vh)
        if nav.next_line() is NavResult.OK:
            nav.start_snap_to_current(camera, vw, vh)
        while nav.tick(camera, dt, vw):
            redraw()
    """

    def __init__(self, config: Optional[RailConfig] = None):
        self.config = config or RailConfig()
        self._analysis: Optional[PageAnalysis] = None
        self._navigable: List[int] = []

        self.current_block = 0
        self.current_line = 0
        self.active = False

        self._snap: Optional[SnapAnimation] = None
        self._scroll: Optional[ScrollState] = None
        self._clock = 0.0

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------

    def set_analysis(
        self, analysis: PageAnalysis, navigable: Optional[Iterable[int]] = None
    ) -> None:
        """
        Re-seed the navigator with a page analysis.

        The navigable index is recomputed from *navigable* (defaults to
        the configured class set); the cursor and animations are reset.
        """
        if navigable is None:
            navigable = self.config.navigable_classes
        self._navigable = analysis.navigable_indices(navigable)
        self._analysis = analysis
        self.current_block = 0
        self.current_line = 0
        self._snap = None
        self._scroll = None

        if not self._navigable and self.active:
            self.active = False
            logger.debug("No navigable blocks on new page, rail deactivated")

    def update_config(self, config: RailConfig) -> None:
        self.config = config

    @property
    def analysis(self) -> Optional[PageAnalysis]:
        return self._analysis

    @property
    def has_analysis(self) -> bool:
        return self._analysis is not None and bool(self._navigable)

    @property
    def navigable_count(self) -> int:
        return len(self._navigable)

    @property
    def navigable_indices(self) -> List[int]:
        return list(self._navigable)

    # ------------------------------------------------------------------
    # Activation
    # ------------------------------------------------------------------

    def update_zoom(self, camera: Camera, viewport_w: float, viewport_h: float) -> bool:
        """
        Enter or leave rail mode for the camera's current zoom.

        Entering selects the block nearest the viewport centre.  Leaving
        cancels any snap and scroll.

        Returns:
            True if the active state changed.
        """
        should_be_active = camera.zoom >= self.config.rail_zoom_threshold and self.has_analysis

        if should_be_active and not self.active:
            self.active = True
            self.find_nearest_block(camera, viewport_w, viewport_h)
            logger.debug("Rail active at zoom %.2f, block %d", camera.zoom, self.current_block)
            return True
        if not should_be_active and self.active:
            self.active = False
            self._snap = None
            self._scroll = None
            logger.debug("Rail inactive at zoom %.2f", camera.zoom)
            return True
        return False

    def find_nearest_block(
        self, camera: Camera, viewport_w: float, viewport_h: float
    ) -> Optional[int]:
        """
        Move the cursor to the navigable block whose centre is closest to
        the viewport centre (in page coordinates), line 0.

        Returns:
            The selected navigable index, or None if there is none.
        """
        if not self.has_analysis:
            return None

        cx, cy = camera.screen_to_page(viewport_w / 2.0, viewport_h / 2.0)

        best_idx = 0
        best_dist = float("inf")
        for i, block_idx in enumerate(self._navigable):
            bx, by = self._analysis.blocks[block_idx].bbox.center
            dist = (bx - cx) ** 2 + (by - cy) ** 2
            if dist < best_dist:
                best_dist = dist
                best_idx = i

        self.current_block = best_idx
        self.current_line = 0
        return best_idx

    # ------------------------------------------------------------------
    # Cursor
    # ------------------------------------------------------------------

    def _can_navigate(self) -> bool:
        return self.active and bool(self._navigable)

    def next_line(self) -> NavResult:
        """
        Step to the next line, the next block, or signal the page end.

        ``PAGE_BOUNDARY_NEXT`` leaves the cursor untouched; the caller
        loads the next page and re-seeds.
        """
        if not self._can_navigate():
            return NavResult.OK

        if self.current_line + 1 < self.current_line_count:
            self.current_line += 1
            return NavResult.OK
        if self.current_block + 1 < len(self._navigable):
            self.current_block += 1
            self.current_line = 0
            return NavResult.OK
        return NavResult.PAGE_BOUNDARY_NEXT

    def prev_line(self) -> NavResult:
        """Mirror of ``next_line``; lands on the last line of the previous block."""
        if not self._can_navigate():
            return NavResult.OK

        if self.current_line > 0:
            self.current_line = min(self.current_line - 1, self.current_line_count - 1)
            return NavResult.OK
        if self.current_block > 0:
            self.current_block -= 1
            self.current_line = self.current_line_count - 1
            return NavResult.OK
        return NavResult.PAGE_BOUNDARY_PREV

    def jump_to_end(self) -> None:
        """Put the cursor on the last line of the last block."""
        if not self._navigable:
            return
        self.current_block = len(self._navigable) - 1
        self.current_line = self.current_line_count - 1

    def select_block(self, index: int) -> None:
        """Move to navigable block *index* (clamped), line 0."""
        if not self._navigable:
            return
        self.current_block = min(max(index, 0), len(self._navigable) - 1)
        self.current_line = 0

    def find_block_at_point(self, page_x: float, page_y: float) -> Optional[int]:
        """Navigable index of the first block containing the page point."""
        if self._analysis is None:
            return None
        for i, block_idx in enumerate(self._navigable):
            if self._analysis.blocks[block_idx].bbox.contains(page_x, page_y):
                return i
        return None

    @property
    def current_navigable_block(self) -> Optional[LayoutBlock]:
        if not self._navigable:
            return None
        idx = min(self.current_block, len(self._navigable) - 1)
        return self._analysis.blocks[self._navigable[idx]]

    @property
    def current_line_count(self) -> int:
        block = self.current_navigable_block
        return len(_block_lines(block)) if block is not None else 0

    @property
    def current_line_info(self) -> Optional[LineBand]:
        block = self.current_navigable_block
        if block is None:
            return None
        lines = _block_lines(block)
        return lines[min(self.current_line, len(lines) - 1)]

    def status_text(self) -> str:
        """``"Block i/N | Line j/M"`` for the status bar, empty when inactive."""
        if not self._can_navigate():
            return ""
        return (
            f"Block {self.current_block + 1}/{len(self._navigable)} | "
            f"Line {self.current_line + 1}/{self.current_line_count}"
        )

    # ------------------------------------------------------------------
    # Horizontal scroll
    # ------------------------------------------------------------------

    def start_scroll(self, direction: ScrollDirection) -> None:
        """Begin (or keep) a scroll hold; a new direction restarts the ramp."""
        if not self._can_navigate():
            return
        if self._scroll is None or self._scroll.direction is not direction:
            self._scroll = ScrollState(direction=direction, hold_start=self._clock)

    def stop_scroll(self) -> None:
        self._scroll = None

    @property
    def is_scrolling(self) -> bool:
        return self._scroll is not None

    def scroll_speed(self) -> float:
        """Current ramped speed in page points per second (0 when idle)."""
        if self._scroll is None:
            return 0.0
        cfg = self.config
        hold = self._clock - self._scroll.hold_start
        t = min(hold / cfg.scroll_ramp_time, 1.0)
        return cfg.scroll_speed_start + (cfg.scroll_speed_max - cfg.scroll_speed_start) * t * t

    def clamp_x(self, camera_x: float, zoom: float, viewport_w: float) -> float:
        """
        Keep the viewport on the active block.

        The block is widened by 5% of its width on each side.  If it fits
        on screen it is centred; otherwise *camera_x* is clamped so that
        neither block edge scrolls past the matching viewport edge.
        """
        block = self.current_navigable_block
        if block is None:
            return camera_x

        margin = block.bbox.w * BLOCK_MARGIN_RATIO
        left = block.bbox.x - margin
        right = block.bbox.right + margin

        if (right - left) * zoom <= viewport_w:
            center = (left + right) / 2.0
            return viewport_w / 2.0 - center * zoom

        max_x = -left * zoom
        min_x = viewport_w - right * zoom
        return min(max(camera_x, min_x), max_x)

    # ------------------------------------------------------------------
    # Snap
    # ------------------------------------------------------------------

    def compute_target_camera(
        self, zoom: float, viewport_w: float, viewport_h: float
    ) -> Optional[Tuple[float, float]]:
        """
        Camera offset showing the start of the current line: the line
        centred vertically, the block's left edge a 5% viewport margin
        from the left.
        """
        block = self.current_navigable_block
        line = self.current_line_info
        if block is None or line is None:
            return None
        target_y = viewport_h / 2.0 - line.y * zoom
        target_x = viewport_w * LINE_START_MARGIN_RATIO - block.bbox.x * zoom
        return target_x, target_y

    def start_snap_to_current(
        self, camera: Camera, viewport_w: float, viewport_h: float
    ) -> None:
        """Start an eased transition from the camera to the current line start."""
        if not self._can_navigate():
            return

        target = self.compute_target_camera(camera.zoom, viewport_w, viewport_h)
        if target is None:
            return
        self._snap = SnapAnimation(
            start_x=camera.offset_x,
            start_y=camera.offset_y,
            target_x=target[0],
            target_y=target[1],
            start_time=self._clock,
            duration=self.config.snap_duration_ms / 1000.0,
        )

    @property
    def is_snapping(self) -> bool:
        return self._snap is not None

    @property
    def is_animating(self) -> bool:
        return self._snap is not None or self._scroll is not None

    # ------------------------------------------------------------------
    # Frame update
    # ------------------------------------------------------------------

    def tick(self, camera: Camera, dt: float, viewport_w: float) -> bool:
        """
        Advance snap and scroll by *dt* seconds, moving *camera* in place.

        Returns:
            True while another frame is needed.
        """
        dt = max(dt, 0.0)
        self._clock += dt
        animating = False

        snap = self._snap
        if snap is not None:
            t = snap.progress(self._clock)
            eased = ease_out_cubic(t)
            camera.offset_x = snap.start_x + (snap.target_x - snap.start_x) * eased
            camera.offset_y = snap.start_y + (snap.target_y - snap.start_y) * eased
            if t >= 1.0:
                self._snap = None
            else:
                animating = True

        if self._scroll is not None:
            delta = self.scroll_speed() * dt * camera.zoom
            if self._scroll.direction is ScrollDirection.FORWARD:
                new_x = camera.offset_x - delta
            else:
                new_x = camera.offset_x + delta
            camera.offset_x = self.clamp_x(new_x, camera.zoom, viewport_w)
            animating = True

        return animating

    def __repr__(self) -> str:
        state = "active" if self.active else "inactive"
        return (
            f"RailNav({state}, block={self.current_block}/{len(self._navigable)}, "
            f"line={self.current_line})"
        )
