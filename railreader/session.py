"""
Reader session: the foreground controller for one open document.

``ReaderSession`` owns the camera, the rail navigator and the per-page
analysis cache.  It asks the background ``AnalysisWorker`` for pages it
has not analysed yet, applies results as they arrive, pre-analyses a few
pages ahead and carries line navigation across page boundaries.

The page source is duck-typed: anything with ``page_count``,
``dimensions(page)`` and ``render_raster(page)`` works, e.g.
``PDFAdapter``.

All methods must be called from the foreground thread.
"""

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum, auto
from typing import Deque, Dict, FrozenSet, Iterable, Optional

from .config import RailConfig
from .layout.analyzer import fallback_analysis, resegment
from .layout.models import PageAnalysis
from .nav.models import Camera, NavResult, ScrollDirection
from .nav.rail_nav import RailNav
from .worker import AnalysisRequest, AnalysisWorker

logger = logging.getLogger(__name__)


class _Entry(Enum):
    """Where the cursor lands when a page's analysis is applied."""

    NEAREST = auto()
    START = auto()
    END = auto()


@dataclass
class CacheEntry:
    """
    A cached page analysis.

    Attributes:
        analysis:    The page analysis.
        navigable:   Class set its lines were segmented for.
        is_fallback: True for the strip fallback (never re-segmented).
    """

    analysis: PageAnalysis
    navigable: FrozenSet[int]
    is_fallback: bool = False


class ReaderSession:
    """
    Page-level controller tying analysis, cache and navigation together.

    Usage::

        with PDFAdapter(path) as pdf:
            session = ReaderSession(pdf, AnalysisWorker(LayoutDetector()))
            session.go_to_page(0)
            session.set_zoom(4.0)
            while running:
                handle_input(session)
                if session.tick(dt):
                    redraw(session.camera)
    """

    def __init__(
        self,
        source,
        worker: Optional[AnalysisWorker] = None,
        config: Optional[RailConfig] = None,
        viewport_w: float = 800.0,
        viewport_h: float = 600.0,
        render_target: int = 800,
    ):
        """
        Args:
            source:        Page source (``page_count``, ``dimensions``,
                           ``render_raster``).
            worker:        Background analyser.  ``None`` applies the
                           fallback analysis to every page.
            config:        Rail configuration.  Defaults to ``RailConfig()``.
            viewport_w:    Viewport width in screen pixels.
            viewport_h:    Viewport height in screen pixels.
            render_target: Longer raster side handed to the detector.
        """
        self.source = source
        self.worker = worker
        self.config = config or RailConfig()
        self.viewport_w = viewport_w
        self.viewport_h = viewport_h
        self.render_target = render_target

        self.camera = Camera()
        self.nav = RailNav(self.config)

        self.current_page = 0
        self.analysis_cache: Dict[int, CacheEntry] = {}
        self.pending_rail_setup = False
        self._lookahead: Deque[int] = deque()
        self._entry = _Entry.NEAREST

    @property
    def page_count(self) -> int:
        return self.source.page_count

    @property
    def navigable_classes(self) -> FrozenSet[int]:
        return self.config.navigable_classes

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    def _fallback_entry(self, page: int) -> CacheEntry:
        page_w, page_h = self.source.dimensions(page)
        return CacheEntry(
            analysis=fallback_analysis(page_w, page_h),
            navigable=self.navigable_classes,
            is_fallback=True,
        )

    def submit_analysis(self, page: int) -> Optional[CacheEntry]:
        """
        Make sure *page* is being analysed.

        Without a worker, or when the page cannot be rendered, the
        fallback is cached and returned at once.  Otherwise the page is
        submitted (unless already in flight) and ``None`` is returned.
        """
        if self.worker is None:
            entry = self._fallback_entry(page)
            self.analysis_cache[page] = entry
            return entry

        if self.worker.is_in_flight(page):
            return None

        try:
            raster = self.source.render_raster(page, self.render_target)
        except Exception as e:
            logger.warning("Could not render page %d, using fallback: %s", page, e)
            entry = self._fallback_entry(page)
            self.analysis_cache[page] = entry
            return entry

        self.worker.submit(AnalysisRequest(page, raster, self.navigable_classes))
        return None

    def _lookup(self, page: int) -> Optional[CacheEntry]:
        """Cached entry for *page*, re-segmented if the class set changed."""
        entry = self.analysis_cache.get(page)
        if entry is None or entry.is_fallback:
            return entry
        if entry.navigable == self.navigable_classes:
            return entry

        try:
            raster = self.source.render_raster(page, self.render_target)
            analysis = resegment(
                entry.analysis, raster.rgb, raster.px_w, raster.px_h, self.navigable_classes
            )
        except Exception as e:
            logger.warning("Could not re-segment page %d: %s", page, e)
            return entry

        entry = CacheEntry(analysis=analysis, navigable=self.navigable_classes)
        self.analysis_cache[page] = entry
        logger.debug("Re-segmented page %d for %d navigable classes", page, len(entry.navigable))
        return entry

    def _apply(self, entry: CacheEntry) -> None:
        """Re-seed navigation from *entry* and place the cursor."""
        self.nav.set_analysis(entry.analysis, self.navigable_classes)
        self.nav.update_zoom(self.camera, self.viewport_w, self.viewport_h)
        if self._entry is _Entry.END:
            self.nav.jump_to_end()
        elif self._entry is _Entry.START:
            self.nav.select_block(0)
        self._entry = _Entry.NEAREST
        if self.nav.active:
            self.nav.start_snap_to_current(self.camera, self.viewport_w, self.viewport_h)

    def poll_worker(self) -> bool:
        """
        Collect finished analyses.

        Every result is cached; one for the current page is applied to
        navigation only while ``pending_rail_setup`` is set.

        Returns:
            True if any result arrived.
        """
        if self.worker is None:
            return False

        results = self.worker.poll()
        for result in results:
            self.analysis_cache[result.page] = CacheEntry(
                analysis=result.analysis,
                navigable=result.navigable,
                is_fallback=result.is_fallback,
            )
            if result.page == self.current_page and self.pending_rail_setup:
                self.pending_rail_setup = False
                self._apply(self._lookup(result.page))
                logger.debug("Applied analysis for current page %d", result.page)
        return bool(results)

    # ------------------------------------------------------------------
    # Lookahead
    # ------------------------------------------------------------------

    def _needs_analysis(self, page: int) -> bool:
        if page in self.analysis_cache:
            return False
        return self.worker is None or not self.worker.is_in_flight(page)

    def queue_lookahead(self) -> None:
        """Queue up to ``analysis_lookahead_pages`` following uncached pages."""
        self._lookahead.clear()
        if self.worker is None:
            return
        last = min(
            self.current_page + self.config.analysis_lookahead_pages,
            self.page_count - 1,
        )
        for page in range(self.current_page + 1, last + 1):
            if self._needs_analysis(page):
                self._lookahead.append(page)

    def submit_pending_lookahead(self) -> bool:
        """
        Submit one queued lookahead page, only while the worker is idle.

        Returns:
            True if a page was submitted.
        """
        if self.worker is None or not self.worker.is_idle:
            return False
        while self._lookahead:
            page = self._lookahead.popleft()
            if self._needs_analysis(page):
                self.submit_analysis(page)
                logger.debug("Lookahead: submitted page %d", page)
                return True
        return False

    @property
    def has_pending_lookahead(self) -> bool:
        return bool(self._lookahead)

    # ------------------------------------------------------------------
    # Pages
    # ------------------------------------------------------------------

    def go_to_page(self, page: int) -> None:
        """
        Show *page* (clamped to the document).

        A cached analysis is applied at once; otherwise navigation is
        emptied and ``pending_rail_setup`` waits for the worker.
        """
        self._show_page(page, _Entry.NEAREST)

    def _show_page(self, page: int, entry_mode: _Entry) -> None:
        page = min(max(page, 0), self.page_count - 1)
        self.current_page = page
        self._entry = entry_mode
        self.pending_rail_setup = False

        entry = self._lookup(page)
        if entry is None:
            entry = self.submit_analysis(page)
        if entry is not None:
            self._apply(entry)
        else:
            page_w, page_h = self.source.dimensions(page)
            self.nav.set_analysis(PageAnalysis(page_width=page_w, page_height=page_h))
            self.pending_rail_setup = True

        self.queue_lookahead()
        logger.debug("Page %d/%d (pending=%s)", page + 1, self.page_count, self.pending_rail_setup)

    def next_line(self) -> NavResult:
        """Advance one line, moving to the next page at the page end."""
        result = self.nav.next_line()
        if result is NavResult.PAGE_BOUNDARY_NEXT:
            if self.current_page + 1 < self.page_count:
                self._show_page(self.current_page + 1, _Entry.START)
        elif self.nav.active:
            self.nav.start_snap_to_current(self.camera, self.viewport_w, self.viewport_h)
        return result

    def prev_line(self) -> NavResult:
        """Go back one line, landing on the end of the previous page."""
        result = self.nav.prev_line()
        if result is NavResult.PAGE_BOUNDARY_PREV:
            if self.current_page > 0:
                self._show_page(self.current_page - 1, _Entry.END)
        elif self.nav.active:
            self.nav.start_snap_to_current(self.camera, self.viewport_w, self.viewport_h)
        return result

    # ------------------------------------------------------------------
    # View
    # ------------------------------------------------------------------

    def set_viewport(self, viewport_w: float, viewport_h: float) -> None:
        self.viewport_w = viewport_w
        self.viewport_h = viewport_h

    def set_zoom(self, zoom: float) -> bool:
        """
        Change zoom, updating rail activity.

        Returns:
            True if rail mode switched on or off.
        """
        self.camera.set_zoom(zoom)
        changed = self.nav.update_zoom(self.camera, self.viewport_w, self.viewport_h)
        if self.nav.active:
            self.nav.start_snap_to_current(self.camera, self.viewport_w, self.viewport_h)
        return changed

    def select_block_at(self, screen_x: float, screen_y: float) -> bool:
        """Put the cursor on the navigable block under a screen point."""
        page_x, page_y = self.camera.screen_to_page(screen_x, screen_y)
        index = self.nav.find_block_at_point(page_x, page_y)
        if index is None:
            return False
        self.nav.select_block(index)
        if self.nav.active:
            self.nav.start_snap_to_current(self.camera, self.viewport_w, self.viewport_h)
        return True

    def start_scroll(self, direction: ScrollDirection) -> None:
        self.nav.start_scroll(direction)

    def stop_scroll(self) -> None:
        self.nav.stop_scroll()

    def set_navigable_classes(self, classes: Iterable[int]) -> None:
        """
        Change which classes the rail stops on.

        The current page is re-segmented and navigation re-seeded; other
        cached pages are re-segmented when next visited.
        """
        self.update_config(self.config.with_navigable(classes))

    def update_config(self, config: RailConfig) -> None:
        """
        Replace the rail configuration.

        A changed navigable set re-seeds the current page the same way
        ``set_navigable_classes`` does.
        """
        changed = config.navigable_classes != self.config.navigable_classes
        self.config = config
        self.nav.update_config(config)
        if not changed:
            return

        entry = self._lookup(self.current_page)
        if entry is not None and not self.pending_rail_setup:
            self._apply(entry)
        logger.info("Navigable classes: %d", len(config.navigable_classes))

    # ------------------------------------------------------------------
    # Frame loop
    # ------------------------------------------------------------------

    def tick(self, dt: float) -> bool:
        """
        One frame: poll the worker, feed lookahead, advance animation.

        Returns:
            True while more frames are needed.
        """
        self.poll_worker()
        self.submit_pending_lookahead()
        animating = self.nav.tick(self.camera, dt, self.viewport_w)
        busy = self.worker is not None and not self.worker.is_idle
        return animating or busy or bool(self._lookahead)

    def status_text(self) -> str:
        """``"Page p/P"`` followed by the rail status when active."""
        text = f"Page {self.current_page + 1}/{self.page_count}"
        rail = self.nav.status_text()
        return f"{text} | {rail}" if rail else text

    def close(self) -> None:
        if self.worker is not None:
            self.worker.shutdown()

    def __repr__(self) -> str:
        return (
            f"ReaderSession(page={self.current_page + 1}/{self.page_count}, "
            f"cached={sorted(self.analysis_cache)}, {self.nav!r})"
        )
