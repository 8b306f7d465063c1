"""
Background layout analysis.

``AnalysisWorker`` runs detection plus post-processing for one page at a
time on a single background thread.  The foreground submits requests and
polls for finished results once per frame; nothing blocks the UI.

A worker without a detector, or a detector that raises, produces the
fallback analysis for the page instead of an error.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional

from .layout.analyzer import analyze_page, fallback_analysis
from .layout.models import PageAnalysis
from .utils.models import PageRaster

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisRequest:
    """
    One page to analyse.

    Attributes:
        page:      0-based page index.
        raster:    The rendered page the detector runs on.
        navigable: Class ids that get line segmentation.
    """

    page: int
    raster: PageRaster
    navigable: FrozenSet[int]


@dataclass(frozen=True)
class AnalysisResult:
    """
    Finished analysis for one page.

    Attributes:
        page:        0-based page index.
        analysis:    Ordered, line-annotated blocks.
        navigable:   Class set the lines were segmented for.
        is_fallback: True when the strip fallback was substituted.
    """

    page: int
    analysis: PageAnalysis
    navigable: FrozenSet[int]
    is_fallback: bool = False


class AnalysisWorker:
    """
    Single-threaded analysis queue with in-flight de-duplication.

    The ``detector`` only needs a ``detect_rows(image)`` method returning
    ``[cls, conf, x0, y0, x1, y1(, order)]`` rows for a PIL image, so
    ``LayoutDetector`` or any stand-in works.

    Usage::

        worker = AnalysisWorker(LayoutDetector())
        worker.submit(AnalysisRequest(page, raster, navigable))
        ...
        for result in worker.poll():
            cache[result.page] = result.analysis
    """

    def __init__(self, detector=None):
        self.detector = detector
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="railreader-analysis"
        )
        # page → future; only touched from the foreground thread
        self._in_flight: Dict[int, Future] = {}

    # ------------------------------------------------------------------
    # Background side
    # ------------------------------------------------------------------

    def _fallback(self, request: AnalysisRequest) -> AnalysisResult:
        raster = request.raster
        return AnalysisResult(
            page=request.page,
            analysis=fallback_analysis(raster.page_w, raster.page_h),
            navigable=request.navigable,
            is_fallback=True,
        )

    def _run(self, request: AnalysisRequest) -> AnalysisResult:
        if self.detector is None:
            logger.warning("No layout detector, using fallback for page %d", request.page)
            return self._fallback(request)

        raster = request.raster
        try:
            rows = self.detector.detect_rows(raster.to_image())
            analysis = analyze_page(
                rows,
                raster.rgb,
                raster.px_w,
                raster.px_h,
                raster.page_w,
                raster.page_h,
                navigable=request.navigable,
            )
        except Exception as e:
            logger.warning(
                "Layout analysis failed for page %d, using fallback: %s",
                request.page,
                e,
            )
            return self._fallback(request)

        logger.debug("Page %d analysed: %d blocks", request.page, len(analysis))
        return AnalysisResult(
            page=request.page, analysis=analysis, navigable=request.navigable
        )

    # ------------------------------------------------------------------
    # Foreground side
    # ------------------------------------------------------------------

    def submit(self, request: AnalysisRequest) -> bool:
        """
        Queue *request* for analysis.

        Returns:
            False if the page is already in flight, True otherwise.
        """
        if request.page in self._in_flight:
            return False
        self._in_flight[request.page] = self._executor.submit(self._run, request)
        logger.debug("Submitted page %d for analysis", request.page)
        return True

    def poll(self) -> List[AnalysisResult]:
        """Collect finished results without blocking, in submission order."""
        done = [page for page, fut in self._in_flight.items() if fut.done()]
        return [self._in_flight.pop(page).result() for page in done]

    def is_in_flight(self, page: int) -> bool:
        return page in self._in_flight

    @property
    def is_idle(self) -> bool:
        return not self._in_flight

    def wait(self, timeout: Optional[float] = None) -> None:
        """Block until every in-flight request has finished (or *timeout*)."""
        wait(list(self._in_flight.values()), timeout=timeout)

    def shutdown(self, wait_for_pending: bool = True) -> None:
        self._executor.shutdown(wait=wait_for_pending, cancel_futures=not wait_for_pending)
        if not wait_for_pending:
            self._in_flight.clear()

    def __repr__(self) -> str:
        return (
            f"AnalysisWorker(detector={self.detector!r}, "
            f"in_flight={sorted(self._in_flight)})"
        )
