"""
High-level page analysis: filter → NMS → reading order → lines.

This is the main entry point for layout post-processing.  It is a pure
function of its inputs and is safe to call from a background thread.
"""

import logging
from typing import Iterable, Optional

from .box_filter import RowsLike, as_detection_rows, filter_detections, page_scale
from .line_segmenter import RasterLike, segment_lines
from .models import (
    DEFAULT_NAVIGABLE_CLASSES,
    TEXT_CLASS_ID,
    BBox,
    LayoutBlock,
    LineBand,
    PageAnalysis,
)
from .nms import NMS_IOU_THRESHOLD, non_max_suppression
from .reading_order import apply_model_order, assign_reading_order, model_order_usable

logger = logging.getLogger(__name__)

FALLBACK_STRIP_COUNT = 8


def analyze_page(
    rows: RowsLike,
    rgb: RasterLike,
    px_width: int,
    px_height: int,
    page_width: float,
    page_height: float,
    navigable: Optional[Iterable[int]] = None,
    iou_threshold: float = NMS_IOU_THRESHOLD,
) -> PageAnalysis:
    """
    Turn raw detections for one page into an ordered ``PageAnalysis``.

    Args:
        rows:        Detector rows ``[cls, conf, x0, y0, x1, y1(, order)]``
                     in bitmap pixels.
        rgb:         RGB888 raster the detector saw (array or raw bytes).
        px_width:    Raster width in pixels.
        px_height:   Raster height in pixels.
        page_width:  Page width in points.
        page_height: Page height in points.
        navigable:   Class ids that get line segmentation.  Defaults to
                     ``DEFAULT_NAVIGABLE_CLASSES``.
        iou_threshold: NMS overlap threshold.

    Returns:
        The page analysis, blocks sorted by reading order.
    """
    arr = as_detection_rows(rows)
    navigable = DEFAULT_NAVIGABLE_CLASSES if navigable is None else navigable
    scale_x, scale_y = page_scale(px_width, px_height, page_width, page_height)

    # 1. Confidence / geometry filter
    candidates = filter_detections(arr, px_width, px_height, page_width, page_height)

    # 2. Duplicate suppression
    survivors = non_max_suppression(candidates, iou_threshold)

    # 3. Reading order
    if model_order_usable(arr, survivors):
        ordered = apply_model_order(survivors)
        policy = "model"
    else:
        ordered = assign_reading_order(survivors, page_width)
        policy = "columns"

    # 4. Lines for navigable blocks
    blocks = segment_lines(
        ordered, rgb, px_width, px_height, scale_x, scale_y, navigable
    )

    logger.debug(
        "Analysis: %d rows → %d candidates → %d blocks (%s order)",
        len(arr),
        len(candidates),
        len(blocks),
        policy,
    )
    return PageAnalysis(
        blocks=tuple(blocks), page_width=page_width, page_height=page_height
    )


def fallback_analysis(
    page_width: float,
    page_height: float,
    strips: int = FALLBACK_STRIP_COUNT,
) -> PageAnalysis:
    """
    Deterministic layout used when no detector result is available.

    The page is cut into *strips* equal horizontal bands, each a
    full-width ``text`` block with one centred line, so rail mode still
    works without the model.
    """
    strip_h = page_height / strips
    blocks = tuple(
        LayoutBlock(
            bbox=BBox(0.0, i * strip_h, page_width, strip_h),
            class_id=TEXT_CLASS_ID,
            confidence=1.0,
            order=i,
            lines=(LineBand(y=i * strip_h + strip_h / 2.0, height=strip_h),),
        )
        for i in range(strips)
    )
    return PageAnalysis(blocks=blocks, page_width=page_width, page_height=page_height)


def resegment(
    analysis: PageAnalysis,
    rgb: RasterLike,
    px_width: int,
    px_height: int,
    navigable: Iterable[int],
) -> PageAnalysis:
    """
    Re-run line segmentation for a changed navigable set.

    The detector is not involved: block geometry and order are kept,
    lines are recomputed for navigable blocks and cleared elsewhere.
    """
    scale_x, scale_y = page_scale(
        px_width, px_height, analysis.page_width, analysis.page_height
    )
    blocks = segment_lines(
        analysis.blocks, rgb, px_width, px_height, scale_x, scale_y, navigable
    )
    return PageAnalysis(
        blocks=tuple(blocks),
        page_width=analysis.page_width,
        page_height=analysis.page_height,
    )
