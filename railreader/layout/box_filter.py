"""
First stage of layout post-processing.

Raw detector rows arrive in source-bitmap pixel coordinates as
``[class_id, confidence, xmin, ymin, xmax, ymax(, order)]``.  This
module drops rows that cannot be trusted (low confidence, unknown
class, non-finite or degenerate geometry, sub-noise size) and converts
the survivors to page-point ``LayoutBlock`` candidates.
"""

import logging
from typing import List, Sequence, Tuple, Union

import numpy as np

from .models import BBox, LayoutBlock, is_known_class

logger = logging.getLogger(__name__)

CONFIDENCE_THRESHOLD = 0.4
MIN_BOX_PX = 5.0

ROW_COLUMNS = 6
ORDER_COLUMN = 6

RowsLike = Union[np.ndarray, Sequence[Sequence[float]]]


def as_detection_rows(rows: RowsLike) -> np.ndarray:
    """
    Coerce detector output to a 2-D float array.

    Raises:
        ValueError: If the rows have fewer than six columns.
    """
    arr = np.asarray(rows, dtype=np.float64)
    if arr.size == 0:
        return np.zeros((0, ROW_COLUMNS), dtype=np.float64)
    if arr.ndim == 1:
        arr = arr.reshape(1, -1)
    if arr.ndim != 2 or arr.shape[1] < ROW_COLUMNS:
        raise ValueError(
            f"Detection rows must have shape (N, >={ROW_COLUMNS}), got {arr.shape}"
        )
    return arr


def has_order_column(rows: np.ndarray) -> bool:
    return rows.ndim == 2 and rows.shape[1] > ORDER_COLUMN


def page_scale(
    px_width: int, px_height: int, page_width: float, page_height: float
) -> Tuple[float, float]:
    """
    Independent x / y factors mapping bitmap pixels to page points.

    Raises:
        ValueError: If the bitmap has a non-positive dimension.
    """
    if px_width <= 0 or px_height <= 0:
        raise ValueError(f"Invalid bitmap size {px_width}x{px_height}")
    return page_width / px_width, page_height / px_height


def filter_detections(
    rows: RowsLike,
    px_width: int,
    px_height: int,
    page_width: float,
    page_height: float,
    confidence_threshold: float = CONFIDENCE_THRESHOLD,
    min_size_px: float = MIN_BOX_PX,
) -> List[LayoutBlock]:
    """
    Filter raw detections and map them into page-point space.

    Args:
        rows:                 Detector output, one row per detection.
        px_width, px_height:  Size of the analysed bitmap in pixels.
        page_width, page_height: Page size in points.
        confidence_threshold: Rows below this confidence are dropped.
        min_size_px:          Minimum box width and height in pixels.

    Returns:
        Unordered candidate blocks with empty ``lines``.  ``order``
        carries the model's order column when present, otherwise 0.
    """
    arr = as_detection_rows(rows)
    scale_x, scale_y = page_scale(px_width, px_height, page_width, page_height)
    with_order = has_order_column(arr)

    blocks: List[LayoutBlock] = []
    rejected = 0

    for row in arr:
        if not np.all(np.isfinite(row)):
            rejected += 1
            continue

        class_id = int(row[0])
        confidence = float(row[1])
        xmin, ymin, xmax, ymax = (float(v) for v in row[2:6])

        if confidence < confidence_threshold:
            rejected += 1
            continue
        if not is_known_class(class_id):
            rejected += 1
            continue

        x = max(xmin, 0.0)
        y = max(ymin, 0.0)
        w = min(xmax, float(px_width)) - x
        h = min(ymax, float(px_height)) - y

        if w <= 0 or h <= 0:
            rejected += 1
            continue
        # Noise floor
        if w < min_size_px or h < min_size_px:
            rejected += 1
            continue

        blocks.append(
            LayoutBlock(
                bbox=BBox(x * scale_x, y * scale_y, w * scale_x, h * scale_y),
                class_id=class_id,
                confidence=confidence,
                order=int(np.floor(row[ORDER_COLUMN])) if with_order else 0,
            )
        )

    logger.debug(
        "Box filter: %d kept, %d rejected of %d rows",
        len(blocks),
        rejected,
        len(arr),
    )
    return blocks
