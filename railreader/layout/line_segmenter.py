"""
Text-line segmentation by horizontal projection profiling.

For every navigable block the rendered pixels under the block are
reduced to a per-row "ink density" (fraction of dark pixels).  Rows
above an adaptive threshold form runs; each run at least three rows
tall is a text line.

The threshold is a fraction of the mean non-empty density rather than a
fixed cutoff, so light fonts and heavy fonts both segment cleanly.
"""

import logging
from dataclasses import replace
from typing import Iterable, List, Sequence, Tuple, Union

import numpy as np

from .models import LayoutBlock, LineBand

logger = logging.getLogger(__name__)

DARK_LUMINANCE_THRESHOLD = 160.0
DENSITY_THRESHOLD_FRACTION = 0.15
MIN_DENSITY = 0.005
MIN_LINE_HEIGHT_PX = 3

_LUMA = np.array([0.299, 0.587, 0.114], dtype=np.float32)

RasterLike = Union[np.ndarray, bytes, bytearray, memoryview]


def as_rgb_array(rgb: RasterLike, px_width: int, px_height: int) -> np.ndarray:
    """
    View an RGB888 row-major buffer as a ``(H, W, 3)`` uint8 array.

    Raises:
        ValueError: If the buffer does not match the given dimensions.
    """
    if isinstance(rgb, np.ndarray):
        arr = rgb
    else:
        arr = np.frombuffer(rgb, dtype=np.uint8)
        expected = px_width * px_height * 3
        if arr.size != expected:
            raise ValueError(
                f"RGB buffer has {arr.size} bytes, expected {expected} "
                f"for {px_width}x{px_height}"
            )
        arr = arr.reshape(px_height, px_width, 3)

    if arr.shape != (px_height, px_width, 3):
        raise ValueError(
            f"Raster shape {arr.shape} does not match {px_width}x{px_height}x3"
        )
    return arr


# ---------------------------------------------------------------------------
# Profiling
# ---------------------------------------------------------------------------


def row_densities(region: np.ndarray) -> np.ndarray:
    """Fraction of dark pixels per row of an ``(h, w, 3)`` region."""
    luminance = region.astype(np.float32) @ _LUMA
    return (luminance < DARK_LUMINANCE_THRESHOLD).mean(axis=1)


def smooth_densities(densities: np.ndarray) -> np.ndarray:
    """Radius-1 moving average, clipped at the array bounds."""
    if densities.size == 0:
        return densities
    kernel = np.ones(3)
    sums = np.convolve(densities, kernel, mode="same")
    counts = np.convolve(np.ones_like(densities), kernel, mode="same")
    return sums / counts


def adaptive_threshold(densities: np.ndarray) -> float:
    non_zero = densities[densities > MIN_DENSITY]
    if non_zero.size == 0:
        return MIN_DENSITY
    return max(float(non_zero.mean()) * DENSITY_THRESHOLD_FRACTION, MIN_DENSITY)


def find_line_runs(
    densities: np.ndarray,
    min_height: int = MIN_LINE_HEIGHT_PX,
) -> List[Tuple[int, int]]:
    """
    Find maximal runs of rows above the adaptive threshold.

    Returns:
        ``(start_row, height)`` pairs, top to bottom, for runs at least
        *min_height* rows tall.
    """
    if densities.size == 0:
        return []
    above = densities > adaptive_threshold(densities)
    edges = np.diff(np.concatenate(([0], above.astype(np.int8), [0])))
    starts = np.flatnonzero(edges == 1)
    ends = np.flatnonzero(edges == -1)
    return [
        (int(s), int(e - s)) for s, e in zip(starts, ends) if e - s >= min_height
    ]


# ---------------------------------------------------------------------------
# Per-block segmentation
# ---------------------------------------------------------------------------


def _fallback_line(block: LayoutBlock) -> LineBand:
    """One band spanning the whole block, vertically centred."""
    return LineBand(y=block.bbox.y + block.bbox.h / 2.0, height=block.bbox.h)


def _pixel_region(
    block: LayoutBlock,
    img_w: int,
    img_h: int,
    scale_x: float,
    scale_y: float,
) -> Tuple[int, int, int, int]:
    """Map the block's bbox back to clamped pixel ``(x, y, w, h)``."""
    b = block.bbox
    px_x = min(max(int(round(b.x / scale_x)), 0), max(img_w - 1, 0))
    px_y = min(max(int(round(b.y / scale_y)), 0), max(img_h - 1, 0))
    px_w = min(max(int(round(b.w / scale_x)), 0), img_w - px_x)
    px_h = min(max(int(round(b.h / scale_y)), 0), img_h - px_y)
    return px_x, px_y, px_w, px_h


def detect_lines(
    block: LayoutBlock,
    rgb: np.ndarray,
    scale_x: float,
    scale_y: float,
) -> Tuple[LineBand, ...]:
    """
    Detect the text lines inside one block.

    Args:
        block:   Block in page points.
        rgb:     ``(H, W, 3)`` uint8 page raster the detections came from.
        scale_x: Page points per pixel horizontally.
        scale_y: Page points per pixel vertically.

    Returns:
        At least one ``LineBand``.  Zero-area regions and blocks with no
        surviving runs get a single band spanning the block.
    """
    img_h, img_w = rgb.shape[:2]
    px_x, px_y, px_w, px_h = _pixel_region(block, img_w, img_h, scale_x, scale_y)

    if px_w <= 0 or px_h <= 0:
        return (_fallback_line(block),)

    region = rgb[px_y : px_y + px_h, px_x : px_x + px_w]
    densities = smooth_densities(row_densities(region))

    lines = tuple(
        LineBand(
            y=block.bbox.y + (start + height / 2.0) * scale_y,
            height=height * scale_y,
        )
        for start, height in find_line_runs(densities)
    )
    return lines or (_fallback_line(block),)


def segment_lines(
    blocks: Sequence[LayoutBlock],
    rgb: RasterLike,
    px_width: int,
    px_height: int,
    scale_x: float,
    scale_y: float,
    navigable: Iterable[int],
) -> List[LayoutBlock]:
    """
    Populate ``lines`` for navigable blocks; clear it for the rest.

    Returns:
        New blocks in the same order as *blocks*.
    """
    raster = as_rgb_array(rgb, px_width, px_height)
    allowed = set(navigable)

    result: List[LayoutBlock] = []
    for block in blocks:
        if block.class_id in allowed:
            lines = detect_lines(block, raster, scale_x, scale_y)
        else:
            lines = ()
        result.append(replace(block, lines=lines))

    logger.debug(
        "Line segmentation: %d lines across %d navigable blocks",
        sum(len(b.lines) for b in result),
        sum(1 for b in result if b.class_id in allowed),
    )
    return result
