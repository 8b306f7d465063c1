"""
Reading-order assignment for layout blocks.

Two policies:

1. **Model order** – the detector emitted an order column; blocks are
   sorted by ``(order, y)`` and renumbered.
2. **Column clustering** – the geometric fallback.  Blocks are grouped
   into columns with a union-find, columns are read left to right and
   each column top to bottom.

Two blocks share a column when their left edges are close *or* they
overlap horizontally by more than 30% of the narrower block.  The
overlap rule keeps a full-width paragraph and a narrow footnote under it
in the same column, which left-edge or centre clustering alone would
split.
"""

from dataclasses import replace
from typing import Dict, List, Sequence

import numpy as np

from .box_filter import has_order_column
from .models import LayoutBlock

COLUMN_THRESHOLD_RATIO = 0.15
MIN_OVERLAP_RATIO = 0.3


def model_order_usable(rows: np.ndarray, blocks: Sequence[LayoutBlock]) -> bool:
    """
    True if *rows* carry an order column and every block kept from them
    has a non-negative order.

    Only *blocks* (the rows that survived filtering and NMS) are checked;
    a rejected detection with a bad order value does not count.
    """
    if not has_order_column(rows) or not blocks:
        return False
    return all(b.order >= 0 for b in blocks)


def _renumber(blocks: Sequence[LayoutBlock]) -> List[LayoutBlock]:
    return [replace(b, order=i) for i, b in enumerate(blocks)]


def apply_model_order(blocks: Sequence[LayoutBlock]) -> List[LayoutBlock]:
    """
    Trust the detector's order.

    Stable-sorts by ``(order, y)`` and renumbers ``0..n-1``.
    """
    ranked = sorted(blocks, key=lambda b: (b.order, b.bbox.y))
    return _renumber(ranked)


def _same_column(a: LayoutBlock, b: LayoutBlock, column_threshold: float) -> bool:
    ba, bb = a.bbox, b.bbox
    left_close = abs(ba.x - bb.x) < column_threshold

    overlap = max(0.0, min(ba.right, bb.right) - max(ba.x, bb.x))
    min_width = min(ba.w, bb.w)
    has_overlap = min_width > 0 and overlap / min_width > MIN_OVERLAP_RATIO

    return left_close or has_overlap


def cluster_columns(
    blocks: Sequence[LayoutBlock],
    page_width: float,
) -> List[List[int]]:
    """
    Group block indices into columns.

    Returns:
        Columns sorted left to right by their minimum x; members of each
        column sorted top to bottom.
    """
    n = len(blocks)
    parent = list(range(n))

    def find(i: int) -> int:
        while parent[i] != i:
            parent[i] = parent[parent[i]]
            i = parent[i]
        return i

    def union(a: int, b: int) -> None:
        ra, rb = find(a), find(b)
        if ra != rb:
            parent[ra] = rb

    column_threshold = page_width * COLUMN_THRESHOLD_RATIO
    for i in range(n):
        for j in range(i + 1, n):
            if _same_column(blocks[i], blocks[j], column_threshold):
                union(i, j)

    groups: Dict[int, List[int]] = {}
    for i in range(n):
        groups.setdefault(find(i), []).append(i)

    columns = sorted(
        groups.values(),
        key=lambda members: min(blocks[m].bbox.x for m in members),
    )
    for col in columns:
        col.sort(key=lambda m: blocks[m].bbox.y)
    return columns


def assign_reading_order(
    blocks: Sequence[LayoutBlock],
    page_width: float,
) -> List[LayoutBlock]:
    """
    Order blocks by geometric column clustering.

    Returns:
        New blocks sorted by reading order, numbered ``0..n-1``.
    """
    if not blocks:
        return []

    ordered = [blocks[i] for col in cluster_columns(blocks, page_width) for i in col]
    return _renumber(ordered)
