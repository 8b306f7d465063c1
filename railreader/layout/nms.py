"""
Greedy non-maximum suppression over page-point layout blocks.
"""

from typing import List, Sequence

from .models import BBox, LayoutBlock

NMS_IOU_THRESHOLD = 0.5


def _bbox_intersection(a: BBox, b: BBox) -> float:
    """Area of the intersection rectangle (0 if no overlap)."""
    x0 = max(a.x, b.x)
    y0 = max(a.y, b.y)
    x1 = min(a.right, b.right)
    y1 = min(a.bottom, b.bottom)
    return max(x1 - x0, 0.0) * max(y1 - y0, 0.0)


def compute_iou(a: BBox, b: BBox) -> float:
    """Intersection-over-Union between two boxes; 0 when the union is empty."""
    inter = _bbox_intersection(a, b)
    union = a.w * a.h + b.w * b.h - inter
    return inter / union if union > 0 else 0.0


def non_max_suppression(
    blocks: Sequence[LayoutBlock],
    iou_threshold: float = NMS_IOU_THRESHOLD,
) -> List[LayoutBlock]:
    """
    Remove duplicate detections.

    Blocks are stable-sorted by descending confidence; each surviving
    block suppresses every later block whose IoU with it exceeds
    *iou_threshold*.  O(n²), fine for the tens of detections a page
    produces.

    Returns:
        The surviving blocks in descending confidence order.
    """
    ranked = sorted(blocks, key=lambda b: b.confidence, reverse=True)
    keep = [True] * len(ranked)

    for i, block in enumerate(ranked):
        if not keep[i]:
            continue
        for j in range(i + 1, len(ranked)):
            if keep[j] and compute_iou(block.bbox, ranked[j].bbox) > iou_threshold:
                keep[j] = False

    return [b for b, k in zip(ranked, keep) if k]
