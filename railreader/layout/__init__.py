"""Layout post-processing: filtering, NMS, reading order and line detection.

``LayoutDetector`` lives in ``railreader.layout.detector`` and is not
re-exported here so the post-processing stages import without loading
ultralytics.
"""

from .analyzer import analyze_page, fallback_analysis, resegment
from .box_filter import filter_detections
from .line_segmenter import detect_lines, segment_lines
from .models import (
    DEFAULT_NAVIGABLE_CLASSES,
    LAYOUT_CLASSES,
    BBox,
    LayoutBlock,
    LineBand,
    PageAnalysis,
    class_name_to_index,
)
from .nms import compute_iou, non_max_suppression
from .reading_order import apply_model_order, assign_reading_order

__all__ = [
    "BBox",
    "LineBand",
    "LayoutBlock",
    "PageAnalysis",
    "LAYOUT_CLASSES",
    "DEFAULT_NAVIGABLE_CLASSES",
    "class_name_to_index",
    "filter_detections",
    "compute_iou",
    "non_max_suppression",
    "assign_reading_order",
    "apply_model_order",
    "detect_lines",
    "segment_lines",
    "analyze_page",
    "fallback_analysis",
    "resegment",
]
