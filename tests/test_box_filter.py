"""Tests for raw detection filtering."""

import numpy as np
import pytest

from railreader.layout.box_filter import (
    as_detection_rows,
    filter_detections,
    page_scale,
)
from railreader.layout.nms import non_max_suppression

TEXT = 22


class TestAsDetectionRows:
    def test_empty_input_gives_empty_matrix(self):
        assert as_detection_rows([]).shape == (0, 6)

    def test_single_row_is_reshaped(self):
        arr = as_detection_rows([TEXT, 0.9, 0, 0, 10, 10])
        assert arr.shape == (1, 6)

    def test_too_few_columns_raise(self):
        with pytest.raises(ValueError):
            as_detection_rows([[TEXT, 0.9, 0, 0, 10]])


class TestPageScale:
    def test_independent_axes(self):
        assert page_scale(100, 200, 50.0, 400.0) == (0.5, 2.0)

    def test_zero_bitmap_raises(self):
        with pytest.raises(ValueError):
            page_scale(0, 100, 10.0, 10.0)


class TestFilterDetections:
    def test_maps_pixels_to_points(self):
        blocks = filter_detections([[TEXT, 0.9, 10, 20, 110, 70]], 200, 100, 400.0, 300.0)
        assert len(blocks) == 1
        b = blocks[0].bbox
        assert (b.x, b.y, b.w, b.h) == pytest.approx((20.0, 60.0, 200.0, 150.0))
        assert blocks[0].lines == ()

    def test_low_confidence_dropped(self):
        assert filter_detections([[TEXT, 0.39, 0, 0, 50, 50]], 100, 100, 100, 100) == []

    def test_threshold_is_inclusive(self):
        assert len(filter_detections([[TEXT, 0.4, 0, 0, 50, 50]], 100, 100, 100, 100)) == 1

    def test_unknown_class_dropped(self):
        rows = [[-1, 0.9, 0, 0, 50, 50], [25, 0.9, 0, 0, 50, 50]]
        assert filter_detections(rows, 100, 100, 100, 100) == []

    def test_non_finite_rows_dropped(self):
        rows = [[TEXT, np.nan, 0, 0, 50, 50], [TEXT, 0.9, 0, 0, np.inf, 50]]
        assert filter_detections(rows, 100, 100, 100, 100) == []

    def test_degenerate_and_tiny_boxes_dropped(self):
        rows = [
            [TEXT, 0.9, 50, 50, 40, 60],  # inverted
            [TEXT, 0.9, 10, 10, 14, 60],  # 4 px wide
            [TEXT, 0.9, 150, 150, 200, 200],  # entirely off the bitmap
        ]
        assert filter_detections(rows, 100, 100, 100, 100) == []

    def test_boxes_clamped_to_bitmap(self):
        blocks = filter_detections([[TEXT, 0.9, -10, -10, 120, 50]], 100, 100, 100, 100)
        b = blocks[0].bbox
        assert (b.x, b.y, b.w, b.h) == pytest.approx((0.0, 0.0, 100.0, 50.0))

    def test_order_column_carried(self):
        blocks = filter_detections([[TEXT, 0.9, 0, 0, 50, 50, 7]], 100, 100, 100, 100)
        assert blocks[0].order == 7

    def test_filter_then_nms_keeps_single_best(self):
        """0.9 and 0.6 overlap with IoU 0.6; 0.3 is below the floor."""
        rows = [
            [TEXT, 0.9, 0, 0, 100, 100],
            [TEXT, 0.6, 25, 0, 125, 100],
            [TEXT, 0.3, 300, 300, 400, 400],
        ]
        survivors = non_max_suppression(filter_detections(rows, 1000, 1000, 1000, 1000))
        assert len(survivors) == 1
        assert survivors[0].confidence == pytest.approx(0.9)
