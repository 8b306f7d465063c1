"""Tests for IoU and non-maximum suppression."""

import itertools

import pytest

from railreader.layout.models import BBox
from railreader.layout.nms import compute_iou, non_max_suppression

from conftest import make_block


class TestComputeIoU:
    def test_identical_boxes(self):
        assert compute_iou(BBox(0, 0, 10, 10), BBox(0, 0, 10, 10)) == pytest.approx(1.0)

    def test_disjoint_boxes(self):
        assert compute_iou(BBox(0, 0, 10, 10), BBox(20, 20, 5, 5)) == 0.0

    def test_partial_overlap(self):
        # 75x100 intersection over 125x100 union
        assert compute_iou(BBox(0, 0, 100, 100), BBox(25, 0, 100, 100)) == pytest.approx(0.6)

    def test_zero_area_boxes(self):
        assert compute_iou(BBox(0, 0, 0, 0), BBox(0, 0, 0, 0)) == 0.0


class TestNonMaxSuppression:
    def test_empty(self):
        assert non_max_suppression([]) == []

    def test_survivors_sorted_by_confidence(self):
        blocks = [
            make_block(0, 0, 10, 10, confidence=0.5),
            make_block(100, 0, 10, 10, confidence=0.8),
        ]
        out = non_max_suppression(blocks)
        assert [b.confidence for b in out] == [0.8, 0.5]

    def test_lower_confidence_duplicate_removed(self):
        blocks = [
            make_block(25, 0, 100, 100, confidence=0.6),
            make_block(0, 0, 100, 100, confidence=0.9),
        ]
        out = non_max_suppression(blocks)
        assert len(out) == 1
        assert out[0].confidence == 0.9

    def test_soundness(self):
        blocks = [
            make_block(0, 0, 100, 100, confidence=0.95),
            make_block(10, 5, 100, 100, confidence=0.9),
            make_block(60, 0, 100, 100, confidence=0.85),
            make_block(200, 200, 50, 50, confidence=0.7),
            make_block(205, 200, 50, 50, confidence=0.65),
            make_block(400, 0, 30, 300, confidence=0.5),
        ]
        survivors = non_max_suppression(blocks, iou_threshold=0.5)

        for a, b in itertools.combinations(survivors, 2):
            assert compute_iou(a.bbox, b.bbox) <= 0.5

        for removed in (b for b in blocks if b not in survivors):
            assert any(
                s.confidence >= removed.confidence and compute_iou(s.bbox, removed.bbox) > 0.5
                for s in survivors
            )
