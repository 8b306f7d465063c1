"""Tests for reading-order assignment."""

import numpy as np
import pytest

from railreader.layout.box_filter import filter_detections
from railreader.layout.reading_order import (
    apply_model_order,
    assign_reading_order,
    cluster_columns,
    model_order_usable,
)

from conftest import make_block


class TestColumnOrder:
    def test_empty(self):
        assert assign_reading_order([], 800.0) == []

    def test_overlapping_full_width_block_joins_narrow_column(self):
        full = make_block(0, 100, 600, 40)
        narrow = make_block(500, 50, 100, 20)
        ordered = assign_reading_order([full, narrow], 800.0)
        assert [b.bbox for b in ordered] == [narrow.bbox, full.bbox]
        assert [b.order for b in ordered] == [0, 1]

    def test_two_columns_left_then_right(self):
        blocks = [
            make_block(450, 250, 300, 80),  # right, lower
            make_block(50, 300, 300, 80),  # left, lower
            make_block(450, 50, 300, 80),  # right, upper
            make_block(50, 100, 300, 80),  # left, upper
        ]
        ordered = assign_reading_order(blocks, 800.0)
        assert [(b.bbox.x, b.bbox.y) for b in ordered] == [
            (50, 100),
            (50, 300),
            (450, 50),
            (450, 250),
        ]

    def test_close_left_edges_share_a_column(self):
        # 50pt apart, threshold 120pt, no horizontal overlap needed
        blocks = [make_block(60, 300, 100, 40), make_block(10, 100, 40, 40)]
        assert cluster_columns(blocks, 800.0) == [[1, 0]]

    def test_orders_are_a_permutation(self):
        rng = np.random.default_rng(7)
        blocks = [
            make_block(float(x), float(y), float(w), 30.0)
            for x, y, w in zip(
                rng.uniform(0, 700, 12), rng.uniform(0, 1000, 12), rng.uniform(20, 300, 12)
            )
        ]
        ordered = assign_reading_order(blocks, 800.0)
        assert sorted(b.order for b in ordered) == list(range(len(blocks)))
        assert [b.order for b in ordered] == list(range(len(blocks)))
        assert sorted(id(b.bbox) for b in ordered) == sorted(id(b.bbox) for b in blocks)


class TestModelOrder:
    def test_sorted_by_order_then_y(self):
        blocks = [
            make_block(0, 300, 10, 10, order=1),
            make_block(0, 200, 10, 10, order=0),
            make_block(0, 100, 10, 10, order=1),
        ]
        ordered = apply_model_order(blocks)
        assert [b.bbox.y for b in ordered] == [200, 100, 300]
        assert [b.order for b in ordered] == [0, 1, 2]

    @pytest.mark.parametrize(
        "rows, usable",
        [
            ([[22, 0.9, 0, 0, 10, 10]], False),
            ([[22, 0.9, 0, 0, 10, 10, 0], [22, 0.9, 0, 0, 10, 10, 1]], True),
            ([[22, 0.9, 0, 0, 10, 10, -1]], False),
            ([[22, 0.9, 0, 0, 10, 10, -0.5]], False),
            ([[22, 0.9, 0, 0, 10, 10, np.nan]], False),
            # the rejected low-confidence row does not count
            ([[22, 0.9, 0, 0, 10, 10, 0], [22, 0.05, 0, 0, 10, 10, -1]], True),
        ],
    )
    def test_order_column_well_formed(self, rows, usable):
        arr = np.asarray(rows, dtype=float)
        blocks = filter_detections(arr, 100, 100, 100.0, 100.0)
        assert model_order_usable(arr, blocks) is usable
