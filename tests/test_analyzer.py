"""Tests for the composed page analysis."""

import pytest

from railreader.layout.analyzer import analyze_page, fallback_analysis, resegment
from railreader.layout.models import TEXT_CLASS_ID

from conftest import TABLE, TEXT, white_raster, with_stripes


class TestAnalyzePage:
    def test_full_pipeline(self):
        rgb = with_stripes(white_raster(100, 100), (20, 30), (60, 70))
        rows = [
            [TABLE, 0.8, 10, 50, 90, 95],
            [TEXT, 0.9, 10, 10, 90, 45],
            [TEXT, 0.5, 12, 10, 90, 45],  # duplicate of the text block
            [TEXT, 0.2, 10, 10, 90, 45],  # below the confidence floor
        ]
        analysis = analyze_page(rows, rgb, 100, 100, 200.0, 200.0)

        assert len(analysis) == 2
        text, table = analysis.blocks
        assert (text.class_id, table.class_id) == (TEXT, TABLE)
        assert (text.order, table.order) == (0, 1)
        assert text.bbox.y == pytest.approx(20.0)
        assert len(text.lines) == 1
        assert text.lines[0].y == pytest.approx(50.0)
        # table is not navigable by default
        assert table.lines == ()

    def test_model_order_used_when_present(self):
        rows = [
            [TEXT, 0.9, 10, 10, 90, 30, 1],
            [TEXT, 0.9, 10, 60, 90, 80, 0],
        ]
        analysis = analyze_page(rows, white_raster(100, 100), 100, 100, 100.0, 100.0)
        assert [b.bbox.y for b in analysis.blocks] == [60.0, 10.0]

    def test_rejected_row_does_not_veto_model_order(self):
        rows = [
            [TEXT, 0.9, 10, 10, 90, 30, 1],
            [TEXT, 0.9, 10, 60, 90, 80, 0],
            [TEXT, 0.05, 0, 0, 1, 1, -1],  # dropped by the box filter
        ]
        analysis = analyze_page(rows, white_raster(100, 100), 100, 100, 100.0, 100.0)
        assert len(analysis) == 2
        assert [b.bbox.y for b in analysis.blocks] == [60.0, 10.0]

    def test_malformed_order_column_falls_back_to_geometry(self):
        rows = [
            [TEXT, 0.9, 10, 10, 90, 30, -1],
            [TEXT, 0.9, 10, 60, 90, 80, 0],
        ]
        analysis = analyze_page(rows, white_raster(100, 100), 100, 100, 100.0, 100.0)
        assert [b.bbox.y for b in analysis.blocks] == [10.0, 60.0]

    def test_no_detections(self):
        analysis = analyze_page([], white_raster(10, 10), 10, 10, 100.0, 100.0)
        assert len(analysis) == 0
        assert analysis.page_width == 100.0


class TestFallbackAnalysis:
    def test_eight_full_width_strips(self):
        analysis = fallback_analysis(600.0, 800.0)
        assert len(analysis) == 8
        for i, block in enumerate(analysis.blocks):
            assert block.class_id == TEXT_CLASS_ID
            assert block.confidence == 1.0
            assert block.order == i
            assert block.bbox.x == 0.0
            assert block.bbox.w == 600.0
            assert block.bbox.y == pytest.approx(i * 100.0)
            assert len(block.lines) == 1
            assert block.lines[0].y == pytest.approx(i * 100.0 + 50.0)


class TestResegment:
    def test_lines_follow_new_navigable_set(self):
        rgb = with_stripes(white_raster(100, 100), (20, 30), (60, 70))
        rows = [[TEXT, 0.9, 10, 10, 90, 45], [TABLE, 0.8, 10, 50, 90, 95]]
        analysis = analyze_page(rows, rgb, 100, 100, 100.0, 100.0)

        swapped = resegment(analysis, rgb, 100, 100, {TABLE})
        text, table = swapped.blocks
        assert text.lines == ()
        assert len(table.lines) == 1
        assert [b.bbox for b in swapped.blocks] == [b.bbox for b in analysis.blocks]
        assert [b.order for b in swapped.blocks] == [0, 1]
