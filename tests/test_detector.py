"""Tests for the YOLO detector's class mapping (no weights needed)."""

import pytest

pytest.importorskip("ultralytics")

from railreader.layout.detector import (
    UNKNOWN_CLASS_ID,
    LayoutDetector,
    resolve_class_id,
)
from railreader.layout.models import class_name_to_index


class TestResolveClassId:
    @pytest.mark.parametrize(
        "model_name, layout_name",
        [
            ("Caption", "figure_title"),
            ("Footnote", "footnote"),
            ("Formula", "display_formula"),
            ("List-item", "text"),
            ("Page-footer", "footer"),
            ("Page-header", "header"),
            ("Picture", "image"),
            ("Section-header", "paragraph_title"),
            ("Table", "table"),
            ("Text", "text"),
            ("Title", "doc_title"),
        ],
    )
    def test_doclaynet_names(self, model_name, layout_name):
        assert resolve_class_id(model_name) == class_name_to_index(layout_name)

    def test_layout_names_pass_through(self):
        assert resolve_class_id("aside_text") == class_name_to_index("aside_text")

    def test_unknown_name(self):
        assert resolve_class_id("Barcode") == UNKNOWN_CLASS_ID

    def test_model_index_table(self, caplog):
        ids = LayoutDetector._build_class_ids({0: "Text", 1: "Barcode"})
        assert ids == {0: class_name_to_index("text"), 1: UNKNOWN_CLASS_ID}
        assert "Barcode" in caplog.text
