"""Tests for PDF rendering into page rasters."""

import fitz
import numpy as np
import pytest

from railreader.utils.models import PageRaster
from railreader.utils.pdf_adapter import PDFAdapter, open_pdf, render_scale


@pytest.fixture
def sample_pdf(tmp_path):
    path = tmp_path / "sample.pdf"
    doc = fitz.open()
    page = doc.new_page(width=400, height=600)
    page.insert_text((50, 100), "Rail reading sample line", fontsize=20)
    doc.new_page(width=600, height=300)
    doc.save(str(path))
    doc.close()
    return str(path)


class TestPDFAdapter:
    def test_page_count_and_dimensions(self, sample_pdf):
        with PDFAdapter(sample_pdf) as pdf:
            assert pdf.page_count == 2
            assert pdf.dimensions(0) == pytest.approx((400.0, 600.0))
            assert pdf.dimensions(1) == pytest.approx((600.0, 300.0))

    def test_render_longer_side_to_target(self, sample_pdf):
        with PDFAdapter(sample_pdf) as pdf:
            raster = pdf.render_raster(0, target=300)
            assert (raster.px_w, raster.px_h) == (200, 300)
            assert raster.rgb.shape == (300, 200, 3)
            assert raster.rgb.dtype == np.uint8
            assert (raster.page_w, raster.page_h) == pytest.approx((400.0, 600.0))

            landscape = pdf.render_raster(1, target=300)
            assert (landscape.px_w, landscape.px_h) == (300, 150)

    def test_rendered_text_is_dark(self, sample_pdf):
        with PDFAdapter(sample_pdf) as pdf:
            rgb = pdf.render_raster(0, target=600).rgb
        assert rgb.min() < 100
        assert np.median(rgb) == 255

    def test_out_of_range_page(self, sample_pdf):
        with PDFAdapter(sample_pdf) as pdf:
            with pytest.raises(IndexError):
                pdf.render_raster(2)
            with pytest.raises(IndexError):
                pdf.dimensions(-1)

    def test_open_failure_is_runtime_error(self, tmp_path):
        with pytest.raises(RuntimeError):
            open_pdf(str(tmp_path / "missing.pdf"))

    def test_render_scale(self):
        assert render_scale(400, 800, 800) == 1.0
        with pytest.raises(ValueError):
            render_scale(0, 0, 800)


class TestPageRaster:
    def test_shape_checked(self):
        with pytest.raises(ValueError):
            PageRaster(rgb=np.zeros((10, 10, 3), np.uint8), px_w=20, px_h=10, page_w=1, page_h=1)

    def test_image_round_trip(self):
        rgb = np.zeros((10, 20, 3), np.uint8)
        rgb[:, :, 0] = 200
        raster = PageRaster(rgb=rgb, px_w=20, px_h=10, page_w=100, page_h=50)
        image = raster.to_image()
        assert image.size == (20, 10)
        again = PageRaster.from_image(image, 100, 50)
        assert np.array_equal(again.rgb, rgb)
