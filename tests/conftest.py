"""Shared fixtures: synthetic rasters, detectors and page sources."""

import sys
import threading
from pathlib import Path

import numpy as np
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from railreader.layout.models import BBox, LayoutBlock, LineBand, PageAnalysis
from railreader.utils.models import PageRaster

TEXT = 22
TABLE = 21
IMAGE = 14


def white_raster(width: int, height: int) -> np.ndarray:
    return np.full((height, width, 3), 255, dtype=np.uint8)


def with_stripes(rgb: np.ndarray, *rows) -> np.ndarray:
    """Paint full-width black stripes ``(start, stop)`` into a copy of *rgb*."""
    out = rgb.copy()
    for start, stop in rows:
        out[start:stop, :, :] = 0
    return out


def make_block(x, y, w, h, class_id=TEXT, confidence=0.9, order=0, lines=()):
    return LayoutBlock(
        bbox=BBox(x, y, w, h),
        class_id=class_id,
        confidence=confidence,
        order=order,
        lines=tuple(lines),
    )


class FakeDetector:
    """Returns the same rows for every image."""

    def __init__(self, rows):
        self.rows = np.asarray(rows, dtype=np.float32)
        self.calls = 0

    def detect_rows(self, image, **kwargs):
        self.calls += 1
        return self.rows


class BlockingDetector(FakeDetector):
    """Waits for ``release`` before answering."""

    def __init__(self, rows):
        super().__init__(rows)
        self.release = threading.Event()

    def detect_rows(self, image, **kwargs):
        self.release.wait(timeout=5)
        return super().detect_rows(image, **kwargs)


class FailingDetector:
    def detect_rows(self, image, **kwargs):
        raise RuntimeError("model exploded")


class PerPageDetector:
    """
    One text block whose top edge depends on the page.

    The page index is read back from pixel (0, 0), where ``FakeSource``
    stamps it.  Page *p* gives a block spanning rows ``10 + 10p`` to
    ``40 + 10p``.  Clear ``release`` to hold answers back.
    """

    def __init__(self):
        self.release = threading.Event()
        self.release.set()

    def detect_rows(self, image, **kwargs):
        self.release.wait(timeout=5)
        page = image.getpixel((0, 0))[0]
        top = 10 + 10 * page
        return np.array([[TEXT, 0.9, 8, top, 72, top + 30]], dtype=np.float32)


def page_block_y(page):
    """Top of ``PerPageDetector``'s block for *page*, in FakeSource points."""
    return (10 + 10 * page) * 5.0


class FakeSource:
    """
    Page source with blank 80x100 px rasters of 400x500 pt pages.

    Pixel (0, 0) of each raster holds the page index.
    """

    def __init__(self, page_count=3):
        self.page_count = page_count
        self.renders = []

    def dimensions(self, page):
        return 400.0, 500.0

    def render_raster(self, page, target=800):
        self.renders.append(page)
        rgb = white_raster(80, 100)
        rgb[0, 0, :] = page
        return PageRaster(rgb=rgb, px_w=80, px_h=100, page_w=400.0, page_h=500.0)


# Rows in the 80x100 px space of FakeSource rasters
TWO_BLOCK_ROWS = [
    [TEXT, 0.9, 8, 10, 72, 40],
    [TABLE, 0.8, 8, 50, 72, 90],
]


@pytest.fixture
def two_block_rows():
    return [list(r) for r in TWO_BLOCK_ROWS]


@pytest.fixture
def blank_raster():
    return PageRaster(
        rgb=white_raster(80, 100), px_w=80, px_h=100, page_w=400.0, page_h=500.0
    )


@pytest.fixture
def nav_analysis():
    """
    Two navigable text blocks (3 lines, 2 lines) around a picture.

    Page is 500x700 pt.
    """
    return PageAnalysis(
        blocks=(
            make_block(
                50, 100, 400, 60, order=0,
                lines=[LineBand(110, 20), LineBand(130, 20), LineBand(150, 20)],
            ),
            make_block(50, 180, 400, 10, class_id=IMAGE, order=1),
            make_block(
                50, 200, 400, 40, order=2,
                lines=[LineBand(210, 20), LineBand(230, 20)],
            ),
        ),
        page_width=500.0,
        page_height=700.0,
    )
