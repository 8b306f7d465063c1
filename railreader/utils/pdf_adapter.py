"""
PDF adapter for page rendering.

Renders pages with fitz (PyMuPDF) into ``PageRaster`` objects sized for
the layout detector, and reports page geometry in points.
"""

import logging
from typing import Tuple

import fitz
import numpy as np

from .models import PageRaster

logger = logging.getLogger(__name__)

DEFAULT_RENDER_TARGET = 800


def open_pdf(pdf_path: str) -> fitz.Document:
    """
    Open a PDF document.

    Args:
        pdf_path: Path to the PDF file.

    Returns:
        A fitz.Document instance.

    Raises:
        RuntimeError: If fitz cannot open the file.
    """
    try:
        doc = fitz.open(pdf_path)
    except Exception as e:
        raise RuntimeError(f"Failed to open PDF '{pdf_path}': {e}") from e
    return doc


def render_scale(page_w: float, page_h: float, target: int) -> float:
    """Scale factor that makes the longer page side *target* pixels."""
    longest = max(page_w, page_h)
    if longest <= 0:
        raise ValueError(f"Page has no extent ({page_w}x{page_h} pt)")
    return target / longest


class PDFAdapter:
    """
    Keeps a document open across page operations.

    Usage::

        with PDFAdapter("paper.pdf") as pdf:
            raster = pdf.render_raster(0)
    """

    def __init__(self, pdf_path: str):
        self.pdf_path = pdf_path
        self.doc = open_pdf(pdf_path)
        self.page_count = self.doc.page_count

    def _load(self, page_index: int) -> fitz.Page:
        if page_index < 0 or page_index >= self.page_count:
            raise IndexError(
                f"Page index {page_index} out of range "
                f"(document has {self.page_count} pages)"
            )
        return self.doc.load_page(page_index)

    # -- rendering ----------------------------------------------------------

    def render_raster(
        self, page_index: int, target: int = DEFAULT_RENDER_TARGET
    ) -> PageRaster:
        """
        Render *page_index* so its longer side is *target* pixels.

        Args:
            page_index: 0-based page number.
            target:     Pixel length of the longer side.

        Returns:
            PageRaster with an ``(H, W, 3)`` uint8 array.

        Raises:
            IndexError: If *page_index* is out of range.
        """
        page = self._load(page_index)
        rect = page.rect
        scale = render_scale(rect.width, rect.height, target)
        pix = page.get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)

        # Pixmap rows may be padded past width * 3
        buf = np.frombuffer(pix.samples, dtype=np.uint8)
        rgb = buf.reshape(pix.height, pix.stride)[:, : pix.width * 3]
        rgb = np.ascontiguousarray(rgb.reshape(pix.height, pix.width, 3))

        logger.debug(
            "Rendered page %d at %dx%d px (scale %.3f)",
            page_index,
            pix.width,
            pix.height,
            scale,
        )
        return PageRaster(
            rgb=rgb,
            px_w=pix.width,
            px_h=pix.height,
            page_w=rect.width,
            page_h=rect.height,
        )

    # -- geometry -----------------------------------------------------------

    def dimensions(self, page_index: int) -> Tuple[float, float]:
        """Return (width, height) in PDF points."""
        rect = self._load(page_index).rect
        return rect.width, rect.height

    # -- lifecycle ----------------------------------------------------------

    def close(self):
        if self.doc:
            self.doc.close()
            self.doc = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False

    def __repr__(self):
        return f"PDFAdapter('{self.pdf_path}', pages={self.page_count})"
