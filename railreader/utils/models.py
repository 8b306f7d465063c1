"""
Rendered page raster handed between the renderer, the detector and the
line segmenter.
"""

from dataclasses import dataclass

import numpy as np
from PIL import Image


@dataclass(frozen=True)
class PageRaster:
    """
    One page rendered to RGB888.

    Attributes:
        rgb:    ``(px_h, px_w, 3)`` uint8 array, row-major.
        px_w:   Raster width in pixels.
        px_h:   Raster height in pixels.
        page_w: Page width in points.
        page_h: Page height in points.
    """

    rgb: np.ndarray
    px_w: int
    px_h: int
    page_w: float
    page_h: float

    def __post_init__(self):
        if self.rgb.shape != (self.px_h, self.px_w, 3):
            raise ValueError(
                f"Raster shape {self.rgb.shape} does not match "
                f"{self.px_w}x{self.px_h} RGB"
            )

    @classmethod
    def from_image(cls, image: Image.Image, page_w: float, page_h: float) -> "PageRaster":
        """Wrap a PIL image (converted to RGB) with the page's point size."""
        rgb = np.asarray(image.convert("RGB"), dtype=np.uint8)
        return cls(rgb=rgb, px_w=image.width, px_h=image.height, page_w=page_w, page_h=page_h)

    def to_image(self) -> Image.Image:
        return Image.fromarray(self.rgb)

    def __repr__(self) -> str:
        return (
            f"PageRaster({self.px_w}x{self.px_h}px, "
            f"page={self.page_w:.0f}x{self.page_h:.0f}pt)"
        )
