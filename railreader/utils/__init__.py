"""Host-side helpers: page rasters and PDF rendering."""

from .models import PageRaster

__all__ = ["PageRaster"]
