"""
RailReader: layout-guided line-by-line navigation for PDF pages.

Detections from a layout model are filtered, de-duplicated, put in
reading order and split into text lines; ``RailNav`` then walks the
result one line at a time at high zoom.
"""

from .config import RailConfig
from .layout import PageAnalysis, analyze_page, fallback_analysis
from .nav import Camera, NavResult, RailNav, ScrollDirection
from .session import ReaderSession
from .worker import AnalysisRequest, AnalysisResult, AnalysisWorker

__all__ = [
    "RailConfig",
    "PageAnalysis",
    "analyze_page",
    "fallback_analysis",
    "Camera",
    "NavResult",
    "RailNav",
    "ScrollDirection",
    "ReaderSession",
    "AnalysisRequest",
    "AnalysisResult",
    "AnalysisWorker",
]
