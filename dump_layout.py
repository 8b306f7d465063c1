#!/usr/bin/env python3
"""
RailReader layout dump, CLI entry point.

Runs layout detection and post-processing on PDF pages and prints the
processed analysis: blocks in reading order with class, confidence,
page-point bounding box, detected line count and whether the rail stops
on them.

Usage::

    python dump_layout.py paper.pdf
    python dump_layout.py book.pdf --pages 3-5 --raw
    python dump_layout.py paper.pdf --debug-dir debug/paper/ -v 2
    python dump_layout.py scan.pdf --fallback --navigable text,abstract

Verbosity levels::

    -v 0   Quiet: warnings and errors only.
    -v 1   Normal: phase summaries and progress bars (default).
    -v 2   Debug: per-page pipeline detail.
"""

import argparse
import logging
import sys
from pathlib import Path

import numpy as np
from tqdm import tqdm

from railreader.config import RailConfig
from railreader.debug import draw_analysis, format_analysis_table
from railreader.layout.analyzer import analyze_page, fallback_analysis
from railreader.utils.pdf_adapter import DEFAULT_RENDER_TARGET, PDFAdapter

logger = logging.getLogger("railreader")

# Mapping from --verbose integer to logging level
_VERBOSITY_MAP = {
    0: logging.WARNING,
    1: logging.INFO,
    2: logging.DEBUG,
}


# ------------------------------------------------------------------
# Argument parsing
# ------------------------------------------------------------------


def _parse_page_range(value: str):
    """
    Parse a 1-based page range string (e.g. ``"3-10"``) into a
    0-based ``(start, end)`` tuple.

    Raises:
        argparse.ArgumentTypeError: On malformed input.
    """
    parts = value.split("-")
    try:
        start = int(parts[0])
        end = int(parts[1]) if len(parts) > 1 else start
    except (ValueError, IndexError):
        raise argparse.ArgumentTypeError(
            f"Invalid page range '{value}'. Use N or N-M (1-based)."
        )
    if start < 1 or end < start:
        raise argparse.ArgumentTypeError(
            f"Invalid page range '{value}'. Start must be >= 1 and end >= start."
        )
    return (start - 1, end - 1)


def _parse_class_list(value: str):
    """Split a comma-separated list of layout class names."""
    names = [v.strip() for v in value.split(",") if v.strip()]
    if not names:
        raise argparse.ArgumentTypeError("Expected at least one class name")
    return names


def _build_parser() -> argparse.ArgumentParser:
    """Construct the argument parser."""
    p = argparse.ArgumentParser(
        description="Print the processed layout analysis of PDF pages.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "examples:\n"
            "  python dump_layout.py paper.pdf\n"
            "  python dump_layout.py book.pdf --pages 3-5 --raw\n"
            "  python dump_layout.py paper.pdf --debug-dir debug/ -v 2\n"
        ),
    )

    p.add_argument("pdf", help="Path to the input PDF file")
    p.add_argument(
        "--pages",
        type=_parse_page_range,
        default=None,
        metavar="N-M",
        help="Page range, 1-based inclusive (e.g. 1-10). Default: first page.",
    )
    p.add_argument(
        "--navigable",
        type=_parse_class_list,
        default=None,
        metavar="NAMES",
        help="Comma-separated class names the rail stops on "
        "(default: abstract,algorithm,display_formula,footnote,paragraph_title,text)",
    )

    # -- Layout model ------------------------------------------------------
    model = p.add_argument_group("model")
    model.add_argument(
        "--model",
        default=None,
        metavar="PATH",
        help="Path to YOLO .pt weights (default: models/yolov8x_doclaynet.pt)",
    )
    model.add_argument(
        "--device",
        default=None,
        metavar="DEVICE",
        help='Force YOLO device (e.g. "cpu", "cuda:0")',
    )
    model.add_argument(
        "--confidence",
        type=float,
        default=0.25,
        metavar="FLOAT",
        help="Raw detector confidence threshold (default: 0.25)",
    )
    model.add_argument(
        "--target",
        type=int,
        default=DEFAULT_RENDER_TARGET,
        metavar="PX",
        help=f"Rendered size of the longer page side (default: {DEFAULT_RENDER_TARGET})",
    )
    model.add_argument(
        "--fallback",
        action="store_true",
        help="Skip the detector and dump the 8-strip fallback analysis",
    )

    # -- Debug / output control --------------------------------------------
    debug = p.add_argument_group("debug & output")
    debug.add_argument(
        "--raw",
        action="store_true",
        help="Also print the raw detector rows",
    )
    debug.add_argument(
        "--debug-dir",
        default=None,
        metavar="DIR",
        help="Save colour-coded layout overlays to DIR",
    )
    debug.add_argument(
        "-v",
        "--verbose",
        type=int,
        choices=[0, 1, 2],
        default=1,
        help="Verbosity: 0=quiet, 1=normal (default), 2=debug",
    )
    debug.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable tqdm progress bars",
    )

    return p


# ------------------------------------------------------------------
# Logging setup
# ------------------------------------------------------------------


def _configure_logging(verbosity: int) -> None:
    """
    Set up the root ``railreader`` logger.

    At verbosity 0 (WARNING), uses a minimal format. At 1+ (INFO /
    DEBUG), includes the module name for traceability.
    """
    level = _VERBOSITY_MAP.get(verbosity, logging.INFO)

    if level <= logging.DEBUG:
        fmt = "%(asctime)s %(name)s %(levelname)s: %(message)s"
        datefmt = "%H:%M:%S"
    elif level <= logging.INFO:
        fmt = "%(message)s"
        datefmt = None
    else:
        fmt = "%(levelname)s: %(message)s"
        datefmt = None

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root = logging.getLogger("railreader")
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    # Suppress noisy third-party loggers regardless of verbosity
    for name in ("ultralytics", "PIL", "urllib3"):
        logging.getLogger(name).setLevel(logging.WARNING)


# ------------------------------------------------------------------
# Per-page work
# ------------------------------------------------------------------


def _format_raw_rows(rows: np.ndarray):
    yield f"{len(rows)} raw detections:"
    for row in rows:
        cls, conf, x0, y0, x1, y1 = (float(v) for v in row[:6])
        yield (
            f"  cls={int(cls):<3d} conf={conf:.3f} "
            f"box=({x0:.1f}, {y0:.1f}, {x1:.1f}, {y1:.1f})"
        )


def _analyse(pdf: PDFAdapter, page: int, detector, args, navigable):
    """Render, detect and post-process one page; fall back on failure."""
    raster = pdf.render_raster(page, args.target)

    if detector is None:
        return raster, fallback_analysis(raster.page_w, raster.page_h)

    try:
        rows = detector.detect_rows(raster.to_image(), confidence=args.confidence)
    except Exception as e:
        logger.warning("Detection failed on page %d, using fallback: %s", page + 1, e)
        return raster, fallback_analysis(raster.page_w, raster.page_h)

    if args.raw:
        for line in _format_raw_rows(rows):
            tqdm.write(line)

    analysis = analyze_page(
        rows,
        raster.rgb,
        raster.px_w,
        raster.px_h,
        raster.page_w,
        raster.page_h,
        navigable=navigable,
    )
    return raster, analysis


# ------------------------------------------------------------------
# Entry point
# ------------------------------------------------------------------


def main():
    """Parse arguments, configure logging, and dump each page."""
    parser = _build_parser()
    args = parser.parse_args()

    _configure_logging(args.verbose)
    disable_tqdm = args.no_progress or args.verbose == 0

    pdf_path = Path(args.pdf)
    if not pdf_path.exists():
        parser.error(f"Input file not found: {pdf_path}")
    if pdf_path.suffix.lower() != ".pdf":
        parser.error(f"Input must be a PDF file: {pdf_path}")

    config = RailConfig()
    if args.navigable:
        config = RailConfig.from_dict({"navigable_classes": args.navigable})
    navigable = config.navigable_classes

    detector = None
    if not args.fallback:
        from railreader.layout.detector import LayoutDetector

        detector = LayoutDetector(model_path=args.model, device=args.device)
        logger.info("Detector: %s", detector)

    debug_dir = Path(args.debug_dir) if args.debug_dir else None
    if debug_dir:
        debug_dir.mkdir(parents=True, exist_ok=True)

    with PDFAdapter(str(pdf_path)) as pdf:
        start, end = args.pages or (0, 0)
        end = min(end, pdf.page_count - 1)
        if start > end:
            parser.error(
                f"Page range starts past the end of the document "
                f"({pdf.page_count} pages)"
            )

        logger.info("RailReader layout dump")
        logger.info("  Input:  %s", pdf_path)
        logger.info("  Pages:  %d–%d of %d", start + 1, end + 1, pdf.page_count)
        if args.fallback:
            logger.info("  Mode:   fallback strips")

        for page in tqdm(range(start, end + 1), desc="Pages", disable=disable_tqdm):
            raster, analysis = _analyse(pdf, page, detector, args, navigable)

            tqdm.write(f"\n=== Page {page + 1} ===")
            for line in format_analysis_table(analysis, navigable):
                tqdm.write(line)

            if debug_dir:
                out = debug_dir / f"page_{page + 1:04d}.png"
                draw_analysis(raster.to_image(), analysis, navigable).save(out)
                logger.debug("Saved overlay %s", out)


if __name__ == "__main__":
    main()
