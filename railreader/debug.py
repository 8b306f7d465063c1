"""
Debug output for page analyses: a text table and colour-coded overlays.
"""

from typing import Dict, Iterable, List, Tuple

from PIL import Image, ImageDraw, ImageFont

from .layout.models import DEFAULT_NAVIGABLE_CLASSES, PageAnalysis, class_name_to_index

# Colour per class id; anything else is drawn in NON_NAVIGABLE_COLOR
CLASS_COLORS: Dict[int, Tuple[int, int, int]] = {
    class_name_to_index("abstract"): (0, 128, 128),
    class_name_to_index("algorithm"): (128, 0, 128),
    class_name_to_index("display_formula"): (200, 120, 0),
    class_name_to_index("doc_title"): (220, 20, 60),
    class_name_to_index("figure_title"): (255, 140, 0),
    class_name_to_index("footnote"): (100, 149, 237),
    class_name_to_index("image"): (0, 180, 0),
    class_name_to_index("paragraph_title"): (148, 0, 211),
    class_name_to_index("table"): (0, 200, 200),
    class_name_to_index("text"): (30, 144, 255),
}
NON_NAVIGABLE_COLOR = (160, 160, 160)
LINE_COLOR = (255, 0, 0)

_TABLE_HEADER = "{:<6} {:<20} {:<8} {:<36} {:<6} {}"
_TABLE_ROW = "{:<6} {:<20} {:<8.2f} ({:>6.1f}, {:>6.1f}, {:>6.1f}, {:>6.1f})     {:<6} {}"


def format_analysis_table(
    analysis: PageAnalysis,
    navigable: Iterable[int] = DEFAULT_NAVIGABLE_CLASSES,
) -> List[str]:
    """One header, a rule and one row per block, in reading order."""
    navigable = frozenset(navigable)
    lines = [
        f"Page: {analysis.page_width:.1f} x {analysis.page_height:.1f} pts",
        f"{len(analysis.blocks)} blocks detected:",
        _TABLE_HEADER.format("Order", "Class", "Conf", "BBox (x, y, w, h)", "Lines", "Navigable"),
        "-" * 96,
    ]
    for block in analysis.blocks:
        b = block.bbox
        lines.append(
            _TABLE_ROW.format(
                block.order,
                block.class_name,
                block.confidence,
                b.x,
                b.y,
                b.w,
                b.h,
                len(block.lines),
                "YES" if block.class_id in navigable else "no",
            )
        )
    return lines


def draw_analysis(
    image: Image.Image,
    analysis: PageAnalysis,
    navigable: Iterable[int] = DEFAULT_NAVIGABLE_CLASSES,
    line_width: int = 3,
) -> Image.Image:
    """
    Draw blocks, reading order and line centres on a copy of *image*.

    *image* is the page raster; page points are scaled to its pixel size.
    """
    navigable = frozenset(navigable)
    img = image.convert("RGB")
    draw = ImageDraw.Draw(img)

    try:
        font = ImageFont.truetype(
            "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf", 14
        )
    except (OSError, IOError):
        font = ImageFont.load_default()

    if analysis.page_width <= 0 or analysis.page_height <= 0:
        return img
    sx = img.width / analysis.page_width
    sy = img.height / analysis.page_height

    for block in analysis.blocks:
        if block.class_id in navigable:
            color = CLASS_COLORS.get(block.class_id, (255, 255, 255))
        else:
            color = NON_NAVIGABLE_COLOR
        x0, y0 = block.bbox.x * sx, block.bbox.y * sy
        x1, y1 = block.bbox.right * sx, block.bbox.bottom * sy

        for i in range(line_width):
            draw.rectangle([x0 - i, y0 - i, x1 + i, y1 + i], outline=color)

        for line in block.lines:
            ly = line.y * sy
            draw.line([x0, ly, x1, ly], fill=LINE_COLOR, width=1)

        tag = f"{block.order} {block.class_name} {block.confidence:.0%}"
        tw, th = draw.textbbox((0, 0), tag, font=font)[2:]
        draw.rectangle([x0, y0 - th - 4, x0 + tw + 6, y0], fill=color)
        draw.text((x0 + 3, y0 - th - 2), tag, fill=(255, 255, 255), font=font)

    return img
