"""
Data models for layout post-processing.

LAYOUT_CLASSES is the 25-class PP-DocLayoutV3 label table that every
class id in this package refers to.  LayoutBlock pairs a page-point
bounding box with its class, confidence, reading order and detected
text lines; PageAnalysis is the ordered block list for one page.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, List, Optional, Tuple

# ---------------------------------------------------------------------------
# Class table (PP-DocLayoutV3, alphabetical)
# ---------------------------------------------------------------------------

LAYOUT_CLASSES: Tuple[str, ...] = (
    "abstract",  # 0
    "algorithm",  # 1
    "aside_text",  # 2
    "chart",  # 3
    "content",  # 4
    "display_formula",  # 5
    "doc_title",  # 6
    "figure_title",  # 7
    "footer",  # 8
    "footer_image",  # 9
    "footnote",  # 10
    "formula_number",  # 11
    "header",  # 12
    "header_image",  # 13
    "image",  # 14
    "inline_formula",  # 15
    "number",  # 16
    "paragraph_title",  # 17
    "reference",  # 18
    "reference_content",  # 19
    "seal",  # 20
    "table",  # 21
    "text",  # 22
    "vertical_text",  # 23
    "vision_footnote",  # 24
)

TEXT_CLASS_ID = 22

DEFAULT_NAVIGABLE_CLASSES: FrozenSet[int] = frozenset(
    {
        0,  # abstract
        1,  # algorithm
        5,  # display_formula
        10,  # footnote
        17,  # paragraph_title
        22,  # text
    }
)


def class_name_to_index(name: str) -> Optional[int]:
    """Return the class id for *name*, or ``None`` if it is not in the table."""
    try:
        return LAYOUT_CLASSES.index(name)
    except ValueError:
        return None


def class_index_to_name(class_id: int) -> str:
    if 0 <= class_id < len(LAYOUT_CLASSES):
        return LAYOUT_CLASSES[class_id]
    return "unknown"


def is_known_class(class_id: int) -> bool:
    return 0 <= class_id < len(LAYOUT_CLASSES)


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BBox:
    """Axis-aligned box in page points (origin top-left)."""

    x: float
    y: float
    w: float
    h: float

    @property
    def right(self) -> float:
        return self.x + self.w

    @property
    def bottom(self) -> float:
        return self.y + self.h

    @property
    def area(self) -> float:
        return max(0.0, self.w) * max(0.0, self.h)

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.w / 2.0, self.y + self.h / 2.0)

    def contains(self, px: float, py: float) -> bool:
        """Check if the point lies inside the box (edges inclusive)."""
        return self.x <= px <= self.right and self.y <= py <= self.bottom

    def __repr__(self) -> str:
        return f"BBox({self.x:.1f}, {self.y:.1f}, {self.w:.1f}, {self.h:.1f})"


@dataclass(frozen=True)
class LineBand:
    """
    One detected text line.

    ``y`` is the vertical centre of the line in page points (absolute,
    not relative to the block) and ``height`` its extent.
    """

    y: float
    height: float

    @property
    def top(self) -> float:
        return self.y - self.height / 2.0


# ---------------------------------------------------------------------------
# Blocks and page analysis
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LayoutBlock:
    """
    A single detected layout region in page-point space.

    ``order`` is the reading-order position assigned by the reading
    order stage.  ``lines`` is only populated for blocks whose class is
    navigable under the configuration used at segmentation time.
    """

    bbox: BBox
    class_id: int
    confidence: float
    order: int = 0
    lines: Tuple[LineBand, ...] = ()

    @property
    def class_name(self) -> str:
        return class_index_to_name(self.class_id)

    def __repr__(self) -> str:
        return (
            f"LayoutBlock(#{self.order} {self.class_name}, "
            f"conf={self.confidence:.2f}, {self.bbox!r}, "
            f"lines={len(self.lines)})"
        )


@dataclass(frozen=True)
class PageAnalysis:
    """
    Ordered, line-annotated layout of one page.

    Immutable once produced; stages that change it return a new
    instance.
    """

    blocks: Tuple[LayoutBlock, ...] = field(default_factory=tuple)
    page_width: float = 0.0
    page_height: float = 0.0

    def navigable_indices(self, navigable: Iterable[int]) -> List[int]:
        """Indices into ``blocks`` whose class id is in *navigable*."""
        allowed = set(navigable)
        return [i for i, b in enumerate(self.blocks) if b.class_id in allowed]

    @property
    def line_count(self) -> int:
        return sum(len(b.lines) for b in self.blocks)

    def __len__(self) -> int:
        return len(self.blocks)

    def __repr__(self) -> str:
        return (
            f"PageAnalysis({len(self.blocks)} blocks, "
            f"{self.page_width:.0f}x{self.page_height:.0f} pt)"
        )
