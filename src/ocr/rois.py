"""
Reference Frame and Regions of Interest

Canonical coordinate space for aligned screenshots. Every committed alignment
produces an image of REFERENCE_WIDTH x REFERENCE_HEIGHT pixels, and the field
rectangles below are read from that image directly.

Calibrated on a 600x338 capture of the character comparison screen scaled up
3x, which keeps the smallest stat digits above Tesseract's readable size.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Mapping, Tuple


REFERENCE_WIDTH = 1800
REFERENCE_HEIGHT = 1014

SIDES = ("left", "right")
LAYOUTS = ("overworld", "battle")

# Field kinds
TEXT_FIELDS = ("job", "weapon", "offensive_magic", "defensive_magic", "battle_skill")
NUMERIC_FIELDS = ("at", "df", "mg", "sp")
PAIR_FIELDS = ("hp",)


@dataclass(frozen=True)
class Rectangle:
    """Axis-aligned rectangle in reference-frame pixels."""
    x: int
    y: int
    w: int
    h: int

    def __post_init__(self):
        if self.w <= 0 or self.h <= 0:
            raise ValueError(f"Rectangle needs positive size, got {self.w}x{self.h}")

    @property
    def right(self) -> int:
        return self.x + self.w

    @property
    def bottom(self) -> int:
        return self.y + self.h

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return (self.x, self.y, self.w, self.h)

    def union(self, other: "Rectangle") -> "Rectangle":
        """Smallest rectangle containing both."""
        x = min(self.x, other.x)
        y = min(self.y, other.y)
        return Rectangle(x, y, max(self.right, other.right) - x, max(self.bottom, other.bottom) - y)


def _rects(table: Dict[str, Tuple[int, int, int, int]]) -> Mapping[str, Rectangle]:
    return MappingProxyType({key: Rectangle(*values) for key, values in table.items()})


# Character comparison card (two cards side by side)
OVERWORLD_LEFT = _rects({
    "job": (160, 200, 195, 42),
    "hp": (300, 320, 120, 40),          # "62/140"
    "at": (205, 395, 80, 40),
    "df": (290, 395, 80, 40),
    "mg": (375, 395, 80, 40),
    "sp": (460, 395, 95, 40),
    "weapon": (190, 525, 195, 40),
    "offensive_magic": (190, 720, 210, 40),
    "defensive_magic": (190, 785, 210, 40),
})

OVERWORLD_RIGHT = _rects({
    "job": (700, 200, 195, 42),
    "hp": (840, 320, 120, 40),
    "at": (740, 395, 80, 40),
    "df": (825, 395, 80, 40),
    "mg": (910, 395, 80, 40),
    "sp": (995, 395, 95, 40),
    "weapon": (730, 525, 195, 40),
    "offensive_magic": (730, 720, 210, 40),
    "defensive_magic": (730, 785, 210, 40),
})

# Battle HUD: status panels in the top corners, spell/skill panels at the bottom
BATTLE_LEFT = _rects({
    "job": (90, 40, 240, 42),
    "hp": (150, 100, 160, 40),
    "at": (90, 160, 80, 40),
    "df": (180, 160, 80, 40),
    "mg": (270, 160, 80, 40),
    "sp": (360, 160, 95, 40),
    "offensive_magic": (90, 820, 260, 40),
    "defensive_magic": (90, 880, 260, 40),
    "battle_skill": (90, 940, 260, 40),
})

BATTLE_RIGHT = _rects({
    "job": (1470, 40, 240, 42),
    "hp": (1490, 100, 160, 40),
    "at": (1345, 160, 80, 40),
    "df": (1435, 160, 80, 40),
    "mg": (1525, 160, 80, 40),
    "sp": (1615, 160, 95, 40),
    "offensive_magic": (1450, 820, 260, 40),
    "defensive_magic": (1450, 880, 260, 40),
    "battle_skill": (1450, 940, 260, 40),
})

# Outlines drawn on the alignment canvas in addition to the field boxes
OVERWORLD_GUIDES = _rects({
    "left_card": (120, 90, 510, 770),
    "right_card": (660, 90, 510, 770),
})

BATTLE_GUIDES = _rects({
    "left_status": (60, 20, 420, 200),
    "right_status": (1320, 20, 420, 200),
    "left_actions": (60, 800, 320, 200),
    "right_actions": (1420, 800, 320, 200),
})


@dataclass(frozen=True)
class ReferenceFrame:
    """
    Canonical frame size plus the field rectangles of every layout.

    Attributes:
        width: Frame width in pixels
        height: Frame height in pixels
        layouts: layout -> side -> field -> Rectangle
        guides: layout -> outline name -> Rectangle
    """
    width: int
    height: int
    layouts: Mapping[str, Mapping[str, Mapping[str, Rectangle]]]
    guides: Mapping[str, Mapping[str, Rectangle]]

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)

    @property
    def layout_names(self) -> List[str]:
        return list(self.layouts.keys())

    def rois(self, layout: str, side: str) -> Mapping[str, Rectangle]:
        """
        Field rectangles for one character side of a layout.

        Raises:
            ValueError: If layout or side is unknown
        """
        if layout not in self.layouts:
            available = ", ".join(self.layouts.keys())
            raise ValueError(f"Unknown layout: {layout}. Available: {available}")
        sides = self.layouts[layout]
        if side not in sides:
            raise ValueError(f"Unknown side: {side}. Expected one of {', '.join(SIDES)}")
        return sides[side]

    def fields(self, layout: str) -> List[str]:
        """Field keys of a layout, in declaration order."""
        return list(self.rois(layout, SIDES[0]).keys())

    def guide_boxes(self, layout: str) -> Dict[str, Rectangle]:
        """Outlines and field boxes for the alignment overlay, keyed by label."""
        boxes: Dict[str, Rectangle] = dict(self.guides.get(layout, {}))
        for side in SIDES:
            for field, rect in self.rois(layout, side).items():
                boxes[f"{side}_{field}"] = rect
        return boxes


REFERENCE_FRAME = ReferenceFrame(
    width=REFERENCE_WIDTH,
    height=REFERENCE_HEIGHT,
    layouts=MappingProxyType({
        "overworld": MappingProxyType({"left": OVERWORLD_LEFT, "right": OVERWORLD_RIGHT}),
        "battle": MappingProxyType({"left": BATTLE_LEFT, "right": BATTLE_RIGHT}),
    }),
    guides=MappingProxyType({
        "overworld": OVERWORLD_GUIDES,
        "battle": BATTLE_GUIDES,
    }),
)


def field_kind(field: str) -> str:
    """
    Classify a field key.

    Returns:
        "text", "number" or "pair"

    Raises:
        ValueError: If the field key is not known
    """
    if field in TEXT_FIELDS:
        return "text"
    if field in NUMERIC_FIELDS:
        return "number"
    if field in PAIR_FIELDS:
        return "pair"
    raise ValueError(f"Unknown field: {field}")
