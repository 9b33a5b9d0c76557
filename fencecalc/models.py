# fencecalc/models.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class FenceFamily(str, Enum):
    WOOD_VERTICAL = "wood-vertical"
    WOOD_HORIZONTAL = "wood-horizontal"
    IRON = "iron"


class PostType(str, Enum):
    WOOD = "WOOD"
    STEEL = "STEEL"


class ConcreteType(str, Enum):
    THREE_PART = "3-part"
    YELLOW_BAGS = "yellow-bags"
    RED_BAGS = "red-bags"


GOOD_NEIGHBOR_SPACING_FT = 7.71
STANDARD_SPACING_FT = 8.0


def normalise_style(style: str) -> str:
    return style.strip().lower().replace(" ", "-").replace("_", "-")


def is_good_neighbor(style: str) -> bool:
    return normalise_style(style).startswith("good-neighbor")


@dataclass(frozen=True)
class Material:
    sku: str
    name: str
    unit: str
    unit_cost: float
    category: Optional[str] = None
    length_ft: Optional[float] = None
    actual_width: Optional[float] = None


@dataclass(frozen=True)
class WoodVerticalProduct:
    """
    Vertical picket fence: posts, rails ("nailers" between posts) and pickets.

    `post_spacing` may be left unset, in which case the style decides it:
    good-neighbor styles are built at 7.71 ft, everything else at 8 ft.
    """
    sku: str
    name: str
    height: float
    post_type: PostType
    style: str
    rail_count: int
    post_material: Material
    picket_material: Material
    rail_material: Material
    post_spacing: Optional[float] = None
    cap_material: Optional[Material] = None
    trim_material: Optional[Material] = None
    rot_board_material: Optional[Material] = None
    picket_nail_material: Optional[Material] = None
    frame_nail_material: Optional[Material] = None
    bracket_material: Optional[Material] = None
    post_cap_material: Optional[Material] = None

    family = FenceFamily.WOOD_VERTICAL

    @property
    def spacing(self) -> float:
        if self.post_spacing:
            return self.post_spacing
        if is_good_neighbor(self.style):
            return GOOD_NEIGHBOR_SPACING_FT
        return STANDARD_SPACING_FT


@dataclass(frozen=True)
class WoodHorizontalProduct:
    sku: str
    name: str
    height: float
    post_type: PostType
    style: str
    post_material: Material
    board_material: Material
    post_spacing: float = 6.0
    nailer_material: Optional[Material] = None
    nailers_per_section: int = 1
    cap_material: Optional[Material] = None
    vertical_trim_material: Optional[Material] = None
    board_nail_material: Optional[Material] = None
    frame_nail_material: Optional[Material] = None

    family = FenceFamily.WOOD_HORIZONTAL

    @property
    def spacing(self) -> float:
        return self.post_spacing


@dataclass(frozen=True)
class IronProduct:
    sku: str
    name: str
    height: float
    style: str
    post_material: Material
    panel_width: float = 8.0
    rails_per_panel: int = 2
    panel_material: Optional[Material] = None
    bracket_material: Optional[Material] = None
    post_cap_material: Optional[Material] = None

    family = FenceFamily.IRON
    # iron posts are always steel
    post_type = PostType.STEEL


Product = Union[WoodVerticalProduct, WoodHorizontalProduct, IronProduct]


@dataclass
class LineItem:
    """
    One run of fence on an estimate.

    Only the inputs live here; `net_length` is derived so an edit to footage
    or buffer can never leave it stale.
    """
    id: str
    family: FenceFamily
    product_sku: Optional[str]
    total_footage: float
    buffer: float = 0.0
    number_of_lines: int = 1
    number_of_gates: int = 0

    @property
    def net_length(self) -> float:
        return max(0.0, self.total_footage - self.buffer)


@dataclass(frozen=True)
class CalculationContext:
    business_unit_id: str
    location_id: Optional[str] = None
    account_id: Optional[str] = None


@dataclass(frozen=True)
class RawMaterial:
    material: Material
    quantity: float
    component: str


@dataclass(frozen=True)
class RawLabor:
    code: str
    quantity: float


@dataclass(frozen=True)
class CalculationWarning:
    code: str
    message: str
    line_item_id: Optional[str] = None
