# fencecalc/geometry.py
"""
Per-family quantity formulas for a single line item.

Everything returned here is raw: fractional pickets, caps and fastener boxes
are left as-is so the aggregator can round the project-wide sum exactly once.
The only ceilings taken are structural counts (sections, boards high,
boards per row, panels), which are whole by definition.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from math import ceil
from typing import List

from fencecalc.labor_codes import labor_requirements
from fencecalc.models import (
    IronProduct,
    LineItem,
    Material,
    PostType,
    Product,
    RawLabor,
    RawMaterial,
    WoodHorizontalProduct,
    WoodVerticalProduct,
    is_good_neighbor,
    normalise_style,
)

WASTE_FACTOR = 1.025
GOOD_NEIGHBOR_PICKET_FACTOR = 1.10
BOARD_ON_BOARD_OVERLAP_IN = 2.5
RAIL_SECTION_FT = 8.0
DEFAULT_BOARD_LENGTH_FT = 8.0
DEFAULT_PICKET_WIDTH_IN = 5.5

PICKET_NAILS_PER_COIL = 300
FRAME_NAILS_PER_BOX = 28
NAILS_PER_PICKET_RAIL = 2
NAILS_PER_POST_RAIL = 4
NAILS_PER_ACCESSORY_BOARD = 8
NAILS_PER_HORIZONTAL_BOARD = 4
NAILS_PER_NAILER_END = 6
NAILS_PER_POST_FACE = 4

BRACKET_STYLES = ("ameristar", "centurion")

POST = "post"


@dataclass
class GeometryResult:
    materials: List[RawMaterial] = field(default_factory=list)
    labor: List[RawLabor] = field(default_factory=list)
    posts: float = 0.0

    def add(self, material: Material | None, quantity: float, component: str) -> None:
        if material is None:
            return
        self.materials.append(RawMaterial(material=material, quantity=quantity, component=component))


def sections(net_length: float, span_ft: float) -> int:
    return ceil(net_length / span_ft)


def post_count(net_length: float, span_ft: float, number_of_lines: int) -> int:
    """Sections + 1, plus one more post for every two runs beyond the second."""
    posts = sections(net_length, span_ft) + 1
    if number_of_lines > 2:
        posts += ceil((number_of_lines - 2) / 2)
    return posts


def _board_length(material: Material | None) -> float:
    if material is not None and material.length_ft:
        return material.length_ft
    return DEFAULT_BOARD_LENGTH_FT


def picket_count(net_length: float, style: str, picket_width: float) -> float:
    length_in = net_length * 12
    if normalise_style(style).startswith("board-on-board"):
        return (length_in * 2) / (picket_width * 2 - BOARD_ON_BOARD_OVERLAP_IN) * WASTE_FACTOR
    pickets = (length_in / picket_width) * WASTE_FACTOR
    if is_good_neighbor(style):
        pickets *= GOOD_NEIGHBOR_PICKET_FACTOR
    return pickets


def wood_vertical(
    product: WoodVerticalProduct, net_length: float, number_of_lines: int
) -> GeometryResult:
    result = GeometryResult()

    posts = post_count(net_length, product.spacing, number_of_lines)
    result.posts = posts
    result.add(product.post_material, posts, POST)

    pickets = picket_count(
        net_length,
        product.style,
        product.picket_material.actual_width or DEFAULT_PICKET_WIDTH_IN,
    )
    result.add(product.picket_material, pickets, "picket")

    rails = sections(net_length, RAIL_SECTION_FT) * product.rail_count
    result.add(product.rail_material, rails, "rail")

    accessory_boards = 0.0
    for component, material in (
        ("cap", product.cap_material),
        ("trim", product.trim_material),
        ("rot_board", product.rot_board_material),
    ):
        if material is None:
            continue
        boards = net_length / _board_length(material)
        accessory_boards += boards
        result.add(material, boards, component)

    picket_nails = (
        pickets * product.rail_count * NAILS_PER_PICKET_RAIL
        + accessory_boards * NAILS_PER_ACCESSORY_BOARD
    )
    result.add(product.picket_nail_material, picket_nails / PICKET_NAILS_PER_COIL, "nails_picket")

    frame_nails = posts * product.rail_count * NAILS_PER_POST_RAIL
    result.add(product.frame_nail_material, frame_nails / FRAME_NAILS_PER_BOX, "nails_frame")

    if product.post_type is PostType.STEEL:
        result.add(product.bracket_material, posts * product.rail_count, "bracket")
        result.add(product.post_cap_material, posts, "steel_post_cap")

    return result


def wood_horizontal(
    product: WoodHorizontalProduct, net_length: float, number_of_lines: int
) -> GeometryResult:
    result = GeometryResult()

    posts = post_count(net_length, product.spacing, number_of_lines)
    result.posts = posts
    result.add(product.post_material, posts, POST)

    board_width = product.board_material.actual_width or DEFAULT_PICKET_WIDTH_IN
    boards_high = ceil((product.height * 12) / board_width)
    boards_per_row = ceil(net_length / _board_length(product.board_material))
    boards = boards_high * boards_per_row
    double_sided = is_good_neighbor(product.style)
    if double_sided:
        boards *= 2
    result.add(product.board_material, boards, "board")

    nailers = 0
    if product.nailer_material is not None:
        nailers = sections(net_length, product.spacing) * product.nailers_per_section
        result.add(product.nailer_material, nailers, "nailer")

    if product.cap_material is not None:
        result.add(product.cap_material, net_length / _board_length(product.cap_material), "cap")

    result.add(product.vertical_trim_material, posts * (2 if double_sided else 1), "vertical_trim")

    result.add(
        product.board_nail_material,
        boards * NAILS_PER_HORIZONTAL_BOARD / PICKET_NAILS_PER_COIL,
        "nails_picket",
    )
    frame_nails = nailers * 2 * NAILS_PER_NAILER_END + posts * 2 * NAILS_PER_POST_FACE
    result.add(product.frame_nail_material, frame_nails / FRAME_NAILS_PER_BOX, "nails_frame")

    return result


def iron(product: IronProduct, net_length: float, number_of_lines: int) -> GeometryResult:
    result = GeometryResult()

    posts = post_count(net_length, product.panel_width, number_of_lines)
    result.posts = posts
    result.add(product.post_material, posts, POST)

    panels = sections(net_length, product.panel_width)
    result.add(product.panel_material, panels, "panel")

    brackets = bracket_count(product, panels)
    if brackets:
        result.add(product.bracket_material, brackets, "bracket")
    result.add(product.post_cap_material, posts, "iron_post_cap")

    return result


def bracket_count(product: IronProduct, panels: int) -> int:
    """Pre-welded panels hang on two brackets per rail; welded-on-site styles need none."""
    style = normalise_style(product.style)
    if not any(name in style for name in BRACKET_STYLES):
        return 0
    return 2 * product.rails_per_panel * panels


def calculate_line(product: Product, line: LineItem) -> GeometryResult:
    """
    Raw material and labor quantities implied by one line item.

    A line with no footage left after the buffer contributes nothing.
    """
    net_length = line.net_length
    if net_length <= 0:
        return GeometryResult()

    match product:
        case WoodVerticalProduct():
            result = wood_vertical(product, net_length, line.number_of_lines)
        case WoodHorizontalProduct():
            result = wood_horizontal(product, net_length, line.number_of_lines)
        case IronProduct():
            result = iron(product, net_length, line.number_of_lines)
        case _:
            raise TypeError(f"Unsupported product type: {type(product).__name__}")

    result.labor = labor_requirements(product, net_length, line.number_of_gates)
    return result
