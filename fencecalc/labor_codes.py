# fencecalc/labor_codes.py
"""
Labor code selection as a rule table.

Each rule lists the attribute values it applies to; `None` means "any".
Adding a post-material/style combination is a new row here, not a new branch.
Rows are kept in display order, which is also the order codes are returned in.
"""
from __future__ import annotations

from dataclasses import dataclass
from itertools import product as cartesian
from typing import Dict, FrozenSet, List, Optional, Tuple

from fencecalc.models import (
    FenceFamily,
    IronProduct,
    PostType,
    Product,
    RawLabor,
    WoodHorizontalProduct,
    WoodVerticalProduct,
    normalise_style,
)

UP_TO_6 = "up-to-6"
OVER_6 = "over-6"
HEIGHT_TIERS = (UP_TO_6, OVER_6)

NO_ACCESSORY = "none"
CAP_ONLY = "cap"
TRIM_ONLY = "trim"
CAP_AND_TRIM = "cap-trim"

FOOTAGE = "footage"
GATES = "gates"

STYLE_CLASSES: Dict[FenceFamily, Tuple[str, ...]] = {
    FenceFamily.WOOD_VERTICAL: ("standard", "good-neighbor", "board-on-board"),
    FenceFamily.WOOD_HORIZONTAL: ("standard", "good-neighbor", "exposed"),
    FenceFamily.IRON: ("standard-2-rail", "ameristar", "iron-rail"),
}

POST_TYPES: Dict[FenceFamily, Tuple[PostType, ...]] = {
    FenceFamily.WOOD_VERTICAL: (PostType.WOOD, PostType.STEEL),
    FenceFamily.WOOD_HORIZONTAL: (PostType.WOOD, PostType.STEEL),
    FenceFamily.IRON: (PostType.STEEL,),
}

ACCESSORIES: Dict[FenceFamily, Tuple[str, ...]] = {
    FenceFamily.WOOD_VERTICAL: (NO_ACCESSORY, CAP_ONLY, TRIM_ONLY, CAP_AND_TRIM),
    FenceFamily.WOOD_HORIZONTAL: (NO_ACCESSORY, CAP_ONLY),
    FenceFamily.IRON: (NO_ACCESSORY,),
}

# rails a vertical fence carries before W05 applies
DEFAULT_RAIL_COUNT = {UP_TO_6: 2, OVER_6: 3}


def _any(*values) -> FrozenSet:
    return frozenset(values)


@dataclass(frozen=True)
class LaborRule:
    code: str
    family: FenceFamily
    basis: str = FOOTAGE
    post_types: Optional[FrozenSet[PostType]] = None
    height_tiers: Optional[FrozenSet[str]] = None
    styles: Optional[FrozenSet[str]] = None
    accessories: Optional[FrozenSet[str]] = None
    extra_rail: Optional[bool] = None


@dataclass(frozen=True)
class LaborAttributes:
    family: FenceFamily
    post_type: PostType
    height_tier: str
    style: str
    accessory: str = NO_ACCESSORY
    extra_rail: bool = False
    has_gates: bool = False


WOOD, STEEL = PostType.WOOD, PostType.STEEL
WV, WH, IR = FenceFamily.WOOD_VERTICAL, FenceFamily.WOOD_HORIZONTAL, FenceFamily.IRON
NOT_EXPOSED = _any("standard", "good-neighbor")

LABOR_RULES: Tuple[LaborRule, ...] = (
    # wood vertical
    LaborRule("W02", WV),
    LaborRule("W03", WV, post_types=_any(WOOD), height_tiers=_any(UP_TO_6)),
    LaborRule("W04", WV, post_types=_any(WOOD), height_tiers=_any(OVER_6)),
    LaborRule("M03", WV, post_types=_any(STEEL), height_tiers=_any(UP_TO_6)),
    LaborRule("M04", WV, post_types=_any(STEEL), height_tiers=_any(OVER_6)),
    LaborRule("W05", WV, extra_rail=True),
    LaborRule("W06", WV, post_types=_any(WOOD), styles=_any("good-neighbor")),
    LaborRule("M06", WV, post_types=_any(STEEL), styles=_any("good-neighbor")),
    LaborRule("W07", WV, post_types=_any(WOOD), accessories=_any(CAP_AND_TRIM)),
    LaborRule("M07", WV, post_types=_any(STEEL), accessories=_any(CAP_AND_TRIM)),
    LaborRule("W08", WV, accessories=_any(TRIM_ONLY)),
    LaborRule("W09", WV, accessories=_any(CAP_ONLY)),
    LaborRule("W10", WV, basis=GATES, height_tiers=_any(UP_TO_6)),
    LaborRule("W11", WV, basis=GATES, height_tiers=_any(OVER_6)),
    # wood horizontal
    LaborRule("W12", WH, styles=NOT_EXPOSED),
    LaborRule("W16", WH, styles=_any("exposed")),
    LaborRule("W13", WH, styles=NOT_EXPOSED, height_tiers=_any(UP_TO_6)),
    LaborRule("W18", WH, styles=NOT_EXPOSED, height_tiers=_any(OVER_6)),
    LaborRule("W17", WH, styles=_any("exposed")),
    LaborRule("W06", WH, post_types=_any(WOOD), styles=_any("good-neighbor")),
    LaborRule("M06", WH, post_types=_any(STEEL), styles=_any("good-neighbor")),
    LaborRule("W09", WH, accessories=_any(CAP_ONLY)),
    LaborRule("W15", WH, basis=GATES),
    # iron
    LaborRule("IR01", IR),
    LaborRule("IR02", IR, styles=_any("standard-2-rail")),
    LaborRule("IR04", IR, styles=_any("iron-rail")),
    LaborRule("IR05", IR, styles=_any("ameristar")),
    LaborRule("IR06", IR, styles=_any("ameristar")),
    LaborRule("IR07", IR, basis=GATES),
)


def height_tier(height: float) -> str:
    return UP_TO_6 if height <= 6 else OVER_6


def style_class(family: FenceFamily, style: str) -> str:
    """Collapse a catalog style name onto the style classes the table knows."""
    s = normalise_style(style)
    if family is FenceFamily.IRON:
        if "ameristar" in s or "centurion" in s:
            return "ameristar"
        if "iron-rail" in s:
            return "iron-rail"
        return "standard-2-rail"
    if s.startswith("good-neighbor"):
        return "good-neighbor"
    if family is FenceFamily.WOOD_VERTICAL and s.startswith("board-on-board"):
        return "board-on-board"
    if family is FenceFamily.WOOD_HORIZONTAL and s.startswith("exposed"):
        return "exposed"
    return "standard"


def _accessory(has_cap: bool, has_trim: bool) -> str:
    if has_cap and has_trim:
        return CAP_AND_TRIM
    if has_cap:
        return CAP_ONLY
    if has_trim:
        return TRIM_ONLY
    return NO_ACCESSORY


def labor_attributes(product: Product, number_of_gates: int = 0) -> LaborAttributes:
    tier = height_tier(product.height)
    match product:
        case WoodVerticalProduct():
            return LaborAttributes(
                family=product.family,
                post_type=product.post_type,
                height_tier=tier,
                style=style_class(product.family, product.style),
                accessory=_accessory(
                    product.cap_material is not None,
                    product.trim_material is not None,
                ),
                extra_rail=product.rail_count > DEFAULT_RAIL_COUNT[tier],
                has_gates=number_of_gates > 0,
            )
        case WoodHorizontalProduct():
            return LaborAttributes(
                family=product.family,
                post_type=product.post_type,
                height_tier=tier,
                style=style_class(product.family, product.style),
                accessory=_accessory(product.cap_material is not None, False),
                has_gates=number_of_gates > 0,
            )
        case IronProduct():
            return LaborAttributes(
                family=product.family,
                post_type=PostType.STEEL,
                height_tier=tier,
                style=style_class(product.family, product.style),
                has_gates=number_of_gates > 0,
            )
        case _:
            raise TypeError(f"Unsupported product type: {type(product).__name__}")


def _matches(rule: LaborRule, attrs: LaborAttributes) -> bool:
    if rule.family is not attrs.family:
        return False
    if rule.basis == GATES and not attrs.has_gates:
        return False
    if rule.post_types is not None and attrs.post_type not in rule.post_types:
        return False
    if rule.height_tiers is not None and attrs.height_tier not in rule.height_tiers:
        return False
    if rule.styles is not None and attrs.style not in rule.styles:
        return False
    if rule.accessories is not None and attrs.accessory not in rule.accessories:
        return False
    if rule.extra_rail is not None and rule.extra_rail != attrs.extra_rail:
        return False
    return True


def select_rules(attrs: LaborAttributes) -> List[LaborRule]:
    return [rule for rule in LABOR_RULES if _matches(rule, attrs)]


def select_labor_codes(attrs: LaborAttributes) -> Tuple[str, ...]:
    return tuple(rule.code for rule in select_rules(attrs))


def labor_requirements(
    product: Product, net_length: float, number_of_gates: int
) -> List[RawLabor]:
    """
    Labor codes for one line item with their raw quantities.

    Footage-based codes are charged on net length, gate codes per gate.
    """
    attrs = labor_attributes(product, number_of_gates)
    return [
        RawLabor(
            code=rule.code,
            quantity=float(number_of_gates) if rule.basis == GATES else net_length,
        )
        for rule in select_rules(attrs)
    ]


def labor_table() -> Dict[LaborAttributes, Tuple[str, ...]]:
    """Every attribute cell the catalog defines, mapped to its labor codes."""
    table: Dict[LaborAttributes, Tuple[str, ...]] = {}
    for family in FenceFamily:
        extra_rail_values = (False, True) if family is FenceFamily.WOOD_VERTICAL else (False,)
        for post_type, tier, style, accessory, extra_rail, has_gates in cartesian(
            POST_TYPES[family],
            HEIGHT_TIERS,
            STYLE_CLASSES[family],
            ACCESSORIES[family],
            extra_rail_values,
            (False, True),
        ):
            attrs = LaborAttributes(
                family=family,
                post_type=post_type,
                height_tier=tier,
                style=style,
                accessory=accessory,
                extra_rail=extra_rail,
                has_gates=has_gates,
            )
            table[attrs] = select_labor_codes(attrs)
    return table
