# fencecalc/catalog_loader.py
from __future__ import annotations

import csv
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, Iterator, Mapping, Optional, Tuple

from fencecalc.models import (
    FenceFamily,
    IronProduct,
    Material,
    PostType,
    Product,
    WoodHorizontalProduct,
    WoodVerticalProduct,
)
from fencecalc.pricing import RateSheet, RateSheetDirectory, RateSheetItem, SheetPricingType

logger = logging.getLogger("fencecalc.catalog")

MATERIALS_FILE = "materials.csv"
PRODUCTS_FILE = "products.csv"
LABOR_RATES_FILE = "labor_rates.csv"
RATE_SHEETS_FILE = "rate_sheets.csv"
RATE_SHEET_ITEMS_FILE = "rate_sheet_items.csv"
RATE_SHEET_ASSIGNMENTS_FILE = "rate_sheet_assignments.csv"


@dataclass(frozen=True)
class LaborRate:
    code: str
    business_unit: str
    rate: float
    description: str = ""
    unit: str = "LF"


@dataclass
class Catalog:
    """Read-only reference data for one calculation session."""
    materials: Dict[str, Material]
    products: Dict[Tuple[FenceFamily, str], Product]
    labor_rates: Dict[Tuple[str, str], LaborRate]
    rate_sheets: RateSheetDirectory = field(default_factory=RateSheetDirectory)
    business_units: FrozenSet[str] = frozenset()

    def __post_init__(self) -> None:
        if not self.business_units:
            self.business_units = frozenset(bu for _, bu in self.labor_rates)

    def product(self, family: FenceFamily, sku: str) -> Optional[Product]:
        return self.products.get((family, sku))

    def labor_rate(self, code: str, business_unit: str) -> Optional[LaborRate]:
        return self.labor_rates.get((code, business_unit))

    def has_business_unit(self, business_unit: str) -> bool:
        return business_unit in self.business_units


# ---------------------------------------------------------------------------
# CSV plumbing
# ---------------------------------------------------------------------------

_MATERIAL_ALIASES: Mapping[str, Iterable[str]] = {
    "sku": ("sku", "material_sku", "item_code"),
    "name": ("name", "material_name", "description", "desc"),
    "unit": ("unit", "unit_type", "uom"),
    "unit_cost": ("unit_cost", "cost"),
    "category": ("category", "group"),
    "length_ft": ("length_ft", "length"),
    "actual_width": ("actual_width", "width_actual", "width_in"),
}

_PRODUCT_ALIASES: Mapping[str, Iterable[str]] = {
    "family": ("family", "product_type", "fence_family"),
    "sku": ("sku", "sku_code"),
    "name": ("name", "sku_name"),
    "height": ("height", "height_ft"),
    "post_type": ("post_type", "post_material_type"),
    "style": ("style",),
    "rail_count": ("rail_count", "rails"),
    "post_spacing": ("post_spacing", "spacing"),
    "post_material": ("post_material",),
    "primary_material": ("primary_material", "picket_material", "board_material", "panel_material"),
    "secondary_material": ("secondary_material", "rail_material", "nailer_material"),
    "secondary_per_section": ("secondary_per_section", "nailers_per_section"),
    "cap_material": ("cap_material",),
    "trim_material": ("trim_material", "vertical_trim_material"),
    "rot_board_material": ("rot_board_material",),
    "fastener_material": ("fastener_material", "picket_nail_material", "board_nail_material"),
    "frame_fastener_material": ("frame_fastener_material", "frame_nail_material"),
    "bracket_material": ("bracket_material",),
    "post_cap_material": ("post_cap_material",),
    "panel_width": ("panel_width",),
    "rails_per_panel": ("rails_per_panel",),
}

_LABOR_RATE_ALIASES: Mapping[str, Iterable[str]] = {
    "code": ("labor_code", "labor_sku", "code"),
    "business_unit": ("business_unit", "bu", "business_unit_id"),
    "rate": ("rate", "labor_rate"),
    "description": ("description", "desc"),
    "unit": ("unit", "unit_type"),
}

_RATE_SHEET_ALIASES: Mapping[str, Iterable[str]] = {
    "id": ("id", "rate_sheet_id"),
    "name": ("name",),
    "pricing_type": ("pricing_type",),
    "default_markup_percent": ("default_markup_percent", "default_material_markup"),
    "default_margin_percent": ("default_margin_percent", "default_margin_target"),
    "is_active": ("is_active", "active"),
}

_RATE_SHEET_ITEM_ALIASES: Mapping[str, Iterable[str]] = {
    "rate_sheet_id": ("rate_sheet_id", "sheet_id"),
    "sku": ("sku", "sku_id"),
    "fixed_price": ("fixed_price", "price"),
    "fixed_labor_price": ("fixed_labor_price", "labor_price"),
    "fixed_material_price": ("fixed_material_price", "material_price"),
    "markup_percent": ("markup_percent", "material_markup_percent"),
    "margin_percent": ("margin_percent", "margin_target_percent"),
}

# "custom" is the older name for a sheet of hard-coded prices
_PRICING_TYPE_ALIASES = {"custom": SheetPricingType.FIXED.value}

_ASSIGNMENT_ALIASES: Mapping[str, Iterable[str]] = {
    "scope": ("scope", "level"),
    "scope_id": ("scope_id", "id"),
    "rate_sheet_id": ("rate_sheet_id", "sheet_id"),
    "account_id": ("account_id", "client_id"),
}


def _normalise_header(header: str) -> str:
    return header.strip().lower()


def _build_header_map(
    headers: Iterable[str], aliases: Mapping[str, Iterable[str]], required: Iterable[str], path: Path
) -> Dict[str, str]:
    """
    Map canonical field names to the actual CSV header.

    Headers match case-insensitively and through a few common aliases.
    """
    normalised = {_normalise_header(h): h for h in headers}
    mapping: Dict[str, str] = {}
    for name, candidates in aliases.items():
        for alias in candidates:
            if alias in normalised:
                mapping[name] = normalised[alias]
                break
    missing = [f for f in required if f not in mapping]
    if missing:
        raise ValueError(f"{path.name} is missing required columns: {', '.join(missing)}")
    return mapping


def _read_rows(
    path: Path, aliases: Mapping[str, Iterable[str]], required: Iterable[str]
) -> Iterator[Tuple[int, Dict[str, str]]]:
    """Yield (line number, canonical-field dict) for each non-blank row."""
    if not path.exists():
        raise FileNotFoundError(f"Catalog file not found: {path}")

    with path.open("r", encoding="utf-8-sig", newline="") as f:
        reader = csv.DictReader(f)
        if reader.fieldnames is None:
            raise ValueError(f"{path.name} has no header row")
        header_map = _build_header_map(reader.fieldnames, aliases, required, path)

        for idx, row in enumerate(reader, start=2):  # 1-based + header
            if not any(value.strip() for value in row.values() if value):
                continue
            values = {
                name: (row.get(header) or "").strip() for name, header in header_map.items()
            }
            for name in required:
                if not values.get(name):
                    raise ValueError(f"{path.name} row {idx}: missing {name}")
            yield idx, values


def _float(values: Dict[str, str], name: str, idx: int, path: Path) -> Optional[float]:
    raw = values.get(name, "")
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{path.name} row {idx}: invalid {name} '{raw}'") from exc


def _bool(raw: str) -> bool:
    return raw.strip().lower() not in ("false", "0", "no", "n")


# ---------------------------------------------------------------------------
# Loaders
# ---------------------------------------------------------------------------

def load_materials(path: str | Path) -> Dict[str, Material]:
    path = Path(path)
    materials: Dict[str, Material] = {}
    for idx, values in _read_rows(path, _MATERIAL_ALIASES, ("sku", "name", "unit", "unit_cost")):
        materials[values["sku"]] = Material(
            sku=values["sku"],
            name=values["name"],
            unit=values["unit"],
            unit_cost=_float(values, "unit_cost", idx, path),
            category=values.get("category") or None,
            length_ft=_float(values, "length_ft", idx, path),
            actual_width=_float(values, "actual_width", idx, path),
        )
    return materials


def _material_ref(
    materials: Mapping[str, Material], values: Dict[str, str], name: str, idx: int, path: Path
) -> Optional[Material]:
    sku = values.get(name)
    if not sku:
        return None
    try:
        return materials[sku]
    except KeyError as exc:
        raise KeyError(f"{path.name} row {idx}: unknown {name} '{sku}'") from exc


def _required_material(
    materials: Mapping[str, Material], values: Dict[str, str], name: str, idx: int, path: Path
) -> Material:
    material = _material_ref(materials, values, name, idx, path)
    if material is None:
        raise ValueError(f"{path.name} row {idx}: missing {name}")
    return material


def _build_product(
    values: Dict[str, str], materials: Mapping[str, Material], idx: int, path: Path
) -> Product:
    try:
        family = FenceFamily(values["family"].lower())
    except ValueError as exc:
        raise ValueError(f"{path.name} row {idx}: unknown family '{values['family']}'") from exc

    def ref(name: str) -> Optional[Material]:
        return _material_ref(materials, values, name, idx, path)

    def required(name: str) -> Material:
        return _required_material(materials, values, name, idx, path)

    def number(name: str) -> Optional[float]:
        return _float(values, name, idx, path)

    height = number("height")
    if height is None:
        raise ValueError(f"{path.name} row {idx}: missing height")
    style = values.get("style") or "standard"

    if family is FenceFamily.IRON:
        return IronProduct(
            sku=values["sku"],
            name=values["name"],
            height=height,
            style=style,
            post_material=required("post_material"),
            panel_width=number("panel_width") or 8.0,
            rails_per_panel=int(number("rails_per_panel") or 2),
            panel_material=ref("primary_material"),
            bracket_material=ref("bracket_material"),
            post_cap_material=ref("post_cap_material"),
        )

    try:
        post_type = PostType((values.get("post_type") or "WOOD").upper())
    except ValueError as exc:
        raise ValueError(f"{path.name} row {idx}: unknown post_type '{values['post_type']}'") from exc

    if family is FenceFamily.WOOD_HORIZONTAL:
        return WoodHorizontalProduct(
            sku=values["sku"],
            name=values["name"],
            height=height,
            post_type=post_type,
            style=style,
            post_material=required("post_material"),
            board_material=required("primary_material"),
            post_spacing=number("post_spacing") or 6.0,
            nailer_material=ref("secondary_material"),
            nailers_per_section=int(number("secondary_per_section") or 1),
            cap_material=ref("cap_material"),
            vertical_trim_material=ref("trim_material"),
            board_nail_material=ref("fastener_material"),
            frame_nail_material=ref("frame_fastener_material"),
        )

    return WoodVerticalProduct(
        sku=values["sku"],
        name=values["name"],
        height=height,
        post_type=post_type,
        style=style,
        rail_count=int(number("rail_count") or 2),
        post_material=required("post_material"),
        picket_material=required("primary_material"),
        rail_material=required("secondary_material"),
        post_spacing=number("post_spacing"),
        cap_material=ref("cap_material"),
        trim_material=ref("trim_material"),
        rot_board_material=ref("rot_board_material"),
        picket_nail_material=ref("fastener_material"),
        frame_nail_material=ref("frame_fastener_material"),
        bracket_material=ref("bracket_material"),
        post_cap_material=ref("post_cap_material"),
    )


def load_products(
    path: str | Path, materials: Mapping[str, Material]
) -> Dict[Tuple[FenceFamily, str], Product]:
    path = Path(path)
    products: Dict[Tuple[FenceFamily, str], Product] = {}
    for idx, values in _read_rows(path, _PRODUCT_ALIASES, ("family", "sku", "name")):
        product = _build_product(values, materials, idx, path)
        products[(product.family, product.sku)] = product
    return products


def load_labor_rates(path: str | Path) -> Dict[Tuple[str, str], LaborRate]:
    path = Path(path)
    rates: Dict[Tuple[str, str], LaborRate] = {}
    for idx, values in _read_rows(path, _LABOR_RATE_ALIASES, ("code", "business_unit", "rate")):
        rate = LaborRate(
            code=values["code"],
            business_unit=values["business_unit"],
            rate=_float(values, "rate", idx, path),
            description=values.get("description", ""),
            unit=values.get("unit") or "LF",
        )
        rates[(rate.code, rate.business_unit)] = rate
    return rates


def load_rate_sheets(directory: str | Path) -> RateSheetDirectory:
    """
    Rate sheets, their per-SKU overrides and scope assignments.

    All three files are optional; a catalog without them prices at cost.
    """
    directory = Path(directory)
    sheets_path = directory / RATE_SHEETS_FILE
    if not sheets_path.exists():
        return RateSheetDirectory()

    items: Dict[str, Dict[str, RateSheetItem]] = {}
    items_path = directory / RATE_SHEET_ITEMS_FILE
    if items_path.exists():
        for idx, values in _read_rows(items_path, _RATE_SHEET_ITEM_ALIASES, ("rate_sheet_id", "sku")):
            items.setdefault(values["rate_sheet_id"], {})[values["sku"]] = RateSheetItem(
                sku=values["sku"],
                fixed_price=_float(values, "fixed_price", idx, items_path),
                fixed_labor_price=_float(values, "fixed_labor_price", idx, items_path),
                fixed_material_price=_float(values, "fixed_material_price", idx, items_path),
                markup_percent=_float(values, "markup_percent", idx, items_path),
                margin_percent=_float(values, "margin_percent", idx, items_path),
            )

    sheets = []
    for idx, values in _read_rows(sheets_path, _RATE_SHEET_ALIASES, ("id", "name")):
        try:
            raw_type = (values.get("pricing_type") or "hybrid").lower()
            pricing_type = SheetPricingType(_PRICING_TYPE_ALIASES.get(raw_type, raw_type))
        except ValueError as exc:
            raise ValueError(
                f"{sheets_path.name} row {idx}: unknown pricing_type '{values['pricing_type']}'"
            ) from exc
        sheets.append(
            RateSheet(
                id=values["id"],
                name=values["name"],
                pricing_type=pricing_type,
                default_markup_percent=_float(values, "default_markup_percent", idx, sheets_path),
                default_margin_percent=_float(values, "default_margin_percent", idx, sheets_path),
                is_active=_bool(values.get("is_active") or "true"),
                items=items.get(values["id"], {}),
            )
        )

    location_sheets: Dict[str, str] = {}
    location_accounts: Dict[str, str] = {}
    account_sheets: Dict[str, str] = {}
    bu_sheets: Dict[str, str] = {}
    assignments_path = directory / RATE_SHEET_ASSIGNMENTS_FILE
    if assignments_path.exists():
        targets = {"location": location_sheets, "account": account_sheets, "bu": bu_sheets}
        for idx, values in _read_rows(assignments_path, _ASSIGNMENT_ALIASES, ("scope", "scope_id")):
            scope = values["scope"].lower()
            if scope not in targets:
                raise ValueError(f"{assignments_path.name} row {idx}: unknown scope '{scope}'")
            if values.get("rate_sheet_id"):
                targets[scope][values["scope_id"]] = values["rate_sheet_id"]
            if scope == "location" and values.get("account_id"):
                location_accounts[values["scope_id"]] = values["account_id"]

    return RateSheetDirectory(
        sheets,
        location_sheets=location_sheets,
        location_accounts=location_accounts,
        account_sheets=account_sheets,
        business_unit_sheets=bu_sheets,
    )


def load_catalog(directory: str | Path) -> Catalog:
    """
    Load a catalog directory.

    Required: materials.csv, products.csv, labor_rates.csv.
    Optional: rate_sheets.csv, rate_sheet_items.csv, rate_sheet_assignments.csv.
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise FileNotFoundError(f"Catalog directory not found: {directory}")

    materials = load_materials(directory / MATERIALS_FILE)
    products = load_products(directory / PRODUCTS_FILE, materials)
    labor_rates = load_labor_rates(directory / LABOR_RATES_FILE)
    rate_sheets = load_rate_sheets(directory)

    logger.info(
        "Loaded catalog from %s: %d materials, %d products, %d labor rates, %d rate sheets",
        directory,
        len(materials),
        len(products),
        len(labor_rates),
        len(rate_sheets.sheets),
    )
    return Catalog(
        materials=materials,
        products=products,
        labor_rates=labor_rates,
        rate_sheets=rate_sheets,
    )
