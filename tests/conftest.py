"""
conftest.py: Shared fixtures for the fencecalc test suite.

Everything here is built in memory so the unit tests never touch the
filesystem. The values mirror samples/, which the loader and API tests
read from disk.
"""
from pathlib import Path

import pytest

from fencecalc.catalog_loader import Catalog, LaborRate
from fencecalc.models import (
    FenceFamily,
    IronProduct,
    Material,
    PostType,
    WoodHorizontalProduct,
    WoodVerticalProduct,
)
from fencecalc.pricing import RateSheetDirectory

SAMPLES_DIR = Path(__file__).resolve().parent.parent / "samples"


def _m(sku, name, unit, cost, category=None, length=None, width=None):
    return Material(sku, name, unit, cost, category, length, width)


# ---------------------------------------------------------------------------
# Materials
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def materials():
    """
    Picket P601 and boards are 5.5 in actual width; boards and rails 8 ft.
    Concrete SKUs are the ones the mixes look up by code.
    """
    items = [
        _m("PS13", "4x4 PTP 8ft", "Each", 12.50, "01-Post", 8, 3.5),
        _m("PS04", "2in Square Tubing 8ft", "Each", 18.75, "01-Post", 8, 2.0),
        _m("IPS01", "2x2 Iron Post 8ft", "Each", 32.00, "01-Post", 8, 2.0),
        _m("P601", "1x6 x 6ft Picket", "Each", 3.25, "02-Pickets", 6, 5.5),
        _m("RA01", "2x4 x 8ft Rail", "Each", 5.50, "03-Rails", 8, 3.5),
        _m("CAP01", "1x6 x 8ft Cap", "Each", 4.25, "04-Cap/Trim", 8, 5.5),
        _m("CTN03", "1x4 x 8ft Trim", "Each", 4.50, "04-Cap/Trim", 8, 3.5),
        _m("RB01", "2x6 x 8ft Rot Board", "Each", 9.25, "04-Cap/Trim", 8, 5.5),
        _m("CTS", "Sand & Gravel 50lb", "Bags", 4.25, "06-Concrete"),
        _m("CTP", "Portland 94lb", "Bags", 12.75, "06-Concrete"),
        _m("CTQ", "QuickRock 50lb", "Bags", 5.50, "06-Concrete"),
        _m("CTY", "Yellow Bag 50lb", "Bags", 6.25, "06-Concrete"),
        _m("CTR", "Red Bag 50lb", "Bags", 5.75, "06-Concrete"),
        _m("HB601", "1x6 x 8ft Horizontal Board", "Each", 3.75, "07-Horizontal Boards", 8, 5.5),
        _m("NL01", "2x4 x 8ft Nailer", "Each", 5.50, "07-Horizontal Boards", 8, 3.5),
        _m("HW07", "Framing Nails (box of 28)", "Box", 8.50, "08-Hardware"),
        _m("HW08", "Picket Nails (coil of 300)", "Box", 12.75, "08-Hardware"),
        _m("HW30", "Steel Post Rail Bracket", "Each", 1.95, "08-Hardware"),
        _m("HW31", "Steel Post Cap", "Each", 2.10, "08-Hardware"),
        _m("IP01", "Standard 2-Rail Panel", "Each", 85.00, "09-Iron", 8),
        _m("IP03", "Ameristar 3-Rail Panel", "Each", 165.00, "09-Iron", 8),
        _m("IB01", "Ameristar Rail Bracket", "Each", 2.75, "09-Iron"),
        _m("IPC01", "Iron Post Cap", "Each", 8.50, "09-Iron"),
    ]
    return {m.sku: m for m in items}


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def products(materials):
    """
    A01  6 ft standard, wood post, 2 rails, 8 ft spacing
    A05  6 ft good-neighbor, spacing left to the style (7.71 ft)
    B03  8 ft board-on-board, 3 rails, cap + trim + rot board
    C01  6 ft standard on steel posts with brackets and caps
    H01  6 ft horizontal, 6 ft spacing, one nailer per section
    H04  6 ft horizontal good-neighbor with cap
    I01  4 ft welded 2-rail iron
    I05  6 ft Ameristar 3-rail iron (bracketed panels)
    """
    m = materials
    wood_common = dict(
        picket_material=m["P601"],
        rail_material=m["RA01"],
        picket_nail_material=m["HW08"],
        frame_nail_material=m["HW07"],
    )
    horizontal_common = dict(
        post_material=m["PS13"],
        board_material=m["HB601"],
        nailer_material=m["NL01"],
        board_nail_material=m["HW08"],
        frame_nail_material=m["HW07"],
    )
    items = [
        WoodVerticalProduct(
            sku="A01", name="6' Ver 1x6 2R Wood", height=6, post_type=PostType.WOOD,
            style="standard", rail_count=2, post_material=m["PS13"], post_spacing=8,
            **wood_common,
        ),
        WoodVerticalProduct(
            sku="A05", name="6' Ver 1x6 2R Good Neighbor", height=6, post_type=PostType.WOOD,
            style="good-neighbor", rail_count=2, post_material=m["PS13"], **wood_common,
        ),
        WoodVerticalProduct(
            sku="B03", name="8' Ver BOB Cap & Trim", height=8, post_type=PostType.WOOD,
            style="board-on-board", rail_count=3, post_material=m["PS13"], post_spacing=8,
            cap_material=m["CAP01"], trim_material=m["CTN03"], rot_board_material=m["RB01"],
            **wood_common,
        ),
        WoodVerticalProduct(
            sku="C01", name="6' Ver 1x6 2R Steel", height=6, post_type=PostType.STEEL,
            style="standard", rail_count=2, post_material=m["PS04"], post_spacing=8,
            bracket_material=m["HW30"], post_cap_material=m["HW31"], **wood_common,
        ),
        WoodHorizontalProduct(
            sku="H01", name="6' Hor 1x6", height=6, post_type=PostType.WOOD,
            style="standard", post_spacing=6, **horizontal_common,
        ),
        WoodHorizontalProduct(
            sku="H04", name="6' Hor 1x6 Good Neighbor Cap", height=6, post_type=PostType.WOOD,
            style="good-neighbor", post_spacing=6, cap_material=m["CAP01"],
            **horizontal_common,
        ),
        IronProduct(
            sku="I01", name="4' Iron 2-Rail", height=4, style="standard-2-rail",
            post_material=m["IPS01"], panel_material=m["IP01"],
            post_cap_material=m["IPC01"],
        ),
        IronProduct(
            sku="I05", name="6' Ameristar 3-Rail", height=6, style="ameristar",
            post_material=m["IPS01"], panel_material=m["IP03"], rails_per_panel=3,
            bracket_material=m["IB01"], post_cap_material=m["IPC01"],
        ),
    ]
    return {(p.family, p.sku): p for p in items}


@pytest.fixture(scope="session")
def product(products):
    """Look a product up by SKU alone."""
    by_sku = {sku: p for (_, sku), p in products.items()}
    return by_sku.__getitem__


# ---------------------------------------------------------------------------
# Labor rates and catalog
# ---------------------------------------------------------------------------

ATX_RATES = {
    "W02": 2.50, "W03": 3.75, "W04": 4.25, "M03": 4.25, "M04": 4.75, "W05": 0.75,
    "W06": 1.50, "M06": 1.75, "W07": 1.25, "M07": 1.50, "W08": 0.75, "W09": 0.75,
    "W10": 85.00, "W11": 110.00, "W12": 2.75, "W13": 4.50, "W15": 125.00,
    "W16": 3.00, "W17": 5.00, "W18": 5.25, "IR01": 3.00, "IR02": 4.00,
    "IR04": 6.50, "IR05": 3.25, "IR06": 3.50, "IR07": 150.00,
}

# a thin business unit that only prices the basic vertical codes
SA_RATES = {"W02": 2.25, "W03": 3.50, "W10": 80.00}


@pytest.fixture(scope="session")
def labor_rates():
    rates = {}
    for bu, table in (("ATX-RES", ATX_RATES), ("SA-RES", SA_RATES)):
        for code, rate in table.items():
            unit = "Gate" if code in ("W10", "W11", "W15", "IR07") else "LF"
            rates[(code, bu)] = LaborRate(code, bu, rate, f"{code} labor", unit)
    return rates


@pytest.fixture(scope="session")
def catalog(materials, products, labor_rates):
    return Catalog(
        materials=materials,
        products=products,
        labor_rates=labor_rates,
        rate_sheets=RateSheetDirectory(),
    )


@pytest.fixture(scope="session")
def samples_dir():
    return SAMPLES_DIR
