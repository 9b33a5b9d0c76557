"""
test_catalog_loader.py: CSV catalog loading, header aliases and row errors.
"""
import pytest

from fencecalc.catalog_loader import (
    load_catalog,
    load_labor_rates,
    load_materials,
    load_products,
    load_rate_sheets,
)
from fencecalc.models import (
    CalculationContext,
    FenceFamily,
    IronProduct,
    PostType,
    WoodVerticalProduct,
)
from fencecalc.pricing import PriceSource, PricingResolver, SheetPricingType


def _write(path, text):
    path.write_text(text.strip() + "\n", encoding="utf-8")
    return path


MATERIALS_CSV = """
Item_Code,Description,UOM,Cost,Length,Width_In
PS13,4x4 Post,Each,12.50,8,3.5
P601,1x6 Picket,Each,3.25,6,5.5
RA01,2x4 Rail,Each,5.50,8,3.5
IPS01,Iron Post,Each,32.00,8,2
IP01,Iron Panel,Each,85.00,8,
"""


class TestMaterials:

    def test_aliased_headers(self, tmp_path):
        materials = load_materials(_write(tmp_path / "materials.csv", MATERIALS_CSV))

        assert set(materials) == {"PS13", "P601", "RA01", "IPS01", "IP01"}
        picket = materials["P601"]
        assert picket.unit_cost == 3.25
        assert picket.length_ft == 6
        assert picket.actual_width == 5.5
        assert materials["IP01"].actual_width is None

    def test_blank_rows_skipped(self, tmp_path):
        path = _write(tmp_path / "materials.csv", "sku,name,unit,unit_cost\nA,a,Each,1\n,,,\nB,b,Each,2")
        assert set(load_materials(path)) == {"A", "B"}

    def test_missing_column(self, tmp_path):
        path = _write(tmp_path / "materials.csv", "sku,name,unit\nA,a,Each")
        with pytest.raises(ValueError, match="unit_cost"):
            load_materials(path)

    def test_bad_number_names_row(self, tmp_path):
        path = _write(tmp_path / "materials.csv", "sku,name,unit,unit_cost\nA,a,Each,cheap")
        with pytest.raises(ValueError, match="row 2"):
            load_materials(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_materials(tmp_path / "nope.csv")


class TestProducts:

    @pytest.fixture
    def materials(self, tmp_path):
        return load_materials(_write(tmp_path / "materials.csv", MATERIALS_CSV))

    def test_wood_vertical_defaults(self, tmp_path, materials):
        path = _write(
            tmp_path / "products.csv",
            """
family,sku,name,height,post_type,style,post_material,picket_material,rail_material
Wood-Vertical,A05,GN,6,wood,Good Neighbor,PS13,P601,RA01
""",
        )
        product = load_products(path, materials)[(FenceFamily.WOOD_VERTICAL, "A05")]

        assert isinstance(product, WoodVerticalProduct)
        assert product.post_type is PostType.WOOD
        assert product.rail_count == 2
        assert product.spacing == 7.71

    def test_iron(self, tmp_path, materials):
        path = _write(
            tmp_path / "products.csv",
            """
family,sku,name,height,style,post_material,panel_material,rails_per_panel
iron,I01,Iron,4,standard-2-rail,IPS01,IP01,
""",
        )
        product = load_products(path, materials)[(FenceFamily.IRON, "I01")]

        assert isinstance(product, IronProduct)
        assert product.panel_width == 8.0
        assert product.rails_per_panel == 2
        assert product.panel_material.sku == "IP01"

    def test_unknown_material_reference(self, tmp_path, materials):
        path = _write(
            tmp_path / "products.csv",
            """
family,sku,name,height,post_material,primary_material,secondary_material
wood-vertical,A01,Std,6,PS99,P601,RA01
""",
        )
        with pytest.raises(KeyError, match="PS99"):
            load_products(path, materials)

    def test_unknown_family(self, tmp_path, materials):
        path = _write(
            tmp_path / "products.csv",
            "family,sku,name,height,post_material\nvinyl,V1,Vinyl,6,PS13",
        )
        with pytest.raises(ValueError, match="vinyl"):
            load_products(path, materials)


class TestLaborRates:

    def test_aliases_and_default_unit(self, tmp_path):
        path = _write(
            tmp_path / "labor_rates.csv",
            "Labor_SKU,BU,Labor_Rate,Desc\nW02,ATX-RES,2.50,Set Post",
        )
        rate = load_labor_rates(path)[("W02", "ATX-RES")]

        assert rate.rate == 2.50
        assert rate.unit == "LF"
        assert rate.description == "Set Post"


class TestRateSheets:

    def test_no_rate_sheets_prices_at_cost(self, tmp_path):
        directory = load_rate_sheets(tmp_path)
        resolved = PricingResolver(directory).resolve("X", 5.0, CalculationContext("ATX-RES"))
        assert resolved.source is PriceSource.CATALOG

    def test_unknown_scope(self, tmp_path):
        _write(tmp_path / "rate_sheets.csv", "id,name\nRS1,Sheet")
        _write(tmp_path / "rate_sheet_assignments.csv", "scope,scope_id,rate_sheet_id\nregion,TX,RS1")
        with pytest.raises(ValueError, match="region"):
            load_rate_sheets(tmp_path)

    def test_custom_pricing_type_is_fixed(self, tmp_path):
        _write(tmp_path / "rate_sheets.csv", "id,name,pricing_type\nRS1,Legacy,Custom\nRS2,Plain,")
        sheets = load_rate_sheets(tmp_path).sheets

        assert sheets["RS1"].pricing_type is SheetPricingType.FIXED
        assert sheets["RS2"].pricing_type is SheetPricingType.HYBRID

    def test_unknown_pricing_type(self, tmp_path):
        _write(tmp_path / "rate_sheets.csv", "id,name,pricing_type\nRS1,Odd,tiered")
        with pytest.raises(ValueError, match="tiered"):
            load_rate_sheets(tmp_path)

    def test_fixed_price_split(self, tmp_path):
        _write(tmp_path / "rate_sheets.csv", "id,name\nRS1,Sheet")
        _write(
            tmp_path / "rate_sheet_items.csv",
            "sheet_id,sku,price,labor_price,material_price\nRS1,P601,4.10,0.85,3.25",
        )
        item = load_rate_sheets(tmp_path).sheets["RS1"].items["P601"]

        assert item.fixed_price == 4.10
        assert item.fixed_labor_price == 0.85
        assert item.fixed_material_price == 3.25


class TestSamples:

    def test_samples_load(self, samples_dir):
        catalog = load_catalog(samples_dir)

        assert catalog.product(FenceFamily.WOOD_VERTICAL, "A01") is not None
        assert catalog.product(FenceFamily.IRON, "I05").bracket_material.sku == "IB01"
        assert catalog.labor_rate("W02", "SA-RES").rate == 2.25
        assert catalog.has_business_unit("ATX-RES")
        assert not catalog.has_business_unit("DAL-RES")

    def test_sample_rate_sheets(self, samples_dir):
        sheets = load_catalog(samples_dir).rate_sheets

        assert sheets.sheets["RS-OAKS"].pricing_type is SheetPricingType.FIXED
        assert sheets.sheets["RS-OAKS"].items["P601"].fixed_price == 4.10
        assert sheets.sheets["RS-OLD"].is_active is False
        assert sheets.location_accounts["LOC-MEADOWS"] == "ACC-LENNAR"
        assert "LOC-MEADOWS" not in sheets.location_sheets

    def test_missing_directory(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_catalog(tmp_path / "missing")
