# fencecalc/main.py
from __future__ import annotations

import os
from dataclasses import asdict
from typing import List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from fencecalc.catalog_loader import Catalog, load_catalog
from fencecalc.errors import ValidationError
from fencecalc.estimator import CalculationResult, calculate
from fencecalc.ledger import LaborRow, Ledger, MaterialRow
from fencecalc.logging_config import setup_logging
from fencecalc.models import CalculationContext, ConcreteType, FenceFamily, LineItem
from fencecalc.pricing import PricingResolver, price_material_rows


app = FastAPI(title="Fence BOM/BOL Calculator")


class LineItemModel(BaseModel):
    id: str
    family: FenceFamily
    product_sku: Optional[str] = None
    total_footage: float = 0.0
    buffer: float = 0.0
    number_of_lines: int = 1
    number_of_gates: int = 0


class MaterialRowModel(BaseModel):
    material_sku: str
    name: str = ""
    unit: str = ""
    unit_cost: float = Field(0, ge=0)
    calculated_quantity: float = 0.0
    rounded_quantity: int = 0
    adjustment: float = 0.0
    is_manual: bool = False
    category: Optional[str] = None


class LaborRowModel(BaseModel):
    labor_code: str
    description: str = ""
    unit: str = ""
    rate: float = Field(0, ge=0)
    quantity: float = 0.0
    adjustment: float = 0.0
    is_manual: bool = False


class CalculateRequest(BaseModel):
    line_items: List[LineItemModel]
    concrete_type: Optional[ConcreteType] = ConcreteType.THREE_PART
    business_unit_id: str
    location_id: Optional[str] = None
    account_id: Optional[str] = None
    material_rows: List[MaterialRowModel] = Field(default_factory=list)
    labor_rows: List[LaborRowModel] = Field(default_factory=list)
    revision: int = 0


class PriceRequest(BaseModel):
    sku: str
    base_cost: float = Field(..., ge=0)
    business_unit_id: str
    location_id: Optional[str] = None
    account_id: Optional[str] = None


def _load_catalog_for_app() -> Catalog:
    """
    Locate and load the catalog directory for the API.

    - Use CATALOG_DIR if set.
    - Otherwise try ./catalog then ./samples
    """
    candidates = []
    env_path = os.getenv("CATALOG_DIR")
    if env_path:
        candidates.append(env_path)
    candidates.extend(["catalog", "samples"])

    for candidate in candidates:
        if candidate and os.path.isdir(candidate):
            return load_catalog(candidate)

    raise RuntimeError("No catalog directory found. Set CATALOG_DIR or add ./catalog.")


@app.on_event("startup")
def startup_event() -> None:
    setup_logging(
        level=os.getenv("LOG_LEVEL", "INFO"),
        json_output=os.getenv("LOG_JSON", "1") not in ("0", "false", "False"),
    )
    app.state.catalog = _load_catalog_for_app()


def _ensure_catalog() -> Catalog:
    catalog = getattr(app.state, "catalog", None)
    if not catalog:
        raise HTTPException(status_code=500, detail="Catalog is not loaded")
    return catalog


def _prior_ledger(request: CalculateRequest) -> Ledger:
    return Ledger(
        material_rows=tuple(MaterialRow(**row.model_dump()) for row in request.material_rows),
        labor_rows=tuple(LaborRow(**row.model_dump()) for row in request.labor_rows),
        revision=request.revision,
    )


def _result_payload(
    result: CalculationResult, resolver: PricingResolver, context: CalculationContext
) -> dict:
    return {
        "revision": result.ledger.revision,
        "material_rows": [row.to_dict() for row in result.material_rows],
        "labor_rows": [row.to_dict() for row in result.labor_rows],
        "priced_materials": [
            asdict(row) for row in price_material_rows(result.material_rows, resolver, context)
        ],
        "summary": asdict(result.summary()),
        "total_posts": result.total_posts,
        "warnings": [asdict(w) for w in result.warnings],
        "validation_errors": [asdict(e) for e in result.validation_errors],
    }


@app.get("/health")
def health():
    return {"status": "ok", "catalog_loaded": bool(getattr(app.state, "catalog", None))}


@app.post("/calculate")
def calculate_project(request: CalculateRequest):
    """
    Recompute an estimate.

    Send the current line items plus the rows you got back last time; manual
    rows and adjustments in them are carried into the new revision.
    """
    catalog = _ensure_catalog()
    context = CalculationContext(
        business_unit_id=request.business_unit_id,
        location_id=request.location_id,
        account_id=request.account_id,
    )
    line_items = [LineItem(**item.model_dump()) for item in request.line_items]

    try:
        result = calculate(
            line_items,
            request.concrete_type,
            context,
            catalog,
            prior=_prior_ledger(request),
        )
    except ValidationError as exc:
        raise HTTPException(
            status_code=400, detail=[asdict(e) for e in exc.errors]
        ) from exc

    return _result_payload(result, PricingResolver(catalog.rate_sheets), context)


@app.post("/price")
def resolve_price(request: PriceRequest):
    catalog = _ensure_catalog()
    context = CalculationContext(
        business_unit_id=request.business_unit_id,
        location_id=request.location_id,
        account_id=request.account_id,
    )
    resolved = PricingResolver(catalog.rate_sheets).resolve(request.sku, request.base_cost, context)
    return asdict(resolved)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("fencecalc.main:app", host="0.0.0.0", port=8000, reload=True)
