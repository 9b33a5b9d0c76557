# fencecalc/estimator.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from fencecalc.catalog_loader import Catalog
from fencecalc.concrete import size_concrete
from fencecalc.errors import FieldError, ValidationError
from fencecalc.geometry import calculate_line
from fencecalc.ledger import LaborRow, Ledger, MaterialRow, Summary, ceil_quantity
from fencecalc.models import (
    CalculationContext,
    CalculationWarning,
    ConcreteType,
    LineItem,
    Material,
    RawLabor,
    RawMaterial,
)

logger = logging.getLogger("fencecalc.estimator")

MIN_LINES, MAX_LINES = 1, 5
MIN_GATES, MAX_GATES = 0, 3


@dataclass
class CalculationResult:
    ledger: Ledger
    warnings: List[CalculationWarning] = field(default_factory=list)
    validation_errors: List[FieldError] = field(default_factory=list)
    total_footage: float = 0.0
    total_posts: float = 0.0

    @property
    def material_rows(self) -> Tuple[MaterialRow, ...]:
        return self.ledger.material_rows

    @property
    def labor_rows(self) -> Tuple[LaborRow, ...]:
        return self.ledger.labor_rows

    def summary(self) -> Summary:
        return self.ledger.summary(self.total_footage)


def validate_line_item(item: LineItem) -> List[FieldError]:
    """
    Per-field checks for one line item.

    Zero net footage and a missing product are not errors: such a line is
    simply still being filled in and contributes nothing.
    """
    errors: List[FieldError] = []
    if item.total_footage < 0:
        errors.append(FieldError("total_footage", "must be non-negative", item.id))
    if item.buffer < 0:
        errors.append(FieldError("buffer", "must be non-negative", item.id))
    if not MIN_LINES <= item.number_of_lines <= MAX_LINES:
        errors.append(
            FieldError("number_of_lines", f"must be between {MIN_LINES} and {MAX_LINES}", item.id)
        )
    if not MIN_GATES <= item.number_of_gates <= MAX_GATES:
        errors.append(
            FieldError("number_of_gates", f"must be between {MIN_GATES} and {MAX_GATES}", item.id)
        )
    return errors


def validate_context(context: CalculationContext, catalog: Catalog) -> None:
    if not catalog.has_business_unit(context.business_unit_id):
        raise ValidationError(
            [FieldError("business_unit_id", f"unknown business unit '{context.business_unit_id}'")]
        )


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

def aggregate_materials(
    raw: Iterable[RawMaterial], prior_rows: Sequence[MaterialRow] = ()
) -> Tuple[MaterialRow, ...]:
    """
    Sum raw quantities per material, round each sum once, then fold in the
    prior ledger: adjustments carry over by SKU, adjusted rows that vanished
    stay as orphans, manual rows pass through untouched.
    """
    totals: Dict[str, float] = {}
    seen: Dict[str, Material] = {}
    for item in raw:
        sku = item.material.sku
        if sku not in seen:
            seen[sku] = item.material
            totals[sku] = 0.0
        totals[sku] += item.quantity

    adjustments = {r.material_sku: r.adjustment for r in prior_rows if not r.is_manual}

    rows: List[MaterialRow] = []
    for sku, material in seen.items():
        quantity = totals[sku]
        rows.append(
            MaterialRow(
                material_sku=sku,
                name=material.name,
                unit=material.unit,
                unit_cost=material.unit_cost,
                calculated_quantity=quantity,
                rounded_quantity=ceil_quantity(quantity),
                adjustment=adjustments.get(sku, 0.0),
                category=material.category,
            )
        )

    for row in prior_rows:
        if not row.is_manual and row.material_sku not in seen and row.adjustment != 0:
            rows.append(replace(row, calculated_quantity=0.0, rounded_quantity=0))

    rows.extend(row for row in prior_rows if row.is_manual)
    return tuple(rows)


def aggregate_labor(
    raw: Iterable[RawLabor],
    context: CalculationContext,
    catalog: Catalog,
    prior_rows: Sequence[LaborRow] = (),
) -> Tuple[Tuple[LaborRow, ...], List[CalculationWarning]]:
    """Labor quantities stay continuous; adjustments are dollar deltas."""
    warnings: List[CalculationWarning] = []
    quantities: Dict[str, float] = {}
    missing: List[str] = []
    for item in raw:
        if item.code in missing:
            continue
        if item.code not in quantities:
            if catalog.labor_rate(item.code, context.business_unit_id) is None:
                missing.append(item.code)
                logger.warning(
                    "No labor rate for %s in business unit %s", item.code, context.business_unit_id
                )
                warnings.append(
                    CalculationWarning(
                        code="missing_labor_rate",
                        message=f"No labor rate for '{item.code}' in business unit "
                        f"'{context.business_unit_id}'",
                    )
                )
                continue
            quantities[item.code] = 0.0
        quantities[item.code] += item.quantity

    adjustments = {r.labor_code: r.adjustment for r in prior_rows if not r.is_manual}

    rows: List[LaborRow] = []
    for code, quantity in quantities.items():
        rate = catalog.labor_rate(code, context.business_unit_id)
        rows.append(
            LaborRow(
                labor_code=code,
                description=rate.description,
                unit=rate.unit,
                rate=rate.rate,
                quantity=quantity,
                adjustment=adjustments.get(code, 0.0),
            )
        )

    for row in prior_rows:
        if not row.is_manual and row.labor_code not in quantities and row.adjustment != 0:
            rows.append(replace(row, quantity=0.0))

    rows.extend(row for row in prior_rows if row.is_manual)
    return tuple(rows), warnings


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def calculate(
    line_items: Sequence[LineItem],
    concrete_type: Optional[ConcreteType],
    context: CalculationContext,
    catalog: Catalog,
    prior: Optional[Ledger] = None,
) -> CalculationResult:
    """
    Full recomputation of an estimate.

    - Runs the geometry for every valid line item.
    - Sizes concrete from the post count of the whole project.
    - Aggregates and rounds once, carrying adjustments from `prior`.

    Bad line items are excluded and reported; missing catalog data is
    reported as warnings. Neither stops the rest of the estimate.
    """
    validate_context(context, catalog)
    prior = prior or Ledger()

    raw_materials: List[RawMaterial] = []
    raw_labor: List[RawLabor] = []
    warnings: List[CalculationWarning] = []
    validation_errors: List[FieldError] = []
    total_posts = 0.0
    total_footage = 0.0

    for item in line_items:
        errors = validate_line_item(item)
        if errors:
            logger.info(
                "Excluding line item %s: %d invalid field(s)",
                item.id,
                len(errors),
                extra={"line_item_id": item.id},
            )
            validation_errors.extend(errors)
            continue
        if not item.product_sku or item.net_length <= 0:
            continue

        product = catalog.product(item.family, item.product_sku)
        if product is None:
            logger.warning(
                "Product %s/%s not found",
                item.family.value,
                item.product_sku,
                extra={"line_item_id": item.id},
            )
            warnings.append(
                CalculationWarning(
                    code="missing_product",
                    message=f"Product '{item.product_sku}' not found for {item.family.value}",
                    line_item_id=item.id,
                )
            )
            continue

        geometry = calculate_line(product, item)
        raw_materials.extend(geometry.materials)
        raw_labor.extend(geometry.labor)
        total_posts += geometry.posts
        total_footage += item.net_length

    if concrete_type is not None:
        concrete, concrete_warnings = size_concrete(total_posts, concrete_type, catalog.materials)
        raw_materials.extend(concrete)
        warnings.extend(concrete_warnings)

    material_rows = aggregate_materials(raw_materials, prior.material_rows)
    labor_rows, labor_warnings = aggregate_labor(raw_labor, context, catalog, prior.labor_rows)
    warnings.extend(labor_warnings)

    ledger = Ledger(
        material_rows=material_rows,
        labor_rows=labor_rows,
        revision=prior.revision + 1,
    )
    return CalculationResult(
        ledger=ledger,
        warnings=warnings,
        validation_errors=validation_errors,
        total_footage=total_footage,
        total_posts=total_posts,
    )
