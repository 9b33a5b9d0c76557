# fencecalc/ledger.py
"""
Totals ledger: the material and labor rows of one estimate revision.

A Ledger is never mutated. Every operation returns the next revision, which
keeps recomputation and manual edits from stepping on each other.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from math import ceil
from typing import Any, Dict, Iterable, Optional, Tuple

from fencecalc.models import Material

QUANTITY_PRECISION = 6


def ceil_quantity(value: float) -> int:
    """Ceiling that ignores float noise, so 246.00000000000003 stays 246."""
    return ceil(round(value, QUANTITY_PRECISION))


def _round_money(value: float) -> float:
    return round(value, 2)


@dataclass(frozen=True)
class MaterialRow:
    material_sku: str
    name: str
    unit: str
    unit_cost: float
    calculated_quantity: float
    rounded_quantity: int
    adjustment: float = 0.0
    is_manual: bool = False
    category: Optional[str] = None

    @property
    def total_quantity(self) -> float:
        return max(0.0, self.rounded_quantity + self.adjustment)

    @property
    def total_cost(self) -> float:
        return self.total_quantity * self.unit_cost

    @property
    def is_orphaned(self) -> bool:
        """Kept only because it carries a manual adjustment."""
        return not self.is_manual and self.calculated_quantity == 0 and self.adjustment != 0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["total_quantity"] = self.total_quantity
        data["total_cost"] = _round_money(self.total_cost)
        data["is_orphaned"] = self.is_orphaned
        return data


@dataclass(frozen=True)
class LaborRow:
    labor_code: str
    description: str
    unit: str
    rate: float
    quantity: float
    adjustment: float = 0.0
    is_manual: bool = False

    @property
    def calculated_cost(self) -> float:
        return self.quantity * self.rate

    @property
    def total_cost(self) -> float:
        return max(0.0, self.calculated_cost + self.adjustment)

    @property
    def is_orphaned(self) -> bool:
        return not self.is_manual and self.quantity == 0 and self.adjustment != 0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["calculated_cost"] = _round_money(self.calculated_cost)
        data["total_cost"] = _round_money(self.total_cost)
        data["is_orphaned"] = self.is_orphaned
        return data


@dataclass(frozen=True)
class Summary:
    material_total: float
    labor_total: float
    project_total: float
    total_footage: float
    cost_per_foot: float
    adjustment_total: float


def _replace_row(rows: Tuple, index: int, row) -> Tuple:
    return rows[:index] + (row,) + rows[index + 1:]


def _find(rows: Iterable, key: str, attr: str, manual: bool) -> int:
    for index, row in enumerate(rows):
        if getattr(row, attr) == key and row.is_manual == manual:
            return index
    kind = "manual " if manual else ""
    raise KeyError(f"No {kind}row for '{key}' in ledger")


@dataclass(frozen=True)
class Ledger:
    material_rows: Tuple[MaterialRow, ...] = ()
    labor_rows: Tuple[LaborRow, ...] = ()
    revision: int = 0

    def _next(self, **changes) -> "Ledger":
        return replace(self, revision=self.revision + 1, **changes)

    # ---- adjustments ----

    def apply_material_adjustment(
        self, material_sku: str, adjustment: float, *, manual: bool = False
    ) -> "Ledger":
        """Set the unit delta on a material row."""
        index = _find(self.material_rows, material_sku, "material_sku", manual)
        row = replace(self.material_rows[index], adjustment=float(adjustment))
        return self._next(material_rows=_replace_row(self.material_rows, index, row))

    def apply_labor_adjustment(
        self, labor_code: str, adjustment: float, *, manual: bool = False
    ) -> "Ledger":
        """Set the dollar delta on a labor row."""
        index = _find(self.labor_rows, labor_code, "labor_code", manual)
        row = replace(self.labor_rows[index], adjustment=float(adjustment))
        return self._next(labor_rows=_replace_row(self.labor_rows, index, row))

    # ---- manual rows ----

    def add_manual_material_row(self, material: Material, quantity: float = 0.0) -> "Ledger":
        if any(r.is_manual and r.material_sku == material.sku for r in self.material_rows):
            raise ValueError(f"Manual material row for '{material.sku}' already exists")
        if quantity < 0:
            raise ValueError(f"Quantity must be non-negative for SKU {material.sku}")
        row = MaterialRow(
            material_sku=material.sku,
            name=material.name,
            unit=material.unit,
            unit_cost=material.unit_cost,
            calculated_quantity=float(quantity),
            rounded_quantity=ceil_quantity(quantity),
            is_manual=True,
            category=material.category,
        )
        return self._next(material_rows=self.material_rows + (row,))

    def add_manual_labor_row(
        self,
        labor_code: str,
        rate: float,
        quantity: float = 1.0,
        description: str = "",
        unit: str = "Each",
    ) -> "Ledger":
        if any(r.is_manual and r.labor_code == labor_code for r in self.labor_rows):
            raise ValueError(f"Manual labor row for '{labor_code}' already exists")
        if rate < 0 or quantity < 0:
            raise ValueError(f"Rate and quantity must be non-negative for labor {labor_code}")
        row = LaborRow(
            labor_code=labor_code,
            description=description,
            unit=unit,
            rate=float(rate),
            quantity=float(quantity),
            is_manual=True,
        )
        return self._next(labor_rows=self.labor_rows + (row,))

    def remove_material_row(self, material_sku: str, *, manual: bool = True) -> "Ledger":
        """
        Drop a row. Geometry rows come back on the next recomputation, so this
        is mainly for manual rows and orphaned adjustments.
        """
        index = _find(self.material_rows, material_sku, "material_sku", manual)
        return self._next(material_rows=self.material_rows[:index] + self.material_rows[index + 1:])

    def remove_labor_row(self, labor_code: str, *, manual: bool = True) -> "Ledger":
        index = _find(self.labor_rows, labor_code, "labor_code", manual)
        return self._next(labor_rows=self.labor_rows[:index] + self.labor_rows[index + 1:])

    # ---- views ----

    def summary(self, total_footage: float) -> Summary:
        material_total = sum(r.total_cost for r in self.material_rows)
        labor_total = sum(r.total_cost for r in self.labor_rows)
        project_total = material_total + labor_total
        cost_per_foot = project_total / total_footage if total_footage > 0 else 0.0
        adjustment_total = sum(r.adjustment * r.unit_cost for r in self.material_rows) + sum(
            r.adjustment for r in self.labor_rows
        )
        return Summary(
            material_total=_round_money(material_total),
            labor_total=_round_money(labor_total),
            project_total=_round_money(project_total),
            total_footage=total_footage,
            cost_per_foot=_round_money(cost_per_foot),
            adjustment_total=_round_money(adjustment_total),
        )
