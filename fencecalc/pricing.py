# fencecalc/pricing.py
"""
Rate-sheet price resolution.

Scopes are walked most specific first: location, account, business unit.
The first sheet with an entry for the SKU prices it. When no sheet has an
entry, the first sheet with a usable default formula prices it. Otherwise
the price is the cost.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from fencecalc.ledger import MaterialRow
from fencecalc.models import CalculationContext

logger = logging.getLogger("fencecalc.pricing")


class PriceSource(str, Enum):
    LOCATION = "location"
    ACCOUNT = "account"
    BUSINESS_UNIT = "bu"
    CATALOG = "catalog"


class PricingMethod(str, Enum):
    FIXED = "fixed"
    MARKUP = "markup"
    MARGIN = "margin"
    DEFAULT_MARGIN = "default_margin"
    DEFAULT_MARKUP = "default_markup"
    COST_ONLY = "cost_only"


class SheetPricingType(str, Enum):
    FIXED = "fixed"
    FORMULA = "formula"
    HYBRID = "hybrid"


@dataclass(frozen=True)
class RateSheetItem:
    sku: str
    fixed_price: Optional[float] = None
    fixed_labor_price: Optional[float] = None
    fixed_material_price: Optional[float] = None
    markup_percent: Optional[float] = None
    margin_percent: Optional[float] = None


@dataclass(frozen=True)
class RateSheet:
    id: str
    name: str
    pricing_type: SheetPricingType = SheetPricingType.HYBRID
    default_markup_percent: Optional[float] = None
    default_margin_percent: Optional[float] = None
    is_active: bool = True
    items: Mapping[str, RateSheetItem] = field(default_factory=dict)


@dataclass(frozen=True)
class ResolvedPrice:
    sku: str
    base_cost: float
    price: float
    source: PriceSource
    method: PricingMethod
    rate_sheet_id: Optional[str] = None
    rate_sheet_name: Optional[str] = None
    # labor/material breakdown of a fixed price, when the sheet records one
    labor_price: Optional[float] = None
    material_price: Optional[float] = None


def _round_money(value: float) -> float:
    return round(value, 2)


def _margin_price(cost: float, margin_percent: float) -> Optional[float]:
    # price = cost / (1 - margin); a margin of 100% or more has no price
    if margin_percent >= 100:
        logger.warning("Ignoring margin target of %s%%", margin_percent)
        return None
    return cost / (1 - margin_percent / 100.0)


def _markup_price(cost: float, markup_percent: float) -> float:
    return cost * (1 + markup_percent / 100.0)


def price_from_item(cost: float, item: RateSheetItem) -> Optional[Tuple[float, PricingMethod]]:
    if item.fixed_price is not None:
        return item.fixed_price, PricingMethod.FIXED
    if item.markup_percent is not None:
        return _markup_price(cost, item.markup_percent), PricingMethod.MARKUP
    if item.margin_percent is not None:
        price = _margin_price(cost, item.margin_percent)
        if price is not None:
            return price, PricingMethod.MARGIN
    return None


def price_from_sheet_default(cost: float, sheet: RateSheet) -> Optional[Tuple[float, PricingMethod]]:
    if sheet.pricing_type is SheetPricingType.FIXED:
        return None
    if sheet.default_margin_percent is not None:
        price = _margin_price(cost, sheet.default_margin_percent)
        if price is not None:
            return price, PricingMethod.DEFAULT_MARGIN
    if sheet.default_markup_percent:
        return _markup_price(cost, sheet.default_markup_percent), PricingMethod.DEFAULT_MARKUP
    return None


class RateSheetDirectory:
    """
    Which rate sheet is assigned at which scope.

    A location may belong to an account; if a request only names the
    location, that account's sheet is still consulted.
    """

    def __init__(
        self,
        sheets: Iterable[RateSheet] = (),
        *,
        location_sheets: Optional[Mapping[str, str]] = None,
        location_accounts: Optional[Mapping[str, str]] = None,
        account_sheets: Optional[Mapping[str, str]] = None,
        business_unit_sheets: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.sheets: Dict[str, RateSheet] = {sheet.id: sheet for sheet in sheets}
        self.location_sheets = dict(location_sheets or {})
        self.location_accounts = dict(location_accounts or {})
        self.account_sheets = dict(account_sheets or {})
        self.business_unit_sheets = dict(business_unit_sheets or {})

    def _active(self, sheet_id: Optional[str]) -> Optional[RateSheet]:
        if not sheet_id:
            return None
        sheet = self.sheets.get(sheet_id)
        if sheet is None:
            logger.warning("Rate sheet %s is assigned but not loaded", sheet_id)
            return None
        return sheet if sheet.is_active else None

    def chain(self, context: CalculationContext) -> List[Tuple[PriceSource, RateSheet]]:
        """Active sheets applicable to `context`, most specific first."""
        chain: List[Tuple[PriceSource, RateSheet]] = []
        seen = set()

        def push(source: PriceSource, sheet: Optional[RateSheet]) -> None:
            if sheet is not None and sheet.id not in seen:
                seen.add(sheet.id)
                chain.append((source, sheet))

        if context.location_id:
            push(PriceSource.LOCATION, self._active(self.location_sheets.get(context.location_id)))

        account_id = context.account_id or self.location_accounts.get(context.location_id or "")
        if account_id:
            push(PriceSource.ACCOUNT, self._active(self.account_sheets.get(account_id)))

        push(
            PriceSource.BUSINESS_UNIT,
            self._active(self.business_unit_sheets.get(context.business_unit_id)),
        )
        return chain


class PricingResolver:
    def __init__(self, directory: RateSheetDirectory) -> None:
        self.directory = directory

    def resolve(self, sku: str, base_cost: float, context: CalculationContext) -> ResolvedPrice:
        """
        Resolve the sell price of `sku`. Always returns a price: cost
        passthrough is the last resort.
        """
        chain = self.directory.chain(context)

        for source, sheet in chain:
            item = sheet.items.get(sku)
            if item is None:
                continue
            priced = price_from_item(base_cost, item)
            if priced is not None:
                return self._result(sku, base_cost, priced, source, sheet, item)

        for source, sheet in chain:
            priced = price_from_sheet_default(base_cost, sheet)
            if priced is not None:
                return self._result(sku, base_cost, priced, source, sheet)

        return ResolvedPrice(
            sku=sku,
            base_cost=base_cost,
            price=_round_money(base_cost),
            source=PriceSource.CATALOG,
            method=PricingMethod.COST_ONLY,
        )

    @staticmethod
    def _result(
        sku: str,
        base_cost: float,
        priced: Tuple[float, PricingMethod],
        source: PriceSource,
        sheet: RateSheet,
        item: Optional[RateSheetItem] = None,
    ) -> ResolvedPrice:
        price, method = priced
        split = item if item is not None and method is PricingMethod.FIXED else None
        return ResolvedPrice(
            sku=sku,
            base_cost=base_cost,
            price=_round_money(price),
            source=source,
            method=method,
            rate_sheet_id=sheet.id,
            rate_sheet_name=sheet.name,
            labor_price=split.fixed_labor_price if split else None,
            material_price=split.fixed_material_price if split else None,
        )


@dataclass(frozen=True)
class PricedMaterialRow:
    material_sku: str
    total_quantity: float
    unit_cost: float
    unit_price: float
    extended_price: float
    source: PriceSource
    method: PricingMethod


def price_material_rows(
    rows: Iterable[MaterialRow], resolver: PricingResolver, context: CalculationContext
) -> List[PricedMaterialRow]:
    """Sell-side view of a ledger's material rows."""
    priced: List[PricedMaterialRow] = []
    for row in rows:
        resolved = resolver.resolve(row.material_sku, row.unit_cost, context)
        priced.append(
            PricedMaterialRow(
                material_sku=row.material_sku,
                total_quantity=row.total_quantity,
                unit_cost=row.unit_cost,
                unit_price=resolved.price,
                extended_price=_round_money(row.total_quantity * resolved.price),
                source=resolved.source,
                method=resolved.method,
            )
        )
    return priced
