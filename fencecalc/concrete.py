# fencecalc/concrete.py
"""
Project-level concrete sizing.

Every mix is calibrated to roughly 50 lb of material per post. The three-part
ratios only hold that target together, so change them as a set.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from math import ceil
from typing import Callable, Dict, List, Mapping, Tuple

from fencecalc.models import CalculationWarning, ConcreteType, Material, RawMaterial

logger = logging.getLogger("fencecalc.concrete")


@dataclass(frozen=True)
class ConcreteComponent:
    sku: str
    bags: Callable[[float], float]


CONCRETE_MIXES: Dict[ConcreteType, Tuple[ConcreteComponent, ...]] = {
    ConcreteType.THREE_PART: (
        ConcreteComponent("CTS", lambda posts: ceil(posts / 10)),  # sand & gravel 50 lb
        ConcreteComponent("CTP", lambda posts: ceil(posts / 20)),  # portland cement 94 lb
        ConcreteComponent("CTQ", lambda posts: posts * 0.5),  # quick-mix 50 lb
    ),
    ConcreteType.YELLOW_BAGS: (
        ConcreteComponent("CTY", lambda posts: ceil(posts * 0.65)),
    ),
    ConcreteType.RED_BAGS: (
        ConcreteComponent("CTR", lambda posts: posts * 1),
    ),
}


def size_concrete(
    total_posts: float,
    concrete_type: ConcreteType,
    materials: Mapping[str, Material],
) -> Tuple[List[RawMaterial], List[CalculationWarning]]:
    """
    Concrete bags for the whole project.

    `total_posts` must be the post sum over every line item; sizing per line
    item would over-order the ceil'd components.
    """
    rows: List[RawMaterial] = []
    warnings: List[CalculationWarning] = []
    if total_posts <= 0:
        return rows, warnings

    for component in CONCRETE_MIXES[concrete_type]:
        material = materials.get(component.sku)
        if material is None:
            logger.warning("Concrete material %s missing from catalog", component.sku)
            warnings.append(
                CalculationWarning(
                    code="missing_material",
                    message=f"Concrete material '{component.sku}' not found in catalog",
                )
            )
            continue
        rows.append(
            RawMaterial(material=material, quantity=component.bags(total_posts), component="concrete")
        )
    return rows, warnings
