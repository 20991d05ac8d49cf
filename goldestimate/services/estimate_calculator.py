"""Pure aggregation helpers for estimation totals."""
from __future__ import annotations

from typing import Iterable

from goldestimate.domain.estimation_models import (
    AdvanceDeduction,
    ChitDeduction,
    EstimationTotals,
    LineItem,
    PurchaseItem,
)


def compute_totals(
    items: Iterable[LineItem],
    purchase_items: Iterable[PurchaseItem] = (),
    chit_items: Iterable[ChitDeduction] = (),
    advance_items: Iterable[AdvanceDeduction] = (),
) -> EstimationTotals:
    """Fold the session lists into an EstimationTotals summary.

    ``total_weight`` sums gross weight (the weight handed over), not the net
    weight that was priced. Nothing is rounded here.
    """
    total_weight = metal = making = wastage = tax = items_total = 0.0
    for item in items:
        total_weight += item.gross_weight
        metal += item.metal_value
        making += item.making_charge_value
        wastage += item.wastage_value
        tax += item.tax_value
        items_total += item.total_value

    total_purchase = sum((item.amount for item in purchase_items), 0.0)
    total_chit = sum((item.amount for item in chit_items), 0.0)
    total_advance = sum((item.amount for item in advance_items), 0.0)

    net_payable = max(0.0, items_total - total_purchase - total_chit - total_advance)

    return EstimationTotals(
        total_weight=total_weight,
        total_metal_value=metal,
        total_making_charge=making,
        total_wastage=wastage,
        total_tax=tax,
        total_chit=total_chit,
        total_advance=total_advance,
        total_purchase=total_purchase,
        items_total=items_total,
        net_payable=net_payable,
    )
