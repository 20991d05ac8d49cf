"""Pure pricing helpers for a single estimation line."""
from __future__ import annotations

from typing import Optional, Union

from goldestimate.domain.estimation_models import (
    LineItem,
    LossType,
    MakingChargeType,
    Metal,
    MetalRateSheet,
    PriceBreakdown,
    Product,
    PurchaseItem,
    WastageType,
)
from goldestimate.infrastructure.app_constants import DEFAULT_TAX_PERCENT

_GOLD_RATE_FIELDS = {
    24: "rate24k",
    22: "rate22k",
    20: "rate20k",
    18: "rate18k",
}


def compute_net_weight(
    gross: float,
    loss_amount: float,
    loss_type: Union[LossType, str] = LossType.GRAMS,
) -> float:
    """Return the weight left after a stone/less deduction.

    Percentage losses are applied as-is; gram losses are floored at zero.
    """
    if LossType.coerce(loss_type) is LossType.PERCENTAGE:
        return gross - gross * loss_amount / 100
    return max(0.0, gross - loss_amount)


def compute_metal_value(net_weight: float, rate_per_gram: float) -> float:
    return net_weight * rate_per_gram


def compute_making_charge(
    net_weight: float,
    metal_value: float,
    charge: float,
    charge_type: Union[MakingChargeType, str] = MakingChargeType.FIXED,
) -> float:
    """Return the making charge billed flat, per gram or as a share of metal value."""
    charge_type = MakingChargeType.coerce(charge_type)
    if charge_type is MakingChargeType.PER_GRAM:
        return net_weight * charge
    if charge_type is MakingChargeType.PERCENTAGE:
        return metal_value * charge / 100
    return charge


def compute_wastage_value(
    metal_value: float,
    wastage: float,
    wastage_type: Union[WastageType, str] = WastageType.WEIGHT,
    rate_per_gram: float = 0.0,
) -> float:
    """Return the wastage charge; weight wastage is extra grams at the item's rate."""
    if WastageType.coerce(wastage_type) is WastageType.PERCENTAGE:
        return metal_value * wastage / 100
    return wastage * rate_per_gram


def compute_tax(subtotal: float, tax_percent: float = DEFAULT_TAX_PERCENT) -> float:
    return subtotal * tax_percent / 100


def price_item(
    net_weight: float,
    rate: float,
    making_charge: float,
    making_charge_type: Union[MakingChargeType, str],
    wastage: float,
    wastage_type: Union[WastageType, str],
    tax_percent: float = DEFAULT_TAX_PERCENT,
) -> PriceBreakdown:
    """Price one item.

    Tax is levied on metal value plus making charge plus wastage, never on
    metal value alone.
    """
    metal_value = compute_metal_value(net_weight, rate)
    making_charge_value = compute_making_charge(
        net_weight, metal_value, making_charge, making_charge_type
    )
    wastage_value = compute_wastage_value(metal_value, wastage, wastage_type, rate)
    subtotal = metal_value + making_charge_value + wastage_value
    tax_value = compute_tax(subtotal, tax_percent)
    return PriceBreakdown(
        metal_value=metal_value,
        making_charge_value=making_charge_value,
        wastage_value=wastage_value,
        subtotal=subtotal,
        tax_value=tax_value,
        total=subtotal + tax_value,
    )


def resolve_default_rate(
    sheet: MetalRateSheet,
    metal: Union[Metal, str],
    purity: float,
) -> float:
    """Return the rate-sheet price for an item; unknown gold purities use 22K."""
    if Metal.coerce(metal) is Metal.SILVER:
        return sheet.silver
    field_name = None
    if float(purity).is_integer():
        field_name = _GOLD_RATE_FIELDS.get(int(purity))
    return getattr(sheet, field_name or "rate22k")


def build_line_item(
    product: Product,
    *,
    item_id: str,
    rate: Optional[float] = None,
    rate_sheet: Optional[MetalRateSheet] = None,
    tax_percent: float = DEFAULT_TAX_PERCENT,
    is_manual_entry: bool = False,
    customer_name: Optional[str] = None,
) -> LineItem:
    """Price ``product`` and freeze the result into a LineItem.

    When ``rate`` is omitted it is resolved from ``rate_sheet``.
    """
    if rate is None:
        if rate_sheet is None:
            raise ValueError("Either rate or rate_sheet is required to price an item.")
        rate = resolve_default_rate(rate_sheet, product.metal, product.purity)

    net_weight = compute_net_weight(product.gross_weight, product.stone_weight, LossType.GRAMS)
    breakdown = price_item(
        net_weight,
        rate,
        product.making_charge,
        product.making_charge_type,
        product.wastage,
        product.wastage_type,
        tax_percent,
    )
    return LineItem(
        id=item_id,
        name=product.name,
        metal=Metal.coerce(product.metal),
        purity=product.purity,
        piece_count=product.piece_count,
        gross_weight=product.gross_weight,
        stone_weight=product.stone_weight,
        net_weight=net_weight,
        wastage=product.wastage,
        wastage_type=WastageType.coerce(product.wastage_type),
        making_charge=product.making_charge,
        making_charge_type=MakingChargeType.coerce(product.making_charge_type),
        rate=rate,
        metal_value=breakdown.metal_value,
        making_charge_value=breakdown.making_charge_value,
        wastage_value=breakdown.wastage_value,
        tax_value=breakdown.tax_value,
        is_manual_entry=is_manual_entry,
        tag_number=product.tag_number,
        customer_name=customer_name,
        sub_product_name=product.sub_product_name,
        category=product.category,
        hsn_code=product.hsn_code,
    )


def build_purchase_item(
    *,
    item_id: str,
    category: str,
    metal: Union[Metal, str],
    purity: float,
    gross_weight: float,
    deduction: float,
    deduction_type: Union[LossType, str],
    rate: float,
    piece_count: int = 1,
    sub_category: Optional[str] = None,
) -> PurchaseItem:
    """Value an old-gold trade-in at ``net weight x rate``."""
    deduction_type = LossType.coerce(deduction_type)
    net_weight = compute_net_weight(gross_weight, deduction, deduction_type)
    return PurchaseItem(
        id=item_id,
        category=category,
        metal=Metal.coerce(metal),
        purity=purity,
        piece_count=piece_count,
        gross_weight=gross_weight,
        deduction=deduction,
        deduction_type=deduction_type,
        net_weight=net_weight,
        rate=rate,
        amount=net_weight * rate,
        sub_category=sub_category,
    )
