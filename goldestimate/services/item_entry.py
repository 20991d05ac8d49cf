"""Entry-layer validation turning raw form fields into a Product.

The pricing functions and the store assume well-formed numbers; anything typed
by a clerk goes through here first.
"""
from __future__ import annotations

import math
from typing import Any, Mapping

from goldestimate.domain.estimation_models import (
    MakingChargeType,
    Metal,
    Product,
    WastageType,
)
from goldestimate.exceptions import ItemValidationError

# Initial values of an empty entry form.
ENTRY_DEFAULTS = {
    "piece_count": "1",
    "stone_weight": "0",
    "wastage": "0",
    "wastage_type": WastageType.PERCENTAGE.value,
    "making_charge": "0",
    "making_charge_type": MakingChargeType.FIXED.value,
    "metal": Metal.GOLD.value,
    "purity": "22",
}


def parse_number(value: Any, field_name: str, *, positive: bool = False) -> float:
    """Return ``value`` as a finite, non-negative float or raise ItemValidationError."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ItemValidationError(f"{field_name} is required.")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ItemValidationError(f"{field_name} must be a number, got {value!r}.") from exc
    if not math.isfinite(number):
        raise ItemValidationError(f"{field_name} must be a finite number.")
    if number < 0 or (positive and number == 0):
        qualifier = "greater than zero" if positive else "zero or more"
        raise ItemValidationError(f"{field_name} must be {qualifier}.")
    return number


def parse_rate(value: Any) -> float:
    return parse_number(value, "Rate", positive=True)


def product_from_form(fields: Mapping[str, Any]) -> Product:
    """Validate form fields and build the Product handed to the pricing functions."""
    values = {**ENTRY_DEFAULTS, **{k: v for k, v in fields.items() if v is not None}}

    name = str(values.get("name") or "").strip()
    if not name:
        raise ItemValidationError("Product name is required.")

    pieces = parse_number(values["piece_count"], "Pieces", positive=True)
    if not pieces.is_integer():
        raise ItemValidationError("Pieces must be a whole number.")

    try:
        metal = Metal.coerce(values["metal"])
        wastage_type = WastageType.coerce(values["wastage_type"])
        making_charge_type = MakingChargeType.coerce(values["making_charge_type"])
    except ValueError as exc:
        raise ItemValidationError(str(exc)) from exc

    return Product(
        name=name,
        gross_weight=parse_number(values.get("gross_weight"), "Gross weight", positive=True),
        stone_weight=parse_number(values["stone_weight"], "Stone weight"),
        purity=parse_number(values["purity"], "Purity", positive=True),
        making_charge=parse_number(values["making_charge"], "Making charge"),
        making_charge_type=making_charge_type,
        wastage=parse_number(values["wastage"], "Wastage"),
        wastage_type=wastage_type,
        metal=metal,
        piece_count=int(pieces),
        tag_number=(str(values["tag_number"]).strip() or None) if values.get("tag_number") else None,
        sub_product_name=values.get("sub_product_name") or None,
        category=values.get("category") or None,
        hsn_code=values.get("hsn_code") or None,
    )
