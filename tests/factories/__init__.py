from .estimation_items import (
    FakeGateway,
    advance_item,
    chit_item,
    estimation_record,
    line_item,
    line_items,
    priced_item,
    pricing_inputs,
    product,
    purchase_item,
    rate_sheet,
)

__all__ = [
    "FakeGateway",
    "advance_item",
    "chit_item",
    "estimation_record",
    "line_item",
    "line_items",
    "priced_item",
    "pricing_inputs",
    "product",
    "purchase_item",
    "rate_sheet",
]
