"""Domain models supporting estimation pricing and totals."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple, Union


class _LabelledEnum(Enum):
    """Enum whose members can be built from their stored label."""

    @classmethod
    def coerce(cls, value: Union["_LabelledEnum", str]):
        """Return the member for ``value``; unknown labels raise ``ValueError``."""
        if isinstance(value, cls):
            return value
        return cls(value)


class Metal(_LabelledEnum):
    GOLD = "GOLD"
    SILVER = "SILVER"


class WastageType(_LabelledEnum):
    """How wastage (VA) is billed."""

    PERCENTAGE = "percentage"
    WEIGHT = "weight"


class MakingChargeType(_LabelledEnum):
    """How the making charge (MC) is billed."""

    PER_GRAM = "perGram"
    FIXED = "fixed"
    PERCENTAGE = "percentage"


class LossType(_LabelledEnum):
    """How a weight deduction is expressed."""

    GRAMS = "grams"
    PERCENTAGE = "percentage"
    AMOUNT = "amount"


class ListKind(_LabelledEnum):
    """The session lists an entry can be removed from."""

    ESTIMATION = "estimation"
    PURCHASE = "purchase"
    CHIT = "chit"
    ADVANCE = "advance"


@dataclass(frozen=True)
class MetalRateSheet:
    """Per-purity price table in effect for new items."""

    rate18k: float = 0.0
    rate20k: float = 0.0
    rate22k: float = 0.0
    rate24k: float = 0.0
    silver: float = 0.0
    as_of: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class PriceBreakdown:
    """Monetary breakdown for one priced item."""

    metal_value: float
    making_charge_value: float
    wastage_value: float
    subtotal: float
    tax_value: float
    total: float


@dataclass(frozen=True)
class Product:
    """Item data supplied by a scanner, manual entry or tag lookup."""

    name: str
    gross_weight: float
    purity: float
    making_charge: float
    making_charge_type: MakingChargeType
    wastage: float
    wastage_type: WastageType
    stone_weight: float = 0.0
    metal: Metal = Metal.GOLD
    piece_count: int = 1
    tag_number: Optional[str] = None
    sub_product_name: Optional[str] = None
    category: Optional[str] = None
    hsn_code: Optional[str] = None


@dataclass(frozen=True)
class LineItem:
    """A priced product on the estimation. Immutable once added."""

    id: str
    name: str
    metal: Metal
    purity: float
    piece_count: int
    gross_weight: float
    stone_weight: float
    net_weight: float
    wastage: float
    wastage_type: WastageType
    making_charge: float
    making_charge_type: MakingChargeType
    rate: float
    metal_value: float
    making_charge_value: float
    wastage_value: float
    tax_value: float
    is_manual_entry: bool = False
    tag_number: Optional[str] = None
    customer_name: Optional[str] = None
    sub_product_name: Optional[str] = None
    category: Optional[str] = None
    hsn_code: Optional[str] = None

    @property
    def total_value(self) -> float:
        return self.metal_value + self.making_charge_value + self.wastage_value + self.tax_value


@dataclass(frozen=True)
class PurchaseItem:
    """Old-gold trade-in credited against the final total."""

    id: str
    category: str
    metal: Metal
    purity: float
    piece_count: int
    gross_weight: float
    deduction: float
    deduction_type: LossType
    net_weight: float
    rate: float
    amount: float
    sub_category: Optional[str] = None


@dataclass(frozen=True)
class ChitDeduction:
    """Chit-fund credit."""

    id: str
    reference_id: str
    amount: float


@dataclass(frozen=True)
class AdvanceDeduction:
    """Advance-payment credit."""

    id: str
    reference_id: str
    amount: float


@dataclass(frozen=True)
class Customer:
    name: str
    mobile: str
    email: Optional[str] = None
    address: Optional[str] = None


@dataclass(frozen=True)
class EstimationTotals:
    """Summary derived from the session lists; never edited directly."""

    total_weight: float = 0.0
    total_metal_value: float = 0.0
    total_making_charge: float = 0.0
    total_wastage: float = 0.0
    total_tax: float = 0.0
    total_chit: float = 0.0
    total_advance: float = 0.0
    total_purchase: float = 0.0
    items_total: float = 0.0
    net_payable: float = 0.0


@dataclass(frozen=True)
class EstimationRecord:
    """A finalized estimation as stored in history."""

    id: str
    estimation_number: int
    date: str
    customer_name: str
    customer_mobile: str
    items: Tuple[LineItem, ...] = ()
    purchase_items: Tuple[PurchaseItem, ...] = ()
    chit_items: Tuple[ChitDeduction, ...] = ()
    advance_items: Tuple[AdvanceDeduction, ...] = ()
    total_weight: float = 0.0
    net_payable: float = 0.0


@dataclass(frozen=True)
class EstimationSession:
    """Snapshot of the in-progress estimation held by the store."""

    items: Tuple[LineItem, ...] = ()
    purchase_items: Tuple[PurchaseItem, ...] = ()
    chit_items: Tuple[ChitDeduction, ...] = ()
    advance_items: Tuple[AdvanceDeduction, ...] = ()
    rate_sheet: MetalRateSheet = field(default_factory=MetalRateSheet)
    customer: Optional[Customer] = None
    totals: EstimationTotals = field(default_factory=EstimationTotals)
    history: Tuple[EstimationRecord, ...] = ()

    def is_empty(self) -> bool:
        """Return True when no priced items have been added."""
        return not self.items


@dataclass(frozen=True)
class MetalType:
    """A purity code offered at entry time (e.g. ``22K Gold (916)``)."""

    id: int
    name: str
    purity: float
    metal: Metal


@dataclass(frozen=True)
class PurchaseCategory:
    id: int
    name: str


@dataclass(frozen=True)
class PurchaseSubCategory:
    id: int
    category_id: int
    name: str
