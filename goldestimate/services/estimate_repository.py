"""Persistence gateway used by the estimation store."""
from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence

from goldestimate.domain.estimation_models import (
    EstimationRecord,
    MetalRateSheet,
    MetalType,
    PurchaseCategory,
)


class EstimationGateway(Protocol):
    """Interface exposing the persistence operations the store relies on.

    Implementations raise on I/O failure; the store never catches.
    """

    def load_last_rate_sheet(self) -> Optional[MetalRateSheet]:
        ...

    def save_rate_sheet(self, sheet: MetalRateSheet) -> None:
        ...

    def next_estimation_number(self) -> int:
        ...

    def save_estimation_record(self, record: EstimationRecord) -> None:
        ...

    def load_recent_estimations(self, limit: int) -> Sequence[EstimationRecord]:
        ...


class DatabaseEstimationGateway:
    """Adapter that wraps the database manager repositories."""

    def __init__(self, db_manager: Any) -> None:
        self._db = db_manager

    def load_last_rate_sheet(self) -> Optional[MetalRateSheet]:
        return self._db.rates_repo.load_rate_sheet()

    def save_rate_sheet(self, sheet: MetalRateSheet) -> None:
        self._db.rates_repo.save_rate_sheet(sheet)

    def next_estimation_number(self) -> int:
        return self._db.estimations_repo.next_estimation_number()

    def save_estimation_record(self, record: EstimationRecord) -> None:
        self._db.estimations_repo.save_estimation(record)

    def load_recent_estimations(self, limit: int) -> Sequence[EstimationRecord]:
        return self._db.estimations_repo.get_recent_estimations(limit)

    def load_estimations_between(
        self, start: str, end: str, limit: int = 50
    ) -> Sequence[EstimationRecord]:
        return self._db.estimations_repo.get_filtered_estimations(start, end, limit)

    def clear_history(self) -> int:
        return self._db.estimations_repo.delete_all_estimations()

    def load_metal_types(self) -> Sequence[MetalType]:
        return self._db.catalog_repo.get_metal_types()

    def load_purchase_categories(self) -> Sequence[PurchaseCategory]:
        return self._db.catalog_repo.get_purchase_categories()
