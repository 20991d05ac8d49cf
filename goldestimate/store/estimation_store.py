"""Single-writer state container for the in-progress estimation."""
from __future__ import annotations

import logging
from dataclasses import asdict, replace
from datetime import datetime
from typing import Callable, Iterable, Optional, Tuple, Union

from goldestimate.domain.estimation_models import (
    AdvanceDeduction,
    ChitDeduction,
    Customer,
    EstimationRecord,
    EstimationSession,
    EstimationTotals,
    LineItem,
    ListKind,
    MetalRateSheet,
    PurchaseItem,
)
from goldestimate.infrastructure.app_constants import RECENT_HISTORY_LIMIT
from goldestimate.infrastructure.logger import sanitize_for_logging
from goldestimate.services.estimate_calculator import compute_totals
from goldestimate.services.estimate_repository import EstimationGateway

WALK_IN_CUSTOMER = "Walk-in"
UNKNOWN_MOBILE = "N/A"

_LIST_FIELDS = {
    ListKind.ESTIMATION: "items",
    ListKind.PURCHASE: "purchase_items",
    ListKind.CHIT: "chit_items",
    ListKind.ADVANCE: "advance_items",
}


class EstimationStore:
    """Hold one clerk's estimation and keep its totals consistent.

    Every transition builds a new immutable ``EstimationSession`` with totals
    recomputed from scratch and swaps it in as a single assignment. The store
    is not thread-safe; callers sharing it must serialize access themselves.
    """

    def __init__(
        self,
        gateway: EstimationGateway,
        *,
        history_limit: int = RECENT_HISTORY_LIMIT,
        clock: Callable[[], datetime] = datetime.now,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._gateway = gateway
        self._history_limit = history_limit
        self._clock = clock
        self._logger = logger or logging.getLogger(__name__)
        self._session = EstimationSession()

    # ------------------------------------------------------------------ #
    # Read access
    # ------------------------------------------------------------------ #
    @property
    def session(self) -> EstimationSession:
        return self._session

    @property
    def totals(self) -> EstimationTotals:
        return self._session.totals

    @property
    def rate_sheet(self) -> MetalRateSheet:
        return self._session.rate_sheet

    @property
    def history(self) -> Tuple[EstimationRecord, ...]:
        return self._session.history

    # ------------------------------------------------------------------ #
    # Start-up
    # ------------------------------------------------------------------ #
    def initialize(self) -> None:
        """Load the last saved rate sheet and recent history from the gateway."""
        sheet = self._gateway.load_last_rate_sheet()
        history = tuple(self._gateway.load_recent_estimations(self._history_limit))
        session = replace(self._session, history=history)
        if sheet is not None:
            session = replace(session, rate_sheet=sheet)
        self._session = session
        self._logger.info(
            "Estimation store initialized (rate sheet %s, %s history records)",
            "restored" if sheet is not None else "not found",
            len(history),
        )

    # ------------------------------------------------------------------ #
    # Item and deduction lists
    # ------------------------------------------------------------------ #
    def add_item(self, item: LineItem) -> None:
        self._append("items", (item,))
        self._logger.debug("Added item %s (tag %s)", item.id, item.tag_number)

    def add_manual_item(self, item: LineItem) -> None:
        self._append("items", (item,))
        self._logger.debug("Added manual item %s", item.id)

    def add_items(self, items: Iterable[LineItem]) -> None:
        batch = tuple(items)
        self._append("items", batch)
        self._logger.debug("Added %s items", len(batch))

    def add_purchase_item(self, item: PurchaseItem) -> None:
        self._append("purchase_items", (item,))
        self._logger.debug("Added purchase item %s", item.id)

    def add_chit_item(self, item: ChitDeduction) -> None:
        self._append("chit_items", (item,))
        self._logger.debug("Added chit deduction %s", item.id)

    def add_advance_item(self, item: AdvanceDeduction) -> None:
        self._append("advance_items", (item,))
        self._logger.debug("Added advance deduction %s", item.id)

    def remove_item(
        self,
        item_id: str,
        list_kind: Union[ListKind, str] = ListKind.ESTIMATION,
    ) -> None:
        """Drop the entry with ``item_id`` from the named list; unknown ids are ignored."""
        field_name = _LIST_FIELDS[ListKind.coerce(list_kind)]
        current = getattr(self._session, field_name)
        remaining = tuple(entry for entry in current if entry.id != item_id)
        self._commit(**{field_name: remaining})
        if len(remaining) == len(current):
            self._logger.debug("Remove ignored: %s not in %s", item_id, field_name)

    # ------------------------------------------------------------------ #
    # Customer and rates
    # ------------------------------------------------------------------ #
    def set_customer(self, customer: Customer) -> None:
        self._session = replace(self._session, customer=customer)
        self._logger.debug("Customer set: %s", sanitize_for_logging(asdict(customer)))

    def update_rate_sheet(self, sheet: MetalRateSheet) -> None:
        """Make ``sheet`` active, then persist it.

        Items already added keep their own rate. The new sheet stays active
        even if saving it fails; the gateway error propagates.
        """
        self._session = replace(self._session, rate_sheet=sheet)
        self._logger.info(
            "Rate sheet updated: 24K=%s 22K=%s 20K=%s 18K=%s silver=%s",
            sheet.rate24k,
            sheet.rate22k,
            sheet.rate20k,
            sheet.rate18k,
            sheet.silver,
        )
        self._gateway.save_rate_sheet(sheet)

    # ------------------------------------------------------------------ #
    # Completion
    # ------------------------------------------------------------------ #
    def finalize(self) -> Optional[EstimationRecord]:
        """Save the estimation to history and start a fresh session.

        Returns the saved record, or None when there were no items and the
        call degraded to a plain reset. If any gateway call raises, the
        session is left untouched so the save can be retried.
        """
        session = self._session
        if session.is_empty():
            self._logger.debug("Finalize on empty estimation; resetting without saving")
            self.reset_form()
            return None

        number = self._gateway.next_estimation_number()
        record = self._build_record(session, number)
        self._gateway.save_estimation_record(record)
        history = tuple(self._gateway.load_recent_estimations(self._history_limit))

        self._session = EstimationSession(rate_sheet=session.rate_sheet, history=history)
        self._logger.info(
            "Estimation #%s saved: %s items, net payable %.2f",
            number,
            len(record.items),
            record.net_payable,
        )
        return record

    def reset_form(self) -> None:
        """Abandon the current estimation without saving anything."""
        session = self._session
        self._session = EstimationSession(rate_sheet=session.rate_sheet, history=session.history)

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #
    def _append(self, field_name: str, entries: tuple) -> None:
        self._commit(**{field_name: getattr(self._session, field_name) + entries})

    def _commit(self, **changes) -> None:
        draft = replace(self._session, **changes)
        self._session = replace(
            draft,
            totals=compute_totals(
                draft.items,
                draft.purchase_items,
                draft.chit_items,
                draft.advance_items,
            ),
        )

    def _build_record(self, session: EstimationSession, number: int) -> EstimationRecord:
        now = self._clock()
        customer = session.customer
        return EstimationRecord(
            id=f"{now.strftime('%Y%m%d%H%M%S%f')}-{number}",
            estimation_number=number,
            date=now.isoformat(),
            customer_name=(customer.name if customer and customer.name else WALK_IN_CUSTOMER),
            customer_mobile=(customer.mobile if customer and customer.mobile else UNKNOWN_MOBILE),
            items=session.items,
            purchase_items=session.purchase_items,
            chit_items=session.chit_items,
            advance_items=session.advance_items,
            total_weight=session.totals.total_weight,
            net_payable=session.totals.net_payable,
        )
