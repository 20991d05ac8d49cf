"""Estimation history repository handling record persistence."""
from __future__ import annotations

import json
import logging
import sqlite3
from dataclasses import asdict, fields
from enum import Enum
from typing import Any, Iterable, List, Mapping, Type, TypeVar

from goldestimate.domain.estimation_models import (
    AdvanceDeduction,
    ChitDeduction,
    EstimationRecord,
    LineItem,
    LossType,
    MakingChargeType,
    Metal,
    PurchaseItem,
    WastageType,
)
from goldestimate.exceptions import DatabaseError

T = TypeVar("T")

_ENUM_FIELDS = {
    "metal": Metal,
    "wastage_type": WastageType,
    "making_charge_type": MakingChargeType,
    "deduction_type": LossType,
}


def _json_default(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def encode_entries(entries: Iterable[Any]) -> str:
    """Serialize a list of domain records to JSON text."""
    payload = []
    for entry in entries:
        data = asdict(entry)
        if isinstance(entry, LineItem):
            data["total_value"] = entry.total_value
        payload.append(data)
    return json.dumps(payload, default=_json_default)


def decode_entries(text: str | None, cls: Type[T]) -> tuple[T, ...]:
    """Rebuild domain records from JSON text, ignoring unknown keys."""
    if not text:
        return ()
    allowed = {f.name for f in fields(cls)}
    result = []
    for data in json.loads(text):
        kwargs = {key: value for key, value in data.items() if key in allowed}
        for key, enum_cls in _ENUM_FIELDS.items():
            if key in kwargs:
                kwargs[key] = enum_cls.coerce(kwargs[key])
        result.append(cls(**kwargs))
    return tuple(result)


class EstimationsRepository:
    """Encapsulate estimation history persistence logic."""

    def __init__(self, db_manager: Any) -> None:
        self._db = db_manager
        self._logger = getattr(db_manager, "logger", logging.getLogger(__name__))

    @property
    def _conn(self):
        return getattr(self._db, "conn", None)

    def next_estimation_number(self) -> int:
        conn = self._require_connection()
        try:
            row = conn.execute("SELECT MAX(estimation_number) FROM estimations").fetchone()
        except sqlite3.Error as exc:
            self._logger.error("DB error generating estimation number: %s", exc, exc_info=True)
            raise DatabaseError(f"Could not generate estimation number: {exc}") from exc
        if row and row[0] is not None:
            return int(row[0]) + 1
        return 1

    def save_estimation(self, record: EstimationRecord) -> None:
        conn = self._require_connection()
        try:
            conn.execute(
                '''
                INSERT INTO estimations
                (id, estimation_number, customer_name, customer_mobile, date, items,
                 purchase_items, chit_items, advance_items, total_weight, grand_total)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ''',
                (
                    record.id,
                    record.estimation_number,
                    record.customer_name,
                    record.customer_mobile,
                    record.date,
                    encode_entries(record.items),
                    encode_entries(record.purchase_items),
                    encode_entries(record.chit_items),
                    encode_entries(record.advance_items),
                    record.total_weight,
                    record.net_payable,
                ),
            )
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            self._logger.error(
                "DB error saving estimation %s: %s", record.estimation_number, exc, exc_info=True
            )
            raise DatabaseError(
                f"Database error while saving estimation #{record.estimation_number}: {exc}"
            ) from exc
        self._logger.info(
            "Saved estimation #%s (%s items)", record.estimation_number, len(record.items)
        )

    def get_recent_estimations(self, limit: int = 10) -> List[EstimationRecord]:
        return self._query(
            "SELECT * FROM estimations ORDER BY date DESC LIMIT ?", (limit,), "recent estimations"
        )

    def get_filtered_estimations(
        self, start_date: str | None = None, end_date: str | None = None, limit: int = 50
    ) -> List[EstimationRecord]:
        """Return estimations dated within [start_date, end_date], newest first."""
        if start_date and end_date:
            return self._query(
                "SELECT * FROM estimations WHERE date >= ? AND date <= ? ORDER BY date DESC LIMIT ?",
                (start_date, end_date, limit),
                "filtered estimations",
            )
        return self.get_recent_estimations(limit)

    def delete_all_estimations(self) -> int:
        conn = self._require_connection()
        try:
            cursor = conn.execute("DELETE FROM estimations")
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            self._logger.error("DB error deleting all estimations: %s", exc, exc_info=True)
            raise DatabaseError(f"Could not clear estimation history: {exc}") from exc
        self._logger.info("Deleted %s estimations from history.", cursor.rowcount)
        return cursor.rowcount

    # ------------------------------------------------------------------

    def _query(self, sql: str, params: tuple, label: str) -> List[EstimationRecord]:
        conn = self._require_connection()
        try:
            rows = conn.execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            self._logger.error("DB error getting %s: %s", label, exc, exc_info=True)
            raise DatabaseError(f"Could not load {label}: {exc}") from exc
        return [self._row_to_record(row) for row in rows]

    @staticmethod
    def _row_to_record(row: Mapping[str, Any]) -> EstimationRecord:
        return EstimationRecord(
            id=row["id"],
            estimation_number=int(row["estimation_number"] or 0),
            date=row["date"],
            customer_name=row["customer_name"] or "",
            customer_mobile=row["customer_mobile"] or "",
            items=decode_entries(row["items"], LineItem),
            purchase_items=decode_entries(row["purchase_items"], PurchaseItem),
            chit_items=decode_entries(row["chit_items"], ChitDeduction),
            advance_items=decode_entries(row["advance_items"], AdvanceDeduction),
            total_weight=float(row["total_weight"]),
            net_payable=float(row["grand_total"]),
        )

    def _require_connection(self):
        conn = self._conn
        if not conn:
            raise DatabaseError("No active database connection is available.")
        return conn
