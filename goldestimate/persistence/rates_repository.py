"""Rate sheet persistence in the key/value settings table."""
from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from typing import Any, Optional

from goldestimate.domain.estimation_models import MetalRateSheet
from goldestimate.exceptions import DatabaseError

RATE_KEYS = {
    "rate24k": "rate_24k",
    "rate22k": "rate_22k",
    "rate20k": "rate_20k",
    "rate18k": "rate_18k",
    "silver": "rate_silver",
}
AS_OF_KEY = "rate_as_of"


class RatesRepository:
    """Load and store the last known metal rate sheet."""

    def __init__(self, db_manager: Any) -> None:
        self._db = db_manager
        self._logger = getattr(db_manager, "logger", logging.getLogger(__name__))

    @property
    def _conn(self):
        return getattr(self._db, "conn", None)

    def get_setting(self, key: str) -> Optional[str]:
        conn = self._require_connection()
        try:
            row = conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as exc:
            self._logger.error("DB error reading setting %s: %s", key, exc, exc_info=True)
            raise DatabaseError(f"Could not read setting '{key}': {exc}") from exc
        return row["value"] if row else None

    def set_setting(self, key: str, value: str) -> None:
        conn = self._require_connection()
        try:
            conn.execute(
                "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)", (key, value)
            )
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            self._logger.error("DB error writing setting %s: %s", key, exc, exc_info=True)
            raise DatabaseError(f"Could not write setting '{key}': {exc}") from exc

    def load_rate_sheet(self) -> Optional[MetalRateSheet]:
        """Return the stored rate sheet, or None unless both 24K and 22K are present."""
        values = {name: self.get_setting(key) for name, key in RATE_KEYS.items()}
        if not values["rate24k"] or not values["rate22k"]:
            return None
        as_of_text = self.get_setting(AS_OF_KEY)
        try:
            as_of = datetime.fromisoformat(as_of_text) if as_of_text else datetime.now()
        except ValueError:
            self._logger.warning("Ignoring unreadable rate timestamp %r", as_of_text)
            as_of = datetime.now()
        return MetalRateSheet(
            **{name: float(value or 0) for name, value in values.items()},
            as_of=as_of,
        )

    def save_rate_sheet(self, sheet: MetalRateSheet) -> None:
        """Store every rate of ``sheet`` in one transaction."""
        conn = self._require_connection()
        rows = [(key, str(getattr(sheet, name))) for name, key in RATE_KEYS.items()]
        rows.append((AS_OF_KEY, sheet.as_of.isoformat()))
        try:
            conn.executemany("INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)", rows)
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            self._logger.error("DB error saving rate sheet: %s", exc, exc_info=True)
            raise DatabaseError(f"Could not save rate sheet: {exc}") from exc
        self._logger.debug("Rate sheet persisted (as of %s)", sheet.as_of.isoformat())

    def _require_connection(self):
        conn = self._conn
        if not conn:
            raise DatabaseError("No active database connection is available.")
        return conn
