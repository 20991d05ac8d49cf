"""Application settings service built on QSettings."""
from __future__ import annotations

from PyQt5.QtCore import QSettings

from goldestimate.exceptions import SettingsError
from goldestimate.infrastructure.app_constants import (
    DB_PATH,
    DEFAULT_TAX_PERCENT,
    RECENT_HISTORY_LIMIT,
    SETTINGS_APP,
    SETTINGS_ORG,
)


class SettingsService:
    def __init__(self) -> None:
        self._settings = QSettings(SETTINGS_ORG, SETTINGS_APP)

    # --- Pricing -------------------------------------------------------
    def load_tax_percent(self) -> float:
        """Return the tax rate applied to new items, in percent."""
        value = self._settings.value("pricing/tax_percent", DEFAULT_TAX_PERCENT, type=float)
        try:
            return float(value)
        except (TypeError, ValueError):
            return DEFAULT_TAX_PERCENT

    def save_tax_percent(self, percent: float) -> None:
        percent = float(percent)
        if percent < 0:
            raise SettingsError(f"Tax percentage cannot be negative: {percent}")
        self._settings.setValue("pricing/tax_percent", percent)
        self._settings.sync()

    # --- History -------------------------------------------------------
    def load_history_limit(self) -> int:
        value = self._settings.value("history/recent_limit", RECENT_HISTORY_LIMIT, type=int)
        try:
            return max(1, int(value))
        except (TypeError, ValueError):
            return RECENT_HISTORY_LIMIT

    def save_history_limit(self, limit: int) -> None:
        self._settings.setValue("history/recent_limit", max(1, int(limit)))
        self._settings.sync()

    # --- Storage -------------------------------------------------------
    def load_database_path(self) -> str:
        return str(self._settings.value("database/path", DB_PATH, type=str) or DB_PATH)

    def load_device_name(self) -> str:
        return str(self._settings.value("backup/device_name", "device", type=str) or "device")

    # --- Convenience ---------------------------------------------------
    def get(self, key: str, default=None, *, type=None):
        return self._settings.value(key, defaultValue=default, type=type)

    def set(self, key: str, value) -> None:
        self._settings.setValue(key, value)
        self._settings.sync()

    def raw(self) -> QSettings:
        return self._settings
