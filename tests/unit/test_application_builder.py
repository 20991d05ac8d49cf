from __future__ import annotations

import logging

import pytest

from goldestimate.exceptions import DatabaseError
from goldestimate.infrastructure.application import ApplicationBuilder, build_application
from goldestimate.services.backup_service import BackupService
from goldestimate.services.settings_service import SettingsService
from goldestimate.store import EstimationStore
from tests.factories import line_item, product, rate_sheet


class StubLogger:
    def __init__(self) -> None:
        self.records: list[tuple[str, str]] = []

    def _record(self, level: str, message: str, *args) -> None:
        self.records.append((level, message % args if args else message))

    def info(self, message: str, *args, **kwargs) -> None:
        self._record("info", message, *args)

    def debug(self, message: str, *args, **kwargs) -> None:
        self._record("debug", message, *args)

    def warning(self, message: str, *args, **kwargs) -> None:
        self._record("warning", message, *args)

    def error(self, message: str, *args, **kwargs) -> None:
        self._record("error", message, *args)


class ClosingDatabase:
    """Database double whose rate lookup fails."""

    instances: list["ClosingDatabase"] = []

    def __init__(self, path):
        self.path = path
        self.closed = False
        self.rates_repo = self
        type(self).instances.append(self)

    def load_rate_sheet(self):
        raise DatabaseError("settings table unreadable")

    def close(self):
        self.closed = True


def test_build_application_wires_store(tmp_path, settings_stub):
    SettingsService().save_tax_percent(1.5)
    SettingsService().save_history_limit(4)
    logger = StubLogger()

    context = build_application(str(tmp_path / "gold.db"), logging_setup=lambda: logger)
    try:
        assert context.tax_percent == pytest.approx(1.5)
        assert context.store.history == ()
        context.store.update_rate_sheet(rate_sheet())
        context.store.add_item(line_item("a"))
        record = context.store.finalize()
        assert context.gateway.load_recent_estimations(4) == [record]
    finally:
        context.shutdown()

    assert context.db_manager.conn is None
    assert any("Gold Estimation App v1.4.0 started with database" in message for _, message in logger.records)
    assert ("info", "Application shut down") in logger.records


def test_build_application_restores_saved_rates(tmp_path, settings_stub):
    path = str(tmp_path / "gold.db")
    first = build_application(path, logging_setup=lambda: StubLogger())
    first.store.update_rate_sheet(rate_sheet(rate22k=6123.0))
    first.shutdown()

    second = build_application(path, logging_setup=lambda: StubLogger())
    try:
        assert second.store.rate_sheet.rate22k == 6123.0
    finally:
        second.shutdown()


def test_build_application_uses_configured_path(tmp_path, settings_stub):
    SettingsService().set("database/path", str(tmp_path / "configured" / "gold.db"))

    context = build_application(logging_setup=lambda: StubLogger())
    context.shutdown()

    assert (tmp_path / "configured" / "gold.db").exists()


def test_build_application_closes_database_when_store_fails(tmp_path, settings_stub):
    ClosingDatabase.instances.clear()

    with pytest.raises(DatabaseError):
        build_application(
            str(tmp_path / "gold.db"),
            logging_setup=lambda: logging.getLogger("tests.app"),
            db_factory=ClosingDatabase,
        )

    assert ClosingDatabase.instances[0].closed


def test_backup_now_uses_configured_device_name(tmp_path, settings_stub):
    SettingsService().set("backup/device_name", "Counter 2")
    context = build_application(str(tmp_path / "gold.db"), logging_setup=lambda: StubLogger())
    try:
        context.backups = BackupService(context.db_manager, iterations=1_000)
        backup = context.backup_now(tmp_path / "backups", "pw")
    finally:
        context.shutdown()

    assert backup.exists()
    assert backup.name.startswith("gold_estimation_backup_Counter_2_")


def test_price_product_uses_configured_tax_and_active_rates(tmp_path, settings_stub):
    SettingsService().save_tax_percent(0)
    context = build_application(str(tmp_path / "gold.db"), logging_setup=lambda: StubLogger())
    try:
        context.store.update_rate_sheet(rate_sheet(rate22k=6000.0))
        item = context.price_product(product(), item_id="p1")
    finally:
        context.shutdown()

    assert item.rate == 6000.0
    assert item.tax_value == 0.0
    assert item.total_value == pytest.approx(36800)


def test_builder_accepts_custom_store_factory(tmp_path, settings_stub):
    created = []

    def store_factory(gateway, **kwargs):
        store = EstimationStore(gateway, **kwargs)
        created.append((store, kwargs))
        return store

    builder = ApplicationBuilder(logging_setup=lambda: StubLogger(), store_factory=store_factory)
    context = builder.build(str(tmp_path / "gold.db"))
    context.shutdown()

    assert created[0][0] is context.store
    assert created[0][1] == {"history_limit": 10}
