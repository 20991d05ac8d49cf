from datetime import datetime

import pytest

from goldestimate.exceptions import BackupError
from goldestimate.persistence.database_manager import DatabaseManager
from goldestimate.services.backup_service import (
    BACKUP_MAGIC,
    MAX_KDF_ITERATIONS,
    BackupService,
    backup_file_name,
)
from goldestimate.services.estimate_repository import DatabaseEstimationGateway
from tests.factories import estimation_record, rate_sheet

WHEN = datetime(2026, 10, 19, 18, 5)


@pytest.fixture()
def db(tmp_path):
    manager = DatabaseManager(tmp_path / "live" / "gold.db")
    yield manager
    manager.close()


@pytest.fixture()
def service(db):
    return BackupService(db, iterations=1_000, clock=lambda: WHEN)


def test_backup_file_name_sanitises_device():
    name = backup_file_name("Front Desk/1", WHEN)
    assert name == "gold_estimation_backup_Front_Desk_1_2026-10-19_18-05.gebk"


def test_backup_and_restore_roundtrip(tmp_path, db, service):
    gateway = DatabaseEstimationGateway(db)
    gateway.save_rate_sheet(rate_sheet())
    gateway.save_estimation_record(estimation_record(1))

    backup = service.create_backup(tmp_path / "backups", "s3cret", device_name="counter")

    assert backup.name.startswith("gold_estimation_backup_counter_")
    assert backup.read_bytes().startswith(BACKUP_MAGIC)
    assert b"SQLite format 3" not in backup.read_bytes()

    gateway.clear_history()
    assert gateway.load_recent_estimations(5) == []

    service.restore_backup(backup, "s3cret")

    restored = gateway.load_recent_estimations(5)
    assert [rec.estimation_number for rec in restored] == [1]
    assert gateway.load_last_rate_sheet() == rate_sheet()


def test_wrong_password_leaves_database_untouched(tmp_path, db, service):
    gateway = DatabaseEstimationGateway(db)
    backup = service.create_backup(tmp_path, "right")
    gateway.save_estimation_record(estimation_record(4))

    with pytest.raises(BackupError):
        service.restore_backup(backup, "wrong")

    assert [rec.estimation_number for rec in gateway.load_recent_estimations(5)] == [4]


def test_rejects_files_without_magic(tmp_path, service):
    bogus = tmp_path / "bogus.gebk"
    bogus.write_bytes(b"not a backup at all, just some bytes")

    with pytest.raises(BackupError):
        service.restore_backup(bogus, "pw")


def test_missing_backup_file(tmp_path, service):
    with pytest.raises(BackupError):
        service.restore_backup(tmp_path / "absent.gebk", "pw")


def test_memory_database_cannot_be_restored(tmp_path):
    manager = DatabaseManager(":memory:")
    try:
        service = BackupService(manager, iterations=1_000)
        with pytest.raises(BackupError):
            service.restore_backup(tmp_path / "x.gebk", "pw")
    finally:
        manager.close()


def test_empty_password_rejected(tmp_path, service):
    with pytest.raises(ValueError):
        service.create_backup(tmp_path, "")


def test_rejects_excessive_iteration_count(tmp_path, service):
    backup = service.create_backup(tmp_path, "pw")
    blob = bytearray(backup.read_bytes())
    offset = len(BACKUP_MAGIC)
    blob[offset:offset + 4] = (MAX_KDF_ITERATIONS + 1).to_bytes(4, "big")
    backup.write_bytes(bytes(blob))

    with pytest.raises(BackupError, match="iteration count"):
        service.restore_backup(backup, "pw")


def test_iteration_count_must_be_restorable(db):
    with pytest.raises(ValueError):
        BackupService(db, iterations=MAX_KDF_ITERATIONS + 1)
