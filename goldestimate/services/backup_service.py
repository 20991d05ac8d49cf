"""Encrypted local backup and restore of the estimation database."""
from __future__ import annotations

import logging
import os
import re
import sqlite3
import struct
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Optional, Union

from cryptography.exceptions import InvalidTag

from goldestimate.exceptions import BackupError
from goldestimate.security import encryption as crypto_utils

BACKUP_MAGIC = b"GEBK1"
BACKUP_SUFFIX = ".gebk"
SQLITE_HEADER = b"SQLite format 3\x00"
_HEADER = struct.Struct(">I")
MAX_KDF_ITERATIONS = 10 * crypto_utils.DEFAULT_KDF_ITERATIONS


def backup_file_name(device_name: str, when: datetime) -> str:
    """Return the backup file name for ``device_name`` at ``when``."""
    clean_device = re.sub(r"[^A-Za-z0-9_-]", "_", device_name or "device")
    return f"gold_estimation_backup_{clean_device}_{when.strftime('%Y-%m-%d_%H-%M')}{BACKUP_SUFFIX}"


class BackupService:
    """Write and restore password-protected snapshots of the database."""

    def __init__(
        self,
        db_manager: Any,
        *,
        iterations: int = crypto_utils.DEFAULT_KDF_ITERATIONS,
        clock: Callable[[], datetime] = datetime.now,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._db = db_manager
        if not 0 < iterations <= MAX_KDF_ITERATIONS:
            raise ValueError(f"Key iterations must be between 1 and {MAX_KDF_ITERATIONS}.")
        self._iterations = iterations
        self._clock = clock
        self._logger = logger or logging.getLogger(__name__)

    def create_backup(
        self,
        destination_dir: Union[str, Path],
        password: str,
        *,
        device_name: str = "device",
    ) -> Path:
        """Encrypt a consistent snapshot of the database into ``destination_dir``."""
        destination = Path(destination_dir)
        destination.mkdir(parents=True, exist_ok=True)
        target = destination / backup_file_name(device_name, self._clock())

        self._db.checkpoint()
        plaintext = self._snapshot_bytes()
        salt = crypto_utils.new_salt()
        key = crypto_utils.derive_key(
            password, salt, iterations=self._iterations, logger=self._logger
        )
        payload = crypto_utils.encrypt_payload(plaintext, key, logger=self._logger)

        tmp_path = target.with_name(target.name + ".new")
        try:
            with open(tmp_path, "wb") as f_out:
                f_out.write(BACKUP_MAGIC)
                f_out.write(_HEADER.pack(self._iterations))
                f_out.write(salt)
                f_out.write(payload)
            os.replace(tmp_path, target)
        except OSError as exc:
            self._logger.error("Backup write failed: %s", exc, exc_info=True)
            if tmp_path.exists():
                tmp_path.unlink()
            raise BackupError(f"Could not write backup to {target}: {exc}") from exc

        self._logger.info("Backup written to %s (%s bytes)", target, len(plaintext))
        return target

    def restore_backup(self, backup_path: Union[str, Path], password: str) -> None:
        """Replace the live database with the contents of ``backup_path``.

        The current database is left untouched unless the backup decrypts
        and looks like an SQLite file.
        """
        db_path = getattr(self._db, "db_path", None)
        if not db_path or db_path == ":memory:":
            raise BackupError("In-memory databases cannot be restored from a backup.")

        plaintext = self._read_backup(Path(backup_path), password)

        self._logger.info("Restoring database from %s", backup_path)
        self._db.close()
        tmp_path = f"{db_path}.restore"
        try:
            with open(tmp_path, "wb") as f_out:
                f_out.write(plaintext)
            for suffix in ("-wal", "-shm"):
                stale = f"{db_path}{suffix}"
                if os.path.exists(stale):
                    os.remove(stale)
            os.replace(tmp_path, db_path)
        except OSError as exc:
            self._logger.error("Restore failed: %s", exc, exc_info=True)
            raise BackupError(f"Could not restore backup into {db_path}: {exc}") from exc
        finally:
            self._db.reconnect()
        self._logger.info("Database restored from %s", backup_path)

    # ------------------------------------------------------------------

    def _read_backup(self, path: Path, password: str) -> bytes:
        try:
            blob = path.read_bytes()
        except OSError as exc:
            raise BackupError(f"Could not read backup {path}: {exc}") from exc

        header_len = len(BACKUP_MAGIC) + _HEADER.size + crypto_utils.DEFAULT_SALT_BYTES
        if not blob.startswith(BACKUP_MAGIC) or len(blob) <= header_len:
            raise BackupError(f"{path.name} is not a gold estimation backup.")

        offset = len(BACKUP_MAGIC)
        (iterations,) = _HEADER.unpack_from(blob, offset)
        if not 0 < iterations <= MAX_KDF_ITERATIONS:
            raise BackupError(f"{path.name} declares an unsupported key iteration count ({iterations}).")
        offset += _HEADER.size
        salt = blob[offset:offset + crypto_utils.DEFAULT_SALT_BYTES]
        payload = blob[header_len:]

        key = crypto_utils.derive_key(password, salt, iterations=iterations, logger=self._logger)
        try:
            plaintext = crypto_utils.decrypt_payload(payload, key, logger=self._logger)
        except (InvalidTag, ValueError) as exc:
            raise BackupError("Backup could not be decrypted: wrong password or corrupted file.") from exc

        if not plaintext.startswith(SQLITE_HEADER):
            raise BackupError("Decrypted backup is not an SQLite database.")
        return plaintext

    def _snapshot_bytes(self) -> bytes:
        """Copy the live database through the SQLite backup API and return its bytes."""
        conn = getattr(self._db, "conn", None)
        if conn is None:
            raise BackupError("Cannot back up: no active database connection.")
        conn.commit()

        tmp = tempfile.NamedTemporaryFile(delete=False, suffix=".sqlite")
        snapshot_path = tmp.name
        tmp.close()
        try:
            dest = sqlite3.connect(snapshot_path)
            try:
                conn.backup(dest)
            finally:
                dest.close()
            with open(snapshot_path, "rb") as f_in:
                return f_in.read()
        except sqlite3.Error as exc:
            self._logger.error("Database snapshot failed: %s", exc, exc_info=True)
            raise BackupError(f"Could not snapshot database: {exc}") from exc
        finally:
            for path in (snapshot_path, f"{snapshot_path}-wal", f"{snapshot_path}-shm"):
                if os.path.exists(path):
                    os.remove(path)
