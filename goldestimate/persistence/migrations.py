"""Database schema setup and migration helpers."""
from __future__ import annotations

import logging
import sqlite3
from typing import TYPE_CHECKING

from goldestimate.exceptions import DatabaseMigrationError

if TYPE_CHECKING:  # pragma: no cover
    from goldestimate.persistence.database_manager import DatabaseManager

SCHEMA_VERSION = 3

DEFAULT_METAL_TYPES = (
    ("24K Gold", 24, "GOLD"),
    ("22K Gold (916)", 22, "GOLD"),
    ("20K Gold (833)", 20, "GOLD"),
    ("18K Gold (750)", 18, "GOLD"),
    ("Pure Silver", 100, "SILVER"),
    ("Sterling Silver (925)", 92.5, "SILVER"),
)

DEFAULT_PURCHASE_CATEGORIES = {
    "Old Gold": ("916 KDM", "916 Hallmark", "Nallapusa", "Melting"),
    "Old Silver": ("925 Sterling", "Local Silver", "Patti", "Vessels"),
    "Exchange": ("Gold Exchange", "Silver Exchange"),
}


def run_schema_setup(db: "DatabaseManager") -> None:
    """Ensure database schema and indexes exist, applying migrations as needed."""
    conn = getattr(db, "conn", None)
    cursor = getattr(db, "cursor", None)
    logger = getattr(db, "logger", logging.getLogger(__name__))

    if not conn or not cursor:
        logger.warning("Database setup skipped: No active connection.")
        return

    logger.info("Starting database setup check...")
    try:
        current_version = db._check_schema_version()
        logger.info("Current database schema version: %s", current_version)

        conn.execute("BEGIN TRANSACTION")

        _ensure_core_tables(db)
        _apply_versioned_migrations(db, current_version)

        conn.commit()
        logger.info("Database schema setup/update complete.")

        _ensure_indexes(db)
    except sqlite3.Error as exc:
        logger.critical("FATAL Database setup error: %s", exc, exc_info=True)
        conn.rollback()
        raise DatabaseMigrationError(f"Database setup failed: {exc}") from exc


def _ensure_core_tables(db: "DatabaseManager") -> None:
    cursor = db.cursor
    cursor.execute(
        """
        CREATE TABLE IF NOT EXISTS settings (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        )
        """
    )
    cursor.execute(
        """
        CREATE TABLE IF NOT EXISTS estimations (
            id TEXT PRIMARY KEY,
            customer_name TEXT,
            customer_mobile TEXT,
            date TEXT NOT NULL,
            items TEXT NOT NULL,
            total_weight REAL NOT NULL,
            grand_total REAL NOT NULL
        )
        """
    )


def _apply_versioned_migrations(db: "DatabaseManager", current_version: int) -> None:
    cursor = db.cursor
    logger = db.logger

    if current_version < 1:
        logger.info("Applying schema migration to version 1: deduction lists...")
        for column in ("purchase_items", "chit_items", "advance_items"):
            if not db._column_exists("estimations", column):
                cursor.execute(f"ALTER TABLE estimations ADD COLUMN {column} TEXT DEFAULT '[]'")
        db._update_schema_version(1)

    if current_version < 2:
        logger.info("Applying schema migration to version 2: estimation numbers...")
        if not db._column_exists("estimations", "estimation_number"):
            cursor.execute("ALTER TABLE estimations ADD COLUMN estimation_number INTEGER DEFAULT 0")
        db._update_schema_version(2)

    if current_version < 3:
        logger.info("Applying schema migration to version 3: metal types and purchase categories...")
        _create_catalog_tables(cursor)
        _seed_catalogs(cursor, logger)
        db._update_schema_version(3)

    if current_version >= SCHEMA_VERSION:
        logger.info("Schema is already at version %s. No migration needed.", SCHEMA_VERSION)


def _create_catalog_tables(cursor) -> None:
    cursor.execute(
        """
        CREATE TABLE IF NOT EXISTS metal_types (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL UNIQUE,
            purity REAL NOT NULL,
            metal TEXT NOT NULL
        )
        """
    )
    cursor.execute(
        """
        CREATE TABLE IF NOT EXISTS purchase_categories (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL UNIQUE
        )
        """
    )
    cursor.execute(
        """
        CREATE TABLE IF NOT EXISTS purchase_sub_categories (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            category_id INTEGER NOT NULL,
            name TEXT NOT NULL,
            FOREIGN KEY (category_id) REFERENCES purchase_categories (id) ON DELETE CASCADE,
            UNIQUE (category_id, name)
        )
        """
    )


def _seed_catalogs(cursor, logger) -> None:
    """Insert the default catalogue rows into empty tables."""
    cursor.execute("SELECT COUNT(*) FROM metal_types")
    if cursor.fetchone()[0] == 0:
        logger.info("Seeding default metal types...")
        cursor.executemany(
            "INSERT INTO metal_types (name, purity, metal) VALUES (?, ?, ?)", DEFAULT_METAL_TYPES
        )

    cursor.execute("SELECT COUNT(*) FROM purchase_categories")
    if cursor.fetchone()[0] == 0:
        logger.info("Seeding default purchase categories...")
        for category, sub_categories in DEFAULT_PURCHASE_CATEGORIES.items():
            cursor.execute("INSERT INTO purchase_categories (name) VALUES (?)", (category,))
            category_id = cursor.lastrowid
            cursor.executemany(
                "INSERT INTO purchase_sub_categories (category_id, name) VALUES (?, ?)",
                [(category_id, name) for name in sub_categories],
            )


def _ensure_indexes(db: "DatabaseManager") -> None:
    cursor = db.cursor
    logger = db.logger

    try:
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_estimations_date ON estimations(date)")
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_estimations_number ON estimations(estimation_number)"
        )
        db.conn.commit()
        logger.info("Database indexes ensured.")
    except sqlite3.Error as exc:
        logger.warning("Failed creating one or more indexes: %s", exc)
