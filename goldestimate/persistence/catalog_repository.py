"""Reference catalogues: metal purities and trade-in categories."""
from __future__ import annotations

import logging
import sqlite3
from typing import Any, List, Union

from goldestimate.domain.estimation_models import (
    Metal,
    MetalType,
    PurchaseCategory,
    PurchaseSubCategory,
)
from goldestimate.exceptions import DatabaseError


class CatalogRepository:
    """CRUD over the metal type and purchase category lookup tables."""

    def __init__(self, db_manager: Any) -> None:
        self._db = db_manager
        self._logger = getattr(db_manager, "logger", logging.getLogger(__name__))

    @property
    def _conn(self):
        return getattr(self._db, "conn", None)

    # --- Metal types ---------------------------------------------------
    def get_metal_types(self) -> List[MetalType]:
        """Return metal types, gold first, highest purity first."""
        rows = self._fetch(
            "SELECT id, name, purity, metal FROM metal_types ORDER BY metal ASC, purity DESC",
            (),
            "metal types",
        )
        return [
            MetalType(
                id=row["id"],
                name=row["name"],
                purity=float(row["purity"]),
                metal=Metal.coerce(row["metal"]),
            )
            for row in rows
        ]

    def add_metal_type(self, name: str, purity: float, metal: Union[Metal, str]) -> int:
        return self._write(
            "INSERT INTO metal_types (name, purity, metal) VALUES (?, ?, ?)",
            (name, purity, Metal.coerce(metal).value),
            f"add metal type '{name}'",
        )

    def update_metal_type(self, metal_type: MetalType) -> None:
        self._write(
            "UPDATE metal_types SET name = ?, purity = ?, metal = ? WHERE id = ?",
            (
                metal_type.name,
                metal_type.purity,
                Metal.coerce(metal_type.metal).value,
                metal_type.id,
            ),
            f"update metal type {metal_type.id}",
        )

    def delete_metal_type(self, metal_type_id: int) -> None:
        self._write(
            "DELETE FROM metal_types WHERE id = ?", (metal_type_id,), f"delete metal type {metal_type_id}"
        )

    # --- Purchase categories -------------------------------------------
    def get_purchase_categories(self) -> List[PurchaseCategory]:
        rows = self._fetch(
            "SELECT id, name FROM purchase_categories ORDER BY name", (), "purchase categories"
        )
        return [PurchaseCategory(id=row["id"], name=row["name"]) for row in rows]

    def get_purchase_sub_categories(self, category_id: int) -> List[PurchaseSubCategory]:
        rows = self._fetch(
            "SELECT id, category_id, name FROM purchase_sub_categories"
            " WHERE category_id = ? ORDER BY name",
            (category_id,),
            "purchase sub-categories",
        )
        return [
            PurchaseSubCategory(id=row["id"], category_id=row["category_id"], name=row["name"])
            for row in rows
        ]

    def add_purchase_category(self, name: str) -> int:
        return self._write(
            "INSERT INTO purchase_categories (name) VALUES (?)",
            (name,),
            f"add purchase category '{name}'",
        )

    def delete_purchase_category(self, category_id: int) -> None:
        """Delete a category together with its sub-categories."""
        self._write(
            "DELETE FROM purchase_categories WHERE id = ?",
            (category_id,),
            f"delete purchase category {category_id}",
        )

    def add_purchase_sub_category(self, category_id: int, name: str) -> int:
        return self._write(
            "INSERT INTO purchase_sub_categories (category_id, name) VALUES (?, ?)",
            (category_id, name),
            f"add purchase sub-category '{name}'",
        )

    def delete_purchase_sub_category(self, sub_category_id: int) -> None:
        self._write(
            "DELETE FROM purchase_sub_categories WHERE id = ?",
            (sub_category_id,),
            f"delete purchase sub-category {sub_category_id}",
        )

    # ------------------------------------------------------------------

    def _fetch(self, sql: str, params: tuple, label: str) -> List[sqlite3.Row]:
        conn = self._require_connection()
        try:
            return conn.execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            self._logger.error("DB error getting %s: %s", label, exc, exc_info=True)
            raise DatabaseError(f"Could not load {label}: {exc}") from exc

    def _write(self, sql: str, params: tuple, label: str) -> int:
        conn = self._require_connection()
        try:
            cursor = conn.execute(sql, params)
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            self._logger.error("DB error during %s: %s", label, exc, exc_info=True)
            raise DatabaseError(f"Could not {label}: {exc}") from exc
        self._logger.debug("Catalog change: %s", label)
        return cursor.lastrowid

    def _require_connection(self):
        conn = self._conn
        if not conn:
            raise DatabaseError("No active database connection is available.")
        return conn
