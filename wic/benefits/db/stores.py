"""WIC-authorized store directory."""

from __future__ import annotations

import sqlite3
from pathlib import Path

from ..models import Store
from .schema import ensure_schema, transaction


def _to_store(row) -> Store:
    return Store(
        id=row["id"],
        name=row["name"],
        chain=row["chain"],
        address=row["address"],
        city=row["city"],
        state=row["state"],
        zip_code=row["zip_code"],
        phone=row["phone"],
        is_active=bool(row["is_active"]),
    )


class StoreDB:
    """Manages the wic_stores table."""

    def __init__(self, db_path: str | Path = "~/.config/wic-benefits/benefits.db") -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = ensure_schema(self._db_path)
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def add_stores(self, stores: list[dict]) -> list[int]:
        """Insert or update stores given as dicts of column values.

        A store is identified by its name and address; an existing row is
        updated in place so stores referenced by transactions are reused.

        Returns:
            List of row IDs, in input order.
        """
        conn = self._get_conn()
        ids: list[int] = []
        with transaction(conn):
            for s in stores:
                values = (
                    s.get("chain", ""),
                    s.get("city", ""),
                    s.get("state", ""),
                    s.get("zip_code", ""),
                    s.get("phone", ""),
                    int(s.get("is_active", True)),
                )
                key = (s["name"], s.get("address", ""))
                row = conn.execute(
                    "SELECT id FROM wic_stores WHERE name = ? AND address = ? ORDER BY id LIMIT 1",
                    key,
                ).fetchone()
                if row is not None:
                    conn.execute(
                        """UPDATE wic_stores
                           SET chain = ?, city = ?, state = ?, zip_code = ?,
                               phone = ?, is_active = ?
                           WHERE id = ?""",
                        (*values, row["id"]),
                    )
                    ids.append(row["id"])
                    continue
                cur = conn.execute(
                    """INSERT INTO wic_stores
                       (name, address, chain, city, state, zip_code, phone, is_active)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                    (*key, *values),
                )
                ids.append(cur.lastrowid)
        return ids

    def list_stores(self, *, zip_code: str | None = None, active_only: bool = True) -> list[Store]:
        sql = "SELECT * FROM wic_stores WHERE 1 = 1"
        params: list = []
        if active_only:
            sql += " AND is_active = 1"
        if zip_code:
            sql += " AND zip_code = ?"
            params.append(zip_code)
        rows = self._get_conn().execute(sql + " ORDER BY name", params).fetchall()
        return [_to_store(r) for r in rows]

    def get_store(self, store_id: int) -> Store | None:
        row = self._get_conn().execute(
            "SELECT * FROM wic_stores WHERE id = ?", (store_id,)
        ).fetchone()
        return _to_store(row) if row else None

    def clear(self) -> None:
        """Delete stores not referenced by any transaction."""
        conn = self._get_conn()
        with transaction(conn):
            conn.execute(
                """DELETE FROM wic_stores
                   WHERE id NOT IN (
                       SELECT store_id FROM transactions WHERE store_id IS NOT NULL
                   )"""
            )
