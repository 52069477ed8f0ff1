"""Approved-food catalog queries."""

from __future__ import annotations

import sqlite3
from pathlib import Path

from ..models import ApprovedFood, BenefitCategory, GeneralFood
from .schema import ensure_schema, transaction

_APPROVED_SELECT = """
SELECT a.id, a.general_food_id, a.wic_category, a.is_approved, a.notes,
       g.name, g.brand, g.subcategory, g.upc_code, g.plu_code, g.unit_size
FROM approved_foods a
JOIN general_foods g ON g.id = a.general_food_id
"""


def normalize_code(code: str) -> str:
    """Strip separators from a scanned UPC/PLU."""
    return "".join(ch for ch in (code or "") if ch.isdigit())


class ApprovedFoodCatalog:
    """Manages the general_foods and approved_foods tables.

    Read-mostly: the scanner only queries it, the seed script fills it.
    """

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

    def add_general_food(
        self,
        name: str,
        category: BenefitCategory | str,
        *,
        brand: str = "Generic",
        subcategory: str = "",
        upc_code: str = "",
        plu_code: str = "",
        unit_size: str = "",
        image_url: str = "",
    ) -> int:
        """Insert a catalog product and return its row ID."""
        conn = self._get_conn()
        with transaction(conn):
            cur = conn.execute(
                """INSERT INTO general_foods
                   (name, brand, category, subcategory, upc_code, plu_code,
                    unit_size, image_url)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    name,
                    brand,
                    BenefitCategory.parse(category).value,
                    subcategory,
                    normalize_code(upc_code) or None,
                    normalize_code(plu_code) or None,
                    unit_size,
                    image_url,
                ),
            )
        return cur.lastrowid

    def approve_food(
        self,
        general_food_id: int,
        wic_category: BenefitCategory | str,
        *,
        is_approved: bool = True,
        notes: str = "",
    ) -> int:
        """Pair a catalog product with a WIC category."""
        conn = self._get_conn()
        with transaction(conn):
            cur = conn.execute(
                """INSERT INTO approved_foods
                   (general_food_id, wic_category, is_approved, notes)
                   VALUES (?, ?, ?, ?)""",
                (
                    general_food_id,
                    BenefitCategory.parse(wic_category).value,
                    int(is_approved),
                    notes,
                ),
            )
        return cur.lastrowid

    def find_by_code(self, code: str) -> list[ApprovedFood]:
        """Return every approved-food row whose product has this UPC or PLU."""
        code = normalize_code(code)
        if not code:
            return []
        rows = self._get_conn().execute(
            _APPROVED_SELECT + " WHERE g.upc_code = ? OR g.plu_code = ? ORDER BY a.id",
            (code, code),
        ).fetchall()
        return [ApprovedFood.from_row(r) for r in rows]

    def find_by_category(self, category: BenefitCategory | str) -> list[ApprovedFood]:
        """Return approved rows of a category, e.g. to suggest alternatives."""
        rows = self._get_conn().execute(
            _APPROVED_SELECT
            + " WHERE a.wic_category = ? AND a.is_approved = 1 ORDER BY g.name",
            (BenefitCategory.parse(category).value,),
        ).fetchall()
        return [ApprovedFood.from_row(r) for r in rows]

    def search(self, term: str, limit: int = 20) -> list[ApprovedFood]:
        """Case-insensitive name/brand search over approved products."""
        pattern = f"%{term.strip()}%"
        rows = self._get_conn().execute(
            _APPROVED_SELECT
            + """ WHERE a.is_approved = 1
                  AND (g.name LIKE ? OR g.brand LIKE ?)
                  ORDER BY g.name LIMIT ?""",
            (pattern, pattern, limit),
        ).fetchall()
        return [ApprovedFood.from_row(r) for r in rows]

    def get_general_food(self, code: str) -> GeneralFood | None:
        """Look up a catalog product by UPC or PLU."""
        code = normalize_code(code)
        if not code:
            return None
        row = self._get_conn().execute(
            """SELECT * FROM general_foods
               WHERE upc_code = ? OR plu_code = ? ORDER BY id LIMIT 1""",
            (code, code),
        ).fetchone()
        if row is None:
            return None
        return GeneralFood(
            id=row["id"],
            name=row["name"],
            brand=row["brand"],
            category=BenefitCategory(row["category"]),
            subcategory=row["subcategory"],
            upc_code=row["upc_code"] or "",
            plu_code=row["plu_code"] or "",
            unit_size=row["unit_size"],
            image_url=row["image_url"],
        )

    def clear(self) -> None:
        """Delete all catalog rows."""
        conn = self._get_conn()
        with transaction(conn):
            conn.execute("DELETE FROM approved_foods")
            conn.execute("DELETE FROM general_foods")
