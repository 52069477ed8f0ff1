"""Benefit balances and the append-only purchase ledger."""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Mapping, Sequence
from pathlib import Path

from ..models import (
    Benefit,
    BenefitCategory,
    PurchaseItem,
    PurchaseResult,
    Reason,
    Transaction,
    TransactionItem,
)
from ..periods import (
    Clock,
    current_period,
    is_expired,
    parse_period,
    period_expiry,
    system_clock,
)
from ..eligibility.units import format_quantity
from .schema import ensure_schema, transaction

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = "~/.config/wic-benefits/benefits.db"

# Float slack for balance comparisons (0.1 + 0.2 style drift)
_EPSILON = 1e-9

_CATEGORY_ORDER = {c: i for i, c in enumerate(BenefitCategory)}


class _Rejected(Exception):
    """Aborts the open database transaction with a rejection result."""

    def __init__(self, result: PurchaseResult) -> None:
        super().__init__(result.message)
        self.result = result


def _mask(card_number: str) -> str:
    return "*" * max(len(card_number) - 4, 0) + card_number[-4:]


def _reject(reason: Reason, message: str, balances=None) -> PurchaseResult:
    return PurchaseResult(
        accepted=False, reason=reason, message=message, balances=balances or []
    )


class BenefitLedger:
    """Manages the wic_benefits, transactions and transaction_items tables.

    Every balance change goes through :meth:`record_purchase`, which checks
    and decrements inside one ``BEGIN IMMEDIATE`` transaction with a
    conditional UPDATE, so two purchases racing on the same card, category
    and period can never both pass the balance check. A ledger instance may
    be shared between threads.
    """

    def __init__(
        self,
        db_path: str | Path = DEFAULT_DB_PATH,
        *,
        clock: Clock = system_clock,
        default_allotments: Mapping[BenefitCategory | str, float] | None = None,
    ) -> None:
        self._db_path = db_path
        self._clock = clock
        self._default_allotments = dict(default_allotments or {})
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = ensure_schema(self._db_path, check_same_thread=False)
        return self._conn

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    # -- queries -----------------------------------------------------------

    def get_benefits(
        self, card_number: str, month_period: str | None = None
    ) -> list[Benefit]:
        """Return the category balances of a card for a period.

        An uninitialized period returns an empty list.
        """
        period = month_period or current_period(self._clock)
        parse_period(period)
        with self._lock:
            rows = self._get_conn().execute(
                """SELECT * FROM wic_benefits
                   WHERE card_number = ? AND month_period = ?""",
                (card_number, period),
            ).fetchall()
        benefits = [Benefit.from_row(r) for r in rows]
        return sorted(benefits, key=lambda b: _CATEGORY_ORDER[b.category])

    def get_benefit(
        self,
        card_number: str,
        category: BenefitCategory | str,
        month_period: str | None = None,
    ) -> Benefit | None:
        period = month_period or current_period(self._clock)
        category = BenefitCategory.parse(category)
        with self._lock:
            row = self._get_conn().execute(
                """SELECT * FROM wic_benefits
                   WHERE card_number = ? AND category = ? AND month_period = ?""",
                (card_number, category.value, period),
            ).fetchone()
        return Benefit.from_row(row) if row else None

    def card_numbers(self, month_period: str | None = None) -> list[str]:
        """Card numbers holding benefits, optionally limited to one period."""
        with self._lock:
            conn = self._get_conn()
            if month_period is None:
                rows = conn.execute(
                    "SELECT DISTINCT card_number FROM wic_benefits ORDER BY card_number"
                ).fetchall()
            else:
                rows = conn.execute(
                    """SELECT DISTINCT card_number FROM wic_benefits
                       WHERE month_period = ? ORDER BY card_number""",
                    (month_period,),
                ).fetchall()
        return [r["card_number"] for r in rows]

    def get_transactions(self, card_number: str, limit: int = 20) -> list[Transaction]:
        """Return the most recent transactions of a card, newest first."""
        with self._lock:
            conn = self._get_conn()
            rows = conn.execute(
                """SELECT t.*, COALESCE(s.name, '') AS store_name
                   FROM transactions t
                   LEFT JOIN wic_stores s ON s.id = t.store_id
                   WHERE t.card_number = ?
                   ORDER BY t.created_at DESC, t.id DESC
                   LIMIT ?""",
                (card_number, limit),
            ).fetchall()
            result: list[Transaction] = []
            for row in rows:
                item_rows = conn.execute(
                    "SELECT * FROM transaction_items WHERE transaction_id = ? ORDER BY id",
                    (row["id"],),
                ).fetchall()
                items = tuple(
                    TransactionItem(
                        category=BenefitCategory(i["category"]),
                        quantity=i["quantity"],
                        unit=i["unit"],
                        product_name=i["product_name"],
                        approved_food_id=i["approved_food_id"],
                    )
                    for i in item_rows
                )
                result.append(
                    Transaction(
                        id=row["id"],
                        card_number=row["card_number"],
                        created_at=row["created_at"],
                        month_period=row["month_period"],
                        store_id=row["store_id"],
                        store_name=row["store_name"],
                        items=items,
                    )
                )
        return result

    def purchased_in_period(
        self,
        card_number: str,
        month_period: str,
        *,
        category: BenefitCategory | str | None = None,
        product_names: Sequence[str] | None = None,
        approved_food_ids: Sequence[int] | None = None,
    ) -> float:
        """Sum of purchased quantities this period matching the filters."""
        sql = [
            """SELECT COALESCE(SUM(i.quantity), 0) AS total
               FROM transaction_items i
               JOIN transactions t ON t.id = i.transaction_id
               WHERE t.card_number = ? AND t.month_period = ?"""
        ]
        params: list = [card_number, month_period]
        if category is not None:
            sql.append("AND i.category = ?")
            params.append(BenefitCategory.parse(category).value)
        if approved_food_ids:
            sql.append(f"AND i.approved_food_id IN ({','.join('?' * len(approved_food_ids))})")
            params.extend(approved_food_ids)
        if product_names:
            sql.append(f"AND i.product_name IN ({','.join('?' * len(product_names))})")
            params.extend(product_names)
        with self._lock:
            row = self._get_conn().execute(" ".join(sql), params).fetchone()
        return float(row["total"])

    # -- period lifecycle --------------------------------------------------

    def issue_benefits(
        self,
        card_number: str,
        month_period: str,
        allotments: Mapping[BenefitCategory | str, float],
        remaining: Mapping[BenefitCategory | str, float] | None = None,
    ) -> list[Benefit]:
        """Create the benefit rows of a period.

        Rows that already exist are left untouched, so issuing twice is the
        same as issuing once.

        Args:
            allotments: Monthly total per category.
            remaining: Optional starting balance per category (defaults to
                the total). Values are clamped to ``[0, total]``.
        """
        parse_period(month_period)
        expires_at = period_expiry(month_period).isoformat()
        start = {BenefitCategory.parse(k): v for k, v in (remaining or {}).items()}

        with self._lock:
            conn = self._get_conn()
            with transaction(conn):
                for key, total in allotments.items():
                    category = BenefitCategory.parse(key)
                    if total < 0:
                        raise ValueError(f"Negative allotment for {category.value}: {total}")
                    balance = min(max(start.get(category, total), 0.0), total)
                    conn.execute(
                        """INSERT OR IGNORE INTO wic_benefits
                           (card_number, category, total_amount, remaining_amount,
                            unit, month_period, expires_at)
                           VALUES (?, ?, ?, ?, ?, ?, ?)""",
                        (
                            card_number,
                            category.value,
                            total,
                            balance,
                            category.unit,
                            month_period,
                            expires_at,
                        ),
                    )
        return self.get_benefits(card_number, month_period)

    def delete_benefits(self, card_number: str, month_period: str) -> int:
        """Drop a card's rows for one period. Transactions are kept.

        Returns:
            Number of rows deleted.
        """
        parse_period(month_period)
        with self._lock:
            conn = self._get_conn()
            with transaction(conn):
                cur = conn.execute(
                    "DELETE FROM wic_benefits WHERE card_number = ? AND month_period = ?",
                    (card_number, month_period),
                )
        return cur.rowcount

    def rollover_period(
        self, card_number: str, from_period: str, to_period: str
    ) -> list[Benefit]:
        """Open ``to_period`` with full balances.

        Totals are carried over from ``from_period``; unused balances are not
        (they stay on the old rows until they are purged). Falls back to the
        ledger's default allotments when the card had no rows in
        ``from_period``. Safe to retry.
        """
        parse_period(from_period)
        parse_period(to_period)

        prior = self.get_benefits(card_number, from_period)
        if prior:
            allotments = {b.category: b.total_amount for b in prior}
        elif self._default_allotments:
            allotments = dict(self._default_allotments)
        else:
            logger.warning(
                "No %s benefits for card %s and no default allotments; "
                "skipping rollover to %s",
                from_period,
                _mask(card_number),
                to_period,
            )
            return []

        benefits = self.issue_benefits(card_number, to_period, allotments)
        logger.info(
            "Rolled over card %s: %s -> %s (%d categories)",
            _mask(card_number),
            from_period,
            to_period,
            len(benefits),
        )
        return benefits

    def rollover_all(self, from_period: str, to_period: str) -> dict[str, list[Benefit]]:
        """Roll over every card that held benefits in ``from_period``."""
        return {
            card: self.rollover_period(card, from_period, to_period)
            for card in self.card_numbers(from_period)
        }

    # -- purchases ---------------------------------------------------------

    def apply_purchase(
        self,
        card_number: str,
        category: BenefitCategory | str,
        quantity: float,
        unit: str,
        month_period: str | None = None,
        *,
        store_id: int | None = None,
        product_name: str = "",
        approved_food_id: int | None = None,
    ) -> PurchaseResult:
        """Apply a single-item purchase. See :meth:`record_purchase`."""
        try:
            category = BenefitCategory.parse(category)
        except ValueError as e:
            return _reject(Reason.NO_BENEFIT, str(e))
        item = PurchaseItem(
            category=category,
            quantity=quantity,
            unit=unit,
            product_name=product_name,
            approved_food_id=approved_food_id,
        )
        return self.record_purchase(
            card_number, [item], month_period, store_id=store_id
        )

    def record_purchase(
        self,
        card_number: str,
        items: Sequence[PurchaseItem],
        month_period: str | None = None,
        *,
        store_id: int | None = None,
    ) -> PurchaseResult:
        """Decrement balances and append a transaction, all or nothing.

        A purchase that fails any check is rejected outright; no item of it
        is applied.

        Returns:
            PurchaseResult with the updated balances of the touched
            categories, or the rejection reason.
        """
        period = month_period or current_period(self._clock)
        parse_period(period)

        if not items:
            return _reject(Reason.INVALID_QUANTITY, "Purchase has no items")

        requested: dict[BenefitCategory, float] = {}
        for item in items:
            category = BenefitCategory.parse(item.category)
            if item.quantity <= 0:
                return _reject(
                    Reason.INVALID_QUANTITY,
                    f"Quantity must be positive (got {item.quantity})",
                )
            if item.unit != category.unit:
                return _reject(
                    Reason.UNIT_MISMATCH,
                    f"{category.value} is tracked in {category.unit}, not {item.unit}",
                )
            requested[category] = requested.get(category, 0.0) + item.quantity

        with self._lock:
            conn = self._get_conn()
            try:
                with transaction(conn):
                    balances = self._decrement(conn, card_number, period, requested)
                    transaction_id = self._append_transaction(
                        conn, card_number, period, store_id, items
                    )
            except _Rejected as rejected:
                logger.warning(
                    "Rejected purchase for card %s (%s): %s",
                    _mask(card_number),
                    rejected.result.reason.value,
                    rejected.result.message,
                )
                return rejected.result

        logger.info(
            "Recorded transaction %d for card %s: %d item(s)",
            transaction_id,
            _mask(card_number),
            len(items),
        )
        return PurchaseResult(
            accepted=True,
            balances=balances,
            transaction_id=transaction_id,
        )

    def _decrement(
        self,
        conn: sqlite3.Connection,
        card_number: str,
        period: str,
        requested: Mapping[BenefitCategory, float],
    ) -> list[Benefit]:
        updated: list[Benefit] = []
        for category, quantity in requested.items():
            row = conn.execute(
                """SELECT * FROM wic_benefits
                   WHERE card_number = ? AND category = ? AND month_period = ?""",
                (card_number, category.value, period),
            ).fetchone()
            if row is None:
                raise _Rejected(
                    _reject(
                        Reason.NO_BENEFIT,
                        f"No {category.value} benefit for period {period}",
                    )
                )
            benefit = Benefit.from_row(row)
            if is_expired(benefit.expires_at, self._clock):
                raise _Rejected(
                    _reject(
                        Reason.BENEFIT_EXPIRED,
                        f"{category.value} benefit expired on {benefit.expires_at}",
                        [benefit],
                    )
                )

            cur = conn.execute(
                """UPDATE wic_benefits
                   SET remaining_amount = MAX(remaining_amount - ?, 0),
                       updated_at = datetime('now', 'localtime')
                   WHERE id = ? AND remaining_amount + ? >= ?""",
                (quantity, benefit.id, _EPSILON, quantity),
            )
            if cur.rowcount != 1:
                raise _Rejected(
                    _reject(
                        Reason.INSUFFICIENT_BENEFIT,
                        f"Only {format_quantity(benefit.remaining_amount, category.unit)} "
                        f"of {category.value} left; "
                        f"{format_quantity(quantity, category.unit)} requested",
                        [benefit],
                    )
                )

            row = conn.execute(
                "SELECT * FROM wic_benefits WHERE id = ?", (benefit.id,)
            ).fetchone()
            updated.append(Benefit.from_row(row))
        return updated

    def _append_transaction(
        self,
        conn: sqlite3.Connection,
        card_number: str,
        period: str,
        store_id: int | None,
        items: Sequence[PurchaseItem],
    ) -> int:
        created_at = self._clock().isoformat(timespec="seconds")
        cur = conn.execute(
            """INSERT INTO transactions
               (card_number, store_id, month_period, total_items, created_at)
               VALUES (?, ?, ?, ?, ?)""",
            (card_number, store_id, period, len(items), created_at),
        )
        transaction_id = cur.lastrowid
        conn.executemany(
            """INSERT INTO transaction_items
               (transaction_id, approved_food_id, category, quantity, unit, product_name)
               VALUES (?, ?, ?, ?, ?, ?)""",
            [
                (
                    transaction_id,
                    item.approved_food_id,
                    BenefitCategory.parse(item.category).value,
                    item.quantity,
                    item.unit,
                    item.product_name,
                )
                for item in items
            ],
        )
        return transaction_id
