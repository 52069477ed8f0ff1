"""Database schema definitions and migration helpers."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

_SCHEMA_VERSION = 1

_DDL = """
CREATE TABLE IF NOT EXISTS wic_stores (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    chain TEXT NOT NULL DEFAULT '',
    address TEXT NOT NULL DEFAULT '',
    city TEXT NOT NULL DEFAULT '',
    state TEXT NOT NULL DEFAULT '',
    zip_code TEXT NOT NULL DEFAULT '',
    phone TEXT NOT NULL DEFAULT '',
    is_active INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL DEFAULT (datetime('now', 'localtime'))
);

CREATE TABLE IF NOT EXISTS general_foods (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    brand TEXT NOT NULL DEFAULT 'Generic',
    category TEXT NOT NULL,
    subcategory TEXT NOT NULL DEFAULT '',
    upc_code TEXT,
    plu_code TEXT,
    unit_size TEXT NOT NULL DEFAULT '',
    image_url TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL DEFAULT (datetime('now', 'localtime'))
);

CREATE INDEX IF NOT EXISTS idx_general_foods_upc ON general_foods(upc_code);
CREATE INDEX IF NOT EXISTS idx_general_foods_plu ON general_foods(plu_code);

CREATE TABLE IF NOT EXISTS approved_foods (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    general_food_id INTEGER NOT NULL REFERENCES general_foods(id) ON DELETE CASCADE,
    wic_category TEXT NOT NULL,
    is_approved INTEGER NOT NULL DEFAULT 1,
    notes TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL DEFAULT (datetime('now', 'localtime'))
);

CREATE INDEX IF NOT EXISTS idx_approved_foods_category ON approved_foods(wic_category);

CREATE TABLE IF NOT EXISTS wic_benefits (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    card_number TEXT NOT NULL,
    category TEXT NOT NULL,
    total_amount REAL NOT NULL CHECK (total_amount >= 0),
    remaining_amount REAL NOT NULL
        CHECK (remaining_amount >= 0 AND remaining_amount <= total_amount),
    unit TEXT NOT NULL,
    month_period TEXT NOT NULL,
    expires_at TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT (datetime('now', 'localtime')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now', 'localtime')),
    UNIQUE (card_number, category, month_period)
);

CREATE INDEX IF NOT EXISTS idx_benefits_card_period ON wic_benefits(card_number, month_period);

CREATE TABLE IF NOT EXISTS transactions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    card_number TEXT NOT NULL,
    store_id INTEGER REFERENCES wic_stores(id),
    month_period TEXT NOT NULL,
    transaction_type TEXT NOT NULL DEFAULT 'purchase',
    total_items INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_transactions_card ON transactions(card_number, created_at);

CREATE TABLE IF NOT EXISTS transaction_items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    transaction_id INTEGER NOT NULL REFERENCES transactions(id),
    approved_food_id INTEGER,
    category TEXT NOT NULL,
    quantity REAL NOT NULL,
    unit TEXT NOT NULL,
    product_name TEXT NOT NULL DEFAULT ''
);

CREATE INDEX IF NOT EXISTS idx_transaction_items_tx ON transaction_items(transaction_id);

CREATE TRIGGER IF NOT EXISTS transactions_no_update
BEFORE UPDATE ON transactions
BEGIN
    SELECT RAISE(ABORT, 'transactions are append-only');
END;

CREATE TRIGGER IF NOT EXISTS transaction_items_no_update
BEFORE UPDATE ON transaction_items
BEGIN
    SELECT RAISE(ABORT, 'transaction items are append-only');
END;

CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER NOT NULL
);
"""


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Run a block inside ``BEGIN IMMEDIATE`` ... ``COMMIT``.

    The write lock is taken up front, so a read-check-write sequence inside
    the block cannot interleave with another writer.
    """
    conn.execute("BEGIN IMMEDIATE")
    try:
        yield conn
    except BaseException:
        conn.execute("ROLLBACK")
        raise
    conn.execute("COMMIT")


def ensure_schema(
    db_path: str | Path, *, check_same_thread: bool = True
) -> sqlite3.Connection:
    """Open (or create) the database and ensure the schema is up to date.

    Args:
        db_path: Path to the SQLite database file.
        check_same_thread: Passed to sqlite3.connect. Set to False when the
            caller serializes access to the connection itself.

    Returns:
        An open sqlite3.Connection with the schema applied.
    """
    db_path = Path(db_path).expanduser()
    db_path.parent.mkdir(parents=True, exist_ok=True)

    # isolation_level=None: transactions are opened explicitly where needed
    conn = sqlite3.connect(
        str(db_path),
        timeout=10.0,
        isolation_level=None,
        check_same_thread=check_same_thread,
    )
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")

    # Check current schema version
    try:
        row = conn.execute("SELECT version FROM schema_version").fetchone()
        current_version = row["version"] if row else 0
    except sqlite3.OperationalError:
        current_version = 0

    if current_version < _SCHEMA_VERSION:
        conn.executescript(_DDL)
        # Update version
        with transaction(conn):
            conn.execute("DELETE FROM schema_version")
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)",
                (_SCHEMA_VERSION,),
            )

    return conn
