"""SQLite-backed reference adapter for the relational collaborators."""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from shop_assistant.stores.base import Row

logger = logging.getLogger(__name__)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS laptops (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        brand TEXT,
        processor_name TEXT,
        processor_brand TEXT,
        ram TEXT,
        ssd TEXT,
        hdd TEXT,
        display_type TEXT,
        display_inches REAL,
        price REAL NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS orders (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        customer_id INTEGER NOT NULL,
        total_amount REAL NOT NULL,
        order_status TEXT NOT NULL DEFAULT 'pending',
        payment_status TEXT NOT NULL DEFAULT 'unpaid',
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS promotions (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        code TEXT NOT NULL UNIQUE,
        description TEXT,
        discount_type TEXT NOT NULL,
        discount_value REAL NOT NULL,
        start_date TEXT NOT NULL,
        end_date TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS cart_items (
        customer_id INTEGER NOT NULL,
        product_id INTEGER NOT NULL,
        quantity INTEGER NOT NULL,
        PRIMARY KEY (customer_id, product_id)
    )
    """,
)


class SqliteCommerceStore:
    """Implements the order, promotion, catalog and cart store contracts.

    Each call opens its own connection and runs in a worker thread, so the
    event loop never blocks on disk I/O.
    """

    def __init__(self, path: str | Path = "shop_assistant.db") -> None:
        self.path = Path(path)
        self._ensure_schema()

    async def list_recent_orders(self, user_id: int, limit: int) -> list[Row]:
        return await asyncio.to_thread(
            self._fetch_all,
            "SELECT * FROM orders WHERE customer_id = ? ORDER BY created_at DESC, id DESC LIMIT ?",
            (user_id, limit),
        )

    async def list_active(self) -> list[Row]:
        now = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        # A bare YYYY-MM-DD end date stays active through the end of that day.
        return await asyncio.to_thread(
            self._fetch_all,
            "SELECT code, description, discount_type, discount_value FROM promotions "
            "WHERE julianday(start_date) <= julianday(?) "
            "AND julianday(CASE WHEN length(end_date) = 10 THEN end_date || ' 23:59:59' "
            "ELSE end_date END) >= julianday(?)",
            (now, now),
        )

    async def search(self, text: str, limit: int) -> list[Row]:
        pattern = f"%{text}%"
        return await asyncio.to_thread(
            self._fetch_all,
            "SELECT * FROM laptops WHERE name LIKE ? OR processor_name LIKE ? "
            "ORDER BY id DESC LIMIT ?",
            (pattern, pattern, limit),
        )

    async def add_item(self, user_id: int, product_id: int, quantity: int) -> bool:
        return await asyncio.to_thread(self._add_item, user_id, product_id, quantity)

    def _add_item(self, user_id: int, product_id: int, quantity: int) -> bool:
        with sqlite3.connect(self.path) as conn:
            exists = conn.execute("SELECT 1 FROM laptops WHERE id = ?", (product_id,)).fetchone()
            if exists is None:
                logger.warning("[sqlite] cart add rejected: unknown product_id=%s", product_id)
                return False
            conn.execute(
                "INSERT INTO cart_items(customer_id, product_id, quantity) VALUES(?, ?, ?) "
                "ON CONFLICT(customer_id, product_id) "
                "DO UPDATE SET quantity = quantity + excluded.quantity",
                (user_id, product_id, quantity),
            )
            conn.commit()
        logger.info("[sqlite] cart add user_id=%s product_id=%s qty=%d", user_id, product_id, quantity)
        return True

    def _fetch_all(self, sql: str, params: tuple[Any, ...]) -> list[Row]:
        with sqlite3.connect(self.path) as conn:
            conn.row_factory = sqlite3.Row
            rows = conn.execute(sql, params).fetchall()
        return [dict(row) for row in rows]

    def _ensure_schema(self) -> None:
        with sqlite3.connect(self.path) as conn:
            for statement in _SCHEMA:
                conn.execute(statement)
            conn.commit()
