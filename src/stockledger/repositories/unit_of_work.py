from __future__ import annotations

import sqlite3
from typing import Optional, Protocol

from stockledger.domain.models import PaymentStatus, Product, Transaction
from stockledger.repositories.sqlite_repo import (
    PRODUCT_COLUMNS,
    TRANSACTION_COLUMNS,
    row_to_product,
    row_to_transaction,
)


class UnitOfWork(Protocol):
    def __enter__(self) -> "UnitOfWork": ...
    def __exit__(self, exc_type, exc, tb) -> None: ...
    def get_product(self, product_id: int) -> Optional[Product]: ...
    def update_product_valuation(self, product_id: int, stock: int, average_cost: float, expiry_date: Optional[str]) -> None: ...
    def update_product_stock(self, product_id: int, stock: int) -> None: ...
    def insert_transaction(
        self,
        product_id: int,
        movement_type: str,
        quantity: int,
        unit_cost: float,
        cost_at_transaction: float,
        status: str,
        amount_paid: float,
        client_name: Optional[str],
        expiry_date: Optional[str],
        timestamp: str,
    ) -> int: ...
    def get_transaction(self, transaction_id: int) -> Optional[Transaction]: ...
    def update_payment(self, transaction_id: int, amount_paid: float, status: str) -> None: ...


class SqliteUnitOfWork:
    """One SQLite write transaction.

    ``BEGIN IMMEDIATE`` takes the database write lock before the first read, so
    a read-check-write sequence cannot interleave with another writer. Any
    exception inside the block rolls everything back.
    """

    def __init__(self, repo):
        self.repo = repo
        self._conn: sqlite3.Connection | None = None

    def __enter__(self) -> "SqliteUnitOfWork":
        self._conn = self.repo._conn()
        try:
            self._conn.execute("BEGIN IMMEDIATE")
        except Exception:
            self._conn.close()
            self._conn = None
            raise
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        conn = self._conn
        self._conn = None
        if conn is None:
            return None
        try:
            if exc_type is None:
                conn.commit()
            else:
                conn.rollback()
        finally:
            conn.close()
        return None

    @property
    def cursor(self) -> sqlite3.Cursor:
        if self._conn is None:
            raise RuntimeError("Unit of work is not active.")
        return self._conn.cursor()

    def get_product(self, product_id: int) -> Optional[Product]:
        cur = self.cursor
        cur.execute(f"SELECT {PRODUCT_COLUMNS} FROM products WHERE id=?", (int(product_id),))
        r = cur.fetchone()
        return row_to_product(r) if r else None

    def update_product_valuation(self, product_id: int, stock: int, average_cost: float, expiry_date: Optional[str]) -> None:
        self.cursor.execute(
            """
            UPDATE products
            SET current_stock = ?, average_cost = ?, expiry_date = ?
            WHERE id = ?
            """,
            (int(stock), float(average_cost), expiry_date, int(product_id)),
        )

    def update_product_stock(self, product_id: int, stock: int) -> None:
        self.cursor.execute(
            "UPDATE products SET current_stock = ? WHERE id = ?",
            (int(stock), int(product_id)),
        )

    def insert_transaction(
        self,
        product_id: int,
        movement_type: str,
        quantity: int,
        unit_cost: float,
        cost_at_transaction: float,
        status: str,
        amount_paid: float,
        client_name: Optional[str],
        expiry_date: Optional[str],
        timestamp: str,
    ) -> int:
        cur = self.cursor
        cur.execute(
            """
            INSERT INTO transactions (
                product_id, type, quantity, unit_cost, cost_at_transaction,
                status, amount_paid, client_name, expiry_date, timestamp
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                int(product_id),
                movement_type,
                int(quantity),
                float(unit_cost),
                float(cost_at_transaction),
                status,
                float(amount_paid),
                client_name,
                expiry_date,
                timestamp,
            ),
        )
        return int(cur.lastrowid)

    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        cur = self.cursor
        cur.execute(f"SELECT {TRANSACTION_COLUMNS} FROM transactions WHERE id=?", (int(transaction_id),))
        r = cur.fetchone()
        return row_to_transaction(r) if r else None

    def update_payment(self, transaction_id: int, amount_paid: float, status: str) -> None:
        self.cursor.execute(
            "UPDATE transactions SET amount_paid = ?, status = ? WHERE id = ?",
            (float(amount_paid), status, int(transaction_id)),
        )
