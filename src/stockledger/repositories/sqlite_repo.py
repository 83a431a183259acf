from __future__ import annotations

import sqlite3
import shutil
from datetime import datetime
from pathlib import Path
from typing import Optional

from stockledger.domain.models import (
    Account,
    AccountRole,
    MovementType,
    PaymentStatus,
    Product,
    Transaction,
)

PRODUCT_COLUMNS = "id, owner_id, sku, name, min_stock, current_stock, average_cost, sale_price, expiry_date"
TRANSACTION_COLUMNS = (
    "id, product_id, type, quantity, unit_cost, cost_at_transaction, status, amount_paid, "
    "client_name, expiry_date, timestamp"
)


def row_to_product(r) -> Product:
    return Product(
        id=int(r[0]),
        owner_id=int(r[1]),
        sku=str(r[2]),
        name=str(r[3]),
        min_stock=int(r[4]),
        current_stock=int(r[5]),
        average_cost=float(r[6]),
        sale_price=float(r[7]),
        expiry_date=(str(r[8]) if r[8] is not None else None),
    )


def row_to_transaction(r) -> Transaction:
    return Transaction(
        id=int(r[0]),
        product_id=int(r[1]),
        type=MovementType(str(r[2])),
        quantity=int(r[3]),
        unit_cost=float(r[4]),
        cost_at_transaction=float(r[5]),
        status=PaymentStatus(str(r[6])),
        amount_paid=float(r[7]),
        client_name=(str(r[8]) if r[8] is not None else None),
        expiry_date=(str(r[9]) if r[9] is not None else None),
        timestamp=str(r[10]),
    )


def _schema_version(cur: sqlite3.Cursor) -> int:
    # fetchall finishes the statement so no read lock is left behind
    cur.execute("SELECT COALESCE(MAX(version), 0) FROM schema_migrations")
    return int(cur.fetchall()[0][0])


def _prefixed(columns: str, alias: str) -> str:
    return ", ".join(f"{alias}.{c.strip()}" for c in columns.split(","))


class SqliteRepository:
    """Datastore handle shared by every service.

    Connections are opened per call (per unit of work for writes) because
    sqlite3 connections must not cross threads.
    """

    def __init__(self, db_path: Path | str, timeout: float = 30.0):
        self.db_path = str(db_path)
        self.timeout = float(timeout)

    def _conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=self.timeout, isolation_level=None)
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def unit_of_work(self):
        from stockledger.repositories.unit_of_work import SqliteUnitOfWork

        return SqliteUnitOfWork(self)

    def init_db(self) -> None:
        self.run_migrations()

    def _migrations(self):
        return [
            (1, self._migration_v1_base),
            (2, self._migration_v2_reporting_indexes),
        ]

    def run_migrations(self) -> None:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("CREATE TABLE IF NOT EXISTS schema_migrations (version INTEGER PRIMARY KEY, applied_at TEXT NOT NULL)")
        current_version = _schema_version(cur)
        migrations = self._migrations()
        if all(version <= current_version for version, _ in migrations):
            conn.close()
            return

        backup_path = self._create_pre_migration_backup() if current_version > 0 else None
        try:
            cur.execute("BEGIN IMMEDIATE")
            # another process may have migrated while we waited for the lock
            current_version = _schema_version(cur)
            for version, migration in migrations:
                if version <= current_version:
                    continue
                migration(cur)
                cur.execute(
                    "INSERT INTO schema_migrations (version, applied_at) VALUES (?, datetime('now'))",
                    (version,),
                )
            conn.commit()
        except Exception as exc:
            conn.rollback()
            self._restore_pre_migration_backup(backup_path)
            raise RuntimeError(
                "Database migration failed. Original database restored from automatic backup."
            ) from exc
        finally:
            conn.close()

    def _create_pre_migration_backup(self) -> Path | None:
        db_file = Path(self.db_path)
        if not db_file.exists() or db_file.stat().st_size == 0:
            return None
        backup_file = db_file.with_name(f"{db_file.stem}.pre_migration_{datetime.now().strftime('%Y%m%d%H%M%S')}.bak")
        shutil.copy2(db_file, backup_file)
        return backup_file

    def _restore_pre_migration_backup(self, backup_path: Path | None) -> None:
        if backup_path is None or not backup_path.exists():
            return
        shutil.copy2(backup_path, self.db_path)

    def _migration_v1_base(self, cur: sqlite3.Cursor) -> None:
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS accounts (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                role TEXT NOT NULL CHECK(role IN ('manager','collaborator')),
                parent_id INTEGER REFERENCES accounts(id) ON DELETE CASCADE,
                created_at TEXT NOT NULL DEFAULT (datetime('now'))
            )
            """
        )

        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS products (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                owner_id INTEGER NOT NULL,
                sku TEXT NOT NULL,
                name TEXT NOT NULL,
                min_stock INTEGER NOT NULL DEFAULT 5 CHECK(min_stock >= 0),
                current_stock INTEGER NOT NULL DEFAULT 0 CHECK(current_stock >= 0),
                average_cost REAL NOT NULL DEFAULT 0 CHECK(average_cost >= 0),
                sale_price REAL NOT NULL DEFAULT 0 CHECK(sale_price >= 0),
                expiry_date TEXT,
                created_at TEXT NOT NULL DEFAULT (datetime('now')),
                UNIQUE(owner_id, sku)
            )
            """
        )

        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS transactions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                product_id INTEGER NOT NULL,
                type TEXT NOT NULL CHECK(type IN ('ENTRY','EXIT')),
                quantity INTEGER NOT NULL CHECK(quantity > 0),
                unit_cost REAL NOT NULL CHECK(unit_cost >= 0),
                cost_at_transaction REAL NOT NULL CHECK(cost_at_transaction >= 0),
                status TEXT NOT NULL DEFAULT 'PAID' CHECK(status IN ('PAID','PENDING')),
                amount_paid REAL NOT NULL DEFAULT 0 CHECK(amount_paid >= 0),
                client_name TEXT,
                expiry_date TEXT,
                timestamp TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY(product_id) REFERENCES products(id) ON DELETE CASCADE
            )
            """
        )

    def _migration_v2_reporting_indexes(self, cur: sqlite3.Cursor) -> None:
        cur.execute("CREATE INDEX IF NOT EXISTS idx_products_owner ON products(owner_id)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_transactions_product ON transactions(product_id, timestamp)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_transactions_status ON transactions(type, status)")

    def integrity_check(self) -> str:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("PRAGMA integrity_check")
        row = cur.fetchone()
        conn.close()
        return str(row[0]) if row else "unknown"

    # ---------- Accounts ----------
    def add_account(self, name: str, role: str, parent_id: Optional[int]) -> int:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            "INSERT INTO accounts (name, role, parent_id) VALUES (?, ?, ?)",
            (name, role, parent_id),
        )
        aid = int(cur.lastrowid)
        conn.close()
        return aid

    def get_account(self, account_id: int) -> Optional[Account]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("SELECT id, name, role, parent_id FROM accounts WHERE id=?", (int(account_id),))
        r = cur.fetchone()
        conn.close()
        if not r:
            return None
        return Account(
            id=int(r[0]),
            name=str(r[1]),
            role=AccountRole(str(r[2])),
            parent_id=(int(r[3]) if r[3] is not None else None),
        )

    # ---------- Products ----------
    def add_product(self, owner_id: int, sku: str, name: str, min_stock: int, sale_price: float) -> int:
        conn = self._conn()
        cur = conn.cursor()
        try:
            cur.execute(
                """
                INSERT INTO products (owner_id, sku, name, min_stock, sale_price)
                VALUES (?, ?, ?, ?, ?)
                """,
                (int(owner_id), sku, name, int(min_stock), float(sale_price)),
            )
            return int(cur.lastrowid)
        finally:
            conn.close()

    def get_product_by_id(self, product_id: int) -> Optional[Product]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(f"SELECT {PRODUCT_COLUMNS} FROM products WHERE id=?", (int(product_id),))
        r = cur.fetchone()
        conn.close()
        return row_to_product(r) if r else None

    def get_product_by_sku(self, owner_id: int, sku: str) -> Optional[Product]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            f"SELECT {PRODUCT_COLUMNS} FROM products WHERE owner_id=? AND sku=?",
            (int(owner_id), sku),
        )
        r = cur.fetchone()
        conn.close()
        return row_to_product(r) if r else None

    def list_products(self, owner_id: int) -> list[Product]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            f"SELECT {PRODUCT_COLUMNS} FROM products WHERE owner_id=? ORDER BY name, id",
            (int(owner_id),),
        )
        rows = cur.fetchall()
        conn.close()
        return [row_to_product(r) for r in rows]

    def list_low_stock(self, owner_id: int) -> list[Product]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            f"""
            SELECT {PRODUCT_COLUMNS}
            FROM products
            WHERE owner_id=? AND current_stock <= min_stock
            ORDER BY (current_stock - min_stock) ASC, name ASC
            """,
            (int(owner_id),),
        )
        rows = cur.fetchall()
        conn.close()
        return [row_to_product(r) for r in rows]

    def update_sale_price(self, product_id: int, sale_price: float) -> bool:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("UPDATE products SET sale_price=? WHERE id=?", (float(sale_price), int(product_id)))
        changed = cur.rowcount > 0
        conn.close()
        return bool(changed)

    def update_min_stock(self, product_id: int, min_stock: int) -> bool:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("UPDATE products SET min_stock=? WHERE id=?", (int(min_stock), int(product_id)))
        changed = cur.rowcount > 0
        conn.close()
        return bool(changed)

    def delete_product(self, product_id: int) -> bool:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("DELETE FROM products WHERE id=?", (int(product_id),))
        changed = cur.rowcount > 0
        conn.close()
        return bool(changed)

    # ---------- Transactions ----------
    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(f"SELECT {TRANSACTION_COLUMNS} FROM transactions WHERE id=?", (int(transaction_id),))
        r = cur.fetchone()
        conn.close()
        return row_to_transaction(r) if r else None

    def list_transactions_for_product(self, product_id: int) -> list[Transaction]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            f"""
            SELECT {TRANSACTION_COLUMNS}
            FROM transactions
            WHERE product_id=?
            ORDER BY timestamp DESC, id DESC
            """,
            (int(product_id),),
        )
        rows = cur.fetchall()
        conn.close()
        return [row_to_transaction(r) for r in rows]

    def count_transactions(self, product_id: int) -> int:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("SELECT COUNT(*) FROM transactions WHERE product_id=?", (int(product_id),))
        n = int(cur.fetchone()[0])
        conn.close()
        return n

    def list_pending_exits(self, owner_id: int) -> list[tuple[Transaction, str, str]]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            f"""
            SELECT {_prefixed(TRANSACTION_COLUMNS, 't')}, p.name, p.sku
            FROM transactions t
            JOIN products p ON p.id = t.product_id
            WHERE p.owner_id = ? AND t.type = 'EXIT' AND t.status = 'PENDING'
            ORDER BY t.timestamp DESC, t.id DESC
            """,
            (int(owner_id),),
        )
        rows = cur.fetchall()
        conn.close()
        return [(row_to_transaction(r[:11]), str(r[11]), str(r[12])) for r in rows]

    def list_exit_rows(
        self,
        owner_id: int,
        start_iso: Optional[str] = None,
        end_iso: Optional[str] = None,
    ) -> list[tuple]:
        """
        Rows: (product_id, name, sku, quantity, unit_cost, cost_at_transaction,
               status, amount_paid, timestamp), oldest first.
        """
        clauses = ["p.owner_id = ?", "t.type = 'EXIT'"]
        params: list = [int(owner_id)]
        if start_iso is not None:
            clauses.append("t.timestamp >= ?")
            params.append(start_iso)
        if end_iso is not None:
            clauses.append("t.timestamp <= ?")
            params.append(end_iso)

        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            f"""
            SELECT p.id, p.name, p.sku, t.quantity, t.unit_cost, t.cost_at_transaction,
                   t.status, t.amount_paid, t.timestamp
            FROM transactions t
            JOIN products p ON p.id = t.product_id
            WHERE {' AND '.join(clauses)}
            ORDER BY t.timestamp ASC, t.id ASC
            """,
            params,
        )
        rows = cur.fetchall()
        conn.close()
        return rows

    def sales_summary(self, owner_id: int) -> tuple[float, int, float, float]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            """
            SELECT COALESCE(SUM(CASE WHEN t.type='EXIT' THEN t.unit_cost * t.quantity END), 0),
                   COALESCE(SUM(CASE WHEN t.type='EXIT' THEN t.quantity END), 0),
                   COALESCE(SUM(CASE WHEN t.type='EXIT' THEN t.amount_paid END), 0),
                   COALESCE(SUM(CASE WHEN t.type='ENTRY' THEN t.unit_cost * t.quantity END), 0)
            FROM transactions t
            JOIN products p ON p.id = t.product_id
            WHERE p.owner_id = ?
            """,
            (int(owner_id),),
        )
        revenue, units, collected, spent = cur.fetchone()
        conn.close()
        return float(revenue), int(units), float(collected), float(spent)
