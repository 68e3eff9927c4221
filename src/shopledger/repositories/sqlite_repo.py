from __future__ import annotations

import json
import shutil
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Optional

from shopledger.domain.models import (
    Customer,
    Invoice,
    InvoiceItem,
    LedgerEntry,
    Payment,
    PaymentReminder,
    Product,
    StockMovement,
    Vendor,
    VendorLedgerEntry,
    VendorPayment,
    normalize_timestamp,
)

PROFILE_KEY = "inventory_user"

PRODUCT_COLUMNS = (
    "id, name, sku, purchase_price, sale_price, stock_quantity, low_stock_threshold, "
    "created_at, vendor_id, vendor_name"
)
MOVEMENT_COLUMNS = "id, product_id, type, quantity, date, reason, reference_id"
CUSTOMER_COLUMNS = "id, name, phone, address, total_outstanding"
LEDGER_COLUMNS = "id, customer_id, date, ref_id, type, description, debit, credit, balance"
VENDOR_COLUMNS = "id, name, contact_person, phone, email, address, total_balance"
VENDOR_LEDGER_COLUMNS = "id, vendor_id, date, ref_id, type, description, debit, credit, balance"
INVOICE_COLUMNS = (
    "id, invoice_number, customer_id, customer_name, date, subtotal, tax, discount, total, "
    "paid_amount, payment_type, notes"
)
INVOICE_ITEM_COLUMNS = "product_id, product_name, quantity, purchase_price, sale_price, total"
REMINDER_COLUMNS = "id, customer_id, scheduled_date, message, status, created_at"


# ---------- Row mapping ----------
def product_from_row(r, movements: tuple[StockMovement, ...] = ()) -> Product:
    return Product(
        id=int(r[0]),
        name=str(r[1]),
        sku=str(r[2]),
        purchase_price=float(r[3]),
        sale_price=float(r[4]),
        stock_quantity=int(r[5]),
        low_stock_threshold=int(r[6]),
        created_at=str(r[7]),
        vendor_id=(int(r[8]) if r[8] is not None else None),
        vendor_name=(str(r[9]) if r[9] is not None else None),
        movements=movements,
    )


def movement_from_row(r) -> StockMovement:
    return StockMovement(
        id=int(r[0]),
        product_id=int(r[1]),
        type=str(r[2]),
        quantity=int(r[3]),
        date=str(r[4]),
        reason=str(r[5]),
        reference_id=(int(r[6]) if r[6] is not None else None),
    )


def customer_from_row(r) -> Customer:
    return Customer(id=int(r[0]), name=str(r[1]), phone=str(r[2]), address=str(r[3]), total_outstanding=float(r[4]))


def ledger_from_row(r) -> LedgerEntry:
    return LedgerEntry(
        id=int(r[0]),
        customer_id=int(r[1]),
        date=str(r[2]),
        ref_id=(int(r[3]) if r[3] is not None else None),
        type=str(r[4]),
        description=str(r[5]),
        debit=float(r[6]),
        credit=float(r[7]),
        balance=float(r[8]),
    )


def vendor_from_row(r) -> Vendor:
    return Vendor(
        id=int(r[0]),
        name=str(r[1]),
        contact_person=str(r[2]),
        phone=str(r[3]),
        email=str(r[4]),
        address=str(r[5]),
        total_balance=float(r[6]),
    )


def vendor_ledger_from_row(r) -> VendorLedgerEntry:
    return VendorLedgerEntry(
        id=int(r[0]),
        vendor_id=int(r[1]),
        date=str(r[2]),
        ref_id=(int(r[3]) if r[3] is not None else None),
        type=str(r[4]),
        description=str(r[5]),
        debit=float(r[6]),
        credit=float(r[7]),
        balance=float(r[8]),
    )


def invoice_from_row(r, items: tuple[InvoiceItem, ...]) -> Invoice:
    return Invoice(
        id=int(r[0]),
        invoice_number=str(r[1]),
        customer_id=int(r[2]),
        customer_name=str(r[3]),
        date=str(r[4]),
        items=items,
        subtotal=float(r[5]),
        tax=float(r[6]),
        discount=float(r[7]),
        total=float(r[8]),
        paid_amount=float(r[9]),
        payment_type=str(r[10]),
        notes=(r[11] if r[11] is not None else None),
    )


def invoice_item_from_row(r) -> InvoiceItem:
    return InvoiceItem(
        product_id=int(r[0]),
        product_name=str(r[1]),
        quantity=int(r[2]),
        purchase_price=float(r[3]),
        sale_price=float(r[4]),
        total=float(r[5]),
    )


def reminder_from_row(r) -> PaymentReminder:
    return PaymentReminder(
        id=int(r[0]),
        customer_id=int(r[1]),
        scheduled_date=str(r[2]),
        message=str(r[3]),
        status=str(r[4]),
        created_at=str(r[5]),
    )


# ---------- Cursor-level lookups (shared with the unit of work) ----------
def fetch_product(cur: sqlite3.Cursor, product_id: int) -> Optional[Product]:
    cur.execute(f"SELECT {PRODUCT_COLUMNS} FROM products WHERE id=?", (int(product_id),))
    r = cur.fetchone()
    return product_from_row(r) if r else None


def fetch_customer(cur: sqlite3.Cursor, customer_id: int) -> Optional[Customer]:
    cur.execute(f"SELECT {CUSTOMER_COLUMNS} FROM customers WHERE id=?", (int(customer_id),))
    r = cur.fetchone()
    return customer_from_row(r) if r else None


def fetch_vendor(cur: sqlite3.Cursor, vendor_id: int) -> Optional[Vendor]:
    cur.execute(f"SELECT {VENDOR_COLUMNS} FROM vendors WHERE id=?", (int(vendor_id),))
    r = cur.fetchone()
    return vendor_from_row(r) if r else None


def fetch_profile(cur: sqlite3.Cursor) -> Optional[dict]:
    cur.execute("SELECT value FROM kv_store WHERE key=?", (PROFILE_KEY,))
    r = cur.fetchone()
    return json.loads(r[0]) if r else None


def fetch_highest_sequence(cur: sqlite3.Cursor, prefix: str) -> int:
    """Largest numeric suffix among invoice numbers issued as "<prefix>-<n>", or 0."""
    head = f"{prefix}-"
    cur.execute("SELECT invoice_number FROM invoices WHERE substr(invoice_number, 1, ?) = ?", (len(head), head))
    highest = 0
    for (number,) in cur.fetchall():
        tail = str(number)[len(head):]
        if tail.isascii() and tail.isdigit():
            highest = max(highest, int(tail))
    return highest


class SqliteRepository:
    def __init__(self, db_path: Path | str, busy_timeout: float = 30.0):
        self.db_path = str(db_path)
        self.busy_timeout = float(busy_timeout)

    def _conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=self.busy_timeout)
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def init_db(self) -> None:
        self.run_migrations()

    def run_migrations(self) -> None:
        migrations = [
            (1, self._migration_v1_base),
            (2, self._migration_v2_ledger_indexes),
        ]
        conn = self._conn()
        backup_path = None
        try:
            cur = conn.cursor()
            cur.execute("BEGIN")
            cur.execute("CREATE TABLE IF NOT EXISTS schema_migrations (version INTEGER PRIMARY KEY, applied_at TEXT NOT NULL)")
            cur.execute("SELECT COALESCE(MAX(version), 0) FROM schema_migrations")
            current_version = int(cur.fetchone()[0])

            pending = [(version, migration) for version, migration in migrations if version > current_version]
            if pending:
                # copy is taken before any pending DDL touches the file
                backup_path = self._create_pre_migration_backup()

            for version, migration in pending:
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
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
            """
        )

        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS vendors (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                contact_person TEXT NOT NULL DEFAULT '',
                phone TEXT NOT NULL DEFAULT '',
                email TEXT NOT NULL DEFAULT '',
                address TEXT NOT NULL DEFAULT '',
                total_balance REAL NOT NULL DEFAULT 0
            )
            """
        )

        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS vendor_ledger_entries (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                vendor_id INTEGER NOT NULL,
                date TEXT NOT NULL,
                ref_id INTEGER,
                type TEXT NOT NULL CHECK(type IN ('purchase','payment')),
                description TEXT NOT NULL,
                debit REAL NOT NULL DEFAULT 0 CHECK(debit >= 0),
                credit REAL NOT NULL DEFAULT 0 CHECK(credit >= 0),
                balance REAL NOT NULL,
                FOREIGN KEY(vendor_id) REFERENCES vendors(id) ON DELETE CASCADE
            )
            """
        )

        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS vendor_payments (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                vendor_id INTEGER NOT NULL,
                date TEXT NOT NULL,
                amount REAL NOT NULL CHECK(amount > 0),
                method TEXT NOT NULL,
                note TEXT,
                FOREIGN KEY(vendor_id) REFERENCES vendors(id) ON DELETE CASCADE
            )
            """
        )

        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS products (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                sku TEXT NOT NULL,
                purchase_price REAL NOT NULL CHECK(purchase_price >= 0),
                sale_price REAL NOT NULL CHECK(sale_price >= 0),
                stock_quantity INTEGER NOT NULL DEFAULT 0 CHECK(stock_quantity >= 0),
                low_stock_threshold INTEGER NOT NULL DEFAULT 0 CHECK(low_stock_threshold >= 0),
                created_at TEXT NOT NULL,
                vendor_id INTEGER,
                vendor_name TEXT,
                FOREIGN KEY(vendor_id) REFERENCES vendors(id) ON DELETE SET NULL
            )
            """
        )

        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS stock_movements (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                product_id INTEGER NOT NULL,
                type TEXT NOT NULL CHECK(type IN ('in','out')),
                quantity INTEGER NOT NULL CHECK(quantity >= 0),
                date TEXT NOT NULL,
                reason TEXT NOT NULL,
                reference_id INTEGER,
                FOREIGN KEY(product_id) REFERENCES products(id) ON DELETE CASCADE
            )
            """
        )

        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS customers (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                phone TEXT NOT NULL DEFAULT '',
                address TEXT NOT NULL DEFAULT '',
                total_outstanding REAL NOT NULL DEFAULT 0
            )
            """
        )

        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS ledger_entries (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                customer_id INTEGER NOT NULL,
                date TEXT NOT NULL,
                ref_id INTEGER,
                type TEXT NOT NULL CHECK(type IN ('invoice','payment','opening')),
                description TEXT NOT NULL,
                debit REAL NOT NULL DEFAULT 0 CHECK(debit >= 0),
                credit REAL NOT NULL DEFAULT 0 CHECK(credit >= 0),
                balance REAL NOT NULL,
                FOREIGN KEY(customer_id) REFERENCES customers(id)
            )
            """
        )

        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS payments (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                customer_id INTEGER NOT NULL,
                date TEXT NOT NULL,
                amount REAL NOT NULL CHECK(amount > 0),
                method TEXT NOT NULL,
                note TEXT,
                FOREIGN KEY(customer_id) REFERENCES customers(id)
            )
            """
        )

        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS payment_reminders (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                customer_id INTEGER NOT NULL,
                scheduled_date TEXT NOT NULL,
                message TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'pending' CHECK(status IN ('pending','sent')),
                created_at TEXT NOT NULL,
                FOREIGN KEY(customer_id) REFERENCES customers(id) ON DELETE CASCADE
            )
            """
        )

        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS invoices (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                invoice_number TEXT NOT NULL UNIQUE,
                customer_id INTEGER NOT NULL,
                customer_name TEXT NOT NULL,
                date TEXT NOT NULL,
                subtotal REAL NOT NULL CHECK(subtotal >= 0),
                tax REAL NOT NULL DEFAULT 0,
                discount REAL NOT NULL DEFAULT 0 CHECK(discount >= 0),
                total REAL NOT NULL CHECK(total >= 0),
                paid_amount REAL NOT NULL DEFAULT 0 CHECK(paid_amount >= 0),
                payment_type TEXT NOT NULL CHECK(payment_type IN ('cash','credit')),
                notes TEXT,
                FOREIGN KEY(customer_id) REFERENCES customers(id)
            )
            """
        )

        # product_id carries no foreign key: invoices outlive deleted products.
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS invoice_items (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                invoice_id INTEGER NOT NULL,
                line_no INTEGER NOT NULL,
                product_id INTEGER NOT NULL,
                product_name TEXT NOT NULL,
                quantity INTEGER NOT NULL CHECK(quantity > 0),
                purchase_price REAL NOT NULL CHECK(purchase_price >= 0),
                sale_price REAL NOT NULL CHECK(sale_price >= 0),
                total REAL NOT NULL,
                FOREIGN KEY(invoice_id) REFERENCES invoices(id) ON DELETE CASCADE,
                UNIQUE(invoice_id, line_no)
            )
            """
        )

    def _migration_v2_ledger_indexes(self, cur: sqlite3.Cursor) -> None:
        cur.execute("CREATE INDEX IF NOT EXISTS idx_movements_product ON stock_movements(product_id, id)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_ledger_customer ON ledger_entries(customer_id, id)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_vendor_ledger_vendor ON vendor_ledger_entries(vendor_id, id)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_invoices_customer ON invoices(customer_id, date)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_invoices_date ON invoices(date)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_products_sku ON products(sku)")

    def schema_version(self) -> int:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("SELECT COALESCE(MAX(version), 0) FROM schema_migrations")
        version = int(cur.fetchone()[0])
        conn.close()
        return version

    def is_empty(self) -> bool:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            "SELECT (SELECT COUNT(*) FROM products) + (SELECT COUNT(*) FROM customers) + (SELECT COUNT(*) FROM vendors)"
        )
        total = int(cur.fetchone()[0])
        conn.close()
        return total == 0

    # ---------- Profile ----------
    def load_profile(self) -> Optional[dict]:
        conn = self._conn()
        cur = conn.cursor()
        data = fetch_profile(cur)
        conn.close()
        return data

    def delete_profile(self) -> None:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("DELETE FROM kv_store WHERE key=?", (PROFILE_KEY,))
        conn.commit()
        conn.close()

    # ---------- Products ----------
    def _movements_by_product(self, cur: sqlite3.Cursor, product_id: int | None = None) -> dict[int, list[StockMovement]]:
        if product_id is None:
            cur.execute(f"SELECT {MOVEMENT_COLUMNS} FROM stock_movements ORDER BY id")
        else:
            cur.execute(
                f"SELECT {MOVEMENT_COLUMNS} FROM stock_movements WHERE product_id=? ORDER BY id",
                (int(product_id),),
            )
        grouped: dict[int, list[StockMovement]] = {}
        for r in cur.fetchall():
            m = movement_from_row(r)
            grouped.setdefault(m.product_id, []).append(m)
        return grouped

    def get_product(self, product_id: int) -> Optional[Product]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(f"SELECT {PRODUCT_COLUMNS} FROM products WHERE id=?", (int(product_id),))
        r = cur.fetchone()
        if not r:
            conn.close()
            return None
        movements = self._movements_by_product(cur, int(product_id)).get(int(product_id), [])
        conn.close()
        return product_from_row(r, tuple(movements))

    def list_products(self) -> list[Product]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(f"SELECT {PRODUCT_COLUMNS} FROM products ORDER BY name, id")
        rows = cur.fetchall()
        movements = self._movements_by_product(cur)
        conn.close()
        return [product_from_row(r, tuple(movements.get(int(r[0]), []))) for r in rows]

    def find_products_by_sku(self, sku: str) -> list[Product]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(f"SELECT {PRODUCT_COLUMNS} FROM products WHERE sku=? ORDER BY id", (sku,))
        rows = cur.fetchall()
        conn.close()
        return [product_from_row(r) for r in rows]

    def movements_for(self, product_id: int) -> list[StockMovement]:
        conn = self._conn()
        cur = conn.cursor()
        movements = self._movements_by_product(cur, int(product_id)).get(int(product_id), [])
        conn.close()
        return movements

    def list_low_stock(self) -> list[Product]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            f"""
            SELECT {PRODUCT_COLUMNS}
            FROM products
            WHERE stock_quantity <= low_stock_threshold
            ORDER BY (stock_quantity - low_stock_threshold) ASC, name ASC
            """
        )
        rows = cur.fetchall()
        conn.close()
        return [product_from_row(r) for r in rows]

    def inventory_value(self) -> float:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("SELECT COALESCE(SUM(purchase_price * stock_quantity), 0) FROM products")
        value = float(cur.fetchone()[0])
        conn.close()
        return value

    # ---------- Customers ----------
    def get_customer(self, customer_id: int) -> Optional[Customer]:
        conn = self._conn()
        customer = fetch_customer(conn.cursor(), customer_id)
        conn.close()
        return customer

    def list_customers(self) -> list[Customer]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(f"SELECT {CUSTOMER_COLUMNS} FROM customers ORDER BY name, id")
        rows = cur.fetchall()
        conn.close()
        return [customer_from_row(r) for r in rows]

    def ledger_for_customer(self, customer_id: int) -> list[LedgerEntry]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            f"SELECT {LEDGER_COLUMNS} FROM ledger_entries WHERE customer_id=? ORDER BY id",
            (int(customer_id),),
        )
        rows = cur.fetchall()
        conn.close()
        return [ledger_from_row(r) for r in rows]

    def payments_for_customer(self, customer_id: int) -> list[Payment]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            "SELECT id, customer_id, date, amount, method, note FROM payments WHERE customer_id=? ORDER BY id",
            (int(customer_id),),
        )
        rows = cur.fetchall()
        conn.close()
        return [
            Payment(id=int(r[0]), customer_id=int(r[1]), date=str(r[2]), amount=float(r[3]), method=str(r[4]), note=r[5])
            for r in rows
        ]

    def total_outstanding(self) -> float:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("SELECT COALESCE(SUM(total_outstanding), 0) FROM customers")
        total = float(cur.fetchone()[0])
        conn.close()
        return total

    def get_reminder(self, reminder_id: int) -> Optional[PaymentReminder]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(f"SELECT {REMINDER_COLUMNS} FROM payment_reminders WHERE id=?", (int(reminder_id),))
        r = cur.fetchone()
        conn.close()
        return reminder_from_row(r) if r else None

    def reminders_for_customer(self, customer_id: int) -> list[PaymentReminder]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            f"""
            SELECT {REMINDER_COLUMNS}
            FROM payment_reminders
            WHERE customer_id=?
            ORDER BY scheduled_date DESC, id DESC
            """,
            (int(customer_id),),
        )
        rows = cur.fetchall()
        conn.close()
        return [reminder_from_row(r) for r in rows]

    # ---------- Vendors ----------
    def get_vendor(self, vendor_id: int) -> Optional[Vendor]:
        conn = self._conn()
        vendor = fetch_vendor(conn.cursor(), vendor_id)
        conn.close()
        return vendor

    def list_vendors(self) -> list[Vendor]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(f"SELECT {VENDOR_COLUMNS} FROM vendors ORDER BY name, id")
        rows = cur.fetchall()
        conn.close()
        return [vendor_from_row(r) for r in rows]

    def ledger_for_vendor(self, vendor_id: int) -> list[VendorLedgerEntry]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            f"SELECT {VENDOR_LEDGER_COLUMNS} FROM vendor_ledger_entries WHERE vendor_id=? ORDER BY id",
            (int(vendor_id),),
        )
        rows = cur.fetchall()
        conn.close()
        return [vendor_ledger_from_row(r) for r in rows]

    def payments_for_vendor(self, vendor_id: int) -> list[VendorPayment]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            "SELECT id, vendor_id, date, amount, method, note FROM vendor_payments WHERE vendor_id=? ORDER BY id",
            (int(vendor_id),),
        )
        rows = cur.fetchall()
        conn.close()
        return [
            VendorPayment(id=int(r[0]), vendor_id=int(r[1]), date=str(r[2]), amount=float(r[3]), method=str(r[4]), note=r[5])
            for r in rows
        ]

    def total_payables(self) -> float:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("SELECT COALESCE(SUM(total_balance), 0) FROM vendors")
        total = float(cur.fetchone()[0])
        conn.close()
        return total

    # ---------- Invoices ----------
    def _items_for(self, cur: sqlite3.Cursor, invoice_id: int) -> tuple[InvoiceItem, ...]:
        cur.execute(
            f"SELECT {INVOICE_ITEM_COLUMNS} FROM invoice_items WHERE invoice_id=? ORDER BY line_no",
            (int(invoice_id),),
        )
        return tuple(invoice_item_from_row(r) for r in cur.fetchall())

    def get_invoice(self, invoice_id: int) -> Optional[Invoice]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(f"SELECT {INVOICE_COLUMNS} FROM invoices WHERE id=?", (int(invoice_id),))
        r = cur.fetchone()
        if not r:
            conn.close()
            return None
        invoice = invoice_from_row(r, self._items_for(cur, int(r[0])))
        conn.close()
        return invoice

    def list_invoices(
        self,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        customer_id: Optional[int] = None,
        payment_type: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[Invoice]:
        clauses: list[str] = []
        params: list[object] = []
        if date_from:
            clauses.append("date >= ?")
            params.append(normalize_timestamp(date_from))
        if date_to:
            bound = normalize_timestamp(date_to)
            # a bare day includes everything issued on it
            if len(str(date_to).strip()) == 10:
                bound = f"{bound[:10]} 23:59:59"
            clauses.append("date <= ?")
            params.append(bound)
        if customer_id is not None:
            clauses.append("customer_id = ?")
            params.append(int(customer_id))
        if payment_type:
            clauses.append("payment_type = ?")
            params.append(payment_type)

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        sql = f"SELECT {INVOICE_COLUMNS} FROM invoices {where} ORDER BY date DESC, id DESC"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(int(limit))

        conn = self._conn()
        cur = conn.cursor()
        cur.execute(sql, params)
        rows = list(reversed(cur.fetchall()))
        invoices = [invoice_from_row(r, self._items_for(cur, int(r[0]))) for r in rows]
        conn.close()
        return invoices

    def highest_invoice_sequence(self, prefix: str) -> int:
        conn = self._conn()
        sequence = fetch_highest_sequence(conn.cursor(), prefix)
        conn.close()
        return sequence
