from __future__ import annotations

import json
import logging
import sqlite3
from typing import Optional

from shopledger.domain.errors import AppError, CommitError
from shopledger.domain.models import Customer, InvoiceItem, Product, Vendor
from shopledger.repositories.sqlite_repo import (
    PROFILE_KEY,
    SqliteRepository,
    fetch_customer,
    fetch_highest_sequence,
    fetch_product,
    fetch_profile,
    fetch_vendor,
)

log = logging.getLogger(__name__)


class SqliteUnitOfWork:
    """One SQLite transaction for a write use-case.

    ``BEGIN IMMEDIATE`` takes the database write lock before the first read,
    so two commits can never both act on the same stale stock or balance.
    Everything done through the unit of work is committed together on a clean
    exit and rolled back together on any exception.
    """

    def __init__(self, repo: SqliteRepository):
        self.repo = repo
        self.conn: sqlite3.Connection | None = None
        self.cur: sqlite3.Cursor | None = None

    def __enter__(self) -> "SqliteUnitOfWork":
        self.conn = self.repo._conn()
        self.conn.isolation_level = None
        self.cur = self.conn.cursor()
        self.cur.execute("BEGIN IMMEDIATE")
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if exc_type is None:
                try:
                    self.cur.execute("COMMIT")
                    return None
                except sqlite3.Error as commit_exc:
                    exc = commit_exc
                    if self.conn.in_transaction:
                        self.cur.execute("ROLLBACK")
            else:
                self.cur.execute("ROLLBACK")
        finally:
            self.conn.close()
            self.conn = None
            self.cur = None

        if isinstance(exc, AppError):
            return None
        log.error("unit_of_work_rolled_back error=%s", exc)
        raise CommitError(f"Transaction rolled back: {exc}") from exc

    # ---------- Profile ----------
    def load_profile(self) -> Optional[dict]:
        return fetch_profile(self.cur)

    def save_profile(self, data: dict) -> None:
        self.cur.execute(
            """
            INSERT INTO kv_store (key, value) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET value=excluded.value
            """,
            (PROFILE_KEY, json.dumps(data, ensure_ascii=False)),
        )

    # ---------- Products ----------
    def get_product(self, product_id: int) -> Optional[Product]:
        return fetch_product(self.cur, product_id)

    def insert_product(
        self,
        name: str,
        sku: str,
        purchase_price: float,
        sale_price: float,
        stock_quantity: int,
        low_stock_threshold: int,
        created_at: str,
        vendor_id: Optional[int],
        vendor_name: Optional[str],
    ) -> int:
        self.cur.execute(
            """
            INSERT INTO products (
                name, sku, purchase_price, sale_price, stock_quantity, low_stock_threshold,
                created_at, vendor_id, vendor_name
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                name,
                sku,
                float(purchase_price),
                float(sale_price),
                int(stock_quantity),
                int(low_stock_threshold),
                created_at,
                vendor_id,
                vendor_name,
            ),
        )
        return int(self.cur.lastrowid)

    def update_product(self, product: Product) -> None:
        self.cur.execute(
            """
            UPDATE products
            SET name=?, sku=?, purchase_price=?, sale_price=?, stock_quantity=?,
                low_stock_threshold=?, vendor_id=?, vendor_name=?
            WHERE id=?
            """,
            (
                product.name,
                product.sku,
                float(product.purchase_price),
                float(product.sale_price),
                int(product.stock_quantity),
                int(product.low_stock_threshold),
                product.vendor_id,
                product.vendor_name,
                int(product.id),
            ),
        )

    def set_stock(self, product_id: int, stock_quantity: int) -> None:
        self.cur.execute("UPDATE products SET stock_quantity=? WHERE id=?", (int(stock_quantity), int(product_id)))

    def append_movement(
        self,
        product_id: int,
        movement_type: str,
        quantity: int,
        date: str,
        reason: str,
        reference_id: Optional[int] = None,
    ) -> int:
        self.cur.execute(
            """
            INSERT INTO stock_movements (product_id, type, quantity, date, reason, reference_id)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (int(product_id), movement_type, int(quantity), date, reason, reference_id),
        )
        return int(self.cur.lastrowid)

    def delete_product(self, product_id: int) -> bool:
        self.cur.execute("DELETE FROM products WHERE id=?", (int(product_id),))
        return self.cur.rowcount > 0

    # ---------- Customers ----------
    def get_customer(self, customer_id: int) -> Optional[Customer]:
        return fetch_customer(self.cur, customer_id)

    def insert_customer(self, name: str, phone: str, address: str) -> int:
        self.cur.execute(
            "INSERT INTO customers (name, phone, address, total_outstanding) VALUES (?, ?, ?, 0)",
            (name, phone, address),
        )
        return int(self.cur.lastrowid)

    def set_customer_outstanding(self, customer_id: int, total_outstanding: float) -> None:
        self.cur.execute(
            "UPDATE customers SET total_outstanding=? WHERE id=?",
            (float(total_outstanding), int(customer_id)),
        )

    def append_ledger_entry(
        self,
        customer_id: int,
        date: str,
        ref_id: Optional[int],
        entry_type: str,
        description: str,
        debit: float,
        credit: float,
        balance: float,
    ) -> int:
        self.cur.execute(
            """
            INSERT INTO ledger_entries (customer_id, date, ref_id, type, description, debit, credit, balance)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (int(customer_id), date, ref_id, entry_type, description, float(debit), float(credit), float(balance)),
        )
        return int(self.cur.lastrowid)

    def insert_payment(self, customer_id: int, date: str, amount: float, method: str, note: Optional[str]) -> int:
        self.cur.execute(
            "INSERT INTO payments (customer_id, date, amount, method, note) VALUES (?, ?, ?, ?, ?)",
            (int(customer_id), date, float(amount), method, note),
        )
        return int(self.cur.lastrowid)

    def insert_reminder(self, customer_id: int, scheduled_date: str, message: str, created_at: str) -> int:
        self.cur.execute(
            """
            INSERT INTO payment_reminders (customer_id, scheduled_date, message, status, created_at)
            VALUES (?, ?, ?, 'pending', ?)
            """,
            (int(customer_id), scheduled_date, message, created_at),
        )
        return int(self.cur.lastrowid)

    def set_reminder_status(self, reminder_id: int, status: str) -> bool:
        self.cur.execute("UPDATE payment_reminders SET status=? WHERE id=?", (status, int(reminder_id)))
        return self.cur.rowcount > 0

    def delete_reminder(self, reminder_id: int) -> bool:
        self.cur.execute("DELETE FROM payment_reminders WHERE id=?", (int(reminder_id),))
        return self.cur.rowcount > 0

    # ---------- Vendors ----------
    def get_vendor(self, vendor_id: int) -> Optional[Vendor]:
        return fetch_vendor(self.cur, vendor_id)

    def insert_vendor(self, name: str, contact_person: str, phone: str, email: str, address: str) -> int:
        self.cur.execute(
            """
            INSERT INTO vendors (name, contact_person, phone, email, address, total_balance)
            VALUES (?, ?, ?, ?, ?, 0)
            """,
            (name, contact_person, phone, email, address),
        )
        return int(self.cur.lastrowid)

    def update_vendor_contact(self, vendor: Vendor) -> None:
        self.cur.execute(
            "UPDATE vendors SET name=?, contact_person=?, phone=?, email=?, address=? WHERE id=?",
            (vendor.name, vendor.contact_person, vendor.phone, vendor.email, vendor.address, int(vendor.id)),
        )

    def delete_vendor(self, vendor_id: int) -> bool:
        self.cur.execute("DELETE FROM vendors WHERE id=?", (int(vendor_id),))
        return self.cur.rowcount > 0

    def set_vendor_balance(self, vendor_id: int, total_balance: float) -> None:
        self.cur.execute("UPDATE vendors SET total_balance=? WHERE id=?", (float(total_balance), int(vendor_id)))

    def append_vendor_entry(
        self,
        vendor_id: int,
        date: str,
        ref_id: Optional[int],
        entry_type: str,
        description: str,
        debit: float,
        credit: float,
        balance: float,
    ) -> int:
        self.cur.execute(
            """
            INSERT INTO vendor_ledger_entries (vendor_id, date, ref_id, type, description, debit, credit, balance)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (int(vendor_id), date, ref_id, entry_type, description, float(debit), float(credit), float(balance)),
        )
        return int(self.cur.lastrowid)

    def insert_vendor_payment(self, vendor_id: int, date: str, amount: float, method: str, note: Optional[str]) -> int:
        self.cur.execute(
            "INSERT INTO vendor_payments (vendor_id, date, amount, method, note) VALUES (?, ?, ?, ?, ?)",
            (int(vendor_id), date, float(amount), method, note),
        )
        return int(self.cur.lastrowid)

    # ---------- Invoices ----------
    def invoice_number_exists(self, invoice_number: str) -> bool:
        self.cur.execute("SELECT 1 FROM invoices WHERE invoice_number=?", (invoice_number,))
        return self.cur.fetchone() is not None

    def highest_invoice_sequence(self, prefix: str) -> int:
        return fetch_highest_sequence(self.cur, prefix)

    def insert_invoice(
        self,
        invoice_number: str,
        customer_id: int,
        customer_name: str,
        date: str,
        subtotal: float,
        tax: float,
        discount: float,
        total: float,
        paid_amount: float,
        payment_type: str,
        notes: Optional[str],
    ) -> int:
        self.cur.execute(
            """
            INSERT INTO invoices (
                invoice_number, customer_id, customer_name, date, subtotal, tax, discount,
                total, paid_amount, payment_type, notes
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                invoice_number,
                int(customer_id),
                customer_name,
                date,
                float(subtotal),
                float(tax),
                float(discount),
                float(total),
                float(paid_amount),
                payment_type,
                notes,
            ),
        )
        return int(self.cur.lastrowid)

    def insert_invoice_item(self, invoice_id: int, line_no: int, item: InvoiceItem) -> None:
        self.cur.execute(
            """
            INSERT INTO invoice_items (
                invoice_id, line_no, product_id, product_name, quantity, purchase_price, sale_price, total
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                int(invoice_id),
                int(line_no),
                int(item.product_id),
                item.product_name,
                int(item.quantity),
                float(item.purchase_price),
                float(item.sale_price),
                float(item.total),
            ),
        )
