from __future__ import annotations

from typing import Optional, Protocol

from shopledger.domain.models import (
    Customer,
    Invoice,
    InvoiceItem,
    LedgerEntry,
    Product,
    Vendor,
)


class UnitOfWork(Protocol):
    def __enter__(self) -> "UnitOfWork": ...
    def __exit__(self, exc_type, exc, tb) -> None: ...
    def load_profile(self) -> Optional[dict]: ...
    def save_profile(self, data: dict) -> None: ...
    def get_product(self, product_id: int) -> Optional[Product]: ...
    def set_stock(self, product_id: int, stock_quantity: int) -> None: ...
    def append_movement(
        self, product_id: int, movement_type: str, quantity: int, date: str, reason: str, reference_id: Optional[int] = None
    ) -> int: ...
    def get_customer(self, customer_id: int) -> Optional[Customer]: ...
    def set_customer_outstanding(self, customer_id: int, total_outstanding: float) -> None: ...
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
    ) -> int: ...
    def get_vendor(self, vendor_id: int) -> Optional[Vendor]: ...
    def invoice_number_exists(self, invoice_number: str) -> bool: ...
    def highest_invoice_sequence(self, prefix: str) -> int: ...
    def insert_invoice(self, invoice_number: str, customer_id: int, customer_name: str, date: str, subtotal: float,
                       tax: float, discount: float, total: float, paid_amount: float, payment_type: str,
                       notes: Optional[str]) -> int: ...
    def insert_invoice_item(self, invoice_id: int, line_no: int, item: InvoiceItem) -> None: ...


class InvoiceRepository(Protocol):
    def get_customer(self, customer_id: int) -> Optional[Customer]: ...
    def get_product(self, product_id: int) -> Optional[Product]: ...
    def get_invoice(self, invoice_id: int) -> Optional[Invoice]: ...
    def list_invoices(
        self,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        customer_id: Optional[int] = None,
        payment_type: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[Invoice]: ...


# Collaborators the invoice orchestrator is composed from.
class SequenceAllocator(Protocol):
    def peek_next_invoice_number(self) -> str: ...
    def allocate(self, uow: UnitOfWork) -> tuple[str, int]: ...
    def advance(self, uow: UnitOfWork, sequence: int) -> None: ...


class StockLedger(Protocol):
    def deduct(self, uow: UnitOfWork, product_id: int, quantity: int, invoice_id: int, date: str) -> Product: ...


class CustomerLedger(Protocol):
    def post_invoice_charge(self, uow: UnitOfWork, invoice: Invoice) -> LedgerEntry: ...
