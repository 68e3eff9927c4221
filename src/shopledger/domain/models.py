from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .errors import ValidationError


def money(value: float) -> float:
    return round(float(value), 2)


def now_iso() -> str:
    return datetime.now().replace(microsecond=0).isoformat(sep=" ")


def normalize_timestamp(value: Optional[str]) -> str:
    """Stored form of a caller-supplied date: "YYYY-MM-DD HH:MM:SS" in local time.

    Empty means now. Dates are compared as text in queries, so every write
    goes through here.
    """
    if not value:
        return now_iso()
    try:
        parsed = datetime.fromisoformat(str(value).strip())
    except ValueError:
        raise ValidationError(f"Invalid date: {value!r}. Use YYYY-MM-DD or YYYY-MM-DD HH:MM:SS.") from None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed.replace(microsecond=0).isoformat(sep=" ")


@dataclass(frozen=True)
class ShopProfile:
    id: str
    name: str
    email: str
    shop_name: str
    address: str = ""
    phone: str = ""
    logo_url: Optional[str] = None
    invoice_prefix: str = "INV"
    next_invoice_number: int = 1
    invoice_padding: int = 5


@dataclass(frozen=True)
class StockMovement:
    id: int
    product_id: int
    type: str  # in | out
    quantity: int
    date: str
    reason: str
    reference_id: Optional[int] = None


@dataclass(frozen=True)
class Product:
    id: int
    name: str
    sku: str
    purchase_price: float
    sale_price: float
    stock_quantity: int
    low_stock_threshold: int
    created_at: str
    vendor_id: Optional[int] = None
    vendor_name: Optional[str] = None
    movements: tuple[StockMovement, ...] = field(default=(), compare=False)

    @property
    def is_low_stock(self) -> bool:
        return self.stock_quantity <= self.low_stock_threshold


@dataclass(frozen=True)
class Customer:
    id: int
    name: str
    phone: str
    address: str
    total_outstanding: float


@dataclass(frozen=True)
class LedgerEntry:
    id: int
    customer_id: int
    date: str
    ref_id: Optional[int]
    type: str  # invoice | payment | opening
    description: str
    debit: float
    credit: float
    balance: float


@dataclass(frozen=True)
class Vendor:
    id: int
    name: str
    contact_person: str
    phone: str
    email: str
    address: str
    total_balance: float


@dataclass(frozen=True)
class VendorLedgerEntry:
    """Payable side: credit is a purchase (raises the balance), debit a payment."""

    id: int
    vendor_id: int
    date: str
    ref_id: Optional[int]
    type: str  # purchase | payment
    description: str
    debit: float
    credit: float
    balance: float


@dataclass(frozen=True)
class InvoiceItem:
    product_id: int
    product_name: str
    quantity: int
    purchase_price: float
    sale_price: float
    total: float

    @property
    def cost(self) -> float:
        return money(self.purchase_price * self.quantity)


@dataclass(frozen=True)
class Invoice:
    id: int
    invoice_number: str
    customer_id: int
    customer_name: str
    date: str
    items: tuple[InvoiceItem, ...]
    subtotal: float
    tax: float
    discount: float
    total: float
    paid_amount: float
    payment_type: str  # cash | credit
    notes: Optional[str] = None

    @property
    def balance_due(self) -> float:
        return money(self.total - self.paid_amount)


@dataclass(frozen=True)
class Payment:
    id: int
    customer_id: int
    date: str
    amount: float
    method: str
    note: Optional[str] = None


@dataclass(frozen=True)
class VendorPayment:
    id: int
    vendor_id: int
    date: str
    amount: float
    method: str
    note: Optional[str] = None


@dataclass(frozen=True)
class PaymentReminder:
    id: int
    customer_id: int
    scheduled_date: str
    message: str
    status: str  # pending | sent
    created_at: str


@dataclass(frozen=True)
class DraftLine:
    product_id: int
    quantity: int
    sale_price: Optional[float] = None


@dataclass(frozen=True)
class InvoiceDraft:
    customer_id: int
    lines: tuple[DraftLine, ...]
    payment_type: str = "cash"
    paid_amount: Optional[float] = None
    discount: float = 0.0
    notes: Optional[str] = None
    date: Optional[str] = None


@dataclass(frozen=True)
class InvoicePreview:
    invoice_number: str
    customer_id: int
    customer_name: str
    items: tuple[InvoiceItem, ...]
    subtotal: float
    tax: float
    discount: float
    total: float
    paid_amount: float
    payment_type: str


def entry_matches(entry, needle: str) -> bool:
    """Statement search over a customer or vendor ledger entry."""
    return (
        needle in entry.description.lower()
        or needle in str(entry.ref_id or "")
        or needle in f"{entry.debit:g}"
        or needle in f"{entry.credit:g}"
    )
