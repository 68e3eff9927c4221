from .models import (
    Customer,
    DraftLine,
    Invoice,
    InvoiceDraft,
    InvoiceItem,
    InvoicePreview,
    LedgerEntry,
    Payment,
    PaymentReminder,
    Product,
    ShopProfile,
    StockMovement,
    Vendor,
    VendorLedgerEntry,
    VendorPayment,
)
from .errors import (
    AppError,
    CommitError,
    InsightUnavailableError,
    InsufficientStockError,
    SequenceCollisionError,
    UnknownEntityError,
    ValidationError,
)
from .numbering import format_invoice_number

__all__ = [
    "Customer",
    "DraftLine",
    "Invoice",
    "InvoiceDraft",
    "InvoiceItem",
    "InvoicePreview",
    "LedgerEntry",
    "Payment",
    "PaymentReminder",
    "Product",
    "ShopProfile",
    "StockMovement",
    "Vendor",
    "VendorLedgerEntry",
    "VendorPayment",
    "AppError",
    "CommitError",
    "InsightUnavailableError",
    "InsufficientStockError",
    "SequenceCollisionError",
    "UnknownEntityError",
    "ValidationError",
    "format_invoice_number",
]
