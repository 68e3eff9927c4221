from .profile_service import ProfileService
from .inventory_service import InventoryService
from .customer_service import CustomerService
from .vendor_service import VendorService
from .invoice_service import InvoiceService
from .reporting_service import ReportingService
from .excel_service import ExcelService
from .insight_service import InsightService, TextCompletionClient

__all__ = [
    "ProfileService",
    "InventoryService",
    "CustomerService",
    "VendorService",
    "InvoiceService",
    "ReportingService",
    "ExcelService",
    "InsightService",
    "TextCompletionClient",
]
