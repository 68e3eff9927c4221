from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from shopledger.config import Settings
from shopledger.repositories.sqlite_repo import SqliteRepository
from shopledger.services.customer_service import CustomerService
from shopledger.services.excel_service import ExcelService
from shopledger.services.insight_service import InsightService, TextCompletionClient
from shopledger.services.inventory_service import InventoryService
from shopledger.services.invoice_service import InvoiceService
from shopledger.services.profile_service import ProfileService
from shopledger.services.reporting_service import ReportingService
from shopledger.services.vendor_service import VendorService


@dataclass(frozen=True)
class AppContainer:
    repo: SqliteRepository
    settings: Settings
    profiles: ProfileService
    vendors: VendorService
    inventory: InventoryService
    customers: CustomerService
    invoices: InvoiceService
    reporting: ReportingService
    excel: ExcelService
    insights: InsightService


def build_container(db_path: Path | str, settings: Settings | None = None) -> AppContainer:
    settings = settings or Settings()
    repo = SqliteRepository(db_path)
    repo.init_db()

    profiles = ProfileService(repo, settings)
    vendors = VendorService(repo)
    inventory = InventoryService(repo, vendors)
    customers = CustomerService(repo)
    invoices = InvoiceService(repo, profiles, inventory, customers)
    reporting = ReportingService(repo)
    excel = ExcelService(repo, inventory, vendors)
    client = TextCompletionClient(
        settings.completion_url,
        api_key=settings.completion_api_key,
        timeout=settings.completion_timeout,
    )
    insights = InsightService(repo, profiles, client)

    return AppContainer(
        repo=repo,
        settings=settings,
        profiles=profiles,
        vendors=vendors,
        inventory=inventory,
        customers=customers,
        invoices=invoices,
        reporting=reporting,
        excel=excel,
        insights=insights,
    )
