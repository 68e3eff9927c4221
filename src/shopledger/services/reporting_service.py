from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Optional

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.table import Table, TableStyleInfo

from shopledger.domain.models import Invoice, money


@dataclass(frozen=True)
class SalesSummary:
    invoice_count: int
    total_sales: float
    cost_of_goods: float
    gross_profit: float
    cash_sales: float
    credit_sales: float
    collected: float
    total_outstanding: float
    total_payables: float
    inventory_value: float
    low_stock_count: int


@dataclass(frozen=True)
class BalanceDiscrepancy:
    kind: str  # customer | vendor
    entity_id: int
    name: str
    cached_balance: float
    ledger_balance: float


def invoice_cost(inv: Invoice) -> float:
    # cost basis is the purchase price captured on each line at commit time
    return money(sum(it.cost for it in inv.items))


def _money(cell):
    cell.number_format = "#,##0.00"


def _pct(cell):
    cell.number_format = "0.00%"


def _bold_row(ws, r):
    for c in ws[r]:
        c.font = Font(bold=True)


def _set_widths(ws, widths: dict[str, int]):
    for col, w in widths.items():
        ws.column_dimensions[col].width = w


def _add_table(ws, name: str, start_row: int, start_col: int, end_row: int, end_col: int):
    ref = f"{get_column_letter(start_col)}{start_row}:{get_column_letter(end_col)}{end_row}"
    tab = Table(displayName=name, ref=ref)
    tab.tableStyleInfo = TableStyleInfo(
        name="TableStyleMedium9",
        showRowStripes=True,
        showColumnStripes=False,
    )
    ws.add_table(tab)


class ReportingService:
    def __init__(self, repo):
        self.repo = repo

    def sales_summary(
        self,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        customer_id: Optional[int] = None,
        payment_type: Optional[str] = None,
    ) -> SalesSummary:
        invoices = self.repo.list_invoices(date_from, date_to, customer_id, payment_type)

        total_sales = money(sum(inv.total for inv in invoices))
        cost = money(sum(invoice_cost(inv) for inv in invoices))
        cash = money(sum(inv.total for inv in invoices if inv.payment_type == "cash"))
        credit = money(sum(inv.total for inv in invoices if inv.payment_type == "credit"))

        return SalesSummary(
            invoice_count=len(invoices),
            total_sales=total_sales,
            cost_of_goods=cost,
            gross_profit=money(total_sales - cost),
            cash_sales=cash,
            credit_sales=credit,
            collected=money(sum(inv.paid_amount for inv in invoices)),
            total_outstanding=money(self.repo.total_outstanding()),
            total_payables=money(self.repo.total_payables()),
            inventory_value=money(self.repo.inventory_value()),
            low_stock_count=len(self.repo.list_low_stock()),
        )

    def top_customers(
        self,
        limit: int = 5,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
    ) -> list[tuple[int, str, float]]:
        """(customer_id, name, invoiced total), highest first."""
        totals: dict[int, float] = defaultdict(float)
        names: dict[int, str] = {}
        for inv in self.repo.list_invoices(date_from, date_to):
            totals[inv.customer_id] += inv.total
            names[inv.customer_id] = inv.customer_name

        ranked = sorted(totals.items(), key=lambda kv: (-kv[1], kv[0]))
        return [(cid, names[cid], money(total)) for cid, total in ranked[: max(0, int(limit))]]

    def balance_discrepancies(self) -> list[BalanceDiscrepancy]:
        out: list[BalanceDiscrepancy] = []
        for c in self.repo.list_customers():
            entries = self.repo.ledger_for_customer(c.id)
            last = entries[-1].balance if entries else 0.0
            if money(last) != money(c.total_outstanding):
                out.append(BalanceDiscrepancy("customer", c.id, c.name, c.total_outstanding, last))
        for v in self.repo.list_vendors():
            entries = self.repo.ledger_for_vendor(v.id)
            last = entries[-1].balance if entries else 0.0
            if money(last) != money(v.total_balance):
                out.append(BalanceDiscrepancy("vendor", v.id, v.name, v.total_balance, last))
        return out

    def export_summary_excel(
        self,
        path: str,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
    ) -> None:
        wb = Workbook()
        summary = self.sales_summary(date_from, date_to)
        invoices = self.repo.list_invoices(date_from, date_to)

        # -------- 1) Summary --------
        ws = wb.active
        ws.title = "Summary"
        ws["A1"] = "Summary"
        ws["A1"].font = Font(bold=True, size=14)

        ws["A3"] = "Window"
        ws["B3"] = f"{date_from or 'start'}  ->  {date_to or 'now'}"

        rows = [
            ("Invoices", summary.invoice_count, "int"),
            ("Total sales", summary.total_sales, "money"),
            ("Cost of goods", summary.cost_of_goods, "money"),
            ("Gross profit", summary.gross_profit, "money"),
            ("Cash sales", summary.cash_sales, "money"),
            ("Credit sales", summary.credit_sales, "money"),
            ("Collected at sale", summary.collected, "money"),
            ("Receivables outstanding", summary.total_outstanding, "money"),
            ("Payables outstanding", summary.total_payables, "money"),
            ("Inventory value (cost)", summary.inventory_value, "money"),
            ("Low stock products", summary.low_stock_count, "int"),
        ]
        start_row = 5
        for i, (label, val, kind) in enumerate(rows):
            r = start_row + i
            ws[f"A{r}"] = label
            ws[f"B{r}"] = val
            if kind == "money":
                _money(ws[f"B{r}"])
        _set_widths(ws, {"A": 28, "B": 34})

        # -------- 2) Invoice lines --------
        ws2 = wb.create_sheet("Invoices")
        ws2.append([
            "Invoice", "Date", "Customer", "Payment",
            "Product", "Qty", "Sale Price", "Unit Cost",
            "Line Total", "Line Profit", "Margin %",
        ])
        _bold_row(ws2, 1)

        out_row = 2
        for inv in invoices:
            for it in inv.items:
                profit = money(it.total - it.cost)
                ws2.append([
                    inv.invoice_number, inv.date, inv.customer_name, inv.payment_type,
                    it.product_name, int(it.quantity), float(it.sale_price), float(it.purchase_price),
                    float(it.total), float(profit), (profit / it.total) if it.total else 0.0,
                ])
                for col in "GHIJ":
                    _money(ws2[f"{col}{out_row}"])
                _pct(ws2[f"K{out_row}"])
                out_row += 1

        ws2.freeze_panes = "A2"
        _set_widths(ws2, {
            "A": 14, "B": 22, "C": 24, "D": 10,
            "E": 30, "F": 6, "G": 14, "H": 14,
            "I": 14, "J": 14, "K": 10,
        })
        if ws2.max_row >= 2:
            _add_table(ws2, "InvoiceLines", 1, 1, ws2.max_row, 11)

        # -------- 3) Receivables --------
        ws3 = wb.create_sheet("Receivables")
        ws3.append(["Customer ID", "Name", "Phone", "Outstanding"])
        _bold_row(ws3, 1)
        for r, c in enumerate(self.repo.list_customers(), start=2):
            ws3.append([c.id, c.name, c.phone, float(c.total_outstanding)])
            _money(ws3[f"D{r}"])
        _set_widths(ws3, {"A": 12, "B": 28, "C": 18, "D": 16})
        if ws3.max_row >= 2:
            _add_table(ws3, "Receivables", 1, 1, ws3.max_row, 4)

        # -------- 4) Payables --------
        ws4 = wb.create_sheet("Payables")
        ws4.append(["Vendor ID", "Name", "Contact", "Balance"])
        _bold_row(ws4, 1)
        for r, v in enumerate(self.repo.list_vendors(), start=2):
            ws4.append([v.id, v.name, v.contact_person, float(v.total_balance)])
            _money(ws4[f"D{r}"])
        _set_widths(ws4, {"A": 12, "B": 28, "C": 22, "D": 16})
        if ws4.max_row >= 2:
            _add_table(ws4, "Payables", 1, 1, ws4.max_row, 4)

        wb.save(path)
