from __future__ import annotations

from collections import Counter
import logging
import math
from typing import Callable, Iterable, Optional

from shopledger.domain.errors import AppError, InsufficientStockError, UnknownEntityError, ValidationError
from shopledger.domain.models import (
    Customer,
    DraftLine,
    Invoice,
    InvoiceDraft,
    InvoiceItem,
    InvoicePreview,
    money,
    normalize_timestamp,
)
from shopledger.repositories.contracts import (
    CustomerLedger,
    InvoiceRepository,
    SequenceAllocator,
    StockLedger,
    UnitOfWork,
)
from shopledger.repositories.unit_of_work import SqliteUnitOfWork

log = logging.getLogger("shopledger.invoices")

PAYMENT_TYPES = ("cash", "credit")
TAX = 0.0


def _number(value, label: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{label} must be a number.") from None
    if not math.isfinite(number):
        raise ValidationError(f"{label} must be a number.")
    return number


class InvoiceService:
    """Turns a draft cart into a committed, immutable invoice.

    Draft -> Preview -> Committed. A preview reads live data and changes
    nothing. A commit runs in one unit of work: allocate the number, write the
    invoice with cost snapshots, take stock out, post the customer charge and
    advance the sequence. Any failure leaves no trace of the attempt.
    """

    def __init__(
        self,
        repo: InvoiceRepository,
        sequence: SequenceAllocator,
        stock: StockLedger,
        customers: CustomerLedger,
        uow_factory: Callable[[], UnitOfWork] | None = None,
    ):
        self.repo = repo
        self.sequence = sequence
        self.stock = stock
        self.customers = customers
        self.uow_factory = uow_factory or (lambda: SqliteUnitOfWork(repo))

    @staticmethod
    def _check_draft(draft: InvoiceDraft) -> None:
        if not draft.lines:
            raise ValidationError("Cart is empty.")
        if draft.payment_type not in PAYMENT_TYPES:
            raise ValidationError(f"Payment type must be one of: {', '.join(PAYMENT_TYPES)}.")
        for line in draft.lines:
            qty = _number(line.quantity, "Qty")
            if not qty.is_integer():
                raise ValidationError("Qty must be a whole number.")
            if qty <= 0:
                raise ValidationError("Qty must be >= 1.")
            if line.sale_price is not None and _number(line.sale_price, "Sale price") < 0:
                raise ValidationError("Sale price must be >= 0.")
        if _number(draft.discount, "Discount") < 0:
            raise ValidationError("Discount must be >= 0.")
        if draft.paid_amount is not None and _number(draft.paid_amount, "Paid amount") < 0:
            raise ValidationError("Paid amount must be >= 0.")

    def _resolve(self, source, draft: InvoiceDraft) -> tuple[Customer, tuple[InvoiceItem, ...], float, float, float, float]:
        """Price the draft against live rows from ``source`` (repository or unit of work)."""
        customer = source.get_customer(int(draft.customer_id))
        if not customer:
            raise UnknownEntityError("customer", draft.customer_id)

        # Aggregate qty by product so a repeated line cannot oversell.
        qty_by_product: Counter[int] = Counter()
        items: list[InvoiceItem] = []
        for line in draft.lines:
            product_id = int(line.product_id)
            qty = int(line.quantity)
            product = source.get_product(product_id)
            if not product:
                raise UnknownEntityError("product", product_id)

            qty_by_product[product_id] += qty
            if qty_by_product[product_id] > product.stock_quantity:
                raise InsufficientStockError(product_id, product.name, qty_by_product[product_id], product.stock_quantity)

            price = money(product.sale_price if line.sale_price is None else line.sale_price)
            items.append(
                InvoiceItem(
                    product_id=product_id,
                    product_name=product.name,
                    quantity=qty,
                    purchase_price=product.purchase_price,
                    sale_price=price,
                    total=money(qty * price),
                )
            )

        subtotal = money(sum(it.total for it in items))
        discount = money(draft.discount)
        if discount > subtotal:
            raise ValidationError("Discount cannot exceed the subtotal.")
        total = money(subtotal + TAX - discount)

        if draft.paid_amount is None:
            paid = total if draft.payment_type == "cash" else 0.0
        else:
            paid = money(draft.paid_amount)
        if paid > total:
            raise ValidationError("Paid amount cannot exceed the invoice total.")

        return customer, tuple(items), subtotal, discount, total, paid

    def preview(self, draft: InvoiceDraft) -> InvoicePreview:
        self._check_draft(draft)
        customer, items, subtotal, discount, total, paid = self._resolve(self.repo, draft)
        return InvoicePreview(
            invoice_number=self.sequence.peek_next_invoice_number(),
            customer_id=customer.id,
            customer_name=customer.name,
            items=items,
            subtotal=subtotal,
            tax=TAX,
            discount=discount,
            total=total,
            paid_amount=paid,
            payment_type=draft.payment_type,
        )

    def create_invoice(self, draft: InvoiceDraft) -> Invoice:
        self._check_draft(draft)
        when = normalize_timestamp(draft.date)

        try:
            with self.uow_factory() as uow:
                number, sequence = self.sequence.allocate(uow)
                customer, items, subtotal, discount, total, paid = self._resolve(uow, draft)

                invoice_id = uow.insert_invoice(
                    number, customer.id, customer.name, when, subtotal, TAX, discount, total, paid,
                    draft.payment_type, draft.notes,
                )
                for line_no, item in enumerate(items, start=1):
                    uow.insert_invoice_item(invoice_id, line_no, item)

                invoice = Invoice(
                    id=invoice_id,
                    invoice_number=number,
                    customer_id=customer.id,
                    customer_name=customer.name,
                    date=when,
                    items=items,
                    subtotal=subtotal,
                    tax=TAX,
                    discount=discount,
                    total=total,
                    paid_amount=paid,
                    payment_type=draft.payment_type,
                    notes=draft.notes,
                )

                # stock first, then the customer charge
                for item in items:
                    self.stock.deduct(uow, item.product_id, item.quantity, invoice_id, when)
                self.customers.post_invoice_charge(uow, invoice)
                self.sequence.advance(uow, sequence)
        except AppError as exc:
            log.warning("invoice_rejected customer_id=%s error=%s", draft.customer_id, exc)
            raise

        log.info(
            "invoice_committed invoice_id=%s invoice_number=%s customer_id=%s items=%s total=%.2f paid=%.2f",
            invoice.id, invoice.invoice_number, invoice.customer_id, len(items), invoice.total, invoice.paid_amount,
        )
        return invoice

    def post_sale(
        self,
        customer_id: int,
        items: Iterable[dict],
        payment_type: str = "cash",
        paid_amount: Optional[float] = None,
        discount: float = 0.0,
        notes: Optional[str] = None,
        date: Optional[str] = None,
    ) -> Invoice:
        """
        items: [{product_id, qty, sale_price?}]
        """
        lines = tuple(
            DraftLine(
                product_id=int(it["product_id"]),
                quantity=it["qty"],
                sale_price=it.get("sale_price"),
            )
            for it in items
        )
        return self.create_invoice(
            InvoiceDraft(
                customer_id=int(customer_id),
                lines=lines,
                payment_type=payment_type,
                paid_amount=paid_amount,
                discount=discount,
                notes=notes,
                date=date,
            )
        )

    def get_invoice(self, invoice_id: int) -> Invoice:
        inv = self.repo.get_invoice(int(invoice_id))
        if not inv:
            raise UnknownEntityError("invoice", invoice_id)
        return inv

    def list_invoices(
        self,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        customer_id: Optional[int] = None,
        payment_type: Optional[str] = None,
    ) -> list[Invoice]:
        return self.repo.list_invoices(date_from, date_to, customer_id, payment_type)

    def recent_invoices(self, limit: int = 10) -> list[Invoice]:
        return self.repo.list_invoices(limit=limit)

    def invoices_for_customer(self, customer_id: int) -> list[Invoice]:
        return self.repo.list_invoices(customer_id=int(customer_id))
