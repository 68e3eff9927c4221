from __future__ import annotations

import logging
from typing import Callable, Optional

from shopledger.domain.errors import UnknownEntityError, ValidationError
from shopledger.domain.models import (
    Customer,
    Invoice,
    LedgerEntry,
    Payment,
    PaymentReminder,
    entry_matches,
    money,
    normalize_timestamp,
    now_iso,
)
from shopledger.repositories.contracts import UnitOfWork
from shopledger.repositories.unit_of_work import SqliteUnitOfWork

log = logging.getLogger("shopledger.ledger")


class CustomerService:
    """Receivables. A charge is a debit, a payment a credit; every entry
    carries the running balance and the customer's outstanding total is
    rewritten to that same balance in the same transaction."""

    def __init__(self, repo, uow_factory: Callable[[], UnitOfWork] | None = None):
        self.repo = repo
        self.uow_factory = uow_factory or (lambda: SqliteUnitOfWork(repo))

    def list_customers(self) -> list[Customer]:
        return self.repo.list_customers()

    def get_customer(self, customer_id: int) -> Customer:
        c = self.repo.get_customer(int(customer_id))
        if not c:
            raise UnknownEntityError("customer", customer_id)
        return c

    def add_customer(self, name: str, phone: str = "", address: str = "") -> Customer:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Customer name is required.")
        with self.uow_factory() as uow:
            customer_id = uow.insert_customer(name, (phone or "").strip(), (address or "").strip())
        log.info("customer_added customer_id=%s", customer_id)
        return self.get_customer(customer_id)

    def ledger_for(self, customer_id: int) -> list[LedgerEntry]:
        self.get_customer(customer_id)
        return self.repo.ledger_for_customer(int(customer_id))

    def statement(self, customer_id: int, search: Optional[str] = None) -> list[LedgerEntry]:
        """Newest first, optionally filtered on description, reference or amount."""
        entries = self.ledger_for(customer_id)
        needle = (search or "").strip().lower()
        if needle:
            entries = [e for e in entries if entry_matches(e, needle)]
        return sorted(entries, key=lambda e: (e.date, e.id), reverse=True)

    def payments_for(self, customer_id: int) -> list[Payment]:
        self.get_customer(customer_id)
        return self.repo.payments_for_customer(int(customer_id))

    def verify_balance(self, customer_id: int) -> bool:
        customer = self.get_customer(customer_id)
        entries = self.repo.ledger_for_customer(int(customer_id))
        last = entries[-1].balance if entries else 0.0
        return money(customer.total_outstanding) == money(last)

    # ---------- Postings ----------
    def _post(
        self,
        uow: UnitOfWork,
        customer_id: int,
        date: str,
        ref_id: Optional[int],
        entry_type: str,
        description: str,
        debit: float,
        credit: float,
    ) -> LedgerEntry:
        customer = uow.get_customer(int(customer_id))
        if not customer:
            raise UnknownEntityError("customer", customer_id)
        balance = money(customer.total_outstanding + debit - credit)
        entry_id = uow.append_ledger_entry(customer.id, date, ref_id, entry_type, description, debit, credit, balance)
        uow.set_customer_outstanding(customer.id, balance)
        return LedgerEntry(
            id=entry_id,
            customer_id=customer.id,
            date=date,
            ref_id=ref_id,
            type=entry_type,
            description=description,
            debit=debit,
            credit=credit,
            balance=balance,
        )

    def post_invoice_charge(self, uow: UnitOfWork, invoice: Invoice) -> LedgerEntry:
        """One entry for the whole invoice: debit the total, credit what was paid."""
        return self._post(
            uow,
            invoice.customer_id,
            invoice.date,
            invoice.id,
            "invoice",
            f"Invoice {invoice.invoice_number}",
            money(invoice.total),
            money(invoice.paid_amount),
        )

    def post_opening_balance(self, customer_id: int, amount: float, date: Optional[str] = None) -> LedgerEntry:
        amount = money(amount)
        if amount <= 0:
            raise ValidationError("Opening balance must be > 0.")
        with self.uow_factory() as uow:
            entry = self._post(uow, customer_id, normalize_timestamp(date), None, "opening", "Opening balance", amount, 0.0)
        log.info("customer_opening_posted customer_id=%s amount=%.2f", customer_id, amount)
        return entry

    def record_payment(
        self,
        customer_id: int,
        amount: float,
        method: str,
        note: Optional[str] = None,
        date: Optional[str] = None,
    ) -> Payment:
        """Paying more than is outstanding is allowed and leaves the customer in credit."""
        amount = money(amount)
        method = (method or "").strip()
        if amount <= 0:
            raise ValidationError("Payment amount must be > 0.")
        if not method:
            raise ValidationError("Payment method is required.")
        when = normalize_timestamp(date)

        with self.uow_factory() as uow:
            if not uow.get_customer(int(customer_id)):
                raise UnknownEntityError("customer", customer_id)
            payment_id = uow.insert_payment(int(customer_id), when, amount, method, note)
            entry = self._post(uow, customer_id, when, payment_id, "payment", f"Payment via {method}", 0.0, amount)

        log.info(
            "customer_payment_posted customer_id=%s payment_id=%s amount=%.2f balance=%.2f",
            customer_id, payment_id, amount, entry.balance,
        )
        return Payment(id=payment_id, customer_id=int(customer_id), date=when, amount=amount, method=method, note=note)

    # ---------- Reminders ----------
    def add_reminder(self, customer_id: int, scheduled_date: str, message: str) -> PaymentReminder:
        message = (message or "").strip()
        if not scheduled_date or not message:
            raise ValidationError("Reminder date and message are required.")
        with self.uow_factory() as uow:
            if not uow.get_customer(int(customer_id)):
                raise UnknownEntityError("customer", customer_id)
            reminder_id = uow.insert_reminder(int(customer_id), scheduled_date, message, now_iso())
        return self.repo.get_reminder(reminder_id)

    def mark_reminder_sent(self, reminder_id: int) -> PaymentReminder:
        with self.uow_factory() as uow:
            if not uow.set_reminder_status(int(reminder_id), "sent"):
                raise UnknownEntityError("reminder", reminder_id)
        log.info("reminder_sent reminder_id=%s", reminder_id)
        return self.repo.get_reminder(int(reminder_id))

    def delete_reminder(self, reminder_id: int) -> None:
        with self.uow_factory() as uow:
            if not uow.delete_reminder(int(reminder_id)):
                raise UnknownEntityError("reminder", reminder_id)

    def reminders_for(self, customer_id: int) -> list[PaymentReminder]:
        self.get_customer(customer_id)
        return self.repo.reminders_for_customer(int(customer_id))
