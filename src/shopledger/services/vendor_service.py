from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, Optional

from shopledger.domain.errors import UnknownEntityError, ValidationError
from shopledger.domain.models import (
    Vendor,
    VendorLedgerEntry,
    VendorPayment,
    entry_matches,
    money,
    normalize_timestamp,
)
from shopledger.repositories.contracts import UnitOfWork
from shopledger.repositories.unit_of_work import SqliteUnitOfWork

log = logging.getLogger("shopledger.ledger")

_CONTACT_FIELDS = ("name", "contact_person", "phone", "email", "address")


class VendorService:
    """Payables. Polarity is the reverse of the customer ledger: a purchase is
    a credit that raises what the shop owes, a payment is a debit that lowers it.
    The balance may go negative (the vendor owes the shop)."""

    def __init__(self, repo, uow_factory: Callable[[], UnitOfWork] | None = None):
        self.repo = repo
        self.uow_factory = uow_factory or (lambda: SqliteUnitOfWork(repo))

    def list_vendors(self) -> list[Vendor]:
        return self.repo.list_vendors()

    def get_vendor(self, vendor_id: int) -> Vendor:
        v = self.repo.get_vendor(int(vendor_id))
        if not v:
            raise UnknownEntityError("vendor", vendor_id)
        return v

    def add_vendor(
        self,
        name: str,
        contact_person: str = "",
        phone: str = "",
        email: str = "",
        address: str = "",
    ) -> Vendor:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Vendor name is required.")
        with self.uow_factory() as uow:
            vendor_id = uow.insert_vendor(
                name,
                (contact_person or "").strip(),
                (phone or "").strip(),
                (email or "").strip(),
                (address or "").strip(),
            )
        log.info("vendor_added vendor_id=%s", vendor_id)
        return self.get_vendor(vendor_id)

    def update_vendor(self, vendor_id: int, **changes) -> Vendor:
        unknown = set(changes) - set(_CONTACT_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown vendor fields: {', '.join(sorted(unknown))}")
        cleaned = {k: str(v or "").strip() for k, v in changes.items()}
        if "name" in cleaned and not cleaned["name"]:
            raise ValidationError("Vendor name is required.")
        with self.uow_factory() as uow:
            current = uow.get_vendor(int(vendor_id))
            if not current:
                raise UnknownEntityError("vendor", vendor_id)
            uow.update_vendor_contact(replace(current, **cleaned))
        return self.get_vendor(vendor_id)

    def delete_vendor(self, vendor_id: int) -> None:
        """Drops the vendor and its ledger. Linked products keep the vendor_name snapshot."""
        with self.uow_factory() as uow:
            if not uow.delete_vendor(int(vendor_id)):
                raise UnknownEntityError("vendor", vendor_id)
        log.info("vendor_deleted vendor_id=%s", vendor_id)

    def ledger_for(self, vendor_id: int) -> list[VendorLedgerEntry]:
        self.get_vendor(vendor_id)
        return self.repo.ledger_for_vendor(int(vendor_id))

    def statement(self, vendor_id: int, search: Optional[str] = None) -> list[VendorLedgerEntry]:
        entries = self.ledger_for(vendor_id)
        needle = (search or "").strip().lower()
        if needle:
            entries = [e for e in entries if entry_matches(e, needle)]
        return sorted(entries, key=lambda e: (e.date, e.id), reverse=True)

    def payments_for(self, vendor_id: int) -> list[VendorPayment]:
        self.get_vendor(vendor_id)
        return self.repo.payments_for_vendor(int(vendor_id))

    def verify_balance(self, vendor_id: int) -> bool:
        vendor = self.get_vendor(vendor_id)
        entries = self.repo.ledger_for_vendor(int(vendor_id))
        last = entries[-1].balance if entries else 0.0
        return money(vendor.total_balance) == money(last)

    # ---------- Postings ----------
    def _post(
        self,
        uow: UnitOfWork,
        vendor_id: int,
        date: str,
        ref_id: Optional[int],
        entry_type: str,
        description: str,
        debit: float,
        credit: float,
    ) -> VendorLedgerEntry:
        vendor = uow.get_vendor(int(vendor_id))
        if not vendor:
            raise UnknownEntityError("vendor", vendor_id)
        balance = money(vendor.total_balance + credit - debit)
        entry_id = uow.append_vendor_entry(vendor.id, date, ref_id, entry_type, description, debit, credit, balance)
        uow.set_vendor_balance(vendor.id, balance)
        return VendorLedgerEntry(
            id=entry_id,
            vendor_id=vendor.id,
            date=date,
            ref_id=ref_id,
            type=entry_type,
            description=description,
            debit=debit,
            credit=credit,
            balance=balance,
        )

    def post_purchase_in(
        self,
        uow: UnitOfWork,
        vendor_id: int,
        amount: float,
        description: str,
        ref_id: Optional[int] = None,
        date: Optional[str] = None,
    ) -> VendorLedgerEntry:
        return self._post(uow, vendor_id, normalize_timestamp(date), ref_id, "purchase", description, 0.0, money(amount))

    def post_purchase(
        self,
        vendor_id: int,
        amount: float,
        description: str,
        ref_id: Optional[int] = None,
        date: Optional[str] = None,
    ) -> VendorLedgerEntry:
        amount = money(amount)
        if amount <= 0:
            raise ValidationError("Purchase amount must be > 0.")
        if not (description or "").strip():
            raise ValidationError("Purchase description is required.")
        with self.uow_factory() as uow:
            entry = self.post_purchase_in(uow, vendor_id, amount, description.strip(), ref_id=ref_id, date=date)
        log.info("vendor_purchase_posted vendor_id=%s amount=%.2f balance=%.2f", vendor_id, amount, entry.balance)
        return entry

    def record_payment(
        self,
        vendor_id: int,
        amount: float,
        method: str,
        note: Optional[str] = None,
        date: Optional[str] = None,
    ) -> VendorPayment:
        amount = money(amount)
        method = (method or "").strip()
        if amount <= 0:
            raise ValidationError("Payment amount must be > 0.")
        if not method:
            raise ValidationError("Payment method is required.")
        when = normalize_timestamp(date)

        with self.uow_factory() as uow:
            if not uow.get_vendor(int(vendor_id)):
                raise UnknownEntityError("vendor", vendor_id)
            payment_id = uow.insert_vendor_payment(int(vendor_id), when, amount, method, note)
            entry = self._post(uow, vendor_id, when, payment_id, "payment", f"Payment via {method}", amount, 0.0)

        log.info(
            "vendor_payment_posted vendor_id=%s payment_id=%s amount=%.2f balance=%.2f",
            vendor_id, payment_id, amount, entry.balance,
        )
        return VendorPayment(id=payment_id, vendor_id=int(vendor_id), date=when, amount=amount, method=method, note=note)
