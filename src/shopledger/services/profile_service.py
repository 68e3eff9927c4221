from __future__ import annotations

import logging
from dataclasses import fields
from typing import Callable, Optional

from shopledger.config import Settings
from shopledger.domain.errors import SequenceCollisionError, UnknownEntityError, ValidationError
from shopledger.domain.models import ShopProfile
from shopledger.domain.numbering import format_invoice_number
from shopledger.repositories.contracts import UnitOfWork
from shopledger.repositories.sqlite_repo import PROFILE_KEY
from shopledger.repositories.unit_of_work import SqliteUnitOfWork

log = logging.getLogger(__name__)

_PROFILE_FIELDS = {f.name for f in fields(ShopProfile)}
MAX_PADDING = 12


class ProfileService:
    """Owns the shop profile and hands out invoice numbers.

    The profile is stored as one JSON blob; keys this service does not know
    about are carried through untouched on every save.
    """

    def __init__(self, repo, settings: Settings | None = None, uow_factory: Callable[[], UnitOfWork] | None = None):
        self.repo = repo
        self.settings = settings or Settings()
        self.uow_factory = uow_factory or (lambda: SqliteUnitOfWork(repo))

    def _defaults(self, next_invoice_number: int = 1) -> dict:
        return {
            "id": "u1",
            "name": "",
            "email": "",
            "shop_name": "",
            "invoice_prefix": self.settings.invoice_prefix,
            "next_invoice_number": next_invoice_number,
            "invoice_padding": self.settings.invoice_padding,
        }

    @staticmethod
    def _to_profile(data: dict) -> ShopProfile:
        return ShopProfile(**{k: v for k, v in data.items() if k in _PROFILE_FIELDS})

    @staticmethod
    def _load(uow: UnitOfWork) -> dict:
        data = uow.load_profile()
        if data is None:
            raise UnknownEntityError("profile", PROFILE_KEY)
        return data

    def get_profile(self) -> Optional[ShopProfile]:
        data = self.repo.load_profile()
        return self._to_profile(data) if data else None

    def require_profile(self) -> ShopProfile:
        profile = self.get_profile()
        if profile is None:
            raise UnknownEntityError("profile", PROFILE_KEY)
        return profile

    def ensure_profile(self, name: str, email: str, shop_name: str, address: str = "", phone: str = "") -> ShopProfile:
        with self.uow_factory() as uow:
            data = uow.load_profile()
            if data is None:
                # a returning shop carries on after the last number it issued
                issued = uow.highest_invoice_sequence(self.settings.invoice_prefix)
                data = self._defaults(issued + 1)
                data.update(name=name.strip(), email=email.strip(), shop_name=shop_name.strip(), address=address, phone=phone)
                uow.save_profile(data)
                log.info("profile_created shop=%s", data["shop_name"])
        return self._to_profile(data)

    def update_profile(self, **changes) -> ShopProfile:
        unknown = set(changes) - (_PROFILE_FIELDS - {"id"})
        if unknown:
            raise ValidationError(f"Unknown profile fields: {', '.join(sorted(unknown))}")

        if "invoice_prefix" in changes:
            prefix = str(changes["invoice_prefix"] or "").strip()
            if not prefix:
                raise ValidationError("Invoice prefix is required.")
            changes["invoice_prefix"] = prefix
        if "next_invoice_number" in changes:
            changes["next_invoice_number"] = int(changes["next_invoice_number"])
            if changes["next_invoice_number"] < 1:
                raise ValidationError("Next invoice number must be >= 1.")
        if "invoice_padding" in changes:
            changes["invoice_padding"] = int(changes["invoice_padding"])
            if not 1 <= changes["invoice_padding"] <= MAX_PADDING:
                raise ValidationError(f"Invoice padding must be between 1 and {MAX_PADDING}.")

        with self.uow_factory() as uow:
            data = self._load(uow)
            data.update(changes)
            upcoming = format_invoice_number(data["invoice_prefix"], data["next_invoice_number"], data.get("invoice_padding"))
            if uow.invoice_number_exists(upcoming):
                raise SequenceCollisionError(upcoming)
            uow.save_profile(data)

        log.info("profile_updated fields=%s", ",".join(sorted(changes)))
        return self._to_profile(data)

    def clear_profile(self) -> None:
        self.repo.delete_profile()

    def peek_next_invoice_number(self) -> str:
        data = self.repo.load_profile()
        if data is None:
            data = self._defaults(self.repo.highest_invoice_sequence(self.settings.invoice_prefix) + 1)
        return format_invoice_number(data["invoice_prefix"], data["next_invoice_number"], data.get("invoice_padding"))

    # ---------- Used by the invoice orchestrator inside its unit of work ----------
    def allocate(self, uow: UnitOfWork) -> tuple[str, int]:
        data = self._load(uow)
        sequence = int(data["next_invoice_number"])
        number = format_invoice_number(data["invoice_prefix"], sequence, data.get("invoice_padding"))
        if uow.invoice_number_exists(number):
            raise SequenceCollisionError(number)
        return number, sequence

    def advance(self, uow: UnitOfWork, sequence: int) -> None:
        data = self._load(uow)
        data["next_invoice_number"] = int(sequence) + 1
        uow.save_profile(data)
