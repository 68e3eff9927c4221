from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, Optional

from shopledger.domain.errors import InsufficientStockError, UnknownEntityError, ValidationError
from shopledger.domain.models import Product, StockMovement, money, normalize_timestamp
from shopledger.repositories.contracts import UnitOfWork
from shopledger.repositories.unit_of_work import SqliteUnitOfWork

log = logging.getLogger(__name__)

_UNSET = object()
_EDITABLE = ("name", "sku", "purchase_price", "sale_price", "stock_quantity", "low_stock_threshold")


def _validate_fields(name: str, sku: str, purchase_price: float, sale_price: float, stock: int, threshold: int) -> None:
    if not name or not sku:
        raise ValidationError("SKU and Name are required.")
    if purchase_price < 0 or sale_price < 0:
        raise ValidationError("Prices must be >= 0.")
    if stock < 0 or threshold < 0:
        raise ValidationError("Stock values must be >= 0.")


class InventoryService:
    def __init__(self, repo, vendor_ledger, uow_factory: Callable[[], UnitOfWork] | None = None):
        self.repo = repo
        self.vendors = vendor_ledger
        self.uow_factory = uow_factory or (lambda: SqliteUnitOfWork(repo))

    def list_products(self) -> list[Product]:
        return self.repo.list_products()

    def get_product(self, product_id: int) -> Product:
        p = self.repo.get_product(int(product_id))
        if not p:
            raise UnknownEntityError("product", product_id)
        return p

    def movements_for(self, product_id: int) -> list[StockMovement]:
        self.get_product(product_id)
        return self.repo.movements_for(int(product_id))

    def low_stock_products(self) -> list[Product]:
        return self.repo.list_low_stock()

    def search_products(self, term: str) -> list[Product]:
        needle = (term or "").strip().lower()
        products = self.repo.list_products()
        if not needle:
            return products
        return [p for p in products if needle in p.name.lower() or needle in p.sku.lower()]

    def add_product(
        self,
        name: str,
        sku: str,
        purchase_price: float,
        sale_price: float,
        initial_stock: int,
        low_stock_threshold: int = 5,
        vendor_id: Optional[int] = None,
        date: Optional[str] = None,
    ) -> Product:
        name = (name or "").strip()
        sku = (sku or "").strip()
        purchase_price = money(purchase_price)
        sale_price = money(sale_price)
        initial_stock = int(initial_stock)
        low_stock_threshold = int(low_stock_threshold)
        _validate_fields(name, sku, purchase_price, sale_price, initial_stock, low_stock_threshold)
        when = normalize_timestamp(date)

        with self.uow_factory() as uow:
            vendor_name = None
            if vendor_id is not None:
                vendor = uow.get_vendor(int(vendor_id))
                if not vendor:
                    raise UnknownEntityError("vendor", vendor_id)
                vendor_name = vendor.name

            product_id = uow.insert_product(
                name, sku, purchase_price, sale_price, initial_stock, low_stock_threshold, when,
                vendor_id, vendor_name,
            )
            uow.append_movement(product_id, "in", initial_stock, when, "Initial Stock")

            if vendor_id is not None and initial_stock > 0:
                self.vendors.post_purchase_in(
                    uow,
                    int(vendor_id),
                    money(purchase_price * initial_stock),
                    f"Stock purchase: {name} x{initial_stock}",
                    ref_id=product_id,
                    date=when,
                )

        log.info("product_added product_id=%s sku=%s stock=%s vendor=%s", product_id, sku, initial_stock, vendor_id)
        return self.get_product(product_id)

    def update_product(
        self,
        product_id: int,
        reason: str = "Manual adjustment",
        date: Optional[str] = None,
        vendor_id=_UNSET,
        **changes,
    ) -> Product:
        """Apply field edits; a stock change appends exactly one movement.

        A stock increase on a vendor-linked product is booked as a purchase
        from that vendor at the (new) purchase price.
        """
        unknown = set(changes) - set(_EDITABLE)
        if unknown:
            raise ValidationError(f"Unknown product fields: {', '.join(sorted(unknown))}")
        when = normalize_timestamp(date)

        with self.uow_factory() as uow:
            current = uow.get_product(int(product_id))
            if not current:
                raise UnknownEntityError("product", product_id)

            updated = replace(current, **changes)
            updated = replace(
                updated,
                name=str(updated.name).strip(),
                sku=str(updated.sku).strip(),
                purchase_price=money(updated.purchase_price),
                sale_price=money(updated.sale_price),
                stock_quantity=int(updated.stock_quantity),
                low_stock_threshold=int(updated.low_stock_threshold),
            )
            if vendor_id is not _UNSET:
                if vendor_id is None:
                    updated = replace(updated, vendor_id=None, vendor_name=None)
                else:
                    vendor = uow.get_vendor(int(vendor_id))
                    if not vendor:
                        raise UnknownEntityError("vendor", vendor_id)
                    updated = replace(updated, vendor_id=vendor.id, vendor_name=vendor.name)

            _validate_fields(
                updated.name, updated.sku, updated.purchase_price, updated.sale_price,
                updated.stock_quantity, updated.low_stock_threshold,
            )
            uow.update_product(updated)

            delta = updated.stock_quantity - current.stock_quantity
            if delta != 0:
                uow.append_movement(updated.id, "in" if delta > 0 else "out", abs(delta), when, reason)
            if delta > 0 and updated.vendor_id is not None:
                self.vendors.post_purchase_in(
                    uow,
                    updated.vendor_id,
                    money(updated.purchase_price * delta),
                    f"Stock purchase: {updated.name} x{delta}",
                    ref_id=updated.id,
                    date=when,
                )

        if delta != 0:
            log.info("stock_adjusted product_id=%s delta=%s stock=%s reason=%s", product_id, delta, updated.stock_quantity, reason)
        return self.get_product(product_id)

    def adjust_stock(self, product_id: int, new_quantity: int, reason: str, date: Optional[str] = None) -> Product:
        return self.update_product(product_id, reason=reason, date=date, stock_quantity=int(new_quantity))

    def delete_product(self, product_id: int) -> None:
        with self.uow_factory() as uow:
            removed = uow.delete_product(int(product_id))
            if not removed:
                raise UnknownEntityError("product", product_id)
        log.info("product_deleted product_id=%s", product_id)

    def deduct(self, uow: UnitOfWork, product_id: int, quantity: int, invoice_id: int, date: str) -> Product:
        """Take stock out for an invoice. Never clamps: short stock is an error."""
        product = uow.get_product(int(product_id))
        if not product:
            raise UnknownEntityError("product", product_id)
        quantity = int(quantity)
        if quantity <= 0:
            raise ValidationError("Qty must be >= 1.")
        if quantity > product.stock_quantity:
            raise InsufficientStockError(product.id, product.name, quantity, product.stock_quantity)

        remaining = product.stock_quantity - quantity
        uow.set_stock(product.id, remaining)
        uow.append_movement(product.id, "out", quantity, date, "Sale", reference_id=int(invoice_id))
        return replace(product, stock_quantity=remaining)
