from __future__ import annotations

import logging

from openpyxl import load_workbook

from shopledger.domain.errors import AppError, ValidationError

log = logging.getLogger(__name__)

REQUIRED_HEADERS = ("sku", "name", "purchase_price", "sale_price", "stock", "low_stock_threshold")


class ExcelService:
    def __init__(self, repo, inventory_service, vendor_service):
        self.repo = repo
        self.inventory = inventory_service
        self.vendors = vendor_service

    def _vendor_id_for(self, name) -> int | None:
        name = str(name or "").strip()
        if not name:
            return None
        for v in self.vendors.list_vendors():
            if v.name.lower() == name.lower():
                return v.id
        raise ValidationError(f"Unknown vendor: {name}")

    def import_products_excel(self, path: str) -> tuple[int, int]:
        """
        Unknown SKU creates the product with `stock` as its initial stock.
        Known SKU treats `stock` as a restock (quantity to add) and refreshes
        prices and threshold.
        Headers:
          sku | name | purchase_price | sale_price | stock | low_stock_threshold | vendor (optional)
        """
        wb = load_workbook(path)
        ws = wb.active

        headers = {}
        for col in range(1, ws.max_column + 1):
            v = ws.cell(row=1, column=col).value
            if isinstance(v, str):
                headers[v.strip().lower()] = col

        for h in REQUIRED_HEADERS:
            if h not in headers:
                raise ValidationError(f"Missing column header: {h}")

        def cell(row: int, header: str):
            col = headers.get(header)
            return ws.cell(row=row, column=col).value if col else None

        ok = 0
        skipped = 0

        for row in range(2, ws.max_row + 1):
            sku = cell(row, "sku")
            name = cell(row, "name")
            values = [cell(row, h) for h in REQUIRED_HEADERS[2:]]
            if not sku or not name or any(v is None for v in values):
                skipped += 1
                continue

            try:
                sku = str(sku).strip()
                name = str(name).strip()
                purchase_price = float(values[0])
                sale_price = float(values[1])
                qty = int(float(values[2]))
                threshold = int(float(values[3]))
                vendor_id = self._vendor_id_for(cell(row, "vendor"))

                if qty < 0:
                    raise ValidationError("Stock must be >= 0.")

                existing = self.repo.find_products_by_sku(sku)
                if existing:
                    product = existing[0]
                    changes = dict(
                        name=name,
                        purchase_price=purchase_price,
                        sale_price=sale_price,
                        low_stock_threshold=threshold,
                        stock_quantity=product.stock_quantity + qty,
                    )
                    if vendor_id is not None:
                        changes["vendor_id"] = vendor_id
                    self.inventory.update_product(product.id, reason="Restock", **changes)
                else:
                    self.inventory.add_product(
                        name, sku, purchase_price, sale_price, qty, threshold, vendor_id=vendor_id
                    )
                ok += 1
            except (AppError, ValueError, TypeError) as e:
                log.warning("Excel import skipped row %s: %s", row, e)
                skipped += 1

        log.info("products_imported path=%s ok=%s skipped=%s", path, ok, skipped)
        return ok, skipped
