from pathlib import Path

import pytest
from conftest import build_shop
from openpyxl import Workbook

from shopledger.domain.errors import ValidationError

HEADERS = ["sku", "name", "purchase_price", "sale_price", "stock", "low_stock_threshold", "vendor"]


def _sheet(tmp_path: Path, rows, headers=HEADERS) -> str:
    wb = Workbook()
    ws = wb.active
    ws.append(headers)
    for r in rows:
        ws.append(r)
    path = tmp_path / "import.xlsx"
    wb.save(path)
    return str(path)


def test_import_creates_new_products_and_vendor_purchases(tmp_path: Path):
    shop = build_shop(tmp_path)
    vendor = shop.vendors.add_vendor("Metro Wholesale")
    path = _sheet(tmp_path, [
        ["RICE-001", "Premium Rice 5kg", 400, 550, 50, 10, "metro wholesale"],
        ["TEA-45", "Tea Leaves 250g", 80, 110, 100, 20, None],
    ])

    ok, skipped = shop.excel.import_products_excel(path)

    assert (ok, skipped) == (2, 0)
    rice = shop.repo.find_products_by_sku("RICE-001")[0]
    assert rice.vendor_id == vendor.id
    assert rice.stock_quantity == 50
    assert shop.vendors.get_vendor(vendor.id).total_balance == 20000.0


def test_import_restocks_existing_sku(tmp_path: Path):
    shop = build_shop(tmp_path)
    product = shop.inventory.add_product("Cooking Oil 1L", "OIL-102", 150, 185, 8, 10)
    path = _sheet(tmp_path, [["OIL-102", "Cooking Oil 1L", 155, 190, 12, 6, None]])

    ok, skipped = shop.excel.import_products_excel(path)

    p = shop.inventory.get_product(product.id)
    assert (ok, skipped) == (1, 0)
    assert p.stock_quantity == 20
    assert p.purchase_price == 155.0
    assert p.low_stock_threshold == 6
    assert [(m.type, m.quantity, m.reason) for m in p.movements][-1] == ("in", 12, "Restock")


def test_import_skips_bad_rows(tmp_path: Path):
    shop = build_shop(tmp_path)
    path = _sheet(tmp_path, [
        ["RICE-001", "Premium Rice 5kg", "four hundred", 550, 50, 10, None],
        ["OIL-102", "Cooking Oil 1L", 150, 185, -3, 10, None],
        ["TEA-45", "Tea Leaves 250g", 80, 110, 100, 20, "Nobody Ltd"],
        [None, "No SKU", 1, 2, 3, 0, None],
        ["SALT-1", "Salt 1kg", 20, 30, 40, 5, None],
    ])

    ok, skipped = shop.excel.import_products_excel(path)

    assert (ok, skipped) == (1, 4)
    assert [p.sku for p in shop.inventory.list_products()] == ["SALT-1"]


def test_import_requires_headers(tmp_path: Path):
    shop = build_shop(tmp_path)
    path = _sheet(tmp_path, [["RICE-001", "Rice", 1, 2, 3]], headers=["sku", "name", "cost", "price", "stock"])

    with pytest.raises(ValidationError, match="Missing column header"):
        shop.excel.import_products_excel(path)
