from pathlib import Path

import pytest
from conftest import build_shop, stock_product

from shopledger.domain.errors import UnknownEntityError, ValidationError


def _signed(movements):
    return sum(m.quantity if m.type == "in" else -m.quantity for m in movements)


def test_add_product_records_initial_stock_movement(tmp_path: Path):
    shop = build_shop(tmp_path)

    product = shop.inventory.add_product("Premium Rice 5kg", "RICE-001", 400, 550, 50, 10)

    assert product.stock_quantity == 50
    assert [(m.type, m.quantity, m.reason) for m in product.movements] == [("in", 50, "Initial Stock")]
    assert product.vendor_id is None


def test_stock_edits_append_exactly_one_movement(tmp_path: Path):
    shop = build_shop(tmp_path)
    product = stock_product(shop)

    shop.inventory.update_product(product.id, stock_quantity=12, reason="Delivery")
    shop.inventory.update_product(product.id, name="Sunflower Oil 1L", sale_price=190)
    shop.inventory.adjust_stock(product.id, 9, "Damaged")

    p = shop.inventory.get_product(product.id)
    assert p.name == "Sunflower Oil 1L"
    assert [(m.type, m.quantity, m.reason) for m in p.movements] == [
        ("in", 8, "Initial Stock"),
        ("in", 4, "Delivery"),
        ("out", 3, "Damaged"),
    ]
    assert _signed(p.movements[1:]) == p.stock_quantity - 8


def test_movements_track_sales_and_adjustments(tmp_path: Path):
    shop = build_shop(tmp_path)
    product = stock_product(shop, stock=20)
    customer = shop.customers.add_customer("Jane Smith")

    shop.invoices.post_sale(customer.id, [{"product_id": product.id, "qty": 6}])
    shop.inventory.adjust_stock(product.id, 30, "Recount")
    shop.invoices.post_sale(customer.id, [{"product_id": product.id, "qty": 2}])

    movements = shop.inventory.movements_for(product.id)
    p = shop.inventory.get_product(product.id)
    assert len(movements) == 4
    assert _signed(movements) == p.stock_quantity == 28


def test_negative_stock_and_prices_are_rejected(tmp_path: Path):
    shop = build_shop(tmp_path)
    product = stock_product(shop)

    with pytest.raises(ValidationError):
        shop.inventory.adjust_stock(product.id, -1, "Oops")
    with pytest.raises(ValidationError):
        shop.inventory.add_product("Bad", "BAD-1", -1, 10, 1, 0)
    with pytest.raises(ValidationError):
        shop.inventory.add_product("", "BAD-2", 1, 10, 1, 0)
    with pytest.raises(ValidationError, match="Unknown product fields"):
        shop.inventory.update_product(product.id, colour="red")

    assert shop.inventory.get_product(product.id).stock_quantity == 8


def test_low_stock_and_search(tmp_path: Path):
    shop = build_shop(tmp_path)
    oil = stock_product(shop, stock=8, threshold=10)
    shop.inventory.add_product("Tea Leaves 250g", "TEA-45", 80, 110, 100, 20)

    assert [p.id for p in shop.inventory.low_stock_products()] == [oil.id]
    assert oil.is_low_stock
    assert [p.sku for p in shop.inventory.search_products("tea")] == ["TEA-45"]
    assert [p.sku for p in shop.inventory.search_products("oil-1")] == ["OIL-102"]
    assert len(shop.inventory.search_products("")) == 2


def test_delete_product_removes_it_and_its_movements(tmp_path: Path):
    shop = build_shop(tmp_path)
    product = stock_product(shop)

    shop.inventory.delete_product(product.id)

    with pytest.raises(UnknownEntityError):
        shop.inventory.get_product(product.id)
    with pytest.raises(UnknownEntityError):
        shop.inventory.delete_product(product.id)
    assert shop.repo.movements_for(product.id) == []


def test_unknown_product_operations_raise(tmp_path: Path):
    shop = build_shop(tmp_path)

    with pytest.raises(UnknownEntityError):
        shop.inventory.update_product(42, name="Ghost")
    with pytest.raises(UnknownEntityError):
        shop.inventory.movements_for(42)
    with pytest.raises(UnknownEntityError):
        shop.inventory.add_product("Rice", "RICE-001", 1, 2, 3, 0, vendor_id=42)
