from pathlib import Path

import pytest
from conftest import build_shop

from shopledger.domain.errors import UnknownEntityError, ValidationError


def _vendor_with_rice(tmp_path: Path):
    shop = build_shop(tmp_path)
    vendor = shop.vendors.add_vendor("Metro Wholesale", "Ali Khan", "555-0303", "orders@metro.example")
    product = shop.inventory.add_product("Premium Rice 5kg", "RICE-001", 400, 550, 50, 10, vendor_id=vendor.id)
    return shop, vendor, product


def test_new_linked_product_posts_vendor_purchase(tmp_path: Path):
    shop, vendor, product = _vendor_with_rice(tmp_path)

    assert product.vendor_id == vendor.id
    assert product.vendor_name == "Metro Wholesale"
    entries = shop.vendors.ledger_for(vendor.id)
    assert [(e.type, e.debit, e.credit, e.balance) for e in entries] == [("purchase", 0.0, 20000.0, 20000.0)]
    assert entries[0].ref_id == product.id
    assert shop.vendors.get_vendor(vendor.id).total_balance == 20000.0


def test_vendor_payment_lowers_balance(tmp_path: Path):
    shop, vendor, _ = _vendor_with_rice(tmp_path)

    payment = shop.vendors.record_payment(vendor.id, 5000, "bank transfer", note="March")

    last = shop.vendors.ledger_for(vendor.id)[-1]
    assert (last.type, last.debit, last.credit, last.balance) == ("payment", 5000.0, 0.0, 15000.0)
    assert last.ref_id == payment.id
    assert shop.vendors.get_vendor(vendor.id).total_balance == 15000.0
    assert [p.amount for p in shop.vendors.payments_for(vendor.id)] == [5000.0]
    assert shop.vendors.verify_balance(vendor.id)


def test_restock_posts_purchase_for_the_delta_only(tmp_path: Path):
    shop, vendor, product = _vendor_with_rice(tmp_path)

    shop.inventory.adjust_stock(product.id, 60, "Restock")
    shop.inventory.adjust_stock(product.id, 55, "Damaged")

    entries = shop.vendors.ledger_for(vendor.id)
    assert [e.credit for e in entries] == [20000.0, 4000.0]
    assert shop.vendors.get_vendor(vendor.id).total_balance == 24000.0


def test_unlinked_product_never_touches_vendor_ledger(tmp_path: Path):
    shop = build_shop(tmp_path)
    vendor = shop.vendors.add_vendor("Metro Wholesale")
    product = shop.inventory.add_product("Tea Leaves 250g", "TEA-45", 80, 110, 100, 20)

    shop.inventory.adjust_stock(product.id, 120, "Restock")

    assert shop.vendors.ledger_for(vendor.id) == []


def test_linking_later_snapshots_vendor_name(tmp_path: Path):
    shop = build_shop(tmp_path)
    vendor = shop.vendors.add_vendor("Metro Wholesale")
    product = shop.inventory.add_product("Tea Leaves 250g", "TEA-45", 80, 110, 100, 20)

    linked = shop.inventory.update_product(product.id, vendor_id=vendor.id)
    shop.vendors.update_vendor(vendor.id, name="Metro Cash & Carry")

    assert linked.vendor_name == "Metro Wholesale"
    assert shop.inventory.get_product(product.id).vendor_name == "Metro Wholesale"
    assert shop.vendors.ledger_for(vendor.id) == []


def test_manual_purchase_and_overpayment(tmp_path: Path):
    shop = build_shop(tmp_path)
    vendor = shop.vendors.add_vendor("Metro Wholesale")

    shop.vendors.post_purchase(vendor.id, 1200, "Packaging")
    shop.vendors.record_payment(vendor.id, 1500, "cash")

    assert shop.vendors.get_vendor(vendor.id).total_balance == -300.0
    assert shop.vendors.verify_balance(vendor.id)
    with pytest.raises(ValidationError):
        shop.vendors.post_purchase(vendor.id, 0, "Nothing")
    with pytest.raises(ValidationError):
        shop.vendors.post_purchase(vendor.id, 10, " ")


def test_update_vendor_edits_contact_fields_only(tmp_path: Path):
    shop, vendor, _ = _vendor_with_rice(tmp_path)

    updated = shop.vendors.update_vendor(vendor.id, phone="555-0909", email="ap@metro.example")

    assert updated.phone == "555-0909"
    assert updated.total_balance == 20000.0
    with pytest.raises(ValidationError, match="Unknown vendor fields"):
        shop.vendors.update_vendor(vendor.id, total_balance=0)
    with pytest.raises(ValidationError):
        shop.vendors.update_vendor(vendor.id, name="")


def test_delete_vendor_keeps_product_name_snapshot(tmp_path: Path):
    shop, vendor, product = _vendor_with_rice(tmp_path)

    shop.vendors.delete_vendor(vendor.id)

    p = shop.inventory.get_product(product.id)
    assert p.vendor_id is None
    assert p.vendor_name == "Metro Wholesale"
    assert shop.repo.ledger_for_vendor(vendor.id) == []
    with pytest.raises(UnknownEntityError):
        shop.vendors.get_vendor(vendor.id)
    with pytest.raises(UnknownEntityError):
        shop.vendors.delete_vendor(vendor.id)


def test_vendor_statement_newest_first(tmp_path: Path):
    shop = build_shop(tmp_path)
    vendor = shop.vendors.add_vendor("Metro Wholesale")
    shop.vendors.post_purchase(vendor.id, 900, "Crates", date="2024-01-02 08:00:00")
    shop.vendors.record_payment(vendor.id, 400, "cash", date="2024-01-09 08:00:00")

    assert [e.type for e in shop.vendors.statement(vendor.id)] == ["payment", "purchase"]
    assert [e.type for e in shop.vendors.statement(vendor.id, search="crates")] == ["purchase"]


def test_missing_contact_details_are_stored_blank(tmp_path: Path):
    shop = build_shop(tmp_path)

    vendor = shop.vendors.add_vendor("Metro Wholesale", contact_person=None, phone=None, email=None, address=None)

    assert (vendor.contact_person, vendor.phone, vendor.email, vendor.address) == ("", "", "", "")


def test_vendor_postings_normalize_dates(tmp_path: Path):
    shop = build_shop(tmp_path)
    vendor = shop.vendors.add_vendor("Metro Wholesale")

    shop.vendors.post_purchase(vendor.id, 1200, "Packaging", date="2024-02-01T08:15:00")
    payment = shop.vendors.record_payment(vendor.id, 200, "cash", date="2024-02-03")

    assert [e.date for e in shop.vendors.ledger_for(vendor.id)] == ["2024-02-01 08:15:00", "2024-02-03 00:00:00"]
    assert payment.date == "2024-02-03 00:00:00"
    with pytest.raises(ValidationError, match="Invalid date"):
        shop.vendors.post_purchase(vendor.id, 10, "Tape", date="2024-02-30")
    assert shop.vendors.get_vendor(vendor.id).total_balance == 1000.0
