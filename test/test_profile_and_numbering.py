from pathlib import Path

import pytest
from conftest import build_shop, stock_product

from shopledger.domain.errors import SequenceCollisionError, UnknownEntityError, ValidationError
from shopledger.domain.numbering import format_invoice_number
from shopledger.repositories.unit_of_work import SqliteUnitOfWork


def test_invoice_number_format():
    assert format_invoice_number("INV", 7, 5) == "INV-00007"
    assert format_invoice_number("INV", 7) == "INV-00007"
    assert format_invoice_number("BILL", 42, 3) == "BILL-042"
    # wider than the padding is kept whole
    assert format_invoice_number("INV", 123456, 5) == "INV-123456"


def test_ensure_profile_creates_once(tmp_path: Path):
    shop = build_shop(tmp_path, signed_up=False)
    assert shop.profiles.get_profile() is None

    created = shop.profiles.ensure_profile("Sara", "sara@example.com", "Corner Shop")
    assert created.next_invoice_number == 1
    assert created.invoice_prefix == "INV"
    assert created.invoice_padding == 5

    shop.profiles.update_profile(next_invoice_number=40)
    again = shop.profiles.ensure_profile("Someone Else", "x@example.com", "Other Shop")
    assert again.shop_name == "Corner Shop"
    assert again.next_invoice_number == 40


def test_settings_drive_default_numbering(tmp_path: Path):
    shop = build_shop(tmp_path, invoice_prefix="SL", invoice_padding=4)
    assert shop.profiles.peek_next_invoice_number() == "SL-0001"


def test_profile_edits_change_next_invoice_number(tmp_path: Path):
    shop = build_shop(tmp_path)
    product = stock_product(shop)
    customer = shop.customers.add_customer("Jane Smith")

    shop.profiles.update_profile(invoice_prefix="BILL", invoice_padding=3, next_invoice_number=7)
    invoice = shop.invoices.post_sale(customer.id, [{"product_id": product.id, "qty": 1}])

    assert invoice.invoice_number == "BILL-007"
    assert shop.profiles.require_profile().next_invoice_number == 8


def test_non_sequence_edits_do_not_move_the_counter(tmp_path: Path):
    shop = build_shop(tmp_path)

    shop.profiles.update_profile(name="Sara K", address="1 High St", phone="555-0404")

    profile = shop.profiles.require_profile()
    assert profile.name == "Sara K"
    assert profile.next_invoice_number == 1


@pytest.mark.parametrize(
    "changes, message",
    [
        ({"next_invoice_number": 0}, "Next invoice number"),
        ({"invoice_padding": 0}, "padding"),
        ({"invoice_padding": 13}, "padding"),
        ({"invoice_prefix": "  "}, "prefix"),
        ({"favourite_colour": "red"}, "Unknown profile fields"),
    ],
)
def test_invalid_profile_edits_are_rejected(tmp_path: Path, changes, message):
    shop = build_shop(tmp_path)

    with pytest.raises(ValidationError, match=message):
        shop.profiles.update_profile(**changes)


def test_edit_that_would_reissue_a_number_is_rejected(tmp_path: Path):
    shop = build_shop(tmp_path)
    product = stock_product(shop)
    customer = shop.customers.add_customer("Jane Smith")
    shop.invoices.post_sale(customer.id, [{"product_id": product.id, "qty": 1}])

    with pytest.raises(SequenceCollisionError):
        shop.profiles.update_profile(next_invoice_number=1)
    assert shop.profiles.peek_next_invoice_number() == "INV-00002"


def test_unknown_profile_keys_are_preserved(tmp_path: Path):
    shop = build_shop(tmp_path)
    with SqliteUnitOfWork(shop.repo) as uow:
        data = uow.load_profile()
        data["plan"] = "pro"
        uow.save_profile(data)

    shop.profiles.update_profile(shop_name="Corner Shop 2")

    assert shop.repo.load_profile()["plan"] == "pro"


def test_clear_profile_logs_out(tmp_path: Path):
    shop = build_shop(tmp_path)

    shop.profiles.clear_profile()

    assert shop.profiles.get_profile() is None
    with pytest.raises(UnknownEntityError):
        shop.profiles.require_profile()


def test_signing_up_again_continues_after_issued_numbers(tmp_path: Path):
    shop = build_shop(tmp_path)
    product = stock_product(shop)
    customer = shop.customers.add_customer("Jane Smith")
    shop.invoices.post_sale(customer.id, [{"product_id": product.id, "qty": 1}])

    shop.profiles.clear_profile()
    assert shop.profiles.peek_next_invoice_number() == "INV-00002"
    profile = shop.profiles.ensure_profile("Sara", "sara@example.com", "Corner Shop")
    invoice = shop.invoices.post_sale(customer.id, [{"product_id": product.id, "qty": 1}])

    assert profile.next_invoice_number == 2
    assert invoice.invoice_number == "INV-00002"
    assert shop.profiles.require_profile().next_invoice_number == 3


def test_highest_issued_sequence_is_per_prefix(tmp_path: Path):
    shop = build_shop(tmp_path)
    product = stock_product(shop)
    customer = shop.customers.add_customer("Jane Smith")

    shop.profiles.update_profile(invoice_prefix="BILL", next_invoice_number=40)
    shop.invoices.post_sale(customer.id, [{"product_id": product.id, "qty": 1}])
    shop.profiles.update_profile(invoice_prefix="INV", next_invoice_number=3)
    shop.invoices.post_sale(customer.id, [{"product_id": product.id, "qty": 1}])

    assert shop.repo.highest_invoice_sequence("INV") == 3
    assert shop.repo.highest_invoice_sequence("BILL") == 40
    assert shop.repo.highest_invoice_sequence("BIL") == 0


def test_sale_without_a_profile_is_rejected(tmp_path: Path):
    shop = build_shop(tmp_path, signed_up=False)
    product = stock_product(shop)
    customer = shop.customers.add_customer("Jane Smith")

    with pytest.raises(UnknownEntityError, match="Profile not found"):
        shop.invoices.post_sale(customer.id, [{"product_id": product.id, "qty": 1}])
    with pytest.raises(UnknownEntityError, match="Profile not found"):
        shop.profiles.update_profile(next_invoice_number=5)

    assert shop.profiles.get_profile() is None
    assert shop.inventory.get_product(product.id).stock_quantity == 8
    assert shop.invoices.list_invoices() == []
