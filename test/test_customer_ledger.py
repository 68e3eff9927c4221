from pathlib import Path

import pytest
from conftest import build_shop, stock_product

from shopledger.domain.errors import UnknownEntityError, ValidationError


def _credit_sale(shop, customer_id, qty=3, date=None):
    product = stock_product(shop, stock=50)
    return shop.invoices.post_sale(
        customer_id, [{"product_id": product.id, "qty": qty}], payment_type="credit", date=date
    )


def test_new_customer_starts_at_zero(tmp_path: Path):
    shop = build_shop(tmp_path)

    customer = shop.customers.add_customer("  Jane Smith ", "555-0202", "456 Oak Ave")

    assert customer.name == "Jane Smith"
    assert customer.total_outstanding == 0.0
    assert shop.customers.verify_balance(customer.id)
    with pytest.raises(ValidationError):
        shop.customers.add_customer("   ")


def test_payment_reduces_outstanding_and_is_recorded(tmp_path: Path):
    shop = build_shop(tmp_path)
    customer = shop.customers.add_customer("Jane Smith")
    _credit_sale(shop, customer.id)

    payment = shop.customers.record_payment(customer.id, 200, "cash", note="first instalment")

    assert payment.amount == 200.0
    assert shop.customers.get_customer(customer.id).total_outstanding == 355.0
    last = shop.customers.ledger_for(customer.id)[-1]
    assert (last.type, last.debit, last.credit, last.balance) == ("payment", 0.0, 200.0, 355.0)
    assert last.description == "Payment via cash"
    assert last.ref_id == payment.id
    assert [p.note for p in shop.customers.payments_for(customer.id)] == ["first instalment"]
    assert shop.customers.verify_balance(customer.id)


def test_overpayment_leaves_customer_in_credit(tmp_path: Path):
    shop = build_shop(tmp_path)
    customer = shop.customers.add_customer("Jane Smith")
    _credit_sale(shop, customer.id, qty=1)

    shop.customers.record_payment(customer.id, 500, "bank")

    assert shop.customers.get_customer(customer.id).total_outstanding == -315.0
    assert shop.customers.verify_balance(customer.id)


def test_invalid_payments_are_rejected(tmp_path: Path):
    shop = build_shop(tmp_path)
    customer = shop.customers.add_customer("Jane Smith")

    with pytest.raises(ValidationError):
        shop.customers.record_payment(customer.id, 0, "cash")
    with pytest.raises(ValidationError):
        shop.customers.record_payment(customer.id, 10, " ")
    with pytest.raises(UnknownEntityError):
        shop.customers.record_payment(999, 10, "cash")
    assert shop.customers.payments_for(customer.id) == []


def test_opening_balance_is_a_ledger_entry(tmp_path: Path):
    shop = build_shop(tmp_path)
    customer = shop.customers.add_customer("John Doe")

    shop.customers.post_opening_balance(customer.id, 1500)

    entries = shop.customers.ledger_for(customer.id)
    assert [(e.type, e.debit, e.balance) for e in entries] == [("opening", 1500.0, 1500.0)]
    assert shop.customers.get_customer(customer.id).total_outstanding == 1500.0


def test_running_balance_matches_outstanding_after_mixed_postings(tmp_path: Path):
    shop = build_shop(tmp_path)
    customer = shop.customers.add_customer("Jane Smith")

    _credit_sale(shop, customer.id, qty=2)
    shop.customers.record_payment(customer.id, 100, "cash")
    _credit_sale(shop, customer.id, qty=1)
    shop.customers.record_payment(customer.id, 50.5, "card")

    entries = shop.customers.ledger_for(customer.id)
    running = 0.0
    for e in entries:
        running = round(running + e.debit - e.credit, 2)
        assert e.balance == running
    assert shop.customers.get_customer(customer.id).total_outstanding == entries[-1].balance == 404.5


def test_statement_is_newest_first_and_searchable(tmp_path: Path):
    shop = build_shop(tmp_path)
    customer = shop.customers.add_customer("Jane Smith")
    _credit_sale(shop, customer.id, date="2024-03-01 10:00:00")
    shop.customers.record_payment(customer.id, 200, "cash", date="2024-03-05 10:00:00")

    statement = shop.customers.statement(customer.id)
    assert [e.type for e in statement] == ["payment", "invoice"]

    assert [e.type for e in shop.customers.statement(customer.id, search="INV-00001")] == ["invoice"]
    assert [e.type for e in shop.customers.statement(customer.id, search="200")] == ["payment"]
    assert shop.customers.statement(customer.id, search="nothing like this") == []


def test_reminders_lifecycle(tmp_path: Path):
    shop = build_shop(tmp_path)
    customer = shop.customers.add_customer("Jane Smith")

    reminder = shop.customers.add_reminder(customer.id, "2024-04-01", "Please settle INV-00001")
    assert reminder.status == "pending"

    sent = shop.customers.mark_reminder_sent(reminder.id)
    assert sent.status == "sent"
    assert [r.id for r in shop.customers.reminders_for(customer.id)] == [reminder.id]

    shop.customers.delete_reminder(reminder.id)
    assert shop.customers.reminders_for(customer.id) == []
    with pytest.raises(UnknownEntityError):
        shop.customers.mark_reminder_sent(reminder.id)
    with pytest.raises(ValidationError):
        shop.customers.add_reminder(customer.id, "2024-04-01", "")


def test_payment_and_opening_dates_are_normalized(tmp_path: Path):
    shop = build_shop(tmp_path)
    customer = shop.customers.add_customer("John Doe")

    shop.customers.post_opening_balance(customer.id, 100, date="2024-01-01")
    payment = shop.customers.record_payment(customer.id, 40, "cash", date="2024-03-01T10:30:00")

    assert payment.date == "2024-03-01 10:30:00"
    assert [e.date for e in shop.customers.ledger_for(customer.id)] == ["2024-01-01 00:00:00", "2024-03-01 10:30:00"]
    with pytest.raises(ValidationError, match="Invalid date"):
        shop.customers.record_payment(customer.id, 10, "cash", date="last tuesday")
    assert len(shop.customers.payments_for(customer.id)) == 1
