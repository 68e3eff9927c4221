from __future__ import annotations

import logging

from shopledger.application.container import AppContainer

log = logging.getLogger(__name__)

DEMO_PRODUCTS = [
    # name, sku, purchase, sale, stock, threshold
    ("Premium Rice 5kg", "RICE-001", 400, 550, 50, 10),
    ("Cooking Oil 1L", "OIL-102", 150, 185, 8, 10),
    ("Tea Leaves 250g", "TEA-45", 80, 110, 100, 20),
]

DEMO_CUSTOMERS = [
    # name, phone, address, opening balance
    ("John Doe", "555-0101", "123 Main St", 1500),
    ("Jane Smith", "555-0202", "456 Oak Ave", 0),
]


def seed_demo_data(container: AppContainer) -> bool:
    """Load the demo shop into an empty database. Returns False if there was data already."""
    if not container.repo.is_empty():
        return False

    container.profiles.ensure_profile("Demo Owner", "owner@example.com", "Demo General Store")

    for name, sku, purchase, sale, stock, threshold in DEMO_PRODUCTS:
        container.inventory.add_product(name, sku, purchase, sale, stock, threshold)

    for name, phone, address, opening in DEMO_CUSTOMERS:
        customer = container.customers.add_customer(name, phone, address)
        if opening:
            # keeps the outstanding total backed by a ledger entry
            container.customers.post_opening_balance(customer.id, opening)

    container.vendors.add_vendor("Metro Wholesale", "Ali Khan", "555-0303", "orders@metro.example", "12 Market Rd")

    log.info("demo_seeded products=%s customers=%s", len(DEMO_PRODUCTS), len(DEMO_CUSTOMERS))
    return True
