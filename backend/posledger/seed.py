# Overview: Demo catalog, customers and staff for a fresh in-memory database.

from __future__ import annotations

from .extensions import db
from .models import Customer, Product, User
from .services import auth_service, catalog_service

DEMO_PRODUCTS = [
    # name, price_cents, cost_cents, stock, category, barcode, tax_rate_bps
    ("iPhone 15 Pro", 99999, 75000, 15, "Electronics", "123456789012", 1800),
    ("Samsung Galaxy Buds", 14999, 10000, 8, "Electronics", "123456789013", 1800),
    ("MacBook Air M2", 119999, 95000, 8, "Electronics", "123456789014", 1800),
    ("Coffee Mug", 1299, 600, 25, "Home & Garden", "123456789015", 1200),
    ("Notebook Set", 899, 450, 2, "Stationery", "123456789016", 1200),
    ("Wireless Mouse", 2999, 1800, 12, "Electronics", "123456789017", 1800),
]

DEMO_CUSTOMERS = [
    ("John Doe", "+1-555-0123", "john.doe@email.com", 150),
    ("Jane Smith", "+1-555-0124", "jane.smith@email.com", 89),
    ("Mike Johnson", "+1-555-0125", "mike.j@email.com", 245),
]

DEMO_USERS = [
    # username, name, password, role
    ("admin", "Admin User", "admin123", "admin"),
    ("cashier", "Cashier User", "cashier123", "cashier"),
]


def seed_demo_data() -> dict:
    """
    Insert the demo records that are missing. Safe to call repeatedly.

    Returns how many rows of each kind were created.
    """
    created = {"products": 0, "customers": 0, "users": 0}

    for name, price, cost, stock, category, barcode, tax in DEMO_PRODUCTS:
        if db.session.query(Product).filter_by(barcode=barcode).first():
            continue
        catalog_service.create_product({
            "name": name,
            "price_cents": price,
            "cost_cents": cost,
            "stock": stock,
            "category": category,
            "barcode": barcode,
            "tax_rate_bps": tax,
        })
        created["products"] += 1

    for name, phone, email, points in DEMO_CUSTOMERS:
        if db.session.query(Customer).filter_by(email=email).first():
            continue
        db.session.add(Customer(name=name, phone=phone, email=email, loyalty_points=points))
        created["customers"] += 1
    db.session.commit()

    for username, name, password, role in DEMO_USERS:
        if db.session.query(User).filter_by(username=username).first():
            continue
        auth_service.create_user(username, name, password, role)
        created["users"] += 1

    return created
