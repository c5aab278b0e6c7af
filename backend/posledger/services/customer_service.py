# Overview: Read-side access to the customer directory.

from __future__ import annotations

from sqlalchemy import func, or_

from ..extensions import db
from ..errors import NotFound
from ..models import Customer
from ..validation import ValidationError


def get_customer(customer_id: int) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if not customer:
        raise NotFound(f"Customer {customer_id} not found", details={"customer_id": customer_id})
    return customer


def search_customers(term: str | None = None) -> list[Customer]:
    """Match on name, phone or email."""
    query = db.session.query(Customer)
    if term:
        needle = f"%{term.strip().lower()}%"
        query = query.filter(or_(
            func.lower(Customer.name).like(needle),
            Customer.phone.like(needle),
            func.lower(Customer.email).like(needle),
        ))
    return query.order_by(Customer.name.asc()).all()


def create_customer(name: str, phone: str | None = None, email: str | None = None) -> Customer:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("name required")
    customer = Customer(name=name.strip(), phone=phone, email=email)
    db.session.add(customer)
    db.session.commit()
    return customer
