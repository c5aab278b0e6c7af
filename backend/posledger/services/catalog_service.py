"""
Product catalog.

The ledger engine treats the catalog as an external collaborator: it reads
products by id and asks for stock writes. All stock writes go through
`apply_stock_delta` so every change lands in the StockMovement log.

Invariants:
- stock never goes negative
- every stock change has exactly one StockMovement with the resulting count
"""

from __future__ import annotations

import logging

from sqlalchemy import func

from ..extensions import db
from ..errors import NotFound, OutOfStock
from ..models import Product, StockMovement
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_product,
    validate_payload,
)
from posledger.time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry

logger = logging.getLogger(__name__)

MOVEMENT_SALE = "SALE"
MOVEMENT_REFUND_RESTOCK = "REFUND_RESTOCK"
MOVEMENT_RECEIVE = "RECEIVE"
MOVEMENT_ADJUST = "ADJUST"

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "category", "barcode", "price_cents", "cost_cents",
        "tax_rate_bps", "stock", "is_active",
    },
    required_on_create={"name", "price_cents"},
)

# Stock is changed through receive/adjust only, never by patch
PRODUCT_MUTABLE_FIELDS = PRODUCT_POLICY.writable_fields - {"stock"}


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if not product:
        raise NotFound(f"Product {product_id} not found", details={"product_id": product_id})
    return product


def find_by_barcode(barcode: str) -> Product:
    code = (barcode or "").strip()
    if not code:
        raise NotFound("Barcode required")
    product = db.session.query(Product).filter_by(barcode=code, is_active=True).first()
    if not product:
        raise NotFound(f"No product with barcode {code}", details={"barcode": code})
    return product


def search_products(
    term: str | None = None,
    category: str | None = None,
    include_inactive: bool = False,
) -> list[Product]:
    """Case-insensitive name match, optionally narrowed to one category."""
    query = db.session.query(Product)
    if not include_inactive:
        query = query.filter(Product.is_active.is_(True))
    if term:
        query = query.filter(func.lower(Product.name).contains(term.strip().lower()))
    if category and category.lower() != "all":
        query = query.filter(Product.category == category)
    return query.order_by(Product.name.asc(), Product.id.asc()).all()


def list_categories() -> list[str]:
    rows = db.session.query(Product.category).distinct().order_by(Product.category.asc()).all()
    return [row[0] for row in rows]


def _ensure_barcode_free(barcode: str | None, product_id: int | None = None) -> None:
    if not barcode:
        return
    existing = db.session.query(Product).filter_by(barcode=barcode).first()
    if existing and existing.id != product_id:
        raise ConflictError(f"Barcode {barcode} already assigned to product {existing.id}")


def create_product(payload: dict) -> Product:
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)
    _ensure_barcode_free(patch.get("barcode"))

    initial_stock = patch.pop("stock", None) or 0
    product = Product(stock=0, **patch)
    db.session.add(product)
    db.session.flush()

    if initial_stock:
        apply_stock_delta(product, initial_stock, MOVEMENT_RECEIVE, note="Opening stock")

    db.session.commit()
    logger.info("Created product %s (%s)", product.id, product.name)
    return product


def update_product(product_id: int, payload: dict) -> Product:
    """
    Patch catalog fields. Does not touch stock, and has no effect on
    transactions already recorded.
    """
    product = get_product(product_id)
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    if "stock" in patch:
        raise ValidationError("stock is changed through receive or adjust, not update")
    enforce_rules_product(patch)
    if "barcode" in patch:
        _ensure_barcode_free(patch["barcode"], product_id=product.id)

    for k, v in patch.items():
        if k in PRODUCT_MUTABLE_FIELDS:
            setattr(product, k, v)

    db.session.commit()
    return product


def apply_stock_delta(
    product: Product,
    quantity_delta: int,
    movement_type: str,
    *,
    transaction_id: int | None = None,
    actor_user_id: int | None = None,
    note: str | None = None,
    occurred_at=None,
) -> StockMovement:
    """
    Change on-hand stock and log the movement. Does not commit.

    Callers that must not partially apply (checkout, refund) validate every
    product first and call this only once all checks have passed.
    """
    new_stock = product.stock + quantity_delta
    if new_stock < 0:
        raise OutOfStock(
            f"Insufficient stock for {product.name}",
            details={
                "product_id": product.id,
                "requested_quantity": -quantity_delta,
                "on_hand": product.stock,
            },
        )

    product.stock = new_stock
    movement = StockMovement(
        product_id=product.id,
        type=movement_type,
        quantity_delta=quantity_delta,
        stock_after=new_stock,
        transaction_id=transaction_id,
        actor_user_id=actor_user_id,
        note=note,
        occurred_at=occurred_at or utcnow(),
    )
    db.session.add(movement)
    return movement


def receive_stock(product_id: int, quantity: int, actor_user_id: int | None = None, note: str | None = None) -> StockMovement:
    if quantity <= 0:
        raise ValidationError("quantity must be > 0 to receive stock")
    return _manual_stock_change(product_id, quantity, MOVEMENT_RECEIVE, actor_user_id, note)


def adjust_stock(product_id: int, quantity_delta: int, actor_user_id: int | None = None, note: str | None = None) -> StockMovement:
    if quantity_delta == 0:
        raise ValidationError("quantity_delta must be non-zero for an adjustment")
    return _manual_stock_change(product_id, quantity_delta, MOVEMENT_ADJUST, actor_user_id, note)


def _manual_stock_change(product_id, quantity_delta, movement_type, actor_user_id, note) -> StockMovement:
    def _op():
        product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if not product:
            raise NotFound(f"Product {product_id} not found", details={"product_id": product_id})
        movement = apply_stock_delta(
            product,
            quantity_delta,
            movement_type,
            actor_user_id=actor_user_id,
            note=note,
        )
        db.session.commit()
        return movement

    movement = run_with_retry(_op)
    logger.info(
        "Stock %s for product %s: %+d (now %s)",
        movement_type, product_id, quantity_delta, movement.stock_after,
    )
    return movement


def list_stock_movements(product_id: int | None = None, transaction_id: int | None = None) -> list[StockMovement]:
    query = db.session.query(StockMovement)
    if product_id is not None:
        query = query.filter_by(product_id=product_id)
    if transaction_id is not None:
        query = query.filter_by(transaction_id=transaction_id)
    return query.order_by(StockMovement.id.asc()).all()
