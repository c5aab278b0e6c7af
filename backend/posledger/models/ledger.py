from __future__ import annotations

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session

from ..extensions import db
from ..errors import ImmutableRecordError
from ..services.pricing_service import LinePricing, price_line
from posledger.time_utils import to_utc_z


TRANSACTION_STATUS_COMPLETED = "completed"
TRANSACTION_STATUS_PARTIALLY_REFUNDED = "partially_refunded"
TRANSACTION_STATUS_REFUNDED = "refunded"

TRANSACTION_STATUSES = (
    TRANSACTION_STATUS_COMPLETED,
    TRANSACTION_STATUS_PARTIALLY_REFUNDED,
    TRANSACTION_STATUS_REFUNDED,
)

# The only Transaction columns a refund may write
TRANSACTION_REFUND_FIELDS = frozenset({
    "status",
    "refund_amount_cents",
    "refund_date",
    "refund_reason",
    "refunded_by",
    "version_id",
})


class Transaction(db.Model):
    """
    Completed sale, created exactly once at checkout.

    Lines and monetary totals are frozen at creation. Only the refund
    tracking fields change afterwards, and 0 <= refund_amount_cents <=
    total_cents always holds.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.CheckConstraint("refund_amount_cents >= 0", name="ck_transactions_refund_non_negative"),
        db.CheckConstraint("refund_amount_cents <= total_cents", name="ck_transactions_refund_within_total"),
        db.Index("ix_transactions_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable document number (e.g., "T-000042")
    document_number = db.Column(db.String(64), nullable=False, unique=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    subtotal_cents = db.Column(db.Integer, nullable=False)
    total_tax_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)
    profit_cents = db.Column(db.Integer, nullable=False)

    payment_method = db.Column(db.String(32), nullable=False)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    cashier_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # Refund tracking (mutable)
    status = db.Column(db.String(32), nullable=False, default=TRANSACTION_STATUS_COMPLETED)
    refund_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    refund_date = db.Column(db.DateTime(timezone=True), nullable=True)
    refund_reason = db.Column(db.String(255), nullable=True)
    refunded_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    lines = db.relationship(
        "TransactionLine",
        backref="transaction",
        order_by="TransactionLine.position",
        lazy=True,
    )
    customer = db.relationship("Customer", backref=db.backref("transactions", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def refundable_cents(self) -> int:
        return self.total_cents - self.refund_amount_cents

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "document_number": self.document_number,
            "created_at": to_utc_z(self.created_at),
            "subtotal_cents": self.subtotal_cents,
            "total_tax_cents": self.total_tax_cents,
            "discount_cents": self.discount_cents,
            "total_cents": self.total_cents,
            "profit_cents": self.profit_cents,
            "payment_method": self.payment_method,
            "customer_id": self.customer_id,
            "cashier_id": self.cashier_id,
            "status": self.status,
            "refund_amount_cents": self.refund_amount_cents,
            "refundable_cents": self.refundable_cents,
            "refund_date": to_utc_z(self.refund_date) if self.refund_date else None,
            "refund_reason": self.refund_reason,
            "refunded_by": self.refunded_by,
            "version_id": self.version_id,
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class TransactionLine(db.Model):
    """
    Copy-by-value snapshot of one cart line.

    Holds the product's name, price, cost and tax rate as they were when the
    item entered the cart, so later catalog edits never reach history.
    """
    __tablename__ = "transaction_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(64), nullable=True)
    barcode = db.Column(db.String(64), nullable=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    unit_cost_cents = db.Column(db.Integer, nullable=False)
    tax_rate_bps = db.Column(db.Integer, nullable=False)

    # Display values; `pricing` recomputes the exact figures
    line_subtotal_cents = db.Column(db.Integer, nullable=False)
    line_tax_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    @property
    def pricing(self) -> LinePricing:
        return price_line(self.unit_price_cents, self.tax_rate_bps, self.quantity)

    @property
    def profit_cents(self) -> int:
        return (self.unit_price_cents - self.unit_cost_cents) * self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "position": self.position,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "category": self.category,
            "barcode": self.barcode,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "unit_cost_cents": self.unit_cost_cents,
            "tax_rate_bps": self.tax_rate_bps,
            "line_subtotal_cents": self.line_subtotal_cents,
            "line_tax_cents": self.line_tax_cents,
            "line_total_cents": self.line_total_cents,
        }


class RefundRecord(db.Model):
    """Append-only refund audit entry. Never updated, never deleted."""
    __tablename__ = "refund_records"
    __table_args__ = (
        db.CheckConstraint("amount_cents > 0", name="ck_refund_records_amount_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_number = db.Column(db.String(64), nullable=False, unique=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(255), nullable=False)
    refunded_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    payment_method = db.Column(db.String(32), nullable=False)

    transaction = db.relationship("Transaction", backref=db.backref("refunds", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_number": self.document_number,
            "transaction_id": self.transaction_id,
            "created_at": to_utc_z(self.created_at),
            "amount_cents": self.amount_cents,
            "reason": self.reason,
            "refunded_by": self.refunded_by,
            "payment_method": self.payment_method,
        }


class DocumentSequence(db.Model):
    """Counter per document type ("TRANSACTION", "REFUND")."""
    __tablename__ = "document_sequences"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    document_type = db.Column(db.String(32), nullable=False, unique=True)
    next_number = db.Column(db.Integer, nullable=False, default=1)


def _changed_columns(obj) -> set[str]:
    state = inspect(obj)
    return {
        attr.key
        for attr in state.mapper.column_attrs
        if state.attrs[attr.key].history.has_changes()
    }


@event.listens_for(Session, "before_flush")
def _guard_recorded_history(session, flush_context, instances):
    """Reject flushes that would rewrite a recorded sale or refund."""
    for obj in session.dirty:
        if isinstance(obj, Transaction):
            frozen = _changed_columns(obj) - TRANSACTION_REFUND_FIELDS
            if frozen:
                raise ImmutableRecordError(
                    f"Transaction {obj.id} is immutable",
                    details={"fields": sorted(frozen)},
                )
        elif isinstance(obj, (TransactionLine, RefundRecord)):
            changed = _changed_columns(obj)
            if changed:
                raise ImmutableRecordError(
                    f"{type(obj).__name__} {obj.id} is immutable",
                    details={"fields": sorted(changed)},
                )

    for obj in session.deleted:
        if isinstance(obj, (Transaction, TransactionLine, RefundRecord)):
            raise ImmutableRecordError(f"{type(obj).__name__} {obj.id} cannot be deleted")
