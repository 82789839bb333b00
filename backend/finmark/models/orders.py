from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


ORDER_STATUSES = ("pending", "confirmed", "processing", "shipped", "delivered", "cancelled")
PAYMENT_STATUSES = ("pending", "paid", "failed", "refunded")


class Order(db.Model):
    """
    Purchase document.

    Lines are snapshots taken at creation time and never change afterwards.
    order_total_cents is always the sum of line totals, computed server-side.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("order_number", name="uq_orders_order_number"),
        # Client retries with the same key resolve to the same order
        db.UniqueConstraint("user_id", "idempotency_key", name="uq_orders_user_idempotency_key"),
        db.Index("ix_orders_user_created", "user_id", "created_at"),
        db.Index("ix_orders_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(40), nullable=False)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    idempotency_key = db.Column(db.String(128), nullable=True)

    # Snapshot: first_name, last_name, email, phone
    customer_info = db.Column(db.JSON, nullable=False)

    order_total_cents = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default="pending")
    payment_status = db.Column(db.String(16), nullable=False, default="pending")

    # street, city, state, zip_code, country
    shipping_address = db.Column(db.JSON, nullable=False)
    notes = db.Column(db.String(500), nullable=True)

    estimated_delivery_at = db.Column(db.DateTime(timezone=True), nullable=True)
    actual_delivery_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    user = db.relationship("User", backref=db.backref("orders", lazy=True))
    items = db.relationship(
        "OrderItem",
        backref="order",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )

    def __repr__(self) -> str:
        return f"<Order id={self.id} number={self.order_number!r} status={self.status!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_number": self.order_number,
            "user_id": self.user_id,
            "user": self.user.to_summary() if self.user else None,
            "customer_info": dict(self.customer_info or {}),
            "items": [item.to_dict() for item in self.items],
            "order_total_cents": self.order_total_cents,
            "status": self.status,
            "payment_status": self.payment_status,
            "shipping_address": dict(self.shipping_address or {}),
            "notes": self.notes,
            "estimated_delivery_at": to_utc_z(self.estimated_delivery_at),
            "actual_delivery_at": to_utc_z(self.actual_delivery_at),
            "cancelled_at": to_utc_z(self.cancelled_at),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class OrderItem(db.Model):
    """Individual line items on an order."""
    __tablename__ = "order_items"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_order_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)

    # Surrogate key of the catalog row; stock is restored through it on cancel
    product_ref_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    # Business key at order time (product_id may be edited later)
    product_id = db.Column(db.String(20), nullable=False)
    product_name = db.Column(db.String(100), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
        }
