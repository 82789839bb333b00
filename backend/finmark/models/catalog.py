from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class Product(db.Model):
    """
    Catalog entry.

    product_id is the business key used in URLs and order lines; id is the
    surrogate key. Stock is a plain counter mutated by orders (conditional
    decrement) and by staff stock adjustments (direct set).
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("product_id", name="uq_products_product_id"),
        db.CheckConstraint("stock_quantity >= 0", name="ck_products_stock_non_negative"),
        db.CheckConstraint("min_stock_level >= 0", name="ck_products_min_stock_non_negative"),
        db.Index("ix_products_category_active", "category", "is_active"),
        db.Index("ix_products_active_created", "is_active", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    product_id = db.Column(db.String(20), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.String(500), nullable=False)
    category = db.Column(db.String(50), nullable=False)

    # Authoritative storage in cents (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=False)

    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    min_stock_level = db.Column(db.Integer, nullable=False, default=10)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    images = db.Column(db.JSON, nullable=False, default=list)
    specifications = db.Column(db.JSON, nullable=False, default=dict)
    supplier = db.Column(db.JSON, nullable=False, default=dict)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Product id={self.id} product_id={self.product_id!r} stock={self.stock_quantity}>"

    @property
    def in_stock(self) -> bool:
        return (self.stock_quantity or 0) > 0

    @property
    def low_stock(self) -> bool:
        return (self.stock_quantity or 0) <= (self.min_stock_level or 0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "price_cents": self.price_cents,
            "stock_quantity": self.stock_quantity,
            "min_stock_level": self.min_stock_level,
            "is_active": self.is_active,
            "images": list(self.images or []),
            "specifications": dict(self.specifications or {}),
            "supplier": dict(self.supplier or {}),
            "in_stock": self.in_stock,
            "low_stock": self.low_stock,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
