# backend/finmark/services/products_service.py
"""
Products Service

Catalog reads only ever return active products. Writes address products by
their business key (product_id) and never hard-delete: delete_product flips
is_active so order lines keep pointing at a real row.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import or_

from ..extensions import db
from ..models import Product
from ..validation import ConflictError, NotFoundError
from .pagination import paginate

PRODUCT_MUTABLE_FIELDS = {
    "product_id", "name", "description", "category", "price_cents",
    "stock_quantity", "min_stock_level", "is_active",
    "images", "specifications", "supplier",
}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _find_product(product_id: str, *, active_only: bool) -> Product | None:
    query = db.session.query(Product).filter(Product.product_id == product_id)
    if active_only:
        query = query.filter(Product.is_active.is_(True))
    return query.first()


def list_products(
    *,
    category: str | None = None,
    search: str | None = None,
    in_stock: bool = False,
    page: int | None = None,
    limit: int | None = None,
) -> dict:
    """
    Active products, newest first, with optional filters and pagination.

    Args:
        category: exact category match
        search: case-insensitive substring over name, description, product_id
        in_stock: only products with stock_quantity > 0
        page: page number (1-indexed)
        limit: items per page (default 10, max 100)
    """
    query = db.session.query(Product).filter(Product.is_active.is_(True))

    if category:
        query = query.filter(Product.category == category)

    if search and search.strip():
        pattern = f"%{_escape_like(search.strip())}%"
        query = query.filter(
            or_(
                Product.name.ilike(pattern, escape="\\"),
                Product.description.ilike(pattern, escape="\\"),
                Product.product_id.ilike(pattern, escape="\\"),
            )
        )

    if in_stock:
        query = query.filter(Product.stock_quantity > 0)

    query = query.order_by(Product.created_at.desc(), Product.id.desc())
    products, pagination = paginate(query, page, limit)
    return {
        "products": [p.to_dict() for p in products],
        "pagination": pagination,
    }


def get_product(product_id: str) -> Product:
    p = _find_product(product_id, active_only=True)
    if not p:
        raise NotFoundError("Product not found.")
    return p


def create_product(*, patch: dict) -> Product:
    """
    Create product using a validated patch dict.

    Raises:
        ConflictError: If product_id already exists (active or not)
    """
    product_id = patch["product_id"]
    if _find_product(product_id, active_only=False):
        raise ConflictError("Product ID already exists.")

    p = Product(stock_quantity=0, min_stock_level=10, images=[], specifications={}, supplier={})
    apply_product_patch(p, patch)

    db.session.add(p)
    db.session.commit()
    current_app.logger.info("Created product %s", p.product_id)
    return p


def update_product(*, product_id: str, patch: dict) -> Product:
    """
    Update a product, including inactive ones (is_active may be set back to true).

    Raises:
        NotFoundError: unknown product_id
        ConflictError: If new product_id already exists
    """
    p = _find_product(product_id, active_only=False)
    if not p:
        raise NotFoundError("Product not found.")

    if "product_id" in patch and patch["product_id"] != p.product_id:
        if _find_product(patch["product_id"], active_only=False):
            raise ConflictError("Product ID already exists.")

    apply_product_patch(p, patch)
    db.session.commit()
    return p


def delete_product(*, product_id: str) -> Product:
    """Soft-delete a product."""
    p = _find_product(product_id, active_only=False)
    if not p:
        raise NotFoundError("Product not found.")

    # Soft-delete only: preserve IDs and historical references.
    if p.is_active:
        p.is_active = False
        db.session.commit()
        current_app.logger.info("Deactivated product %s", p.product_id)
    return p


def update_stock(*, product_id: str, patch: dict) -> Product:
    """Directly set stock_quantity and/or min_stock_level (validated non-negative)."""
    p = _find_product(product_id, active_only=False)
    if not p:
        raise NotFoundError("Product not found.")

    previous = p.stock_quantity
    if "stock_quantity" in patch:
        p.stock_quantity = patch["stock_quantity"]
    if "min_stock_level" in patch:
        p.min_stock_level = patch["min_stock_level"]

    db.session.commit()
    current_app.logger.info(
        "Stock set for %s: %s -> %s (min %s)", p.product_id, previous, p.stock_quantity, p.min_stock_level
    )
    return p


def low_stock_products() -> list[Product]:
    """Active products at or below their minimum stock level, lowest stock first."""
    return (
        db.session.query(Product)
        .filter(
            Product.is_active.is_(True),
            Product.stock_quantity <= Product.min_stock_level,
        )
        .order_by(Product.stock_quantity.asc(), Product.product_id.asc())
        .all()
    )


def list_categories() -> list[str]:
    rows = (
        db.session.query(Product.category)
        .filter(Product.is_active.is_(True))
        .distinct()
        .order_by(Product.category.asc())
        .all()
    )
    return [row[0] for row in rows]


def count_active_products() -> int:
    return db.session.query(Product).filter(Product.is_active.is_(True)).count()
