# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/finmark/routes/products.py
"""
Product catalog routes.

Reads are public and only ever expose active products.
Writes require the admin or manager role.
"""
from flask import Blueprint, current_app, request

from ..decorators import require_auth, require_role
from ..models import Product
from ..responses import failure, server_error, success, validation_failure
from ..roles import STAFF_ROLES
from ..services import products_service
from ..validation import (
    PRODUCT_POLICY,
    ConflictError,
    NotFoundError,
    ValidationError,
    enforce_rules_product,
    validate_payload,
    validate_stock_update,
)


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _flag(name: str) -> bool:
    return (request.args.get(name) or "").strip().lower() in {"1", "true", "yes"}


@products_bp.get("")
def list_products_route():
    """
    List active products.

    Query params:
    - category: exact category
    - search: case-insensitive text over name, description, product_id
    - in_stock: "true" keeps products with stock > 0
    - page: int (default 1)
    - limit: int (default 10, max 100)
    """
    try:
        result = products_service.list_products(
            category=request.args.get("category") or None,
            search=request.args.get("search"),
            in_stock=_flag("in_stock"),
            page=request.args.get("page", type=int),
            limit=request.args.get("limit", type=int),
        )
        return success(result)
    except Exception:
        current_app.logger.exception("Failed to list products")
        return server_error()


@products_bp.get("/categories")
def list_categories_route():
    return success({"categories": products_service.list_categories()})


@products_bp.get("/inventory/low-stock")
@require_auth
@require_role(*STAFF_ROLES)
def low_stock_route():
    products = products_service.low_stock_products()
    return success({"products": [p.to_dict() for p in products], "count": len(products)})


@products_bp.get("/<product_id>")
def get_product_route(product_id: str):
    try:
        return success({"product": products_service.get_product(product_id).to_dict()})
    except NotFoundError as e:
        return failure(str(e), 404)


@products_bp.post("")
@require_auth
@require_role(*STAFF_ROLES)
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
        product = products_service.create_product(patch=patch)
        return success({"product": product.to_dict()}, "Product created successfully", 201)
    except ValidationError as e:
        return validation_failure(e)
    except ConflictError as e:
        return failure(str(e), 409)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return server_error()


@products_bp.put("/<product_id>")
@require_auth
@require_role(*STAFF_ROLES)
def update_product_route(product_id: str):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
        product = products_service.update_product(product_id=product_id, patch=patch)
        return success({"product": product.to_dict()}, "Product updated successfully")
    except ValidationError as e:
        return validation_failure(e)
    except NotFoundError as e:
        return failure(str(e), 404)
    except ConflictError as e:
        return failure(str(e), 409)
    except Exception:
        current_app.logger.exception("Failed to update product")
        return server_error()


@products_bp.delete("/<product_id>")
@require_auth
@require_role(*STAFF_ROLES)
def delete_product_route(product_id: str):
    try:
        products_service.delete_product(product_id=product_id)
        return success(message="Product deleted successfully")
    except NotFoundError as e:
        return failure(str(e), 404)


@products_bp.put("/<product_id>/stock")
@require_auth
@require_role(*STAFF_ROLES)
def update_stock_route(product_id: str):
    try:
        patch = validate_stock_update(request.get_json(silent=True) or {})
        product = products_service.update_stock(product_id=product_id, patch=patch)
        return success({"product": product.to_dict()}, "Stock updated successfully")
    except ValidationError as e:
        return validation_failure(e)
    except NotFoundError as e:
        return failure(str(e), 404)
    except Exception:
        current_app.logger.exception("Failed to update stock")
        return server_error()
