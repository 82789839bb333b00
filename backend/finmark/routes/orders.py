# Overview: Flask API routes for orders operations; parses input and returns JSON responses.

# backend/finmark/routes/orders.py
"""Order routes with role enforcement"""

from flask import Blueprint, current_app, g, request

from ..decorators import require_auth, require_role
from ..models.orders import ORDER_STATUSES, PAYMENT_STATUSES
from ..responses import failure, server_error, success, validation_failure
from ..roles import STAFF_ROLES
from ..services import orders_service
from ..services.orders_service import OrderError
from ..validation import NotFoundError, ValidationError, validate_order_payload, validate_status_update


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _order_error(e: OrderError):
    return failure(str(e), 400, kind=e.kind, details=e.details)


@orders_bp.post("")
@require_auth
def create_order_route():
    """
    Place an order for the authenticated user.

    An Idempotency-Key header (or idempotency_key body field) makes retries
    safe: the same key returns the original order with replayed=true.
    """
    payload = request.get_json(silent=True) or {}
    header_key = request.headers.get("Idempotency-Key")
    if header_key and isinstance(payload, dict):
        payload = {**payload, "idempotency_key": header_key}

    try:
        data = validate_order_payload(payload)
        order, replayed = orders_service.create_order(g.current_user, data)
        if replayed:
            return success({"order": order.to_dict(), "replayed": True}, "Order already placed")
        return success({"order": order.to_dict(), "replayed": False}, "Order created successfully", 201)
    except ValidationError as e:
        return validation_failure(e)
    except OrderError as e:
        return _order_error(e)
    except Exception:
        current_app.logger.exception("Failed to create order")
        return server_error()


@orders_bp.get("")
@require_auth
def list_my_orders_route():
    try:
        result = orders_service.list_user_orders(
            g.current_user,
            status=request.args.get("status") or None,
            page=request.args.get("page", type=int),
            limit=request.args.get("limit", type=int),
        )
        return success(result)
    except ValidationError as e:
        return validation_failure(e)


@orders_bp.get("/all")
@require_auth
@require_role(*STAFF_ROLES)
def list_all_orders_route():
    """
    List every order (staff).

    Query params: status, user_id, page, limit
    """
    try:
        result = orders_service.list_all_orders(
            status=request.args.get("status") or None,
            user_id=request.args.get("user_id", type=int),
            page=request.args.get("page", type=int),
            limit=request.args.get("limit", type=int),
        )
        return success(result)
    except ValidationError as e:
        return validation_failure(e)


@orders_bp.get("/stats")
@require_auth
@require_role(*STAFF_ROLES)
def order_stats_route():
    try:
        stats = orders_service.order_stats(
            start=request.args.get("start_date"),
            end=request.args.get("end_date"),
        )
        return success({"stats": stats})
    except ValidationError as e:
        return validation_failure(e)
    except Exception:
        current_app.logger.exception("Failed to compute order stats")
        return server_error()


@orders_bp.get("/<int:order_id>")
@require_auth
def get_order_route(order_id: int):
    try:
        return success({"order": orders_service.get_order(order_id, g.current_user).to_dict()})
    except NotFoundError as e:
        return failure(str(e), 404)


@orders_bp.put("/<int:order_id>/status")
@require_auth
@require_role(*STAFF_ROLES)
def update_order_status_route(order_id: int):
    try:
        patch = validate_status_update(
            request.get_json(silent=True) or {},
            statuses=ORDER_STATUSES,
            payment_statuses=PAYMENT_STATUSES,
        )
        order = orders_service.update_order_status(order_id, patch)
        return success({"order": order.to_dict()}, "Order status updated successfully")
    except ValidationError as e:
        return validation_failure(e)
    except NotFoundError as e:
        return failure(str(e), 404)
    except OrderError as e:
        return _order_error(e)
    except Exception:
        current_app.logger.exception("Failed to update order status")
        return server_error()


@orders_bp.put("/<int:order_id>/cancel")
@require_auth
def cancel_order_route(order_id: int):
    try:
        order = orders_service.cancel_order(order_id, g.current_user)
        return success({"order": order.to_dict()}, "Order cancelled successfully")
    except NotFoundError as e:
        return failure(str(e), 404)
    except OrderError as e:
        return _order_error(e)
    except Exception:
        current_app.logger.exception("Failed to cancel order")
        return server_error()
