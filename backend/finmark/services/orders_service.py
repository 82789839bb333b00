# Overview: Service-layer operations for orders; stock decrement, lifecycle and statistics.

"""
Orders Service

An order is created in a single transaction: every line's stock is taken
with a conditional UPDATE and the order rows are inserted before one
commit. If any line fails the whole transaction is rolled back, so either
every decrement and the order persist together or nothing does.

Cancellation is the inverse: every line's quantity is returned to its
product in the same transaction that flips the status.
"""

from __future__ import annotations

import secrets
import string
import time
from datetime import timedelta

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Order, OrderItem, Product, User
from ..models.orders import ORDER_STATUSES, PAYMENT_STATUSES
from ..roles import is_staff
from ..time_utils import parse_iso_datetime, to_utc_z, utcnow
from ..validation import NotFoundError, ValidationError, field_error
from .address_service import get_address
from .concurrency import decrement_stock, lock_for_update, restore_stock, run_with_retry
from .pagination import paginate


# Forward-only lifecycle; cancelled sits outside it
ORDER_FLOW = ("pending", "confirmed", "processing", "shipped", "delivered")
TERMINAL_STATUSES = ("delivered", "cancelled")

_BASE36 = string.digits + string.ascii_uppercase


class OrderError(Exception):
    """
    Raised for order business-rule failures.

    kind is "unavailable" (product inactive or short on stock) or
    "invalid_transition" (status change not allowed from the current state).
    """

    UNAVAILABLE = "unavailable"
    INVALID_TRANSITION = "invalid_transition"

    def __init__(self, message: str, kind: str, details: dict | None = None):
        super().__init__(message)
        self.kind = kind
        self.details = details or {}


def generate_order_number() -> str:
    prefix = current_app.config["ORDER_NUMBER_PREFIX"]
    millis = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"{prefix}-{millis}-{suffix}"


def _find_by_idempotency_key(user_id: int, key: str | None) -> Order | None:
    if not key:
        return None
    return db.session.query(Order).filter_by(user_id=user_id, idempotency_key=key).first()


def _aggregate_quantities(items: list[dict]) -> dict[str, int]:
    totals: dict[str, int] = {}
    for item in items:
        totals[item["product_id"]] = totals.get(item["product_id"], 0) + item["quantity"]
    return totals


def _reserve_stock(items: list[dict]) -> dict[str, Product]:
    """
    Take stock for every requested product. Returns products keyed by product_id.

    Raises OrderError(unavailable) on the first product that is missing,
    inactive or short. The caller rolls back.
    """
    products: dict[str, Product] = {}
    for product_id, qty in _aggregate_quantities(items).items():
        product = lock_for_update(
            db.session.query(Product).filter(Product.product_id == product_id, Product.is_active.is_(True))
        ).first()
        if not product:
            raise OrderError(
                f"Product {product_id} is not available.",
                OrderError.UNAVAILABLE,
                {"product_id": product_id},
            )

        if product.stock_quantity < qty or not decrement_stock(product.id, qty):
            db.session.refresh(product)
            raise OrderError(
                f"Insufficient stock for {product.name}. Available: {product.stock_quantity}",
                OrderError.UNAVAILABLE,
                {
                    "product_id": product_id,
                    "requested_quantity": qty,
                    "available": product.stock_quantity,
                },
            )
        products[product_id] = product
    return products


def _build_order(user: User, data: dict, products: dict[str, Product], shipping_address: dict) -> Order:
    now = utcnow()
    order = Order(
        order_number=generate_order_number(),
        user_id=user.id,
        idempotency_key=data.get("idempotency_key"),
        customer_info=data["customer_info"],
        shipping_address=shipping_address,
        notes=data.get("notes"),
        status="pending",
        payment_status="pending",
        estimated_delivery_at=now + timedelta(days=current_app.config["ORDER_DELIVERY_DAYS"]),
        created_at=now,
        updated_at=now,
    )

    total = 0
    for item in data["items"]:
        product = products[item["product_id"]]
        line_total = product.price_cents * item["quantity"]
        total += line_total
        order.items.append(OrderItem(
            product_ref_id=product.id,
            product_id=product.product_id,
            product_name=product.name,
            quantity=item["quantity"],
            unit_price_cents=product.price_cents,
            line_total_cents=line_total,
        ))
    order.order_total_cents = total
    return order


def create_order(user: User, data: dict) -> tuple[Order, bool]:
    """
    Place an order from a validated payload (validation.validate_order_payload).

    Returns (order, replayed). replayed is True when the idempotency key
    matched an earlier order by the same user; stock is untouched then.

    Raises:
        OrderError: product unavailable or insufficient stock
        ValidationError: bad saved-address index
    """
    key = data.get("idempotency_key")
    existing = _find_by_idempotency_key(user.id, key)
    if existing:
        return existing, True

    if data.get("shipping_address") is not None:
        shipping_address = data["shipping_address"]
    else:
        shipping_address = get_address(user, data["shipping_address_index"])

    def _op():
        try:
            products = _reserve_stock(data["items"])
            order = _build_order(user, data, products, shipping_address)
            db.session.add(order)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return order

    try:
        order = run_with_retry(_op)
    except IntegrityError:
        # Lost a race with a concurrent request carrying the same key
        existing = _find_by_idempotency_key(user.id, key)
        if existing:
            return existing, True
        raise

    current_app.logger.info(
        "Order %s created by user %s: %s items, total %s cents",
        order.order_number, user.id, len(order.items), order.order_total_cents,
    )
    return order, False


def _validate_status_filter(status: str | None) -> None:
    if status and status not in ORDER_STATUSES:
        raise ValidationError(
            "Invalid status filter.",
            [field_error("status", f"Invalid order status (allowed: {', '.join(ORDER_STATUSES)})", status)],
        )


def _listing(query, page, limit) -> dict:
    query = query.order_by(Order.created_at.desc(), Order.id.desc())
    orders, pagination = paginate(query, page, limit)
    return {"orders": [o.to_dict() for o in orders], "pagination": pagination}


def list_user_orders(user: User, *, status: str | None = None, page=None, limit=None) -> dict:
    _validate_status_filter(status)
    query = db.session.query(Order).filter(Order.user_id == user.id)
    if status:
        query = query.filter(Order.status == status)
    return _listing(query, page, limit)


def list_all_orders(*, status: str | None = None, user_id: int | None = None, page=None, limit=None) -> dict:
    _validate_status_filter(status)
    query = db.session.query(Order)
    if status:
        query = query.filter(Order.status == status)
    if user_id is not None:
        query = query.filter(Order.user_id == user_id)
    return _listing(query, page, limit)


def get_order(order_id: int, user: User) -> Order:
    """Owners see their own orders, staff see all; anything else is not found."""
    order = db.session.get(Order, order_id)
    if not order or (order.user_id != user.id and not is_staff(user.role)):
        raise NotFoundError("Order not found.")
    return order


def _restore_order_stock(order: Order) -> None:
    for item in order.items:
        restore_stock(item.product_ref_id, item.quantity)


def _check_transition(current: str, target: str) -> None:
    if current in TERMINAL_STATUSES:
        raise OrderError(
            f"Cannot change status of a {current} order.",
            OrderError.INVALID_TRANSITION,
            {"current_status": current, "requested_status": target},
        )
    if target == "cancelled":
        return
    if ORDER_FLOW.index(target) < ORDER_FLOW.index(current):
        raise OrderError(
            f"Cannot move order from {current} back to {target}.",
            OrderError.INVALID_TRANSITION,
            {"current_status": current, "requested_status": target},
        )


def _cancel_locked(order: Order) -> None:
    _restore_order_stock(order)
    now = utcnow()
    order.status = "cancelled"
    order.cancelled_at = now
    order.updated_at = now


def update_order_status(order_id: int, patch: dict) -> Order:
    """
    Staff status change. patch comes from validation.validate_status_update.

    Re-sending the current status is a no-op for the status field.
    """
    def _op():
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
        target = patch.get("status")
        try:
            if not order:
                raise NotFoundError("Order not found.")

            if target and target != order.status:
                _check_transition(order.status, target)
                if target == "cancelled":
                    _cancel_locked(order)
                else:
                    order.status = target
                    if target == "delivered":
                        order.actual_delivery_at = utcnow()

            if "payment_status" in patch:
                order.payment_status = patch["payment_status"]
            if "notes" in patch:
                order.notes = patch["notes"]

            order.updated_at = utcnow()
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return order

    order = run_with_retry(_op)
    current_app.logger.info("Order %s status=%s payment=%s", order.order_number, order.status, order.payment_status)
    return order


def cancel_order(order_id: int, user: User) -> Order:
    """Customer cancellation. Only the owner may cancel; stock is restored."""
    def _op():
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
        try:
            if not order or order.user_id != user.id:
                raise NotFoundError("Order not found.")

            if order.status in TERMINAL_STATUSES:
                raise OrderError(
                    f"Cannot cancel a {order.status} order.",
                    OrderError.INVALID_TRANSITION,
                    {"current_status": order.status},
                )

            _cancel_locked(order)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return order

    order = run_with_retry(_op)
    current_app.logger.info("Order %s cancelled by user %s", order.order_number, user.id)
    return order


def order_stats(start: str | None = None, end: str | None = None) -> dict:
    """
    Aggregate counts and revenue over an optional inclusive created_at range.

    total_revenue_cents sums every matching order; net_revenue_cents leaves out
    cancelled ones. Date-only bounds cover whole days.
    """
    errors = []
    try:
        start_dt = parse_iso_datetime(start)
    except ValueError:
        errors.append(field_error("start_date", "Invalid date format", start))
        start_dt = None
    try:
        end_dt = parse_iso_datetime(end, end_of_day=True)
    except ValueError:
        errors.append(field_error("end_date", "Invalid date format", end))
        end_dt = None
    if errors:
        raise ValidationError("Invalid date range.", errors)

    filters = []
    if start_dt:
        filters.append(Order.created_at >= start_dt)
    if end_dt:
        filters.append(Order.created_at <= end_dt)

    total_orders = db.session.query(func.count(Order.id)).filter(*filters).scalar() or 0
    revenue_sum = func.coalesce(func.sum(Order.order_total_cents), 0)
    revenue = db.session.query(revenue_sum).filter(*filters).scalar()
    net_revenue = db.session.query(revenue_sum).filter(*filters, Order.status != "cancelled").scalar()

    status_rows = db.session.query(Order.status, func.count(Order.id)).filter(*filters).group_by(Order.status).all()
    payment_rows = (
        db.session.query(Order.payment_status, func.count(Order.id))
        .filter(*filters)
        .group_by(Order.payment_status)
        .all()
    )

    status_breakdown = {s: 0 for s in ORDER_STATUSES}
    status_breakdown.update({s: n for s, n in status_rows})
    payment_breakdown = {s: 0 for s in PAYMENT_STATUSES}
    payment_breakdown.update({s: n for s, n in payment_rows})

    return {
        "total_orders": total_orders,
        "total_revenue_cents": int(revenue or 0),
        "net_revenue_cents": int(net_revenue or 0),
        "status_breakdown": status_breakdown,
        "payment_breakdown": payment_breakdown,
        "range": {"start": to_utc_z(start_dt), "end": to_utc_z(end_dt)},
    }


def recent_orders(*, user: User | None = None, limit: int = 5) -> list[Order]:
    query = db.session.query(Order)
    if user is not None:
        query = query.filter(Order.user_id == user.id)
    return query.order_by(Order.created_at.desc(), Order.id.desc()).limit(limit).all()
