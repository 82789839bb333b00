# Overview: Role-specific dashboard summaries.

from __future__ import annotations

from ..extensions import db
from ..models import Order, User
from ..models.orders import ORDER_STATUSES
from ..roles import ROLE_ADMIN, ROLE_LABELS, ROLE_MANAGER
from . import orders_service, products_service, users_service


def _customer_summary(user: User) -> dict:
    counts = {status: 0 for status in ORDER_STATUSES}
    for (status,) in db.session.query(Order.status).filter(Order.user_id == user.id).all():
        counts[status] += 1

    return {
        "total_orders": sum(counts.values()),
        "orders_by_status": counts,
        "recent_orders": [o.to_dict() for o in orders_service.recent_orders(user=user)],
    }


def _staff_summary() -> dict:
    return {
        "order_stats": orders_service.order_stats(),
        "low_stock_products": [p.to_dict() for p in products_service.low_stock_products()],
        "recent_orders": [o.to_dict() for o in orders_service.recent_orders()],
    }


def build_dashboard(user: User) -> dict:
    """
    Dashboard payload for the signed-in user.

    Customers get their own order history; staff get store-wide order stats
    and low-stock alerts; admins additionally get user and catalog counts.
    """
    payload = {
        "role": user.role,
        "role_label": ROLE_LABELS.get(user.role, user.role),
        "user": user.to_summary(),
    }

    if user.role in (ROLE_MANAGER, ROLE_ADMIN):
        payload.update(_staff_summary())
    else:
        payload.update(_customer_summary(user))

    if user.role == ROLE_ADMIN:
        payload["users_by_role"] = users_service.count_users_by_role()
        payload["active_products"] = products_service.count_active_products()

    return payload
