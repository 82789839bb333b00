# Overview: Transaction helpers shared by the stock-mutating services.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import Product


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). The session is rolled back before each
    retry so the operation starts from a clean transaction.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError):
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            current_app.logger.warning("Retrying after concurrency failure (attempt %s)", attempt + 1)
            time.sleep(backoff_base * (2 ** attempt))


def decrement_stock(product_pk: int, quantity: int) -> bool:
    """
    Conditionally take `quantity` units from a product.

    Single UPDATE guarded by stock_quantity >= quantity, so two transactions
    racing for the last units cannot both succeed. Returns False when the
    guard did not match (insufficient stock or product deactivated).

    In-session Product instances are not synchronized; the surrounding
    commit or rollback expires them.
    """
    result = db.session.execute(
        update(Product)
        .where(
            Product.id == product_pk,
            Product.is_active.is_(True),
            Product.stock_quantity >= quantity,
        )
        .values(stock_quantity=Product.stock_quantity - quantity)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def restore_stock(product_pk: int, quantity: int) -> bool:
    """Return `quantity` units to a product regardless of its active flag."""
    result = db.session.execute(
        update(Product)
        .where(Product.id == product_pk)
        .values(stock_quantity=Product.stock_quantity + quantity)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1
