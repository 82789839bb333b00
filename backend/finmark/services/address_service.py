# Overview: Saved shipping addresses stored on the user row.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import User
from ..validation import ValidationError, field_error, raise_if_errors, validate_shipping_address


MAX_SHIPPING_ADDRESSES = 2

INVALID_INDEX_MESSAGE = "Invalid address index."


class AddressError(Exception):
    """Raised when a user is at address capacity."""


def _check_index(addresses: list, index: int) -> None:
    if not isinstance(index, int) or index < 0 or index >= len(addresses):
        raise ValidationError(INVALID_INDEX_MESSAGE, [field_error("index", INVALID_INDEX_MESSAGE, index)])


def _validated(payload) -> dict:
    errors: list[dict] = []
    address = validate_shipping_address(errors, payload, field="address")
    raise_if_errors(errors)
    return address


def list_addresses(user: User) -> list[dict]:
    return [dict(a) for a in (user.shipping_addresses or [])]


def get_address(user: User, index: int) -> dict:
    addresses = list_addresses(user)
    _check_index(addresses, index)
    return addresses[index]


def add_address(user: User, payload: dict) -> list[dict]:
    addresses = list_addresses(user)
    if len(addresses) >= MAX_SHIPPING_ADDRESSES:
        raise AddressError(f"You can only save up to {MAX_SHIPPING_ADDRESSES} shipping addresses.")

    addresses.append(_validated(payload))
    # JSON columns only track reassignment
    user.shipping_addresses = addresses
    db.session.commit()
    current_app.logger.info("User %s saved shipping address #%s", user.id, len(addresses) - 1)
    return addresses


def update_address(user: User, index: int, payload: dict) -> list[dict]:
    addresses = list_addresses(user)
    _check_index(addresses, index)

    addresses[index] = _validated(payload)
    user.shipping_addresses = addresses
    db.session.commit()
    return addresses


def delete_address(user: User, index: int) -> list[dict]:
    addresses = list_addresses(user)
    _check_index(addresses, index)

    del addresses[index]
    user.shipping_addresses = addresses
    db.session.commit()
    return addresses
