from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlparse

from sqlalchemy import Boolean, Integer, JSON, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .roles import ROLES, normalize_role


# Maximum price: $9,999,999.99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999

# Base64 data URLs are accepted for profile pictures
MAX_PROFILE_PICTURE_LENGTH = 10_000_000

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[A-Za-z]{2,}$")
PERSON_NAME_RE = re.compile(r"^[a-zA-Z\s]+$")
PRODUCT_ID_RE = re.compile(r"^[A-Z0-9-]+$")
ORDER_PHONE_RE = re.compile(r"^\+?\d{10,15}$")
PROFILE_PHONE_RE = re.compile(r"^((\+63)|0)9\d{9}$")
ZIP_4_RE = re.compile(r"^\d{4}$")

DEFAULT_FAILURE_MESSAGE = "Validation failed. Please check your input."


class ValidationError(ValueError):
    """400-level input problem, optionally with field-level detail."""

    def __init__(self, message: str = DEFAULT_FAILURE_MESSAGE, errors: list[dict] | None = None):
        super().__init__(message)
        self.errors = errors or []


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate product_id)."""


class NotFoundError(LookupError):
    """404-level missing record."""


def field_error(field: str, message: str, value: Any = None) -> dict:
    return {"field": field, "message": message, "value": value}


def raise_if_errors(errors: list[dict], message: str = DEFAULT_FAILURE_MESSAGE) -> None:
    if errors:
        raise ValidationError(message, errors)


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    """Coerce a raw JSON value to the column type; raises ValueError with a message."""
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped or "e" in stripped.lower() or "." in stripped:
                raise ValueError(f"{col.key} must be an integer")
            try:
                return int(stripped)
            except ValueError:
                raise ValueError(f"{col.key} must be an integer")
        if isinstance(value, float):
            raise ValueError(f"{col.key} must be an integer, not a decimal")
        raise ValueError(f"{col.key} must be an integer")

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in {"true", "false"}:
            return value.strip().lower() == "true"
        raise ValueError(f"{col.key} must be a boolean")

    # Structured columns are shape-checked by the enforce_rules_* functions
    if isinstance(coltype, JSON):
        return value

    if isinstance(coltype, (String, Text)):
        if isinstance(value, (dict, list)):
            raise ValueError(f"{col.key} must be a string")
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    All problems are collected and raised together as one ValidationError.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    errors: list[dict] = []
    required = policy.required_on_create or set()
    if not partial:
        for f in sorted(required):
            raw = payload.get(f)
            if raw is None or (isinstance(raw, str) and not raw.strip()):
                errors.append(field_error(f, f"{f} is required"))

    cols = _columns_by_key(model)

    patch: dict = {}
    for k, raw in payload.items():
        if k not in policy.writable_fields or k not in cols:
            errors.append(field_error(k, f"Field not allowed: {k}", raw))
            continue

        col = cols[k]
        if raw is None:
            if not col.nullable and (partial or k not in required):
                errors.append(field_error(k, f"{k} cannot be null"))
            continue

        try:
            val = _coerce_value(col, raw)
        except ValueError as e:
            errors.append(field_error(k, str(e), raw))
            continue

        if isinstance(col.type, (String, Text)) and not col.nullable and val == "":
            if k not in required or partial:
                errors.append(field_error(k, f"{k} cannot be blank", raw))
            continue

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                errors.append(field_error(k, f"{k} exceeds max length {col.type.length}", raw))
                continue

        patch[k] = val

    raise_if_errors(errors)
    return patch


def _check_length(errors: list[dict], field: str, value: Any, lo: int, hi: int, label: str) -> None:
    if not isinstance(value, str) or not (lo <= len(value.strip()) <= hi):
        errors.append(field_error(field, f"{label} must be between {lo} and {hi} characters", value))


def _is_url(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    parsed = urlparse(value.strip())
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


# =============================================================================
# PRODUCTS
# =============================================================================

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "product_id", "name", "description", "category", "price_cents",
        "stock_quantity", "min_stock_level", "is_active",
        "images", "specifications", "supplier",
    },
    required_on_create={"product_id", "name", "description", "category", "price_cents"},
)


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    errors: list[dict] = []

    if "product_id" in patch:
        pid = patch["product_id"]
        if not (3 <= len(pid) <= 20):
            errors.append(field_error("product_id", "Product ID must be between 3 and 20 characters", pid))
        elif not PRODUCT_ID_RE.match(pid):
            errors.append(field_error(
                "product_id",
                "Product ID can only contain uppercase letters, numbers, and hyphens",
                pid,
            ))

    if "name" in patch:
        _check_length(errors, "name", patch["name"], 1, 100, "Product name")
    if "description" in patch:
        _check_length(errors, "description", patch["description"], 10, 500, "Product description")
    if "category" in patch:
        _check_length(errors, "category", patch["category"], 2, 50, "Category")

    if "price_cents" in patch:
        price = patch["price_cents"]
        if price < 0:
            errors.append(field_error("price_cents", "price_cents must be >= 0", price))
        elif price > MAX_PRICE_CENTS:
            errors.append(field_error(
                "price_cents",
                f"price_cents cannot exceed {MAX_PRICE_CENTS} (${MAX_PRICE_CENTS / 100:,.2f})",
                price,
            ))

    for key, label in (("stock_quantity", "Stock quantity"), ("min_stock_level", "Minimum stock level")):
        if key in patch and patch[key] < 0:
            errors.append(field_error(key, f"{label} must be a non-negative integer", patch[key]))

    if "images" in patch:
        images = patch["images"]
        if not isinstance(images, list):
            errors.append(field_error("images", "Images must be an array", images))
        else:
            cleaned = []
            for i, url in enumerate(images):
                if not _is_url(url):
                    errors.append(field_error(f"images[{i}]", "Each image must be a valid URL", url))
                else:
                    cleaned.append(url.strip())
            patch["images"] = cleaned

    if "specifications" in patch:
        specs = patch["specifications"]
        if not isinstance(specs, dict):
            errors.append(field_error("specifications", "Specifications must be an object", specs))
        else:
            patch["specifications"] = {str(k).strip(): str(v).strip() for k, v in specs.items()}

    if "supplier" in patch:
        supplier = patch["supplier"]
        if not isinstance(supplier, dict):
            errors.append(field_error("supplier", "Supplier must be an object", supplier))
        else:
            cleaned = {}
            if supplier.get("name") is not None:
                _check_length(errors, "supplier.name", supplier["name"], 2, 100, "Supplier name")
                cleaned["name"] = str(supplier["name"]).strip()
            if supplier.get("contact") is not None:
                _check_length(errors, "supplier.contact", supplier["contact"], 5, 100, "Supplier contact")
                cleaned["contact"] = str(supplier["contact"]).strip()
            patch["supplier"] = cleaned

    raise_if_errors(errors)


def validate_stock_update(payload: dict) -> dict:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    errors: list[dict] = []
    patch: dict = {}
    for key, label in (("stock_quantity", "Stock quantity"), ("min_stock_level", "Minimum stock level")):
        if key not in payload or payload[key] is None:
            continue
        value = payload[key]
        if isinstance(value, bool) or not isinstance(value, int):
            errors.append(field_error(key, f"{label} must be a non-negative integer", value))
        elif value < 0:
            errors.append(field_error(key, f"{label} cannot be negative.", value))
        else:
            patch[key] = value

    if not errors and not patch:
        errors.append(field_error("stock_quantity", "stock_quantity or min_stock_level is required"))
    raise_if_errors(errors)
    return patch


# =============================================================================
# USERS & AUTH
# =============================================================================

def validate_email(errors: list[dict], value: Any, field: str = "email") -> str | None:
    if not isinstance(value, str) or not EMAIL_RE.match(value.strip()):
        errors.append(field_error(field, "Please enter a valid email address", value))
        return None
    return value.strip().lower()


def validate_person_name(errors: list[dict], value: Any, field: str, label: str) -> str | None:
    if not isinstance(value, str) or not (2 <= len(value.strip()) <= 50):
        errors.append(field_error(field, f"{label} must be between 2 and 50 characters", value))
        return None
    if not PERSON_NAME_RE.match(value.strip()):
        errors.append(field_error(field, f"{label} can only contain letters and spaces", value))
        return None
    return value.strip()


def validate_role(errors: list[dict], value: Any, field: str = "role") -> str | None:
    role = normalize_role(value) if isinstance(value, str) else None
    if role is None:
        errors.append(field_error(field, f"Invalid role specified (allowed: {', '.join(ROLES)})", value))
    return role


def validate_registration(payload: dict) -> dict:
    """
    Validate a self-registration payload.

    Password strength is checked separately by auth_service so the same
    rules apply to every path that sets a password.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    errors: list[dict] = []
    clean = {
        "email": validate_email(errors, payload.get("email")),
        "first_name": validate_person_name(errors, payload.get("first_name"), "first_name", "First name"),
        "last_name": validate_person_name(errors, payload.get("last_name"), "last_name", "Last name"),
        "password": payload.get("password"),
        "role": None,
    }
    if not isinstance(clean["password"], str) or not clean["password"]:
        errors.append(field_error("password", "Password is required"))
    if payload.get("role") is not None:
        clean["role"] = validate_role(errors, payload.get("role"))

    raise_if_errors(errors)
    return clean


def validate_login(payload: dict) -> tuple[str, str]:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    errors: list[dict] = []
    email = validate_email(errors, payload.get("email"))
    password = payload.get("password")
    if not isinstance(password, str) or not password:
        errors.append(field_error("password", "Password is required"))
    raise_if_errors(errors)
    return email, password


def validate_password_change(payload: dict) -> tuple[str, str]:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    errors: list[dict] = []
    fields = {}
    for name, label in (("current_password", "Current password"), ("new_password", "New password")):
        value = payload.get(name)
        if not isinstance(value, str) or not value:
            errors.append(field_error(name, f"{label} is required"))
        fields[name] = value
    raise_if_errors(errors)
    return fields["current_password"], fields["new_password"]


def validate_profile_address(errors: list[dict], address: Any) -> dict | None:
    if not isinstance(address, dict):
        errors.append(field_error("address", "Address must be an object", address))
        return None

    clean = {}
    for key, label in (
        ("street", "Street address"),
        ("barangay", "Barangay"),
        ("city", "City/Municipality"),
        ("province", "Province"),
        ("country", "Country"),
    ):
        if key in address:
            _check_length(errors, f"address.{key}", address[key], 2, 100, label)
            clean[key] = str(address[key] or "").strip()
    if "zip_code" in address:
        zip_code = address["zip_code"]
        if not isinstance(zip_code, str) or not ZIP_4_RE.match(zip_code.strip()):
            errors.append(field_error("address.zip_code", "ZIP Code must be 4 digits", zip_code))
        else:
            clean["zip_code"] = zip_code.strip()
    return clean


def validate_profile_update(payload: dict) -> dict:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    allowed = {"first_name", "last_name", "email", "phone", "address", "profile_picture"}
    errors: list[dict] = [
        field_error(k, f"Field not allowed: {k}", payload[k]) for k in payload if k not in allowed
    ]
    patch: dict = {}

    if "first_name" in payload:
        patch["first_name"] = validate_person_name(errors, payload["first_name"], "first_name", "First name")
    if "last_name" in payload:
        patch["last_name"] = validate_person_name(errors, payload["last_name"], "last_name", "Last name")
    if "email" in payload:
        patch["email"] = validate_email(errors, payload["email"])
    if "phone" in payload:
        phone = payload["phone"]
        if not isinstance(phone, str) or not PROFILE_PHONE_RE.match(phone.strip()):
            errors.append(field_error("phone", "Please enter a valid Philippine phone number", phone))
        else:
            patch["phone"] = phone.strip()
    if "address" in payload:
        patch["address"] = validate_profile_address(errors, payload["address"])
    if "profile_picture" in payload:
        picture = payload["profile_picture"]
        if not isinstance(picture, str):
            errors.append(field_error("profile_picture", "Profile picture must be a valid string"))
        elif len(picture) > MAX_PROFILE_PICTURE_LENGTH:
            errors.append(field_error("profile_picture", "Profile picture is too large"))
        else:
            patch["profile_picture"] = picture

    raise_if_errors(errors)
    return patch


def validate_user_admin_update(payload: dict) -> dict:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    allowed = {"first_name", "last_name", "email", "role", "is_active"}
    errors: list[dict] = [
        field_error(k, f"Field not allowed: {k}", payload[k]) for k in payload if k not in allowed
    ]
    patch: dict = {}

    if "first_name" in payload:
        patch["first_name"] = validate_person_name(errors, payload["first_name"], "first_name", "First name")
    if "last_name" in payload:
        patch["last_name"] = validate_person_name(errors, payload["last_name"], "last_name", "Last name")
    if "email" in payload:
        patch["email"] = validate_email(errors, payload["email"])
    if "role" in payload:
        patch["role"] = validate_role(errors, payload["role"])
    if "is_active" in payload:
        if not isinstance(payload["is_active"], bool):
            errors.append(field_error("is_active", "is_active must be a boolean", payload["is_active"]))
        else:
            patch["is_active"] = payload["is_active"]

    raise_if_errors(errors)
    return patch


# =============================================================================
# ORDERS & ADDRESSES
# =============================================================================

def validate_shipping_address(errors: list[dict], value: Any, field: str = "shipping_address") -> dict | None:
    if not isinstance(value, dict):
        errors.append(field_error(field, "Shipping address must be an object", value))
        return None

    clean = {}
    for key, label in (("street", "Street address"), ("city", "City"), ("state", "State"), ("zip_code", "ZIP code")):
        raw = value.get(key)
        if not isinstance(raw, str) or not raw.strip():
            errors.append(field_error(f"{field}.{key}", f"{label} is required", raw))
        elif len(raw.strip()) > 100:
            errors.append(field_error(f"{field}.{key}", f"{label} cannot exceed 100 characters", raw))
        else:
            clean[key] = raw.strip()

    country = value.get("country")
    if country is None or (isinstance(country, str) and not country.strip()):
        clean["country"] = "USA"
    elif not isinstance(country, str) or len(country.strip()) > 100:
        errors.append(field_error(f"{field}.country", "Country must be a string up to 100 characters", country))
    else:
        clean["country"] = country.strip()
    return clean


def validate_customer_info(errors: list[dict], value: Any) -> dict | None:
    if not isinstance(value, dict):
        errors.append(field_error("customer_info", "Customer info must be an object", value))
        return None

    clean = {
        "first_name": validate_person_name(
            errors, value.get("first_name"), "customer_info.first_name", "Customer first name"
        ),
        "last_name": validate_person_name(
            errors, value.get("last_name"), "customer_info.last_name", "Customer last name"
        ),
        "email": validate_email(errors, value.get("email"), "customer_info.email"),
        "phone": None,
    }
    phone = value.get("phone")
    if not isinstance(phone, str) or not phone.strip():
        errors.append(field_error("customer_info.phone", "Customer phone number is required", phone))
    elif not ORDER_PHONE_RE.match(phone.strip()):
        errors.append(field_error("customer_info.phone", "Please enter a valid phone number", phone))
    else:
        clean["phone"] = phone.strip()
    return clean


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_order_payload(payload: dict) -> dict:
    """
    Validate an order submission.

    Either shipping_address or shipping_address_index (a saved address) must
    be given. unit_price_cents is optional and only range-checked; the
    catalog price is what gets snapshotted.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    errors: list[dict] = []
    clean: dict = {
        "customer_info": validate_customer_info(errors, payload.get("customer_info")),
        "shipping_address": None,
        "shipping_address_index": None,
        "items": [],
        "notes": None,
        "idempotency_key": None,
    }

    if payload.get("shipping_address") is not None:
        clean["shipping_address"] = validate_shipping_address(errors, payload["shipping_address"])
    elif payload.get("shipping_address_index") is not None:
        index = payload["shipping_address_index"]
        if not _is_int(index) or index < 0:
            errors.append(field_error("shipping_address_index", "Invalid address index.", index))
        else:
            clean["shipping_address_index"] = index
    else:
        errors.append(field_error("shipping_address", "Shipping address is required"))

    items = payload.get("items")
    if not isinstance(items, list) or not items:
        errors.append(field_error("items", "Order must contain at least one item", items))
        items = []

    for i, item in enumerate(items):
        prefix = f"items[{i}]"
        if not isinstance(item, dict):
            errors.append(field_error(prefix, "Each item must be an object", item))
            continue

        product_id = item.get("product_id")
        if not isinstance(product_id, str) or not product_id.strip():
            errors.append(field_error(f"{prefix}.product_id", "Product ID is required for each item", product_id))

        quantity = item.get("quantity")
        if not _is_int(quantity) or quantity < 1:
            errors.append(field_error(f"{prefix}.quantity", "Quantity must be a positive integer", quantity))

        unit_price = item.get("unit_price_cents")
        if unit_price is not None and (not _is_int(unit_price) or unit_price < 0):
            errors.append(field_error(
                f"{prefix}.unit_price_cents", "Unit price must be a non-negative integer", unit_price
            ))

        product_name = item.get("product_name")
        if product_name is not None and (not isinstance(product_name, str) or len(product_name.strip()) > 100):
            errors.append(field_error(
                f"{prefix}.product_name", "Product name must be between 1 and 100 characters", product_name
            ))

        clean["items"].append({
            "product_id": product_id.strip() if isinstance(product_id, str) else product_id,
            "product_name": product_name.strip() if isinstance(product_name, str) else None,
            "quantity": quantity,
            "unit_price_cents": unit_price,
        })

    notes = payload.get("notes")
    if notes is not None:
        if not isinstance(notes, str) or len(notes.strip()) > 500:
            errors.append(field_error("notes", "Notes cannot exceed 500 characters", notes))
        else:
            clean["notes"] = notes.strip() or None

    key = payload.get("idempotency_key")
    if key is not None:
        if not isinstance(key, str) or not (1 <= len(key.strip()) <= 128):
            errors.append(field_error("idempotency_key", "Idempotency key must be 1-128 characters", key))
        else:
            clean["idempotency_key"] = key.strip()

    raise_if_errors(errors)
    return clean


def validate_status_update(payload: dict, *, statuses: tuple, payment_statuses: tuple) -> dict:
    """Validate a staff status change; at least one of status / payment_status / notes."""
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    errors: list[dict] = []
    patch: dict = {}

    status = payload.get("status")
    if status is not None:
        if status not in statuses:
            errors.append(field_error("status", f"Invalid order status (allowed: {', '.join(statuses)})", status))
        else:
            patch["status"] = status

    payment_status = payload.get("payment_status")
    if payment_status is not None:
        if payment_status not in payment_statuses:
            errors.append(field_error(
                "payment_status",
                f"Invalid payment status (allowed: {', '.join(payment_statuses)})",
                payment_status,
            ))
        else:
            patch["payment_status"] = payment_status

    if "notes" in payload:
        notes = payload["notes"]
        if notes is None:
            patch["notes"] = None
        elif not isinstance(notes, str) or len(notes.strip()) > 500:
            errors.append(field_error("notes", "Notes cannot exceed 500 characters", notes))
        else:
            patch["notes"] = notes.strip() or None

    if not errors and not patch:
        errors.append(field_error("status", "status, payment_status or notes is required"))
    raise_if_errors(errors)
    return patch
