# Overview: Flask API routes for user administration and saved shipping addresses.

# backend/finmark/routes/users.py
"""
User routes.

/api/users/me/addresses is available to every signed-in user; everything
else under /api/users is admin-only.
"""

from flask import Blueprint, current_app, g, request

from ..decorators import require_auth, require_role
from ..responses import failure, server_error, success, validation_failure
from ..roles import ROLE_ADMIN
from ..services import address_service, users_service
from ..services.address_service import AddressError
from ..services.auth_service import PasswordValidationError
from ..services.users_service import SelfModificationError
from ..validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    validate_registration,
    validate_user_admin_update,
)


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


def _bool_arg(name: str):
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    return raw.strip().lower() in {"1", "true", "yes"}


# =============================================================================
# SHIPPING ADDRESSES (self-service)
# =============================================================================

@users_bp.get("/me/addresses")
@require_auth
def list_addresses_route():
    return success({"addresses": address_service.list_addresses(g.current_user)})


@users_bp.post("/me/addresses")
@require_auth
def add_address_route():
    try:
        addresses = address_service.add_address(g.current_user, request.get_json(silent=True))
        return success({"addresses": addresses}, "Address added successfully", 201)
    except ValidationError as e:
        return validation_failure(e)
    except AddressError as e:
        return failure(str(e), 400)
    except Exception:
        current_app.logger.exception("Failed to add address")
        return server_error()


@users_bp.put("/me/addresses/<int:index>")
@require_auth
def update_address_route(index: int):
    try:
        addresses = address_service.update_address(g.current_user, index, request.get_json(silent=True))
        return success({"addresses": addresses}, "Address updated successfully")
    except ValidationError as e:
        return validation_failure(e)
    except Exception:
        current_app.logger.exception("Failed to update address")
        return server_error()


@users_bp.delete("/me/addresses/<int:index>")
@require_auth
def delete_address_route(index: int):
    try:
        addresses = address_service.delete_address(g.current_user, index)
        return success({"addresses": addresses}, "Address deleted successfully")
    except ValidationError as e:
        return validation_failure(e)
    except Exception:
        current_app.logger.exception("Failed to delete address")
        return server_error()


# =============================================================================
# ADMIN USER MANAGEMENT
# =============================================================================

@users_bp.get("")
@require_auth
@require_role(ROLE_ADMIN)
def list_users_route():
    """
    List users (admin).

    Query params: role, is_active, page, limit
    """
    try:
        result = users_service.list_users(
            role=request.args.get("role") or None,
            is_active=_bool_arg("is_active"),
            page=request.args.get("page", type=int),
            limit=request.args.get("limit", type=int),
        )
        return success(result)
    except ValidationError as e:
        return validation_failure(e)


@users_bp.post("")
@require_auth
@require_role(ROLE_ADMIN)
def create_user_route():
    try:
        payload = validate_registration(request.get_json(silent=True) or {})
        user = users_service.admin_create_user(payload, g.current_user)
        return success({"user": user.to_dict()}, "User created successfully", 201)
    except PasswordValidationError as e:
        return validation_failure(e.to_validation_error())
    except ValidationError as e:
        return validation_failure(e)
    except ConflictError as e:
        return failure(str(e), 409)
    except Exception:
        current_app.logger.exception("Failed to create user")
        return server_error()


@users_bp.get("/<int:user_id>")
@require_auth
@require_role(ROLE_ADMIN)
def get_user_route(user_id: int):
    try:
        return success({"user": users_service.get_user(user_id).to_dict()})
    except NotFoundError as e:
        return failure(str(e), 404)


@users_bp.put("/<int:user_id>")
@require_auth
@require_role(ROLE_ADMIN)
def update_user_route(user_id: int):
    try:
        patch = validate_user_admin_update(request.get_json(silent=True) or {})
        user = users_service.update_user(user_id, patch, g.current_user)
        return success({"user": user.to_dict()}, "User updated successfully")
    except ValidationError as e:
        return validation_failure(e)
    except NotFoundError as e:
        return failure(str(e), 404)
    except ConflictError as e:
        return failure(str(e), 409)
    except SelfModificationError as e:
        return failure(str(e), 400)
    except Exception:
        current_app.logger.exception("Failed to update user")
        return server_error()


@users_bp.delete("/<int:user_id>")
@require_auth
@require_role(ROLE_ADMIN)
def deactivate_user_route(user_id: int):
    try:
        users_service.deactivate_user(user_id, g.current_user)
        return success(message="User deactivated successfully")
    except NotFoundError as e:
        return failure(str(e), 404)
    except SelfModificationError as e:
        return failure(str(e), 400)
