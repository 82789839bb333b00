# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/finmark/routes/auth.py
"""Authentication and profile routes"""

from flask import Blueprint, current_app, g, request

from ..decorators import require_auth
from ..responses import failure, server_error, success, validation_failure
from ..services import auth_service
from ..services.auth_service import AuthenticationError, PasswordValidationError
from ..validation import (
    ConflictError,
    ValidationError,
    validate_login,
    validate_password_change,
    validate_profile_update,
    validate_registration,
)


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/register")
def register_route():
    """
    Self-registration.

    Returns 201 with {token, user}. Duplicate email is 409.
    """
    try:
        payload = validate_registration(request.get_json(silent=True) or {})
        user, token = auth_service.register(payload)
        return success({"token": token, "user": user.to_dict()}, "User registered successfully", 201)
    except PasswordValidationError as e:
        return validation_failure(e.to_validation_error())
    except ValidationError as e:
        return validation_failure(e)
    except ConflictError as e:
        return failure(str(e), 409)
    except Exception:
        current_app.logger.exception("Failed to register user")
        return server_error()


@auth_bp.post("/login")
def login_route():
    try:
        email, password = validate_login(request.get_json(silent=True) or {})
        user, token = auth_service.authenticate(email, password)
        return success({"token": token, "user": user.to_dict()}, "Login successful")
    except ValidationError as e:
        return validation_failure(e)
    except AuthenticationError as e:
        return failure(str(e), 401)
    except Exception:
        current_app.logger.exception("Failed to login")
        return server_error()


@auth_bp.get("/profile")
@require_auth
def get_profile_route():
    return success({"user": g.current_user.to_dict()})


@auth_bp.put("/profile")
@require_auth
def update_profile_route():
    try:
        patch = validate_profile_update(request.get_json(silent=True) or {})
        user = auth_service.update_profile(g.current_user, patch)
        return success({"user": user.to_dict()}, "Profile updated successfully")
    except ValidationError as e:
        return validation_failure(e)
    except ConflictError as e:
        return failure(str(e), 409)
    except Exception:
        current_app.logger.exception("Failed to update profile")
        return server_error()


@auth_bp.put("/change-password")
@require_auth
def change_password_route():
    try:
        current_password, new_password = validate_password_change(request.get_json(silent=True) or {})
        auth_service.change_password(g.current_user, current_password, new_password)
        return success(message="Password changed successfully")
    except PasswordValidationError as e:
        return validation_failure(e.to_validation_error())
    except ValidationError as e:
        return validation_failure(e)
    except AuthenticationError as e:
        return failure(str(e), 401)
    except Exception:
        current_app.logger.exception("Failed to change password")
        return server_error()
