# Overview: Request and role decorators for API routes.

from functools import wraps

from flask import g, request

from .extensions import db
from .models import User
from .responses import failure
from .services import token_service
from .services.token_service import TokenError


def require_auth(f):
    """
    Require a valid bearer token.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.token_claims: The decoded TokenClaims

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid or expired token
    - User no longer exists or is deactivated
    - Token role no longer matches the stored role
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return failure("Access denied. No token provided.", 401)

        token = auth_header.split(" ", 1)[1].strip()

        try:
            claims = token_service.decode_token(token)
        except TokenError as e:
            return failure(str(e), 401)

        user = db.session.get(User, claims.user_id)
        if not user:
            return failure("Token is valid but user no longer exists.", 401)
        if not user.is_active:
            return failure("Account has been deactivated.", 401)
        if user.role != claims.role:
            return failure("Token is no longer valid. Please login again.", 401)

        g.current_user = user
        g.token_claims = claims

        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """
    Require the authenticated user to hold one of `roles`.

    Must be used AFTER @require_auth.

    Usage:
        @bp.post("/")
        @require_auth
        @require_role("admin", "manager")
        def create_product_route():
            ...
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not hasattr(g, "current_user"):
                return failure("Authentication required", 401)

            if g.current_user.role not in roles:
                return failure(
                    f"Access denied. Required role: {' or '.join(roles)}. Your role: {g.current_user.role}",
                    403,
                )

            return f(*args, **kwargs)

        return decorated_function

    return decorator
