# Overview: Bearer token issuance and verification.

"""
Access tokens are HS256 JWTs (PyJWT) carrying the user id, email and role
with a fixed expiry (TOKEN_TTL_HOURS, 24h by default).

Tokens are stateless: there is no server-side revocation list. Deactivating
a user or changing their role invalidates outstanding tokens because
require_auth re-checks both against the stored user on every request.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt
from flask import current_app


class TokenError(Exception):
    """Raised when a bearer token cannot be accepted (401)."""


class TokenExpiredError(TokenError):
    pass


@dataclass(frozen=True)
class TokenClaims:
    user_id: int
    email: str
    role: str
    expires_at: datetime


def issue_token(user) -> str:
    """Sign a token for `user` (any object with id, email and role)."""
    now = datetime.now(timezone.utc)
    ttl = timedelta(hours=current_app.config["TOKEN_TTL_HOURS"])
    payload = {
        # PyJWT requires a string subject
        "sub": str(user.id),
        "email": user.email,
        "role": user.role,
        "iat": now,
        "exp": now + ttl,
    }
    return jwt.encode(
        payload,
        current_app.config["JWT_SECRET_KEY"],
        algorithm=current_app.config["JWT_ALGORITHM"],
    )


def decode_token(token: str) -> TokenClaims:
    try:
        payload = jwt.decode(
            token,
            current_app.config["JWT_SECRET_KEY"],
            algorithms=[current_app.config["JWT_ALGORITHM"]],
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpiredError("Token has expired. Please login again.")
    except jwt.InvalidTokenError:
        raise TokenError("Invalid token provided.")

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise TokenError("Invalid token provided.")

    return TokenClaims(
        user_id=user_id,
        email=payload.get("email", ""),
        role=payload.get("role", ""),
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
    )
