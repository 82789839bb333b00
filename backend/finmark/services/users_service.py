# Overview: Admin user management; list, create, update and soft-deactivate accounts.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import User
from ..roles import ROLE_ADMIN, ROLES, normalize_role
from ..validation import ConflictError, ValidationError, field_error
from .auth_service import create_user, get_user
from .pagination import paginate


class SelfModificationError(Exception):
    """Raised when an admin tries to lock themselves out (400)."""


def list_users(*, role: str | None = None, is_active: bool | None = None, page=None, limit=None) -> dict:
    """All users newest first, optionally filtered by role and active flag."""
    if role is not None:
        canonical = normalize_role(role)
        if canonical is None:
            raise ValidationError(
                "Invalid role filter.",
                [field_error("role", f"Invalid role specified (allowed: {', '.join(ROLES)})", role)],
            )
        role = canonical

    query = db.session.query(User)
    if role:
        query = query.filter(User.role == role)
    if is_active is not None:
        query = query.filter(User.is_active.is_(is_active))

    query = query.order_by(User.created_at.desc(), User.id.desc())
    users, pagination = paginate(query, page, limit)
    return {"users": [u.to_dict() for u in users], "pagination": pagination}


def admin_create_user(payload: dict, actor: User) -> User:
    user = create_user(
        email=payload["email"],
        password=payload["password"],
        first_name=payload["first_name"],
        last_name=payload["last_name"],
        role=payload.get("role"),
    )
    current_app.logger.info("Admin %s created user %s with role %s", actor.id, user.id, user.role)
    return user


def update_user(user_id: int, patch: dict, actor: User) -> User:
    """
    Apply a validated admin patch (validation.validate_user_admin_update).

    Raises:
        NotFoundError: unknown user
        ConflictError: email already used by another account
        SelfModificationError: admin demoting or deactivating themselves
    """
    user = get_user(user_id)

    if user.id == actor.id:
        if patch.get("is_active") is False:
            raise SelfModificationError("You cannot deactivate your own account.")
        if "role" in patch and patch["role"] != ROLE_ADMIN:
            raise SelfModificationError("You cannot change your own role.")

    new_email = patch.get("email")
    if new_email and new_email != user.email:
        existing = db.session.query(User).filter(User.email == new_email, User.id != user.id).first()
        if existing:
            raise ConflictError("Email already exists. Please use a different email.")

    for key, value in patch.items():
        setattr(user, key, value)
    db.session.commit()

    current_app.logger.info("Admin %s updated user %s: %s", actor.id, user.id, sorted(patch))
    return user


def deactivate_user(user_id: int, actor: User) -> User:
    """Soft delete: users are never removed because orders reference them."""
    user = get_user(user_id)
    if user.id == actor.id:
        raise SelfModificationError("You cannot deactivate your own account.")

    if user.is_active:
        user.is_active = False
        db.session.commit()
        current_app.logger.info("Admin %s deactivated user %s", actor.id, user.id)
    return user


def count_users_by_role() -> dict:
    counts = {role: 0 for role in ROLES}
    for user in db.session.query(User.role).filter(User.is_active.is_(True)).all():
        counts[user.role] = counts.get(user.role, 0) + 1
    return counts
