# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

Uses bcrypt for password hashing and validates password strength before
any password is stored.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 6 characters with an uppercase letter, a lowercase letter and a digit
- Login failures share one generic message so responses do not reveal
  whether an email is registered
"""

import re

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User
from ..roles import ROLE_USER
from ..time_utils import utcnow
from ..validation import ConflictError, NotFoundError, ValidationError, field_error
from . import token_service


INVALID_CREDENTIALS_MESSAGE = "Invalid email or password."


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""

    def __init__(self, message: str, field: str = "password"):
        super().__init__(message)
        self.field = field

    def to_validation_error(self) -> ValidationError:
        return ValidationError(errors=[field_error(self.field, str(self))])


class AuthenticationError(Exception):
    """Raised for failed logins and wrong current passwords (401)."""


def validate_password_strength(password: str, field: str = "password") -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 6 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str) or len(password) < 6:
        raise PasswordValidationError("Password must be at least 6 characters long", field)

    if not (re.search(r"[a-z]", password) and re.search(r"[A-Z]", password) and re.search(r"\d", password)):
        raise PasswordValidationError(
            "Password must contain at least one uppercase letter, one lowercase letter, and one number",
            field,
        )


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() compares in constant time. Malformed hashes verify as
    False rather than raising.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def find_user_by_email(email: str) -> User | None:
    return db.session.query(User).filter(User.email == email.strip().lower()).first()


def create_user(
    *,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    role: str | None = None,
) -> User:
    """
    Create a user with a bcrypt password hash.

    Raises:
        ConflictError: email already registered
        PasswordValidationError: password too weak
    """
    email = email.strip().lower()
    if find_user_by_email(email):
        raise ConflictError("User with this email already exists.")

    user = User(
        email=email,
        password_hash=hash_password(password),
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        role=role or ROLE_USER,
    )
    db.session.add(user)
    db.session.commit()
    return user


def register(payload: dict) -> tuple[User, str]:
    """
    Self-registration. Returns (user, token).

    The requested role must be in SELF_REGISTER_ROLES; defaults to `user`.
    """
    role = payload.get("role") or ROLE_USER
    if role not in current_app.config["SELF_REGISTER_ROLES"]:
        raise ValidationError(errors=[field_error("role", "Role not allowed for self-registration", role)])

    user = create_user(
        email=payload["email"],
        password=payload["password"],
        first_name=payload["first_name"],
        last_name=payload["last_name"],
        role=role,
    )
    current_app.logger.info("Registered user id=%s role=%s", user.id, user.role)
    return user, token_service.issue_token(user)


def authenticate(email: str, password: str) -> tuple[User, str]:
    """
    Verify credentials and issue a fresh token.

    Unknown email, deactivated account and wrong password all raise the same
    AuthenticationError. Updates last_login_at on success.
    """
    user = find_user_by_email(email)

    if not user or not user.is_active or not verify_password(password, user.password_hash):
        current_app.logger.warning("Failed login for %s", email)
        raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

    user.last_login_at = utcnow()
    db.session.commit()
    return user, token_service.issue_token(user)


def update_profile(user: User, patch: dict) -> User:
    """Apply a validated profile patch; email changes are checked for uniqueness."""
    new_email = patch.get("email")
    if new_email and new_email != user.email:
        existing = db.session.query(User).filter(User.email == new_email, User.id != user.id).first()
        if existing:
            raise ConflictError("Email already exists. Please use a different email.")

    for key, value in patch.items():
        if key == "address":
            # Merge into the stored address so partial updates keep other lines
            merged = dict(user.address or {})
            merged.update(value)
            user.address = merged
        else:
            setattr(user, key, value)

    db.session.commit()
    return user


def change_password(user: User, current_password: str, new_password: str) -> None:
    if not current_password or not new_password:
        raise ValidationError(
            "Current password and new password are required.",
            [
                field_error(name, f"{name} is required")
                for name, value in (("current_password", current_password), ("new_password", new_password))
                if not value
            ],
        )

    if not verify_password(current_password, user.password_hash):
        raise AuthenticationError("Current password is incorrect.")

    validate_password_strength(new_password, field="new_password")
    user.password_hash = hash_password(new_password)
    db.session.commit()


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found.")
    return user
