from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


def default_profile_address() -> dict:
    return {
        "street": "",
        "barangay": "",
        "city": "",
        "province": "",
        "zip_code": "",
        "country": "Philippines",
    }


class User(db.Model):
    """
    User accounts for authentication and attribution.

    Email is the login identifier and is stored lower-cased. Users are never
    hard-deleted; admins deactivate them via is_active so order history keeps
    a valid owner.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("email", name="uq_users_email"),
        db.Index("ix_users_role_active", "role", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    email = db.Column(db.String(255), nullable=False)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    first_name = db.Column(db.String(50), nullable=False)
    last_name = db.Column(db.String(50), nullable=False)

    # user | manager | admin
    role = db.Column(db.String(16), nullable=False, default="user")

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    phone = db.Column(db.String(20), nullable=False, default="")
    address = db.Column(db.JSON, nullable=False, default=default_profile_address)
    profile_picture = db.Column(db.Text, nullable=False, default="")

    # Bounded list (see address_service.MAX_SHIPPING_ADDRESSES)
    shipping_addresses = db.Column(db.JSON, nullable=False, default=list)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role!r}>"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def to_summary(self) -> dict:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "role": self.role,
            "is_active": self.is_active,
            "phone": self.phone,
            "address": self.address or default_profile_address(),
            "profile_picture": self.profile_picture,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }
