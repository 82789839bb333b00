# backend/finmark/roles.py
"""
Role definitions and access tiers.

Three roles exist. The storefront UI labels `manager` as "Staff" and
`user` as "Customer", so both labels are accepted as input aliases and
normalized to the stored role name.
"""

ROLE_USER = "user"
ROLE_MANAGER = "manager"
ROLE_ADMIN = "admin"

ROLES = (ROLE_USER, ROLE_MANAGER, ROLE_ADMIN)

# Roles that can see and manage every order and the catalog
STAFF_ROLES = (ROLE_MANAGER, ROLE_ADMIN)

ROLE_ALIASES = {
    "staff": ROLE_MANAGER,
    "customer": ROLE_USER,
}

ROLE_LABELS = {
    ROLE_USER: "Customer",
    ROLE_MANAGER: "Staff",
    ROLE_ADMIN: "Admin",
}


def normalize_role(value: str | None) -> str | None:
    """Map an input role or alias to its stored name; None if unknown."""
    if value is None:
        return None
    role = str(value).strip().lower()
    role = ROLE_ALIASES.get(role, role)
    return role if role in ROLES else None


def is_staff(role: str | None) -> bool:
    return role in STAFF_ROLES
