# backend/finmark/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: str) -> list[str]:
    raw = os.environ.get(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # Token signing key; falls back to SECRET_KEY when unset
    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY") or SECRET_KEY
    JWT_ALGORITHM = "HS256"
    TOKEN_TTL_HOURS = int(os.environ.get("TOKEN_TTL_HOURS", "24"))

    # SQLite DB stored in backend/instance/finmark.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///finmark.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # 100 requests per 15 minutes per client IP on /api/*
    RATE_LIMIT_ENABLED = _env_bool("RATE_LIMIT_ENABLED", True)
    RATE_LIMIT_MAX_REQUESTS = int(os.environ.get("RATE_LIMIT_MAX_REQUESTS", "100"))
    RATE_LIMIT_WINDOW_SECONDS = int(os.environ.get("RATE_LIMIT_WINDOW_SECONDS", "900"))

    CORS_ALLOWED_ORIGINS = _env_list(
        "CORS_ALLOWED_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000",
    )

    # Honor X-Forwarded-For from one reverse proxy hop
    TRUST_PROXY = _env_bool("TRUST_PROXY", False)

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    ORDER_NUMBER_PREFIX = os.environ.get("ORDER_NUMBER_PREFIX", "FM")
    ORDER_DELIVERY_DAYS = int(os.environ.get("ORDER_DELIVERY_DAYS", "7"))

    # Roles a caller may pick for themselves at /api/auth/register
    SELF_REGISTER_ROLES = set(_env_list("SELF_REGISTER_ROLES", "user,manager,admin"))
