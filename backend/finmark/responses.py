# Overview: JSON envelope helpers shared by every route.

from __future__ import annotations

from flask import jsonify


def success(data=None, message: str | None = None, status: int = 200):
    body: dict = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return jsonify(body), status


def failure(message: str, status: int = 400, errors: list[dict] | None = None, **extra):
    body: dict = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    body.update(extra)
    return jsonify(body), status


def server_error():
    return failure("Internal server error", 500)


def validation_failure(error):
    """400 envelope for a validation.ValidationError."""
    return failure(str(error), 400, errors=error.errors)
