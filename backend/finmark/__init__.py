# backend/finmark/__init__.py
from flask import Flask, request
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

from .config import Config
from .extensions import db, migrate
from .responses import failure


def create_app(overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    app.logger.setLevel(app.config["LOG_LEVEL"])

    if app.config["TRUST_PROXY"]:
        # One hop: X-Forwarded-For becomes request.remote_addr
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.products import products_bp
    from .routes.orders import orders_bp
    from .routes.users import users_bp
    from .routes.dashboard import dashboard_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(dashboard_bp)

    from .services.rate_limit_service import init_rate_limiter
    limiter = init_rate_limiter(app)

    @app.before_request
    def enforce_rate_limit():
        if not app.config["RATE_LIMIT_ENABLED"] or not request.path.startswith("/api/"):
            return None

        decision = limiter.hit(request.remote_addr or "unknown")
        if decision.allowed:
            return None

        app.logger.warning("Rate limit exceeded for %s on %s", request.remote_addr, request.path)
        response, status = failure(
            "Too many requests from this IP, please try again later.",
            429,
            retry_after=decision.retry_after,
        )
        response.headers["Retry-After"] = str(decision.retry_after)
        return response, status

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in app.config["CORS_ALLOWED_ORIGINS"]:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type, Idempotency-Key"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
        return response

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        if e.code == 404:
            return failure(f"Route {request.path} not found", 404)
        return failure(e.description or e.name, e.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected_error(e: Exception):
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return failure("Internal server error", 500)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
