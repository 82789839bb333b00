# Overview: Role-specific dashboard payload for the signed-in user.

from flask import Blueprint, current_app, g

from ..decorators import require_auth
from ..responses import server_error, success
from ..services import dashboard_service


dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("")
@require_auth
def dashboard_route():
    try:
        return success({"dashboard": dashboard_service.build_dashboard(g.current_user)})
    except Exception:
        current_app.logger.exception("Failed to build dashboard")
        return server_error()
