"""
Authorization tests for FinMark.

Verifies:
- Unauthenticated requests to protected endpoints return 401
- Customers are denied staff and admin operations (403)
- Managers are denied admin-only operations (403)
- Staff and admin roles can perform their privileged operations
"""

import pytest


# =============================================================================
# UNAUTHENTICATED ACCESS — 401
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/profile"),
            ("PUT", "/api/auth/profile"),
            ("PUT", "/api/auth/change-password"),
            ("POST", "/api/products"),
            ("PUT", "/api/products/P-1"),
            ("DELETE", "/api/products/P-1"),
            ("PUT", "/api/products/P-1/stock"),
            ("GET", "/api/products/inventory/low-stock"),
            ("POST", "/api/orders"),
            ("GET", "/api/orders"),
            ("GET", "/api/orders/all"),
            ("GET", "/api/orders/stats"),
            ("GET", "/api/orders/1"),
            ("PUT", "/api/orders/1/status"),
            ("PUT", "/api/orders/1/cancel"),
            ("GET", "/api/users"),
            ("POST", "/api/users"),
            ("GET", "/api/users/1"),
            ("GET", "/api/users/me/addresses"),
            ("GET", "/api/dashboard"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"
        assert resp.get_json()["success"] is False

    def test_non_bearer_scheme_rejected(self, client, db_session):
        resp = client.get("/api/auth/profile", headers={"Authorization": "Basic abc"})
        assert resp.status_code == 401


class TestPublicCatalog:
    """Catalog reads need no token."""

    @pytest.mark.parametrize("path", ["/api/products", "/api/products/categories"])
    def test_public_reads(self, client, db_session, path):
        assert client.get(path).status_code == 200


# =============================================================================
# CUSTOMER DENIED STAFF OPERATIONS — 403
# =============================================================================


class TestCustomerDenied:
    """Customer role cannot perform staff or admin operations."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("POST", "/api/products"),
            ("PUT", "/api/products/P-1"),
            ("DELETE", "/api/products/P-1"),
            ("PUT", "/api/products/P-1/stock"),
            ("GET", "/api/products/inventory/low-stock"),
            ("GET", "/api/orders/all"),
            ("GET", "/api/orders/stats"),
            ("PUT", "/api/orders/1/status"),
            ("GET", "/api/users"),
            ("POST", "/api/users"),
            ("PUT", "/api/users/1"),
            ("DELETE", "/api/users/1"),
        ],
    )
    def test_forbidden(self, client, customer_headers, method, path):
        resp = getattr(client, method.lower())(path, json={}, headers=customer_headers)
        assert resp.status_code == 403, f"{method} {path} returned {resp.status_code}"


class TestManagerDeniedAdmin:
    """Manager (staff) role cannot manage users."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/users"),
            ("POST", "/api/users"),
            ("GET", "/api/users/1"),
            ("PUT", "/api/users/1"),
            ("DELETE", "/api/users/1"),
        ],
    )
    def test_forbidden(self, client, manager_headers, method, path):
        resp = getattr(client, method.lower())(path, json={}, headers=manager_headers)
        assert resp.status_code == 403


# =============================================================================
# PRIVILEGED ROLES — 200
# =============================================================================


class TestStaffAccess:

    @pytest.mark.parametrize("path", ["/api/orders/all", "/api/orders/stats", "/api/products/inventory/low-stock"])
    def test_manager_can_read_staff_views(self, client, manager_headers, path):
        assert client.get(path, headers=manager_headers).status_code == 200

    @pytest.mark.parametrize("path", ["/api/orders/all", "/api/orders/stats", "/api/users"])
    def test_admin_can_read(self, client, admin_headers, path):
        assert client.get(path, headers=admin_headers).status_code == 200


class TestEnvelope:

    def test_unknown_api_route_is_404_envelope(self, client, db_session):
        resp = client.get("/api/does-not-exist")
        assert resp.status_code == 404
        body = resp.get_json()
        assert body["success"] is False
        assert "/api/does-not-exist" in body["message"]

    def test_method_not_allowed_is_envelope(self, client, db_session):
        resp = client.patch("/api/products")
        assert resp.status_code == 405
        assert resp.get_json()["success"] is False

    def test_cors_headers_for_allowed_origin(self, client, db_session):
        resp = client.get("/api/products", headers={"Origin": "http://localhost:3000"})
        assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:3000"

    def test_no_cors_headers_for_unknown_origin(self, client, db_session):
        resp = client.get("/api/products", headers={"Origin": "http://evil.example"})
        assert "Access-Control-Allow-Origin" not in resp.headers

    def test_health(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["status"] == "healthy"
        assert body["checks"]["database"]["status"] == "healthy"
