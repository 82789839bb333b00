# Overview: Pytest coverage for role dashboards.

from conftest import order_payload


class TestDashboard:

    def test_customer_dashboard(self, client, customer_headers, product_p2):
        for _ in range(2):
            client.post("/api/orders", json=order_payload(("P-2", 1)), headers=customer_headers)

        resp = client.get("/api/dashboard", headers=customer_headers)
        assert resp.status_code == 200
        dash = resp.get_json()["data"]["dashboard"]
        assert dash["role_label"] == "Customer"
        assert dash["total_orders"] == 2
        assert dash["orders_by_status"]["pending"] == 2
        assert len(dash["recent_orders"]) == 2
        assert "order_stats" not in dash

    def test_manager_dashboard(self, client, customer_headers, manager_headers, product_p1):
        client.post("/api/orders", json=order_payload(("P-1", 4)), headers=customer_headers)

        dash = client.get("/api/dashboard", headers=manager_headers).get_json()["data"]["dashboard"]
        assert dash["role_label"] == "Staff"
        assert dash["order_stats"]["total_orders"] == 1
        assert [p["product_id"] for p in dash["low_stock_products"]] == ["P-1"]
        assert len(dash["recent_orders"]) == 1
        assert "users_by_role" not in dash

    def test_admin_dashboard(self, client, customer, manager, admin_headers, product_p1, product_p2):
        dash = client.get("/api/dashboard", headers=admin_headers).get_json()["data"]["dashboard"]
        assert dash["role_label"] == "Admin"
        assert dash["users_by_role"] == {"user": 1, "manager": 1, "admin": 1}
        assert dash["active_products"] == 2
        assert "order_stats" in dash
