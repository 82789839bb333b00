# Overview: Pytest coverage for registration, login, tokens, profile and password changes.

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from conftest import DEFAULT_PASSWORD, auth_headers, get_auth_token, headers_for
from finmark.models import User
from finmark.services import token_service
from finmark.services.auth_service import (
    PasswordValidationError,
    hash_password,
    validate_password_strength,
    verify_password,
)


REGISTRATION = {
    "email": "New.User@Example.com",
    "password": "Secret123",
    "first_name": "New",
    "last_name": "User",
}


class TestPasswordHashing:

    def test_hash_is_not_plaintext_and_verifies(self):
        hashed = hash_password("Secret123")
        assert hashed != "Secret123"
        assert hashed.startswith("$2")
        assert verify_password("Secret123", hashed)
        assert not verify_password("Secret124", hashed)

    @pytest.mark.parametrize("password", ["Ab1", "alllower123", "ALLUPPER123", "NoDigitsHere"])
    def test_weak_passwords_rejected(self, password):
        with pytest.raises(PasswordValidationError):
            validate_password_strength(password)

    def test_malformed_hash_does_not_verify(self):
        assert verify_password("Secret123", "not-a-bcrypt-hash") is False


class TestRegister:

    def test_register_returns_token_and_public_user(self, client, db_session):
        resp = client.post("/api/auth/register", json=REGISTRATION)
        assert resp.status_code == 201

        body = resp.get_json()
        assert body["success"] is True
        assert body["data"]["token"]
        user = body["data"]["user"]
        assert user["email"] == "new.user@example.com"
        assert user["role"] == "user"
        assert "password_hash" not in user

        stored = db_session.query(User).filter_by(email="new.user@example.com").one()
        assert stored.password_hash != REGISTRATION["password"]

    def test_registered_user_can_login(self, client, db_session):
        client.post("/api/auth/register", json=REGISTRATION)
        assert get_auth_token(client, "new.user@example.com", "Secret123")

    def test_duplicate_email_conflicts(self, client, db_session, customer):
        resp = client.post("/api/auth/register", json={**REGISTRATION, "email": "CUSTOMER@example.com"})
        assert resp.status_code == 409
        assert resp.get_json()["success"] is False

    def test_weak_password_reports_field_error(self, client, db_session):
        resp = client.post("/api/auth/register", json={**REGISTRATION, "password": "weak"})
        assert resp.status_code == 400
        errors = resp.get_json()["errors"]
        assert errors[0]["field"] == "password"

    def test_invalid_fields_collected_together(self, client, db_session):
        resp = client.post(
            "/api/auth/register",
            json={"email": "nope", "password": "Secret123", "first_name": "J", "last_name": "Doe2"},
        )
        assert resp.status_code == 400
        fields = {e["field"] for e in resp.get_json()["errors"]}
        assert fields == {"email", "first_name", "last_name"}

    def test_staff_alias_maps_to_manager(self, client, db_session):
        resp = client.post("/api/auth/register", json={**REGISTRATION, "role": "staff"})
        assert resp.status_code == 201
        assert resp.get_json()["data"]["user"]["role"] == "manager"

    def test_unknown_role_rejected(self, client, db_session):
        resp = client.post("/api/auth/register", json={**REGISTRATION, "role": "superuser"})
        assert resp.status_code == 400

    def test_role_outside_self_register_set_rejected(self, app, client, db_session):
        original = app.config["SELF_REGISTER_ROLES"]
        app.config["SELF_REGISTER_ROLES"] = {"user"}
        try:
            resp = client.post("/api/auth/register", json={**REGISTRATION, "role": "admin"})
        finally:
            app.config["SELF_REGISTER_ROLES"] = original
        assert resp.status_code == 400


class TestLogin:

    def test_login_success_stamps_last_login(self, client, db_session, customer):
        assert customer.last_login_at is None

        resp = client.post("/api/auth/login", json={"email": "customer@example.com", "password": DEFAULT_PASSWORD})
        assert resp.status_code == 200
        assert resp.get_json()["data"]["token"]

        db_session.expire_all()
        assert db_session.get(User, customer.id).last_login_at is not None

    @pytest.mark.parametrize(
        "email,password",
        [
            ("customer@example.com", "WrongPass1"),
            ("nobody@example.com", DEFAULT_PASSWORD),
        ],
    )
    def test_failures_share_generic_message(self, client, db_session, customer, email, password):
        resp = client.post("/api/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 401
        assert resp.get_json()["message"] == "Invalid email or password."

    def test_inactive_account_cannot_login(self, client, db_session, customer):
        customer.is_active = False
        db_session.commit()

        resp = client.post("/api/auth/login", json={"email": "customer@example.com", "password": DEFAULT_PASSWORD})
        assert resp.status_code == 401
        assert resp.get_json()["message"] == "Invalid email or password."

    def test_missing_fields_is_validation_error(self, client, db_session):
        resp = client.post("/api/auth/login", json={})
        assert resp.status_code == 400


class TestTokens:

    def test_token_claims(self, app, db_session, customer):
        claims = token_service.decode_token(token_service.issue_token(customer))
        assert claims.user_id == customer.id
        assert claims.role == "user"
        expected = datetime.now(timezone.utc) + timedelta(hours=24)
        assert abs((claims.expires_at - expected).total_seconds()) < 60

    def test_expired_token_rejected(self, app, client, db_session, customer):
        past = datetime.now(timezone.utc) - timedelta(hours=1)
        token = jwt.encode(
            {"sub": str(customer.id), "email": customer.email, "role": customer.role, "iat": past, "exp": past},
            app.config["JWT_SECRET_KEY"],
            algorithm="HS256",
        )
        resp = client.get("/api/auth/profile", headers=auth_headers(token))
        assert resp.status_code == 401
        assert "expired" in resp.get_json()["message"]

    def test_token_signed_with_other_key_rejected(self, client, db_session, customer):
        token = jwt.encode(
            {"sub": str(customer.id), "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
            "some-other-key",
            algorithm="HS256",
        )
        resp = client.get("/api/auth/profile", headers=auth_headers(token))
        assert resp.status_code == 401

    def test_garbage_token_rejected(self, client, db_session):
        resp = client.get("/api/auth/profile", headers=auth_headers("not.a.token"))
        assert resp.status_code == 401

    def test_deactivated_user_token_rejected(self, client, db_session, customer):
        headers = headers_for(customer)
        customer.is_active = False
        db_session.commit()

        resp = client.get("/api/auth/profile", headers=headers)
        assert resp.status_code == 401

    def test_stale_role_token_rejected(self, client, db_session, manager):
        headers = headers_for(manager)
        manager.role = "user"
        db_session.commit()

        resp = client.get("/api/auth/profile", headers=headers)
        assert resp.status_code == 401


class TestProfile:

    def test_get_profile(self, client, db_session, customer_headers):
        resp = client.get("/api/auth/profile", headers=customer_headers)
        assert resp.status_code == 200
        user = resp.get_json()["data"]["user"]
        assert user["email"] == "customer@example.com"
        assert user["address"]["country"] == "Philippines"

    def test_update_profile_merges_address(self, client, db_session, customer_headers):
        resp = client.put(
            "/api/auth/profile",
            json={"phone": "09171234567", "address": {"city": "Quezon City", "zip_code": "1100"}},
            headers=customer_headers,
        )
        assert resp.status_code == 200
        user = resp.get_json()["data"]["user"]
        assert user["phone"] == "09171234567"
        assert user["address"]["city"] == "Quezon City"
        assert user["address"]["zip_code"] == "1100"
        assert user["address"]["country"] == "Philippines"

    @pytest.mark.parametrize(
        "patch",
        [
            {"phone": "12345"},
            {"address": {"zip_code": "12345"}},
            {"first_name": "X"},
            {"role": "admin"},
        ],
    )
    def test_invalid_profile_updates(self, client, db_session, customer_headers, patch):
        resp = client.put("/api/auth/profile", json=patch, headers=customer_headers)
        assert resp.status_code == 400

    def test_email_taken_by_other_user(self, client, db_session, customer_headers, other_customer):
        resp = client.put("/api/auth/profile", json={"email": "other@example.com"}, headers=customer_headers)
        assert resp.status_code == 409


class TestChangePassword:

    def test_change_password_then_login(self, client, db_session, customer, customer_headers):
        resp = client.put(
            "/api/auth/change-password",
            json={"current_password": DEFAULT_PASSWORD, "new_password": "Changed456"},
            headers=customer_headers,
        )
        assert resp.status_code == 200
        assert get_auth_token(client, "customer@example.com", "Changed456")
        assert get_auth_token(client, "customer@example.com", DEFAULT_PASSWORD) is None

    def test_wrong_current_password(self, client, db_session, customer_headers):
        resp = client.put(
            "/api/auth/change-password",
            json={"current_password": "WrongPass1", "new_password": "Changed456"},
            headers=customer_headers,
        )
        assert resp.status_code == 401

    def test_weak_new_password(self, client, db_session, customer_headers):
        resp = client.put(
            "/api/auth/change-password",
            json={"current_password": DEFAULT_PASSWORD, "new_password": "weak"},
            headers=customer_headers,
        )
        assert resp.status_code == 400
        assert resp.get_json()["errors"][0]["field"] == "new_password"

    def test_missing_fields(self, client, db_session, customer_headers):
        resp = client.put("/api/auth/change-password", json={}, headers=customer_headers)
        assert resp.status_code == 400

    @pytest.mark.parametrize("body,field", [
        ({"current_password": 12345, "new_password": "Changed456"}, "current_password"),
        ({"current_password": DEFAULT_PASSWORD, "new_password": ["Changed456"]}, "new_password"),
        ({"current_password": "", "new_password": "Changed456"}, "current_password"),
    ])
    def test_non_string_fields_rejected(self, client, db_session, customer_headers, body, field):
        resp = client.put("/api/auth/change-password", json=body, headers=customer_headers)
        assert resp.status_code == 400
        assert [e["field"] for e in resp.get_json()["errors"]] == [field]

    def test_non_object_body_rejected(self, client, db_session, customer_headers):
        resp = client.put("/api/auth/change-password", json=["x"], headers=customer_headers)
        assert resp.status_code == 400
        assert resp.get_json()["success"] is False
