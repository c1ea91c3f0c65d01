"""
Authentication tests: login, registration, password rules and tokens.
"""

from datetime import timedelta

import pytest
from jose import jwt

from retailpos.services import auth_service, token_service
from retailpos.services.auth_service import PasswordValidationError
from retailpos.validation import ConflictError, ValidationError

from conftest import auth_headers, get_auth_token


class TestPasswordRules:
    @pytest.mark.parametrize("password", ["short1", "abcdefghij", "1234567890", None])
    def test_weak_passwords_rejected(self, password):
        with pytest.raises(PasswordValidationError):
            auth_service.validate_password_strength(password)

    def test_strong_password_accepted(self):
        auth_service.validate_password_strength("counter42")

    def test_hash_is_not_plaintext(self, app):
        hashed = auth_service.hash_password("counter42")
        assert hashed != "counter42"
        assert auth_service.verify_password("counter42", hashed)
        assert not auth_service.verify_password("counter43", hashed)

    def test_malformed_hash_does_not_verify(self):
        assert auth_service.verify_password("counter42", "not-a-bcrypt-hash") is False


class TestCreateUser:
    def test_duplicate_username(self, seed):
        with pytest.raises(ConflictError):
            auth_service.create_user(username="admin", password="another123", role="admin")

    def test_invalid_role(self, seed):
        with pytest.raises(ValidationError):
            auth_service.create_user(username="owner", password="owner1234", role="owner")

    def test_authenticate_ignores_inactive(self, inactive_user):
        assert auth_service.authenticate("former", "former123") is None


class TestLogin:
    def test_login_returns_token_and_user(self, client, seed):
        resp = client.post("/api/auth/login", json={"username": "admin", "password": "admin123"})
        assert resp.status_code == 200

        data = resp.get_json()
        assert data["user"]["role"] == "admin"
        assert "password_hash" not in data["user"]

        claims = jwt.get_unverified_claims(data["token"])
        assert claims["username"] == "admin"
        assert claims["role"] == "admin"
        assert claims["type"] == "access"

    def test_wrong_password(self, client, seed):
        resp = client.post("/api/auth/login", json={"username": "admin", "password": "wrong123"})
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "Invalid credentials"

    def test_missing_fields(self, client, seed):
        resp = client.post("/api/auth/login", json={"username": "admin"})
        assert resp.status_code == 400

    def test_me(self, client, cashier_headers):
        resp = client.get("/api/auth/me", headers=cashier_headers)
        assert resp.status_code == 200
        assert resp.get_json()["user"]["username"] == "cashier1"


class TestTokens:
    def test_expired_token_rejected(self, client, admin_user):
        token = token_service.create_access_token(admin_user, expires_delta=timedelta(seconds=-1))
        resp = client.get("/api/auth/me", headers=auth_headers(token))
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "Invalid or expired token"

    def test_tampered_token_rejected(self, client, admin_user):
        token = token_service.create_access_token(admin_user)
        resp = client.get("/api/auth/me", headers=auth_headers(token[:-4] + "abcd"))
        assert resp.status_code == 401

    def test_token_signed_with_other_secret(self, client, admin_user):
        forged = jwt.encode(
            {"sub": str(admin_user.id), "type": "access"}, "other-secret", algorithm="HS256"
        )
        resp = client.get("/api/auth/me", headers=auth_headers(forged))
        assert resp.status_code == 401

    def test_deactivated_account_loses_access(self, client, db_session, seed):
        auth_service.create_user(username="temp", password="temp12345", role="cashier")
        token = get_auth_token(client, "temp", "temp12345")
        assert client.get("/api/auth/me", headers=auth_headers(token)).status_code == 200

        user = auth_service.authenticate("temp", "temp12345")
        user.is_active = False
        db_session.commit()

        assert client.get("/api/auth/me", headers=auth_headers(token)).status_code == 401

    def test_missing_bearer_prefix(self, client, seed):
        resp = client.get("/api/auth/me", headers={"Authorization": "Token abc"})
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "Access token required"


class TestRegister:
    def test_admin_registers_cashier(self, client, admin_headers):
        resp = client.post(
            "/api/auth/register",
            json={"username": "cashier2", "password": "till2024", "full_name": "Sam Lee"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.get_json()["user"]["role"] == "cashier"

        assert get_auth_token(client, "cashier2", "till2024") is not None

    def test_weak_password(self, client, admin_headers):
        resp = client.post(
            "/api/auth/register",
            json={"username": "cashier3", "password": "short"},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert "at least 8 characters" in resp.get_json()["error"]

    def test_duplicate(self, client, admin_headers):
        resp = client.post(
            "/api/auth/register",
            json={"username": "manager1", "password": "manager999", "role": "manager"},
            headers=admin_headers,
        )
        assert resp.status_code == 409

    def test_manager_cannot_register(self, client, manager_headers):
        resp = client.post(
            "/api/auth/register",
            json={"username": "sneaky", "password": "sneaky123"},
            headers=manager_headers,
        )
        assert resp.status_code == 403

    def test_list_users(self, client, manager_headers):
        resp = client.get("/api/auth/users", headers=manager_headers)
        assert resp.status_code == 200
        usernames = {u["username"] for u in resp.get_json()}
        assert usernames == {"admin", "manager1", "cashier1"}
