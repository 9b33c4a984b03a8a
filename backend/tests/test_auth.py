"""
Volunteer API — Auth & User Handler Group Tests
================================================

Test Strategy:
    ✅ Register → 201 with a token usable on protected routes
    ✅ Duplicate email/username → 400 with "<field> must be unique"
    ✅ Schema violations → 400 with field messages
    ✅ Missing / tampered / expired tokens → 401 without an errors list
    ✅ Non-admin on admin routes → 403
    ✅ Login by email or username; wrong password → 401
"""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from volunteer_api.config import settings
from volunteer_api.main import create_app
from volunteer_api.services.auth_service import (
    INVALID_LOGIN_MESSAGE,
    decode_token,
    hash_password,
    verify_password,
)
from volunteer_api.exceptions import AuthTokenError

from conftest import client_for

REGISTRATION = {
    "email": "somchai@example.com",
    "username": "somchai",
    "password": "secret123",
    "first_name": "Somchai",
    "last_name": "Jaidee",
}


class TestPasswords:
    def test_hash_verifies(self):
        encoded = hash_password("secret123", iterations=1000)
        assert encoded.startswith("pbkdf2_sha256$1000$")
        assert verify_password("secret123", encoded)
        assert not verify_password("secret124", encoded)

    def test_hashes_are_salted(self):
        assert hash_password("same", iterations=1000) != hash_password("same", iterations=1000)

    def test_garbage_hash_never_verifies(self):
        assert not verify_password("x", "not-a-hash")
        assert not verify_password("x", "md5$1$salt$abc")


class TestTokens:
    def test_expired_token_is_rejected(self):
        claims = {"sub": "1", "exp": int((datetime.now(timezone.utc) - timedelta(minutes=1)).timestamp())}
        token = jwt.encode(claims, settings.jwt_secret, algorithm="HS256")
        with pytest.raises(AuthTokenError):
            decode_token(token)

    def test_foreign_signature_is_rejected(self):
        token = jwt.encode({"sub": "1"}, "another-secret", algorithm="HS256")
        with pytest.raises(AuthTokenError):
            decode_token(token)

    def test_subject_is_required(self):
        token = jwt.encode({"role": "admin"}, settings.jwt_secret, algorithm="HS256")
        with pytest.raises(AuthTokenError):
            decode_token(token)


class TestRegister:
    @pytest.mark.asyncio
    async def test_register_returns_token(self, database, client):
        response = await client.post("/api/auth/register", json=REGISTRATION)
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "ลงทะเบียนสำเร็จ"
        assert body["data"]["user"]["username"] == "somchai"
        assert body["data"]["user"]["role"] == "student"
        assert "password_hash" not in body["data"]["user"]
        assert response.headers["authorization"] == f"Bearer {body['data']['token']}"

        profile = await client.get(
            "/api/profile", headers={"Authorization": f"Bearer {body['data']['token']}"}
        )
        assert profile.status_code == 200
        assert profile.json()["data"]["email"] == REGISTRATION["email"]

    @pytest.mark.asyncio
    async def test_duplicate_email_is_reported_per_field(self, database, client):
        await client.post("/api/auth/register", json=REGISTRATION)
        response = await client.post("/api/auth/register", json={**REGISTRATION, "username": "other"})
        assert response.status_code == 400
        body = response.json()
        assert body == {
            "success": False,
            "message": "ข้อมูลซ้ำในระบบ",
            "errors": ["email must be unique"],
        }

    @pytest.mark.asyncio
    async def test_invalid_payload_lists_fields(self, database, client):
        response = await client.post(
            "/api/auth/register", json={**REGISTRATION, "email": "not-an-email", "password": "123"}
        )
        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "ข้อมูลไม่ถูกต้อง"
        assert any(error.startswith("email:") for error in body["errors"])
        assert any(error.startswith("password:") for error in body["errors"])


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_by_username_and_email(self, make_user, client):
        user, _ = await make_user(username="nida", email="nida@example.com", password="pass1234")
        for identifier in ("nida", "nida@example.com"):
            response = await client.post(
                "/api/auth/login", json={"identifier": identifier, "password": "pass1234"}
            )
            assert response.status_code == 200
            assert response.json()["data"]["user"]["id"] == user.id
            assert "token=" in response.headers["set-cookie"]

    @pytest.mark.asyncio
    async def test_wrong_password(self, make_user, client):
        await make_user(username="nida", password="pass1234")
        response = await client.post("/api/auth/login", json={"identifier": "nida", "password": "nope"})
        assert response.status_code == 401
        assert response.json() == {"success": False, "message": INVALID_LOGIN_MESSAGE}

    @pytest.mark.asyncio
    async def test_cookie_authenticates_after_login(self, make_user):
        await make_user(username="nida", password="pass1234")
        async with client_for(create_app()) as client:
            login = await client.post("/api/auth/login", json={"identifier": "nida", "password": "pass1234"})
            token = login.json()["data"]["token"]
            response = await client.get("/api/profile", headers={"Cookie": f"token={token}"})
            assert response.status_code == 200

            logout = await client.post("/api/auth/logout")
            assert "max-age=0" in logout.headers["set-cookie"].lower()


class TestAuthorization:
    @pytest.mark.asyncio
    async def test_missing_token(self, database, client):
        response = await client.get("/api/profile")
        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "Token ไม่ถูกต้อง"}

    @pytest.mark.asyncio
    async def test_tampered_token(self, make_user, client):
        _, headers = await make_user()
        header, payload, _ = headers["Authorization"].split(".")
        tampered = {"Authorization": f"{header}.{payload}.bm90LXRoZS1zaWduYXR1cmU"}
        response = await client.get("/api/profile", headers=tampered)
        assert response.status_code == 401
        assert "errors" not in response.json()

    @pytest.mark.asyncio
    async def test_token_for_deleted_user(self, database, client):
        token = jwt.encode({"sub": "999"}, settings.jwt_secret, algorithm="HS256")
        response = await client.get("/api/profile", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_student_cannot_create_users(self, make_user, client):
        _, headers = await make_user(role="student")
        response = await client.post("/api/user", json={**REGISTRATION, "role": "admin"}, headers=headers)
        assert response.status_code == 403
        assert response.json()["success"] is False


class TestUsers:
    @pytest.mark.asyncio
    async def test_admin_creates_staff_account(self, make_user, client):
        _, headers = await make_user(role="admin")
        response = await client.post("/api/user", json={**REGISTRATION, "role": "staff"}, headers=headers)
        assert response.status_code == 201
        assert response.json()["data"]["role"] == "staff"

    @pytest.mark.asyncio
    async def test_admin_duplicate_username(self, make_user, client):
        _, headers = await make_user(role="admin", username="taken")
        response = await client.post(
            "/api/user", json={**REGISTRATION, "username": "taken"}, headers=headers
        )
        assert response.status_code == 400
        assert response.json()["errors"] == ["username must be unique"]

    @pytest.mark.asyncio
    async def test_unknown_user_is_404(self, make_user, client):
        _, headers = await make_user()
        response = await client.get("/api/user/4242", headers=headers)
        assert response.status_code == 404
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_profile_update(self, make_user, client):
        _, headers = await make_user()
        response = await client.put("/api/profile", json={"first_name": "<Nid>"}, headers=headers)
        assert response.status_code == 200
        assert response.json()["data"]["first_name"] == "&lt;Nid&gt;"
