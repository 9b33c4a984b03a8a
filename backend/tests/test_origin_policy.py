"""
Volunteer API — Origin Policy Tests
====================================

Test Strategy:
    ✅ Absent and allow-listed origins pass
    ✅ Any other origin → 403 normalized JSON, never a pass-through
    ✅ Preflight answered with the allowed methods and headers
    ✅ Error responses carry access-control headers for allowed origins
"""

import pytest

from volunteer_api.middleware.origin_policy import OriginPolicy

from conftest import ALLOWED_ORIGIN, client_for

EVIL_ORIGIN = "https://evil.example"


class TestOriginPolicy:
    def setup_method(self):
        self.policy = OriginPolicy([ALLOWED_ORIGIN])

    def test_absent_origin_is_allowed(self):
        assert self.policy.is_allowed(None)
        assert self.policy.is_allowed("")

    def test_listed_origin_is_allowed(self):
        assert self.policy.is_allowed(ALLOWED_ORIGIN)

    def test_other_origin_is_denied(self):
        assert not self.policy.is_allowed(EVIL_ORIGIN)
        # Exact match only: no prefix or scheme tolerance
        assert not self.policy.is_allowed(ALLOWED_ORIGIN + ".evil.example")
        assert not self.policy.is_allowed("https://localhost:5173")

    def test_response_headers_for_allowed_origin(self):
        headers = self.policy.response_headers(ALLOWED_ORIGIN)
        assert headers["Access-Control-Allow-Origin"] == ALLOWED_ORIGIN
        assert headers["Access-Control-Allow-Credentials"] == "true"
        assert headers["Access-Control-Expose-Headers"] == "Authorization"
        assert headers["Vary"] == "Origin"

    def test_no_headers_for_denied_origin(self):
        assert self.policy.response_headers(EVIL_ORIGIN) == {}

    def test_preflight_headers(self):
        headers = self.policy.preflight_headers(ALLOWED_ORIGIN)
        assert headers["Access-Control-Allow-Methods"] == "GET, POST, PUT, PATCH, DELETE"
        assert headers["Access-Control-Allow-Headers"] == "Content-Type, Authorization"


class TestOriginPolicyMiddleware:
    @pytest.mark.asyncio
    async def test_disallowed_origin_gets_403_json(self, client):
        response = await client.get("/api/category", headers={"Origin": EVIL_ORIGIN})
        assert response.status_code == 403
        assert response.json() == {"success": False, "message": "CORS Policy Blocks This Request"}
        assert "access-control-allow-origin" not in response.headers

    @pytest.mark.asyncio
    async def test_disallowed_origin_does_not_spend_rate_budget(self, make_app):
        app = make_app(rate_limit_max=1)
        async with client_for(app) as client:
            for _ in range(3):
                response = await client.get("/api/x", headers={"Origin": EVIL_ORIGIN})
                assert response.status_code == 403
            response = await client.get("/api/x")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_preflight_from_allowed_origin(self, client):
        response = await client.options(
            "/api/activities",
            headers={
                "Origin": ALLOWED_ORIGIN,
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "Content-Type",
            },
        )
        assert response.status_code == 204
        assert response.headers["access-control-allow-origin"] == ALLOWED_ORIGIN
        assert "PATCH" in response.headers["access-control-allow-methods"]

    @pytest.mark.asyncio
    async def test_preflight_from_disallowed_origin(self, client):
        response = await client.options(
            "/api/activities",
            headers={"Origin": EVIL_ORIGIN, "Access-Control-Request-Method": "POST"},
        )
        assert response.status_code == 403
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_error_response_readable_by_allowed_origin(self, client):
        response = await client.get("/api/unknown", headers={"Origin": ALLOWED_ORIGIN})
        assert response.status_code == 404
        assert response.headers["access-control-allow-origin"] == ALLOWED_ORIGIN
        assert response.headers["access-control-allow-credentials"] == "true"

    @pytest.mark.asyncio
    async def test_request_without_origin_passes(self, client):
        response = await client.get("/api/unknown")
        assert response.status_code == 404
        assert "access-control-allow-origin" not in response.headers
