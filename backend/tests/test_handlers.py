"""
Volunteer API — Handler Group Behaviour Tests
==============================================

Test Strategy:
    ✅ Category / faculty: public read, admin write, duplicate names → 400
    ✅ Activities: create with categories, filter, unknown category → 400
    ✅ Contact form is public; inbox is admin-only
    ✅ Notifications: admin creates, recipient lists and marks read,
       other users cannot see them; open sockets receive a push
    ✅ WebSocket without a valid token is closed with 4401
"""

from unittest.mock import AsyncMock

import pytest
from starlette.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from volunteer_api.main import create_app
from volunteer_api.services.notification_hub import CLOSE_UNAUTHORIZED, NotificationHub, hub


class TestCategories:
    @pytest.mark.asyncio
    async def test_admin_creates_and_anyone_lists(self, make_user, client):
        _, admin = await make_user(role="admin")
        created = await client.post("/api/category", json={"name": "Environment"}, headers=admin)
        assert created.status_code == 201

        listing = await client.get("/api/category")
        assert listing.status_code == 200
        assert [c["name"] for c in listing.json()["data"]] == ["Environment"]

    @pytest.mark.asyncio
    async def test_duplicate_category(self, make_user, client):
        _, admin = await make_user(role="admin")
        await client.post("/api/category", json={"name": "Environment"}, headers=admin)
        response = await client.post("/api/category", json={"name": "Environment"}, headers=admin)
        assert response.status_code == 400
        assert response.json()["errors"] == ["name must be unique"]

    @pytest.mark.asyncio
    async def test_student_cannot_create_faculty(self, make_user, client):
        _, student = await make_user()
        response = await client.post("/api/faculty", json={"name": "Engineering"}, headers=student)
        assert response.status_code == 403


class TestActivities:
    @pytest.mark.asyncio
    async def test_create_and_filter_by_category(self, make_user, client):
        _, admin = await make_user(role="admin")
        green = (await client.post("/api/category", json={"name": "Green"}, headers=admin)).json()["data"]
        await client.post("/api/category", json={"name": "Teaching"}, headers=admin)

        created = await client.post(
            "/api/activities",
            json={"title": "Plant trees", "category_ids": [green["id"]], "max_participants": 30},
            headers=admin,
        )
        assert created.status_code == 201
        activity = created.json()["data"]
        assert activity["status"] == "open"
        assert [c["name"] for c in activity["categories"]] == ["Green"]

        await client.post("/api/activities", json={"title": "Tutoring"}, headers=admin)

        filtered = await client.get("/api/activities", params={"category_id": green["id"]})
        assert [a["title"] for a in filtered.json()["data"]] == ["Plant trees"]

        single = await client.get(f"/api/activities/{activity['id']}")
        assert single.json()["data"]["title"] == "Plant trees"

    @pytest.mark.asyncio
    async def test_unknown_category(self, make_user, client):
        _, headers = await make_user()
        response = await client.post(
            "/api/activities", json={"title": "Beach cleanup", "category_ids": [77]}, headers=headers
        )
        assert response.status_code == 400
        assert response.json()["errors"] == ["category_ids: unknown category 77"]

    @pytest.mark.asyncio
    async def test_end_before_start(self, make_user, client):
        _, headers = await make_user()
        response = await client.post(
            "/api/activities",
            json={"title": "x", "start_date": "2025-05-02T09:00:00", "end_date": "2025-05-01T09:00:00"},
            headers=headers,
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_missing_activity(self, database, client):
        response = await client.get("/api/activities/999")
        assert response.status_code == 404


class TestPlanActivities:
    @pytest.mark.asyncio
    async def test_plan_defaults_to_creator_faculty(self, make_user, client):
        _, admin = await make_user(role="admin")
        faculty = (await client.post("/api/faculty", json={"name": "Science"}, headers=admin)).json()["data"]
        _, staff = await make_user(role="staff", faculty_id=faculty["id"])

        created = await client.post(
            "/api/plan-activities", json={"title": "Orientation day"}, headers=staff
        )
        assert created.status_code == 201
        assert created.json()["data"]["faculty_id"] == faculty["id"]

        listing = await client.get(
            "/api/plan-activities", params={"faculty_id": faculty["id"]}, headers=staff
        )
        assert [p["title"] for p in listing.json()["data"]] == ["Orientation day"]

    @pytest.mark.asyncio
    async def test_listing_requires_token(self, database, client):
        response = await client.get("/api/plan-activities")
        assert response.status_code == 401


class TestContact:
    @pytest.mark.asyncio
    async def test_public_send_admin_read(self, make_user, client):
        sent = await client.post(
            "/api/contact", json={"name": "Ploy", "email": "ploy@example.com", "message": "Hello"}
        )
        assert sent.status_code == 201

        _, student = await make_user()
        assert (await client.get("/api/contact", headers=student)).status_code == 403

        _, admin = await make_user(role="admin")
        inbox = await client.get("/api/contact", headers=admin)
        assert [m["name"] for m in inbox.json()["data"]] == ["Ploy"]


class TestNotificationHub:
    @pytest.mark.asyncio
    async def test_push_reaches_every_socket_of_the_user(self):
        local_hub = NotificationHub()
        first, second, other = AsyncMock(), AsyncMock(), AsyncMock()
        await local_hub.connect(1, first)
        await local_hub.connect(1, second)
        await local_hub.connect(2, other)

        delivered = await local_hub.push(1, {"type": "notification"})

        assert delivered == 2
        first.send_json.assert_awaited_once_with({"type": "notification"})
        other.send_json.assert_not_awaited()
        assert local_hub.connection_count() == 3

    @pytest.mark.asyncio
    async def test_dead_socket_is_dropped(self):
        local_hub = NotificationHub()
        dead = AsyncMock()
        dead.send_json.side_effect = RuntimeError("socket closed")
        await local_hub.connect(1, dead)

        assert await local_hub.push(1, {}) == 0
        assert local_hub.connection_count(1) == 0

    @pytest.mark.asyncio
    async def test_disconnect_unknown_socket_is_harmless(self):
        local_hub = NotificationHub()
        local_hub.disconnect(5, AsyncMock())
        assert local_hub.connection_count() == 0


class TestNotifications:
    @pytest.mark.asyncio
    async def test_admin_notifies_user(self, make_user, client):
        _, admin = await make_user(role="admin")
        recipient, headers = await make_user()
        _, outsider = await make_user()

        socket = AsyncMock()
        await hub.connect(recipient.id, socket)
        try:
            created = await client.post(
                "/api/notifications", json={"user_id": recipient.id, "message": "Welcome"}, headers=admin
            )
        finally:
            hub.disconnect(recipient.id, socket)
        assert created.status_code == 201
        notification = created.json()["data"]
        pushed = socket.send_json.await_args.args[0]
        assert pushed["type"] == "notification"
        assert pushed["data"]["id"] == notification["id"]

        mine = await client.get("/api/notifications", headers=headers)
        assert [n["message"] for n in mine.json()["data"]] == ["Welcome"]
        assert (await client.get("/api/notifications", headers=outsider)).json()["data"] == []

        hidden = await client.patch(f"/api/notifications/{notification['id']}/read", headers=outsider)
        assert hidden.status_code == 404

        read = await client.patch(f"/api/notifications/{notification['id']}/read", headers=headers)
        assert read.json()["data"]["is_read"] is True

    @pytest.mark.asyncio
    async def test_unknown_recipient(self, make_user, client):
        _, admin = await make_user(role="admin")
        response = await client.post(
            "/api/notifications", json={"user_id": 4040, "message": "Hi"}, headers=admin
        )
        assert response.status_code == 404


class TestNotificationSocket:
    @pytest.mark.parametrize("query", ["", "?token=not-a-jwt"])
    def test_socket_without_valid_token_is_closed(self, query):
        # Not entered as a context manager: the lifespan (database checks) is not needed
        client = TestClient(create_app())
        with pytest.raises(WebSocketDisconnect) as excinfo:
            with client.websocket_connect(f"/api/notifications/ws{query}") as websocket:
                websocket.receive_text()
        assert excinfo.value.code == CLOSE_UNAUTHORIZED
