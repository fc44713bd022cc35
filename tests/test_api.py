# tests/test_api.py
"""
HTTP surface: status codes for each gate, response shapes, and the
post-commit fan-out from the send endpoint.
"""
import asyncio

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from hrms_notify.core.roles import ADMIN, EMPLOYEE, SUPER_ADMIN
from hrms_notify.security.passwords import hash_password


# =============================================================================
# AUTH
# =============================================================================


class TestLogin:

    @pytest.fixture
    def with_password(self, services, seeded):
        async def set_password():
            account = await services.accounts.find_by_email("employee@example.com")
            return await services.accounts.update_fields(account.id, passwordHash=hash_password("S3cret-pass"))

        return asyncio.run(set_password())

    def test_login_returns_both_tokens(self, client, seeded, with_password):
        resp = client.post("/auth/login", json={"email": "Employee@Example.com", "password": "S3cret-pass"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["role"] == EMPLOYEE
        assert body["userId"] == seeded["employee"].id
        assert body["token"] and body["refreshToken"]

        me = client.get("/accounts/me", headers={"Authorization": f"Bearer {body['token']}"})
        assert me.status_code == 200
        assert me.json()["email"] == "employee@example.com"
        assert "passwordHash" not in me.json()

    def test_refresh(self, client, seeded, with_password):
        tokens = client.post("/auth/login", json={"email": "employee@example.com", "password": "S3cret-pass"}).json()
        resp = client.post("/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
        assert resp.status_code == 200
        # an access token cannot be used to refresh
        assert client.post("/auth/refresh", json={"refreshToken": tokens["token"]}).status_code == 401

    @pytest.mark.parametrize(
        "email,password",
        [("employee@example.com", "wrong-pass"), ("nobody@example.com", "S3cret-pass")],
    )
    def test_bad_credentials(self, client, seeded, with_password, email, password):
        resp = client.post("/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 401
        assert resp.json() == {"detail": "Invalid credentials"}


class TestGates:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/accounts/me"),
            ("POST", "/accounts"),
            ("GET", "/notifications/user/u1"),
            ("PUT", "/notifications/n1/read"),
            ("DELETE", "/notifications/cleanup"),
            ("POST", "/notifications/send"),
            ("POST", "/push/subscribe"),
        ],
    )
    def test_requires_auth(self, client, method, path):
        resp = client.request(method, path)
        assert resp.status_code == 401

    def test_deleted_account_token_is_inert(self, client, seeded, headers_for):
        employee = seeded["employee"]
        headers = headers_for(employee)
        assert client.get("/accounts/me", headers=headers).status_code == 200

        resp = client.put(f"/accounts/{employee.id}/status", json={"status": "Deleted"},
                          headers=headers_for(seeded["admin"]))
        assert resp.status_code == 200

        resp = client.get("/accounts/me", headers=headers)
        assert resp.status_code == 401
        assert resp.json() == {"detail": "User not found"}

    def test_employee_cannot_use_admin_routes(self, client, seeded, headers_for):
        headers = headers_for(seeded["employee"])
        assert client.delete("/notifications/cleanup", headers=headers).status_code == 403
        assert client.get("/notifications/debug/consumer-status", headers=headers).status_code == 403


# =============================================================================
# ACCOUNTS
# =============================================================================


class TestRoleGrants:

    @pytest.mark.parametrize(
        "caller,target_role,status",
        [
            ("superadmin", SUPER_ADMIN, 200),
            ("admin", SUPER_ADMIN, 403),
            ("employee", SUPER_ADMIN, 403),
            ("admin", ADMIN, 200),
            ("employee", ADMIN, 403),
            ("superadmin", "Overlord", 422),
        ],
    )
    def test_change_role(self, client, seeded, headers_for, caller, target_role, status):
        target = seeded["other"]
        resp = client.put(f"/accounts/{target.id}/role", json={"role": target_role},
                          headers=headers_for(seeded[caller]))
        assert resp.status_code == status
        if status == 200:
            assert resp.json()["user"]["role"] == target_role

    def test_admin_cannot_demote_superadmin(self, client, seeded, headers_for):
        resp = client.put(f"/accounts/{seeded['superadmin'].id}/role", json={"role": EMPLOYEE},
                          headers=headers_for(seeded["admin"]))
        assert resp.status_code == 403

    def test_create_account_and_duplicate_email(self, client, seeded, headers_for):
        body = {"email": "New@Example.com", "password": "long-enough", "firstName": "New", "lastName": "Hire"}
        headers = headers_for(seeded["admin"])

        resp = client.post("/accounts", json=body, headers=headers)
        assert resp.status_code == 201
        assert resp.json()["user"]["email"] == "new@example.com"
        assert resp.json()["user"]["role"] == EMPLOYEE

        assert client.post("/accounts", json=body, headers=headers).status_code == 409

    def test_admin_cannot_create_superadmin(self, client, seeded, headers_for):
        body = {"email": "boss@example.com", "password": "long-enough", "firstName": "B",
                "lastName": "C", "role": SUPER_ADMIN}
        assert client.post("/accounts", json=body, headers=headers_for(seeded["admin"])).status_code == 403

    def test_delete_removes_push_subscriptions(self, client, services, seeded, headers_for):
        employee = seeded["employee"]
        sub = {"endpoint": "https://push.example.com/e", "keys": {"p256dh": "k", "auth": "a"}}
        assert client.post("/push/subscribe", json=sub, headers=headers_for(employee)).status_code == 201

        client.put(f"/accounts/{employee.id}/status", json={"status": "Deleted"},
                   headers=headers_for(seeded["admin"]))

        assert asyncio.run(services.subscriptions.list_for(employee.id)) == []


# =============================================================================
# NOTIFICATIONS
# =============================================================================


class TestNotifications:

    @pytest.fixture
    def records(self, services, seeded):
        store = services.notifications

        async def create():
            own = [await store.create_for_user(seeded["employee"].id, "todo_assigned", f"todo {i}", "m")
                   for i in range(3)]
            other = await store.create_for_user(seeded["other"].id, "todo_assigned", "theirs", "m")
            return own, other

        return asyncio.run(create())

    def test_list_own(self, client, seeded, headers_for, records):
        employee = seeded["employee"]
        resp = client.get(f"/notifications/user/{employee.id}?page=1&limit=2", headers=headers_for(employee))
        assert resp.status_code == 200
        body = resp.json()
        assert [n["title"] for n in body["notifications"]] == ["todo 2", "todo 1"]
        assert body["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}
        assert body["unreadCount"] == 3

    def test_list_someone_else_needs_admin(self, client, seeded, headers_for, records):
        path = f"/notifications/user/{seeded['employee'].id}"
        assert client.get(path, headers=headers_for(seeded["other"])).status_code == 403
        assert client.get(path, headers=headers_for(seeded["admin"])).status_code == 200

    def test_unread_count(self, client, seeded, headers_for, records):
        employee = seeded["employee"]
        resp = client.get(f"/notifications/user/{employee.id}/unread-count", headers=headers_for(employee))
        assert resp.json() == {"unreadCount": 3}

    def test_mark_read_own(self, client, seeded, headers_for, records):
        own, _ = records
        resp = client.put(f"/notifications/{own[0].id}/read", headers=headers_for(seeded["employee"]))
        assert resp.status_code == 200
        assert resp.json()["notification"]["read"] is True
        assert resp.json()["notification"]["readAt"]

    def test_mark_read_of_another_user_is_404(self, client, services, seeded, headers_for, records):
        _, other = records
        resp = client.put(f"/notifications/{other.id}/read", headers=headers_for(seeded["employee"]))
        assert resp.status_code == 404
        assert asyncio.run(services.notifications.unread_count(seeded["other"].id)) == 1

    def test_read_all_twice(self, client, seeded, headers_for, records):
        employee = seeded["employee"]
        headers = headers_for(employee)
        for _ in range(2):
            resp = client.put(f"/notifications/user/{employee.id}/read-all", headers=headers)
            assert resp.status_code == 200
        count = client.get(f"/notifications/user/{employee.id}/unread-count", headers=headers)
        assert count.json() == {"unreadCount": 0}

    def test_read_all_only_for_self(self, client, seeded, headers_for, records):
        resp = client.put(f"/notifications/user/{seeded['other'].id}/read-all",
                          headers=headers_for(seeded["admin"]))
        assert resp.status_code == 403

    def test_cleanup(self, client, seeded, headers_for, records):
        resp = client.delete("/notifications/cleanup?days=30", headers=headers_for(seeded["admin"]))
        assert resp.status_code == 200
        assert resp.json()["deleted"] == 0

    def test_send_broadcast_runs_after_response(self, client, tables, seeded, headers_for):
        resp = client.post(
            "/notifications/send",
            json={"type": "announcement", "title": "Office closed", "message": "Friday off"},
            headers=headers_for(seeded["admin"]),
        )
        assert resp.status_code == 202
        assert resp.json()["scope"] == "all"
        # one per active seeded account
        assert len(tables.notifications.rows) == 4

    def test_consumer_status(self, client, seeded, headers_for):
        resp = client.get("/notifications/debug/consumer-status", headers=headers_for(seeded["admin"]))
        assert resp.status_code == 200
        assert resp.json()["queue"] == "notifications-queue"

    def test_consumer_status_is_for_admin_roles_only(self, client, seeded, headers_for):
        url = "/notifications/debug/consumer-status"
        assert client.get(url, headers=headers_for(seeded["superadmin"])).status_code == 200
        resp = client.get(url, headers=headers_for(seeded["employee"]))
        assert resp.status_code == 403
        assert resp.json()["detail"] == "Forbidden: requires role one of: Admin, SuperAdmin"


# =============================================================================
# PUSH + WEBSOCKET
# =============================================================================


class TestPush:

    def test_vapid_key(self, client):
        assert client.get("/push/vapid-public-key").json() == {"publicKey": "test-public-key", "enabled": True}

    def test_subscribe_is_idempotent_and_unsubscribe(self, client, services, seeded, headers_for):
        employee = seeded["employee"]
        headers = headers_for(employee)
        sub = {"endpoint": "https://push.example.com/e", "keys": {"p256dh": "k", "auth": "a"}}

        for _ in range(2):
            assert client.post("/push/subscribe", json=sub, headers=headers).status_code == 201
        assert len(asyncio.run(services.subscriptions.list_for(employee.id))) == 1

        resp = client.request("DELETE", "/push/subscribe", json={"endpoint": sub["endpoint"]}, headers=headers)
        assert resp.status_code == 200
        assert asyncio.run(services.subscriptions.list_for(employee.id)) == []

    def test_unsubscribe_all(self, client, seeded, headers_for):
        headers = headers_for(seeded["employee"])
        for n in range(3):
            client.post("/push/subscribe", headers=headers,
                        json={"endpoint": f"https://push.example.com/{n}", "keys": {"p256dh": "k", "auth": "a"}})
        resp = client.delete("/push/subscriptions", headers=headers)
        assert resp.json()["removed"] == 3


class TestWebSocket:

    def test_invalid_token_is_rejected(self, client):
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect("/ws/notifications?token=garbage") as ws:
                ws.receive_json()

    def test_targeted_send_reaches_the_users_socket(self, app, settings, seeded, headers_for):
        employee = seeded["employee"]
        token = headers_for(employee)["Authorization"].split(" ", 1)[1]

        with TestClient(app) as client:
            with client.websocket_connect(f"/ws/notifications?token={token}") as ws:
                resp = client.post(
                    "/notifications/send",
                    json={"type": "leave_status_update", "userId": employee.id, "title": "Leave Approved",
                          "message": "Your leave request has been Approved", "data": {"leaveId": "L1"}},
                    headers=headers_for(seeded["admin"]),
                )
                assert resp.status_code == 202

                event = ws.receive_json()
                assert event["event"] == "notification"
                assert event["payload"]["type"] == "leave_status_update"
                assert event["payload"]["data"] == {"leaveId": "L1"}
