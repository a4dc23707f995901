"""End-to-end tests for the approval request routes."""
import uuid

from approval_tracker.models.profile import Role
from tests.conftest import create_test_profile, grant_role, auth


def _submit(client, user, title="New laptop", **extra):
    resp = client.post("/api/requests/", json={"title": title, **extra}, headers=auth(user))
    assert resp.status_code == 201, resp.text
    return resp.json()


def _approver(client, session_factory, role=Role.approver):
    user = create_test_profile(client, name=f"{role.value.title()}")
    grant_role(session_factory, user["id"], role)
    return user


class TestSubmit:

    def test_submit_joins_queue(self, client):
        user = create_test_profile(client, department="Finance")
        data = _submit(client, user, content="Dell XPS")

        assert data["status"] == "pending"
        assert data["queue_position"] == 1
        assert data["submitter_id"] == user["id"]
        assert data["department"] == "Finance"  # taken from the profile
        assert _submit(client, user, title="Monitor")["queue_position"] == 2

    def test_explicit_department(self, client):
        user = create_test_profile(client, department="Finance")
        assert _submit(client, user, department="IT")["department"] == "IT"

    def test_missing_header(self, client):
        resp = client.post("/api/requests/", json={"title": "Laptop"})
        assert resp.status_code == 401
        assert resp.json()["kind"] == "authentication_error"

    def test_malformed_header(self, client):
        resp = client.post("/api/requests/", json={"title": "Laptop"}, headers={"X-User-Id": "not-a-uuid"})
        assert resp.status_code == 401
        assert resp.json()["kind"] == "authentication_error"

    def test_missing_title_is_structured(self, client):
        user = create_test_profile(client)
        resp = client.post("/api/requests/", json={}, headers=auth(user))
        assert resp.status_code == 422
        body = resp.json()
        assert body["kind"] == "validation_error"
        assert "title" in body["message"]

    def test_unknown_user(self, client):
        resp = client.post("/api/requests/", json={"title": "Laptop"}, headers={"X-User-Id": str(uuid.uuid4())})
        assert resp.status_code == 401

    def test_empty_title(self, client):
        user = create_test_profile(client)
        resp = client.post("/api/requests/", json={"title": "  "}, headers=auth(user))
        assert resp.status_code == 422
        assert resp.json()["kind"] == "validation_error"


class TestDecision:

    def test_employee_cannot_decide(self, client):
        user = create_test_profile(client)
        request = _submit(client, user)

        resp = client.post(f"/api/requests/{request['id']}/decision", json={"decision": "approved"}, headers=auth(user))

        assert resp.status_code == 403
        assert resp.json()["kind"] == "authorization_error"
        assert client.get(f"/api/requests/{request['id']}").json()["status"] == "pending"

    def test_approve_then_conflict(self, client, session_factory):
        user = create_test_profile(client)
        approver = _approver(client, session_factory)
        first = _submit(client, user, title="R1")
        second = _submit(client, user, title="R2")

        resp = client.post(
            f"/api/requests/{first['id']}/decision",
            json={"decision": "approved", "comment": "ok"},
            headers=auth(approver),
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "approved"
        assert resp.json()["queue_position"] is None
        assert client.get(f"/api/requests/{second['id']}").json()["queue_position"] == 1

        actions = client.get("/api/actions/", params={"request_id": first["id"]}).json()
        assert len(actions) == 1
        assert actions[0]["approver_id"] == approver["id"]
        assert actions[0]["decision"] == "approved"
        assert actions[0]["comment"] == "ok"

        again = client.post(
            f"/api/requests/{first['id']}/decision", json={"decision": "rejected"}, headers=auth(approver)
        )
        assert again.status_code == 409
        assert again.json()["kind"] == "conflict"

    def test_invalid_decision(self, client, session_factory):
        user = create_test_profile(client)
        approver = _approver(client, session_factory)
        request = _submit(client, user)

        resp = client.post(f"/api/requests/{request['id']}/decision", json={"decision": "maybe"}, headers=auth(approver))
        assert resp.status_code == 422

    def test_unknown_request(self, client, session_factory):
        approver = _approver(client, session_factory)
        resp = client.post(f"/api/requests/{uuid.uuid4()}/decision", json={"decision": "approved"}, headers=auth(approver))
        assert resp.status_code == 404


class TestEditAndPurge:

    def test_submitter_edits(self, client):
        user = create_test_profile(client)
        request = _submit(client, user)

        resp = client.patch(f"/api/requests/{request['id']}", json={"content": "32GB RAM"}, headers=auth(user))

        assert resp.status_code == 200
        assert resp.json()["content"] == "32GB RAM"
        assert resp.json()["queue_position"] == 1

    def test_explicit_null_clears_content(self, client):
        user = create_test_profile(client)
        request = _submit(client, user, content="Dell XPS")

        resp = client.patch(f"/api/requests/{request['id']}", json={"content": None}, headers=auth(user))

        assert resp.status_code == 200
        assert resp.json()["content"] is None
        assert resp.json()["title"] == "New laptop"

    def test_null_title_rejected(self, client):
        user = create_test_profile(client)
        request = _submit(client, user)

        resp = client.patch(f"/api/requests/{request['id']}", json={"title": None}, headers=auth(user))

        assert resp.status_code == 422
        assert resp.json()["kind"] == "validation_error"

    def test_admin_purges(self, client, session_factory):
        user = create_test_profile(client)
        admin = _approver(client, session_factory, Role.admin)
        first = _submit(client, user, title="R1")
        second = _submit(client, user, title="R2")

        resp = client.delete(f"/api/requests/{first['id']}", headers=auth(admin))

        assert resp.status_code == 204
        assert client.get(f"/api/requests/{first['id']}").status_code == 404
        assert client.get(f"/api/requests/{second['id']}").json()["queue_position"] == 1

    def test_employee_cannot_purge(self, client):
        user = create_test_profile(client)
        request = _submit(client, user)
        resp = client.delete(f"/api/requests/{request['id']}", headers=auth(user))
        assert resp.status_code == 403


class TestReads:

    def test_queue_and_stats(self, client, session_factory):
        user = create_test_profile(client)
        approver = _approver(client, session_factory)
        requests = [_submit(client, user, title=f"R{i}") for i in range(3)]
        client.post(f"/api/requests/{requests[0]['id']}/decision", json={"decision": "rejected"}, headers=auth(approver))

        queue = client.get("/api/requests/queue").json()
        assert [r["title"] for r in queue] == ["R1", "R2"]
        assert [r["queue_position"] for r in queue] == [1, 2]

        stats = client.get("/api/requests/stats").json()
        assert stats == {
            "total_users": 2,
            "total_requests": 3,
            "pending_requests": 2,
            "approved_requests": 0,
            "rejected_requests": 1,
        }

    def test_list_filters(self, client):
        user = create_test_profile(client)
        _submit(client, user, title="A", department="IT")
        _submit(client, user, title="B", department="Ops")

        assert len(client.get("/api/requests/").json()) == 2
        assert [r["title"] for r in client.get("/api/requests/", params={"department": "Ops"}).json()] == ["B"]
        assert client.get("/api/requests/", params={"status_filter": "approved"}).json() == []
        assert client.get("/api/requests/", params={"status_filter": "bogus"}).status_code == 422

    def test_change_feed(self, client, session_factory):
        user = create_test_profile(client)
        approver = _approver(client, session_factory)
        first = _submit(client, user, title="R1")
        _submit(client, user, title="R2")
        client.post(f"/api/requests/{first['id']}/decision", json={"decision": "approved"}, headers=auth(approver))

        events = client.get("/api/changes/").json()
        seqs = [e["seq"] for e in events]
        assert seqs == sorted(seqs)
        assert [(e["table_name"], e["operation"]) for e in events] == [
            ("approval_requests", "insert"),
            ("approval_requests", "insert"),
            ("approval_requests", "update"),
            ("approval_requests", "update"),
            ("approval_actions", "insert"),
        ]
        assert events[2]["payload"]["status"] == "approved"
        assert events[3]["payload"]["queue_position"] == 1

        tail = client.get("/api/changes/", params={"after": seqs[2]}).json()
        assert [e["seq"] for e in tail] == seqs[3:]

    def test_queue_repair(self, client, session_factory):
        user = create_test_profile(client)
        admin = _approver(client, session_factory, Role.admin)
        _submit(client, user, title="R1")
        _submit(client, user, title="R2")

        resp = client.post("/api/requests/queue/reindex", headers=auth(admin))
        assert resp.status_code == 200
        assert resp.json() == []

        denied = client.post("/api/requests/queue/reindex", headers=auth(user))
        assert denied.status_code == 403

    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}
