"""
ConstructX
Tests — Cross-cutting API surface: notifications, audit trail, health,
request guards and response headers.
"""

from constructx.models import db as _db
from constructx.services.notification import NotificationService


def _notify(**kw):
    kw.setdefault("title", "Heads up")
    notif = NotificationService.create(**kw)
    _db.session.commit()
    return notif


# ═════════════════════════════════════════════════════════════════════════════
# NOTIFICATIONS
# ═════════════════════════════════════════════════════════════════════════════

class TestNotifications:
    def test_recipient_sees_own_and_broadcast(self, client):
        _notify(title="For everyone")
        _notify(title="For alice", recipient="alice")
        _notify(title="For bob", recipient="bob")

        alice = client.get("/api/v1/notifications?recipient=alice").get_json()
        assert alice["total"] == 2
        assert {n["title"] for n in alice["items"]} == {"For everyone", "For alice"}
        assert client.get("/api/v1/notifications").get_json()["total"] == 1

    def test_newest_first_and_paging(self, client):
        for i in range(3):
            _notify(title=f"n{i}")
        page = client.get("/api/v1/notifications?limit=2&offset=0").get_json()
        assert [n["title"] for n in page["items"]] == ["n2", "n1"]
        assert page["total"] == 3
        assert page["limit"] == 2
        rest = client.get("/api/v1/notifications?limit=2&offset=2").get_json()
        assert [n["title"] for n in rest["items"]] == ["n0"]

    def test_project_filter(self, client, project):
        _notify(title="Scoped", project_id=project["id"])
        _notify(title="Global")
        res = client.get(f"/api/v1/notifications?project_id={project['id']}").get_json()
        assert [n["title"] for n in res["items"]] == ["Scoped"]

    def test_mark_read_and_counts(self, client):
        first = _notify(title="one")
        _notify(title="two")
        assert client.get("/api/v1/notifications/unread-count").get_json()["unread_count"] == 2

        res = client.patch(f"/api/v1/notifications/{first.id}/read")
        assert res.status_code == 200
        assert res.get_json()["is_read"] is True
        assert res.get_json()["read_at"] is not None
        assert client.get("/api/v1/notifications/unread-count").get_json()["unread_count"] == 1

        unread = client.get("/api/v1/notifications?unread_only=true").get_json()
        assert [n["title"] for n in unread["items"]] == ["two"]

    def test_mark_all_read(self, client):
        _notify(title="one")
        _notify(title="two", recipient="alice")
        _notify(title="three", recipient="bob")
        res = client.post("/api/v1/notifications/mark-all-read", json={"recipient": "alice"})
        assert res.get_json()["marked_read"] == 2
        assert client.get("/api/v1/notifications/unread-count?recipient=bob").get_json()["unread_count"] == 1

    def test_mark_unknown(self, client):
        res = client.patch("/api/v1/notifications/9999/read")
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"


# ═════════════════════════════════════════════════════════════════════════════
# AUDIT
# ═════════════════════════════════════════════════════════════════════════════

class TestAudit:
    def test_filters(self, client, project, budget):
        client.put(f"/api/v1/budgets/{budget['id']}/approve", headers={"X-User": "alice"})

        all_rows = client.get(f"/api/v1/audit?project_id={project['id']}").get_json()
        assert all_rows["total"] >= 3
        assert all_rows["page"] == 1

        budget_rows = client.get(f"/api/v1/audit?entity_type=budget&entity_id={budget['id']}").get_json()
        assert [r["action"] for r in budget_rows["items"]] == ["approve", "create"]
        by_actor = client.get("/api/v1/audit?actor=alice").get_json()
        assert by_actor["total"] == 1

    def test_pagination(self, client):
        for i in range(3):
            client.post("/api/v1/projects", json={"name": f"P{i}"})
        page = client.get("/api/v1/audit?per_page=2&page=2").get_json()
        assert page["pages"] == 2
        assert len(page["items"]) == 1
        assert page["per_page"] == 2

    def test_get_single(self, client, project):
        row = client.get("/api/v1/audit").get_json()["items"][0]
        detail = client.get(f"/api/v1/audit/{row['id']}")
        assert detail.status_code == 200
        assert detail.get_json()["entity_type"] == "project"
        assert client.get("/api/v1/audit/9999").status_code == 404


# ═════════════════════════════════════════════════════════════════════════════
# HEALTH, GUARDS, HEADERS
# ═════════════════════════════════════════════════════════════════════════════

class TestHealth:
    def test_ready(self, client):
        res = client.get("/api/v1/health/ready")
        assert res.status_code == 200
        assert res.get_json() == {"status": "ok"}

    def test_live(self, client):
        res = client.get("/api/v1/health/live")
        assert res.status_code == 200
        data = res.get_json()
        assert data["status"] == "healthy"
        assert data["checks"]["database"]["status"] == "ok"
        assert data["checks"]["app"]["testing"] is True


class TestRequestGuards:
    def test_non_json_body_rejected(self, client):
        res = client.post("/api/v1/projects", data="name=Depot", content_type="text/plain")
        assert res.status_code == 415

    def test_oversized_body_rejected(self, client, app, monkeypatch):
        monkeypatch.setitem(app.config, "MAX_JSON_LENGTH", 32)
        res = client.post("/api/v1/projects", json={"name": "x" * 100})
        assert res.status_code == 413

    def test_unknown_api_path(self, client):
        res = client.get("/api/v1/nope")
        assert res.status_code == 404
        assert res.get_json()["path"] == "/api/v1/nope"

    def test_method_not_allowed(self, client):
        res = client.patch("/api/v1/projects")
        assert res.status_code == 405
        assert res.get_json() == {"error": "Method not allowed"}

    def test_body_less_post_allowed(self, client, project):
        comm = client.post(f"/api/v1/projects/{project['id']}/communications",
                           json={"subject": "Hi"}).get_json()
        assert client.post(f"/api/v1/communications/{comm['id']}/send").status_code == 200


class TestResponseHeaders:
    def test_security_headers(self, client):
        res = client.get("/api/v1/health/ready")
        assert res.headers["X-Content-Type-Options"] == "nosniff"
        assert res.headers["X-Frame-Options"] == "DENY"
        assert "default-src 'none'" in res.headers["Content-Security-Policy"]

    def test_request_id_echoed(self, client):
        res = client.get("/api/v1/projects", headers={"X-Request-ID": "req-123"})
        assert res.headers["X-Request-ID"] == "req-123"
        assert float(res.headers["X-Request-Duration-Ms"]) >= 0
