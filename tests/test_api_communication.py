"""
ConstructX
Tests — Project communications, sending and reply threads.
"""

import pytest


def _comm(client, pid, **kw):
    payload = {"subject": "Concrete pour schedule", "content": "Pour moved to Friday.",
               "recipients": ["site@harborview.test", "pm@harborview.test"]}
    payload.update(kw)
    return client.post(f"/api/v1/projects/{pid}/communications", json=payload)


class TestCommunicationCrud:
    def test_create_defaults(self, client, project):
        res = _comm(client, project["id"])
        assert res.status_code == 201
        data = res.get_json()
        assert data["type"] == "message"
        assert data["status"] == "draft"
        assert data["priority"] == "medium"
        assert data["sender"] == "dev"
        assert data["sent_date"] is None

    def test_create_already_sent_stamps_date(self, client, project):
        data = _comm(client, project["id"], status="sent").get_json()
        assert data["sent_date"] is not None

    @pytest.mark.parametrize("overrides", [
        {"subject": "  "},
        {"type": "fax"},
        {"status": "queued"},
        {"priority": "asap"},
        {"recipients": "site@harborview.test"},
        {"scheduled_date": "next week"},
        {"subject": 123},
        {"content": ["Pour moved"]},
        {"type": ["meeting"]},
    ])
    def test_create_validation(self, client, project, overrides):
        assert _comm(client, project["id"], **overrides).status_code == 400

    def test_update(self, client, project):
        comm = _comm(client, project["id"]).get_json()
        res = client.put(f"/api/v1/communications/{comm['id']}",
                         json={"priority": "urgent", "tags": ["schedule"]})
        assert res.status_code == 200
        assert res.get_json()["priority"] == "urgent"
        assert res.get_json()["tags"] == ["schedule"]

    def test_filters(self, client, project):
        pid = project["id"]
        _comm(client, pid)
        _comm(client, pid, subject="Site meeting", type="meeting", priority="high",
              content="Weekly coordination in the site office.")
        assert client.get(f"/api/v1/projects/{pid}/communications?type=meeting").get_json()["total"] == 1
        assert client.get(f"/api/v1/projects/{pid}/communications?priority=high").get_json()["total"] == 1
        assert client.get(f"/api/v1/projects/{pid}/communications?search=friday").get_json()["total"] == 1

    def test_delete_removes_responses(self, client, project):
        comm = _comm(client, project["id"]).get_json()
        client.post(f"/api/v1/communications/{comm['id']}/responses", json={"content": "Noted"})
        assert client.delete(f"/api/v1/communications/{comm['id']}").status_code == 200
        assert client.get(f"/api/v1/communications/{comm['id']}").status_code == 404


class TestSending:
    def test_send_draft(self, client, project):
        comm = _comm(client, project["id"]).get_json()
        res = client.post(f"/api/v1/communications/{comm['id']}/send")
        assert res.status_code == 200
        data = res.get_json()
        assert data["status"] == "sent"
        assert data["sent_date"] is not None

    def test_send_scheduled(self, client, project):
        comm = _comm(client, project["id"], status="scheduled", scheduled_date="2030-01-01").get_json()
        assert client.post(f"/api/v1/communications/{comm['id']}/send").status_code == 200

    @pytest.mark.parametrize("status", ["sent", "cancelled"])
    def test_cannot_resend(self, client, project, status):
        comm = _comm(client, project["id"], status=status).get_json()
        res = client.post(f"/api/v1/communications/{comm['id']}/send")
        assert res.status_code == 422
        assert res.get_json()["code"] == "ERR_CONFLICT_STATE"


class TestResponses:
    def test_thread(self, client, project):
        comm = _comm(client, project["id"]).get_json()
        url = f"/api/v1/communications/{comm['id']}/responses"
        first = client.post(url, json={"content": "Confirmed", "date": "2024-03-02"})
        assert first.status_code == 201
        assert first.get_json()["sender"] == "dev"
        client.post(url, json={"content": "Crew booked", "sender": "Foreman", "date": "2024-03-03"})

        listing = client.get(url).get_json()
        assert listing["total"] == 2
        assert [r["content"] for r in listing["items"]] == ["Confirmed", "Crew booked"]
        detail = client.get(f"/api/v1/communications/{comm['id']}").get_json()
        assert len(detail["responses"]) == 2

    def test_empty_response_rejected(self, client, project):
        comm = _comm(client, project["id"]).get_json()
        res = client.post(f"/api/v1/communications/{comm['id']}/responses", json={"content": ""})
        assert res.status_code == 400
