"""
ConstructX
Tests — Leads: pipeline, contacts, activity timeline and project conversion.
"""

import pytest


def _lead(client, **kw):
    payload = {"name": "Riverside Clinic fit-out", "client_company": "Riverside Health",
               "assigned_to": "alice", "estimated_value": 250000, "probability": 40,
               "source": "Referral", "estimated_start_date": "2024-09-01"}
    payload.update(kw)
    return client.post("/api/v1/leads", json=payload)


class TestLeadCrud:
    def test_create(self, client):
        res = _lead(client)
        assert res.status_code == 201
        data = res.get_json()
        assert data["status"] == "New"
        assert data["created_by"] == "dev"
        assert data["last_activity_at"] is not None

        acts = client.get(f"/api/v1/leads/{data['id']}/activities").get_json()
        assert [a["title"] for a in acts["items"]] == ["Lead Created"]

    @pytest.mark.parametrize("overrides", [
        {"name": ""},
        {"assigned_to": None},
        {"name": 123},
        {"assigned_to": ["alice"]},
        {"status": "Cold"},
        {"probability": 120},
        {"probability": "50"},
        {"estimated_value": -1},
        {"estimated_duration": "long"},
        {"estimated_start_date": "soon"},
    ])
    def test_create_validation(self, client, overrides):
        assert _lead(client, **overrides).status_code == 400

    def test_update_logs_activity(self, client):
        lead = _lead(client).get_json()
        res = client.put(f"/api/v1/leads/{lead['id']}", json={"status": "Qualified", "probability": 60})
        assert res.status_code == 200
        assert res.get_json()["status"] == "Qualified"

        acts = client.get(f"/api/v1/leads/{lead['id']}/activities").get_json()["items"]
        assert acts[0]["title"] == "Lead Updated"
        assert acts[0]["description"] == "Updated: probability, status"

        audit = client.get("/api/v1/audit?entity_type=lead&action=update").get_json()
        assert audit["total"] == 1

    def test_update_without_changes_still_logged(self, client):
        lead = _lead(client).get_json()
        res = client.put(f"/api/v1/leads/{lead['id']}", json={"name": lead["name"]})
        assert res.status_code == 200
        assert res.get_json()["last_activity_at"] >= lead["last_activity_at"]

        acts = client.get(f"/api/v1/leads/{lead['id']}/activities").get_json()["items"]
        assert [a["title"] for a in acts] == ["Lead Updated", "Lead Created"]
        assert acts[0]["description"] == "Lead details updated by dev"
        assert client.get("/api/v1/audit?entity_type=lead&action=update").get_json()["total"] == 0

    def test_protected_fields(self, client):
        lead = _lead(client).get_json()
        res = client.put(f"/api/v1/leads/{lead['id']}", json={"created_by": "mallory"})
        assert res.status_code == 400
        assert "created_by" in res.get_json()["error"]

    def test_filters(self, client):
        _lead(client)
        _lead(client, name="Depot expansion", assigned_to="bob", source="Website", client_company="FleetCo")
        assert client.get("/api/v1/leads?assigned_to=bob").get_json()["total"] == 1
        assert client.get("/api/v1/leads?source=Referral").get_json()["total"] == 1
        assert client.get("/api/v1/leads?search=fleet").get_json()["total"] == 1

    def test_delete_cascades(self, client):
        lead = _lead(client).get_json()
        client.post(f"/api/v1/leads/{lead['id']}/contacts", json={"first_name": "Ana", "last_name": "Silva"})
        assert client.delete(f"/api/v1/leads/{lead['id']}").status_code == 200
        assert client.get(f"/api/v1/leads/{lead['id']}").status_code == 404


class TestContacts:
    def test_single_primary_contact(self, client):
        lead = _lead(client).get_json()
        url = f"/api/v1/leads/{lead['id']}/contacts"
        first = client.post(url, json={"first_name": "Ana", "last_name": "Silva", "is_primary": True}).get_json()
        second = client.post(url, json={"first_name": "Ben", "last_name": "Okoro", "is_primary": True}).get_json()

        contacts = {c["id"]: c for c in client.get(url).get_json()["items"]}
        assert contacts[first["id"]]["is_primary"] is False
        assert contacts[second["id"]]["is_primary"] is True

        client.put(f"{url}/{first['id']}", json={"is_primary": True})
        contacts = {c["id"]: c for c in client.get(url).get_json()["items"]}
        assert contacts[first["id"]]["is_primary"] is True
        assert contacts[second["id"]]["is_primary"] is False

    def test_contact_validation(self, client):
        lead = _lead(client).get_json()
        url = f"/api/v1/leads/{lead['id']}/contacts"
        assert client.post(url, json={"first_name": "Ana"}).status_code == 400
        contact = client.post(url, json={"first_name": "Ana", "last_name": "Silva"}).get_json()
        assert client.put(f"{url}/{contact['id']}", json={"last_name": ""}).status_code == 400

    def test_remove_contact(self, client):
        lead = _lead(client).get_json()
        url = f"/api/v1/leads/{lead['id']}/contacts"
        contact = client.post(url, json={"first_name": "Ana", "last_name": "Silva"}).get_json()
        assert client.delete(f"{url}/{contact['id']}").status_code == 200
        assert client.delete(f"{url}/{contact['id']}").status_code == 404

    def test_contact_of_other_lead(self, client):
        lead_a = _lead(client).get_json()
        lead_b = _lead(client, name="Other").get_json()
        contact = client.post(f"/api/v1/leads/{lead_a['id']}/contacts",
                              json={"first_name": "Ana", "last_name": "Silva"}).get_json()
        res = client.put(f"/api/v1/leads/{lead_b['id']}/contacts/{contact['id']}", json={"phone": "1"})
        assert res.status_code == 404

    def test_lead_detail_embeds_contacts(self, client):
        lead = _lead(client).get_json()
        client.post(f"/api/v1/leads/{lead['id']}/contacts", json={"first_name": "Ana", "last_name": "Silva"})
        assert len(client.get(f"/api/v1/leads/{lead['id']}").get_json()["contacts"]) == 1


class TestActivitiesAndNotes:
    def test_log_call(self, client):
        lead = _lead(client).get_json()
        res = client.post(f"/api/v1/leads/{lead['id']}/activities", json={
            "type": "Call", "title": "Intro call", "outcome": "Send proposal",
            "scheduled_at": "2024-05-01T10:00:00Z",
        })
        assert res.status_code == 201
        data = res.get_json()
        assert data["type"] == "Call"
        assert data["performed_by"] == "dev"

    @pytest.mark.parametrize("payload", [{}, {"type": "Fax"}, {"type": "Call", "scheduled_at": "tomorrow"}])
    def test_activity_validation(self, client, payload):
        lead = _lead(client).get_json()
        assert client.post(f"/api/v1/leads/{lead['id']}/activities", json=payload).status_code == 400

    def test_note_adds_preview_activity(self, client):
        lead = _lead(client).get_json()
        content = "x" * 150
        res = client.post(f"/api/v1/leads/{lead['id']}/notes", json={"content": content})
        assert res.status_code == 201

        notes = client.get(f"/api/v1/leads/{lead['id']}/notes").get_json()
        assert notes["items"][0]["content"] == content
        acts = client.get(f"/api/v1/leads/{lead['id']}/activities").get_json()["items"]
        assert acts[0]["title"] == "Note Added"
        assert acts[0]["description"] == "x" * 100 + "..."

    def test_empty_note(self, client):
        lead = _lead(client).get_json()
        assert client.post(f"/api/v1/leads/{lead['id']}/notes", json={"content": ""}).status_code == 400


class TestConversion:
    def test_convert_creates_project(self, client):
        lead = _lead(client).get_json()
        res = client.post(f"/api/v1/leads/{lead['id']}/convert-to-project", json={"location": "Riverside"})
        assert res.status_code == 201
        data = res.get_json()
        assert data["lead"]["status"] == "Won"
        project = data["project"]
        assert project["name"] == "Riverside Clinic fit-out"
        assert project["client_name"] == "Riverside Health"
        assert project["project_manager"] == "alice"
        assert project["budget"] == 250000
        assert project["start_date"] == "2024-09-01"
        assert project["status"] == "Planning"
        assert project["lead_origin_id"] == lead["id"]
        assert project["location"] == "Riverside"

        acts = client.get(f"/api/v1/leads/{lead['id']}/activities").get_json()["items"]
        assert acts[0]["title"] == "Lead Converted to Project"

    def test_overrides(self, client):
        lead = _lead(client).get_json()
        project = client.post(f"/api/v1/leads/{lead['id']}/convert-to-project",
                              json={"name": "Clinic Phase 1", "status": "Active"}).get_json()["project"]
        assert project["name"] == "Clinic Phase 1"
        assert project["status"] == "Active"

    @pytest.mark.parametrize("status", ["Won", "Lost"])
    def test_closed_leads_cannot_convert(self, client, status):
        lead = _lead(client, status=status).get_json()
        res = client.post(f"/api/v1/leads/{lead['id']}/convert-to-project", json={})
        assert res.status_code == 422
        assert client.get("/api/v1/projects").get_json()["total"] == 0

    def test_second_conversion_rejected(self, client):
        lead = _lead(client).get_json()
        client.post(f"/api/v1/leads/{lead['id']}/convert-to-project", json={})
        res = client.post(f"/api/v1/leads/{lead['id']}/convert-to-project", json={})
        assert res.status_code == 422


class TestPipeline:
    def test_summary(self, client):
        _lead(client, estimated_value=100000, probability=50)
        _lead(client, name="Warehouse", status="Proposal", estimated_value=200000, probability=25)
        _lead(client, name="Old bid", status="Lost", estimated_value=50000, probability=0)

        data = client.get("/api/v1/leads/pipeline").get_json()
        stages = {s["status"]: s for s in data["stages"]}
        assert [s["status"] for s in data["stages"]] == [
            "New", "Contacted", "Qualified", "Proposal", "Negotiation", "Won", "Lost",
        ]
        assert stages["New"] == {"status": "New", "count": 1, "total_value": 100000,
                                 "weighted_value": 50000}
        assert stages["Proposal"]["weighted_value"] == 50000
        assert stages["Lost"]["count"] == 1
        assert data["total_count"] == 3
        assert data["total_value"] == 350000
        assert data["weighted_value"] == 100000
