"""
ConstructX
Tests — API-key authentication and role enforcement.

Auth is off under the testing config; these tests switch it on through the
environment, which takes precedence over app.config.
"""

import pytest

from constructx.auth import _parse_api_keys

KEYS = "adm-key:admin:alice,ed-key:editor:erin,vw-key:viewer"


@pytest.fixture()
def auth_on(monkeypatch):
    monkeypatch.setenv("API_AUTH_ENABLED", "true")
    monkeypatch.setenv("API_KEYS", KEYS)


def _h(key):
    return {"X-API-Key": key}


class TestParseKeys:
    def test_parse(self, monkeypatch):
        monkeypatch.setenv("API_KEYS", "k1:admin:alice, k2:bogus ,k3")
        keys = _parse_api_keys()
        assert keys["k1"] == ("admin", "alice")
        assert keys["k2"] == ("viewer", "api-k2")
        assert keys["k3"] == ("viewer", "api-k3")

    def test_empty(self, monkeypatch):
        monkeypatch.setenv("API_KEYS", "")
        assert _parse_api_keys() == {}


@pytest.mark.usefixtures("auth_on")
class TestAuthentication:
    def test_missing_key(self, client):
        res = client.get("/api/v1/projects")
        assert res.status_code == 401

    def test_invalid_key(self, client):
        assert client.get("/api/v1/projects", headers=_h("nope")).status_code == 401

    def test_health_is_public(self, client):
        assert client.get("/api/v1/health/ready").status_code == 200

    def test_unconfigured_keys(self, client, monkeypatch):
        monkeypatch.setenv("API_KEYS", "")
        assert client.get("/api/v1/projects", headers=_h("adm-key")).status_code == 500


@pytest.mark.usefixtures("auth_on")
class TestRoles:
    def test_viewer_reads_only(self, client):
        assert client.get("/api/v1/projects", headers=_h("vw-key")).status_code == 200
        res = client.post("/api/v1/projects", json={"name": "X"}, headers=_h("vw-key"))
        assert res.status_code == 403

    def test_editor_writes_with_own_name(self, client):
        res = client.post("/api/v1/leads", json={"name": "Clinic", "assigned_to": "erin"},
                          headers={**_h("ed-key"), "X-User": "mallory"})
        assert res.status_code == 201
        assert res.get_json()["created_by"] == "erin"

    def test_editor_cannot_delete(self, client):
        lead = client.post("/api/v1/leads", json={"name": "Clinic", "assigned_to": "erin"},
                           headers=_h("ed-key")).get_json()
        assert client.delete(f"/api/v1/leads/{lead['id']}", headers=_h("ed-key")).status_code == 403
        assert client.delete(f"/api/v1/leads/{lead['id']}", headers=_h("adm-key")).status_code == 200

    def test_admin_purges_archive(self, client):
        project = client.post("/api/v1/projects", json={"name": "Old"}, headers=_h("adm-key")).get_json()
        client.post(f"/api/v1/projects/{project['id']}/archive", headers=_h("adm-key"))
        res = client.delete(f"/api/v1/project-archives/{project['id']}", headers=_h("adm-key"))
        assert res.status_code == 200

        audit = client.get(f"/api/v1/audit?project_id={project['id']}&action=delete_permanent",
                           headers=_h("vw-key")).get_json()
        assert audit["items"][0]["actor"] == "alice"


class TestAuthDisabled:
    def test_x_user_names_actor(self, client):
        res = client.post("/api/v1/leads", json={"name": "Clinic", "assigned_to": "erin"},
                          headers={"X-User": "zoe"})
        assert res.get_json()["created_by"] == "zoe"
