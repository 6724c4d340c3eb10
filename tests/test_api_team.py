"""
ConstructX
Tests — Team members and role definitions.
"""

import pytest


def _member(client, **kw):
    payload = {"name": "Dana Whitfield", "role": "Site Engineer", "email": "dana@harborview.test",
               "department": "Engineering", "skills": ["AutoCAD"]}
    payload.update(kw)
    return client.post("/api/v1/team/members", json=payload)


def _role(client, **kw):
    payload = {"name": "Site Engineer", "description": "Runs daily site work", "permissions": ["qc:write"]}
    payload.update(kw)
    return client.post("/api/v1/team/roles", json=payload)


class TestMembers:
    def test_create(self, client):
        res = _member(client)
        assert res.status_code == 201
        data = res.get_json()
        assert data["status"] == "active"
        assert data["skills"] == ["AutoCAD"]

    @pytest.mark.parametrize("overrides", [
        {"name": ""}, {"role": None}, {"email": " "}, {"status": "retired"}, {"join_date": "yesterday"},
        {"name": 123}, {"email": ["dana@harborview.test"]}, {"department": 7},
    ])
    def test_create_validation(self, client, overrides):
        assert _member(client, **overrides).status_code == 400

    def test_duplicate_email_case_insensitive(self, client):
        _member(client)
        res = _member(client, name="Other", email="DANA@harborview.test")
        assert res.status_code == 409
        assert res.get_json()["code"] == "ERR_CONFLICT_DUPLICATE"

    def test_update(self, client):
        member = _member(client).get_json()
        res = client.put(f"/api/v1/team/members/{member['id']}", json={"status": "on_leave", "phone": "555-0100"})
        assert res.status_code == 200
        assert res.get_json()["status"] == "on_leave"

    def test_update_email_conflict(self, client):
        _member(client)
        other = _member(client, name="Lee", email="lee@harborview.test").get_json()
        res = client.put(f"/api/v1/team/members/{other['id']}", json={"email": "dana@harborview.test"})
        assert res.status_code == 409

    def test_filters(self, client):
        _member(client)
        _member(client, name="Lee Park", email="lee@harborview.test", role="Foreman", department="Field")
        assert client.get("/api/v1/team/members?role=Foreman").get_json()["total"] == 1
        assert client.get("/api/v1/team/members?department=Engineering").get_json()["total"] == 1
        assert client.get("/api/v1/team/members?search=lee@").get_json()["total"] == 1

    def test_delete(self, client):
        member = _member(client).get_json()
        assert client.delete(f"/api/v1/team/members/{member['id']}").status_code == 200
        assert client.get(f"/api/v1/team/members/{member['id']}").status_code == 404


class TestRoles:
    def test_create_and_count(self, client):
        role = _role(client).get_json()
        _member(client)
        data = client.get(f"/api/v1/team/roles/{role['id']}").get_json()
        assert data["member_count"] == 1
        assert data["permissions"] == ["qc:write"]

    def test_duplicate_name(self, client):
        _role(client)
        assert _role(client).status_code == 409

    def test_permissions_must_be_list(self, client):
        assert _role(client, permissions="all").status_code == 400

    @pytest.mark.parametrize("overrides", [{"name": ""}, {"name": 123}, {"description": ["x"]}])
    def test_create_validation(self, client, overrides):
        assert _role(client, **overrides).status_code == 400

    def test_update_name_must_be_text(self, client):
        role = _role(client).get_json()
        res = client.put(f"/api/v1/team/roles/{role['id']}", json={"name": 42})
        assert res.status_code == 400

    def test_rename_updates_members(self, client):
        role = _role(client).get_json()
        member = _member(client).get_json()
        res = client.put(f"/api/v1/team/roles/{role['id']}", json={"name": "Field Engineer"})
        assert res.status_code == 200
        assert client.get(f"/api/v1/team/members/{member['id']}").get_json()["role"] == "Field Engineer"

    def test_cannot_delete_role_in_use(self, client):
        role = _role(client).get_json()
        member = _member(client).get_json()
        assert client.delete(f"/api/v1/team/roles/{role['id']}").status_code == 422

        client.delete(f"/api/v1/team/members/{member['id']}")
        assert client.delete(f"/api/v1/team/roles/{role['id']}").status_code == 200

    def test_list_sorted(self, client):
        _role(client, name="Superintendent")
        _role(client, name="Estimator")
        names = [r["name"] for r in client.get("/api/v1/team/roles").get_json()["items"]]
        assert names == ["Estimator", "Superintendent"]
