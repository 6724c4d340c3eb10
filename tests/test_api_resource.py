"""
ConstructX
Tests — Resources (labor / equipment / material), project allocations,
availability exceptions and utilization logs.
"""

import pytest


def _resource(client, **kw):
    payload = {"name": "Tower crane TC-2", "type": "equipment", "unit": "units",
               "quantity": 1, "cost": 1800, "supplier": "LiftCo"}
    payload.update(kw)
    return client.post("/api/v1/resources", json=payload)


def _allocate(client, rid, pid, **kw):
    payload = {"project_id": pid, "start_date": "2024-04-01", "end_date": "2024-06-30", "quantity": 1}
    payload.update(kw)
    return client.post(f"/api/v1/resources/{rid}/allocations", json=payload)


class TestResources:
    def test_create(self, client):
        res = _resource(client)
        assert res.status_code == 201
        data = res.get_json()
        assert data["status"] == "available"
        assert data["project_id"] is None

    @pytest.mark.parametrize("overrides", [
        {"name": ""},
        {"name": 123},
        {"supplier": ["LiftCo"]},
        {"project_id": [1]},
        {"cost": "inf"},
        {"type": "vehicle"},
        {"unit": "tons"},
        {"type": "material", "unit": "workers"},
        {"status": "lost"},
        {"quantity": -2},
        {"delivery_date": "asap"},
    ])
    def test_create_validation(self, client, overrides):
        assert _resource(client, **overrides).status_code == 400

    def test_unknown_project(self, client):
        assert _resource(client, project_id=9999).status_code == 404

    def test_update_unit_checked_against_type(self, client):
        res = _resource(client).get_json()
        assert client.put(f"/api/v1/resources/{res['id']}", json={"unit": "tons"}).status_code == 400
        ok = client.put(f"/api/v1/resources/{res['id']}", json={"type": "material", "unit": "tons"})
        assert ok.status_code == 200
        assert ok.get_json()["unit"] == "tons"

    def test_filters(self, client, project):
        _resource(client)
        _resource(client, name="Ready-mix concrete", type="material", unit="cubic yards",
                  project_id=project["id"], supplier="Metro Mix")
        _resource(client, name="Carpentry crew", type="labor", unit="workers", status="on_order")

        assert client.get("/api/v1/resources?type=material").get_json()["total"] == 1
        assert client.get("/api/v1/resources?status=on_order").get_json()["total"] == 1
        assert client.get(f"/api/v1/resources?project_id={project['id']}").get_json()["total"] == 1
        names = [r["name"] for r in client.get("/api/v1/resources").get_json()["items"]]
        assert names == sorted(names)
        assert client.get("/api/v1/resources?search=metro").get_json()["total"] == 1

    def test_delete_removes_allocations(self, client, project):
        res = _resource(client).get_json()
        _allocate(client, res["id"], project["id"])
        assert client.delete(f"/api/v1/resources/{res['id']}").status_code == 200
        assert client.get(f"/api/v1/projects/{project['id']}/resource-allocations").get_json()["total"] == 0


class TestAllocations:
    def test_allocate_marks_resource_allocated(self, client, project):
        res = _resource(client).get_json()
        alloc = _allocate(client, res["id"], project["id"], utilization=75)
        assert alloc.status_code == 201
        data = alloc.get_json()
        assert data["status"] == "Planned"
        assert data["resource_name"] == "Tower crane TC-2"
        assert data["utilization"] == 75
        assert data["created_by"] == "dev"

        detail = client.get(f"/api/v1/resources/{res['id']}").get_json()
        assert detail["status"] == "allocated"
        assert len(detail["allocations"]) == 1

    @pytest.mark.parametrize("overrides, status", [
        ({"project_id": None}, 400),
        ({"project_id": 9999}, 404),
        ({"start_date": None}, 400),
        ({"end_date": "2024-03-01"}, 400),
        ({"utilization": 120}, 400),
        ({"quantity": -1}, 400),
        ({"status": "Booked"}, 400),
    ])
    def test_allocation_validation(self, client, project, overrides, status):
        res = _resource(client).get_json()
        assert _allocate(client, res["id"], project["id"], **overrides).status_code == status

    def test_update_allocation(self, client, project):
        res = _resource(client).get_json()
        alloc = _allocate(client, res["id"], project["id"]).get_json()
        upd = client.put(f"/api/v1/resource-allocations/{alloc['id']}",
                         json={"status": "In Use", "end_date": "2024-07-31"})
        assert upd.status_code == 200
        assert upd.get_json()["status"] == "In Use"
        assert upd.get_json()["end_date"] == "2024-07-31"

    def test_allocation_cannot_move(self, client, project):
        res = _resource(client).get_json()
        alloc = _allocate(client, res["id"], project["id"]).get_json()
        upd = client.put(f"/api/v1/resource-allocations/{alloc['id']}", json={"project_id": project["id"] + 1})
        assert upd.status_code == 400

    def test_project_allocations_sorted(self, client, project):
        crane = _resource(client).get_json()
        crew = _resource(client, name="Crew", type="labor", unit="workers").get_json()
        _allocate(client, crane["id"], project["id"], start_date="2024-05-01")
        _allocate(client, crew["id"], project["id"], start_date="2024-02-01")

        items = client.get(f"/api/v1/projects/{project['id']}/resource-allocations").get_json()["items"]
        assert [a["resource_name"] for a in items] == ["Crew", "Tower crane TC-2"]

    def test_delete_allocation(self, client, project):
        res = _resource(client).get_json()
        alloc = _allocate(client, res["id"], project["id"]).get_json()
        assert client.delete(f"/api/v1/resource-allocations/{alloc['id']}").status_code == 200
        assert client.get(f"/api/v1/resources/{res['id']}/allocations").get_json()["total"] == 0


def _unavailable(client, rid, **kw):
    payload = {"start_date": "2024-05-06", "end_date": "2024-05-10", "reason": "Maintenance"}
    payload.update(kw)
    return client.post(f"/api/v1/resources/{rid}/availability", json=payload)


def _log_use(client, rid, **kw):
    payload = {"date": "2024-05-02", "hours": 6}
    payload.update(kw)
    return client.post(f"/api/v1/resources/{rid}/utilization", json=payload)


class TestAvailability:
    def test_add_and_list(self, client):
        res = _resource(client).get_json()
        created = _unavailable(client, res["id"], notes="Annual inspection")
        assert created.status_code == 201
        data = created.get_json()
        assert data["reason"] == "Maintenance"
        assert data["created_by"] == "dev"

        _unavailable(client, res["id"], start_date="2024-03-01", end_date="2024-03-02", reason="Reserved")
        items = client.get(f"/api/v1/resources/{res['id']}/availability").get_json()["items"]
        assert [e["reason"] for e in items] == ["Reserved", "Maintenance"]

    def test_date_window_filter(self, client):
        res = _resource(client).get_json()
        _unavailable(client, res["id"], start_date="2024-03-01", end_date="2024-03-02")
        _unavailable(client, res["id"], start_date="2024-06-01", end_date="2024-06-05")
        url = f"/api/v1/resources/{res['id']}/availability"
        assert client.get(f"{url}?start_date=2024-04-01").get_json()["total"] == 1
        assert client.get(f"{url}?end_date=2024-04-01").get_json()["total"] == 1

    @pytest.mark.parametrize("overrides", [
        {"start_date": None},
        {"end_date": ""},
        {"reason": ""},
        {"reason": 5},
        {"end_date": "2024-05-01"},
    ])
    def test_validation(self, client, overrides):
        res = _resource(client).get_json()
        assert _unavailable(client, res["id"], **overrides).status_code == 400

    def test_unknown_resource(self, client):
        assert _unavailable(client, 9999).status_code == 404

    def test_update_and_delete(self, client):
        res = _resource(client).get_json()
        entry = _unavailable(client, res["id"]).get_json()
        upd = client.put(f"/api/v1/availability/{entry['id']}", json={"end_date": "2024-05-17", "reason": "Repair"})
        assert upd.status_code == 200
        assert upd.get_json()["end_date"] == "2024-05-17"
        assert upd.get_json()["reason"] == "Repair"

        bad = client.put(f"/api/v1/availability/{entry['id']}", json={"end_date": "2024-01-01"})
        assert bad.status_code == 400

        assert client.delete(f"/api/v1/availability/{entry['id']}").status_code == 200
        assert client.delete(f"/api/v1/availability/{entry['id']}").status_code == 404

    def test_removed_with_resource(self, client):
        res = _resource(client).get_json()
        entry = _unavailable(client, res["id"]).get_json()
        client.delete(f"/api/v1/resources/{res['id']}")
        assert client.put(f"/api/v1/availability/{entry['id']}", json={"reason": "x"}).status_code == 404


class TestUtilization:
    def test_record_hours_for_equipment(self, client, project):
        res = _resource(client).get_json()
        created = _log_use(client, res["id"], project_id=project["id"], notes="Steel lift")
        assert created.status_code == 201
        data = created.get_json()
        assert data["resource_type"] == "equipment"
        assert data["hours"] == 6
        assert data["project_id"] == project["id"]
        assert data["resource_name"] == "Tower crane TC-2"

    def test_material_needs_quantity(self, client):
        concrete = _resource(client, name="Ready-mix", type="material", unit="cubic yards").get_json()
        assert _log_use(client, concrete["id"]).status_code == 400
        ok = _log_use(client, concrete["id"], hours=None, quantity=12.5)
        assert ok.status_code == 201
        assert ok.get_json()["quantity"] == 12.5

    @pytest.mark.parametrize("overrides, status", [
        ({"date": None}, 400),
        ({"date": "yesterday"}, 400),
        ({"hours": 0}, 400),
        ({"hours": -3}, 400),
        ({"hours": "nan"}, 400),
        ({"project_id": 9999}, 404),
    ])
    def test_validation(self, client, overrides, status):
        res = _resource(client).get_json()
        assert _log_use(client, res["id"], **overrides).status_code == status

    def test_listing_newest_first_and_by_project(self, client, project):
        res = _resource(client).get_json()
        _log_use(client, res["id"], date="2024-05-01", project_id=project["id"])
        _log_use(client, res["id"], date="2024-05-03", project_id=project["id"])
        _log_use(client, res["id"], date="2024-05-02")

        by_resource = client.get(f"/api/v1/resources/{res['id']}/utilization").get_json()
        assert [r["date"] for r in by_resource["items"]] == ["2024-05-03", "2024-05-02", "2024-05-01"]

        by_project = client.get(f"/api/v1/projects/{project['id']}/utilization").get_json()
        assert by_project["total"] == 2
        ranged = client.get(f"/api/v1/projects/{project['id']}/utilization?start_date=2024-05-02").get_json()
        assert [r["date"] for r in ranged["items"]] == ["2024-05-03"]

    def test_unknown_project_listing(self, client):
        assert client.get("/api/v1/projects/9999/utilization").status_code == 404

    def test_update_and_delete(self, client):
        res = _resource(client).get_json()
        record = _log_use(client, res["id"]).get_json()
        upd = client.put(f"/api/v1/utilization/{record['id']}", json={"hours": 7.5, "notes": "Overtime"})
        assert upd.status_code == 200
        assert upd.get_json()["hours"] == 7.5

        assert client.put(f"/api/v1/utilization/{record['id']}", json={"hours": None}).status_code == 400
        assert client.put(f"/api/v1/utilization/{record['id']}",
                          json={"resource_type": "material"}).status_code == 400

        assert client.delete(f"/api/v1/utilization/{record['id']}").status_code == 200
        assert client.get(f"/api/v1/resources/{res['id']}/utilization").get_json()["total"] == 0
