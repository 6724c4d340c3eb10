"""
ConstructX
Tests — Safety items (hazards, incidents, meetings) and remediation actions.
"""

import pytest


def _item(client, pid, **kw):
    payload = {"title": "Unguarded floor opening", "type": "hazard", "severity": "high",
               "location": "Level 3 east"}
    payload.update(kw)
    return client.post(f"/api/v1/projects/{pid}/safety-items", json=payload)


def _actions(*statuses, due="2030-01-01"):
    return [{"description": f"Action {i}", "status": s, "due_date": due}
            for i, s in enumerate(statuses, 1)]


class TestSafetyCrud:
    def test_create_defaults(self, client, project):
        res = _item(client, project["id"])
        assert res.status_code == 201
        data = res.get_json()
        assert data["status"] == "open"
        assert data["reported_date"] is not None
        assert data["actions"] == []

    def test_meeting_starts_scheduled(self, client, project):
        data = _item(client, project["id"], title="Toolbox talk", type="safety_meeting",
                     severity="low").get_json()
        assert data["status"] == "scheduled"

    @pytest.mark.parametrize("overrides", [
        {"title": ""},
        {"type": "fire"},
        {"severity": "extreme"},
        {"status": "archived"},
        {"actions": {"description": "x"}},
        {"actions": [{"description": ""}]},
        {"actions": [{"description": "Barricade", "status": "done"}]},
        {"reported_date": "not-a-date"},
        {"title": 7},
        {"location": {"level": 3}},
        {"actions": [{"description": 12}]},
    ])
    def test_create_validation(self, client, project, overrides):
        assert _item(client, project["id"], **overrides).status_code == 400

    def test_update_and_delete(self, client, project):
        item = _item(client, project["id"]).get_json()
        res = client.put(f"/api/v1/safety-items/{item['id']}",
                         json={"assigned_to": "Site safety officer", "severity": "medium"})
        assert res.status_code == 200
        assert res.get_json()["severity"] == "medium"

        assert client.delete(f"/api/v1/safety-items/{item['id']}").status_code == 200
        assert client.get(f"/api/v1/safety-items/{item['id']}").status_code == 404


class TestSafetyActions:
    def test_actions_drive_status(self, client, project):
        item = _item(client, project["id"], actions=_actions("pending", "pending")).get_json()
        assert item["status"] == "open"

        first, second = (a["id"] for a in item["actions"])
        res = client.patch(f"/api/v1/safety-items/{item['id']}/actions/{first}", json={"status": "completed"})
        data = res.get_json()
        assert data["status"] == "in_progress"
        assert data["actions"][0]["completed_date"] is not None

        res = client.patch(f"/api/v1/safety-items/{item['id']}/actions/{second}", json={"status": "completed"})
        data = res.get_json()
        assert data["status"] == "resolved"
        assert data["completed_date"] is not None

    def test_reopening_action_clears_completed_date(self, client, project):
        item = _item(client, project["id"], actions=_actions("completed")).get_json()
        aid = item["actions"][0]["id"]
        data = client.patch(f"/api/v1/safety-items/{item['id']}/actions/{aid}",
                            json={"status": "in_progress"}).get_json()
        assert data["actions"][0]["completed_date"] is None
        assert data["status"] == "in_progress"

    def test_meeting_resolves_to_completed(self, client, project):
        item = _item(client, project["id"], type="safety_meeting", severity="low",
                     actions=_actions("completed")).get_json()
        assert item["status"] == "completed"

    def test_replace_actions(self, client, project):
        item = _item(client, project["id"], actions=_actions("pending")).get_json()
        data = client.put(f"/api/v1/safety-items/{item['id']}",
                          json={"actions": _actions("completed", "completed")}).get_json()
        assert len(data["actions"]) == 2
        assert data["status"] == "resolved"

    def test_unknown_action(self, client, project):
        item = _item(client, project["id"]).get_json()
        res = client.patch(f"/api/v1/safety-items/{item['id']}/actions/9999", json={"status": "completed"})
        assert res.status_code == 404

    def test_blank_action_description(self, client, project):
        item = _item(client, project["id"], actions=_actions("pending")).get_json()
        aid = item["actions"][0]["id"]
        res = client.patch(f"/api/v1/safety-items/{item['id']}/actions/{aid}", json={"description": " "})
        assert res.status_code == 400


class TestSafetyAlerts:
    def test_critical_hazard_notifies(self, client, project):
        _item(client, project["id"], severity="critical")
        feed = client.get(f"/api/v1/notifications?project_id={project['id']}").get_json()
        safety = [n for n in feed["items"] if n["category"] == "safety"]
        assert len(safety) == 1
        assert safety[0]["severity"] == "error"
        assert safety[0]["title"].startswith("Critical hazard")

    def test_critical_training_does_not_notify(self, client, project):
        _item(client, project["id"], type="training", severity="critical")
        feed = client.get(f"/api/v1/notifications?project_id={project['id']}").get_json()
        assert feed["total"] == 0


class TestSafetyQueries:
    def test_filters(self, client, project):
        pid = project["id"]
        _item(client, pid)
        _item(client, pid, title="Ladder slip", type="incident", severity="medium",
              location="Stair core B")
        assert client.get(f"/api/v1/projects/{pid}/safety-items?type=incident").get_json()["total"] == 1
        assert client.get(f"/api/v1/projects/{pid}/safety-items?severity=high").get_json()["total"] == 1
        assert client.get(f"/api/v1/projects/{pid}/safety-items?search=east").get_json()["total"] == 1

    def test_stats(self, client, project):
        pid = project["id"]
        _item(client, pid, severity="critical", actions=_actions("pending", due="2020-01-01"))
        _item(client, pid, title="Near miss at gate", type="near_miss", severity="low",
              actions=_actions("completed", due="2020-01-01"))

        stats = client.get(f"/api/v1/projects/{pid}/safety-stats").get_json()
        assert stats["total"] == 2
        assert stats["by_type"]["hazard"] == 1
        assert stats["by_type"]["near_miss"] == 1
        assert stats["by_severity"]["critical"] == 1
        assert stats["open_critical"] == 1
        assert stats["overdue_actions"] == 1
