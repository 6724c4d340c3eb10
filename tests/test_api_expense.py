"""
ConstructX
Tests — Expense API.

Covers:
    - Expense create/list/get/update/delete + validation
    - Filters (approval_status, vendor, date range)
    - Budget category/item linkage checks
    - Approve / reject state rules + rejection notification
    - Approved expenses: amount frozen, cannot delete
    - Protected fields refused on update
    - Receipt upload (multipart) + payment methods lookup
"""

import io

import pytest

from constructx.models.audit import AuditLog
from constructx.models.expense import PAYMENT_METHODS
from constructx.models.notification import Notification


def _expense(client, pid, **kw):
    payload = {"description": "Lumber delivery", "amount": 2500, "date": "2024-03-10", "vendor": "Acme Timber"}
    payload.update(kw)
    res = client.post(f"/api/v1/projects/{pid}/expenses", json=payload)
    assert res.status_code == 201, res.get_json()
    return res.get_json()


class TestExpenseCRUD:
    def test_create(self, client, project):
        data = _expense(client, project["id"], payment_method="Credit Card")
        assert data["approval_status"] == "Pending"
        assert data["payment_status"] == "Pending"
        assert data["payment_method"] == "Credit Card"
        assert AuditLog.query.filter_by(entity_type="expense", action="create").count() == 1

    @pytest.mark.parametrize("payload", [
        {"amount": 10, "date": "2024-01-01"},
        {"description": "X", "date": "2024-01-01"},
        {"description": "X", "amount": 0, "date": "2024-01-01"},
        {"description": "X", "amount": 10},
        {"description": "X", "amount": 10, "date": "not-a-date"},
        {"description": "X", "amount": 10, "date": "2024-01-01", "payment_method": "Barter"},
        {"description": 42, "amount": 10, "date": "2024-01-01"},
        {"description": "X", "amount": "nan", "date": "2024-01-01"},
        {"description": "X", "amount": "inf", "date": "2024-01-01"},
    ])
    def test_create_validation(self, client, project, payload):
        res = client.post(f"/api/v1/projects/{project['id']}/expenses", json=payload)
        assert res.status_code == 400

    def test_list_newest_first(self, client, project):
        _expense(client, project["id"], description="Old", date="2024-01-01")
        _expense(client, project["id"], description="New", date="2024-05-01")
        data = client.get(f"/api/v1/projects/{project['id']}/expenses").get_json()
        assert data["total"] == 2
        assert [e["description"] for e in data["items"]] == ["New", "Old"]

    def test_list_filters(self, client, project):
        pid = project["id"]
        a = _expense(client, pid, vendor="Bolt Supply", date="2024-02-01")
        _expense(client, pid, vendor="Acme Timber", date="2024-04-01")
        client.put(f"/api/v1/expenses/{a['id']}/approve")

        res = client.get(f"/api/v1/projects/{pid}/expenses?approval_status=Approved")
        assert [e["id"] for e in res.get_json()["items"]] == [a["id"]]
        res = client.get(f"/api/v1/projects/{pid}/expenses?vendor=acme")
        assert res.get_json()["total"] == 1
        res = client.get(f"/api/v1/projects/{pid}/expenses?start_date=2024-03-01&end_date=2024-12-31")
        assert res.get_json()["items"][0]["vendor"] == "Acme Timber"

    def test_pagination(self, client, project):
        for i in range(3):
            _expense(client, project["id"], description=f"E{i}")
        data = client.get(f"/api/v1/projects/{project['id']}/expenses?limit=2").get_json()
        assert data["total"] == 3
        assert len(data["items"]) == 2

    def test_update(self, client, project):
        exp = _expense(client, project["id"])
        res = client.put(f"/api/v1/expenses/{exp['id']}", json={"amount": 2750, "vendor": "Beta"})
        assert res.status_code == 200
        assert res.get_json()["amount"] == 2750
        assert res.get_json()["vendor"] == "Beta"

    def test_update_protected_fields_refused(self, client, project):
        exp = _expense(client, project["id"])
        res = client.put(f"/api/v1/expenses/{exp['id']}", json={"approval_status": "Approved"})
        assert res.status_code == 400
        assert "approval_status" in res.get_json()["error"]

    def test_delete_pending_is_soft(self, client, project):
        exp = _expense(client, project["id"])
        assert client.delete(f"/api/v1/expenses/{exp['id']}").status_code == 200
        assert client.get(f"/api/v1/expenses/{exp['id']}").status_code == 404
        assert client.get(f"/api/v1/projects/{project['id']}/expenses").get_json()["total"] == 0

    def test_get_missing(self, client):
        res = client.get("/api/v1/expenses/4242")
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"


class TestBudgetLinks:
    def test_item_implies_category(self, client, project, budget):
        cat = client.post(f"/api/v1/budgets/{budget['id']}/categories",
                          json={"name": "Framing", "amount": 1000}).get_json()
        item = client.post(f"/api/v1/budget-categories/{cat['id']}/items",
                           json={"name": "Studs", "unit_price": 4, "quantity": 100, "unit": "pieces"}).get_json()
        exp = _expense(client, project["id"], budget_item_id=item["id"])
        assert exp["budget_category_id"] == cat["id"]
        assert exp["budget_item_name"] == "Studs"

    def test_relinking_item_moves_category(self, client, project, budget):
        url = f"/api/v1/budgets/{budget['id']}/categories"
        framing = client.post(url, json={"name": "Framing", "amount": 1000}).get_json()
        roofing = client.post(url, json={"name": "Roofing", "amount": 800}).get_json()
        studs = client.post(f"/api/v1/budget-categories/{framing['id']}/items",
                            json={"name": "Studs", "unit_price": 4, "unit": "pieces"}).get_json()
        shingles = client.post(f"/api/v1/budget-categories/{roofing['id']}/items",
                               json={"name": "Shingles", "unit_price": 2, "unit": "pieces"}).get_json()
        exp = _expense(client, project["id"], budget_item_id=studs["id"])

        res = client.put(f"/api/v1/expenses/{exp['id']}", json={"budget_item_id": shingles["id"]})
        assert res.status_code == 200, res.get_json()
        assert res.get_json()["budget_category_id"] == roofing["id"]
        assert res.get_json()["budget_item_id"] == shingles["id"]

        res = client.put(f"/api/v1/expenses/{exp['id']}",
                         json={"budget_category_id": framing["id"], "budget_item_id": shingles["id"]})
        assert res.status_code == 400

    @pytest.mark.parametrize("field", ["budget_item_id", "budget_category_id"])
    def test_non_integer_link_rejected(self, client, project, field):
        exp = _expense(client, project["id"])
        res = client.put(f"/api/v1/expenses/{exp['id']}", json={field: [1]})
        assert res.status_code == 400

    def test_category_of_other_project_rejected(self, client, project, budget):
        cat = client.post(f"/api/v1/budgets/{budget['id']}/categories",
                          json={"name": "Framing", "amount": 1000}).get_json()
        other = client.post("/api/v1/projects", json={"name": "Other"}).get_json()
        res = client.post(f"/api/v1/projects/{other['id']}/expenses", json={
            "description": "X", "amount": 1, "date": "2024-01-01", "budget_category_id": cat["id"],
        })
        assert res.status_code == 400


class TestApprovalWorkflow:
    def test_approve(self, client, project):
        exp = _expense(client, project["id"])
        res = client.put(f"/api/v1/expenses/{exp['id']}/approve", headers={"X-User": "pm"})
        data = res.get_json()
        assert data["approval_status"] == "Approved"
        assert data["approved_by"] == "pm"

    def test_approve_twice(self, client, project):
        exp = _expense(client, project["id"])
        client.put(f"/api/v1/expenses/{exp['id']}/approve")
        res = client.put(f"/api/v1/expenses/{exp['id']}/approve")
        assert res.status_code == 422

    def test_reject_stores_reason_and_notifies(self, client, project):
        exp = _expense(client, project["id"], description="Duplicate invoice")
        res = client.put(f"/api/v1/expenses/{exp['id']}/reject", json={"reason": "Duplicate"})
        assert res.status_code == 200
        assert res.get_json()["approval_status"] == "Rejected"
        assert res.get_json()["rejection_reason"] == "Duplicate"

        notif = Notification.query.filter_by(entity_type="expense").one()
        assert notif.recipient == "dev"
        assert notif.message == "Duplicate"
        assert AuditLog.query.filter_by(entity_type="expense", action="reject").count() == 1

    def test_reject_approved_refused(self, client, project):
        exp = _expense(client, project["id"])
        client.put(f"/api/v1/expenses/{exp['id']}/approve")
        res = client.put(f"/api/v1/expenses/{exp['id']}/reject", json={"reason": "late"})
        assert res.status_code == 422

    def test_approved_amount_frozen(self, client, project):
        exp = _expense(client, project["id"])
        client.put(f"/api/v1/expenses/{exp['id']}/approve")
        res = client.put(f"/api/v1/expenses/{exp['id']}", json={"amount": 1})
        assert res.status_code == 422
        res = client.put(f"/api/v1/expenses/{exp['id']}", json={"vendor": "Renamed"})
        assert res.status_code == 200

    def test_approved_cannot_be_deleted(self, client, project):
        exp = _expense(client, project["id"])
        client.put(f"/api/v1/expenses/{exp['id']}/approve")
        res = client.delete(f"/api/v1/expenses/{exp['id']}")
        assert res.status_code == 422
        assert "Approved expenses cannot be deleted" in res.get_json()["error"]


class TestReceiptsAndLookups:
    def test_upload_receipt(self, client, project):
        exp = _expense(client, project["id"])
        res = client.post(
            f"/api/v1/expenses/{exp['id']}/receipt",
            data={"receipt": (io.BytesIO(b"%PDF-1.4 test"), "invoice 42.pdf")},
            content_type="multipart/form-data",
        )
        assert res.status_code == 200
        url = res.get_json()["receipt_url"]
        assert url.startswith("/uploads/receipts/expense-")
        assert url.endswith("invoice_42.pdf")

    def test_upload_missing_file(self, client, project):
        exp = _expense(client, project["id"])
        res = client.post(f"/api/v1/expenses/{exp['id']}/receipt", data={},
                          content_type="multipart/form-data")
        assert res.status_code == 400

    def test_upload_bad_extension(self, client, project):
        exp = _expense(client, project["id"])
        res = client.post(
            f"/api/v1/expenses/{exp['id']}/receipt",
            data={"receipt": (io.BytesIO(b"MZ"), "payload.exe")},
            content_type="multipart/form-data",
        )
        assert res.status_code == 400
        assert "Unsupported receipt type" in res.get_json()["error"]

    def test_payment_methods(self, client):
        data = client.get("/api/v1/payment-methods").get_json()
        assert data["items"] == PAYMENT_METHODS
