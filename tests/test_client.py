"""
ConstructX
Tests — REST clients (requests-based) with a mocked session.

No network: each client receives a MagicMock session whose ``request``
returns canned responses.
"""

import io
from unittest.mock import MagicMock

import pytest
import requests

from constructx.client import ApiClientError, FinancialClient, ProjectArchiveClient

BASE = "http://api.test/api/v1"


def _response(status=200, body=None, content=b"", text=""):
    resp = MagicMock()
    resp.status_code = status
    resp.reason = "OK" if status < 400 else "Error"
    resp.content = content
    resp.text = text
    if body is None:
        resp.json.side_effect = ValueError("no json")
    else:
        resp.json.return_value = body
    return resp


@pytest.fixture()
def session():
    return MagicMock()


@pytest.fixture()
def fin(session):
    return FinancialClient(base_url=BASE + "/", api_key="k-123", session=session)


def _call(session):
    args, kwargs = session.request.call_args
    return args[0], args[1], kwargs


class TestRequests:
    def test_get_builds_url_and_headers(self, fin, session):
        session.request.return_value = _response(body={"items": [], "total": 0})
        assert fin.get_budgets(7) == {"items": [], "total": 0}

        method, url, kwargs = _call(session)
        assert method == "GET"
        assert url == f"{BASE}/projects/7/budgets"
        assert kwargs["headers"]["X-API-Key"] == "k-123"
        assert kwargs["timeout"] == 30

    def test_no_api_key_header_when_unset(self, session):
        session.request.return_value = _response(body={})
        FinancialClient(base_url=BASE, session=session).get_payment_methods()
        assert "X-API-Key" not in _call(session)[2]["headers"]

    def test_base_url_from_env(self, session, monkeypatch):
        monkeypatch.setenv("CONSTRUCTX_API_URL", "http://env.test/api/v1")
        session.request.return_value = _response(body={})
        FinancialClient(session=session).get_vendors(1)
        assert _call(session)[1] == "http://env.test/api/v1/projects/1/vendors"

    def test_post_sends_json(self, fin, session):
        session.request.return_value = _response(201, body={"id": 3})
        fin.create_expense(7, {"description": "Rebar", "amount": 10})
        method, url, kwargs = _call(session)
        assert method == "POST"
        assert kwargs["json"] == {"description": "Rebar", "amount": 10}

    def test_reject_sends_reason(self, fin, session):
        session.request.return_value = _response(body={"id": 3})
        fin.reject_expense(3, "Duplicate")
        method, url, kwargs = _call(session)
        assert (method, url) == ("PUT", f"{BASE}/expenses/3/reject")
        assert kwargs["json"] == {"reason": "Duplicate"}

    def test_expense_filters_drop_empty(self, fin, session):
        session.request.return_value = _response(body={"items": []})
        fin.get_expenses(7, {"vendor": "Acme", "approval_status": "", "budget_item_id": None})
        assert _call(session)[2]["params"] == {"vendor": "Acme"}

    def test_recent_expenses_default_limit(self, fin, session):
        session.request.return_value = _response(body={"items": []})
        fin.get_recent_expenses(7)
        assert _call(session)[2]["params"] == {"limit": 5}

    @pytest.mark.parametrize("date_range, params", [
        ("quarter", {"date_range": "quarter"}),
        ({"start_date": "2024-01-01", "end_date": "2024-03-31"},
         {"start_date": "2024-01-01", "end_date": "2024-03-31"}),
        (None, None),
    ])
    def test_chart_date_range(self, fin, session, date_range, params):
        session.request.return_value = _response(body={"items": []})
        fin.get_cash_flow_data(7, date_range)
        assert _call(session)[2]["params"] == params

    def test_receipt_upload_is_multipart(self, fin, session):
        session.request.return_value = _response(body={"receipt_url": "/uploads/r.pdf"})
        fin.upload_expense_receipt(3, io.BytesIO(b"%PDF"), filename="r.pdf")
        kwargs = _call(session)[2]
        assert kwargs["files"]["receipt"][0] == "r.pdf"
        assert "json" not in kwargs

    def test_export_returns_bytes(self, fin, session):
        session.request.return_value = _response(content=b"PK\x03\x04")
        assert fin.export_report(9, "excel") == b"PK\x03\x04"
        assert _call(session)[2]["params"] == {"format": "excel"}


class TestErrors:
    def test_http_error_raises_with_status(self, fin, session, caplog):
        session.request.return_value = _response(422, body={"error": "Budget is already Approved"})
        with pytest.raises(ApiClientError) as exc_info:
            fin.approve_budget(1)
        assert exc_info.value.status_code == 422
        assert exc_info.value.message == "Budget is already Approved"
        assert str(exc_info.value) == "[422] Budget is already Approved"
        assert "Error approving budget" in caplog.text

    def test_http_error_without_json(self, fin, session):
        session.request.return_value = _response(502, text="Bad gateway")
        with pytest.raises(ApiClientError) as exc_info:
            fin.get_budget_details(1)
        assert exc_info.value.message == "Bad gateway"

    def test_network_error(self, fin, session):
        session.request.side_effect = requests.ConnectionError("refused")
        with pytest.raises(ApiClientError) as exc_info:
            fin.get_financial_dashboard(1)
        assert exc_info.value.status_code is None
        assert session.request.call_count == 1

    def test_invalid_json_body(self, fin, session):
        session.request.return_value = _response(200, text="<html>")
        with pytest.raises(ApiClientError, match="Invalid JSON"):
            fin.get_financial_metrics(1)


class TestArchiveClient:
    def test_calls(self, session):
        session.request.return_value = _response(body={"items": []})
        client = ProjectArchiveClient(base_url=BASE, session=session)

        client.get_archived_projects(search="harbor")
        assert _call(session)[2]["params"] == {"search": "harbor"}

        client.restore_project(4)
        assert _call(session)[:2] == ("POST", f"{BASE}/project-archives/4/restore")

        client.delete_archived_project(4)
        assert _call(session)[:2] == ("DELETE", f"{BASE}/project-archives/4")


class TestAgainstApp:
    """Drive the client through the Flask test client via a thin adapter."""

    class _FlaskSession:
        def __init__(self, test_client):
            self._client = test_client

        def request(self, method, url, headers=None, timeout=None, params=None, json=None, files=None):
            path = url.split("http://testserver", 1)[1]
            resp = self._client.open(path, method=method, headers=headers, query_string=params, json=json)
            wrapped = MagicMock()
            wrapped.status_code = resp.status_code
            wrapped.content = resp.data
            wrapped.text = resp.get_data(as_text=True)
            wrapped.reason = resp.status
            wrapped.json.side_effect = lambda: resp.get_json(force=True)
            return wrapped

    def test_archive_roundtrip(self, client, project):
        session = self._FlaskSession(client)
        archive = ProjectArchiveClient(base_url="http://testserver/api/v1", session=session)

        client.post(f"/api/v1/projects/{project['id']}/archive")
        listing = archive.get_archived_projects()
        assert listing["total"] == 1
        restored = archive.restore_project(project["id"])
        assert restored["is_archived"] is False

        with pytest.raises(ApiClientError) as exc_info:
            archive.get_archived_project(project["id"])
        assert exc_info.value.status_code == 404
