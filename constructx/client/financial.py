"""
Client for the financial management endpoints.

Covers dashboards, metrics, budgets (with categories and items), expenses,
reports, lookups and chart data. Methods return the decoded JSON body;
``export_report`` returns the raw file bytes.
"""

from __future__ import annotations

from typing import Any, BinaryIO

from constructx.client.base import ApiClient


def _range_params(date_range: Any) -> dict | None:
    """Accept "month"/"quarter"/"year"/"all" or ``{"start_date", "end_date"}``."""
    if not date_range:
        return None
    if isinstance(date_range, dict):
        return {k: v for k, v in date_range.items() if k in ("start_date", "end_date") and v}
    return {"date_range": date_range}


class FinancialClient(ApiClient):

    # ── Dashboard & metrics ──────────────────────────────────────────────

    def get_financial_dashboard(self, project_id: int) -> dict:
        return self._request("GET", f"/projects/{project_id}/financial-dashboard",
                             "fetching financial dashboard")

    def update_financial_dashboard_layout(self, project_id: int, layout: dict) -> dict:
        return self._request("PUT", f"/projects/{project_id}/financial-dashboard",
                             "updating financial dashboard layout", json={"layout": layout})

    def get_financial_metrics(self, project_id: int, date_range: Any = None) -> dict:
        return self._request("GET", f"/projects/{project_id}/financial-metrics",
                             "fetching financial metrics", params=_range_params(date_range))

    # ── Budgets ──────────────────────────────────────────────────────────

    def get_budgets(self, project_id: int) -> dict:
        return self._request("GET", f"/projects/{project_id}/budgets", "fetching budgets")

    def get_budget_details(self, budget_id: int) -> dict:
        return self._request("GET", f"/budgets/{budget_id}", "fetching budget details")

    def create_budget(self, project_id: int, budget_data: dict) -> dict:
        return self._request("POST", f"/projects/{project_id}/budgets", "creating budget",
                             json=budget_data)

    def update_budget(self, budget_id: int, budget_data: dict) -> dict:
        return self._request("PUT", f"/budgets/{budget_id}", "updating budget", json=budget_data)

    def delete_budget(self, budget_id: int) -> dict:
        return self._request("DELETE", f"/budgets/{budget_id}", "deleting budget")

    def approve_budget(self, budget_id: int) -> dict:
        return self._request("PUT", f"/budgets/{budget_id}/approve", "approving budget")

    def get_budget_summary(self, budget_id: int) -> dict:
        return self._request("GET", f"/budgets/{budget_id}/summary", "fetching budget summary")

    def get_budget_categories(self, budget_id: int) -> dict:
        return self._request("GET", f"/budgets/{budget_id}/categories", "fetching budget categories")

    def create_budget_category(self, budget_id: int, category_data: dict) -> dict:
        return self._request("POST", f"/budgets/{budget_id}/categories", "creating budget category",
                             json=category_data)

    def update_budget_category(self, category_id: int, category_data: dict) -> dict:
        return self._request("PUT", f"/budget-categories/{category_id}", "updating budget category",
                             json=category_data)

    def delete_budget_category(self, category_id: int) -> dict:
        return self._request("DELETE", f"/budget-categories/{category_id}", "deleting budget category")

    def get_budget_items(self, category_id: int) -> dict:
        return self._request("GET", f"/budget-categories/{category_id}/items", "fetching budget items")

    def create_budget_item(self, category_id: int, item_data: dict) -> dict:
        return self._request("POST", f"/budget-categories/{category_id}/items", "creating budget item",
                             json=item_data)

    def update_budget_item(self, item_id: int, item_data: dict) -> dict:
        return self._request("PUT", f"/budget-items/{item_id}", "updating budget item", json=item_data)

    def delete_budget_item(self, item_id: int) -> dict:
        return self._request("DELETE", f"/budget-items/{item_id}", "deleting budget item")

    # ── Expenses ─────────────────────────────────────────────────────────

    def get_expenses(self, project_id: int, filters: dict | None = None) -> dict:
        params = {k: v for k, v in (filters or {}).items() if v not in (None, "")}
        return self._request("GET", f"/projects/{project_id}/expenses", "fetching expenses",
                             params=params or None)

    def get_expense_details(self, expense_id: int) -> dict:
        return self._request("GET", f"/expenses/{expense_id}", "fetching expense details")

    def create_expense(self, project_id: int, expense_data: dict) -> dict:
        return self._request("POST", f"/projects/{project_id}/expenses", "creating expense",
                             json=expense_data)

    def update_expense(self, expense_id: int, expense_data: dict) -> dict:
        return self._request("PUT", f"/expenses/{expense_id}", "updating expense", json=expense_data)

    def delete_expense(self, expense_id: int) -> dict:
        return self._request("DELETE", f"/expenses/{expense_id}", "deleting expense")

    def approve_expense(self, expense_id: int) -> dict:
        return self._request("PUT", f"/expenses/{expense_id}/approve", "approving expense")

    def reject_expense(self, expense_id: int, reason: str) -> dict:
        return self._request("PUT", f"/expenses/{expense_id}/reject", "rejecting expense",
                             json={"reason": reason})

    def upload_expense_receipt(self, expense_id: int, receipt_file: BinaryIO,
                               filename: str | None = None) -> dict:
        name = filename or getattr(receipt_file, "name", None) or "receipt"
        return self._request("POST", f"/expenses/{expense_id}/receipt", "uploading expense receipt",
                             files={"receipt": (name, receipt_file)})

    # ── Reports ──────────────────────────────────────────────────────────

    def get_financial_reports(self, project_id: int, report_type: str | None = None) -> dict:
        params = {"type": report_type} if report_type else None
        return self._request("GET", f"/projects/{project_id}/financial-reports",
                             "fetching financial reports", params=params)

    def get_report_details(self, report_id: int) -> dict:
        return self._request("GET", f"/financial-reports/{report_id}", "fetching report details")

    def generate_report(self, project_id: int, report_data: dict) -> dict:
        return self._request("POST", f"/projects/{project_id}/financial-reports", "generating report",
                             json=report_data)

    def delete_report(self, report_id: int) -> dict:
        return self._request("DELETE", f"/financial-reports/{report_id}", "deleting report")

    def export_report(self, report_id: int, fmt: str = "excel") -> bytes:
        resp = self._send("GET", f"/financial-reports/{report_id}/export", "exporting report",
                          params={"format": fmt})
        return resp.content

    # ── Lookups ──────────────────────────────────────────────────────────

    def get_available_categories(self, project_id: int) -> dict:
        return self._request("GET", f"/projects/{project_id}/expense-categories",
                             "fetching expense categories")

    def get_vendors(self, project_id: int) -> dict:
        return self._request("GET", f"/projects/{project_id}/vendors", "fetching vendors")

    def get_payment_methods(self) -> dict:
        return self._request("GET", "/payment-methods", "fetching payment methods")

    # ── Chart data ───────────────────────────────────────────────────────

    def get_budget_vs_actual_data(self, project_id: int, date_range: Any = None) -> dict:
        return self._request("GET", f"/projects/{project_id}/budget-vs-actual",
                             "fetching budget vs actual data", params=_range_params(date_range))

    def get_cash_flow_data(self, project_id: int, date_range: Any = None) -> dict:
        return self._request("GET", f"/projects/{project_id}/cash-flow",
                             "fetching cash flow data", params=_range_params(date_range))

    def get_expense_breakdown_data(self, project_id: int, date_range: Any = None) -> dict:
        return self._request("GET", f"/projects/{project_id}/expense-breakdown",
                             "fetching expense breakdown data", params=_range_params(date_range))

    def get_recent_expenses(self, project_id: int, limit: int = 5) -> dict:
        return self._request("GET", f"/projects/{project_id}/recent-expenses",
                             "fetching recent expenses", params={"limit": limit})
