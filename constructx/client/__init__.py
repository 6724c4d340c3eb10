"""
ConstructX REST client.

Thin wrappers over ``requests`` for scripts and other services that talk to
a running ConstructX API:

    from constructx.client import FinancialClient
    fin = FinancialClient(api_key="k1")
    dashboard = fin.get_financial_dashboard(project_id=1)
"""

from constructx.client.base import ApiClient, ApiClientError
from constructx.client.financial import FinancialClient
from constructx.client.project_archive import ProjectArchiveClient

__all__ = ["ApiClient", "ApiClientError", "FinancialClient", "ProjectArchiveClient"]
