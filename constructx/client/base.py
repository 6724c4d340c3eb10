"""
Shared HTTP plumbing for the ConstructX REST clients.

Every call issues exactly one request. A non-2xx response or a network
failure is logged as ``Error <action>: <detail>`` and raised as
:class:`ApiClientError`; there are no retries.

Testability: pass a mock ``session`` to the client instead of letting it
create a real requests.Session internally.
"""

from __future__ import annotations

import logging
import os
from typing import Any

import requests

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 30
_DEFAULT_BASE_URL = "http://localhost:5000/api/v1"


class ApiClientError(Exception):
    """A ConstructX API call failed.

    Attributes:
        status_code: HTTP status code, or None for network-level failures.
        message:     Error text from the response body, or the exception text.
    """

    def __init__(self, status_code: int | None, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message
        return f"[{self.status_code}] {self.message}"


def _error_message(resp: requests.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text or resp.reason or f"HTTP {resp.status_code}"
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return resp.reason or f"HTTP {resp.status_code}"


class ApiClient:
    """Base client: URL building, auth header and error translation."""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        session: requests.Session | None = None,
        timeout: int = _DEFAULT_TIMEOUT,
    ) -> None:
        self.base_url = (base_url or os.getenv("CONSTRUCTX_API_URL") or _DEFAULT_BASE_URL).rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._session: requests.Session | None = session

    @property
    def session(self) -> requests.Session:
        """Return (or lazily create) the requests.Session."""
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def _headers(self) -> dict:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["X-API-Key"] = self.api_key
        return headers

    def _send(self, method: str, path: str, action: str, **kwargs: Any) -> requests.Response:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            resp = self.session.request(
                method, url, headers=self._headers(), timeout=self.timeout, **kwargs,
            )
        except requests.RequestException as exc:
            logger.error("Error %s: %s", action, exc)
            raise ApiClientError(None, str(exc)) from exc

        if not 200 <= resp.status_code < 300:
            message = _error_message(resp)
            logger.error("Error %s: %s %s", action, resp.status_code, message)
            raise ApiClientError(resp.status_code, message)
        return resp

    def _request(self, method: str, path: str, action: str, **kwargs: Any) -> Any:
        """Send one request and return the decoded JSON body."""
        resp = self._send(method, path, action, **kwargs)
        try:
            return resp.json()
        except ValueError as exc:
            logger.error("Error %s: invalid JSON response", action)
            raise ApiClientError(resp.status_code, "Invalid JSON response") from exc
