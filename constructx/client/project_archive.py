"""Client for the project archive endpoints."""

from __future__ import annotations

from constructx.client.base import ApiClient


class ProjectArchiveClient(ApiClient):

    def get_archived_projects(self, search: str | None = None) -> dict:
        params = {"search": search} if search else None
        return self._request("GET", "/project-archives", "fetching archived projects", params=params)

    def get_archived_project(self, project_id: int) -> dict:
        return self._request("GET", f"/project-archives/{project_id}", "fetching archived project")

    def restore_project(self, project_id: int) -> dict:
        return self._request("POST", f"/project-archives/{project_id}/restore", "restoring project")

    def delete_archived_project(self, project_id: int) -> dict:
        return self._request("DELETE", f"/project-archives/{project_id}", "deleting archived project")
