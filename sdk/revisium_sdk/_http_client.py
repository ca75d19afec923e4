"""
Internal HTTP transport for Revisium SDK.

This module provides the low-level REST communication layer: one async
method per server endpoint, each returning decoded JSON.
It is internal to the SDK and should not be used directly by users.

Users should use RevisiumClient and its scopes instead.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from .config import ClientSettings
from .errors import TransportError

logger = logging.getLogger(__name__)


def _error_message(response: httpx.Response) -> str:
    """Extract a diagnostic message from an error response."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"API error: HTTP {response.status_code}"
    if isinstance(body, dict) and body.get("message"):
        message = body["message"]
        return "; ".join(message) if isinstance(message, list) else str(message)
    return f"API error: {body}"


def _drop_none(values: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in values.items() if v is not None}


def _segment(value: str) -> str:
    """Percent-encode one path segment, including slashes."""
    return quote(str(value), safe="")


class HttpTransport:
    """Internal REST client for Revisium.

    This class handles all HTTP communication with the server.
    It manages the httpx client lifecycle and provides async methods
    for all endpoints used by the scopes.

    This is an internal class - users should use RevisiumClient instead.
    """

    def __init__(
        self,
        settings: ClientSettings,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            settings: Client configuration
            http_client: Optional pre-configured client (auth headers, proxies).
                Requests still go to settings.api_url with settings.timeout,
                whatever base_url the client carries. The transport does not
                close a client it did not create.
        """
        self._settings = settings
        self._client = http_client
        self._owns_client = http_client is None

    @property
    def base_url(self) -> str:
        return self._settings.base_url

    async def connect(self) -> None:
        """Create the underlying HTTP client."""
        if self._client is not None:
            return

        self._client = httpx.AsyncClient(timeout=self._settings.timeout)
        self._owns_client = True
        logger.debug(f"Connected to Revisium at {self._settings.api_url}")

    async def close(self) -> None:
        """Close the underlying HTTP client if we own it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
            logger.debug("Disconnected from Revisium")

    async def __aenter__(self) -> HttpTransport:
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        files: dict[str, Any] | None = None,
    ) -> Any:
        """Send a request and decode the JSON body.

        Raises:
            TransportError: On network failure or non-2xx response
        """
        if self._client is None:
            await self.connect()
        client = self._client
        if client is None:
            raise RuntimeError("Not connected. Call connect() first.")

        try:
            response = await client.request(
                method,
                f"{self._settings.api_url}{path}",
                params=_drop_none(params) if params else None,
                json=json,
                files=files,
                timeout=self._settings.timeout,
            )
        except httpx.HTTPError as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise TransportError(f"Request failed: {e}", method=method, path=path) from e

        if response.is_error:
            message = _error_message(response)
            logger.warning(f"{method} {path} returned {response.status_code}: {message}")
            raise TransportError(
                message,
                status_code=response.status_code,
                method=method,
                path=path,
            )

        if not response.content:
            return None
        return response.json()

    # -------------------------------------------------------------------------
    # Paths
    # -------------------------------------------------------------------------

    @staticmethod
    def _org_path(organization_id: str) -> str:
        return f"/organization/{_segment(organization_id)}"

    @classmethod
    def _project_path(cls, organization_id: str, project_name: str) -> str:
        return f"{cls._org_path(organization_id)}/projects/{_segment(project_name)}"

    @classmethod
    def _branch_path(cls, organization_id: str, project_name: str, branch_name: str) -> str:
        project_path = cls._project_path(organization_id, project_name)
        return f"{project_path}/branches/{_segment(branch_name)}"

    @staticmethod
    def _revision_path(revision_id: str) -> str:
        return f"/revision/{_segment(revision_id)}"

    @classmethod
    def _table_path(cls, revision_id: str, table_id: str) -> str:
        return f"{cls._revision_path(revision_id)}/tables/{_segment(table_id)}"

    @classmethod
    def _row_path(cls, revision_id: str, table_id: str, row_id: str) -> str:
        return f"{cls._table_path(revision_id, table_id)}/rows/{_segment(row_id)}"

    # -------------------------------------------------------------------------
    # User / organization
    # -------------------------------------------------------------------------

    async def me(self) -> dict[str, Any]:
        return await self._request("GET", "/me")

    async def get_projects(
        self, organization_id: str, *, first: int, after: str | None = None
    ) -> dict[str, Any]:
        return await self._request(
            "GET",
            f"{self._org_path(organization_id)}/projects",
            params={"first": first, "after": after},
        )

    async def create_project(self, organization_id: str, body: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", f"{self._org_path(organization_id)}/projects", json=body)

    async def get_org_users(
        self, organization_id: str, *, first: int, after: str | None = None
    ) -> dict[str, Any]:
        return await self._request(
            "GET",
            f"{self._org_path(organization_id)}/users",
            params={"first": first, "after": after},
        )

    async def add_org_user(self, organization_id: str, user_id: str, role_id: str) -> None:
        await self._request(
            "POST",
            f"{self._org_path(organization_id)}/users",
            json={"userId": user_id, "roleId": role_id},
        )

    async def remove_org_user(self, organization_id: str, user_id: str) -> None:
        await self._request(
            "DELETE", f"{self._org_path(organization_id)}/users", json={"userId": user_id}
        )

    # -------------------------------------------------------------------------
    # Project
    # -------------------------------------------------------------------------

    async def get_project(self, organization_id: str, project_name: str) -> dict[str, Any]:
        return await self._request("GET", self._project_path(organization_id, project_name))

    async def update_project(
        self, organization_id: str, project_name: str, body: dict[str, Any]
    ) -> None:
        await self._request("PUT", self._project_path(organization_id, project_name), json=body)

    async def delete_project(self, organization_id: str, project_name: str) -> None:
        await self._request("DELETE", self._project_path(organization_id, project_name))

    async def get_branches(
        self, organization_id: str, project_name: str, *, first: int, after: str | None = None
    ) -> dict[str, Any]:
        return await self._request(
            "GET",
            f"{self._project_path(organization_id, project_name)}/branches",
            params={"first": first, "after": after},
        )

    async def get_root_branch(self, organization_id: str, project_name: str) -> dict[str, Any]:
        return await self._request(
            "GET", f"{self._project_path(organization_id, project_name)}/root-branch"
        )

    async def get_project_users(
        self, organization_id: str, project_name: str, *, first: int, after: str | None = None
    ) -> dict[str, Any]:
        return await self._request(
            "GET",
            f"{self._project_path(organization_id, project_name)}/users",
            params={"first": first, "after": after},
        )

    async def add_project_user(
        self, organization_id: str, project_name: str, user_id: str, role_id: str
    ) -> None:
        await self._request(
            "POST",
            f"{self._project_path(organization_id, project_name)}/users",
            json={"userId": user_id, "roleId": role_id},
        )

    async def remove_project_user(
        self, organization_id: str, project_name: str, user_id: str
    ) -> None:
        await self._request(
            "DELETE",
            f"{self._project_path(organization_id, project_name)}/users/{_segment(user_id)}",
        )

    # -------------------------------------------------------------------------
    # Branch
    # -------------------------------------------------------------------------

    async def get_branch(
        self, organization_id: str, project_name: str, branch_name: str
    ) -> dict[str, Any]:
        return await self._request(
            "GET", self._branch_path(organization_id, project_name, branch_name)
        )

    async def delete_branch(self, organization_id: str, project_name: str, branch_name: str) -> None:
        await self._request(
            "DELETE", self._branch_path(organization_id, project_name, branch_name)
        )

    async def get_branch_touched(
        self, organization_id: str, project_name: str, branch_name: str
    ) -> dict[str, Any]:
        return await self._request(
            "GET", f"{self._branch_path(organization_id, project_name, branch_name)}/touched"
        )

    async def get_draft_revision(
        self, organization_id: str, project_name: str, branch_name: str
    ) -> dict[str, Any]:
        return await self._request(
            "GET",
            f"{self._branch_path(organization_id, project_name, branch_name)}/draft-revision",
        )

    async def get_head_revision(
        self, organization_id: str, project_name: str, branch_name: str
    ) -> dict[str, Any]:
        return await self._request(
            "GET",
            f"{self._branch_path(organization_id, project_name, branch_name)}/head-revision",
        )

    async def get_start_revision(
        self, organization_id: str, project_name: str, branch_name: str
    ) -> dict[str, Any]:
        return await self._request(
            "GET",
            f"{self._branch_path(organization_id, project_name, branch_name)}/start-revision",
        )

    async def get_revisions(
        self,
        organization_id: str,
        project_name: str,
        branch_name: str,
        *,
        first: int,
        after: str | None = None,
        before: str | None = None,
        inclusive: bool | None = None,
    ) -> dict[str, Any]:
        return await self._request(
            "GET",
            f"{self._branch_path(organization_id, project_name, branch_name)}/revisions",
            params={"first": first, "after": after, "before": before, "inclusive": inclusive},
        )

    async def create_revision(
        self,
        organization_id: str,
        project_name: str,
        branch_name: str,
        comment: str | None = None,
    ) -> dict[str, Any]:
        return await self._request(
            "POST",
            f"{self._branch_path(organization_id, project_name, branch_name)}/create-revision",
            json=_drop_none({"comment": comment}),
        )

    async def revert_changes(
        self, organization_id: str, project_name: str, branch_name: str
    ) -> None:
        await self._request(
            "POST",
            f"{self._branch_path(organization_id, project_name, branch_name)}/revert-changes",
        )

    # -------------------------------------------------------------------------
    # Revision
    # -------------------------------------------------------------------------

    async def get_revision(self, revision_id: str) -> dict[str, Any]:
        return await self._request("GET", self._revision_path(revision_id))

    async def create_branch(self, revision_id: str, branch_name: str) -> dict[str, Any]:
        return await self._request(
            "POST",
            f"{self._revision_path(revision_id)}/child-branches",
            json={"branchName": branch_name},
        )

    async def get_changes(self, revision_id: str) -> dict[str, Any]:
        return await self._request("GET", f"{self._revision_path(revision_id)}/changes")

    async def get_table_changes(self, revision_id: str, params: dict[str, Any]) -> dict[str, Any]:
        return await self._request(
            "GET", f"{self._revision_path(revision_id)}/changes/tables", params=params
        )

    async def get_row_changes(self, revision_id: str, params: dict[str, Any]) -> dict[str, Any]:
        return await self._request(
            "GET", f"{self._revision_path(revision_id)}/changes/rows", params=params
        )

    async def get_migrations(self, revision_id: str) -> list[dict[str, Any]]:
        return await self._request("GET", f"{self._revision_path(revision_id)}/migrations")

    async def apply_migrations(
        self, revision_id: str, migrations: list[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        return await self._request(
            "POST", f"{self._revision_path(revision_id)}/apply-migrations", json=migrations
        )

    async def get_endpoints(self, revision_id: str) -> list[dict[str, Any]]:
        return await self._request("GET", f"{self._revision_path(revision_id)}/endpoints")

    async def create_endpoint(self, revision_id: str, body: dict[str, Any]) -> dict[str, Any]:
        return await self._request(
            "POST", f"{self._revision_path(revision_id)}/endpoints", json=body
        )

    async def delete_endpoint(self, endpoint_id: str) -> None:
        await self._request("DELETE", f"/endpoints/{_segment(endpoint_id)}")

    async def get_endpoint_relatives(self, endpoint_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/endpoints/{_segment(endpoint_id)}/relatives")

    # -------------------------------------------------------------------------
    # Tables
    # -------------------------------------------------------------------------

    async def get_tables(
        self, revision_id: str, *, first: int, after: str | None = None
    ) -> dict[str, Any]:
        return await self._request(
            "GET",
            f"{self._revision_path(revision_id)}/tables",
            params={"first": first, "after": after},
        )

    async def create_table(
        self, revision_id: str, table_id: str, schema: dict[str, Any]
    ) -> dict[str, Any]:
        return await self._request(
            "POST",
            f"{self._revision_path(revision_id)}/tables",
            json={"tableId": table_id, "schema": schema},
        )

    async def get_table(self, revision_id: str, table_id: str) -> dict[str, Any]:
        return await self._request("GET", self._table_path(revision_id, table_id))

    async def update_table(
        self, revision_id: str, table_id: str, patches: list[dict[str, Any]]
    ) -> dict[str, Any]:
        return await self._request(
            "PATCH", self._table_path(revision_id, table_id), json={"patches": patches}
        )

    async def delete_table(self, revision_id: str, table_id: str) -> None:
        await self._request("DELETE", self._table_path(revision_id, table_id))

    async def rename_table(
        self, revision_id: str, table_id: str, next_table_id: str
    ) -> dict[str, Any]:
        return await self._request(
            "PATCH",
            f"{self._table_path(revision_id, table_id)}/rename",
            json={"nextTableId": next_table_id},
        )

    async def get_table_schema(self, revision_id: str, table_id: str) -> dict[str, Any]:
        return await self._request("GET", f"{self._table_path(revision_id, table_id)}/schema")

    async def get_table_count_rows(self, revision_id: str, table_id: str) -> dict[str, Any]:
        return await self._request("GET", f"{self._table_path(revision_id, table_id)}/count-rows")

    async def get_table_foreign_keys(
        self,
        revision_id: str,
        table_id: str,
        direction: str,
        *,
        first: int,
        after: str | None = None,
    ) -> dict[str, Any]:
        """List tables related by foreign keys; direction is "by" or "to"."""
        return await self._request(
            "GET",
            f"{self._table_path(revision_id, table_id)}/foreign-keys-{direction}",
            params={"first": first, "after": after},
        )

    async def get_table_count_foreign_keys(
        self, revision_id: str, table_id: str, direction: str
    ) -> dict[str, Any]:
        return await self._request(
            "GET", f"{self._table_path(revision_id, table_id)}/count-foreign-keys-{direction}"
        )

    # -------------------------------------------------------------------------
    # Rows
    # -------------------------------------------------------------------------

    async def get_rows(
        self, revision_id: str, table_id: str, body: dict[str, Any]
    ) -> dict[str, Any]:
        return await self._request(
            "POST", f"{self._table_path(revision_id, table_id)}/rows", json=body
        )

    async def get_row(self, revision_id: str, table_id: str, row_id: str) -> dict[str, Any]:
        return await self._request("GET", self._row_path(revision_id, table_id, row_id))

    async def create_row(
        self, revision_id: str, table_id: str, row_id: str, data: dict[str, Any]
    ) -> dict[str, Any]:
        return await self._request(
            "POST",
            f"{self._table_path(revision_id, table_id)}/create-row",
            json={"rowId": row_id, "data": data},
        )

    async def create_rows(
        self, revision_id: str, table_id: str, body: dict[str, Any]
    ) -> dict[str, Any]:
        return await self._request(
            "POST", f"{self._table_path(revision_id, table_id)}/create-rows", json=body
        )

    async def update_row(
        self, revision_id: str, table_id: str, row_id: str, data: dict[str, Any]
    ) -> dict[str, Any]:
        return await self._request(
            "PUT", self._row_path(revision_id, table_id, row_id), json={"data": data}
        )

    async def update_rows(
        self, revision_id: str, table_id: str, body: dict[str, Any]
    ) -> dict[str, Any]:
        return await self._request(
            "PUT", f"{self._table_path(revision_id, table_id)}/update-rows", json=body
        )

    async def patch_row(
        self, revision_id: str, table_id: str, row_id: str, patches: list[dict[str, Any]]
    ) -> dict[str, Any]:
        return await self._request(
            "PATCH", self._row_path(revision_id, table_id, row_id), json={"patches": patches}
        )

    async def patch_rows(
        self, revision_id: str, table_id: str, body: dict[str, Any]
    ) -> dict[str, Any]:
        return await self._request(
            "PATCH", f"{self._table_path(revision_id, table_id)}/patch-rows", json=body
        )

    async def delete_row(self, revision_id: str, table_id: str, row_id: str) -> None:
        await self._request("DELETE", self._row_path(revision_id, table_id, row_id))

    async def delete_rows(self, revision_id: str, table_id: str, row_ids: list[str]) -> None:
        await self._request(
            "DELETE", f"{self._table_path(revision_id, table_id)}/rows", json={"rowIds": row_ids}
        )

    async def rename_row(
        self, revision_id: str, table_id: str, row_id: str, next_row_id: str
    ) -> dict[str, Any]:
        return await self._request(
            "PATCH",
            f"{self._row_path(revision_id, table_id, row_id)}/rename",
            json={"nextRowId": next_row_id},
        )

    async def get_row_foreign_keys(
        self,
        revision_id: str,
        table_id: str,
        row_id: str,
        direction: str,
        related_table_id: str,
        *,
        first: int,
        after: str | None = None,
    ) -> dict[str, Any]:
        """List rows related by foreign keys; direction is "by" or "to"."""
        return await self._request(
            "GET",
            f"{self._row_path(revision_id, table_id, row_id)}"
            f"/foreign-keys-{direction}/{_segment(related_table_id)}",
            params={"first": first, "after": after},
        )

    async def get_row_count_foreign_keys(
        self, revision_id: str, table_id: str, row_id: str, direction: str
    ) -> dict[str, Any]:
        return await self._request(
            "GET",
            f"{self._row_path(revision_id, table_id, row_id)}/count-foreign-keys-{direction}",
        )

    async def upload_file(
        self,
        revision_id: str,
        table_id: str,
        row_id: str,
        file_id: str,
        content: bytes,
        filename: str,
    ) -> dict[str, Any]:
        return await self._request(
            "POST",
            f"{self._row_path(revision_id, table_id, row_id)}/upload/{_segment(file_id)}",
            files={"file": (filename, content)},
        )
