"""
Organization scope for Revisium SDK.

Stateless navigation handle for one organization.
"""

from __future__ import annotations

from typing import Any

from ._http_client import HttpTransport
from .operations import DEFAULT_PAGE_SIZE
from .project_scope import DEFAULT_BRANCH, ProjectScope


class OrgScope:
    """Handle for one organization."""

    def __init__(
        self,
        transport: HttpTransport,
        organization_id: str,
        *,
        default_branch: str = DEFAULT_BRANCH,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self._transport = transport
        self._organization_id = organization_id
        self._default_branch = default_branch
        self._page_size = page_size

    def __repr__(self) -> str:
        return f"OrgScope({self._organization_id!r})"

    @property
    def organization_id(self) -> str:
        return self._organization_id

    @property
    def transport(self) -> HttpTransport:
        return self._transport

    def project(self, project_name: str) -> ProjectScope:
        return ProjectScope(
            self._transport,
            self._organization_id,
            project_name,
            default_branch=self._default_branch,
            page_size=self._page_size,
        )

    async def get_projects(
        self, *, first: int | None = None, after: str | None = None
    ) -> dict[str, Any]:
        return await self._transport.get_projects(
            self._organization_id, first=first or self._page_size, after=after
        )

    async def create_project(self, body: dict[str, Any]) -> dict[str, Any]:
        """Create a project; body carries projectName and optional branchName."""
        return await self._transport.create_project(self._organization_id, body)

    async def get_users(
        self, *, first: int | None = None, after: str | None = None
    ) -> dict[str, Any]:
        return await self._transport.get_org_users(
            self._organization_id, first=first or self._page_size, after=after
        )

    async def add_user(self, user_id: str, role_id: str) -> None:
        await self._transport.add_org_user(self._organization_id, user_id, role_id)

    async def remove_user(self, user_id: str) -> None:
        await self._transport.remove_org_user(self._organization_id, user_id)
