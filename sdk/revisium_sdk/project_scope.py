"""
Project scope for Revisium SDK.

Stateless navigation handle for one project: opens branch scopes and
exposes project-level operations.
"""

from __future__ import annotations

from typing import Any

from ._http_client import HttpTransport
from .branch_scope import BranchScope
from .operations import DEFAULT_PAGE_SIZE, BranchIdentity

DEFAULT_BRANCH = "master"


class ProjectScope:
    """Handle for one project of an organization."""

    def __init__(
        self,
        transport: HttpTransport,
        organization_id: str,
        project_name: str,
        *,
        default_branch: str = DEFAULT_BRANCH,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self._transport = transport
        self._organization_id = organization_id
        self._project_name = project_name
        self._default_branch = default_branch
        self._page_size = page_size

    def __repr__(self) -> str:
        return f"ProjectScope({self._organization_id!r}, {self._project_name!r})"

    @property
    def organization_id(self) -> str:
        return self._organization_id

    @property
    def project_name(self) -> str:
        return self._project_name

    @property
    def transport(self) -> HttpTransport:
        return self._transport

    async def branch(self, branch_name: str | None = None) -> BranchScope:
        """Open a branch scope; defaults to the project's default branch."""
        identity = BranchIdentity(
            self._organization_id, self._project_name, branch_name or self._default_branch
        )
        return await BranchScope.create(self._transport, identity, page_size=self._page_size)

    async def get(self) -> dict[str, Any]:
        return await self._transport.get_project(self._organization_id, self._project_name)

    async def update(self, body: dict[str, Any]) -> None:
        await self._transport.update_project(self._organization_id, self._project_name, body)

    async def delete(self) -> None:
        await self._transport.delete_project(self._organization_id, self._project_name)

    async def get_branches(
        self, *, first: int | None = None, after: str | None = None
    ) -> dict[str, Any]:
        return await self._transport.get_branches(
            self._organization_id,
            self._project_name,
            first=first or self._page_size,
            after=after,
        )

    async def get_root_branch(self) -> dict[str, Any]:
        return await self._transport.get_root_branch(self._organization_id, self._project_name)

    async def create_branch(self, branch_name: str, revision_id: str) -> dict[str, Any]:
        """Create a branch starting from `revision_id`."""
        return await self._transport.create_branch(revision_id, branch_name)

    async def get_users(
        self, *, first: int | None = None, after: str | None = None
    ) -> dict[str, Any]:
        return await self._transport.get_project_users(
            self._organization_id,
            self._project_name,
            first=first or self._page_size,
            after=after,
        )

    async def add_user(self, user_id: str, role_id: str) -> None:
        """Grant a project role (developer, editor or reader)."""
        await self._transport.add_project_user(
            self._organization_id, self._project_name, user_id, role_id
        )

    async def remove_user(self, user_id: str) -> None:
        await self._transport.remove_project_user(
            self._organization_id, self._project_name, user_id
        )

    async def get_endpoints(self) -> list[dict[str, Any]]:
        """Endpoints of the default branch's draft revision."""
        branch = await self.branch()
        with branch.draft() as draft:
            return await draft.get_endpoints()

    async def create_endpoint(self, body: dict[str, Any]) -> dict[str, Any]:
        branch = await self.branch()
        with branch.draft() as draft:
            return await draft.create_endpoint(body)

    async def delete_endpoint(self, endpoint_id: str) -> None:
        await self._transport.delete_endpoint(endpoint_id)

    async def get_endpoint_relatives(self, endpoint_id: str) -> dict[str, Any]:
        return await self._transport.get_endpoint_relatives(endpoint_id)
