"""
Revisium client for Python SDK.

This module provides the main client interface:
- RevisiumClient: Connection to a Revisium server, navigation entry point,
  and an optional default context for quick scripts

Example:
    >>> async with RevisiumClient("http://localhost:8080") as client:
    ...     draft = await client.revision("admin", "blog")
    ...     await draft.create_row("posts", "post-1", {"title": "Hello"})
    ...     await draft.commit("first post")
    ...     draft.dispose()

Invariants:
    - Scopes opened through revision() share one registry per client, so
      scopes of the same branch invalidate each other
    - Separate clients never share scope state
    - Shortcuts without a context raise ContextNotSetError
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from . import operations as ops
from ._http_client import HttpTransport
from .branch_scope import BranchScope
from .config import ClientSettings
from .errors import ContextNotSetError
from .operations import BranchIdentity
from .org_scope import OrgScope
from .owner import ScopeRegistry
from .revision_scope import RevisionMode, RevisionScope

logger = logging.getLogger(__name__)


class RevisiumClient:
    """Client for connecting to a Revisium server.

    Provides navigation (org → project → branch → revision) and
    shortcuts that act on a default revision scope set via set_context().

    Example:
        >>> client = RevisiumClient("http://localhost:8080")
        >>> await client.set_context("admin", "blog", revision="head")
        >>> tables = await client.get_tables()
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        settings: ClientSettings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize client.

        Args:
            base_url: Server URL; overrides settings.base_url
            settings: Client configuration (defaults to environment)
            http_client: Optional pre-configured httpx client, e.g. with an
                Authorization header
        """
        settings = settings or ClientSettings()
        if base_url is not None:
            settings = settings.model_copy(update={"base_url": base_url.rstrip("/")})

        self.settings = settings
        self._transport = HttpTransport(settings, http_client=http_client)
        self._registry = ScopeRegistry()
        self._context_scope: Optional[RevisionScope] = None

    async def connect(self) -> None:
        """Open the HTTP connection pool."""
        await self._transport.connect()

    async def close(self) -> None:
        """Dispose the context scope and close the connection."""
        if self._context_scope is not None:
            self._context_scope.dispose()
            self._context_scope = None
        await self._transport.close()

    async def __aenter__(self) -> RevisiumClient:
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    @property
    def base_url(self) -> str:
        return self.settings.base_url

    @property
    def transport(self) -> HttpTransport:
        return self._transport

    @property
    def registry(self) -> ScopeRegistry:
        return self._registry

    # -------------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------------

    def org(self, organization_id: str) -> OrgScope:
        return OrgScope(
            self._transport,
            organization_id,
            default_branch=self.settings.default_branch,
            page_size=self.settings.default_page_size,
        )

    async def branch(
        self, org: str, project: str, branch: str | None = None
    ) -> BranchScope:
        """Open a branch scope that owns its own revision scopes."""
        return await self.org(org).project(project).branch(branch)

    async def revision(
        self,
        org: str,
        project: str,
        branch: str | None = None,
        revision: str = "draft",
    ) -> RevisionScope:
        """Open a revision scope owned by this client's registry.

        Args:
            org: Organization id
            project: Project name
            branch: Branch name (defaults to settings.default_branch)
            revision: "draft", "head" or an explicit revision id

        Raises:
            UnknownRevisionError: If an explicit id is not known to the server
        """
        identity = BranchIdentity(org, project, branch or self.settings.default_branch)

        if revision == RevisionMode.DRAFT.value:
            mode = RevisionMode.DRAFT
            revision_id = await ops.fetch_draft_revision_id(self._transport, identity)
        elif revision == RevisionMode.HEAD.value:
            mode = RevisionMode.HEAD
            revision_id = await ops.fetch_head_revision_id(self._transport, identity)
        else:
            mode = RevisionMode.EXPLICIT
            await ops.validate_revision_id(self._transport, revision)
            revision_id = revision

        scope = RevisionScope(
            self._transport,
            identity,
            revision_id,
            mode,
            self._registry,
            page_size=self.settings.default_page_size,
        )
        self._registry.register_scope(scope)
        logger.debug(f"Opened {scope!r}")
        return scope

    async def me(self) -> dict[str, Any]:
        """Current user."""
        return await self._transport.me()

    # -------------------------------------------------------------------------
    # Default context
    # -------------------------------------------------------------------------

    async def set_context(
        self,
        org: str,
        project: str,
        branch: str | None = None,
        revision: str = "draft",
    ) -> RevisionScope:
        """Bind the shortcut methods to a new revision scope.

        The previous context scope is disposed only after the new one is
        open, so a failed call leaves the old context in place.
        """
        scope = await self.revision(org, project, branch, revision)
        if self._context_scope is not None:
            self._context_scope.dispose()
        self._context_scope = scope
        return scope

    @property
    def scope(self) -> RevisionScope:
        """The context scope.

        Raises:
            ContextNotSetError: If set_context() has not been called
        """
        if self._context_scope is None:
            raise ContextNotSetError()
        return self._context_scope

    @property
    def organization_id(self) -> str | None:
        return self._context_scope.organization_id if self._context_scope else None

    @property
    def project_name(self) -> str | None:
        return self._context_scope.project_name if self._context_scope else None

    @property
    def branch_name(self) -> str | None:
        return self._context_scope.branch_name if self._context_scope else None

    @property
    def revision_id(self) -> str | None:
        return self._context_scope.revision_id if self._context_scope else None

    @property
    def is_draft(self) -> bool:
        return self._context_scope.is_draft if self._context_scope else False

    async def get_tables(
        self, *, first: int | None = None, after: str | None = None
    ) -> dict[str, Any]:
        return await self.scope.get_tables(first=first, after=after)

    async def get_table(self, table_id: str) -> dict[str, Any]:
        return await self.scope.get_table(table_id)

    async def get_rows(
        self, table_id: str, options: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        return await self.scope.get_rows(table_id, options)

    async def get_row(self, table_id: str, row_id: str) -> dict[str, Any]:
        return await self.scope.get_row(table_id, row_id)

    async def get_changes(self) -> dict[str, Any]:
        return await self.scope.get_changes()

    async def create_table(self, table_id: str, schema: dict[str, Any]) -> dict[str, Any]:
        return await self.scope.create_table(table_id, schema)

    async def create_row(self, table_id: str, row_id: str, data: dict[str, Any]) -> dict[str, Any]:
        return await self.scope.create_row(table_id, row_id, data)

    async def update_row(self, table_id: str, row_id: str, data: dict[str, Any]) -> dict[str, Any]:
        return await self.scope.update_row(table_id, row_id, data)

    async def delete_row(self, table_id: str, row_id: str) -> None:
        await self.scope.delete_row(table_id, row_id)

    async def commit(self, comment: str | None = None) -> dict[str, Any]:
        return await self.scope.commit(comment)

    async def revert_changes(self) -> None:
        await self.scope.revert_changes()
