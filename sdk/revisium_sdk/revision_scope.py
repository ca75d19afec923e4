"""
Revision scope for Revisium SDK.

A RevisionScope is a disposable handle bound to one branch and one revision
mode. It caches the revision id it operates against and exposes every
table, row, migration and commit operation on it.

Example:
    >>> branch = await client.branch("admin", "blog")
    >>> with branch.draft() as draft:
    ...     await draft.create_row("posts", "post-1", {"title": "Hello"})
    ...     await draft.commit("first post")

Invariants:
    - Explicit scopes never go stale and never change their revision id
    - At most one refresh fetch is outstanding per scope
    - A scope that commits is fresh before its siblings are marked stale
    - Every operation on a disposed scope raises ScopeDisposedError
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Optional

from . import operations as ops
from ._http_client import HttpTransport
from .errors import ScopeDisposedError
from .operations import DEFAULT_PAGE_SIZE, BranchIdentity, ScopeContext
from .owner import ScopeOwner

logger = logging.getLogger(__name__)


class RevisionMode(Enum):
    """How a scope follows its branch."""

    DRAFT = "draft"
    HEAD = "head"
    EXPLICIT = "explicit"


class RevisionScope:
    """Handle bound to (branch, revision mode).

    Draft and head scopes follow their branch: when a sibling scope commits,
    reverts or applies migrations, the owner marks this scope stale and the
    next operation re-fetches the revision id first. Explicit scopes are
    pinned to one revision for their whole lifetime.

    Only draft scopes accept mutations.
    """

    def __init__(
        self,
        transport: HttpTransport,
        identity: BranchIdentity,
        revision_id: str,
        mode: RevisionMode,
        owner: ScopeOwner,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        """Initialize a scope.

        Owners create scopes and register them; users should obtain scopes
        from BranchScope or RevisiumClient.

        Args:
            transport: Remote operations
            identity: Branch the scope belongs to
            revision_id: Initial revision id
            mode: Revision mode, fixed for the scope's lifetime
            owner: Owner notified on branch changes and dispose
            page_size: Default page size for paginated reads
        """
        self._transport = transport
        self._identity = identity
        self._revision_id = revision_id
        self._mode = mode
        self._is_draft = mode is RevisionMode.DRAFT
        self._owner = owner
        self._page_size = page_size
        self._stale = False
        self._disposed = False
        self._refresh_task: Optional[asyncio.Task[str]] = None
        # Bumped whenever the cached id is invalidated or overwritten, so a
        # refresh that started earlier does not clobber newer state.
        self._generation = 0

    def __repr__(self) -> str:
        return (
            f"RevisionScope({self._identity.key!r}, mode={self._mode.value}, "
            f"revision_id={self._revision_id!r}, stale={self._stale}, disposed={self._disposed})"
        )

    def __enter__(self) -> RevisionScope:
        return self

    def __exit__(self, *args: Any) -> None:
        self.dispose()

    @property
    def identity(self) -> BranchIdentity:
        return self._identity

    @property
    def organization_id(self) -> str:
        return self._identity.organization_id

    @property
    def project_name(self) -> str:
        return self._identity.project_name

    @property
    def branch_name(self) -> str:
        return self._identity.branch_name

    @property
    def revision_id(self) -> str:
        """Cached revision id; authoritative only while not stale."""
        return self._revision_id

    @property
    def mode(self) -> RevisionMode:
        return self._mode

    @property
    def is_draft(self) -> bool:
        return self._is_draft

    @property
    def is_stale(self) -> bool:
        return self._stale

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    @property
    def transport(self) -> HttpTransport:
        return self._transport

    # -------------------------------------------------------------------------
    # Staleness protocol
    # -------------------------------------------------------------------------

    def mark_stale(self) -> None:
        if self._mode is RevisionMode.EXPLICIT:
            return
        self._stale = True
        self._generation += 1

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._owner.unregister_scope(self)
        logger.debug(f"Disposed {self!r}")

    async def refresh(self) -> None:
        """Re-fetch the revision id now, joining any refresh in flight."""
        self._assert_not_disposed()
        if self._mode is RevisionMode.EXPLICIT:
            return
        await self._shared_refresh()

    async def resolve_revision_id(self) -> str:
        """Return the revision id to operate against.

        Returns the cached id without suspending unless the scope is stale.
        Concurrent callers on a stale scope share one fetch.

        Raises:
            ScopeDisposedError: If the scope has been disposed
            TransportError: If the refresh fetch fails; the scope stays stale
        """
        self._assert_not_disposed()
        if not self._stale:
            return self._revision_id
        return await self._shared_refresh()

    async def _shared_refresh(self) -> str:
        if self._refresh_task is None:
            self._refresh_task = asyncio.get_running_loop().create_task(
                self._refresh_revision_id()
            )
            self._refresh_task.add_done_callback(self._log_refresh_failure)
        # Shielded so an abandoned caller does not cancel the fetch for others.
        return await asyncio.shield(self._refresh_task)

    async def _refresh_revision_id(self) -> str:
        generation = self._generation
        try:
            revision_id = await self._fetch_revision_id()
        finally:
            self._refresh_task = None

        if generation == self._generation:
            self._revision_id = revision_id
            self._stale = False
            logger.debug(f"Refreshed {self._identity} ({self._mode.value}) to {revision_id}")
        else:
            logger.debug(f"Scope of {self._identity} invalidated during refresh, staying stale")
        return revision_id

    def _log_refresh_failure(self, task: asyncio.Task[str]) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning(f"Refresh of {self._identity} failed: {error}")

    async def _fetch_revision_id(self) -> str:
        if self._mode is RevisionMode.DRAFT:
            return await ops.fetch_draft_revision_id(self._transport, self._identity)
        return await ops.fetch_head_revision_id(self._transport, self._identity)

    async def _sync_after_branch_change(self) -> None:
        """Adopt the new draft id, then invalidate siblings.

        The branch has already changed on the server when this runs. If the
        follow-up fetches fail, this scope and its siblings are left stale so
        their next read re-resolves, and the error is raised.
        """
        try:
            await self._owner.refresh_revision_ids()
            revision_id = await ops.fetch_draft_revision_id(self._transport, self._identity)
        except (Exception, asyncio.CancelledError) as e:
            logger.warning(f"Sync after change of {self._identity} failed: {e!r}")
            self.mark_stale()
            self._owner.notify_branch_changed(self._identity, exclude=self)
            raise

        self._revision_id = revision_id
        self._stale = False
        self._generation += 1
        self._owner.notify_branch_changed(self._identity, exclude=self)

    def _assert_not_disposed(self) -> None:
        if self._disposed:
            raise ScopeDisposedError()

    @property
    def _context(self) -> ScopeContext:
        self._assert_not_disposed()
        return ScopeContext(
            transport=self._transport,
            identity=self._identity,
            is_draft=self._is_draft,
            resolve_revision_id=self.resolve_revision_id,
            page_size=self._page_size,
        )

    # -------------------------------------------------------------------------
    # Tables
    # -------------------------------------------------------------------------

    async def get_tables(
        self, *, first: int | None = None, after: str | None = None
    ) -> dict[str, Any]:
        return await ops.get_tables(self._context, first=first, after=after)

    async def get_table(self, table_id: str) -> dict[str, Any]:
        return await ops.get_table(self._context, table_id)

    async def get_table_schema(self, table_id: str) -> dict[str, Any]:
        return await ops.get_table_schema(self._context, table_id)

    async def get_table_count_rows(self, table_id: str) -> dict[str, Any]:
        return await ops.get_table_count_rows(self._context, table_id)

    async def get_table_foreign_keys_by(
        self, table_id: str, *, first: int | None = None, after: str | None = None
    ) -> dict[str, Any]:
        """Tables that `table_id` references."""
        return await ops.get_table_foreign_keys(
            self._context, table_id, "by", first=first, after=after
        )

    async def get_table_foreign_keys_to(
        self, table_id: str, *, first: int | None = None, after: str | None = None
    ) -> dict[str, Any]:
        """Tables that reference `table_id`."""
        return await ops.get_table_foreign_keys(
            self._context, table_id, "to", first=first, after=after
        )

    async def get_table_count_foreign_keys_by(self, table_id: str) -> dict[str, Any]:
        return await ops.get_table_count_foreign_keys(self._context, table_id, "by")

    async def get_table_count_foreign_keys_to(self, table_id: str) -> dict[str, Any]:
        return await ops.get_table_count_foreign_keys(self._context, table_id, "to")

    async def create_table(self, table_id: str, schema: dict[str, Any]) -> dict[str, Any]:
        return await ops.create_table(self._context, table_id, schema)

    async def update_table(self, table_id: str, patches: list[dict[str, Any]]) -> dict[str, Any]:
        """Apply JSON Patch operations to a table schema."""
        return await ops.update_table(self._context, table_id, patches)

    async def delete_table(self, table_id: str) -> None:
        await ops.delete_table(self._context, table_id)

    async def rename_table(self, table_id: str, next_table_id: str) -> dict[str, Any]:
        return await ops.rename_table(self._context, table_id, next_table_id)

    # -------------------------------------------------------------------------
    # Rows
    # -------------------------------------------------------------------------

    async def get_rows(
        self, table_id: str, options: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """List rows.

        Args:
            table_id: Table to read
            options: Query body (first, after, orderBy, where); defaults to
                the first page
        """
        return await ops.get_rows(self._context, table_id, options)

    async def get_row(self, table_id: str, row_id: str) -> dict[str, Any]:
        return await ops.get_row(self._context, table_id, row_id)

    async def get_row_foreign_keys_by(
        self,
        table_id: str,
        row_id: str,
        foreign_key_by_table_id: str,
        *,
        first: int | None = None,
        after: str | None = None,
    ) -> dict[str, Any]:
        return await ops.get_row_foreign_keys(
            self._context,
            table_id,
            row_id,
            "by",
            foreign_key_by_table_id,
            first=first,
            after=after,
        )

    async def get_row_foreign_keys_to(
        self,
        table_id: str,
        row_id: str,
        foreign_key_to_table_id: str,
        *,
        first: int | None = None,
        after: str | None = None,
    ) -> dict[str, Any]:
        return await ops.get_row_foreign_keys(
            self._context,
            table_id,
            row_id,
            "to",
            foreign_key_to_table_id,
            first=first,
            after=after,
        )

    async def get_row_count_foreign_keys_by(self, table_id: str, row_id: str) -> dict[str, Any]:
        return await ops.get_row_count_foreign_keys(self._context, table_id, row_id, "by")

    async def get_row_count_foreign_keys_to(self, table_id: str, row_id: str) -> dict[str, Any]:
        return await ops.get_row_count_foreign_keys(self._context, table_id, row_id, "to")

    async def create_row(self, table_id: str, row_id: str, data: dict[str, Any]) -> dict[str, Any]:
        return await ops.create_row(self._context, table_id, row_id, data)

    async def create_rows(
        self,
        table_id: str,
        rows: list[dict[str, Any]],
        *,
        is_restore: bool | None = None,
    ) -> dict[str, Any]:
        """Create rows in bulk.

        Args:
            table_id: Target table
            rows: Items of the form {"rowId": ..., "data": {...}}
            is_restore: Skip default/readonly handling when restoring a dump
        """
        return await ops.create_rows(self._context, table_id, rows, is_restore=is_restore)

    async def update_row(self, table_id: str, row_id: str, data: dict[str, Any]) -> dict[str, Any]:
        return await ops.update_row(self._context, table_id, row_id, data)

    async def update_rows(
        self,
        table_id: str,
        rows: list[dict[str, Any]],
        *,
        is_restore: bool | None = None,
    ) -> dict[str, Any]:
        return await ops.update_rows(self._context, table_id, rows, is_restore=is_restore)

    async def patch_row(
        self, table_id: str, row_id: str, patches: list[dict[str, Any]]
    ) -> dict[str, Any]:
        return await ops.patch_row(self._context, table_id, row_id, patches)

    async def patch_rows(self, table_id: str, body: dict[str, Any]) -> dict[str, Any]:
        return await ops.patch_rows(self._context, table_id, body)

    async def delete_row(self, table_id: str, row_id: str) -> None:
        await ops.delete_row(self._context, table_id, row_id)

    async def delete_rows(self, table_id: str, row_ids: list[str]) -> None:
        await ops.delete_rows(self._context, table_id, row_ids)

    async def rename_row(self, table_id: str, row_id: str, next_row_id: str) -> dict[str, Any]:
        return await ops.rename_row(self._context, table_id, row_id, next_row_id)

    # -------------------------------------------------------------------------
    # Changes
    # -------------------------------------------------------------------------

    async def get_changes(self) -> dict[str, Any]:
        return await ops.get_changes(self._context)

    async def get_table_changes(self, **params: Any) -> dict[str, Any]:
        """Table-level changes against the parent (or compareWithRevisionId)."""
        return await ops.get_table_changes(self._context, params)

    async def get_row_changes(self, **params: Any) -> dict[str, Any]:
        return await ops.get_row_changes(self._context, params)

    # -------------------------------------------------------------------------
    # Migrations
    # -------------------------------------------------------------------------

    async def get_migrations(self) -> list[dict[str, Any]]:
        return await ops.get_migrations(self._context)

    async def apply_migrations(self, migrations: list[dict[str, Any]]) -> None:
        await self.apply_migrations_with_status(migrations)

    async def apply_migrations_with_status(
        self, migrations: list[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        """Apply migrations and return the per-migration status list."""
        result = await ops.apply_migrations(self._context, migrations)
        await self._sync_after_branch_change()
        return result

    # -------------------------------------------------------------------------
    # Commit / Revert
    # -------------------------------------------------------------------------

    async def commit(self, comment: str | None = None) -> dict[str, Any]:
        """Commit the draft and return the new head revision.

        Afterwards this scope points at the new draft and every sibling
        scope on the branch is stale.
        """
        revision = await ops.commit(self._context, comment)
        await self._sync_after_branch_change()
        logger.debug(f"Committed {self._identity} as {revision.get('id')}")
        return revision

    async def revert_changes(self) -> None:
        await ops.revert_changes(self._context)
        await self._sync_after_branch_change()

    # -------------------------------------------------------------------------
    # Endpoints
    # -------------------------------------------------------------------------

    async def get_endpoints(self) -> list[dict[str, Any]]:
        return await ops.get_endpoints(self._context)

    async def create_endpoint(self, body: dict[str, Any]) -> dict[str, Any]:
        return await ops.create_endpoint(self._context, body)

    async def delete_endpoint(self, endpoint_id: str) -> None:
        self._assert_not_disposed()
        await self._transport.delete_endpoint(endpoint_id)

    async def get_endpoint_relatives(self, endpoint_id: str) -> dict[str, Any]:
        self._assert_not_disposed()
        return await self._transport.get_endpoint_relatives(endpoint_id)

    # -------------------------------------------------------------------------
    # File upload
    # -------------------------------------------------------------------------

    async def upload_file(
        self,
        table_id: str,
        row_id: str,
        file_id: str,
        content: bytes,
        *,
        filename: str = "file",
    ) -> dict[str, Any]:
        return await ops.upload_file(self._context, table_id, row_id, file_id, content, filename)
