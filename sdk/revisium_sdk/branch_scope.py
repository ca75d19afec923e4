"""
Branch scope for Revisium SDK.

A BranchScope is the owner of every revision scope it hands out. It caches
the branch's head and draft revision ids and broadcasts staleness to its
scopes when one of them changes the branch.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from . import operations as ops
from ._http_client import HttpTransport
from .operations import DEFAULT_PAGE_SIZE, BranchIdentity
from .revision_scope import RevisionMode, RevisionScope

logger = logging.getLogger(__name__)


async def _fetch_head_and_draft(
    transport: HttpTransport, identity: BranchIdentity
) -> tuple[str, str]:
    # Both fetches finish before any failure is raised.
    head, draft = await asyncio.gather(
        ops.fetch_head_revision_id(transport, identity),
        ops.fetch_draft_revision_id(transport, identity),
        return_exceptions=True,
    )
    if isinstance(head, BaseException):
        raise head
    if isinstance(draft, BaseException):
        raise draft
    return head, draft


class BranchScope:
    """Owner of the revision scopes of one branch.

    Use BranchScope.create() (or ProjectScope.branch()) rather than the
    constructor: creation fetches the current head and draft ids.

    Example:
        >>> branch = await BranchScope.create(transport, identity)
        >>> a, b = branch.draft(), branch.draft()
        >>> await a.commit("x")
        >>> b.is_stale
        True
    """

    def __init__(
        self,
        transport: HttpTransport,
        identity: BranchIdentity,
        head_revision_id: str,
        draft_revision_id: str,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self._transport = transport
        self._identity = identity
        self._head_revision_id = head_revision_id
        self._draft_revision_id = draft_revision_id
        self._page_size = page_size
        self._scopes: set[RevisionScope] = set()

    @classmethod
    async def create(
        cls,
        transport: HttpTransport,
        identity: BranchIdentity,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> BranchScope:
        """Fetch head and draft ids and build the branch scope.

        Raises:
            TransportError: If either id cannot be fetched
        """
        head_id, draft_id = await _fetch_head_and_draft(transport, identity)
        logger.debug(f"Opened branch {identity} (head={head_id}, draft={draft_id})")
        return cls(transport, identity, head_id, draft_id, page_size=page_size)

    def __repr__(self) -> str:
        return f"BranchScope({self._identity.key!r}, scopes={len(self._scopes)})"

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
    def head_revision_id(self) -> str:
        return self._head_revision_id

    @property
    def draft_revision_id(self) -> str:
        return self._draft_revision_id

    @property
    def transport(self) -> HttpTransport:
        return self._transport

    @property
    def scope_count(self) -> int:
        """Number of live revision scopes owned by this branch."""
        return len(self._scopes)

    def _open(self, revision_id: str, mode: RevisionMode) -> RevisionScope:
        scope = RevisionScope(
            self._transport,
            self._identity,
            revision_id,
            mode,
            self,
            page_size=self._page_size,
        )
        self._scopes.add(scope)
        return scope

    def draft(self) -> RevisionScope:
        """Scope on the draft revision; the only kind that accepts mutations."""
        return self._open(self._draft_revision_id, RevisionMode.DRAFT)

    def head(self) -> RevisionScope:
        return self._open(self._head_revision_id, RevisionMode.HEAD)

    async def revision(self, revision_id: str) -> RevisionScope:
        """Scope pinned to an explicit revision.

        Raises:
            UnknownRevisionError: If the server does not know `revision_id`
        """
        await ops.validate_revision_id(self._transport, revision_id)
        return self._open(revision_id, RevisionMode.EXPLICIT)

    # -------------------------------------------------------------------------
    # Branch-level operations
    # -------------------------------------------------------------------------

    async def get(self) -> dict[str, Any]:
        i = self._identity
        return await self._transport.get_branch(i.organization_id, i.project_name, i.branch_name)

    async def delete(self) -> None:
        i = self._identity
        await self._transport.delete_branch(i.organization_id, i.project_name, i.branch_name)

    async def get_touched(self) -> dict[str, Any]:
        """Whether the draft differs from head."""
        i = self._identity
        return await self._transport.get_branch_touched(
            i.organization_id, i.project_name, i.branch_name
        )

    async def get_revisions(
        self,
        *,
        first: int | None = None,
        after: str | None = None,
        before: str | None = None,
        inclusive: bool | None = None,
    ) -> dict[str, Any]:
        i = self._identity
        return await self._transport.get_revisions(
            i.organization_id,
            i.project_name,
            i.branch_name,
            first=first or self._page_size,
            after=after,
            before=before,
            inclusive=inclusive,
        )

    async def get_start_revision(self) -> dict[str, Any]:
        i = self._identity
        return await self._transport.get_start_revision(
            i.organization_id, i.project_name, i.branch_name
        )

    # -------------------------------------------------------------------------
    # ScopeOwner implementation
    # -------------------------------------------------------------------------

    def notify_branch_changed(
        self, identity: BranchIdentity, exclude: Optional[RevisionScope] = None
    ) -> None:
        if identity != self._identity:
            return
        for scope in list(self._scopes):
            if scope is not exclude:
                scope.mark_stale()

    def unregister_scope(self, scope: RevisionScope) -> None:
        self._scopes.discard(scope)

    async def refresh_revision_ids(self) -> None:
        self._head_revision_id, self._draft_revision_id = await _fetch_head_and_draft(
            self._transport, self._identity
        )
