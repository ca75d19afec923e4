"""
Scope ownership for Revisium SDK.

A revision scope registers with exactly one owner when it is created and
unregisters itself on dispose. The owner only broadcasts staleness; it never
manages the lifecycle of the scopes it tracks.

This module defines:
- ScopeOwner: The narrow capability a scope needs from its owner
- ScopeRegistry: Top-level owner that tracks scopes of many branches

Invariants:
    - A scope is registered under exactly one identity while not disposed
    - Empty identity entries are dropped immediately
    - Registry bookkeeping never suspends and never fails
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import TYPE_CHECKING, Optional, Protocol

if TYPE_CHECKING:
    from .operations import BranchIdentity
    from .revision_scope import RevisionScope

logger = logging.getLogger(__name__)


class ScopeOwner(Protocol):
    """Protocol for objects that own revision scopes."""

    def notify_branch_changed(
        self, identity: BranchIdentity, exclude: Optional[RevisionScope] = None
    ) -> None:
        """Mark every scope of `identity` stale, except `exclude`."""
        ...

    def unregister_scope(self, scope: RevisionScope) -> None:
        """Forget a disposed scope."""
        ...

    async def refresh_revision_ids(self) -> None:
        """Re-read any head/draft ids the owner caches itself."""
        ...


class ScopeRegistry:
    """Top-level scope owner keyed by branch identity.

    Used by RevisiumClient for scopes created ad hoc, so that scopes of the
    same branch opened through different calls still invalidate each other.

    Example:
        >>> registry = ScopeRegistry()
        >>> registry.register_scope(scope)
        >>> registry.notify_branch_changed(scope.identity, exclude=scope)
    """

    def __init__(self) -> None:
        self._scopes: dict[BranchIdentity, set[RevisionScope]] = {}

    def __len__(self) -> int:
        """Number of identities with at least one live scope."""
        return len(self._scopes)

    def __contains__(self, identity: object) -> bool:
        return identity in self._scopes

    def identities(self) -> Iterator[BranchIdentity]:
        return iter(list(self._scopes))

    def scopes_for(self, identity: BranchIdentity) -> frozenset[RevisionScope]:
        return frozenset(self._scopes.get(identity, ()))

    def register_scope(self, scope: RevisionScope) -> None:
        self._scopes.setdefault(scope.identity, set()).add(scope)

    def unregister_scope(self, scope: RevisionScope) -> None:
        scopes = self._scopes.get(scope.identity)
        if scopes is None:
            return
        scopes.discard(scope)
        if not scopes:
            del self._scopes[scope.identity]

    def notify_branch_changed(
        self, identity: BranchIdentity, exclude: Optional[RevisionScope] = None
    ) -> None:
        scopes = self._scopes.get(identity)
        if not scopes:
            return
        logger.debug(f"Branch {identity} changed, marking {len(scopes)} scope(s) stale")
        for scope in list(scopes):
            if scope is not exclude:
                scope.mark_stale()

    async def refresh_revision_ids(self) -> None:
        # Nothing cached at this level; each scope fetches its own ids.
        return None
