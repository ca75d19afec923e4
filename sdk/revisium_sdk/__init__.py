"""
Revisium Python SDK - Client library for the Revisium versioned data store.

This SDK provides scoped handles over organizations, projects, branches
and revisions:
- RevisiumClient for connecting to the server
- OrgScope / ProjectScope for navigation
- BranchScope owning draft, head and explicit RevisionScopes
- RevisionScope for table, row, migration and commit operations

Example:
    >>> from revisium_sdk import RevisiumClient
    >>>
    >>> async with RevisiumClient("http://localhost:8080") as client:
    ...     branch = await client.branch("admin", "blog")
    ...     with branch.draft() as draft:
    ...         await draft.create_row("posts", "post-1", {"title": "Hello"})
    ...         await draft.commit("first post")

Invariants:
    - Only draft scopes accept mutations
    - A commit through one scope marks its sibling scopes stale
    - Stale scopes refresh their revision id on next use

Version: 1.0.0
"""

__version__ = "1.0.0"

from .branch_scope import BranchScope
from .client import RevisiumClient
from .config import ClientSettings
from .errors import (
    ContextNotSetError,
    NotDraftError,
    RevisiumError,
    ScopeDisposedError,
    TransportError,
    UnknownRevisionError,
)
from .logging_config import setup_logging
from .operations import BranchIdentity
from .org_scope import OrgScope
from .owner import ScopeOwner, ScopeRegistry
from .project_scope import ProjectScope
from .revision_scope import RevisionMode, RevisionScope

__all__ = [
    # Version
    "__version__",
    # Client
    "RevisiumClient",
    "ClientSettings",
    "setup_logging",
    # Scopes
    "OrgScope",
    "ProjectScope",
    "BranchScope",
    "RevisionScope",
    "RevisionMode",
    "BranchIdentity",
    # Ownership
    "ScopeOwner",
    "ScopeRegistry",
    # Errors
    "RevisiumError",
    "ContextNotSetError",
    "NotDraftError",
    "ScopeDisposedError",
    "UnknownRevisionError",
    "TransportError",
]
