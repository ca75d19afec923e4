"""
Error types for Revisium SDK.

This module defines all exception types raised by the SDK:
- RevisiumError: Base exception
- ContextNotSetError: No organization/project/branch bound
- NotDraftError: Mutation attempted outside a draft revision
- ScopeDisposedError: Operation on a disposed scope
- UnknownRevisionError: Explicit revision id not known to the server
- TransportError: Failure returned by a remote operation

Invariants:
    - All errors inherit from RevisiumError
    - Errors include context for debugging
    - Transport failures are wrapped once and never retried
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class RevisiumError(Exception):
    """Base exception for all Revisium SDK errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "REVISIUM_ERROR"
        self.details = details or {}


class ContextNotSetError(RevisiumError):
    """No organization, project or branch is bound.

    Raised when:
    - A client shortcut is used before set_context()
    - A scope carries an empty organization id
    """

    def __init__(self, message: str = "Context not set. Call set_context() first.") -> None:
        super().__init__(message, code="CONTEXT_NOT_SET")


class NotDraftError(RevisiumError):
    """Mutation attempted on a head or explicit revision."""

    def __init__(self, revision_id: Optional[str] = None) -> None:
        super().__init__(
            "Mutations are only allowed in draft revision. "
            'Use set_context(revision="draft").',
            code="NOT_DRAFT",
            details={"revision_id": revision_id},
        )
        self.revision_id = revision_id


class ScopeDisposedError(RevisiumError):
    """Scope has been disposed and can no longer be used."""

    def __init__(self) -> None:
        super().__init__("Scope has been disposed.", code="SCOPE_DISPOSED")


class UnknownRevisionError(RevisiumError):
    """Explicit revision id is not recognized by the server.

    Attributes:
        revision_id: The rejected revision id
    """

    def __init__(self, revision_id: str) -> None:
        super().__init__(
            f"Unknown revision '{revision_id}'",
            code="UNKNOWN_REVISION",
            details={"revision_id": revision_id},
        )
        self.revision_id = revision_id


class TransportError(RevisiumError):
    """A remote operation failed.

    Raised when:
    - Server responds with a non-success status
    - Server is unreachable or the request times out

    Attributes:
        status_code: HTTP status, None for network failures
        method: HTTP method of the failed request
        path: Request path
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        method: Optional[str] = None,
        path: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            code="TRANSPORT_ERROR",
            details={"status_code": status_code, "method": method, "path": path},
        )
        self.status_code = status_code
        self.method = method
        self.path = path

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404
