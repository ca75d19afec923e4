"""
Unit tests for revision-bound data operations.

Tests cover:
- Context and draft guards
- Revision validation error mapping
- Request body defaults
"""

from unittest.mock import AsyncMock

import pytest

from revisium_sdk import (
    BranchIdentity,
    ContextNotSetError,
    NotDraftError,
    TransportError,
    UnknownRevisionError,
)
from revisium_sdk import operations as ops
from revisium_sdk.operations import ScopeContext


def make_context(transport, identity, is_draft=True):
    """Helper to build a context whose resolver returns rev-1."""
    return ScopeContext(
        transport=transport,
        identity=identity,
        is_draft=is_draft,
        resolve_revision_id=AsyncMock(return_value="rev-1"),
    )


class TestBranchIdentity:
    """Tests for BranchIdentity."""

    def test_key(self, identity):
        """Key joins the triple with slashes."""
        assert identity.key == "org1/proj1/main"
        assert str(identity) == "org1/proj1/main"

    def test_value_equality(self):
        """Equal triples are equal and hash alike."""
        assert BranchIdentity("o", "p", "b") == BranchIdentity("o", "p", "b")
        assert len({BranchIdentity("o", "p", "b"), BranchIdentity("o", "p", "b")}) == 1


class TestGuards:
    """Tests for assert_context / assert_draft."""

    def test_empty_organization_raises(self, transport):
        """Empty organization id means no context."""
        ctx = make_context(transport, BranchIdentity("", "p", "b"))

        with pytest.raises(ContextNotSetError, match="Context not set"):
            ops.assert_context(ctx)

    def test_draft_guard_checks_context_first(self, transport):
        """Context errors win over NotDraft."""
        ctx = make_context(transport, BranchIdentity("", "p", "b"), is_draft=False)

        with pytest.raises(ContextNotSetError):
            ops.assert_draft(ctx)

    @pytest.mark.asyncio
    async def test_mutation_guard_skips_resolution(self, transport, identity):
        """A rejected mutation never resolves a revision id."""
        ctx = make_context(transport, identity, is_draft=False)

        with pytest.raises(NotDraftError):
            await ops.delete_rows(ctx, "posts", ["p1"])

        ctx.resolve_revision_id.assert_not_called()
        transport.delete_rows.assert_not_called()

    @pytest.mark.asyncio
    async def test_get_migrations_requires_context(self, transport):
        """Migration listing checks the context."""
        ctx = make_context(transport, BranchIdentity("", "p", "b"))

        with pytest.raises(ContextNotSetError):
            await ops.get_migrations(ctx)


class TestValidateRevisionId:
    """Tests for validate_revision_id."""

    @pytest.mark.asyncio
    async def test_known_revision(self, transport):
        """Known ids return the revision."""
        transport.get_revision.return_value = {"id": "r1"}

        assert await ops.validate_revision_id(transport, "r1") == {"id": "r1"}

    @pytest.mark.asyncio
    async def test_not_found_maps_to_unknown_revision(self, transport):
        """404 becomes UnknownRevisionError chained to the transport error."""
        error = TransportError("not found", status_code=404)
        transport.get_revision.side_effect = error

        with pytest.raises(UnknownRevisionError) as exc_info:
            await ops.validate_revision_id(transport, "missing")

        assert exc_info.value.revision_id == "missing"
        assert exc_info.value.__cause__ is error


class TestRequests:
    """Tests for request shaping."""

    @pytest.mark.asyncio
    async def test_get_rows_default_body(self, transport, identity):
        """get_rows asks for the first page by default."""
        ctx = make_context(transport, identity)

        await ops.get_rows(ctx, "posts")

        transport.get_rows.assert_awaited_once_with("rev-1", "posts", {"first": 100})

    @pytest.mark.asyncio
    async def test_get_rows_passes_options(self, transport, identity):
        """Explicit options are sent unchanged."""
        ctx = make_context(transport, identity)
        options = {"first": 5, "orderBy": [{"field": "id", "direction": "asc"}]}

        await ops.get_rows(ctx, "posts", options)

        transport.get_rows.assert_awaited_once_with("rev-1", "posts", options)

    @pytest.mark.asyncio
    async def test_update_rows_without_restore_flag(self, transport, identity):
        """isRestore is omitted unless given."""
        ctx = make_context(transport, identity)

        await ops.update_rows(ctx, "posts", [{"rowId": "p1", "data": {}}])

        transport.update_rows.assert_awaited_once_with(
            "rev-1", "posts", {"rows": [{"rowId": "p1", "data": {}}]}
        )

    @pytest.mark.asyncio
    async def test_commit_uses_branch_path(self, transport, identity):
        """Commit addresses the branch, not the revision."""
        ctx = make_context(transport, identity)

        await ops.commit(ctx, "msg")

        transport.create_revision.assert_awaited_once_with("org1", "proj1", "main", "msg")
        ctx.resolve_revision_id.assert_not_called()

    @pytest.mark.asyncio
    async def test_fetch_ids(self, transport, identity):
        """Draft and head fetches unwrap the id."""
        assert await ops.fetch_draft_revision_id(transport, identity) == "d0"
        assert await ops.fetch_head_revision_id(transport, identity) == "h0"
