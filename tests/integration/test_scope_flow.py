"""
Integration tests for revision scopes over HTTP.

These tests drive the whole SDK stack (client, scopes, operations and
HttpTransport) against FakeRevisium served through httpx.MockTransport.
"""

import asyncio

import pytest

from revisium_sdk import NotDraftError, TransportError

DRAFT_SUFFIX = "/draft-revision"


class TestScopeFlow:
    """End-to-end scope behaviour."""

    @pytest.mark.asyncio
    async def test_write_commit_read(self, client, fake_server):
        """Rows written in the draft are visible in head after commit."""
        branch = await client.branch("admin", "blog", "master")
        with branch.draft() as draft:
            await draft.create_table("posts", {"type": "object", "properties": {}})
            await draft.create_row("posts", "p1", {"title": "Hello"})
            revision = await draft.commit("first post")

            assert revision["id"] == "d0"
            assert draft.revision_id == "d1"

        with branch.head() as head:
            row = await head.get_row("posts", "p1")

        assert row == {"id": "p1", "data": {"title": "Hello"}}
        assert branch.scope_count == 0

    @pytest.mark.asyncio
    async def test_sibling_draft_follows_commit(self, client, fake_server):
        """A sibling draft refreshes lazily to the new draft id."""
        branch = await client.branch("admin", "blog")
        a = branch.draft()
        b = branch.draft()

        await a.commit("x")
        fetches = fake_server.count("GET", DRAFT_SUFFIX)
        tables = await b.get_tables()

        assert tables["totalCount"] == 0
        assert fake_server.count("GET", DRAFT_SUFFIX) == fetches + 1
        assert b.revision_id == "d1"
        assert ("GET", "/revision/d1/tables") in fake_server.requests

    @pytest.mark.asyncio
    async def test_concurrent_stale_reads_share_refresh(self, client, fake_server):
        """Concurrent reads on a stale scope fetch the draft once."""
        a = await client.revision("admin", "blog")
        b = await client.revision("admin", "blog")
        await a.commit()
        fetches = fake_server.count("GET", DRAFT_SUFFIX)

        await asyncio.gather(b.get_tables(), b.get_tables(), b.get_tables())

        assert fake_server.count("GET", DRAFT_SUFFIX) == fetches + 1

    @pytest.mark.asyncio
    async def test_explicit_scope_pinned(self, client, fake_server):
        """Explicit scopes keep reading their revision after a commit."""
        draft = await client.revision("admin", "blog")
        await draft.create_table("posts", {})
        pinned = await client.revision("admin", "blog", revision="h0")

        await draft.commit()

        assert pinned.is_stale is False
        assert (await pinned.get_tables())["totalCount"] == 0
        assert pinned.revision_id == "h0"

    @pytest.mark.asyncio
    async def test_head_mutation_makes_no_request(self, client, fake_server):
        """Head scope mutations fail before reaching the server."""
        head = await client.revision("admin", "blog", revision="head")
        before = len(fake_server.requests)

        with pytest.raises(NotDraftError):
            await head.create_table("posts", {})

        assert len(fake_server.requests) == before

    @pytest.mark.asyncio
    async def test_revert_restores_head(self, client, fake_server):
        """revert_changes discards draft rows."""
        draft = await client.revision("admin", "blog")
        await draft.create_table("posts", {})

        await draft.revert_changes()

        assert (await draft.get_tables())["totalCount"] == 0

    @pytest.mark.asyncio
    async def test_server_error_surfaces(self, client, fake_server):
        """Missing rows surface as a 404 TransportError."""
        draft = await client.revision("admin", "blog")
        await draft.create_table("posts", {})

        with pytest.raises(TransportError) as exc_info:
            await draft.get_row("posts", "missing")

        assert exc_info.value.is_not_found is True
