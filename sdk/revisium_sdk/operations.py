"""
Revision-bound data operations for Revisium SDK.

Each function takes a ScopeContext, applies the context and draft guards,
resolves the scope's current revision id and calls the matching transport
endpoint. Results are returned unchanged.

Invariants:
    - Guards run before any revision id is resolved
    - Mutations never reach the transport from a non-draft context
    - Transport errors propagate unchanged
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from ._http_client import HttpTransport
from .errors import ContextNotSetError, NotDraftError, TransportError, UnknownRevisionError

DEFAULT_PAGE_SIZE = 100


@dataclass(frozen=True)
class BranchIdentity:
    """Immutable (organization, project, branch) triple.

    Hashable and structurally comparable, so it doubles as a registry key.
    """

    organization_id: str
    project_name: str
    branch_name: str

    @property
    def key(self) -> str:
        return f"{self.organization_id}/{self.project_name}/{self.branch_name}"

    def __str__(self) -> str:
        return self.key


@dataclass(frozen=True)
class ScopeContext:
    """What an operation needs from a revision scope.

    Attributes:
        transport: Remote operations
        identity: Branch the scope belongs to
        is_draft: Whether mutations are allowed
        resolve_revision_id: Returns the scope's current revision id,
            refreshing it first if stale
        page_size: Default `first` for paginated reads
    """

    transport: HttpTransport
    identity: BranchIdentity
    is_draft: bool
    resolve_revision_id: Callable[[], Awaitable[str]]
    page_size: int = DEFAULT_PAGE_SIZE


def assert_context(ctx: ScopeContext) -> None:
    if not ctx.identity.organization_id:
        raise ContextNotSetError()


def assert_draft(ctx: ScopeContext) -> None:
    assert_context(ctx)
    if not ctx.is_draft:
        raise NotDraftError()


# -------------------------------------------------------------------------
# Revision ids
# -------------------------------------------------------------------------


async def fetch_draft_revision_id(transport: HttpTransport, identity: BranchIdentity) -> str:
    revision = await transport.get_draft_revision(
        identity.organization_id, identity.project_name, identity.branch_name
    )
    return revision["id"]


async def fetch_head_revision_id(transport: HttpTransport, identity: BranchIdentity) -> str:
    revision = await transport.get_head_revision(
        identity.organization_id, identity.project_name, identity.branch_name
    )
    return revision["id"]


async def validate_revision_id(transport: HttpTransport, revision_id: str) -> dict[str, Any]:
    """Check that the server knows a revision id.

    Raises:
        UnknownRevisionError: If the server answers 404
        TransportError: For any other failure
    """
    try:
        return await transport.get_revision(revision_id)
    except TransportError as e:
        if e.is_not_found:
            raise UnknownRevisionError(revision_id) from e
        raise


# -------------------------------------------------------------------------
# Tables
# -------------------------------------------------------------------------


async def get_tables(
    ctx: ScopeContext, *, first: int | None = None, after: str | None = None
) -> dict[str, Any]:
    revision_id = await ctx.resolve_revision_id()
    return await ctx.transport.get_tables(revision_id, first=first or ctx.page_size, after=after)


async def get_table(ctx: ScopeContext, table_id: str) -> dict[str, Any]:
    revision_id = await ctx.resolve_revision_id()
    return await ctx.transport.get_table(revision_id, table_id)


async def get_table_schema(ctx: ScopeContext, table_id: str) -> dict[str, Any]:
    revision_id = await ctx.resolve_revision_id()
    return await ctx.transport.get_table_schema(revision_id, table_id)


async def get_table_count_rows(ctx: ScopeContext, table_id: str) -> dict[str, Any]:
    revision_id = await ctx.resolve_revision_id()
    return await ctx.transport.get_table_count_rows(revision_id, table_id)


async def get_table_foreign_keys(
    ctx: ScopeContext,
    table_id: str,
    direction: str,
    *,
    first: int | None = None,
    after: str | None = None,
) -> dict[str, Any]:
    revision_id = await ctx.resolve_revision_id()
    return await ctx.transport.get_table_foreign_keys(
        revision_id, table_id, direction, first=first or ctx.page_size, after=after
    )


async def get_table_count_foreign_keys(
    ctx: ScopeContext, table_id: str, direction: str
) -> dict[str, Any]:
    revision_id = await ctx.resolve_revision_id()
    return await ctx.transport.get_table_count_foreign_keys(revision_id, table_id, direction)


async def create_table(
    ctx: ScopeContext, table_id: str, schema: dict[str, Any]
) -> dict[str, Any]:
    assert_draft(ctx)
    revision_id = await ctx.resolve_revision_id()
    return await ctx.transport.create_table(revision_id, table_id, schema)


async def update_table(
    ctx: ScopeContext, table_id: str, patches: list[dict[str, Any]]
) -> dict[str, Any]:
    assert_draft(ctx)
    revision_id = await ctx.resolve_revision_id()
    return await ctx.transport.update_table(revision_id, table_id, patches)


async def delete_table(ctx: ScopeContext, table_id: str) -> None:
    assert_draft(ctx)
    revision_id = await ctx.resolve_revision_id()
    await ctx.transport.delete_table(revision_id, table_id)


async def rename_table(ctx: ScopeContext, table_id: str, next_table_id: str) -> dict[str, Any]:
    assert_draft(ctx)
    revision_id = await ctx.resolve_revision_id()
    return await ctx.transport.rename_table(revision_id, table_id, next_table_id)


# -------------------------------------------------------------------------
# Rows
# -------------------------------------------------------------------------


async def get_rows(
    ctx: ScopeContext, table_id: str, options: dict[str, Any] | None = None
) -> dict[str, Any]:
    revision_id = await ctx.resolve_revision_id()
    return await ctx.transport.get_rows(revision_id, table_id, options or {"first": ctx.page_size})


async def get_row(ctx: ScopeContext, table_id: str, row_id: str) -> dict[str, Any]:
    revision_id = await ctx.resolve_revision_id()
    return await ctx.transport.get_row(revision_id, table_id, row_id)


async def get_row_foreign_keys(
    ctx: ScopeContext,
    table_id: str,
    row_id: str,
    direction: str,
    related_table_id: str,
    *,
    first: int | None = None,
    after: str | None = None,
) -> dict[str, Any]:
    revision_id = await ctx.resolve_revision_id()
    return await ctx.transport.get_row_foreign_keys(
        revision_id,
        table_id,
        row_id,
        direction,
        related_table_id,
        first=first or ctx.page_size,
        after=after,
    )


async def get_row_count_foreign_keys(
    ctx: ScopeContext, table_id: str, row_id: str, direction: str
) -> dict[str, Any]:
    revision_id = await ctx.resolve_revision_id()
    return await ctx.transport.get_row_count_foreign_keys(revision_id, table_id, row_id, direction)


def _bulk_rows_body(rows: list[dict[str, Any]], is_restore: bool | None) -> dict[str, Any]:
    body: dict[str, Any] = {"rows": [{"rowId": r["rowId"], "data": r["data"]} for r in rows]}
    if is_restore is not None:
        body["isRestore"] = is_restore
    return body


async def create_row(
    ctx: ScopeContext, table_id: str, row_id: str, data: dict[str, Any]
) -> dict[str, Any]:
    assert_draft(ctx)
    revision_id = await ctx.resolve_revision_id()
    return await ctx.transport.create_row(revision_id, table_id, row_id, data)


async def create_rows(
    ctx: ScopeContext,
    table_id: str,
    rows: list[dict[str, Any]],
    *,
    is_restore: bool | None = None,
) -> dict[str, Any]:
    assert_draft(ctx)
    revision_id = await ctx.resolve_revision_id()
    return await ctx.transport.create_rows(revision_id, table_id, _bulk_rows_body(rows, is_restore))


async def update_row(
    ctx: ScopeContext, table_id: str, row_id: str, data: dict[str, Any]
) -> dict[str, Any]:
    assert_draft(ctx)
    revision_id = await ctx.resolve_revision_id()
    return await ctx.transport.update_row(revision_id, table_id, row_id, data)


async def update_rows(
    ctx: ScopeContext,
    table_id: str,
    rows: list[dict[str, Any]],
    *,
    is_restore: bool | None = None,
) -> dict[str, Any]:
    assert_draft(ctx)
    revision_id = await ctx.resolve_revision_id()
    return await ctx.transport.update_rows(revision_id, table_id, _bulk_rows_body(rows, is_restore))


async def patch_row(
    ctx: ScopeContext, table_id: str, row_id: str, patches: list[dict[str, Any]]
) -> dict[str, Any]:
    assert_draft(ctx)
    revision_id = await ctx.resolve_revision_id()
    return await ctx.transport.patch_row(revision_id, table_id, row_id, patches)


async def patch_rows(ctx: ScopeContext, table_id: str, body: dict[str, Any]) -> dict[str, Any]:
    assert_draft(ctx)
    revision_id = await ctx.resolve_revision_id()
    return await ctx.transport.patch_rows(revision_id, table_id, body)


async def delete_row(ctx: ScopeContext, table_id: str, row_id: str) -> None:
    assert_draft(ctx)
    revision_id = await ctx.resolve_revision_id()
    await ctx.transport.delete_row(revision_id, table_id, row_id)


async def delete_rows(ctx: ScopeContext, table_id: str, row_ids: list[str]) -> None:
    assert_draft(ctx)
    revision_id = await ctx.resolve_revision_id()
    await ctx.transport.delete_rows(revision_id, table_id, row_ids)


async def rename_row(
    ctx: ScopeContext, table_id: str, row_id: str, next_row_id: str
) -> dict[str, Any]:
    assert_draft(ctx)
    revision_id = await ctx.resolve_revision_id()
    return await ctx.transport.rename_row(revision_id, table_id, row_id, next_row_id)


async def upload_file(
    ctx: ScopeContext,
    table_id: str,
    row_id: str,
    file_id: str,
    content: bytes,
    filename: str,
) -> dict[str, Any]:
    assert_draft(ctx)
    revision_id = await ctx.resolve_revision_id()
    return await ctx.transport.upload_file(
        revision_id, table_id, row_id, file_id, content, filename
    )


# -------------------------------------------------------------------------
# Changes
# -------------------------------------------------------------------------


async def get_changes(ctx: ScopeContext) -> dict[str, Any]:
    revision_id = await ctx.resolve_revision_id()
    return await ctx.transport.get_changes(revision_id)


async def get_table_changes(ctx: ScopeContext, params: dict[str, Any]) -> dict[str, Any]:
    revision_id = await ctx.resolve_revision_id()
    return await ctx.transport.get_table_changes(revision_id, {"first": ctx.page_size, **params})


async def get_row_changes(ctx: ScopeContext, params: dict[str, Any]) -> dict[str, Any]:
    revision_id = await ctx.resolve_revision_id()
    return await ctx.transport.get_row_changes(revision_id, {"first": ctx.page_size, **params})


# -------------------------------------------------------------------------
# Migrations
# -------------------------------------------------------------------------


async def get_migrations(ctx: ScopeContext) -> list[dict[str, Any]]:
    assert_context(ctx)
    revision_id = await ctx.resolve_revision_id()
    return await ctx.transport.get_migrations(revision_id)


async def apply_migrations(
    ctx: ScopeContext, migrations: list[dict[str, Any]]
) -> list[dict[str, Any]]:
    assert_draft(ctx)
    revision_id = await ctx.resolve_revision_id()
    return await ctx.transport.apply_migrations(revision_id, migrations)


# -------------------------------------------------------------------------
# Commit / revert
# -------------------------------------------------------------------------


async def commit(ctx: ScopeContext, comment: str | None = None) -> dict[str, Any]:
    assert_draft(ctx)
    identity = ctx.identity
    return await ctx.transport.create_revision(
        identity.organization_id, identity.project_name, identity.branch_name, comment
    )


async def revert_changes(ctx: ScopeContext) -> None:
    assert_draft(ctx)
    identity = ctx.identity
    await ctx.transport.revert_changes(
        identity.organization_id, identity.project_name, identity.branch_name
    )


# -------------------------------------------------------------------------
# Endpoints
# -------------------------------------------------------------------------


async def get_endpoints(ctx: ScopeContext) -> list[dict[str, Any]]:
    revision_id = await ctx.resolve_revision_id()
    return await ctx.transport.get_endpoints(revision_id)


async def create_endpoint(ctx: ScopeContext, body: dict[str, Any]) -> dict[str, Any]:
    assert_draft(ctx)
    revision_id = await ctx.resolve_revision_id()
    return await ctx.transport.create_endpoint(revision_id, body)
