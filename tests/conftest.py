"""
Shared fixtures for Revisium SDK tests.

Provides:
- A mocked HttpTransport for unit tests
- FakeRevisium: a small in-memory server behind httpx.MockTransport
"""

from __future__ import annotations

import itertools
import json
import re
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from revisium_sdk import BranchIdentity, ClientSettings, RevisiumClient
from revisium_sdk._http_client import HttpTransport

BASE_URL = "http://revisium.test"

BRANCH_PATH = re.compile(
    r"^/organization/(?P<org>[^/]+)/projects/(?P<project>[^/]+)/branches/(?P<branch>[^/]+)"
    r"/(?P<action>draft-revision|head-revision|create-revision|revert-changes)$"
)
REVISION_PATH = re.compile(r"^/revision/(?P<rev>[^/]+)(?P<rest>/.*)?$")


@pytest.fixture
def identity() -> BranchIdentity:
    return BranchIdentity("org1", "proj1", "main")


@pytest.fixture
def transport() -> AsyncMock:
    """Mocked transport; head is h0 and draft is d0 until changed."""
    transport = AsyncMock(spec=HttpTransport)
    transport.get_head_revision.return_value = {"id": "h0"}
    transport.get_draft_revision.return_value = {"id": "d0"}
    transport.get_tables.return_value = {"edges": [], "totalCount": 0}
    return transport


@pytest.fixture
def owner() -> MagicMock:
    """Stub scope owner."""
    owner = MagicMock()
    owner.refresh_revision_ids = AsyncMock()
    return owner


class FakeRevisium:
    """In-memory single-branch Revisium server.

    Every branch path maps to the same branch. Tables and rows live on the
    draft; a commit snapshots them into a new head and opens a new draft.
    """

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self.head = "h0"
        self.draft = "d0"
        self.snapshots: dict[str, dict[str, dict[str, Any]]] = {"h0": {}, "d0": {}}
        self.requests: list[tuple[str, str]] = []

    def count(self, method: str, suffix: str) -> int:
        return sum(1 for m, p in self.requests if m == method and p.endswith(suffix))

    @staticmethod
    def _json(status: int, body: Any = None) -> httpx.Response:
        if body is None:
            return httpx.Response(status)
        return httpx.Response(status, json=body)

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/api")
        self.requests.append((request.method, path))

        if path == "/me":
            return self._json(200, {"id": "1", "username": "admin"})

        match = BRANCH_PATH.match(path)
        if match:
            return self._branch_action(match.group("action"), request)

        match = REVISION_PATH.match(path)
        if match:
            return self._revision_action(request, match.group("rev"), match.group("rest") or "")

        return self._json(404, {"message": f"No route for {path}"})

    def _branch_action(self, action: str, request: httpx.Request) -> httpx.Response:
        if action == "draft-revision":
            return self._json(200, {"id": self.draft})
        if action == "head-revision":
            return self._json(200, {"id": self.head})
        if action == "create-revision":
            body = json.loads(request.content or b"{}")
            self.head = self.draft
            self.draft = f"d{next(self._ids)}"
            self.snapshots[self.draft] = json.loads(json.dumps(self.snapshots[self.head]))
            return self._json(201, {"id": self.head, "comment": body.get("comment")})
        self.snapshots[self.draft] = json.loads(json.dumps(self.snapshots[self.head]))
        return self._json(200)

    def _revision_action(self, request: httpx.Request, rev: str, rest: str) -> httpx.Response:
        if rev not in self.snapshots:
            return self._json(404, {"message": "A revision with this id does not exist."})
        tables = self.snapshots[rev]
        method = request.method

        if rest == "" and method == "GET":
            return self._json(200, {"id": rev, "isDraft": rev == self.draft})

        if rest == "/tables" and method == "GET":
            edges = [{"node": {"id": t}} for t in tables]
            return self._json(200, {"edges": edges, "totalCount": len(edges)})

        if method != "GET" and rev != self.draft:
            return self._json(400, {"message": "Revision is not draft"})

        if rest == "/tables" and method == "POST":
            body = json.loads(request.content)
            tables[body["tableId"]] = {}
            return self._json(201, {"table": {"id": body["tableId"]}})

        match = re.match(r"^/tables/(?P<table>[^/]+)/create-row$", rest)
        if match and method == "POST":
            body = json.loads(request.content)
            tables[match.group("table")][body["rowId"]] = body["data"]
            return self._json(201, {"row": {"id": body["rowId"], "data": body["data"]}})

        match = re.match(r"^/tables/(?P<table>[^/]+)/rows/(?P<row>[^/]+)$", rest)
        if match and method == "GET":
            row = tables.get(match.group("table"), {}).get(match.group("row"))
            if row is None:
                return self._json(404, {"message": "Row not found"})
            return self._json(200, {"id": match.group("row"), "data": row})

        return self._json(404, {"message": f"No route for {rest}"})


@pytest.fixture
def fake_server() -> FakeRevisium:
    return FakeRevisium()


@pytest.fixture
def client(fake_server: FakeRevisium) -> RevisiumClient:
    http_client = httpx.AsyncClient(
        transport=httpx.MockTransport(fake_server.handler),
        base_url=f"{BASE_URL}/api",
    )
    return RevisiumClient(settings=ClientSettings(base_url=BASE_URL), http_client=http_client)
