"""Unit tests for SupabaseShareLinkRepository.

Uses httpx.MockTransport to verify PostgREST queries without a real Supabase.
"""

from __future__ import annotations

import json
from datetime import date, datetime, timedelta, timezone
from typing import Any

import httpx
import pytest

from discloser.db.share_repo import (
    SupabaseShareLinkRepository,
    link_from_row,
    link_to_row,
)
from discloser.db.supabase_client import SupabaseClient
from discloser.sharing.collaborators import (
    InMemoryHealthRecordSource,
    InMemoryProfileLookup,
)
from discloser.sharing.errors import (
    ShareLinkNotFound,
    SharePersistenceError,
    TokenCollision,
)
from discloser.sharing.model import (
    DisclosedEntry,
    LinkKind,
    ResultLink,
    ResultSnapshot,
    StatusLink,
    StatusSnapshot,
    TestStatus,
)
from discloser.sharing.repository import ShareLinkRepository
from discloser.sharing.service import ShareLinkService

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)
LINK_ID = "6f1c2e0a-3b4d-4c5e-9f60-718293a4b5c6"


def _make_repo(handler) -> SupabaseShareLinkRepository:
    transport = httpx.MockTransport(handler)
    client = httpx.AsyncClient(transport=transport)
    sc = SupabaseClient(
        supabase_url="https://test.supabase.co",
        service_role_key="svc-key",
        http_client=client,
    )
    return SupabaseShareLinkRepository(sc)


def _status_link(**overrides: Any) -> StatusLink:
    fields: dict[str, Any] = dict(
        id="lnk_1",
        token="tok_abcdefghijkl",
        owner_id="user-1",
        expires_at=NOW + timedelta(hours=24),
        max_views=3,
        label="Alex",
        created_at=NOW,
        snapshot=StatusSnapshot(entries=(
            DisclosedEntry(
                name="HIV",
                status=TestStatus.NEGATIVE,
                result="Negative",
                test_date=date(2025, 5, 1),
            ),
        )),
    )
    fields.update(overrides)
    return StatusLink(**fields)


def _result_link() -> ResultLink:
    return ResultLink(
        id="lnk_r",
        token="tok_result_12345",
        owner_id="user-1",
        expires_at=NOW + timedelta(hours=1),
        created_at=NOW,
        snapshot=ResultSnapshot(
            test_result_id="tr_1",
            test_date=date(2025, 5, 1),
            test_type="Full panel",
            status=TestStatus.NEGATIVE,
        ),
    )


def test_satisfies_protocol():
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[])

    assert isinstance(_make_repo(handler), ShareLinkRepository)


# ── Row mapping ──────────────────────────────────────────────────────


def test_row_mapping_preserves_link():
    link = _status_link()
    row = json.loads(json.dumps(link_to_row(link)))

    assert row["user_id"] == "user-1"
    assert "test_result_id" not in row
    assert link_from_row(LinkKind.STATUS, row) == link


def test_result_row_carries_test_result_id():
    row = link_to_row(_result_link())
    assert row["test_result_id"] == "tr_1"
    assert isinstance(link_from_row(LinkKind.RESULT, row), ResultLink)


# ── Insert ───────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_insert_routes_to_table_by_kind():
    seen: list[str] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        return httpx.Response(201, json=[json.loads(request.content)])

    repo = _make_repo(handler)
    await repo.insert(_status_link())
    await repo.insert(_result_link())

    assert seen == [
        "/rest/v1/status_share_links",
        "/rest/v1/share_links",
    ]


@pytest.mark.asyncio
async def test_insert_sends_representation_header_and_snapshot():
    seen: dict[str, Any] = {}

    async def handler(request: httpx.Request) -> httpx.Response:
        seen["prefer"] = request.headers.get("prefer")
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json=[seen["body"]])

    repo = _make_repo(handler)
    stored = await repo.insert(_status_link())

    assert seen["prefer"] == "return=representation"
    assert seen["body"]["snapshot"]["entries"][0]["name"] == "HIV"
    assert stored.token == "tok_abcdefghijkl"


@pytest.mark.asyncio
async def test_insert_unique_token_violation_is_collision():
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(409, json={
            "code": "23505",
            "message": "duplicate share token",
            "details": "Key (token) already exists.",
        })

    repo = _make_repo(handler)
    with pytest.raises(TokenCollision):
        await repo.insert(_status_link())


@pytest.mark.asyncio
async def test_insert_server_error_is_persistence_error():
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"message": "boom"})

    repo = _make_repo(handler)
    with pytest.raises(SharePersistenceError):
        await repo.insert(_status_link())


# ── Reads ────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_get_by_token_checks_both_tables():
    seen: list[tuple[str, str]] = []
    status_row = link_to_row(_status_link())

    async def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.url.path, request.url.params.get("token")))
        if request.url.path.endswith("/status_share_links"):
            return httpx.Response(200, json=[status_row])
        return httpx.Response(200, json=[])

    repo = _make_repo(handler)
    link = await repo.get_by_token("tok_abcdefghijkl")

    assert isinstance(link, StatusLink)
    assert seen == [
        ("/rest/v1/share_links", "eq.tok_abcdefghijkl"),
        ("/rest/v1/status_share_links", "eq.tok_abcdefghijkl"),
    ]


@pytest.mark.asyncio
async def test_get_missing_returns_none():
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[])

    repo = _make_repo(handler)
    assert await repo.get(LINK_ID) is None


@pytest.mark.asyncio
async def test_list_for_owner_merges_newest_first():
    older = link_to_row(_result_link())
    newer = link_to_row(_status_link(created_at=NOW + timedelta(minutes=5)))

    async def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params.get("user_id") == "eq.user-1"
        assert request.url.params.get("order") == "created_at.desc"
        if request.url.path.endswith("/status_share_links"):
            return httpx.Response(200, json=[newer])
        return httpx.Response(200, json=[older])

    repo = _make_repo(handler)
    links = await repo.list_for_owner("user-1")

    assert [l.id for l in links] == ["lnk_1", "lnk_r"]


@pytest.mark.asyncio
async def test_read_failure_is_persistence_error():
    async def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable")

    repo = _make_repo(handler)
    with pytest.raises(SharePersistenceError):
        await repo.get_by_token("tok_abcdefghijkl")


# ── Delete ───────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_delete_reports_whether_a_row_was_removed():
    async def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "DELETE"
        assert request.url.params.get("id") == f"eq.{LINK_ID}"
        if request.url.path.endswith("/share_links"):
            return httpx.Response(200, json=[{"id": LINK_ID}])
        return httpx.Response(200, json=[])

    repo = _make_repo(handler)
    assert await repo.delete(LINK_ID) is True


@pytest.mark.asyncio
async def test_delete_missing_returns_false():
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[])

    repo = _make_repo(handler)
    assert await repo.delete(LINK_ID) is False


@pytest.mark.asyncio
async def test_non_uuid_link_id_is_not_found():
    calls: list[str] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        return httpx.Response(400, json={
            "code": "22P02",
            "message": 'invalid input syntax for type uuid: "abc"',
        })

    repo = _make_repo(handler)
    service = ShareLinkService(
        repo, InMemoryProfileLookup(), InMemoryHealthRecordSource(),
    )

    assert await repo.get("abc") is None
    assert await repo.delete("abc") is False
    with pytest.raises(ShareLinkNotFound):
        await service.delete_link("user-1", "abc")
    assert calls == []


# ── record_view ──────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_record_view_calls_rpc():
    seen: dict[str, Any] = {}
    row = link_to_row(_status_link(view_count=1))

    async def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=[{"kind": "status", "link": row}])

    repo = _make_repo(handler)
    link = await repo.record_view("tok_abcdefghijkl", NOW)

    assert seen["path"] == "/rest/v1/rpc/record_share_view"
    assert seen["body"] == {
        "share_token": "tok_abcdefghijkl",
        "at": NOW.isoformat(),
    }
    assert isinstance(link, StatusLink)
    assert link.view_count == 1


@pytest.mark.asyncio
async def test_record_view_no_rows_means_not_recorded():
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[])

    repo = _make_repo(handler)
    assert await repo.record_view("tok_abcdefghijkl", NOW) is None


@pytest.mark.asyncio
async def test_record_view_failure_is_persistence_error():
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"message": "unavailable"})

    repo = _make_repo(handler)
    with pytest.raises(SharePersistenceError):
        await repo.record_view("tok_abcdefghijkl", NOW)
