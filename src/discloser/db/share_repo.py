"""Supabase-backed ShareLinkRepository implementation.

Persists result links in ``share_links`` and status links in
``status_share_links`` via PostgREST. The snapshot is stored as jsonb.

The view-count bump goes through the ``record_share_view`` Postgres
function (see ``migrations/001_share_links.sql``), which performs a single
``UPDATE ... WHERE token = $1 AND expires_at > $2 AND (max_views IS NULL OR
view_count < max_views) RETURNING``. Concurrent recipients therefore
cannot push ``view_count`` past ``max_views``.

Error translation:
  - unique violation on ``token``   → TokenCollision
  - any other Supabase/HTTP failure → SharePersistenceError
"""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator

import httpx

from discloser.observability.logging import get_logger
from discloser.sharing.errors import SharePersistenceError, TokenCollision
from discloser.sharing.model import (
    LinkKind,
    ResultLink,
    ResultSnapshot,
    ShareLink,
    StatusLink,
    StatusSnapshot,
)

from .errors import SupabaseConflictError, SupabaseError
from .supabase_client import SupabaseClient

logger = get_logger(__name__)

_TABLES = {
    LinkKind.RESULT: "share_links",
    LinkKind.STATUS: "status_share_links",
}

RECORD_VIEW_FUNCTION = "record_share_view"


# ── Row mapping ──────────────────────────────────────────────────────


def _parse_ts(value: str | datetime) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def link_to_row(link: ShareLink) -> dict[str, Any]:
    row: dict[str, Any] = {
        "id": link.id,
        "user_id": link.owner_id,
        "token": link.token,
        "expires_at": link.expires_at.isoformat(),
        "max_views": link.max_views,
        "view_count": link.view_count,
        "show_name": link.show_name,
        "display_name": link.display_name,
        "label": link.label,
        "note": link.note,
        "created_at": link.created_at.isoformat(),
        "snapshot": link.snapshot.to_dict(),
    }
    if isinstance(link, ResultLink):
        row["test_result_id"] = link.test_result_id
    return row


def link_from_row(kind: LinkKind, row: dict[str, Any]) -> ShareLink:
    common = dict(
        id=str(row["id"]),
        token=row["token"],
        owner_id=str(row["user_id"]),
        expires_at=_parse_ts(row["expires_at"]),
        max_views=row.get("max_views"),
        view_count=int(row.get("view_count") or 0),
        show_name=bool(row.get("show_name")),
        display_name=row.get("display_name"),
        label=row.get("label"),
        note=row.get("note"),
        created_at=_parse_ts(row["created_at"]),
    )
    if kind is LinkKind.RESULT:
        return ResultLink(snapshot=ResultSnapshot.from_dict(row["snapshot"]), **common)
    return StatusLink(snapshot=StatusSnapshot.from_dict(row["snapshot"]), **common)


def _is_uuid(value: str) -> bool:
    try:
        uuid.UUID(value)
    except (ValueError, TypeError, AttributeError):
        return False
    return True


@contextmanager
def _storage_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except (SupabaseError, httpx.HTTPError) as exc:
        logger.error("share_storage_failed", operation=operation, error=str(exc))
        raise SharePersistenceError(f"{operation} failed") from exc


# ── Repository ───────────────────────────────────────────────────────


class SupabaseShareLinkRepository:
    """ShareLinkRepository backed by share_links / status_share_links."""

    def __init__(self, client: SupabaseClient) -> None:
        self._client = client

    async def insert(self, link: ShareLink) -> ShareLink:
        table = _TABLES[link.kind]
        try:
            rows = await self._client.insert(table, link_to_row(link))
        except SupabaseConflictError as exc:
            if exc.is_unique_violation and "token" in f"{exc.message} {exc.details or ''}":
                raise TokenCollision("token already in use") from exc
            raise SharePersistenceError("insert failed") from exc
        except (SupabaseError, httpx.HTTPError) as exc:
            logger.error("share_storage_failed", operation="insert", error=str(exc))
            raise SharePersistenceError("insert failed") from exc
        if not rows:
            raise SharePersistenceError("insert returned no row")
        return link_from_row(link.kind, rows[0])

    async def _find_one(self, column: str, value: str) -> ShareLink | None:
        with _storage_errors(f"lookup by {column}"):
            for kind, table in _TABLES.items():
                rows = await self._client.select(table, {column: value}, limit=1)
                if rows:
                    return link_from_row(kind, rows[0])
        return None

    async def get(self, link_id: str) -> ShareLink | None:
        # id columns are uuid; PostgREST rejects anything else with 22P02.
        if not _is_uuid(link_id):
            return None
        return await self._find_one("id", link_id)

    async def get_by_token(self, token: str) -> ShareLink | None:
        return await self._find_one("token", token)

    async def list_for_owner(self, owner_id: str) -> list[ShareLink]:
        links: list[ShareLink] = []
        with _storage_errors("list"):
            for kind, table in _TABLES.items():
                rows = await self._client.select(
                    table, {"user_id": owner_id}, order="created_at.desc",
                )
                links.extend(link_from_row(kind, row) for row in rows)
        return sorted(links, key=lambda l: l.created_at, reverse=True)

    async def delete(self, link_id: str) -> bool:
        if not _is_uuid(link_id):
            return False
        deleted = False
        with _storage_errors("delete"):
            for table in _TABLES.values():
                rows = await self._client.delete(table, {"id": link_id})
                deleted = deleted or bool(rows)
        return deleted

    async def record_view(self, token: str, now: datetime) -> ShareLink | None:
        with _storage_errors("record_view"):
            rows = await self._client.rpc(
                RECORD_VIEW_FUNCTION,
                {"share_token": token, "at": now.isoformat()},
            )
        if not rows:
            return None
        row = rows[0]
        return link_from_row(LinkKind(row["kind"]), row["link"])
