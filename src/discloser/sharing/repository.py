"""Share-link storage protocol and in-memory implementation.

The only mutation after creation is ``record_view``, which must be a single
atomic conditional increment: bump ``view_count`` only while the link is
still active, and report whether the bump applied. A separate
read-then-write would let two concurrent recipients both pass the check on
a ``max_views = 1`` link.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import datetime
from typing import Protocol, runtime_checkable

from .errors import SharePersistenceError, TokenCollision
from .model import LinkStatus, ShareLink
from .status import classify


@runtime_checkable
class ShareLinkRepository(Protocol):
    """Abstract share link storage.

    Implementations: InMemoryShareLinkRepository (testing, local dev),
    SupabaseShareLinkRepository (production).
    """

    async def insert(self, link: ShareLink) -> ShareLink:
        """Persist a new link.

        Raises:
            TokenCollision: Another link already uses ``link.token``.
            SharePersistenceError: The write failed.
        """
        ...

    async def get(self, link_id: str) -> ShareLink | None: ...

    async def get_by_token(self, token: str) -> ShareLink | None: ...

    async def list_for_owner(self, owner_id: str) -> list[ShareLink]: ...

    async def delete(self, link_id: str) -> bool: ...

    async def record_view(self, token: str, now: datetime) -> ShareLink | None:
        """Atomically increment ``view_count`` if the link is active at ``now``.

        Returns the updated link, or None when no active link matched.
        """
        ...


class InMemoryShareLinkRepository:
    """In-process share link store. Returns copies, like a real database."""

    def __init__(self) -> None:
        self._links: dict[str, ShareLink] = {}
        self._ids_by_token: dict[str, str] = {}
        self._lock = asyncio.Lock()

    async def insert(self, link: ShareLink) -> ShareLink:
        async with self._lock:
            if link.token in self._ids_by_token:
                raise TokenCollision('token already in use')
            if link.id in self._links:
                raise SharePersistenceError(f'duplicate link id {link.id}')
            stored = replace(link)
            self._links[stored.id] = stored
            self._ids_by_token[stored.token] = stored.id
            return replace(stored)

    async def get(self, link_id: str) -> ShareLink | None:
        link = self._links.get(link_id)
        return replace(link) if link is not None else None

    async def get_by_token(self, token: str) -> ShareLink | None:
        link_id = self._ids_by_token.get(token)
        if link_id is None:
            return None
        return replace(self._links[link_id])

    async def list_for_owner(self, owner_id: str) -> list[ShareLink]:
        result = [
            replace(link)
            for link in self._links.values()
            if link.owner_id == owner_id
        ]
        return sorted(result, key=lambda l: l.created_at, reverse=True)

    async def delete(self, link_id: str) -> bool:
        async with self._lock:
            link = self._links.pop(link_id, None)
            if link is None:
                return False
            self._ids_by_token.pop(link.token, None)
            return True

    async def record_view(self, token: str, now: datetime) -> ShareLink | None:
        async with self._lock:
            link_id = self._ids_by_token.get(token)
            if link_id is None:
                return None
            link = self._links[link_id]
            if classify(link, now) is not LinkStatus.ACTIVE:
                return None
            link.view_count += 1
            return replace(link)
