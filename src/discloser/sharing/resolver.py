"""Recipient read path: resolve a share token into its frozen snapshot.

Resolution is intentionally not idempotent. Each successful call consumes
one view through the repository's atomic ``record_view``. When that
conditional increment does not apply, the link is re-read only to explain
why:

  - no such token (never existed or deleted) → ``not_found``
  - past ``expires_at``                       → ``expired``
  - otherwise                                 → ``over_limit``

Unknown and deleted tokens are indistinguishable to the caller. Failed
resolutions never touch ``view_count``. The owner's live records are never
read here; only the snapshot captured at creation is returned.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from discloser.observability.logging import get_logger

from .audit import ShareAuditEmitter, emit_share_accessed, emit_share_denied, redact_token
from .model import LinkKind, LinkStatus, ShareLink, Snapshot, utcnow
from .repository import ShareLinkRepository
from .status import classify

logger = get_logger(__name__)


class ResolveFailure(str, Enum):
    NOT_FOUND = 'not_found'
    EXPIRED = 'expired'
    OVER_LIMIT = 'over_limit'


_FAILURE_MESSAGES = {
    ResolveFailure.NOT_FOUND: 'Share link not found',
    ResolveFailure.EXPIRED: 'This link has expired',
    ResolveFailure.OVER_LIMIT: 'Maximum views reached',
}


@dataclass(frozen=True, slots=True)
class ResolveOutcome:
    """Result of a resolution attempt.

    On success carries the snapshot, the display name (only when the owner
    chose to show one) and the metadata a recipient page displays. Label
    and note are owner-only and never included.
    """

    valid: bool
    reason: ResolveFailure | None = None
    kind: LinkKind | None = None
    snapshot: Snapshot | None = None
    display_name: str | None = None
    expires_at: datetime | None = None
    view_count: int | None = None
    max_views: int | None = None
    created_at: datetime | None = None

    @property
    def message(self) -> str:
        """Recipient-facing text for a failed resolution."""
        if self.reason is None:
            return ''
        return _FAILURE_MESSAGES[self.reason]

    @classmethod
    def failure(cls, reason: ResolveFailure) -> ResolveOutcome:
        return cls(valid=False, reason=reason)

    @classmethod
    def success(cls, link: ShareLink) -> ResolveOutcome:
        return cls(
            valid=True,
            kind=link.kind,
            snapshot=link.snapshot,
            display_name=link.display_name if link.show_name else None,
            expires_at=link.expires_at,
            view_count=link.view_count,
            max_views=link.max_views,
            created_at=link.created_at,
        )


class ShareLinkResolver:
    """Anonymous, token-only access to share links."""

    def __init__(
        self,
        repo: ShareLinkRepository,
        *,
        audit: ShareAuditEmitter | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._repo = repo
        self._audit = audit
        self._clock = clock

    async def resolve(
        self,
        token: str,
        *,
        expected_kind: LinkKind | None = None,
    ) -> ResolveOutcome:
        """Resolve ``token``, consuming one view on success.

        Args:
            token: Raw token from the share URL.
            expected_kind: When given, a link of the other kind is reported
                as not found and no view is consumed.

        Raises:
            SharePersistenceError: Storage failed; nothing was consumed
                unless the increment itself committed.
        """
        token = (token or '').strip()
        if not token:
            return await self._deny(token, ResolveFailure.NOT_FOUND)

        if expected_kind is not None:
            peek = await self._repo.get_by_token(token)
            if peek is None or peek.kind is not expected_kind:
                return await self._deny(token, ResolveFailure.NOT_FOUND)

        now = self._clock()
        link = await self._repo.record_view(token, now)
        if link is not None:
            logger.info(
                'share_link_resolved',
                link_id=link.id,
                kind=link.kind.value,
                token_prefix=redact_token(token),
                view_count=link.view_count,
                max_views=link.max_views,
            )
            if self._audit is not None:
                await emit_share_accessed(
                    self._audit,
                    link_id=link.id,
                    link_kind=link.kind.value,
                    owner_id=link.owner_id,
                    token=token,
                    view_count=link.view_count,
                )
            return ResolveOutcome.success(link)

        current = await self._repo.get_by_token(token)
        if current is None:
            return await self._deny(token, ResolveFailure.NOT_FOUND)
        if classify(current, now) is LinkStatus.TIME_EXPIRED:
            return await self._deny(token, ResolveFailure.EXPIRED, current)
        return await self._deny(token, ResolveFailure.OVER_LIMIT, current)

    async def _deny(
        self,
        token: str,
        reason: ResolveFailure,
        link: ShareLink | None = None,
    ) -> ResolveOutcome:
        logger.info(
            'share_link_denied',
            reason=reason.value,
            token_prefix=redact_token(token),
            link_id=link.id if link else None,
        )
        if self._audit is not None:
            await emit_share_denied(
                self._audit,
                token=token,
                detail=reason.value,
                link_id=link.id if link else None,
                link_kind=link.kind.value if link else '',
                owner_id=link.owner_id if link else '',
            )
        return ResolveOutcome.failure(reason)
