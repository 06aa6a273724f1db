"""Share-link lifecycle: create, list and delete links on behalf of an owner.

Every call takes the owner identifier explicitly; there is no ambient
session. Only this service creates or deletes links. Only the resolver
(``discloser.sharing.resolver``) increments view counts.

Creation:
  - ``duration_hours`` must be positive; ``expires_at = now + duration``.
  - ``max_views`` is a positive integer or None (unlimited).
  - The display name is resolved from the owner's profile according to the
    disclosure mode; anonymous links carry none.
  - A 256-bit random token is generated; on the (practically impossible)
    event of a collision a new token is drawn, up to ``TOKEN_ATTEMPTS``.
  - The disclosure snapshot is built once and embedded in the link.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from discloser.observability.logging import get_logger

from .audit import (
    ShareAuditEmitter,
    emit_share_created,
    emit_share_deleted,
    redact_token,
)
from .collaborators import HealthRecordSource, ProfileLookup
from .conditions import aggregate_conditions
from .errors import (
    ShareLinkForbidden,
    ShareLinkNotFound,
    ShareLinkValidationError,
    SharePersistenceError,
    TokenCollision,
)
from .model import (
    LABEL_MAX_LENGTH,
    MAX_DURATION_HOURS,
    NOTE_MAX_LENGTH,
    DisclosureMode,
    LinkKind,
    ResultLink,
    ResultSnapshot,
    ShareLink,
    Snapshot,
    StatusLink,
    StatusSnapshot,
    generate_share_token,
    utcnow,
)
from .repository import ShareLinkRepository
from .snapshot import build_result_snapshot, build_status_snapshot
from .status import is_expired

logger = get_logger(__name__)

# ── Constants ─────────────────────────────────────────────────────────

TOKEN_ATTEMPTS = 3
DEFAULT_SHARE_BASE_URL = 'https://discloser.app'

_URL_SEGMENTS = {
    LinkKind.RESULT: 'share',
    LinkKind.STATUS: 'status',
}


def build_share_url(base_url: str, kind: LinkKind, token: str) -> str:
    """Recipient URL: ``{base}/share/{token}`` or ``{base}/status/{token}``."""
    return f'{base_url.strip().rstrip("/")}/{_URL_SEGMENTS[kind]}/{token}'


# ── Options ───────────────────────────────────────────────────────────


class LinkFilter(str, Enum):
    ALL = 'all'
    ACTIVE = 'active'
    INACTIVE = 'inactive'


@dataclass(frozen=True, slots=True)
class LinkOptions:
    """Owner-selected link configuration."""

    duration_hours: float
    max_views: int | None = None
    disclosure_mode: DisclosureMode = DisclosureMode.ANONYMOUS
    label: str | None = None
    note: str | None = None


def validate_link_options(options: LinkOptions) -> None:
    """Raise ShareLinkValidationError on malformed options."""
    hours = options.duration_hours
    if isinstance(hours, bool) or not isinstance(hours, (int, float)) or hours <= 0:
        raise ShareLinkValidationError('duration_hours', 'must be a positive number')
    if hours > MAX_DURATION_HOURS:
        raise ShareLinkValidationError(
            'duration_hours', f'must be at most {MAX_DURATION_HOURS} hours',
        )

    max_views = options.max_views
    if max_views is not None and (
        isinstance(max_views, bool) or not isinstance(max_views, int) or max_views < 1
    ):
        raise ShareLinkValidationError(
            'max_views', 'must be a positive integer or None for unlimited',
        )

    if not isinstance(options.disclosure_mode, DisclosureMode):
        raise ShareLinkValidationError(
            'disclosure_mode',
            f'must be one of {[m.value for m in DisclosureMode]}',
        )

    if options.label is not None and len(options.label) > LABEL_MAX_LENGTH:
        raise ShareLinkValidationError(
            'label', f'must be at most {LABEL_MAX_LENGTH} characters',
        )
    if options.note is not None and len(options.note) > NOTE_MAX_LENGTH:
        raise ShareLinkValidationError(
            'note', f'must be at most {NOTE_MAX_LENGTH} characters',
        )


# ── Service ───────────────────────────────────────────────────────────


class ShareLinkService:
    """Owner-side share-link operations."""

    def __init__(
        self,
        repo: ShareLinkRepository,
        profiles: ProfileLookup,
        records: HealthRecordSource,
        *,
        audit: ShareAuditEmitter | None = None,
        clock: Callable[[], datetime] = utcnow,
        share_base_url: str = DEFAULT_SHARE_BASE_URL,
        token_factory: Callable[[], str] = generate_share_token,
    ) -> None:
        self._repo = repo
        self._profiles = profiles
        self._records = records
        self._audit = audit
        self._clock = clock
        self._share_base_url = share_base_url
        self._token_factory = token_factory

    # ── Creation ──────────────────────────────────────────────────

    async def create_link(
        self,
        owner_id: str,
        options: LinkOptions,
        snapshot: Snapshot,
    ) -> ShareLink:
        """Create a link embedding ``snapshot``.

        The link kind follows the snapshot type. Empty snapshots are
        accepted; refusing to share nothing is the caller's decision.

        Raises:
            ShareLinkValidationError: Malformed options or missing identity.
            SharePersistenceError: The link could not be stored.
        """
        if not owner_id:
            raise ShareLinkValidationError('owner_id', 'is required')
        validate_link_options(options)

        if isinstance(snapshot, ResultSnapshot):
            link_cls: type[ShareLink] = ResultLink
        elif isinstance(snapshot, StatusSnapshot):
            link_cls = StatusLink
        else:
            raise ShareLinkValidationError(
                'snapshot', f'unsupported snapshot type {type(snapshot).__name__}',
            )

        show_name, display_name = await self._resolve_display_name(
            owner_id, options.disclosure_mode,
        )

        now = self._clock()
        expires_at = now + timedelta(hours=options.duration_hours)

        for attempt in range(1, TOKEN_ATTEMPTS + 1):
            link = link_cls(
                id=str(uuid.uuid4()),
                token=self._token_factory(),
                owner_id=owner_id,
                expires_at=expires_at,
                max_views=options.max_views,
                view_count=0,
                show_name=show_name,
                display_name=display_name,
                label=options.label,
                note=options.note,
                created_at=now,
                snapshot=snapshot,
            )
            try:
                stored = await self._repo.insert(link)
            except TokenCollision:
                logger.warning(
                    'share_token_collision',
                    attempt=attempt,
                    token_prefix=redact_token(link.token),
                )
                continue
            break
        else:
            raise SharePersistenceError(
                f'could not allocate a unique token after {TOKEN_ATTEMPTS} attempts',
            )

        logger.info(
            'share_link_created',
            link_id=stored.id,
            kind=stored.kind.value,
            owner_id=owner_id,
            expires_at=stored.expires_at.isoformat(),
            max_views=stored.max_views,
        )
        if self._audit is not None:
            await emit_share_created(
                self._audit,
                link_id=stored.id,
                link_kind=stored.kind.value,
                owner_id=owner_id,
                token=stored.token,
            )
        return stored

    async def create_result_link(
        self,
        owner_id: str,
        test_result_id: str,
        options: LinkOptions,
    ) -> ResultLink:
        """Share one test result as it stands right now.

        Raises:
            ShareLinkNotFound: The owner has no such test result.
        """
        validate_link_options(options)
        test_result = await self._records.get_test_result(owner_id, test_result_id)
        if test_result is None:
            raise ShareLinkNotFound(f'Test result {test_result_id} not found.')
        known = await self._records.list_known_conditions(owner_id)
        snapshot = build_result_snapshot(test_result, known)
        return await self.create_link(owner_id, options, snapshot)

    async def create_status_link(
        self,
        owner_id: str,
        options: LinkOptions,
        *,
        exclude_known_conditions: bool = False,
    ) -> StatusLink:
        """Share the owner's aggregated status as it stands right now."""
        validate_link_options(options)
        results = await self._records.list_test_results(owner_id)
        known = await self._records.list_known_conditions(owner_id)
        snapshot = build_status_snapshot(
            aggregate_conditions(results, known),
            exclude_known_conditions=exclude_known_conditions,
        )
        return await self.create_link(owner_id, options, snapshot)

    async def _resolve_display_name(
        self, owner_id: str, mode: DisclosureMode,
    ) -> tuple[bool, str | None]:
        if mode is DisclosureMode.ANONYMOUS:
            return False, None

        profile = await self._profiles.get_profile(owner_id)
        if mode is DisclosureMode.ALIAS:
            value = profile.alias if profile else None
        else:
            value = profile.first_name if profile else None

        if not value or not value.strip():
            raise ShareLinkValidationError(
                'disclosure_mode',
                f'profile has no {mode.value.replace("_", " ")} to disclose',
            )
        return True, value.strip()

    # ── Listing / deletion ────────────────────────────────────────

    async def list_links(
        self,
        owner_id: str,
        link_filter: LinkFilter = LinkFilter.ALL,
    ) -> list[ShareLink]:
        """Owner's links, newest first, optionally only active or inactive."""
        links = await self._repo.list_for_owner(owner_id)
        if link_filter is LinkFilter.ALL:
            return links
        now = self._clock()
        want_inactive = link_filter is LinkFilter.INACTIVE
        return [l for l in links if is_expired(l, now) == want_inactive]

    async def delete_link(self, owner_id: str, link_id: str) -> None:
        """Permanently delete a link; its token stops resolving immediately.

        Raises:
            ShareLinkNotFound: No link with this id.
            ShareLinkForbidden: The link belongs to another owner.
        """
        link = await self._repo.get(link_id)
        if link is None:
            raise ShareLinkNotFound()
        if link.owner_id != owner_id:
            logger.warning(
                'share_link_delete_forbidden', link_id=link_id, owner_id=owner_id,
            )
            raise ShareLinkForbidden(link_id, owner_id)

        if not await self._repo.delete(link_id):
            raise ShareLinkNotFound()

        logger.info('share_link_deleted', link_id=link_id, owner_id=owner_id)
        if self._audit is not None:
            await emit_share_deleted(
                self._audit,
                link_id=link_id,
                link_kind=link.kind.value,
                owner_id=owner_id,
            )

    def now(self) -> datetime:
        return self._clock()

    def share_url(self, link: ShareLink) -> str:
        return build_share_url(self._share_base_url, link.kind, link.token)
