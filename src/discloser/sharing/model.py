"""Share-link domain model.

A share link is a token-bearing, time- and view-limited grant of read access
to a frozen disclosure snapshot. Two kinds exist:

  - ``ResultLink`` wraps a single test result (served at ``/share/{token}``).
  - ``StatusLink`` wraps an aggregated multi-condition status
    (served at ``/status/{token}``).

Both share the lifecycle fields on ``ShareLink``; only the snapshot shape
differs. The link status (active / expired / exhausted) is never stored,
see ``discloser.sharing.status``.

Snapshots are immutable copies captured at creation time. They are never a
live reference to the owner's records, so a link can't later reveal more
than the owner chose to disclose.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, ClassVar

# ── Constants ─────────────────────────────────────────────────────────

TOKEN_BYTES = 32  # 256-bit tokens.
LABEL_MAX_LENGTH = 50
NOTE_MAX_LENGTH = 500
MAX_DURATION_HOURS = 720  # 30 days.


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_share_token() -> str:
    """Generate a cryptographically random URL-safe share token."""
    return secrets.token_urlsafe(TOKEN_BYTES)


# ── Enumerations ──────────────────────────────────────────────────────


class LinkKind(str, Enum):
    RESULT = 'result'
    STATUS = 'status'


class LinkStatus(str, Enum):
    ACTIVE = 'active'
    TIME_EXPIRED = 'time_expired'
    VIEWS_EXHAUSTED = 'views_exhausted'


class DisclosureMode(str, Enum):
    """How (or whether) the owner's identity is revealed to recipients."""

    ANONYMOUS = 'anonymous'
    ALIAS = 'alias'
    FIRST_NAME = 'first_name'


class TestStatus(str, Enum):
    __test__ = False  # Not a pytest test class.

    NEGATIVE = 'negative'
    POSITIVE = 'positive'
    PENDING = 'pending'
    INCONCLUSIVE = 'inconclusive'


# ── Snapshot payloads ─────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class DisclosedEntry:
    """One condition/test line as embedded into a snapshot.

    Carries every field a recipient page needs to render the line without
    further lookups.
    """

    name: str
    status: TestStatus
    result: str
    test_date: date
    is_verified: bool = False
    is_known_condition: bool = False
    has_test_data: bool = True
    management_methods: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            'name': self.name,
            'status': self.status.value,
            'result': self.result,
            'test_date': self.test_date.isoformat(),
            'is_verified': self.is_verified,
            'is_known_condition': self.is_known_condition,
            'has_test_data': self.has_test_data,
            'management_methods': list(self.management_methods),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DisclosedEntry:
        return cls(
            name=data['name'],
            status=TestStatus(data['status']),
            result=data.get('result', ''),
            test_date=date.fromisoformat(data['test_date']),
            is_verified=bool(data.get('is_verified', False)),
            is_known_condition=bool(data.get('is_known_condition', False)),
            has_test_data=bool(data.get('has_test_data', True)),
            management_methods=tuple(data.get('management_methods') or ()),
        )


@dataclass(frozen=True, slots=True)
class ResultSnapshot:
    """Full breakdown of one test result, frozen at link creation."""

    test_result_id: str
    test_date: date
    test_type: str
    status: TestStatus
    is_verified: bool = False
    verification_level: str | None = None
    entries: tuple[DisclosedEntry, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            'test_result_id': self.test_result_id,
            'test_date': self.test_date.isoformat(),
            'test_type': self.test_type,
            'status': self.status.value,
            'is_verified': self.is_verified,
            'verification_level': self.verification_level,
            'entries': [e.to_dict() for e in self.entries],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ResultSnapshot:
        return cls(
            test_result_id=data['test_result_id'],
            test_date=date.fromisoformat(data['test_date']),
            test_type=data.get('test_type', ''),
            status=TestStatus(data['status']),
            is_verified=bool(data.get('is_verified', False)),
            verification_level=data.get('verification_level'),
            entries=tuple(
                DisclosedEntry.from_dict(e) for e in data.get('entries') or ()
            ),
        )


@dataclass(frozen=True, slots=True)
class StatusSnapshot:
    """Aggregated multi-condition status, frozen at link creation."""

    entries: tuple[DisclosedEntry, ...] = ()
    excluded_known_conditions: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            'entries': [e.to_dict() for e in self.entries],
            'excluded_known_conditions': self.excluded_known_conditions,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StatusSnapshot:
        return cls(
            entries=tuple(
                DisclosedEntry.from_dict(e) for e in data.get('entries') or ()
            ),
            excluded_known_conditions=bool(
                data.get('excluded_known_conditions', False),
            ),
        )


# ── Links ─────────────────────────────────────────────────────────────


@dataclass(kw_only=True)
class ShareLink:
    """Fields common to both link kinds.

    Attributes:
        id: Opaque system-generated identifier.
        token: Unguessable credential presented by recipients; unique.
        owner_id: Disclosing user. Never changes.
        expires_at: Absolute instant after which the link is inactive.
        max_views: View cap, or None for unlimited.
        view_count: Successful resolutions so far. Only the resolver
            increments it.
        show_name: Whether ``display_name`` is revealed to recipients.
        display_name: Identity string resolved from the disclosure mode.
        label: Owner-facing label. Never shown to recipients.
        note: Owner-facing note. Never shown to recipients.
        created_at: Creation timestamp.
    """

    kind: ClassVar[LinkKind]

    id: str
    token: str
    owner_id: str
    expires_at: datetime
    max_views: int | None = None
    view_count: int = 0
    show_name: bool = False
    display_name: str | None = None
    label: str | None = None
    note: str | None = None
    created_at: datetime = field(default_factory=utcnow)


@dataclass(kw_only=True)
class ResultLink(ShareLink):
    kind: ClassVar[LinkKind] = LinkKind.RESULT

    snapshot: ResultSnapshot

    @property
    def test_result_id(self) -> str:
        return self.snapshot.test_result_id


@dataclass(kw_only=True)
class StatusLink(ShareLink):
    kind: ClassVar[LinkKind] = LinkKind.STATUS

    snapshot: StatusSnapshot


Snapshot = ResultSnapshot | StatusSnapshot
