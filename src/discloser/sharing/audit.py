"""Share-link audit events and token redaction.

Records link creation, deletion, successful recipient access and denied
access. Plaintext tokens must never appear in event data; only the first
8 characters are kept for correlation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Protocol

from discloser.observability.logging import get_logger, redact_token

# ── Constants ─────────────────────────────────────────────────────────

SHARE_CREATED = 'share.created'
SHARE_ACCESSED = 'share.accessed'
SHARE_DENIED = 'share.denied'
SHARE_DELETED = 'share.deleted'


# ── Audit event model ───────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class ShareAuditEvent:
    """Structured audit event for share operations.

    Attributes:
        event_type: share.created, share.accessed, share.denied, share.deleted.
        link_id: Link identifier, when known.
        link_kind: ``result`` or ``status``, when known.
        owner_id: Owner of the link, when known.
        token_prefix: First 8 chars of the token (correlation only).
        view_count: View count after the operation, when relevant.
        detail: Additional context (e.g. denial reason).
        timestamp: When the event occurred.
    """

    event_type: str
    link_id: str | None = None
    link_kind: str = ''
    owner_id: str = ''
    token_prefix: str = '<redacted>'
    view_count: int | None = None
    detail: str = ''
    timestamp: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self) -> dict:
        """Serialize to a dict safe for JSON logging."""
        return {
            'event_type': self.event_type,
            'link_id': self.link_id,
            'link_kind': self.link_kind,
            'owner_id': self.owner_id,
            'token_prefix': self.token_prefix,
            'view_count': self.view_count,
            'detail': self.detail,
            'timestamp': self.timestamp.isoformat(),
        }


# ── Emitters ─────────────────────────────────────────────────────────


class ShareAuditEmitter(Protocol):
    """Abstract audit event sink."""

    async def emit(self, event: ShareAuditEvent) -> None: ...


class InMemoryShareAuditEmitter:
    """Test audit emitter that stores events in memory."""

    def __init__(self) -> None:
        self.events: list[ShareAuditEvent] = []

    async def emit(self, event: ShareAuditEvent) -> None:
        self.events.append(event)

    def find(
        self,
        event_type: str | None = None,
        link_id: str | None = None,
    ) -> list[ShareAuditEvent]:
        """Filter events by type and/or link."""
        result = self.events
        if event_type:
            result = [e for e in result if e.event_type == event_type]
        if link_id:
            result = [e for e in result if e.link_id == link_id]
        return result


class LoggingShareAuditEmitter:
    """Writes audit events to the structured log."""

    def __init__(self, logger_name: str = 'discloser.audit') -> None:
        self._logger = get_logger(logger_name)

    async def emit(self, event: ShareAuditEvent) -> None:
        payload = event.to_dict()
        self._logger.info(payload.pop('event_type'), **payload)


# ── Convenience emitters ─────────────────────────────────────────────


async def emit_share_created(
    emitter: ShareAuditEmitter,
    *,
    link_id: str,
    link_kind: str,
    owner_id: str,
    token: str,
) -> ShareAuditEvent:
    event = ShareAuditEvent(
        event_type=SHARE_CREATED,
        link_id=link_id,
        link_kind=link_kind,
        owner_id=owner_id,
        token_prefix=redact_token(token),
        view_count=0,
    )
    await emitter.emit(event)
    return event


async def emit_share_accessed(
    emitter: ShareAuditEmitter,
    *,
    link_id: str,
    link_kind: str,
    owner_id: str,
    token: str,
    view_count: int,
) -> ShareAuditEvent:
    event = ShareAuditEvent(
        event_type=SHARE_ACCESSED,
        link_id=link_id,
        link_kind=link_kind,
        owner_id=owner_id,
        token_prefix=redact_token(token),
        view_count=view_count,
    )
    await emitter.emit(event)
    return event


async def emit_share_denied(
    emitter: ShareAuditEmitter,
    *,
    token: str,
    detail: str,
    link_id: str | None = None,
    link_kind: str = '',
    owner_id: str = '',
) -> ShareAuditEvent:
    event = ShareAuditEvent(
        event_type=SHARE_DENIED,
        link_id=link_id,
        link_kind=link_kind,
        owner_id=owner_id,
        token_prefix=redact_token(token),
        detail=detail,
    )
    await emitter.emit(event)
    return event


async def emit_share_deleted(
    emitter: ShareAuditEmitter,
    *,
    link_id: str,
    link_kind: str,
    owner_id: str,
) -> ShareAuditEvent:
    event = ShareAuditEvent(
        event_type=SHARE_DELETED,
        link_id=link_id,
        link_kind=link_kind,
        owner_id=owner_id,
    )
    await emitter.emit(event)
    return event
