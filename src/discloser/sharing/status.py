"""Share-link expiration classification.

Status is computed from ``(expires_at, view_count, max_views)`` at query
time and never cached on the link.

Rules, in order:
  1. ``now >= expires_at``                      → ``time_expired``
  2. capped and ``view_count >= max_views``     → ``views_exhausted``
  3. otherwise                                  → ``active``

Time expiry wins over view exhaustion when both hold. This matches the
ordering of the atomic ``record_share_view`` database function.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Protocol

from .model import LinkStatus, utcnow


class ClassifiableLink(Protocol):
    expires_at: datetime
    view_count: int
    max_views: int | None


def classify(link: ClassifiableLink, now: datetime | None = None) -> LinkStatus:
    """Return the link's current status."""
    if now is None:
        now = utcnow()
    if now >= link.expires_at:
        return LinkStatus.TIME_EXPIRED
    if link.max_views is not None and link.view_count >= link.max_views:
        return LinkStatus.VIEWS_EXHAUSTED
    return LinkStatus.ACTIVE


def is_expired(link: ClassifiableLink, now: datetime | None = None) -> bool:
    """True if the link is inactive for any reason (time or views)."""
    return classify(link, now) is not LinkStatus.ACTIVE


_LABELS = {
    LinkStatus.TIME_EXPIRED: 'Expired',
    LinkStatus.VIEWS_EXHAUSTED: 'Max views reached',
    LinkStatus.ACTIVE: '',
}


def expiration_label(status: LinkStatus) -> str:
    return _LABELS[status]


def _times(n: int) -> str:
    return 'time' if n == 1 else 'times'


def format_view_count(view_count: int, max_views: int | None) -> str:
    """Format views for display, e.g. ``Viewed 1/1 time`` or ``Viewed 3 times``.

    With a cap, the noun agrees with the cap ("1/1 time", "3/5 times");
    without one it agrees with the count.
    """
    if max_views is not None:
        return f'Viewed {view_count}/{max_views} {_times(max_views)}'
    return f'Viewed {view_count} {_times(view_count)}'


def format_time_remaining(expires_at: datetime, now: datetime | None = None) -> str:
    """Short owner-facing countdown, e.g. ``40m left``, ``5h left`` or ``3d left``.

    Partial hours and days are dropped. Returns ``Expired`` once past.
    """
    if now is None:
        now = utcnow()
    if now >= expires_at:
        return 'Expired'
    seconds = (expires_at - now).total_seconds()
    hours = int(seconds // 3600)
    if hours < 1:
        return f'{max(1, math.ceil(seconds / 60))}m left'
    if hours < 24:
        return f'{hours}h left'
    return f'{hours // 24}d left'
