"""Share-link domain exceptions.

Owner-facing failures (not found, forbidden, validation, persistence) are
raised. Recipient-facing classification failures (expired, over limit) are
not exceptions; they come back as ``ResolveFailure`` values on a
``ResolveOutcome``.
"""

from __future__ import annotations


class ShareLinkError(Exception):
    """Base class for share-link failures."""

    code = 'share_error'


class ShareLinkNotFound(ShareLinkError):
    """No link (or source record) matches the given identifier."""

    code = 'share_not_found'

    def __init__(self, detail: str = 'Share link not found.') -> None:
        self.detail = detail
        super().__init__(detail)


class ShareLinkForbidden(ShareLinkError):
    """Caller does not own the link being mutated."""

    code = 'forbidden'

    def __init__(self, link_id: str, owner_id: str) -> None:
        self.link_id = link_id
        self.owner_id = owner_id
        super().__init__(f'Link {link_id} is not owned by {owner_id}')


class ShareLinkValidationError(ShareLinkError, ValueError):
    """Malformed creation parameters."""

    code = 'invalid_link_options'

    def __init__(self, field: str, detail: str) -> None:
        self.field = field
        self.detail = detail
        super().__init__(f'{field}: {detail}')


class SharePersistenceError(ShareLinkError):
    """Underlying storage read/write failed. Safe to retry the whole call."""

    code = 'persistence_error'


class TokenCollision(ShareLinkError):
    """Repository already holds a link with this token."""

    code = 'token_collision'
