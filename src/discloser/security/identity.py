"""Authenticated owner identity for owner-side share-link routes.

Authentication itself happens upstream (gateway or auth middleware), which
places a verified ``AuthIdentity`` on ``request.state.auth_identity``.
Owner routes depend on ``get_auth_identity`` and pass ``user_id`` to the
share-link service explicitly. Recipient routes never require identity.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from fastapi import HTTPException
from starlette.requests import Request


@dataclass(frozen=True, slots=True)
class AuthIdentity:
    """Verified identity of the calling owner.

    Attributes:
        user_id: Owner identifier (Supabase auth.users UUID).
        email: Normalized email address.
        role: Supabase role (typically ``authenticated``).
        raw_claims: Full decoded token payload for downstream use.
    """

    user_id: str
    email: str = ''
    role: str = 'authenticated'
    raw_claims: dict[str, Any] = field(default_factory=dict)


def get_auth_identity(request: Request) -> AuthIdentity:
    """FastAPI dependency that returns the authenticated identity.

    Raises:
        HTTPException: 401 if no authenticated identity on the request.
    """
    identity: AuthIdentity | None = getattr(
        request.state, 'auth_identity', None
    )
    if identity is None:
        raise HTTPException(
            status_code=401,
            detail={
                'error': 'unauthorized',
                'code': 'no_credentials',
                'detail': 'Authentication required',
            },
            headers={'WWW-Authenticate': 'Bearer'},
        )
    return identity
