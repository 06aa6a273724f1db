"""Recipient-facing share access endpoints.

  GET /api/v1/share/{token}     → resolve a result link
  GET /api/v1/status/{token}    → resolve a status link

No authentication. Each successful GET consumes one view, so responses
are marked ``Cache-Control: no-store``.

Error responses:
  - 404 share_not_found: unknown, deleted, or wrong-kind token.
  - 410 share_expired: past the link's expiry time.
  - 410 share_over_limit: view cap reached.
  - 503 persistence_error: storage unavailable.

This module provides:
  ``create_share_access_router``: FastAPI router factory.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from .errors import SharePersistenceError
from .model import LinkKind
from .resolver import ResolveFailure, ResolveOutcome, ShareLinkResolver
from .routes import error_response, share_error_response

_FAILURE_RESPONSES = {
    ResolveFailure.NOT_FOUND: (404, 'share_not_found'),
    ResolveFailure.EXPIRED: (410, 'share_expired'),
    ResolveFailure.OVER_LIMIT: (410, 'share_over_limit'),
}

_NO_STORE = {'Cache-Control': 'no-store'}


def outcome_to_dict(outcome: ResolveOutcome) -> dict[str, Any]:
    """Recipient view of a resolved link. No owner-only fields."""
    return {
        'kind': outcome.kind.value if outcome.kind else None,
        'display_name': outcome.display_name,
        'created_at': outcome.created_at.isoformat() if outcome.created_at else None,
        'expires_at': outcome.expires_at.isoformat() if outcome.expires_at else None,
        'view_count': outcome.view_count,
        'max_views': outcome.max_views,
        'snapshot': outcome.snapshot.to_dict() if outcome.snapshot else None,
    }


def create_share_access_router(resolver: ShareLinkResolver) -> APIRouter:
    """Create the anonymous token-access router.

    Args:
        resolver: Share-link resolver.

    Returns:
        FastAPI router with result and status access endpoints.
    """
    router = APIRouter(prefix='/api/v1', tags=['share-access'])

    async def _resolve(token: str, kind: LinkKind) -> JSONResponse:
        try:
            outcome = await resolver.resolve(token, expected_kind=kind)
        except SharePersistenceError as exc:
            return share_error_response(exc)

        if not outcome.valid:
            status_code, error = _FAILURE_RESPONSES[outcome.reason]
            response = error_response(status_code, error, outcome.message)
            response.headers.update(_NO_STORE)
            return response

        return JSONResponse(content=outcome_to_dict(outcome), headers=_NO_STORE)

    @router.get('/share/{token}')
    async def read_result_share(token: str):
        """Resolve a single-result link."""
        return await _resolve(token, LinkKind.RESULT)

    @router.get('/status/{token}')
    async def read_status_share(token: str):
        """Resolve an aggregated-status link."""
        return await _resolve(token, LinkKind.STATUS)

    return router
