"""Owner-side share-link endpoints.

  POST   /api/v1/links/result        → share one test result
  POST   /api/v1/links/status        → share aggregated status
  GET    /api/v1/links?filter=       → list own links (all|active|inactive)
  DELETE /api/v1/links/{link_id}     → delete own link

Auth contract:
  - All endpoints require an ``AuthIdentity`` on the request.
  - The identity's ``user_id`` is the owner for every operation.
  - Deleting another owner's link returns 403, an unknown id 404.

This module provides:
  ``create_share_router``: FastAPI router factory with injected deps.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from discloser.security.identity import AuthIdentity, get_auth_identity

from .errors import (
    ShareLinkError,
    ShareLinkForbidden,
    ShareLinkNotFound,
    ShareLinkValidationError,
    SharePersistenceError,
)
from .model import (
    LABEL_MAX_LENGTH,
    MAX_DURATION_HOURS,
    NOTE_MAX_LENGTH,
    DisclosureMode,
    ResultLink,
    ShareLink,
    utcnow,
)
from .service import LinkFilter, LinkOptions, ShareLinkService
from .status import classify, expiration_label, format_time_remaining, format_view_count


# ── Request schemas ──────────────────────────────────────────────────


class LinkOptionsBody(BaseModel):
    """Options shared by both create endpoints."""

    duration_hours: float | None = Field(
        default=None, gt=0, le=MAX_DURATION_HOURS,
        description='Link lifetime in hours',
    )
    max_views: int | None = Field(
        default=None, ge=1, description='View cap; omit for unlimited',
    )
    disclosure_mode: DisclosureMode = Field(default=DisclosureMode.ANONYMOUS)
    label: str | None = Field(default=None, max_length=LABEL_MAX_LENGTH)
    note: str | None = Field(default=None, max_length=NOTE_MAX_LENGTH)

    def to_options(self, default_expiry_hours: float) -> LinkOptions:
        return LinkOptions(
            duration_hours=self.duration_hours or default_expiry_hours,
            max_views=self.max_views,
            disclosure_mode=self.disclosure_mode,
            label=self.label,
            note=self.note,
        )


class CreateResultLinkRequest(LinkOptionsBody):
    test_result_id: str = Field(..., min_length=1)


class CreateStatusLinkRequest(LinkOptionsBody):
    exclude_known_conditions: bool = Field(
        default=False, description='Leave chronic conditions out of the snapshot',
    )


# ── Shared helpers ───────────────────────────────────────────────────


def error_response(status_code: int, error: str, detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={'error': error, 'detail': detail},
    )


def share_error_response(exc: ShareLinkError) -> JSONResponse:
    """Map a share-link exception onto the HTTP error contract."""
    if isinstance(exc, ShareLinkNotFound):
        return error_response(404, exc.code, exc.detail)
    if isinstance(exc, ShareLinkForbidden):
        return error_response(403, exc.code, 'Link belongs to another owner.')
    if isinstance(exc, ShareLinkValidationError):
        return error_response(422, exc.code, str(exc))
    if isinstance(exc, SharePersistenceError):
        return error_response(503, exc.code, 'Storage unavailable, try again.')
    return error_response(500, exc.code, str(exc))


def link_to_dict(
    link: ShareLink, url: str, now: datetime | None = None,
) -> dict[str, Any]:
    """Owner view of a link, including owner-only label and note."""
    now = now or utcnow()
    status = classify(link, now)
    data = {
        'share_id': link.id,
        'kind': link.kind.value,
        'token': link.token,
        'url': url,
        'label': link.label,
        'note': link.note,
        'show_name': link.show_name,
        'display_name': link.display_name,
        'created_at': link.created_at.isoformat(),
        'expires_at': link.expires_at.isoformat(),
        'max_views': link.max_views,
        'view_count': link.view_count,
        'status': status.value,
        'status_label': expiration_label(status),
        'views_label': format_view_count(link.view_count, link.max_views),
        'time_remaining': format_time_remaining(link.expires_at, now),
    }
    if isinstance(link, ResultLink):
        data['test_result_id'] = link.test_result_id
    return data


# ── Route factory ────────────────────────────────────────────────────


def create_share_router(
    service: ShareLinkService,
    *,
    default_expiry_hours: float = 24,
) -> APIRouter:
    """Create the owner share-link router with injected dependencies.

    Args:
        service: Share-link lifecycle service.
        default_expiry_hours: Lifetime used when a request omits one.

    Returns:
        FastAPI router with share-link management routes.
    """
    router = APIRouter(prefix='/api/v1/links', tags=['share-links'])

    @router.post('/result', status_code=201)
    async def create_result_link(
        body: CreateResultLinkRequest,
        identity: AuthIdentity = Depends(get_auth_identity),
    ):
        """Create a link to one test result. Returns the link and its URL."""
        try:
            link = await service.create_result_link(
                identity.user_id,
                body.test_result_id,
                body.to_options(default_expiry_hours),
            )
        except ShareLinkError as exc:
            return share_error_response(exc)
        return link_to_dict(link, service.share_url(link), service.now())

    @router.post('/status', status_code=201)
    async def create_status_link(
        body: CreateStatusLinkRequest,
        identity: AuthIdentity = Depends(get_auth_identity),
    ):
        """Create a link to the owner's aggregated status."""
        try:
            link = await service.create_status_link(
                identity.user_id,
                body.to_options(default_expiry_hours),
                exclude_known_conditions=body.exclude_known_conditions,
            )
        except ShareLinkError as exc:
            return share_error_response(exc)
        return link_to_dict(link, service.share_url(link), service.now())

    @router.get('')
    async def list_links(
        filter: LinkFilter = LinkFilter.ALL,
        identity: AuthIdentity = Depends(get_auth_identity),
    ):
        """List the caller's links, newest first."""
        try:
            links = await service.list_links(identity.user_id, filter)
        except ShareLinkError as exc:
            return share_error_response(exc)
        now = service.now()
        return {
            'links': [link_to_dict(l, service.share_url(l), now) for l in links],
        }

    @router.delete('/{link_id}')
    async def delete_link(
        link_id: str,
        identity: AuthIdentity = Depends(get_auth_identity),
    ):
        """Permanently delete one of the caller's links."""
        try:
            await service.delete_link(identity.user_id, link_id)
        except ShareLinkError as exc:
            return share_error_response(exc)
        return {'share_id': link_id, 'deleted': True}

    return router
