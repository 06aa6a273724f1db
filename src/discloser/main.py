"""Discloser FastAPI application factory.

The create_app() factory is the single entry point for building the share-link
ASGI application. It wires middleware (request-ID, CORS), the owner and
recipient routers, and injects repository/collaborator implementations.

Usage:
    # Local development (in-memory links and records)
    from discloser import create_app, DiscloserSettings
    app = create_app(DiscloserSettings())

    # Non-local (Supabase-backed links)
    settings = DiscloserSettings.from_env()
    app = create_app(settings, profiles=profile_api, records=records_api)

    # Testing (full DI control)
    app = create_app(settings, share_repo=repo, clock=fake_clock, ...)
"""

from __future__ import annotations

from collections.abc import Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .db.share_repo import SupabaseShareLinkRepository
from .db.supabase_client import SupabaseClient
from .observability.logging import configure_logging, get_logger
from .observability.middleware import RequestIdMiddleware
from .settings import DiscloserSettings
from .sharing.access import create_share_access_router
from .sharing.audit import LoggingShareAuditEmitter, ShareAuditEmitter
from .sharing.collaborators import (
    HealthRecordSource,
    InMemoryHealthRecordSource,
    InMemoryProfileLookup,
    ProfileLookup,
)
from .sharing.model import utcnow
from .sharing.repository import InMemoryShareLinkRepository, ShareLinkRepository
from .sharing.resolver import ShareLinkResolver
from .sharing.routes import create_share_router
from .sharing.service import ShareLinkService

logger = get_logger(__name__)


@dataclass(frozen=True)
class AppDependencies:
    """Container for all injected service instances.

    Stored on ``app.state.deps`` so tests and route handlers can reach them.
    """

    share_repo: ShareLinkRepository
    profiles: ProfileLookup
    records: HealthRecordSource
    audit_emitter: ShareAuditEmitter
    service: ShareLinkService
    resolver: ShareLinkResolver
    supabase_client: SupabaseClient | None = None


def _build_share_repo(
    settings: DiscloserSettings,
) -> tuple[ShareLinkRepository, SupabaseClient | None]:
    if settings.is_local:
        return InMemoryShareLinkRepository(), None

    client = SupabaseClient(
        supabase_url=settings.supabase_url,
        service_role_key=settings.supabase_service_role_key,
    )
    return SupabaseShareLinkRepository(client), client


def create_app(
    settings: DiscloserSettings | None = None,
    *,
    share_repo: ShareLinkRepository | None = None,
    profiles: ProfileLookup | None = None,
    records: HealthRecordSource | None = None,
    audit_emitter: ShareAuditEmitter | None = None,
    clock: Callable[[], datetime] = utcnow,
    configure_logs: bool = True,
) -> FastAPI:
    """Build the share-link application.

    Raises:
        ValueError: If ``settings.validate()`` reports errors.
    """
    settings = settings or DiscloserSettings()
    errors = settings.validate()
    if errors:
        raise ValueError("Invalid settings: " + "; ".join(errors))

    if configure_logs:
        configure_logging(level=settings.log_level, json_output=settings.log_json)

    supabase_client: SupabaseClient | None = None
    if share_repo is not None:
        repo = share_repo
    else:
        repo, supabase_client = _build_share_repo(settings)
    profiles = profiles or InMemoryProfileLookup()
    records = records or InMemoryHealthRecordSource()
    audit = audit_emitter or LoggingShareAuditEmitter()

    service = ShareLinkService(
        repo,
        profiles,
        records,
        audit=audit,
        clock=clock,
        share_base_url=settings.share_base_url,
    )
    resolver = ShareLinkResolver(repo, audit=audit, clock=clock)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("discloser_startup", environment=settings.environment)
        yield
        if supabase_client is not None:
            await supabase_client.aclose()
        logger.info("discloser_shutdown")

    app = FastAPI(title="Discloser share links", lifespan=lifespan)
    app.state.settings = settings
    app.state.deps = AppDependencies(
        share_repo=repo,
        profiles=profiles,
        records=records,
        audit_emitter=audit,
        service=service,
        resolver=resolver,
        supabase_client=supabase_client,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIdMiddleware)

    app.include_router(
        create_share_router(
            service, default_expiry_hours=settings.default_expiry_hours,
        )
    )
    app.include_router(create_share_access_router(resolver))

    @app.get("/health")
    async def health():
        return {"status": "ok", "environment": settings.environment}

    logger.info(
        "app_created",
        environment=settings.environment,
        repository=type(repo).__name__,
    )
    return app
