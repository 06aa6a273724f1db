"""Tests for the create_app() factory.

Validates:
  - Local settings build an in-memory app.
  - Invalid settings are rejected.
  - Owner and recipient routers are wired end to end.
  - Request IDs are generated or echoed.
"""

from __future__ import annotations

from datetime import date

import pytest
from fastapi import Request
from httpx import ASGITransport, AsyncClient

from discloser import DiscloserSettings, create_app
from discloser.db.share_repo import SupabaseShareLinkRepository
from discloser.security.identity import AuthIdentity
from discloser.sharing.audit import SHARE_ACCESSED, InMemoryShareAuditEmitter
from discloser.sharing.collaborators import (
    ConditionResult,
    InMemoryHealthRecordSource,
    TestResult,
)
from discloser.sharing.model import TestStatus
from discloser.sharing.repository import InMemoryShareLinkRepository


def _app(clock, audit=None):
    records = InMemoryHealthRecordSource()
    records.add_result(TestResult(
        id='tr_1',
        owner_id='user_1',
        test_date=date(2025, 5, 20),
        status=TestStatus.NEGATIVE,
        results=(ConditionResult('Syphilis', TestStatus.NEGATIVE),),
    ))
    app = create_app(
        DiscloserSettings(share_base_url='https://discloser.test'),
        records=records,
        audit_emitter=audit,
        clock=clock,
        configure_logs=False,
    )

    @app.middleware('http')
    async def fake_auth(request: Request, call_next):
        if request.url.path.startswith('/api/v1/links'):
            request.state.auth_identity = AuthIdentity(user_id='user_1')
        return await call_next(request)

    return app


class TestCreateApp:

    def test_local_uses_in_memory_repo(self):
        app = create_app(DiscloserSettings(), configure_logs=False)
        assert isinstance(app.state.deps.share_repo, InMemoryShareLinkRepository)

    def test_non_local_uses_supabase_repo(self):
        app = create_app(
            DiscloserSettings(
                environment='production',
                supabase_url='https://x.supabase.co',
                supabase_service_role_key='key',
            ),
            configure_logs=False,
        )
        assert isinstance(app.state.deps.share_repo, SupabaseShareLinkRepository)

    @pytest.mark.asyncio
    async def test_shutdown_closes_supabase_client(self):
        app = create_app(
            DiscloserSettings(
                environment='production',
                supabase_url='https://x.supabase.co',
                supabase_service_role_key='key',
            ),
            configure_logs=False,
        )
        client = app.state.deps.supabase_client
        assert client is not None

        async with app.router.lifespan_context(app):
            assert not client._client.is_closed
        assert client._client.is_closed

    @pytest.mark.asyncio
    async def test_local_lifespan_has_no_client(self):
        app = create_app(DiscloserSettings(), configure_logs=False)
        assert app.state.deps.supabase_client is None
        async with app.router.lifespan_context(app):
            pass

    def test_invalid_settings_rejected(self):
        with pytest.raises(ValueError, match='supabase_url'):
            create_app(DiscloserSettings(environment='production'), configure_logs=False)

    @pytest.mark.asyncio
    async def test_health(self, clock):
        transport = ASGITransport(app=_app(clock))
        async with AsyncClient(transport=transport, base_url='http://test') as c:
            resp = await c.get('/health')
        assert resp.status_code == 200
        assert resp.json() == {'status': 'ok', 'environment': 'local'}


class TestEndToEnd:

    @pytest.mark.asyncio
    async def test_create_then_resolve_single_view(self, clock):
        audit = InMemoryShareAuditEmitter()
        app = _app(clock, audit)
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url='http://test') as c:
            created = (await c.post('/api/v1/links/result', json={
                'test_result_id': 'tr_1', 'duration_hours': 1, 'max_views': 1,
            })).json()
            assert created['url'] == f"https://discloser.test/share/{created['token']}"

            first = await c.get(f"/api/v1/share/{created['token']}")
            second = await c.get(f"/api/v1/share/{created['token']}")
            listed = (await c.get('/api/v1/links')).json()['links']

        assert first.status_code == 200
        assert first.json()['snapshot']['entries'][0]['name'] == 'Syphilis'
        assert second.status_code == 410
        assert listed[0]['status'] == 'views_exhausted'
        assert listed[0]['views_label'] == 'Viewed 1/1 time'
        assert len(audit.find(SHARE_ACCESSED)) == 1

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, clock):
        transport = ASGITransport(app=_app(clock))
        async with AsyncClient(transport=transport, base_url='http://test') as c:
            given = await c.get('/health', headers={'X-Request-ID': 'req-12345678'})
            generated = await c.get('/health')

        assert given.headers['x-request-id'] == 'req-12345678'
        assert len(generated.headers['x-request-id']) == 36
