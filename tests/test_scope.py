"""
Unit Tests for AuditScope and the Middleware Lifecycle
======================================================
"""

import asyncio
from unittest.mock import AsyncMock

import pytest
from starlette.responses import PlainTextResponse

from smsly_audit import (
    AUDIT_ACTION_KEY,
    AUDIT_SCOPE_KEY,
    AuditError,
    AuditEvent,
    AuditMiddleware,
    AuditMiddlewareConfig,
    AuditScope,
    AuditScopeState,
    Configuration,
    InMemoryDataProvider,
    LoggingDataProvider,
)
from smsly_audit.scope import _TRANSITIONS


class TestAuditScope:
    """Scope state machine and save-once guarantee."""

    @pytest.mark.asyncio
    async def test_create_sets_event_type(self, provider):
        scope = await AuditScope.create("GET /orders/42", data_provider=provider)

        assert scope.state == AuditScopeState.OPENED
        assert scope.event.event_type == "GET /orders/42"
        assert scope.data_provider is provider

    @pytest.mark.asyncio
    async def test_save_exactly_once(self):
        provider = AsyncMock(spec=InMemoryDataProvider)
        provider.insert_event.return_value = "evt-1"
        scope = await AuditScope.create("test", data_provider=provider)

        assert await scope.save() == "evt-1"
        assert await scope.save() is None

        provider.insert_event.assert_awaited_once_with(scope.event)
        assert scope.state == AuditScopeState.PERSISTED
        assert scope.event_id == "evt-1"

    @pytest.mark.asyncio
    async def test_save_swallows_provider_errors(self):
        provider = AsyncMock(spec=InMemoryDataProvider)
        provider.name = "mock"
        provider.insert_event.side_effect = OSError("disk full")
        scope = await AuditScope.create("test", data_provider=provider)

        assert await scope.save() is None
        assert scope.saved is True

    @pytest.mark.asyncio
    async def test_invalid_transition(self, provider):
        scope = await AuditScope.create("test", data_provider=provider)
        scope.transition(AuditScopeState.INVOKING)

        with pytest.raises(AuditError):
            scope.transition(AuditScopeState.OPENED)

    def test_every_state_has_transitions(self):
        assert set(_TRANSITIONS) == set(AuditScopeState)
        assert _TRANSITIONS[AuditScopeState.FILTERED] == set()

    @pytest.mark.asyncio
    async def test_custom_fields(self, provider):
        scope = await AuditScope.create("test", data_provider=provider)
        scope.set_custom_field("tenant", "acme")
        await scope.save()

        assert provider.events[0].custom_fields == {"tenant": "acme"}

    @pytest.mark.asyncio
    async def test_default_provider(self):
        scope = await AuditScope.create("test", AuditEvent(event_type="ignored"))

        assert isinstance(scope.data_provider, LoggingDataProvider)
        assert scope.event.event_type == "test"
        assert await scope.save() == scope.event.event_id


class TestMiddlewareDispatch:
    """Dispatch driven directly, without an app."""

    @pytest.mark.asyncio
    async def test_cancelled_request_is_still_persisted(self, provider, request_factory):
        middleware = AuditMiddleware(app=None, data_provider=provider)

        async def call_next(request):
            raise asyncio.CancelledError()

        with pytest.raises(asyncio.CancelledError):
            await middleware.dispatch(request_factory(), call_next)

        assert len(provider.events) == 1
        action = provider.events[0].action
        assert action.response_status_code == 500
        assert action.exception.type.endswith("CancelledError")

    @pytest.mark.asyncio
    async def test_handler_runs_once_and_lifecycle_completes(self, provider, request_factory):
        middleware = AuditMiddleware(app=None, data_provider=provider)
        calls = []
        seen_states = []

        async def call_next(request):
            calls.append(request)
            seen_states.append(getattr(request.state, AUDIT_SCOPE_KEY).state)
            return PlainTextResponse("ok", status_code=201)

        request = request_factory()
        response = await middleware.dispatch(request, call_next)

        assert response.status_code == 201
        assert len(calls) == 1
        assert seen_states == [AuditScopeState.INVOKING]
        scope = getattr(request.state, AUDIT_SCOPE_KEY)
        assert scope.state == AuditScopeState.PERSISTED
        assert provider.events[0].action.response_status == "Created"

    @pytest.mark.asyncio
    async def test_filtered_request_leaves_state_empty(self, provider, request_factory):
        config = AuditMiddlewareConfig(request_filter=lambda r: False)
        middleware = AuditMiddleware(app=None, config=config, data_provider=provider)

        async def call_next(request):
            return PlainTextResponse("ok")

        request = request_factory()
        await middleware.dispatch(request, call_next)

        assert request.scope.get("state", {}) == {}
        assert provider.events == []

    @pytest.mark.asyncio
    async def test_disabled_skips_selectors(self, provider, request_factory):
        Configuration.disable()

        def selector(request):
            raise AssertionError("selector must not run")

        config = AuditMiddlewareConfig(include_headers=selector)
        middleware = AuditMiddleware(app=None, config=config, data_provider=provider)

        async def call_next(request):
            return PlainTextResponse("ok")

        response = await middleware.dispatch(request_factory(), call_next)

        assert response.status_code == 200
        assert provider.events == []

    @pytest.mark.asyncio
    async def test_missing_scope_is_a_no_op(self, provider, request_factory):
        middleware = AuditMiddleware(app=None, data_provider=provider)

        async def call_next(request):
            delattr(request.state, AUDIT_ACTION_KEY)
            return PlainTextResponse("ok")

        response = await middleware.dispatch(request_factory(), call_next)

        assert response.status_code == 200
        assert provider.events == []
