"""
Audit Middleware for FastAPI/Starlette
======================================
Produces one audit record per request/response pair, including failures.

Features:
- Per-request capture policy (headers, request body, response body, event type)
- Request filter for endpoints that must not be audited
- Transparent response body capture
- Record always saved, even when the handler raises or is cancelled
- Persistence failures never reach the client
"""

from typing import Optional

import anyio
import structlog
from fastapi import FastAPI
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from .body_tap import BodyTap
from .config import Configuration
from .context import AuditContext, get_audit_action, get_audit_scope
from .helpers import (
    get_client_ip,
    get_content_length,
    get_display_url,
    get_form_variables,
    get_request_body,
    get_status_code_string,
    get_trace_id,
    get_user_name,
    headers_to_dict,
)
from .models import AuditApiAction, AuditEvent, BodyContent, ExceptionInfo
from .policy import (
    AuditMiddlewareConfig,
    CaptureDecisions,
    evaluate_capture_policy,
    render_event_type,
)
from .providers.base import AuditDataProvider
from .scope import AuditScope, AuditScopeState

logger = structlog.get_logger(__name__)


class AuditMiddleware(BaseHTTPMiddleware):
    """
    Middleware that audits every request passing through it.

    For each request that passes the filter:
    1. Build the audit action from the request before the handler runs
    2. Run the handler, buffering the response body if requested
    3. Finalize the action from the outcome and save it exactly once
    """

    def __init__(
        self,
        app,
        config: AuditMiddlewareConfig = None,
        data_provider: AuditDataProvider = None,
    ):
        super().__init__(app)
        self.config = config or AuditMiddlewareConfig()
        self.data_provider = data_provider

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if Configuration.AUDIT_DISABLED:
            return await call_next(request)

        decisions = evaluate_capture_policy(self.config, request)

        # Pre-filter
        if not decisions.should_audit:
            return await call_next(request)

        context = await self._before_invoke(request, decisions)
        return await self._invoke_next(request, call_next, context)

    async def _invoke_next(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
        context: AuditContext,
    ) -> Response:
        error: Optional[BaseException] = None
        response: Optional[Response] = None
        context.scope.transition(AuditScopeState.INVOKING)
        try:
            response = await call_next(request)
            if context.body_tap is not None:
                await context.body_tap.capture(response)
            return response
        except BaseException as e:  # includes cancellation
            error = e
            raise
        finally:
            with anyio.CancelScope(shield=True):
                await self._after_invoke(request, response, context, error)

    async def _before_invoke(self, request: Request, decisions: CaptureDecisions) -> AuditContext:
        action = AuditApiAction(
            http_method=request.method,
            request_url=get_display_url(request),
            is_middleware=True,
            user_name=get_user_name(request),
            ip_address=get_client_ip(request),
            form_variables=await get_form_variables(request),
            headers=headers_to_dict(request.headers) if decisions.include_headers else None,
            request_body=BodyContent(
                type=request.headers.get("content-type"),
                length=get_content_length(request.headers),
                value=await get_request_body(request) if decisions.include_request_body else None,
            ),
            trace_id=get_trace_id(request),
        )
        event_type = render_event_type(
            decisions.event_type_name, action.http_method, action.request_url
        )
        scope = await AuditScope.create(
            event_type,
            AuditEvent(event_type=event_type, action=action),
            self.data_provider,
        )
        context = AuditContext(
            action=action,
            scope=scope,
            decisions=decisions,
            body_tap=BodyTap() if decisions.include_response_body else None,
        )
        context.attach(request)
        return context

    async def _after_invoke(
        self,
        request: Request,
        response: Optional[Response],
        context: AuditContext,
        error: Optional[BaseException],
    ) -> None:
        action = get_audit_action(request)
        scope = get_audit_scope(request)
        if action is None or scope is None:
            logger.debug("audit_context_missing", path=request.url.path)
            return
        if scope.saved:
            logger.warning("audit_scope_saved_by_handler", event_id=scope.event.event_id)
            return

        scope.transition(AuditScopeState.CLOSING)
        if error is not None:
            action.exception = ExceptionInfo.from_exception(error)
            action.response_status_code = 500
            action.response_status = "Internal Server Error"
        elif response is not None:
            action.response_status_code = response.status_code
            action.response_status = get_status_code_string(response.status_code)
            if context.body_tap is not None and action.response_body is None:
                action.response_body = context.body_tap.to_body_content(response)

        # Replace the action and save
        scope.event.action = action
        await scope.save()


def add_audit_middleware(
    app: FastAPI,
    config: Optional[AuditMiddlewareConfig] = None,
    data_provider: Optional[AuditDataProvider] = None,
) -> None:
    """
    Register the audit middleware on an application.

    Example:
        from smsly_audit import add_audit_middleware, AuditMiddlewareConfig

        app = FastAPI()
        add_audit_middleware(app, AuditMiddlewareConfig(include_headers=True))
    """
    app.add_middleware(AuditMiddleware, config=config, data_provider=data_provider)
    logger.info("audit_middleware_configured", provider=getattr(data_provider, "name", None))
