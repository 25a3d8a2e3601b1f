"""
SMSLY Audit Middleware
======================
Request/response auditing for SMSLYCLOUD FastAPI and Starlette services.

Usage:
    from smsly_audit import (
        AuditMiddleware,
        AuditMiddlewareConfig,
        Configuration,
        GatewayDataProvider,
    )

    Configuration.setup(GatewayDataProvider())
    app.add_middleware(
        AuditMiddleware,
        config=AuditMiddlewareConfig(
            include_headers=True,
            include_response_body=lambda r: r.url.path.startswith("/api/"),
            request_filter=lambda r: r.url.path not in {"/health", "/ready"},
        ),
    )
"""

__version__ = "0.1.0"

# Config
from smsly_audit.config import Configuration

# Models
from smsly_audit.models import (
    AuditApiAction,
    AuditEvent,
    BodyContent,
    ExceptionInfo,
)

# Policy
from smsly_audit.policy import (
    AuditMiddlewareConfig,
    CaptureDecisions,
    evaluate_capture_policy,
    render_event_type,
)

# Scope
from smsly_audit.scope import AuditScope, AuditScopeState

# Body Tap
from smsly_audit.body_tap import BodyTap

# Context
from smsly_audit.context import AuditContext, get_audit_action, get_audit_scope
from smsly_audit.helpers import AUDIT_ACTION_KEY, AUDIT_SCOPE_KEY

# Middleware
from smsly_audit.middleware import AuditMiddleware, add_audit_middleware

# Data Providers
from smsly_audit.providers import (
    AuditDataProvider,
    InMemoryDataProvider,
    LoggingDataProvider,
    FileDataProvider,
    GatewayDataProvider,
)

# Exceptions
from smsly_audit.exceptions import AuditError, AuditPersistenceError

__all__ = [
    # Config
    "Configuration",
    # Models
    "AuditApiAction",
    "AuditEvent",
    "BodyContent",
    "ExceptionInfo",
    # Policy
    "AuditMiddlewareConfig",
    "CaptureDecisions",
    "evaluate_capture_policy",
    "render_event_type",
    # Scope
    "AuditScope",
    "AuditScopeState",
    # Body Tap
    "BodyTap",
    # Context
    "AuditContext",
    "get_audit_action",
    "get_audit_scope",
    "AUDIT_ACTION_KEY",
    "AUDIT_SCOPE_KEY",
    # Middleware
    "AuditMiddleware",
    "add_audit_middleware",
    # Data Providers
    "AuditDataProvider",
    "InMemoryDataProvider",
    "LoggingDataProvider",
    "FileDataProvider",
    "GatewayDataProvider",
    # Exceptions
    "AuditError",
    "AuditPersistenceError",
]
