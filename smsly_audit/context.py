"""
Audit Request Context
=====================
Per-request audit state threaded from the before phase to the after phase.
"""

from dataclasses import dataclass
from typing import Optional

from starlette.requests import Request

from .body_tap import BodyTap
from .helpers import AUDIT_ACTION_KEY, AUDIT_SCOPE_KEY
from .models import AuditApiAction
from .policy import CaptureDecisions
from .scope import AuditScope


@dataclass
class AuditContext:
    """Everything one in-flight request needs to finalize its audit record."""
    action: AuditApiAction
    scope: AuditScope
    decisions: CaptureDecisions
    body_tap: Optional[BodyTap] = None

    def attach(self, request: Request) -> None:
        """Publish the action and scope on the request's own state."""
        setattr(request.state, AUDIT_ACTION_KEY, self.action)
        setattr(request.state, AUDIT_SCOPE_KEY, self.scope)


def get_audit_action(request: Request) -> Optional[AuditApiAction]:
    """The in-flight audit action, for handlers that enrich the record."""
    return getattr(request.state, AUDIT_ACTION_KEY, None)


def get_audit_scope(request: Request) -> Optional[AuditScope]:
    return getattr(request.state, AUDIT_SCOPE_KEY, None)
