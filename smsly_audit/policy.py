"""
Capture Policy
==============
Per-request selectors deciding what the audit middleware records.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Union

from starlette.requests import Request

from .config import DEFAULT_EVENT_TYPE_TEMPLATE

RequestPredicate = Callable[[Request], bool]
BoolSelector = Union[bool, RequestPredicate]
EventTypeSelector = Union[str, Callable[[Request], Optional[str]]]


@dataclass
class AuditMiddlewareConfig:
    """
    Capture options for the audit middleware.

    Each boolean option is either a constant or a callable receiving the
    request. Selectors must be side-effect free; they are evaluated once
    per request, before the downstream handler runs.

    Example:
        config = AuditMiddlewareConfig(
            include_headers=True,
            include_request_body=lambda r: r.method in ("POST", "PUT"),
            request_filter=lambda r: not r.url.path.startswith("/health"),
            event_type_name="{verb} {url}",
        )
    """
    include_headers: BoolSelector = False
    include_request_body: BoolSelector = False
    include_response_body: BoolSelector = False
    event_type_name: Optional[EventTypeSelector] = None
    request_filter: Optional[RequestPredicate] = None


@dataclass(frozen=True)
class CaptureDecisions:
    """Capture choices for one request, fixed before the handler starts."""
    include_headers: bool = False
    include_request_body: bool = False
    include_response_body: bool = False
    event_type_name: Optional[str] = None
    should_audit: bool = True


def _resolve_bool(selector: BoolSelector, request: Request) -> bool:
    if callable(selector):
        return bool(selector(request))
    return bool(selector)


def evaluate_capture_policy(config: AuditMiddlewareConfig, request: Request) -> CaptureDecisions:
    """Evaluate every selector exactly once for this request."""
    if callable(config.event_type_name):
        event_type_name = config.event_type_name(request)
    else:
        event_type_name = config.event_type_name

    should_audit = True
    if config.request_filter is not None:
        should_audit = bool(config.request_filter(request))

    return CaptureDecisions(
        include_headers=_resolve_bool(config.include_headers, request),
        include_request_body=_resolve_bool(config.include_request_body, request),
        include_response_body=_resolve_bool(config.include_response_body, request),
        event_type_name=event_type_name,
        should_audit=should_audit,
    )


def render_event_type(template: Optional[str], method: str, url: str) -> str:
    """Substitute {verb} and {url} into the event type template."""
    return (
        (template or DEFAULT_EVENT_TYPE_TEMPLATE)
        .replace("{verb}", method)
        .replace("{url}", url)
    )
