"""
Audit Models
=============
Data models for HTTP audit records.
"""

import os
import socket
import traceback
import uuid
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional

from .config import SERVICE_NAME


def _drop_none(value: Any) -> Any:
    """Recursively remove None values so absent fields stay absent."""
    if isinstance(value, dict):
        return {k: _drop_none(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [_drop_none(v) for v in value]
    return value


@dataclass
class BodyContent:
    """Request or response body metadata, with the value only when captured."""
    type: Optional[str] = None
    length: Optional[int] = None
    value: Any = None


@dataclass
class ExceptionInfo:
    """Structured description of an exception raised downstream."""
    type: str
    message: str
    traceback: List[str] = field(default_factory=list)
    inner: Optional["ExceptionInfo"] = None

    @classmethod
    def from_exception(cls, exc: BaseException, _seen: Optional[set] = None) -> "ExceptionInfo":
        seen = _seen if _seen is not None else set()
        seen.add(id(exc))
        exc_type = type(exc)
        type_name = (
            exc_type.__qualname__ if exc_type.__module__ == "builtins"
            else f"{exc_type.__module__}.{exc_type.__qualname__}"
        )
        cause = exc.__cause__ or exc.__context__
        inner = None
        if cause is not None and id(cause) not in seen:
            inner = cls.from_exception(cause, seen)
        return cls(
            type=type_name,
            message=str(exc) or exc_type.__name__,
            traceback=traceback.format_exception(exc_type, exc, exc.__traceback__),
            inner=inner,
        )

    def __str__(self) -> str:
        text = f"({self.type}) {self.message}"
        if self.inner is not None:
            text += f" -> {self.inner}"
        return text


@dataclass
class AuditApiAction:
    """Request and response facts accumulated for one audited request."""
    http_method: str
    request_url: str
    is_middleware: bool = True
    user_name: Optional[str] = None
    ip_address: Optional[str] = None
    form_variables: Optional[Dict[str, str]] = None
    headers: Optional[Dict[str, str]] = None
    # Populated by a framework-specific enricher, never by the middleware
    action_name: Optional[str] = None
    controller_name: Optional[str] = None
    action_parameters: Optional[Dict[str, Any]] = None
    request_body: Optional[BodyContent] = None
    response_body: Optional[BodyContent] = None
    response_status_code: Optional[int] = None
    response_status: Optional[str] = None
    exception: Optional[ExceptionInfo] = None
    trace_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return _drop_none(asdict(self))


def _environment() -> Dict[str, Any]:
    return {
        "machine_name": socket.gethostname(),
        "service_name": SERVICE_NAME,
        "process_id": os.getpid(),
    }


@dataclass
class AuditEvent:
    """The unit persisted by a data provider: one event wrapping one action."""
    event_type: str
    action: Optional[AuditApiAction] = None
    event_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    start_date: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    end_date: Optional[datetime] = None
    duration: Optional[int] = None  # milliseconds
    environment: Dict[str, Any] = field(default_factory=_environment)
    custom_fields: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        d = asdict(self)
        d['start_date'] = self.start_date.isoformat()
        d['end_date'] = self.end_date.isoformat() if self.end_date else None
        return _drop_none(d)
