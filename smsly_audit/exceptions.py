"""
Audit Exceptions
================
Exception classes for the audit middleware and its data providers.
"""

from typing import Optional


class AuditError(Exception):
    """Base exception for all audit errors."""
    pass


class AuditPersistenceError(AuditError):
    """Raised by a data provider when an audit event cannot be stored."""
    
    def __init__(
        self,
        message: str,
        provider: str = "unknown",
        event_id: Optional[str] = None,
    ):
        self.message = message
        self.provider = provider
        self.event_id = event_id
        super().__init__(f"[{provider}] {message} (event: {event_id})")
