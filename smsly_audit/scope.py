"""
Audit Scope
===========
Unit of work owning one audit event from request start until it is saved.
"""

import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

import structlog

from .config import Configuration
from .exceptions import AuditError
from .models import AuditEvent
from .providers.base import AuditDataProvider

logger = structlog.get_logger(__name__)


class AuditScopeState(str, Enum):
    """Lifecycle of an audited request."""
    FILTERED = "filtered"    # Request skipped, no scope
    OPENED = "opened"        # Action built and stored
    INVOKING = "invoking"    # Downstream handler running
    CLOSING = "closing"      # Finalizing from the outcome
    PERSISTED = "persisted"  # Saved (or save attempted)


_TRANSITIONS = {
    # Filtered requests never get a scope, so nothing leaves this state
    AuditScopeState.FILTERED: set(),
    AuditScopeState.OPENED: {AuditScopeState.INVOKING, AuditScopeState.CLOSING},
    AuditScopeState.INVOKING: {AuditScopeState.CLOSING},
    AuditScopeState.CLOSING: set(),
    AuditScopeState.PERSISTED: set(),
}


class AuditScope:
    """
    Wraps exactly one AuditEvent and persists it at most once.

    Persistence failures are logged and swallowed here so they never
    replace the response or the downstream exception.
    """

    def __init__(self, event: AuditEvent, data_provider: Optional[AuditDataProvider] = None):
        self._event = event
        self._data_provider = data_provider or Configuration.get_data_provider()
        self._state = AuditScopeState.OPENED
        self._started = time.perf_counter()
        self.event_id: Optional[Any] = None

    @classmethod
    async def create(
        cls,
        event_type: str,
        event: Optional[AuditEvent] = None,
        data_provider: Optional[AuditDataProvider] = None,
    ) -> "AuditScope":
        """Open a scope for the given event type."""
        event = event or AuditEvent(event_type=event_type)
        event.event_type = event_type
        scope = cls(event, data_provider)
        logger.debug("audit_scope_opened", event_id=event.event_id, event_type=event_type)
        return scope

    @property
    def event(self) -> AuditEvent:
        return self._event

    @property
    def state(self) -> AuditScopeState:
        return self._state

    @property
    def data_provider(self) -> AuditDataProvider:
        return self._data_provider

    @property
    def saved(self) -> bool:
        return self._state == AuditScopeState.PERSISTED

    def transition(self, state: AuditScopeState) -> None:
        if state not in _TRANSITIONS[self._state]:
            raise AuditError(f"Invalid audit scope transition {self._state.value} -> {state.value}")
        self._state = state

    def set_custom_field(self, key: str, value: Any) -> None:
        self._event.custom_fields[key] = value

    async def save(self) -> Optional[Any]:
        """
        Finalize timing and hand the event to the data provider.

        Returns:
            The provider's id for the event, or None if saving failed
            or the scope was already saved
        """
        if self.saved:
            logger.warning("audit_scope_already_saved", event_id=self._event.event_id)
            return None

        self._event.end_date = datetime.now(timezone.utc)
        self._event.duration = int((time.perf_counter() - self._started) * 1000)
        self._state = AuditScopeState.PERSISTED

        try:
            self.event_id = await self._data_provider.insert_event(self._event)
        except Exception as e:
            logger.error(
                "audit_persist_failed",
                event_id=self._event.event_id,
                event_type=self._event.event_type,
                provider=self._data_provider.name,
                error=str(e),
                exc_info=True,
            )
            return None

        logger.debug(
            "audit_scope_saved",
            event_id=self._event.event_id,
            duration_ms=self._event.duration,
        )
        return self.event_id
