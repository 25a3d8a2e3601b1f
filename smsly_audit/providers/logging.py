"""
Logging Data Provider
=====================
Writes audit events to the structured log. Default when nothing else is set up.
"""

import structlog

from ..models import AuditEvent
from .base import AuditDataProvider

logger = structlog.get_logger(__name__)


class LoggingDataProvider(AuditDataProvider):
    name = "logging"
    
    async def insert_event(self, event: AuditEvent) -> str:
        logger.info(
            "audit_event",
            event_id=event.event_id,
            event_type=event.event_type,
            audit=event.to_dict(),
        )
        return event.event_id
