"""
In-Memory Data Provider
=======================
Keeps events in a list. For tests and local development.
"""

from typing import List

from ..models import AuditEvent
from .base import AuditDataProvider


class InMemoryDataProvider(AuditDataProvider):
    name = "memory"
    
    def __init__(self):
        self.events: List[AuditEvent] = []
    
    async def insert_event(self, event: AuditEvent) -> str:
        self.events.append(event)
        return event.event_id
    
    def clear(self) -> None:
        self.events = []
