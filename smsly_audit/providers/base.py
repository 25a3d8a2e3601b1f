"""
Audit Data Provider Base
========================
Interface every persistence collaborator implements.
"""

import json
from abc import ABC, abstractmethod
from typing import Any

from ..models import AuditEvent


class AuditDataProvider(ABC):
    """Stores finalized audit events."""
    
    name = "base"
    
    @abstractmethod
    async def insert_event(self, event: AuditEvent) -> Any:
        """
        Persist one audit event.
        
        Args:
            event: The finalized event
            
        Returns:
            Provider-specific id of the stored event
            
        Raises:
            AuditPersistenceError: if the event could not be stored
        """
    
    def serialize(self, event: AuditEvent) -> str:
        return json.dumps(event.to_dict(), default=str)
