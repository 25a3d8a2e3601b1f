"""
File Data Provider
==================
Appends one JSON line per audit event to a local file.
"""

from pathlib import Path
from typing import Optional, Union

import anyio

from ..config import AUDIT_LOG_FILE
from ..exceptions import AuditPersistenceError
from ..models import AuditEvent
from .base import AuditDataProvider


class FileDataProvider(AuditDataProvider):
    name = "file"
    
    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path else AUDIT_LOG_FILE
        self._lock = anyio.Lock()
    
    def _append(self, line: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(line + "\n")
    
    async def insert_event(self, event: AuditEvent) -> str:
        line = self.serialize(event)
        try:
            # Serialize writers so concurrent requests never interleave lines
            async with self._lock:
                await anyio.to_thread.run_sync(self._append, line)
        except OSError as e:
            raise AuditPersistenceError(
                f"Failed to write audit file {self.path}: {e}",
                provider=self.name,
                event_id=event.event_id,
            ) from e
        return event.event_id
