"""
Audit Data Providers
====================
Persistence collaborators receiving finalized audit events.
"""

from .base import AuditDataProvider
from .memory import InMemoryDataProvider
from .logging import LoggingDataProvider
from .file import FileDataProvider
from .gateway import GatewayDataProvider

__all__ = [
    "AuditDataProvider",
    "InMemoryDataProvider",
    "LoggingDataProvider",
    "FileDataProvider",
    "GatewayDataProvider",
]
