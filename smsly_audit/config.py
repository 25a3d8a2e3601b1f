"""
Audit Configuration
===================
Process-wide audit settings read from the environment.

The global switch and default data provider are set once at startup and
only read afterwards, so they are safe to share between requests.
"""

import os
from pathlib import Path
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .providers.base import AuditDataProvider

# Configuration from environment
SERVICE_NAME = os.getenv("SERVICE_NAME", "unknown-service")
GATEWAY_URL = os.getenv("SECURITY_GATEWAY_URL", "http://localhost:8000")
SERVICE_SECRET = os.getenv("SERVICE_SECRET", "")
AUDIT_ENABLED = os.getenv("AUDIT_ENABLED", "true").lower() == "true"
AUDIT_TIMEOUT = float(os.getenv("AUDIT_TIMEOUT", "3.0"))

# Local audit files (JSONL provider and gateway fallback)
LOG_DIR = Path(os.getenv("LOG_DIR", "./logs"))
AUDIT_LOG_FILE = LOG_DIR / "audit_events.jsonl"
FALLBACK_LOG_FILE = LOG_DIR / "audit_fallback.jsonl"

DEFAULT_EVENT_TYPE_TEMPLATE = "{verb} {url}"


class Configuration:
    """Global audit switch and default data provider."""
    AUDIT_DISABLED: bool = not AUDIT_ENABLED
    data_provider: Optional["AuditDataProvider"] = None
    
    @classmethod
    def disable(cls) -> None:
        cls.AUDIT_DISABLED = True
    
    @classmethod
    def enable(cls) -> None:
        cls.AUDIT_DISABLED = False
    
    @classmethod
    def setup(cls, data_provider: "AuditDataProvider") -> None:
        """Set the provider used by scopes created without an explicit one."""
        cls.data_provider = data_provider
    
    @classmethod
    def get_data_provider(cls) -> "AuditDataProvider":
        if cls.data_provider is None:
            from .providers.logging import LoggingDataProvider
            cls.data_provider = LoggingDataProvider()
        return cls.data_provider
    
    @classmethod
    def reset(cls) -> None:
        """Restore the environment-derived defaults."""
        cls.AUDIT_DISABLED = not AUDIT_ENABLED
        cls.data_provider = None
