"""
Gateway Data Provider
=====================
Sends audit events through the Security Gateway to the Audit Log Service.

Features:
- HMAC-signed requests
- Circuit breaker to avoid repeated timeout delays
- Local file fallback when the audit service is unavailable
"""

import hashlib
import hmac
import json
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

import anyio
import httpx
import structlog

from ..config import (
    AUDIT_TIMEOUT,
    FALLBACK_LOG_FILE,
    GATEWAY_URL,
    SERVICE_NAME,
    SERVICE_SECRET,
)
from ..exceptions import AuditPersistenceError
from ..models import AuditEvent
from .base import AuditDataProvider

logger = structlog.get_logger(__name__)

EVENTS_PATH = "/api/v1/audit/events"


class GatewayDataProvider(AuditDataProvider):
    """
    Posts each event to the gateway audit endpoint.

    If the service is unavailable:
    1. Write the event to the local fallback file for later replay
    2. Skip the gateway until the health check interval has passed

    With ``fallback_file=None`` failures raise AuditPersistenceError instead.
    """

    name = "gateway"

    def __init__(
        self,
        gateway_url: str = None,
        service_name: str = None,
        service_secret: str = None,
        timeout: float = None,
        fallback_file: Optional[Union[str, Path]] = FALLBACK_LOG_FILE,
        health_check_interval: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.gateway_url = gateway_url or GATEWAY_URL
        self.service_name = service_name or SERVICE_NAME
        self.service_secret = service_secret if service_secret is not None else SERVICE_SECRET
        self.timeout = timeout if timeout is not None else AUDIT_TIMEOUT
        self.fallback_file = Path(fallback_file) if fallback_file else None
        self.health_check_interval = health_check_interval
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._service_healthy = True
        self._last_health_check = 0.0
        self._fallback_lock = anyio.Lock()

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.gateway_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    def _sign(self, timestamp: str, body: str) -> str:
        if not self.service_secret:
            logger.warning("audit_gateway_secret_missing", service=self.service_name)
            return ""
        body_hash = hashlib.sha256(body.encode()).hexdigest()
        message = f"{self.service_name}:{timestamp}:{body_hash}"
        return hmac.new(self.service_secret.encode(), message.encode(), hashlib.sha256).hexdigest()

    def _request_id(self, event: AuditEvent) -> str:
        if event.action is not None and event.action.trace_id:
            return event.action.trace_id
        return event.event_id

    async def insert_event(self, event: AuditEvent) -> str:
        current_time = time.monotonic()

        # Circuit breaker: skip service call if recently unhealthy
        if not self._service_healthy:
            if current_time - self._last_health_check < self.health_check_interval:
                return await self._fail(event, "circuit_breaker_open")
            self._last_health_check = current_time

        timestamp = datetime.now(timezone.utc).isoformat()
        body = self.serialize(event)
        headers = {
            "Content-Type": "application/json",
            "X-Service-Name": self.service_name,
            "X-Service-Timestamp": timestamp,
            "X-Service-Signature": self._sign(timestamp, body),
            "X-Request-ID": self._request_id(event),
        }

        try:
            client = await self._get_client()
            response = await client.post(EVENTS_PATH, content=body, headers=headers)
        except httpx.HTTPError as e:
            self._mark_unhealthy(current_time)
            logger.warning("audit_gateway_unavailable", error=str(e), event_id=event.event_id)
            return await self._fail(event, str(e))

        if response.status_code >= 400:
            self._mark_unhealthy(current_time)
            logger.warning(
                "audit_gateway_rejected",
                status=response.status_code,
                event_id=event.event_id,
            )
            return await self._fail(event, f"service_error_{response.status_code}")

        self._service_healthy = True
        return event.event_id

    def _mark_unhealthy(self, current_time: float) -> None:
        self._service_healthy = False
        self._last_health_check = current_time

    async def _fail(self, event: AuditEvent, reason: str) -> str:
        if self.fallback_file is None:
            raise AuditPersistenceError(reason, provider=self.name, event_id=event.event_id)
        async with self._fallback_lock:
            await anyio.to_thread.run_sync(self._log_to_fallback, event, reason)
        return event.event_id

    def _log_to_fallback(self, event: AuditEvent, reason: str) -> None:
        """Log to local file for later replay."""
        fallback_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": self.service_name,
            "fallback_reason": reason,
            "event": event.to_dict(),
        }
        try:
            self.fallback_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.fallback_file, "a", encoding="utf-8") as f:
                f.write(json.dumps(fallback_entry, default=str) + "\n")
        except OSError as e:
            raise AuditPersistenceError(
                f"Failed to write audit fallback: {e}",
                provider=self.name,
                event_id=event.event_id,
            ) from e

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
