"""
Audit Emitter - best-effort delivery of security-decision events

Handles sequencing and delivery so that callers never wait on, or fail
because of, the audit sink.
"""
from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import Any, Dict, Optional

from src.access.application.context import RequestContext
from src.access.domain.audit import AuditEvent
from src.access.domain.exceptions import AuditEmissionFailure
from src.access.domain.protocols import IAuditSink
from src.shared.logging import get_logger, log_security_event

logger = get_logger(__name__)


class AuditEmitter:
    """
    Fire-and-forget emitter.

    - `emit` schedules delivery and returns immediately.
    - Deliveries sharing a correlation id are chained, so the sink sees one
      request's events in issue order.
    - Sink errors and timeouts become AuditEmissionFailure, are logged and
      swallowed.
    """

    def __init__(
        self,
        sink: Optional[IAuditSink],
        *,
        timeout_seconds: float = 2.0,
        enabled: bool = True,
    ) -> None:
        self._sink = sink
        self._timeout = timeout_seconds
        self._enabled = enabled and sink is not None
        self._tails: Dict[str, asyncio.Task[None]] = {}
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def enabled(self) -> bool:
        return self._enabled

    def emit(
        self,
        *,
        actor_id: Optional[str],
        action: str,
        entity_type: str,
        entity_id: Optional[str],
        outcome: str,
        reason: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        context: Optional[RequestContext] = None,
    ) -> Optional[AuditEvent]:
        """Build, sequence and schedule one event. Never raises."""
        event = AuditEvent(
            actor_id=actor_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            outcome=outcome,
            reason=reason,
            metadata=metadata or {},
        )
        if context is not None:
            event = replace(event, correlation_id=context.correlation_id, sequence=context.next_audit_sequence())
        self.submit(event)
        return event

    def submit(self, event: AuditEvent) -> None:
        if not self._enabled:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("Audit event dropped: no running event loop", action=event.action)
            return

        # context-less events are unrelated to each other and are not chained
        key = event.correlation_id or f"event:{id(event)}"
        previous = self._tails.get(key)
        task = loop.create_task(self._deliver(event, previous))
        self._tails[key] = task
        self._pending.add(task)
        task.add_done_callback(lambda t, k=key: self._forget(t, k))

    async def flush(self) -> None:
        """Wait for outstanding deliveries (shutdown, tests)."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _deliver(self, event: AuditEvent, previous: Optional[asyncio.Task[None]]) -> None:
        if previous is not None:
            # ordering only; the previous delivery already handled its own failure
            await asyncio.gather(previous, return_exceptions=True)
        try:
            await asyncio.wait_for(self._sink.emit_audit_event(event), timeout=self._timeout)
        except Exception as exc:
            failure = AuditEmissionFailure(
                f"Audit delivery failed for {event.action}",
                details={"error_type": exc.__class__.__name__, "error": str(exc)},
            )
            log_security_event(
                "audit_emission_failure",
                actor_id=event.actor_id,
                outcome=event.outcome,
                details={"action": event.action, **failure.details},
                level="warning",
                correlation_id=event.correlation_id,
            )

    def _forget(self, task: asyncio.Task[None], key: str) -> None:
        self._pending.discard(task)
        if self._tails.get(key) is task:
            del self._tails[key]
