"""
Audit Event - structured record of one security decision
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional


class AuditAction:
    """Enumeration of auditable decision points"""

    # Identity resolution
    IDENTITY_REJECTED = "identity_rejected"

    # Authorization
    PERMISSION_DENIED = "permission_denied"
    SENSITIVE_ACCESS = "sensitive_access"

    # Scope
    SCOPE_VIOLATION = "scope_violation"

    # Delegation
    DELEGATED_ACTION = "delegated_action"

    # Integrity
    STRUCTURAL_INTEGRITY_FAILURE = "structural_integrity_failure"


class AuditOutcome:
    ALLOWED = "allowed"
    DENIED = "denied"
    FAILED = "failed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _serialize(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Mapping):
        return {k: _serialize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_serialize(v) for v in value]
    return value


@dataclass(frozen=True, slots=True)
class AuditEvent:
    """
    Immutable audit envelope.

    `actor_id` is always the identity that made the request (a delegate
    stays actor-of-record even when acting on its sponsor's authority).
    `sequence` is assigned by the emitter, per request, in issue order.
    """
    actor_id: Optional[str]
    action: str
    entity_type: str
    entity_id: Optional[str]
    outcome: str
    reason: Optional[str] = None
    metadata: Mapping[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=_utcnow)
    correlation_id: Optional[str] = None
    sequence: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "actor_id": self.actor_id,
            "action": self.action,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "outcome": self.outcome,
            "reason": self.reason,
            "metadata": _serialize(self.metadata),
            "timestamp": self.timestamp.isoformat(),
            "correlation_id": self.correlation_id,
            "sequence": self.sequence,
        }
