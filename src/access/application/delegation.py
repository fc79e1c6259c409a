"""
Delegation Bridge

A delegate acts on its sponsor's authority but remains the actor of record.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, assert_never

from src.access.application.audit_emitter import AuditEmitter
from src.access.application.context import RequestContext
from src.access.domain.audit import AuditAction, AuditOutcome
from src.access.domain.identity import DelegateIdentity, Identity, RootIdentity, TenantIdentity


@dataclass(frozen=True, slots=True)
class Attribution:
    """Who did it (actor) and on whose authority (owner of created records)."""
    actor_id: str
    effective_authority_id: str

    @property
    def delegated(self) -> bool:
        return self.actor_id != self.effective_authority_id


def attribution(identity: Identity) -> Attribution:
    match identity:
        case RootIdentity() | TenantIdentity():
            return Attribution(actor_id=identity.id, effective_authority_id=identity.id)
        case DelegateIdentity():
            return Attribution(actor_id=identity.id, effective_authority_id=identity.sponsor_id)
        case _:
            assert_never(identity)


class DelegationBridge:
    def __init__(self, emitter: AuditEmitter) -> None:
        self._emitter = emitter

    def with_delegation(
        self,
        identity: Identity,
        action: str,
        *,
        entity_type: str = "identity",
        entity_id: Optional[str] = None,
        context: Optional[RequestContext] = None,
    ) -> str:
        """Return the id whose authority `action` runs under; audit it when delegated."""
        attr = attribution(identity)
        if attr.delegated:
            self._emitter.emit(
                actor_id=attr.actor_id,
                action=AuditAction.DELEGATED_ACTION,
                entity_type=entity_type,
                entity_id=entity_id or attr.effective_authority_id,
                outcome=AuditOutcome.ALLOWED,
                reason=action,
                metadata={"effective_authority_id": attr.effective_authority_id, "delegated_action": action},
                context=context,
            )
        return attr.effective_authority_id
