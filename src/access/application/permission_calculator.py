"""
Effective Permission Calculator

Merges role (or department) defaults with role-level and identity-level
overrides, then, for delegates, intersects with the sponsor's effective set.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Sequence, assert_never

from src.access.application.context import RequestContext
from src.access.domain.catalog import PermissionCatalog
from src.access.domain.identity import DelegateIdentity, Identity, RootIdentity, TenantIdentity
from src.access.domain.permissions import PermissionSet
from src.access.domain.protocols import IOverrideStore, IRoleCatalog
from src.access.domain.types import Capability, DecisionReason
from src.shared.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class Decision:
    """Outcome of one permission check, with the reason recorded for audit."""
    allowed: bool
    reason: DecisionReason
    service_id: str
    capabilities: tuple[Capability, ...]
    permissions: Optional[PermissionSet] = None

    def __bool__(self) -> bool:
        return self.allowed


class EffectivePermissionCalculator:
    """
    Computes the final allow/deny per (identity, service, capability).

    Merge order for one subject, each step replacing only the fields it sets:
      1. defaults of the role (tenant) or department (delegate); all-false if absent
      2. override keyed by that role/department id
      3. override keyed by the identity id

    Delegates are then ANDed with their sponsor's effective set for the same
    service, so no override can lift a delegate above its sponsor.
    """

    def __init__(
        self,
        roles: IRoleCatalog,
        overrides: IOverrideStore,
        catalog: PermissionCatalog,
    ) -> None:
        self._roles = roles
        self._overrides = overrides
        self._catalog = catalog

    async def permissions(
        self,
        identity: Identity,
        service_id: str,
        *,
        context: Optional[RequestContext] = None,
    ) -> PermissionSet:
        match identity:
            case RootIdentity():
                return PermissionSet.full()
            case TenantIdentity() | DelegateIdentity():
                pass
            case _:
                assert_never(identity)

        if not self._catalog.admits(service_id):
            return PermissionSet.none()

        if context is not None:
            cached = context.cached_permissions(identity.id, service_id)
            if cached is not None:
                return cached

        match identity:
            case TenantIdentity():
                result = await self._merged(identity.id, identity.role_id, service_id)
            case DelegateIdentity():
                own = await self._merged(identity.id, identity.department_id, service_id)
                sponsor = await self.permissions(identity.sponsor, service_id, context=context)
                result = own.intersect(sponsor)
            case _:
                assert_never(identity)

        if context is not None:
            context.remember_permissions(identity.id, service_id, result)
        return result

    async def evaluate(
        self,
        identity: Identity,
        service_id: str,
        capability: Capability,
        *,
        amount: Optional[Decimal] = None,
        context: Optional[RequestContext] = None,
    ) -> Decision:
        return await self.evaluate_all(identity, service_id, [capability], amount=amount, context=context)

    async def evaluate_all(
        self,
        identity: Identity,
        service_id: str,
        capabilities: Sequence[Capability],
        *,
        amount: Optional[Decimal] = None,
        context: Optional[RequestContext] = None,
    ) -> Decision:
        requested = tuple(capabilities)
        if not requested:
            return Decision(False, DecisionReason.NO_CAPABILITIES_REQUESTED, service_id, requested)

        if isinstance(identity, RootIdentity):
            return Decision(True, DecisionReason.ROOT, service_id, requested, PermissionSet.full())

        if not self._catalog.admits(service_id):
            return Decision(False, DecisionReason.UNKNOWN_SERVICE, service_id, requested, PermissionSet.none())

        effective = await self.permissions(identity, service_id, context=context)
        missing = [c for c in requested if not effective.allows(c)]
        if missing:
            reason = await self._denial_reason(identity, service_id, missing, context)
            logger.debug(
                "Permission denied",
                subject_id=identity.id,
                service_id=service_id,
                missing=[c.value for c in missing],
                reason=reason.value,
            )
            return Decision(False, reason, service_id, requested, effective)

        if amount is not None and not effective.within_limit(amount):
            return Decision(False, DecisionReason.AMOUNT_EXCEEDS_LIMIT, service_id, requested, effective)

        return Decision(True, DecisionReason.GRANTED, service_id, requested, effective)

    async def _merged(self, subject_id: str, role_id: str, service_id: str) -> PermissionSet:
        base = await self._roles.find_role_defaults(role_id, service_id) or PermissionSet.none()
        for key in (role_id, subject_id):
            override = await self._overrides.find_override(key, service_id)
            if override is not None:
                base = override.apply_to(base)
        return base

    async def _denial_reason(
        self,
        identity: Identity,
        service_id: str,
        missing: list[Capability],
        context: Optional[RequestContext],
    ) -> DecisionReason:
        """Distinguish a delegate capped by its sponsor from a plain missing grant."""
        if not isinstance(identity, DelegateIdentity):
            return DecisionReason.CAPABILITY_NOT_GRANTED
        own = await self._merged(identity.id, identity.department_id, service_id)
        if all(own.allows(c) for c in missing):
            return DecisionReason.SPONSOR_LACKS_CAPABILITY
        return DecisionReason.CAPABILITY_NOT_GRANTED
