"""
Access Control Facade

The single entry point business features consult: resolve the caller,
check capabilities, compute visible scope, attribute delegated actions.
Typed failures leaving this module are AuthenticationError and
AuthorizationDenied only; structural faults are logged, audited and
rendered as a generic denial.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Optional, Sequence, assert_never

from src.access.application.audit_emitter import AuditEmitter
from src.access.application.context import RequestContext
from src.access.application.delegation import Attribution, DelegationBridge, attribution
from src.access.application.identity_resolver import Credential, IdentityResolver
from src.access.application.permission_calculator import Decision, EffectivePermissionCalculator
from src.access.application.scope_resolver import DescendantScopeResolver
from src.access.domain.audit import AuditAction, AuditOutcome
from src.access.domain.catalog import PermissionCatalog
from src.access.domain.exceptions import StructuralIntegrityError, TraversalAborted
from src.access.domain.identity import DelegateIdentity, Identity, RootIdentity, TenantIdentity
from src.access.domain.permissions import PermissionSet
from src.access.domain.protocols import (
    IAccessStore,
    IAuditSink,
    IHierarchyStore,
    IIdentityStore,
    IOverrideStore,
    IRoleCatalog,
)
from src.access.domain.types import Capability, ScopeMode
from src.shared.config import Settings, get_settings
from src.shared.exceptions import AuthenticationError, AuthorizationDenied
from src.shared.logging import bind_request_context, get_logger, log_security_event

logger = get_logger(__name__)


def build_catalog(settings: Settings) -> PermissionCatalog:
    """Catalog from PERMISSION_CATALOG_PATH when set, else from plain settings."""
    if settings.permission_catalog_path is not None:
        catalog = PermissionCatalog.from_json_file(settings.permission_catalog_path)
        logger.info("Permission catalog loaded", path=str(settings.permission_catalog_path),
                    services=len(catalog.services))
        return catalog
    return PermissionCatalog(top_admin_role=settings.top_admin_role, strict=settings.strict_catalog)


class AccessControl:
    """
    Long-lived facade; holds no per-request state. Pass a RequestContext
    (from `new_context()`) to memoise within one request, order its audit
    events and make traversals abortable.
    """

    def __init__(
        self,
        *,
        identities: IIdentityStore,
        hierarchy: IHierarchyStore,
        roles: IRoleCatalog,
        overrides: IOverrideStore,
        audit_sink: Optional[IAuditSink] = None,
        catalog: Optional[PermissionCatalog] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._catalog = catalog or build_catalog(self._settings)
        self._roles = roles
        self._identities = identities
        self._emitter = AuditEmitter(
            audit_sink,
            timeout_seconds=self._settings.audit_timeout_seconds,
            enabled=self._settings.audit_enabled,
        )
        self._resolver = IdentityResolver(identities)
        self._calculator = EffectivePermissionCalculator(roles, overrides, self._catalog)
        self._scopes = DescendantScopeResolver(hierarchy, identities, self._catalog)
        self._delegation = DelegationBridge(self._emitter)

    @classmethod
    def from_store(
        cls,
        store: IAccessStore,
        audit_sink: Optional[IAuditSink] = None,
        **kwargs: Any,
    ) -> AccessControl:
        return cls(
            identities=store,
            hierarchy=store,
            roles=store,
            overrides=store,
            audit_sink=audit_sink,
            **kwargs,
        )

    @property
    def catalog(self) -> PermissionCatalog:
        return self._catalog

    @property
    def emitter(self) -> AuditEmitter:
        return self._emitter

    def new_context(self, correlation_id: Optional[str] = None) -> RequestContext:
        return RequestContext(correlation_id=correlation_id) if correlation_id else RequestContext()

    async def flush(self) -> None:
        await self._emitter.flush()

    # ---- identity ----------------------------------------------------------

    async def resolve_identity(
        self,
        credential: Credential,
        *,
        context: Optional[RequestContext] = None,
    ) -> Identity:
        try:
            identity = await self._resolver.resolve(credential)
        except AuthenticationError as exc:
            reason = (exc.details or {}).get("reason", exc.code)
            log_security_event("identity_rejected", actor_id=credential.subject_id, outcome=AuditOutcome.DENIED,
                               details={"reason": reason})
            self._audit(context, credential.subject_id, AuditAction.IDENTITY_REJECTED, "identity",
                        credential.subject_id, AuditOutcome.DENIED, reason,
                        {"kind_hint": credential.kind_hint.value if credential.kind_hint else None})
            raise
        except StructuralIntegrityError as exc:
            self._integrity_failure(context, credential.subject_id, "identity", credential.subject_id, exc)
            raise AuthenticationError("Unauthorized: identity could not be resolved",
                                      details={"reason": "unresolvable"}) from None

        bind_request_context(actor_id=identity.id, identity_kind=identity.kind.value)
        return identity

    # ---- permissions -------------------------------------------------------

    async def effective_permissions(
        self,
        identity: Identity,
        service_id: str,
        *,
        context: Optional[RequestContext] = None,
    ) -> PermissionSet:
        return await self._calculator.permissions(identity, service_id, context=context)

    async def authorize(
        self,
        identity: Identity,
        service_id: str,
        capability: Capability,
        *,
        amount: Optional[Decimal] = None,
        context: Optional[RequestContext] = None,
    ) -> bool:
        decision = await self._calculator.evaluate(identity, service_id, capability, amount=amount, context=context)
        self._audit_decision(identity, decision, context, amount)
        return decision.allowed

    async def authorize_all(
        self,
        identity: Identity,
        service_id: str,
        capabilities: Sequence[Capability],
        *,
        context: Optional[RequestContext] = None,
    ) -> bool:
        decision = await self._calculator.evaluate_all(identity, service_id, capabilities, context=context)
        self._audit_decision(identity, decision, context)
        return decision.allowed

    async def require(
        self,
        identity: Identity,
        service_id: str,
        *capabilities: Capability,
        amount: Optional[Decimal] = None,
        context: Optional[RequestContext] = None,
    ) -> Decision:
        """Like authorize_all, but raises AuthorizationDenied on denial."""
        decision = await self._calculator.evaluate_all(
            identity, service_id, capabilities, amount=amount, context=context
        )
        self._audit_decision(identity, decision, context, amount)
        if not decision.allowed:
            raise AuthorizationDenied(
                f"Permission denied for service: {service_id}",
                reason=decision.reason.value,
                details={
                    "service_id": service_id,
                    "capabilities": [c.value for c in decision.capabilities],
                    "reason": decision.reason.value,
                },
            )
        return decision

    # ---- roles -------------------------------------------------------------

    @staticmethod
    def has_role(identity: Identity, *role_ids: str) -> bool:
        """Root always passes; a delegate is judged on its sponsor's role."""
        match identity:
            case RootIdentity():
                return True
            case TenantIdentity():
                return identity.role_id in role_ids
            case DelegateIdentity():
                return AccessControl.has_role(identity.sponsor, *role_ids)
            case _:
                assert_never(identity)

    def require_roles(
        self,
        identity: Identity,
        *role_ids: str,
        context: Optional[RequestContext] = None,
    ) -> None:
        """Raise AuthorizationDenied unless the caller holds one of `role_ids`."""
        if not role_ids:
            raise ValueError("require_roles needs at least one role")
        if self.has_role(identity, *role_ids):
            return
        metadata: Dict[str, Any] = {"identity_kind": identity.kind.value, "required_roles": list(role_ids)}
        if isinstance(identity, DelegateIdentity):
            metadata["effective_authority_id"] = identity.sponsor_id
        self._audit(context, identity.id, AuditAction.PERMISSION_DENIED, "role", None,
                    AuditOutcome.DENIED, "role_not_allowed", metadata)
        logger.warning("Access denied - role not allowed", subject_id=identity.id,
                       required_roles=list(role_ids))
        raise AuthorizationDenied(
            "Insufficient role",
            reason="role_not_allowed",
            details={"required_roles": list(role_ids), "reason": "role_not_allowed"},
        )

    # ---- scope -------------------------------------------------------------

    async def get_accessible_scope(
        self,
        identity: Identity,
        mode: ScopeMode = ScopeMode.SELF_AND_DESCENDANTS,
        *,
        context: Optional[RequestContext] = None,
        active_only: bool = False,
    ) -> frozenset[str]:
        try:
            return await self._scopes.scope(identity, mode, context=context, active_only=active_only)
        except StructuralIntegrityError as exc:
            self._integrity_failure(context, identity.id, "hierarchy", identity.id, exc)
            raise AuthorizationDenied("Scope unavailable", reason="structural_integrity") from None
        except TraversalAborted as exc:
            logger.info("Scope computation aborted", subject_id=identity.id, **exc.details)
            raise AuthorizationDenied("Scope unavailable", reason="aborted") from None

    async def ensure_in_scope(
        self,
        identity: Identity,
        target_id: str,
        *,
        entity_type: str = "tenant",
        context: Optional[RequestContext] = None,
    ) -> None:
        """
        Raise a (by default concealed) AuthorizationDenied when target is out of scope.

        A target that is not a tenant is looked up as a delegate; delegates
        sponsored by the caller or by a tenant in its scope are in scope.
        """
        scope = await self.get_accessible_scope(identity, ScopeMode.SELF_AND_DESCENDANTS, context=context)
        if target_id in scope:
            return
        sponsor_id = await self._delegate_sponsor_id(target_id)
        if sponsor_id is not None and sponsor_id in scope | {attribution(identity).effective_authority_id}:
            return
        self._audit(context, identity.id, AuditAction.SCOPE_VIOLATION, entity_type, target_id,
                    AuditOutcome.DENIED, "outside_scope", {"identity_kind": identity.kind.value})
        log_security_event("scope_violation", actor_id=identity.id, outcome=AuditOutcome.DENIED,
                           details={"target_id": target_id, "entity_type": entity_type}, level="warning")
        raise AuthorizationDenied(
            "Target outside accessible scope",
            reason="outside_scope",
            conceal=self._settings.conceal_scope_violations,
        )

    async def can_manage(
        self,
        identity: Identity,
        target_id: str,
        *,
        context: Optional[RequestContext] = None,
    ) -> bool:
        """
        True when target is strictly below the actor in the tree and its role
        ranks strictly below the actor's. Root manages every non-admin tenant;
        a delegate manages whatever its sponsor manages. A delegate target is
        managed by its sponsor and by whoever manages that sponsor.
        """
        match identity:
            case DelegateIdentity():
                return await self.can_manage(identity.sponsor, target_id, context=context)
            case RootIdentity() | TenantIdentity():
                pass
            case _:
                assert_never(identity)

        scope = await self.get_accessible_scope(identity, ScopeMode.DESCENDANTS_ONLY, context=context)
        if target_id not in scope:
            sponsor_id = await self._delegate_sponsor_id(target_id)
            if sponsor_id is None:
                return False
            # sponsors are never delegates, so this recurses at most once
            return sponsor_id == identity.id or await self.can_manage(identity, sponsor_id, context=context)
        if isinstance(identity, RootIdentity):
            return True

        target = await self._identities.find_tenant(target_id)
        if target is None:
            return False
        actor_role = await self._roles.find_role(identity.role_id)
        target_role = await self._roles.find_role(target.role_id)
        if actor_role is None or target_role is None:
            logger.warning("Role missing for manage check", actor_role=identity.role_id, target_role=target.role_id)
            return False
        return actor_role.can_manage(target_role)

    async def _delegate_sponsor_id(self, target_id: str) -> Optional[str]:
        record = await self._identities.find_delegate(target_id)
        return record.sponsor_id if record is not None else None

    # ---- delegation --------------------------------------------------------

    def with_delegation(
        self,
        identity: Identity,
        action: str,
        *,
        entity_type: str = "identity",
        entity_id: Optional[str] = None,
        context: Optional[RequestContext] = None,
    ) -> str:
        return self._delegation.with_delegation(
            identity, action, entity_type=entity_type, entity_id=entity_id, context=context
        )

    @staticmethod
    def attribution(identity: Identity) -> Attribution:
        return attribution(identity)

    # ---- audit helpers -----------------------------------------------------

    def _audit_decision(
        self,
        identity: Identity,
        decision: Decision,
        context: Optional[RequestContext],
        amount: Optional[Decimal] = None,
    ) -> None:
        metadata: Dict[str, Any] = {
            "identity_kind": identity.kind.value,
            "capabilities": [c.value for c in decision.capabilities],
        }
        if amount is not None:
            metadata["amount"] = str(amount)
        if isinstance(identity, DelegateIdentity):
            metadata["effective_authority_id"] = identity.sponsor_id

        if not decision.allowed:
            self._audit(context, identity.id, AuditAction.PERMISSION_DENIED, "service", decision.service_id,
                        AuditOutcome.DENIED, decision.reason.value, metadata)
        elif any(self._catalog.is_sensitive(decision.service_id, c) for c in decision.capabilities):
            self._audit(context, identity.id, AuditAction.SENSITIVE_ACCESS, "service", decision.service_id,
                        AuditOutcome.ALLOWED, decision.reason.value, metadata)

    def _integrity_failure(
        self,
        context: Optional[RequestContext],
        actor_id: Optional[str],
        entity_type: str,
        entity_id: Optional[str],
        exc: StructuralIntegrityError,
    ) -> None:
        logger.error("Structural integrity failure", error_type=exc.__class__.__name__,
                     error=exc.message, **exc.details)
        self._audit(context, actor_id, AuditAction.STRUCTURAL_INTEGRITY_FAILURE, entity_type, entity_id,
                    AuditOutcome.FAILED, exc.__class__.__name__, dict(exc.details))

    def _audit(
        self,
        context: Optional[RequestContext],
        actor_id: Optional[str],
        action: str,
        entity_type: str,
        entity_id: Optional[str],
        outcome: str,
        reason: Optional[str],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._emitter.emit(
            actor_id=actor_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            outcome=outcome,
            reason=reason,
            metadata=metadata,
            context=context,
        )
