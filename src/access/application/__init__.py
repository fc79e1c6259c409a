"""
Access Application Layer
"""
from src.access.application.access_control import AccessControl, build_catalog
from src.access.application.audit_emitter import AuditEmitter
from src.access.application.context import RequestContext
from src.access.application.delegation import Attribution, DelegationBridge, attribution
from src.access.application.identity_resolver import Credential, IdentityResolver
from src.access.application.permission_calculator import Decision, EffectivePermissionCalculator
from src.access.application.scope_resolver import DescendantScopeResolver

__all__ = [
    "AccessControl",
    "Attribution",
    "AuditEmitter",
    "Credential",
    "Decision",
    "DelegationBridge",
    "DescendantScopeResolver",
    "EffectivePermissionCalculator",
    "IdentityResolver",
    "RequestContext",
    "attribution",
    "build_catalog",
]
