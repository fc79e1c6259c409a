"""
Access bounded context: identity resolution and access control for the
agent/distributor hierarchy.
"""
from src.access.application import AccessControl, Credential, RequestContext
from src.access.domain import (
    Capability,
    DelegateIdentity,
    Identity,
    IdentityKind,
    PermissionCatalog,
    PermissionOverride,
    PermissionSet,
    RootIdentity,
    ScopeMode,
    TenantIdentity,
)
from src.shared.exceptions import AuthenticationError, AuthorizationDenied

__all__ = [
    "AccessControl",
    "AuthenticationError",
    "AuthorizationDenied",
    "Capability",
    "Credential",
    "DelegateIdentity",
    "Identity",
    "IdentityKind",
    "PermissionCatalog",
    "PermissionOverride",
    "PermissionSet",
    "RequestContext",
    "RootIdentity",
    "ScopeMode",
    "TenantIdentity",
]
