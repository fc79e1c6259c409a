"""
Access Domain Layer
Identity union, permission value objects and store contracts; no framework dependencies
"""
from src.access.domain.types import (
    Capability,
    DecisionReason,
    IdentityKind,
    IdentityStatus,
    PROBE_ORDER,
    ScopeMode,
)
from src.access.domain.permissions import PermissionOverride, PermissionSet
from src.access.domain.identity import (
    DelegateIdentity,
    DelegateRecord,
    Identity,
    Role,
    RootIdentity,
    RootRecord,
    TenantIdentity,
    TenantRecord,
)
from src.access.domain.audit import AuditAction, AuditEvent, AuditOutcome
from src.access.domain.catalog import PermissionCatalog, ServiceEntry
from src.access.domain.exceptions import (
    AuditEmissionFailure,
    DuplicateIdentityError,
    HierarchyCycleError,
    StructuralIntegrityError,
    TraversalAborted,
)

__all__ = [
    "AuditAction",
    "AuditEmissionFailure",
    "AuditEvent",
    "AuditOutcome",
    "Capability",
    "DecisionReason",
    "DelegateIdentity",
    "DelegateRecord",
    "DuplicateIdentityError",
    "HierarchyCycleError",
    "Identity",
    "IdentityKind",
    "IdentityStatus",
    "PROBE_ORDER",
    "PermissionCatalog",
    "PermissionOverride",
    "PermissionSet",
    "Role",
    "RootIdentity",
    "RootRecord",
    "ScopeMode",
    "ServiceEntry",
    "StructuralIntegrityError",
    "TenantIdentity",
    "TenantRecord",
    "TraversalAborted",
]
