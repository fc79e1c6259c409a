"""
Store Protocols (Interfaces)

The core only reads through these; persistence technology lives elsewhere.
Every method is a potential suspend point and may raise whatever the
store client raises. The core never retries.
"""
from __future__ import annotations

from typing import Optional, Protocol, Sequence, runtime_checkable

from src.access.domain.audit import AuditEvent
from src.access.domain.identity import DelegateRecord, Role, RootRecord, TenantRecord
from src.access.domain.permissions import PermissionOverride, PermissionSet


@runtime_checkable
class IIdentityStore(Protocol):
    """One lookup per identity kind"""

    async def find_root(self, subject_id: str) -> Optional[RootRecord]:
        ...

    async def find_delegate(self, subject_id: str) -> Optional[DelegateRecord]:
        ...

    async def find_tenant(self, subject_id: str) -> Optional[TenantRecord]:
        ...


@runtime_checkable
class IHierarchyStore(Protocol):
    """Parent/child edges of the tenant forest"""

    async def find_children(self, parent_id: str) -> Sequence[str]:
        """Direct children of a tenant (order irrelevant)"""
        ...

    async def find_tenants_excluding_role(self, role_id: str) -> Sequence[str]:
        """Every tenant id whose role is not `role_id`"""
        ...


@runtime_checkable
class IRoleCatalog(Protocol):
    """Role ranks and per-service defaults (roles and departments alike)"""

    async def find_role(self, role_id: str) -> Optional[Role]:
        ...

    async def find_role_defaults(self, role_id: str, service_id: str) -> Optional[PermissionSet]:
        ...


@runtime_checkable
class IOverrideStore(Protocol):
    """Explicit grants/revokes keyed by (subject, service); subject is a role or an identity id"""

    async def find_override(self, subject_id: str, service_id: str) -> Optional[PermissionOverride]:
        ...


@runtime_checkable
class IAuditSink(Protocol):
    """Durable audit storage lives behind this"""

    async def emit_audit_event(self, event: AuditEvent) -> None:
        ...


class IAccessStore(IIdentityStore, IHierarchyStore, IRoleCatalog, IOverrideStore, Protocol):
    """Convenience union for backends that serve every read"""
