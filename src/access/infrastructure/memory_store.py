from __future__ import annotations

from collections import defaultdict
from dataclasses import replace
from typing import Optional, Sequence

from src.access.domain.audit import AuditEvent, AuditOutcome
from src.access.domain.identity import DelegateRecord, Role, RootRecord, TenantRecord
from src.access.domain.permissions import PermissionOverride, PermissionSet
from src.access.domain.types import IdentityStatus
from src.shared.logging import get_logger


class InMemoryAccessStore:
    """
    Dict-backed implementation of every access store protocol, for local/dev
    and tests. **Not for production**. Mutators are plain methods; readers are
    async like any real store client.

    Edges are kept separately from tenant records so tests can reproduce a
    corrupted store (cycles, multi-parent nodes) with `add_edge`.
    """

    def __init__(self) -> None:
        self._roots: dict[str, RootRecord] = {}
        self._tenants: dict[str, TenantRecord] = {}
        self._delegates: dict[str, DelegateRecord] = {}
        self._roles: dict[str, Role] = {}
        self._children: dict[str, list[str]] = defaultdict(list)
        self._defaults: dict[tuple[str, str], PermissionSet] = {}
        self._overrides: dict[tuple[str, str], PermissionOverride] = {}
        self.reads = 0

    # ---- mutators ------------------------------------------------------------

    def add_root(self, record: RootRecord) -> RootRecord:
        self._roots[record.id] = record
        return record

    def add_tenant(self, record: TenantRecord) -> TenantRecord:
        self._tenants[record.id] = record
        if record.parent_id is not None:
            self.add_edge(record.parent_id, record.id)
        return record

    def add_delegate(self, record: DelegateRecord) -> DelegateRecord:
        self._delegates[record.id] = record
        return record

    def add_role(self, role: Role) -> Role:
        self._roles[role.id] = role
        return role

    def add_edge(self, parent_id: str, child_id: str) -> None:
        if child_id not in self._children[parent_id]:
            self._children[parent_id].append(child_id)

    def set_status(self, subject_id: str, status: IdentityStatus) -> None:
        for table in (self._roots, self._tenants, self._delegates):
            if subject_id in table:
                record = table[subject_id]
                table[subject_id] = replace(record, status=status)

    def set_role_defaults(self, role_id: str, service_id: str, permissions: PermissionSet) -> None:
        self._defaults[(role_id, service_id)] = permissions

    def set_override(self, subject_id: str, service_id: str, override: PermissionOverride) -> None:
        self._overrides[(subject_id, service_id)] = override

    def clear_override(self, subject_id: str, service_id: str) -> None:
        self._overrides.pop((subject_id, service_id), None)

    # ---- IIdentityStore ------------------------------------------------------

    async def find_root(self, subject_id: str) -> Optional[RootRecord]:
        self.reads += 1
        return self._roots.get(subject_id)

    async def find_delegate(self, subject_id: str) -> Optional[DelegateRecord]:
        self.reads += 1
        return self._delegates.get(subject_id)

    async def find_tenant(self, subject_id: str) -> Optional[TenantRecord]:
        self.reads += 1
        return self._tenants.get(subject_id)

    # ---- IHierarchyStore -----------------------------------------------------

    async def find_children(self, parent_id: str) -> Sequence[str]:
        self.reads += 1
        return list(self._children.get(parent_id, ()))

    async def find_tenants_excluding_role(self, role_id: str) -> Sequence[str]:
        self.reads += 1
        return [t.id for t in self._tenants.values() if t.role_id != role_id]

    # ---- IRoleCatalog --------------------------------------------------------

    async def find_role(self, role_id: str) -> Optional[Role]:
        self.reads += 1
        return self._roles.get(role_id)

    async def find_role_defaults(self, role_id: str, service_id: str) -> Optional[PermissionSet]:
        self.reads += 1
        return self._defaults.get((role_id, service_id))

    # ---- IOverrideStore ------------------------------------------------------

    async def find_override(self, subject_id: str, service_id: str) -> Optional[PermissionOverride]:
        self.reads += 1
        return self._overrides.get((subject_id, service_id))


class InMemoryAuditSink:
    """Collects events in delivery order."""

    def __init__(self) -> None:
        self.events: list[AuditEvent] = []

    async def emit_audit_event(self, event: AuditEvent) -> None:
        self.events.append(event)

    def actions(self) -> list[str]:
        return [e.action for e in self.events]


class LoggingAuditSink:
    """Writes each event to the structured "audit" logger; durable storage is someone else's job."""

    def __init__(self) -> None:
        self._logger = get_logger("audit")

    async def emit_audit_event(self, event: AuditEvent) -> None:
        payload = event.to_dict()
        if event.outcome == AuditOutcome.ALLOWED:
            self._logger.info(f"Audit: {event.action}", **payload)
        else:
            self._logger.warning(f"Audit: {event.action}", **payload)
