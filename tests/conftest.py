import pytest

from src.access.application.access_control import AccessControl
from src.access.domain.catalog import PermissionCatalog, ServiceEntry
from src.access.domain.identity import DelegateRecord, Role, RootRecord, TenantRecord
from src.access.domain.permissions import PermissionSet
from src.access.domain.types import Capability, IdentityKind
from src.access.infrastructure.memory_store import InMemoryAccessStore, InMemoryAuditSink
from src.shared.config import Settings

BANK = "bank"
KYC = "kyc"


@pytest.fixture
def settings() -> Settings:
    return Settings(environment="local", log_format="console", audit_timeout_seconds=0.5)


@pytest.fixture
def catalog() -> PermissionCatalog:
    return PermissionCatalog(
        top_admin_role="ADMIN",
        services={
            BANK: ServiceEntry(id=BANK, name="Bank records", sensitive_capabilities=frozenset({Capability.PROCESS})),
            KYC: ServiceEntry(id=KYC, name="KYC"),
        },
    )


@pytest.fixture
def store() -> InMemoryAccessStore:
    """
    root
    R (ADMIN) ── T1 (DISTRIBUTOR) ─┬─ T2 (RETAILER)
                                   └─ T3 (RETAILER)
    R2 (ADMIN) ── U (DISTRIBUTOR)

    E: delegate of R, department SUPPORT
    F: delegate of root, department SUPPORT
    """
    s = InMemoryAccessStore()
    for role in (
        Role("ADMIN", "ADMIN", 0),
        Role("STATE_HEAD", "STATE HEAD", 1),
        Role("MASTER_DISTRIBUTOR", "MASTER DISTRIBUTOR", 2),
        Role("DISTRIBUTOR", "DISTRIBUTOR", 3),
        Role("RETAILER", "RETAILER", 4),
    ):
        s.add_role(role)

    s.add_root(RootRecord("root"))
    s.add_tenant(TenantRecord("R", role_id="ADMIN"))
    s.add_tenant(TenantRecord("T1", role_id="DISTRIBUTOR", parent_id="R"))
    s.add_tenant(TenantRecord("T2", role_id="RETAILER", parent_id="T1"))
    s.add_tenant(TenantRecord("T3", role_id="RETAILER", parent_id="T1"))
    s.add_tenant(TenantRecord("R2", role_id="ADMIN"))
    s.add_tenant(TenantRecord("U", role_id="DISTRIBUTOR", parent_id="R2"))

    s.add_delegate(DelegateRecord("E", department_id="SUPPORT", sponsor_id="R", sponsor_kind=IdentityKind.TENANT))
    s.add_delegate(DelegateRecord("F", department_id="SUPPORT", sponsor_id="root", sponsor_kind=IdentityKind.ROOT))

    s.set_role_defaults("ADMIN", BANK, PermissionSet.of(Capability.VIEW, Capability.EDIT, Capability.SET_COMMISSION))
    s.set_role_defaults("DISTRIBUTOR", BANK, PermissionSet.of(Capability.VIEW, Capability.EDIT))
    s.set_role_defaults("RETAILER", BANK, PermissionSet.of(Capability.VIEW))
    s.set_role_defaults("SUPPORT", BANK, PermissionSet.of(Capability.VIEW, Capability.PROCESS))
    return s


@pytest.fixture
def sink() -> InMemoryAuditSink:
    return InMemoryAuditSink()


@pytest.fixture
def access(store, sink, catalog, settings) -> AccessControl:
    return AccessControl.from_store(store, sink, catalog=catalog, settings=settings)
