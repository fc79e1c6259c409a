import pytest

from src.access.application.identity_resolver import Credential, IdentityResolver
from src.access.domain.exceptions import DuplicateIdentityError
from src.access.domain.identity import (
    DelegateIdentity,
    DelegateRecord,
    RootIdentity,
    RootRecord,
    TenantIdentity,
    TenantRecord,
)
from src.access.domain.types import PROBE_ORDER, IdentityKind, IdentityStatus
from src.shared.exceptions import AuthenticationError


class RecordingStore:
    """Wraps the in-memory store and records which lookups ran, in order."""

    def __init__(self, inner):
        self._inner = inner
        self.calls = []

    async def find_root(self, subject_id):
        self.calls.append(("root", subject_id))
        return await self._inner.find_root(subject_id)

    async def find_delegate(self, subject_id):
        self.calls.append(("delegate", subject_id))
        return await self._inner.find_delegate(subject_id)

    async def find_tenant(self, subject_id):
        self.calls.append(("tenant", subject_id))
        return await self._inner.find_tenant(subject_id)


def test_probe_order_is_root_delegate_tenant():
    assert PROBE_ORDER == (IdentityKind.ROOT, IdentityKind.DELEGATE, IdentityKind.TENANT)


@pytest.mark.asyncio
async def test_resolves_each_kind_without_hint(store):
    resolver = IdentityResolver(store)
    assert isinstance(await resolver.resolve(Credential("root")), RootIdentity)
    tenant = await resolver.resolve(Credential("T1"))
    assert isinstance(tenant, TenantIdentity)
    assert tenant.role_id == "DISTRIBUTOR" and tenant.parent_id == "R"
    delegate = await resolver.resolve(Credential("E"))
    assert isinstance(delegate, DelegateIdentity)
    assert delegate.sponsor_id == "R"
    assert isinstance(delegate.sponsor, TenantIdentity)


@pytest.mark.asyncio
async def test_unhinted_resolution_probes_every_store_in_order(store):
    recording = RecordingStore(store)
    await IdentityResolver(recording).resolve(Credential("T1"))
    assert recording.calls == [("root", "T1"), ("delegate", "T1"), ("tenant", "T1")]


@pytest.mark.asyncio
async def test_hint_reads_only_matching_store(store):
    recording = RecordingStore(store)
    identity = await IdentityResolver(recording).resolve(Credential("T2", IdentityKind.TENANT))
    assert identity.id == "T2"
    assert recording.calls == [("tenant", "T2")]


@pytest.mark.asyncio
async def test_hint_for_wrong_store_fails(store):
    with pytest.raises(AuthenticationError):
        await IdentityResolver(store).resolve(Credential("T2", IdentityKind.ROOT))


@pytest.mark.asyncio
async def test_duplicate_identity_across_stores_is_structural(store):
    store.add_root(RootRecord("T1"))
    with pytest.raises(DuplicateIdentityError) as exc_info:
        await IdentityResolver(store).resolve(Credential("T1"))
    assert exc_info.value.kinds == ["ROOT", "TENANT"]


@pytest.mark.asyncio
async def test_unknown_subject_fails(store):
    with pytest.raises(AuthenticationError) as exc_info:
        await IdentityResolver(store).resolve(Credential("nobody"))
    assert exc_info.value.details["reason"] == "unknown_subject"


@pytest.mark.asyncio
async def test_blank_subject_fails(store):
    with pytest.raises(AuthenticationError):
        await IdentityResolver(store).resolve(Credential("  "))


@pytest.mark.asyncio
async def test_suspended_subject_fails(store):
    store.set_status("T1", IdentityStatus.SUSPENDED)
    with pytest.raises(AuthenticationError) as exc_info:
        await IdentityResolver(store).resolve(Credential("T1"))
    assert exc_info.value.code == "account_inactive"


@pytest.mark.asyncio
async def test_delegate_of_suspended_sponsor_fails(store):
    store.set_status("R", IdentityStatus.SUSPENDED)
    with pytest.raises(AuthenticationError) as exc_info:
        await IdentityResolver(store).resolve(Credential("E"))
    assert exc_info.value.details["reason"] == "sponsor_inactive"


@pytest.mark.asyncio
async def test_delegate_of_missing_sponsor_fails(store):
    store.add_delegate(DelegateRecord("G", department_id="SUPPORT", sponsor_id="ghost", sponsor_kind=IdentityKind.TENANT))
    with pytest.raises(AuthenticationError) as exc_info:
        await IdentityResolver(store).resolve(Credential("G"))
    assert exc_info.value.details["reason"] == "sponsor_missing"


@pytest.mark.asyncio
async def test_delegate_sponsored_by_root(store):
    identity = await IdentityResolver(store).resolve(Credential("F"))
    assert isinstance(identity, DelegateIdentity)
    assert isinstance(identity.sponsor, RootIdentity)


def test_delegate_cannot_sponsor_delegate():
    with pytest.raises(ValueError):
        DelegateRecord("X", department_id="D", sponsor_id="E", sponsor_kind=IdentityKind.DELEGATE)


def test_root_identity_carries_no_role_or_sponsor():
    root = RootIdentity("root")
    assert root.kind is IdentityKind.ROOT
    assert not hasattr(root, "role_id")
    assert not hasattr(root, "sponsor_id")
