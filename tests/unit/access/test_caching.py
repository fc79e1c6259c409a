import pytest

from src.access.domain.permissions import PermissionOverride, PermissionSet
from src.access.domain.types import Capability, IdentityStatus
from src.access.infrastructure.caching import CachingAccessStore, TTLCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cached(store, clock):
    return CachingAccessStore(store, TTLCache(ttl_seconds=60, clock=clock))


def test_ttl_cache_expiry(clock):
    c = TTLCache(ttl_seconds=1, clock=clock)
    c.set("k", "v")
    assert c.get("k") == "v"
    clock.now = 1.0
    assert c.get("k") != "v"
    assert len(c) == 0


def test_ttl_cache_rejects_non_positive_ttl():
    with pytest.raises(ValueError):
        TTLCache(ttl_seconds=0)


@pytest.mark.asyncio
async def test_repeated_reads_hit_the_cache(cached, store):
    await cached.find_role_defaults("DISTRIBUTOR", "bank")
    reads = store.reads
    for _ in range(3):
        assert await cached.find_role_defaults("DISTRIBUTOR", "bank") == PermissionSet.of(
            Capability.VIEW, Capability.EDIT
        )
    assert store.reads == reads


@pytest.mark.asyncio
async def test_missing_values_are_cached_too(cached, store):
    assert await cached.find_override("T1", "bank") is None
    reads = store.reads
    assert await cached.find_override("T1", "bank") is None
    assert store.reads == reads


@pytest.mark.asyncio
async def test_override_invalidation(cached, store):
    assert await cached.find_override("T1", "bank") is None
    store.set_override("T1", "bank", PermissionOverride.revoke(Capability.VIEW))
    # stale until invalidated
    assert await cached.find_override("T1", "bank") is None

    assert cached.invalidate_override("T1") == 1
    assert await cached.find_override("T1", "bank") == PermissionOverride.revoke(Capability.VIEW)


@pytest.mark.asyncio
async def test_hierarchy_invalidation(cached, store):
    assert list(await cached.find_children("T1")) == ["T2", "T3"]
    store.add_edge("T1", "T9")
    assert list(await cached.find_children("T1")) == ["T2", "T3"]
    cached.invalidate_hierarchy()
    assert list(await cached.find_children("T1")) == ["T2", "T3", "T9"]


@pytest.mark.asyncio
async def test_role_invalidation_keeps_other_roles(cached, store):
    await cached.find_role("ADMIN")
    await cached.find_role("RETAILER")
    await cached.find_role_defaults("RETAILER", "bank")
    assert cached.invalidate_role("RETAILER") == 2
    reads = store.reads
    await cached.find_role("ADMIN")
    assert store.reads == reads


@pytest.mark.asyncio
async def test_identity_reads_are_never_cached(cached, store):
    assert (await cached.find_tenant("T1")).status is IdentityStatus.ACTIVE
    store.set_status("T1", IdentityStatus.SUSPENDED)
    assert (await cached.find_tenant("T1")).status is IdentityStatus.SUSPENDED


@pytest.mark.asyncio
async def test_entries_expire(cached, store, clock):
    await cached.find_role("ADMIN")
    reads = store.reads
    clock.now = 61
    await cached.find_role("ADMIN")
    assert store.reads == reads + 1


def test_expired_entries_are_swept_on_write(clock):
    c = TTLCache(ttl_seconds=60, clock=clock)
    for n in range(1000):
        c.set(("children", f"P{n}"), [])
    clock.now = 61
    c.set(("children", "fresh"), [])
    assert len(c) == 1
    assert c.get(("children", "fresh")) == []


def test_max_entries_evicts_oldest_write(clock):
    c = TTLCache(ttl_seconds=60, clock=clock, max_entries=2)
    c.set("a", 1)
    c.set("b", 2)
    c.set("a", 10)
    c.set("c", 3)
    assert len(c) == 2
    assert c.get("b") != 2
    assert c.get("a") == 10
    assert c.get("c") == 3
