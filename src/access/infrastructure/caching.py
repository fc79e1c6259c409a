"""
Cross-request caching decorator for access stores.

The core itself assumes fresh reads on every call. Deployments that want to
trade freshness for fewer reads wrap their store in CachingAccessStore and
call the matching `invalidate_*` method whenever an administrator mutates
overrides, role defaults or hierarchy edges.

Identity lookups are never cached: suspension must take effect immediately.
"""
from __future__ import annotations

import time
from typing import Any, Callable, Hashable, Optional, Sequence

from src.access.domain.identity import DelegateRecord, Role, RootRecord, TenantRecord
from src.access.domain.permissions import PermissionOverride, PermissionSet
from src.access.domain.protocols import IAccessStore
from src.shared.logging import get_logger

logger = get_logger(__name__)

_MISS = object()


class TTLCache:
    """
    Small keyed TTL cache; stores None results as well.

    Expired entries are swept on `set` at most once per TTL period, and
    `max_entries` (when given) evicts the oldest writes first.
    """

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
        max_entries: Optional[int] = None,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        if max_entries is not None and max_entries <= 0:
            raise ValueError("max_entries must be > 0")
        self._ttl = ttl_seconds
        self._clock = clock
        self._max_entries = max_entries
        self._data: dict[Hashable, tuple[float, Any]] = {}
        self._next_sweep = clock() + ttl_seconds

    def get(self, key: Hashable) -> Any:
        entry = self._data.get(key)
        if entry is None:
            return _MISS
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._data[key]
            return _MISS
        return value

    def set(self, key: Hashable, value: Any) -> None:
        now = self._clock()
        if now >= self._next_sweep:
            self._sweep(now)
        # re-insert so dict order stays oldest-write first
        self._data.pop(key, None)
        self._data[key] = (now + self._ttl, value)
        if self._max_entries is not None:
            while len(self._data) > self._max_entries:
                del self._data[next(iter(self._data))]

    def _sweep(self, now: float) -> None:
        expired = [k for k, (expires_at, _) in self._data.items() if now >= expires_at]
        for k in expired:
            del self._data[k]
        self._next_sweep = now + self._ttl
        if expired:
            logger.debug("Expired cache entries swept", removed=len(expired))

    def invalidate(self, predicate: Callable[[Hashable], bool]) -> int:
        doomed = [k for k in self._data if predicate(k)]
        for k in doomed:
            del self._data[k]
        return len(doomed)

    def clear(self) -> None:
        self._data.clear()

    def __len__(self) -> int:
        return len(self._data)


class CachingAccessStore:
    """Wraps an IAccessStore; caches role, override and edge reads for `ttl_seconds`."""

    def __init__(self, inner: IAccessStore, cache: Optional[TTLCache] = None) -> None:
        self._inner = inner
        self._cache = cache or TTLCache()

    async def _cached(self, key: tuple, load) -> Any:
        value = self._cache.get(key)
        if value is _MISS:
            value = await load()
            self._cache.set(key, value)
        return value

    # ---- identity reads (pass-through) ----------------------------------------

    async def find_root(self, subject_id: str) -> Optional[RootRecord]:
        return await self._inner.find_root(subject_id)

    async def find_delegate(self, subject_id: str) -> Optional[DelegateRecord]:
        return await self._inner.find_delegate(subject_id)

    async def find_tenant(self, subject_id: str) -> Optional[TenantRecord]:
        return await self._inner.find_tenant(subject_id)

    # ---- cached reads --------------------------------------------------------

    async def find_children(self, parent_id: str) -> Sequence[str]:
        return await self._cached(("children", parent_id), lambda: self._inner.find_children(parent_id))

    async def find_tenants_excluding_role(self, role_id: str) -> Sequence[str]:
        return await self._cached(
            ("tenants_excluding", role_id), lambda: self._inner.find_tenants_excluding_role(role_id)
        )

    async def find_role(self, role_id: str) -> Optional[Role]:
        return await self._cached(("role", role_id), lambda: self._inner.find_role(role_id))

    async def find_role_defaults(self, role_id: str, service_id: str) -> Optional[PermissionSet]:
        return await self._cached(
            ("defaults", role_id, service_id), lambda: self._inner.find_role_defaults(role_id, service_id)
        )

    async def find_override(self, subject_id: str, service_id: str) -> Optional[PermissionOverride]:
        return await self._cached(
            ("override", subject_id, service_id), lambda: self._inner.find_override(subject_id, service_id)
        )

    # ---- invalidation --------------------------------------------------------

    def invalidate_override(self, subject_id: str, service_id: Optional[str] = None) -> int:
        removed = self._cache.invalidate(
            lambda k: k[0] == "override" and k[1] == subject_id and (service_id is None or k[2] == service_id)
        )
        logger.debug("Override cache invalidated", subject_id=subject_id, service_id=service_id, removed=removed)
        return removed

    def invalidate_role(self, role_id: str) -> int:
        return self._cache.invalidate(
            lambda k: (k[0] in ("role", "defaults") and k[1] == role_id) or k[0] == "tenants_excluding"
        )

    def invalidate_hierarchy(self) -> int:
        """Edges changed (tenant created, moved or re-roled)."""
        return self._cache.invalidate(lambda k: k[0] in ("children", "tenants_excluding"))

    def clear(self) -> None:
        self._cache.clear()
