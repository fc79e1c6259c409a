"""
Descendant Scope Resolver

Computes the set of tenant ids an identity may see or manage.
"""
from __future__ import annotations

from collections import deque
from typing import Iterable, Optional, assert_never

from src.access.application.context import RequestContext
from src.access.domain.catalog import PermissionCatalog
from src.access.domain.exceptions import HierarchyCycleError, TraversalAborted
from src.access.domain.identity import DelegateIdentity, Identity, RootIdentity, TenantIdentity
from src.access.domain.protocols import IHierarchyStore, IIdentityStore
from src.access.domain.types import IdentityStatus, ScopeMode
from src.shared.logging import get_logger

logger = get_logger(__name__)


class DescendantScopeResolver:
    """
    Tenant scope = tenants reachable over child edges (breadth-first, explicit
    queue, visited set). A node reached twice means the store holds a cycle
    or a multi-parent node; traversal stops with HierarchyCycleError.

    Root scope is not a traversal: it is every tenant whose role is not the
    catalog's top admin role. Delegates borrow their sponsor's scope.
    """

    def __init__(
        self,
        hierarchy: IHierarchyStore,
        identities: IIdentityStore,
        catalog: PermissionCatalog,
    ) -> None:
        self._hierarchy = hierarchy
        self._identities = identities
        self._catalog = catalog

    async def scope(
        self,
        identity: Identity,
        mode: ScopeMode,
        *,
        context: Optional[RequestContext] = None,
        active_only: bool = False,
    ) -> frozenset[str]:
        match identity:
            case RootIdentity():
                result = await self._root_scope(identity, context)
            case TenantIdentity():
                result = await self._tenant_scope(identity.id, mode, context)
            case DelegateIdentity():
                return await self.scope(identity.sponsor, mode, context=context, active_only=active_only)
            case _:
                assert_never(identity)

        if active_only:
            result = await self._only_active(identity.id, result, context)
        return result

    async def descendants(self, start_id: str, *, context: Optional[RequestContext] = None) -> frozenset[str]:
        """Every id strictly below `start_id`, each visited once."""
        visited: set[str] = {start_id}
        queue: deque[str] = deque([start_id])

        while queue:
            if context is not None and context.aborted:
                logger.info("Descendant traversal aborted", start_id=start_id, visited=len(visited))
                raise TraversalAborted(start_id, len(visited))

            parent = queue.popleft()
            for child in await self._hierarchy.find_children(parent):
                if child in visited:
                    logger.error(
                        "Hierarchy cycle detected",
                        start_id=start_id,
                        node_id=child,
                        via_parent=parent,
                    )
                    raise HierarchyCycleError(start_id, child, parent)
                visited.add(child)
                queue.append(child)

        visited.discard(start_id)
        return frozenset(visited)

    async def _tenant_scope(
        self,
        tenant_id: str,
        mode: ScopeMode,
        context: Optional[RequestContext],
    ) -> frozenset[str]:
        if context is not None:
            cached = context.cached_scope(tenant_id, mode)
            if cached is not None:
                return cached

        below = await self.descendants(tenant_id, context=context)
        match mode:
            case ScopeMode.DESCENDANTS_ONLY:
                result = below
            case ScopeMode.SELF_AND_DESCENDANTS:
                result = below | {tenant_id}
            case _:
                raise ValueError(f"Unknown scope mode: {mode!r}")

        if context is not None:
            context.remember_scope(tenant_id, mode, result)
        return result

    async def _root_scope(self, identity: RootIdentity, context: Optional[RequestContext]) -> frozenset[str]:
        # Root has no tree position: both modes yield the same set
        if context is not None:
            cached = context.cached_scope(identity.id, ScopeMode.DESCENDANTS_ONLY)
            if cached is not None:
                return cached

        ids = await self._hierarchy.find_tenants_excluding_role(self._catalog.top_admin_role)
        result = frozenset(ids) - {identity.id}

        if context is not None:
            context.remember_scope(identity.id, ScopeMode.DESCENDANTS_ONLY, result)
        return result

    async def _only_active(
        self,
        owner_id: str,
        ids: Iterable[str],
        context: Optional[RequestContext],
    ) -> frozenset[str]:
        """Drop suspended tenants; their descendants were already collected."""
        active: set[str] = set()
        for tenant_id in ids:
            if context is not None and context.aborted:
                raise TraversalAborted(owner_id, len(active))
            record = await self._identities.find_tenant(tenant_id)
            if record is not None and record.status is IdentityStatus.ACTIVE:
                active.add(tenant_id)
        return frozenset(active)
