"""
Request-scoped state: correlation id, abort signal and per-request memo.

A RequestContext lives exactly as long as one inbound request and is then
discarded; nothing in it is shared across requests.
"""
from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from typing import Optional

from src.access.domain.permissions import PermissionSet
from src.access.domain.types import ScopeMode


@dataclass
class RequestContext:
    correlation_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    _abort: asyncio.Event = field(default_factory=asyncio.Event, repr=False)
    _scopes: dict[tuple[str, ScopeMode], frozenset[str]] = field(default_factory=dict, repr=False)
    _permissions: dict[tuple[str, str], PermissionSet] = field(default_factory=dict, repr=False)
    _audit_sequence: int = field(default=0, repr=False)

    # ---- abort ---------------------------------------------------------------

    def abort(self) -> None:
        """Signal that the inbound request was aborted."""
        self._abort.set()

    @property
    def aborted(self) -> bool:
        return self._abort.is_set()

    # ---- memo ----------------------------------------------------------------

    def cached_scope(self, subject_id: str, mode: ScopeMode) -> Optional[frozenset[str]]:
        return self._scopes.get((subject_id, mode))

    def remember_scope(self, subject_id: str, mode: ScopeMode, scope: frozenset[str]) -> None:
        self._scopes[(subject_id, mode)] = scope

    def cached_permissions(self, subject_id: str, service_id: str) -> Optional[PermissionSet]:
        return self._permissions.get((subject_id, service_id))

    def remember_permissions(self, subject_id: str, service_id: str, permissions: PermissionSet) -> None:
        self._permissions[(subject_id, service_id)] = permissions

    # ---- audit ordering ------------------------------------------------------

    def next_audit_sequence(self) -> int:
        self._audit_sequence += 1
        return self._audit_sequence
