"""
Permission value objects.

A PermissionSet is the fixed per-service capability record. A
PermissionOverride is a partial record whose set fields replace the
matching fields of whatever it is applied to.
"""
from __future__ import annotations

from dataclasses import dataclass, fields, replace
from decimal import Decimal
from typing import Optional

from src.access.domain.types import Capability


def _tighter_limit(a: Optional[Decimal], b: Optional[Decimal]) -> Optional[Decimal]:
    if a is None:
        return b
    if b is None:
        return a
    return min(a, b)


@dataclass(frozen=True, slots=True)
class PermissionSet:
    """
    Capability flags for one service.

    Absent flags are False. `amount_limit` is an optional ceiling for
    amount-bearing actions; None means no ceiling was declared.
    """
    can_view: bool = False
    can_edit: bool = False
    can_set_commission: bool = False
    can_process: bool = False
    amount_limit: Optional[Decimal] = None

    @classmethod
    def none(cls) -> PermissionSet:
        return cls()

    @classmethod
    def full(cls) -> PermissionSet:
        return cls(can_view=True, can_edit=True, can_set_commission=True, can_process=True)

    @classmethod
    def of(cls, *capabilities: Capability, amount_limit: Optional[Decimal] = None) -> PermissionSet:
        return cls(**{c.value: True for c in capabilities}, amount_limit=amount_limit)

    def allows(self, capability: Capability) -> bool:
        return bool(getattr(self, capability.value))

    def granted(self) -> frozenset[Capability]:
        return frozenset(c for c in Capability if self.allows(c))

    def intersect(self, other: PermissionSet) -> PermissionSet:
        """Capability-by-capability AND; the tighter amount ceiling wins."""
        return PermissionSet(
            can_view=self.can_view and other.can_view,
            can_edit=self.can_edit and other.can_edit,
            can_set_commission=self.can_set_commission and other.can_set_commission,
            can_process=self.can_process and other.can_process,
            amount_limit=_tighter_limit(self.amount_limit, other.amount_limit),
        )

    def within_limit(self, amount: Decimal) -> bool:
        return self.amount_limit is None or amount <= self.amount_limit

    def to_dict(self) -> dict:
        data = {c.value: self.allows(c) for c in Capability}
        data["amount_limit"] = str(self.amount_limit) if self.amount_limit is not None else None
        return data


@dataclass(frozen=True, slots=True)
class PermissionOverride:
    """
    Explicit grant/revoke for one (subject, service) pair.

    Each flag is tri-state: True grants, False revokes, None leaves the
    underlying value untouched.
    """
    can_view: Optional[bool] = None
    can_edit: Optional[bool] = None
    can_set_commission: Optional[bool] = None
    can_process: Optional[bool] = None
    amount_limit: Optional[Decimal] = None

    @classmethod
    def grant(cls, *capabilities: Capability) -> PermissionOverride:
        return cls(**{c.value: True for c in capabilities})

    @classmethod
    def revoke(cls, *capabilities: Capability) -> PermissionOverride:
        return cls(**{c.value: False for c in capabilities})

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    def apply_to(self, base: PermissionSet) -> PermissionSet:
        changes = {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}
        return replace(base, **changes) if changes else base
