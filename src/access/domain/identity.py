"""
Store records and the request-scoped Identity union.

Identity is a closed union of three frozen dataclasses. Consumers match on
it with `match`/`case` and finish with `assert_never`, so adding a kind
forces every consumption site to handle it.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional, Union

from src.access.domain.types import IdentityKind, IdentityStatus


# ---- Store records ----------------------------------------------------------

@dataclass(frozen=True, slots=True)
class RootRecord:
    id: str
    status: IdentityStatus = IdentityStatus.ACTIVE


@dataclass(frozen=True, slots=True)
class TenantRecord:
    id: str
    role_id: str
    parent_id: Optional[str] = None
    status: IdentityStatus = IdentityStatus.ACTIVE


@dataclass(frozen=True, slots=True)
class DelegateRecord:
    id: str
    department_id: str
    sponsor_id: str
    sponsor_kind: IdentityKind
    status: IdentityStatus = IdentityStatus.ACTIVE

    def __post_init__(self) -> None:
        if self.sponsor_kind is IdentityKind.DELEGATE:
            raise ValueError("A delegate cannot be sponsored by another delegate")


@dataclass(frozen=True, slots=True)
class Role:
    """Ranked tenant role; lower level = higher rank (0 is the top admin)."""
    id: str
    name: str
    level: int

    def can_manage(self, other: Role) -> bool:
        return self.level < other.level


# ---- Identity union ---------------------------------------------------------

@dataclass(frozen=True, slots=True)
class RootIdentity:
    id: str
    status: IdentityStatus = IdentityStatus.ACTIVE
    kind: Literal[IdentityKind.ROOT] = IdentityKind.ROOT


@dataclass(frozen=True, slots=True)
class TenantIdentity:
    id: str
    role_id: str
    parent_id: Optional[str] = None
    status: IdentityStatus = IdentityStatus.ACTIVE
    kind: Literal[IdentityKind.TENANT] = IdentityKind.TENANT


@dataclass(frozen=True, slots=True)
class DelegateIdentity:
    id: str
    department_id: str
    sponsor: Union[RootIdentity, TenantIdentity]
    status: IdentityStatus = IdentityStatus.ACTIVE
    kind: Literal[IdentityKind.DELEGATE] = IdentityKind.DELEGATE

    @property
    def sponsor_id(self) -> str:
        return self.sponsor.id


Identity = Union[RootIdentity, TenantIdentity, DelegateIdentity]
SponsorIdentity = Union[RootIdentity, TenantIdentity]


def identity_from_root(record: RootRecord) -> RootIdentity:
    return RootIdentity(id=record.id, status=record.status)


def identity_from_tenant(record: TenantRecord) -> TenantIdentity:
    return TenantIdentity(
        id=record.id,
        role_id=record.role_id,
        parent_id=record.parent_id,
        status=record.status,
    )


def identity_from_delegate(record: DelegateRecord, sponsor: SponsorIdentity) -> DelegateIdentity:
    if sponsor.id != record.sponsor_id:
        raise ValueError(f"Sponsor mismatch for delegate {record.id}: {sponsor.id} != {record.sponsor_id}")
    return DelegateIdentity(
        id=record.id,
        department_id=record.department_id,
        sponsor=sponsor,
        status=record.status,
    )
