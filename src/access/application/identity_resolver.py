"""
Identity Resolver

Turns an already-verified subject id (plus optional kind hint) into exactly
one Identity, or fails with AuthenticationError.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from src.access.domain.exceptions import DuplicateIdentityError
from src.access.domain.identity import (
    DelegateRecord,
    Identity,
    RootRecord,
    SponsorIdentity,
    TenantRecord,
    identity_from_delegate,
    identity_from_root,
    identity_from_tenant,
)
from src.access.domain.protocols import IIdentityStore
from src.access.domain.types import PROBE_ORDER, IdentityKind, IdentityStatus
from src.shared.exceptions import AuthenticationError
from src.shared.logging import get_logger

logger = get_logger(__name__)

AnyRecord = Union[RootRecord, DelegateRecord, TenantRecord]


@dataclass(frozen=True, slots=True)
class Credential:
    """Verified subject id from the upstream credential check, with an optional kind hint."""
    subject_id: str
    kind_hint: Optional[IdentityKind] = None


class IdentityResolver:
    """
    Resolves callers against the three identity stores.

    With a kind hint only the matching store is read. Without one, every
    store is probed in PROBE_ORDER (ROOT, DELEGATE, TENANT): the first match
    wins, and a subject found in more than one store raises
    DuplicateIdentityError instead of being silently resolved.
    """

    def __init__(self, identities: IIdentityStore) -> None:
        self._identities = identities

    async def resolve(self, credential: Credential) -> Identity:
        subject_id = (credential.subject_id or "").strip()
        if not subject_id:
            raise AuthenticationError("Unauthorized: missing subject", details={"reason": "missing_subject"})

        if credential.kind_hint is not None:
            record = await self._find(credential.kind_hint, subject_id)
        else:
            record = await self.probe(subject_id)

        if record is None:
            raise AuthenticationError("Unauthorized: unknown subject", details={"reason": "unknown_subject"})
        self._ensure_active(record)
        return await self._to_identity(record)

    async def probe(self, subject_id: str) -> Optional[AnyRecord]:
        """Probe every store in PROBE_ORDER; more than one hit is a structural fault."""
        hits: list[tuple[IdentityKind, AnyRecord]] = []
        for kind in PROBE_ORDER:
            record = await self._find(kind, subject_id)
            if record is not None:
                hits.append((kind, record))

        if len(hits) > 1:
            raise DuplicateIdentityError(subject_id, [kind.value for kind, _ in hits])
        return hits[0][1] if hits else None

    async def _find(self, kind: IdentityKind, subject_id: str) -> Optional[AnyRecord]:
        match kind:
            case IdentityKind.ROOT:
                return await self._identities.find_root(subject_id)
            case IdentityKind.DELEGATE:
                return await self._identities.find_delegate(subject_id)
            case IdentityKind.TENANT:
                return await self._identities.find_tenant(subject_id)
        raise ValueError(f"Unhandled identity kind: {kind!r}")

    @staticmethod
    def _ensure_active(record: AnyRecord) -> None:
        if record.status is not IdentityStatus.ACTIVE:
            logger.info("Inactive subject rejected", subject_id=record.id, status=record.status.value)
            raise AuthenticationError("Unauthorized: account inactive", code="account_inactive",
                                      details={"reason": "inactive"})

    async def _to_identity(self, record: AnyRecord) -> Identity:
        match record:
            case RootRecord():
                return identity_from_root(record)
            case TenantRecord():
                return identity_from_tenant(record)
            case DelegateRecord():
                sponsor = await self._resolve_sponsor(record)
                return identity_from_delegate(record, sponsor)
        raise TypeError(f"Unexpected identity record: {type(record).__name__}")

    async def _resolve_sponsor(self, record: DelegateRecord) -> SponsorIdentity:
        """A delegate is only as valid as its sponsor: missing or inactive sponsors fail closed."""
        sponsor_record = await self._find(record.sponsor_kind, record.sponsor_id)
        if sponsor_record is None:
            logger.warning("Delegate sponsor missing", delegate_id=record.id, sponsor_id=record.sponsor_id)
            raise AuthenticationError("Unauthorized: sponsor unavailable", details={"reason": "sponsor_missing"})
        if sponsor_record.status is not IdentityStatus.ACTIVE:
            logger.info("Delegate sponsor inactive", delegate_id=record.id, sponsor_id=record.sponsor_id)
            raise AuthenticationError("Unauthorized: sponsor inactive", code="account_inactive",
                                      details={"reason": "sponsor_inactive"})

        match sponsor_record:
            case RootRecord():
                return identity_from_root(sponsor_record)
            case TenantRecord():
                return identity_from_tenant(sponsor_record)
        raise AuthenticationError("Unauthorized: invalid sponsor", details={"reason": "invalid_sponsor"})
