# src/access/domain/types.py
"""Domain type definitions and shared enums."""

from enum import StrEnum
from typing import NewType

# ID Types (opaque strings issued by the external stores)
SubjectId = NewType("SubjectId", str)
RoleId = NewType("RoleId", str)
ServiceId = NewType("ServiceId", str)


class IdentityKind(StrEnum):
    """Organizational kind of a resolved caller."""
    ROOT = "ROOT"
    TENANT = "TENANT"
    DELEGATE = "DELEGATE"

    @classmethod
    def from_string(cls, value: str) -> "IdentityKind":
        try:
            return cls[value.strip().upper()]
        except KeyError:
            raise ValueError(f"Invalid identity kind: {value!r}. Valid kinds: {[k.name for k in cls]}")


# Probe order used when the caller supplies no kind hint.
PROBE_ORDER: tuple[IdentityKind, ...] = (
    IdentityKind.ROOT,
    IdentityKind.DELEGATE,
    IdentityKind.TENANT,
)


class IdentityStatus(StrEnum):
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"


class Capability(StrEnum):
    """Per-service capabilities carried by a PermissionSet."""
    VIEW = "can_view"
    EDIT = "can_edit"
    SET_COMMISSION = "can_set_commission"
    PROCESS = "can_process"


class ScopeMode(StrEnum):
    SELF_AND_DESCENDANTS = "selfAndDescendants"
    DESCENDANTS_ONLY = "descendantsOnly"


class DecisionReason(StrEnum):
    """Machine-readable reason attached to every permission decision."""
    ROOT = "root"
    GRANTED = "granted"
    CAPABILITY_NOT_GRANTED = "capability_not_granted"
    SPONSOR_LACKS_CAPABILITY = "sponsor_lacks_capability"
    AMOUNT_EXCEEDS_LIMIT = "amount_exceeds_limit"
    UNKNOWN_SERVICE = "unknown_service"
    NO_CAPABILITIES_REQUESTED = "no_capabilities_requested"
