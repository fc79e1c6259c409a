"""
Access Domain Exceptions

AuthenticationError and AuthorizationDenied (src.shared.exceptions) are the
only typed failures that cross the public boundary. The classes below are
internal; the facade logs them and converts them to a generic denial.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class AccessInternalError(Exception):
    """Base for failures that never leave the access core as-is"""

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class StructuralIntegrityError(AccessInternalError):
    """Store data violates a structural invariant (duplicate identity, hierarchy cycle)"""


class DuplicateIdentityError(StructuralIntegrityError):
    """The same subject id is held by more than one identity store"""

    def __init__(self, subject_id: str, kinds: list[str]) -> None:
        super().__init__(
            f"Subject {subject_id} present in multiple identity stores: {', '.join(kinds)}",
            details={"subject_id": subject_id, "kinds": kinds},
        )
        self.subject_id = subject_id
        self.kinds = kinds


class HierarchyCycleError(StructuralIntegrityError):
    """A node was reached twice while walking child edges"""

    def __init__(self, start_id: str, node_id: str, via_parent: str) -> None:
        super().__init__(
            f"Node {node_id} revisited via {via_parent} while traversing from {start_id}",
            details={"start_id": start_id, "node_id": node_id, "via_parent": via_parent},
        )
        self.start_id = start_id
        self.node_id = node_id
        self.via_parent = via_parent


class TraversalAborted(AccessInternalError):
    """The request was aborted mid-traversal; the partial result is discarded"""

    def __init__(self, start_id: str, visited: int) -> None:
        super().__init__(
            f"Traversal from {start_id} aborted after {visited} nodes",
            details={"start_id": start_id, "visited": visited},
        )


class AuditEmissionFailure(AccessInternalError):
    """The audit sink rejected, failed or timed out on an event"""
