# src/access/domain/catalog.py
"""
Permission catalog: the service registry and rank anchors the calculator
and scope resolver are configured with. Built once at startup (or per test)
and injected; there is no module-level instance.
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.access.domain.types import Capability


class ServiceEntry(BaseModel):
    """One registered service (bank, kyc, commission, wallet, ...)."""

    id: str = Field(..., min_length=1, description="Service identifier used by the stores")
    name: Optional[str] = Field(None, description="Display name")
    sensitive_capabilities: frozenset[Capability] = Field(
        default_factory=frozenset,
        description="Capabilities whose successful use is audited",
    )

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)


class PermissionCatalog(BaseModel):
    """
    Configuration object for access decisions.

    - top_admin_role: role id excluded from Root's scope and never manageable
    - strict: deny service ids that are not registered, without store reads
    - services: registered services keyed by id
    """

    top_admin_role: str = Field("ADMIN", min_length=1)
    strict: bool = False
    services: dict[str, ServiceEntry] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    @field_validator("services", mode="before")
    @classmethod
    def _services_from_list(cls, value):
        # accept either a mapping or a list of entries
        if isinstance(value, (list, tuple)):
            return {(e.get("id") if isinstance(e, dict) else getattr(e, "id", None)): e for e in value}
        return value

    @field_validator("services")
    @classmethod
    def _keys_match_ids(cls, value: dict[str, ServiceEntry]) -> dict[str, ServiceEntry]:
        for key, entry in value.items():
            if key != entry.id:
                raise ValueError(f"Service key {key!r} does not match entry id {entry.id!r}")
        return value

    @classmethod
    def from_json_file(cls, path: Path) -> PermissionCatalog:
        return cls.model_validate_json(path.read_text(encoding="utf-8"))

    def knows(self, service_id: str) -> bool:
        return service_id in self.services

    def admits(self, service_id: str) -> bool:
        """False only when the catalog is strict and the service is unregistered."""
        return not self.strict or self.knows(service_id)

    def is_sensitive(self, service_id: str, capability: Capability) -> bool:
        entry = self.services.get(service_id)
        return entry is not None and capability in entry.sensitive_capabilities
