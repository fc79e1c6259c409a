"""
Centralized configuration for the hierarchy access-control core.

- Frozen dataclass, loaded from OS env (and an optional .env file).
- Strong typing & validation in __post_init__.
- Immutable singleton via functools.lru_cache.
"""

from __future__ import annotations

import functools
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Optional, cast

from dotenv import load_dotenv


# ------------------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------------------
def _get_env_str(key: str, default: Optional[str] = None, required: bool = False) -> Optional[str]:
    v = os.getenv(key, default)
    if required and (v is None or str(v).strip() == ""):
        raise ValueError(f"Missing required env var: {key}")
    return v


def _get_env_bool(key: str, default: bool = False) -> bool:
    v = os.getenv(key)
    if v is None:
        return default
    v = v.strip().lower()
    return v in {"1", "true", "t", "yes", "y", "on"}


def _get_env_float(key: str, default: float) -> float:
    v = os.getenv(key)
    if v is None or v.strip() == "":
        return default
    try:
        return float(v)
    except ValueError:
        raise ValueError(f"Env var {key} must be a number")


def _validate_choice(value: str, *, choices: tuple[str, ...], key: str) -> str:
    if value not in choices:
        raise ValueError(f"{key} must be one of {choices}, got {value!r}")
    return value


def _validate_header(value: str, *, key: str) -> str:
    if not re.fullmatch(r"[A-Za-z0-9-]+", value or ""):
        raise ValueError(f"{key} must be a valid HTTP header name, got {value!r}")
    return value


# ------------------------------------------------------------------------------
# Settings dataclass (immutable)
# ------------------------------------------------------------------------------
EnvName = Literal["local", "dev", "staging", "prod"]
LogFormat = Literal["json", "console"]


@dataclass(frozen=True)
class Settings:
    # Environment
    environment: EnvName = "local"
    debug: bool = False

    # Observability
    log_level: str = "INFO"
    log_format: Optional[LogFormat] = None

    # Access control
    top_admin_role: str = "ADMIN"
    strict_catalog: bool = False
    permission_catalog_path: Optional[Path] = None
    conceal_scope_violations: bool = True

    # Audit delivery (best-effort, off the critical path)
    audit_enabled: bool = True
    audit_timeout_seconds: float = 2.0

    # Identity headers set by the upstream credential verifier
    subject_header: str = "X-Subject-Id"
    kind_header: str = "X-Identity-Kind"

    # Derived/computed flags (filled in __post_init__)
    is_prod: bool = field(init=False)
    is_staging: bool = field(init=False)
    is_dev: bool = field(init=False)
    is_local: bool = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "environment",
            _validate_choice(self.environment, choices=("local", "dev", "staging", "prod"), key="ENVIRONMENT"),
        )
        if self.log_format is not None:
            _validate_choice(self.log_format, choices=("json", "console"), key="LOG_FORMAT")

        if not re.fullmatch(r"(?i)DEBUG|INFO|WARNING|ERROR|CRITICAL", self.log_level.strip()):
            raise ValueError("LOG_LEVEL must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL")

        if not self.top_admin_role or not self.top_admin_role.strip():
            raise ValueError("TOP_ADMIN_ROLE must be set and non-empty")

        if self.audit_timeout_seconds <= 0:
            raise ValueError("AUDIT_TIMEOUT_SECONDS must be > 0")

        _validate_header(self.subject_header, key="SUBJECT_HEADER")
        _validate_header(self.kind_header, key="KIND_HEADER")

        if self.permission_catalog_path is not None and not self.permission_catalog_path.exists():
            raise ValueError(f"PERMISSION_CATALOG_PATH does not exist: {self.permission_catalog_path}")

        env = self.environment
        object.__setattr__(self, "is_prod", env == "prod")
        object.__setattr__(self, "is_staging", env == "staging")
        object.__setattr__(self, "is_dev", env == "dev")
        object.__setattr__(self, "is_local", env == "local")

    def safe_dict(self) -> dict:
        return {
            "environment": self.environment,
            "debug": self.debug,
            "log_level": self.log_level,
            "log_format": self.log_format or "<auto>",
            "top_admin_role": self.top_admin_role,
            "strict_catalog": self.strict_catalog,
            "permission_catalog_path": str(self.permission_catalog_path) if self.permission_catalog_path else "<unset>",
            "conceal_scope_violations": self.conceal_scope_violations,
            "audit_enabled": self.audit_enabled,
            "audit_timeout_seconds": self.audit_timeout_seconds,
            "subject_header": self.subject_header,
            "kind_header": self.kind_header,
        }


# ------------------------------------------------------------------------------
# Loader (singleton)
# ------------------------------------------------------------------------------
_logger = logging.getLogger(__name__)


@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    # .env at repo root (../../.env relative to this file)
    env_file = Path(__file__).resolve().parent.parent.parent / ".env"
    if env_file.exists():
        load_dotenv(dotenv_path=str(env_file), override=False)

    catalog_path = _get_env_str("PERMISSION_CATALOG_PATH", None)
    log_format = _get_env_str("LOG_FORMAT", None)

    settings = Settings(
        environment=cast(EnvName, _get_env_str("ENVIRONMENT", "local") or "local"),
        debug=_get_env_bool("DEBUG", False),
        log_level=_get_env_str("LOG_LEVEL", "INFO") or "INFO",
        log_format=cast(Optional[LogFormat], log_format or None),
        top_admin_role=_get_env_str("TOP_ADMIN_ROLE", "ADMIN") or "ADMIN",
        strict_catalog=_get_env_bool("STRICT_CATALOG", False),
        permission_catalog_path=Path(catalog_path) if catalog_path else None,
        conceal_scope_violations=_get_env_bool("CONCEAL_SCOPE_VIOLATIONS", True),
        audit_enabled=_get_env_bool("AUDIT_ENABLED", True),
        audit_timeout_seconds=_get_env_float("AUDIT_TIMEOUT_SECONDS", 2.0),
        subject_header=_get_env_str("SUBJECT_HEADER", "X-Subject-Id") or "X-Subject-Id",
        kind_header=_get_env_str("KIND_HEADER", "X-Identity-Kind") or "X-Identity-Kind",
    )

    _logger.info("Settings loaded", extra={"settings": settings.safe_dict()})
    return settings
