"""
Access API Layer - FastAPI adapter
"""
from src.access.api.dependencies import (
    CurrentIdentity,
    get_access_control,
    get_current_identity,
    get_request_context,
    install_access_control,
    require_in_scope,
    require_permission,
    require_roles,
    require_service_permission,
)

__all__ = [
    "CurrentIdentity",
    "get_access_control",
    "get_current_identity",
    "get_request_context",
    "install_access_control",
    "require_in_scope",
    "require_permission",
    "require_roles",
    "require_service_permission",
]
