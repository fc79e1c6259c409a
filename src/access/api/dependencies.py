"""
FastAPI dependencies for the access core.

Credential verification happens upstream (gateway / auth middleware); it
forwards the verified subject id and an optional kind hint in headers.
These dependencies resolve the caller once per request and gate routes on
per-service capabilities.
"""
from __future__ import annotations

from typing import Annotated, Optional

from fastapi import Depends, FastAPI, Request

from src.access.application.access_control import AccessControl
from src.access.application.context import RequestContext
from src.access.application.identity_resolver import Credential
from src.access.domain.identity import Identity
from src.access.domain.types import Capability, IdentityKind
from src.shared.config import Settings, get_settings
from src.shared.exceptions import AuthenticationError, InternalServerError, register_exception_handlers
from src.shared.logging import get_logger, set_correlation_id

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def install_access_control(app: FastAPI, access: AccessControl, settings: Optional[Settings] = None) -> None:
    """Attach the facade to app.state and register the error contract handlers."""
    app.state.access_control = access
    app.state.access_settings = settings or get_settings()
    register_exception_handlers(app)


def get_access_control(request: Request) -> AccessControl:
    access = getattr(request.app.state, "access_control", None)
    if access is None:
        raise InternalServerError("Access control not installed")
    return access


def get_access_settings(request: Request) -> Settings:
    return getattr(request.app.state, "access_settings", None) or get_settings()


def get_request_context(
    request: Request,
    access: Annotated[AccessControl, Depends(get_access_control)],
) -> RequestContext:
    """One RequestContext per request, shared by every dependency that asks for it."""
    ctx = getattr(request.state, "access_context", None)
    if ctx is None:
        correlation_id = set_correlation_id(request.headers.get(REQUEST_ID_HEADER))
        ctx = access.new_context(correlation_id)
        request.state.access_context = ctx
        request.state.correlation_id = correlation_id
    return ctx


async def get_current_identity(
    request: Request,
    access: Annotated[AccessControl, Depends(get_access_control)],
    settings: Annotated[Settings, Depends(get_access_settings)],
    ctx: Annotated[RequestContext, Depends(get_request_context)],
) -> Identity:
    """
    Resolve the caller from the verified-subject headers.

    Raises:
        AuthenticationError: header missing, kind hint invalid, subject
            unknown or inactive
    """
    cached = getattr(request.state, "identity", None)
    if cached is not None:
        return cached

    subject_id = request.headers.get(settings.subject_header)
    if not subject_id:
        raise AuthenticationError("Unauthorized: no verified subject", details={"reason": "missing_subject"})

    raw_kind = request.headers.get(settings.kind_header)
    kind_hint: Optional[IdentityKind] = None
    if raw_kind:
        try:
            kind_hint = IdentityKind.from_string(raw_kind)
        except ValueError:
            raise AuthenticationError("Unauthorized: invalid identity kind", details={"reason": "invalid_kind"})

    identity = await access.resolve_identity(Credential(subject_id, kind_hint), context=ctx)
    request.state.identity = identity
    return identity


CurrentIdentity = Annotated[Identity, Depends(get_current_identity)]


def require_permission(service_id: str, *capabilities: Capability):
    """
    Dependency factory: every listed capability on `service_id` is required.

    Usage:
        @router.get("/banks", dependencies=[Depends(require_permission("bank", Capability.VIEW))])
    """
    if not capabilities:
        raise ValueError("require_permission needs at least one capability")

    async def check(
        identity: CurrentIdentity,
        access: Annotated[AccessControl, Depends(get_access_control)],
        ctx: Annotated[RequestContext, Depends(get_request_context)],
    ) -> Identity:
        await access.require(identity, service_id, *capabilities, context=ctx)
        return identity

    return check


def require_service_permission(capability: Capability, service_param: str = "service_id"):
    """Dependency factory: service id taken from the path parameter `service_param`."""

    async def check(
        request: Request,
        identity: CurrentIdentity,
        access: Annotated[AccessControl, Depends(get_access_control)],
        ctx: Annotated[RequestContext, Depends(get_request_context)],
    ) -> Identity:
        service_id = request.path_params.get(service_param)
        if not service_id:
            raise InternalServerError(f"Route has no '{service_param}' path parameter")
        await access.require(identity, service_id, capability, context=ctx)
        return identity

    return check


def require_in_scope(target_param: str = "target_id", entity_type: str = "tenant"):
    """Dependency factory: the path parameter `target_param` must lie in the caller's scope."""

    async def check(
        request: Request,
        identity: CurrentIdentity,
        access: Annotated[AccessControl, Depends(get_access_control)],
        ctx: Annotated[RequestContext, Depends(get_request_context)],
    ) -> Identity:
        target_id = request.path_params.get(target_param)
        if not target_id:
            raise InternalServerError(f"Route has no '{target_param}' path parameter")
        await access.ensure_in_scope(identity, target_id, entity_type=entity_type, context=ctx)
        return identity

    return check


def require_roles(*role_ids: str):
    """
    Dependency factory: caller must hold one of `role_ids`.

    Root always passes; a delegate is judged on its sponsor's role.

    Usage:
        @router.post("/wallets", dependencies=[Depends(require_roles("ADMIN", "DISTRIBUTOR"))])
    """
    if not role_ids:
        raise ValueError("require_roles needs at least one role")

    async def check(
        identity: CurrentIdentity,
        access: Annotated[AccessControl, Depends(get_access_control)],
        ctx: Annotated[RequestContext, Depends(get_request_context)],
    ) -> Identity:
        access.require_roles(identity, *role_ids, context=ctx)
        return identity

    return check
