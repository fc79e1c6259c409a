import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from src.access.api import (
    CurrentIdentity,
    get_access_control,
    get_request_context,
    install_access_control,
    require_in_scope,
    require_permission,
    require_roles,
    require_service_permission,
)
from src.access.domain.types import Capability, ScopeMode


@pytest.fixture
def client(access, settings) -> TestClient:
    app = FastAPI()
    install_access_control(app, access, settings)

    @app.get("/me")
    async def me(identity: CurrentIdentity):
        return {"id": identity.id, "kind": identity.kind.value}

    @app.get("/banks", dependencies=[Depends(require_permission("bank", Capability.VIEW))])
    async def list_banks():
        return {"ok": True}

    @app.post("/services/{service_id}/process")
    async def process(identity=Depends(require_service_permission(Capability.PROCESS))):
        return {"actor": identity.id}

    @app.get("/tenants/{target_id}", dependencies=[Depends(require_in_scope())])
    async def get_tenant(target_id: str):
        return {"id": target_id}

    @app.post("/wallets", dependencies=[Depends(require_roles("ADMIN", "DISTRIBUTOR"))])
    async def create_wallet():
        return {"ok": True}

    @app.get("/limits")
    async def limits(amount: int):
        return {"amount": amount}

    @app.get("/scope")
    async def scope(
        identity: CurrentIdentity,
        access=Depends(get_access_control),
        ctx=Depends(get_request_context),
    ):
        ids = await access.get_accessible_scope(identity, ScopeMode.DESCENDANTS_ONLY, context=ctx)
        return {"ids": sorted(ids)}

    with TestClient(app) as c:
        yield c


def _as(subject_id: str, kind: str | None = None) -> dict:
    headers = {"X-Subject-Id": subject_id}
    if kind:
        headers["X-Identity-Kind"] = kind
    return headers


def test_resolves_caller_from_headers(client):
    r = client.get("/me", headers=_as("E"))
    assert r.status_code == 200
    assert r.json() == {"id": "E", "kind": "DELEGATE"}

    r = client.get("/me", headers=_as("T1", "tenant"))
    assert r.json() == {"id": "T1", "kind": "TENANT"}


def test_missing_subject_is_unauthorized(client):
    r = client.get("/me", headers={"X-Request-ID": "req-7"})
    assert r.status_code == 401
    body = r.json()
    assert body["code"] == "unauthorized"
    assert body["details"] == {"reason": "missing_subject"}
    assert body["correlation_id"] == "req-7"


def test_invalid_kind_hint_is_unauthorized(client):
    r = client.get("/me", headers=_as("T1", "wizard"))
    assert r.status_code == 401
    assert r.json()["details"] == {"reason": "invalid_kind"}


def test_unknown_subject_is_unauthorized(client):
    r = client.get("/me", headers=_as("ghost"))
    assert r.status_code == 401
    assert set(r.json()) >= {"code", "message", "details"}


def test_permission_gate(client):
    assert client.get("/banks", headers=_as("T2")).status_code == 200

    r = client.get("/banks", headers=_as("ghost"))
    assert r.status_code == 401


def test_service_permission_from_path(client):
    r = client.post("/services/bank/process", headers=_as("F"))
    assert r.status_code == 200
    assert r.json() == {"actor": "F"}

    r = client.post("/services/bank/process", headers=_as("E"))
    assert r.status_code == 403
    body = r.json()
    assert body["code"] == "forbidden"
    assert body["details"]["reason"] == "sponsor_lacks_capability"


def test_scope_violation_looks_like_not_found(client):
    assert client.get("/tenants/T2", headers=_as("T1")).status_code == 200

    r = client.get("/tenants/U", headers=_as("T1"))
    assert r.status_code == 404
    assert r.json()["code"] == "not_found"
    assert r.json()["details"] == {}


def test_scope_listing(client):
    assert client.get("/scope", headers=_as("R")).json() == {"ids": ["T1", "T2", "T3"]}
    assert client.get("/scope", headers=_as("E")).json() == {"ids": ["T1", "T2", "T3"]}
    assert client.get("/scope", headers=_as("root")).json() == {"ids": ["T1", "T2", "T3", "U"]}


def test_uninstalled_app_fails_closed():
    app = FastAPI()
    from src.shared.exceptions import register_exception_handlers

    register_exception_handlers(app)

    @app.get("/me")
    async def me(identity: CurrentIdentity):
        return {"id": identity.id}

    r = TestClient(app).get("/me", headers=_as("T1"))
    assert r.status_code == 500
    assert r.json()["code"] == "internal_error"


def test_role_gate(client):
    assert client.post("/wallets", headers=_as("T1")).status_code == 200
    assert client.post("/wallets", headers=_as("root")).status_code == 200
    assert client.post("/wallets", headers=_as("E")).status_code == 200

    r = client.post("/wallets", headers=_as("T2"))
    assert r.status_code == 403
    body = r.json()
    assert body["code"] == "forbidden"
    assert body["details"]["required_roles"] == ["ADMIN", "DISTRIBUTOR"]


def test_request_validation_uses_error_contract(client):
    r = client.get("/limits", params={"amount": "lots"})
    assert r.status_code == 422
    body = r.json()
    assert body["code"] == "validation_error"
    assert body["details"]["errors"]
