import pytest

from src.access.application.audit_emitter import AuditEmitter
from src.access.application.context import RequestContext
from src.access.application.delegation import DelegationBridge, attribution
from src.access.application.identity_resolver import Credential, IdentityResolver
from src.access.domain.audit import AuditAction
from src.access.domain.identity import RootIdentity, TenantIdentity


@pytest.mark.asyncio
async def test_delegate_acts_on_sponsor_authority(store, sink):
    emitter = AuditEmitter(sink)
    bridge = DelegationBridge(emitter)
    e = await IdentityResolver(store).resolve(Credential("E"))
    ctx = RequestContext()

    authority = bridge.with_delegation(e, "bank_account.create", entity_type="bank_account", context=ctx)
    await emitter.flush()

    assert authority == "R"
    [event] = sink.events
    assert event.action == AuditAction.DELEGATED_ACTION
    assert event.actor_id == "E"
    assert event.metadata["effective_authority_id"] == "R"
    assert event.reason == "bank_account.create"
    assert event.correlation_id == ctx.correlation_id


@pytest.mark.asyncio
async def test_non_delegates_act_on_own_authority(sink):
    emitter = AuditEmitter(sink)
    bridge = DelegationBridge(emitter)
    assert bridge.with_delegation(RootIdentity("root"), "user.create") == "root"
    assert bridge.with_delegation(TenantIdentity("T1", role_id="DISTRIBUTOR"), "user.create") == "T1"
    await emitter.flush()
    assert sink.events == []


@pytest.mark.asyncio
async def test_attribution_keeps_actor_of_record(store):
    f = await IdentityResolver(store).resolve(Credential("F"))
    attr = attribution(f)
    assert attr.actor_id == "F"
    assert attr.effective_authority_id == "root"
    assert attr.delegated
    assert not attribution(TenantIdentity("T1", role_id="DISTRIBUTOR")).delegated
