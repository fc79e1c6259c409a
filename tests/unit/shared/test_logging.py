import structlog

from src.shared.config import Settings
from src.shared.logging import (
    PIIRedactionProcessor,
    add_request_context,
    bind_request_context,
    clear_request_context,
    set_correlation_id,
    setup_logging,
)


def test_redacts_email_and_msisdn():
    redact = PIIRedactionProcessor()
    event = redact(None, "info", {"event": "contact a.b@example.com", "details": {"phone": "+919812345678"}})
    assert event["event"] == "contact ***@example.com"
    assert event["details"]["phone"] == "+91****5678"


def test_request_context_is_copied_into_events():
    clear_request_context()
    cid = set_correlation_id("req-42")
    bind_request_context(actor_id="T1", identity_kind="TENANT")
    try:
        event = add_request_context(None, "info", {"event": "x", "actor_id": "explicit"})
        assert cid == "req-42"
        assert event["correlation_id"] == "req-42"
        assert event["identity_kind"] == "TENANT"
        assert event["actor_id"] == "explicit"
    finally:
        clear_request_context()
    assert structlog.contextvars.get_contextvars() == {}


def test_setup_logging_redacts_only_outside_local():
    try:
        setup_logging(Settings(environment="prod", log_format="json"))
        processors = structlog.get_config()["processors"]
        assert any(isinstance(p, PIIRedactionProcessor) for p in processors)
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

        setup_logging(Settings(environment="local"))
        processors = structlog.get_config()["processors"]
        assert not any(isinstance(p, PIIRedactionProcessor) for p in processors)
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)
    finally:
        setup_logging(Settings(environment="local", log_format="console"))
