"""Tests for audit events and correlation ids."""

import logging

from docbudget.core.context import correlation_scope, get_correlation_id, new_correlation_id
from docbudget.core.observability import AuditEvent, AuditEventType, audit_log

AUDIT_LOGGER = "docbudget.core.observability.audit.audit"


def _events(caplog):
    return [record.audit for record in caplog.records if hasattr(record, "audit")]


class TestAuditLog:
    """Tests for audit_log."""

    def test_known_event(self, caplog):
        """Known event types are emitted with their details."""
        with caplog.at_level(logging.INFO, logger=AUDIT_LOGGER):
            audit_log("fallback_applied", strategy="chunking")

        event = _events(caplog)[0]
        assert event["event_type"] == "fallback_applied"
        assert event["details"] == {"strategy": "chunking"}
        assert "correlation_id" not in event

    def test_unknown_event_type(self, caplog):
        """Unknown types are recorded as other with the original name."""
        with caplog.at_level(logging.INFO, logger=AUDIT_LOGGER):
            audit_log("something_new", value=1)

        event = _events(caplog)[0]
        assert event["event_type"] == "other"
        assert event["details"]["original_event_type"] == "something_new"

    def test_correlation_id_attached(self):
        """Events pick up the bound correlation id."""
        with correlation_scope("doc-abc"):
            event = AuditEvent(event_type=AuditEventType.RETRY_ATTEMPT)
        assert event.to_dict()["correlation_id"] == "doc-abc"


class TestCorrelationScope:
    """Tests for correlation_scope."""

    def test_scope_restores_previous(self):
        """Leaving a scope restores the outer id."""
        assert get_correlation_id() == ""
        with correlation_scope("outer"):
            with correlation_scope() as inner:
                assert get_correlation_id() == inner
            assert get_correlation_id() == "outer"
        assert get_correlation_id() == ""

    def test_new_ids_unique(self):
        """Generated ids are prefixed and distinct."""
        first, second = new_correlation_id(), new_correlation_id()
        assert first.startswith("doc-")
        assert first != second
