"""
Observability utilities for docbudget.

Audit events are emitted on a dedicated logger so operators can route
them separately from ordinary module logs:

    from docbudget.core.observability import audit_log

    audit_log("fallback_applied", strategy="chunking", reduction=62.5)
"""

from docbudget.core.observability.audit import (
    AuditEvent,
    AuditEventType,
    AuditLogger,
    audit_log,
    get_audit_logger,
)

__all__ = [
    "AuditEvent",
    "AuditEventType",
    "AuditLogger",
    "audit_log",
    "get_audit_logger",
]
