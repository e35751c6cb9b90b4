"""
Data Models Package

This package contains all Pydantic models used in Pocket Ledger.
All data flowing through the system must conform to these schemas.
"""

from pocket_ledger.models.entry import (
    BalanceSnapshot,
    Entry,
    EntryFilter,
    EntryKind,
    bootstrap_balance,
    floor_to_cents,
    now_to_minute,
)
from pocket_ledger.models.validation import (
    ValidationIssue,
    ValidationResult,
)
from pocket_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "BalanceSnapshot",
    "Entry",
    "EntryFilter",
    "EntryKind",
    "bootstrap_balance",
    "floor_to_cents",
    "now_to_minute",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
