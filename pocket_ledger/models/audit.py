"""
Audit Models for Pocket Ledger

Every mutation of the ledger and every load/save is recorded as an
audit event. This provides:
1. Traceability of how the balance got where it is
2. Debugging information when a file fails to load
3. A visible record of skipped or suspicious data

DESIGN DECISION: Audit events are append-only log records.
They never feed back into ledger state.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Lifecycle
    LEDGER_CREATED = "ledger_created"
    LEDGER_LOADED = "ledger_loaded"
    LOAD_FAILED = "load_failed"
    LINE_SKIPPED = "line_skipped"
    BALANCE_MISMATCH = "balance_mismatch"

    # Mutations
    ENTRY_ADDED = "entry_added"
    ENTRY_REMOVED = "entry_removed"

    # Persistence
    LEDGER_SAVED = "ledger_saved"
    SAVE_FAILED = "save_failed"
    SAVE_SKIPPED = "save_skipped"

    # Rejections and breaches
    INVALID_REQUEST = "invalid_request"
    INVARIANT_BREACH = "invariant_breach"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Events from one shell session share a correlation ID.
    """

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.now,
        description="When the event occurred (local time)"
    )
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate the events of one session"
    )
    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.entry_added(
            kind="expense",
            label="food",
            amount="12.50",
            balance="-12.50",
            correlation_id=session_id,
        )
    """

    @staticmethod
    def ledger_created(correlation_id: Optional[UUID] = None) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_CREATED,
            correlation_id=correlation_id,
            description="Backing store empty, started a new ledger",
        )

    @staticmethod
    def ledger_loaded(
        entry_count: int,
        skipped_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_LOADED,
            severity=AuditSeverity.WARNING if skipped_count else AuditSeverity.INFO,
            correlation_id=correlation_id,
            description=f"Loaded {entry_count} entries",
            details={
                "entry_count": entry_count,
                "skipped_count": skipped_count,
            },
        )

    @staticmethod
    def load_failed(
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOAD_FAILED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description="Could not read backing store, continuing with a new ledger",
            error_message=error_message,
        )

    @staticmethod
    def line_skipped(
        line_number: int,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LINE_SKIPPED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"Skipping malformed line {line_number}",
            details={"line_number": line_number, "reason": reason},
        )

    @staticmethod
    def balance_mismatch(
        stored: str,
        computed: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BALANCE_MISMATCH,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description="Stored balance does not match the sum of entries",
            details={"stored": stored, "computed": computed},
        )

    @staticmethod
    def entry_added(
        kind: str,
        label: str,
        amount: str,
        balance: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_ADDED,
            correlation_id=correlation_id,
            description=f"Added {kind}",
            details={"kind": kind, "label": label, "amount": amount, "balance": balance},
        )

    @staticmethod
    def entry_removed(
        index: int,
        kind: str,
        amount: str,
        balance: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_REMOVED,
            correlation_id=correlation_id,
            description=f"Removed {kind} at index {index}",
            details={"index": index, "kind": kind, "amount": amount, "balance": balance},
        )

    @staticmethod
    def ledger_saved(
        entry_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_SAVED,
            correlation_id=correlation_id,
            description=f"Saved {entry_count} entries",
            details={"entry_count": entry_count},
        )

    @staticmethod
    def save_failed(
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description="Failed to write ledger to backing store",
            error_message=error_message,
        )

    @staticmethod
    def save_skipped(
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_SKIPPED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description="Ledger left unsaved on close",
            details={"reason": reason},
        )

    @staticmethod
    def invalid_request(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INVALID_REQUEST,
            severity=AuditSeverity.INFO,
            correlation_id=correlation_id,
            description=f"Rejected {operation}",
            details={"operation": operation},
            error_message=error_message,
        )

    @staticmethod
    def invariant_breach(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INVARIANT_BREACH,
            severity=AuditSeverity.CRITICAL,
            correlation_id=correlation_id,
            description=f"Ledger invariant broken during {operation}",
            details={"operation": operation},
            error_message=error_message,
        )
