"""
Audit Logger

DESIGN DECISION: Every significant action on the ledger is logged.
This provides:
1. Traceability of every balance change
2. Debugging capability when a file loads oddly
3. A record of data the loader refused to trust

The audit logger:
- Writes structured JSON to stderr so menu output stays readable
- Gracefully handles failures (never crashes the app if logging fails)
- Supports correlation IDs to tie one session's events together
"""

import logging
import sys
from collections import deque
from typing import Optional
from uuid import UUID, uuid4

import structlog

from pocket_ledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "WARNING") -> None:
    """Route stdlib logging (and so structlog) to stderr at `level`."""
    logging.basicConfig(format="%(message)s", stream=sys.stderr)
    logging.getLogger().setLevel(getattr(logging, level.upper(), logging.WARNING))


def get_logger(name: Optional[str] = None):
    return structlog.get_logger(name)


class AuditLogger:
    """
    Central audit logging service.

    Logs events to the structured local log and keeps the most recent
    ones in memory so the current session can inspect them.
    """

    def __init__(
        self,
        correlation_id: Optional[UUID] = None,
        history_size: int = 100,
    ):
        """
        Initialize audit logger.

        Args:
            correlation_id: Attached to every event that does not carry its own.
            history_size: How many recent events to keep in memory.
        """
        self.correlation_id = correlation_id or create_correlation_id()
        self._recent: deque[AuditEvent] = deque(maxlen=history_size)
        self._logger = structlog.get_logger("pocket_ledger.audit")

    @property
    def recent_events(self) -> list[AuditEvent]:
        """Most recent events, oldest first."""
        return list(self._recent)

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns False if the event could not be written; never raises.
        """
        if event.correlation_id is None:
            event = event.model_copy(update={"correlation_id": self.correlation_id})
        self._recent.append(event)

        try:
            log_dict = event.to_log_dict()
            if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            elif event.severity == AuditSeverity.DEBUG:
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception as e:
            # Logging must never take the ledger down with it
            print(f"audit logging failed: {e}", file=sys.stderr)
            return False

        return True

    def log_ledger_created(self) -> None:
        """Log bootstrap of an empty ledger."""
        self.log(AuditEventBuilder.ledger_created())

    def log_ledger_loaded(self, entry_count: int, skipped_count: int) -> None:
        """Log a completed load."""
        self.log(AuditEventBuilder.ledger_loaded(
            entry_count=entry_count,
            skipped_count=skipped_count,
        ))

    def log_load_failed(self, error_message: str) -> None:
        """Log an unreadable backing store."""
        self.log(AuditEventBuilder.load_failed(error_message=error_message))

    def log_line_skipped(self, line_number: int, reason: str) -> None:
        """Log a persisted line the codec refused."""
        self.log(AuditEventBuilder.line_skipped(
            line_number=line_number,
            reason=reason,
        ))

    def log_balance_mismatch(self, stored: str, computed: str) -> None:
        """Log a loaded balance that disagrees with the entries."""
        self.log(AuditEventBuilder.balance_mismatch(stored=stored, computed=computed))

    def log_entry_added(self, kind: str, label: str, amount: str, balance: str) -> None:
        """Log an added entry."""
        self.log(AuditEventBuilder.entry_added(
            kind=kind,
            label=label,
            amount=amount,
            balance=balance,
        ))

    def log_entry_removed(self, index: int, kind: str, amount: str, balance: str) -> None:
        """Log a removed entry."""
        self.log(AuditEventBuilder.entry_removed(
            index=index,
            kind=kind,
            amount=amount,
            balance=balance,
        ))

    def log_ledger_saved(self, entry_count: int) -> None:
        """Log a successful save."""
        self.log(AuditEventBuilder.ledger_saved(entry_count=entry_count))

    def log_save_failed(self, error_message: str) -> None:
        """Log a failed save."""
        self.log(AuditEventBuilder.save_failed(error_message=error_message))

    def log_save_skipped(self, reason: str) -> None:
        """Log a close that deliberately did not write."""
        self.log(AuditEventBuilder.save_skipped(reason=reason))

    def log_invalid_request(self, operation: str, error_message: str) -> None:
        """Log a rejected add/remove."""
        self.log(AuditEventBuilder.invalid_request(
            operation=operation,
            error_message=error_message,
        ))

    def log_invariant_breach(self, operation: str, error_message: str) -> None:
        """Log a missing or misplaced balance marker."""
        self.log(AuditEventBuilder.invariant_breach(
            operation=operation,
            error_message=error_message,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    One is created per ledger session.
    """
    return uuid4()
