"""Ledger engine package."""

from pocket_ledger.ledger.store import (
    BalanceNotFoundError,
    InvalidArgumentError,
    InvalidStateError,
    LedgerError,
    LedgerStore,
    NO_ENTRIES_MESSAGES,
)

__all__ = [
    "BalanceNotFoundError",
    "InvalidArgumentError",
    "InvalidStateError",
    "LedgerError",
    "LedgerStore",
    "NO_ENTRIES_MESSAGES",
]
