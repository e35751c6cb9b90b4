"""
Core Ledger Models

An Entry is one row of the ledger: an income, an expense, or the
trailing balance marker that carries the running total.

DESIGN DECISION: Amounts are stored as non-negative magnitudes.
The sign is implied by the kind, never by a negative number.
Balance entries are the exception - a running total can go negative.
"""

from datetime import datetime
from decimal import ROUND_FLOOR, Decimal
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


CENT = Decimal("0.01")
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M"


def now_to_minute() -> datetime:
    """Current local time with seconds and microseconds discarded."""
    return datetime.now().replace(second=0, microsecond=0)


def floor_to_cents(value: Decimal) -> Decimal:
    """Truncate toward negative infinity at two fractional digits."""
    return value.quantize(CENT, rounding=ROUND_FLOOR)


# =============================================================================
# ENUMS
# =============================================================================

class EntryKind(str, Enum):
    """
    Kinds of ledger entries.

    BALANCE is a sentinel: exactly one lives at the end of the ledger.
    """
    INCOME = "income"
    EXPENSE = "expense"
    BALANCE = "balance"


class EntryFilter(str, Enum):
    """Selection used when listing entries."""
    ALL = "all"
    INCOME = "income"
    EXPENSE = "expense"

    def matches(self, kind: EntryKind) -> bool:
        """ALL means every transaction, never the balance marker."""
        if self is EntryFilter.ALL:
            return kind is not EntryKind.BALANCE
        return kind.value == self.value


# =============================================================================
# ENTRY
# =============================================================================

class Entry(BaseModel):
    """
    A single ledger entry.

    Entries are frozen once created. Updating the balance means
    replacing the balance entry, not editing it.
    """
    model_config = ConfigDict(frozen=True)

    kind: EntryKind = Field(
        ...,
        description="Income, expense or the balance marker"
    )
    timestamp: datetime = Field(
        default_factory=now_to_minute,
        description="When the entry was made (minute precision)"
    )
    label: str = Field(
        ...,
        description="Free-text category, e.g. food or rent"
    )
    amount: Decimal = Field(
        ...,
        description="Magnitude with exactly two fractional digits"
    )

    @field_validator("timestamp")
    @classmethod
    def truncate_to_minute(cls, v: datetime) -> datetime:
        return v.replace(second=0, microsecond=0)

    @field_validator("amount")
    @classmethod
    def quantize_amount(cls, v: Decimal) -> Decimal:
        if not v.is_finite():
            raise ValueError(f"Amount must be a finite number, got {v}")
        return floor_to_cents(v)

    @model_validator(mode="after")
    def validate_sign(self) -> "Entry":
        """Only the running balance may be negative."""
        if self.kind is not EntryKind.BALANCE and self.amount < 0:
            raise ValueError(
                f"{self.kind.value.capitalize()} amount cannot be negative"
            )
        return self

    @property
    def signed_amount(self) -> Decimal:
        """Contribution of this entry to the running balance."""
        if self.kind is EntryKind.INCOME:
            return self.amount
        if self.kind is EntryKind.EXPENSE:
            return -self.amount
        return Decimal("0.00")

    def same_label(self, other: str) -> bool:
        return self.label.casefold() == other.casefold()

    def with_update(self, timestamp: datetime, amount: Decimal) -> "Entry":
        """Copy with a new timestamp and amount (used for the balance row)."""
        return Entry(
            kind=self.kind,
            timestamp=timestamp,
            label=self.label,
            amount=amount,
        )

    def formatted(self, currency_symbol: str = "$") -> str:
        """Human-readable one-line form for listings."""
        return " | ".join([
            self.kind.value.upper(),
            self.timestamp.strftime(TIMESTAMP_FORMAT),
            self.label.upper(),
            f"{currency_symbol}{self.amount:.2f}",
        ])


def bootstrap_balance(timestamp: Optional[datetime] = None) -> Entry:
    """The single zero balance entry a brand new ledger starts with."""
    return Entry(
        kind=EntryKind.BALANCE,
        timestamp=timestamp or now_to_minute(),
        label="balance",
        amount=Decimal("0.00"),
    )


class BalanceSnapshot(BaseModel):
    """Current running balance and when it last changed."""
    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    amount: Decimal
