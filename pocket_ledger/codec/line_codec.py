"""
Line Codec

Serializes ledger entries to and from the flat text format:

    kind,YYYY-MM-DD HH:MM,label,amount

one entry per line, newline-terminated. Example:

    balance,2024-01-01 00:00,balance,0.00
    expense,2024-01-01 09:15,food,12.50
    balance,2024-01-01 09:15,balance,-12.50

DESIGN DECISION: Decoding is per-line tolerant. A corrupt line is
skipped and reported; it never aborts the whole load.

KNOWN LIMITATION: labels are not escaped. A comma inside a label would
split into a fifth field on reload, so the validator refuses such
labels before they reach the ledger.
"""

import re
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional

from pydantic import BaseModel, Field, ValidationError

from pocket_ledger.audit import get_logger
from pocket_ledger.models.entry import (
    TIMESTAMP_FORMAT,
    Entry,
    EntryKind,
    bootstrap_balance,
    floor_to_cents,
)
from pocket_ledger.services.storage import LedgerStorageInterface


FIELD_SEPARATOR = ","
FIELD_COUNT = 4

# What a byte the file encoding cannot decode is read back as
REPLACEMENT_CHARACTER = "\ufffd"

_TIMESTAMP_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}$", re.ASCII)
_LINE_BREAK = re.compile(r"\r\n|\r|\n")

_KINDS = {
    "expense": EntryKind.EXPENSE,
    "income": EntryKind.INCOME,
    "balance": EntryKind.BALANCE,
}

logger = get_logger(__name__)


class MalformedLineError(ValueError):
    """A persisted line could not be turned into an Entry."""

    def __init__(self, reason: str, quiet: bool = False):
        super().__init__(reason)
        self.reason = reason
        # Wrong field counts (blank lines included) are skipped without a warning
        self.quiet = quiet


class SkippedLine(BaseModel):
    """A line the decoder refused."""

    line_number: int = Field(ge=1)
    reason: str
    quiet: bool = False


class LoadResult(BaseModel):
    """Everything a load produced."""

    entries: list[Entry] = Field(default_factory=list)
    skipped: list[SkippedLine] = Field(default_factory=list)
    bootstrapped: bool = False

    @property
    def warning_count(self) -> int:
        return sum(1 for line in self.skipped if not line.quiet)


# =============================================================================
# ENCODE
# =============================================================================

def encode_entry(entry: Entry) -> str:
    """Render one entry as a line (without the trailing newline)."""
    return FIELD_SEPARATOR.join([
        entry.kind.value,
        entry.timestamp.strftime(TIMESTAMP_FORMAT),
        entry.label,
        f"{entry.amount:.2f}",
    ])


def encode_entries(entries: list[Entry]) -> str:
    return "".join(encode_entry(entry) + "\n" for entry in entries)


# =============================================================================
# DECODE
# =============================================================================

def parse_kind(field: str) -> EntryKind:
    kind = _KINDS.get(field.strip().lower())
    if kind is None:
        raise MalformedLineError(f"Unknown type: {field.strip()!r}")
    return kind


def parse_timestamp(field: str) -> datetime:
    value = field.strip()
    if not _TIMESTAMP_PATTERN.match(value):
        raise MalformedLineError(f"Bad timestamp: {value!r}")
    try:
        return datetime.strptime(value, TIMESTAMP_FORMAT)
    except ValueError:
        raise MalformedLineError(f"Bad timestamp: {value!r}")


def parse_amount(field: str) -> Decimal:
    """Parse a decimal and floor it to cents (never round)."""
    value = field.strip()
    try:
        amount = Decimal(value)
    except InvalidOperation:
        raise MalformedLineError(f"Bad amount: {value!r}")
    if not amount.is_finite():
        raise MalformedLineError(f"Bad amount: {value!r}")
    return floor_to_cents(amount)


def parse_line(line: str) -> Entry:
    """
    Decode a single line.

    Raises:
        MalformedLineError: If the line does not hold a valid entry
    """
    if REPLACEMENT_CHARACTER in line:
        raise MalformedLineError("Line holds bytes that are not valid text")

    fields = line.split(FIELD_SEPARATOR)
    if len(fields) != FIELD_COUNT:
        raise MalformedLineError(
            f"Expected {FIELD_COUNT} fields, got {len(fields)}",
            quiet=True,
        )

    kind = parse_kind(fields[0])
    timestamp = parse_timestamp(fields[1])
    label = fields[2].strip()
    amount = parse_amount(fields[3])

    try:
        return Entry(kind=kind, timestamp=timestamp, label=label, amount=amount)
    except ValidationError as e:
        raise MalformedLineError(f"Invalid entry: {e.errors()[0]['msg']}")


def _log_skip(line_number: Optional[int], error: MalformedLineError) -> None:
    if error.quiet:
        logger.debug("line_skipped", line_number=line_number, reason=error.reason)
    else:
        logger.warning("line_skipped", line_number=line_number, reason=error.reason)


def decode_line(line: str, line_number: Optional[int] = None) -> Optional[Entry]:
    """Decode a line, returning None (and logging) if it must be skipped."""
    try:
        return parse_line(line)
    except MalformedLineError as e:
        _log_skip(line_number, e)
        return None


def split_lines(text: str) -> list[str]:
    lines = _LINE_BREAK.split(text)
    if lines and lines[-1] == "":
        lines.pop()
    return lines


def decode_text(
    text: str,
    clock: Optional[Callable[[], datetime]] = None,
) -> LoadResult:
    """
    Decode every line of `text`, keeping successes in file order.

    `clock` stamps the balance entry of a bootstrapped ledger.
    """
    if text == "":
        timestamp = clock() if clock else None
        return LoadResult(entries=[bootstrap_balance(timestamp)], bootstrapped=True)

    result = LoadResult()
    for line_number, line in enumerate(split_lines(text), start=1):
        try:
            result.entries.append(parse_line(line))
        except MalformedLineError as e:
            _log_skip(line_number, e)
            result.skipped.append(SkippedLine(
                line_number=line_number,
                reason=e.reason,
                quiet=e.quiet,
            ))
    return result


# =============================================================================
# LOAD / SAVE
# =============================================================================

def read_ledger(
    storage: LedgerStorageInterface,
    clock: Optional[Callable[[], datetime]] = None,
) -> LoadResult:
    """
    Load the backing store, with details of anything skipped.

    Raises:
        StorageReadError: If the backing store cannot be read
    """
    return decode_text(storage.read_all(), clock)


def load_all(
    storage: LedgerStorageInterface,
    clock: Optional[Callable[[], datetime]] = None,
) -> list[Entry]:
    """Load the backing store; an empty store yields one zero balance entry."""
    return read_ledger(storage, clock).entries


def save_all(entries: list[Entry], storage: LedgerStorageInterface) -> None:
    """
    Rewrite the backing store with `entries`, in order.

    Raises:
        StorageWriteError: If the backing store cannot be written
    """
    storage.write_all(encode_entries(entries))
