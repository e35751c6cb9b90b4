"""
Ledger Store

The in-memory transaction log and the only code allowed to change it.

INVARIANT: the last entry is always a BALANCE entry whose amount equals
the income minus the expenses of every entry before it.

DESIGN DECISION: The balance is maintained incrementally. Each add or
remove adjusts the trailing balance by the entry's amount; history is
never re-summed. A loaded file's trailing balance is trusted as-is. A
disagreement with the entries is reported, never silently corrected.

Every mutation validates first and then swaps in a freshly built entry
list, so a failed operation leaves the ledger exactly as it was.
"""

from datetime import datetime
from decimal import Decimal
from typing import Callable, Iterator, Optional, Union

from pocket_ledger.audit import AuditLogger
from pocket_ledger.codec import read_ledger, save_all
from pocket_ledger.models.entry import (
    BalanceSnapshot,
    Entry,
    EntryFilter,
    EntryKind,
    bootstrap_balance,
    now_to_minute,
)
from pocket_ledger.models.validation import ValidationResult
from pocket_ledger.services.storage import LedgerStorageInterface, StorageError
from pocket_ledger.validation import EntryValidator
from pocket_ledger.validation.validator import AmountInput


TRANSACTION_KINDS = (EntryKind.INCOME, EntryKind.EXPENSE)

NO_ENTRIES_MESSAGES = {
    EntryKind.INCOME: "You have no income",
    EntryKind.EXPENSE: "You have no expenses",
}


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class InvalidArgumentError(LedgerError):
    """Bad kind, bad index or bad amount. The ledger is unchanged."""
    pass


class InvalidStateError(LedgerError):
    """The trailing balance entry is missing. The ledger is corrupt."""
    pass


class BalanceNotFoundError(LedgerError):
    """There is no balance entry to report."""
    pass


class LedgerStore:
    """
    Ordered ledger of entries backed by a storage capability.

    Usage:
        with LedgerStore(FileLedgerStorage("transactions.csv")) as store:
            store.add_entry(EntryKind.EXPENSE, "food", "12.50")
            print(store.current_balance().amount)

    Leaving the `with` block saves the ledger.
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[EntryValidator] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize and load the ledger.

        Args:
            storage: Backing store to load from and save to.
            audit_logger: Receives an event for every load, mutation and save.
            validator: Checks labels and amounts before they are added.
            clock: Source of entry timestamps; defaults to local time.
        """
        self._storage = storage
        self._audit = audit_logger or AuditLogger()
        self._validator = validator or EntryValidator()
        self._clock = clock or now_to_minute
        self._entries: list[Entry] = []
        self.load_failed = False
        self._modified = False

        self._load()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def __enter__(self) -> "LedgerStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> tuple[Entry, ...]:
        """Snapshot of the current entries, balance marker included."""
        return tuple(self._entries)

    @property
    def audit_logger(self) -> AuditLogger:
        return self._audit

    def _load(self) -> None:
        """Replay the backing store. A read failure leaves a fresh ledger."""
        try:
            result = read_ledger(self._storage, self._clock)
        except StorageError as e:
            self.load_failed = True
            self._audit.log_load_failed(str(e))
            self._entries = [bootstrap_balance(self._clock())]
            return

        self._entries = list(result.entries)

        for skipped in result.skipped:
            if not skipped.quiet:
                self._audit.log_line_skipped(skipped.line_number, skipped.reason)

        if result.bootstrapped:
            self._audit.log_ledger_created()
            return

        self._audit.log_ledger_loaded(len(self._entries), len(result.skipped))

        if not self._entries or self._entries[-1].kind is not EntryKind.BALANCE:
            self._audit.log_invariant_breach("load", "No balance transaction found")
            return

        stored = self._entries[-1].amount
        computed = self.computed_balance()
        if stored != computed:
            self._audit.log_balance_mismatch(f"{stored:.2f}", f"{computed:.2f}")

    def save(self) -> None:
        """
        Write every entry to the backing store.

        Raises:
            StorageError: If the write fails. This is never downgraded,
                since an unsaved ledger is lost data.
        """
        try:
            save_all(self._entries, self._storage)
        except StorageError as e:
            self._audit.log_save_failed(str(e))
            raise
        self._audit.log_ledger_saved(len(self._entries))

    def close(self) -> None:
        """
        Save on the way out.

        If the backing store could not be read and nothing was changed
        since, the store is left alone so its contents are not replaced
        by an empty ledger.
        """
        if self.load_failed and not self._modified:
            self._audit.log_save_skipped("load failed and ledger unchanged")
            return
        self.save()

    # -------------------------------------------------------------------------
    # Guards
    # -------------------------------------------------------------------------

    def _reject(self, operation: str, message: str) -> InvalidArgumentError:
        self._audit.log_invalid_request(operation, message)
        return InvalidArgumentError(message)

    def _transaction_kind(self, kind: Union[EntryKind, str], operation: str) -> EntryKind:
        try:
            resolved = EntryKind(kind.lower() if isinstance(kind, str) else kind)
        except ValueError:
            raise self._reject(operation, f"Invalid type: {kind}")
        if resolved not in TRANSACTION_KINDS:
            raise self._reject(operation, f"Invalid type: {resolved.value}")
        return resolved

    def _require_balance(self, entries: list[Entry], operation: str) -> Entry:
        if not entries or entries[-1].kind is not EntryKind.BALANCE:
            message = "No balance transaction found"
            self._audit.log_invariant_breach(operation, message)
            raise InvalidStateError(message)
        return entries[-1]

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def preview_entry(self, label: str, amount: AmountInput) -> ValidationResult:
        """Validate a label and amount without touching the ledger."""
        return self._validator.validate(label, amount)

    def add_entry(
        self,
        kind: Union[EntryKind, str],
        label: str,
        amount: AmountInput,
    ) -> Entry:
        """
        Record an income or expense and move the balance accordingly.

        The new entry goes just before the trailing balance entry, which
        is replaced with one carrying the new total and timestamp.

        Raises:
            InvalidArgumentError: Kind is not income/expense, or the label
                or amount failed validation
            InvalidStateError: The ledger has no trailing balance entry
        """
        kind = self._transaction_kind(kind, "add")

        result = self._validator.validate(label, amount)
        if not result.is_valid:
            raise self._reject("add", result.errors[0].message)

        balance = self._require_balance(self._entries, "add")

        now = self._clock()
        entry = Entry(kind=kind, timestamp=now, label=label, amount=result.amount)
        new_balance = balance.with_update(now, balance.amount + entry.signed_amount)

        self._entries = [*self._entries[:-1], entry, new_balance]
        self._modified = True

        self._audit.log_entry_added(
            kind=kind.value,
            label=label,
            amount=f"{entry.amount:.2f}",
            balance=f"{new_balance.amount:.2f}",
        )
        return entry

    def remove_entry(self, index: int, kind: Union[EntryKind, str]) -> Entry:
        """
        Remove the entry at `index` and reverse its effect on the balance.

        Indices are positions in the current ledger, as produced by
        list_entries(). Any earlier listing is stale after a mutation.

        Raises:
            InvalidArgumentError: Kind is not income/expense, there are no
                entries of that kind, or `index` does not address one
            InvalidStateError: The ledger has no trailing balance entry
        """
        kind = self._transaction_kind(kind, "remove")

        if not self.has_kind(kind):
            raise self._reject("remove", NO_ENTRIES_MESSAGES[kind])

        if (
            isinstance(index, bool)
            or not isinstance(index, int)
            or index < 0
            or index > len(self._entries) - 2
            or self._entries[index].kind is not kind
        ):
            raise self._reject("remove", "Invalid index")

        removed = self._entries[index]
        remaining = self._entries[:index] + self._entries[index + 1:]
        balance = self._require_balance(remaining, "remove")

        new_balance = balance.with_update(
            self._clock(),
            balance.amount - removed.signed_amount,
        )
        self._entries = [*remaining[:-1], new_balance]
        self._modified = True

        self._audit.log_entry_removed(
            index=index,
            kind=kind.value,
            amount=f"{removed.amount:.2f}",
            balance=f"{new_balance.amount:.2f}",
        )
        return removed

    def current_balance(self) -> BalanceSnapshot:
        """
        Report the running balance and when it last changed.

        Raises:
            BalanceNotFoundError: If the trailing entry is not a balance
        """
        if not self._entries or self._entries[-1].kind is not EntryKind.BALANCE:
            raise BalanceNotFoundError("No balance found")
        balance = self._entries[-1]
        return BalanceSnapshot(timestamp=balance.timestamp, amount=balance.amount)

    def list_entries(
        self,
        entry_filter: Union[EntryFilter, str] = EntryFilter.ALL,
    ) -> Iterator[tuple[int, Entry]]:
        """
        Lazily yield (index, entry) pairs in ledger order.

        ALL yields every income and expense; INCOME and EXPENSE yield
        only that kind. Balance entries are never listed. Each call
        works on a fresh snapshot.

        Raises:
            InvalidArgumentError: If the filter is unknown
        """
        try:
            resolved = EntryFilter(
                entry_filter.lower() if isinstance(entry_filter, str) else entry_filter
            )
        except ValueError:
            raise InvalidArgumentError(f"Invalid type: {entry_filter}")

        return self._iter_matching(resolved, tuple(self._entries))

    @staticmethod
    def _iter_matching(
        entry_filter: EntryFilter,
        snapshot: tuple[Entry, ...],
    ) -> Iterator[tuple[int, Entry]]:
        for index, entry in enumerate(snapshot):
            if entry_filter.matches(entry.kind):
                yield index, entry

    def has_kind(self, kind: Union[EntryKind, str]) -> bool:
        kind = EntryKind(kind.lower() if isinstance(kind, str) else kind)
        return any(entry.kind is kind for entry in self._entries)

    def computed_balance(self) -> Decimal:
        """Income minus expenses, summed over the whole ledger."""
        return sum(
            (entry.signed_amount for entry in self._entries),
            Decimal("0.00"),
        )
