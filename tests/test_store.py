"""Tests for the ledger store."""

import pytest
from datetime import datetime, timedelta
from decimal import Decimal

from pocket_ledger.audit import AuditLogger
from pocket_ledger.ledger import (
    BalanceNotFoundError,
    InvalidArgumentError,
    InvalidStateError,
    LedgerStore,
)
from pocket_ledger.models.audit import AuditEventType
from pocket_ledger.models.entry import EntryFilter, EntryKind
from pocket_ledger.services.storage import (
    InMemoryLedgerStorage,
    LedgerStorageInterface,
    StorageReadError,
    StorageWriteError,
)
from pocket_ledger.validation import EntryValidator


FIXED_NOW = datetime(2024, 1, 1, 9, 15)


class BrokenStorage(LedgerStorageInterface):
    """Storage whose reads and/or writes always fail."""

    def __init__(self, fail_reads=True, fail_writes=True):
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes
        self.contents = ""

    def read_all(self):
        if self.fail_reads:
            raise StorageReadError("disk on fire")
        return self.contents

    def write_all(self, text):
        if self.fail_writes:
            raise StorageWriteError("disk full")
        self.contents = text


class StepClock:
    """Clock that moves forward one minute per call."""

    def __init__(self, start=FIXED_NOW):
        self.current = start

    def __call__(self):
        self.current += timedelta(minutes=1)
        return self.current


def make_store(text="", clock=None, audit_logger=None):
    storage = InMemoryLedgerStorage(text)
    store = LedgerStore(
        storage,
        audit_logger=audit_logger,
        validator=EntryValidator(max_amount=Decimal("1000000")),
        clock=clock or (lambda: FIXED_NOW),
    )
    return store, storage


def event_types(store):
    return [event.event_type for event in store.audit_logger.recent_events]


class TestBootstrap:
    """Tests for opening an empty backing store."""

    def test_empty_store_has_single_zero_balance(self):
        """Test bootstrap yields exactly one balance entry of 0.00."""
        store, _ = make_store()
        assert len(store) == 1
        assert store.entries[0].kind == EntryKind.BALANCE
        assert store.current_balance().amount == Decimal("0.00")

    def test_bootstrap_is_audited(self):
        """Test a new ledger logs ledger_created."""
        store, _ = make_store()
        assert event_types(store) == [AuditEventType.LEDGER_CREATED]

    def test_unreadable_store_continues_with_new_ledger(self):
        """Test a read failure is downgraded to a warning."""
        store = LedgerStore(BrokenStorage(fail_writes=False))
        assert store.load_failed is True
        assert len(store) == 1
        assert store.current_balance().amount == Decimal("0.00")
        assert AuditEventType.LOAD_FAILED in event_types(store)

    def test_bootstrap_uses_injected_clock(self):
        """Test the starting balance is stamped by the store's clock."""
        store, _ = make_store()
        assert store.current_balance().timestamp == FIXED_NOW

    def test_unreadable_store_not_overwritten_on_close(self):
        """Test closing after a failed load leaves the backing store alone."""
        storage = BrokenStorage(fail_writes=False)
        storage.contents = "precious"
        with LedgerStore(storage, clock=lambda: FIXED_NOW) as store:
            assert store.load_failed is True
        assert storage.contents == "precious"
        assert event_types(store)[-1] == AuditEventType.SAVE_SKIPPED

    def test_unreadable_store_saved_after_changes(self):
        """Test a session that changed the ledger still saves after a failed load."""
        storage = BrokenStorage(fail_writes=False)
        with LedgerStore(storage, clock=lambda: FIXED_NOW) as store:
            store.add_entry(EntryKind.INCOME, "work", "5")
        assert storage.contents.endswith("balance,2024-01-01 09:15,balance,5.00\n")


class TestAddEntry:
    """Tests for add_entry."""

    def test_add_expense_then_balance(self):
        """Test an expense of 12.50 leaves a balance of -12.50."""
        store, _ = make_store()
        store.add_entry(EntryKind.EXPENSE, "food", Decimal("12.50"))
        assert store.current_balance().amount == Decimal("-12.50")

    def test_add_income(self):
        """Test income raises the balance."""
        store, _ = make_store()
        store.add_entry(EntryKind.INCOME, "work", "100")
        assert store.current_balance().amount == Decimal("100.00")

    def test_entry_inserted_before_balance(self):
        """Test transactions keep insertion order ahead of the balance."""
        store, _ = make_store()
        store.add_entry(EntryKind.INCOME, "work", "100")
        store.add_entry(EntryKind.EXPENSE, "food", "12.50")
        store.add_entry(EntryKind.EXPENSE, "rent", "50")
        kinds = [e.kind for e in store.entries]
        labels = [e.label for e in store.entries]
        assert kinds == [
            EntryKind.INCOME,
            EntryKind.EXPENSE,
            EntryKind.EXPENSE,
            EntryKind.BALANCE,
        ]
        assert labels[:3] == ["work", "food", "rent"]

    def test_balance_timestamp_refreshed(self):
        """Test the balance entry carries the time of the last change."""
        clock = StepClock()
        store, _ = make_store(clock=clock)
        entry = store.add_entry(EntryKind.INCOME, "work", "1")
        assert store.current_balance().timestamp == entry.timestamp == clock.current

    def test_add_accepts_string_kind(self):
        """Test kinds may be given by name."""
        store, _ = make_store()
        store.add_entry("Expense", "food", "1")
        assert store.entries[0].kind == EntryKind.EXPENSE

    def test_add_balance_kind_rejected(self):
        """Test Add(Balance, "x", 10.00) fails with InvalidArgument."""
        store, _ = make_store()
        with pytest.raises(InvalidArgumentError, match="Invalid type"):
            store.add_entry(EntryKind.BALANCE, "x", Decimal("10.00"))
        assert len(store) == 1

    def test_add_unknown_kind_rejected(self):
        """Test kinds outside the enum are refused."""
        store, _ = make_store()
        with pytest.raises(InvalidArgumentError):
            store.add_entry("refund", "x", "1")

    @pytest.mark.parametrize("amount", ["0", "-5", "0.001", "abc"])
    def test_bad_amount_rejected(self, amount):
        """Test zero, negative and non-numeric amounts are refused."""
        store, _ = make_store()
        with pytest.raises(InvalidArgumentError):
            store.add_entry(EntryKind.EXPENSE, "food", amount)
        assert len(store) == 1

    def test_label_with_separator_rejected(self):
        """Test labels that would corrupt the file are refused."""
        store, _ = make_store()
        with pytest.raises(InvalidArgumentError, match="comma"):
            store.add_entry(EntryKind.EXPENSE, "food, drinks", "5")

    def test_long_label_rejected_without_change(self):
        """Test an over-long label is refused before the ledger moves."""
        store, _ = make_store()
        with pytest.raises(InvalidArgumentError, match="longer than"):
            store.add_entry(EntryKind.EXPENSE, "x" * 600, "1.00")
        assert len(store) == 1
        assert store.current_balance().amount == Decimal("0.00")

    def test_label_with_surrounding_spaces_rejected(self):
        """Test labels that would be trimmed on reload are refused."""
        store, _ = make_store()
        with pytest.raises(InvalidArgumentError, match="spaces"):
            store.add_entry(EntryKind.INCOME, "  work ", "100")
        assert len(store) == 1

    def test_amount_floored(self):
        """Test amounts are floored to cents on the way in."""
        store, _ = make_store()
        entry = store.add_entry(EntryKind.INCOME, "work", "10.999")
        assert entry.amount == Decimal("10.99")
        assert store.current_balance().amount == Decimal("10.99")

    def test_add_without_balance_is_invalid_state(self):
        """Test a ledger missing its balance marker refuses adds."""
        store, _ = make_store("income,2024-01-01 09:00,work,5.00\n")
        with pytest.raises(InvalidStateError):
            store.add_entry(EntryKind.INCOME, "work", "1")
        assert len(store) == 1
        assert AuditEventType.INVARIANT_BREACH in event_types(store)

    def test_add_to_empty_ledger_is_invalid_state(self):
        """Test a file with no decodable lines refuses adds."""
        store, _ = make_store("garbage\n")
        assert len(store) == 0
        with pytest.raises(InvalidStateError):
            store.add_entry(EntryKind.INCOME, "work", "1")

    def test_add_does_not_save(self):
        """Test mutations stay in memory until save."""
        store, storage = make_store()
        store.add_entry(EntryKind.INCOME, "work", "1")
        assert storage.write_count == 0


class TestRemoveEntry:
    """Tests for remove_entry."""

    def test_add_then_remove_restores_balance(self):
        """Test Add(Income, 100) then Remove(0, Income) restores the balance."""
        store, _ = make_store()
        before = store.current_balance().amount
        store.add_entry(EntryKind.INCOME, "work", Decimal("100.00"))
        removed = store.remove_entry(0, EntryKind.INCOME)
        assert removed.label == "work"
        assert store.current_balance().amount == before
        assert len(store) == 1

    def test_remove_expense_adds_back(self):
        """Test removing an expense returns its amount to the balance."""
        store, _ = make_store()
        store.add_entry(EntryKind.INCOME, "work", "100")
        store.add_entry(EntryKind.EXPENSE, "food", "30")
        store.remove_entry(1, EntryKind.EXPENSE)
        assert store.current_balance().amount == Decimal("100.00")

    def test_remove_refreshes_balance_timestamp(self):
        """Test removal stamps the balance with the current time."""
        clock = StepClock()
        store, _ = make_store(clock=clock)
        store.add_entry(EntryKind.INCOME, "work", "5")
        store.remove_entry(0, EntryKind.INCOME)
        assert store.current_balance().timestamp == clock.current

    def test_remove_negative_index(self):
        """Test Remove(-1, Expense) fails with InvalidArgument."""
        store, _ = make_store()
        store.add_entry(EntryKind.EXPENSE, "food", "5")
        with pytest.raises(InvalidArgumentError, match="Invalid index"):
            store.remove_entry(-1, EntryKind.EXPENSE)

    def test_remove_balance_slot(self):
        """Test Remove(len-1, Expense) fails with InvalidArgument."""
        store, _ = make_store()
        store.add_entry(EntryKind.EXPENSE, "food", "5")
        with pytest.raises(InvalidArgumentError, match="Invalid index"):
            store.remove_entry(len(store) - 1, EntryKind.EXPENSE)

    def test_remove_index_past_end(self):
        """Test indexes beyond the ledger are refused."""
        store, _ = make_store()
        store.add_entry(EntryKind.EXPENSE, "food", "5")
        with pytest.raises(InvalidArgumentError, match="Invalid index"):
            store.remove_entry(10, EntryKind.EXPENSE)

    def test_remove_kind_mismatch(self):
        """Test the index must address an entry of the requested kind."""
        store, _ = make_store()
        store.add_entry(EntryKind.INCOME, "work", "100")
        store.add_entry(EntryKind.EXPENSE, "food", "5")
        with pytest.raises(InvalidArgumentError, match="Invalid index"):
            store.remove_entry(0, EntryKind.EXPENSE)

    def test_remove_with_no_entries_of_kind(self):
        """Test removal reports when nothing of that kind exists."""
        store, _ = make_store()
        store.add_entry(EntryKind.EXPENSE, "food", "5")
        with pytest.raises(InvalidArgumentError, match="You have no income"):
            store.remove_entry(0, EntryKind.INCOME)

    def test_remove_balance_kind_rejected(self):
        """Test the balance marker cannot be removed."""
        store, _ = make_store()
        with pytest.raises(InvalidArgumentError, match="Invalid type"):
            store.remove_entry(0, EntryKind.BALANCE)

    def test_failed_remove_leaves_ledger_unchanged(self):
        """Test rejected removals do not mutate anything."""
        store, _ = make_store()
        store.add_entry(EntryKind.EXPENSE, "food", "5")
        before = store.entries
        with pytest.raises(InvalidArgumentError):
            store.remove_entry(5, EntryKind.EXPENSE)
        assert store.entries == before

    def test_remove_without_trailing_balance_is_invalid_state(self):
        """Test removal from a ledger missing its balance marker."""
        text = (
            "expense,2024-01-01 09:00,food,5.00\n"
            "income,2024-01-01 09:05,work,7.00\n"
        )
        store, _ = make_store(text)
        before = store.entries
        with pytest.raises(InvalidStateError):
            store.remove_entry(0, EntryKind.EXPENSE)
        assert store.entries == before

    def test_rejections_are_audited(self):
        """Test invalid requests produce invalid_request events."""
        store, _ = make_store()
        with pytest.raises(InvalidArgumentError):
            store.remove_entry(0, EntryKind.EXPENSE)
        assert event_types(store)[-1] == AuditEventType.INVALID_REQUEST


class TestInvariant:
    """The trailing balance always equals income minus expenses."""

    def test_balance_matches_sum_after_mixed_operations(self):
        """Test the invariant across a sequence of adds and removes."""
        store, _ = make_store()
        operations = [
            ("add", EntryKind.INCOME, "work", "1500.00"),
            ("add", EntryKind.EXPENSE, "rent", "800.00"),
            ("add", EntryKind.EXPENSE, "food", "12.34"),
            ("add", EntryKind.INCOME, "gift", "20.01"),
            ("remove", 1, EntryKind.EXPENSE),
            ("add", EntryKind.EXPENSE, "coffee", "3.33"),
            ("remove", 0, EntryKind.INCOME),
        ]
        for op in operations:
            if op[0] == "add":
                store.add_entry(op[1], op[2], op[3])
            else:
                store.remove_entry(op[1], op[2])
            assert store.entries[-1].kind == EntryKind.BALANCE
            assert store.current_balance().amount == store.computed_balance()

        assert store.current_balance().amount == Decimal("4.34")

    def test_stale_balance_trusted_but_reported(self):
        """Test a loaded balance is kept even when it disagrees."""
        text = (
            "income,2024-01-01 09:00,work,100.00\n"
            "balance,2024-01-01 09:00,balance,90.00\n"
        )
        store, _ = make_store(text)
        assert store.current_balance().amount == Decimal("90.00")
        assert store.computed_balance() == Decimal("100.00")
        assert AuditEventType.BALANCE_MISMATCH in event_types(store)

        store.add_entry(EntryKind.EXPENSE, "food", "10")
        assert store.current_balance().amount == Decimal("80.00")


class TestCurrentBalance:
    """Tests for current_balance."""

    def test_reports_timestamp_and_amount(self):
        """Test the snapshot mirrors the trailing entry."""
        store, _ = make_store("balance,2024-05-06 07:08,balance,42.00\n")
        balance = store.current_balance()
        assert balance.timestamp == datetime(2024, 5, 6, 7, 8)
        assert balance.amount == Decimal("42.00")

    def test_not_found_without_balance(self):
        """Test NotFound when the trailing entry is not a balance."""
        store, _ = make_store("income,2024-01-01 09:00,work,5.00\n")
        with pytest.raises(BalanceNotFoundError):
            store.current_balance()

    def test_not_found_when_empty(self):
        """Test NotFound when nothing decoded."""
        store, _ = make_store("nothing useful\n")
        with pytest.raises(BalanceNotFoundError):
            store.current_balance()


class TestListEntries:
    """Tests for list_entries."""

    def test_all_excludes_balance(self):
        """Test ALL lists every transaction with its position."""
        store, _ = make_store()
        store.add_entry(EntryKind.INCOME, "work", "100")
        store.add_entry(EntryKind.EXPENSE, "food", "5")
        listed = list(store.list_entries())
        assert [index for index, _ in listed] == [0, 1]
        assert all(entry.kind != EntryKind.BALANCE for _, entry in listed)

    def test_filter_by_kind_keeps_positions(self):
        """Test filtered listings report positions usable by remove_entry."""
        store, _ = make_store()
        store.add_entry(EntryKind.INCOME, "work", "100")
        store.add_entry(EntryKind.EXPENSE, "food", "5")
        store.add_entry(EntryKind.INCOME, "gift", "10")
        listed = list(store.list_entries(EntryFilter.INCOME))
        assert [index for index, _ in listed] == [0, 2]

        store.remove_entry(listed[1][0], EntryKind.INCOME)
        assert store.current_balance().amount == Decimal("95.00")

    def test_balance_entries_inside_loaded_file_not_listed(self):
        """Test historical balance rows are skipped by ALL."""
        store, _ = make_store(
            "balance,2024-01-01 00:00,balance,0.00\n"
            "expense,2024-01-01 09:15,food,12.50\n"
            "balance,2024-01-01 09:15,balance,-12.50\n"
        )
        listed = list(store.list_entries(EntryFilter.ALL))
        assert [index for index, _ in listed] == [1]

    def test_listing_is_idempotent(self):
        """Test two listings with no mutation in between are identical."""
        store, _ = make_store()
        store.add_entry(EntryKind.INCOME, "work", "100")
        store.add_entry(EntryKind.EXPENSE, "food", "5")
        assert list(store.list_entries()) == list(store.list_entries())

    def test_listing_is_lazy_and_restartable(self):
        """Test each call returns a fresh iterator."""
        store, _ = make_store()
        store.add_entry(EntryKind.INCOME, "work", "100")
        first = store.list_entries()
        assert next(first)[0] == 0
        assert list(store.list_entries())[0][0] == 0

    def test_string_filter(self):
        """Test filters may be given by name."""
        store, _ = make_store()
        store.add_entry(EntryKind.EXPENSE, "food", "5")
        assert len(list(store.list_entries("expense"))) == 1

    def test_unknown_filter(self):
        """Test unknown filters are refused up front."""
        store, _ = make_store()
        with pytest.raises(InvalidArgumentError):
            store.list_entries("balance")


class TestPersistence:
    """Tests for save, close and the context manager."""

    def test_save_writes_expected_text(self):
        """Test the saved file ends with the balance line."""
        store, storage = make_store()
        store.add_entry(EntryKind.EXPENSE, "food", "12.50")
        store.save()
        lines = storage.lines
        assert lines[-2] == "expense,2024-01-01 09:15,food,12.50"
        assert lines[-1] == "balance,2024-01-01 09:15,balance,-12.50"

    def test_context_manager_saves_on_exit(self):
        """Test leaving the with-block flushes the ledger."""
        storage = InMemoryLedgerStorage()
        with LedgerStore(storage, clock=lambda: FIXED_NOW) as store:
            store.add_entry(EntryKind.INCOME, "work", "5")
        assert storage.write_count == 1
        assert storage.lines[-1] == "balance,2024-01-01 09:15,balance,5.00"

    def test_reload_after_save(self):
        """Test a saved ledger reloads identically."""
        store, storage = make_store()
        store.add_entry(EntryKind.INCOME, "work", "100")
        store.add_entry(EntryKind.EXPENSE, "food", "12.5")
        store.save()

        reloaded = LedgerStore(InMemoryLedgerStorage(storage.contents))
        assert reloaded.entries == store.entries
        assert reloaded.current_balance().amount == Decimal("87.50")

    def test_save_failure_is_raised(self):
        """Test write failures surface as StorageError."""
        store = LedgerStore(BrokenStorage(fail_reads=False))
        with pytest.raises(StorageWriteError):
            store.save()
        assert AuditEventType.SAVE_FAILED in event_types(store)

    def test_save_is_audited(self):
        """Test a successful save logs ledger_saved."""
        store, _ = make_store()
        store.save()
        assert event_types(store)[-1] == AuditEventType.LEDGER_SAVED


class TestAuditing:
    """Tests for audit integration."""

    def test_shared_correlation_id(self):
        """Test all events in a session share the logger's correlation ID."""
        audit_logger = AuditLogger()
        store, _ = make_store(audit_logger=audit_logger)
        store.add_entry(EntryKind.INCOME, "work", "5")
        store.remove_entry(0, EntryKind.INCOME)
        ids = {event.correlation_id for event in audit_logger.recent_events}
        assert ids == {audit_logger.correlation_id}

    def test_skipped_lines_are_audited(self):
        """Test unparseable lines produce line_skipped warnings."""
        store, _ = make_store(
            "refund,2024-01-01 09:00,shop,5.00\n"
            "balance,2024-01-01 09:00,balance,0.00\n"
        )
        types = event_types(store)
        assert AuditEventType.LINE_SKIPPED in types
        assert AuditEventType.LEDGER_LOADED in types


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
