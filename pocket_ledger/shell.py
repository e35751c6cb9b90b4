"""
Interactive Shell for Pocket Ledger

A menu-driven console front end. It only prompts, prints and calls
LedgerStore; all ledger rules live in the store.

Usage:
    pocket-ledger                  # uses transactions.csv (or LEDGER_DEFAULT_FILE)
    pocket-ledger /path/to/books   # uses the given file
"""

import argparse
import sys
from decimal import Decimal
from typing import Callable, Optional, TextIO

from pocket_ledger import __version__
from pocket_ledger.audit import configure_logging, get_logger
from pocket_ledger.config import get_settings, validate_all_settings
from pocket_ledger.ledger import (
    NO_ENTRIES_MESSAGES,
    BalanceNotFoundError,
    InvalidArgumentError,
    InvalidStateError,
    LedgerStore,
)
from pocket_ledger.models.entry import TIMESTAMP_FORMAT, EntryFilter, EntryKind, floor_to_cents
from pocket_ledger.services.storage import FileLedgerStorage, StorageError
from pocket_ledger.validation import to_decimal


logger = get_logger(__name__)

CLEAR_SCREEN = "\033[H\033[2J"

MENU = """\
***********MENU***********
1. Add Expense
2. Add Income
3. Remove Expense
4. Remove Income
5. Check Balance
6. View Transactions
7. Exit
**************************
"""

BANNER_WIDTH = 56
EXIT_CHOICE = 7


def banner(title: str = "") -> str:
    if not title:
        return "*" * BANNER_WIDTH
    return title.center(BANNER_WIDTH, "*")


def parse_amount_input(raw: str, kind: EntryKind) -> Decimal:
    """
    Turn typed text into an entry amount.

    Expense signs are dropped (users often type -12.50); income must be
    positive. The result is floored to cents.

    Raises:
        ValueError: With a message fit to show the user
    """
    value = to_decimal(raw)
    if value is None:
        raise ValueError("Amount must be a number.")
    if kind is EntryKind.INCOME and value <= 0:
        raise ValueError("Income must be positive")
    return floor_to_cents(abs(value))


class LedgerShell:
    """Menu loop driving a LedgerStore from typed input."""

    def __init__(
        self,
        store: LedgerStore,
        input_func: Optional[Callable[[], str]] = None,
        out: Optional[TextIO] = None,
        err: Optional[TextIO] = None,
        currency_symbol: str = "$",
        clear_screen: bool = True,
    ):
        self._store = store
        self._read = input_func or input
        self._out = out or sys.stdout
        self._err = err or sys.stderr
        self._currency = currency_symbol
        self._clear_screen = clear_screen

    def _print(self, text: str = "") -> None:
        print(text, file=self._out)

    def _error(self, text: str) -> None:
        print(text, file=self._err)

    def _prompt(self, text: str) -> str:
        self._out.write(text)
        self._out.flush()
        return self._read()

    def _clear(self) -> None:
        if self._clear_screen:
            self._out.write(CLEAR_SCREEN)
            self._out.flush()

    def run(self) -> None:
        """Show the menu until the user picks Exit or input runs out."""
        try:
            while True:
                self._clear()
                choice = self._get_choice()
                if choice == EXIT_CHOICE:
                    return
                self.dispatch(choice)
                self._prompt("Press [ENTER] to continue...")
        except EOFError:
            self._print()

    def dispatch(self, choice: int) -> None:
        if choice == 1:
            self.handle_add(EntryKind.EXPENSE)
        elif choice == 2:
            self.handle_add(EntryKind.INCOME)
        elif choice == 3:
            self.handle_remove(EntryKind.EXPENSE)
        elif choice == 4:
            self.handle_remove(EntryKind.INCOME)
        elif choice == 5:
            self._clear()
            self.show_balance()
        elif choice == 6:
            self._clear()
            self.show_transactions()
        else:
            self._error("Invalid choice.")

    def _get_choice(self) -> int:
        while True:
            self._print(MENU)
            raw = self._prompt("Enter your choice: ")
            try:
                choice = int(raw.strip())
            except ValueError:
                self._clear()
                self._error("Input must be an integer.")
                continue
            if 1 <= choice <= EXIT_CHOICE:
                return choice
            self._clear()
            self._error(f"Choice must be between 1-{EXIT_CHOICE}")

    def handle_add(self, kind: EntryKind) -> None:
        self._clear()
        label = self._prompt("Enter category: ").strip()
        raw_amount = self._prompt("Enter amount: ")

        try:
            amount = parse_amount_input(raw_amount, kind)
        except ValueError as e:
            self._error(str(e))
            return

        for warning in self._store.preview_entry(label, amount).warnings:
            self._print(f"Warning: {warning}")

        try:
            self._store.add_entry(kind, label, amount)
        except (InvalidArgumentError, InvalidStateError) as e:
            self._error(str(e))
            return
        self._print(f"{kind.value} added successfully")

    def handle_remove(self, kind: EntryKind) -> None:
        self._clear()
        if not self._store.has_kind(kind):
            self._error(NO_ENTRIES_MESSAGES[kind])
            return

        self._print(banner("*INCOME*" if kind is EntryKind.INCOME else "EXPENSES"))
        self._print_listing(EntryFilter(kind.value))
        self._print(banner())
        self._print()

        raw_index = self._prompt("Enter transaction index to remove: ")
        try:
            index = int(raw_index.strip())
        except ValueError:
            self._error("Index must be a number.")
            return

        try:
            self._store.remove_entry(index, kind)
        except (InvalidArgumentError, InvalidStateError) as e:
            self._error(str(e))
            return
        self._print("Transaction removed.")

    def show_balance(self) -> None:
        try:
            balance = self._store.current_balance()
        except BalanceNotFoundError as e:
            self._print(str(e))
            return
        self._print(f"Last updated: {balance.timestamp.strftime(TIMESTAMP_FORMAT)}")
        self._print(f"Balance: {self._currency}{balance.amount:.2f}")
        self._print()

    def show_transactions(self) -> None:
        self._print(banner("TRANSACTIONS"))
        if not self._print_listing(EntryFilter.ALL):
            self._print("No transactions yet")
        self._print(banner())
        self._print()

    def _print_listing(self, entry_filter: EntryFilter) -> int:
        count = 0
        for index, entry in self._store.list_entries(entry_filter):
            self._print(f"{index} {entry.formatted(self._currency)}")
            count += 1
        return count


def build_parser(default_file: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pocket-ledger",
        description="Track income and expenses against a running balance.",
    )
    parser.add_argument(
        "file",
        nargs="?",
        default=default_file,
        help=f"ledger file (default: {default_file})",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="log debug output to stderr",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Console entry point. Returns the process exit code."""
    checks = validate_all_settings()
    problems = [value for key, value in checks.items() if key.endswith("_error")]
    if problems:
        for problem in problems:
            print(f"Configuration error: {problem}", file=sys.stderr)
        return 1

    settings = get_settings()
    ledger_settings = settings.ledger
    app_settings = settings.app
    args = build_parser(ledger_settings.default_file).parse_args(argv)

    configure_logging("DEBUG" if args.verbose else app_settings.effective_log_level)
    logger.info(
        "session_started",
        environment=app_settings.app_environment,
        ledger_file=args.file,
    )

    try:
        storage = FileLedgerStorage(args.file)
    except StorageError as e:
        print(f"Error loading file: {args.file} ({e})", file=sys.stderr)
        return 1

    try:
        with LedgerStore(storage) as store:
            if store.load_failed:
                print(
                    f"Error loading file: {args.file}. Starting with an empty ledger; "
                    "the file is only overwritten if you make changes.",
                    file=sys.stderr,
                )
            LedgerShell(store, currency_symbol=ledger_settings.currency_symbol).run()
    except StorageError as e:
        print(f"Error saving file: {args.file} ({e})", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
