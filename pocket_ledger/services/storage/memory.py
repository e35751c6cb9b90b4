"""
In-Memory Storage Implementation

Keeps the ledger text in a string. Used by the test suite and for
throwaway sessions that should never touch disk.
"""

from pocket_ledger.services.storage.interface import LedgerStorageInterface


class InMemoryLedgerStorage(LedgerStorageInterface):
    """Storage backend holding the persisted text in memory."""

    def __init__(self, initial_text: str = ""):
        self.contents = initial_text
        self.write_count = 0

    def read_all(self) -> str:
        return self.contents

    def write_all(self, text: str) -> None:
        self.contents = text
        self.write_count += 1

    @property
    def lines(self) -> list[str]:
        return self.contents.splitlines()
