"""Services package."""

from pocket_ledger.services.storage import (
    FileLedgerStorage,
    InMemoryLedgerStorage,
    LedgerStorageInterface,
    StorageError,
    StorageReadError,
    StorageWriteError,
)

__all__ = [
    "FileLedgerStorage",
    "InMemoryLedgerStorage",
    "LedgerStorageInterface",
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
]
