"""
Storage Services Package

Provides the abstract storage interface and its implementations.
The flat text file is the production backend; the in-memory one
exists for tests.
"""

from pocket_ledger.services.storage.interface import (
    LedgerStorageInterface,
    StorageError,
    StorageReadError,
    StorageWriteError,
)
from pocket_ledger.services.storage.file_storage import FileLedgerStorage
from pocket_ledger.services.storage.memory import InMemoryLedgerStorage

__all__ = [
    # Interfaces
    "LedgerStorageInterface",
    # Exceptions
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
    # Implementations
    "FileLedgerStorage",
    "InMemoryLedgerStorage",
]
