"""
Abstract Storage Interface

DESIGN DECISION: The ledger never opens files itself. It is handed a
storage backend at construction. This allows us to:
1. Use in-memory storage for testing
2. Swap the flat file for something else later
3. Keep business logic decoupled from I/O

The interface is intentionally tiny: the ledger is small, so it is
always read and written whole.
"""

from abc import ABC, abstractmethod


class LedgerStorageInterface(ABC):
    """
    Abstract interface for the ledger's backing store.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    def read_all(self) -> str:
        """
        Read the full persisted text.

        Returns:
            The stored text, or "" if nothing has been stored yet

        Raises:
            StorageReadError: If the backing store cannot be read
        """
        pass

    @abstractmethod
    def write_all(self, text: str) -> None:
        """
        Replace the persisted text with `text`.

        Implementations truncate first; partial appends are not allowed.

        Raises:
            StorageWriteError: If the backing store cannot be written
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageReadError(StorageError):
    """Backing store could not be read."""
    pass


class StorageWriteError(StorageError):
    """Backing store could not be written."""
    pass
