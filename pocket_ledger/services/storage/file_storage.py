"""
Flat File Storage Implementation

The ledger lives in a single UTF-8 text file, one entry per line.

TRADEOFFS:
- Every save rewrites the whole file (fine for a personal ledger)
- No locking (one user, one process)
- Transient write errors are retried before giving up
"""

from pathlib import Path
from typing import Optional, Union

from tenacity import (
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from pocket_ledger.audit import get_logger
from pocket_ledger.config import get_settings
from pocket_ledger.services.storage.interface import (
    LedgerStorageInterface,
    StorageError,
    StorageReadError,
    StorageWriteError,
)


logger = get_logger(__name__)


class FileLedgerStorage(LedgerStorageInterface):
    """
    Text file backend.

    The file is opened (and created if missing) at construction so that
    a bad path is reported up front rather than on the first save.
    """

    def __init__(
        self,
        path: Union[str, Path],
        encoding: Optional[str] = None,
        retry_attempts: Optional[int] = None,
    ):
        settings = get_settings().ledger
        self._path = Path(path)
        self._encoding = encoding or settings.file_encoding
        self._retry_attempts = retry_attempts or settings.save_retry_attempts

        try:
            with self._path.open("a", encoding=self._encoding):
                pass
        except OSError as e:
            raise StorageError(f"Cannot open ledger file {self._path}: {e}") from e

    @property
    def path(self) -> Path:
        return self._path

    def read_all(self) -> str:
        """
        Read the whole file; a missing file reads as empty.

        Undecodable bytes come back as U+FFFD so the codec can skip just
        the lines that hold them.
        """
        try:
            return self._path.read_text(encoding=self._encoding, errors="replace")
        except FileNotFoundError:
            return ""
        except OSError as e:
            raise StorageReadError(f"Failed to read {self._path}: {e}") from e

    def write_all(self, text: str) -> None:
        """Truncate and rewrite the file, retrying transient OS errors."""
        retrying = Retrying(
            stop=stop_after_attempt(self._retry_attempts),
            wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
            retry=retry_if_exception_type(OSError),
        )
        try:
            for attempt in retrying:
                with attempt:
                    self._write(text)
        except RetryError as e:
            cause = e.last_attempt.exception()
            raise StorageWriteError(f"Failed to write {self._path}: {cause}") from cause

    def _write(self, text: str) -> None:
        try:
            with self._path.open("w", encoding=self._encoding, newline="\n") as handle:
                handle.write(text)
        except OSError as e:
            logger.warning("ledger_write_attempt_failed", path=str(self._path), error=str(e))
            raise
