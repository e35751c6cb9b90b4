"""Input validation package."""

from pocket_ledger.validation.validator import EntryValidator, to_decimal

__all__ = ["EntryValidator", "to_decimal"]
