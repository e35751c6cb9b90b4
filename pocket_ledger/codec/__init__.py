"""Persistence codec package."""

from pocket_ledger.codec.line_codec import (
    FIELD_SEPARATOR,
    LoadResult,
    REPLACEMENT_CHARACTER,
    MalformedLineError,
    SkippedLine,
    decode_line,
    decode_text,
    encode_entries,
    encode_entry,
    load_all,
    parse_line,
    read_ledger,
    save_all,
)

__all__ = [
    "FIELD_SEPARATOR",
    "LoadResult",
    "REPLACEMENT_CHARACTER",
    "MalformedLineError",
    "SkippedLine",
    "decode_line",
    "decode_text",
    "encode_entries",
    "encode_entry",
    "load_all",
    "parse_line",
    "read_ledger",
    "save_all",
]
