"""Persistence for branch-local history arrays."""

from history_merge.storage.json_store import (
    Record,
    RecordDecodeError,
    decode_records,
    encode_records,
    read_from_filesystem,
    read_from_revision,
    write_records,
)

__all__ = [
    "Record",
    "RecordDecodeError",
    "decode_records",
    "encode_records",
    "read_from_filesystem",
    "read_from_revision",
    "write_records",
]
