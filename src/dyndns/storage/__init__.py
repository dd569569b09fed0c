"""
Record Storage Module

This module exports the record store contract and its SQLite implementation.
"""

from .base import RecordStore
from .sqlite import (
    RR_BUCKET,
    SQLiteRecordStore,
    decode_record_set,
    encode_record_set,
    open_record_store,
)

__all__ = [
    "RecordStore",
    "SQLiteRecordStore",
    "open_record_store",
    "encode_record_set",
    "decode_record_set",
    "RR_BUCKET",
]
