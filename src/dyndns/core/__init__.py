"""
Dynamic DNS Core Module

This module exports the key codec, record types, update engine, query
resolver, request handler and server.
"""

from .errors import (
    DynDNSError,
    InvalidKey,
    InvalidName,
    SerializationFailure,
    StorageFailure,
    StoreError,
    UnsupportedType,
)
from .handler import RequestHandler, RequestStats
from .keys import decode_key, encode_key, is_valid_name, split_labels, to_fqdn
from .query import QueryResolver
from .records import (
    ResourceRecord,
    UpdateRecord,
    create_a_record,
    create_aaaa_record,
    create_address_record,
    normalize_address_record,
)
from .server import DNSServer
from .tsig import TSIG_FUDGE, build_keyring, keyring_from_config, parse_tsig_key
from .update import UpdateEngine, UpdateResult, UpdateStatus

__all__ = [
    # Main server
    "DNSServer",
    "RequestHandler",
    "RequestStats",
    # Engines
    "UpdateEngine",
    "UpdateResult",
    "UpdateStatus",
    "QueryResolver",
    # Records
    "ResourceRecord",
    "UpdateRecord",
    "create_a_record",
    "create_aaaa_record",
    "create_address_record",
    "normalize_address_record",
    # Keys
    "encode_key",
    "decode_key",
    "is_valid_name",
    "split_labels",
    "to_fqdn",
    # TSIG
    "TSIG_FUDGE",
    "build_keyring",
    "keyring_from_config",
    "parse_tsig_key",
    # Errors
    "DynDNSError",
    "InvalidName",
    "InvalidKey",
    "UnsupportedType",
    "StoreError",
    "StorageFailure",
    "SerializationFailure",
]
