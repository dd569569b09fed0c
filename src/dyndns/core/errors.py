"""
Dynamic DNS Error Types

Exception hierarchy shared by the key codec, the record store and the
update engine.
"""


class DynDNSError(Exception):
    """Base class for all dyndns errors"""


class InvalidName(DynDNSError, ValueError):
    """Domain name failed syntactic validation"""


class UnsupportedType(DynDNSError):
    """Record type is not managed by this server"""


class StoreError(DynDNSError):
    """Base class for record store failures"""


class InvalidKey(StoreError):
    """Storage key could not be derived from the name/type pair"""


class StorageFailure(StoreError):
    """Storage transaction could not be completed"""


class SerializationFailure(StoreError):
    """Record set could not be encoded, or stored data could not be decoded"""
