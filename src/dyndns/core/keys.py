"""
Storage Key Codec

Maps a (domain name, record type) pair to the string key used by the record
store. Labels are reversed so that the root-most label comes first, which
keeps records of one zone next to each other in key order:

    example.com.  A     ->  com.example_1
    host.example.com. AAAA ->  com.example.host_28

The key is persisted, so the mapping must never change.
"""

from typing import List, Tuple

import dns.exception
import dns.name

from .errors import InvalidName

TYPE_SEPARATOR = "_"


def _parse_name(name: str) -> dns.name.Name:
    """Parse and validate a domain name, preserving label case."""
    if not isinstance(name, str) or not name.strip() or name.strip() == "@":
        raise InvalidName(f"Invalid domain: {name!r}")

    try:
        return dns.name.from_text(name, origin=dns.name.root)
    except (dns.exception.DNSException, UnicodeError) as e:
        raise InvalidName(f"Invalid domain: {name!r}: {e}") from e


def is_valid_name(name: str) -> bool:
    """Check whether a domain name is syntactically valid."""
    try:
        _parse_name(name)
        return True
    except InvalidName:
        return False


def to_fqdn(name: str) -> str:
    """Return the absolute presentation form of a name (trailing dot)."""
    return _parse_name(name).to_text()


def split_labels(name: str) -> List[str]:
    """Split a domain name into its labels, leftmost first.

    Labels are returned in presentation form, so escaped characters (for
    example an escaped dot) stay escaped and the labels can be joined back
    with ``.`` unambiguously. The root label is not included.
    """
    parsed = _parse_name(name)
    return [dns.name.Name([label]).to_text() for label in parsed.labels[:-1]]


def encode_key(name: str, rdtype: int) -> str:
    """Build the storage key for a domain name and record type.

    Args:
        name: Domain name, absolute or not (``example.com`` and
            ``example.com.`` produce the same key)
        rdtype: Numeric record type

    Returns:
        Storage key such as ``com.example_1``

    Raises:
        InvalidName: If the name is not a valid domain name
    """
    labels = split_labels(name)
    labels.reverse()
    return f"{'.'.join(labels)}{TYPE_SEPARATOR}{int(rdtype)}"


def decode_key(key: str) -> Tuple[str, int]:
    """Recover the (absolute name, record type) pair from a storage key.

    Raises:
        InvalidName: If the key is not a well-formed storage key
    """
    reversed_name, sep, type_text = key.rpartition(TYPE_SEPARATOR)
    if not sep or not (type_text.isascii() and type_text.isdigit()):
        raise InvalidName(f"Invalid storage key: {key!r}")

    rdtype = int(type_text)
    if rdtype > 0xFFFF:
        raise InvalidName(f"Invalid record type in storage key: {key!r}")

    if not reversed_name:
        return dns.name.root.to_text(), rdtype

    labels = list(_parse_name(reversed_name).labels[:-1])
    labels.reverse()
    return dns.name.Name(labels + [b""]).to_text(), rdtype
