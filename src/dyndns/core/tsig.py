"""
TSIG Key Handling

Builds the dnspython keyring used to verify signed requests and to sign the
replies to them.
"""

from typing import Dict, Optional, Tuple

import dns.exception
import dns.name
import dns.tsig

# Replies are signed with a fixed clock skew allowance
TSIG_FUDGE = 300

DEFAULT_ALGORITHM = "hmac-md5"

ALGORITHMS = {
    "hmac-md5": dns.tsig.HMAC_MD5,
    "hmac-sha1": dns.tsig.HMAC_SHA1,
    "hmac-sha224": dns.tsig.HMAC_SHA224,
    "hmac-sha256": dns.tsig.HMAC_SHA256,
    "hmac-sha384": dns.tsig.HMAC_SHA384,
    "hmac-sha512": dns.tsig.HMAC_SHA512,
}


def parse_tsig_key(value: str) -> Tuple[str, str]:
    """Split a ``keyname:secret`` pair.

    The key name is made absolute; the secret is the base64 text.

    Raises:
        ValueError: If the value is not a ``keyname:secret`` pair
    """
    name, sep, secret = value.partition(":")
    name = name.strip()
    secret = secret.strip()
    if not sep or not name or not secret:
        raise ValueError(f"TSIG key must be keyname:secret, got {value!r}")

    try:
        fqdn = dns.name.from_text(name).to_text()
    except dns.exception.DNSException as e:
        raise ValueError(f"Invalid TSIG key name {name!r}: {e}") from e

    return fqdn, secret


def validate_algorithm(algorithm: str) -> bool:
    """Check that a TSIG algorithm name is supported."""
    return isinstance(algorithm, str) and algorithm.lower() in ALGORITHMS


def build_keyring(
    name: str, secret: str, algorithm: str = DEFAULT_ALGORITHM
) -> Dict[dns.name.Name, dns.tsig.Key]:
    """Build a single-key keyring.

    Raises:
        ValueError: If the algorithm is unknown or the secret is not base64
    """
    if not validate_algorithm(algorithm):
        raise ValueError(f"Unsupported TSIG algorithm: {algorithm}")

    key_name = dns.name.from_text(name)
    try:
        key = dns.tsig.Key(key_name, secret, ALGORITHMS[algorithm.lower()])
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid TSIG secret for {name}: {e}") from e

    return {key_name: key}


def keyring_from_config(
    key: Optional[str], algorithm: str = DEFAULT_ALGORITHM
) -> Optional[Dict[dns.name.Name, dns.tsig.Key]]:
    """Build the keyring for a configured ``keyname:secret`` pair, if any."""
    if not key:
        return None
    name, secret = parse_tsig_key(key)
    return build_keyring(name, secret, algorithm)
