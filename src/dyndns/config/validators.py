"""
Configuration Validators

This module provides validation functions for dynamic DNS server
configuration parameters.
"""

import ipaddress
from pathlib import Path

from ..core.tsig import parse_tsig_key, validate_algorithm


def validate_bind_address(address: str) -> bool:
    """Validate bind address format."""
    if not address:
        return False

    try:
        ipaddress.ip_address(address)
        return True
    except ValueError:
        return False


def validate_boolean(value) -> bool:
    """Validate boolean value."""
    return isinstance(value, bool)


def validate_file_path(path: str) -> bool:
    """Validate file path format."""
    if not path or not isinstance(path, str):
        return False

    try:
        Path(path)
        return True
    except (TypeError, ValueError):
        return False


def validate_log_level(level: str) -> bool:
    """Validate log level."""
    valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    return isinstance(level, str) and level.upper() in valid_levels


def validate_positive_float(value: float) -> bool:
    """Validate positive float."""
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0


def validate_positive_int(value: int) -> bool:
    """Validate positive integer."""
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def validate_port(port: int) -> bool:
    """Validate port number."""
    return isinstance(port, int) and not isinstance(port, bool) and 1 <= port <= 65535


def validate_tsig_key(value: str) -> bool:
    """Validate a keyname:secret TSIG pair."""
    if not isinstance(value, str):
        return False

    try:
        parse_tsig_key(value)
        return True
    except ValueError:
        return False


def validate_tsig_algorithm(algorithm: str) -> bool:
    """Validate TSIG algorithm name."""
    return validate_algorithm(algorithm)
