"""
DNS Server Logging Module

This module provides structured logging for the dynamic DNS server with
per-request transaction logging.
"""

from .dns_logger import DNSRequestLogger, extract_dns_info, format_response_data
from .logger import (
    StructuredLogger,
    get_logger,
    log_exception,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    # Core logging
    "StructuredLogger",
    "setup_logging",
    "shutdown_logging",
    "get_logger",
    "log_exception",
    # DNS-specific logging
    "DNSRequestLogger",
    "extract_dns_info",
    "format_response_data",
]
