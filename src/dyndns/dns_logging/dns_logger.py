"""
DNS Request/Response Logging

This module provides DNS-specific structured logging: one entry per handled
message, plus one entry per update record applied.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import dns.message
import dns.opcode
import dns.rcode
import dns.rdatatype

from .logger import get_logger


def extract_dns_info(message: dns.message.Message) -> Dict[str, Any]:
    """Extract the loggable parts of a DNS message.

    Args:
        message: Parsed DNS message

    Returns:
        Dictionary with opcode, first question name/type and signature state
    """
    info: Dict[str, Any] = {
        "opcode": dns.opcode.to_text(message.opcode()),
        "domain": None,
        "query_type": None,
        "signed": bool(message.had_tsig),
    }

    if message.question:
        question = message.question[0]
        info["domain"] = question.name.to_text()
        info["query_type"] = dns.rdatatype.to_text(question.rdtype)

    return info


def format_response_data(response: dns.message.Message) -> List[str]:
    """Format the answer section as a list of rdata strings."""
    return [rdata.to_text() for rrset in response.answer for rdata in rrset]


class DNSRequestLogger:
    """DNS request/response logger with structured output."""

    def __init__(self):
        """Initialize DNS logger."""
        self.logger = get_logger("dns_requests")

    def log_transaction(
        self,
        request_id: str,
        client_ip: str,
        protocol: str,
        request: dns.message.Message,
        response: dns.message.Message,
        response_time_ms: float,
        error: Optional[str] = None,
    ) -> None:
        """Log one handled DNS message.

        Args:
            request_id: Unique request identifier
            client_ip: Client IP address
            protocol: 'UDP' or 'TCP'
            request: Parsed request
            response: Reply about to be sent
            response_time_ms: Handling time in milliseconds
            error: Error message (if any)
        """
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "request_id": request_id,
            "client_ip": client_ip,
            "protocol": protocol,
            **extract_dns_info(request),
            "response_code": dns.rcode.to_text(response.rcode()),
            "response_time_ms": round(response_time_ms, 2),
            "response_data": format_response_data(response),
        }

        if error:
            log_entry["error"] = error

        self.logger.info("DNS request processed", **log_entry)

    def log_update_results(self, results: List[Any]) -> None:
        """Log the outcome of every update record of an UPDATE message.

        Skipped records are logged at debug level: zones carry record types
        this server does not manage.
        """
        for result in results:
            entry = {
                "zone": result.zone,
                "name": result.record.name,
                "record_type": dns.rdatatype.to_text(result.record.rdtype),
                "status": result.status.value,
            }
            if result.reason:
                entry["reason"] = result.reason

            if result.status.value == "failed":
                self.logger.error("DNS update record failed", **entry)
            elif result.status.value in ("skipped", "rejected"):
                self.logger.debug("DNS update record ignored", **entry)
            else:
                self.logger.info("DNS update record applied", **entry)
