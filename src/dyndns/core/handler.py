"""
DNS Request Handler

Turns a raw DNS message into a raw reply:
- TSIG verification of signed requests (unverifiable requests get no reply)
- Opcode routing: QUERY to the query resolver, UPDATE to the update engine
- Reply construction, echoing the question/zone section
- Signing of replies to signed requests
"""

import logging
import struct
import threading
import time
import uuid
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import dns.exception
import dns.flags
import dns.message
import dns.opcode
import dns.rcode
import dns.tsig

from .query import QueryResolver
from .tsig import TSIG_FUDGE
from .update import UpdateEngine, UpdateResult, UpdateStatus

if TYPE_CHECKING:
    from ..dns_logging.dns_logger import DNSRequestLogger
    from ..storage.base import RecordStore

logger = logging.getLogger(__name__)

TSIG_ERRORS = (
    dns.message.UnknownTSIGKey,
    dns.tsig.BadSignature,
    dns.tsig.BadTime,
    dns.tsig.BadKey,
    dns.tsig.BadAlgorithm,
    dns.tsig.PeerError,
)


@dataclass
class RequestStats:
    """Counters for handled requests"""

    queries: int = 0
    updates: int = 0
    answers: int = 0
    appended: int = 0
    deleted: int = 0
    skipped: int = 0
    rejected: int = 0
    failed: int = 0
    refused: int = 0
    dropped: int = 0
    errors: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


class RequestHandler:
    """Handles one DNS message at a time; safe to call from several threads"""

    def __init__(
        self,
        store: "RecordStore",
        keyring: Optional[Dict[Any, Any]] = None,
        require_signed_updates: bool = False,
        request_logger: Optional["DNSRequestLogger"] = None,
    ):
        self.store = store
        self.keyring = keyring
        self.require_signed_updates = require_signed_updates
        self.request_logger = request_logger
        self.update_engine = UpdateEngine(store)
        self.resolver = QueryResolver(store)
        self.stats = RequestStats()
        self._stats_lock = threading.Lock()

    def handle(
        self, data: bytes, client_ip: str = "unknown", protocol: str = "UDP"
    ) -> Optional[bytes]:
        """Process a DNS message and build the reply.

        Returns:
            Wire-format reply, or None when no reply must be sent
        """
        start_time = time.time()
        request_id = str(uuid.uuid4())

        try:
            request = dns.message.from_wire(data, keyring=self.keyring)
        except TSIG_ERRORS as e:
            logger.warning(f"TSIG verification failed for {client_ip}: {e}")
            self._count(dropped=1)
            return None
        except (dns.exception.DNSException, ValueError) as e:
            logger.warning(f"Malformed DNS packet from {client_ip}: {e}")
            self._count(errors=1)
            return self._create_format_error_response(data)

        if request.flags & dns.flags.QR:
            logger.debug(f"Ignoring DNS response sent by {client_ip}")
            self._count(dropped=1)
            return None

        opcode = request.opcode()
        if opcode not in (dns.opcode.QUERY, dns.opcode.UPDATE):
            logger.debug(
                f"Unsupported opcode {dns.opcode.to_text(opcode)} from {client_ip}"
            )
            self._count(dropped=1)
            return None

        try:
            response = dns.message.make_response(request, fudge=TSIG_FUDGE)

            if opcode == dns.opcode.QUERY:
                self._handle_query(request, response)
            else:
                self._handle_update(request, response)

            wire = response.to_wire()
        except Exception as e:
            logger.error(
                f"Unexpected error handling request from {client_ip}: {e}",
                exc_info=True,
            )
            self._count(errors=1)
            return self._create_server_failure_response(request)

        if self.request_logger:
            self.request_logger.log_transaction(
                request_id=request_id,
                client_ip=client_ip,
                protocol=protocol,
                request=request,
                response=response,
                response_time_ms=(time.time() - start_time) * 1000,
            )

        return wire

    def _handle_query(
        self, request: dns.message.Message, response: dns.message.Message
    ) -> None:
        response.flags |= dns.flags.AA
        added = self.resolver.resolve(request, response)
        self._count(queries=1, answers=added)

    def _handle_update(
        self, request: dns.message.Message, response: dns.message.Message
    ) -> None:
        if self.require_signed_updates and not request.had_tsig:
            logger.warning("Refusing unsigned update")
            response.set_rcode(dns.rcode.REFUSED)
            self._count(updates=1, refused=1)
            return

        results = self.update_engine.apply_message(request)
        self._count_update_results(results)

        if self.request_logger:
            self.request_logger.log_update_results(results)

    def _count_update_results(self, results: List[UpdateResult]) -> None:
        counts = {status: 0 for status in UpdateStatus}
        for result in results:
            counts[result.status] += 1

        self._count(
            updates=1,
            appended=counts[UpdateStatus.APPENDED],
            deleted=counts[UpdateStatus.DELETED],
            skipped=counts[UpdateStatus.SKIPPED],
            rejected=counts[UpdateStatus.REJECTED],
            failed=counts[UpdateStatus.FAILED],
        )

    def _count(self, **increments: int) -> None:
        with self._stats_lock:
            for name, value in increments.items():
                setattr(self.stats, name, getattr(self.stats, name) + value)

    def _create_format_error_response(self, original_data: bytes) -> Optional[bytes]:
        """Create a FORMERR reply carrying the original transaction ID"""
        if len(original_data) < 4:
            return None

        transaction_id, flags = struct.unpack("!HH", original_data[:4])
        if flags & dns.flags.QR:
            return None

        response = dns.message.Message(id=transaction_id)
        response.flags = dns.flags.QR
        response.set_rcode(dns.rcode.FORMERR)
        return response.to_wire()

    def _create_server_failure_response(
        self, request: dns.message.Message
    ) -> Optional[bytes]:
        try:
            response = dns.message.make_response(request, fudge=TSIG_FUDGE)
            response.set_rcode(dns.rcode.SERVFAIL)
            return response.to_wire()
        except dns.exception.DNSException as e:
            logger.error(f"Failed to build SERVFAIL reply: {e}")
            return None
