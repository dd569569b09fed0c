"""Wire-level tests for the DNS request handler."""

import struct

import dns.flags
import dns.message
import dns.opcode
import dns.rcode
import dns.rdatatype
import dns.update
import pytest

from dyndns.core.handler import RequestHandler
from dyndns.core.records import create_a_record
from dyndns.core.tsig import build_keyring

KEY_NAME = "tsig-key."
SECRET = "c2VjcmV0LXNoYXJlZC1ieS1jbGllbnQtYW5kLXNlcnZlcg=="
OTHER_SECRET = "b3RoZXItc2VjcmV0LW5vdC1rbm93bi10by1zZXJ2ZXI="


@pytest.fixture
def keyring():
    return build_keyring(KEY_NAME, SECRET)


@pytest.fixture
def signed_handler(store, keyring):
    return RequestHandler(store, keyring=keyring)


class RecordingRequestLogger:
    """Request logger double that keeps every call."""

    def __init__(self):
        self.transactions = []
        self.update_results = []

    def log_transaction(self, **kwargs):
        self.transactions.append(kwargs)

    def log_update_results(self, results):
        self.update_results.append(results)


def _update(keyring=None):
    update = dns.update.UpdateMessage("example.com.")
    if keyring is not None:
        update.use_tsig(next(iter(keyring.values())))
    update.add("host.example.com.", 300, "A", "192.0.2.1")
    return update


class TestQueries:
    """Test QUERY handling."""

    def test_answer_from_store(self, handler, store):
        store.append(create_a_record("host.example.com", "192.0.2.1"))
        query = dns.message.make_query("host.example.com.", "A")

        reply = dns.message.from_wire(handler.handle(query.to_wire()))

        assert reply.id == query.id
        assert reply.rcode() == dns.rcode.NOERROR
        assert reply.flags & dns.flags.QR
        assert reply.flags & dns.flags.AA
        assert reply.question == query.question
        assert len(reply.answer) == 1
        assert reply.answer[0][0].to_text() == "192.0.2.1"

    def test_unknown_name(self, handler):
        query = dns.message.make_query("missing.example.com.", "A")

        reply = dns.message.from_wire(handler.handle(query.to_wire()))

        assert reply.rcode() == dns.rcode.NOERROR
        assert reply.answer == []


class TestUpdates:
    """Test UPDATE handling."""

    def test_update_then_query(self, handler):
        update = _update()

        reply = dns.message.from_wire(handler.handle(update.to_wire()))

        assert reply.opcode() == dns.opcode.UPDATE
        assert reply.rcode() == dns.rcode.NOERROR
        assert reply.id == update.id

        query = dns.message.make_query("host.example.com.", "A")
        answer = dns.message.from_wire(handler.handle(query.to_wire()))
        assert [rd.to_text() for rrset in answer.answer for rd in rrset] == [
            "192.0.2.1"
        ]

    def test_delete_update(self, handler, store):
        store.append(create_a_record("host.example.com", "192.0.2.1"))
        update = dns.update.UpdateMessage("example.com.")
        update.delete("host.example.com.", "A")

        reply = dns.message.from_wire(handler.handle(update.to_wire()))

        assert reply.rcode() == dns.rcode.NOERROR
        assert store.get("host.example.com", dns.rdatatype.A) == []

    def test_unsupported_records_still_succeed(self, handler, store):
        """Test skipped records do not change the reply code"""
        update = dns.update.UpdateMessage("example.com.")
        update.add("host.example.com.", 300, "TXT", '"hello"')

        reply = dns.message.from_wire(handler.handle(update.to_wire()))

        assert reply.rcode() == dns.rcode.NOERROR
        assert store.count() == 0


class TestTSIG:
    """Test signed requests."""

    def test_signed_update_is_applied_and_reply_signed(self, signed_handler, store, keyring):
        update = _update(keyring)
        wire = update.to_wire()

        reply_wire = signed_handler.handle(wire)

        reply = dns.message.from_wire(reply_wire, keyring=keyring, request_mac=update.mac)
        assert reply.had_tsig
        assert reply.rcode() == dns.rcode.NOERROR
        assert len(store.get("host.example.com", dns.rdatatype.A)) == 1

    def test_wrong_secret_gets_no_reply(self, signed_handler, store):
        update = _update(build_keyring(KEY_NAME, OTHER_SECRET))

        assert signed_handler.handle(update.to_wire()) is None
        assert store.count() == 0
        assert signed_handler.stats.dropped == 1

    def test_unknown_key_gets_no_reply(self, signed_handler, store):
        update = _update(build_keyring("someone-else.", SECRET))

        assert signed_handler.handle(update.to_wire()) is None
        assert store.count() == 0

    def test_unsigned_update_accepted_by_default(self, signed_handler, store):
        reply = dns.message.from_wire(signed_handler.handle(_update().to_wire()))

        assert reply.rcode() == dns.rcode.NOERROR
        assert store.count() == 1

    def test_unsigned_update_refused_when_signing_required(self, store, keyring):
        handler = RequestHandler(store, keyring=keyring, require_signed_updates=True)

        reply = dns.message.from_wire(handler.handle(_update().to_wire()))

        assert reply.rcode() == dns.rcode.REFUSED
        assert store.count() == 0
        assert handler.stats.refused == 1

    def test_signed_update_accepted_when_signing_required(self, store, keyring):
        handler = RequestHandler(store, keyring=keyring, require_signed_updates=True)
        update = _update(keyring)

        reply_wire = handler.handle(update.to_wire())

        reply = dns.message.from_wire(reply_wire, keyring=keyring, request_mac=update.mac)
        assert reply.rcode() == dns.rcode.NOERROR
        assert store.count() == 1

    def test_queries_need_no_signature(self, store, keyring):
        handler = RequestHandler(store, keyring=keyring, require_signed_updates=True)
        query = dns.message.make_query("host.example.com.", "A")

        reply = dns.message.from_wire(handler.handle(query.to_wire()))

        assert reply.rcode() == dns.rcode.NOERROR


class TestMalformedAndIgnored:
    """Test requests that get an error reply or none at all."""

    def test_truncated_packet_gets_formerr(self, handler):
        data = struct.pack("!HHH", 0x1234, 0x0100, 1)

        reply = dns.message.from_wire(handler.handle(data))

        assert reply.id == 0x1234
        assert reply.rcode() == dns.rcode.FORMERR
        assert reply.flags & dns.flags.QR
        assert handler.stats.errors == 1

    def test_tiny_packet_gets_no_reply(self, handler):
        assert handler.handle(b"\x12") is None

    def test_responses_are_ignored(self, handler):
        query = dns.message.make_query("host.example.com.", "A")
        response = dns.message.make_response(query)

        assert handler.handle(response.to_wire()) is None

    def test_unsupported_opcode_is_ignored(self, handler):
        query = dns.message.make_query("example.com.", "SOA")
        query.set_opcode(dns.opcode.NOTIFY)

        assert handler.handle(query.to_wire()) is None
        assert handler.stats.dropped == 1

    def test_unexpected_error_gets_servfail(self, handler, monkeypatch):
        def explode(query, response):
            raise RuntimeError("boom")

        monkeypatch.setattr(handler.resolver, "resolve", explode)
        query = dns.message.make_query("host.example.com.", "A")

        reply = dns.message.from_wire(handler.handle(query.to_wire()))

        assert reply.rcode() == dns.rcode.SERVFAIL
        assert reply.id == query.id


class TestStatsAndLogging:
    """Test counters and request logging."""

    def test_stats(self, handler, store):
        store.append(create_a_record("host.example.com", "192.0.2.1"))
        handler.handle(dns.message.make_query("host.example.com.", "A").to_wire())

        update = _update()
        update.delete("gone.example.com.", "A")
        update.add("host.example.com.", 300, "TXT", '"hello"')
        handler.handle(update.to_wire())

        stats = handler.stats.to_dict()
        assert stats["queries"] == 1
        assert stats["answers"] == 1
        assert stats["updates"] == 1
        assert stats["appended"] == 1
        assert stats["deleted"] == 1
        assert stats["skipped"] == 1
        assert stats["failed"] == 0

    def test_request_logger_receives_transactions(self, store):
        request_logger = RecordingRequestLogger()
        handler = RequestHandler(store, request_logger=request_logger)

        handler.handle(_update().to_wire(), client_ip="192.0.2.50", protocol="TCP")

        assert len(request_logger.transactions) == 1
        transaction = request_logger.transactions[0]
        assert transaction["client_ip"] == "192.0.2.50"
        assert transaction["protocol"] == "TCP"
        assert transaction["response_time_ms"] >= 0
        assert len(request_logger.update_results) == 1
        assert request_logger.update_results[0][0].applied
