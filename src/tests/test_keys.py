"""Tests for the storage key codec."""

import pytest

from dyndns.core.errors import InvalidName
from dyndns.core.keys import (
    decode_key,
    encode_key,
    is_valid_name,
    split_labels,
    to_fqdn,
)


class TestEncodeKey:
    """Test key encoding."""

    def test_reverses_labels(self):
        """Test root-most label comes first."""
        assert encode_key("example.com", 1) == "com.example_1"
        assert encode_key("host.example.com.", 28) == "com.example.host_28"

    def test_trailing_dot_is_irrelevant(self):
        """Test absolute and relative spellings share a key."""
        assert encode_key("example.com", 1) == encode_key("example.com.", 1)

    def test_case_is_preserved(self):
        """Test names are not canonicalized."""
        assert encode_key("Host.Example.com", 1) == "com.Example.Host_1"

    def test_root_name(self):
        """Test the root name has an empty label part."""
        assert encode_key(".", 1) == "_1"

    def test_underscore_labels(self):
        """Test labels containing the type separator."""
        assert encode_key("_sip._tcp.example.com", 1) == "com.example._tcp._sip_1"

    @pytest.mark.parametrize(
        "name",
        ["", "   ", "@", "bad..name", ".leading.dot", "a" * 64 + ".com", ("a" * 60 + ".") * 5],
    )
    def test_invalid_names(self, name):
        """Test invalid names never produce a key."""
        with pytest.raises(InvalidName):
            encode_key(name, 1)
        assert is_valid_name(name) is False

    def test_is_stable(self):
        """Test the key is a pure function of its inputs."""
        assert encode_key("a.b.c", 1) == encode_key("a.b.c", 1) == "c.b.a_1"


class TestDecodeKey:
    """Test structural decomposition of keys."""

    @pytest.mark.parametrize(
        "name,rdtype",
        [
            ("example.com.", 1),
            ("host.example.com.", 28),
            ("Mixed.Case.Example.", 1),
            ("_sip._tcp.example.com.", 33),
            ("a\\.b.example.com.", 1),
            (".", 1),
        ],
    )
    def test_round_trip(self, name, rdtype):
        """Test decode recovers the encoded pair."""
        assert decode_key(encode_key(name, rdtype)) == (name, rdtype)

    def test_relative_name_decodes_absolute(self):
        """Test decoding always yields the absolute name."""
        assert decode_key(encode_key("example.com", 1)) == ("example.com.", 1)

    def test_no_collisions(self):
        """Test distinct pairs map to distinct keys."""
        pairs = [
            ("example.com", 1),
            ("example.com", 28),
            ("com.example", 1),
            ("a.example.com", 1),
            ("a\\.example.com", 1),
            ("a_1.example.com", 1),
        ]
        keys = {encode_key(name, rdtype) for name, rdtype in pairs}
        assert len(keys) == len(pairs)

    @pytest.mark.parametrize("key", ["", "com.example", "com.example_", "com.example_A", "com_70000"])
    def test_malformed_keys(self, key):
        """Test malformed keys are rejected."""
        with pytest.raises(InvalidName):
            decode_key(key)


def test_split_labels_keeps_escapes():
    """Test escaped dots stay inside their label."""
    assert split_labels("a\\.b.example.com") == ["a\\.b", "example", "com"]


def test_to_fqdn():
    """Test absolute form keeps case and adds the trailing dot."""
    assert to_fqdn("Host.example.com") == "Host.example.com."
    assert to_fqdn("host.example.com.") == "host.example.com."
