"""
DNS Resource Records

This module provides the record values handled by the store and the update
engine:
- ResourceRecord: a stored record with its canonical text form
- UpdateRecord: a record taken from the update section of an UPDATE message
- Helpers to build and normalize address records (A / AAAA)
"""

import ipaddress
from dataclasses import dataclass
from typing import List, Optional

import dns.exception
import dns.name
import dns.rdata
import dns.rdataclass
import dns.rdatatype
import dns.rrset

from .errors import UnsupportedType
from .keys import to_fqdn

ADDRESS_TYPES = frozenset({dns.rdatatype.A, dns.rdatatype.AAAA})


@dataclass(frozen=True)
class ResourceRecord:
    """A typed resource record"""

    name: str
    rdtype: int
    rdclass: int
    ttl: int
    rdata: dns.rdata.Rdata

    def to_text(self) -> str:
        """Canonical presentation form, e.g. ``host.example.com. 300 IN A 192.0.2.1``"""
        return " ".join(
            [
                self.name,
                str(self.ttl),
                dns.rdataclass.to_text(self.rdclass),
                dns.rdatatype.to_text(self.rdtype),
                self.rdata.to_text(),
            ]
        )

    @classmethod
    def from_text(cls, text: str) -> "ResourceRecord":
        """Parse a record from its canonical presentation form.

        Raises:
            ValueError: If the text is not a valid record
        """
        parts = text.split(None, 4)
        if len(parts) != 5:
            raise ValueError(f"Malformed record text: {text!r}")

        name, ttl_text, class_text, type_text, rdata_text = parts
        try:
            ttl = int(ttl_text)
            rdclass = dns.rdataclass.from_text(class_text)
            rdtype = dns.rdatatype.from_text(type_text)
            rdata = dns.rdata.from_text(rdclass, rdtype, rdata_text)
            name = dns.name.from_text(name).to_text()
        except (dns.exception.DNSException, ValueError) as e:
            raise ValueError(f"Invalid record {text!r}: {e}") from e

        if ttl < 0:
            raise ValueError(f"Negative TTL in record {text!r}")

        return cls(name=name, rdtype=rdtype, rdclass=rdclass, ttl=ttl, rdata=rdata)

    def to_rrset(self) -> dns.rrset.RRset:
        """Build a single-record RRset for a response section"""
        return dns.rrset.from_rdata(dns.name.from_text(self.name), self.ttl, self.rdata)

    def __str__(self) -> str:
        return self.to_text()


@dataclass(frozen=True)
class UpdateRecord:
    """A record from the update section of an UPDATE message.

    ``rdclass`` is the class as sent on the wire (ANY and NONE mark
    deletions). A record without rdata had a zero data length.
    """

    name: str
    rdtype: int
    rdclass: int
    ttl: int
    rdata: Optional[dns.rdata.Rdata] = None

    @property
    def has_data(self) -> bool:
        return self.rdata is not None

    @classmethod
    def from_rrset(cls, rrset: dns.rrset.RRset) -> List["UpdateRecord"]:
        """Split an update-section RRset into individual update records.

        dnspython moves ANY/NONE classes into ``rrset.deleting``; the wire
        class is restored here. An empty RRset yields one zero-length record.
        """
        rdclass = rrset.deleting if rrset.deleting is not None else rrset.rdclass
        name = rrset.name.to_text()

        if len(rrset) == 0:
            return [cls(name=name, rdtype=rrset.rdtype, rdclass=rdclass, ttl=rrset.ttl)]

        return [
            cls(name=name, rdtype=rrset.rdtype, rdclass=rdclass, ttl=rrset.ttl, rdata=rd)
            for rd in rrset
        ]


def normalize_address_record(record: UpdateRecord) -> ResourceRecord:
    """Build the record to store for an address update.

    The stored record is always class IN and keeps the original TTL and
    address. IPv6 updates stay AAAA records.

    Raises:
        UnsupportedType: If the record is not an A or AAAA record
        ValueError: If the record carries no address
    """
    if record.rdtype not in ADDRESS_TYPES:
        raise UnsupportedType(
            f"unsupported type {dns.rdatatype.to_text(record.rdtype)}"
        )

    if record.rdata is None:
        raise ValueError(f"{dns.rdatatype.to_text(record.rdtype)} update without address")

    rdata = dns.rdata.from_text(
        dns.rdataclass.IN, record.rdtype, record.rdata.to_text()
    )
    return ResourceRecord(
        name=to_fqdn(record.name),
        rdtype=record.rdtype,
        rdclass=dns.rdataclass.IN,
        ttl=record.ttl,
        rdata=rdata,
    )


def create_address_record(name: str, address: str, ttl: int = 300) -> ResourceRecord:
    """Create an A or AAAA record, picking the type from the address family"""
    ip = ipaddress.ip_address(address)
    rdtype = dns.rdatatype.A if ip.version == 4 else dns.rdatatype.AAAA
    return ResourceRecord(
        name=to_fqdn(name),
        rdtype=rdtype,
        rdclass=dns.rdataclass.IN,
        ttl=ttl,
        rdata=dns.rdata.from_text(dns.rdataclass.IN, rdtype, str(ip)),
    )


def create_a_record(name: str, address: str, ttl: int = 300) -> ResourceRecord:
    """Create an A record"""
    ipaddress.IPv4Address(address)
    return create_address_record(name, address, ttl)


def create_aaaa_record(name: str, address: str, ttl: int = 300) -> ResourceRecord:
    """Create an AAAA record"""
    ipaddress.IPv6Address(address)
    return create_address_record(name, address, ttl)
