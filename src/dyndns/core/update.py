"""
Dynamic Update Engine

Applies the update section of an RFC2136 UPDATE message to the record store.
Only two rules are implemented:
- class ANY with no data deletes every record of that name and type
- an A or AAAA record with data is appended to the record set

Every record is handled on its own. A failure is reported in the record's
result and never stops the remaining records of the message.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

import dns.message
import dns.rdataclass
import dns.rdatatype

from .errors import StoreError, UnsupportedType
from .keys import is_valid_name
from .records import UpdateRecord, normalize_address_record

if TYPE_CHECKING:
    from ..storage.base import RecordStore

logger = logging.getLogger(__name__)


class UpdateStatus(Enum):
    """Outcome of applying one update record"""

    APPENDED = "appended"
    DELETED = "deleted"
    SKIPPED = "skipped"  # Ignored on purpose (unsupported type, no data)
    REJECTED = "rejected"  # Invalid owner name
    FAILED = "failed"  # Record store error


@dataclass
class UpdateResult:
    """Result of applying one update record"""

    status: UpdateStatus
    record: UpdateRecord
    reason: Optional[str] = None
    zone: Optional[str] = None

    @property
    def applied(self) -> bool:
        return self.status in (UpdateStatus.APPENDED, UpdateStatus.DELETED)


class UpdateEngine:
    """Interprets update records against the record store"""

    def __init__(self, store: "RecordStore"):
        self.store = store

    def apply(self, record: UpdateRecord, zone: Optional[str] = None) -> UpdateResult:
        """Apply a single update record.

        Args:
            record: Record from the update section
            zone: Zone name of the originating question

        Returns:
            Result describing what was done with the record
        """
        if not is_valid_name(record.name):
            logger.debug(f"Rejected update for invalid name {record.name!r}")
            return UpdateResult(
                UpdateStatus.REJECTED, record, f"invalid domain: {record.name!r}", zone
            )

        type_name = dns.rdatatype.to_text(record.rdtype)

        if record.rdclass == dns.rdataclass.ANY and not record.has_data:
            try:
                self.store.delete(record.name, record.rdtype)
            except StoreError as e:
                logger.error(f"Delete of {record.name} {type_name} failed: {e}")
                return UpdateResult(UpdateStatus.FAILED, record, str(e), zone)
            logger.info(f"Deleted all {type_name} records of {record.name}")
            return UpdateResult(UpdateStatus.DELETED, record, zone=zone)

        if record.rdclass == dns.rdataclass.NONE:
            return UpdateResult(
                UpdateStatus.SKIPPED, record, "single record delete not supported", zone
            )

        try:
            normalized = normalize_address_record(record)
        except (UnsupportedType, ValueError) as e:
            return UpdateResult(UpdateStatus.SKIPPED, record, str(e), zone)

        try:
            self.store.append(normalized)
        except StoreError as e:
            logger.error(f"Append of {normalized} failed: {e}")
            return UpdateResult(UpdateStatus.FAILED, record, str(e), zone)

        logger.info(f"Appended {normalized}")
        return UpdateResult(UpdateStatus.APPENDED, record, zone=zone)

    def apply_all(
        self, records: List[UpdateRecord], zone: Optional[str] = None
    ) -> List[UpdateResult]:
        """Apply records in order, isolating failures per record"""
        return [self.apply(record, zone) for record in records]

    def apply_message(self, message: dns.message.Message) -> List[UpdateResult]:
        """Apply the update section of an UPDATE message.

        Each update record is applied once for every question in the zone
        section.
        """
        records = [
            record
            for rrset in message.authority
            for record in UpdateRecord.from_rrset(rrset)
        ]

        results: List[UpdateResult] = []
        for question in message.question:
            results.extend(self.apply_all(records, question.name.to_text()))

        return results
