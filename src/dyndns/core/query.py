"""
Query Resolver

Answers questions from the record store. The server is authoritative for
what it stores and nothing else: no recursion, no referrals and no negative
answers. A name or type with nothing stored gets an empty answer section.
"""

import logging
from typing import TYPE_CHECKING, List

import dns.message
import dns.rdatatype

from .errors import InvalidName, StoreError
from .keys import to_fqdn
from .records import ResourceRecord

if TYPE_CHECKING:
    from ..storage.base import RecordStore

logger = logging.getLogger(__name__)


class QueryResolver:
    """Resolves questions against the record store"""

    def __init__(self, store: "RecordStore"):
        self.store = store

    def lookup(self, name: str, rdtype: int) -> List[ResourceRecord]:
        """Get the stored records whose owner name is exactly ``name``.

        Raises:
            StoreError: If the record set cannot be read
        """
        records = self.store.get(name, rdtype)
        try:
            owner = to_fqdn(name)
        except InvalidName:
            return []
        return [record for record in records if record.name == owner]

    def resolve(
        self, query: dns.message.Message, response: dns.message.Message
    ) -> int:
        """Fill the answer section of ``response`` for every question.

        A question whose records cannot be read is skipped; the other
        questions are still answered.

        Returns:
            Number of answer records added
        """
        added = 0
        for question in query.question:
            name = question.name.to_text()
            try:
                records = self.lookup(name, question.rdtype)
            except StoreError as e:
                logger.warning(
                    f"Skipping question {name} "
                    f"{dns.rdatatype.to_text(question.rdtype)}: {e}"
                )
                continue

            for record in records:
                response.answer.append(record.to_rrset())
                added += 1

        return added
