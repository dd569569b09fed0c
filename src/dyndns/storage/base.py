"""
Record Store Interface

This module defines the abstract record store contract shared by the update
engine and the query resolver.
"""

from abc import ABC, abstractmethod
from typing import Iterator, List

from ..core.records import ResourceRecord


class RecordStore(ABC):
    """Abstract base class for record stores.

    Records are grouped into record sets keyed by (owner name, record type).
    ``append`` and ``delete`` must each run in a single transaction so that
    concurrent updates to the same key never lose writes.
    """

    @abstractmethod
    def append(self, record: ResourceRecord) -> None:
        """Append a record to the record set of its (name, type)."""

    @abstractmethod
    def get(self, name: str, rdtype: int) -> List[ResourceRecord]:
        """Get the record set for (name, type); empty if nothing is stored."""

    @abstractmethod
    def delete(self, name: str, rdtype: int) -> None:
        """Remove the whole record set for (name, type); absent is not an error."""

    @abstractmethod
    def keys(self) -> Iterator[str]:
        """Iterate stored keys in key order."""

    @abstractmethod
    def close(self) -> None:
        """Release the underlying storage handle."""

    def count(self) -> int:
        """Number of stored record sets."""
        return sum(1 for _ in self.keys())

    def __enter__(self) -> "RecordStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
