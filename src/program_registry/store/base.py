"""Program store interface.

A store persists ProgramRecords and enforces uniqueness of the content
hash atomically. It is the only shared mutable state in the registry.
"""

from abc import ABC, abstractmethod
from typing import Optional

from program_registry.kernel.program_record import ProgramRecord


class ProgramStore(ABC):
    """Persistence collaborator for ingested programs."""

    @abstractmethod
    def insert(self, record: ProgramRecord) -> None:
        """Persist a new record.

        Raises:
            DuplicateHashError: If a record with the same hash exists
            StorageError: On any other persistence failure
        """

    @abstractmethod
    def get(self, program_hash: str) -> Optional[ProgramRecord]:
        """Return the record stored under program_hash, or None.

        Raises:
            StorageError: If the lookup itself fails
        """

    def close(self) -> None:
        """Release resources held by the store."""
