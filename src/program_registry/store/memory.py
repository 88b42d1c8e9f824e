"""In-process program store."""

import threading
from typing import Dict, Optional

from program_registry.kernel.errors import DuplicateHashError
from program_registry.kernel.program_record import ProgramRecord
from program_registry.store.base import ProgramStore


class InMemoryProgramStore(ProgramStore):
    """Dict-backed store; the lock makes check-and-insert atomic."""

    def __init__(self):
        self._records: Dict[str, ProgramRecord] = {}
        self._lock = threading.Lock()

    def insert(self, record: ProgramRecord) -> None:
        with self._lock:
            if record.hash in self._records:
                raise DuplicateHashError(record.hash)
            self._records[record.hash] = record

    def get(self, program_hash: str) -> Optional[ProgramRecord]:
        with self._lock:
            return self._records.get(program_hash)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
