"""SQLite-backed program store."""

import json
import logging
import sqlite3
from contextlib import closing
from pathlib import Path
from typing import List, Optional, Union

from program_registry._internal.canonical_json import canonical_dumps
from program_registry.kernel.errors import DuplicateHashError, StorageError
from program_registry.kernel.program_record import ProgramRecord
from program_registry.kernel.version import FormatVersion
from program_registry.store.base import ProgramStore

logger = logging.getLogger(__name__)

# Migrations are applied in order; PRAGMA user_version records how many ran.
_MIGRATIONS: List[str] = [
    """
    CREATE TABLE IF NOT EXISTS programs (
        id TEXT PRIMARY KEY,
        hash TEXT NOT NULL UNIQUE,
        code BLOB NOT NULL,
        version INTEGER NOT NULL,
        builtins TEXT NOT NULL,
        layout TEXT NOT NULL
    )
    """,
]

_UNIQUE_HASH_VIOLATION = "programs.hash"


class SqliteProgramStore(ProgramStore):
    """Store programs in a SQLite database file.

    A connection is opened per call so the store can be shared across
    request threads. The UNIQUE constraint on hash arbitrates concurrent
    inserts of the same program.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.migrate()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(str(self.path))

    def migrate(self) -> int:
        """Apply pending schema migrations. Returns the resulting schema version."""
        try:
            with closing(self._connect()) as conn:
                with conn:
                    current = conn.execute("PRAGMA user_version").fetchone()[0]
                    for index in range(current, len(_MIGRATIONS)):
                        conn.execute(_MIGRATIONS[index])
                        logger.info(f"Applied migration {index + 1} to {self.path}")
                    conn.execute(f"PRAGMA user_version = {len(_MIGRATIONS)}")
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to migrate {self.path}: {exc}") from exc
        return len(_MIGRATIONS)

    def insert(self, record: ProgramRecord) -> None:
        try:
            with closing(self._connect()) as conn:
                with conn:
                    conn.execute(
                        "INSERT INTO programs (id, hash, code, version, builtins, layout) "
                        "VALUES (?, ?, ?, ?, ?, ?)",
                        (
                            record.id,
                            record.hash,
                            record.code,
                            int(record.version),
                            canonical_dumps(list(record.builtins)),
                            record.layout,
                        ),
                    )
        except sqlite3.IntegrityError as exc:
            if _UNIQUE_HASH_VIOLATION in str(exc):
                raise DuplicateHashError(record.hash) from exc
            raise StorageError(f"Failed to insert program {record.hash}: {exc}") from exc
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to insert program {record.hash}: {exc}") from exc

    def get(self, program_hash: str) -> Optional[ProgramRecord]:
        try:
            with closing(self._connect()) as conn:
                row = conn.execute(
                    "SELECT id, hash, code, version, builtins, layout FROM programs WHERE hash = ?",
                    (program_hash,),
                ).fetchone()
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to read program {program_hash}: {exc}") from exc

        if row is None:
            return None
        record_id, stored_hash, code, version, builtins, layout = row
        return ProgramRecord(
            id=record_id,
            hash=stored_hash,
            code=bytes(code),
            version=FormatVersion(version),
            builtins=tuple(json.loads(builtins)),
            layout=layout,
        )
