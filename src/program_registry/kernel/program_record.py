"""Stored program record models."""

import uuid
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field

from .version import FormatVersion


class ProgramRecord(BaseModel):
    """A persisted program. Created once per ingestion, never mutated."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))  # storage key only
    hash: str  # content hash, unique across the store
    code: bytes  # uploaded bytes, returned unchanged
    version: FormatVersion
    builtins: Tuple[str, ...]
    layout: str

    model_config = ConfigDict(frozen=True, extra="forbid")


class ProgramMetadata(BaseModel):
    """Record fields served without the program bytes."""
    version: FormatVersion
    layout: str
    builtins: Tuple[str, ...]

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_record(cls, record: ProgramRecord) -> "ProgramMetadata":
        return cls(version=record.version, layout=record.layout, builtins=record.builtins)
