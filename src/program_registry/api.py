"""Public API for program_registry.

High-level functions that run the ingestion pipeline and lookups.
Transports (server, CLI) should use these functions instead of calling
kernel modules directly.
"""

import logging
from typing import Iterable, List

from pydantic import BaseModel

from program_registry.kernel.canonicalize import canonicalize
from program_registry.kernel.errors import DuplicateHashError, ProgramNotFoundError, StorageError
from program_registry.kernel.hash_utils import is_content_hash
from program_registry.kernel.layouts import DEFAULT_CATALOG, LayoutCatalog, resolve_layout
from program_registry.kernel.program_record import ProgramMetadata, ProgramRecord
from program_registry.kernel.version import FormatVersion, detect_version
from program_registry.store.base import ProgramStore

logger = logging.getLogger(__name__)


class InspectResult(BaseModel):
    """What ingestion would store for an artifact."""
    hash: str
    version: FormatVersion
    builtins: List[str]  # sorted
    layout: str


class IngestResult(InspectResult):
    """Outcome of ingest(). already_existed marks an idempotent re-upload."""
    already_existed: bool


def inspect(data: bytes, catalog: LayoutCatalog = DEFAULT_CATALOG) -> InspectResult:
    """Detect version, hash the artifact and resolve its layout without storing it.

    Raises:
        MalformedArtifactError: If the artifact cannot be parsed
        UnsupportedCompilerVersionError: If the compiler major version is not 0 or 2
        HashComputationError: If the content hash cannot be computed
    """
    version = detect_version(data)
    logger.info(f"Compiler version: {int(version)}")
    artifact = canonicalize(data, version)
    logger.info(f"Program hash: {artifact.hash}")
    logger.info(f"Builtins: {list(artifact.builtins)}")
    layout = resolve_layout(artifact.builtins, catalog)
    logger.info(f"Layout: {layout.name}")
    return InspectResult(
        hash=artifact.hash,
        version=version,
        builtins=list(artifact.builtins),
        layout=layout.name,
    )


def ingest(data: bytes, store: ProgramStore, catalog: LayoutCatalog = DEFAULT_CATALOG) -> IngestResult:
    """Canonicalize an artifact and persist it under its content hash.

    Makes exactly one store call. A duplicate hash is not an error: the
    result carries the same hash with already_existed=True.

    Raises:
        MalformedArtifactError, UnsupportedCompilerVersionError,
        HashComputationError: If the artifact is invalid (nothing is stored)
        StorageError: If the store fails for any other reason
    """
    inspected = inspect(data, catalog)
    record = ProgramRecord(
        hash=inspected.hash,
        code=data,
        version=inspected.version,
        builtins=tuple(inspected.builtins),
        layout=inspected.layout,
    )

    already_existed = False
    try:
        store.insert(record)
    except DuplicateHashError:
        logger.info(f"Program {record.hash} already stored")
        already_existed = True
    except StorageError as exc:
        logger.error(f"Failed to store program {record.hash}: {exc}")
        raise
    except Exception as exc:
        logger.error(f"Store raised unexpected {type(exc).__name__} for {record.hash}: {exc}")
        raise StorageError(f"Failed to store program {record.hash}: {exc}") from exc

    return IngestResult(**inspected.model_dump(), already_existed=already_existed)


def resolve(requirement: Iterable[str], catalog: LayoutCatalog = DEFAULT_CATALOG) -> str:
    """Name of the cheapest layout covering the requirement."""
    return resolve_layout(requirement, catalog).name


def fetch(program_hash: str, store: ProgramStore) -> ProgramRecord:
    """Return the stored record for program_hash, bytes unchanged.

    Raises:
        ProgramNotFoundError: If nothing is stored under program_hash. Hashes
            not in canonical form never match and skip the store lookup.
        StorageError: If the store fails
    """
    if not is_content_hash(program_hash):
        raise ProgramNotFoundError(program_hash)
    record = store.get(program_hash)
    if record is None:
        raise ProgramNotFoundError(program_hash)
    return record


def get_metadata(program_hash: str, store: ProgramStore) -> ProgramMetadata:
    """Return version, layout and builtins of a stored program."""
    return ProgramMetadata.from_record(fetch(program_hash, store))
