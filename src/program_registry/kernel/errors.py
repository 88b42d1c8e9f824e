"""Exception taxonomy for the ingestion kernel and its stores."""

from program_registry.codes import ErrorCode


class RegistryError(Exception):
    """Base class for every error raised by program_registry."""

    code: ErrorCode

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ArtifactError(RegistryError, ValueError):
    """The submitted artifact is invalid. Reported to clients as bad input."""


class MalformedArtifactError(ArtifactError):
    """Bytes do not parse as the structured document expected for the version."""

    code = ErrorCode.MALFORMED_ARTIFACT


class UnsupportedCompilerVersionError(ArtifactError):
    """compiler_version is well-formed but names a major version we cannot hash."""

    code = ErrorCode.UNSUPPORTED_COMPILER_VERSION

    def __init__(self, major: int, compiler_version: str):
        super().__init__(
            f"Unsupported compiler version '{compiler_version}' (major version {major}); "
            f"supported major versions are 0 and 2"
        )
        self.major = major
        self.compiler_version = compiler_version


class HashComputationError(ArtifactError):
    """The artifact parsed but its content hash could not be computed."""

    code = ErrorCode.HASH_COMPUTATION_FAILURE


class ProgramNotFoundError(RegistryError, LookupError):
    """No stored program has the requested hash."""

    code = ErrorCode.NOT_FOUND

    def __init__(self, program_hash: str):
        super().__init__(f"No program stored with hash {program_hash}")
        self.program_hash = program_hash


class StorageError(RegistryError):
    """The program store failed for a reason other than a duplicate hash."""

    code = ErrorCode.STORAGE_FAILURE


class DuplicateHashError(StorageError):
    """Raised by stores when the hash unique constraint rejects an insert.

    Never surfaced by api.ingest: it is converted into an idempotent success.
    """

    code = ErrorCode.DUPLICATE_HASH

    def __init__(self, program_hash: str):
        super().__init__(f"A program with hash {program_hash} already exists")
        self.program_hash = program_hash


class CatalogError(RegistryError, RuntimeError):
    """The layout catalog is misconfigured. Fatal at startup."""

    code = ErrorCode.CATALOG_MISCONFIGURED
