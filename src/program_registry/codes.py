"""Error code constants for program_registry.

These constants prevent stringly-typed error codes and give transport
layers (HTTP, CLI) a stable value to report to clients.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Error codes raised by the ingestion pipeline and stores."""

    # Client-input errors (the artifact itself is invalid)
    MALFORMED_ARTIFACT = "MALFORMED_ARTIFACT"
    UNSUPPORTED_COMPILER_VERSION = "UNSUPPORTED_COMPILER_VERSION"
    HASH_COMPUTATION_FAILURE = "HASH_COMPUTATION_FAILURE"

    # Lookup
    NOT_FOUND = "NOT_FOUND"

    # Storage
    DUPLICATE_HASH = "DUPLICATE_HASH"
    STORAGE_FAILURE = "STORAGE_FAILURE"

    # Startup (fatal)
    CATALOG_MISCONFIGURED = "CATALOG_MISCONFIGURED"
