"""Version-dispatched canonicalization: content hash + builtin requirement.

Each FormatVersion maps to exactly one canonicalizer. Both are pure
functions of the artifact bytes.
"""

from typing import Callable, Dict, Tuple

from pydantic import BaseModel, ConfigDict

from .casm_v2 import compute_compiled_class_hash, parse_casm_class
from .errors import UnsupportedCompilerVersionError
from .hash_utils import canonical_builtins, format_content_hash
from .program_v0 import (
    BOOTLOADER_VERSION,
    compute_program_hash_chain,
    get_stripped_program,
    parse_program_v0,
)
from .version import FormatVersion


class CanonicalArtifact(BaseModel):
    """Content hash and deduplicated builtin requirement of an artifact."""
    version: FormatVersion
    hash: str
    builtins: Tuple[str, ...]  # sorted, no duplicates

    model_config = ConfigDict(frozen=True, extra="forbid")


def _canonicalize_v0(data: bytes) -> CanonicalArtifact:
    stripped = get_stripped_program(parse_program_v0(data))
    program_hash = compute_program_hash_chain(stripped, BOOTLOADER_VERSION)
    return CanonicalArtifact(
        version=FormatVersion.ZERO,
        hash=format_content_hash(program_hash),
        builtins=tuple(canonical_builtins(stripped.builtins)),
    )


def _canonicalize_v2(data: bytes) -> CanonicalArtifact:
    casm = parse_casm_class(data)
    class_hash = compute_compiled_class_hash(casm)
    return CanonicalArtifact(
        version=FormatVersion.TWO,
        hash=format_content_hash(class_hash),
        builtins=tuple(canonical_builtins(casm.external_builtins())),
    )


CANONICALIZERS: Dict[FormatVersion, Callable[[bytes], CanonicalArtifact]] = {
    FormatVersion.ZERO: _canonicalize_v0,
    FormatVersion.TWO: _canonicalize_v2,
}


def canonicalize(data: bytes, version: FormatVersion) -> CanonicalArtifact:
    """Compute the content hash and builtin requirement of an artifact.

    Raises:
        MalformedArtifactError: If bytes do not parse for the given version
        HashComputationError: If the hash cannot be computed
        UnsupportedCompilerVersionError: If version has no canonicalizer
    """
    canonicalizer = CANONICALIZERS.get(version)
    if canonicalizer is None:
        raise UnsupportedCompilerVersionError(int(version), str(int(version)))
    return canonicalizer(data)
