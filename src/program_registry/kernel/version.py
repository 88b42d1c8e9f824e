"""Compiler version detection for uploaded program artifacts."""

import json
import re
from enum import Enum
from typing import Any, Dict

from .errors import MalformedArtifactError, UnsupportedCompilerVersionError

_MAJOR = re.compile(r"[+-]?[0-9]+")


class FormatVersion(int, Enum):
    """Artifact format, keyed by the compiler's major version."""
    ZERO = 0  # Cairo 0 program (pedersen program hash chain)
    TWO = 2  # Cairo 2 CASM compiled class (poseidon compiled class hash)


def load_artifact_json(data: bytes) -> Dict[str, Any]:
    """Decode artifact bytes as a UTF-8 JSON object.

    Raises:
        MalformedArtifactError: If bytes are not UTF-8 JSON or not an object
    """
    try:
        document = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise MalformedArtifactError(f"Artifact is not valid UTF-8 JSON: {exc}") from exc
    except RecursionError as exc:
        raise MalformedArtifactError("Artifact JSON is nested too deeply") from exc
    if not isinstance(document, dict):
        raise MalformedArtifactError(
            f"Artifact must be a JSON object, got {type(document).__name__}"
        )
    return document


def parse_compiler_version(compiler_version: str) -> FormatVersion:
    """Map a compiler_version string ("2.6.3", "0.13.1") to its FormatVersion."""
    head = compiler_version.split(".", 1)[0]
    if not _MAJOR.fullmatch(head):
        raise MalformedArtifactError(
            f"compiler_version '{compiler_version}' does not start with an integer major version"
        )
    major = int(head)
    try:
        return FormatVersion(major)
    except ValueError:
        raise UnsupportedCompilerVersionError(major, compiler_version) from None


def detect_version(data: bytes) -> FormatVersion:
    """Read the compiler_version field of an artifact.

    Raises:
        MalformedArtifactError: If the document or its compiler_version is malformed
        UnsupportedCompilerVersionError: If the major version is not 0 or 2
    """
    document = load_artifact_json(data)
    compiler_version = document.get("compiler_version")
    if not isinstance(compiler_version, str):
        raise MalformedArtifactError("compiler_version field not found or not a string")
    return parse_compiler_version(compiler_version)
