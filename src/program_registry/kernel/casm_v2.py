"""CASM compiled class models and compiled class hash (format version 2)."""

from __future__ import annotations

from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import HashComputationError, MalformedArtifactError
from .hash_utils import (
    FIELD_PRIME,
    encode_short_string,
    ensure_felt,
    parse_felt,
    poseidon_many,
)
from .version import load_artifact_json

COMPILED_CLASS_VERSION = "COMPILED_CLASS_V1"


class CasmEntryPoint(BaseModel):
    selector: int
    offset: int = Field(..., ge=0)
    builtins: List[str]

    model_config = ConfigDict(extra="ignore")

    @field_validator('selector', mode='before')
    @classmethod
    def parse_selector(cls, v: Any) -> int:
        return parse_felt(v)


class EntryPointsByType(BaseModel):
    external: List[CasmEntryPoint] = Field(..., alias="EXTERNAL")
    l1_handler: List[CasmEntryPoint] = Field(..., alias="L1_HANDLER")
    constructor: List[CasmEntryPoint] = Field(..., alias="CONSTRUCTOR")

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class CasmClass(BaseModel):
    """A CASM compiled class as emitted by starknet-sierra-compile."""
    prime: str
    compiler_version: str
    bytecode: List[int]
    bytecode_segment_lengths: Optional[Any] = None
    entry_points_by_type: EntryPointsByType

    model_config = ConfigDict(extra="ignore")

    @field_validator('prime')
    @classmethod
    def validate_prime(cls, v: str) -> str:
        if parse_felt(v) != FIELD_PRIME:
            raise ValueError(f"unsupported prime {v}; expected {hex(FIELD_PRIME)}")
        return v

    @field_validator('bytecode', mode='before')
    @classmethod
    def parse_bytecode(cls, v: Any) -> List[int]:
        if not isinstance(v, list):
            raise ValueError("bytecode must be a list of field elements")
        return [parse_felt(word) for word in v]

    @field_validator('bytecode_segment_lengths')
    @classmethod
    def validate_segment_lengths(cls, v: Any) -> Any:
        """Segment lengths are a non-negative int or a (nested) list of them."""
        if v is not None:
            _check_nested_lengths(v)
        return v

    def external_builtins(self) -> List[str]:
        """Union of the builtins used by every external entry point."""
        names = set()
        for entry_point in self.entry_points_by_type.external:
            names.update(entry_point.builtins)
        return sorted(names)


def _check_nested_lengths(v: Any) -> None:
    if isinstance(v, bool):
        raise ValueError("bytecode_segment_lengths must contain integers")
    if isinstance(v, int):
        if v < 0:
            raise ValueError("bytecode segment lengths must be non-negative")
        return
    if isinstance(v, list):
        for item in v:
            _check_nested_lengths(item)
        return
    raise ValueError(f"bytecode_segment_lengths must be an int or list, got {type(v).__name__}")


def parse_casm_class(data: bytes) -> CasmClass:
    """Parse artifact bytes into a CasmClass (raises MalformedArtifactError)."""
    document = load_artifact_json(data)
    try:
        return CasmClass.model_validate(document)
    except ValidationError as exc:
        raise MalformedArtifactError(f"Invalid CASM compiled class: {exc}") from exc


def _entry_points_hash(entry_points: List[CasmEntryPoint], kind: str) -> int:
    values: List[int] = []
    for i, entry_point in enumerate(entry_points):
        builtins_hash = poseidon_many(encode_short_string(name) for name in entry_point.builtins)
        values.extend([
            ensure_felt(entry_point.selector, f"{kind}[{i}].selector"),
            ensure_felt(entry_point.offset, f"{kind}[{i}].offset"),
            builtins_hash,
        ])
    return poseidon_many(values)


def _segment_hash(bytecode: List[int], lengths: Any, offset: int) -> Tuple[int, int]:
    """Hash one node of the bytecode segment tree. Returns (hash, length)."""
    if isinstance(lengths, int):
        if lengths == 0:
            raise HashComputationError("bytecode_segment_lengths contains an empty segment")
        return poseidon_many(bytecode[offset:offset + lengths]), lengths

    if not lengths:
        raise HashComputationError("bytecode_segment_lengths contains an empty segment list")

    parts: List[int] = []
    total = 0
    for item in lengths:
        item_hash, item_len = _segment_hash(bytecode, item, offset + total)
        parts.extend([item_len, item_hash])
        total += item_len
    return (poseidon_many(parts) + 1) % FIELD_PRIME, total


def _bytecode_hash(casm: CasmClass) -> int:
    if casm.bytecode_segment_lengths is None:
        return poseidon_many(casm.bytecode)

    bytecode_hash, covered = _segment_hash(casm.bytecode, casm.bytecode_segment_lengths, 0)
    if covered != len(casm.bytecode):
        raise HashComputationError(
            f"bytecode_segment_lengths cover {covered} words but bytecode has {len(casm.bytecode)}"
        )
    return bytecode_hash


def compute_compiled_class_hash(casm: CasmClass) -> int:
    """Compute the compiled class hash of a CASM class.

    Raises:
        HashComputationError: If a value is outside the field, a builtin name
            cannot be encoded or the segment lengths do not match the bytecode
    """
    for i, word in enumerate(casm.bytecode):
        ensure_felt(word, f"bytecode[{i}]")

    entry_points = casm.entry_points_by_type
    return poseidon_many([
        encode_short_string(COMPILED_CLASS_VERSION),
        _entry_points_hash(entry_points.external, "EXTERNAL"),
        _entry_points_hash(entry_points.l1_handler, "L1_HANDLER"),
        _entry_points_hash(entry_points.constructor, "CONSTRUCTOR"),
        _bytecode_hash(casm),
    ])
