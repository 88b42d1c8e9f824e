"""Cairo 0 program models and program hash chain (format version 0)."""

from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .errors import MalformedArtifactError
from .hash_utils import (
    FIELD_PRIME,
    compute_hash_chain,
    encode_short_string,
    ensure_felt,
    parse_felt,
)
from .version import load_artifact_json

BOOTLOADER_VERSION = 0
MAIN_ENTRYPOINT = "main"


class Identifier(BaseModel):
    """An entry of the program's identifier table. Only functions carry a pc."""
    type: Optional[str] = None
    pc: Optional[int] = None

    model_config = ConfigDict(extra="ignore")


class ProgramV0(BaseModel):
    """A compiled Cairo 0 program as emitted by cairo-compile."""
    prime: str
    builtins: List[str]
    data: List[int]
    identifiers: Dict[str, Identifier]
    main_scope: str = "__main__"

    model_config = ConfigDict(extra="ignore")

    @field_validator('prime')
    @classmethod
    def validate_prime(cls, v: str) -> str:
        if parse_felt(v) != FIELD_PRIME:
            raise ValueError(f"unsupported prime {v}; expected {hex(FIELD_PRIME)}")
        return v

    @field_validator('data', mode='before')
    @classmethod
    def parse_data(cls, v: Any) -> List[int]:
        """Data words are hex strings in the JSON; convert to ints."""
        if not isinstance(v, list):
            raise ValueError("data must be a list of field elements")
        return [parse_felt(word) for word in v]


class StrippedProgram(BaseModel):
    """The hash-relevant view of a program: entrypoint pc, builtins and bytecode."""
    main: int
    builtins: Tuple[str, ...]
    data: Tuple[int, ...]

    model_config = ConfigDict(frozen=True, extra="forbid")


def parse_program_v0(data: bytes) -> ProgramV0:
    """Parse artifact bytes into a ProgramV0 (raises MalformedArtifactError)."""
    document = load_artifact_json(data)
    try:
        return ProgramV0.model_validate(document)
    except ValidationError as exc:
        raise MalformedArtifactError(f"Invalid Cairo 0 program: {exc}") from exc


def get_stripped_program(program: ProgramV0, entrypoint: str = MAIN_ENTRYPOINT) -> StrippedProgram:
    """Strip a program down to the fields the program hash covers."""
    qualified = f"{program.main_scope}.{entrypoint}"
    identifier = program.identifiers.get(qualified)
    if identifier is None or identifier.pc is None:
        raise MalformedArtifactError(f"Program has no '{qualified}' entrypoint with a pc")
    return StrippedProgram(
        main=identifier.pc,
        builtins=tuple(program.builtins),
        data=tuple(program.data),
    )


def compute_program_hash_chain(
    program: StrippedProgram,
    bootloader_version: int = BOOTLOADER_VERSION,
) -> int:
    """Compute the bootloader's program hash for a stripped program.

    The chain is [len, bootloader_version, main, n_builtins, *builtins, *data],
    hashed with compute_hash_chain. Builtin names are encoded as short strings.

    Raises:
        HashComputationError: If a word is outside the field or a builtin
            name cannot be encoded
    """
    builtin_list = [encode_short_string(builtin) for builtin in program.builtins]
    header = [
        ensure_felt(bootloader_version, "bootloader version"),
        ensure_felt(program.main, "main pc"),
        len(program.builtins),
    ]
    words = [ensure_felt(word, f"data[{i}]") for i, word in enumerate(program.data)]
    chain = header + builtin_list + words
    return compute_hash_chain([len(chain)] + chain)
