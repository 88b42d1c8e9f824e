"""Pytest configuration and artifact factories.

No sys.path hacks - tests import from the installed program_registry package.
Artifacts are built in code so each test states exactly what it hashes.
"""

import json
from typing import Any, Dict, Iterable, List, Optional

import pytest

from program_registry.kernel.errors import StorageError
from program_registry.store.memory import InMemoryProgramStore

STARK_PRIME = 2**251 + 17 * 2**192 + 1
STARK_PRIME_HEX = hex(STARK_PRIME)

# A small but realistic cairo-compile output body (main: [ap] = 1, ret)
PROGRAM_V0_DATA = [
    "0x40780017fff7fff",
    "0x1",
    "0x480680017fff8000",
    "0x1",
    "0x208b7fff7fff7ffe",
]

CASM_V2_BYTECODE = [
    "0xa0680017fff8000",
    "0x7",
    "0x482680017ffa8000",
    hex(STARK_PRIME - 8),  # -8 in the field
    "0x400280007ff97fff",
    "0x10780017fff7fff",
    "0x208b7fff7fff7ffe",
    "0x1104800180018000",
]

TRANSFER_SELECTOR = "0x83afd3f4caedc6eebf44246fe54e38c95e3179a5ec9ea81740eca5b482d12e"
BALANCE_SELECTOR = "0x2e4263afad30923c891518314c3c95dbe830a16874e8abc5777a9a20b54c76e"
CONSTRUCTOR_SELECTOR = "0x28ffe4ff0f226a9107253e17a904099aa4f63a02a5621de0576e5aa71bc5194"


def build_program_v0(
    builtins: Iterable[str] = ("pedersen", "range_check"),
    data: Optional[List[str]] = None,
    main_pc: Optional[int] = 0,
    compiler_version: str = "0.13.1",
    prime: str = STARK_PRIME_HEX,
) -> Dict[str, Any]:
    identifiers: Dict[str, Any] = {
        "__main__.__end__": {"pc": 4, "type": "label"},
        "__main__.__start__": {"pc": 0, "type": "label"},
    }
    if main_pc is not None:
        identifiers["__main__.main"] = {"decorators": [], "pc": main_pc, "type": "function"}
    return {
        "attributes": [],
        "builtins": list(builtins),
        "compiler_version": compiler_version,
        "data": list(PROGRAM_V0_DATA if data is None else data),
        "debug_info": None,
        "hints": {},
        "identifiers": identifiers,
        "main_scope": "__main__",
        "prime": prime,
        "reference_manager": {"references": []},
    }


def build_casm_v2(
    external_builtins: Iterable[Iterable[str]] = (("range_check",), ("pedersen", "range_check")),
    constructor_builtins: Iterable[str] = ("poseidon",),
    bytecode: Optional[List[str]] = None,
    bytecode_segment_lengths: Any = None,
    compiler_version: str = "2.6.3",
    prime: str = STARK_PRIME_HEX,
) -> Dict[str, Any]:
    selectors = [TRANSFER_SELECTOR, BALANCE_SELECTOR]
    external = [
        {"selector": selectors[i % len(selectors)], "offset": i * 3, "builtins": list(names)}
        for i, names in enumerate(external_builtins)
    ]
    document: Dict[str, Any] = {
        "prime": prime,
        "compiler_version": compiler_version,
        "bytecode": list(CASM_V2_BYTECODE if bytecode is None else bytecode),
        "hints": [],
        "entry_points_by_type": {
            "EXTERNAL": external,
            "L1_HANDLER": [],
            "CONSTRUCTOR": [
                {"selector": CONSTRUCTOR_SELECTOR, "offset": 6, "builtins": list(constructor_builtins)}
            ],
        },
    }
    if bytecode_segment_lengths is not None:
        document["bytecode_segment_lengths"] = bytecode_segment_lengths
    return document


def to_bytes(document: Any) -> bytes:
    return json.dumps(document).encode("utf-8")


class RecordingStore(InMemoryProgramStore):
    """In-memory store that counts insert calls."""

    def __init__(self):
        super().__init__()
        self.insert_calls = 0

    def insert(self, record):
        self.insert_calls += 1
        super().insert(record)


class FailingStore(InMemoryProgramStore):
    """Store whose insert always fails with the given exception."""

    def __init__(self, exc: Exception):
        super().__init__()
        self.exc = exc

    def insert(self, record):
        raise self.exc


@pytest.fixture
def make_program_v0():
    return build_program_v0


@pytest.fixture
def make_casm_v2():
    return build_casm_v2


@pytest.fixture
def program_v0_bytes() -> bytes:
    return to_bytes(build_program_v0())


@pytest.fixture
def casm_v2_bytes() -> bytes:
    return to_bytes(build_casm_v2())


@pytest.fixture
def store() -> InMemoryProgramStore:
    return InMemoryProgramStore()


@pytest.fixture
def recording_store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def failing_store_factory():
    return FailingStore


@pytest.fixture
def broken_store() -> FailingStore:
    return FailingStore(StorageError("database is locked"))
