"""Hash utilities with explicit field rules for stable program hashing.

This module wraps the Stark field hash primitives used to identify
compiled programs and guarantees stable, deterministic output across
Python versions and environments.

Key rules:
- Every hashed value is a Stark field element (0 <= value < FIELD_PRIME)
- Out-of-range values are a hard error, never reduced modulo the prime
- Names are hashed as big-endian ASCII short strings (at most 31 bytes)
- Content hashes are rendered as "0x" + lowercase hex without leading zeros
"""

import functools
import re
from typing import Iterable, List, Sequence

from poseidon_py.poseidon_hash import poseidon_hash_many
from starknet_py.cairo.felt import encode_shortstring
from starknet_py.hash.utils import pedersen_hash

from .errors import HashComputationError

FIELD_PRIME = 2**251 + 17 * 2**192 + 1

CONTENT_HASH_PREFIX = "0x"

_HEX_FELT = re.compile(r"0x[0-9a-fA-F]+")
_DEC_FELT = re.compile(r"-?[0-9]+")


def parse_felt(value: object) -> int:
    """Parse a JSON felt literal ("0x..." hex string, decimal string or int).

    Raises ValueError for anything else so pydantic validators report it as
    a parse failure. Range is NOT checked here; see ensure_felt.
    """
    if isinstance(value, bool):
        raise ValueError(f"expected a field element, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        if _HEX_FELT.fullmatch(value):
            return int(value, 16)
        if _DEC_FELT.fullmatch(value):
            return int(value)
    raise ValueError(f"expected a field element literal, got {value!r}")


def ensure_felt(value: int, label: str) -> int:
    """Check that value is a field element."""
    if not 0 <= value < FIELD_PRIME:
        raise HashComputationError(f"{label} is outside the field range: {hex(value)}")
    return value


def encode_short_string(text: str) -> int:
    """Encode a builtin or version name as a field element.

    Raises:
        HashComputationError: If text is not ASCII or longer than 31 bytes
    """
    try:
        return encode_shortstring(text)
    except ValueError as exc:
        raise HashComputationError(f"Cannot encode '{text}' as a short string: {exc}") from exc


def compute_hash_chain(data: Sequence[int]) -> int:
    """Pedersen hash chain h(data[0], h(data[1], h(..., h(data[n-2], data[n-1])))).

    Raises:
        HashComputationError: If data is empty
    """
    if not data:
        raise HashComputationError("Cannot compute a hash chain over no elements")
    return functools.reduce(lambda acc, item: pedersen_hash(item, acc), reversed(data))


def poseidon_many(values: Iterable[int]) -> int:
    """Poseidon hash over a sequence of field elements."""
    return poseidon_hash_many(list(values))


def format_content_hash(value: int) -> str:
    """Render a field element as a canonical content hash string."""
    ensure_felt(value, "content hash")
    return f"{CONTENT_HASH_PREFIX}{value:x}"


def is_content_hash(value: str) -> bool:
    """True if value is in canonical content hash form."""
    if not value.startswith(CONTENT_HASH_PREFIX):
        return False
    digits = value[len(CONTENT_HASH_PREFIX):]
    if not digits or digits != digits.lower():
        return False
    if len(digits) > 1 and digits.startswith("0"):
        return False
    return all(c in "0123456789abcdef" for c in digits)


def canonical_builtins(names: Iterable[str]) -> List[str]:
    """Deduplicate builtin names and return them in stable (sorted) order."""
    return sorted(set(names))
