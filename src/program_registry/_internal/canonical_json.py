"""Canonical JSON serialization for stored metadata and CLI output.

Used for the builtins column of the SQLite store and for every JSON
document the CLI prints, so the same record always serializes to the
same bytes.
"""

import json
from typing import Any


def canonical_dumps(obj: Any) -> str:
    """
    Canonical JSON serialization.

    Rules:
    - Sorted keys
    - Stable separators (",", ":")
    - Non-ASCII kept as UTF-8
    - Lists are emitted in the order given (sort them first if order is irrelevant)
    """
    return json.dumps(
        obj,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False
    )
