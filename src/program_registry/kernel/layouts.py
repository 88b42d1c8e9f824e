"""Layout catalog: named execution layouts with builtin capacities and costs."""

import logging
from types import MappingProxyType
from typing import FrozenSet, Iterable, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import CatalogError

logger = logging.getLogger(__name__)


class LayoutSpec(BaseModel):
    """A layout entry: the builtins it provides and its execution cost.

    Cost is the number of trace columns the layout uses.
    """
    name: str
    cost: int = Field(..., ge=0)
    builtins: FrozenSet[str]

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v or v != v.strip():
            raise ValueError(f"Layout name must be non-empty without surrounding whitespace, got '{v}'")
        return v

    def covers(self, requirement: Iterable[str]) -> bool:
        """True if every required builtin is provided (extras are fine)."""
        return self.builtins.issuperset(requirement)


class LayoutCatalog(BaseModel):
    """Immutable catalog of layouts with a designated maximal layout.

    The maximal layout must provide every builtin any other layout provides;
    it is the fallback when no layout covers a requirement.
    """
    layouts: Tuple[LayoutSpec, ...]
    maximal: str

    model_config = ConfigDict(frozen=True, extra="forbid")

    def __init__(self, **data):
        super().__init__(**data)
        if not self.layouts:
            raise CatalogError("Layout catalog must contain at least one layout")

        names = [layout.name for layout in self.layouts]
        if len(names) != len(set(names)):
            duplicates = sorted({name for name in names if names.count(name) > 1})
            raise CatalogError(f"Duplicate layout names in catalog: {duplicates}")

        maximal = self.get(self.maximal)
        if maximal is None:
            raise CatalogError(f"Maximal layout '{self.maximal}' is not in the catalog")

        provided = frozenset().union(*(layout.builtins for layout in self.layouts))
        missing = provided - maximal.builtins
        if missing:
            raise CatalogError(
                f"Maximal layout '{self.maximal}' is missing builtins offered by other layouts: "
                f"{sorted(missing)}"
            )

    def get(self, name: str) -> Optional[LayoutSpec]:
        """Get layout by name."""
        for layout in self.layouts:
            if layout.name == name:
                return layout
        return None

    @property
    def maximal_layout(self) -> LayoutSpec:
        return self.get(self.maximal)

    def get_all_names(self) -> List[str]:
        """Get layout names in catalog order."""
        return [layout.name for layout in self.layouts]

    def as_mapping(self) -> Mapping[str, LayoutSpec]:
        """Read-only name -> LayoutSpec view."""
        return MappingProxyType({layout.name: layout for layout in self.layouts})


# Trace column counts from cairo-lang's starkware/cairo/lang/instances.py
DEFAULT_CATALOG = LayoutCatalog(
    layouts=(
        LayoutSpec(
            name="starknet_with_keccak",
            cost=15,
            builtins=frozenset({
                "pedersen", "range_check", "ecdsa", "bitwise", "ec_op", "keccak", "poseidon",
            }),
        ),
        LayoutSpec(
            name="recursive",
            cost=10,
            builtins=frozenset({"pedersen", "range_check", "bitwise"}),
        ),
        LayoutSpec(
            name="starknet",
            cost=10,
            builtins=frozenset({
                "pedersen", "range_check", "ecdsa", "bitwise", "ec_op", "poseidon",
            }),
        ),
        LayoutSpec(
            name="recursive_with_poseidon",
            cost=8,
            builtins=frozenset({"pedersen", "range_check", "bitwise", "poseidon"}),
        ),
    ),
    maximal="starknet_with_keccak",
)


def resolve_layout(requirement: Iterable[str], catalog: LayoutCatalog = DEFAULT_CATALOG) -> LayoutSpec:
    """Select the cheapest layout whose builtins cover the requirement.

    Ties on cost are broken by layout name so the choice never depends on
    catalog order. If no layout covers the requirement, the catalog's
    maximal layout is returned; resolution never fails.
    """
    required = frozenset(requirement)
    candidates = [layout for layout in catalog.layouts if layout.covers(required)]
    if not candidates:
        unknown = sorted(required - catalog.maximal_layout.builtins)
        logger.warning(
            f"No layout provides builtins {unknown}; falling back to '{catalog.maximal}'"
        )
        return catalog.maximal_layout
    return min(candidates, key=lambda layout: (layout.cost, layout.name))
