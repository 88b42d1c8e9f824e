"""program_registry: hash-addressed storage of compiled programs with layout resolution."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("program-registry")
except PackageNotFoundError:
    __version__ = "dev"

# Public API exports
from program_registry.api import IngestResult, InspectResult, fetch, get_metadata, ingest, inspect, resolve
from program_registry.codes import ErrorCode
from program_registry.kernel.layouts import DEFAULT_CATALOG, LayoutCatalog, LayoutSpec
from program_registry.kernel.version import FormatVersion

__all__ = [
    "__version__",
    "ingest",
    "inspect",
    "resolve",
    "fetch",
    "get_metadata",
    "IngestResult",
    "InspectResult",
    "ErrorCode",
    "FormatVersion",
    "LayoutCatalog",
    "LayoutSpec",
    "DEFAULT_CATALOG",
]
