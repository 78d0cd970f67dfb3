"""
Identity package.

This package assigns per-source athlete identifiers and links athletes across
sources that share no identifier.

Modules:
    identifiers: Locator-derived identifiers and their propagation
    linker: Layered name/attribute matching with explicit unresolved outcomes
"""

from rinklink.identity.identifiers import (
    attach_identifier,
    canonical_locator,
    derive_identifier,
)
from rinklink.identity.linker import (
    CandidateIndex,
    CrossSourceLinker,
    LinkReason,
    PerformanceCandidate,
    normalize_name,
)

__all__ = [
    "attach_identifier",
    "canonical_locator",
    "derive_identifier",
    "CandidateIndex",
    "CrossSourceLinker",
    "LinkReason",
    "PerformanceCandidate",
    "normalize_name",
]
