"""
rinklink: extract athlete profiles and season histories from roster and
performance pages, and link the same athlete across the two sources.

Modules:
    config: Per-source configuration bundles (built-in and YAML)
    errors: Extraction error taxonomy
    extract: Structural extraction, field normalization, table reconciliation
    identity: Locator-derived identifiers and cross-source linking
    validation: Record schemas and plausibility checks
    pipeline: Per-athlete extraction
"""

from rinklink.config import PERFORMANCE_SOURCE, ROSTER_SOURCE, SourceConfig, load_source_configs
from rinklink.identity.linker import CrossSourceLinker, LinkReason, PerformanceCandidate
from rinklink.pipeline import AthleteRecord, candidate_from_record, extract_athlete, link_athlete

__version__ = "0.1.0"

__all__ = [
    "PERFORMANCE_SOURCE",
    "ROSTER_SOURCE",
    "SourceConfig",
    "load_source_configs",
    "CrossSourceLinker",
    "LinkReason",
    "PerformanceCandidate",
    "AthleteRecord",
    "candidate_from_record",
    "extract_athlete",
    "link_athlete",
]
