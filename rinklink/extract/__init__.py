"""
Extraction package.

Modules:
    structural: Locate substructures (including comment-embedded markup)
    fields: Normalize label/value text blocks into profiles
    tables: Split and repair concatenated season tables
"""

from rinklink.extract.fields import (
    DRAFT_RULE,
    CompoundRule,
    Measurement,
    apply_transforms,
    pair_fields,
    parse_date,
    split_measurement,
    tokenize_block,
)
from rinklink.extract.structural import (
    extract_grid,
    extract_text,
    extract_value,
    locate,
    locate_first,
    parse_document,
    parse_fragment,
)
from rinklink.extract.tables import (
    SEASON_SPLIT_V1,
    SINGLE_SECTION_V1,
    ColumnSection,
    TableLayout,
    forward_fill,
    reconcile,
    split_grid,
)

__all__ = [
    "DRAFT_RULE",
    "CompoundRule",
    "Measurement",
    "apply_transforms",
    "pair_fields",
    "parse_date",
    "split_measurement",
    "tokenize_block",
    "extract_grid",
    "extract_text",
    "extract_value",
    "locate",
    "locate_first",
    "parse_document",
    "parse_fragment",
    "SEASON_SPLIT_V1",
    "SINGLE_SECTION_V1",
    "ColumnSection",
    "TableLayout",
    "forward_fill",
    "reconcile",
    "split_grid",
]
