"""
Source configuration bundles.

Each source (roster, performance) is described by a SourceConfig: where its
fragments live in the page, how its table is split, which tokens are noise, how
its identifier is read from the page address, and which attribute separates
namesakes when linking.

Supports loading from:
1. Built-in defaults (ROSTER_SOURCE, PERFORMANCE_SOURCE)
2. YAML bundle (sources.config.yaml shipped in the package, or the file named by
   the RINKLINK_SOURCES_FILE environment variable)

Usage:
    from rinklink.config import load_source_configs

    configs = load_source_configs()
    roster = configs["roster"]
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import yaml

from rinklink.errors import ConfigError
from rinklink.extract.fields import DEFAULT_METRIC_UNITS, DRAFT_RULE, CompoundRule
from rinklink.extract.tables import (
    DEFAULT_TEXT_COLUMNS,
    LAYOUTS,
    SEASON_SPLIT_V1,
    ColumnSection,
    TableLayout,
)

logger = logging.getLogger(__name__)

# Bundled with the package so installed copies find it too
PACKAGE_DIR = Path(__file__).parent
DEFAULT_SOURCES_PATH = PACKAGE_DIR / "sources.config.yaml"
SOURCES_FILE_ENV = "RINKLINK_SOURCES_FILE"

COMPOUND_RULES: Dict[str, CompoundRule] = {"draft": DRAFT_RULE}
DISAMBIGUATION_ATTRIBUTES = ("birth_year", "birth_date", "career")


@dataclass(frozen=True)
class AttributeMarker:
    """A single value read straight off the page (heading text or an attribute)."""
    selectors: Tuple[str, ...]
    attribute: Optional[str] = None
    parse_as_date: bool = False
    required: bool = True


@dataclass(frozen=True)
class SourceConfig:
    """Everything the pipeline needs to know about one source's page shape."""
    name: str
    identifier_pattern: str
    roster_markers: Tuple[str, ...] = ()
    performance_markers: Tuple[str, ...] = ()
    column_ranges: TableLayout = SEASON_SPLIT_V1
    denylist_tokens: Tuple[str, ...] = ()
    sentinel_token: Optional[str] = None
    disambiguation_attribute: str = "birth_year"
    name_markers: Tuple[str, ...] = ("h1",)
    attribute_markers: Tuple[Tuple[str, AttributeMarker], ...] = ()
    numeric_identifier: bool = False
    measurement_fields: Tuple[str, ...] = ()
    metric_units: Tuple[str, ...] = DEFAULT_METRIC_UNITS
    compound_rules: Tuple[Tuple[str, CompoundRule], ...] = ()
    date_fields: Tuple[Tuple[str, str], ...] = ()
    text_columns: Tuple[str, ...] = DEFAULT_TEXT_COLUMNS
    team_column: str = "Team"
    league_column: str = "Lg"

    def __post_init__(self) -> None:
        if self.disambiguation_attribute not in DISAMBIGUATION_ATTRIBUTES:
            raise ConfigError(
                f"Source {self.name!r}: unknown disambiguation attribute {self.disambiguation_attribute!r}"
            )
        try:
            compiled = re.compile(self.identifier_pattern)
        except re.error as e:
            raise ConfigError(f"Source {self.name!r}: bad identifier pattern: {e}") from e
        if "id" not in compiled.groupindex:
            raise ConfigError(f"Source {self.name!r}: identifier pattern needs a named group 'id'")

    @property
    def group_column(self) -> str:
        return self.column_ranges.group_column


# -----------------------------------------------------------------------------
# Built-in sources
# -----------------------------------------------------------------------------

ROSTER_SOURCE = SourceConfig(
    name="roster",
    identifier_pattern=r"/player/(?P<id>\d+)(?:/|$)",
    numeric_identifier=True,
    roster_markers=("div.player-facts", "section[role=complementary] ul.facts"),
    performance_markers=("#league-stats", "div.player-stats"),
    column_ranges=SEASON_SPLIT_V1,
    denylist_tokens=("Data provided by the league office", "Report an error"),
    sentinel_token="Highlights",
    disambiguation_attribute="birth_year",
    name_markers=("h1.player-name", "h1"),
    measurement_fields=("Height", "Weight"),
    compound_rules=(("Drafted", DRAFT_RULE),),
    date_fields=(("Date of Birth", "birth_date"),),
)

PERFORMANCE_SOURCE = SourceConfig(
    name="performance",
    identifier_pattern=r"/players/[a-z]/(?P<id>[a-z0-9]+)\.html?$",
    performance_markers=("#stats_basic", "table.stats_table"),
    column_ranges=SEASON_SPLIT_V1,
    disambiguation_attribute="birth_year",
    name_markers=("#meta h1", "h1"),
    attribute_markers=(
        ("birth_date", AttributeMarker(selectors=("#necro-birth",), attribute="data-birth", parse_as_date=True)),
    ),
)

DEFAULT_SOURCES: Dict[str, SourceConfig] = {c.name: c for c in (ROSTER_SOURCE, PERFORMANCE_SOURCE)}


# -----------------------------------------------------------------------------
# YAML loading
# -----------------------------------------------------------------------------

def _tuple_of_str(value: Any, key: str, source: str) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
        return tuple(value)
    raise ConfigError(f"Source {source!r}: {key} must be a string or list of strings")


def _layout_from(value: Any, source: str) -> TableLayout:
    if isinstance(value, str):
        if value not in LAYOUTS:
            raise ConfigError(f"Source {source!r}: unknown layout {value!r} (known: {', '.join(LAYOUTS)})")
        return LAYOUTS[value]
    if isinstance(value, Mapping):
        try:
            sections = tuple(
                ColumnSection(name=str(s["name"]), start=int(s["start"]), stop=int(s["stop"]))
                for s in value["sections"]
            )
            return TableLayout(
                name=str(value["name"]),
                version=int(value.get("version", 1)),
                sections=sections,
                group_column=str(value.get("group_column", "S")),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigError(f"Source {source!r}: malformed column_ranges: {e}") from e
    raise ConfigError(f"Source {source!r}: column_ranges must be a layout label or mapping")


def _compound_rule_from(value: Any, source: str) -> CompoundRule:
    if isinstance(value, str):
        if value not in COMPOUND_RULES:
            raise ConfigError(f"Source {source!r}: unknown compound rule {value!r}")
        return COMPOUND_RULES[value]
    if isinstance(value, Mapping):
        try:
            return CompoundRule(
                fields=tuple(value["fields"]),
                connectors=tuple(value.get("connectors", ())),
                template=str(value["template"]),
            )
        except (KeyError, TypeError) as e:
            raise ConfigError(f"Source {source!r}: malformed compound rule: {e}") from e
    raise ConfigError(f"Source {source!r}: compound rule must be a name or mapping")


def _attribute_marker_from(value: Any, source: str) -> AttributeMarker:
    if not isinstance(value, Mapping) or "selectors" not in value:
        raise ConfigError(f"Source {source!r}: attribute marker needs 'selectors'")
    return AttributeMarker(
        selectors=_tuple_of_str(value["selectors"], "selectors", source),
        attribute=value.get("attribute"),
        parse_as_date=bool(value.get("date", False)),
        required=bool(value.get("required", True)),
    )


def source_config_from_dict(name: str, data: Mapping[str, Any]) -> SourceConfig:
    """Build a SourceConfig from one entry of the YAML `sources` mapping."""
    known = {f for f in SourceConfig.__dataclass_fields__} | {"group_column"}
    unknown = set(data) - known
    if unknown:
        raise ConfigError(f"Source {name!r}: unknown key(s) {sorted(unknown)}")
    if "identifier_pattern" not in data:
        raise ConfigError(f"Source {name!r}: identifier_pattern is required")

    kwargs: Dict[str, Any] = {"name": name, "identifier_pattern": str(data["identifier_pattern"])}
    for key in ("roster_markers", "performance_markers", "denylist_tokens", "name_markers",
                "measurement_fields", "metric_units", "text_columns"):
        if key in data:
            kwargs[key] = _tuple_of_str(data[key], key, name)
    for key in ("sentinel_token", "disambiguation_attribute", "team_column", "league_column"):
        if key in data:
            kwargs[key] = data[key]
    if "numeric_identifier" in data:
        kwargs["numeric_identifier"] = bool(data["numeric_identifier"])

    layout = _layout_from(data.get("column_ranges", SEASON_SPLIT_V1.label), name)
    if "group_column" in data:
        layout = replace(layout, group_column=str(data["group_column"]))
    kwargs["column_ranges"] = layout

    kwargs["compound_rules"] = tuple(
        (str(label), _compound_rule_from(rule, name)) for label, rule in (data.get("compound_rules") or {}).items()
    )
    kwargs["date_fields"] = tuple(
        (str(label), str(target)) for label, target in (data.get("date_fields") or {}).items()
    )
    kwargs["attribute_markers"] = tuple(
        (str(label), _attribute_marker_from(marker, name))
        for label, marker in (data.get("attribute_markers") or {}).items()
    )
    return SourceConfig(**kwargs)


def load_source_configs(path: Optional[Union[str, Path]] = None) -> Dict[str, SourceConfig]:
    """
    Load source bundles from YAML.

    Resolution order: explicit `path`, then $RINKLINK_SOURCES_FILE, then
    the sources.config.yaml shipped inside the package. Falls back to the built-in
    defaults when no file exists.
    """
    if path is None:
        env_path = os.getenv(SOURCES_FILE_ENV)
        path = Path(env_path) if env_path else DEFAULT_SOURCES_PATH
    path = Path(path)

    if not path.exists():
        logger.debug(f"No source bundle at {path}; using built-in sources")
        return dict(DEFAULT_SOURCES)

    with open(path, "r", encoding="utf-8") as f:
        try:
            raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Could not parse {path}: {e}") from e

    sources = raw.get("sources") if isinstance(raw, Mapping) else None
    if not isinstance(sources, Mapping) or not sources:
        raise ConfigError(f"{path} has no 'sources' mapping")

    configs = {str(name): source_config_from_dict(str(name), data or {}) for name, data in sources.items()}
    logger.debug(f"Loaded {len(configs)} source bundle(s) from {path}: {', '.join(configs)}")
    return configs
