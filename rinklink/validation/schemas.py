#!/usr/bin/env python3
"""
Record Schemas

Dataclass schemas for everything the extraction pipeline hands to its
persistence/reporting collaborators:
- RawFragment: located, not yet normalized document content
- AthleteProfile: biographical facts from one source
- SeasonRecord: one row of a reconciled season table
- CrossSourceLink: outcome of matching a roster athlete to a performance record

Profiles and season records expose validate() for plausibility checks, in the
same ValidationResult shape used across the pipeline. Validation never replaces
the hard extraction errors in rinklink.errors; it only flags values that parse
but look wrong (a 300 cm height, a season label with no year in it).

Usage:
    from rinklink.validation.schemas import AthleteProfile, seasons_frame

    result = profile.validate()
    if not result.valid:
        print(f"Validation errors: {result.errors}")

    frame = seasons_frame(record.regular_season + record.postseason)
"""

from __future__ import annotations

import math
import re
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, Iterable, List, Literal, Mapping, Optional, Tuple, Union

import pandas as pd

AthleteIdentifier = Union[int, str]
SectionType = Literal["regular", "postseason"]
MatchMethodType = Literal["manual", "exact", "disambiguated", "fuzzy"]

_SEASON_RE = re.compile(r"^(?P<start>\d{4})(?:\s*[-/–]\s*(?P<end>\d{2,4}))?$")

# Plausibility bounds for metric measurements
HEIGHT_CM_RANGE = (140.0, 230.0)
WEIGHT_KG_RANGE = (45.0, 160.0)


@dataclass
class ValidationError:
    """A single validation error."""
    field: str
    message: str
    value: Any = None


@dataclass
class ValidationResult:
    """Result of validating a record."""
    valid: bool
    errors: List[ValidationError] = field(default_factory=list)
    warnings: List[ValidationError] = field(default_factory=list)
    record_type: Optional[str] = None
    record_id: Optional[str] = None

    def add_error(self, field: str, message: str, value: Any = None) -> None:
        """Add a validation error."""
        self.errors.append(ValidationError(field, message, value))
        self.valid = False

    def add_warning(self, field: str, message: str, value: Any = None) -> None:
        """Add a validation warning (doesn't fail validation)."""
        self.warnings.append(ValidationError(field, message, value))


@dataclass(frozen=True)
class RawFragment:
    """Content located within a document, before normalization."""
    source: str
    locator: str
    text: Optional[str] = None
    grid: Optional[Tuple[Tuple[str, ...], ...]] = None


# =============================================================================
# ATHLETE PROFILE
# =============================================================================

@dataclass(frozen=True)
class AthleteProfile:
    """
    Biographical facts about one athlete from one source.

    `fields` preserves the order the source published them in. Profiles are
    never mutated; coercion and identifier attachment return new instances.
    """
    source: str
    fields: Tuple[Tuple[str, Any], ...]
    name: Optional[str] = None
    locator: Optional[str] = None
    athlete_id: Optional[AthleteIdentifier] = None

    @classmethod
    def from_pairs(
        cls,
        source: str,
        pairs: Iterable[Tuple[str, Any]],
        name: Optional[str] = None,
        locator: Optional[str] = None,
    ) -> "AthleteProfile":
        return cls(source=source, fields=tuple(pairs), name=name, locator=locator)

    def __contains__(self, key: str) -> bool:
        return any(label == key for label, _ in self.fields)

    def __getitem__(self, key: str) -> Any:
        for label, value in self.fields:
            if label == key:
                return value
        raise KeyError(key)

    def get(self, key: str, default: Any = None) -> Any:
        try:
            return self[key]
        except KeyError:
            return default

    def keys(self) -> List[str]:
        return [label for label, _ in self.fields]

    def as_dict(self) -> Dict[str, Any]:
        return dict(self.fields)

    @property
    def birth_date(self) -> Optional[str]:
        value = self.get("birth_date")
        return str(value) if value else None

    def with_fields(self, fields: Iterable[Tuple[str, Any]]) -> "AthleteProfile":
        return replace(self, fields=tuple(fields))

    def with_identifier(self, athlete_id: AthleteIdentifier) -> "AthleteProfile":
        return replace(self, athlete_id=athlete_id)

    def to_dict(self) -> Dict[str, Any]:
        """Flatten for handoff: identity columns first, then source fields."""
        out: Dict[str, Any] = {
            "athlete_id": self.athlete_id,
            "source": self.source,
            "name": self.name,
            "locator": self.locator,
        }
        out.update(self.fields)
        return out

    def validate(self) -> ValidationResult:
        """Validate this profile."""
        result = ValidationResult(
            valid=True,
            record_type="athlete_profile",
            record_id=None if self.athlete_id is None else str(self.athlete_id),
        )

        labels = self.keys()
        duplicates = sorted({label for label in labels if labels.count(label) > 1})
        for label in duplicates:
            result.add_error(label, "field appears more than once")

        if self.athlete_id is None:
            result.add_warning("athlete_id", "profile has no identifier attached")

        if not self.name:
            result.add_warning("name", "profile has no display name")

        for label, bounds in (("Height", HEIGHT_CM_RANGE), ("Weight", WEIGHT_KG_RANGE)):
            value = self.get(label)
            if isinstance(value, (int, float)) and not (bounds[0] <= value <= bounds[1]):
                result.add_warning(label, f"{label} outside {bounds[0]:g}-{bounds[1]:g}", value)

        return result


# =============================================================================
# SEASON RECORDS
# =============================================================================

@dataclass(frozen=True)
class SeasonRecord:
    """One row of a reconciled season table."""
    season: str
    section: SectionType
    team: Optional[str] = None
    league: Optional[str] = None
    stats: Tuple[Tuple[str, Optional[float]], ...] = ()
    athlete_id: Optional[AthleteIdentifier] = None

    @property
    def start_year(self) -> Optional[int]:
        match = _SEASON_RE.match(self.season.strip())
        return int(match.group("start")) if match else None

    def stat(self, label: str) -> Optional[float]:
        for name, value in self.stats:
            if name == label:
                return value
        return None

    def with_identifier(self, athlete_id: AthleteIdentifier) -> "SeasonRecord":
        return replace(self, athlete_id=athlete_id)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "athlete_id": self.athlete_id,
            "section": self.section,
            "season": self.season,
            "team": self.team,
            "league": self.league,
        }
        out.update(self.stats)
        return out

    def validate(self) -> ValidationResult:
        """Validate this season row."""
        result = ValidationResult(valid=True, record_type="season_record", record_id=self.season)

        if not self.season or not self.season.strip():
            result.add_error("season", "season label is blank")
        elif self.start_year is None:
            result.add_warning("season", "season label has no recognizable year", self.season)

        for label, value in self.stats:
            if value is not None and value < 0 and label not in {"+/-", "PM"}:
                result.add_warning(label, "negative counting stat", value)

        return result


def frame_to_season_records(
    frame: pd.DataFrame,
    *,
    section: SectionType,
    group_column: str,
    team_column: Optional[str] = "Team",
    league_column: Optional[str] = "Lg",
) -> List[SeasonRecord]:
    """Turn a reconciled logical table into SeasonRecords."""
    records: List[SeasonRecord] = []
    stat_columns = [c for c in frame.columns if c not in {group_column, team_column, league_column}]
    for row in frame.to_dict(orient="records"):
        stats = tuple((label, _none_if_nan(row.get(label))) for label in stat_columns)
        records.append(
            SeasonRecord(
                season=str(row[group_column]),
                section=section,
                team=_text_or_none(row.get(team_column)) if team_column else None,
                league=_text_or_none(row.get(league_column)) if league_column else None,
                stats=stats,
            )
        )
    return records


def profiles_frame(profiles: Iterable[AthleteProfile]) -> pd.DataFrame:
    """One row per profile, keyed by athlete_id."""
    return pd.DataFrame([p.to_dict() for p in profiles])


def seasons_frame(records: Iterable[SeasonRecord]) -> pd.DataFrame:
    """One row per season record, keyed by athlete_id."""
    return pd.DataFrame([r.to_dict() for r in records])


# =============================================================================
# CROSS-SOURCE LINK
# =============================================================================

@dataclass(frozen=True)
class CrossSourceLink:
    """
    Outcome of matching one roster athlete against performance candidates.

    `performance_key` is None exactly when `reason` is set.
    """
    roster_id: Optional[AthleteIdentifier]
    performance_key: Optional[AthleteIdentifier] = None
    method: Optional[MatchMethodType] = None
    confidence: float = 0.0
    reason: Optional[str] = None
    candidates: Tuple[AthleteIdentifier, ...] = ()
    details: Mapping[str, Any] = field(default_factory=dict)

    @property
    def resolved(self) -> bool:
        return self.performance_key is not None

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out["candidates"] = list(self.candidates)
        out["details"] = dict(self.details)
        return out


def _none_if_nan(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(number) else number


def _text_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    text = str(value).strip()
    return text or None
