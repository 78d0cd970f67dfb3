"""
Per-athlete extraction pipeline.

    parsed page -> identifier (from the page address)
                -> profile fragment -> tokens -> fields -> AthleteProfile
                -> stats fragment   -> grid -> logical tables -> SeasonRecords
                -> identifier attached to the profile and every season row

Any extraction error aborts the athlete; the error is re-raised with the source
name, locator and athlete token filled in so the caller can skip or retry.
Nothing here fetches pages or keeps state between calls, so callers may run
athletes in parallel.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd
from bs4 import BeautifulSoup

from rinklink.config import SourceConfig
from rinklink.errors import ExtractionError, MalformedFieldBlock, NotFound
from rinklink.extract.fields import apply_transforms, pair_fields, parse_date, tokenize_block
from rinklink.extract.structural import extract_grid, extract_text, extract_value
from rinklink.extract.tables import reconcile
from rinklink.identity.identifiers import attach_identifier, canonical_locator, derive_identifier
from rinklink.identity.linker import CrossSourceLinker, PerformanceCandidate
from rinklink.validation.schemas import (
    AthleteIdentifier,
    AthleteProfile,
    CrossSourceLink,
    RawFragment,
    SeasonRecord,
    frame_to_season_records,
    profiles_frame,
    seasons_frame,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AthleteRecord:
    """Everything extracted for one athlete from one source."""
    profile: AthleteProfile
    regular_season: List[SeasonRecord] = field(default_factory=list)
    postseason: List[SeasonRecord] = field(default_factory=list)

    @property
    def athlete_id(self) -> Optional[AthleteIdentifier]:
        return self.profile.athlete_id

    @property
    def seasons(self) -> List[SeasonRecord]:
        return self.regular_season + self.postseason


def normalize_profile(
    fragment: RawFragment,
    config: SourceConfig,
    *,
    name: Optional[str] = None,
    locator: Optional[str] = None,
) -> AthleteProfile:
    """Tokenize, pair and transform a profile text fragment."""
    tokens = tokenize_block(
        fragment.text or "",
        denylist=config.denylist_tokens,
        sentinel=config.sentinel_token,
    )
    pairs = pair_fields(tokens)
    fields = apply_transforms(
        pairs,
        measurement_fields=config.measurement_fields,
        metric_units=config.metric_units,
        compound_rules=dict(config.compound_rules),
        date_fields=dict(config.date_fields),
    )
    labels = [label for label, _ in fields]
    duplicates = sorted({label for label in labels if labels.count(label) > 1})
    if duplicates:
        raise MalformedFieldBlock(f"Derived field(s) {duplicates} collide with other profile fields")
    return AthleteProfile.from_pairs(config.name, fields, name=name, locator=locator)


def _attribute_fields(doc: BeautifulSoup, config: SourceConfig) -> List[Tuple[str, Optional[str]]]:
    out: List[Tuple[str, Optional[str]]] = []
    for label, marker in config.attribute_markers:
        try:
            value: Optional[str] = extract_value(doc, marker.selectors, attribute=marker.attribute)
        except NotFound:
            if marker.required:
                raise
            value = None
        if value is not None and marker.parse_as_date:
            value = parse_date(value)
        out.append((label, value))
    return out


def _season_history(doc: BeautifulSoup, config: SourceConfig) -> Dict[str, List[SeasonRecord]]:
    fragment = extract_grid(doc, config.performance_markers, source=config.name)
    sections = reconcile(fragment.grid or (), config.column_ranges, text_columns=config.text_columns)
    return {
        name: frame_to_season_records(
            frame,
            section=name,
            group_column=config.group_column,
            team_column=config.team_column,
            league_column=config.league_column,
        )
        for name, frame in sections.items()
    }


def extract_athlete(
    doc: BeautifulSoup,
    config: SourceConfig,
    *,
    locator: Optional[str] = None,
) -> AthleteRecord:
    """
    Extract one athlete's profile and season history from a parsed page.

    Args:
        doc: Parsed page (see rinklink.extract.structural.parse_document)
        config: Source bundle describing the page shape
        locator: Page address; defaults to the page's declared canonical URL

    Raises:
        ExtractionError: Any structural, field, table or identifier failure
    """
    locator = locator or canonical_locator(doc)
    athlete_id: Optional[AthleteIdentifier] = None
    try:
        athlete_id = derive_identifier(locator, config.identifier_pattern, numeric=config.numeric_identifier)
        name = extract_value(doc, config.name_markers)

        if config.roster_markers:
            fragment = extract_text(doc, config.roster_markers, source=config.name)
            profile = normalize_profile(fragment, config, name=name, locator=locator)
        else:
            profile = AthleteProfile.from_pairs(config.name, (), name=name, locator=locator)

        extra = _attribute_fields(doc, config)
        clashes = [label for label, _ in extra if label in profile]
        if clashes:
            raise MalformedFieldBlock(f"Attribute marker(s) {clashes} duplicate profile fields")
        profile = profile.with_fields(profile.fields + tuple(extra))

        history = _season_history(doc, config) if config.performance_markers else {}
    except ExtractionError as e:
        raise e.with_context(source=config.name, locator=locator, athlete=athlete_id)

    unassigned = sorted(set(history) - {"regular", "postseason"})
    if unassigned:
        logger.debug(f"Layout {config.column_ranges.label} has extra section(s) {unassigned}; not kept")

    profile, regular = attach_identifier(profile, history.get("regular", []), athlete_id)
    _, postseason = attach_identifier(profile, history.get("postseason", []), athlete_id)
    record = AthleteRecord(profile=profile, regular_season=regular, postseason=postseason)

    _log_validation(record)
    logger.debug(
        f"Extracted {config.name} athlete {athlete_id} ({name!r}): {len(profile.fields)} field(s), "
        f"{len(regular)} regular / {len(postseason)} postseason row(s)"
    )
    return record


def _log_validation(record: AthleteRecord) -> None:
    results = [record.profile.validate()] + [s.validate() for s in record.seasons]
    for result in results:
        for issue in result.errors + result.warnings:
            logger.warning(
                f"{result.record_type} {result.record_id} for athlete {record.athlete_id}: "
                f"{issue.field}: {issue.message}"
            )


# -----------------------------------------------------------------------------
# Handoff helpers
# -----------------------------------------------------------------------------

def candidate_from_record(record: AthleteRecord) -> PerformanceCandidate:
    """Performance-source record -> linker candidate (career span from regular season)."""
    return PerformanceCandidate.from_profile(record.profile, record.regular_season)


def link_athlete(
    roster: AthleteRecord,
    candidates: Iterable[PerformanceCandidate],
    linker: CrossSourceLinker,
) -> CrossSourceLink:
    """Link a roster athlete, passing its own seasons for career disambiguation."""
    return linker.link(roster.profile, candidates, roster.regular_season)


def profile_with_history(records: Iterable[AthleteRecord]) -> pd.DataFrame:
    """Equi-join of profiles with their season rows on athlete_id."""
    records = list(records)
    profiles = profiles_frame(r.profile for r in records)
    seasons = seasons_frame(s for r in records for s in r.seasons)
    if profiles.empty or seasons.empty:
        return profiles
    return profiles.merge(seasons, on="athlete_id", how="inner", suffixes=("", "_season"))
