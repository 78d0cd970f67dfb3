#!/usr/bin/env python3
"""
Cross-Source Linker

Links a roster-source athlete to at most one performance-source record. The two
sources share no identifier, so matching runs on names plus one auxiliary
attribute.

Algorithm (first success wins):
0. Manual override (confidence=1.0) - roster id pinned to a performance key
1. Exact normalized name (confidence=0.90) - exactly one candidate shares it
2. Disambiguated name (confidence=0.85) - several share it, the auxiliary
   attribute (birth year, birth date or career overlap) leaves exactly one
3. Fuzzy name (confidence=0.60-0.75, opt-in) - only when no candidate shares the
   normalized name; rapidfuzz token_sort_ratio with a required margin
4. Unresolved - reason NoCandidate or UnresolvedAmbiguity

Unresolved outcomes are results, not errors: the athlete may simply not exist
in the performance source yet.

Name normalization is lossy. "Jean-Luc" and "Jean Luc" normalize the same, and
so does a genuinely hyphenated surname and two separate words. That is accepted.

Usage:
    from rinklink.identity.linker import CrossSourceLinker, PerformanceCandidate

    linker = CrossSourceLinker(disambiguation_attribute="birth_year")
    link = linker.link(profile, candidates)
    print(link.performance_key, link.method, link.reason)
"""

from __future__ import annotations

import logging
import re
import unicodedata
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Literal, Mapping, Optional, Sequence, Tuple

from rapidfuzz import fuzz, process

from rinklink.validation.schemas import (
    AthleteIdentifier,
    AthleteProfile,
    CrossSourceLink,
    SeasonRecord,
)

logger = logging.getLogger(__name__)

DisambiguationAttribute = Literal["birth_year", "birth_date", "career"]

# Confidence levels
CONFIDENCE_MANUAL = 1.0
CONFIDENCE_EXACT = 0.90
CONFIDENCE_DISAMBIGUATED = 0.85
CONFIDENCE_FUZZY_HIGH = 0.75
CONFIDENCE_FUZZY_MEDIUM = 0.70
CONFIDENCE_FUZZY_LOW = 0.60

# Fuzzy matching thresholds
FUZZY_THRESHOLD_HIGH = 97
FUZZY_THRESHOLD_MEDIUM = 94
FUZZY_THRESHOLD_DEFAULT = 92
FUZZY_MARGIN_REQUIRED = 5  # Second-best must be at least this much worse

NAME_SUFFIXES = {"jr", "sr", "ii", "iii", "iv"}

# Letters NFKD leaves intact (no combining-mark decomposition), applied after casefold
LETTER_FOLDS = str.maketrans({
    "ø": "o",
    "ł": "l",
    "đ": "d",
    "ð": "d",
    "æ": "ae",
    "œ": "oe",
    "þ": "th",
    "ħ": "h",
    "ı": "i",
})


class LinkReason(str, Enum):
    """Why a roster athlete stayed unlinked."""
    NO_CANDIDATE = "NoCandidate"
    UNRESOLVED_AMBIGUITY = "UnresolvedAmbiguity"


def normalize_name(name: str) -> str:
    """
    Normalize a display name for matching purposes.

    Transformations:
    - Strip diacritics (NFKD, drop combining marks)
    - Case fold
    - Fold letters without a decomposition (ø, ł, æ, ...)
    - Replace hyphens with spaces
    - Remove other punctuation
    - Collapse whitespace
    - Remove a trailing generational suffix (Jr, Sr, II, III, IV)
    """
    if not name:
        return ""

    result = unicodedata.normalize("NFKD", str(name))
    result = "".join(ch for ch in result if not unicodedata.combining(ch))
    result = result.casefold().strip().translate(LETTER_FOLDS)

    result = re.sub(r"[-‐‑–—]", " ", result)
    result = re.sub(r"[^\w\s]", "", result)
    result = re.sub(r"\s+", " ", result).strip()

    parts = result.split()
    if len(parts) > 1 and parts[-1] in NAME_SUFFIXES:
        parts = parts[:-1]

    return " ".join(parts)


@dataclass(frozen=True)
class PerformanceCandidate:
    """A performance-source athlete the roster athlete may be linked to."""
    key: AthleteIdentifier
    name: str
    birth_date: Optional[str] = None
    first_season: Optional[int] = None
    last_season: Optional[int] = None

    @property
    def name_norm(self) -> str:
        return normalize_name(self.name)

    @property
    def birth_year(self) -> Optional[int]:
        return _year_of(self.birth_date)

    @classmethod
    def from_profile(
        cls,
        profile: AthleteProfile,
        seasons: Iterable[SeasonRecord] = (),
    ) -> "PerformanceCandidate":
        if profile.athlete_id is None:
            raise ValueError("Performance profile has no identifier attached")
        first, last = _career_span(seasons)
        return cls(
            key=profile.athlete_id,
            name=profile.name or "",
            birth_date=profile.birth_date,
            first_season=first,
            last_season=last,
        )


@dataclass
class _Query:
    roster_id: Optional[AthleteIdentifier]
    name: str
    name_norm: str
    birth_date: Optional[str]
    career: Tuple[Optional[int], Optional[int]]


@dataclass
class CandidateIndex:
    """Candidates grouped by normalized name; built once per batch."""
    by_name: Dict[str, List[PerformanceCandidate]] = field(default_factory=dict)
    by_key: Dict[str, PerformanceCandidate] = field(default_factory=dict)

    @classmethod
    def build(cls, candidates: Iterable[PerformanceCandidate]) -> "CandidateIndex":
        by_name: Dict[str, List[PerformanceCandidate]] = defaultdict(list)
        by_key: Dict[str, PerformanceCandidate] = {}
        for candidate in candidates:
            by_name[candidate.name_norm].append(candidate)
            by_key[str(candidate.key)] = candidate
        return cls(by_name=dict(by_name), by_key=by_key)


class CrossSourceLinker:
    """
    Layered roster → performance matcher.

    Holds configuration only; safe to share across threads.
    """

    def __init__(
        self,
        disambiguation_attribute: DisambiguationAttribute = "birth_year",
        overrides: Optional[Mapping[Any, AthleteIdentifier]] = None,
        enable_fuzzy: bool = False,
        fuzzy_threshold: int = FUZZY_THRESHOLD_DEFAULT,
    ):
        """
        Args:
            disambiguation_attribute: Attribute used to separate namesakes
            overrides: Pinned roster id -> performance key mappings
            enable_fuzzy: Whether to try fuzzy names when nothing matches exactly
            fuzzy_threshold: Minimum token_sort_ratio (0-100) for a fuzzy match
        """
        if disambiguation_attribute not in ("birth_year", "birth_date", "career"):
            raise ValueError(f"Unknown disambiguation attribute: {disambiguation_attribute!r}")
        self.disambiguation_attribute = disambiguation_attribute
        self.overrides = {str(k): v for k, v in (overrides or {}).items()}
        self.enable_fuzzy = enable_fuzzy
        self.fuzzy_threshold = fuzzy_threshold

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def link(
        self,
        profile: AthleteProfile,
        candidates: Iterable[PerformanceCandidate],
        seasons: Iterable[SeasonRecord] = (),
    ) -> CrossSourceLink:
        """
        Resolve `profile` against `candidates`.

        `seasons` is the roster athlete's own season history; it is only read
        when disambiguating by career overlap.
        """
        index = candidates if isinstance(candidates, CandidateIndex) else CandidateIndex.build(candidates)
        return self._link_indexed(profile, index, seasons)

    def batch_link(
        self,
        profiles: Iterable[AthleteProfile],
        candidates: Iterable[PerformanceCandidate],
        seasons_by_id: Optional[Mapping[AthleteIdentifier, Sequence[SeasonRecord]]] = None,
    ) -> Dict[Optional[AthleteIdentifier], CrossSourceLink]:
        """
        Resolve many roster profiles against one candidate set.

        Returns:
            Dict mapping roster athlete_id -> CrossSourceLink
        """
        index = CandidateIndex.build(candidates)
        seasons_by_id = seasons_by_id or {}
        results: Dict[Optional[AthleteIdentifier], CrossSourceLink] = {}
        for profile in profiles:
            results[profile.athlete_id] = self._link_indexed(
                profile, index, seasons_by_id.get(profile.athlete_id, ())
            )
        return results

    # -------------------------------------------------------------------------
    # Passes
    # -------------------------------------------------------------------------

    def _link_indexed(
        self,
        profile: AthleteProfile,
        index: CandidateIndex,
        seasons: Iterable[SeasonRecord],
    ) -> CrossSourceLink:
        query = _Query(
            roster_id=profile.athlete_id,
            name=profile.name or "",
            name_norm=normalize_name(profile.name or ""),
            birth_date=profile.birth_date,
            career=_career_span(seasons),
        )

        result = self._manual_override_match(query, index)
        if result is None:
            result = self._name_match(query, index)
        if result is None and self.enable_fuzzy:
            result = self._fuzzy_name_match(query, index)
        if result is None:
            result = self._unresolved(query, LinkReason.NO_CANDIDATE, (), {"reason": "no_name_match"})

        if result.resolved:
            logger.debug(
                f"Linked {query.roster_id} ({query.name!r}) -> {result.performance_key} "
                f"via {result.method} ({result.confidence:.2f})"
            )
        else:
            logger.info(
                f"Unlinked {query.roster_id} ({query.name!r}): {result.reason} "
                f"[{len(result.candidates)} candidate(s)]"
            )
        return result

    def _manual_override_match(self, query: _Query, index: CandidateIndex) -> Optional[CrossSourceLink]:
        if query.roster_id is None:
            return None
        pinned = self.overrides.get(str(query.roster_id))
        if pinned is None:
            return None
        if str(pinned) not in index.by_key:
            logger.warning(f"Override for {query.roster_id} points at {pinned}, which is not among the candidates")
            return None
        return CrossSourceLink(
            roster_id=query.roster_id,
            performance_key=index.by_key[str(pinned)].key,
            method="manual",
            confidence=CONFIDENCE_MANUAL,
            candidates=(index.by_key[str(pinned)].key,),
            details={"override": True},
        )

    def _name_match(self, query: _Query, index: CandidateIndex) -> Optional[CrossSourceLink]:
        if not query.name_norm:
            return None
        matches = index.by_name.get(query.name_norm, [])
        if not matches:
            return None
        if len(matches) == 1:
            return self._resolved(query, matches[0], "exact", CONFIDENCE_EXACT, matches, {"name_norm": query.name_norm})
        return self._disambiguate(query, matches, method="disambiguated", confidence=CONFIDENCE_DISAMBIGUATED)

    def _disambiguate(
        self,
        query: _Query,
        matches: Sequence[PerformanceCandidate],
        *,
        method: str,
        confidence: float,
        details: Optional[Dict[str, Any]] = None,
    ) -> CrossSourceLink:
        details = dict(details or {})
        details.update({"name_norm": query.name_norm, "attribute": self.disambiguation_attribute})

        if not self._query_has_attribute(query):
            details["reason"] = "query_lacks_attribute"
            return self._unresolved(query, LinkReason.UNRESOLVED_AMBIGUITY, matches, details)

        narrowed = [c for c in matches if self._attribute_agrees(query, c)]
        details["narrowed_from"] = len(matches)
        details["narrowed_to"] = len(narrowed)

        if len(narrowed) == 1:
            return self._resolved(query, narrowed[0], method, confidence, matches, details)
        if not narrowed:
            details["reason"] = "no_candidate_agrees"
            return self._unresolved(query, LinkReason.NO_CANDIDATE, matches, details)
        details["reason"] = "attribute_ties"
        return self._unresolved(query, LinkReason.UNRESOLVED_AMBIGUITY, narrowed, details)

    def _fuzzy_name_match(self, query: _Query, index: CandidateIndex) -> Optional[CrossSourceLink]:
        """
        Fuzzy name pass, only reached when no candidate shares the normalized name.

        The best-scoring name must beat the runner-up by FUZZY_MARGIN_REQUIRED.
        """
        if not query.name_norm or not index.by_name:
            return None

        names = list(index.by_name)
        scored = process.extract(
            query.name_norm,
            names,
            scorer=fuzz.token_sort_ratio,
            score_cutoff=self.fuzzy_threshold,
            limit=None,
        )
        if not scored:
            return None

        scored.sort(key=lambda hit: hit[1], reverse=True)
        best_name, best_score, _ = scored[0]
        details: Dict[str, Any] = {"fuzzy_score": best_score, "fuzzy_name": best_name}

        if len(scored) > 1 and (best_score - scored[1][1]) < FUZZY_MARGIN_REQUIRED:
            details.update({"reason": "ambiguous_fuzzy_match", "runner_up_score": scored[1][1]})
            tied = [c for name, score, _ in scored if best_score - score < FUZZY_MARGIN_REQUIRED for c in index.by_name[name]]
            return self._unresolved(query, LinkReason.UNRESOLVED_AMBIGUITY, tied, details)

        if best_score >= FUZZY_THRESHOLD_HIGH:
            confidence = CONFIDENCE_FUZZY_HIGH
        elif best_score >= FUZZY_THRESHOLD_MEDIUM:
            confidence = CONFIDENCE_FUZZY_MEDIUM
        else:
            confidence = CONFIDENCE_FUZZY_LOW

        matches = index.by_name[best_name]
        if len(matches) == 1:
            return self._resolved(query, matches[0], "fuzzy", confidence, matches, details)
        return self._disambiguate(query, matches, method="fuzzy", confidence=confidence, details=details)

    # -------------------------------------------------------------------------
    # Attribute checks
    # -------------------------------------------------------------------------

    def _query_has_attribute(self, query: _Query) -> bool:
        if self.disambiguation_attribute == "birth_year":
            return _year_of(query.birth_date) is not None
        if self.disambiguation_attribute == "birth_date":
            return bool(query.birth_date)
        return query.career[0] is not None

    def _attribute_agrees(self, query: _Query, candidate: PerformanceCandidate) -> bool:
        if self.disambiguation_attribute == "birth_year":
            return candidate.birth_year is not None and candidate.birth_year == _year_of(query.birth_date)
        if self.disambiguation_attribute == "birth_date":
            return bool(candidate.birth_date) and candidate.birth_date[:10] == (query.birth_date or "")[:10]
        if candidate.first_season is None:
            return False
        q_first, q_last = query.career
        c_last = candidate.last_season if candidate.last_season is not None else candidate.first_season
        return q_first <= c_last and candidate.first_season <= q_last

    # -------------------------------------------------------------------------
    # Result builders
    # -------------------------------------------------------------------------

    @staticmethod
    def _resolved(
        query: _Query,
        candidate: PerformanceCandidate,
        method: str,
        confidence: float,
        considered: Sequence[PerformanceCandidate],
        details: Dict[str, Any],
    ) -> CrossSourceLink:
        return CrossSourceLink(
            roster_id=query.roster_id,
            performance_key=candidate.key,
            method=method,
            confidence=confidence,
            candidates=tuple(c.key for c in considered),
            details=details,
        )

    @staticmethod
    def _unresolved(
        query: _Query,
        reason: LinkReason,
        considered: Sequence[PerformanceCandidate],
        details: Dict[str, Any],
    ) -> CrossSourceLink:
        return CrossSourceLink(
            roster_id=query.roster_id,
            reason=reason.value,
            candidates=tuple(c.key for c in considered),
            details=details,
        )


def _year_of(date_text: Optional[str]) -> Optional[int]:
    if not date_text:
        return None
    match = re.match(r"^(\d{4})", str(date_text).strip())
    return int(match.group(1)) if match else None


def _career_span(seasons: Iterable[SeasonRecord]) -> Tuple[Optional[int], Optional[int]]:
    years = [s.start_year for s in seasons if s.start_year is not None]
    if not years:
        return (None, None)
    return (min(years), max(years))
