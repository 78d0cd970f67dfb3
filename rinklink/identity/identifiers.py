"""
Identifier Assigner

Athlete identifiers are derived from a stable token in the athlete's canonical
page address (e.g. the numeric path segment of /player/183442/connor-mcdavid),
never from processing order. The same page always yields the same identifier,
so re-extracting an athlete in a later run produces keys that join with the
earlier run's output.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Optional, Tuple, Union

from bs4 import BeautifulSoup

from rinklink.errors import IdentifierNotDerivable
from rinklink.validation.schemas import AthleteIdentifier, AthleteProfile, SeasonRecord

CANONICAL_LOCATOR_SELECTORS: Tuple[Tuple[str, str], ...] = (
    ("link[rel=canonical]", "href"),
    ("meta[property='og:url']", "content"),
)


def canonical_locator(doc: BeautifulSoup) -> Optional[str]:
    """The address a page declares for itself, if it declares one."""
    for selector, attribute in CANONICAL_LOCATOR_SELECTORS:
        node = doc.select_one(selector)
        if node is not None and node.get(attribute):
            return str(node.get(attribute)).strip()
    return None


def derive_identifier(
    locator: Optional[str],
    pattern: Union[str, "re.Pattern[str]"],
    *,
    numeric: bool = False,
) -> AthleteIdentifier:
    """
    Pull the athlete token out of `locator` using `pattern`'s named group "id".

    Raises IdentifierNotDerivable when the locator is missing or does not
    have the expected shape.
    """
    regex = re.compile(pattern) if isinstance(pattern, str) else pattern
    if "id" not in regex.groupindex:
        raise ValueError(f"Identifier pattern {regex.pattern!r} has no named group 'id'")
    if not locator:
        raise IdentifierNotDerivable("No locator to derive an identifier from")

    match = regex.search(locator)
    if not match or not match.group("id"):
        raise IdentifierNotDerivable(
            f"Locator does not match identifier pattern {regex.pattern!r}",
            locator=locator,
        )

    token = match.group("id")
    if numeric:
        try:
            return int(token)
        except ValueError:
            raise IdentifierNotDerivable(
                f"Identifier token {token!r} is not numeric",
                locator=locator,
            ) from None
    return token


def attach_identifier(
    profile: AthleteProfile,
    records: Iterable[SeasonRecord],
    athlete_id: AthleteIdentifier,
) -> Tuple[AthleteProfile, List[SeasonRecord]]:
    """Stamp the identifier onto the profile and every season row."""
    return (
        profile.with_identifier(athlete_id),
        [record.with_identifier(athlete_id) for record in records],
    )
