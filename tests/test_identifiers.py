import pytest

from rinklink.config import PERFORMANCE_SOURCE, ROSTER_SOURCE
from rinklink.errors import IdentifierNotDerivable
from rinklink.extract.structural import parse_document
from rinklink.identity.identifiers import attach_identifier, canonical_locator, derive_identifier
from rinklink.validation.schemas import AthleteProfile, SeasonRecord

ROSTER_URL = "https://www.example.com/player/183442/connor-mcdavid"
PERFORMANCE_URL = "https://www.example-ref.com/players/m/mcdavco01.html"


def test_numeric_roster_identifier():
    assert derive_identifier(ROSTER_URL, ROSTER_SOURCE.identifier_pattern, numeric=True) == 183442


def test_derivation_is_repeatable():
    first = derive_identifier(ROSTER_URL, ROSTER_SOURCE.identifier_pattern, numeric=True)
    second = derive_identifier(ROSTER_URL, ROSTER_SOURCE.identifier_pattern, numeric=True)
    assert first == second


def test_slug_does_not_affect_identifier():
    renamed = "https://www.example.com/player/183442/mcdavid-connor"
    assert derive_identifier(renamed, ROSTER_SOURCE.identifier_pattern, numeric=True) == 183442


def test_performance_identifier():
    assert derive_identifier(PERFORMANCE_URL, PERFORMANCE_SOURCE.identifier_pattern) == "mcdavco01"


def test_distinct_athletes_get_distinct_identifiers():
    other = "https://www.example-ref.com/players/d/draisle01.html"
    pattern = PERFORMANCE_SOURCE.identifier_pattern
    assert derive_identifier(other, pattern) != derive_identifier(PERFORMANCE_URL, pattern)


def test_locator_of_wrong_shape():
    with pytest.raises(IdentifierNotDerivable) as excinfo:
        derive_identifier("https://www.example.com/team/22", ROSTER_SOURCE.identifier_pattern)
    assert excinfo.value.locator == "https://www.example.com/team/22"


def test_missing_locator():
    with pytest.raises(IdentifierNotDerivable):
        derive_identifier(None, ROSTER_SOURCE.identifier_pattern)


def test_pattern_without_id_group():
    with pytest.raises(ValueError):
        derive_identifier(ROSTER_URL, r"/player/(\d+)")


def test_canonical_locator_prefers_link_then_og_url():
    doc = parse_document(f'<head><meta property="og:url" content="{PERFORMANCE_URL}"></head>')
    assert canonical_locator(doc) == PERFORMANCE_URL
    assert canonical_locator(parse_document("<p>no head</p>")) is None


def test_attach_identifier_returns_new_objects():
    profile = AthleteProfile.from_pairs("roster", [("Position", "C")], name="Connor McDavid")
    records = [SeasonRecord(season="2015-16", section="regular"), SeasonRecord(season="2016-17", section="regular")]

    stamped, stamped_records = attach_identifier(profile, records, 183442)

    assert stamped.athlete_id == 183442
    assert all(r.athlete_id == 183442 for r in stamped_records)
    assert profile.athlete_id is None
    assert all(r.athlete_id is None for r in records)
