from dataclasses import replace

import pytest

from rinklink.config import PERFORMANCE_SOURCE, ROSTER_SOURCE
from rinklink.errors import IdentifierNotDerivable, MalformedFieldBlock, NotFound
from rinklink.extract.structural import parse_document
from rinklink.identity.linker import CrossSourceLinker
from rinklink.pipeline import (
    candidate_from_record,
    extract_athlete,
    link_athlete,
    normalize_profile,
    profile_with_history,
)
from rinklink.validation.schemas import RawFragment
from tests.conftest import PERFORMANCE_PAGE, ROSTER_PAGE


class TestRosterExtraction:
    def test_profile_fields(self, roster_doc):
        record = extract_athlete(roster_doc, ROSTER_SOURCE)
        profile = record.profile

        assert record.athlete_id == 183442
        assert profile.name == "Connor McDavid"
        assert profile.locator == "https://www.example.com/player/183442/connor-mcdavid"
        assert profile.birth_date == "1997-01-13"
        assert profile["Height"] == 185.0
        assert profile["Weight"] == 88.0
        assert profile["draft_year"] == 2015
        assert profile["draft_team"] == "Edmonton Oilers"
        assert profile.keys()[:2] == ["birth_date", "Position"]

    def test_noise_after_sentinel_is_dropped(self, roster_doc):
        profile = extract_athlete(roster_doc, ROSTER_SOURCE).profile
        values = [str(v) for _, v in profile.fields]
        assert "Hart Trophy" not in values
        assert "Highlights" not in profile
        assert "Report an error" not in profile

    def test_season_history(self, roster_doc):
        record = extract_athlete(roster_doc, ROSTER_SOURCE)

        assert [s.season for s in record.regular_season] == ["2014-15", "2015-16", "2016-17"]
        assert [s.season for s in record.postseason] == ["2014-15", "2016-17"]
        assert record.regular_season[0].team == "Erie Otters"
        assert record.regular_season[2].stat("TP") == 100.0
        assert record.postseason[1].stat("GP") == 13.0
        assert all(s.athlete_id == 183442 for s in record.seasons)

    def test_explicit_locator_overrides_canonical(self, roster_doc):
        record = extract_athlete(roster_doc, ROSTER_SOURCE, locator="https://www.example.com/player/97/x")
        assert record.athlete_id == 97

    def test_missing_profile_block_aborts_with_context(self):
        doc = parse_document(ROSTER_PAGE.replace('class="player-facts"', 'class="bio"'))
        with pytest.raises(NotFound) as excinfo:
            extract_athlete(doc, ROSTER_SOURCE)
        assert excinfo.value.source == "roster"
        assert excinfo.value.athlete == 183442

    def test_missing_canonical_address(self):
        doc = parse_document(ROSTER_PAGE.replace('rel="canonical"', 'rel="alternate"'))
        with pytest.raises(IdentifierNotDerivable) as excinfo:
            extract_athlete(doc, ROSTER_SOURCE)
        assert excinfo.value.source == "roster"


class TestPerformanceExtraction:
    def test_commented_table_and_birth_attribute(self, performance_doc):
        record = extract_athlete(performance_doc, PERFORMANCE_SOURCE)

        assert record.athlete_id == "mcdavco01"
        assert record.profile.name == "Connor McDavid"
        assert record.profile.birth_date == "1997-01-13"
        assert len(record.regular_season) == 3
        assert len(record.postseason) == 2

    def test_candidate_from_record(self, performance_doc):
        candidate = candidate_from_record(extract_athlete(performance_doc, PERFORMANCE_SOURCE))
        assert candidate.key == "mcdavco01"
        assert candidate.birth_year == 1997
        assert (candidate.first_season, candidate.last_season) == (2014, 2016)


def test_normalize_profile_rejects_odd_block():
    fragment = RawFragment(source="roster", locator="div.player-facts", text="Position\nC\nShoots")
    with pytest.raises(MalformedFieldBlock):
        normalize_profile(fragment, ROSTER_SOURCE)


def test_normalize_profile_rejects_derived_label_collision():
    config = replace(ROSTER_SOURCE, date_fields=(("Date of Birth", "Position"),))
    fragment = RawFragment(
        source="roster", locator="div.player-facts", text="Date of Birth\nJan 13, 1997\nPosition\nC"
    )
    with pytest.raises(MalformedFieldBlock):
        normalize_profile(fragment, config)


def test_roster_links_to_performance_record(roster_doc, performance_doc):
    roster = extract_athlete(roster_doc, ROSTER_SOURCE)
    performance = extract_athlete(performance_doc, PERFORMANCE_SOURCE)

    link = link_athlete(roster, [candidate_from_record(performance)], CrossSourceLinker())

    assert link.roster_id == 183442
    assert link.performance_key == "mcdavco01"
    assert link.method == "exact"


def test_profile_with_history_joins_on_identifier(roster_doc):
    record = extract_athlete(roster_doc, ROSTER_SOURCE)
    joined = profile_with_history([record])

    assert len(joined) == len(record.seasons) == 5
    assert set(joined["athlete_id"]) == {183442}
    assert set(joined["section"]) == {"regular", "postseason"}


def test_pages_reparse_identically():
    first = extract_athlete(parse_document(PERFORMANCE_PAGE), PERFORMANCE_SOURCE)
    second = extract_athlete(parse_document(PERFORMANCE_PAGE), PERFORMANCE_SOURCE)
    assert first == second
