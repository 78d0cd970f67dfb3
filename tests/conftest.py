from __future__ import annotations

import pytest

from rinklink.extract.structural import parse_document


STATS_HEADER = "".join(
    f"<th>{label}</th>"
    for label in ["S", "Team", "Lg", "GP", "G", "A", "TP", "|", "S", "Team", "Lg", "GP", "G", "A", "TP"]
)


def _row(*cells: str) -> str:
    return "<tr>" + "".join(f"<td>{c}</td>" for c in cells) + "</tr>"


STATS_ROWS = "".join(
    [
        _row("2014-15", "Erie Otters", "OHL", "47", "44", "76", "120", "|",
             "2014-15", "Erie Otters", "OHL", "20", "21", "28", "49"),
        _row("2015-16", "Edmonton Oilers", "NHL", "45", "16", "32", "48", "|",
             "", "", "", "", "", "", ""),
        _row("2016-17", "Edmonton Oilers", "NHL", "82", "30", "70", "100", "|",
             "2016-17", "Edmonton Oilers", "NHL", "13", "5", "4", "9"),
    ]
)

ROSTER_PAGE = f"""
<html>
<head><link rel="canonical" href="https://www.example.com/player/183442/connor-mcdavid"></head>
<body>
<h1 class="player-name">Connor McDavid</h1>
<div class="player-facts">
  <ul>
    <li><span>Date of Birth</span><span>Jan 13, 1997</span></li>
    <li><span>Position</span><span>C</span></li>
    <li><span>Height</span><span>185 cm / 6'1"</span></li>
    <li><span>Weight</span><span>88 kg / 193 lbs</span></li>
    <li><span>Drafted</span><span>2015 round 1 #1 overall by Edmonton Oilers</span></li>
  </ul>
  <p>Report an error</p>
  <h3>Highlights</h3>
  <ul><li>Hart Trophy</li><li>Art Ross Trophy</li><li>Ted Lindsay Award</li></ul>
</div>
<div class="player-stats">
  <table>
    <thead><tr>{STATS_HEADER}</tr></thead>
    <tbody>{STATS_ROWS}</tbody>
  </table>
</div>
</body>
</html>
"""

PERFORMANCE_PAGE = f"""
<html>
<head><link rel="canonical" href="https://www.example-ref.com/players/m/mcdavco01.html"></head>
<body>
<div id="meta">
  <h1>Connor McDavid</h1>
  <p>Born: <span id="necro-birth" data-birth="1997-01-13">January 13, 1997</span></p>
</div>
<div id="all_stats_basic" class="table_wrapper">
<!--
  <table id="stats_basic" class="stats_table">
    <thead><tr>{STATS_HEADER}</tr></thead>
    <tbody>{STATS_ROWS}</tbody>
  </table>
-->
</div>
</body>
</html>
"""


@pytest.fixture
def roster_doc():
    return parse_document(ROSTER_PAGE)


@pytest.fixture
def performance_doc():
    return parse_document(PERFORMANCE_PAGE)


@pytest.fixture
def season_grid():
    header = ("S", "Team", "Lg", "GP", "G", "A", "TP", "|", "S", "Team", "Lg", "GP", "G", "A", "TP")
    return (
        header,
        ("2017-18", "Anaheim Ducks", "NHL", "40", "10", "12", "22", "|", "", "", "", "", "", "", ""),
        ("", "Boston Bruins", "NHL", "30", "8", "9", "17", "|", "2017-18", "Boston Bruins", "NHL", "12", "3", "4", "7"),
        ("2018-19", "Boston Bruins", "NHL", "81", "-", "30", "30", "|", "", "", "", "", "", "", ""),
    )
