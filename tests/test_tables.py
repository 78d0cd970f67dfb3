import math

import pandas as pd
import pytest

from rinklink.errors import DuplicateColumnAfterSplit, TableShapeMismatch, UngroupableLeadingRow
from rinklink.extract.tables import (
    LAYOUTS,
    SEASON_SPLIT_V1,
    ColumnSection,
    TableLayout,
    coerce_numeric,
    forward_fill,
    parse_number,
    reconcile,
    split_grid,
)

HEADER = ("S", "Team", "Lg", "GP", "G", "A", "TP")


class TestLayout:
    def test_sections_partition_the_claimed_columns(self):
        assigned = SEASON_SPLIT_V1.assigned_columns()
        regular, postseason = set(assigned["regular"]), set(assigned["postseason"])
        assert not regular & postseason
        assert sorted(regular | postseason) == [i for i in range(15) if i != 7]
        assert SEASON_SPLIT_V1.separator_columns(15) == [7]

    def test_layouts_are_registered_by_label(self):
        assert LAYOUTS["season_split/v1"] is SEASON_SPLIT_V1

    def test_overlapping_sections_rejected(self):
        with pytest.raises(ValueError):
            TableLayout("bad", 1, (ColumnSection("a", 0, 5), ColumnSection("b", 4, 8)))

    def test_empty_section_rejected(self):
        with pytest.raises(ValueError):
            TableLayout("bad", 1, (ColumnSection("a", 3, 3),))


class TestSplit:
    def test_two_sections_with_identical_headers(self, season_grid):
        sections = split_grid(season_grid, SEASON_SPLIT_V1)
        assert set(sections) == {"regular", "postseason"}
        assert tuple(sections["regular"].columns) == HEADER
        assert tuple(sections["postseason"].columns) == HEADER
        assert len(sections["regular"]) == 3

    def test_duplicate_column_in_one_section(self, season_grid):
        layout = TableLayout("bad", 1, (ColumnSection("all", 0, 10),))
        with pytest.raises(DuplicateColumnAfterSplit):
            split_grid(season_grid, layout)

    def test_narrow_header(self):
        with pytest.raises(TableShapeMismatch):
            split_grid([HEADER], SEASON_SPLIT_V1)

    def test_empty_grid(self):
        with pytest.raises(TableShapeMismatch):
            split_grid([], SEASON_SPLIT_V1)

    def test_short_body_rows_are_padded(self):
        grid = [HEADER, ("2019-20", "Edmonton Oilers")]
        frame = split_grid(grid, TableLayout("single", 1, (ColumnSection("regular", 0, 7),)))["regular"]
        assert frame.iloc[0].tolist() == ["2019-20", "Edmonton Oilers", "", "", "", "", ""]


class TestForwardFill:
    def _frame(self, rows):
        return pd.DataFrame(rows, columns=HEADER, dtype=object)

    def test_blank_group_cell_takes_value_from_above(self):
        frame = self._frame([
            ("2017-18", "Anaheim Ducks", "NHL", "40", "10", "12", "22"),
            ("", "Boston Bruins", "NHL", "30", "8", "9", "17"),
            ("2018-19", "Boston Bruins", "NHL", "81", "20", "30", "50"),
        ])
        filled = forward_fill(frame, "S")
        assert filled["S"].tolist() == ["2017-18", "2017-18", "2018-19"]
        assert filled["Team"].tolist() == ["Anaheim Ducks", "Boston Bruins", "Boston Bruins"]

    def test_idempotent(self):
        frame = self._frame([
            ("2017-18", "Anaheim Ducks", "NHL", "40", "10", "12", "22"),
            ("", "Boston Bruins", "NHL", "30", "8", "9", "17"),
        ])
        once = forward_fill(frame, "S")
        pd.testing.assert_frame_equal(forward_fill(once, "S"), once)

    def test_all_blank_rows_dropped(self):
        frame = self._frame([
            ("2017-18", "Anaheim Ducks", "NHL", "40", "10", "12", "22"),
            ("", "", "", "", "", "", ""),
        ])
        assert len(forward_fill(frame, "S")) == 1

    def test_leading_blank_group_cell(self):
        frame = self._frame([("", "Boston Bruins", "NHL", "30", "8", "9", "17")])
        with pytest.raises(UngroupableLeadingRow):
            forward_fill(frame, "S")

    def test_missing_group_column(self):
        with pytest.raises(TableShapeMismatch):
            forward_fill(self._frame([]), "Season")


class TestNumeric:
    @pytest.mark.parametrize("value,expected", [("12", 12.0), ("1,024", 1024.0), ("-3", -3.0), (".5", 0.5)])
    def test_parse_number(self, value, expected):
        assert parse_number(value) == expected

    @pytest.mark.parametrize("value", ["", "-", "—", None, "n/a"])
    def test_missing_numbers(self, value):
        assert parse_number(value) is None

    def test_text_columns_untouched(self):
        frame = pd.DataFrame([("2019-20", "Oilers", "NHL", "64", "-", "63", "97")], columns=HEADER, dtype=object)
        coerced = coerce_numeric(frame)
        assert coerced.loc[0, "Team"] == "Oilers"
        assert coerced.loc[0, "GP"] == 64.0
        assert math.isnan(coerced.loc[0, "G"])


def test_reconcile_season_grid(season_grid):
    sections = reconcile(season_grid, SEASON_SPLIT_V1)
    regular, postseason = sections["regular"], sections["postseason"]

    assert regular["S"].tolist() == ["2017-18", "2017-18", "2018-19"]
    assert regular["GP"].tolist() == [40.0, 30.0, 81.0]
    assert math.isnan(regular.loc[2, "G"])

    assert len(postseason) == 1
    assert postseason.loc[0, "Team"] == "Boston Bruins"
    assert postseason.loc[0, "TP"] == 7.0
