"""
Table Reconciler

Some sources publish regular-season and postseason statistics side by side in
one physical table, so the header row repeats:

    S  Team  Lg  GP  G  A  TP  |  S  Team  Lg  GP  G  A  TP
    \\_______ regular ________/      \\_______ postseason _____/

The split is by fixed column ranges declared in a named, versioned TableLayout.
The ranges come from the observed source layout, so they are brittle by nature;
when the source drifts the reconciler fails (DuplicateColumnAfterSplit,
TableShapeMismatch) instead of quietly truncating.

Within each logical table the season column is a merge-down column: the source
prints the season once and leaves it blank on following rows for the same
season (e.g. a mid-season trade), so blanks are forward-filled.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from rinklink.errors import DuplicateColumnAfterSplit, TableShapeMismatch, UngroupableLeadingRow

DEFAULT_TEXT_COLUMNS = ("S", "Team", "Lg")
MISSING_NUMBER_TOKENS = {"", "-", "—", "–"}


@dataclass(frozen=True)
class ColumnSection:
    """Half-open column index range [start, stop) forming one logical table."""
    name: str
    start: int
    stop: int

    @property
    def columns(self) -> range:
        return range(self.start, self.stop)


@dataclass(frozen=True)
class TableLayout:
    """Named, versioned column-range split for one source table shape."""
    name: str
    version: int
    sections: Tuple[ColumnSection, ...]
    group_column: str = "S"

    def __post_init__(self) -> None:
        if not self.sections:
            raise ValueError(f"Layout {self.label} declares no sections")
        names = [s.name for s in self.sections]
        if len(set(names)) != len(names):
            raise ValueError(f"Layout {self.label} repeats a section name: {names}")
        for section in self.sections:
            if section.start < 0 or section.stop <= section.start:
                raise ValueError(f"Layout {self.label}: empty or negative range in section {section.name!r}")
        ordered = sorted(self.sections, key=lambda s: s.start)
        for left, right in zip(ordered, ordered[1:]):
            if right.start < left.stop:
                raise ValueError(
                    f"Layout {self.label}: sections {left.name!r} and {right.name!r} overlap"
                )

    @property
    def label(self) -> str:
        return f"{self.name}/v{self.version}"

    @property
    def width(self) -> int:
        """Minimum physical table width this layout needs."""
        return max(s.stop for s in self.sections)

    def assigned_columns(self) -> Dict[str, List[int]]:
        return {s.name: list(s.columns) for s in self.sections}

    def separator_columns(self, width: int) -> List[int]:
        """Physical columns no section claims; dropped on split."""
        claimed = {i for s in self.sections for i in s.columns}
        return [i for i in range(width) if i not in claimed]


# Regular season in columns 0-6, a "|" separator at 7, postseason in 8-14.
SEASON_SPLIT_V1 = TableLayout(
    name="season_split",
    version=1,
    sections=(
        ColumnSection("regular", 0, 7),
        ColumnSection("postseason", 8, 15),
    ),
    group_column="S",
)

# A table that holds a single section only (no side-by-side postseason).
SINGLE_SECTION_V1 = TableLayout(
    name="single_section",
    version=1,
    sections=(ColumnSection("regular", 0, 7),),
    group_column="S",
)

LAYOUTS: Dict[str, TableLayout] = {layout.label: layout for layout in (SEASON_SPLIT_V1, SINGLE_SECTION_V1)}


# -----------------------------------------------------------------------------
# Split
# -----------------------------------------------------------------------------

def split_grid(grid: Sequence[Sequence[str]], layout: TableLayout) -> Dict[str, pd.DataFrame]:
    """
    Split a physical grid (header row first) into one DataFrame per section.

    Body rows shorter than the layout are padded with blanks; the header row
    must span every declared column.
    """
    if not grid:
        raise TableShapeMismatch(f"Empty table; layout {layout.label} needs a header row")

    header = [str(cell).strip() for cell in grid[0]]
    if len(header) < layout.width:
        raise TableShapeMismatch(
            f"Header has {len(header)} columns; layout {layout.label} needs at least {layout.width}"
        )

    body = [list(row) + [""] * (layout.width - len(row)) for row in grid[1:]]

    out: Dict[str, pd.DataFrame] = {}
    for section in layout.sections:
        labels = header[section.start:section.stop]
        duplicates = sorted({label for label in labels if labels.count(label) > 1})
        if duplicates:
            raise DuplicateColumnAfterSplit(
                f"Section {section.name!r} of layout {layout.label} repeats column(s) {duplicates}"
            )
        rows = [row[section.start:section.stop] for row in body]
        out[section.name] = pd.DataFrame(rows, columns=labels, dtype=object)
    return out


# -----------------------------------------------------------------------------
# Forward-fill
# -----------------------------------------------------------------------------

def _blank_mask(frame: pd.DataFrame) -> pd.DataFrame:
    return frame.isna() | frame.apply(lambda col: col.astype(str).str.strip() == "")


def forward_fill(frame: pd.DataFrame, column: str) -> pd.DataFrame:
    """
    Fill blank cells in `column` from the nearest non-blank cell above.

    Rows that are blank across every column are dropped first (a season with no
    postseason leaves its postseason cells empty). Idempotent.
    """
    if column not in frame.columns:
        raise TableShapeMismatch(f"Group column {column!r} missing; columns are {list(frame.columns)}")
    if frame.empty:
        return frame.reset_index(drop=True)

    blank = _blank_mask(frame)
    frame = frame.loc[~blank.all(axis=1)].reset_index(drop=True)
    if frame.empty:
        return frame

    blank_group = _blank_mask(frame[[column]])[column]
    if blank_group.iloc[0]:
        raise UngroupableLeadingRow(
            f"First row has no {column!r} value to carry down: {frame.iloc[0].tolist()}"
        )

    filled = frame.copy()
    filled[column] = frame[column].mask(blank_group).ffill()
    return filled


# -----------------------------------------------------------------------------
# Numeric coercion
# -----------------------------------------------------------------------------

def parse_number(value: object) -> Optional[float]:
    if value is None:
        return None
    cleaned = str(value).strip().replace(",", "")
    if cleaned in MISSING_NUMBER_TOKENS:
        return None
    try:
        return float(cleaned)
    except ValueError:
        return None


def coerce_numeric(frame: pd.DataFrame, text_columns: Iterable[str] = DEFAULT_TEXT_COLUMNS) -> pd.DataFrame:
    """Convert every non-text column to float; "-" and blanks become NaN."""
    text_columns = set(text_columns)
    out = frame.copy()
    for column in out.columns:
        if column in text_columns:
            continue
        out[column] = pd.to_numeric(out[column].map(parse_number), errors="coerce")
    return out


def reconcile(
    grid: Sequence[Sequence[str]],
    layout: TableLayout,
    *,
    text_columns: Iterable[str] = DEFAULT_TEXT_COLUMNS,
) -> Dict[str, pd.DataFrame]:
    """Split, forward-fill the group column, and coerce statistics per section."""
    text_columns = tuple(text_columns)
    sections = split_grid(grid, layout)
    return {
        name: coerce_numeric(forward_fill(frame, layout.group_column), text_columns)
        for name, frame in sections.items()
    }
