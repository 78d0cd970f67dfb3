"""
Structural Extractor

Locates a named substructure within a parsed document and returns its raw text
or table grid. Some sources defer rendering of secondary tables by shipping the
markup inside HTML comments; when a locator matches nothing rendered, the
comment payloads are re-parsed as fragments and searched the same way, so a
commented table (or a comment inside a commented block) is reached without a
special case at the call site.

Locators are CSS selectors (`#stats_nhl`, `div.ep-list`, `[role=main]`).
Callers may pass several alternates; they are tried in order and the first that
matches wins.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Sequence, Tuple, Union

from bs4 import BeautifulSoup, Comment, Tag

from rinklink.errors import AmbiguousMatch, NotFound
from rinklink.validation.schemas import RawFragment

logger = logging.getLogger(__name__)

HTML_PARSER = "html.parser"
MAX_COMMENT_DEPTH = 3
SKIPPED_ROW_CLASSES = {"thead", "over_header"}

Locators = Union[str, Sequence[str]]

_WS_RE = re.compile(r"\s+")


def parse_document(markup: Union[str, bytes]) -> BeautifulSoup:
    """Parse a full page."""
    return BeautifulSoup(markup, HTML_PARSER)


def parse_fragment(markup: str) -> BeautifulSoup:
    """Parse an embedded payload (e.g. a comment's text) as its own document."""
    return BeautifulSoup(markup, HTML_PARSER)


def _as_tuple(locators: Locators) -> Tuple[str, ...]:
    if isinstance(locators, str):
        return (locators,)
    return tuple(locators)


def find_all(doc: Union[BeautifulSoup, Tag], selector: str, _depth: int = 0) -> List[Tag]:
    """
    All nodes matching `selector`, searching comment payloads when nothing is
    rendered directly.
    """
    matches = doc.select(selector)
    if matches or _depth >= MAX_COMMENT_DEPTH:
        return matches

    found: List[Tag] = []
    for comment in doc.find_all(string=lambda text: isinstance(text, Comment)):
        if "<" not in comment:
            continue
        fragment = parse_fragment(str(comment))
        nested = find_all(fragment, selector, _depth + 1)
        if nested:
            logger.debug(f"Locator {selector!r} matched {len(nested)} node(s) inside a comment (depth {_depth + 1})")
            found.extend(nested)
    return found


def locate(doc: Union[BeautifulSoup, Tag], selector: str) -> Tag:
    """Exactly one node matching `selector`."""
    matches = find_all(doc, selector)
    if not matches:
        raise NotFound([selector])
    if len(matches) > 1:
        raise AmbiguousMatch(selector, len(matches))
    return matches[0]


def locate_first(doc: Union[BeautifulSoup, Tag], locators: Locators) -> Tuple[str, Tag]:
    """
    Try each alternate locator in order; return (selector used, node).

    A locator matching several nodes is a hard failure, not a reason to move on
    to the next alternate.
    """
    tried = _as_tuple(locators)
    for selector in tried:
        try:
            return selector, locate(doc, selector)
        except NotFound:
            logger.debug(f"Locator {selector!r} matched nothing, trying next alternate")
    raise NotFound(tried)


# -----------------------------------------------------------------------------
# Fragment builders
# -----------------------------------------------------------------------------

def clean_text(text: Optional[str]) -> str:
    s = (text or "").replace("\u00a0", " ")
    return _WS_RE.sub(" ", s).strip()


def extract_text(doc: Union[BeautifulSoup, Tag], locators: Locators, *, source: str) -> RawFragment:
    """Raw text of the located node, one text node per line."""
    selector, node = locate_first(doc, locators)
    return RawFragment(source=source, locator=selector, text=node.get_text("\n"))


def extract_value(
    doc: Union[BeautifulSoup, Tag],
    locators: Locators,
    *,
    attribute: Optional[str] = None,
) -> str:
    """Single text (or attribute) value of the located node."""
    selector, node = locate_first(doc, locators)
    if attribute is None:
        return clean_text(node.get_text(" "))
    value = node.get(attribute)
    if value is None:
        raise NotFound([f"{selector}@{attribute}"])
    if isinstance(value, list):
        value = " ".join(value)
    return clean_text(value)


def extract_grid(doc: Union[BeautifulSoup, Tag], locators: Locators, *, source: str) -> RawFragment:
    """
    Cell grid of the located table, or of the single table inside the located
    node. A wrapper whose table is commented out is searched like a document.
    """
    selector, node = locate_first(doc, locators)
    if node.name != "table":
        tables = find_all(node, "table")
        if not tables:
            raise NotFound([f"{selector} table"])
        if len(tables) > 1:
            raise AmbiguousMatch(f"{selector} table", len(tables))
        node = tables[0]
    return RawFragment(source=source, locator=selector, grid=table_grid(node))


def table_grid(table: Tag) -> Tuple[Tuple[str, ...], ...]:
    """Rows of cell strings, with colspans expanded and repeated header rows skipped."""
    rows: List[Tuple[str, ...]] = []
    for tr in table.find_all("tr"):
        classes = set(tr.get("class") or [])
        if rows and classes & SKIPPED_ROW_CLASSES:
            continue
        if not rows and "over_header" in classes:
            continue
        cells: List[str] = []
        for cell in tr.find_all(["th", "td"], recursive=False):
            text = clean_text(cell.get_text(" "))
            cells.extend([text] * _colspan(cell))
        if cells:
            rows.append(tuple(cells))
    return tuple(rows)


def _colspan(cell: Tag) -> int:
    try:
        return max(1, int(cell.get("colspan", 1)))
    except (TypeError, ValueError):
        return 1
