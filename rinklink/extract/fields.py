"""
Field Normalizer

Turns a block of label/value text into an AthleteProfile:

    Date of Birth          ->  tokens  ->  pairs                      ->  derived
    Jan 13, 1997                           ("Date of Birth", "Jan 13, 1997")  birth_date = "1997-01-13"
    Height                                 ("Height", "185 cm / 6'1\"")       Height = 185.0
    185 cm / 6'1"                          ...
    ...
    Highlights   <- sentinel, everything after it is dropped

Each derived transform (measurement split, compound decomposition, date
parsing) fails on its own with a dedicated error rather than leaving a
half-converted value in the profile.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from rinklink.errors import (
    DecompositionUnderflow,
    MalformedFieldBlock,
    UnparseableDate,
    UnparseableMeasurement,
)

MEASUREMENT_DELIMITER = "/"
DEFAULT_METRIC_UNITS = ("cm", "kg")
PLACEHOLDER_VALUES = {"", "-", "—", "–", "n/a", "N/A"}
DATE_FORMATS = ("%b %d, %Y", "%B %d, %Y", "%Y-%m-%d", "%d.%m.%Y", "%m/%d/%Y")

_WS_RE = re.compile(r"\s+")
_NUMBER_RE = re.compile(r"^[+-]?\d+(?:[.,]\d+)?$")


@dataclass(frozen=True)
class Measurement:
    metric: float
    unit: str
    imperial: Optional[str] = None


# -----------------------------------------------------------------------------
# Tokenizing and pairing
# -----------------------------------------------------------------------------

def tokenize_block(
    text: str,
    *,
    denylist: Iterable[str] = (),
    sentinel: Optional[str] = None,
) -> List[str]:
    """
    Split a raw block on newlines into trimmed, non-empty tokens.

    Truncates at the first token equal to `sentinel` (the sentinel itself is
    dropped too) and removes tokens found in `denylist`.
    """
    blocked = {_collapse(t) for t in denylist}
    tokens: List[str] = []
    for line in (text or "").splitlines():
        token = _collapse(line)
        if not token:
            continue
        if sentinel is not None and token == sentinel:
            break
        if token in blocked:
            continue
        tokens.append(token)
    return tokens


def pair_fields(tokens: Sequence[str]) -> List[Tuple[str, str]]:
    """Even positions are labels, odd positions their values."""
    if len(tokens) % 2:
        raise MalformedFieldBlock(
            f"Field block has {len(tokens)} tokens; labels and values must pair up "
            f"(last token: {tokens[-1]!r})"
        )
    pairs: List[Tuple[str, str]] = []
    seen: set[str] = set()
    for label, value in zip(tokens[0::2], tokens[1::2]):
        label = label.rstrip(":").strip()
        if label in seen:
            raise MalformedFieldBlock(f"Field {label!r} appears more than once")
        seen.add(label)
        pairs.append((label, value))
    return pairs


# -----------------------------------------------------------------------------
# Derived transforms
# -----------------------------------------------------------------------------

def split_measurement(value: str, metric_units: Sequence[str] = DEFAULT_METRIC_UNITS) -> Optional[Measurement]:
    """
    Split "185 cm / 6'1\"" into its metric and imperial halves.

    Returns None for placeholder values (the source publishes "-" when a
    measurement is unknown).
    """
    text = _collapse(value)
    if text in PLACEHOLDER_VALUES:
        return None

    parts = [p.strip() for p in text.split(MEASUREMENT_DELIMITER)]
    metric_part: Optional[str] = None
    unit: Optional[str] = None
    others: List[str] = []
    for part in parts:
        matched = next((u for u in metric_units if part.lower().endswith(u.lower())), None)
        if matched and metric_part is None:
            metric_part, unit = part, matched
        else:
            others.append(part)

    if metric_part is None or unit is None:
        raise UnparseableMeasurement(f"No metric component in {value!r} (units: {', '.join(metric_units)})")

    number = metric_part[: -len(unit)].strip()
    if not _NUMBER_RE.match(number):
        raise UnparseableMeasurement(f"Metric component {metric_part!r} of {value!r} is not numeric")

    imperial = MEASUREMENT_DELIMITER.join(others) if others else None
    return Measurement(metric=float(number.replace(",", ".")), unit=unit, imperial=imperial)


@dataclass(frozen=True)
class CompoundRule:
    """
    Decomposes a verbose compound value into a fixed set of fields.

    Connectors are removed, then the remainder is split on whitespace into at
    most len(fields) components; the last one keeps every remaining word so a
    multi-word team name survives intact. `template` is the inverse.
    """
    fields: Tuple[str, ...]
    connectors: Tuple[str, ...]
    template: str

    def decompose(self, value: str) -> Dict[str, Any]:
        text = _collapse(value)
        for connector in self.connectors:
            text = _connector_pattern(connector).sub(" ", text)
        parts = _collapse(text).split(None, len(self.fields) - 1)
        if len(parts) < len(self.fields):
            raise DecompositionUnderflow(
                f"{value!r} yields {len(parts)} component(s), expected {len(self.fields)} "
                f"({', '.join(self.fields)})"
            )
        return {name: _int_if_digits(part) for name, part in zip(self.fields, parts)}

    def compose(self, values: Mapping[str, Any]) -> str:
        return self.template.format(**values)


# "2015 round 1 #1 overall by Edmonton Oilers"
DRAFT_RULE = CompoundRule(
    fields=("draft_year", "draft_round", "draft_pick", "draft_team"),
    connectors=("round", "#", "overall by"),
    template="{draft_year} round {draft_round} #{draft_pick} overall by {draft_team}",
)


def parse_date(value: str, formats: Sequence[str] = DATE_FORMATS) -> str:
    """ISO date (YYYY-MM-DD) from the formats sources publish birth dates in."""
    text = _collapse(value)
    # ISO with time: "YYYY-MM-DDTHH:MMZ"
    if len(text) > 10 and text[4:5] == "-" and text[10:11] == "T":
        text = text[:10]
    for fmt in formats:
        try:
            return datetime.strptime(text, fmt).date().isoformat()
        except ValueError:
            continue
    raise UnparseableDate(f"Unrecognized date {value!r}")


def apply_transforms(
    pairs: Sequence[Tuple[str, Any]],
    *,
    measurement_fields: Iterable[str] = (),
    metric_units: Sequence[str] = DEFAULT_METRIC_UNITS,
    compound_rules: Optional[Mapping[str, CompoundRule]] = None,
    date_fields: Optional[Mapping[str, str]] = None,
) -> List[Tuple[str, Any]]:
    """
    Apply the derived transforms to paired fields, preserving order.

    `date_fields` maps a source label to the output field name (e.g.
    "Date of Birth" -> "birth_date"). A compound field is replaced in place by
    its components.
    """
    measurement_fields = set(measurement_fields)
    compound_rules = compound_rules or {}
    date_fields = date_fields or {}

    out: List[Tuple[str, Any]] = []
    for label, value in pairs:
        if label in measurement_fields:
            measurement = split_measurement(value, metric_units)
            out.append((label, measurement.metric if measurement else None))
        elif label in compound_rules:
            out.extend(compound_rules[label].decompose(value).items())
        elif label in date_fields:
            parsed = None if _collapse(value) in PLACEHOLDER_VALUES else parse_date(value)
            out.append((date_fields[label], parsed))
        else:
            out.append((label, value))
    return out


def _collapse(text: str) -> str:
    return _WS_RE.sub(" ", (text or "").replace("\u00a0", " ")).strip()


def _connector_pattern(connector: str) -> "re.Pattern[str]":
    escaped = re.escape(connector)
    if connector[:1].isalnum():
        escaped = r"\b" + escaped
    if connector[-1:].isalnum():
        escaped = escaped + r"\b"
    return re.compile(escaped, re.IGNORECASE)


def _int_if_digits(part: str) -> Any:
    return int(part) if part.isdigit() else part
