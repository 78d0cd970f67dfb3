"""
Error taxonomy for extraction and linking.

Every structural or parsing failure derives from ExtractionError and carries
enough context (source, locator, athlete token) for the caller to retry with
an alternate locator, skip the athlete, or abort the run. Linking failures
are not exceptions; see rinklink.identity.linker.LinkReason.
"""

from __future__ import annotations

from typing import Optional, Sequence, Union


class RinklinkError(Exception):
    """Base class for every error raised by rinklink."""


class ConfigError(RinklinkError):
    """A source configuration bundle is malformed."""


class ExtractionError(RinklinkError):
    """An athlete's record could not be extracted."""

    def __init__(
        self,
        message: str,
        *,
        source: Optional[str] = None,
        locator: Optional[str] = None,
        athlete: Optional[Union[int, str]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.source = source
        self.locator = locator
        self.athlete = athlete

    def with_context(
        self,
        *,
        source: Optional[str] = None,
        locator: Optional[str] = None,
        athlete: Optional[Union[int, str]] = None,
    ) -> "ExtractionError":
        """Fill in context the raising site did not know. Existing values win."""
        if self.source is None:
            self.source = source
        if self.locator is None:
            self.locator = locator
        if self.athlete is None:
            self.athlete = athlete
        return self

    def __str__(self) -> str:
        context = [
            f"{label}={value}"
            for label, value in (
                ("source", self.source),
                ("locator", self.locator),
                ("athlete", self.athlete),
            )
            if value is not None
        ]
        if not context:
            return self.message
        return f"{self.message} ({', '.join(context)})"


# -----------------------------------------------------------------------------
# Structural extraction
# -----------------------------------------------------------------------------

class StructuralError(ExtractionError):
    pass


class NotFound(StructuralError):
    """No node matched any of the locators tried."""

    def __init__(self, locators: Sequence[str], **context):
        self.locators = tuple(locators)
        super().__init__(
            f"No node matched locator(s): {', '.join(self.locators)}",
            locator=context.pop("locator", " | ".join(self.locators)),
            **context,
        )


class AmbiguousMatch(StructuralError):
    """A locator that must match exactly one node matched several."""

    def __init__(self, locator: str, count: int, **context):
        self.count = count
        super().__init__(
            f"Locator matched {count} nodes, expected exactly one",
            locator=locator,
            **context,
        )


# -----------------------------------------------------------------------------
# Field normalization
# -----------------------------------------------------------------------------

class FieldNormalizationError(ExtractionError):
    pass


class MalformedFieldBlock(FieldNormalizationError):
    pass


class UnparseableMeasurement(FieldNormalizationError):
    pass


class DecompositionUnderflow(FieldNormalizationError):
    pass


class UnparseableDate(FieldNormalizationError):
    pass


# -----------------------------------------------------------------------------
# Table reconciliation
# -----------------------------------------------------------------------------

class ReconciliationError(ExtractionError):
    pass


class UngroupableLeadingRow(ReconciliationError):
    pass


class DuplicateColumnAfterSplit(ReconciliationError):
    pass


class TableShapeMismatch(ReconciliationError):
    pass


# -----------------------------------------------------------------------------
# Identifier assignment
# -----------------------------------------------------------------------------

class IdentifierNotDerivable(ExtractionError):
    pass
