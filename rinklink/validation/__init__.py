"""
Record schemas and validation for the rinklink pipeline.

This module provides:
- Dataclass schemas for profiles, season records and cross-source links
- Plausibility validation returning ValidationResult
- DataFrame builders for equi-joining profiles with their season history
"""

from rinklink.validation.schemas import (
    AthleteIdentifier,
    AthleteProfile,
    CrossSourceLink,
    RawFragment,
    SeasonRecord,
    ValidationError,
    ValidationResult,
    frame_to_season_records,
    profiles_frame,
    seasons_frame,
)

__all__ = [
    "AthleteIdentifier",
    "AthleteProfile",
    "CrossSourceLink",
    "RawFragment",
    "SeasonRecord",
    "ValidationError",
    "ValidationResult",
    "frame_to_season_records",
    "profiles_frame",
    "seasons_frame",
]
