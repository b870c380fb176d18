"""Difficulty profile model and rating-to-tier mapping."""

from enum import StrEnum

from pydantic import BaseModel, Field, model_validator

MIN_TIER = 1
MAX_TIER = 7


class DifficultyReason(StrEnum):
    """Why a particular difficulty was chosen."""

    STATIC = "static"  # rating only, not enough trend data
    TREND_UP = "trend_up"
    PLATEAU = "plateau"
    TREND_DOWN = "trend_down"


class DifficultyProfile(BaseModel):
    """Target difficulty plus the acceptable band around it."""

    model_config = {"frozen": True}

    target_difficulty: int = Field(ge=MIN_TIER, le=MAX_TIER)
    min_difficulty: int = Field(ge=MIN_TIER, le=MAX_TIER)
    max_difficulty: int = Field(ge=MIN_TIER, le=MAX_TIER)
    reason: DifficultyReason = DifficultyReason.STATIC
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    wpm_velocity: float = 0.0
    accuracy_velocity: float = 0.0

    @model_validator(mode="after")
    def _check_band(self) -> "DifficultyProfile":
        if not self.min_difficulty <= self.target_difficulty <= self.max_difficulty:
            raise ValueError(
                f"difficulty band out of order: {self.min_difficulty} <= "
                f"{self.target_difficulty} <= {self.max_difficulty}"
            )
        return self

    @classmethod
    def pinned(cls, difficulty: int) -> "DifficultyProfile":
        """A full-confidence profile centered on a single tier."""
        difficulty = clamp_tier(difficulty)
        return cls(
            target_difficulty=difficulty,
            min_difficulty=clamp_tier(difficulty - 1),
            max_difficulty=clamp_tier(difficulty + 1),
            reason=DifficultyReason.STATIC,
            confidence=1.0,
        )


def clamp_tier(value: int) -> int:
    return max(MIN_TIER, min(MAX_TIER, value))


# (exclusive upper rating bound, tier)
RATING_TIERS: list[tuple[int, int]] = [
    (1000, 1),  # Beginner
    (1100, 2),
    (1300, 3),
    (1500, 4),
    (1700, 5),
    (1900, 6),
]


def rating_to_difficulty(rating: int) -> int:
    """Map a per-language rating to a 1-7 tier (monotonic step function)."""
    for upper, tier in RATING_TIERS:
        if rating < upper:
            return tier
    return MAX_TIER
