"""Session data models."""

import uuid
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class MixCategory(StrEnum):
    """A selection's difficulty relationship to the comfort zone."""

    TARGET = "target"  # at the working level
    REVIEW = "review"  # one tier below, reinforcing mastery
    STRETCH = "stretch"  # one tier above, pushing growth


class SessionPlan(BaseModel):
    """Why a snippet was picked and which mix category it fills.

    Display metadata only; attached to the resulting session record.
    """

    model_config = {"frozen": True}

    category: MixCategory
    target_difficulty: int = Field(ge=1, le=7)
    actual_difficulty: int = Field(ge=1, le=7)
    comfort_zone: int | None = None
    reason: str = ""


class SessionRecord(BaseModel):
    """A completed typing session."""

    session_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    completed_at: datetime = Field(default_factory=datetime.now)
    snippet_id: str = ""
    language: str = ""
    wpm: float = 0.0
    accuracy: float = 0.0
    error_count: int = 0
    total_chars: int = 0
    duration_seconds: float = 0.0
    plan: SessionPlan | None = None

    @property
    def is_perfect(self) -> bool:
        return self.error_count == 0
