"""Practice content models."""

import math
from datetime import datetime
from enum import StrEnum
from functools import cached_property

from pydantic import BaseModel, Field

from typing_coach.models.heatmap import SymbolGroup, get_symbol_group


class ContentSource(StrEnum):
    """Where a piece of practice content came from."""

    BUILTIN = "builtin"
    USER = "user"
    CORPUS = "corpus"


DIFFICULTY_LABELS: dict[int, str] = {
    1: "Trivial",
    2: "Easy",
    3: "Moderate",
    4: "Intermediate",
    5: "Challenging",
    6: "Advanced",
    7: "Expert",
}


class CodeMetrics(BaseModel):
    """Structural measurements of normalized code."""

    lines: int = 0
    characters: int = 0
    symbol_density: float = 0.0
    max_indent_depth: int = 0


class CodeItem(BaseModel):
    """A library entry keyed by content hash."""

    id: str
    language: str
    source: ContentSource
    title: str = ""
    code: str
    metrics: CodeMetrics = Field(default_factory=CodeMetrics)
    created_at: datetime = Field(default_factory=datetime.now)


class Snippet(BaseModel):
    """A concrete practice item handed to the typing surface."""

    id: str
    language: str
    code: str
    difficulty: int = Field(default=1, ge=1, le=7)
    title: str = ""
    topics: list[str] = Field(default_factory=list)
    source: ContentSource = ContentSource.BUILTIN
    content_id: str | None = None

    @cached_property
    def special_chars(self) -> frozenset[str]:
        """Unique non-alphanumeric, non-whitespace characters in the code."""
        return frozenset(c for c in set(self.code) if not c.isalnum() and not c.isspace())

    @cached_property
    def symbol_groups(self) -> frozenset[SymbolGroup]:
        """Symbol groups of every distinct character in the code."""
        return frozenset(get_symbol_group(c) for c in set(self.code))

    @property
    def char_count(self) -> int:
        return len(self.code)

    @property
    def is_user_authored(self) -> bool:
        return self.source != ContentSource.BUILTIN

    @property
    def estimated_seconds(self) -> int:
        """Estimated typing time at 40 WPM."""
        return math.ceil(self.char_count / 5 / 40 * 60)

    @property
    def difficulty_label(self) -> str:
        return DIFFICULTY_LABELS.get(self.difficulty, "Unknown")
