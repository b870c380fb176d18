"""Cross-session data used for trend awareness.

Raw signal storage only: interpretation lives in the trend analyzer and
weakness tracker.
"""

import math
from datetime import datetime

import structlog
from pydantic import BaseModel, Field, model_validator

from typing_coach.models.heatmap import MistakeHeatmap
from typing_coach.models.session import SessionRecord

logger = structlog.get_logger()

DEFAULT_SERIES_CAP = 50


def is_valid_wpm(value: float) -> bool:
    return isinstance(value, (int, float)) and math.isfinite(value) and value >= 0


def is_valid_accuracy(value: float) -> bool:
    return isinstance(value, (int, float)) and math.isfinite(value) and 0 <= value <= 100


class LanguageTrend(BaseModel):
    """Rolling per-language statistics, newest first."""

    recent_wpm: list[float] = Field(default_factory=list)
    recent_accuracy: list[float] = Field(default_factory=list)
    total_sessions: int = Field(default=0, ge=0)
    first_session_at: datetime | None = None
    last_session_at: datetime | None = None

    @model_validator(mode="after")
    def _drop_invalid_samples(self) -> "LanguageTrend":
        # Series are paired by position; a bad value drops its whole session
        pairs = [
            (wpm, accuracy)
            for wpm, accuracy in zip(self.recent_wpm, self.recent_accuracy)
            if is_valid_wpm(wpm) and is_valid_accuracy(accuracy)
        ]
        if len(pairs) != len(self.recent_wpm) or len(pairs) != len(self.recent_accuracy):
            logger.warning(
                "trend_series_sanitized",
                wpm_samples=len(self.recent_wpm),
                accuracy_samples=len(self.recent_accuracy),
                kept=len(pairs),
            )
        self.recent_wpm = [wpm for wpm, _ in pairs]
        self.recent_accuracy = [accuracy for _, accuracy in pairs]
        return self

    def record_session(
        self,
        wpm: float,
        accuracy: float,
        completed_at: datetime,
        cap: int = DEFAULT_SERIES_CAP,
    ) -> bool:
        """Record a session's metrics. Returns False if the sample was dropped."""
        if not is_valid_wpm(wpm) or not is_valid_accuracy(accuracy):
            logger.warning("trend_sample_dropped", wpm=wpm, accuracy=accuracy)
            return False

        self.recent_wpm.insert(0, round(float(wpm), 1))
        self.recent_accuracy.insert(0, round(float(accuracy), 1))
        del self.recent_wpm[cap:]
        del self.recent_accuracy[cap:]

        self.total_sessions += 1
        if self.first_session_at is None:
            self.first_session_at = completed_at
        self.last_session_at = completed_at
        return True

    def average_wpm(self, last_n: int = 10) -> float | None:
        """Average WPM over the last N sessions, None if no data."""
        values = self.recent_wpm[:last_n]
        return sum(values) / len(values) if values else None

    def average_accuracy(self, last_n: int = 10) -> float | None:
        """Average accuracy over the last N sessions, None if no data."""
        values = self.recent_accuracy[:last_n]
        return sum(values) / len(values) if values else None


class WeaknessEntry(BaseModel):
    """A single character weakness at a point in time."""

    character: str
    error_rate: float
    total_attempts: int


class WeaknessSnapshot(BaseModel):
    """Immutable point-in-time capture of a language's weakest characters."""

    model_config = {"frozen": True}

    language: str
    captured_at: datetime = Field(default_factory=datetime.now)
    top_weaknesses: tuple[WeaknessEntry, ...] = ()

    def entry_for(self, character: str) -> WeaknessEntry | None:
        for entry in self.top_weaknesses:
            if entry.character == character:
                return entry
        return None


def normalize_language(language: str | None) -> str:
    return language.lower() if language else "unknown"


class LongitudinalData(BaseModel):
    """Accumulated cross-session data owned by the user's profile."""

    trends_by_language: dict[str, LanguageTrend] = Field(default_factory=dict)
    # Newest first
    session_timestamps: list[datetime] = Field(default_factory=list)
    # Append-only, oldest first
    weakness_snapshots: list[WeaknessSnapshot] = Field(default_factory=list)

    def record_session(
        self,
        record: SessionRecord,
        series_cap: int = DEFAULT_SERIES_CAP,
        timestamp_cap: int = 200,
    ) -> bool:
        """Fold a completed session into the language trend.

        Returns False when the session's metrics were rejected.
        """
        lang = normalize_language(record.language)
        trend = self.trends_by_language.get(lang)
        if trend is None:
            trend = LanguageTrend()
            self.trends_by_language[lang] = trend

        recorded = trend.record_session(
            record.wpm, record.accuracy, record.completed_at, cap=series_cap
        )
        if not recorded:
            return False

        self.session_timestamps.insert(0, record.completed_at)
        del self.session_timestamps[timestamp_cap:]
        return True

    def maybe_snapshot_weakness(
        self,
        language: str,
        heatmap: MistakeHeatmap,
        now: datetime | None = None,
        min_attempts: int = 3,
        cap: int = 90,
    ) -> WeaknessSnapshot | None:
        """Capture a weakness snapshot at most once per language per day.

        Returns the new snapshot, or None if nothing was captured.
        """
        lang = normalize_language(language)
        now = now or datetime.now()
        today = now.date()

        if any(s.language == lang and s.captured_at.date() == today for s in self.weakness_snapshots):
            return None

        weakest = heatmap.get_weakest(count=10, min_attempts=min_attempts)
        if not weakest:
            return None

        snapshot = WeaknessSnapshot(
            language=lang,
            captured_at=now,
            top_weaknesses=tuple(
                WeaknessEntry(
                    character=w.character,
                    error_rate=round(w.error_rate, 3),
                    total_attempts=w.total_attempts,
                )
                for w in weakest
            ),
        )
        self.weakness_snapshots.append(snapshot)
        overflow = len(self.weakness_snapshots) - cap
        if overflow > 0:
            del self.weakness_snapshots[:overflow]

        logger.info("weakness_snapshot_captured", language=lang, entries=len(snapshot.top_weaknesses))
        return snapshot

    def snapshots_for(self, language: str) -> list[WeaknessSnapshot]:
        """Snapshots for a language, newest first."""
        lang = normalize_language(language)
        return sorted(
            (s for s in self.weakness_snapshots if s.language == lang),
            key=lambda s: s.captured_at,
            reverse=True,
        )
