"""Longitudinal trend analysis over rolling per-language series.

Pure computation: feed it data, get observations back.
"""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel

from typing_coach.config import Settings
from typing_coach.models.history import (
    LanguageTrend,
    LongitudinalData,
    WeaknessSnapshot,
    normalize_language,
)


class TrendDirection(StrEnum):
    """Direction of a metric over time."""

    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


class Momentum(StrEnum):
    """Combined WPM and accuracy direction."""

    STRONG_POSITIVE = "strong_positive"
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"
    STRONG_NEGATIVE = "strong_negative"


class LanguageTrendSummary(BaseModel):
    """Summary of a language's practice trend."""

    language: str
    session_count: int
    first_practiced: datetime | None = None
    last_practiced: datetime | None = None
    recent_avg_wpm: float = 0.0  # last 10 sessions
    recent_avg_accuracy: float = 0.0
    older_avg_wpm: float = 0.0  # all stored sessions (up to 50)
    older_avg_accuracy: float = 0.0
    wpm_direction: TrendDirection = TrendDirection.STABLE
    accuracy_direction: TrendDirection = TrendDirection.STABLE
    wpm_velocity: float = 0.0  # per session, positive = faster
    accuracy_velocity: float = 0.0
    momentum: Momentum = Momentum.NEUTRAL
    # Consecutive recent sessions near the mean; high values mean a plateau
    plateau_length: int = 0


class WeaknessChange(BaseModel):
    """Change in one character's weakness between two snapshots."""

    character: str
    old_error_rate: float
    new_error_rate: float
    # Positive = improved, negative = worse, 1.0 = dropped out of the top list
    improvement: float


class TrendAnalyzer:
    """Turns rolling (WPM, accuracy) series into direction and momentum signals.

    Args:
        settings: Engine settings holding the trend thresholds.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or Settings()

    def analyze(self, language: str, trend: LanguageTrend) -> LanguageTrendSummary | None:
        """Summarize a language trend, or None below the session minimum."""
        if trend.total_sessions < self.settings.trend_min_sessions:
            return None

        wpm_direction = self.compute_direction(trend.recent_wpm)
        accuracy_direction = self.compute_direction(trend.recent_accuracy)

        return LanguageTrendSummary(
            language=language,
            session_count=trend.total_sessions,
            first_practiced=trend.first_session_at,
            last_practiced=trend.last_session_at,
            recent_avg_wpm=trend.average_wpm(10) or 0.0,
            recent_avg_accuracy=trend.average_accuracy(10) or 0.0,
            older_avg_wpm=trend.average_wpm(50) or 0.0,
            older_avg_accuracy=trend.average_accuracy(50) or 0.0,
            wpm_direction=wpm_direction,
            accuracy_direction=accuracy_direction,
            wpm_velocity=self.compute_velocity(trend.recent_wpm),
            accuracy_velocity=self.compute_velocity(trend.recent_accuracy),
            momentum=combine_momentum(wpm_direction, accuracy_direction),
            plateau_length=self.compute_plateau_length(trend.recent_wpm),
        )

    def analyze_all(self, data: LongitudinalData) -> list[LanguageTrendSummary]:
        """Summaries for every language with enough data, most recent first."""
        summaries = [
            summary
            for lang, trend in data.trends_by_language.items()
            if (summary := self.analyze(lang, trend)) is not None
        ]
        summaries.sort(key=lambda s: s.last_practiced or datetime.min, reverse=True)
        return summaries

    def compute_direction(self, values: list[float]) -> TrendDirection:
        """Compare the newest window's mean against the window before it."""
        window = self.settings.trend_direction_window
        if len(values) < window * 2:
            return TrendDirection.STABLE

        recent = sum(values[:window]) / window
        older = sum(values[window : window * 2]) / window
        diff = recent - older
        threshold = older * self.settings.trend_direction_threshold

        if diff > threshold:
            return TrendDirection.IMPROVING
        if diff < -threshold:
            return TrendDirection.DECLINING
        return TrendDirection.STABLE

    def compute_velocity(self, values: list[float]) -> float:
        """Least-squares slope per session over the newest points.

        Values are newest first; x runs from 0 (oldest) to n-1 (newest).
        Returns 0 with too few points or a degenerate fit.
        """
        if len(values) < self.settings.trend_velocity_min_points:
            return 0.0

        n = min(len(values), self.settings.trend_velocity_window)
        sum_x = sum_y = sum_xy = sum_x2 = 0.0
        for i in range(n):
            x = n - 1 - i
            y = values[i]
            sum_x += x
            sum_y += y
            sum_xy += x * y
            sum_x2 += x * x

        denom = n * sum_x2 - sum_x * sum_x
        if abs(denom) < 0.001:
            return 0.0
        return round((n * sum_xy - sum_x * sum_y) / denom, 2)

    def compute_plateau_length(self, values: list[float]) -> int:
        """Count consecutive newest points within the band around the recent mean."""
        if len(values) < self.settings.trend_min_sessions:
            return 0

        mean_window = values[: self.settings.trend_plateau_mean_window]
        mean = sum(mean_window) / len(mean_window)
        band = mean * self.settings.trend_plateau_band

        count = 0
        for value in values[: self.settings.trend_plateau_scan]:
            if abs(value - mean) > band:
                break
            count += 1
        return count

    @staticmethod
    def measure_weakness_improvement(
        older: WeaknessSnapshot, newer: WeaknessSnapshot, character: str
    ) -> float | None:
        """Improvement for one character, None if it wasn't weak before."""
        old_entry = older.entry_for(character)
        if old_entry is None:
            return None
        new_entry = newer.entry_for(character)
        if new_entry is None:
            return 1.0
        return old_entry.error_rate - new_entry.error_rate

    def compare_recent_snapshots(self, data: LongitudinalData, language: str) -> list[WeaknessChange]:
        """Changes between the two newest snapshots, largest |improvement| first."""
        snapshots = data.snapshots_for(normalize_language(language))[:2]
        if len(snapshots) < 2:
            return []

        newer, older = snapshots
        changes = []
        for entry in older.top_weaknesses:
            improvement = self.measure_weakness_improvement(older, newer, entry.character)
            if improvement is None:
                continue
            new_entry = newer.entry_for(entry.character)
            changes.append(
                WeaknessChange(
                    character=entry.character,
                    old_error_rate=entry.error_rate,
                    new_error_rate=new_entry.error_rate if new_entry else 0.0,
                    improvement=improvement,
                )
            )

        changes.sort(key=lambda c: abs(c.improvement), reverse=True)
        return changes


def combine_momentum(wpm: TrendDirection, accuracy: TrendDirection) -> Momentum:
    """Fold the two metric directions into one momentum signal."""
    if wpm == TrendDirection.IMPROVING and accuracy == TrendDirection.IMPROVING:
        return Momentum.STRONG_POSITIVE
    if TrendDirection.IMPROVING in (wpm, accuracy):
        return Momentum.POSITIVE
    if wpm == TrendDirection.DECLINING and accuracy == TrendDirection.DECLINING:
        return Momentum.STRONG_NEGATIVE
    if TrendDirection.DECLINING in (wpm, accuracy):
        return Momentum.NEGATIVE
    return Momentum.NEUTRAL
