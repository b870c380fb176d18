"""Trend-aware difficulty targeting.

If a user is improving, nudge harder; if plateauing, hold steady; if
declining, ease back. Produces a DifficultyProfile rather than a single tier.
"""

import structlog

from typing_coach.config import Settings
from typing_coach.engine.trend_analyzer import LanguageTrendSummary, Momentum, TrendAnalyzer
from typing_coach.models.difficulty import (
    DifficultyProfile,
    DifficultyReason,
    clamp_tier,
    rating_to_difficulty,
)
from typing_coach.models.history import LongitudinalData, normalize_language
from typing_coach.models.profile import Profile

logger = structlog.get_logger()

NO_TREND_CONFIDENCE = 0.3
SHORT_TREND_CONFIDENCE = 0.5

MOMENTUM_ADJUSTMENT: dict[Momentum, int] = {
    Momentum.STRONG_POSITIVE: 1,  # Push harder
    Momentum.POSITIVE: 0,
    Momentum.NEUTRAL: 0,
    Momentum.NEGATIVE: 0,
    Momentum.STRONG_NEGATIVE: -1,  # Ease back
}


class AdaptiveDifficultyEngine:
    """Converts rating plus trend summary into a bounded difficulty profile.

    Args:
        settings: Engine settings holding the difficulty thresholds.
        trend_analyzer: Shared analyzer; one is created if omitted.
    """

    def __init__(self, settings: Settings | None = None, trend_analyzer: TrendAnalyzer | None = None):
        self.settings = settings or Settings()
        self.trend_analyzer = trend_analyzer or TrendAnalyzer(self.settings)

    def compute_difficulty(
        self, language: str, profile: Profile, longitudinal: LongitudinalData
    ) -> DifficultyProfile:
        """Compute the adaptive difficulty profile for a language.

        Falls back to the static rating tier when there is not enough
        longitudinal data.
        """
        lang = normalize_language(language)
        base = rating_to_difficulty(profile.get_rating(lang))

        trend = longitudinal.trends_by_language.get(lang)
        if trend is None:
            return self._static(base, NO_TREND_CONFIDENCE)

        summary = self.trend_analyzer.analyze(lang, trend)
        if summary is None:
            return self._static(base, SHORT_TREND_CONFIDENCE)

        result = self._from_trend(base, summary)
        logger.info(
            "difficulty_computed",
            language=lang,
            base=base,
            target=result.target_difficulty,
            reason=result.reason.value,
            momentum=summary.momentum.value,
            confidence=result.confidence,
        )
        return result

    def _from_trend(self, base: int, summary: LanguageTrendSummary) -> DifficultyProfile:
        adjustment = MOMENTUM_ADJUSTMENT.get(summary.momentum, 0)
        adjusted = clamp_tier(base + adjustment)

        # Tighter band once there is plenty of history
        range_width = 0 if summary.session_count >= self.settings.difficulty_confident_sessions else 1

        if summary.recent_avg_accuracy < self.settings.difficulty_struggling_accuracy:
            # Struggling: never push harder than the base tier
            adjusted = min(adjusted, base)
            range_width = max(range_width, 1)
        elif (
            summary.recent_avg_accuracy > self.settings.difficulty_cruising_accuracy
            and summary.recent_avg_wpm > self.settings.difficulty_cruising_wpm
        ):
            # Cruising: don't let them get stuck too easy
            adjusted = max(adjusted, base)

        if adjustment > 0:
            reason = DifficultyReason.TREND_UP
        elif adjustment < 0:
            reason = DifficultyReason.TREND_DOWN
        elif summary.momentum == Momentum.POSITIVE:
            reason = DifficultyReason.TREND_UP
        elif summary.momentum == Momentum.NEGATIVE:
            reason = DifficultyReason.TREND_DOWN
        else:
            reason = DifficultyReason.PLATEAU

        confidence = min(1.0, summary.session_count / self.settings.difficulty_confident_sessions)

        return DifficultyProfile(
            target_difficulty=adjusted,
            min_difficulty=clamp_tier(adjusted - range_width),
            max_difficulty=clamp_tier(adjusted + range_width),
            reason=reason,
            confidence=round(confidence, 2),
            wpm_velocity=summary.wpm_velocity,
            accuracy_velocity=summary.accuracy_velocity,
        )

    @staticmethod
    def _static(base: int, confidence: float) -> DifficultyProfile:
        return DifficultyProfile(
            target_difficulty=base,
            min_difficulty=clamp_tier(base - 1),
            max_difficulty=clamp_tier(base + 1),
            reason=DifficultyReason.STATIC,
            confidence=confidence,
        )
