"""User profile model: ratings, level and mistake tracking."""

from pydantic import BaseModel, Field

from typing_coach.models.heatmap import MistakeHeatmap

DEFAULT_RATING = 1200
MIN_RATING = 800
MAX_RATING = 2000


def xp_needed_for_next(level: int) -> int:
    return 200 + level * 40


class Profile(BaseModel):
    level: int = 1
    xp: int = 0
    rating_by_language: dict[str, int] = Field(
        default_factory=lambda: {"python": DEFAULT_RATING, "java": DEFAULT_RATING}
    )
    # Legacy binary weak-character set, kept for selectors without heatmap data
    weak_chars: set[str] = Field(default_factory=set)
    weak_topics: set[str] = Field(default_factory=set)
    heatmap: MistakeHeatmap = Field(default_factory=MistakeHeatmap)

    def add_xp(self, amount: int) -> None:
        self.xp += max(0, amount)
        while self.xp >= xp_needed_for_next(self.level):
            self.xp -= xp_needed_for_next(self.level)
            self.level += 1

    def get_rating(self, language: str) -> int:
        return self.rating_by_language.get(language.lower(), DEFAULT_RATING)

    def update_rating(self, language: str, accuracy: float, wpm: float) -> int:
        """Adjust the language rating from session performance.

        Returns the rating delta that was applied.
        """
        lang = language.lower()
        current = self.rating_by_language.get(lang, DEFAULT_RATING)

        if accuracy >= 98 and wpm >= 60:
            adjustment = 25  # Excellent
        elif accuracy >= 95 and wpm >= 45:
            adjustment = 15
        elif accuracy >= 90:
            adjustment = 5
        elif accuracy < 80:
            adjustment = -10  # Needs practice
        else:
            adjustment = 0

        updated = max(MIN_RATING, min(MAX_RATING, current + adjustment))
        self.rating_by_language[lang] = updated
        return updated - current

    def record_miss(self, expected: str, actual: str | None = None) -> None:
        """Record a mistyped character in both the legacy set and the heatmap."""
        if isinstance(expected, str) and len(expected) == 1:
            if not expected.isalnum() and not expected.isspace():
                self.weak_chars.add(expected)
        self.heatmap.record_miss(expected, actual)

    def record_hit(self, expected: str) -> None:
        self.heatmap.record_hit(expected)
        # Clear from the legacy set once the error rate drops
        if self.heatmap.get_error_rate(expected) < 0.10:
            self.weak_chars.discard(expected)
