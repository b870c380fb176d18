"""Snippet selection based on skill, weak points and recent history."""

import heapq
import random
from collections import deque
from collections.abc import Callable
from operator import itemgetter

import structlog

from typing_coach.config import Settings
from typing_coach.content.library import CandidateRepository
from typing_coach.engine.weakness_bias import bias_groups, compute_category_bias
from typing_coach.engine.weakness_tracker import WeaknessReport, WeaknessTrajectory
from typing_coach.models.difficulty import DifficultyProfile, rating_to_difficulty
from typing_coach.models.heatmap import SymbolGroup
from typing_coach.models.policy import SignalPolicy
from typing_coach.models.profile import Profile
from typing_coach.models.snippet import Snippet

logger = structlog.get_logger()

FALLBACK_ID = "fallback"
WEAK_CHAR_TOP_K = 3
TOPIC_TOP_K = 3

# Focus more on worsening and new weaknesses, less on improving ones
TRAJECTORY_MULTIPLIER: dict[WeaknessTrajectory, float] = {
    WeaknessTrajectory.WORSENING: 1.5,
    WeaknessTrajectory.NEW: 1.3,
    WeaknessTrajectory.STEADY: 1.0,
    WeaknessTrajectory.IMPROVING: 0.5,
}


def fallback_snippet(language: str) -> Snippet:
    """Placeholder returned when a language has no content at all."""
    return Snippet(
        id=FALLBACK_ID,
        language=language,
        title="No snippets available",
        code=f"// Add {language} snippets to the content library",
        difficulty=1,
    )


class SmartSnippetSelector:
    """Scores candidates and picks among the best few.

    Keeps a ring buffer of recently served ids so the same snippet doesn't
    come up twice in a row. Randomness comes from an injected generator.

    Args:
        repository: Source of candidate pools per language.
        settings: Engine settings holding the scoring weights.
        rng: Random generator for jitter and the top-K pick.
        policy: Signal policy gating category bias.
    """

    def __init__(
        self,
        repository: CandidateRepository,
        settings: Settings | None = None,
        rng: random.Random | None = None,
        policy: SignalPolicy | None = None,
    ):
        self.repository = repository
        self.settings = settings or Settings()
        self.rng = rng or random.Random()
        self.policy = policy or SignalPolicy()
        self._recent: deque[str] = deque(maxlen=self.settings.selection_recent_history)

    @property
    def recent_ids(self) -> list[str]:
        """Recently served snippet ids, oldest first."""
        return list(self._recent)

    def select_adaptive(
        self,
        language: str,
        profile: Profile,
        difficulty_profile: DifficultyProfile | None = None,
        weakness_report: WeaknessReport | None = None,
        policy: SignalPolicy | None = None,
        rng: random.Random | None = None,
    ) -> Snippet:
        """Pick the next snippet for a language.

        Without a difficulty profile the target tier comes from the user's
        rating. Returns a fallback snippet when the pool is empty.
        """
        rng = rng or self.rng
        policy = policy or self.policy

        pool = self.repository.get(language)
        if not pool:
            logger.warning("candidate_pool_empty", language=language)
            return fallback_snippet(language)

        recent = set(self._recent)
        candidates = [s for s in pool if s.id not in recent]
        if not candidates:
            # Everything was seen recently
            self._recent.clear()
            candidates = pool

        if difficulty_profile is not None:
            target = difficulty_profile.target_difficulty
        else:
            target = rating_to_difficulty(profile.get_rating(language))

        score_one = self._scorer(target, profile, weakness_report, policy, rng)
        scored = [(score_one(s), s) for s in candidates]
        top = heapq.nlargest(self.settings.selection_top_k, scored, key=itemgetter(0))
        score, selected = top[rng.randrange(len(top))]

        self._track(selected.id)
        logger.debug(
            "snippet_selected",
            language=language,
            snippet_id=selected.id,
            difficulty=selected.difficulty,
            target=target,
            score=round(score, 2),
            candidates=len(candidates),
        )
        return selected

    def score(
        self,
        snippet: Snippet,
        target_difficulty: int,
        profile: Profile,
        weakness_report: WeaknessReport | None,
        policy: SignalPolicy | None,
        rng: random.Random,
    ) -> float:
        """Score one candidate; higher is better."""
        return self._scorer(target_difficulty, profile, weakness_report, policy, rng)(snippet)

    def _scorer(
        self,
        target_difficulty: int,
        profile: Profile,
        weakness_report: WeaknessReport | None,
        policy: SignalPolicy | None,
        rng: random.Random,
    ) -> Callable[[Snippet], float]:
        """Build a scoring function with per-selection inputs resolved up front."""
        s = self.settings
        char_weights = self._weak_char_weights(profile, weakness_report)
        groups = bias_groups(
            profile.heatmap,
            policy,
            min_weak_groups=s.bias_min_weak_groups,
            group_threshold=s.bias_group_threshold,
            min_group_attempts=s.bias_min_group_attempts,
        )
        gap_weight = s.selection_difficulty_weight
        max_bias = s.bias_max
        bias_weight = s.bias_weight
        # Shorter snippets for beginners
        length_threshold = None
        if profile.level < s.selection_beginner_level:
            length_threshold = s.selection_length_threshold
        length_penalty = s.selection_length_penalty
        jitter = s.selection_jitter

        # Bonuses depend only on which characters a snippet contains
        bonus_by_chars: dict[frozenset[str], float] = {}
        bias_by_groups: dict[frozenset[SymbolGroup], float] = {}

        def score_one(snippet: Snippet) -> float:
            score = 100.0 - abs(snippet.difficulty - target_difficulty) * gap_weight
            if char_weights:
                specials = snippet.special_chars
                bonus = bonus_by_chars.get(specials)
                if bonus is None:
                    bonus = sum(char_weights.get(c, 0.0) for c in specials)
                    bonus_by_chars[specials] = bonus
                score += bonus
            if groups:
                present = snippet.symbol_groups
                bias = bias_by_groups.get(present)
                if bias is None:
                    bias = compute_category_bias(
                        snippet, weak=groups, max_bias=max_bias, weight=bias_weight
                    )
                    bias_by_groups[present] = bias
                score += bias
            if length_threshold is not None and len(snippet.code) > length_threshold:
                score -= length_penalty
            return score + rng.random() * jitter

        return score_one

    def weakness_bonus(
        self, snippet: Snippet, profile: Profile, weakness_report: WeaknessReport | None = None
    ) -> float:
        """Bonus for snippets exercising characters the user gets wrong.

        Uses heatmap error rates when there are any records, scaled by the
        report's trajectory for characters it lists. Falls back to the
        legacy weak-character set otherwise.
        """
        specials = snippet.special_chars
        weights = self._weak_char_weights(profile, weakness_report)
        return sum(weights.get(c, 0.0) for c in specials)

    def _weak_char_weights(
        self, profile: Profile, weakness_report: WeaknessReport | None
    ) -> dict[str, float]:
        """Per-character bonus a snippet earns for containing that character."""
        heatmap = profile.heatmap
        if not heatmap.records:
            return {c: self.settings.selection_legacy_weak_bonus for c in profile.weak_chars}

        trajectories: dict[str, WeaknessTrajectory] = {}
        if weakness_report is not None and weakness_report.has_data:
            trajectories = {item.character: item.trajectory for item in weakness_report.items}

        weights = {}
        for c, record in heatmap.records.items():
            rate = record.error_rate
            if rate > self.settings.selection_weak_char_threshold:
                multiplier = TRAJECTORY_MULTIPLIER.get(trajectories.get(c), 1.0)
                weights[c] = rate * self.settings.selection_weak_char_weight * multiplier
        return weights

    def select_for_weak_chars(
        self,
        language: str,
        profile: Profile,
        weak_chars: set[str],
        rng: random.Random | None = None,
    ) -> Snippet:
        """Pick a snippet containing as many of the given characters as possible."""
        rng = rng or self.rng
        pool = self.repository.get(language)
        if not pool:
            return fallback_snippet(language)

        scored = []
        for snippet in pool:
            specials = snippet.special_chars
            overlap = sum(1 for c in weak_chars if c in specials)
            if overlap > 0:
                scored.append((overlap, snippet))

        if not scored:
            return self.select_adaptive(language, profile, rng=rng)

        scored.sort(key=lambda pair: pair[0], reverse=True)
        top = scored[:WEAK_CHAR_TOP_K]
        return top[rng.randrange(len(top))][1]

    def select_by_topic(
        self,
        language: str,
        topic: str,
        profile: Profile,
        rng: random.Random | None = None,
    ) -> Snippet | None:
        """Pick a snippet tagged with a topic, near the user's rating tier."""
        rng = rng or self.rng
        topic = topic.lower()
        matches = [
            s for s in self.repository.get(language) if topic in (t.lower() for t in s.topics)
        ]
        if not matches:
            return None

        target = rating_to_difficulty(profile.get_rating(language))
        matches.sort(key=lambda s: abs(s.difficulty - target))
        return matches[rng.randrange(min(TOPIC_TOP_K, len(matches)))]

    def _track(self, snippet_id: str) -> None:
        if snippet_id and self._recent.maxlen:
            self._recent.append(snippet_id)
