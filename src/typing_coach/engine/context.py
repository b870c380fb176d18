"""Per-profile engine context.

One PracticeEngine per user profile owns every component and the mutable
state they share. Keystroke and session-complete events mutate state under a
lock; snippet selection reads under the same lock so the next pick always
sees the latest statistics.
"""

import random
import threading
from datetime import datetime

import structlog
from pydantic import BaseModel

from typing_coach.config import Settings
from typing_coach.content.library import CandidateRepository, ContentLibrary
from typing_coach.engine.difficulty import AdaptiveDifficultyEngine
from typing_coach.engine.planner import plan_next
from typing_coach.engine.selector import SmartSnippetSelector
from typing_coach.engine.trend_analyzer import TrendAnalyzer
from typing_coach.engine.weakness_tracker import WeaknessReport, WeaknessTracker
from typing_coach.models.difficulty import DifficultyProfile, DifficultyReason
from typing_coach.models.history import LongitudinalData, WeaknessSnapshot
from typing_coach.models.policy import SignalPolicy
from typing_coach.models.profile import Profile
from typing_coach.models.session import SessionPlan, SessionRecord
from typing_coach.models.snippet import Snippet

logger = structlog.get_logger()


class ProgressSnapshot(BaseModel):
    """Live counters for the session in progress."""

    correct: bool
    typed_chars: int
    errors: int
    accuracy: float


class SessionOutcome(BaseModel):
    """Everything that changed when a session was folded in."""

    record: SessionRecord
    rating_delta: int
    rating: int
    trend_recorded: bool
    snapshot: WeaknessSnapshot | None = None


class PracticeEngine:
    """Synchronous host contract for the adaptive selection engine.

    Args:
        settings: Engine settings shared by every component.
        profile: The user's profile; mutated in place.
        longitudinal: The user's cross-session data; mutated in place.
        repository: Candidate pools; an empty ContentLibrary if omitted.
        policy: Signal policy; everything off if omitted.
        rng: Random generator for every stochastic choice.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        profile: Profile | None = None,
        longitudinal: LongitudinalData | None = None,
        repository: CandidateRepository | None = None,
        policy: SignalPolicy | None = None,
        rng: random.Random | None = None,
    ):
        self.settings = settings or Settings()
        self.profile = profile or Profile()
        self.profile.heatmap.buffer_capacity = self.settings.heatmap_buffer_capacity
        self.longitudinal = longitudinal or LongitudinalData()
        self.repository = repository if repository is not None else ContentLibrary(self.settings)
        self.policy = policy or SignalPolicy()
        self.rng = rng or random.Random()

        self.trend_analyzer = TrendAnalyzer(self.settings)
        self.difficulty_engine = AdaptiveDifficultyEngine(self.settings, self.trend_analyzer)
        self.weakness_tracker = WeaknessTracker(self.settings, self.trend_analyzer)
        self.selector = SmartSnippetSelector(self.repository, self.settings, self.rng, self.policy)

        self._lock = threading.RLock()
        self._typed = 0
        self._errors = 0

    def on_keystroke(self, expected: str, actual: str | None = None) -> ProgressSnapshot:
        """Record one typed character against the expected one."""
        correct = actual is None or actual == expected
        with self._lock:
            if correct:
                self.profile.record_hit(expected)
            else:
                self.profile.record_miss(expected, actual)
                self._errors += 1
            self._typed += 1
            return ProgressSnapshot(
                correct=correct,
                typed_chars=self._typed,
                errors=self._errors,
                accuracy=self._live_accuracy(),
            )

    def on_session_complete(
        self,
        language: str,
        wpm: float,
        accuracy: float,
        snippet_id: str = "",
        duration_seconds: float = 0.0,
        plan: SessionPlan | None = None,
        xp_earned: int = 0,
        completed_at: datetime | None = None,
    ) -> SessionOutcome:
        """Fold a finished session into rating, trends and weakness history."""
        with self._lock:
            record = SessionRecord(
                completed_at=completed_at or datetime.now(),
                snippet_id=snippet_id,
                language=language,
                wpm=wpm,
                accuracy=accuracy,
                error_count=self._errors,
                total_chars=self._typed,
                duration_seconds=duration_seconds,
                plan=plan,
            )

            delta = self.profile.update_rating(language, accuracy, wpm)
            self.profile.add_xp(xp_earned)
            recorded = self.longitudinal.record_session(
                record,
                series_cap=self.settings.trend_series_cap,
                timestamp_cap=self.settings.session_timestamp_cap,
            )
            snapshot = self.longitudinal.maybe_snapshot_weakness(
                language,
                self.profile.heatmap,
                now=record.completed_at,
                min_attempts=self.settings.snapshot_min_attempts,
                cap=self.settings.snapshot_cap,
            )
            self.profile.heatmap.prune()
            self._typed = 0
            self._errors = 0

            logger.info(
                "session_completed",
                language=language,
                wpm=wpm,
                accuracy=accuracy,
                rating_delta=delta,
                trend_recorded=recorded,
            )
            return SessionOutcome(
                record=record,
                rating_delta=delta,
                rating=self.profile.get_rating(language),
                trend_recorded=recorded,
                snapshot=snapshot,
            )

    def difficulty_for(self, language: str) -> DifficultyProfile:
        with self._lock:
            return self.difficulty_engine.compute_difficulty(language, self.profile, self.longitudinal)

    def weakness_report(self, language: str) -> WeaknessReport:
        with self._lock:
            return self.weakness_tracker.get_report(language, self.profile.heatmap, self.longitudinal)

    def next_snippet(
        self,
        language: str,
        manual_lock: int | None = None,
        is_yoyoing: bool = False,
    ) -> tuple[Snippet, SessionPlan]:
        """Plan and select the next snippet for a language."""
        with self._lock:
            difficulty = self.difficulty_for(language)
            report = self.weakness_report(language)
            # A rating-only profile doesn't establish a comfort zone
            comfort = None if difficulty.reason == DifficultyReason.STATIC else difficulty
            return plan_next(
                self.selector,
                language,
                self.profile,
                difficulty_profile=comfort,
                weakness_report=report,
                manual_lock=manual_lock,
                is_yoyoing=is_yoyoing,
                rng=self.rng,
                policy=self.policy,
            )

    def _live_accuracy(self) -> float:
        if self._typed == 0:
            return 100.0
        return round((self._typed - self._errors) / self._typed * 100, 1)
