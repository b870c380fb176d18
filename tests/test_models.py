"""Tests for profile, history, policy, session and difficulty models."""

import math
from datetime import datetime, timedelta

import pytest
from pydantic import ValidationError

from conftest import fill_heatmap
from typing_coach.models.difficulty import DifficultyProfile, rating_to_difficulty
from typing_coach.models.heatmap import SymbolGroup
from typing_coach.models.history import LanguageTrend, LongitudinalData
from typing_coach.models.policy import SignalPolicy
from typing_coach.models.profile import MAX_RATING, MIN_RATING, Profile, xp_needed_for_next
from typing_coach.models.session import MixCategory, SessionPlan, SessionRecord
from typing_coach.models.snippet import ContentSource, Snippet


class TestProfile:
    def test_defaults(self):
        profile = Profile()
        assert profile.level == 1
        assert profile.get_rating("Python") == 1200
        assert profile.get_rating("haskell") == 1200

    def test_add_xp_levels_up(self):
        profile = Profile()
        profile.add_xp(xp_needed_for_next(1) + 10)
        assert profile.level == 2
        assert profile.xp == 10

    def test_negative_xp_ignored(self):
        profile = Profile()
        profile.add_xp(-50)
        assert profile.xp == 0

    @pytest.mark.parametrize(
        "accuracy,wpm,delta",
        [(99, 70, 25), (96, 50, 15), (92, 20, 5), (85, 30, 0), (70, 30, -10)],
    )
    def test_update_rating_bands(self, accuracy, wpm, delta):
        profile = Profile()
        assert profile.update_rating("python", accuracy, wpm) == delta
        assert profile.get_rating("python") == 1200 + delta

    def test_rating_clamped(self):
        profile = Profile(rating_by_language={"python": MAX_RATING - 5, "java": MIN_RATING + 5})
        assert profile.update_rating("python", 100, 100) == 5
        assert profile.update_rating("java", 50, 10) == -5
        assert profile.get_rating("python") == MAX_RATING
        assert profile.get_rating("java") == MIN_RATING

    def test_legacy_weak_chars_follow_heatmap(self):
        profile = Profile()
        profile.record_miss("{", "[")
        profile.record_miss("a", "s")
        assert profile.weak_chars == {"{"}
        for _ in range(10):
            profile.record_hit("{")
        assert "{" not in profile.weak_chars


class TestRatingToDifficulty:
    @pytest.mark.parametrize(
        "rating,tier",
        [(800, 1), (999, 1), (1000, 2), (1099, 2), (1100, 3), (1200, 3), (1300, 4), (1500, 5), (1700, 6), (1900, 7), (2000, 7)],
    )
    def test_tiers(self, rating, tier):
        assert rating_to_difficulty(rating) == tier

    def test_monotonic(self):
        tiers = [rating_to_difficulty(r) for r in range(800, 2001, 10)]
        assert tiers == sorted(tiers)


class TestDifficultyProfile:
    def test_band_order_enforced(self):
        with pytest.raises(ValidationError):
            DifficultyProfile(target_difficulty=3, min_difficulty=4, max_difficulty=5)

    def test_tier_bounds_enforced(self):
        with pytest.raises(ValidationError):
            DifficultyProfile(target_difficulty=8, min_difficulty=7, max_difficulty=8)

    def test_pinned_clamps_band(self):
        profile = DifficultyProfile.pinned(1)
        assert (profile.min_difficulty, profile.target_difficulty, profile.max_difficulty) == (1, 1, 2)
        profile = DifficultyProfile.pinned(9)
        assert (profile.min_difficulty, profile.target_difficulty, profile.max_difficulty) == (6, 7, 7)
        assert profile.confidence == 1.0


class TestSignalPolicy:
    def test_off_by_default(self):
        policy = SignalPolicy()
        assert not policy.effective_selection_bias
        assert not policy.effective_difficulty_influence
        assert not policy.effective_xp_influence

    def test_flag_without_guided_mode_is_inert(self):
        assert not SignalPolicy(signals_affect_selection=True).effective_selection_bias

    def test_enable_guided_mode(self):
        policy = SignalPolicy()
        policy.enable_guided_mode()
        assert policy.effective_selection_bias
        assert not policy.effective_difficulty_influence
        policy.disable_guided_mode()
        assert not policy.effective_selection_bias


class TestSnippet:
    def test_special_chars(self):
        snippet = Snippet(id="s", language="python", code="x = {'a': 1}\n")
        assert snippet.special_chars == {"=", "{", "'", ":", "}"}
        assert snippet.special_chars is snippet.special_chars

    def test_symbol_groups(self):
        snippet = Snippet(id="s", language="python", code="f(x) = 1;")
        assert snippet.symbol_groups == {
            SymbolGroup.LETTER,
            SymbolGroup.BRACKET,
            SymbolGroup.WHITESPACE,
            SymbolGroup.OPERATOR,
            SymbolGroup.DIGIT,
            SymbolGroup.PUNCTUATION,
        }

    def test_estimated_seconds(self):
        snippet = Snippet(id="s", language="python", code="x" * 200)
        assert snippet.estimated_seconds == 60

    def test_labels_and_source(self):
        snippet = Snippet(id="s", language="go", code="x", difficulty=7, source=ContentSource.CORPUS)
        assert snippet.difficulty_label == "Expert"
        assert snippet.is_user_authored

    def test_difficulty_range(self):
        with pytest.raises(ValidationError):
            Snippet(id="s", language="go", code="x", difficulty=0)


class TestSessionModels:
    def test_plan_is_frozen(self):
        plan = SessionPlan(category=MixCategory.REVIEW, target_difficulty=3, actual_difficulty=3)
        with pytest.raises(ValidationError):
            plan.reason = "changed"

    def test_record_defaults(self):
        record = SessionRecord(language="python", wpm=40, accuracy=97)
        assert len(record.session_id) == 32
        assert record.is_perfect


class TestLanguageTrend:
    def test_record_newest_first_and_rounded(self):
        trend = LanguageTrend()
        now = datetime(2026, 3, 1)
        trend.record_session(40.04, 90.0, now)
        trend.record_session(45.06, 95.0, now + timedelta(hours=1))
        assert trend.recent_wpm == [45.1, 40.0]
        assert trend.total_sessions == 2
        assert trend.first_session_at == now
        assert trend.last_session_at == now + timedelta(hours=1)

    def test_series_capped(self):
        trend = LanguageTrend()
        for i in range(60):
            trend.record_session(float(i), 90.0, datetime(2026, 3, 1), cap=50)
        assert len(trend.recent_wpm) == 50
        assert trend.recent_wpm[0] == 59.0
        assert trend.total_sessions == 60

    @pytest.mark.parametrize(
        "wpm,accuracy",
        [(math.nan, 90.0), (math.inf, 90.0), (-1.0, 90.0), (40.0, 101.0), (40.0, math.nan)],
    )
    def test_invalid_samples_dropped(self, wpm, accuracy):
        trend = LanguageTrend()
        assert trend.record_session(wpm, accuracy, datetime(2026, 3, 1)) is False
        assert trend.recent_wpm == []
        assert trend.total_sessions == 0

    def test_invalid_persisted_values_sanitized(self):
        trend = LanguageTrend.model_validate(
            {"recent_wpm": [40.0, float("nan"), -3.0, 50.0], "recent_accuracy": [90.0, 150.0]}
        )
        assert trend.recent_wpm == [40.0]
        assert trend.recent_accuracy == [90.0]

    def test_bad_value_drops_whole_session(self):
        trend = LanguageTrend.model_validate(
            {
                "recent_wpm": [60.0, float("nan"), 40.0, 30.0],
                "recent_accuracy": [98.0, 95.0, 120.0, 88.0],
            }
        )
        assert list(zip(trend.recent_wpm, trend.recent_accuracy)) == [(60.0, 98.0), (30.0, 88.0)]

    def test_averages(self):
        trend = LanguageTrend(recent_wpm=[50.0, 40.0, 30.0], recent_accuracy=[90.0, 80.0, 70.0])
        assert trend.average_wpm(2) == pytest.approx(45.0)
        assert trend.average_accuracy(10) == pytest.approx(80.0)
        assert LanguageTrend().average_wpm() is None


class TestLongitudinalData:
    def test_record_session_creates_trend(self):
        data = LongitudinalData()
        record = SessionRecord(language="Python", wpm=42.0, accuracy=96.0)
        assert data.record_session(record)
        assert "python" in data.trends_by_language
        assert data.session_timestamps == [record.completed_at]

    def test_missing_language_is_unknown(self):
        data = LongitudinalData()
        data.record_session(SessionRecord(language="", wpm=42.0, accuracy=96.0))
        assert "unknown" in data.trends_by_language

    @pytest.mark.parametrize("wpm,accuracy", [(math.nan, 95.0), (40.0, 130.0)])
    def test_rejected_session_leaves_no_timestamp(self, wpm, accuracy):
        data = LongitudinalData()
        assert not data.record_session(SessionRecord(language="python", wpm=wpm, accuracy=accuracy))
        assert data.session_timestamps == []
        assert data.trends_by_language["python"].total_sessions == 0

    def test_timestamps_capped(self):
        data = LongitudinalData()
        for _ in range(5):
            data.record_session(SessionRecord(language="go", wpm=30, accuracy=90), timestamp_cap=3)
        assert len(data.session_timestamps) == 3

    def test_snapshot_once_per_day(self):
        data = LongitudinalData()
        profile = Profile()
        fill_heatmap(profile, "{", hits=3, misses=2)
        morning = datetime(2026, 3, 1, 9)
        snapshot = data.maybe_snapshot_weakness("python", profile.heatmap, now=morning)
        assert snapshot is not None
        assert snapshot.top_weaknesses[0].character == "{"
        assert snapshot.top_weaknesses[0].error_rate == 0.4
        assert data.maybe_snapshot_weakness("python", profile.heatmap, now=morning + timedelta(hours=5)) is None
        assert data.maybe_snapshot_weakness("java", profile.heatmap, now=morning) is not None
        assert data.maybe_snapshot_weakness("python", profile.heatmap, now=morning + timedelta(days=1)) is not None
        assert len(data.weakness_snapshots) == 3

    def test_no_snapshot_without_weaknesses(self):
        data = LongitudinalData()
        profile = Profile()
        fill_heatmap(profile, "{", hits=10, misses=0)
        assert data.maybe_snapshot_weakness("python", profile.heatmap) is None

    def test_snapshot_history_capped(self):
        data = LongitudinalData()
        profile = Profile()
        fill_heatmap(profile, ";", hits=5, misses=5)
        start = datetime(2026, 1, 1)
        for day in range(5):
            data.maybe_snapshot_weakness("python", profile.heatmap, now=start + timedelta(days=day), cap=3)
        assert len(data.weakness_snapshots) == 3
        assert data.weakness_snapshots[0].captured_at == start + timedelta(days=2)
        assert data.snapshots_for("python")[0].captured_at == start + timedelta(days=4)
