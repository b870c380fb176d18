"""Tests for session mix planning."""

import random
from collections import Counter

import pytest

from typing_coach.config import Settings
from typing_coach.content.library import ContentLibrary
from typing_coach.engine.planner import (
    _mix_reason,
    category_to_difficulty,
    choose_category,
    format_reason,
    plan_next,
)
from typing_coach.engine.selector import SmartSnippetSelector
from typing_coach.models.difficulty import DifficultyProfile
from typing_coach.models.session import MixCategory, SessionPlan


@pytest.fixture
def selector(library):
    return SmartSnippetSelector(library, Settings(selection_jitter=0, selection_top_k=1), random.Random(3))


class TestChooseCategory:
    def test_distribution(self):
        rng = random.Random(2024)
        counts = Counter(choose_category(rng) for _ in range(10_000))
        assert 4500 <= counts[MixCategory.TARGET] <= 5500
        assert 2500 <= counts[MixCategory.REVIEW] <= 3500
        assert 1500 <= counts[MixCategory.STRETCH] <= 2500

    def test_boundaries(self):
        class Fixed(random.Random):
            def __init__(self, value):
                super().__init__()
                self.value = value

            def random(self):
                return self.value

        assert choose_category(Fixed(0.0)) == MixCategory.TARGET
        assert choose_category(Fixed(0.49)) == MixCategory.TARGET
        assert choose_category(Fixed(0.5)) == MixCategory.REVIEW
        assert choose_category(Fixed(0.79)) == MixCategory.REVIEW
        assert choose_category(Fixed(0.8)) == MixCategory.STRETCH


class TestCategoryToDifficulty:
    @pytest.mark.parametrize(
        "category,comfort,expected",
        [
            (MixCategory.REVIEW, 4, 3),
            (MixCategory.STRETCH, 4, 5),
            (MixCategory.TARGET, 4, 4),
            (MixCategory.REVIEW, 1, 1),
            (MixCategory.STRETCH, 7, 7),
        ],
    )
    def test_mapping(self, category, comfort, expected):
        assert category_to_difficulty(category, comfort) == expected


class TestPlanNext:
    def test_manual_lock_wins(self, selector, profile):
        snippet, plan = plan_next(
            selector, "python", profile, DifficultyProfile.pinned(4), manual_lock=6, is_yoyoing=True
        )
        assert plan.category == MixCategory.TARGET
        assert plan.target_difficulty == 6
        assert plan.actual_difficulty == snippet.difficulty == 6
        assert plan.comfort_zone == 4
        assert plan.reason == "Manual lock at D6"

    def test_manual_lock_clamped(self, selector, profile):
        _, plan = plan_next(selector, "python", profile, manual_lock=12)
        assert plan.target_difficulty == 7
        assert plan.reason == "Manual lock at D7"

    def test_yoyo_stabilizes_at_comfort(self, selector, profile):
        snippet, plan = plan_next(selector, "python", profile, DifficultyProfile.pinned(5), is_yoyoing=True)
        assert plan.category == MixCategory.TARGET
        assert snippet.difficulty == 5
        assert plan.reason == "Stabilizing at D5 (yo-yo detected)"

    def test_yoyo_without_comfort_zone(self, selector, profile):
        _, plan = plan_next(selector, "python", profile, None, is_yoyoing=True)
        assert plan.reason == "Establishing comfort zone"

    def test_no_comfort_zone(self, selector, profile):
        snippet, plan = plan_next(selector, "python", profile)
        assert plan.category == MixCategory.TARGET
        assert plan.comfort_zone is None
        assert plan.target_difficulty == 3
        assert snippet.difficulty == 3

    def test_mix_follows_category(self, selector, profile):
        rng = random.Random(11)
        seen = set()
        for _ in range(40):
            snippet, plan = plan_next(selector, "python", profile, DifficultyProfile.pinned(4), rng=rng)
            assert plan.target_difficulty == category_to_difficulty(plan.category, 4)
            assert plan.actual_difficulty == snippet.difficulty
            seen.add(plan.category)
        assert seen == set(MixCategory)

    def test_nearest_tier_annotated(self, profile):
        lib = ContentLibrary()
        lib.add_builtin("python", "x = 1", legacy_id="only", difficulty=2)
        selector = SmartSnippetSelector(lib, rng=random.Random(0))
        rng = random.Random(0)
        for _ in range(20):
            _, plan = plan_next(selector, "python", profile, DifficultyProfile.pinned(5), rng=rng)
            assert plan.actual_difficulty == 2
            assert f"(nearest to D{plan.target_difficulty})" in plan.reason


class TestReasons:
    @pytest.mark.parametrize(
        "category,target,actual,expected",
        [
            (MixCategory.REVIEW, 3, 3, "Reinforcing D3 mastery"),
            (MixCategory.REVIEW, 3, 2, "Reinforcing D2 (nearest to D3)"),
            (MixCategory.STRETCH, 5, 5, "Stretching to D5"),
            (MixCategory.STRETCH, 5, 4, "Stretching to D4 (nearest to D5)"),
            (MixCategory.TARGET, 4, 4, "Practicing at D4"),
            (MixCategory.TARGET, 4, 6, "Practicing at D6 (nearest to D4)"),
        ],
    )
    def test_mix_reason(self, category, target, actual, expected):
        assert _mix_reason(category, target, actual) == expected

    def test_format_with_comfort_zone(self):
        plan = SessionPlan(category=MixCategory.TARGET, target_difficulty=4, actual_difficulty=4, comfort_zone=4)
        assert format_reason(plan) == "\U0001f3af Target: D4 — at your comfort zone"

    def test_format_review_and_stretch(self):
        review = SessionPlan(category=MixCategory.REVIEW, target_difficulty=3, actual_difficulty=3, comfort_zone=4)
        stretch = SessionPlan(category=MixCategory.STRETCH, target_difficulty=5, actual_difficulty=5, comfort_zone=4)
        assert format_reason(review) == "\U0001f504 Review: D3 — reinforcing familiar patterns"
        assert format_reason(stretch) == "\U0001f4aa Stretch: D5 — pushing toward growth"

    def test_format_without_comfort_zone(self):
        plan = SessionPlan(
            category=MixCategory.TARGET,
            target_difficulty=3,
            actual_difficulty=3,
            reason="Establishing comfort zone",
        )
        assert format_reason(plan) == "\U0001f3af Target: Establishing comfort zone"
