"""Session mix planning: Target, Review or Stretch.

Target sits at the comfort zone, Review one tier below to reinforce mastery,
Stretch one tier above as a gentle push. The actual pick is delegated to the
selector; the returned SessionPlan is display metadata only.
"""

import random

import structlog

from typing_coach.engine.selector import SmartSnippetSelector
from typing_coach.engine.weakness_tracker import WeaknessReport
from typing_coach.models.difficulty import (
    MAX_TIER,
    MIN_TIER,
    DifficultyProfile,
    clamp_tier,
    rating_to_difficulty,
)
from typing_coach.models.policy import SignalPolicy
from typing_coach.models.profile import Profile
from typing_coach.models.session import MixCategory, SessionPlan
from typing_coach.models.snippet import Snippet

logger = structlog.get_logger()

TARGET_WEIGHT = 0.50
REVIEW_WEIGHT = 0.30
# Stretch takes the remaining 0.20

CATEGORY_ICONS: dict[MixCategory, str] = {
    MixCategory.TARGET: "\U0001f3af",
    MixCategory.REVIEW: "\U0001f504",
    MixCategory.STRETCH: "\U0001f4aa",
}


def choose_category(
    rng: random.Random,
    target_weight: float = TARGET_WEIGHT,
    review_weight: float = REVIEW_WEIGHT,
) -> MixCategory:
    """Draw a mix category with a single uniform roll."""
    roll = rng.random()
    if roll < target_weight:
        return MixCategory.TARGET
    if roll < target_weight + review_weight:
        return MixCategory.REVIEW
    return MixCategory.STRETCH


def category_to_difficulty(category: MixCategory, comfort_zone: int) -> int:
    """Tier for a category relative to the comfort zone, clamped to 1-7."""
    if category == MixCategory.REVIEW:
        return max(MIN_TIER, comfort_zone - 1)
    if category == MixCategory.STRETCH:
        return min(MAX_TIER, comfort_zone + 1)
    return comfort_zone


def plan_next(
    selector: SmartSnippetSelector,
    language: str,
    profile: Profile,
    difficulty_profile: DifficultyProfile | None = None,
    weakness_report: WeaknessReport | None = None,
    manual_lock: int | None = None,
    is_yoyoing: bool = False,
    rng: random.Random | None = None,
    policy: SignalPolicy | None = None,
) -> tuple[Snippet, SessionPlan]:
    """Plan and select the next snippet.

    Precedence: manual lock, then yo-yo stabilization (needs a comfort
    zone), then plain Target while no comfort zone exists, then a drawn
    mix category.

    Returns:
        The selected snippet and the plan explaining the choice.
    """
    rng = rng or selector.rng
    comfort_zone = difficulty_profile.target_difficulty if difficulty_profile else None

    def pick(profile_for_pick: DifficultyProfile | None) -> Snippet:
        return selector.select_adaptive(
            language, profile, profile_for_pick, weakness_report, policy=policy, rng=rng
        )

    if manual_lock is not None:
        locked = clamp_tier(manual_lock)
        snippet = pick(DifficultyProfile.pinned(locked))
        plan = SessionPlan(
            category=MixCategory.TARGET,
            target_difficulty=locked,
            actual_difficulty=snippet.difficulty,
            comfort_zone=comfort_zone,
            reason=f"Manual lock at D{locked}",
        )
    elif is_yoyoing and comfort_zone is not None:
        snippet = pick(DifficultyProfile.pinned(comfort_zone))
        plan = SessionPlan(
            category=MixCategory.TARGET,
            target_difficulty=comfort_zone,
            actual_difficulty=snippet.difficulty,
            comfort_zone=comfort_zone,
            reason=f"Stabilizing at D{comfort_zone} (yo-yo detected)",
        )
    elif comfort_zone is None:
        snippet = pick(None)
        plan = SessionPlan(
            category=MixCategory.TARGET,
            target_difficulty=rating_to_difficulty(profile.get_rating(language)),
            actual_difficulty=snippet.difficulty,
            comfort_zone=None,
            reason="Establishing comfort zone",
        )
    else:
        settings = selector.settings
        category = choose_category(rng, settings.planner_target_weight, settings.planner_review_weight)
        target = category_to_difficulty(category, comfort_zone)
        snippet = pick(DifficultyProfile.pinned(target))
        plan = SessionPlan(
            category=category,
            target_difficulty=target,
            actual_difficulty=snippet.difficulty,
            comfort_zone=comfort_zone,
            reason=_mix_reason(category, target, snippet.difficulty),
        )

    logger.info(
        "session_planned",
        language=language,
        category=plan.category.value,
        target=plan.target_difficulty,
        actual=plan.actual_difficulty,
        snippet_id=snippet.id,
    )
    return snippet, plan


def _mix_reason(category: MixCategory, target: int, actual: int) -> str:
    if actual != target:
        verb = {
            MixCategory.REVIEW: "Reinforcing",
            MixCategory.STRETCH: "Stretching to",
        }.get(category, "Practicing at")
        return f"{verb} D{actual} (nearest to D{target})"
    if category == MixCategory.REVIEW:
        return f"Reinforcing D{target} mastery"
    if category == MixCategory.STRETCH:
        return f"Stretching to D{target}"
    return f"Practicing at D{target}"


def format_reason(plan: SessionPlan) -> str:
    """One-line display string for why a snippet was picked."""
    icon = CATEGORY_ICONS.get(plan.category, "•")
    label = plan.category.value.capitalize()

    if plan.comfort_zone is None:
        return f"{icon} {label}: {plan.reason}"
    if plan.category == MixCategory.REVIEW:
        return f"{icon} {label}: D{plan.target_difficulty} — reinforcing familiar patterns"
    if plan.category == MixCategory.STRETCH:
        return f"{icon} {label}: D{plan.target_difficulty} — pushing toward growth"
    return f"{icon} {label}: D{plan.target_difficulty} — at your comfort zone"
