"""Bounded selection bias toward the user's weak symbol categories.

Hard constraints: never changes the difficulty band or the language, the
bonus is capped, and at least two categories must be weak before any bias
applies so practice doesn't hammer one narrow weakness.
"""

from typing_coach.models.heatmap import MistakeHeatmap, SymbolGroup
from typing_coach.models.policy import SignalPolicy
from typing_coach.models.snippet import Snippet

MAX_BIAS = 15.0
MIN_WEAK_GROUPS = 2
WEAK_GROUP_THRESHOLD = 0.10
MIN_GROUP_ATTEMPTS = 10
BIAS_WEIGHT = 10.0


def weak_groups(
    heatmap: MistakeHeatmap,
    min_attempts: int = MIN_GROUP_ATTEMPTS,
    threshold: float = WEAK_GROUP_THRESHOLD,
) -> dict[SymbolGroup, float]:
    """Weak symbol groups mapped to their error rates."""
    return {
        g.group: g.error_rate
        for g in heatmap.get_weakest_groups(min_attempts=min_attempts)
        if g.error_rate >= threshold
    }



def bias_groups(
    heatmap: MistakeHeatmap,
    policy: SignalPolicy | None,
    *,
    min_weak_groups: int = MIN_WEAK_GROUPS,
    group_threshold: float = WEAK_GROUP_THRESHOLD,
    min_group_attempts: int = MIN_GROUP_ATTEMPTS,
) -> dict[SymbolGroup, float]:
    """Weak groups eligible for bias, or an empty map when no bias applies.

    Empty unless the policy enables selection bias and the diversity guard
    passes. Compute once per selection and pass to every candidate.
    """
    if policy is None or not policy.effective_selection_bias:
        return {}

    weak = weak_groups(heatmap, min_attempts=min_group_attempts, threshold=group_threshold)
    if len(weak) < min_weak_groups:
        return {}
    return weak


def compute_category_bias(
    snippet: Snippet,
    heatmap: MistakeHeatmap | None = None,
    policy: SignalPolicy | None = None,
    *,
    weak: dict[SymbolGroup, float] | None = None,
    max_bias: float = MAX_BIAS,
    min_weak_groups: int = MIN_WEAK_GROUPS,
    group_threshold: float = WEAK_GROUP_THRESHOLD,
    min_group_attempts: int = MIN_GROUP_ATTEMPTS,
    weight: float = BIAS_WEIGHT,
) -> float:
    """Category-level bonus for a snippet in [0, max_bias].

    Returns 0.0 unless the policy enables selection bias and the diversity
    guard passes. Each weak group present in the code contributes once.
    ``weak`` takes the result of :func:`bias_groups` and skips both checks.
    """
    if weak is None:
        if heatmap is None:
            return 0.0
        weak = bias_groups(
            heatmap,
            policy,
            min_weak_groups=min_weak_groups,
            group_threshold=group_threshold,
            min_group_attempts=min_group_attempts,
        )
    if not weak:
        return 0.0

    total = sum(rate for group, rate in weak.items() if group in snippet.symbol_groups) * weight
    return max(0.0, min(total, max_bias))
