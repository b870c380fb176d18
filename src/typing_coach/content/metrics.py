"""Code metrics and heuristic difficulty for content without authored tiers."""

from typing_coach.models.difficulty import MAX_TIER, MIN_TIER
from typing_coach.models.snippet import CodeMetrics

INDENT_WIDTH = 4
MAX_RAW_SCORE = 9


def _indent_depth(line: str) -> int:
    columns = 0
    for c in line:
        if c == " ":
            columns += 1
        elif c == "\t":
            columns += INDENT_WIDTH
        else:
            break
    return columns // INDENT_WIDTH


def compute_metrics(code: str) -> CodeMetrics:
    """Measure line count, symbol density and indentation depth.

    Args:
        code: Normalized code.

    Returns:
        CodeMetrics for the code.
    """
    lines = [line for line in code.split("\n") if line.strip()]
    visible = [c for c in code if not c.isspace()]
    symbols = sum(1 for c in visible if not c.isalnum())

    return CodeMetrics(
        lines=len(lines),
        characters=len(code),
        symbol_density=symbols / len(visible) if visible else 0.0,
        max_indent_depth=max((_indent_depth(line) for line in lines), default=0),
    )


def raw_score(metrics: CodeMetrics) -> int:
    """Structural complexity score in [0, 9]."""
    if metrics.lines < 5:
        line_score = 0
    elif metrics.lines < 15:
        line_score = 1
    elif metrics.lines < 30:
        line_score = 2
    else:
        line_score = 3

    if metrics.symbol_density < 0.15:
        density_score = 0
    elif metrics.symbol_density < 0.25:
        density_score = 1
    elif metrics.symbol_density < 0.35:
        density_score = 2
    else:
        density_score = 3

    if metrics.max_indent_depth < 2:
        indent_score = 0
    elif metrics.max_indent_depth < 4:
        indent_score = 1
    elif metrics.max_indent_depth < 6:
        indent_score = 2
    else:
        indent_score = 3

    return line_score + density_score + indent_score


def score_to_tier(score: int) -> int:
    """Map a raw score in [0, 9] onto tiers 1-7; every tier is reachable."""
    score = max(0, min(MAX_RAW_SCORE, score))
    tier = MIN_TIER + round(score * (MAX_TIER - MIN_TIER) / MAX_RAW_SCORE)
    return max(MIN_TIER, min(MAX_TIER, tier))


def estimate_difficulty(metrics: CodeMetrics) -> int:
    return score_to_tier(raw_score(metrics))
