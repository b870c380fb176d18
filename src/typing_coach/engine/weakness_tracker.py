"""Weakness reports that acknowledge progress.

Rather than "you're bad at '{'", the report says "'{' is improving (was 40%
errors, now 25%)" by comparing the live heatmap with historical snapshots.
"""

from enum import StrEnum

from pydantic import BaseModel, Field

from typing_coach.config import Settings
from typing_coach.engine.trend_analyzer import TrendAnalyzer
from typing_coach.models.heatmap import MistakeHeatmap, SymbolGroup
from typing_coach.models.history import LongitudinalData, normalize_language


class WeaknessTrajectory(StrEnum):
    """Direction a weakness is moving."""

    IMPROVING = "improving"
    STEADY = "steady"
    WORSENING = "worsening"
    NEW = "new"  # no historical comparison available


# Higher = more urgent
TRAJECTORY_PRIORITY: dict[WeaknessTrajectory, int] = {
    WeaknessTrajectory.WORSENING: 4,
    WeaknessTrajectory.NEW: 3,
    WeaknessTrajectory.STEADY: 2,
    WeaknessTrajectory.IMPROVING: 1,
}


class WeaknessItem(BaseModel):
    """A current weakness with trajectory context."""

    character: str
    current_error_rate: float
    total_attempts: int
    total_misses: int
    group: SymbolGroup
    top_confusion: str | None = None
    previous_error_rate: float | None = None
    improvement: float | None = None
    trajectory: WeaknessTrajectory = WeaknessTrajectory.NEW


class ResolvedWeakness(BaseModel):
    """A character that dropped out of the weak list between snapshots."""

    character: str
    old_error_rate: float
    current_error_rate: float


class WeaknessReport(BaseModel):
    language: str
    has_data: bool = False
    items: list[WeaknessItem] = Field(default_factory=list)
    resolved_weaknesses: list[ResolvedWeakness] = Field(default_factory=list)
    improving_count: int = 0
    worsening_count: int = 0
    steady_count: int = 0
    summary: str = "No weakness data yet"


class WeaknessTracker:
    """Combines the current heatmap with snapshot history.

    Args:
        settings: Engine settings holding the trajectory thresholds.
        trend_analyzer: Shared analyzer; one is created if omitted.
    """

    def __init__(self, settings: Settings | None = None, trend_analyzer: TrendAnalyzer | None = None):
        self.settings = settings or Settings()
        self.trend_analyzer = trend_analyzer or TrendAnalyzer(self.settings)

    def get_report(
        self, language: str, heatmap: MistakeHeatmap, longitudinal: LongitudinalData
    ) -> WeaknessReport:
        """Build an enriched weakness report for a language."""
        lang = normalize_language(language)
        current = heatmap.get_weakest(
            count=self.settings.weakness_top_count,
            min_attempts=self.settings.weakness_min_attempts,
        )
        if not current:
            return WeaknessReport(language=lang)

        changes = self.trend_analyzer.compare_recent_snapshots(longitudinal, lang)
        change_map = {c.character: c for c in changes}

        items = []
        for weakness in current:
            item = WeaknessItem(
                character=weakness.character,
                current_error_rate=weakness.error_rate,
                total_attempts=weakness.total_attempts,
                total_misses=weakness.total_misses,
                group=weakness.group,
                top_confusion=weakness.top_confusion,
            )
            change = change_map.get(weakness.character)
            if change is not None:
                item.previous_error_rate = change.old_error_rate
                item.improvement = change.improvement
                item.trajectory = self.classify(change.improvement, change.old_error_rate)
            items.append(item)

        still_weak = {w.character for w in current}
        resolved = [
            ResolvedWeakness(
                character=c.character,
                old_error_rate=c.old_error_rate,
                current_error_rate=c.new_error_rate,
            )
            for c in changes
            if c.character not in still_weak and c.improvement > self.settings.weakness_resolved_threshold
        ]

        improving = sum(1 for i in items if i.trajectory == WeaknessTrajectory.IMPROVING)
        worsening = sum(1 for i in items if i.trajectory == WeaknessTrajectory.WORSENING)
        steady = sum(1 for i in items if i.trajectory == WeaknessTrajectory.STEADY)

        return WeaknessReport(
            language=lang,
            has_data=True,
            items=items,
            resolved_weaknesses=resolved,
            improving_count=improving,
            worsening_count=worsening,
            steady_count=steady,
            summary=summarize(improving, worsening, steady, len(resolved)),
        )

    def classify(self, improvement: float, old_rate: float) -> WeaknessTrajectory:
        """Trajectory from an improvement relative to the old error rate."""
        threshold = max(
            self.settings.weakness_trajectory_floor,
            old_rate * self.settings.weakness_trajectory_ratio,
        )
        if improvement > threshold:
            return WeaknessTrajectory.IMPROVING
        if improvement < -threshold:
            return WeaknessTrajectory.WORSENING
        return WeaknessTrajectory.STEADY

    @staticmethod
    def get_priority_weakness(report: WeaknessReport) -> WeaknessItem | None:
        """The single weakness to fix next: worsening > new > steady > improving."""
        if not report.has_data or not report.items:
            return None
        return max(
            report.items,
            key=lambda i: (TRAJECTORY_PRIORITY.get(i.trajectory, 0), i.current_error_rate),
        )


def summarize(improving: int, worsening: int, steady: int, resolved: int) -> str:
    parts = []
    if resolved:
        parts.append(f"{resolved} resolved")
    if improving:
        parts.append(f"{improving} improving")
    if steady:
        parts.append(f"{steady} steady")
    if worsening:
        parts.append(f"{worsening} need attention")
    return ", ".join(parts) if parts else "No weakness data yet"
