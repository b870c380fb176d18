"""Shared fixtures for engine tests."""

import os
import random
from datetime import datetime, timedelta

import pytest

from typing_coach.config import Settings
from typing_coach.content.library import ContentLibrary
from typing_coach.models.history import LanguageTrend, LongitudinalData, WeaknessEntry, WeaknessSnapshot
from typing_coach.models.profile import Profile


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep host environment overrides out of Settings."""
    for key in list(os.environ):
        if key.startswith("TYPING_COACH_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


def tiered_code(tier: int, index: int = 0) -> str:
    """Distinct code text for a tier so content ids never collide."""
    return f"def f_{tier}_{index}(x):\n    return x + {tier}  # t{tier}\n"


@pytest.fixture
def library(settings) -> ContentLibrary:
    """Python pool with two snippets per tier 1-7 and one Java snippet."""
    lib = ContentLibrary(settings)
    for tier in range(1, 8):
        for index in range(2):
            lib.add_builtin(
                "python",
                tiered_code(tier, index),
                legacy_id=f"py-{tier}-{index}",
                title=f"Tier {tier} #{index}",
                difficulty=tier,
                topics=["loops"] if index == 0 else ["strings"],
            )
    lib.add_builtin("java", "class A { }\n", legacy_id="java-1", difficulty=2)
    return lib


@pytest.fixture
def profile() -> Profile:
    return Profile()


def make_trend(wpm: list[float], accuracy: list[float] | None = None, sessions: int | None = None) -> LanguageTrend:
    """Trend from newest-first series."""
    accuracy = accuracy if accuracy is not None else [90.0] * len(wpm)
    now = datetime(2026, 1, 10, 12, 0)
    return LanguageTrend(
        recent_wpm=wpm,
        recent_accuracy=accuracy,
        total_sessions=sessions if sessions is not None else len(wpm),
        first_session_at=now - timedelta(days=len(wpm)),
        last_session_at=now,
    )


def make_snapshot(language: str, captured_at: datetime, rates: dict[str, float]) -> WeaknessSnapshot:
    return WeaknessSnapshot(
        language=language,
        captured_at=captured_at,
        top_weaknesses=tuple(
            WeaknessEntry(character=c, error_rate=r, total_attempts=20) for c, r in rates.items()
        ),
    )


def fill_heatmap(profile: Profile, char: str, hits: int, misses: int, actual: str | None = None) -> None:
    for _ in range(hits):
        profile.heatmap.record_hit(char)
    for _ in range(misses):
        profile.heatmap.record_miss(char, actual)


@pytest.fixture
def longitudinal() -> LongitudinalData:
    return LongitudinalData()
