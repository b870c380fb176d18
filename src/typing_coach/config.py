"""Engine configuration using pydantic-settings."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict


def _find_project_root() -> Path:
    """Find project root by locating pyproject.toml."""
    current = Path(__file__).resolve()
    for parent in [current] + list(current.parents):
        if (parent / "pyproject.toml").exists():
            return parent
    return Path(__file__).resolve().parent.parent.parent


# YAML section -> {yaml key: settings field}
_YAML_SECTIONS: dict[str, dict[str, str]] = {
    "heatmap": {
        "recent_window": "heatmap_recent_window",
    },
    "history": {
        "series_cap": "trend_series_cap",
        "timestamp_cap": "session_timestamp_cap",
        "snapshot_cap": "snapshot_cap",
        "snapshot_min_attempts": "snapshot_min_attempts",
    },
    "trend": {
        "min_sessions": "trend_min_sessions",
        "direction_window": "trend_direction_window",
        "direction_threshold": "trend_direction_threshold",
        "velocity_window": "trend_velocity_window",
        "velocity_min_points": "trend_velocity_min_points",
        "plateau_band": "trend_plateau_band",
        "plateau_mean_window": "trend_plateau_mean_window",
        "plateau_scan": "trend_plateau_scan",
    },
    "weakness": {
        "top_count": "weakness_top_count",
        "min_attempts": "weakness_min_attempts",
        "trajectory_floor": "weakness_trajectory_floor",
        "trajectory_ratio": "weakness_trajectory_ratio",
        "resolved_threshold": "weakness_resolved_threshold",
    },
    "difficulty": {
        "confident_sessions": "difficulty_confident_sessions",
        "struggling_accuracy": "difficulty_struggling_accuracy",
        "cruising_accuracy": "difficulty_cruising_accuracy",
        "cruising_wpm": "difficulty_cruising_wpm",
    },
    "bias": {
        "max_bias": "bias_max",
        "min_weak_groups": "bias_min_weak_groups",
        "group_threshold": "bias_group_threshold",
        "min_group_attempts": "bias_min_group_attempts",
        "weight": "bias_weight",
    },
    "selection": {
        "recent_history": "selection_recent_history",
        "top_k": "selection_top_k",
        "difficulty_weight": "selection_difficulty_weight",
        "weak_char_weight": "selection_weak_char_weight",
        "weak_char_threshold": "selection_weak_char_threshold",
        "legacy_weak_bonus": "selection_legacy_weak_bonus",
        "length_threshold": "selection_length_threshold",
        "beginner_level": "selection_beginner_level",
        "length_penalty": "selection_length_penalty",
        "jitter": "selection_jitter",
    },
    "planner": {
        "target_weight": "planner_target_weight",
        "review_weight": "planner_review_weight",
    },
    "library": {
        "max_user_items": "library_max_user_items",
        "max_corpus_items": "library_max_corpus_items",
        "max_paste_length": "library_max_paste_length",
    },
}


class YamlSettingsSource(PydanticBaseSettingsSource):
    """Custom settings source that loads from settings.yaml."""

    def get_field_value(self, field_name: str) -> tuple[Any, str, bool]:
        """Not used - we implement __call__ instead."""
        return None, "", False

    def __call__(self) -> dict[str, Any]:
        """Load settings from YAML file."""
        yaml_path = _find_project_root() / "config" / "settings.yaml"
        if not yaml_path.exists():
            return {}

        with open(yaml_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        return flatten_yaml_settings(data)


def flatten_yaml_settings(data: dict[str, Any]) -> dict[str, Any]:
    """Flatten the nested YAML structure to match Settings field names."""
    flattened: dict[str, Any] = {}
    for section, keys in _YAML_SECTIONS.items():
        values = data.get(section) or {}
        for yaml_key, field_name in keys.items():
            flattened[field_name] = values.get(yaml_key)
    return {k: v for k, v in flattened.items() if v is not None}


class Settings(BaseSettings):
    """Tunable constants for the adaptive selection engine.

    Defaults reproduce the reference behavior; every threshold can be
    overridden from the environment (``TYPING_COACH_*``) or settings.yaml.
    """

    model_config = SettingsConfigDict(
        env_prefix="TYPING_COACH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Heatmap
    heatmap_recent_window: int = Field(default=20, ge=1)

    # Longitudinal history caps
    trend_series_cap: int = Field(default=50, ge=10)
    session_timestamp_cap: int = Field(default=200, ge=1)
    snapshot_cap: int = Field(default=90, ge=2)
    snapshot_min_attempts: int = Field(default=3, ge=1)

    # Trend analysis
    trend_min_sessions: int = Field(default=5, ge=1)
    trend_direction_window: int = Field(default=5, ge=1)
    trend_direction_threshold: float = Field(default=0.03, ge=0.0)
    trend_velocity_window: int = Field(default=10, ge=2)
    trend_velocity_min_points: int = Field(default=4, ge=2)
    trend_plateau_band: float = Field(default=0.05, ge=0.0)
    trend_plateau_mean_window: int = Field(default=10, ge=1)
    trend_plateau_scan: int = Field(default=20, ge=1)

    # Weakness trajectory
    weakness_top_count: int = Field(default=10, ge=1)
    weakness_min_attempts: int = Field(default=5, ge=1)
    weakness_trajectory_floor: float = Field(default=0.03, ge=0.0)
    weakness_trajectory_ratio: float = Field(default=0.10, ge=0.0)
    weakness_resolved_threshold: float = Field(default=0.1, ge=0.0)

    # Adaptive difficulty
    difficulty_confident_sessions: int = Field(default=30, ge=1)
    difficulty_struggling_accuracy: float = Field(default=80.0)
    difficulty_cruising_accuracy: float = Field(default=95.0)
    difficulty_cruising_wpm: float = Field(default=50.0)

    # Weakness bias
    bias_max: float = Field(default=15.0, ge=0.0)
    bias_min_weak_groups: int = Field(default=2, ge=1)
    bias_group_threshold: float = Field(default=0.10, ge=0.0)
    bias_min_group_attempts: int = Field(default=10, ge=1)
    bias_weight: float = Field(default=10.0, ge=0.0)

    # Snippet selection
    selection_recent_history: int = Field(default=10, ge=0)
    selection_top_k: int = Field(default=5, ge=1)
    selection_difficulty_weight: float = Field(default=20.0)
    selection_weak_char_weight: float = Field(default=40.0)
    selection_weak_char_threshold: float = Field(default=0.05)
    selection_legacy_weak_bonus: float = Field(default=10.0)
    selection_length_threshold: int = Field(default=200)
    selection_beginner_level: int = Field(default=5)
    selection_length_penalty: float = Field(default=10.0)
    selection_jitter: float = Field(default=10.0, ge=0.0)

    # Session mix (stretch = 1 - target - review)
    planner_target_weight: float = Field(default=0.50, ge=0.0, le=1.0)
    planner_review_weight: float = Field(default=0.30, ge=0.0, le=1.0)

    # Content library limits
    library_max_user_items: int = Field(default=500, ge=0)
    library_max_corpus_items: int = Field(default=2000, ge=0)
    library_max_paste_length: int = Field(default=10000, ge=1)

    @property
    def heatmap_buffer_capacity(self) -> int:
        """Rolling attempt buffer length per symbol (twice the window)."""
        return self.heatmap_recent_window * 2

    @property
    def planner_stretch_weight(self) -> float:
        return max(0.0, 1.0 - self.planner_target_weight - self.planner_review_weight)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customise settings sources to include YAML file.

        Priority order (highest to lowest):
        1. init_settings (arguments passed to Settings())
        2. env_settings (environment variables)
        3. dotenv_settings (.env file)
        4. YamlSettingsSource (settings.yaml)
        5. file_secret_settings
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlSettingsSource(settings_cls),
            file_secret_settings,
        )


def load_settings(**overrides: Any) -> Settings:
    """Build a fresh Settings instance; the host owns and passes it around."""
    return Settings(**overrides)
