"""Configuration: process settings and immutable scoring profiles.

``Settings`` holds process-level options read from the environment.
``ScoringConfig`` holds every weight, threshold and cap the pipeline uses;
it is frozen and passed into each stage so several tuning profiles can run
side by side.
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="HANDICAPPER_",
        extra="ignore",
    )

    log_level: str = "INFO"
    profile_path: Optional[Path] = None
    batch_workers: int = 4
    default_budget: Optional[float] = None


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


# ──────────────────────────────────────────────
# Scoring profile sections
# ──────────────────────────────────────────────

class CategoryMaxima(_Frozen):
    form: float = 30
    speed_class: float = 60
    post_position: float = 12
    equipment: float = 8
    connections: float = 24
    pace: float = 30

    @property
    def total(self) -> float:
        return (
            self.form + self.speed_class + self.post_position
            + self.equipment + self.connections + self.pace
        )


DEFAULT_TROUBLE_KEYWORDS: dict[str, tuple[str, ...]] = {
    "high": (
        "blocked", "boxed", "boxed in", "no room", "shut off", "steadied",
        "checked", "taken up", "clipped heels", "stumbled", "fell",
        "lost rider", "pulled up", "eased",
    ),
    "medium": (
        "bumped", "bumped start", "shuffled", "shuffled back", "forced wide",
        "carried wide", "5-wide", "6-wide", "7-wide", "wide turn",
        "wide stretch", "broke slow", "broke poorly", "dwelt", "hesitated",
        "bobbled",
    ),
    "low": (
        "wide", "4-wide", "crowded", "tight quarters", "lacked room",
        "no late room", "blocked stretch", "stopped", "gave way",
    ),
    "caused": (
        "lugged in", "lugged out", "bore in", "bore out", "drifted",
        "ducked in", "ducked out", "rank", "fractious", "unruly", "bolted",
        "ran off", "fought", "hung",
    ),
}


class TripTroubleConfig(_Frozen):
    races_to_scan: int = 3
    high_points: int = 3
    medium_points: int = 2
    low_points: int = 1
    max_races_per_level: int = 2
    max_adjustment: int = 8
    caused_reduction: float = 0.25
    keywords: dict[str, tuple[str, ...]] = Field(
        default_factory=lambda: dict(DEFAULT_TROUBLE_KEYWORDS)
    )


class VelocityConfig(_Frozen):
    max_races: int = 5
    min_valid_races: int = 2
    min_trend_races: int = 3
    trend_threshold: float = 0.3
    min_segment_furlongs: float = 1.5
    # realistic seconds-per-furlong window for a segment rate
    min_rate: float = 9.0
    max_rate: float = 20.0
    strong_closer_vd: float = 2.0
    moderate_closer_vd: float = 0.5
    steady_pace_vd: float = -0.5
    strong_closer_points: int = 4
    moderate_closer_points: int = 2
    steady_pace_points: int = 0
    fader_points: int = -1
    presser_factor: float = 0.5
    # expected late rate (s/furlong) by surface: (sprint, route)
    expected_late_rates: dict[str, tuple[float, float]] = Field(
        default_factory=lambda: {
            "dirt": (12.8, 13.2),
            "turf": (13.0, 13.4),
            "synthetic": (12.9, 13.3),
        }
    )
    late_kick_exceptional: float = 0.95
    late_kick_strong: float = 0.98
    late_kick_adequate: float = 1.0
    late_kick_points: tuple[int, int, int] = (3, 2, 1)
    max_adjustment: int = 5


class ConfidenceConfig(_Frozen):
    gap_points: float = 10.0
    high_quality: int = 80
    low_quality: int = 50
    flag_penalty: int = 10


class ProbabilityConfig(_Frozen):
    transform: Literal["softmax", "power"] = "softmax"
    temperature: float = Field(default=10.0, gt=0)
    power_exponent: float = Field(default=3.0, gt=0)
    overlay_edge: float = 0.05
    underlay_edge: float = 0.05


class ExoticConfig(_Frozen):
    exacta_unit: float = 2.0
    trifecta_unit: float = 1.0
    superfecta_unit: float = 0.10
    exacta_min_field: int = 4
    trifecta_min_field: int = 5
    superfecta_min_field: int = 6

    def unit_for(self, family: str) -> float:
        return getattr(self, f"{family}_unit")

    def min_field_for(self, family: str) -> int:
        return getattr(self, f"{family}_min_field")


class RankingConfig(_Frozen):
    top_n: int = 25
    straight_stake: float = 2.0
    place_payout_factor: float = 0.45
    show_payout_factor: float = 0.25
    min_place_profit: float = 0.05
    key_min_score_pct: float = 0.55
    with_min_score_pct: float = 0.40
    max_keys: int = 2
    max_with_horses: int = 4
    box_size: int = 4
    include_boxes: bool = True
    conservative_probability: float = 0.15
    conservative_max_cost: float = 10.0
    moderate_probability: float = 0.05
    moderate_max_cost: float = 30.0


class ScoringConfig(_Frozen):
    """Complete tuning profile for one pipeline run."""

    name: str = "default"
    maxima: CategoryMaxima = Field(default_factory=CategoryMaxima)
    trip_trouble: TripTroubleConfig = Field(default_factory=TripTroubleConfig)
    velocity: VelocityConfig = Field(default_factory=VelocityConfig)
    confidence: ConfidenceConfig = Field(default_factory=ConfidenceConfig)
    probability: ProbabilityConfig = Field(default_factory=ProbabilityConfig)
    exotics: ExoticConfig = Field(default_factory=ExoticConfig)
    ranking: RankingConfig = Field(default_factory=RankingConfig)

    @property
    def max_base_score(self) -> float:
        """Canonical maximum: category maxima plus positive adjuster caps."""
        return (
            self.maxima.total
            + self.trip_trouble.max_adjustment
            + self.velocity.max_adjustment
        )


def load_profile(path: Path | str) -> ScoringConfig:
    """Load a scoring profile from a JSON file.

    Sections omitted from the file keep their defaults.
    """
    path = Path(path)
    data = json.loads(path.read_text(encoding="utf-8"))
    config = ScoringConfig.model_validate(data)
    logger.info("Loaded scoring profile %r from %s", config.name, path)
    return config


def get_scoring_config() -> ScoringConfig:
    """Profile named by HANDICAPPER_PROFILE_PATH, or the defaults."""
    settings = get_settings()
    if settings.profile_path:
        return load_profile(settings.profile_path)
    return ScoringConfig()
