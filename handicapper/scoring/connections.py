"""Trainer, jockey and partnership strike rates."""

from __future__ import annotations

from typing import Optional

from handicapper.config import ScoringConfig
from handicapper.models.race import HorseRecord, StatsRecord
from handicapper.scoring.base import RaceContext, build_score

MIN_STARTS = 5
MIN_PARTNERSHIP_STARTS = 3
NEUTRAL_POINTS = 4

# (minimum win rate, points) for trainer and jockey, best first
WIN_RATE_STEPS = ((0.25, 10), (0.20, 8), (0.15, 6), (0.10, 4), (0.05, 2))
PARTNERSHIP_STEPS = ((0.25, 4), (0.15, 2), (0.0, 1))


def _rate_points(stats: StatsRecord, steps) -> int:
    for threshold, points in steps:
        if stats.win_rate >= threshold:
            return points
    return 0


def _person(role: str, name: str, stats: Optional[StatsRecord]):
    label = name or role
    if stats is None or stats.starts < MIN_STARTS:
        return NEUTRAL_POINTS, f"{label}: limited stats", f"limited_{role}_stats"
    points = _rate_points(stats, WIN_RATE_STEPS)
    return points, f"{label} {stats.win_rate:.0%} wins from {stats.starts}", None


def score_connections(horse: HorseRecord, context: RaceContext, config: ScoringConfig):
    trainer, trainer_reason, trainer_flag = _person(
        "trainer", horse.trainer_name, horse.trainer_stats,
    )
    jockey, jockey_reason, jockey_flag = _person(
        "jockey", horse.jockey_name, horse.jockey_stats,
    )

    combo = horse.partnership_stats
    partnership = 0
    combo_reason = ""
    if combo is not None and combo.starts >= MIN_PARTNERSHIP_STARTS:
        partnership = _rate_points(combo, PARTNERSHIP_STEPS)
        combo_reason = f"partnership {combo.wins}/{combo.starts}"

    return build_score(
        "connections",
        {"trainer": trainer, "jockey": jockey, "partnership": partnership},
        config.maxima.connections,
        [trainer_reason, jockey_reason, combo_reason],
        [f for f in (trainer_flag, jockey_flag) if f],
    )
