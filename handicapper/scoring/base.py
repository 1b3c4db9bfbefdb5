"""Shared pieces for the category scorers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping

from handicapper.models.race import RaceHeader
from handicapper.models.scoring import CategoryScore, PaceScenario


@dataclass(frozen=True)
class RaceContext:
    """Race-level facts a scorer may read. Never another scorer's output."""

    header: RaceHeader
    pace_scenario: PaceScenario
    field_size: int


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def build_score(
    category: str,
    subscores: Mapping[str, float],
    max_score: float,
    reasoning: Iterable[str],
    flags: Iterable[str] = (),
) -> CategoryScore:
    """Sum subscores into a CategoryScore clamped to [0, max_score]."""
    subs = {k: round(float(v), 2) for k, v in subscores.items()}
    total = clamp(sum(subs.values()), 0.0, max_score)
    return CategoryScore(
        category=category,
        score=round(total, 2),
        max_score=max_score,
        subscores=subs,
        reasoning="; ".join(r for r in reasoning if r),
        flags=tuple(flags),
    )
