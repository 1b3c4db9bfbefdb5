"""Detect trip trouble in past-performance comments.

A horse that was blocked, checked or carried wide in recent races probably
ran better than its finish suggests. Keywords are grouped into three
trouble-suffered levels and one caused-trouble group; a race whose comment
shows the horse caused the trouble earns no credit at all.
"""

from __future__ import annotations

import logging
import re
from functools import lru_cache
from typing import Iterable

from handicapper.config import TripTroubleConfig
from handicapper.models.race import HorseRecord, PastPerformance
from handicapper.models.scoring import TripTroubleResult, TroubleLevel

logger = logging.getLogger(__name__)

# Highest level first; a troubled race takes the first level it matches.
_SUFFERED_LEVELS = (TroubleLevel.HIGH, TroubleLevel.MEDIUM, TroubleLevel.LOW)


@lru_cache(maxsize=256)
def _compile(keyword: str) -> re.Pattern:
    words = [re.escape(w) for w in keyword.lower().split()]
    return re.compile(r"\b" + r"\s+".join(words) + r"\b", re.IGNORECASE)


def find_keywords(comment: str, keywords: Iterable[str]) -> list[str]:
    """Return the keywords present in a comment, in keyword-table order."""
    if not comment or not comment.strip():
        return []
    return [kw for kw in keywords if _compile(kw).search(comment)]


def classify_comment(
    comment: str, config: TripTroubleConfig,
) -> tuple[TroubleLevel | None, list[str]]:
    """Classify one race's comment.

    Returns (level, matched keywords). CAUSED wins over any suffered-trouble
    match in the same comment; otherwise the highest matched level is used.
    """
    caused = find_keywords(comment, config.keywords.get(TroubleLevel.CAUSED.value, ()))
    if caused:
        return TroubleLevel.CAUSED, caused

    level = None
    matched: list[str] = []
    for lvl in _SUFFERED_LEVELS:
        found = find_keywords(comment, config.keywords.get(lvl.value, ()))
        if found and level is None:
            level = lvl
        matched.extend(found)
    return level, matched


def _round_half_up(value: float) -> int:
    return int(value + 0.5)


def calculate_trip_adjustment(
    high: int, medium: int, low: int, caused: int, config: TripTroubleConfig,
) -> tuple[int, str]:
    """Turn per-level race counts into (adjustment, reason)."""
    troubled = high + medium + low
    if troubled == 0:
        return 0, "No trip trouble detected"

    if caused >= troubled:
        return 0, "Horse causes trouble, no bonus applied"

    cap = config.max_races_per_level
    adjustment = (
        min(high, cap) * config.high_points
        + min(medium, cap) * config.medium_points
        + min(low, cap) * config.low_points
    )
    adjustment = min(adjustment, config.max_adjustment)

    if caused > 0:
        factor = 1 - caused * config.caused_reduction
        adjustment = max(0, _round_half_up(adjustment * factor))

    if high >= 2:
        reason = f"{high} races with clear traffic trouble, +{adjustment} pts"
    elif high == 1 or medium >= 2:
        reason = f"{troubled} troubled trips detected, +{adjustment} pts"
    else:
        reason = f"Possible trouble in {troubled} race(s), +{adjustment} pts"

    if caused > 0 and adjustment > 0:
        reason += f" (reduced by {caused} caused trouble incident{'s' if caused > 1 else ''})"

    return adjustment, reason


def analyze_trip_trouble(
    horse: HorseRecord, config: TripTroubleConfig,
) -> TripTroubleResult:
    """Scan the most recent races for trouble and compute a bonus."""
    recent: tuple[PastPerformance, ...] = horse.past_performances[: config.races_to_scan]

    counts = {lvl: 0 for lvl in TroubleLevel}
    matched: list[str] = []

    for pp in recent:
        level, found = classify_comment(pp.comment_text, config)
        if level is None:
            continue
        counts[level] += 1
        for kw in found:
            if kw not in matched:
                matched.append(kw)

    adjustment, reason = calculate_trip_adjustment(
        counts[TroubleLevel.HIGH],
        counts[TroubleLevel.MEDIUM],
        counts[TroubleLevel.LOW],
        counts[TroubleLevel.CAUSED],
        config,
    )

    if adjustment:
        logger.debug("#%s %s trip trouble: %s", horse.program_number, horse.name, reason)

    return TripTroubleResult(
        adjustment=adjustment,
        reason=reason,
        matched_keywords=tuple(matched),
        high_races=counts[TroubleLevel.HIGH],
        medium_races=counts[TroubleLevel.MEDIUM],
        low_races=counts[TroubleLevel.LOW],
        caused_races=counts[TroubleLevel.CAUSED],
        races_scanned=len(recent),
    )
