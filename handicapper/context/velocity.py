"""Fractional-time velocity analysis.

For each past race the early-segment and late-segment pace rates (seconds
per furlong) are compared. Velocity differential (VD) = early rate - late
rate, so a positive VD means the horse ran its closing segment faster than
its early segment. Averaged over recent races this classifies a horse as
a closer, a steady pacer or a fader, and combined with late kick power
(closing rate vs a surface/distance par) gives a bounded points adjustment.
"""

from __future__ import annotations

import logging
import math
from collections import Counter
from typing import Optional

from handicapper.config import VelocityConfig
from handicapper.errors import NumericDegenerate
from handicapper.models.race import HorseRecord, PastPerformance, normalize_style, style_category
from handicapper.models.scoring import PaceScenario, VelocityRace, VelocityResult

logger = logging.getLogger(__name__)

_LATE_KICK_STYLES = frozenset({"C", "S", "P"})

_CLASS_DESCRIPTIONS = {
    "strong_closer": "Strong closer - accelerates significantly in final fraction",
    "moderate_closer": "Moderate closer - maintains or slightly accelerates late",
    "steady_pace": "Steady pacer - runs even pace throughout",
    "fader": "Fader - typically slows in final fraction",
}


def _signed(value: float, digits: int = 2) -> str:
    return f"+{value:.{digits}f}" if value >= 0 else f"{value:.{digits}f}"


def _plural_pp(count: int) -> str:
    return f"{count} PP{'s' if count != 1 else ''}"


def segment_rate(
    seconds: float, furlongs: float, config: VelocityConfig,
) -> Optional[float]:
    """Seconds per furlong over a segment.

    Returns None when the segment is shorter than the minimum length.
    Raises NumericDegenerate for a non-finite or unrealistic rate.
    """
    if furlongs < config.min_segment_furlongs:
        return None
    rate = seconds / furlongs
    if not math.isfinite(rate) or not (config.min_rate <= rate <= config.max_rate):
        raise NumericDegenerate(
            f"segment rate {rate:.2f}s/f over {furlongs:g}f outside "
            f"{config.min_rate:g}-{config.max_rate:g}"
        )
    return rate


def _sprint_rates(pp: PastPerformance, config: VelocityConfig):
    dist = pp.distance_furlongs
    final = pp.final_time
    quarter, half = pp.quarter_time, pp.half_mile_time

    if quarter is not None and half is not None:
        early = segment_rate(half - quarter, 2, config)
        late = segment_rate(final - half, dist - 4, config)
        return early, late
    if half is not None and dist - 4 >= config.min_segment_furlongs:
        return segment_rate(half, 4, config), segment_rate(final - half, dist - 4, config)
    return None, None


def _route_rates(pp: PastPerformance, config: VelocityConfig):
    dist = pp.distance_furlongs
    final = pp.final_time
    half, six, mile = pp.half_mile_time, pp.six_furlong_time, pp.mile_time

    if six is not None and dist <= 8:
        if half is not None:
            early = segment_rate(six - half, 2, config)
        else:
            early = segment_rate(six, 6, config)
        return early, segment_rate(final - six, dist - 6, config)

    if mile is not None and dist >= 8:
        if six is not None:
            early = segment_rate(mile - six, 2, config)
        elif half is not None:
            early = segment_rate(mile - half, 4, config)
        else:
            early = segment_rate(mile, 8, config)

        if dist - 8 >= config.min_segment_furlongs:
            late = segment_rate(final - mile, dist - 8, config)
        elif six is not None:
            # "about one mile": the mile-to-finish segment is too short
            late = segment_rate(final - six, dist - 6, config)
        else:
            late = None
        return early, late

    if half is not None and dist - 4 >= config.min_segment_furlongs:
        return segment_rate(half, 4, config), segment_rate(final - half, dist - 4, config)
    return None, None


def analyze_race_velocity(pp: PastPerformance, config: VelocityConfig) -> VelocityRace:
    """Early/late rates and VD for one past race."""
    if not pp.final_time or not pp.distance_furlongs:
        return VelocityRace(None, None, None, False, "no final time or distance")

    try:
        if pp.distance_furlongs <= 6:
            early, late = _sprint_rates(pp, config)
        else:
            early, late = _route_rates(pp, config)
    except NumericDegenerate as e:
        logger.warning("Discarding velocity for %gf race: %s", pp.distance_furlongs, e)
        return VelocityRace(None, None, None, False, str(e))

    if early is None or late is None:
        return VelocityRace(early, late, None, False, "missing or short fractional segment")

    return VelocityRace(early, late, early - late, True)


def _classify(avg_vd: float, config: VelocityConfig) -> str:
    if avg_vd >= config.strong_closer_vd:
        return "strong_closer"
    if avg_vd >= config.moderate_closer_vd:
        return "moderate_closer"
    if avg_vd >= config.steady_pace_vd:
        return "steady_pace"
    return "fader"


def _trend(valid: list[VelocityRace], config: VelocityConfig) -> str:
    if len(valid) < config.min_trend_races:
        return "unknown"
    recent, older = valid[:2], valid[2:]
    recent_avg = sum(r.differential for r in recent) / len(recent)
    older_avg = sum(r.differential for r in older) / len(older)
    diff = recent_avg - older_avg
    if diff > config.trend_threshold:
        return "improving"
    if diff < -config.trend_threshold:
        return "declining"
    return "stable"


def _profile_summary(
    classification: str, avg_vd: Optional[float], count: int, reliable: bool, trend: str,
) -> str:
    if not reliable or avg_vd is None:
        return f"Insufficient velocity data ({_plural_pp(count)} with valid fractional times)"
    trend_str = f" ({trend})" if trend in ("improving", "declining") else ""
    return (
        f"{_CLASS_DESCRIPTIONS[classification]} | Avg VD: {_signed(avg_vd)} sec/f"
        f"{trend_str} ({_plural_pp(count)})"
    )


def late_kick_power(
    horse: HorseRecord, races: list[tuple[PastPerformance, VelocityRace]], config: VelocityConfig,
) -> tuple[int, str]:
    """Bonus for a closing rate faster than the surface/distance par.

    Only closers and stalkers are eligible. Returns (points, classification).
    """
    if normalize_style(horse.running_style) not in _LATE_KICK_STYLES:
        return 0, "not_applicable"

    usable = [(pp, r) for pp, r in races if r.complete and r.late_rate is not None]
    if len(usable) < config.min_valid_races:
        return 0, "unknown"

    avg_late = sum(r.late_rate for _, r in usable) / len(usable)
    surfaces = Counter((pp.surface or "dirt").lower() for pp, _ in usable)
    surface = surfaces.most_common(1)[0][0]
    avg_distance = sum(pp.distance_furlongs for pp, _ in usable) / len(usable)

    rates = config.expected_late_rates.get(surface) or config.expected_late_rates["dirt"]
    expected = rates[0] if avg_distance <= 6 else rates[1]
    ratio = avg_late / expected

    exceptional, strong, adequate = config.late_kick_points
    if ratio < config.late_kick_exceptional:
        return exceptional, "exceptional"
    if ratio < config.late_kick_strong:
        return strong, "strong"
    if ratio <= config.late_kick_adequate:
        return adequate, "adequate"
    return 0, "weak"


def _vd_points(classification: str, style: str, config: VelocityConfig) -> int:
    if classification == "steady_pace":
        return config.steady_pace_points
    if classification == "fader":
        return config.fader_points
    if classification == "strong_closer":
        full = config.strong_closer_points
    elif classification == "moderate_closer":
        full = config.moderate_closer_points
    else:
        return 0

    category = style_category(style)
    if category == "closer":
        return full
    if category == "early":
        return 0
    # pressers and unknown styles get a reduced closer bonus
    return math.floor(full * config.presser_factor)


def analyze_velocity(
    horse: HorseRecord, pace_scenario: PaceScenario, config: VelocityConfig,
) -> VelocityResult:
    """Velocity profile plus late kick power, modulated by race pace."""
    recent = horse.past_performances[: config.max_races]
    analysed = [(pp, analyze_race_velocity(pp, config)) for pp in recent]
    races = [r for _, r in analysed]
    valid = [r for r in races if r.complete]
    reliable = len(valid) >= config.min_valid_races

    avg_vd = None
    if valid:
        avg_vd = round(sum(r.differential for r in valid) / len(valid), 2)

    classification = "unknown"
    if reliable and avg_vd is not None:
        classification = _classify(avg_vd, config)
    trend = _trend(valid, config)

    style = normalize_style(horse.running_style)
    points = _vd_points(classification, style, config) if reliable else 0

    closer_like = style_category(style) in ("closer", "presser")
    if pace_scenario in (PaceScenario.SPEED_DUEL, PaceScenario.CONTESTED):
        if classification == "strong_closer" and closer_like:
            points += 1
        elif classification == "fader":
            points -= 1
    elif pace_scenario == PaceScenario.SOFT:
        if classification == "strong_closer" and closer_like:
            points -= 1
        elif classification == "fader" and style_category(style) == "early":
            points += 1

    lkp_points, lkp_class = late_kick_power(horse, analysed, config)
    cap = config.max_adjustment
    total = max(-cap, min(cap, points + lkp_points))

    parts = []
    if reliable and avg_vd is not None:
        parts.append(f"VD: {_signed(avg_vd)} ({classification.replace('_', ' ')})")
        if points:
            parts.append(f"{'+' if points >= 0 else ''}{points} pts")
    else:
        parts.append("VD: insufficient data")
    if lkp_points > 0:
        parts.append(f"LKP: {lkp_class} (+{lkp_points} pts)")
    if total:
        parts.append(f"Total: {'+' if total >= 0 else ''}{total} pts")

    return VelocityResult(
        adjustment=total,
        classification=classification,
        description=" | ".join(parts),
        profile_summary=_profile_summary(classification, avg_vd, len(valid), reliable, trend),
        average_differential=avg_vd,
        trend=trend,
        late_kick_points=lkp_points,
        races_analyzed=len(valid),
        races=tuple(races),
    )
