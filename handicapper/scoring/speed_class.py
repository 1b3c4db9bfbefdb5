"""Speed figures and class movement."""

from __future__ import annotations

from handicapper.config import ScoringConfig
from handicapper.models.race import HorseRecord
from handicapper.scoring.base import RaceContext, build_score, clamp

SPEED_MAX = 45
CLASS_MAX = 15
NEUTRAL_SPEED = 22
NEUTRAL_CLASS = 7

# Relative to par: at par scores PAR_POINTS, each figure point is worth PER_POINT.
PAR_POINTS = 30
PER_POINT = 1.5
# Absolute scale when no par is known: figure 40 -> 0, figure 100 -> 45.
ABSOLUTE_FLOOR = 40
ABSOLUTE_SCALE = 0.75

# (purse ratio upper bound, points, label), checked in order
CLASS_STEPS = (
    (0.75, 15, "major class drop"),
    (0.95, 12, "class drop"),
    (1.05, 9, "same level"),
    (1.5, 5, "class rise"),
)
CLASS_BIG_RISE = (2, "major class rise")


def _speed(horse: HorseRecord, context: RaceContext) -> tuple[float, str, bool]:
    figures = [
        pp.speed_figure for pp in horse.past_performances[:3]
        if pp.speed_figure is not None
    ]
    if not figures:
        return NEUTRAL_SPEED, "no speed figures", True

    best = sorted(figures, reverse=True)[:2]
    avg = sum(best) / len(best)
    par = context.header.speed_par
    if par:
        points = PAR_POINTS + (avg - par) * PER_POINT
        reason = f"best figures avg {avg:.1f} vs par {par}"
    else:
        points = (avg - ABSOLUTE_FLOOR) * ABSOLUTE_SCALE
        reason = f"best figures avg {avg:.1f}"
    return clamp(points, 0, SPEED_MAX), reason, False


def _class(horse: HorseRecord, context: RaceContext) -> tuple[float, str, bool]:
    today = context.header.purse
    last = next(
        (pp.purse for pp in horse.past_performances[:3] if pp.purse), None
    )
    if not today or not last:
        return NEUTRAL_CLASS, "class movement unknown", True

    ratio = today / last
    for bound, points, label in CLASS_STEPS:
        if ratio <= bound:
            return points, f"{label} (purse x{ratio:.2f})", False
    points, label = CLASS_BIG_RISE
    return points, f"{label} (purse x{ratio:.2f})", False


def score_speed_class(horse: HorseRecord, context: RaceContext, config: ScoringConfig):
    speed, speed_reason, no_figs = _speed(horse, context)
    klass, class_reason, no_purse = _class(horse, context)

    flags = []
    if no_figs:
        flags.append("no_speed_figures")
    if no_purse:
        flags.append("no_purse_data")

    return build_score(
        "speed_class",
        {"speed": speed, "class": clamp(klass, 0, CLASS_MAX)},
        config.maxima.speed_class,
        [speed_reason, class_reason],
        flags,
    )
