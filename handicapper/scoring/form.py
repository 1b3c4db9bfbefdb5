"""Recent form, layoff and consistency."""

from __future__ import annotations

from handicapper.config import ScoringConfig
from handicapper.models.race import HorseRecord
from handicapper.scoring.base import RaceContext, build_score, clamp

# Points for a finishing position; anything worse than 8th gets FINISH_FLOOR.
FINISH_POINTS = {1: 15, 2: 12, 3: 11, 4: 10, 5: 9, 6: 8, 7: 6, 8: 4}
FINISH_FLOOR = 3
RECENT_WEIGHTS = (0.5, 0.3, 0.2)

FIRST_STARTER_FORM = 8
FIRST_STARTER_LAYOFF = 5
FRESH_DAYS = 90


def _finish_points(position: int | None) -> float:
    if position is None or position < 1:
        return 0
    return FINISH_POINTS.get(position, FINISH_FLOOR)


def _recent_form(horse: HorseRecord) -> tuple[float, str]:
    recent = horse.past_performances[: len(RECENT_WEIGHTS)]
    weights = RECENT_WEIGHTS[: len(recent)]
    total_weight = sum(weights)
    score = sum(
        _finish_points(pp.finish_position) * w for pp, w in zip(recent, weights)
    ) / total_weight
    finishes = "-".join(
        str(pp.finish_position) if pp.finish_position else "x" for pp in recent
    )
    return score, f"recent finishes {finishes}"


def _won_fresh(horse: HorseRecord) -> bool:
    return any(
        pp.finish_position == 1
        and pp.days_since_previous is not None
        and pp.days_since_previous > FRESH_DAYS
        for pp in horse.past_performances
    )


def _layoff(horse: HorseRecord) -> tuple[float, str, bool]:
    """Returns (points, reason, missing)."""
    days = horse.layoff_days
    if days is None:
        return 5, "layoff unknown", True
    if days < 7:
        return 6, f"quick back-up ({days} days)", False
    if days <= 35:
        return 10, f"ideal spacing ({days} days)", False
    if days <= 60:
        return 7, f"{days} days since last", False
    if days <= FRESH_DAYS:
        return 4, f"freshened {days} days", False
    if _won_fresh(horse):
        return 5, f"long layoff ({days} days), has won fresh", False
    return 0, f"long layoff ({days} days)", False


def _consistency(horse: HorseRecord) -> tuple[float, str]:
    streak = 0
    for pp in horse.past_performances:
        if not pp.in_the_money:
            break
        streak += 1

    if streak >= 3:
        points = 5
    elif streak == 2:
        points = 3
    elif streak == 1:
        points = 1
    else:
        points = 0

    last_five = horse.past_performances[:5]
    itm = sum(1 for pp in last_five if pp.in_the_money)
    if itm >= 4:
        points = max(points, 3)
    return points, f"{itm}/{len(last_five)} in the money"


def score_form(horse: HorseRecord, context: RaceContext, config: ScoringConfig):
    """Score recent form (0-15), layoff (0-10) and consistency (0-5)."""
    max_score = config.maxima.form

    if not horse.past_performances:
        return build_score(
            "form",
            {"recent_form": FIRST_STARTER_FORM, "layoff": FIRST_STARTER_LAYOFF, "consistency": 0},
            max_score,
            ["first-time starter, neutral form"],
            flags=["no_past_performances"],
        )

    flags = []
    recent, recent_reason = _recent_form(horse)
    layoff, layoff_reason, layoff_missing = _layoff(horse)
    if layoff_missing:
        flags.append("no_layoff_days")
    consistency, consistency_reason = _consistency(horse)

    return build_score(
        "form",
        {
            "recent_form": clamp(recent, 0, 15),
            "layoff": clamp(layoff, 0, 10),
            "consistency": clamp(consistency, 0, 5),
        },
        max_score,
        [recent_reason, layoff_reason, consistency_reason],
        flags,
    )
