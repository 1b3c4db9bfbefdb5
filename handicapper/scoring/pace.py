"""Running style fit against the projected pace.

The race's pace scenario is derived from the entered field's running
styles before any horse is scored.
"""

from __future__ import annotations

from typing import Iterable

from handicapper.config import ScoringConfig
from handicapper.models.race import HorseRecord, style_category
from handicapper.models.scoring import PaceScenario
from handicapper.scoring.base import RaceContext, build_score

UNKNOWN_STYLE_POINTS = 15

PACE_FIT = {
    "early": {
        PaceScenario.SOFT: 26,
        PaceScenario.MODERATE: 20,
        PaceScenario.CONTESTED: 12,
        PaceScenario.SPEED_DUEL: 8,
    },
    "presser": {
        PaceScenario.SOFT: 18,
        PaceScenario.MODERATE: 20,
        PaceScenario.CONTESTED: 20,
        PaceScenario.SPEED_DUEL: 18,
    },
    "closer": {
        PaceScenario.SOFT: 10,
        PaceScenario.MODERATE: 16,
        PaceScenario.CONTESTED: 22,
        PaceScenario.SPEED_DUEL: 26,
    },
}


def determine_pace_scenario(horses: Iterable[HorseRecord]) -> PaceScenario:
    """Project the pace from how many need the lead.

    3+ early types = speed duel, 2 = contested, none with at most two
    pressers = soft, otherwise moderate.
    """
    styles = [style_category(h.running_style) for h in horses]
    leaders = styles.count("early")
    pressers = styles.count("presser")

    if leaders >= 3:
        return PaceScenario.SPEED_DUEL
    if leaders == 2:
        return PaceScenario.CONTESTED
    if leaders == 0 and pressers <= 2:
        return PaceScenario.SOFT
    return PaceScenario.MODERATE


def score_pace(horse: HorseRecord, context: RaceContext, config: ScoringConfig):
    category = style_category(horse.running_style)
    scenario = context.pace_scenario

    if category == "unknown":
        return build_score(
            "pace", {"fit": UNKNOWN_STYLE_POINTS}, config.maxima.pace,
            ["running style unknown"], flags=["unknown_running_style"],
        )

    points = PACE_FIT[category][scenario]
    return build_score(
        "pace",
        {"fit": points},
        config.maxima.pace,
        [f"{category} type ({horse.running_style}) in a {scenario.value.replace('_', ' ')} pace"],
    )
