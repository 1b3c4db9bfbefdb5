"""Equipment and medication changes."""

from __future__ import annotations

from handicapper.config import ScoringConfig
from handicapper.models.race import HorseRecord
from handicapper.scoring.base import RaceContext, build_score

BASE_POINTS = 3
FIRST_LASIX = 3
LASIX_OFF = -2
BLINKERS_ON = 2
BLINKERS_OFF = 1
OTHER_FIRST_TIME = 1


def score_equipment(horse: HorseRecord, context: RaceContext, config: ScoringConfig):
    eq = horse.equipment
    medication = BASE_POINTS
    gear = 0
    reasons = []

    if eq.first_time_lasix:
        medication += FIRST_LASIX
        reasons.append("first-time Lasix")
    elif eq.lasix_off:
        medication += LASIX_OFF
        reasons.append("Lasix off")

    if eq.first_time_blinkers:
        gear += BLINKERS_ON
        reasons.append("blinkers on")
    elif eq.blinkers_off:
        gear += BLINKERS_OFF
        reasons.append("blinkers off")

    for item in eq.first_time_equipment:
        gear += OTHER_FIRST_TIME
        reasons.append(f"first-time {item}")

    if not reasons:
        reasons.append("no equipment changes")

    return build_score(
        "equipment",
        {"medication": medication, "gear": gear},
        config.maxima.equipment,
        reasons,
    )
