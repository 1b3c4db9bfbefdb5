"""Exotic wager combinatorics: key and box bets.

Combination counts are closed-form permutation counts. Probabilities come
from Harville conditioning on the model win probabilities; joint-finish
behaviour is not modelled, so every exotic is marked speculative and never
carries an expected value.
"""

from __future__ import annotations

import logging
import math
from itertools import permutations
from typing import Iterable, Mapping, Optional

from handicapper.config import ExoticConfig
from handicapper.errors import InsufficientField
from handicapper.models.scoring import BetType, ExoticBoxBet, ExoticKeyBet
from handicapper.probability import harville_probability

logger = logging.getLogger(__name__)

KEY_TYPES = (BetType.EXACTA_KEY, BetType.TRIFECTA_KEY, BetType.SUPERFECTA_KEY)
BOX_TYPES = (BetType.EXACTA_BOX, BetType.TRIFECTA_BOX, BetType.SUPERFECTA_BOX)


def permutation_count(n: int, k: int) -> int:
    """n! / (n - k)!, or 0 when n < k."""
    if k < 0 or n < k:
        return 0
    return math.perm(n, k)


def check_field_size(bet_type: BetType, field_size: int, config: ExoticConfig) -> None:
    """Raise InsufficientField if the field is too small for this wager."""
    minimum = config.min_field_for(bet_type.family)
    if field_size < minimum:
        raise InsufficientField(bet_type.family, field_size, minimum)


def _unique(horses: Iterable[str], exclude: Optional[str] = None) -> list[str]:
    seen = []
    for h in horses:
        if h != exclude and h not in seen:
            seen.append(h)
    return seen


def key_probability(key_horse: str, with_horses: list[str], positions: int,
                    probabilities: Mapping[str, float]) -> float:
    """Key wins, with-horses fill the remaining places in any order."""
    p_key = probabilities.get(key_horse, 0.0)
    total = 0.0
    for rest in permutations(with_horses, positions - 1):
        total += harville_probability([p_key] + [probabilities[h] for h in rest])
    return total


def box_probability(horses: list[str], positions: int,
                    probabilities: Mapping[str, float]) -> float:
    """Boxed horses fill the first ``positions`` places in any order."""
    return sum(
        harville_probability([probabilities[h] for h in order])
        for order in permutations(horses, positions)
    )


def _zero_key(bet_type, key_horse, with_horses, unit, reason) -> ExoticKeyBet:
    logger.debug("No %s on #%s: %s", bet_type.value, key_horse, reason)
    return ExoticKeyBet(
        bet_type=bet_type,
        key_horse=key_horse,
        with_horses=tuple(with_horses),
        combinations=0,
        cost_per_unit=unit,
        total_cost=0.0,
        estimated_probability=0.0,
        reasoning=reason,
    )


def calculate_exotic_key(
    bet_type: BetType,
    key_horse: str,
    with_horses: Iterable[str],
    probabilities: Mapping[str, float],
    config: ExoticConfig,
    unit: Optional[float] = None,
) -> ExoticKeyBet:
    """Price a key bet with the key horse on top.

    ``probabilities`` maps program number to model win probability for the
    active field; horses missing from it (scratched) are dropped from the
    with-horses. Too few with-horses gives a zero-combination bet rather
    than an error.
    """
    if bet_type not in KEY_TYPES:
        raise ValueError(f"{bet_type} is not a key bet type")
    unit = config.unit_for(bet_type.family) if unit is None else unit
    positions = bet_type.positions

    requested = _unique(with_horses, exclude=key_horse)
    active_with = [h for h in requested if h in probabilities]
    dropped = [h for h in requested if h not in probabilities]

    if key_horse not in probabilities:
        return _zero_key(bet_type, key_horse, active_with, unit,
                         f"Key horse #{key_horse} is not in the active field")

    needed = positions - 1
    if len(active_with) < needed:
        return _zero_key(
            bet_type, key_horse, active_with, unit,
            f"Insufficient with-horses for {bet_type.family} key: "
            f"need {needed}, have {len(active_with)}",
        )

    combos = permutation_count(len(active_with), needed)
    reasoning = (
        f"#{key_horse} on top with {', '.join('#' + h for h in active_with)}: "
        f"{combos} combinations at ${unit:.2f}"
    )
    if dropped:
        reasoning += f" (removed non-runners {', '.join('#' + h for h in dropped)})"

    return ExoticKeyBet(
        bet_type=bet_type,
        key_horse=key_horse,
        with_horses=tuple(active_with),
        combinations=combos,
        cost_per_unit=unit,
        total_cost=round(combos * unit, 2),
        estimated_probability=key_probability(key_horse, active_with, positions, probabilities),
        reasoning=reasoning,
    )


def calculate_exotic_box(
    bet_type: BetType,
    horses: Iterable[str],
    probabilities: Mapping[str, float],
    config: ExoticConfig,
    unit: Optional[float] = None,
) -> ExoticBoxBet:
    """Price a box: every order of the horses over the first k places."""
    if bet_type not in BOX_TYPES:
        raise ValueError(f"{bet_type} is not a box bet type")
    unit = config.unit_for(bet_type.family) if unit is None else unit
    positions = bet_type.positions

    boxed = [h for h in _unique(horses) if h in probabilities]
    combos = permutation_count(len(boxed), positions)
    if combos == 0:
        reasoning = (
            f"Insufficient horses for {bet_type.family} box: "
            f"need {positions}, have {len(boxed)}"
        )
        probability = 0.0
    else:
        reasoning = (
            f"{bet_type.family.title()} box {', '.join('#' + h for h in boxed)}: "
            f"{combos} combinations at ${unit:.2f}"
        )
        probability = box_probability(boxed, positions, probabilities)

    return ExoticBoxBet(
        bet_type=bet_type,
        horses=tuple(boxed),
        combinations=combos,
        cost_per_unit=unit,
        total_cost=round(combos * unit, 2),
        estimated_probability=probability,
        reasoning=reasoning,
    )
