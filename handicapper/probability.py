"""Turn base scores into win/place/show probabilities and price them.

Scores are never recomputed here: this stage only reads a ScoringResult and
the current odds, so it can be re-run on every odds update.

Market probabilities come from the odds with the bookmaker margin removed
proportionally (each raw 1/odds divided by the field overround). A horse
whose model probability beats its market probability by the overlay edge
is an overlay; one that falls short by the underlay edge is an underlay.
"""

from __future__ import annotations

import logging
import math
from itertools import permutations
from typing import Callable, Optional, Sequence

from handicapper.config import ProbabilityConfig, ScoringConfig
from handicapper.models.scoring import ProbabilityEstimate, ScoredHorse, ScoringResult, ValueFlag
from handicapper.parsing import parse_odds

logger = logging.getLogger(__name__)

OddsLookup = Callable[[int, Optional[str]], Optional[str]]


# ──────────────────────────────────────────────
# Score -> probability transforms
# ──────────────────────────────────────────────

def softmax(scores: Sequence[float], temperature: float) -> list[float]:
    """p_i = exp((s_i - max) / T) / sum."""
    if not scores:
        return []
    top = max(scores)
    weights = [math.exp((s - top) / temperature) for s in scores]
    total = sum(weights)
    return [w / total for w in weights]


def power_normalize(scores: Sequence[float], exponent: float) -> list[float]:
    """p_i proportional to score ** exponent; uniform when every score is 0."""
    if not scores:
        return []
    weights = [max(s, 0.0) ** exponent for s in scores]
    total = sum(weights)
    if total <= 0:
        return [1.0 / len(scores)] * len(scores)
    return [w / total for w in weights]


def win_probabilities(scores: Sequence[float], config: ProbabilityConfig) -> list[float]:
    if config.transform == "power":
        return power_normalize(scores, config.power_exponent)
    return softmax(scores, config.temperature)


# ──────────────────────────────────────────────
# Harville conditioning
# ──────────────────────────────────────────────

def harville_probability(probs_ordered: Sequence[float]) -> float:
    """Probability the given runners finish in exactly this order.

    For [P(A), P(B), P(C)]: P(A) * P(B)/(1-P(A)) * P(C)/(1-P(A)-P(B)).
    """
    if not probs_ordered:
        return 0.0
    result = 1.0
    remaining = 1.0
    for p in probs_ordered:
        if remaining <= 0 or p <= 0:
            return 0.0
        result *= p / remaining
        remaining -= p
    return result


def finish_in_top(probs: Sequence[float], index: int, places: int) -> float:
    """Probability runner ``index`` finishes within the first ``places``."""
    target = probs[index]
    others = [p for i, p in enumerate(probs) if i != index]
    total = 0.0
    for slot in range(places):
        if slot == 0:
            total += target
            continue
        for ahead in permutations(others, slot):
            total += harville_probability(list(ahead) + [target])
    return min(total, 1.0)


# ──────────────────────────────────────────────
# Pricing
# ──────────────────────────────────────────────

def value_flag(edge: Optional[float], config: ProbabilityConfig) -> ValueFlag:
    if edge is None:
        return ValueFlag.UNPRICED
    if edge >= config.overlay_edge:
        return ValueFlag.OVERLAY
    if edge <= -config.underlay_edge:
        return ValueFlag.UNDERLAY
    return ValueFlag.FAIR


def _current_odds(horse: ScoredHorse, get_odds: Optional[OddsLookup]) -> Optional[str]:
    default = horse.horse.morning_line_odds
    if get_odds is None:
        return default
    return get_odds(horse.source_index, default)


def estimate_probabilities(
    scoring: ScoringResult,
    config: ScoringConfig,
    get_odds: Optional[OddsLookup] = None,
) -> dict[str, ProbabilityEstimate]:
    """Price the active field.

    Returns estimates keyed by program number, in rank order. Model
    probabilities sum to 1 across the active field; scratched horses get
    no estimate.
    """
    pconf = config.probability
    active = scoring.active
    if not active:
        return {}

    probs = win_probabilities([h.base_score for h in active], pconf)

    odds_text = [_current_odds(h, get_odds) for h in active]
    decimals = []
    for h, text in zip(active, odds_text):
        dec = parse_odds(text)
        if text is not None and dec is None:
            logger.warning("Unparseable odds %r for #%s %s", text, h.program_number, h.name)
        decimals.append(dec)

    overround = sum(1.0 / d for d in decimals if d)
    if overround:
        logger.debug("Market overround %.3f across %d priced runners",
                     overround, sum(1 for d in decimals if d))

    estimates = {}
    for i, h in enumerate(active):
        model = probs[i]
        dec = decimals[i]
        implied = edge = rating = None
        if dec:
            implied = (1.0 / dec) / overround
            edge = model - implied
            rating = model / implied if implied > 0 else None

        estimates[h.program_number] = ProbabilityEstimate(
            program_number=h.program_number,
            source_index=h.source_index,
            model_probability=model,
            place_probability=finish_in_top(probs, i, 2),
            show_probability=finish_in_top(probs, i, 3),
            odds_text=odds_text[i],
            decimal_odds=dec,
            implied_probability=implied,
            edge=edge,
            value_rating=rating,
            value_flag=value_flag(edge, pconf),
        )

    overlays = [pn for pn, e in estimates.items() if e.value_flag == ValueFlag.OVERLAY]
    logger.info("Priced %d runners, overlays: %s", len(estimates), ", ".join(overlays) or "none")
    return estimates
