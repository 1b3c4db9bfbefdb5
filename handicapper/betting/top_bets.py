"""Rank straight and exotic wagers for a race.

Straight bets (win/place/show) carry an expected value from the model
probability and the quoted odds. Exotics are built from horses above a
score threshold, gated by field size, and never carry an EV. Candidates
are ordered EV-bearing first (EV descending), then speculative bets by
probability, deduplicated, fitted to an optional budget and cut to top N.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Optional

from handicapper.betting.exotics import (
    calculate_exotic_box,
    calculate_exotic_key,
    check_field_size,
)
from handicapper.config import RankingConfig, ScoringConfig
from handicapper.errors import InsufficientField
from handicapper.models.scoring import (
    BetType,
    ProbabilityEstimate,
    RiskTier,
    ScoringResult,
    TopBet,
    TopBetsResult,
)

logger = logging.getLogger(__name__)

BET_TYPE_ORDER = {bt: i for i, bt in enumerate(BetType)}

EXOTIC_FAMILIES = (
    (BetType.EXACTA_KEY, BetType.EXACTA_BOX),
    (BetType.TRIFECTA_KEY, BetType.TRIFECTA_BOX),
    (BetType.SUPERFECTA_KEY, BetType.SUPERFECTA_BOX),
)


@dataclass
class BetCandidate:
    """A wager before ranking."""

    bet_type: BetType
    horses: tuple[str, ...]
    combinations: int
    unit_stake: float
    cost: float
    probability: float
    expected_value: Optional[float] = None
    key_horse: Optional[str] = None
    is_speculative: bool = False
    reasoning: str = ""

    @property
    def identity(self) -> tuple:
        return (self.bet_type, self.key_horse, frozenset(self.horses))

    def sort_key(self) -> tuple:
        horses = tuple(sorted(self.horses))
        if self.expected_value is not None:
            return (0, -self.expected_value, BET_TYPE_ORDER[self.bet_type], horses)
        return (1, -self.probability, BET_TYPE_ORDER[self.bet_type], horses)


def expected_value(probability: float, profit: float, stake: float) -> float:
    """EV = p * profit - (1 - p) * stake."""
    return probability * profit - (1 - probability) * stake


def risk_tier(probability: float, cost: float, config: RankingConfig) -> RiskTier:
    if probability > config.conservative_probability and cost <= config.conservative_max_cost:
        return RiskTier.CONSERVATIVE
    if probability >= config.moderate_probability and cost <= config.moderate_max_cost:
        return RiskTier.MODERATE
    return RiskTier.AGGRESSIVE


# ──────────────────────────────────────────────
# Candidate builders
# ──────────────────────────────────────────────

def straight_candidates(est: ProbabilityEstimate, config: RankingConfig) -> list[BetCandidate]:
    """Win, place and show bets for one priced horse."""
    if not est.decimal_odds:
        return []

    stake = config.straight_stake
    fractional = est.decimal_odds - 1.0
    place_mult = max(fractional * config.place_payout_factor, config.min_place_profit)
    show_mult = max(fractional * config.show_payout_factor, config.min_place_profit)

    bets = []
    for bet_type, prob, mult in (
        (BetType.WIN, est.model_probability, fractional),
        (BetType.PLACE, est.place_probability, place_mult),
        (BetType.SHOW, est.show_probability, show_mult),
    ):
        ev = round(expected_value(prob, mult * stake, stake), 4)
        bets.append(BetCandidate(
            bet_type=bet_type,
            horses=(est.program_number,),
            combinations=1,
            unit_stake=stake,
            cost=stake,
            probability=prob,
            expected_value=ev,
            reasoning=(
                f"#{est.program_number} {bet_type.value.lower()} at {est.odds_text}: "
                f"{prob:.1%} chance, EV ${ev:+.2f}"
            ),
        ))
    return bets


def exotic_candidates(
    scoring: ScoringResult,
    probabilities: Mapping[str, float],
    config: ScoringConfig,
) -> tuple[list[BetCandidate], list[str]]:
    """Key and box bets from horses above the score thresholds."""
    rconf = config.ranking
    active = scoring.active
    field_size = len(active)
    key_min = scoring.max_base_score * rconf.key_min_score_pct
    with_min = scoring.max_base_score * rconf.with_min_score_pct

    keys = [h.program_number for h in active if h.base_score >= key_min][: rconf.max_keys]
    pool = [h.program_number for h in active if h.base_score >= with_min]

    candidates: list[BetCandidate] = []
    omitted: list[str] = []
    if not keys:
        omitted.append(f"No horse reaches the key threshold ({key_min:.1f} pts)")

    for key_type, box_type in EXOTIC_FAMILIES:
        try:
            check_field_size(key_type, field_size, config.exotics)
        except InsufficientField as e:
            omitted.append(f"{key_type.family.title()} bets omitted: {e}")
            continue

        for key in keys:
            withs = [h for h in pool if h != key][: rconf.max_with_horses]
            bet = calculate_exotic_key(key_type, key, withs, probabilities, config.exotics)
            if bet.combinations == 0:
                omitted.append(f"{key_type.value} #{key}: {bet.reasoning}")
                continue
            candidates.append(BetCandidate(
                bet_type=key_type,
                horses=(bet.key_horse,) + bet.with_horses,
                combinations=bet.combinations,
                unit_stake=bet.cost_per_unit,
                cost=bet.total_cost,
                probability=bet.estimated_probability,
                key_horse=bet.key_horse,
                is_speculative=True,
                reasoning=bet.reasoning,
            ))

        if rconf.include_boxes:
            box = calculate_exotic_box(
                box_type, pool[: rconf.box_size], probabilities, config.exotics,
            )
            if box.combinations == 0:
                omitted.append(f"{box_type.value}: {box.reasoning}")
            else:
                candidates.append(BetCandidate(
                    bet_type=box_type,
                    horses=box.horses,
                    combinations=box.combinations,
                    unit_stake=box.cost_per_unit,
                    cost=box.total_cost,
                    probability=box.estimated_probability,
                    is_speculative=True,
                    reasoning=box.reasoning,
                ))

    return candidates, omitted


# ──────────────────────────────────────────────
# Main entry point
# ──────────────────────────────────────────────

def generate_top_bets(
    scoring: ScoringResult,
    estimates: Mapping[str, ProbabilityEstimate],
    config: ScoringConfig,
    budget: Optional[float] = None,
) -> TopBetsResult:
    """Enumerate, order, dedupe and select the race's best wagers."""
    rconf = config.ranking
    candidates: list[BetCandidate] = []
    omitted: list[str] = []

    for est in estimates.values():
        straight = straight_candidates(est, rconf)
        if not straight:
            omitted.append(f"#{est.program_number}: no usable odds, straight bets skipped")
        candidates.extend(straight)

    probabilities = {pn: e.model_probability for pn, e in estimates.items()}
    exotics, exotic_omitted = exotic_candidates(scoring, probabilities, config)
    candidates.extend(exotics)
    omitted.extend(exotic_omitted)

    candidates.sort(key=BetCandidate.sort_key)

    selected: list[BetCandidate] = []
    seen = set()
    spent = 0.0
    over_budget = 0
    for c in candidates:
        if c.identity in seen:
            continue
        seen.add(c.identity)
        if budget is not None and spent + c.cost > budget + 1e-9:
            over_budget += 1
            continue
        selected.append(c)
        spent += c.cost
        if len(selected) >= rconf.top_n:
            break

    if over_budget:
        omitted.append(f"{over_budget} bets skipped: cost exceeds remaining budget")

    bets = tuple(
        TopBet(
            rank=i + 1,
            bet_type=c.bet_type,
            horses=c.horses,
            combinations=c.combinations,
            unit_stake=c.unit_stake,
            cost=c.cost,
            probability=c.probability,
            risk_tier=risk_tier(c.probability, c.cost, rconf),
            expected_value=c.expected_value,
            key_horse=c.key_horse,
            is_speculative=c.is_speculative,
            reasoning=c.reasoning,
        )
        for i, c in enumerate(selected)
    )

    logger.info(
        "Top bets: %d selected from %d candidates (%d omitted reasons)",
        len(bets), len(candidates), len(omitted),
    )
    return TopBetsResult(
        bets=bets,
        omitted=tuple(omitted),
        candidates_considered=len(candidates),
        budget=budget,
    )
