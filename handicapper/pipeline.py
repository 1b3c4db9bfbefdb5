"""Staged race analysis: score, price, recommend.

Scoring is the expensive stage; pricing and ranking only read its output,
so an odds update reruns the last two stages against the same scores.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Sequence

from handicapper.betting.exotics import calculate_exotic_key
from handicapper.betting.top_bets import generate_top_bets
from handicapper.config import ScoringConfig
from handicapper.models.race import HorseRecord, RaceHeader
from handicapper.models.scoring import (
    BetType,
    ExoticKeyBet,
    ProbabilityEstimate,
    ScoringResult,
    TopBetsResult,
)
from handicapper.probability import OddsLookup, estimate_probabilities
from handicapper.scoring.aggregator import ScratchCheck, apply_scratches, score_field

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RaceAnalysis:
    """Everything the presentation layer needs for one race."""

    scoring: ScoringResult
    estimates: dict[str, ProbabilityEstimate]
    top_bets: TopBetsResult

    @property
    def probabilities(self) -> dict[str, float]:
        return {pn: e.model_probability for pn, e in self.estimates.items()}


class RacePipeline:
    """Runs the scoring, pricing and ranking stages with one profile."""

    def __init__(self, config: Optional[ScoringConfig] = None):
        self.config = config or ScoringConfig()

    def score(
        self,
        horses: Sequence[HorseRecord],
        header: RaceHeader,
        is_scratched: Optional[ScratchCheck] = None,
    ) -> ScoringResult:
        return score_field(horses, header, self.config, is_scratched)

    def price(
        self, scoring: ScoringResult, get_odds: Optional[OddsLookup] = None,
    ) -> dict[str, ProbabilityEstimate]:
        return estimate_probabilities(scoring, self.config, get_odds)

    def recommend(
        self,
        scoring: ScoringResult,
        estimates: Mapping[str, ProbabilityEstimate],
        budget: Optional[float] = None,
    ) -> TopBetsResult:
        return generate_top_bets(scoring, estimates, self.config, budget)

    def analyze(
        self,
        horses: Sequence[HorseRecord],
        header: RaceHeader,
        get_odds: Optional[OddsLookup] = None,
        is_scratched: Optional[ScratchCheck] = None,
        budget: Optional[float] = None,
    ) -> RaceAnalysis:
        scoring = self.score(horses, header, is_scratched)
        estimates = self.price(scoring, get_odds)
        return RaceAnalysis(scoring, estimates, self.recommend(scoring, estimates, budget))

    def update_odds(
        self,
        analysis: RaceAnalysis,
        get_odds: Optional[OddsLookup] = None,
        is_scratched: Optional[ScratchCheck] = None,
        budget: Optional[float] = None,
    ) -> RaceAnalysis:
        """Reprice after live odds or scratch changes, reusing the scores."""
        scoring = analysis.scoring
        logger.debug(
            "Repricing %s R%s on cached scores",
            scoring.header.track_code or "race", scoring.header.race_number,
        )
        if is_scratched is not None:
            scoring = apply_scratches(scoring, is_scratched, self.config)
        estimates = self.price(scoring, get_odds)
        return RaceAnalysis(scoring, estimates, self.recommend(scoring, estimates, budget))

    def exotic_key(
        self,
        analysis: RaceAnalysis,
        bet_type: BetType,
        key_horse: str,
        with_horses: Iterable[str],
        unit: Optional[float] = None,
    ) -> ExoticKeyBet:
        """Price a user-chosen key bet against the analysed field."""
        return calculate_exotic_key(
            bet_type, key_horse, with_horses, analysis.probabilities,
            self.config.exotics, unit,
        )
