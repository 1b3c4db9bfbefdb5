"""Result types produced by each pipeline stage.

Every stage returns new frozen instances; nothing downstream mutates them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from handicapper.models.race import HorseRecord, RaceHeader


class TroubleLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    CAUSED = "caused"


class PaceScenario(str, Enum):
    SOFT = "soft"
    MODERATE = "moderate"
    CONTESTED = "contested"
    SPEED_DUEL = "speed_duel"


class ConfidenceLevel(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class ValueFlag(str, Enum):
    OVERLAY = "overlay"
    FAIR = "fair"
    UNDERLAY = "underlay"
    UNPRICED = "unpriced"


class RiskTier(str, Enum):
    CONSERVATIVE = "Conservative"
    MODERATE = "Moderate"
    AGGRESSIVE = "Aggressive"


class BetType(str, Enum):
    WIN = "WIN"
    PLACE = "PLACE"
    SHOW = "SHOW"
    EXACTA_KEY = "EXACTA_KEY"
    TRIFECTA_KEY = "TRIFECTA_KEY"
    SUPERFECTA_KEY = "SUPERFECTA_KEY"
    EXACTA_BOX = "EXACTA_BOX"
    TRIFECTA_BOX = "TRIFECTA_BOX"
    SUPERFECTA_BOX = "SUPERFECTA_BOX"

    @property
    def is_straight(self) -> bool:
        return self in (BetType.WIN, BetType.PLACE, BetType.SHOW)

    @property
    def positions(self) -> int:
        """Number of finishing positions the wager covers."""
        if self.is_straight:
            return 1
        return {"EXACTA": 2, "TRIFECTA": 3, "SUPERFECTA": 4}[self.value.split("_")[0]]

    @property
    def family(self) -> str:
        """"exacta", "trifecta", "superfecta" or the straight bet name."""
        return self.value.split("_")[0].lower()


# ──────────────────────────────────────────────
# Scoring
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class CategoryScore:
    """One scorer's output: bounded score plus its working."""

    category: str
    score: float
    max_score: float
    subscores: dict[str, float] = field(default_factory=dict)
    reasoning: str = ""
    flags: tuple[str, ...] = ()


@dataclass(frozen=True)
class TripTroubleResult:
    adjustment: int
    reason: str
    matched_keywords: tuple[str, ...] = ()
    high_races: int = 0
    medium_races: int = 0
    low_races: int = 0
    caused_races: int = 0
    races_scanned: int = 0


@dataclass(frozen=True)
class VelocityRace:
    """Velocity differential for a single past performance."""

    early_rate: Optional[float]
    late_rate: Optional[float]
    differential: Optional[float]
    complete: bool
    note: str = ""


@dataclass(frozen=True)
class VelocityResult:
    adjustment: int
    classification: str
    description: str
    profile_summary: str = ""
    average_differential: Optional[float] = None
    trend: str = "unknown"
    late_kick_points: int = 0
    races_analyzed: int = 0
    races: tuple[VelocityRace, ...] = ()


@dataclass(frozen=True)
class ScoredHorse:
    source_index: int
    horse: HorseRecord
    base_score: float
    breakdown: dict[str, CategoryScore]
    trip_trouble: TripTroubleResult
    velocity: VelocityResult
    is_scratched: bool
    confidence: ConfidenceLevel
    data_quality: int
    rank: Optional[int] = None
    warnings: tuple[str, ...] = ()

    @property
    def program_number(self) -> str:
        return self.horse.program_number

    @property
    def name(self) -> str:
        return self.horse.name

    @property
    def category_total(self) -> float:
        return round(sum(c.score for c in self.breakdown.values()), 2)

    @property
    def adjustment_total(self) -> int:
        return self.trip_trouble.adjustment + self.velocity.adjustment


@dataclass(frozen=True)
class ScoringResult:
    header: RaceHeader
    horses: tuple[ScoredHorse, ...]
    pace_scenario: PaceScenario
    max_base_score: float
    excluded: tuple[str, ...] = ()

    @property
    def active(self) -> list[ScoredHorse]:
        """Non-scratched horses in rank order."""
        live = [h for h in self.horses if not h.is_scratched]
        return sorted(live, key=lambda h: h.rank or 0)

    def get(self, program_number: str) -> Optional[ScoredHorse]:
        for h in self.horses:
            if h.program_number == program_number:
                return h
        return None


# ──────────────────────────────────────────────
# Pricing
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class ProbabilityEstimate:
    program_number: str
    source_index: int
    model_probability: float
    place_probability: float
    show_probability: float
    odds_text: Optional[str] = None
    decimal_odds: Optional[float] = None
    implied_probability: Optional[float] = None
    edge: Optional[float] = None
    value_rating: Optional[float] = None
    value_flag: ValueFlag = ValueFlag.UNPRICED


# ──────────────────────────────────────────────
# Wagers
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class ExoticKeyBet:
    bet_type: BetType
    key_horse: str
    with_horses: tuple[str, ...]
    combinations: int
    cost_per_unit: float
    total_cost: float
    estimated_probability: float
    reasoning: str = ""
    estimated_ev: None = None
    is_speculative: bool = True


@dataclass(frozen=True)
class ExoticBoxBet:
    bet_type: BetType
    horses: tuple[str, ...]
    combinations: int
    cost_per_unit: float
    total_cost: float
    estimated_probability: float
    reasoning: str = ""
    estimated_ev: None = None
    is_speculative: bool = True


@dataclass(frozen=True)
class TopBet:
    rank: int
    bet_type: BetType
    horses: tuple[str, ...]
    combinations: int
    unit_stake: float
    cost: float
    probability: float
    risk_tier: RiskTier
    expected_value: Optional[float] = None
    key_horse: Optional[str] = None
    is_speculative: bool = False
    reasoning: str = ""


@dataclass(frozen=True)
class TopBetsResult:
    bets: tuple[TopBet, ...]
    omitted: tuple[str, ...] = ()
    candidates_considered: int = 0
    budget: Optional[float] = None

    @property
    def total_cost(self) -> float:
        return round(sum(b.cost for b in self.bets), 2)
