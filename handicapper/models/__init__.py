"""Record and result types."""

from handicapper.models.race import (
    EquipmentFlags,
    HorseRecord,
    PastPerformance,
    RaceHeader,
    StatsRecord,
    program_sort_key,
    style_category,
    validate_record,
)
from handicapper.models.scoring import (
    BetType,
    CategoryScore,
    ConfidenceLevel,
    ExoticBoxBet,
    ExoticKeyBet,
    PaceScenario,
    ProbabilityEstimate,
    RiskTier,
    ScoredHorse,
    ScoringResult,
    TopBet,
    TopBetsResult,
    TripTroubleResult,
    TroubleLevel,
    ValueFlag,
    VelocityRace,
    VelocityResult,
)

__all__ = [
    "BetType",
    "CategoryScore",
    "ConfidenceLevel",
    "EquipmentFlags",
    "ExoticBoxBet",
    "ExoticKeyBet",
    "HorseRecord",
    "PaceScenario",
    "PastPerformance",
    "ProbabilityEstimate",
    "RaceHeader",
    "RiskTier",
    "ScoredHorse",
    "ScoringResult",
    "StatsRecord",
    "TopBet",
    "TopBetsResult",
    "TripTroubleResult",
    "TroubleLevel",
    "ValueFlag",
    "VelocityRace",
    "VelocityResult",
    "program_sort_key",
    "style_category",
    "validate_record",
]
