"""Racecard handicapping engine: scores, overlays and ranked wagers."""

from handicapper.config import ScoringConfig, get_settings, load_profile
from handicapper.errors import HandicapperError, InsufficientField, InvalidRecord, NumericDegenerate
from handicapper.models import HorseRecord, PastPerformance, RaceHeader
from handicapper.pipeline import RaceAnalysis, RacePipeline

__version__ = "0.1.0"

__all__ = [
    "HandicapperError",
    "HorseRecord",
    "InsufficientField",
    "InvalidRecord",
    "NumericDegenerate",
    "PastPerformance",
    "RaceAnalysis",
    "RaceHeader",
    "RacePipeline",
    "ScoringConfig",
    "get_settings",
    "load_profile",
]
