"""Category scorers and the base-score aggregator."""

from handicapper.scoring.aggregator import (
    SCORERS,
    apply_scratches,
    confidence_level,
    rank_field,
    score_field,
)
from handicapper.scoring.base import RaceContext
from handicapper.scoring.connections import score_connections
from handicapper.scoring.equipment import score_equipment
from handicapper.scoring.form import score_form
from handicapper.scoring.pace import determine_pace_scenario, score_pace
from handicapper.scoring.post_position import score_post_position
from handicapper.scoring.speed_class import score_speed_class

__all__ = [
    "SCORERS",
    "RaceContext",
    "apply_scratches",
    "confidence_level",
    "determine_pace_scenario",
    "rank_field",
    "score_connections",
    "score_equipment",
    "score_field",
    "score_form",
    "score_pace",
    "score_post_position",
    "score_speed_class",
]
