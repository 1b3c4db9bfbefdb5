"""Shared test fixtures for the handicapper."""

import pytest

from handicapper.config import ScoringConfig
from handicapper.models import HorseRecord, PastPerformance, RaceHeader, StatsRecord
from handicapper.pipeline import RacePipeline


def _pp(finish, fig=None, days=28, comment="", purse=40000.0, dist=6.0,
        quarter=None, half=None, final=None, surface="dirt"):
    return PastPerformance(
        finish_position=finish,
        field_size=9,
        speed_figure=fig,
        distance_furlongs=dist,
        surface=surface,
        purse=purse,
        days_since_previous=days,
        quarter_time=quarter,
        half_mile_time=half,
        final_time=final,
        trip_comment=comment,
    )


# Closing fractions: early 13.0 s/f, late 11.0 s/f over 6f
_CLOSING = dict(quarter=22.0, half=48.0, final=70.0)
# Fading fractions: early 11.6 s/f, late 12.6 s/f over 6f
_FADING = dict(quarter=22.4, half=45.6, final=70.8)


@pytest.fixture
def header() -> RaceHeader:
    """Six furlong dirt allowance with a par of 85."""
    return RaceHeader(
        track_code="CD",
        race_number=5,
        surface="dirt",
        distance_furlongs=6.0,
        classification="Allowance",
        purse=40000.0,
        speed_par=85,
    )


@pytest.fixture
def config() -> ScoringConfig:
    return ScoringConfig()


@pytest.fixture
def pipeline(config) -> RacePipeline:
    return RacePipeline(config)


@pytest.fixture
def field() -> list[HorseRecord]:
    """Eight entries, #6 scratched, two early types left in the race."""
    return [
        HorseRecord(
            program_number="1", name="Speed Merchant", running_style="E",
            post_position=1, layoff_days=21,
            past_performances=(
                _pp(1, 92, **_FADING), _pp(2, 88, **_FADING), _pp(1, 90),
            ),
            trainer_name="J. Smith", jockey_name="L. Saez",
            trainer_stats=StatsRecord(40, 10, 8, 6),
            jockey_stats=StatsRecord(100, 22, 18, 15),
            morning_line_odds="2-1",
        ),
        HorseRecord(
            program_number="2", name="Late Thunder", running_style="C",
            post_position=5, layoff_days=28,
            past_performances=(
                _pp(3, 88, comment="blocked stretch, steadied", **_CLOSING),
                _pp(2, 86, **_CLOSING),
                _pp(4, 85, **_CLOSING),
            ),
            morning_line_odds="3-1",
        ),
        HorseRecord(
            program_number="3", name="Steady Eddie", running_style="P",
            post_position=3, layoff_days=35,
            past_performances=(_pp(2, 86), _pp(3, 84), _pp(5, 80)),
            morning_line_odds="5-2",
        ),
        HorseRecord(
            program_number="4", name="Backmarker", running_style="S",
            post_position=8, layoff_days=45,
            past_performances=(_pp(6, 78, comment="bumped start"), _pp(7, 75)),
            morning_line_odds="8-1",
        ),
        HorseRecord(
            program_number="5", name="Firster", post_position=4,
            morning_line_odds="15-1",
        ),
        HorseRecord(
            program_number="6", name="Scratch Me", running_style="E/P",
            post_position=6, layoff_days=30,
            past_performances=(_pp(4, 82), _pp(4, 80)),
            morning_line_odds="6-1", scratched=True,
        ),
        HorseRecord(
            program_number="7", name="Outsider", running_style="E",
            post_position=7, layoff_days=120,
            past_performances=(_pp(9, 65), _pp(8, 68)),
            morning_line_odds="20-1",
        ),
        HorseRecord(
            program_number="8", name="Mid Pack", running_style="P",
            post_position=2, layoff_days=14,
            past_performances=(_pp(4, 83), _pp(5, 82), _pp(3, 84)),
            morning_line_odds="10-1",
        ),
    ]
