"""Tests for the six category scorers."""

import pytest

from handicapper.models import (
    EquipmentFlags,
    HorseRecord,
    PaceScenario,
    PastPerformance,
    RaceHeader,
    StatsRecord,
)
from handicapper.scoring import (
    SCORERS,
    RaceContext,
    determine_pace_scenario,
    score_connections,
    score_equipment,
    score_form,
    score_pace,
    score_post_position,
    score_speed_class,
)


# ──────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────

def _context(header=None, scenario=PaceScenario.MODERATE, field_size=8):
    return RaceContext(
        header=header or RaceHeader(purse=40000.0, speed_par=85),
        pace_scenario=scenario,
        field_size=field_size,
    )


def _horse(**kwargs):
    defaults = {"program_number": "1", "name": "Test Horse"}
    defaults.update(kwargs)
    return HorseRecord(**defaults)


def _pps(*finishes, fig=None, purse=40000.0, days=28):
    return tuple(
        PastPerformance(finish_position=f, speed_figure=fig, purse=purse, days_since_previous=days)
        for f in finishes
    )


class TestBounds:
    def test_every_scorer_within_maximum(self, field, header, config):
        context = _context(header, determine_pace_scenario(field), len(field))
        for horse in field:
            for name, scorer in SCORERS:
                result = scorer(horse, context, config)
                assert result.category == name
                assert 0 <= result.score <= result.max_score
                assert result.max_score == getattr(config.maxima, name)

    def test_maxima_sum(self, config):
        assert sum(getattr(config.maxima, name) for name, _ in SCORERS) == 164


# ──────────────────────────────────────────────
# Form
# ──────────────────────────────────────────────

class TestForm:
    def test_first_starter_neutral(self, config):
        result = score_form(_horse(), _context(), config)
        assert result.score == 13
        assert result.flags == ("no_past_performances",)

    def test_perfect_form(self, config):
        result = score_form(_horse(layoff_days=21, past_performances=_pps(1, 1, 1)), _context(), config)
        assert result.subscores == {"recent_form": 15, "layoff": 10, "consistency": 5}
        assert result.score == 30

    def test_weighted_finishes(self, config):
        # 2nd, 4th, 9th: 12*.5 + 10*.3 + 3*.2
        result = score_form(_horse(layoff_days=21, past_performances=_pps(2, 4, 9)), _context(), config)
        assert result.subscores["recent_form"] == pytest.approx(9.6)
        assert result.subscores["consistency"] == 1

    def test_short_history_renormalised(self, config):
        result = score_form(_horse(layoff_days=21, past_performances=_pps(1)), _context(), config)
        assert result.subscores["recent_form"] == 15

    @pytest.mark.parametrize("days,points", [
        (3, 6), (21, 10), (35, 10), (50, 7), (80, 4), (150, 0),
    ])
    def test_layoff(self, config, days, points):
        result = score_form(_horse(layoff_days=days, past_performances=_pps(5)), _context(), config)
        assert result.subscores["layoff"] == points

    def test_long_layoff_won_fresh(self, config):
        pps = (
            PastPerformance(finish_position=5, days_since_previous=30),
            PastPerformance(finish_position=1, days_since_previous=120),
        )
        result = score_form(_horse(layoff_days=150, past_performances=pps), _context(), config)
        assert result.subscores["layoff"] == 5

    def test_missing_layoff_flagged(self, config):
        result = score_form(_horse(past_performances=_pps(3)), _context(), config)
        assert result.subscores["layoff"] == 5
        assert "no_layoff_days" in result.flags

    def test_consistency_in_the_money_rate(self, config):
        # streak of one, but four of the last five in the money
        result = score_form(
            _horse(layoff_days=21, past_performances=_pps(1, 5, 2, 3, 1)), _context(), config,
        )
        assert result.subscores["consistency"] == 3


# ──────────────────────────────────────────────
# Speed and class
# ──────────────────────────────────────────────

class TestSpeedClass:
    def test_neutral_without_data(self, config):
        result = score_speed_class(_horse(), _context(RaceHeader()), config)
        assert result.subscores == {"speed": 22, "class": 7}
        assert set(result.flags) == {"no_speed_figures", "no_purse_data"}

    def test_relative_to_par(self, config):
        pps = (
            PastPerformance(speed_figure=90, purse=40000.0),
            PastPerformance(speed_figure=80),
            PastPerformance(speed_figure=88),
        )
        result = score_speed_class(_horse(past_performances=pps), _context(), config)
        # best two average 89, four over par
        assert result.subscores["speed"] == 36
        assert result.subscores["class"] == 9

    def test_absolute_scale(self, config):
        pps = (PastPerformance(speed_figure=90), PastPerformance(speed_figure=88))
        result = score_speed_class(
            _horse(past_performances=pps), _context(RaceHeader(purse=40000.0)), config,
        )
        assert result.subscores["speed"] == pytest.approx(36.75)

    def test_speed_clamped(self, config):
        pps = (PastPerformance(speed_figure=130),)
        result = score_speed_class(_horse(past_performances=pps), _context(), config)
        assert result.subscores["speed"] == 45

    @pytest.mark.parametrize("last_purse,points", [
        (80000.0, 15), (45000.0, 12), (40000.0, 9), (30000.0, 5), (10000.0, 2),
    ])
    def test_class_movement(self, config, last_purse, points):
        pps = (PastPerformance(speed_figure=85, purse=last_purse),)
        result = score_speed_class(_horse(past_performances=pps), _context(), config)
        assert result.subscores["class"] == points


# ──────────────────────────────────────────────
# Post position
# ──────────────────────────────────────────────

class TestPostPosition:
    def test_unknown_post(self, config):
        result = score_post_position(_horse(), _context(), config)
        assert result.score == 6
        assert result.flags == ("no_post_position",)

    def test_sprint_inside(self, config):
        result = score_post_position(_horse(post_position=2), _context(), config)
        assert result.score == 11

    def test_route_rail(self, config):
        header = RaceHeader(distance_furlongs=9.0)
        result = score_post_position(_horse(post_position=1), _context(header), config)
        assert result.score == 11

    def test_wide_field_outside_draw(self, config):
        result = score_post_position(_horse(post_position=12), _context(field_size=12), config)
        assert result.score == 1

    def test_track_bias(self, config):
        header = RaceHeader(favored_posts=(7,))
        result = score_post_position(_horse(post_position=7), _context(header), config)
        assert result.subscores == {"post": 7, "bias": 1}
        assert "track bias" in result.reasoning


# ──────────────────────────────────────────────
# Equipment
# ──────────────────────────────────────────────

class TestEquipment:
    def test_no_changes(self, config):
        result = score_equipment(_horse(), _context(), config)
        assert result.score == 3
        assert result.reasoning == "no equipment changes"

    def test_first_lasix_and_blinkers(self, config):
        eq = EquipmentFlags(first_time_lasix=True, first_time_blinkers=True)
        result = score_equipment(_horse(equipment=eq), _context(), config)
        assert result.score == 8

    def test_lasix_off(self, config):
        result = score_equipment(_horse(equipment=EquipmentFlags(lasix_off=True)), _context(), config)
        assert result.score == 1

    def test_capped(self, config):
        eq = EquipmentFlags(
            first_time_lasix=True, first_time_blinkers=True,
            first_time_equipment=("tongue tie", "shadow roll"),
        )
        result = score_equipment(_horse(equipment=eq), _context(), config)
        assert result.score == config.maxima.equipment


# ──────────────────────────────────────────────
# Connections
# ──────────────────────────────────────────────

class TestConnections:
    def test_neutral_without_stats(self, config):
        result = score_connections(_horse(), _context(), config)
        assert result.score == 8
        assert set(result.flags) == {"limited_trainer_stats", "limited_jockey_stats"}

    def test_strike_rates(self, config):
        horse = _horse(
            trainer_stats=StatsRecord(40, 10, 5, 5),
            jockey_stats=StatsRecord(10, 1, 2, 3),
            partnership_stats=StatsRecord(4, 1, 1, 0),
        )
        result = score_connections(horse, _context(), config)
        assert result.subscores == {"trainer": 10, "jockey": 4, "partnership": 4}
        assert result.flags == ()

    def test_small_partnership_ignored(self, config):
        horse = _horse(partnership_stats=StatsRecord(2, 2, 0, 0))
        assert score_connections(horse, _context(), config).subscores["partnership"] == 0

    def test_cold_trainer(self, config):
        horse = _horse(trainer_stats=StatsRecord(50, 1, 3, 4))
        assert score_connections(horse, _context(), config).subscores["trainer"] == 0


# ──────────────────────────────────────────────
# Pace
# ──────────────────────────────────────────────

class TestPace:
    @pytest.mark.parametrize("styles,scenario", [
        (["E", "E", "E", "C"], PaceScenario.SPEED_DUEL),
        (["E", "E", "P", "C"], PaceScenario.CONTESTED),
        (["P", "P", "C", "S"], PaceScenario.SOFT),
        (["P", "E/P", "P", "C"], PaceScenario.MODERATE),
        (["E", "P", "C"], PaceScenario.MODERATE),
    ])
    def test_scenario(self, styles, scenario):
        horses = [_horse(program_number=str(i), running_style=s) for i, s in enumerate(styles, 1)]
        assert determine_pace_scenario(horses) == scenario

    def test_hyphenated_style_is_presser(self):
        horses = [_horse(program_number=str(i), running_style="E-P") for i in range(1, 4)]
        assert determine_pace_scenario(horses) == PaceScenario.MODERATE

    def test_closer_in_speed_duel(self, config):
        result = score_pace(_horse(running_style="C"), _context(scenario=PaceScenario.SPEED_DUEL), config)
        assert result.score == 26

    def test_speed_in_soft_pace(self, config):
        result = score_pace(_horse(running_style="E"), _context(scenario=PaceScenario.SOFT), config)
        assert result.score == 26

    def test_unknown_style(self, config):
        result = score_pace(_horse(), _context(), config)
        assert result.score == 15
        assert result.flags == ("unknown_running_style",)
