"""End-to-end tests for the staged race pipeline."""

import pytest

from handicapper.models import BetType, HorseRecord
from handicapper.pipeline import RacePipeline


class TestAnalyze:
    def test_deterministic(self, pipeline, field, header):
        first = pipeline.analyze(field, header)
        second = RacePipeline(pipeline.config).analyze(field, header)
        assert first.scoring == second.scoring
        assert first.probabilities == second.probabilities
        assert first.top_bets == second.top_bets

    def test_stages_line_up(self, pipeline, field, header):
        analysis = pipeline.analyze(field, header)
        assert list(analysis.estimates) == [h.program_number for h in analysis.scoring.active]
        assert sum(analysis.probabilities.values()) == pytest.approx(1.0, abs=1e-6)
        assert analysis.top_bets.bets

    def test_duplicate_program_number_keeps_probabilities_whole(self, pipeline, field, header):
        horses = field[:3] + [field[2]]
        analysis = pipeline.analyze(horses, header)
        assert len(analysis.estimates) == 3
        assert sum(e.model_probability for e in analysis.estimates.values()) == pytest.approx(1.0, abs=1e-6)
        assert analysis.scoring.excluded[0].startswith("entry 3:")

    def test_default_config(self, field, header):
        analysis = RacePipeline().analyze(field, header)
        assert analysis.scoring.max_base_score == 177


class TestUpdateOdds:
    def test_scores_reused(self, pipeline, field, header):
        analysis = pipeline.analyze(field, header)
        updated = pipeline.update_odds(analysis, lambda i, default: "1-1")
        assert updated.scoring is analysis.scoring
        assert updated.probabilities == analysis.probabilities
        assert all(e.odds_text == "1-1" for e in updated.estimates.values())

    def test_value_flags_follow_odds(self, pipeline, field, header):
        analysis = pipeline.analyze(field, header)
        longshot = pipeline.update_odds(
            analysis, lambda i, default: "50-1" if i == 0 else default,
        )
        assert longshot.estimates["1"].edge > analysis.estimates["1"].edge

    def test_late_scratch(self, pipeline, field, header):
        analysis = pipeline.analyze(field, header)
        leader = analysis.scoring.active[0].program_number
        leader_index = analysis.scoring.get(leader).source_index
        updated = pipeline.update_odds(
            analysis, is_scratched=lambda i: i in (5, leader_index),
        )
        assert leader not in updated.estimates
        assert len(updated.estimates) == 6
        assert sum(updated.probabilities.values()) == pytest.approx(1.0, abs=1e-6)
        for bet in updated.top_bets.bets:
            assert leader not in bet.horses

    def test_budget_on_update(self, pipeline, field, header):
        analysis = pipeline.analyze(field, header)
        updated = pipeline.update_odds(analysis, budget=10.0)
        assert updated.top_bets.total_cost <= 10.0


class TestExoticKey:
    def test_exacta_key_with_three(self, pipeline, field, header):
        analysis = pipeline.analyze(field, header)
        key, *others = [h.program_number for h in analysis.scoring.active]
        withs = others[:3]
        # #6 is scratched and must be dropped from the ticket
        bet = pipeline.exotic_key(analysis, BetType.EXACTA_KEY, key, withs + ["6"])
        assert bet.with_horses == tuple(withs)
        assert "6" not in bet.with_horses
        assert bet.combinations == 3
        assert bet.total_cost == 3 * 2.0
        assert bet.estimated_ev is None
        assert 0 < bet.estimated_probability < analysis.probabilities[key]

    def test_superfecta_with_three_runners(self, pipeline, field, header):
        horses = field[:3] + [field[5]]
        analysis = pipeline.analyze(horses, header)
        active = [h.program_number for h in analysis.scoring.active]
        assert len(active) == 3
        bet = pipeline.exotic_key(analysis, BetType.SUPERFECTA_KEY, active[0], active[1:] + ["6"])
        assert bet.combinations == 0
        assert bet.total_cost == 0.0
        assert bet.reasoning.startswith("Insufficient with-horses")

    def test_unit_override(self, pipeline, field, header):
        analysis = pipeline.analyze(field, header)
        active = [h.program_number for h in analysis.scoring.active]
        bet = pipeline.exotic_key(analysis, BetType.TRIFECTA_KEY, active[0], active[1:4], unit=0.5)
        assert bet.combinations == 6
        assert bet.total_cost == 3.0


class TestFromDict:
    def test_ingestion_shape(self, pipeline, header):
        raw = [
            {
                "program_number": 1, "name": "Dict Horse", "running_style": "e-p",
                "post_position": "2", "layoff_days": 30, "morning_line_odds": "5-2",
                "trainer_stats": "20: 5-3-2",
                "past_performances": [
                    {"finish_position": 2, "speed_figure": 84, "distance_furlongs": 6,
                     "quarter_time": "22.40", "half_mile_time": "45.80",
                     "final_time": "1:10.60", "trip_comment": "checked"},
                ],
            },
            {"program_number": "2", "name": "Other", "morning_line_odds": "EVEN"},
        ]
        horses = [HorseRecord.from_dict(r) for r in raw]
        assert horses[0].running_style == "E/P"
        assert horses[0].past_performances[0].final_time == pytest.approx(70.6)
        analysis = pipeline.analyze(horses, header)
        assert analysis.scoring.get("1").trip_trouble.high_races == 1
        assert analysis.estimates["2"].decimal_odds == 2.0
