"""Tests for multi-race batch runs."""

import pytest

from handicapper.batch import RaceInput, calibration_pairs, run_batch, run_race
from handicapper.models import HorseRecord


# ──────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────

def _races(field, header, count=3):
    return [
        RaceInput(race_id=f"CD-R{i}", horses=tuple(field), header=header)
        for i in range(1, count + 1)
    ]


class TestRunRace:
    def test_success(self, config, field, header):
        result = run_race(config, RaceInput("CD-R5", tuple(field), header))
        assert result.error is None
        assert result.analysis.scoring.header == header

    def test_odds_and_scratches(self, config, field, header):
        odds = tuple("4-1" for _ in field)
        scratched = tuple(i == 0 for i in range(len(field)))
        result = run_race(config, RaceInput("CD-R5", tuple(field), header, odds, scratched))
        estimates = result.analysis.estimates
        assert "1" not in estimates
        # per-race scratches replace the record flags
        assert "6" in estimates
        assert all(e.odds_text == "4-1" for e in estimates.values())

    def test_failure_reported(self, config, header):
        race = RaceInput("bad", (HorseRecord(program_number="", name=""),), header)
        result = run_race(config, race)
        assert result.analysis is None
        assert "no valid horse records" in result.error


class TestRunBatch:
    def test_inline(self, config, field, header):
        results = run_batch(_races(field, header), config, workers=1)
        assert [r.race_id for r in results] == ["CD-R1", "CD-R2", "CD-R3"]
        assert all(r.error is None for r in results)

    def test_threads_keep_order(self, config, field, header):
        races = _races(field, header, count=5)
        results = run_batch(races, config, workers=3, executor="thread")
        assert [r.race_id for r in results] == [r.race_id for r in races]

    def test_parallel_matches_inline(self, config, field, header):
        races = _races(field, header, count=2)
        inline = run_batch(races, config, workers=1)
        threaded = run_batch(races, config, workers=2, executor="thread")
        for a, b in zip(inline, threaded):
            assert a.analysis.probabilities == b.analysis.probabilities

    def test_one_failure_does_not_stop_batch(self, config, field, header):
        races = _races(field, header, count=2)
        races.insert(1, RaceInput("bad", (HorseRecord(program_number="", name=""),), header))
        results = run_batch(races, config, workers=2, executor="thread")
        assert [r.error is None for r in results] == [True, False, True]

    def test_empty(self, config):
        assert run_batch([], config) == []


class TestCalibrationPairs:
    def test_pairs(self, config, field, header):
        results = run_batch(_races(field, header, count=2), config, workers=1)
        predictions, outcomes = calibration_pairs(results, {"CD-R1": "2"})
        # only the race with a result, seven active runners
        assert len(predictions) == 7
        assert outcomes.count(True) == 1
        assert sum(predictions) == pytest.approx(1.0, abs=1e-6)

    def test_failed_races_skipped(self, config, header):
        race = RaceInput("bad", (HorseRecord(program_number="", name=""),), header)
        results = run_batch([race], config, workers=1)
        assert calibration_pairs(results, {"bad": "1"}) == ([], [])
