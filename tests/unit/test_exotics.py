"""Tests for exotic key and box wagers."""

import pytest

from handicapper.betting.exotics import (
    box_probability,
    calculate_exotic_box,
    calculate_exotic_key,
    check_field_size,
    key_probability,
    permutation_count,
)
from handicapper.config import ExoticConfig
from handicapper.errors import InsufficientField
from handicapper.models import BetType


@pytest.fixture
def econf():
    return ExoticConfig()


@pytest.fixture
def probs():
    return {"1": 0.35, "2": 0.25, "3": 0.15, "4": 0.12, "5": 0.08, "7": 0.05}


class TestPermutationCount:
    @pytest.mark.parametrize("n,k,expected", [
        (3, 1, 3), (5, 2, 20), (4, 4, 24), (3, 3, 6), (3, 4, 0), (0, 1, 0), (2, 0, 1),
    ])
    def test_counts(self, n, k, expected):
        assert permutation_count(n, k) == expected


class TestFieldSize:
    def test_enough_runners(self, econf):
        check_field_size(BetType.EXACTA_KEY, 4, econf)

    def test_too_few(self, econf):
        with pytest.raises(InsufficientField) as exc:
            check_field_size(BetType.SUPERFECTA_BOX, 5, econf)
        assert exc.value.minimum == 6
        assert str(exc.value) == "superfecta requires at least 6 runners, field has 5"


class TestExoticKey:
    def test_exacta_key(self, probs, econf):
        bet = calculate_exotic_key(BetType.EXACTA_KEY, "1", ["2", "3", "4"], probs, econf)
        assert bet.combinations == 3
        assert bet.cost_per_unit == 2.0
        assert bet.total_cost == 6.0
        assert bet.estimated_ev is None
        assert bet.is_speculative

    def test_trifecta_key(self, probs, econf):
        bet = calculate_exotic_key(BetType.TRIFECTA_KEY, "1", ["2", "3", "4"], probs, econf)
        assert bet.combinations == 6
        assert bet.total_cost == 6.0

    def test_superfecta_key_dimes(self, probs, econf):
        bet = calculate_exotic_key(BetType.SUPERFECTA_KEY, "1", ["2", "3", "4", "5"], probs, econf)
        assert bet.combinations == 24
        assert bet.total_cost == pytest.approx(2.4)

    def test_custom_unit(self, probs, econf):
        bet = calculate_exotic_key(BetType.EXACTA_KEY, "1", ["2", "3"], probs, econf, unit=5.0)
        assert bet.total_cost == 10.0

    def test_key_removed_from_with_horses(self, probs, econf):
        bet = calculate_exotic_key(BetType.EXACTA_KEY, "1", ["1", "2", "2", "3"], probs, econf)
        assert bet.with_horses == ("2", "3")
        assert bet.combinations == 2

    def test_scratched_with_horse_dropped(self, probs, econf):
        bet = calculate_exotic_key(BetType.EXACTA_KEY, "1", ["2", "6", "3"], probs, econf)
        assert bet.with_horses == ("2", "3")
        assert bet.combinations == 2
        assert "removed non-runners #6" in bet.reasoning

    def test_scratched_key(self, probs, econf):
        bet = calculate_exotic_key(BetType.EXACTA_KEY, "6", ["1", "2"], probs, econf)
        assert bet.combinations == 0
        assert bet.total_cost == 0.0
        assert bet.estimated_probability == 0.0
        assert bet.reasoning == "Key horse #6 is not in the active field"

    def test_insufficient_with_horses(self, probs, econf):
        bet = calculate_exotic_key(BetType.SUPERFECTA_KEY, "1", ["2", "3"], probs, econf)
        assert bet.combinations == 0
        assert bet.total_cost == 0.0
        assert bet.reasoning == "Insufficient with-horses for superfecta key: need 3, have 2"

    def test_key_over_everyone_is_win_probability(self, probs, econf):
        others = [pn for pn in probs if pn != "2"]
        bet = calculate_exotic_key(BetType.EXACTA_KEY, "2", others, probs, econf)
        assert bet.estimated_probability == pytest.approx(probs["2"])

    def test_probability_grows_with_coverage(self, probs):
        narrow = key_probability("1", ["2"], 2, probs)
        wide = key_probability("1", ["2", "3", "4"], 2, probs)
        assert 0 < narrow < wide < probs["1"]

    def test_rejects_box_type(self, probs, econf):
        with pytest.raises(ValueError):
            calculate_exotic_key(BetType.EXACTA_BOX, "1", ["2"], probs, econf)


class TestExoticBox:
    def test_trifecta_box(self, probs, econf):
        bet = calculate_exotic_box(BetType.TRIFECTA_BOX, ["1", "2", "3", "4"], probs, econf)
        assert bet.combinations == 24
        assert bet.total_cost == 24.0
        assert bet.estimated_ev is None

    def test_exacta_box_probability(self, probs):
        p = box_probability(["1", "2"], 2, probs)
        expected = 0.35 * 0.25 / 0.65 + 0.25 * 0.35 / 0.75
        assert p == pytest.approx(expected)

    def test_too_few_horses(self, probs, econf):
        bet = calculate_exotic_box(BetType.SUPERFECTA_BOX, ["1", "2", "6"], probs, econf)
        assert bet.horses == ("1", "2")
        assert bet.combinations == 0
        assert bet.total_cost == 0.0
        assert bet.reasoning.startswith("Insufficient horses for superfecta box")

    def test_rejects_key_type(self, probs, econf):
        with pytest.raises(ValueError):
            calculate_exotic_box(BetType.TRIFECTA_KEY, ["1", "2", "3"], probs, econf)
