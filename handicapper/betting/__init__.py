"""Exotic combinatorics and wager ranking."""

from handicapper.betting.exotics import (
    calculate_exotic_box,
    calculate_exotic_key,
    check_field_size,
    permutation_count,
)
from handicapper.betting.top_bets import generate_top_bets, risk_tier

__all__ = [
    "calculate_exotic_box",
    "calculate_exotic_key",
    "check_field_size",
    "generate_top_bets",
    "permutation_count",
    "risk_tier",
]
