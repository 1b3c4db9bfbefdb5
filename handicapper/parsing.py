"""Parsers for the loosely formatted values found on racecards.

Odds strings, fractional race times and "starts: wins-seconds-thirds"
stats strings arrive in several shapes depending on the source. Each
parser returns None for anything it cannot read rather than raising.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

logger = logging.getLogger(__name__)

_EVEN_TOKENS = {"EVEN", "EVENS", "EVN", "EVS", "EV"}
_FRACTIONAL_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*[-/]\s*(\d+(?:\.\d+)?)\s*$")
_STATS_COLON_RE = re.compile(r"^\s*(\d+)\s*:\s*(\d+)\s*-\s*(\d+)\s*-\s*(\d+)\s*$")
_STATS_DASH_RE = re.compile(r"^\s*(\d+)\s*-\s*(\d+)\s*-\s*(\d+)\s*-\s*(\d+)\s*$")


def parse_odds(value: Any) -> Optional[float]:
    """Parse an odds value into decimal odds (stake included).

    Handles formats like:
    - "5-2" or "5/2" (fractional) -> 3.5
    - "EVEN" -> 2.0
    - "7" or 7 (odds-to-one, US morning line style) -> 8.0
    - "$3.50" (decimal, dollar return per $1) -> 3.5
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        return float(value) + 1.0 if value > 0 else None

    if not isinstance(value, str):
        return None

    text = value.strip().upper()
    if not text:
        return None

    if text in _EVEN_TOKENS:
        return 2.0

    if text.startswith("$"):
        try:
            decimal = float(text[1:].strip())
        except ValueError:
            return None
        return decimal if decimal > 1.0 else None

    m = _FRACTIONAL_RE.match(text)
    if m:
        num, den = float(m.group(1)), float(m.group(2))
        if den <= 0 or num <= 0:
            return None
        return num / den + 1.0

    try:
        to_one = float(text)
    except ValueError:
        return None
    return to_one + 1.0 if to_one > 0 else None


def parse_race_time(time_str: Any) -> Optional[float]:
    """Parse a race or fractional time to seconds.

    "1:35.20" -> 95.20, "22.45" -> 22.45. Numbers pass through.
    """
    if time_str is None or isinstance(time_str, bool):
        return None
    if isinstance(time_str, (int, float)):
        return float(time_str) if time_str > 0 else None
    if not isinstance(time_str, str):
        return None

    time_str = time_str.strip()
    try:
        if ":" in time_str:
            parts = time_str.split(":")
            if len(parts) == 2:
                minutes = int(parts[0])
                seconds = float(parts[1])
                return minutes * 60 + seconds
            return None
        val = float(time_str)
        return val if val > 0 else None
    except (ValueError, TypeError):
        return None


def parse_stats(value: Any) -> Optional[tuple[int, int, int, int]]:
    """Parse a stats value into (starts, wins, seconds, thirds).

    Accepts "5: 2-1-0", "5-2-1-0" or a mapping with starts/wins keys.
    """
    if not value:
        return None

    if isinstance(value, dict):
        try:
            starts = int(value.get("starts", 0) or 0)
            return (
                starts,
                int(value.get("wins", 0) or 0),
                int(value.get("seconds", 0) or 0),
                int(value.get("thirds", 0) or 0),
            )
        except (TypeError, ValueError):
            logger.debug("Unreadable stats mapping: %r", value)
            return None

    if isinstance(value, str):
        m = _STATS_COLON_RE.match(value) or _STATS_DASH_RE.match(value)
        if m:
            return tuple(int(g) for g in m.groups())  # type: ignore[return-value]

    return None
