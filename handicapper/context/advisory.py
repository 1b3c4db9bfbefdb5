"""Plain-data race context for an external advisory service.

The advisory service (out of process) receives scores plus race context and
returns its own opinion; nothing here performs I/O. ``build_advisory_context``
produces a JSON-serialisable dict and ``format_race_summary`` a compact text
block for prompt-style consumers.
"""

from __future__ import annotations

import json
from typing import Any

from handicapper.pipeline import RaceAnalysis


def _horse_entry(scored, estimate) -> dict[str, Any]:
    entry = {
        "program_number": scored.program_number,
        "name": scored.name,
        "rank": scored.rank,
        "base_score": scored.base_score,
        "confidence": scored.confidence.value,
        "data_quality": scored.data_quality,
        "running_style": scored.horse.running_style or None,
        "categories": {
            name: {"score": c.score, "max": c.max_score, "reasoning": c.reasoning}
            for name, c in scored.breakdown.items()
        },
        "trip_trouble": {
            "adjustment": scored.trip_trouble.adjustment,
            "reason": scored.trip_trouble.reason,
            "keywords": list(scored.trip_trouble.matched_keywords),
        },
        "velocity": {
            "adjustment": scored.velocity.adjustment,
            "classification": scored.velocity.classification,
            "summary": scored.velocity.profile_summary,
        },
        "warnings": list(scored.warnings),
    }
    if estimate is not None:
        entry["market"] = {
            "odds": estimate.odds_text,
            "model_probability": round(estimate.model_probability, 4),
            "implied_probability": (
                round(estimate.implied_probability, 4)
                if estimate.implied_probability is not None else None
            ),
            "edge": round(estimate.edge, 4) if estimate.edge is not None else None,
            "value": estimate.value_flag.value,
        }
    return entry


def build_advisory_context(analysis: RaceAnalysis) -> dict[str, Any]:
    """Scores and race context for every active horse, in rank order."""
    scoring = analysis.scoring
    header = scoring.header
    active = scoring.active

    return {
        "race": {
            "track": header.track_code,
            "race_number": header.race_number,
            "surface": header.surface,
            "distance_furlongs": header.distance_furlongs,
            "classification": header.classification,
            "conditions": header.conditions,
            "field_size": len(active),
        },
        "pace_scenario": scoring.pace_scenario.value,
        "max_base_score": scoring.max_base_score,
        "horses": [
            _horse_entry(h, analysis.estimates.get(h.program_number)) for h in active
        ],
        "scratched": [h.program_number for h in scoring.horses if h.is_scratched],
        "top_bets": [
            {
                "rank": b.rank,
                "bet_type": b.bet_type.value,
                "horses": list(b.horses),
                "cost": b.cost,
                "probability": round(b.probability, 4),
                "expected_value": b.expected_value,
                "risk_tier": b.risk_tier.value,
            }
            for b in analysis.top_bets.bets
        ],
    }


def context_to_json(context: dict) -> str:
    return json.dumps(context, sort_keys=True, default=str)


def format_race_summary(analysis: RaceAnalysis, limit: int = 5) -> str:
    """Short text summary of the top-ranked horses."""
    scoring = analysis.scoring
    header = scoring.header
    lines = [
        f"{header.track_code} R{header.race_number}: {header.distance_furlongs:g}f "
        f"{header.surface} {header.classification}".rstrip(),
        f"Pace: {scoring.pace_scenario.value.replace('_', ' ')}",
    ]
    for h in scoring.active[:limit]:
        est = analysis.estimates.get(h.program_number)
        price = ""
        if est is not None:
            price = f" | {est.model_probability:.1%}"
            if est.odds_text:
                price += f" @ {est.odds_text} ({est.value_flag.value})"
        lines.append(
            f"{h.rank}. #{h.program_number} {h.name} - {h.base_score:.1f} pts "
            f"[{h.confidence.value}]{price}"
        )
    return "\n".join(lines)
