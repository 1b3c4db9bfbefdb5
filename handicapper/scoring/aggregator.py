"""Combine category scores and adjustments into ranked base scores.

Base score = sum of category scores + trip trouble + velocity, clamped to
[0, max_base_score]. Ranking order is total: base score descending, then
most recent finish ascending (no past performance sorts last), then
program number.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, Optional, Sequence

from handicapper.config import ScoringConfig
from handicapper.context.trip_trouble import analyze_trip_trouble
from handicapper.context.velocity import analyze_velocity
from handicapper.errors import InvalidRecord
from handicapper.models.race import HorseRecord, RaceHeader, program_sort_key, validate_record
from handicapper.models.scoring import ConfidenceLevel, ScoredHorse, ScoringResult
from handicapper.scoring.base import RaceContext, clamp
from handicapper.scoring.connections import score_connections
from handicapper.scoring.equipment import score_equipment
from handicapper.scoring.form import score_form
from handicapper.scoring.pace import determine_pace_scenario, score_pace
from handicapper.scoring.post_position import score_post_position
from handicapper.scoring.speed_class import score_speed_class

logger = logging.getLogger(__name__)

ScratchCheck = Callable[[int], bool]

SCORERS = (
    ("form", score_form),
    ("speed_class", score_speed_class),
    ("post_position", score_post_position),
    ("equipment", score_equipment),
    ("connections", score_connections),
    ("pace", score_pace),
)

NO_FINISH = 99


def _rank_key(scored: ScoredHorse) -> tuple:
    last = scored.horse.last_finish
    return (
        -scored.base_score,
        last if last is not None else NO_FINISH,
        program_sort_key(scored.program_number),
    )


def data_quality(flag_count: int, config: ScoringConfig) -> int:
    return max(0, 100 - config.confidence.flag_penalty * flag_count)


def confidence_level(quality: int, separation: float, config: ScoringConfig) -> ConfidenceLevel:
    """Data completeness first, then the lead over the next-best horse."""
    conf = config.confidence
    if quality < conf.low_quality:
        return ConfidenceLevel.LOW
    if separation >= conf.gap_points:
        return ConfidenceLevel.HIGH
    if quality >= conf.high_quality:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


def _score_horse(
    index: int,
    horse: HorseRecord,
    scratched: bool,
    context: RaceContext,
    config: ScoringConfig,
) -> ScoredHorse:
    breakdown = {name: scorer(horse, context, config) for name, scorer in SCORERS}
    trip = analyze_trip_trouble(horse, config.trip_trouble)
    velocity = analyze_velocity(horse, context.pace_scenario, config.velocity)

    total = sum(c.score for c in breakdown.values()) + trip.adjustment + velocity.adjustment
    base = round(clamp(total, 0, config.max_base_score), 2)
    flags = tuple(f for c in breakdown.values() for f in c.flags)

    logger.debug(
        "#%s %s: base %.2f (categories %.2f, trip %+d, velocity %+d)",
        horse.program_number, horse.name, base,
        total - trip.adjustment - velocity.adjustment,
        trip.adjustment, velocity.adjustment,
    )

    return ScoredHorse(
        source_index=index,
        horse=horse,
        base_score=base,
        breakdown=breakdown,
        trip_trouble=trip,
        velocity=velocity,
        is_scratched=scratched,
        confidence=ConfidenceLevel.LOW,
        data_quality=data_quality(len(flags), config),
        warnings=flags,
    )


def rank_field(horses: Sequence[ScoredHorse], config: ScoringConfig) -> tuple[ScoredHorse, ...]:
    """Assign rank and confidence; returns new horses in source order."""
    active = sorted((h for h in horses if not h.is_scratched), key=_rank_key)
    ranks = {h.source_index: i + 1 for i, h in enumerate(active)}

    updated = []
    for h in horses:
        if h.is_scratched:
            updated.append(replace(h, rank=None, confidence=ConfidenceLevel.LOW))
            continue
        others = [o.base_score for o in active if o.source_index != h.source_index]
        separation = h.base_score - max(others, default=0.0)
        updated.append(replace(
            h,
            rank=ranks[h.source_index],
            confidence=confidence_level(h.data_quality, separation, config),
        ))
    return tuple(updated)


def _score_entries(
    entries: Sequence[tuple[int, HorseRecord]],
    scratched: set[int],
    header: RaceHeader,
    config: ScoringConfig,
    excluded: Sequence[str] = (),
) -> ScoringResult:
    active = [h for i, h in entries if i not in scratched]
    scenario = determine_pace_scenario(active)
    context = RaceContext(
        header=header,
        pace_scenario=scenario,
        field_size=header.field_size or len(entries),
    )

    scored = [
        _score_horse(i, horse, i in scratched, context, config)
        for i, horse in entries
    ]
    result = ScoringResult(
        header=header,
        horses=rank_field(scored, config),
        pace_scenario=scenario,
        max_base_score=config.max_base_score,
        excluded=tuple(excluded),
    )
    logger.info(
        "Scored %s R%s: %d runners (%d scratched, %d excluded), %s pace",
        header.track_code or "race", header.race_number, len(entries),
        len(scratched), len(excluded), scenario.value,
    )
    return result


def _scratch_set(
    entries: Sequence[tuple[int, HorseRecord]], is_scratched: Optional[ScratchCheck],
) -> set[int]:
    if is_scratched is None:
        return {i for i, h in entries if h.scratched}
    return {i for i, _ in entries if is_scratched(i)}


def score_field(
    horses: Sequence[HorseRecord],
    header: RaceHeader,
    config: ScoringConfig,
    is_scratched: Optional[ScratchCheck] = None,
) -> ScoringResult:
    """Score every horse in a race.

    Invalid records are excluded with a warning; if no record is valid the
    race cannot be scored and InvalidRecord is raised once.
    ``is_scratched(source_index)`` overrides each record's scratched flag.
    """
    entries = []
    excluded = []
    seen: dict[str, int] = {}
    for index, horse in enumerate(horses):
        try:
            record = validate_record(horse, index)
            key = record.program_number.strip().upper()
            if key in seen:
                raise InvalidRecord(
                    f"#{record.program_number} {record.name} duplicates the program "
                    f"number of entry {seen[key]}",
                    index,
                )
            seen[key] = index
            entries.append((index, record))
        except InvalidRecord as e:
            logger.warning("Excluding entry %d from scoring: %s", index, e)
            excluded.append(f"entry {index}: {e}")

    if not entries:
        raise InvalidRecord(
            f"no valid horse records in race ({len(horses)} entries)"
        )

    return _score_entries(entries, _scratch_set(entries, is_scratched), header, config, excluded)


def apply_scratches(
    result: ScoringResult, is_scratched: ScratchCheck, config: ScoringConfig,
) -> ScoringResult:
    """Reflect a new scratch list.

    Category scores are reused unless the scratches change the projected
    pace, which pace scoring and velocity modulation depend on.
    """
    entries = [(h.source_index, h.horse) for h in result.horses]
    scratched = _scratch_set(entries, is_scratched)
    previous = {h.source_index for h in result.horses if h.is_scratched}
    if scratched == previous:
        return result

    active = [h for i, h in entries if i not in scratched]
    if determine_pace_scenario(active) != result.pace_scenario:
        return _score_entries(entries, scratched, result.header, config, result.excluded)

    horses = [replace(h, is_scratched=h.source_index in scratched) for h in result.horses]
    return replace(result, horses=rank_field(horses, config))
