"""Run the pipeline over many races in parallel.

Races are independent, so each is analysed in its own worker with no
shared state. Odds and scratches are plain per-race tuples here rather
than callbacks so the work items pickle cleanly into worker processes.
"""

from __future__ import annotations

import logging
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Sequence

from handicapper.config import ScoringConfig
from handicapper.errors import HandicapperError
from handicapper.models.race import HorseRecord, RaceHeader
from handicapper.pipeline import RaceAnalysis, RacePipeline

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RaceInput:
    race_id: str
    horses: tuple[HorseRecord, ...]
    header: RaceHeader
    odds: Optional[tuple[Optional[str], ...]] = None
    scratched: Optional[tuple[bool, ...]] = None
    budget: Optional[float] = None


@dataclass(frozen=True)
class BatchResult:
    race_id: str
    analysis: Optional[RaceAnalysis] = None
    error: Optional[str] = None


def run_race(config: ScoringConfig, race: RaceInput) -> BatchResult:
    """Analyse one race; pipeline errors become a failed result."""
    odds, scratched = race.odds, race.scratched
    get_odds = (lambda i, default: odds[i]) if odds is not None else None
    is_scratched = (lambda i: scratched[i]) if scratched is not None else None
    try:
        analysis = RacePipeline(config).analyze(
            race.horses, race.header, get_odds, is_scratched, race.budget,
        )
    except HandicapperError as e:
        logger.warning("Race %s failed: %s", race.race_id, e)
        return BatchResult(race.race_id, error=str(e))
    return BatchResult(race.race_id, analysis=analysis)


def _make_executor(kind: str, workers: int) -> Executor:
    if kind == "thread":
        return ThreadPoolExecutor(max_workers=workers, thread_name_prefix="handicapper")
    return ProcessPoolExecutor(max_workers=workers)


def run_batch(
    races: Iterable[RaceInput],
    config: ScoringConfig,
    workers: int = 4,
    executor: str = "process",
) -> list[BatchResult]:
    """Analyse every race, returning results in input order.

    ``workers=1`` runs inline in the calling process.
    """
    races = list(races)
    if workers <= 1 or len(races) <= 1:
        results = [run_race(config, r) for r in races]
    else:
        with _make_executor(executor, workers) as pool:
            results = list(pool.map(run_race, [config] * len(races), races))

    failed = sum(1 for r in results if r.error)
    logger.info("Batch complete: %d races, %d failed", len(results), failed)
    return results


def calibration_pairs(
    results: Sequence[BatchResult], winners: Mapping[str, str],
) -> tuple[list[float], list[bool]]:
    """(predicted win probability, won) for every priced runner.

    ``winners`` maps race id to the winning program number; races without a
    recorded winner or without an analysis are skipped.
    """
    predictions: list[float] = []
    outcomes: list[bool] = []
    for result in results:
        winner = winners.get(result.race_id)
        if result.analysis is None or winner is None:
            continue
        for pn, est in result.analysis.estimates.items():
            predictions.append(est.model_probability)
            outcomes.append(pn == winner)
    return predictions, outcomes
