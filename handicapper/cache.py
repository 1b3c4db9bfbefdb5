"""Caller-side result caching keyed by a content hash.

The pipeline itself never reads or writes a cache. Callers that want to
skip repeat work wrap ``RacePipeline.analyze`` with :func:`analyze_cached`
and supply any store that implements :class:`ResultCache`.
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections import OrderedDict
from dataclasses import asdict
from typing import Optional, Protocol, Sequence

from handicapper.config import ScoringConfig
from handicapper.models.race import HorseRecord, RaceHeader
from handicapper.pipeline import RaceAnalysis, RacePipeline
from handicapper.probability import OddsLookup
from handicapper.scoring.aggregator import ScratchCheck

logger = logging.getLogger(__name__)


class ResultCache(Protocol):
    def get(self, key: str) -> Optional[RaceAnalysis]: ...

    def set(self, key: str, value: RaceAnalysis) -> None: ...


class MemoryCache:
    """In-process LRU store holding at most ``max_size`` analyses."""

    def __init__(self, max_size: int = 256):
        if max_size < 1:
            raise ValueError(f"max_size must be at least 1, got {max_size}")
        self.max_size = max_size
        self._store: OrderedDict[str, RaceAnalysis] = OrderedDict()

    def get(self, key: str) -> Optional[RaceAnalysis]:
        value = self._store.get(key)
        if value is not None:
            self._store.move_to_end(key)
        return value

    def set(self, key: str, value: RaceAnalysis) -> None:
        self._store[key] = value
        self._store.move_to_end(key)
        while len(self._store) > self.max_size:
            evicted, _ = self._store.popitem(last=False)
            logger.debug("Cache full, evicted %s", evicted)

    def __len__(self) -> int:
        return len(self._store)


def race_fingerprint(
    horses: Sequence[HorseRecord],
    header: RaceHeader,
    config: ScoringConfig,
    odds: Sequence[Optional[str]] = (),
    scratched: Sequence[bool] = (),
    budget: Optional[float] = None,
) -> str:
    """16-hex-char sha256 of every input that affects an analysis."""
    payload = {
        "horses": [asdict(h) for h in horses],
        "header": asdict(header),
        "config": config.model_dump(mode="json"),
        "odds": list(odds),
        "scratched": list(scratched),
        "budget": budget,
    }
    blob = json.dumps(payload, sort_keys=True, default=str)
    return hashlib.sha256(blob.encode()).hexdigest()[:16]


def analyze_cached(
    pipeline: RacePipeline,
    cache: ResultCache,
    horses: Sequence[HorseRecord],
    header: RaceHeader,
    get_odds: Optional[OddsLookup] = None,
    is_scratched: Optional[ScratchCheck] = None,
    budget: Optional[float] = None,
) -> RaceAnalysis:
    """Return a cached analysis for identical inputs, else compute and store."""
    odds = [
        get_odds(i, h.morning_line_odds) if get_odds else h.morning_line_odds
        for i, h in enumerate(horses)
    ]
    scratched = [
        is_scratched(i) if is_scratched else h.scratched
        for i, h in enumerate(horses)
    ]
    key = race_fingerprint(horses, header, pipeline.config, odds, scratched, budget)

    cached = cache.get(key)
    if cached is not None:
        logger.debug("Cache hit for %s R%s (%s)", header.track_code, header.race_number, key)
        return cached

    analysis = pipeline.analyze(
        horses, header,
        get_odds=lambda i, default: odds[i],
        is_scratched=lambda i: scratched[i],
        budget=budget,
    )
    cache.set(key, analysis)
    return analysis
