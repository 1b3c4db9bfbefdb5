"""Calibration check: runs the pipeline over historical races with results.

Input is a JSON file holding a list of races:

    [{"race_id": "CD-2025-05-03-R12",
      "header": {...RaceHeader fields...},
      "horses": [{...HorseRecord fields...}, ...],
      "winner": "7"}, ...]

Usage:
    python scripts/validate_calibration.py races.json
    python scripts/validate_calibration.py races.json --profile tuned.json --workers 8
    python scripts/validate_calibration.py races.json --platt --output report.json
"""

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from handicapper.batch import RaceInput, calibration_pairs, run_batch
from handicapper.calibration import (
    apply_platt_scaling,
    calculate_all_metrics,
    fit_platt_scaling,
)
from handicapper.config import get_scoring_config, get_settings, load_profile
from handicapper.errors import InvalidRecord
from handicapper.models import HorseRecord, RaceHeader

settings = get_settings()
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(message)s",
)
logger = logging.getLogger(__name__)


def _load_races(path: Path) -> tuple[list[RaceInput], dict[str, str]]:
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)

    races, winners = [], {}
    for i, item in enumerate(raw):
        race_id = str(item.get("race_id") or f"race-{i}")
        try:
            horses = tuple(HorseRecord.from_dict(h) for h in item.get("horses", []))
        except InvalidRecord as e:
            logger.warning("Skipping %s: %s", race_id, e)
            continue
        races.append(RaceInput(
            race_id=race_id,
            horses=horses,
            header=RaceHeader.from_dict(item.get("header", {})),
            odds=tuple(item["odds"]) if item.get("odds") else None,
        ))
        if item.get("winner") is not None:
            winners[race_id] = str(item["winner"])
    return races, winners


def _print_report(title: str, report) -> None:
    print(f"\n{title}")
    print("-" * len(title))
    print(f"  Races/runners      {report.total_predictions} predictions, {report.total_wins} winners")
    print(f"  Brier score        {report.brier_score:.4f}")
    print(f"  Brier skill        {report.brier_skill_score:+.4f}")
    print(f"  Log loss           {report.log_loss:.4f}")
    print(f"  ECE                {report.calibration_error:.4f}")
    print(f"  MCE                {report.max_calibration_error:.4f}")
    print(f"  {'bucket':<12}{'pred':>8}{'actual':>8}{'n':>7}{'se':>8}")
    for p in report.reliability:
        print(f"  {p.bucket:<12}{p.predicted:>8.3f}{p.actual:>8.3f}{p.count:>7}{p.standard_error:>8.3f}")


def main():
    parser = argparse.ArgumentParser(description="Validate win-probability calibration on historical races")
    parser.add_argument("races", help="JSON file of races with winners")
    parser.add_argument("--profile", default=None, help="Scoring profile JSON (default: settings/defaults)")
    parser.add_argument("--workers", type=int, default=settings.batch_workers, help="Worker processes")
    parser.add_argument("--buckets", type=int, default=10, help="Reliability buckets")
    parser.add_argument("--platt", action="store_true", help="Also fit and report Platt scaling")
    parser.add_argument("--output", default=None, help="Save report to JSON file")
    args = parser.parse_args()

    config = load_profile(args.profile) if args.profile else get_scoring_config()
    races, winners = _load_races(Path(args.races))
    logger.info("Loaded %d races (%d with results), profile %r", len(races), len(winners), config.name)

    results = run_batch(races, config, workers=args.workers)
    predictions, outcomes = calibration_pairs(results, winners)
    report = calculate_all_metrics(predictions, outcomes, args.buckets)
    _print_report(f"Profile {config.name}", report)

    output = {"profile": config.name, "raw": asdict(report)}

    if args.platt:
        params = fit_platt_scaling(predictions, outcomes)
        calibrated, calibrated_outcomes = [], []
        for result in results:
            winner = winners.get(result.race_id)
            if result.analysis is None or winner is None:
                continue
            field = list(result.analysis.estimates.values())
            scaled = apply_platt_scaling([e.model_probability for e in field], params)
            calibrated.extend(scaled)
            calibrated_outcomes.extend(e.program_number == winner for e in field)
        platt_report = calculate_all_metrics(calibrated, calibrated_outcomes, args.buckets)
        _print_report(f"Platt scaled (A={params.a:.3f}, B={params.b:.3f})", platt_report)
        output["platt"] = {"params": asdict(params), "report": asdict(platt_report)}

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            json.dump(output, f, indent=2, default=str)
        logger.info("Report saved to %s", args.output)


if __name__ == "__main__":
    main()
