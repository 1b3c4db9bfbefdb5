"""Calibration metrics for historical win-probability predictions.

Used by validation tooling, not by live scoring. All metrics take parallel
sequences of predicted probabilities and boolean outcomes. Empty or
mismatched input returns the worst value for the metric (Brier 1.0, log
loss infinity, calibration error 1.0, empty reliability diagram).

Platt scaling fits p' = sigmoid(A * logit(p) + B) by Newton iterations on
log loss and is applied per field with renormalisation.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Optional, Sequence

import numpy as np

logger = logging.getLogger(__name__)

EPSILON = 1e-15
DEFAULT_BUCKETS = 10
MIN_BUCKET_SAMPLES = 5

# Platt clamps
MIN_PROB = 0.001
MAX_PROB = 0.999


def _arrays(predictions: Sequence[float], outcomes: Sequence[bool], in_range: bool = False):
    """Finite (and optionally in-range) prediction/outcome arrays."""
    preds = np.asarray(predictions, dtype=float)
    actual = np.asarray(outcomes, dtype=bool).astype(float)
    mask = np.isfinite(preds)
    if in_range:
        mask &= (preds >= 0) & (preds <= 1)
    return preds[mask], actual[mask]


def _invalid(predictions: Sequence[float], outcomes: Sequence[bool]) -> bool:
    return len(predictions) == 0 or len(predictions) != len(outcomes)


def brier_score(predictions: Sequence[float], outcomes: Sequence[bool]) -> float:
    """Mean squared error between probability and outcome (0 is perfect)."""
    if _invalid(predictions, outcomes):
        return 1.0
    preds, actual = _arrays(predictions, outcomes)
    if preds.size == 0:
        return 1.0
    return float(np.mean((preds - actual) ** 2))


def brier_skill_score(
    predictions: Sequence[float],
    outcomes: Sequence[bool],
    baseline: Optional[Sequence[float]] = None,
) -> float:
    """1 - Brier(model) / Brier(baseline).

    The default baseline predicts the overall win rate for every runner.
    """
    if _invalid(predictions, outcomes):
        return 0.0
    model = brier_score(predictions, outcomes)
    if baseline is None:
        win_rate = sum(1 for o in outcomes if o) / len(outcomes)
        baseline = [win_rate] * len(predictions)
    reference = brier_score(baseline, outcomes)
    if reference == 0:
        return 0.0
    return 1 - model / reference


def log_loss(predictions: Sequence[float], outcomes: Sequence[bool]) -> float:
    if _invalid(predictions, outcomes):
        return math.inf
    preds, actual = _arrays(predictions, outcomes)
    if preds.size == 0:
        return math.inf
    p = np.clip(preds, EPSILON, 1 - EPSILON)
    losses = -(actual * np.log(p) + (1 - actual) * np.log(1 - p))
    return float(np.mean(losses))


@dataclass(frozen=True)
class ReliabilityPoint:
    bucket: str
    predicted: float
    actual: float
    count: int
    standard_error: float = 0.0


def _bucketed(predictions, outcomes, buckets: int):
    preds, actual = _arrays(predictions, outcomes, in_range=True)
    index = np.minimum(np.floor(preds * buckets).astype(int), buckets - 1)
    for b in range(buckets):
        mask = index == b
        if mask.any():
            yield b, preds[mask], actual[mask]


def expected_calibration_error(
    predictions: Sequence[float], outcomes: Sequence[bool], buckets: int = DEFAULT_BUCKETS,
) -> float:
    """Sample-weighted mean |predicted - actual| over probability buckets."""
    if _invalid(predictions, outcomes):
        return 1.0
    groups = list(_bucketed(predictions, outcomes, buckets))
    # weights cover only the samples that landed in a bucket
    total = sum(preds.size for _, preds, _ in groups)
    if total == 0:
        return 1.0
    error = 0.0
    for _, preds, actual in groups:
        error += (preds.size / total) * abs(preds.mean() - actual.mean())
    return float(error)


def max_calibration_error(
    predictions: Sequence[float], outcomes: Sequence[bool], buckets: int = DEFAULT_BUCKETS,
) -> float:
    """Worst bucket gap, ignoring buckets with fewer than 5 samples."""
    if _invalid(predictions, outcomes):
        return 1.0
    worst = 0.0
    for _, preds, actual in _bucketed(predictions, outcomes, buckets):
        if preds.size < MIN_BUCKET_SAMPLES:
            continue
        worst = max(worst, abs(float(preds.mean() - actual.mean())))
    return worst


def reliability_diagram(
    predictions: Sequence[float], outcomes: Sequence[bool], buckets: int = DEFAULT_BUCKETS,
) -> list[ReliabilityPoint]:
    """One point per non-empty probability bucket, e.g. bucket "0.10-0.20"."""
    if _invalid(predictions, outcomes):
        return []
    points = []
    for b, preds, actual in _bucketed(predictions, outcomes, buckets):
        rate = float(actual.mean())
        se = math.sqrt(rate * (1 - rate) / actual.size) if actual.size > 1 else 0.0
        points.append(ReliabilityPoint(
            bucket=f"{b / buckets:.2f}-{(b + 1) / buckets:.2f}",
            predicted=float(preds.mean()),
            actual=rate,
            count=int(preds.size),
            standard_error=se,
        ))
    return points


@dataclass(frozen=True)
class CalibrationReport:
    brier_score: float
    log_loss: float
    calibration_error: float
    max_calibration_error: float
    brier_skill_score: float
    total_predictions: int
    total_wins: int
    overall_win_rate: float
    avg_predicted: float
    reliability: list[ReliabilityPoint] = field(default_factory=list)


def calculate_all_metrics(
    predictions: Sequence[float], outcomes: Sequence[bool], buckets: int = DEFAULT_BUCKETS,
) -> CalibrationReport:
    """Every metric over the valid (finite, in-range) pairs."""
    if len(predictions) != len(outcomes):
        preds, actual = [], []
    else:
        p, a = _arrays(predictions, outcomes, in_range=True)
        preds, actual = p.tolist(), [bool(x) for x in a]

    wins = sum(actual)
    return CalibrationReport(
        brier_score=brier_score(preds, actual),
        log_loss=log_loss(preds, actual),
        calibration_error=expected_calibration_error(preds, actual, buckets),
        max_calibration_error=max_calibration_error(preds, actual, buckets),
        brier_skill_score=brier_skill_score(preds, actual),
        total_predictions=len(preds),
        total_wins=wins,
        overall_win_rate=wins / len(actual) if actual else 0.0,
        avg_predicted=sum(preds) / len(preds) if preds else 0.0,
        reliability=reliability_diagram(preds, actual, buckets),
    )


# ──────────────────────────────────────────────
# Platt scaling
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class PlattParameters:
    a: float = 1.0
    b: float = 0.0
    iterations: int = 0
    log_loss: Optional[float] = None


def _logit(p: np.ndarray) -> np.ndarray:
    p = np.clip(p, MIN_PROB, MAX_PROB)
    return np.log(p / (1 - p))


def _sigmoid(x: np.ndarray) -> np.ndarray:
    return 1.0 / (1.0 + np.exp(-x))


def _platt_objective(a: float, b: float, x: np.ndarray, actual: np.ndarray, regularization: float) -> float:
    z = a * x + b
    # log(1 + e^z) - y*z, stable for large |z|
    nll = np.logaddexp(0.0, z) - actual * z
    return float(np.mean(nll)) + 0.5 * regularization * (a * a + b * b)


def fit_platt_scaling(
    predictions: Sequence[float],
    outcomes: Sequence[bool],
    max_iterations: int = 100,
    regularization: float = 1e-6,
    tolerance: float = 1e-10,
) -> PlattParameters:
    """Fit A, B minimising log loss of sigmoid(A * logit(p) + B).

    Newton iterations with step halving; the small ridge term keeps the
    Hessian invertible when every prediction is the same.
    Returns the identity transform (A=1, B=0) when there is nothing to fit.
    """
    if _invalid(predictions, outcomes):
        return PlattParameters()
    preds, actual = _arrays(predictions, outcomes, in_range=True)
    if preds.size == 0 or actual.min() == actual.max():
        logger.warning("Platt scaling needs both winners and losers, using identity")
        return PlattParameters()

    x = _logit(preds)
    a, b = 1.0, 0.0
    objective = _platt_objective(a, b, x, actual, regularization)
    iterations = 0
    for iterations in range(1, max_iterations + 1):
        p = _sigmoid(a * x + b)
        err = p - actual
        w = p * (1 - p)
        grad = np.array([
            np.mean(err * x) + regularization * a,
            np.mean(err) + regularization * b,
        ])
        hessian = np.array([
            [np.mean(w * x * x) + regularization, np.mean(w * x)],
            [np.mean(w * x), np.mean(w) + regularization],
        ])
        step = np.linalg.solve(hessian, grad)

        scale = 1.0
        while scale > 1e-6:
            new_a, new_b = a - scale * step[0], b - scale * step[1]
            new_objective = _platt_objective(new_a, new_b, x, actual, regularization)
            if new_objective <= objective:
                break
            scale /= 2
        else:
            break
        a, b, objective = float(new_a), float(new_b), new_objective
        if float(np.max(np.abs(scale * step))) < tolerance:
            break

    fitted = _sigmoid(a * x + b)
    loss = log_loss(fitted.tolist(), actual.astype(bool).tolist())
    logger.info("Platt fit: A=%.4f B=%.4f after %d iterations (log loss %.4f)",
                a, b, iterations, loss)
    return PlattParameters(a=a, b=b, iterations=iterations, log_loss=loss)


def apply_platt_scaling(probabilities: Sequence[float], params: PlattParameters) -> list[float]:
    """Calibrate one race's field and renormalise to sum to 1."""
    if len(probabilities) == 0:
        return []
    if len(probabilities) == 1:
        return [1.0]
    raw = np.asarray(probabilities, dtype=float)
    calibrated = _sigmoid(params.a * _logit(raw) + params.b)
    total = calibrated.sum()
    if total <= 0:
        return [1.0 / len(probabilities)] * len(probabilities)
    return (calibrated / total).tolist()
