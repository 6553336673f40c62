"""
bench.py - Quality and latency metrics for evaluating a classifier.

=============================================================================
WHAT TO LOOK AT
=============================================================================

Run the classifier over a labeled test set (see scripts/bench.py) and feed the
true and predicted labels in here. "unknown" is the abstain label: the test
set uses it for queries that should match no intent, and the classifier
returns it when nothing clears the thresholds.

    precision (per intent)
        When we say "book_flight", how often is it right? A wrong intent sends
        the user down the wrong flow, which is worse than saying "unknown".

    unknown_fp_rate
        Of the queries labeled "unknown", what fraction did we match to an
        intent anyway? This is the garbage-rejection metric. Keep it low.

    coverage / abstain_rate
        Fraction of queries we matched vs. returned "unknown".

Latency is reported as percentiles (p50/p95/p99). In embedding mode the
provider round trip dominates; lexical mode is usually sub-millisecond for
small datasets.

=============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

import numpy as np

from hybrid_intent.classifier import UNKNOWN_INTENT


@dataclass(frozen=True)
class Metrics:
    """
    per_intent: intent -> {tp, fp, fn, precision, recall, f1}
    overall: n, accuracy, coverage, abstain_rate, unknown_fp_rate, ...
    """

    per_intent: Dict[str, Dict[str, float]]
    overall: Dict[str, float]


def percentile_ms(values: List[float], p: float) -> float:
    """p-th percentile (0-100) of a list of millisecond values; 0.0 if empty."""
    if not values:
        return 0.0
    arr = np.asarray(values, dtype="float64")
    return float(np.percentile(arr, p))


def _safe_div(num: float, den: float) -> float:
    return num / den if den > 0 else 0.0


def compute_metrics(
    truth: List[str],
    pred: List[str],
    positive_intents: Optional[List[str]] = None,
) -> Metrics:
    """
    Compute per-intent and overall classification metrics.

    Args:
        truth: Ground-truth labels ("unknown" for queries that should not match)
        pred: Predicted labels from classify()
        positive_intents: Intents to report individually. Defaults to every
            label seen in truth or pred, except "unknown".

    Returns:
        A Metrics object

    Raises:
        ValueError: If truth and pred differ in length
    """
    if len(truth) != len(pred):
        raise ValueError("truth and pred length mismatch")

    if positive_intents is None:
        positive_intents = [x for x in set(truth) | set(pred) if x != UNKNOWN_INTENT]
    intents = sorted(set(positive_intents))

    per: Dict[str, Dict[str, float]] = {}
    for intent in intents:
        tp = sum(1 for t, p in zip(truth, pred) if p == intent and t == intent)
        fp = sum(1 for t, p in zip(truth, pred) if p == intent and t != intent)
        fn = sum(1 for t, p in zip(truth, pred) if p != intent and t == intent)

        precision = _safe_div(tp, tp + fp)
        recall = _safe_div(tp, tp + fn)
        f1 = _safe_div(2 * precision * recall, precision + recall)

        per[intent] = {
            "tp": float(tp),
            "fp": float(fp),
            "fn": float(fn),
            "precision": float(precision),
            "recall": float(recall),
            "f1": float(f1),
        }

    n = len(truth)
    correct = sum(1 for t, p in zip(truth, pred) if t == p)

    # Queries that should be "unknown" but got matched to a real intent
    unknown_total = sum(1 for t in truth if t == UNKNOWN_INTENT)
    unknown_fp = sum(
        1 for t, p in zip(truth, pred) if t == UNKNOWN_INTENT and p != UNKNOWN_INTENT
    )

    coverage = _safe_div(sum(1 for p in pred if p != UNKNOWN_INTENT), n)

    overall = {
        "n": float(n),
        "accuracy": float(_safe_div(correct, n)),
        "coverage": float(coverage),
        "abstain_rate": float(1.0 - coverage) if n > 0 else 0.0,
        "unknown_fp_rate": float(_safe_div(unknown_fp, unknown_total)),
        "unknown_total": float(unknown_total),
        "unknown_fp": float(unknown_fp),
    }

    return Metrics(per_intent=per, overall=overall)


def summarize_latency(latencies_ms: List[float]) -> Dict[str, float]:
    """p50/p95/p99 and mean of per-query classification latency."""
    return {
        "p50_ms": percentile_ms(latencies_ms, 50),
        "p95_ms": percentile_ms(latencies_ms, 95),
        "p99_ms": percentile_ms(latencies_ms, 99),
        "mean_ms": float(np.mean(latencies_ms)) if latencies_ms else 0.0,
    }
