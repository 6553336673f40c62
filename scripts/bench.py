"""
bench.py - Measure classifier quality and latency on a labeled test set.

=============================================================================
WHAT THIS SCRIPT DOES
=============================================================================

    1. Build a classifier from the dataset (and embeddings, in embedding mode)
    2. Classify every query in a JSONL test set, timing each call
    3. Print per-intent precision/recall/F1, overall accuracy, coverage,
       the unknown false-positive rate, and latency percentiles
    4. Optionally write everything to JSON

Test set format (JSONL), "unknown" marks queries that should not match:

    {"text": "I need to book a ticket", "intent": "book_flight"}
    {"text": "asdf qwer", "intent": "unknown"}

The cache is cleared before each query so repeated test texts are timed for
real.

=============================================================================
USAGE
=============================================================================

    uv run python scripts/bench.py --test data/test.jsonl --mode lexical

    uv run python scripts/bench.py \
        --test data/test.jsonl \
        --mode embedding \
        --threshold 0.5 \
        --json-out results.json

=============================================================================
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import time
from pathlib import Path
from typing import List

from hybrid_intent.bench import compute_metrics, summarize_latency
from hybrid_intent.classifier import IntentClassifier
from hybrid_intent.config import ClassifierConfig, ProviderConfig
from hybrid_intent.dataset import JsonDatasetStore, read_jsonl_examples
from hybrid_intent.providers import (
    PROVIDER_CHOICES,
    ChatCompletionValidator,
    build_embedding_provider,
)


async def run(args: argparse.Namespace) -> None:
    use_embeddings = args.mode == "embedding"
    config = ClassifierConfig(
        use_embeddings=use_embeddings,
        threshold=float(args.threshold),
        store_location=args.store,
        dataset_location=args.dataset,
    )

    embedder = None
    validator = None
    if use_embeddings:
        provider_config = ProviderConfig()
        embedder = build_embedding_provider(args.provider, provider_config, args.model)
        validator = ChatCompletionValidator(provider_config)

    clf = IntentClassifier(
        config,
        dataset_store=JsonDatasetStore(args.dataset),
        embedder=embedder,
        validator=validator,
    )

    examples = read_jsonl_examples(args.test)
    print(f"Loaded {len(examples)} test examples from {args.test}")

    truth: List[str] = []
    pred: List[str] = []
    latencies: List[float] = []

    for ex in examples:
        clf.invalidate_cache()
        t0 = time.perf_counter_ns()
        result = await clf.classify(ex.text)
        latencies.append((time.perf_counter_ns() - t0) / 1e6)
        truth.append(ex.intent)
        pred.append(result.intent)

    metrics = compute_metrics(truth=truth, pred=pred, positive_intents=clf.intents)
    latency = summarize_latency(latencies)

    print("")
    print("=" * 60)
    print(f"QUALITY ({clf.strategy.value}, threshold={args.threshold})")
    print("=" * 60)
    for key in ("n", "accuracy", "coverage", "abstain_rate", "unknown_fp_rate"):
        print(f"{key:<18} {metrics.overall[key]:.4f}")

    print("")
    print(f"{'intent':<20} {'prec':>6} {'recall':>6} {'f1':>6} {'tp':>5} {'fp':>5} {'fn':>5}")
    for intent, m in metrics.per_intent.items():
        print(
            f"{intent:<20} {m['precision']:>6.3f} {m['recall']:>6.3f} {m['f1']:>6.3f} "
            f"{int(m['tp']):>5} {int(m['fp']):>5} {int(m['fn']):>5}"
        )

    print("")
    print("=" * 60)
    print("LATENCY")
    print("=" * 60)
    for key, value in latency.items():
        print(f"{key:<10} {value:.3f}")
    print("")

    if args.json_out:
        out = {
            "mode": clf.strategy.value,
            "threshold": args.threshold,
            "overall": metrics.overall,
            "per_intent": metrics.per_intent,
            "latency": latency,
        }
        Path(args.json_out).parent.mkdir(parents=True, exist_ok=True)
        with open(args.json_out, "w", encoding="utf-8") as f:
            json.dump(out, f, indent=2)
        print(f"Wrote results to {args.json_out}")


def main() -> None:
    p = argparse.ArgumentParser(
        description="Benchmark intent classifier quality and latency.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    p.add_argument("--test", default="data/test.jsonl", help="JSONL test set")
    p.add_argument("--mode", choices=["lexical", "embedding"], default="lexical")
    p.add_argument("--dataset", default="intentDataset.json", help="Dataset JSON file")
    p.add_argument("--store", default="embeddings.json", help="Embeddings file")
    p.add_argument("--provider", choices=PROVIDER_CHOICES, default="openai")
    p.add_argument("--model", default=None, help="Embedding model (must match the store!)")
    p.add_argument("--threshold", type=float, default=0.50, help="Minimum similarity")
    p.add_argument("--json-out", default=None, help="Optional path for JSON results")
    p.add_argument("--log-level", default="WARNING", help="Logging level")
    args = p.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
    asyncio.run(run(args))


if __name__ == "__main__":
    main()
