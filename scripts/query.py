"""
query.py - Classify a single query and show the result.

Handy for checking how the classifier treats a phrasing before adding it to
the dataset, or for debugging an unexpected "unknown".

=============================================================================
USAGE
=============================================================================

    # Lexical (TF-IDF), fully offline
    uv run python scripts/query.py "How do I book a flight?" --mode lexical

    # Embedding mode (needs a built store, see build_embeddings.py)
    uv run python scripts/query.py "Tell me today's weather"

    # Try a different threshold
    uv run python scripts/query.py "reserve a seat" --mode lexical --threshold 0.3

=============================================================================
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

from hybrid_intent.classifier import GARBAGE_CONFIDENCE, IntentClassifier
from hybrid_intent.config import ClassifierConfig, ProviderConfig
from hybrid_intent.dataset import JsonDatasetStore
from hybrid_intent.providers import (
    PROVIDER_CHOICES,
    ChatCompletionValidator,
    build_embedding_provider,
)


async def run(args: argparse.Namespace) -> None:
    use_embeddings = args.mode == "embedding"

    if use_embeddings and not Path(args.store).exists():
        print(f"ERROR: Embeddings file not found: {args.store}")
        print("")
        print("Did you forget to build it? Run:")
        print("  uv run python scripts/build_embeddings.py")
        return

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
    result = await clf.classify(args.query)

    print("")
    print("=" * 60)
    print("CLASSIFICATION RESULT")
    print("=" * 60)
    print(f"query:       {args.query}")
    print(f"mode:        {clf.strategy.value}")
    print(f"intent:      {result.intent}")
    print(f"confidence:  {result.confidence}  (threshold: {args.threshold})")

    if result.confidence == GARBAGE_CONFIDENCE:
        print("")
        print(">>> Rejected by the garbage filter before similarity scoring.")
    elif not result.matched and result.similarity is not None:
        if result.similarity < args.threshold:
            print("")
            print(">>> Best similarity is below the threshold.")
        else:
            print("")
            print(">>> Similarity cleared the threshold but word overlap with the")
            print("    matched example was too low (Jaccard check).")
    print("")


def main() -> None:
    p = argparse.ArgumentParser(
        description="Classify a single query and show the result.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    p.add_argument("query", help="The query to classify")
    p.add_argument("--mode", choices=["lexical", "embedding"], default="embedding")
    p.add_argument("--dataset", default="intentDataset.json", help="Dataset JSON file")
    p.add_argument("--store", default="embeddings.json", help="Embeddings file")
    p.add_argument("--provider", choices=PROVIDER_CHOICES, default="openai")
    p.add_argument("--model", default=None, help="Embedding model (must match the store!)")
    p.add_argument("--threshold", type=float, default=0.50, help="Minimum similarity")
    p.add_argument("--log-level", default="WARNING", help="Logging level")
    args = p.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
    asyncio.run(run(args))


if __name__ == "__main__":
    main()
