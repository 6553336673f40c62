"""
build_embeddings.py - Embed every dataset example and persist the store.

=============================================================================
WHAT THIS SCRIPT DOES
=============================================================================

The embedding strategy scores queries against one stored vector per dataset
example. This script produces that store:

    1. Read the dataset (JSON array of {"text", "intent"})
    2. Embed the texts in batches with the chosen provider
    3. Write the successful records to the embeddings file

A failing batch does not stop the run. Failed batches are listed at the end;
the store is only rewritten if at least one batch succeeded.

Run it when:
    - You edited the dataset file by hand
    - You switched embedding models (old vectors are not comparable)

=============================================================================
USAGE
=============================================================================

    # OpenAI embeddings (needs OPENAI_API_KEY)
    uv run python scripts/build_embeddings.py --dataset intentDataset.json

    # Local model instead of the API
    uv run python scripts/build_embeddings.py \
        --provider sentence-transformers \
        --model all-MiniLM-L6-v2 \
        --store embeddings.json \
        --batch-size 50

=============================================================================
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from hybrid_intent.classifier import IntentClassifier
from hybrid_intent.config import ClassifierConfig, ProviderConfig
from hybrid_intent.dataset import JsonDatasetStore
from hybrid_intent.providers import (
    PROVIDER_CHOICES,
    ChatCompletionValidator,
    build_embedding_provider,
)


async def run(args: argparse.Namespace) -> int:
    provider_config = ProviderConfig()
    logging.getLogger(__name__).info("Provider config: %s", provider_config.mask_sensitive_data())

    embedder = build_embedding_provider(args.provider, provider_config, args.model)

    config = ClassifierConfig(
        use_embeddings=True,
        batch_size=int(args.batch_size),
        store_location=args.store,
        dataset_location=args.dataset,
    )
    # Not called during generation, but embedding mode always carries one
    validator = ChatCompletionValidator(provider_config)
    clf = IntentClassifier(
        config,
        dataset_store=JsonDatasetStore(args.dataset),
        embedder=embedder,
        validator=validator,
    )

    if not clf.dataset:
        print(f"ERROR: No examples found in {args.dataset}")
        return 1

    report = await clf.generate_embeddings()

    print("")
    print("=" * 60)
    print("EMBEDDING GENERATION")
    print("=" * 60)
    print(f"examples:         {len(clf.dataset)}")
    print(f"embedded:         {len(report.succeeded)}")
    print(f"failed batches:   {len(report.failed)}")
    print(f"persisted:        {report.persisted}  ({args.store})")

    for err in report.failed:
        print(f"  - examples {err.start + 1}-{err.end}: {err.error}")
    print("")

    return 0 if report.persisted else 1


def main() -> None:
    p = argparse.ArgumentParser(
        description="Generate and persist embeddings for the intent dataset.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    p.add_argument("--dataset", default="intentDataset.json", help="Dataset JSON file")
    p.add_argument("--store", default="embeddings.json", help="Embeddings file to write")
    p.add_argument(
        "--provider",
        choices=PROVIDER_CHOICES,
        default="openai",
        help="Where embeddings come from",
    )
    p.add_argument(
        "--model",
        default=None,
        help=(
            "Embedding model name. Defaults to the provider's default. "
            "IMPORTANT: queries must be embedded with the same model!"
        ),
    )
    p.add_argument("--batch-size", type=int, default=50, help="Texts per provider request")
    p.add_argument("--log-level", default="INFO", help="Logging level")
    args = p.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
