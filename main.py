"""
main.py - Offline demo of the lexical (TF-IDF) strategy.

=============================================================================
WHAT THIS FILE IS
=============================================================================

Not part of the library. A self-contained walkthrough that needs no API key
and no model download:

    1. Build a classifier over a three-example dataset
    2. Classify a few queries, including one garbage query
    3. Add an intent at runtime and classify against it
    4. Remove it again

For the real tooling see:
    - scripts/build_embeddings.py  (embed the dataset for embedding mode)
    - scripts/query.py             (classify one query)
    - scripts/bench.py             (quality and latency on a test set)

=============================================================================
USAGE
=============================================================================

    uv run python main.py

=============================================================================
"""

import asyncio

from hybrid_intent import ClassifierConfig, Example, IntentClassifier


async def demo():
    print("=" * 60)
    print("Lexical intent classification demo")
    print("=" * 60)
    print()

    dataset = [
        Example("How do I book a flight?", "book_flight"),
        Example("I need to reserve a ticket", "book_flight"),
        Example("What's the weather like?", "weather_query"),
    ]
    clf = IntentClassifier(
        ClassifierConfig(use_embeddings=False, threshold=0.30),
        dataset=dataset,
    )

    print("Dataset:")
    for i, e in enumerate(clf.dataset):
        print(f"  [{i}] {e.intent:<14} {e.text}")
    print()

    queries = [
        "How do I book a flight?",  # exact example, ~100%
        "I need to book a ticket",  # overlaps both book_flight examples
        "what is the weather",  # weather_query
        "xxxxxxxx?",  # shares no terms with the corpus
    ]
    for q in queries:
        r = await clf.classify(q)
        print(f"  {q!r:<30} -> {r.intent:<14} {r.confidence}")
    print()

    print("Adding 'How can I cancel my flight?' as cancel_flight...")
    await clf.add_intent("How can I cancel my flight?", "cancel_flight")
    r = await clf.classify("cancel my flight")
    print(f"  {'cancel my flight'!r:<30} -> {r.intent:<14} {r.confidence}")
    print()

    print("Removing cancel_flight...")
    await clf.remove_intent("cancel_flight")
    r = await clf.classify("cancel my flight")
    print(f"  {'cancel my flight'!r:<30} -> {r.intent:<14} {r.confidence}")
    print()


def main():
    asyncio.run(demo())


if __name__ == "__main__":
    main()
