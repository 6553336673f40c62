"""
hybrid_intent - Intent classification against a labeled example dataset.

=============================================================================
PACKAGE OVERVIEW
=============================================================================

Given a handful of example utterances per intent, classify a free-text query
into one of those intents, or "unknown". Two interchangeable strategies:

    - lexical:   local TF-IDF cosine similarity (no network, no model)
    - embedding: provider embeddings + cosine similarity, guarded by a
                 garbage filter and a word-overlap (Jaccard) check

The dataset can be edited at runtime; the TF-IDF index and the embedding
store follow along.

=============================================================================
MODULE STRUCTURE
=============================================================================

hybrid_intent/
├── __init__.py       ← You are here.
├── classifier.py     ← IntentClassifier, strategies, results (the core)
├── lexical.py        ← LexicalIndex (TF-IDF over the dataset texts)
├── vector_store.py   ← EmbeddingRecord storage with atomic JSON persistence
├── similarity.py     ← cosine, jaccard, tokenize
├── garbage.py        ← GarbageFilter (vowel heuristic + validator, fail closed)
├── providers.py      ← EmbeddingProvider / QueryValidator + HTTP clients
├── embedder.py       ← Local SentenceTransformer embedder (imports torch)
├── dataset.py        ← Example, EmbeddingRecord, dataset file store
├── config.py         ← ClassifierConfig, ProviderConfig (env-backed)
├── errors.py         ← Exception hierarchy
└── bench.py          ← Evaluation metrics (precision/recall, latency)

=============================================================================
TYPICAL USAGE
=============================================================================

Lexical (offline):
------------------
    from hybrid_intent import ClassifierConfig, Example, IntentClassifier

    clf = IntentClassifier(
        ClassifierConfig(use_embeddings=False, threshold=0.30),
        dataset=[Example("How do I book a flight?", "book_flight")],
    )
    result = await clf.classify("How do I book a flight?")
    print(result.intent, result.confidence)  # book_flight 100.00%

Embedding:
----------
    from hybrid_intent import (
        ChatCompletionValidator, ClassifierConfig, IntentClassifier,
        OpenAIEmbeddingProvider, ProviderConfig,
    )

    providers = ProviderConfig()  # reads OPENAI_API_KEY
    clf = IntentClassifier(
        ClassifierConfig(use_embeddings=True),
        embedder=OpenAIEmbeddingProvider(providers),
        validator=ChatCompletionValidator(providers),
    )
    await clf.generate_embeddings()   # once, or after editing the dataset file
    await clf.add_intent("How can I cancel my flight?", "cancel_flight")
    await clf.classify("Cancel my booking")

=============================================================================
"""

from hybrid_intent.classifier import (
    GARBAGE_CONFIDENCE,
    UNKNOWN_INTENT,
    BatchError,
    ClassificationResult,
    ClassifierState,
    EmbeddingStrategy,
    GenerationReport,
    IntentClassifier,
    LexicalStrategy,
    Strategy,
    format_confidence,
)
from hybrid_intent.config import ClassifierConfig, ProviderConfig
from hybrid_intent.dataset import (
    DatasetStore,
    EmbeddingRecord,
    Example,
    JsonDatasetStore,
    read_jsonl_examples,
)
from hybrid_intent.errors import (
    ConfigurationError,
    DimensionMismatchError,
    HybridIntentError,
    InvalidArgumentError,
    ProviderError,
    StoreError,
    ValidatorUnavailableError,
)
from hybrid_intent.garbage import GarbageFilter
from hybrid_intent.lexical import LexicalIndex
from hybrid_intent.providers import (
    ChatCompletionValidator,
    EmbeddingProvider,
    OpenAIEmbeddingProvider,
    QueryValidator,
)
from hybrid_intent.similarity import cosine, jaccard, tokenize
from hybrid_intent.vector_store import InMemoryVectorStore, JsonVectorStore, VectorStore

__version__ = "0.1.0"

__all__ = [
    "GARBAGE_CONFIDENCE",
    "UNKNOWN_INTENT",
    "BatchError",
    "ChatCompletionValidator",
    "ClassificationResult",
    "ClassifierConfig",
    "ClassifierState",
    "ConfigurationError",
    "DatasetStore",
    "DimensionMismatchError",
    "EmbeddingProvider",
    "EmbeddingRecord",
    "EmbeddingStrategy",
    "Example",
    "GarbageFilter",
    "GenerationReport",
    "HybridIntentError",
    "InMemoryVectorStore",
    "IntentClassifier",
    "InvalidArgumentError",
    "JsonDatasetStore",
    "JsonVectorStore",
    "LexicalIndex",
    "LexicalStrategy",
    "OpenAIEmbeddingProvider",
    "ProviderConfig",
    "ProviderError",
    "QueryValidator",
    "StoreError",
    "Strategy",
    "ValidatorUnavailableError",
    "VectorStore",
    "cosine",
    "format_confidence",
    "jaccard",
    "read_jsonl_examples",
    "tokenize",
]
