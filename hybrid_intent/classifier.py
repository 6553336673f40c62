"""
classifier.py - The hybrid intent classification engine.

=============================================================================
OVERVIEW
=============================================================================

IntentClassifier maps a free-text query to one of the intents in a labeled
dataset of example utterances, or to "unknown".

    dataset = [
        Example("How do I book a flight?", "book_flight"),
        Example("I need to reserve a ticket", "book_flight"),
        Example("What's the weather like?", "weather_query"),
    ]
    clf = IntentClassifier(ClassifierConfig(use_embeddings=False, threshold=0.3),
                           dataset=dataset)
    await clf.classify("How do I book a flight?")
    # ClassificationResult(intent="book_flight", confidence="100.00%", similarity=1.0)

The dataset can change at runtime (add_intent / remove_intent). The lexical
index and the vector store are updated in step with it.

=============================================================================
TWO STRATEGIES
=============================================================================

The strategy is picked once, from ClassifierConfig.use_embeddings, and never
changes for the lifetime of the classifier.

LEXICAL (use_embeddings=False)
    1. TF-IDF vectorize the query and every dataset text
    2. Cosine similarity against each example
    3. Keep the best (intent, similarity); on a tie the earlier example wins
    4. similarity >= threshold -> that intent, else "unknown"

    No network, no garbage filter. Nonsense just shares no terms with the
    corpus and scores 0.

EMBEDDING (use_embeddings=True)
    1. Garbage filter (vowel heuristic, then validator). Rejected queries
       return "unknown" with confidence "Garbage Detected".
    2. Embed the query with the provider (one call)
    3. Cosine similarity against every stored EmbeddingRecord, best wins
    4. similarity < threshold -> "unknown"
    5. Secondary check: Jaccard overlap between the query's words and the
       reference example's words. Below jaccard_threshold (0.20) the match
       is overridden to "unknown" even though the cosine was high. This
       catches embeddings that are "close" for the wrong reasons.

    The reference example is the record that produced the best cosine. With
    legacy_jaccard_reference=True it is instead the first record carrying
    the winning intent, which may be a different utterance.

Both strategies format confidence the same way: round(similarity * 100, 2)
followed by "%", e.g. "87.25%". The raw score is on result.similarity.

=============================================================================
CACHE
=============================================================================

Results are cached by the raw query string for the life of the instance. A
cache hit returns immediately: no provider call, no validator call.

Dataset mutations clear the cache (invalidate_cache_on_mutation=True, the
default), otherwise a query cached as "unknown" would stay "unknown" after the
intent it should match was added. invalidate_cache() is also public.

=============================================================================
CONCURRENCY
=============================================================================

One logical thread of control per instance. The only awaits are provider and
validator calls, and they are made one after another. There is no locking:
callers that mutate and classify concurrently must serialize themselves.

=============================================================================
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from hybrid_intent.config import ClassifierConfig
from hybrid_intent.dataset import (
    DatasetStore,
    EmbeddingRecord,
    Example,
    JsonDatasetStore,
    unique_examples,
)
from hybrid_intent.errors import (
    ConfigurationError,
    DimensionMismatchError,
    InvalidArgumentError,
    ProviderError,
)
from hybrid_intent.garbage import GarbageFilter
from hybrid_intent.lexical import LexicalIndex
from hybrid_intent.providers import EmbeddingProvider, QueryValidator
from hybrid_intent.similarity import cosine, text_jaccard
from hybrid_intent.vector_store import InMemoryVectorStore, JsonVectorStore, VectorStore

logger = logging.getLogger(__name__)

UNKNOWN_INTENT = "unknown"
GARBAGE_CONFIDENCE = "Garbage Detected"


def format_confidence(similarity: float) -> str:
    """Render a similarity score as a percentage string, e.g. 0.8725 -> "87.25%"."""
    return f"{round(similarity * 100, 2):.2f}%"


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass(frozen=True)
class ClassificationResult:
    """
    The outcome of classify().

    intent is a dataset label or "unknown". confidence is the formatted best
    similarity, or GARBAGE_CONFIDENCE when the garbage filter rejected the
    query (similarity is None in that case).
    """

    intent: str
    confidence: str
    similarity: Optional[float] = None

    @property
    def matched(self) -> bool:
        return self.intent != UNKNOWN_INTENT

    def to_dict(self) -> Dict[str, str]:
        return {"intent": self.intent, "confidence": self.confidence}


@dataclass(frozen=True)
class BatchError:
    """One failed batch during bulk embedding generation."""

    start: int  # Index of the first dataset example in the batch
    end: int  # One past the last index
    texts: List[str]
    error: str


@dataclass
class GenerationReport:
    """
    Result of generate_embeddings().

    The store is only rewritten when at least one batch succeeded, so a
    provider outage cannot wipe out embeddings that were already persisted.
    """

    succeeded: List[EmbeddingRecord] = field(default_factory=list)
    failed: List[BatchError] = field(default_factory=list)
    persisted: bool = False

    @property
    def ok(self) -> bool:
        return not self.failed


class Strategy(str, Enum):
    LEXICAL = "lexical"
    EMBEDDING = "embedding"


@dataclass
class ClassifierState:
    """Everything a strategy needs to score a query, owned by one classifier."""

    dataset: List[Example]
    lexical: LexicalIndex
    vectors: VectorStore
    cache: Dict[str, ClassificationResult] = field(default_factory=dict)


@dataclass(frozen=True)
class _Match:
    intent: str
    similarity: float
    text: Optional[str] = None


def _best_match(scored: Iterable[Tuple[str, str, float]]) -> _Match:
    """
    Pick the highest (text, intent, similarity) triple.

    Starts from ("unknown", 0.0) and only a strictly greater score replaces
    the current best, so ties go to the earlier candidate and non-positive
    scores never win.
    """
    best = _Match(intent=UNKNOWN_INTENT, similarity=0.0)
    for text, intent, similarity in scored:
        if similarity > best.similarity:
            best = _Match(intent=intent, similarity=similarity, text=text)
    return best


# =============================================================================
# STRATEGIES
# =============================================================================


class LexicalStrategy:
    """TF-IDF cosine similarity against every dataset example."""

    kind = Strategy.LEXICAL

    def __init__(self, threshold: float) -> None:
        self.threshold = float(threshold)

    async def classify(self, query: str, state: ClassifierState) -> ClassificationResult:
        best = _Match(intent=UNKNOWN_INTENT, similarity=0.0)
        if state.dataset:
            # Vectors are recomputed per call: the vocabulary moves with the corpus
            query_vec = state.lexical.vectorize(query)
            doc_vecs = state.lexical.vectorize_many([e.text for e in state.dataset])
            best = _best_match(
                (e.text, e.intent, cosine(query_vec, doc_vecs[i]))
                for i, e in enumerate(state.dataset)
            )

        confidence = format_confidence(best.similarity)
        logger.debug(
            "[tfidf] best match for %r: intent=%s similarity=%.4f",
            query, best.intent, best.similarity,
        )
        if best.similarity >= self.threshold:
            return ClassificationResult(best.intent, confidence, best.similarity)
        return ClassificationResult(UNKNOWN_INTENT, confidence, best.similarity)


class EmbeddingStrategy:
    """Garbage filter, embedding cosine similarity, then a Jaccard overlap check."""

    kind = Strategy.EMBEDDING

    def __init__(
        self,
        embedder: EmbeddingProvider,
        garbage_filter: GarbageFilter,
        threshold: float,
        jaccard_threshold: float = 0.20,
        legacy_jaccard_reference: bool = False,
    ) -> None:
        self.embedder = embedder
        self.garbage_filter = garbage_filter
        self.threshold = float(threshold)
        self.jaccard_threshold = float(jaccard_threshold)
        self.legacy_jaccard_reference = bool(legacy_jaccard_reference)

    async def embed_one(self, text: str) -> List[float]:
        vectors = await self.embedder.embed([text])
        if len(vectors) != 1:
            raise ProviderError(f"Expected 1 embedding, provider returned {len(vectors)}")
        return [float(v) for v in vectors[0]]

    async def classify(self, query: str, state: ClassifierState) -> ClassificationResult:
        if not await self.garbage_filter.check(query):
            return ClassificationResult(UNKNOWN_INTENT, GARBAGE_CONFIDENCE, None)

        query_vec = await self.embed_one(query)
        records = state.vectors.records
        best = _best_match((r.text, r.intent, cosine(query_vec, r.vector)) for r in records)

        confidence = format_confidence(best.similarity)
        logger.debug(
            "[embedding] cosine similarity for %r: intent=%s similarity=%.4f",
            query, best.intent, best.similarity,
        )

        if best.similarity < self.threshold:
            logger.info("Low confidence (%s) for %r, returning unknown", confidence, query)
            return ClassificationResult(UNKNOWN_INTENT, confidence, best.similarity)

        reference = self._reference_text(best, records)
        if reference is not None:
            overlap = text_jaccard(query, reference)
            logger.debug("Jaccard similarity between %r and %r: %.2f", query, reference, overlap)
            if overlap < self.jaccard_threshold:
                logger.info(
                    "Low Jaccard similarity (%.2f) for %r, returning unknown", overlap, query
                )
                return ClassificationResult(UNKNOWN_INTENT, confidence, best.similarity)

        return ClassificationResult(best.intent, confidence, best.similarity)

    def _reference_text(self, best: _Match, records: List[EmbeddingRecord]) -> Optional[str]:
        if not self.legacy_jaccard_reference:
            return best.text
        for r in records:
            if r.intent == best.intent:
                return r.text
        return None


# =============================================================================
# CLASSIFIER
# =============================================================================


class IntentClassifier:
    """
    Classifies queries and manages the labeled dataset behind them.

    Collaborators are injected:
        - dataset / dataset_store: the labeled examples (explicit list wins;
          otherwise loaded from dataset_store, defaulting to a JSON file at
          config.dataset_location)
        - embedder: EmbeddingProvider, required when use_embeddings is on
        - validator: QueryValidator for the garbage filter, required when
          use_embeddings is on
        - vector_store: defaults to JsonVectorStore(config.store_location) in
          embedding mode and an in-memory store otherwise
    """

    def __init__(
        self,
        config: Optional[ClassifierConfig] = None,
        dataset: Optional[Iterable[Example]] = None,
        dataset_store: Optional[DatasetStore] = None,
        embedder: Optional[EmbeddingProvider] = None,
        validator: Optional[QueryValidator] = None,
        vector_store: Optional[VectorStore] = None,
    ) -> None:
        self.config = config or ClassifierConfig()
        if self.config.use_embeddings and embedder is None:
            raise ConfigurationError(
                "An embedding provider is required when use_embeddings is on"
            )
        if self.config.use_embeddings and validator is None:
            raise ConfigurationError(
                "A query validator is required when use_embeddings is on"
            )
        self.dataset_store: DatasetStore = dataset_store or JsonDatasetStore(
            self.config.dataset_location
        )
        self._embedder = embedder

        examples = list(dataset) if dataset is not None else self.dataset_store.load()
        examples = unique_examples(examples)

        if vector_store is None:
            vector_store = (
                JsonVectorStore(self.config.store_location)
                if self.config.use_embeddings
                else InMemoryVectorStore()
            )
        vector_store.load()

        self._state = ClassifierState(
            dataset=examples,
            lexical=LexicalIndex(e.text for e in examples),
            vectors=vector_store,
        )

        if self.config.use_embeddings:
            self._embedding = EmbeddingStrategy(
                embedder=embedder,
                garbage_filter=GarbageFilter(validator),
                threshold=self.config.threshold,
                jaccard_threshold=self.config.jaccard_threshold,
                legacy_jaccard_reference=self.config.legacy_jaccard_reference,
            )
            self._strategy = self._embedding
            if len(vector_store) and len(vector_store) != len(examples):
                logger.warning(
                    "Vector store has %d records but dataset has %d examples; "
                    "run generate_embeddings() to resync",
                    len(vector_store),
                    len(examples),
                )
        else:
            self._strategy = LexicalStrategy(self.config.threshold)

        logger.info(
            "IntentClassifier ready: strategy=%s examples=%d records=%d threshold=%.2f",
            self.strategy.value, len(examples), len(vector_store), self.config.threshold,
        )

    # -------------------------------------------------------------------------
    # Read access
    # -------------------------------------------------------------------------

    @property
    def strategy(self) -> Strategy:
        return self._strategy.kind

    @property
    def dataset(self) -> List[Example]:
        return list(self._state.dataset)

    @property
    def intents(self) -> List[str]:
        """Distinct intent labels, in order of first appearance."""
        return list(dict.fromkeys(e.intent for e in self._state.dataset))

    @property
    def records(self) -> List[EmbeddingRecord]:
        return self._state.vectors.records

    @property
    def lexical_index(self) -> LexicalIndex:
        return self._state.lexical

    @property
    def vector_store(self) -> VectorStore:
        return self._state.vectors

    @property
    def cache_size(self) -> int:
        return len(self._state.cache)

    # -------------------------------------------------------------------------
    # Classification
    # -------------------------------------------------------------------------

    async def classify(self, query: str) -> ClassificationResult:
        """
        Classify a query.

        Low similarity is not an error, it yields intent "unknown".

        Raises:
            ProviderError: Embedding strategy only, if the query embedding fails
        """
        cached = self._state.cache.get(query)
        if cached is not None:
            return cached

        result = await self._strategy.classify(query, self._state)
        self._state.cache[query] = result
        return result

    def invalidate_cache(self) -> None:
        if self._state.cache:
            logger.debug("Clearing %d cached results", len(self._state.cache))
        self._state.cache.clear()

    # -------------------------------------------------------------------------
    # Dataset mutation
    # -------------------------------------------------------------------------

    async def add_intent(self, text: str, intent: str) -> bool:
        """
        Add one labeled example.

        In embedding mode the embedding is fetched before anything changes, so
        a provider failure leaves the dataset, index and store as they were.

        Returns:
            True if added, False if the text was already in the dataset

        Raises:
            InvalidArgumentError: If text or intent is empty
            ProviderError: Embedding mode, if the provider call fails
        """
        if not text or not intent:
            raise InvalidArgumentError("Both text and intent are required.")

        if any(e.text == text for e in self._state.dataset):
            logger.warning("Intent already exists for %r", text)
            return False

        if self.strategy is Strategy.EMBEDDING:
            vector = await self._embedding.embed_one(text)
            expected = self._state.vectors.dim
            if expected is not None and len(vector) != expected:
                raise DimensionMismatchError(
                    f"Provider returned {len(vector)} dims, store has {expected}"
                )
            self._state.vectors.append(EmbeddingRecord(text=text, intent=intent, vector=vector))

        self._state.dataset.append(Example(text=text, intent=intent))
        self._state.lexical.add_document(text)
        self._after_mutation()

        logger.info("Added intent %r for text %r", intent, text)
        return True

    async def remove_intent(self, intent: str) -> int:
        """
        Remove every example labeled `intent`.

        In embedding mode the matching records are dropped from the store and
        persisted first; if that write fails nothing else has changed. Then the
        lexical index is rebuilt from scratch (TF-IDF has no incremental
        removal).

        Returns:
            Number of examples removed

        Raises:
            OSError: Embedding mode, if the store cannot be written
        """
        logger.info("Removing intent %r", intent)
        if self.strategy is Strategy.EMBEDDING:
            self._state.vectors.remove_by_intent(intent)

        before = len(self._state.dataset)
        self._state.dataset = [e for e in self._state.dataset if e.intent != intent]
        removed = before - len(self._state.dataset)

        self._state.lexical.rebuild(self._state.dataset)
        self._after_mutation()
        logger.info("Intent %r removed (%d examples)", intent, removed)
        return removed

    def clear(self) -> None:
        """Drop all examples, the cache, and (embedding mode) all stored vectors."""
        self._state.dataset = []
        self._state.lexical.rebuild([])
        if self.strategy is Strategy.EMBEDDING:
            self._state.vectors.clear()
        self._state.cache.clear()
        logger.info("Classifier cleared")

    def save_dataset(self) -> None:
        """Persist the in-memory dataset through the dataset store."""
        self.dataset_store.save(list(self._state.dataset))

    def _after_mutation(self) -> None:
        if self.config.invalidate_cache_on_mutation:
            self.invalidate_cache()

    # -------------------------------------------------------------------------
    # Bulk embedding generation
    # -------------------------------------------------------------------------

    async def generate_embeddings(self) -> GenerationReport:
        """
        Embed the whole dataset in batches of config.batch_size.

        Batches run one after another. A failing batch is logged and recorded
        in the report; the remaining batches still run. If at least one record
        was produced, the store is replaced with the successful records.

        Raises:
            ConfigurationError: If no embedding provider was injected
        """
        if self._embedder is None:
            raise ConfigurationError("generate_embeddings() needs an embedding provider")

        dataset = list(self._state.dataset)
        size = self.config.batch_size
        report = GenerationReport()
        logger.info("Starting batch embedding generation for %d examples", len(dataset))

        for start in range(0, len(dataset), size):
            batch = dataset[start : start + size]
            end = start + len(batch)
            texts = [e.text for e in batch]
            logger.info("Processing batch %d to %d", start + 1, end)
            try:
                vectors = await self._embedder.embed(texts)
                if len(vectors) != len(batch):
                    raise ProviderError(
                        f"Provider returned {len(vectors)} embeddings for {len(batch)} texts"
                    )
            except Exception as e:
                logger.error("Error processing batch %d to %d: %s", start + 1, end, e)
                report.failed.append(BatchError(start=start, end=end, texts=texts, error=str(e)))
                continue

            report.succeeded.extend(
                EmbeddingRecord(text=ex.text, intent=ex.intent, vector=[float(v) for v in vec])
                for ex, vec in zip(batch, vectors)
            )

        if report.succeeded:
            self._state.vectors.replace_all(report.succeeded)
            report.persisted = True
            self._after_mutation()
            logger.info(
                "Saved %d embeddings (%d batches failed)",
                len(report.succeeded), len(report.failed),
            )
        else:
            logger.error("No embeddings generated; the provider may not be responding")

        return report
