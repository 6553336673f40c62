"""Shared fixtures and test doubles."""

from typing import Dict, Iterable, List, Optional
from unittest.mock import AsyncMock

import pytest

from hybrid_intent import (
    ClassifierConfig,
    EmbeddingRecord,
    Example,
    InMemoryVectorStore,
    IntentClassifier,
    ProviderError,
)

FLIGHT_DATASET = [
    Example("How do I book a flight?", "book_flight"),
    Example("I need to reserve a ticket", "book_flight"),
    Example("What's the weather like?", "weather_query"),
]

# One axis per concept so cosine scores are easy to reason about
VECTORS: Dict[str, List[float]] = {
    "How do I book a flight?": [1.0, 0.0, 0.0, 0.0, 0.0],
    "I need to reserve a ticket": [0.0, 0.0, 0.0, 0.0, 1.0],
    "What's the weather like?": [0.0, 1.0, 0.0, 0.0, 0.0],
    "How can I cancel my flight?": [0.0, 0.0, 1.0, 0.0, 0.0],
    "Lets go to gym": [0.0, 0.0, 0.0, 1.0, 0.0],
    # queries
    "I need to book a ticket": [0.9, 0.0, 0.0, 0.0, 0.1],
    "reserve a ticket please": [0.0, 0.0, 0.0, 0.0, 1.0],
    "Tell me today's forecast": [0.0, 1.0, 0.0, 0.0, 0.0],
    "Tell me the weather like today": [0.0, 1.0, 0.0, 0.0, 0.0],
}


class StaticEmbedder:
    """EmbeddingProvider returning fixed vectors and recording every call."""

    def __init__(
        self,
        vectors: Optional[Dict[str, List[float]]] = None,
        fail_on: Iterable[str] = (),
    ):
        self.vectors = dict(VECTORS if vectors is None else vectors)
        self.fail_on = set(fail_on)
        self.calls: List[List[str]] = []

    async def embed(self, texts: List[str]) -> List[List[float]]:
        self.calls.append(list(texts))
        for t in texts:
            if t in self.fail_on:
                raise ProviderError(f"provider down for {t!r}")
            if t not in self.vectors:
                raise ProviderError(f"no vector for {t!r}")
        return [list(self.vectors[t]) for t in texts]

    @property
    def call_count(self) -> int:
        return len(self.calls)


def records_for(dataset: Iterable[Example]) -> List[EmbeddingRecord]:
    return [EmbeddingRecord(e.text, e.intent, list(VECTORS[e.text])) for e in dataset]


@pytest.fixture
def embedder():
    return StaticEmbedder()


@pytest.fixture
def validator():
    mock = AsyncMock()
    mock.validate = AsyncMock(return_value=True)
    return mock


@pytest.fixture
def lexical_classifier():
    """Lexical classifier over the flight dataset, threshold 0.30."""
    return IntentClassifier(
        ClassifierConfig(use_embeddings=False, threshold=0.30),
        dataset=list(FLIGHT_DATASET),
    )


@pytest.fixture
def embedding_classifier(embedder, validator):
    """Embedding classifier with the flight dataset already embedded in memory."""
    return IntentClassifier(
        ClassifierConfig(use_embeddings=True, threshold=0.50),
        dataset=list(FLIGHT_DATASET),
        embedder=embedder,
        validator=validator,
        vector_store=InMemoryVectorStore(records_for(FLIGHT_DATASET)),
    )
