"""
lexical.py - TF-IDF model over the current dataset texts.

The lexical strategy does not need a model download or a network call: it
scores a query against each example by the cosine of their TF-IDF vectors.

Two things to keep in mind:

1. The vocabulary (and therefore the vector layout) depends on the whole
   corpus. Adding one document can add terms and shift IDF weights, so a
   vector computed before a change is not comparable with one computed after.
   We refit lazily on the next vectorize() and never hand out cached vectors.

2. scikit-learn's TfidfVectorizer has no "remove document" operation. After
   removals the caller rebuilds from the remaining dataset in order.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np
from sklearn.feature_extraction.text import TfidfVectorizer

from hybrid_intent.dataset import Example

logger = logging.getLogger(__name__)

# Keep one-letter words ("I", "a"); the default pattern drops them.
TOKEN_PATTERN = r"(?u)\b\w+\b"


class LexicalIndex:
    """Incrementally extended TF-IDF corpus, one document per dataset example."""

    def __init__(self, texts: Optional[Iterable[str]] = None) -> None:
        self._documents: List[str] = []
        self._vectorizer: Optional[TfidfVectorizer] = None
        self._dirty = True
        for text in texts or ():
            self.add_document(text)

    @property
    def document_count(self) -> int:
        return len(self._documents)

    @property
    def documents(self) -> Tuple[str, ...]:
        return tuple(self._documents)

    @property
    def vocabulary_size(self) -> int:
        vectorizer = self._fitted()
        return 0 if vectorizer is None else len(vectorizer.vocabulary_)

    def add_document(self, text: str) -> None:
        """Append one document to the corpus."""
        self._documents.append(text)
        self._dirty = True

    def rebuild(self, dataset: Sequence[Example]) -> None:
        """Clear the corpus and re-add every example text in dataset order."""
        self._documents = [e.text for e in dataset]
        self._vectorizer = None
        self._dirty = True
        logger.debug("Rebuilt lexical index with %d documents", len(self._documents))

    def vectorize(self, text: str) -> np.ndarray:
        """
        TF-IDF weights of `text` over the current corpus vocabulary.

        Terms unknown to the corpus contribute nothing, so text made only of
        unseen words yields an all-zero vector. With an empty corpus (or one
        with no usable tokens) the vector has length 0.
        """
        return self.vectorize_many([text])[0]

    def vectorize_many(self, texts: Sequence[str]) -> np.ndarray:
        """Vectorize several texts at once; one row per text."""
        vectorizer = self._fitted()
        if vectorizer is None:
            return np.zeros((len(texts), 0), dtype="float64")
        return vectorizer.transform(list(texts)).toarray()

    def _fitted(self) -> Optional[TfidfVectorizer]:
        if not self._dirty:
            return self._vectorizer

        self._dirty = False
        if not self._documents:
            self._vectorizer = None
            return None

        vectorizer = TfidfVectorizer(lowercase=True, token_pattern=TOKEN_PATTERN)
        try:
            vectorizer.fit(self._documents)
        except ValueError:
            # Raised for an empty vocabulary, e.g. documents of punctuation only
            logger.warning(
                "Lexical corpus of %d documents has no usable terms",
                len(self._documents),
            )
            self._vectorizer = None
            return None

        self._vectorizer = vectorizer
        logger.debug(
            "Fitted TF-IDF over %d documents, %d terms",
            len(self._documents),
            len(vectorizer.vocabulary_),
        )
        return vectorizer
