"""
similarity.py - Pure numeric similarity routines shared by both strategies.

=============================================================================
CONVENTIONS
=============================================================================

cosine(a, b):
    dot(a, b) / (||a|| * ||b||), range [-1, 1].

    A zero-norm (or empty) vector has no direction, so cosine is undefined.
    We return 0.0 in that case instead of NaN: a query made only of words the
    corpus has never seen must score "no similarity", not poison the max().

    Vectors of different lengths are a data integrity problem (e.g., a store
    mixing two embedding models), not a similarity edge case, so that raises
    DimensionMismatchError.

jaccard(a, b):
    |A ∩ B| / |A ∪ B|, range [0, 1]. Two empty sets give 0.0.

tokenize(text):
    Lower-case, split on runs of non-word characters, drop empty tokens.
    "What's the weather?" -> {"what", "s", "the", "weather"}

=============================================================================
"""

from __future__ import annotations

import re
from typing import AbstractSet, Sequence, Set, Union

import numpy as np

from hybrid_intent.errors import DimensionMismatchError

VectorLike = Union[Sequence[float], np.ndarray]

_NON_WORD = re.compile(r"\W+")


def cosine(a: VectorLike, b: VectorLike) -> float:
    """
    Cosine similarity between two vectors.

    Args:
        a: First vector
        b: Second vector (same length as a)

    Returns:
        Similarity in [-1, 1], or 0.0 if either vector has zero norm

    Raises:
        DimensionMismatchError: If the vectors differ in length
    """
    va = np.asarray(a, dtype="float64").ravel()
    vb = np.asarray(b, dtype="float64").ravel()
    if va.shape[0] != vb.shape[0]:
        raise DimensionMismatchError(
            f"Cannot compare vectors of length {va.shape[0]} and {vb.shape[0]}"
        )

    norm_a = float(np.linalg.norm(va))
    norm_b = float(np.linalg.norm(vb))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0

    sim = float(np.dot(va, vb) / (norm_a * norm_b))
    # Rounding can push identical vectors a hair past 1.0
    return max(-1.0, min(1.0, sim))


def tokenize(text: str) -> Set[str]:
    """Split text into a set of lower-cased word tokens."""
    return {tok for tok in _NON_WORD.split((text or "").lower()) if tok}


def jaccard(a: AbstractSet[str], b: AbstractSet[str]) -> float:
    """Jaccard similarity of two token sets (0.0 when both are empty)."""
    union = a | b
    if not union:
        return 0.0
    return len(a & b) / len(union)


def text_jaccard(a: str, b: str) -> float:
    """Jaccard similarity of the token sets of two strings."""
    return jaccard(tokenize(a), tokenize(b))


def l2_normalize_rows(x: np.ndarray) -> np.ndarray:
    """
    Normalize each row of a matrix to unit length.

    Zero rows are left as zero (the norm is clamped to avoid dividing by 0).
    """
    norms = np.linalg.norm(x, axis=1, keepdims=True)
    norms = np.maximum(norms, 1e-12)
    return x / norms
