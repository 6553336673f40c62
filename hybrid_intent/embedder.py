"""
embedder.py - Local EmbeddingProvider backed by SentenceTransformer.

Use this instead of a remote API when the model can run in-process. Loading
the model is slow (seconds, plus a download on first use), so build one
SentenceTransformerEmbedder at startup and share it.

IMPORTANT: stored embeddings are only comparable with queries embedded by the
same model. Switching models means regenerating the store.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List

import numpy as np
from sentence_transformers import SentenceTransformer

from hybrid_intent.errors import ProviderError
from hybrid_intent.similarity import l2_normalize_rows

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "all-MiniLM-L6-v2"


class SentenceTransformerEmbedder:
    """
    Wrapper around SentenceTransformer that satisfies EmbeddingProvider.

    Vectors come back L2-normalized, so cosine similarity between them is
    just their dot product.
    """

    def __init__(self, model_name: str = DEFAULT_MODEL, batch_size: int = 64) -> None:
        self.model_name = model_name
        self.batch_size = int(batch_size)
        logger.info("Loading SentenceTransformer model %s", model_name)
        self.model = SentenceTransformer(model_name)

    def encode_texts(self, texts: List[str]) -> np.ndarray:
        """Encode texts into a (len(texts), dim) float32 matrix of unit rows."""
        emb = self.model.encode(
            texts,
            batch_size=self.batch_size,
            convert_to_numpy=True,
            show_progress_bar=False,
        )
        arr = np.asarray(emb, dtype="float32")
        return l2_normalize_rows(arr)

    async def embed(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []
        try:
            # The forward pass is CPU-bound; keep the event loop responsive
            arr = await asyncio.to_thread(self.encode_texts, list(texts))
        except Exception as e:
            raise ProviderError(f"Local embedding failed: {e}", e) from e
        return arr.tolist()
