"""
vector_store.py - Embedding records with whole-file persistence.

The store keeps every EmbeddingRecord in memory (classification scores the
query against all of them) and writes the full set back after each change.
There is no partial patching: every write replaces the file atomically.

    embeddings.json
    [
      {"text": "How do I book a flight?", "intent": "book_flight", "vector": [0.01, ...]},
      ...
    ]

Two implementations:
    - InMemoryVectorStore: nothing is persisted (tests, throwaway classifiers)
    - JsonVectorStore: the JSON file above
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from hybrid_intent.dataset import EmbeddingRecord, read_json_array, write_json_atomic
from hybrid_intent.errors import DimensionMismatchError, StoreError

logger = logging.getLogger(__name__)


class VectorStore:
    """Base store: in-memory records plus a persistence hook."""

    def __init__(self) -> None:
        self._records: List[EmbeddingRecord] = []

    # -------------------------------------------------------------------------
    # Read access
    # -------------------------------------------------------------------------

    @property
    def records(self) -> List[EmbeddingRecord]:
        return list(self._records)

    @property
    def dim(self) -> Optional[int]:
        """Vector length shared by all records, or None when empty."""
        return len(self._records[0].vector) if self._records else None

    def __len__(self) -> int:
        return len(self._records)

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def load(self) -> List[EmbeddingRecord]:
        """Read persisted records into memory and return them."""
        records = self._read()
        self._check_uniform(records)
        self._records = records
        return self.records

    def append(self, record: EmbeddingRecord) -> None:
        """Add one record and persist the full set."""
        expected = self.dim
        if expected is not None and len(record.vector) != expected:
            raise DimensionMismatchError(
                f"Record for {record.text!r} has {len(record.vector)} dims, "
                f"store has {expected}"
            )
        self._commit(self._records + [record])

    def remove_by_intent(self, intent: str) -> List[EmbeddingRecord]:
        """Drop every record with `intent`, persist, and return the remainder."""
        before = len(self._records)
        self._commit([r for r in self._records if r.intent != intent])
        logger.info(
            "Removed %d embedding records for intent %r",
            before - len(self._records),
            intent,
        )
        return self.records

    def replace_all(self, records: Iterable[EmbeddingRecord]) -> None:
        """Overwrite the whole store (bulk generation)."""
        new_records = list(records)
        self._check_uniform(new_records)
        self._commit(new_records)

    def clear(self) -> None:
        self._commit([])

    def _commit(self, records: List[EmbeddingRecord]) -> None:
        """Swap in `records` and persist; on a failed write the old set is restored."""
        previous = self._records
        self._records = records
        try:
            self._write()
        except Exception:
            self._records = previous
            raise

    # -------------------------------------------------------------------------
    # Persistence hooks
    # -------------------------------------------------------------------------

    def _read(self) -> List[EmbeddingRecord]:
        return list(self._records)

    def _write(self) -> None:
        pass

    @staticmethod
    def _check_uniform(records: List[EmbeddingRecord]) -> None:
        dims = {len(r.vector) for r in records}
        if len(dims) > 1:
            raise DimensionMismatchError(
                f"Embedding records have mixed dimensions: {sorted(dims)}"
            )


class InMemoryVectorStore(VectorStore):
    """A VectorStore that never touches disk."""

    def __init__(self, records: Optional[Iterable[EmbeddingRecord]] = None) -> None:
        super().__init__()
        if records is not None:
            self.replace_all(records)


class JsonVectorStore(VectorStore):
    """A VectorStore persisted as a JSON array file."""

    def __init__(self, path: str) -> None:
        super().__init__()
        self.path = path

    def _read(self) -> List[EmbeddingRecord]:
        rows = read_json_array(self.path)
        try:
            records = [EmbeddingRecord.from_dict(r) for r in rows]
        except (KeyError, TypeError, ValueError) as e:
            raise StoreError(f"Malformed embedding record in {self.path}: {e}") from e
        logger.info("Loaded %d embedding records from %s", len(records), self.path)
        return records

    def _write(self) -> None:
        write_json_atomic(self.path, [r.to_dict() for r in self._records])
        logger.debug("Persisted %d embedding records to %s", len(self._records), self.path)
