"""
dataset.py - Labeled examples, embedding records, and dataset persistence.

=============================================================================
FILE FORMATS
=============================================================================

The live dataset is a JSON array (intentDataset.json):

    [
      {"text": "How do I book a flight?", "intent": "book_flight"},
      {"text": "What's the weather like?", "intent": "weather_query"}
    ]

Evaluation sets are JSONL, one object per line with the same two fields:

    {"text": "I need to book a ticket", "intent": "book_flight"}

Embedding records add a "vector" field; see vector_store.py.

=============================================================================
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Protocol

from hybrid_intent.errors import StoreError

logger = logging.getLogger(__name__)


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass(frozen=True)
class Example:
    """
    A single labeled utterance.

    The dataset is an ordered list of these. Order matters: when two examples
    score the same, the one that appears first wins.
    """

    text: str  # The utterance (e.g., "How do I book a flight?")
    intent: str  # Its label (e.g., "book_flight")

    def to_dict(self) -> Dict[str, str]:
        return {"text": self.text, "intent": self.intent}


@dataclass(frozen=True)
class EmbeddingRecord:
    """
    An Example plus the embedding vector computed for its text.

    There is one record per Example while the embedding strategy is active.
    All vectors in a store share the same length (fixed by the provider).
    """

    text: str
    intent: str
    vector: List[float]

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "intent": self.intent, "vector": list(self.vector)}

    @staticmethod
    def from_dict(obj: Dict[str, Any]) -> "EmbeddingRecord":
        return EmbeddingRecord(
            text=str(obj["text"]),
            intent=str(obj["intent"]),
            vector=[float(v) for v in obj["vector"]],
        )


# =============================================================================
# HELPERS
# =============================================================================


def unique_examples(examples: Iterable[Example]) -> List[Example]:
    """
    Drop examples whose text was already seen, keeping the first occurrence.

    Text values are unique within a dataset. A loaded file that violates this
    is repaired here with a warning per dropped entry.
    """
    seen = set()
    out: List[Example] = []
    for e in examples:
        if e.text in seen:
            logger.warning(
                "Dropping duplicate example text %r (intent=%s)", e.text, e.intent
            )
            continue
        seen.add(e.text)
        out.append(e)
    return out


def read_jsonl_examples(path: str) -> List[Example]:
    """
    Read labeled examples from a JSONL file (one JSON object per line).

    Blank lines are skipped. Used for evaluation sets.
    """
    out: List[Example] = []
    with open(path, "r", encoding="utf-8") as f:
        for raw in f:
            line = raw.strip()
            if not line:
                continue
            obj = json.loads(line)
            out.append(Example(text=str(obj["text"]), intent=str(obj["intent"])))
    return out


def write_json_atomic(path: str, payload: Any) -> None:
    """
    Write JSON to `path` by writing a sibling temp file and renaming it.

    os.replace is atomic on the same filesystem, so readers see either the old
    file or the new one, never a half-written file.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(
        prefix=f".{target.name}.", suffix=".tmp", dir=str(target.parent)
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)
        os.replace(tmp_path, target)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


def read_json_array(path: str) -> List[Dict[str, Any]]:
    """Read a JSON array file; a missing file reads as an empty list."""
    p = Path(path)
    if not p.exists():
        return []
    try:
        with open(p, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise StoreError(f"Failed to read {path}: {e}") from e
    if not isinstance(data, list):
        raise StoreError(f"{path} must contain a JSON array")
    return data


# =============================================================================
# DATASET STORE
# =============================================================================


class DatasetStore(Protocol):
    """Load/save interface for the labeled dataset."""

    def load(self) -> List[Example]: ...

    def save(self, examples: List[Example]) -> None: ...


class JsonDatasetStore:
    """DatasetStore backed by a JSON array file."""

    def __init__(self, path: str) -> None:
        self.path = path

    def load(self) -> List[Example]:
        rows = read_json_array(self.path)
        try:
            examples = [Example(text=str(r["text"]), intent=str(r["intent"])) for r in rows]
        except (KeyError, TypeError) as e:
            raise StoreError(f"Malformed dataset entry in {self.path}: {e}") from e
        logger.info("Loaded %d examples from %s", len(examples), self.path)
        return examples

    def save(self, examples: List[Example]) -> None:
        write_json_atomic(self.path, [e.to_dict() for e in examples])
        logger.info("Saved %d examples to %s", len(examples), self.path)
