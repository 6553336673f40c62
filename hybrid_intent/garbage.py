"""
garbage.py - Reject meaningless queries before they reach similarity scoring.

Embedding similarity always finds *some* nearest example, even for keyboard
mashing, and a lucky cosine can clear the threshold. The filter is a cheap
two-stage gate that runs first:

    1. Vowel heuristic. A query with no ASCII vowel ("xxxxxxxx?", "zzkkrt")
       is rejected immediately; the validator is never called.
    2. Validator. A QueryValidator judges coherence. If it errors out, is
       unreachable, or was never configured, the query is rejected (fail
       closed).

Only the embedding strategy uses this gate. The lexical strategy does not:
nonsense there simply shares no terms with the corpus and scores 0.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from hybrid_intent.providers import QueryValidator

logger = logging.getLogger(__name__)

_VOWEL = re.compile(r"[aeiou]", re.IGNORECASE)


def has_vowel(query: str) -> bool:
    return _VOWEL.search(query or "") is not None


class GarbageFilter:
    """Short-circuiting vowel heuristic + external validator."""

    def __init__(self, validator: Optional[QueryValidator] = None) -> None:
        self.validator = validator
        if validator is None:
            logger.warning("No query validator configured; every query will be rejected")

    async def check(self, query: str) -> bool:
        """Return True if the query may proceed to classification."""
        if not has_vowel(query):
            logger.info("Rejected query with no vowels: %r", query)
            return False

        if self.validator is None:
            logger.warning("No query validator, treating %r as invalid", query)
            return False

        try:
            valid = bool(await self.validator.validate(query))
        except Exception as e:
            logger.warning("Query validator failed for %r, treating as invalid: %s", query, e)
            return False

        if not valid:
            logger.info("Validator rejected query as garbage: %r", query)
        return valid
