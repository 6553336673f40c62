"""Tests for the garbage filter."""

from unittest.mock import AsyncMock

import pytest

from hybrid_intent.errors import ValidatorUnavailableError
from hybrid_intent.garbage import GarbageFilter, has_vowel


class TestHasVowel:
    """Tests for the vowel heuristic."""

    @pytest.mark.parametrize("query", ["hello", "xyzA", "ok?", "Umbrella"])
    def test_with_vowel(self, query):
        """Any ASCII vowel, either case, passes."""
        assert has_vowel(query)

    @pytest.mark.parametrize("query", ["xxxxxxxx?", "zzkkrt", "", "123 !!", "rhythm"])
    def test_without_vowel(self, query):
        """No ASCII vowel means rejected."""
        assert not has_vowel(query)


class TestGarbageFilter:
    """Tests for GarbageFilter.check()."""

    @pytest.mark.asyncio
    async def test_vowel_gate_short_circuits(self):
        """The validator is never called for vowel-less queries."""
        validator = AsyncMock()
        validator.validate = AsyncMock(return_value=True)

        assert await GarbageFilter(validator).check("xxxxxxxx?") is False
        validator.validate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_validator_accepts(self):
        """A valid verdict lets the query through."""
        validator = AsyncMock()
        validator.validate = AsyncMock(return_value=True)

        assert await GarbageFilter(validator).check("How do I book a flight?") is True
        validator.validate.assert_awaited_once_with("How do I book a flight?")

    @pytest.mark.asyncio
    async def test_validator_rejects(self):
        """An invalid verdict rejects the query."""
        validator = AsyncMock()
        validator.validate = AsyncMock(return_value=False)

        assert await GarbageFilter(validator).check("asdf qwer") is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [ValidatorUnavailableError("down"), RuntimeError("boom"), TimeoutError()],
    )
    async def test_validator_errors_fail_closed(self, error):
        """Any validator failure counts as invalid."""
        validator = AsyncMock()
        validator.validate = AsyncMock(side_effect=error)

        assert await GarbageFilter(validator).check("How do I book a flight?") is False

    @pytest.mark.asyncio
    async def test_no_validator_rejects(self, caplog):
        """Without a validator every query is rejected, with a warning."""
        with caplog.at_level("WARNING"):
            gate = GarbageFilter(None)
        assert "No query validator configured" in caplog.text

        assert await gate.check("anything with vowels") is False
        assert await gate.check("qwerty asdf uiop") is False
        assert await gate.check("zzkkrt") is False
