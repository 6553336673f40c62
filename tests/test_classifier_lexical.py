"""Tests for IntentClassifier with the lexical (TF-IDF) strategy."""

import json

import pytest

from conftest import FLIGHT_DATASET

from hybrid_intent import (
    ClassifierConfig,
    Example,
    IntentClassifier,
    InvalidArgumentError,
    JsonDatasetStore,
    Strategy,
)


class TestLexicalClassify:
    """Tests for classify() in lexical mode."""

    @pytest.mark.asyncio
    async def test_exact_example_matches(self, lexical_classifier):
        """A query identical to an example matches its intent at 100%."""
        result = await lexical_classifier.classify("How do I book a flight?")

        assert result.intent == "book_flight"
        assert result.confidence == "100.00%"
        assert result.similarity == pytest.approx(1.0)
        assert result.matched

    @pytest.mark.asyncio
    async def test_nonsense_is_unknown(self, lexical_classifier):
        """Text sharing no terms with the corpus scores 0."""
        result = await lexical_classifier.classify("xxxxxxxx?")

        assert result.intent == "unknown"
        assert result.confidence == "0.00%"
        assert result.similarity == 0.0
        assert not result.matched

    @pytest.mark.asyncio
    async def test_no_garbage_sentinel_in_lexical_mode(self, lexical_classifier):
        """The lexical strategy never reports 'Garbage Detected'."""
        for query in ["zzkkrt", "", "!!!"]:
            result = await lexical_classifier.classify(query)
            assert result.confidence.endswith("%")

    @pytest.mark.asyncio
    async def test_threshold_boundary_is_a_match(self):
        """A best similarity exactly equal to the threshold matches."""
        probe = IntentClassifier(
            ClassifierConfig(use_embeddings=False, threshold=0.0),
            dataset=list(FLIGHT_DATASET),
        )
        measured = await probe.classify("I need to book a ticket")
        assert 0.0 < measured.similarity < 1.0

        clf = IntentClassifier(
            ClassifierConfig(use_embeddings=False, threshold=measured.similarity),
            dataset=list(FLIGHT_DATASET),
        )
        result = await clf.classify("I need to book a ticket")
        assert result.intent == measured.intent
        assert result.intent != "unknown"

    @pytest.mark.asyncio
    async def test_below_threshold_keeps_numeric_confidence(self):
        """Unknown results still report the best similarity."""
        clf = IntentClassifier(
            ClassifierConfig(use_embeddings=False, threshold=1.0),
            dataset=list(FLIGHT_DATASET),
        )
        result = await clf.classify("I need to book a ticket")

        assert result.intent == "unknown"
        assert result.similarity > 0.0
        assert result.confidence != "0.00%"

    @pytest.mark.asyncio
    async def test_tie_goes_to_earlier_example(self):
        """When two examples score the same, the first one wins."""
        clf = IntentClassifier(
            ClassifierConfig(use_embeddings=False, threshold=0.1),
            dataset=[
                Example("open the door", "first"),
                Example("open the gate", "second"),
            ],
        )
        # Both documents weigh "open the" identically
        result = await clf.classify("open the")
        assert result.intent == "first"

    @pytest.mark.asyncio
    async def test_empty_dataset(self):
        """With no examples everything is unknown at 0%."""
        clf = IntentClassifier(
            ClassifierConfig(use_embeddings=False, threshold=0.3),
            dataset=[],
        )
        result = await clf.classify("How do I book a flight?")
        assert result.intent == "unknown"
        assert result.confidence == "0.00%"

    @pytest.mark.asyncio
    async def test_result_is_a_known_intent_or_unknown(self, lexical_classifier):
        """Every result intent is either a dataset label or 'unknown'."""
        queries = [
            "How do I book a flight?",
            "what is the weather",
            "reserve ticket",
            "hello there",
        ]
        labels = set(lexical_classifier.intents) | {"unknown"}
        for q in queries:
            result = await lexical_classifier.classify(q)
            assert result.intent in labels

    def test_strategy_is_lexical(self, lexical_classifier):
        """use_embeddings=False selects the lexical strategy."""
        assert lexical_classifier.strategy is Strategy.LEXICAL
        assert lexical_classifier.records == []


class TestLexicalCache:
    """Tests for the per-instance result cache."""

    @pytest.mark.asyncio
    async def test_repeat_query_hits_cache(self, lexical_classifier):
        """The same query returns the very same result object."""
        first = await lexical_classifier.classify("How do I book a flight?")
        second = await lexical_classifier.classify("How do I book a flight?")

        assert first is second
        assert lexical_classifier.cache_size == 1

    @pytest.mark.asyncio
    async def test_cache_key_is_raw_query(self, lexical_classifier):
        """Queries differing only in case are cached separately."""
        await lexical_classifier.classify("How do I book a flight?")
        await lexical_classifier.classify("how do i book a flight?")
        assert lexical_classifier.cache_size == 2

    @pytest.mark.asyncio
    async def test_mutation_clears_cache(self, lexical_classifier):
        """add_intent and remove_intent invalidate cached results."""
        before = await lexical_classifier.classify("Lets go gym")
        assert before.intent == "unknown"

        await lexical_classifier.add_intent("Lets go to gym", "gym")
        assert lexical_classifier.cache_size == 0

        after = await lexical_classifier.classify("Lets go gym")
        assert after.intent == "gym"

        await lexical_classifier.remove_intent("gym")
        assert lexical_classifier.cache_size == 0

    @pytest.mark.asyncio
    async def test_stale_cache_without_invalidation(self):
        """With invalidation off, cached results survive a mutation."""
        clf = IntentClassifier(
            ClassifierConfig(
                use_embeddings=False,
                threshold=0.3,
                invalidate_cache_on_mutation=False,
            ),
            dataset=list(FLIGHT_DATASET),
        )
        assert (await clf.classify("Lets go gym")).intent == "unknown"

        await clf.add_intent("Lets go to gym", "gym")
        assert (await clf.classify("Lets go gym")).intent == "unknown"

        clf.invalidate_cache()
        assert (await clf.classify("Lets go gym")).intent == "gym"


class TestLexicalMutation:
    """Tests for add_intent / remove_intent / clear in lexical mode."""

    @pytest.mark.asyncio
    async def test_add_intent(self, lexical_classifier):
        """A new example is appended to the dataset and the index."""
        added = await lexical_classifier.add_intent("How can I cancel my flight?", "cancel_flight")

        assert added is True
        assert lexical_classifier.dataset[-1] == Example(
            "How can I cancel my flight?", "cancel_flight"
        )
        assert lexical_classifier.lexical_index.document_count == 4
        assert "cancel_flight" in lexical_classifier.intents

        result = await lexical_classifier.classify("cancel my flight")
        assert result.intent == "cancel_flight"

    @pytest.mark.asyncio
    async def test_add_duplicate_text_is_noop(self, lexical_classifier):
        """An existing text is not added again, whatever its label."""
        added = await lexical_classifier.add_intent("How do I book a flight?", "other")

        assert added is False
        assert len(lexical_classifier.dataset) == 3
        assert lexical_classifier.lexical_index.document_count == 3

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text,intent", [("", "x"), ("hello", ""), ("", "")])
    async def test_add_requires_text_and_intent(self, lexical_classifier, text, intent):
        """Empty text or intent is rejected and nothing changes."""
        with pytest.raises(InvalidArgumentError):
            await lexical_classifier.add_intent(text, intent)
        assert len(lexical_classifier.dataset) == 3

    @pytest.mark.asyncio
    async def test_remove_intent(self, lexical_classifier):
        """Removing an intent drops all of its examples and rebuilds the index."""
        await lexical_classifier.add_intent("Lets go to gym", "gym")
        assert (await lexical_classifier.classify("Lets go gym")).intent == "gym"

        removed = await lexical_classifier.remove_intent("gym")

        assert removed == 1
        assert "gym" not in lexical_classifier.intents
        assert lexical_classifier.lexical_index.documents == tuple(
            e.text for e in FLIGHT_DATASET
        )
        result = await lexical_classifier.classify("Lets go gym")
        assert result.intent == "unknown"
        assert result.confidence == "0.00%"

    @pytest.mark.asyncio
    async def test_remove_multi_example_intent(self, lexical_classifier):
        """Every example with the label goes, order of the rest is kept."""
        removed = await lexical_classifier.remove_intent("book_flight")

        assert removed == 2
        assert lexical_classifier.dataset == [FLIGHT_DATASET[2]]

    @pytest.mark.asyncio
    async def test_remove_missing_intent(self, lexical_classifier):
        """Removing an unknown label removes nothing."""
        assert await lexical_classifier.remove_intent("nope") == 0
        assert len(lexical_classifier.dataset) == 3

    @pytest.mark.asyncio
    async def test_index_tracks_dataset(self, lexical_classifier):
        """The index always holds exactly the dataset texts, in order."""
        await lexical_classifier.add_intent("Lets go to gym", "gym")
        await lexical_classifier.remove_intent("weather_query")
        await lexical_classifier.add_intent("Is it raining?", "weather_query")

        assert lexical_classifier.lexical_index.documents == tuple(
            e.text for e in lexical_classifier.dataset
        )

    @pytest.mark.asyncio
    async def test_clear(self, lexical_classifier):
        """clear() empties the dataset, the index and the cache."""
        await lexical_classifier.classify("How do I book a flight?")
        lexical_classifier.clear()

        assert lexical_classifier.dataset == []
        assert lexical_classifier.lexical_index.document_count == 0
        assert lexical_classifier.cache_size == 0


class TestDatasetPersistence:
    """Tests for loading and saving the dataset file."""

    def test_loads_dataset_from_store(self, tmp_path):
        """Without an explicit dataset, the dataset file is read."""
        path = tmp_path / "intentDataset.json"
        path.write_text(json.dumps([e.to_dict() for e in FLIGHT_DATASET]))

        clf = IntentClassifier(
            ClassifierConfig(use_embeddings=False, dataset_location=str(path))
        )
        assert clf.dataset == FLIGHT_DATASET

    def test_duplicate_texts_dropped_on_load(self, tmp_path):
        """Only the first example for a repeated text is kept."""
        path = tmp_path / "intentDataset.json"
        rows = [e.to_dict() for e in FLIGHT_DATASET]
        rows.append({"text": "How do I book a flight?", "intent": "other"})
        path.write_text(json.dumps(rows))

        clf = IntentClassifier(
            ClassifierConfig(use_embeddings=False), dataset_store=JsonDatasetStore(str(path))
        )
        assert clf.dataset == FLIGHT_DATASET

    def test_missing_dataset_file_is_empty(self, tmp_path):
        """A missing dataset file gives an empty classifier."""
        clf = IntentClassifier(
            ClassifierConfig(
                use_embeddings=False,
                dataset_location=str(tmp_path / "missing.json"),
            )
        )
        assert clf.dataset == []

    @pytest.mark.asyncio
    async def test_save_dataset_round_trip(self, tmp_path):
        """save_dataset() writes what a new classifier then loads."""
        store = JsonDatasetStore(str(tmp_path / "intentDataset.json"))
        clf = IntentClassifier(
            ClassifierConfig(use_embeddings=False),
            dataset=list(FLIGHT_DATASET),
            dataset_store=store,
        )
        await clf.add_intent("Lets go to gym", "gym")
        clf.save_dataset()

        reloaded = IntentClassifier(ClassifierConfig(use_embeddings=False), dataset_store=store)
        assert reloaded.dataset == clf.dataset
        assert reloaded.intents == ["book_flight", "weather_query", "gym"]
