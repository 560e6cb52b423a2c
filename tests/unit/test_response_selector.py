"""
Unit Tests for Response Selector

Tests topic classification and level-tailored answer rendering.
"""

import pytest
import sys
import os

# Add project root to path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
sys.path.insert(0, os.path.join(project_root, "molgeno_tutor", "src"))

from molgeno_tutor.response_selector import (
    ResponseSelector,
    LookupClassifier,
    ScoringClassifier,
    FALLBACK_TEXT,
    ADVANCED_DETAILS,
    simplify,
)
from molgeno_tutor.topic_catalog import Topic, TopicCatalog


class TestSimplify:
    """Test suite for sentence truncation."""

    def test_keeps_first_two_sentences(self):
        text = "First sentence. Second one! Third? Fourth."
        assert simplify(text) == "First sentence. Second one!"

    def test_primes_do_not_end_sentences(self):
        text = "Synthesis runs 5' to 3'. It needs a primer. Then it stops."
        assert simplify(text) == "Synthesis runs 5' to 3'. It needs a primer."

    def test_short_text_unchanged(self):
        assert simplify("Only one sentence.") == "Only one sentence."


class TestResponseSelector:
    """Test suite for ResponseSelector with the lookup classifier."""

    @pytest.fixture
    def catalog(self):
        return TopicCatalog()

    @pytest.fixture
    def selector(self, catalog):
        return ResponseSelector(catalog, LookupClassifier())

    def test_default_classifier_is_lookup(self, catalog):
        assert isinstance(ResponseSelector(catalog).classifier, LookupClassifier)

    def test_intermediate_answer_has_full_body(self, selector, catalog):
        selection = selector.select("What is DNA structure?", 3.0)
        topic = catalog.get("dna structure")

        assert selection.matched
        assert selection.topics_used == ["dna structure"]
        assert selection.text.startswith("**DNA Structure**")
        assert topic.content in selection.text
        assert "Advanced detail:" not in selection.text
        assert selection.text.endswith(
            "Is there anything specific about dna structure you'd like me to elaborate on?"
        )

    def test_beginner_answer_is_simplified(self, selector, catalog):
        selection = selector.select("What is DNA structure?", 1.0)
        topic = catalog.get("dna structure")

        assert simplify(topic.content) in selection.text
        assert topic.content not in selection.text
        assert "Watson and Crick" not in selection.text

    def test_advanced_answer_has_extra_detail(self, selector):
        selection = selector.select("How does the lac operon work?", 4.5)

        assert f"Advanced detail: {ADVANCED_DETAILS['lac operon']}" in selection.text

    def test_level_four_is_not_advanced(self, selector):
        selection = selector.select("How does the lac operon work?", 4.0)
        assert "Advanced detail:" not in selection.text

    def test_examples_and_related_topics(self, selector):
        selection = selector.select("What is DNA structure?", 3.0)

        assert "Example: " in selection.text
        assert "Related topics: DNA Replication, Central Dogma of Molecular Biology" in selection.text

    def test_no_match_returns_fallback(self, selector):
        selection = selector.select("How does photosynthesis work?", 3.0)

        assert not selection.matched
        assert selection.text == FALLBACK_TEXT
        assert selection.topics_used == []


class TestScoringClassifier:
    """Test suite for multi-topic scoring."""

    @pytest.fixture
    def catalog(self):
        return TopicCatalog()

    @pytest.fixture
    def classifier(self):
        return ScoringClassifier(max_topics=3)

    def test_tokenize_drops_stop_words_and_short_words(self):
        assert ScoringClassifier.tokenize("What does the ribosome do with tRNA?") == ["ribosome", "trna"]

    def test_topic_id_outweighs_body_tokens(self, classifier, catalog):
        ranked = classifier.rank("Explain transcription", catalog)
        assert ranked[0][0].topic_id == "transcription"

    def test_returns_at_most_max_topics(self, classifier, catalog):
        topics = classifier.classify(
            "How do ribosome, codon, promoter and helicase relate in replication and translation?",
            catalog,
        )
        assert 1 < len(topics) <= 3

    def test_unrelated_message_has_no_topics(self, classifier, catalog):
        assert classifier.classify("zzzz qqqq", catalog) == []

    def test_multi_topic_answer(self, catalog, classifier):
        selector = ResponseSelector(catalog, classifier)
        selection = selector.select("How do transcription and translation differ?", 3.0)

        assert set(selection.topics_used[:2]) == {"transcription", "translation"}
        assert "\n\n---\n\n" in selection.text

    def test_ties_keep_catalog_order(self, classifier):
        first = Topic(topic_id="alpha", title="Alpha", content="First entry.", keywords=("helix",))
        second = Topic(topic_id="beta", title="Beta", content="Second entry.", keywords=("helix",))

        ranked = classifier.rank("Tell me about the helix", TopicCatalog([first, second]))
        assert [(topic.topic_id, score) for topic, score in ranked] == [("alpha", 2), ("beta", 2)]

        reordered = classifier.rank("Tell me about the helix", TopicCatalog([second, first]))
        assert [topic.topic_id for topic, _ in reordered] == ["beta", "alpha"]
