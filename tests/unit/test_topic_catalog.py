"""
Unit Tests for Topic Catalog

Tests topic lookup priority and catalog validation.
"""

import pytest
import sys
import os

# Add project root to path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
sys.path.insert(0, os.path.join(project_root, "molgeno_tutor", "src"))

from molgeno_tutor.topic_catalog import Topic, TopicCatalog, default_topics


class TestTopicCatalog:
    """Test suite for TopicCatalog."""

    @pytest.fixture
    def catalog(self):
        return TopicCatalog()

    def test_default_catalog_contents(self, catalog):
        ids = [topic.topic_id for topic in catalog.topics()]
        assert ids[:8] == [
            "dna structure", "transcription", "translation", "genetic code",
            "lac operon", "replication", "mutations", "central dogma",
        ]
        assert "genetic recombination" in catalog
        assert len(catalog) == len(default_topics())

    def test_exact_id_match(self, catalog):
        topic = catalog.lookup("What is DNA structure?")
        assert topic.topic_id == "dna structure"

    def test_id_match_beats_keyword_match(self, catalog):
        # "codon" is a translation keyword, but "genetic code" appears verbatim
        topic = catalog.lookup("How is each codon read in the genetic code?")
        assert topic.topic_id == "genetic code"

    def test_keyword_match(self, catalog):
        topic = catalog.lookup("What does the ribosome do?")
        assert topic.topic_id == "translation"

    def test_keyword_match_uses_definition_order(self, catalog):
        # "double helix" (dna structure) is defined before "helicase" (replication)
        topic = catalog.lookup("How does helicase open the double helix?")
        assert topic.topic_id == "dna structure"

    def test_lookup_is_case_insensitive(self, catalog):
        assert catalog.lookup("TELL ME ABOUT THE LAC OPERON").topic_id == "lac operon"

    def test_no_match(self, catalog):
        assert catalog.lookup("How does photosynthesis work?") is None
        assert catalog.lookup("") is None

    def test_get_and_contains(self, catalog):
        assert catalog.get("Replication").title == "DNA Replication"
        assert "mutations" in catalog
        assert "photosynthesis" not in catalog
        assert catalog.get("photosynthesis") is None

    def test_related_topics_exist(self, catalog):
        for topic in catalog.topics():
            for related in topic.related_topics:
                assert related in catalog, f"{topic.topic_id} references unknown topic {related}"

    def test_custom_catalog(self):
        catalog = TopicCatalog([
            Topic(topic_id="epigenetics", title="Epigenetics", content="Heritable changes.",
                  keywords=("methylation",), difficulty="advanced"),
        ])
        assert len(catalog) == 1
        assert catalog.lookup("What does DNA methylation do?").topic_id == "epigenetics"

    def test_invalid_difficulty_rejected(self):
        with pytest.raises(ValueError):
            TopicCatalog([Topic(topic_id="x", title="X", content="x", difficulty="expert")])
