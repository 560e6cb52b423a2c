"""
Response Selection

Picks catalog topics for a message and renders a level-appropriate answer.

Topic choice goes through a TopicClassifier so the keyword heuristics can be
replaced without touching the tutor:
- LookupClassifier: single best topic (id match, then keyword match)
- ScoringClassifier: top 3 topics by keyword/id/body-token score
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from molgeno_tutor.topic_catalog import Topic, TopicCatalog


FALLBACK_TEXT = (
    "I'm sorry, I don't understand that question. Could you please rephrase it?\n\n"
    "I'm MolGenoBot, your molecular genetics assistant! I can help you understand:\n\n"
    "• DNA structure and replication\n"
    "• Transcription and RNA processing\n"
    "• Translation and protein synthesis\n"
    "• Genetic code and mutations\n"
    "• Gene regulation (like lac operon)\n"
    "• Genetic recombination\n"
    "• Central dogma of molecular biology"
)

SIMPLIFY_BELOW_LEVEL = 2.5
ADVANCED_ABOVE_LEVEL = 4.0

ADVANCED_DETAILS: Dict[str, str] = {
    "dna structure": (
        "B-form DNA has about 10.5 base pairs per helical turn, with major and minor grooves "
        "that expose base edges to DNA-binding proteins."
    ),
    "transcription": (
        "Bacterial RNA polymerase uses sigma factors for promoter recognition, while eukaryotic RNA "
        "polymerase II needs general transcription factors and the phosphorylated CTD to escape the promoter."
    ),
    "translation": (
        "Initiation in bacteria relies on the Shine-Dalgarno sequence pairing with 16S rRNA; in eukaryotes "
        "the 43S complex scans from the 5' cap to the first AUG in a Kozak context."
    ),
    "lac operon": (
        "Catabolite repression adds a second layer: low glucose raises cAMP, and cAMP-CAP binding "
        "upstream of the promoter recruits RNA polymerase."
    ),
    "replication": (
        "Replication fidelity comes from base selection, 3'→5' exonuclease proofreading, and "
        "post-replicative mismatch repair, giving about one error per 10^9-10^10 bases."
    ),
    "mutations": (
        "Mutagens act through distinct mechanisms: base analogs mispair, alkylating agents modify bases, "
        "intercalators cause frameshifts, and UV light forms pyrimidine dimers."
    ),
    "genetic recombination": (
        "Homologous recombination proceeds through strand invasion by RecA/Rad51, Holliday junction "
        "formation, branch migration, and resolution into crossover or non-crossover products."
    ),
}

STOP_WORDS = {
    'the', 'and', 'for', 'with', 'what', 'does', 'how', 'why', 'are', 'was', 'were',
    'been', 'have', 'has', 'had', 'did', 'will', 'would', 'about', 'this', 'that',
    'tell', 'explain', 'please', 'can', 'you', 'your', 'which', 'when', 'where', 'from',
}

_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+(?=[A-Z0-9])")


@dataclass
class Selection:
    """Rendered answer and the topics it used."""
    text: str
    topics_used: List[str] = field(default_factory=list)

    @property
    def matched(self) -> bool:
        return bool(self.topics_used)


class TopicClassifier(ABC):
    """Chooses relevant topics for a message."""

    @abstractmethod
    def classify(self, message: str, catalog: TopicCatalog) -> List[Topic]:
        """Return relevant topics, most relevant first."""


class LookupClassifier(TopicClassifier):
    """Single best topic via the catalog's priority lookup."""

    def classify(self, message: str, catalog: TopicCatalog) -> List[Topic]:
        topic = catalog.lookup(message)
        return [topic] if topic else []


class ScoringClassifier(TopicClassifier):
    """
    Multi-topic relevance scoring.

    score = 2 * keyword hits + 3 * (topic id in message) + 1 * (message tokens found in body)
    """

    KEYWORD_WEIGHT = 2
    TOPIC_ID_WEIGHT = 3
    BODY_TOKEN_WEIGHT = 1

    def __init__(self, max_topics: int = 3):
        self.max_topics = max_topics

    @staticmethod
    def tokenize(message: str) -> List[str]:
        words = re.findall(r"[a-z0-9']+", (message or "").lower())
        return [w for w in words if w not in STOP_WORDS and len(w) > 3]

    def score(self, message: str, topic: Topic) -> int:
        text = (message or "").lower()
        body = topic.content.lower()

        score = self.KEYWORD_WEIGHT * sum(1 for kw in topic.keywords if kw.lower() in text)
        if topic.topic_id in text:
            score += self.TOPIC_ID_WEIGHT
        score += self.BODY_TOKEN_WEIGHT * sum(1 for token in self.tokenize(message) if token in body)
        return score

    def rank(self, message: str, catalog: TopicCatalog) -> List[Tuple[Topic, int]]:
        scored = [(topic, self.score(message, topic)) for topic in catalog.topics()]
        # sorted() is stable, so ties keep catalog order
        ranked = sorted((item for item in scored if item[1] > 0), key=lambda item: -item[1])
        return ranked[:self.max_topics]

    def classify(self, message: str, catalog: TopicCatalog) -> List[Topic]:
        return [topic for topic, _ in self.rank(message, catalog)]


def simplify(text: str, max_sentences: int = 2) -> str:
    """Keep only the first sentences of a text."""
    sentences = _SENTENCE_BOUNDARY.split(text.strip())
    return " ".join(sentences[:max_sentences])


class ResponseSelector:
    """Renders catalog answers tailored to the learner's level."""

    def __init__(self, catalog: TopicCatalog, classifier: TopicClassifier = None):
        self.catalog = catalog
        self.classifier = classifier or LookupClassifier()

    def find_topics(self, message: str) -> List[Topic]:
        return self.classifier.classify(message, self.catalog)

    def render_topic(self, topic: Topic, user_level: float) -> str:
        """Render one topic section for a given knowledge level."""
        if user_level < SIMPLIFY_BELOW_LEVEL:
            body = simplify(topic.content)
        else:
            body = topic.content

        parts = [f"**{topic.title}**", body]

        if user_level > ADVANCED_ABOVE_LEVEL and topic.topic_id in ADVANCED_DETAILS:
            parts.append(f"Advanced detail: {ADVANCED_DETAILS[topic.topic_id]}")

        if topic.examples:
            parts.append("Example: " + " ".join(topic.examples))

        related_titles = [
            self.catalog.get(related).title
            for related in topic.related_topics
            if related in self.catalog
        ]
        if related_titles:
            parts.append("Related topics: " + ", ".join(related_titles))

        return "\n\n".join(parts)

    def select(self, message: str, user_level: float) -> Selection:
        """
        Select topics for a message and render the answer.

        Args:
            message: User question
            user_level: Knowledge level on the 1-5 scale

        Returns:
            Selection with rendered text and topic ids (empty when nothing matched)
        """
        topics = self.find_topics(message)
        if not topics:
            return Selection(text=FALLBACK_TEXT, topics_used=[])

        sections = [self.render_topic(topic, user_level) for topic in topics]
        closing = (
            f"Is there anything specific about {topics[0].topic_id} "
            f"you'd like me to elaborate on?"
        )
        text = "\n\n---\n\n".join(sections) + f"\n\n{closing}"
        return Selection(text=text, topics_used=[topic.topic_id for topic in topics])
