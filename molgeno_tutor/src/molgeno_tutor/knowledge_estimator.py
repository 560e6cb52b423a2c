"""
Knowledge Level Estimation

Adjusts a learner's knowledge level (1-5) after each message, based on the
complexity of the question and how well recent turns suggest the learner is
following along.
"""

from dataclasses import dataclass
from typing import Optional, List, Sequence

from molgeno_tutor.session_state import (
    UserSession,
    MIN_KNOWLEDGE_LEVEL,
    MAX_KNOWLEDGE_LEVEL,
    clamp_level,
)


@dataclass
class EstimateResult:
    """Result of a knowledge level estimate."""
    new_level: float
    direction: Optional[str]  # "increase", "decrease", or None
    complexity: str  # "low", "medium", "high"
    understanding_score: float
    reason: str


class KnowledgeEstimator:
    """
    Heuristic knowledge level estimator.

    Algorithm:
    - Classify message complexity by marker phrases
    - Score understanding over the last 10 turns (user turns only) plus the new message
    - If score > 0.8 and complexity "high" → level +0.1
    - If score < 0.4 → level -0.1
    - Otherwise keep the current level
    """

    BEGINNER_MARKERS = ("what is", "what are", "basic", "simple", "define", "meaning of")
    ADVANCED_MARKERS = ("mechanism", "regulation", "detailed", "specific", "pathway", "kinetics")

    CONFUSION_MARKERS = (
        "confused", "don't understand", "dont understand", "explain again",
        "not sure", "lost", "unclear",
    )
    UNDERSTANDING_MARKERS = (
        "i see", "that makes sense", "understood", "got it", "makes sense", "clear now",
    )

    # Thresholds
    HIGH_SCORE_THRESHOLD = 0.8
    LOW_SCORE_THRESHOLD = 0.4
    LEVEL_STEP = 0.1
    LOOKBACK_TURNS = 10

    def classify_complexity(self, message: str) -> str:
        """
        Classify a message as "low", "medium" or "high" complexity.

        Beginner markers win when both kinds appear.
        """
        text = (message or "").lower()
        if any(marker in text for marker in self.BEGINNER_MARKERS):
            return "low"
        if any(marker in text for marker in self.ADVANCED_MARKERS):
            return "high"
        return "medium"

    def understanding_score(self, messages: Sequence[str]) -> float:
        """
        Score understanding from marker phrases.

        Args:
            messages: Recent user messages

        Returns:
            0.5 + 0.1 * (understanding - confusion), clamped to [0.1, 1.0]
        """
        understanding = 0
        confusion = 0
        for message in messages:
            text = (message or "").lower()
            understanding += sum(1 for marker in self.UNDERSTANDING_MARKERS if marker in text)
            confusion += sum(1 for marker in self.CONFUSION_MARKERS if marker in text)

        score = 0.5 + 0.1 * (understanding - confusion)
        return max(0.1, min(1.0, score))

    def _recent_user_messages(self, session: UserSession, incoming_message: str) -> List[str]:
        window = session.conversation_history[-self.LOOKBACK_TURNS:]
        messages = [turn.content for turn in window if turn.role == "user"]
        messages.append(incoming_message)
        return messages

    def evaluate(self, session: UserSession, incoming_message: str) -> EstimateResult:
        """
        Estimate the knowledge level after an incoming message.

        Args:
            session: Current session (not modified)
            incoming_message: The message being answered

        Returns:
            EstimateResult with the new level and diagnostics
        """
        current = clamp_level(session.knowledge_level)
        complexity = self.classify_complexity(incoming_message)
        score = self.understanding_score(self._recent_user_messages(session, incoming_message))

        if score > self.HIGH_SCORE_THRESHOLD and complexity == "high":
            new_level = min(MAX_KNOWLEDGE_LEVEL, round(current + self.LEVEL_STEP, 2))
            if new_level != current:
                return EstimateResult(
                    new_level=new_level,
                    direction="increase",
                    complexity=complexity,
                    understanding_score=score,
                    reason=f"Strong understanding (score={score:.2f}) on an advanced question",
                )

        if score < self.LOW_SCORE_THRESHOLD:
            new_level = max(MIN_KNOWLEDGE_LEVEL, round(current - self.LEVEL_STEP, 2))
            if new_level != current:
                return EstimateResult(
                    new_level=new_level,
                    direction="decrease",
                    complexity=complexity,
                    understanding_score=score,
                    reason=f"Signs of confusion (score={score:.2f})",
                )

        return EstimateResult(
            new_level=current,
            direction=None,
            complexity=complexity,
            understanding_score=score,
            reason=f"Level stable (score={score:.2f}, complexity={complexity})",
        )

    def estimate(self, session: UserSession, incoming_message: str) -> float:
        """Return only the new knowledge level."""
        return self.evaluate(session, incoming_message).new_level
