"""
Session State Data Model

Defines the UserSession and ConversationTurn dataclasses used by the tutor,
plus the camelCase (de)serialization used on the HTTP boundary.
"""

from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any
from datetime import datetime
import uuid


MIN_KNOWLEDGE_LEVEL = 1.0
MAX_KNOWLEDGE_LEVEL = 5.0
DEFAULT_KNOWLEDGE_LEVEL = 3.0
DEFAULT_HISTORY_CAP = 20
LAST_TOPICS_LIMIT = 5


def clamp_level(level: float) -> float:
    """Clamp a knowledge level into the 1-5 scale."""
    return max(MIN_KNOWLEDGE_LEVEL, min(MAX_KNOWLEDGE_LEVEL, float(level)))


def now_iso() -> str:
    return datetime.now().isoformat()


def generate_session_id() -> str:
    return f"user_{uuid.uuid4().hex[:12]}"


@dataclass
class ConversationTurn:
    """One message in a conversation."""
    role: str  # "user" or "assistant"
    content: str
    timestamp: str = field(default_factory=now_iso)

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content, "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConversationTurn":
        role = str(data.get("role") or "user").lower()
        if role in ("ai", "bot"):
            role = "assistant"
        elif role not in ("user", "assistant"):
            role = "user"
        return cls(
            role=role,
            content=str(data.get("content") or ""),
            timestamp=str(data.get("timestamp") or now_iso()),
        )


def append_bounded(
    history: List[ConversationTurn],
    turns: List[ConversationTurn],
    cap: int = DEFAULT_HISTORY_CAP
) -> List[ConversationTurn]:
    """
    Append turns to a history and drop the oldest entries beyond the cap.

    Returns a new list; the input list is not modified.
    """
    combined = list(history) + list(turns)
    if cap > 0 and len(combined) > cap:
        combined = combined[-cap:]
    return combined


@dataclass
class UserSession:
    """Per-user tutoring session."""
    session_id: str = field(default_factory=generate_session_id)
    knowledge_level: float = DEFAULT_KNOWLEDGE_LEVEL
    interests: List[str] = field(default_factory=list)
    last_topics: List[str] = field(default_factory=list)
    conversation_history: List[ConversationTurn] = field(default_factory=list)
    created_at: str = field(default_factory=now_iso)
    last_interaction: Optional[str] = None

    def __post_init__(self):
        self.knowledge_level = clamp_level(self.knowledge_level)

    def copy(self) -> "UserSession":
        """Copy with independent lists, so updates never leak into the original."""
        return UserSession(
            session_id=self.session_id,
            knowledge_level=self.knowledge_level,
            interests=list(self.interests),
            last_topics=list(self.last_topics),
            conversation_history=list(self.conversation_history),
            created_at=self.created_at,
            last_interaction=self.last_interaction,
        )

    def add_interest(self, topic_id: str):
        if topic_id not in self.interests:
            self.interests.append(topic_id)

    def add_last_topic(self, topic_id: str):
        self.last_topics = (self.last_topics + [topic_id])[-LAST_TOPICS_LIMIT:]

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for API responses and storage (camelCase keys)."""
        return {
            "id": self.session_id,
            "knowledgeLevel": round(self.knowledge_level, 2),
            "interests": list(self.interests),
            "lastTopics": list(self.last_topics),
            "conversationHistory": [turn.to_dict() for turn in self.conversation_history],
            "createdAt": self.created_at,
            "lastInteraction": self.last_interaction,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserSession":
        """
        Build a session from a client payload or a stored record.

        Unknown keys are ignored and out-of-range levels are clamped.
        """
        level = data.get("knowledgeLevel", data.get("knowledge_level", DEFAULT_KNOWLEDGE_LEVEL))
        try:
            level = float(level)
        except (TypeError, ValueError):
            level = DEFAULT_KNOWLEDGE_LEVEL

        history = data.get("conversationHistory", data.get("conversation_history")) or []
        interests = data.get("interests") or []

        return cls(
            session_id=str(data.get("id") or data.get("session_id") or generate_session_id()),
            knowledge_level=level,
            interests=list(dict.fromkeys(str(i) for i in interests)),
            last_topics=[str(t) for t in (data.get("lastTopics") or data.get("last_topics") or [])],
            conversation_history=[
                ConversationTurn.from_dict(turn) for turn in history if isinstance(turn, dict)
            ],
            created_at=str(data.get("createdAt") or data.get("created_at") or now_iso()),
            last_interaction=data.get("lastInteraction") or data.get("last_interaction"),
        )
