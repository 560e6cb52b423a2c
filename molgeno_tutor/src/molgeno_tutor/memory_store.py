"""
Memory Store for Session and Concept Persistence

Holds per-user session records (including the bounded conversation history)
and per-concept confidence scores. The store is passed into the tutor, so
tests can use the in-memory implementation and deployments can use Supabase.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List

from molgeno_tutor.errors import InternalFaultError
from molgeno_tutor.session_state import (
    UserSession,
    ConversationTurn,
    DEFAULT_HISTORY_CAP,
    append_bounded,
    now_iso,
)

logger = logging.getLogger(__name__)

STRONG_CONCEPT_THRESHOLD = 0.7


@dataclass
class MemoryContext:
    """Context read from memory before answering."""
    recent_user_messages: List[str] = field(default_factory=list)  # most recent last
    strong_concepts: List[str] = field(default_factory=list)


class MemoryStore(ABC):
    """
    Storage interface for tutor memory.

    Subclasses provide the record-level operations; turn storage, concept
    reinforcement and context building are shared.
    """

    def __init__(self, history_cap: int = DEFAULT_HISTORY_CAP):
        if history_cap < 2:
            raise ValueError("history_cap must hold at least one user/assistant pair")
        self.history_cap = history_cap

    @abstractmethod
    async def get_session(self, user_id: str) -> Optional[UserSession]:
        """Load a session record, or None if the user is unknown."""

    @abstractmethod
    async def save_session(self, session: UserSession) -> bool:
        """Insert or replace a session record."""

    @abstractmethod
    async def delete_session(self, user_id: str) -> bool:
        """Delete a session record and its concept scores."""

    @abstractmethod
    async def get_concepts(self, user_id: str) -> Dict[str, float]:
        """Concept confidences for a user (concept_id -> confidence)."""

    @abstractmethod
    async def _set_concept(self, user_id: str, concept_id: str, confidence: float) -> None:
        """Write a single concept confidence."""

    @abstractmethod
    async def replace_concepts(self, user_id: str, concepts: Dict[str, float]) -> None:
        """Replace all of a user's concept confidences (used to roll back a failed turn)."""

    async def store_turn(
        self,
        user_id: str,
        user_message: str,
        assistant_message: str,
        timestamp: Optional[str] = None
    ) -> UserSession:
        """
        Append a user turn and an assistant turn to the user's history.

        Oldest entries are dropped once the history exceeds the cap.

        Args:
            user_id: User/session identifier
            user_message: Message the user sent
            assistant_message: Answer returned to the user
            timestamp: ISO timestamp for both turns (defaults to now)

        Returns:
            The updated session record
        """
        timestamp = timestamp or now_iso()
        session = await self.get_session(user_id) or UserSession(session_id=user_id)
        session.conversation_history = append_bounded(
            session.conversation_history,
            [
                ConversationTurn(role="user", content=user_message, timestamp=timestamp),
                ConversationTurn(role="assistant", content=assistant_message, timestamp=timestamp),
            ],
            self.history_cap,
        )
        await self.save_session(session)
        return session

    async def reinforce_concept(self, user_id: str, concept_id: str, delta: float) -> float:
        """
        Raise a concept's confidence by delta, saturating at 1.0.

        Negative deltas are ignored, so confidence never decreases.

        Returns:
            The new confidence
        """
        concepts = await self.get_concepts(user_id)
        previous = concepts.get(concept_id, 0.0)
        confidence = min(1.0, previous + max(0.0, delta))
        await self._set_concept(user_id, concept_id, confidence)
        return confidence

    async def relevant_context(self, user_id: str, limit: int = 5) -> MemoryContext:
        """
        Build the memory context for a user.

        Args:
            user_id: User/session identifier
            limit: Maximum number of recent user messages

        Returns:
            MemoryContext with recent user messages (most recent last) and
            concepts whose confidence is above 0.7
        """
        session = await self.get_session(user_id)
        recent: List[str] = []
        if session and limit > 0:
            user_turns = [t.content for t in session.conversation_history if t.role == "user"]
            recent = user_turns[-limit:]

        concepts = await self.get_concepts(user_id)
        strong = sorted(c for c, score in concepts.items() if score > STRONG_CONCEPT_THRESHOLD)
        return MemoryContext(recent_user_messages=recent, strong_concepts=strong)

    async def reset_session(self, user_id: str) -> UserSession:
        """Replace a user's record with a fresh session."""
        await self.delete_session(user_id)
        session = UserSession(session_id=user_id)
        await self.save_session(session)
        return session


class InMemoryMemoryStore(MemoryStore):
    """Process-local store. State lives as long as the process."""

    def __init__(self, history_cap: int = DEFAULT_HISTORY_CAP):
        super().__init__(history_cap)
        self._sessions: Dict[str, UserSession] = {}
        self._concepts: Dict[str, Dict[str, float]] = {}

    async def get_session(self, user_id: str) -> Optional[UserSession]:
        session = self._sessions.get(user_id)
        return session.copy() if session else None

    async def save_session(self, session: UserSession) -> bool:
        stored = session.copy()
        stored.conversation_history = append_bounded(stored.conversation_history, [], self.history_cap)
        self._sessions[session.session_id] = stored
        return True

    async def delete_session(self, user_id: str) -> bool:
        existed = self._sessions.pop(user_id, None) is not None
        self._concepts.pop(user_id, None)
        return existed

    async def get_concepts(self, user_id: str) -> Dict[str, float]:
        return dict(self._concepts.get(user_id, {}))

    async def _set_concept(self, user_id: str, concept_id: str, confidence: float) -> None:
        self._concepts.setdefault(user_id, {})[concept_id] = confidence

    async def replace_concepts(self, user_id: str, concepts: Dict[str, float]) -> None:
        if concepts:
            self._concepts[user_id] = dict(concepts)
        else:
            self._concepts.pop(user_id, None)


class SupabaseMemoryStore(MemoryStore):
    """
    Supabase-backed store.

    Tables:
    - tutor_sessions: one row per user (user_id primary key, JSON columns for lists)
    - concept_confidence: one row per (user_id, concept_id)

    Database errors are raised as InternalFaultError. Values are never derived
    from a failed read, so a transient outage cannot overwrite stored data.
    """

    SESSIONS_TABLE = "tutor_sessions"
    CONCEPTS_TABLE = "concept_confidence"

    def __init__(self, supabase_client, history_cap: int = DEFAULT_HISTORY_CAP):
        super().__init__(history_cap)
        self.supabase = supabase_client

    def _execute(self, query, action: str):
        try:
            return query.execute()
        except Exception as e:
            logger.error(f"❌ [MemoryStore] Database error while {action}: {e}")
            raise InternalFaultError(f"Database error while {action}", details={"reason": str(e)}) from e

    def session_to_row(self, session: UserSession) -> Dict[str, Any]:
        """Convert a session to a table row."""
        history = append_bounded(session.conversation_history, [], self.history_cap)
        return {
            "user_id": session.session_id,
            "knowledge_level": session.knowledge_level,
            "interests": json.dumps(session.interests),
            "last_topics": json.dumps(session.last_topics),
            "conversation_history": json.dumps([turn.to_dict() for turn in history]),
            "created_at": session.created_at,
            "last_interaction": session.last_interaction,
        }

    def row_to_session(self, row: Dict[str, Any]) -> UserSession:
        """Convert a table row to a session."""
        def _json_list(value) -> list:
            if isinstance(value, list):
                return value
            return json.loads(value or "[]")

        return UserSession.from_dict({
            "id": row["user_id"],
            "knowledgeLevel": row.get("knowledge_level"),
            "interests": _json_list(row.get("interests")),
            "lastTopics": _json_list(row.get("last_topics")),
            "conversationHistory": _json_list(row.get("conversation_history")),
            "createdAt": row.get("created_at"),
            "lastInteraction": row.get("last_interaction"),
        })

    async def get_session(self, user_id: str) -> Optional[UserSession]:
        result = self._execute(
            self.supabase.table(self.SESSIONS_TABLE)
                .select('*')
                .eq('user_id', user_id),
            "loading session",
        )
        if result.data:
            return self.row_to_session(result.data[0])
        return None

    async def save_session(self, session: UserSession) -> bool:
        self._execute(
            self.supabase.table(self.SESSIONS_TABLE)
                .upsert(self.session_to_row(session), on_conflict='user_id'),
            "saving session",
        )
        return True

    async def delete_session(self, user_id: str) -> bool:
        result = self._execute(
            self.supabase.table(self.SESSIONS_TABLE).delete().eq('user_id', user_id),
            "deleting session",
        )
        self._execute(
            self.supabase.table(self.CONCEPTS_TABLE).delete().eq('user_id', user_id),
            "deleting concepts",
        )
        return bool(result.data)

    async def get_concepts(self, user_id: str) -> Dict[str, float]:
        result = self._execute(
            self.supabase.table(self.CONCEPTS_TABLE)
                .select('concept_id, confidence')
                .eq('user_id', user_id),
            "loading concepts",
        )
        return {row["concept_id"]: float(row["confidence"]) for row in (result.data or [])}

    async def _set_concept(self, user_id: str, concept_id: str, confidence: float) -> None:
        self._execute(
            self.supabase.table(self.CONCEPTS_TABLE)
                .upsert(
                    {"user_id": user_id, "concept_id": concept_id, "confidence": confidence},
                    on_conflict='user_id,concept_id'
                ),
            "saving concept confidence",
        )

    async def replace_concepts(self, user_id: str, concepts: Dict[str, float]) -> None:
        self._execute(
            self.supabase.table(self.CONCEPTS_TABLE).delete().eq('user_id', user_id),
            "clearing concepts",
        )
        for concept_id, confidence in concepts.items():
            await self._set_concept(user_id, concept_id, confidence)
