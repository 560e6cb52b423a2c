"""
Genetics Tutor - per-request session orchestration

Coordinates one chat turn:
- Memory context lookup
- Answer generation (LLM when configured, topic catalog otherwise)
- Knowledge level estimation
- Session, history and concept persistence
- Follow-up question selection

Mutations are serialized per user id; different users never share a lock.
"""

import asyncio
import logging
import weakref
from dataclasses import dataclass, field
from typing import Dict, Optional, List, Any, Tuple

from molgeno_tutor.completion_client import CompletionClient, build_system_prompt
from molgeno_tutor.config import TutorSettings
from molgeno_tutor.errors import InvalidInputError, CollaboratorUnavailableError, InternalFaultError
from molgeno_tutor.follow_up_questions import suggest_questions
from molgeno_tutor.knowledge_estimator import KnowledgeEstimator
from molgeno_tutor.memory_store import MemoryStore, MemoryContext
from molgeno_tutor.response_selector import (
    ResponseSelector,
    LookupClassifier,
    ScoringClassifier,
)
from molgeno_tutor.session_state import UserSession, append_bounded, now_iso
from molgeno_tutor.topic_catalog import TopicCatalog

logger = logging.getLogger(__name__)

FAULT_FALLBACK_TEXT = (
    "I'm having trouble answering right now. Please try asking again in a moment - "
    "in the meantime you can browse the available genetics topics."
)

# Trigger keyword -> concept id
CONCEPT_TRIGGERS: Dict[str, str] = {
    "mutation": "mutations",
    "recombination": "genetic_recombination",
    "transcription": "transcription",
    "translation": "translation",
    "replication": "replication",
    "codon": "genetic_code",
    "operon": "lac_operon",
    "double helix": "dna_structure",
    "central dogma": "central_dogma",
}


@dataclass
class ChatResult:
    """Outcome of one chat turn."""
    answer: str
    updated_session: UserSession
    suggested_questions: List[str] = field(default_factory=list)
    topics_used: List[str] = field(default_factory=list)
    confidence: float = 0.0
    source: str = "general"  # "openai", "knowledge_base", "general", "error"
    reasoning_chain: List[str] = field(default_factory=list)
    failed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "response": self.answer,
            "updatedSession": self.updated_session.to_dict(),
            "suggestedQuestions": list(self.suggested_questions),
            "topicsUsed": list(self.topics_used),
            "confidence": self.confidence,
            "source": self.source,
            "reasoningChain": list(self.reasoning_chain),
        }


class GeneticsTutor:
    """
    Session orchestrator for the molecular genetics tutor.

    All collaborators are injected; `from_settings` wires the defaults.
    """

    def __init__(
        self,
        memory_store: MemoryStore,
        catalog: Optional[TopicCatalog] = None,
        selector: Optional[ResponseSelector] = None,
        estimator: Optional[KnowledgeEstimator] = None,
        completion_client: Optional[CompletionClient] = None,
        llm_timeout_seconds: float = 30.0,
        concept_reinforcement: float = 0.1
    ):
        self.memory_store = memory_store
        self.catalog = catalog or TopicCatalog()
        self.selector = selector or ResponseSelector(self.catalog)
        self.estimator = estimator or KnowledgeEstimator()
        self.completion_client = completion_client
        self.llm_timeout_seconds = llm_timeout_seconds
        self.concept_reinforcement = concept_reinforcement

        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    @classmethod
    def from_settings(cls, settings: TutorSettings, memory_store: MemoryStore) -> "GeneticsTutor":
        """Build a tutor from settings."""
        catalog = TopicCatalog()
        classifier = ScoringClassifier() if settings.topic_classifier == "scoring" else LookupClassifier()

        completion_client = None
        if settings.llm_enabled:
            completion_client = CompletionClient(
                api_key=settings.openai_api_key,
                model=settings.openai_model,
                max_tokens=settings.llm_max_tokens,
                temperature=settings.llm_temperature,
                timeout=settings.llm_timeout_seconds,
            )
            logger.info(f"✅ [GeneticsTutor] Completion client enabled (model={settings.openai_model})")
        else:
            logger.info("ℹ️ [GeneticsTutor] OPENAI_API_KEY not set, answering from the topic catalog only")

        return cls(
            memory_store=memory_store,
            catalog=catalog,
            selector=ResponseSelector(catalog, classifier),
            completion_client=completion_client,
            llm_timeout_seconds=settings.llm_timeout_seconds,
            concept_reinforcement=settings.concept_reinforcement,
        )

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    @staticmethod
    def validate_message(message: Any) -> str:
        """
        Check that a chat message is non-empty text.

        Raises:
            InvalidInputError: If the message is missing, not a string, or blank
        """
        if message is None:
            raise InvalidInputError("Message is required")
        if not isinstance(message, str):
            raise InvalidInputError("Message must be a string")
        if not message.strip():
            raise InvalidInputError("Message must not be empty")
        return message.strip()

    # ==================== Session lifecycle ====================

    async def resolve_session(self, payload: Optional[Dict[str, Any]] = None) -> UserSession:
        """
        Find the session for a request.

        Stored record by id first, then the client-supplied session, then a
        fresh default session.
        """
        if payload and payload.get("id"):
            stored = await self.memory_store.get_session(str(payload["id"]))
            if stored:
                return stored
        if payload:
            return UserSession.from_dict(payload)
        return UserSession()

    async def start_session(self, payload: Optional[Dict[str, Any]] = None) -> UserSession:
        """Create (or return the existing) session and store it."""
        session = await self.resolve_session(payload)
        async with self._lock_for(session.session_id):
            if not await self.memory_store.get_session(session.session_id):
                await self.memory_store.save_session(session)
                logger.info(f"💾 [GeneticsTutor] Started session {session.session_id}")
        return session

    async def get_session(self, session_id: str) -> Optional[UserSession]:
        return await self.memory_store.get_session(session_id)

    async def reset_session(self, session_id: str) -> UserSession:
        async with self._lock_for(session_id):
            session = await self.memory_store.reset_session(session_id)
        logger.info(f"🔄 [GeneticsTutor] Reset session {session_id}")
        return session

    async def concept_report(self, session_id: str) -> Dict[str, Any]:
        """Concept confidences plus the memory context for a session."""
        concepts = await self.memory_store.get_concepts(session_id)
        context = await self.memory_store.relevant_context(session_id)
        return {
            "id": session_id,
            "concepts": {k: round(v, 3) for k, v in sorted(concepts.items())},
            "strongConcepts": context.strong_concepts,
            "recentMessages": context.recent_user_messages,
        }

    # ==================== Chat ====================

    async def handle_chat(self, message: Any, session: UserSession) -> ChatResult:
        """
        Answer one chat message and update the session.

        Args:
            message: Raw message from the caller
            session: The caller's current session (not modified). A stored
                record with the same id takes precedence.

        Returns:
            ChatResult. On an internal failure the result carries the fallback
            answer, the unmodified session and failed=True.

        Raises:
            InvalidInputError: If the message is not non-empty text
        """
        text = self.validate_message(message)
        user_id = session.session_id

        async with self._lock_for(user_id):
            try:
                snapshot = await self.memory_store.get_session(user_id)
                concepts_snapshot = await self.memory_store.get_concepts(user_id)
            except Exception as e:
                # Nothing written yet, and no trustworthy snapshot to restore
                logger.exception(f"❌ [GeneticsTutor] Could not read memory for {user_id}: {e}")
                return self._fault_result(session, e)

            try:
                # The stored record wins over the caller's copy, which may be stale
                current = snapshot.copy() if snapshot else session
                context = await self.memory_store.relevant_context(user_id)

                answer, source, topics_used, reasoning = await self._answer(text, current, context)

                estimate = self.estimator.evaluate(current, text)
                reasoning.append(
                    f"complexity={estimate.complexity} understanding={estimate.understanding_score:.2f} "
                    f"level {current.knowledge_level:.1f}->{estimate.new_level:.1f}"
                )

                updated = await self._persist_turn(current, text, answer, estimate.new_level, topics_used)

                suggested = suggest_questions(
                    updated.knowledge_level,
                    topics_used,
                    rotation=len(current.conversation_history) // 2,
                )

                logger.info(
                    f"✅ [GeneticsTutor] Answered {user_id} (source={source}, topics={topics_used}, "
                    f"level={updated.knowledge_level:.1f})"
                )
                return ChatResult(
                    answer=answer,
                    updated_session=updated,
                    suggested_questions=suggested,
                    topics_used=topics_used,
                    confidence=self._confidence(source, topics_used),
                    source=source,
                    reasoning_chain=reasoning,
                )
            except Exception as e:
                logger.exception(f"❌ [GeneticsTutor] Chat processing failed for {user_id}: {e}")
                await self._restore(user_id, snapshot, concepts_snapshot)
                return self._fault_result(session, e)

    @staticmethod
    def _fault_result(session: UserSession, error: Exception) -> ChatResult:
        return ChatResult(
            answer=FAULT_FALLBACK_TEXT,
            updated_session=session,
            suggested_questions=suggest_questions(session.knowledge_level),
            topics_used=[],
            confidence=0.0,
            source="error",
            reasoning_chain=[f"internal fault: {type(error).__name__}"],
            failed=True,
        )

    async def _answer(
        self,
        text: str,
        session: UserSession,
        context: MemoryContext
    ) -> Tuple[str, str, List[str], List[str]]:
        """Return (answer, source, topics_used, reasoning)."""
        selection = self.selector.select(text, session.knowledge_level)
        reasoning = [
            f"classifier={type(self.selector.classifier).__name__}",
            f"topics={selection.topics_used or 'none'}",
        ]

        if self.completion_client:
            prompt = build_system_prompt(
                session.knowledge_level,
                context.recent_user_messages,
                context.strong_concepts,
            )
            try:
                completion = await asyncio.wait_for(
                    self.completion_client.complete(prompt, text),
                    timeout=self.llm_timeout_seconds,
                )
                reasoning.append("answer=completion service")
                return completion, "openai", selection.topics_used, reasoning
            except asyncio.TimeoutError:
                logger.warning(
                    f"⚠️ [GeneticsTutor] Completion timed out after {self.llm_timeout_seconds}s, "
                    "using topic catalog"
                )
                reasoning.append("completion service timed out")
            except CollaboratorUnavailableError as e:
                logger.warning(f"⚠️ [GeneticsTutor] {e.message}: {e.details.get('reason', '')}, using topic catalog")
                reasoning.append("completion service unavailable")

        if selection.matched:
            reasoning.append("answer=topic catalog")
            return selection.text, "knowledge_base", selection.topics_used, reasoning

        reasoning.append("answer=fallback")
        return selection.text, "general", [], reasoning

    async def _persist_turn(
        self,
        session: UserSession,
        text: str,
        answer: str,
        new_level: float,
        topics_used: List[str]
    ) -> UserSession:
        """Write the updated session, the new turn pair and concept scores."""
        timestamp = now_iso()
        updated = session.copy()
        updated.knowledge_level = new_level
        updated.last_interaction = timestamp
        updated.conversation_history = append_bounded(
            session.conversation_history, [], self.memory_store.history_cap
        )
        for topic_id in topics_used:
            updated.add_interest(topic_id)
            updated.add_last_topic(topic_id)

        try:
            await self.memory_store.save_session(updated)
            stored = await self.memory_store.store_turn(updated.session_id, text, answer, timestamp)
        except Exception as e:
            raise InternalFaultError("Failed to persist session", details={"reason": str(e)}) from e

        updated.conversation_history = list(stored.conversation_history)

        for concept_id in self.triggered_concepts(text):
            confidence = await self.memory_store.reinforce_concept(
                updated.session_id, concept_id, self.concept_reinforcement
            )
            logger.debug(f"📚 [GeneticsTutor] {concept_id} confidence -> {confidence:.2f}")

        return updated

    async def _restore(
        self,
        user_id: str,
        snapshot: Optional[UserSession],
        concepts_snapshot: Dict[str, float]
    ):
        """Put the session record and concept scores back to their pre-request state."""
        try:
            if snapshot:
                await self.memory_store.save_session(snapshot)
            else:
                await self.memory_store.delete_session(user_id)
            await self.memory_store.replace_concepts(user_id, concepts_snapshot)
        except Exception as e:
            logger.error(f"❌ [GeneticsTutor] Could not restore session {user_id}: {e}")

    @staticmethod
    def triggered_concepts(text: str) -> List[str]:
        """Concept ids whose trigger keyword appears in the text."""
        text_lower = text.lower()
        concepts = [concept for trigger, concept in CONCEPT_TRIGGERS.items() if trigger in text_lower]
        return list(dict.fromkeys(concepts))

    @staticmethod
    def _confidence(source: str, topics_used: List[str]) -> float:
        if source == "openai":
            return 0.9
        if source == "knowledge_base":
            return min(0.95, 0.75 + 0.05 * len(topics_used))
        return 0.3
