"""MolGenoBot - molecular genetics tutoring core"""
from .genetics_tutor import GeneticsTutor, ChatResult
from .memory_store import MemoryStore, InMemoryMemoryStore, SupabaseMemoryStore
from .session_state import UserSession, ConversationTurn
from .topic_catalog import Topic, TopicCatalog

__all__ = [
    "GeneticsTutor",
    "ChatResult",
    "MemoryStore",
    "InMemoryMemoryStore",
    "SupabaseMemoryStore",
    "UserSession",
    "ConversationTurn",
    "Topic",
    "TopicCatalog",
]
