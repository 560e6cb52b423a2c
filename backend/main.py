"""
FastAPI Backend for MolGenoBot - molecular genetics tutor

Provides REST API endpoints with:
- Chat with topic catalog answers (optional LLM completions with fallback)
- Per-user knowledge level tracking and bounded conversation memory
- Session start / lookup / reset
- Optional Supabase persistence
"""

import os
import sys
import time
import signal
import logging
from typing import Optional, List, Dict, Any

from fastapi import FastAPI, Depends, Body, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

# Add the molgeno_tutor package to Python path
backend_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.dirname(backend_dir)
package_src = os.path.join(project_root, 'molgeno_tutor', 'src')
if os.path.exists(package_src) and package_src not in sys.path:
    sys.path.insert(0, package_src)

from molgeno_tutor.config import get_settings
from molgeno_tutor.errors import InvalidInputError, InternalFaultError
from molgeno_tutor.genetics_tutor import GeneticsTutor, FAULT_FALLBACK_TEXT
from molgeno_tutor.memory_store import InMemoryMemoryStore, SupabaseMemoryStore

from lib.logger import setup_logging, get_logger
from lib.supabase_client import get_supabase_client

settings = get_settings()
setup_logging(level=getattr(logging, settings.log_level, logging.INFO), use_colors=True)

logger = get_logger("backend.main")

API_VERSION = "1.0.0"

# Singleton tutor so the in-memory store survives across requests
_tutor_instance: Optional[GeneticsTutor] = None


def get_tutor_instance() -> GeneticsTutor:
    """Get or create singleton GeneticsTutor instance."""
    global _tutor_instance
    if _tutor_instance is None:
        supabase = get_supabase_client()
        if supabase is not None:
            store = SupabaseMemoryStore(supabase, history_cap=settings.history_cap)
            logger.info("Using Supabase memory store")
        else:
            store = InMemoryMemoryStore(history_cap=settings.history_cap)
            logger.info("Using in-memory memory store")
        _tutor_instance = GeneticsTutor.from_settings(settings, store)
    return _tutor_instance


app = FastAPI(
    title="MolGenoBot Tutor API",
    description="Molecular genetics tutoring assistant",
    version=API_VERSION
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials="*" not in settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ==================== Pydantic Models ====================

class ConversationTurnPayload(BaseModel):
    role: str = Field(..., description="'user' or 'assistant'")
    content: str
    timestamp: Optional[str] = None


class UserSessionPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = None
    knowledge_level: float = Field(3.0, alias="knowledgeLevel")
    conversation_history: List[ConversationTurnPayload] = Field(default_factory=list, alias="conversationHistory")
    interests: List[str] = Field(default_factory=list)
    last_topics: List[str] = Field(default_factory=list, alias="lastTopics")

    def to_session_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Any: type checks happen in the tutor so they surface as 400, not 422
    message: Any = None
    user_session: Optional[UserSessionPayload] = Field(None, alias="userSession")


# ==================== Error Handlers ====================

@app.exception_handler(InvalidInputError)
async def invalid_input_handler(request: Request, exc: InvalidInputError):
    logger.warning(f"Rejected request to {request.url.path}: {exc.message}", data={"error_code": exc.error_code})
    return JSONResponse(status_code=400, content=exc.to_dict())


@app.exception_handler(InternalFaultError)
async def internal_fault_handler(request: Request, exc: InternalFaultError):
    logger.error(f"Internal fault on {request.url.path}", error=exc, data={"error_code": exc.error_code, **exc.details})
    return JSONResponse(status_code=500, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Malformed request to {request.url.path}", data={"errors": exc.errors()})
    return JSONResponse(status_code=400, content={"error": "Invalid request body"})


# ==================== API Endpoints ====================

@app.get("/")
async def root():
    """Service description."""
    return {
        "message": "MolGenoBot Genetics Tutor Backend",
        "version": API_VERSION,
        "endpoints": {
            "health": "/api/health",
            "chat": "/api/chat (POST)",
            "topics": "/api/topics",
            "session": "/api/session (POST), /api/session/{session_id}",
            "reset": "/api/session/{session_id}/reset (POST)",
            "concepts": "/api/session/{session_id}/concepts",
        }
    }


@app.get("/api/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "OK",
        "message": "MolGenoBot backend is running",
        "version": API_VERSION,
        "llm_enabled": settings.llm_enabled,
        "supabase_enabled": settings.supabase_enabled,
    }


@app.post("/api/chat")
async def chat(req: ChatRequest, tutor: GeneticsTutor = Depends(get_tutor_instance)):
    """
    Answer a chat message.

    Returns the answer, the updated session, two follow-up questions and the
    topics used. Missing or blank messages are rejected with 400; internal
    failures return 500 with a fallback answer.
    """
    start_time = time.time()
    tutor.validate_message(req.message)

    try:
        session = await tutor.resolve_session(
            req.user_session.to_session_dict() if req.user_session else None
        )
        logger.request("POST", "/api/chat", user_id=session.session_id, data={
            "message_length": len(req.message),
            "message_preview": req.message[:50] + "..." if len(req.message) > 50 else req.message,
            "knowledge_level": session.knowledge_level,
            "history_turns": len(session.conversation_history),
        })

        result = await tutor.handle_chat(req.message, session)
    except InvalidInputError:
        raise
    except Exception as e:
        logger.error("Error in chat", error=e)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "response": FAULT_FALLBACK_TEXT}
        )

    duration = time.time() - start_time
    if result.failed:
        logger.response(500, "/api/chat", duration=duration, data={"session_id": session.session_id})
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "response": result.answer}
        )

    logger.response(200, "/api/chat", duration=duration, data={
        "source": result.source,
        "topics": result.topics_used,
        "knowledge_level": result.updated_session.knowledge_level,
    })
    return result.to_dict()


@app.get("/api/topics")
async def get_topics(tutor: GeneticsTutor = Depends(get_tutor_instance)):
    """List catalog topics."""
    return [
        {
            "id": topic.topic_id,
            "title": topic.title,
            "keywords": list(topic.keywords),
            "difficulty": topic.difficulty,
        }
        for topic in tutor.catalog.topics()
    ]


@app.post("/api/session")
async def start_session(
    payload: Optional[UserSessionPayload] = Body(default=None),
    tutor: GeneticsTutor = Depends(get_tutor_instance)
):
    """Start a session (returns the stored one if the id already exists)."""
    session = await tutor.start_session(payload.to_session_dict() if payload else None)
    return session.to_dict()


@app.get("/api/session/{session_id}")
async def get_session(session_id: str, tutor: GeneticsTutor = Depends(get_tutor_instance)):
    """Get a stored session."""
    session = await tutor.get_session(session_id)
    if not session:
        return JSONResponse(status_code=404, content={"error": "Session not found"})
    return session.to_dict()


@app.post("/api/session/{session_id}/reset")
async def reset_session(session_id: str, tutor: GeneticsTutor = Depends(get_tutor_instance)):
    """Replace a session with a fresh record (clears history and concept scores)."""
    session = await tutor.reset_session(session_id)
    return session.to_dict()


@app.get("/api/session/{session_id}/concepts")
async def get_concepts(session_id: str, tutor: GeneticsTutor = Depends(get_tutor_instance)):
    """Concept confidences and memory context for a session."""
    if not await tutor.get_session(session_id):
        return JSONResponse(status_code=404, content={"error": "Session not found"})
    return await tutor.concept_report(session_id)


if __name__ == "__main__":
    import uvicorn

    def handle_exit(*args):
        """Handle graceful shutdown."""
        logger.section("SERVER SHUTDOWN", {"reason": "signal received"})
        sys.exit(0)

    signal.signal(signal.SIGINT, handle_exit)
    signal.signal(signal.SIGTERM, handle_exit)

    logger.section("MOLGENOBOT STARTING", {
        "port": settings.port,
        "health": f"http://localhost:{settings.port}/api/health",
        "chat": f"http://localhost:{settings.port}/api/chat",
    })
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
