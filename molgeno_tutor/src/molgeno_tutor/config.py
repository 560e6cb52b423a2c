"""
Tutor configuration loaded from environment variables (and .env files).
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()
load_dotenv('../.env')  # Also try parent directory


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got '{raw}'")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got '{raw}'")


@dataclass
class TutorSettings:
    """Application settings. Keep all credentials and tunables here."""
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    llm_timeout_seconds: float = 30.0
    llm_max_tokens: int = 500
    llm_temperature: float = 0.7
    history_cap: int = 20
    concept_reinforcement: float = 0.1
    topic_classifier: str = "lookup"  # "lookup" or "scoring"
    supabase_url: Optional[str] = None
    supabase_service_key: Optional[str] = None
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    port: int = 8000

    @property
    def llm_enabled(self) -> bool:
        return bool(self.openai_api_key)

    @property
    def supabase_enabled(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_key)

    @classmethod
    def from_env(cls) -> "TutorSettings":
        origins = os.getenv("CORS_ORIGINS", "*")
        classifier = os.getenv("TOPIC_CLASSIFIER", "lookup").strip().lower()
        if classifier not in ("lookup", "scoring"):
            raise ValueError(f"TOPIC_CLASSIFIER must be 'lookup' or 'scoring', got '{classifier}'")

        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
            llm_timeout_seconds=_env_float("LLM_TIMEOUT_SECONDS", 30.0),
            llm_max_tokens=_env_int("LLM_MAX_TOKENS", 500),
            llm_temperature=_env_float("LLM_TEMPERATURE", 0.7),
            history_cap=_env_int("HISTORY_CAP", 20),
            concept_reinforcement=_env_float("CONCEPT_REINFORCEMENT", 0.1),
            topic_classifier=classifier,
            supabase_url=os.getenv("SUPABASE_URL") or None,
            supabase_service_key=os.getenv("SUPABASE_SERVICE_KEY") or None,
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            port=_env_int("PORT", 8000),
        )


@lru_cache(maxsize=1)
def get_settings() -> TutorSettings:
    return TutorSettings.from_env()
