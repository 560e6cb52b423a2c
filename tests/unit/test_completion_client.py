"""
Unit Tests for Completion Client and Settings
"""

import pytest
import sys
import os
from types import SimpleNamespace

# Add project root to path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
sys.path.insert(0, os.path.join(project_root, "molgeno_tutor", "src"))

from molgeno_tutor.completion_client import CompletionClient, build_system_prompt, SYSTEM_PROMPT
from molgeno_tutor.config import TutorSettings
from molgeno_tutor.errors import CollaboratorUnavailableError


class FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def fake_llm(completions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


class TestCompletionClient:
    """Test suite for CompletionClient."""

    @pytest.mark.asyncio
    async def test_complete(self):
        completions = FakeCompletions(content="  Ribosomes read codons.  ")
        client = CompletionClient(api_key=None, llm_client=fake_llm(completions))

        answer = await client.complete("system", "What do ribosomes do?")

        assert answer == "Ribosomes read codons."
        assert completions.kwargs["max_tokens"] == 500
        assert completions.kwargs["temperature"] == 0.7
        assert completions.kwargs["messages"][1] == {"role": "user", "content": "What do ribosomes do?"}

    @pytest.mark.asyncio
    async def test_api_error_becomes_unavailable(self):
        client = CompletionClient(api_key=None, llm_client=fake_llm(FakeCompletions(error=RuntimeError("429"))))

        with pytest.raises(CollaboratorUnavailableError) as exc_info:
            await client.complete("system", "hi")
        assert exc_info.value.details["reason"] == "429"

    @pytest.mark.asyncio
    async def test_empty_answer_becomes_unavailable(self):
        client = CompletionClient(api_key=None, llm_client=fake_llm(FakeCompletions(content="   ")))

        with pytest.raises(CollaboratorUnavailableError):
            await client.complete("system", "hi")

    def test_requires_api_key(self):
        with pytest.raises(ValueError):
            CompletionClient(api_key=None)

    def test_system_prompt_by_level(self):
        assert build_system_prompt(1.5).startswith(SYSTEM_PROMPT)
        assert "beginner" in build_system_prompt(1.5)
        assert "advanced" in build_system_prompt(4.5)
        assert "intermediate" in build_system_prompt(3.0)

    def test_system_prompt_memory(self):
        prompt = build_system_prompt(3.0, ["What is a codon?"], ["genetic_code"])
        assert "What is a codon?" in prompt
        assert "genetic_code" in prompt


class TestTutorSettings:
    """Test suite for environment-driven settings."""

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        monkeypatch.setenv("HISTORY_CAP", "30")
        monkeypatch.setenv("TOPIC_CLASSIFIER", "Scoring")
        monkeypatch.setenv("CORS_ORIGINS", "http://localhost:3000, http://example.org")
        monkeypatch.delenv("SUPABASE_URL", raising=False)

        settings = TutorSettings.from_env()

        assert settings.llm_enabled
        assert not settings.supabase_enabled
        assert settings.history_cap == 30
        assert settings.topic_classifier == "scoring"
        assert settings.cors_origins == ["http://localhost:3000", "http://example.org"]

    def test_invalid_values(self, monkeypatch):
        monkeypatch.setenv("LLM_TIMEOUT_SECONDS", "soon")
        with pytest.raises(ValueError):
            TutorSettings.from_env()

        monkeypatch.delenv("LLM_TIMEOUT_SECONDS")
        monkeypatch.setenv("TOPIC_CLASSIFIER", "neural")
        with pytest.raises(ValueError):
            TutorSettings.from_env()

    def test_defaults(self):
        settings = TutorSettings()
        assert settings.llm_timeout_seconds == 30.0
        assert settings.history_cap == 20
        assert not settings.llm_enabled
