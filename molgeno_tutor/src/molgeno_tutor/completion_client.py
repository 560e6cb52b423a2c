"""
External LLM completion client.

Wraps the OpenAI chat completions API behind a small interface. Any failure
is raised as CollaboratorUnavailableError so the tutor can fall back to the
topic catalog.
"""

import logging
from typing import Optional, Sequence

from openai import AsyncOpenAI

from molgeno_tutor.errors import CollaboratorUnavailableError

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are MolGenoBot, an expert molecular genetics assistant. Provide accurate, educational "
    "responses about DNA, RNA, proteins, transcription, translation, and related topics. "
    "Keep responses clear and suitable for students and researchers."
)


def build_system_prompt(
    knowledge_level: float,
    recent_messages: Sequence[str] = (),
    strong_concepts: Sequence[str] = ()
) -> str:
    """
    Build the system prompt for a learner.

    Args:
        knowledge_level: Learner level on the 1-5 scale
        recent_messages: Recent user messages (most recent last)
        strong_concepts: Concepts the learner has reinforced
    """
    if knowledge_level < 2.5:
        guidance = "The student is a beginner: use plain language, short answers, and everyday analogies."
    elif knowledge_level > 4:
        guidance = "The student is advanced: include mechanisms, regulation, and experimental evidence."
    else:
        guidance = "The student has intermediate knowledge: explain key steps and terminology."

    prompt = f"{SYSTEM_PROMPT}\n\nKnowledge level: {knowledge_level:.1f}/5. {guidance}"
    if strong_concepts:
        prompt += f"\nConcepts the student already knows well: {', '.join(strong_concepts)}."
    if recent_messages:
        recent = "\n".join(f"- {m[:200]}" for m in recent_messages)
        prompt += f"\nRecent questions from the student:\n{recent}"
    return prompt


class CompletionClient:
    """Async chat completion client for tutor answers."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        max_tokens: int = 500,
        temperature: float = 0.7,
        timeout: float = 30.0,
        llm_client: Optional[AsyncOpenAI] = None
    ):
        if not api_key and llm_client is None:
            raise ValueError("OPENAI_API_KEY is required for the completion client")
        self.llm_client = llm_client or AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature

    async def complete(self, system_prompt: str, user_message: str) -> str:
        """
        Get a completion for a user message.

        Returns:
            Completion text

        Raises:
            CollaboratorUnavailableError: If the API call fails or returns no text
        """
        try:
            completion = await self.llm_client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_message}
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens
            )
        except Exception as e:
            raise CollaboratorUnavailableError(
                "Completion service unavailable", details={"reason": str(e)}
            ) from e

        content = completion.choices[0].message.content if completion.choices else None
        if not content or not content.strip():
            raise CollaboratorUnavailableError("Completion service returned an empty answer")

        logger.debug(f"🤖 [CompletionClient] Received {len(content)} chars from {self.model}")
        return content.strip()
