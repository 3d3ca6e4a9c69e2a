"""Completion service access for memory jobs.

Jobs depend only on the CompletionService protocol; the configured
``llm_model_id`` is turned into a concrete service by a ModelResolver.
"""

import os
from typing import Any, Protocol, Sequence

from groq import AsyncGroq


class CompletionService(Protocol):
    """Protocol for text completion.

    Implementations own their timeout and retry policy.
    """

    async def complete(self, prompt: str, system: str | None = None) -> str | Sequence[str]:
        """Complete a prompt and return the text response (possibly chunked)."""
        ...


class ModelResolver(Protocol):
    """Maps a configured model id to a completion service."""

    def resolve(self, model_id: str | None) -> CompletionService | None:
        """Return the service for model_id, or None if it cannot be resolved."""
        ...


class GroqCompletionService:
    """Chat-completion backed CompletionService.

    Sends the system prompt (if any) and the user prompt as a two-message
    chat and returns the first choice's text.
    """

    def __init__(
        self,
        client: AsyncGroq,
        model: str = "llama-3.1-70b-versatile",
        temperature: float | None = None,
    ) -> None:
        self._client = client
        self._model = model
        self._temperature = temperature

    async def complete(self, prompt: str, system: str | None = None) -> str:
        """Return the completion text; empty when the model returned none."""
        messages = [{"role": "system", "content": system}] if system else []
        messages.append({"role": "user", "content": prompt})

        kwargs: dict[str, Any] = {"model": self._model, "messages": messages}
        if self._temperature is not None:
            kwargs["temperature"] = self._temperature

        response = await self._client.chat.completions.create(**kwargs)

        return response.choices[0].message.content or ""

    @property
    def model(self) -> str:
        return self._model


class GroqModelResolver:
    """Resolves any non-blank model id to a Groq-backed service.

    The AsyncGroq client is created lazily from GROQ_API_KEY unless one is
    passed in. With ``allowed_models`` set, other ids resolve to None.
    """

    def __init__(
        self,
        client: AsyncGroq | None = None,
        allowed_models: set[str] | None = None,
        temperature: float | None = 0.2,
    ) -> None:
        self._client = client
        self.allowed_models = allowed_models
        self.temperature = temperature

    @property
    def client(self) -> AsyncGroq:
        if self._client is None:
            self._client = AsyncGroq(api_key=os.getenv("GROQ_API_KEY"))
        return self._client

    def resolve(self, model_id: str | None) -> GroqCompletionService | None:
        if model_id is None or not str(model_id).strip():
            return None
        model_id = str(model_id).strip()
        if self.allowed_models is not None and model_id not in self.allowed_models:
            return None
        return GroqCompletionService(self.client, model=model_id, temperature=self.temperature)
