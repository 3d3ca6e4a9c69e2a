"""Prompt builder for the assistant."""

from typing import Any, Callable

ContextEnricher = Callable[[Any], str]

DEFAULT_INSTRUCTIONS = "You are a helpful assistant."


class PromptBuilder:
    """Builds system instructions from a base text and enrichment hooks.

    Each registered enricher receives the current user id and returns a
    block of text (empty when it has nothing to add). Blocks are appended
    after the base and custom instructions in registration order.
    """

    def __init__(self, base_instructions: str = DEFAULT_INSTRUCTIONS) -> None:
        self.base_instructions = base_instructions
        self._enrichers: list[ContextEnricher] = []

    def register(self, enricher: ContextEnricher) -> None:
        """Add an enrichment provider."""
        self._enrichers.append(enricher)

    def build(self, user_id: Any = None, custom_instructions: str = "") -> str:
        """Build the system prompt for a user.

        Args:
            user_id: Current user, or None for anonymous prompts.
            custom_instructions: Optional persona-specific instructions.

        Returns:
            Complete system prompt string.
        """
        prompt = self.base_instructions

        if custom_instructions.strip():
            prompt += "\n\n" + custom_instructions.strip()

        for enricher in self._enrichers:
            block = enricher(user_id)
            if block and block.strip():
                prompt += "\n\n" + block.strip()

        return prompt
