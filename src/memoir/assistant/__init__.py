"""Assistant prompt construction."""

from .prompt import ContextEnricher, PromptBuilder

__all__ = ["ContextEnricher", "PromptBuilder"]
