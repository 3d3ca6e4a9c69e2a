"""Profile summary as a prompt enrichment block."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..config import MemoryConfig
    from .store import MemoryStore

MEMORY_BLOCK_TEMPLATE = """## Persistent Memory: What you know about this user
The following is a summary of information you have learned about this user
from previous conversations. Use this context naturally without explicitly
referencing that you are reading from a memory system. If the user asks
what you remember, you may acknowledge your memory capability.

{summary}"""


class MemoryContextProvider:
    """Enrichment provider that contributes the user's profile summary."""

    def __init__(self, store: MemoryStore, config: MemoryConfig) -> None:
        self.store = store
        self.config = config

    def __call__(self, user_id: Any) -> str:
        """Return the memory block for user_id, or an empty string."""
        if not self.config.enabled or user_id is None:
            return ""

        summary = self.store.get_summary(user_id)
        if not summary or not summary.strip():
            return ""

        return MEMORY_BLOCK_TEMPLATE.format(summary=summary.strip())
