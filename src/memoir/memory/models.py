"""Data models for the memory system."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Fact:
    """A fact stored in memory about the user.

    Attributes:
        key: Case-sensitive name of the fact (e.g., 'preferred_language').
        value: The fact content, already trimmed and truncated.
    """

    key: str
    value: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to the wire representation."""
        return {"key": self.key, "value": self.value}


@dataclass(frozen=True)
class UserProfile:
    """A user the memory belongs to.

    Attributes:
        id: Stable identifier used for namespacing.
        username: Display name used in prompts.
    """

    id: str
    username: str
