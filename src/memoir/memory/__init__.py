"""Per-user persistent memory: facts, profile summary and consolidation."""

from .backend import InMemoryBackend, KeyValueBackend, SQLiteBackend
from .consolidation import ConsolidationEngine, ConsolidationOutcome, ConsolidationResult
from .context import MemoryContextProvider
from .errors import (
    KeyRequiredError,
    LimitReachedError,
    MemoryStoreError,
    NoUserError,
    SystemKeyError,
)
from .models import Fact, UserProfile
from .store import (
    CONSOLIDATION_TASK,
    SUMMARY_KEY,
    SUMMARY_TASK,
    SYSTEM_KEY_PREFIX,
    MemoryStore,
    namespace,
)
from .summary import SummaryGenerator
from .tools import MemoryToolkit, ToolResult
from .users import InMemoryUserDirectory, PassthroughUserDirectory, UserDirectory

__all__ = [
    "CONSOLIDATION_TASK",
    "ConsolidationEngine",
    "ConsolidationOutcome",
    "ConsolidationResult",
    "Fact",
    "InMemoryBackend",
    "InMemoryUserDirectory",
    "KeyRequiredError",
    "KeyValueBackend",
    "LimitReachedError",
    "MemoryContextProvider",
    "MemoryStore",
    "MemoryStoreError",
    "MemoryToolkit",
    "NoUserError",
    "PassthroughUserDirectory",
    "SQLiteBackend",
    "SUMMARY_KEY",
    "SUMMARY_TASK",
    "SYSTEM_KEY_PREFIX",
    "SummaryGenerator",
    "SystemKeyError",
    "ToolResult",
    "UserDirectory",
    "UserProfile",
    "namespace",
]
