"""Per-user memory store on top of a namespaced key/value backend."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, Iterable, Mapping

from .errors import KeyRequiredError, LimitReachedError, NoUserError, SystemKeyError
from .models import Fact

if TYPE_CHECKING:
    from ..config import MemoryConfig
    from ..jobs import TaskQueue
    from .backend import KeyValueBackend

logger = logging.getLogger(__name__)

SUMMARY_KEY = "_profile_summary"
SYSTEM_KEY_PREFIX = "_"

SUMMARY_TASK = "generate_memory_summary"
CONSOLIDATION_TASK = "consolidate_memories"

SEARCH_LIMIT = 10


def namespace(user_id: Any) -> str:
    """Return the backend namespace holding a user's facts and summary."""
    return f"memory:{user_id}"


def is_system_key(key: str) -> bool:
    return key.startswith(SYSTEM_KEY_PREFIX)


def _has_user(user_id: Any) -> bool:
    return user_id is not None and str(user_id).strip() != ""


def _to_text(value: Any) -> str:
    """Render a stored value as text; structured values become JSON."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


class MemoryStore:
    """Owns per-user facts, capacity limits and the profile summary.

    Writes and deletes schedule a summary regeneration; a write that brings
    the fact count to the ceiling also schedules a consolidation. Keys
    starting with ``_`` are reserved for the store's own entries and are
    never listed or accepted from callers.
    """

    def __init__(
        self,
        backend: KeyValueBackend,
        config: MemoryConfig,
        jobs: TaskQueue | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            backend: Keyed storage for all namespaces.
            config: Limits and truncation settings.
            jobs: Queue for background summary/consolidation tasks. No
                tasks are scheduled when None.
        """
        self.backend = backend
        self.config = config
        self.jobs = jobs

    def set(self, user_id: Any, key: str, value: Any) -> Fact:
        """Create or update a fact.

        Args:
            user_id: Owner of the fact.
            key: Fact name; surrounding whitespace is removed.
            value: Fact content; trimmed and truncated to max_value_length.

        Returns:
            The stored fact, with the possibly truncated value.

        Raises:
            NoUserError: user_id is missing.
            KeyRequiredError: key is empty after trimming.
            SystemKeyError: key starts with the reserved prefix.
            LimitReachedError: key is new and the user is at capacity.
        """
        if not _has_user(user_id):
            raise NoUserError()
        key = _to_text(key).strip()
        if not key:
            raise KeyRequiredError()
        if is_system_key(key):
            raise SystemKeyError()

        ns = namespace(user_id)
        max_memories = self.config.max_memories
        if self.backend.get(ns, key) is None and self.count(user_id) >= max_memories:
            raise LimitReachedError(max_memories)

        fact = Fact(key=key, value=self._clip(value))
        self.backend.set(ns, fact.key, fact.value)

        self._schedule(SUMMARY_TASK, user_id)
        if self.count(user_id) >= max_memories:
            self._schedule(CONSOLIDATION_TASK, user_id)

        return fact

    def get(self, user_id: Any, key: str) -> str | None:
        """Return the value stored under key, or None."""
        if not _has_user(user_id):
            return None
        return self.backend.get(namespace(user_id), _to_text(key))

    def list(self, user_id: Any) -> list[Fact]:
        """Return the user's facts in insertion order, excluding system keys."""
        if not _has_user(user_id):
            return []
        return [
            Fact(key=k, value=v)
            for k, v in self.backend.items(namespace(user_id), SYSTEM_KEY_PREFIX)
        ]

    def delete(self, user_id: Any, key: str) -> None:
        """Delete a fact. Deleting a missing key is not an error.

        Raises:
            NoUserError: user_id is missing.
            SystemKeyError: key starts with the reserved prefix.
        """
        if not _has_user(user_id):
            raise NoUserError()
        key = _to_text(key)
        if is_system_key(key):
            raise SystemKeyError()

        self.backend.remove(namespace(user_id), key)
        self._schedule(SUMMARY_TASK, user_id)

    def count(self, user_id: Any) -> int:
        """Number of non-system facts for the user."""
        if not _has_user(user_id):
            return 0
        return self.backend.count(namespace(user_id), SYSTEM_KEY_PREFIX)

    def search(self, user_id: Any, query: str, limit: int = SEARCH_LIMIT) -> list[Fact]:
        """Find facts whose "key value" text contains any query term.

        Matching is case-insensitive; terms are split on whitespace. Results
        keep list order and are capped at limit.
        """
        if not _has_user(user_id) or not query or not query.strip():
            return []

        terms = query.lower().split()
        matches = []
        for fact in self.list(user_id):
            searchable = f"{fact.key} {fact.value}".lower()
            if any(term in searchable for term in terms):
                matches.append(fact)
                if len(matches) >= limit:
                    break
        return matches

    def get_summary(self, user_id: Any) -> str | None:
        if not _has_user(user_id):
            return None
        return self.backend.get(namespace(user_id), SUMMARY_KEY)

    def set_summary(self, user_id: Any, summary: str) -> None:
        self.backend.set(namespace(user_id), SUMMARY_KEY, summary)

    def clear_summary(self, user_id: Any) -> None:
        self.backend.remove(namespace(user_id), SUMMARY_KEY)

    def replace_all(self, user_id: Any, facts: Iterable[Fact | Mapping[str, Any]]) -> int:
        """Replace every non-system fact with the given set.

        Entries with an empty or reserved key are skipped; values are
        truncated as in ``set``. No capacity check and no task scheduling
        happen here.

        The delete and the writes are separate backend calls. If a write
        fails, the namespace is left with the old facts removed and only the
        entries written before the failure present; the error propagates.
        System entries are never touched.

        Returns:
            Number of facts written.
        """
        ns = namespace(user_id)
        removed = self.backend.clear(ns, SYSTEM_KEY_PREFIX)

        written = 0
        for entry in facts:
            if isinstance(entry, Fact):
                key, value = entry.key, entry.value
            else:
                key, value = entry.get("key"), entry.get("value")
            key = _to_text(key).strip()
            if not key or is_system_key(key):
                continue
            self.backend.set(ns, key, self._clip(value))
            written += 1

        logger.debug("Replaced %d facts with %d for user %s", removed, written, user_id)
        return written

    def _clip(self, value: Any) -> str:
        return _to_text(value).strip()[: self.config.max_value_length]

    def _schedule(self, task_name: str, user_id: Any) -> None:
        if self.jobs is not None:
            self.jobs.enqueue(task_name, {"user_id": user_id})
