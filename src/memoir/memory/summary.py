"""Profile summary regeneration job."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from .prompts import (
    SUMMARY_SYSTEM_PROMPT,
    SUMMARY_USER_PROMPT,
    format_facts,
    normalize_completion,
)

if TYPE_CHECKING:
    from ..config import MemoryConfig
    from ..llm import ModelResolver
    from ..logging import JSONLLogger
    from .store import MemoryStore
    from .users import UserDirectory

logger = logging.getLogger(__name__)


class SummaryGenerator:
    """Rewrites a user's profile summary from their current facts.

    Runs as a background job: unmet preconditions and completion failures
    end the run quietly, and the stored summary is only ever replaced by a
    complete new one.
    """

    def __init__(
        self,
        store: MemoryStore,
        config: MemoryConfig,
        models: ModelResolver,
        users: UserDirectory,
        event_log: JSONLLogger | None = None,
    ) -> None:
        self.store = store
        self.config = config
        self.models = models
        self.users = users
        self.event_log = event_log

    async def run(self, user_id: Any = None, **_: Any) -> str | None:
        """Regenerate the summary for user_id.

        Returns:
            The stored summary, or None when nothing was stored.
        """
        if not self.config.enabled:
            return None
        if user_id is None or not str(user_id).strip():
            return None

        facts = self.store.list(user_id)
        if not facts:
            self.store.clear_summary(user_id)
            if self.event_log:
                self.event_log.log_summary_cleared(user_id)
            return None

        llm = self.models.resolve(self.config.llm_model_id)
        if llm is None:
            logger.warning(
                "No LLM configured for memory summarization. "
                "Set llm_model_id in the memory config."
            )
            return None

        user = self.users.get(user_id)
        if user is None:
            return None

        prompt = SUMMARY_USER_PROMPT.format(
            username=user.username,
            memory_text=format_facts(facts),
        )

        try:
            summary = normalize_completion(
                await llm.complete(prompt, system=SUMMARY_SYSTEM_PROMPT)
            )
            if len(summary) <= self.config.min_summary_length:
                logger.warning(
                    "Discarding implausible summary (%d chars) for user %s",
                    len(summary),
                    user_id,
                )
                return None

            self.store.set_summary(user_id, summary)
        except Exception as e:
            logger.error("Summary generation failed for user %s: %s", user_id, e)
            return None

        if self.event_log:
            self.event_log.log_summary_updated(user_id, chars=len(summary))
        return summary
