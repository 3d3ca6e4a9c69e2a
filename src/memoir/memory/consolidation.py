"""Consolidation job: compress an over-capacity fact set with the LLM.

Flow for one run:

1. Re-check preconditions (feature enabled, user present, still at
   capacity, model resolvable, user known). Any miss is a quiet no-op.
2. Ask the model for a compacted JSON array of {key, value} objects.
3. Strip a markdown fence, parse, keep structurally valid entries with
   one entry per key (capped at max_memories).
4. If fewer than ``min_consolidated_entries`` survive, keep the old facts.
   The floor is a blunt guard against a bad completion wiping a user's
   memory; it does not prove the result is correct.
5. Otherwise replace the fact set and queue a summary refresh. A backend
   failure while replacing ends the run as FAILED.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from .prompts import (
    CONSOLIDATION_SYSTEM_PROMPT,
    CONSOLIDATION_USER_PROMPT,
    ConsolidationParseError,
    format_facts,
    normalize_completion,
    parse_fact_array,
)
from .store import SUMMARY_TASK

if TYPE_CHECKING:
    from ..config import MemoryConfig
    from ..jobs import TaskQueue
    from ..llm import ModelResolver
    from ..logging import JSONLLogger
    from .store import MemoryStore
    from .users import UserDirectory

logger = logging.getLogger(__name__)


class ConsolidationOutcome(Enum):
    """How a consolidation run ended."""

    APPLIED = "applied"
    DISABLED = "disabled"
    NO_USER = "no_user"
    BELOW_LIMIT = "below_limit"
    NO_MODEL = "no_model"
    UNKNOWN_USER = "unknown_user"
    PARSE_ERROR = "parse_error"
    TOO_FEW = "too_few"
    FAILED = "failed"


@dataclass
class ConsolidationResult:
    """Result from running a consolidation."""

    outcome: ConsolidationOutcome
    before: int = 0
    after: int = 0


class ConsolidationEngine:
    """Replaces a user's facts with a model-compacted set."""

    def __init__(
        self,
        store: MemoryStore,
        config: MemoryConfig,
        models: ModelResolver,
        users: UserDirectory,
        jobs: TaskQueue | None = None,
        event_log: JSONLLogger | None = None,
    ) -> None:
        self.store = store
        self.config = config
        self.models = models
        self.users = users
        self.jobs = jobs
        self.event_log = event_log

    async def run(self, user_id: Any = None, **_: Any) -> ConsolidationResult:
        """Consolidate the facts of user_id if it is still at capacity."""
        if not self.config.enabled:
            return ConsolidationResult(ConsolidationOutcome.DISABLED)
        if user_id is None or not str(user_id).strip():
            return ConsolidationResult(ConsolidationOutcome.NO_USER)

        facts = self.store.list(user_id)
        before = len(facts)
        if before < self.config.max_memories:
            return ConsolidationResult(ConsolidationOutcome.BELOW_LIMIT, before=before)

        llm = self.models.resolve(self.config.llm_model_id)
        if llm is None:
            logger.warning(
                "No LLM configured for memory consolidation. "
                "Set llm_model_id in the memory config."
            )
            return ConsolidationResult(ConsolidationOutcome.NO_MODEL, before=before)

        user = self.users.get(user_id)
        if user is None:
            return ConsolidationResult(ConsolidationOutcome.UNKNOWN_USER, before=before)

        target = self.config.consolidation_target
        system = CONSOLIDATION_SYSTEM_PROMPT.format(target=target)
        prompt = CONSOLIDATION_USER_PROMPT.format(
            username=user.username,
            count=before,
            target=target,
            memory_text=format_facts(facts),
        )

        try:
            text = normalize_completion(await llm.complete(prompt, system=system))
            entries = parse_fact_array(text, limit=self.config.max_memories)
        except ConsolidationParseError as e:
            logger.error("Failed to parse consolidation JSON for user %s: %s", user_id, e)
            return self._skipped(user_id, ConsolidationOutcome.PARSE_ERROR, before)
        except Exception as e:
            logger.error("Consolidation failed for user %s: %s", user_id, e)
            return self._skipped(user_id, ConsolidationOutcome.FAILED, before)

        if len(entries) < self.config.min_consolidated_entries:
            logger.warning(
                "Consolidation produced too few results (%d) for user %s. Skipping.",
                len(entries),
                user_id,
            )
            return self._skipped(user_id, ConsolidationOutcome.TOO_FEW, before, len(entries))

        try:
            self.store.replace_all(user_id, entries)
            if self.jobs is not None:
                self.jobs.enqueue(SUMMARY_TASK, {"user_id": user_id})
        except Exception as e:
            logger.error("Failed to replace memories for user %s: %s", user_id, e)
            return self._skipped(user_id, ConsolidationOutcome.FAILED, before)

        after = self.store.count(user_id)

        logger.info("Consolidated %d -> %d memories for user %s", before, after, user_id)
        if self.event_log:
            self.event_log.log_consolidation(user_id, before=before, after=after)
        return ConsolidationResult(ConsolidationOutcome.APPLIED, before=before, after=after)

    def _skipped(
        self,
        user_id: Any,
        outcome: ConsolidationOutcome,
        before: int,
        after: int = 0,
    ) -> ConsolidationResult:
        if self.event_log:
            self.event_log.log_consolidation_skipped(
                user_id, reason=outcome.value, candidates=after
            )
        return ConsolidationResult(outcome, before=before, after=after)
