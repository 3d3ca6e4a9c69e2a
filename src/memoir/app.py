"""Wiring of backend, store, scheduler and memory jobs."""

from __future__ import annotations

from .assistant import PromptBuilder
from .config import MemoryConfig
from .jobs import JobScheduler
from .llm import GroqModelResolver, ModelResolver
from .logging import JSONLLogger
from .memory import (
    CONSOLIDATION_TASK,
    SUMMARY_TASK,
    ConsolidationEngine,
    KeyValueBackend,
    MemoryContextProvider,
    MemoryStore,
    PassthroughUserDirectory,
    SQLiteBackend,
    SummaryGenerator,
    UserDirectory,
)


class MemoryApp:
    """Everything needed to serve memory for one process."""

    def __init__(
        self,
        config: MemoryConfig,
        backend: KeyValueBackend | None = None,
        models: ModelResolver | None = None,
        users: UserDirectory | None = None,
        event_log: JSONLLogger | None = None,
    ) -> None:
        """Build the object graph.

        Args:
            config: Memory settings.
            backend: Keyed storage. A SQLiteBackend at config.db_path if None.
            models: Completion service resolver. Groq if None.
            users: User lookup. Every non-blank id is accepted if None.
            event_log: JSONL job log. Created under config.log_dir if None.
        """
        self.config = config

        if backend is None:
            assert config.db_path is not None
            sqlite_backend = SQLiteBackend(config.db_path)
            sqlite_backend.init_db()
            backend = sqlite_backend
        self.backend = backend

        self.event_log = event_log or JSONLLogger(log_dir=config.log_dir)
        self.models = models or GroqModelResolver()
        self.users = users or PassthroughUserDirectory()

        self.scheduler = JobScheduler(event_log=self.event_log)
        self.store = MemoryStore(backend, config, jobs=self.scheduler)
        self.summaries = SummaryGenerator(
            self.store, config, self.models, self.users, event_log=self.event_log
        )
        self.consolidation = ConsolidationEngine(
            self.store,
            config,
            self.models,
            self.users,
            jobs=self.scheduler,
            event_log=self.event_log,
        )
        self.scheduler.register(SUMMARY_TASK, self.summaries.run)
        self.scheduler.register(CONSOLIDATION_TASK, self.consolidation.run)

    def prompt_builder(self, base_instructions: str | None = None) -> PromptBuilder:
        """Return a PromptBuilder with the memory summary registered."""
        builder = PromptBuilder(base_instructions) if base_instructions else PromptBuilder()
        builder.register(MemoryContextProvider(self.store, self.config))
        return builder

    def close(self) -> None:
        """Release backend resources."""
        if isinstance(self.backend, SQLiteBackend):
            self.backend.close()
