"""Background job scheduling with per-user single-flight execution.

Jobs are keyed by (task name, user id). At most one handler runs per key;
triggers arriving while a key is running or queued collapse into a single
follow-up run with the latest payload. That follow-up starts only after
the current run finishes, so it observes the newest store state.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Protocol

from .logging import JSONLLogger

logger = logging.getLogger(__name__)

Handler = Callable[..., Awaitable[Any]]
JobKey = tuple[str, str]


class TaskQueue(Protocol):
    """What the store needs from a scheduler."""

    def enqueue(self, task_name: str, payload: dict[str, Any]) -> None:
        """Schedule task_name to run with payload."""
        ...


class JobScheduler:
    """Asyncio scheduler with debounce/serialize semantics per user."""

    def __init__(self, event_log: JSONLLogger | None = None) -> None:
        self._handlers: dict[str, Handler] = {}
        self._pending: dict[JobKey, dict[str, Any]] = {}
        self._tasks: dict[JobKey, asyncio.Task[None]] = {}
        self.event_log = event_log

    def register(self, task_name: str, handler: Handler) -> None:
        """Register a coroutine handler; payload items become keyword args."""
        if task_name in self._handlers:
            raise ValueError(f"Task '{task_name}' already registered")
        self._handlers[task_name] = handler

    def enqueue(self, task_name: str, payload: dict[str, Any]) -> None:
        """Queue a run, coalescing with any run already queued for the key.

        Starts a worker right away when called inside a running event loop;
        otherwise the job waits for ``drain()``.
        """
        if task_name not in self._handlers:
            raise KeyError(f"Unknown task: {task_name}")

        key = (task_name, str(payload.get("user_id")))
        if key in self._pending:
            logger.debug("Coalescing %s for user %s", *key)
        self._pending[key] = dict(payload)

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return
        self._start_worker(key)

    def pending(self) -> list[JobKey]:
        """Keys with a queued run that has not started yet."""
        return list(self._pending)

    def is_running(self, task_name: str, user_id: Any) -> bool:
        task = self._tasks.get((task_name, str(user_id)))
        return task is not None and not task.done()

    async def drain(self) -> None:
        """Run until no job is queued or running."""
        while self._pending or self._tasks:
            for key in list(self._pending):
                self._start_worker(key)
            running = list(self._tasks.values())
            if running:
                await asyncio.gather(*running, return_exceptions=True)

    def _start_worker(self, key: JobKey) -> None:
        running = self._tasks.get(key)
        if running is not None and not running.done():
            return
        self._tasks[key] = asyncio.create_task(self._worker(key))

    async def _worker(self, key: JobKey) -> None:
        """Run queued payloads for key one after another until none is left.

        ``_start_worker`` keeps at most one live worker per key, which is
        what serializes runs.
        """
        try:
            while key in self._pending:
                payload = self._pending.pop(key)
                await self._run_one(key, payload)
        finally:
            self._tasks.pop(key, None)

    async def _run_one(self, key: JobKey, payload: dict[str, Any]) -> None:
        task_name, user_id = key
        handler = self._handlers[task_name]
        self._log("job_start", task=task_name, user_id=user_id)
        start_time = time.time()
        try:
            await handler(**payload)
        except Exception as e:
            logger.exception("Job %s failed for user %s", task_name, user_id)
            self._log("job_error", task=task_name, user_id=user_id, error=str(e))
            return
        duration_ms = (time.time() - start_time) * 1000
        self._log("job_finish", task=task_name, user_id=user_id, duration_ms=duration_ms)

    def _log(self, event: str, **fields: Any) -> None:
        if self.event_log is not None:
            self.event_log.log(event, **fields)
