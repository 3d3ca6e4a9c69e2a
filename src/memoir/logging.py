"""JSONL event log for background memory jobs.

Each line is one JSON object: ``job_start``/``job_finish``/``job_error``
from the scheduler, plus ``summary_*`` and ``consolidation_*`` outcomes
from the jobs themselves.
"""

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator

DEFAULT_LOG_DIR = Path.home() / ".memoir" / "logs"


@dataclass
class LogEntry:
    """A single job event."""

    timestamp: str
    event: str
    user_id: str | None = None
    task: str | None = None
    duration_ms: float | None = None
    reason: str | None = None
    error: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict, excluding None values."""
        return {k: v for k, v in asdict(self).items() if v is not None and v != {}}


class JSONLLogger:
    """Appends job events to ``<log_dir>/jobs.jsonl``.

    The file is rotated to ``jobs_<utc timestamp>.jsonl`` once it reaches
    ``max_size_mb``; only the newest ``backup_count`` rotated files are kept.
    """

    def __init__(
        self,
        log_dir: str | Path | None = None,
        filename: str = "jobs.jsonl",
        max_size_mb: float = 10.0,
        backup_count: int = 5,
    ) -> None:
        self.log_dir = Path(log_dir) if log_dir is not None else DEFAULT_LOG_DIR
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.filename = filename
        self.max_size_bytes = int(max_size_mb * 1024 * 1024)
        self.backup_count = backup_count

    @property
    def log_path(self) -> Path:
        return self.log_dir / self.filename

    def rotated_files(self) -> list[Path]:
        """Rotated logs, oldest first."""
        stem = Path(self.filename).stem
        return sorted(self.log_dir.glob(f"{stem}_*.jsonl"))

    def _rotate(self) -> None:
        if not self.log_path.exists() or self.log_path.stat().st_size < self.max_size_bytes:
            return

        stamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S_%f")
        self.log_path.rename(self.log_dir / f"{self.log_path.stem}_{stamp}.jsonl")

        backups = self.rotated_files()
        for old in backups[: max(len(backups) - self.backup_count, 0)]:
            old.unlink()

    def log(
        self,
        event: str,
        *,
        user_id: Any = None,
        task: str | None = None,
        duration_ms: float | None = None,
        reason: str | None = None,
        error: str | None = None,
        **extra: Any,
    ) -> None:
        """Append one event."""
        entry = LogEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            event=event,
            user_id=str(user_id) if user_id is not None else None,
            task=task,
            duration_ms=duration_ms,
            reason=reason,
            error=error,
            extra=extra,
        )
        self._rotate()
        with open(self.log_path, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry.to_dict(), ensure_ascii=False) + "\n")

    def read(self, user_id: Any = None, event: str | None = None) -> Iterator[dict[str, Any]]:
        """Yield events from the current log file, optionally filtered."""
        if not self.log_path.exists():
            return
        wanted_user = str(user_id) if user_id is not None else None
        with open(self.log_path, encoding="utf-8") as f:
            for line in f:
                if not line.strip():
                    continue
                data = json.loads(line)
                if wanted_user is not None and data.get("user_id") != wanted_user:
                    continue
                if event is not None and data.get("event") != event:
                    continue
                yield data

    def log_summary_updated(self, user_id: Any, chars: int) -> None:
        self.log("summary_updated", user_id=user_id, chars=chars)

    def log_summary_cleared(self, user_id: Any) -> None:
        """Summary removed because the user has no facts left."""
        self.log("summary_cleared", user_id=user_id)

    def log_consolidation(self, user_id: Any, before: int, after: int) -> None:
        self.log("consolidation_applied", user_id=user_id, before=before, after=after)

    def log_consolidation_skipped(self, user_id: Any, reason: str, **extra: Any) -> None:
        """Consolidation ran but left the fact set unchanged."""
        self.log("consolidation_skipped", user_id=user_id, reason=reason, **extra)
