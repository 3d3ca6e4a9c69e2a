"""Memory configuration loader.

Loads settings from ~/.memoir/config.json and applies environment
overrides on top.
"""

import json
import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".memoir" / "config.json"


@dataclass
class MemoryConfig:
    """Configuration for the memory system.

    Attributes:
        enabled: Feature flag gating all background tasks.
        max_memories: Capacity of non-system facts per user.
        max_value_length: Values are truncated to this many characters.
        consolidation_target: Desired fact count after consolidation.
        llm_model_id: Model identifier used to resolve the completion service.
        min_consolidated_entries: Consolidation results smaller than this
            are discarded instead of replacing the user's facts.
        min_summary_length: Summaries this short or shorter are not stored.
        db_path: SQLite database file.
        log_dir: Directory for the JSONL job log.
    """

    enabled: bool = True
    max_memories: int = 100
    max_value_length: int = 500
    consolidation_target: int = 50
    llm_model_id: str | None = None
    min_consolidated_entries: int = 10
    min_summary_length: int = 20
    db_path: Path | None = None
    log_dir: Path | None = None

    def __post_init__(self) -> None:
        """Validate config and set defaults."""
        if self.db_path is None:
            self.db_path = Path.home() / ".memoir" / "memory.db"

        if self.log_dir is None:
            self.log_dir = Path.home() / ".memoir" / "logs"

        if self.max_memories < 1:
            raise ValueError("max_memories must be at least 1")
        if self.max_value_length < 1:
            raise ValueError("max_value_length must be at least 1")
        if self.consolidation_target < 1:
            raise ValueError("consolidation_target must be at least 1")


_INT_FIELDS = (
    "max_memories",
    "max_value_length",
    "consolidation_target",
    "min_consolidated_entries",
    "min_summary_length",
)


def load_config(config_path: Path | None = None) -> MemoryConfig:
    """Load MemoryConfig from a JSON file.

    The config file should have this structure:
    ```json
    {
      "memory": {
        "enabled": true,
        "max_memories": 100,
        "max_value_length": 500,
        "consolidation_target": 50,
        "llm_model_id": "llama-3.1-70b-versatile"
      }
    }
    ```

    Args:
        config_path: Path to config file. Uses DEFAULT_CONFIG_PATH if None.

    Returns:
        MemoryConfig instance with loaded values.
    """
    path = config_path or DEFAULT_CONFIG_PATH

    if not path.exists():
        logger.debug("No config file at %s, using defaults", path)
        return MemoryConfig()

    try:
        with open(path, "r") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        logger.warning("Invalid JSON in %s: %s. Using defaults.", path, e)
        return MemoryConfig()
    except OSError as e:
        logger.warning("Cannot read %s: %s. Using defaults.", path, e)
        return MemoryConfig()

    return _parse_config(data)


def _parse_config(data: dict[str, Any]) -> MemoryConfig:
    """Parse config dictionary into MemoryConfig.

    Values of the wrong type or out of range fall back to defaults.
    """
    memory_data = data.get("memory", {}) if isinstance(data, dict) else {}
    if not isinstance(memory_data, dict):
        memory_data = {}

    kwargs: dict[str, Any] = {}

    enabled = memory_data.get("enabled")
    if isinstance(enabled, bool):
        kwargs["enabled"] = enabled

    for name in _INT_FIELDS:
        value = memory_data.get(name)
        if isinstance(value, int) and not isinstance(value, bool) and value >= 1:
            kwargs[name] = value

    model_id = memory_data.get("llm_model_id")
    if isinstance(model_id, (str, int)) and str(model_id).strip():
        kwargs["llm_model_id"] = str(model_id).strip()

    for name in ("db_path", "log_dir"):
        value = memory_data.get(name)
        if isinstance(value, str) and value.strip():
            kwargs[name] = Path(value).expanduser()

    return MemoryConfig(**kwargs)


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def config_from_env(base: MemoryConfig | None = None) -> MemoryConfig:
    """Apply MEMOIR_* environment variables on top of a config.

    Args:
        base: Config to start from. Loaded from disk if None.

    Returns:
        A new MemoryConfig with overrides applied.
    """
    config = base or load_config()
    overrides: dict[str, Any] = {}

    if "MEMOIR_ENABLED" in os.environ:
        overrides["enabled"] = _env_bool(os.environ["MEMOIR_ENABLED"])

    int_vars = {
        "MEMOIR_MAX_MEMORIES": "max_memories",
        "MEMOIR_MAX_VALUE_LENGTH": "max_value_length",
        "MEMOIR_CONSOLIDATION_TARGET": "consolidation_target",
    }
    for var, name in int_vars.items():
        raw = os.getenv(var)
        if raw is None:
            continue
        try:
            value = int(raw)
        except ValueError:
            logger.warning("Ignoring non-integer %s=%r", var, raw)
            continue
        if value < 1:
            logger.warning("Ignoring %s=%r, must be at least 1", var, raw)
            continue
        overrides[name] = value

    model = os.getenv("MEMOIR_LLM_MODEL")
    if model:
        overrides["llm_model_id"] = model

    for var, name in (("MEMOIR_DB_PATH", "db_path"), ("MEMOIR_LOG_DIR", "log_dir")):
        raw = os.getenv(var)
        if raw:
            overrides[name] = Path(raw).expanduser()

    return replace(config, **overrides) if overrides else config
