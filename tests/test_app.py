"""End-to-end tests for the MemoryApp wiring."""

import json
from typing import Any

import pytest

from memoir.app import MemoryApp
from memoir.config import MemoryConfig
from memoir.logging import JSONLLogger
from memoir.memory import InMemoryBackend, SQLiteBackend

SUMMARY = "This user keeps a long list of facts and likes tidy memory."


class ScriptedLLM:
    """Answers consolidation prompts with a fenced JSON array, others with a summary."""

    def __init__(self, merged: int = 10) -> None:
        self.merged = merged
        self.systems: list[str | None] = []

    async def complete(self, prompt: str, system: str | None = None) -> Any:
        self.systems.append(system)
        if system and "consolidation" in system:
            facts = [{"key": f"merged_{i}", "value": f"fact {i}"} for i in range(self.merged)]
            return "```json\n" + json.dumps(facts) + "\n```"
        return SUMMARY


class ScriptedResolver:
    def __init__(self, llm: ScriptedLLM) -> None:
        self.llm = llm

    def resolve(self, model_id: str | None) -> ScriptedLLM | None:
        return self.llm if model_id else None


@pytest.fixture
def llm() -> ScriptedLLM:
    return ScriptedLLM()


@pytest.fixture
def app(tmp_path, llm: ScriptedLLM) -> MemoryApp:
    config = MemoryConfig(
        max_memories=12,
        consolidation_target=10,
        llm_model_id="test-model",
        db_path=tmp_path / "m.db",
        log_dir=tmp_path,
    )
    return MemoryApp(
        config,
        backend=InMemoryBackend(),
        models=ScriptedResolver(llm),
        event_log=JSONLLogger(log_dir=tmp_path),
    )


def events(app: MemoryApp) -> list[str]:
    return [e["event"] for e in app.event_log.read()]


@pytest.mark.asyncio
async def test_write_generates_summary(app: MemoryApp):
    app.store.set("u1", "editor", "vim")
    await app.scheduler.drain()

    assert app.store.get_summary("u1") == SUMMARY
    assert "summary_updated" in events(app)


@pytest.mark.asyncio
async def test_capacity_triggers_consolidation(app: MemoryApp):
    for i in range(12):
        app.store.set("u1", f"fact_{i}", f"value {i}")
    await app.scheduler.drain()

    facts = app.store.list("u1")
    assert len(facts) == 10
    assert facts[0].key == "merged_0"
    assert app.store.get_summary("u1") == SUMMARY
    assert "consolidation_applied" in events(app)


@pytest.mark.asyncio
async def test_delete_last_fact_clears_summary(app: MemoryApp):
    app.store.set("u1", "editor", "vim")
    await app.scheduler.drain()
    app.store.delete("u1", "editor")
    await app.scheduler.drain()

    assert app.store.get_summary("u1") is None
    assert events(app)[-2:] == ["summary_cleared", "job_finish"]


@pytest.mark.asyncio
async def test_prompt_builder_includes_summary(app: MemoryApp):
    app.store.set("u1", "editor", "vim")
    await app.scheduler.drain()

    prompt = app.prompt_builder("You are helpful.").build("u1")
    assert prompt.startswith("You are helpful.")
    assert SUMMARY in prompt
    assert app.prompt_builder().build("u2") == app.prompt_builder().build()


def test_default_backend_is_sqlite(tmp_path):
    config = MemoryConfig(db_path=tmp_path / "memory.db", log_dir=tmp_path)
    app = MemoryApp(config)
    try:
        assert isinstance(app.backend, SQLiteBackend)
        app.store.set("u1", "editor", "vim")
        assert app.store.get("u1", "editor") == "vim"
        assert app.scheduler.pending() == [("generate_memory_summary", "u1")]
    finally:
        app.close()
