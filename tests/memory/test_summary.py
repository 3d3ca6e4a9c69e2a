"""Tests for SummaryGenerator."""

from typing import Any

import pytest

from memoir.config import MemoryConfig
from memoir.memory import (
    InMemoryBackend,
    InMemoryUserDirectory,
    MemoryStore,
    SummaryGenerator,
    UserProfile,
)

GOOD_SUMMARY = "Ada is a Python developer who prefers concise answers."


class MockLLM:
    """CompletionService returning a canned response."""

    def __init__(self, response: Any = GOOD_SUMMARY, error: Exception | None = None) -> None:
        self.response = response
        self.error = error
        self.calls: list[tuple[str, str | None]] = []

    async def complete(self, prompt: str, system: str | None = None) -> Any:
        self.calls.append((prompt, system))
        if self.error:
            raise self.error
        return self.response


class MockResolver:
    def __init__(self, llm: MockLLM | None) -> None:
        self.llm = llm
        self.requested: list[str | None] = []

    def resolve(self, model_id: str | None) -> MockLLM | None:
        self.requested.append(model_id)
        return self.llm


@pytest.fixture
def config(tmp_path) -> MemoryConfig:
    return MemoryConfig(llm_model_id="test-model", db_path=tmp_path / "m.db", log_dir=tmp_path)


@pytest.fixture
def store(config: MemoryConfig) -> MemoryStore:
    return MemoryStore(InMemoryBackend(), config)


@pytest.fixture
def users() -> InMemoryUserDirectory:
    return InMemoryUserDirectory([UserProfile(id="u1", username="ada")])


@pytest.fixture
def llm() -> MockLLM:
    return MockLLM()


def make_generator(store, config, llm, users) -> SummaryGenerator:
    return SummaryGenerator(store, config, MockResolver(llm), users)


class TestSummaryGenerator:
    @pytest.mark.asyncio
    async def test_generates_and_stores(self, store, config, llm, users):
        """The trimmed completion is stored as the summary."""
        llm.response = f"  {GOOD_SUMMARY}\n"
        store.set("u1", "language", "Python")
        generator = make_generator(store, config, llm, users)

        result = await generator.run(user_id="u1")

        assert result == GOOD_SUMMARY
        assert store.get_summary("u1") == GOOD_SUMMARY

    @pytest.mark.asyncio
    async def test_prompt_contents(self, store, config, llm, users):
        """The prompt lists the facts and the username."""
        store.set("u1", "language", "Python")
        store.set("u1", "editor", "vim")
        await make_generator(store, config, llm, users).run(user_id="u1")

        prompt, system = llm.calls[0]
        assert "User: ada" in prompt
        assert "- language: Python\n- editor: vim" in prompt
        assert "maximum 200 words" in system
        assert "third person" in system
        assert "Do not use bullet points" in system

    @pytest.mark.asyncio
    async def test_resolves_configured_model(self, store, config, llm, users):
        store.set("u1", "k", "v")
        resolver = MockResolver(llm)
        await SummaryGenerator(store, config, resolver, users).run(user_id="u1")
        assert resolver.requested == ["test-model"]

    @pytest.mark.asyncio
    async def test_joins_chunked_response(self, store, config, llm, users):
        llm.response = ["Ada is a Python developer ", "who prefers concise answers."]
        store.set("u1", "k", "v")
        await make_generator(store, config, llm, users).run(user_id="u1")
        assert store.get_summary("u1") == GOOD_SUMMARY

    @pytest.mark.asyncio
    async def test_no_facts_clears_summary(self, store, config, llm, users):
        """With zero facts the summary is cleared and the model is not called."""
        store.set_summary("u1", "Stale summary from before everything was deleted.")
        result = await make_generator(store, config, llm, users).run(user_id="u1")

        assert result is None
        assert store.get_summary("u1") is None
        assert llm.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("response", ["", "   ", "Too short.", "x" * 20])
    async def test_implausible_output_not_stored(self, store, config, llm, users, response):
        """Outputs of 20 characters or fewer leave the old summary in place."""
        llm.response = response
        store.set("u1", "k", "v")
        store.set_summary("u1", "Previous summary that should survive.")

        result = await make_generator(store, config, llm, users).run(user_id="u1")

        assert result is None
        assert store.get_summary("u1") == "Previous summary that should survive."

    @pytest.mark.asyncio
    async def test_just_over_minimum_stored(self, store, config, llm, users):
        llm.response = "x" * 21
        store.set("u1", "k", "v")
        await make_generator(store, config, llm, users).run(user_id="u1")
        assert store.get_summary("u1") == "x" * 21

    @pytest.mark.asyncio
    async def test_completion_error_swallowed(self, store, config, llm, users):
        """Service errors are logged, never raised, and leave no summary."""
        llm.error = RuntimeError("API down")
        store.set("u1", "k", "v")

        result = await make_generator(store, config, llm, users).run(user_id="u1")

        assert result is None
        assert store.get_summary("u1") is None

    @pytest.mark.asyncio
    async def test_disabled_is_noop(self, store, config, llm, users):
        config.enabled = False
        store.set("u1", "k", "v")
        assert await make_generator(store, config, llm, users).run(user_id="u1") is None
        assert llm.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("user_id", [None, ""])
    async def test_missing_user_id_is_noop(self, store, config, llm, users, user_id):
        assert await make_generator(store, config, llm, users).run(user_id=user_id) is None
        assert llm.calls == []

    @pytest.mark.asyncio
    async def test_no_model_is_noop(self, store, config, users):
        store.set("u1", "k", "v")
        generator = SummaryGenerator(store, config, MockResolver(None), users)
        assert await generator.run(user_id="u1") is None
        assert store.get_summary("u1") is None

    @pytest.mark.asyncio
    async def test_unknown_user_is_noop(self, store, config, llm, users):
        store.set("stranger", "k", "v")
        assert await make_generator(store, config, llm, users).run(user_id="stranger") is None
        assert llm.calls == []
