"""Tests for the HTTP memory routes."""

from typing import Any

import pytest
from fastapi.testclient import TestClient

from memoir.api import MOUNT_PATH, create_app
from memoir.app import MemoryApp
from memoir.config import MemoryConfig
from memoir.logging import JSONLLogger
from memoir.memory import InMemoryBackend

SUMMARY = "This user is testing the memory API from a pytest suite."
URL = f"{MOUNT_PATH}/"


class FakeLLM:
    async def complete(self, prompt: str, system: str | None = None) -> Any:
        return SUMMARY


class FakeResolver:
    def resolve(self, model_id: str | None) -> FakeLLM | None:
        return FakeLLM() if model_id else None


@pytest.fixture
def memory_app(tmp_path) -> MemoryApp:
    config = MemoryConfig(
        max_memories=3,
        max_value_length=20,
        llm_model_id="test-model",
        db_path=tmp_path / "m.db",
        log_dir=tmp_path,
    )
    return MemoryApp(
        config,
        backend=InMemoryBackend(),
        models=FakeResolver(),
        event_log=JSONLLogger(log_dir=tmp_path),
    )


@pytest.fixture
def client(memory_app: MemoryApp):
    with TestClient(create_app(memory_app)) as c:
        yield c


HEADERS = {"X-User-Id": "u1"}


class TestAuthentication:
    def test_index_requires_user(self, client: TestClient):
        response = client.get(URL)
        assert response.status_code == 403
        assert response.json() == {"error": "not_logged_in"}

    def test_blank_user_header(self, client: TestClient):
        response = client.post(URL, json={"key": "a", "value": "b"}, headers={"X-User-Id": " "})
        assert response.status_code == 403


class TestIndex:
    def test_empty(self, client: TestClient):
        response = client.get(URL, headers=HEADERS)
        assert response.status_code == 200
        assert response.json() == {"memories": [], "summary": None, "count": 0, "max": 3}

    def test_lists_facts_and_summary(self, client: TestClient, memory_app: MemoryApp):
        memory_app.store.set("u1", "editor", "vim")
        memory_app.store.set_summary("u1", SUMMARY)

        data = client.get(URL, headers=HEADERS).json()
        assert data["memories"] == [{"key": "editor", "value": "vim"}]
        assert data["summary"] == SUMMARY
        assert data["count"] == 1

    def test_users_are_isolated(self, client: TestClient, memory_app: MemoryApp):
        memory_app.store.set("u2", "secret", "x")
        assert client.get(URL, headers=HEADERS).json()["memories"] == []


class TestCreate:
    def test_create(self, client: TestClient, memory_app: MemoryApp):
        response = client.post(URL, json={"key": " editor ", "value": " vim "}, headers=HEADERS)
        assert response.status_code == 200
        assert response.json() == {"success": True, "key": "editor", "value": "vim"}
        assert memory_app.store.get("u1", "editor") == "vim"

    def test_value_truncated(self, client: TestClient):
        response = client.post(URL, json={"key": "bio", "value": "x" * 50}, headers=HEADERS)
        assert response.json()["value"] == "x" * 20

    def test_structured_value(self, client: TestClient, memory_app: MemoryApp):
        client.post(URL, json={"key": "langs", "value": ["py"]}, headers=HEADERS)
        assert memory_app.store.get("u1", "langs") == '["py"]'

    @pytest.mark.parametrize(
        "key,code",
        [("", "key_required"), ("   ", "key_required"), ("_profile_summary", "system_key")],
    )
    def test_validation_errors(self, client: TestClient, key: str, code: str):
        response = client.post(URL, json={"key": key, "value": "v"}, headers=HEADERS)
        assert response.status_code == 422
        assert response.json() == {"error": code}

    def test_missing_key(self, client: TestClient):
        response = client.post(URL, json={"value": "v"}, headers=HEADERS)
        assert response.status_code == 422
        assert response.json() == {"error": "key_required"}

    def test_numeric_key(self, client: TestClient, memory_app: MemoryApp):
        response = client.post(URL, json={"key": 5, "value": "five"}, headers=HEADERS)
        assert response.status_code == 200
        assert response.json() == {"success": True, "key": "5", "value": "five"}
        assert memory_app.store.get("u1", "5") == "five"

    def test_limit_reached(self, client: TestClient):
        for i in range(3):
            client.post(URL, json={"key": f"k{i}", "value": "v"}, headers=HEADERS)
        response = client.post(URL, json={"key": "k3", "value": "v"}, headers=HEADERS)
        assert response.status_code == 422
        assert response.json() == {"error": "limit_reached"}

    def test_update_at_capacity(self, client: TestClient):
        for i in range(3):
            client.post(URL, json={"key": f"k{i}", "value": "v"}, headers=HEADERS)
        response = client.post(URL, json={"key": "k0", "value": "new"}, headers=HEADERS)
        assert response.status_code == 200

    def test_summary_generated_after_write(self, memory_app: MemoryApp):
        with TestClient(create_app(memory_app)) as c:
            c.post(URL, json={"key": "editor", "value": "vim"}, headers=HEADERS)
        assert memory_app.store.get_summary("u1") == SUMMARY


class TestDestroy:
    def test_delete(self, client: TestClient, memory_app: MemoryApp):
        memory_app.store.set("u1", "editor", "vim")
        response = client.delete(f"{URL}editor", headers=HEADERS)
        assert response.status_code == 204
        assert memory_app.store.list("u1") == []

    def test_delete_missing_key_is_ok(self, client: TestClient):
        assert client.delete(f"{URL}nothing", headers=HEADERS).status_code == 204

    def test_blank_key(self, client: TestClient):
        response = client.delete(f"{URL}%20", headers=HEADERS)
        assert response.status_code == 400
        assert response.json() == {"error": "Key required"}

    def test_system_key(self, client: TestClient, memory_app: MemoryApp):
        memory_app.store.set_summary("u1", SUMMARY)
        response = client.delete(f"{URL}_profile_summary", headers=HEADERS)
        assert response.status_code == 422
        assert response.json() == {"error": "system_key"}
        assert memory_app.store.get_summary("u1") == SUMMARY
