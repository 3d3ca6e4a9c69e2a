"""Memory tools exposed to in-process assistant scripts.

Each tool is bound to one store and one user; a ``MemoryToolkit`` groups
the five operations (set, get, list, delete, search) and dispatches calls
by name.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .errors import MemoryStoreError

if TYPE_CHECKING:
    from .store import MemoryStore

NO_USER_CONTEXT = "No user context"


@dataclass
class ToolResult:
    """Result from tool execution."""

    success: bool
    output: str
    error: str | None = None
    data: Any = None


class MemoryTool(ABC):
    """Base interface for memory tools."""

    def __init__(self, store: MemoryStore, user_id: Any) -> None:
        """Bind the tool to a store and the calling user.

        Args:
            store: The MemoryStore to operate on.
            user_id: The user whose memory is accessed; None when the
                script runs without a user.
        """
        self.store = store
        self.user_id = user_id

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique tool name."""
        ...

    @property
    @abstractmethod
    def description(self) -> str:
        """Tool description for LLM."""
        ...

    @property
    def parameters(self) -> dict[str, Any]:
        """JSON Schema for tool parameters."""
        return {"type": "object", "properties": {}, "required": []}

    @abstractmethod
    async def run(self, **kwargs: Any) -> ToolResult:
        """Perform the operation; store errors propagate."""
        ...

    async def execute(self, **kwargs: Any) -> ToolResult:
        """Run the tool, turning store errors into failed results."""
        try:
            return await self.run(**kwargs)
        except MemoryStoreError as e:
            return ToolResult(success=False, output="", error=e.code)

    def get_schema(self) -> dict[str, Any]:
        """Get tool schema for LLM function calling."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }

    def validate_args(self, args: dict[str, Any]) -> str | None:
        """Return an error message if a required argument is missing."""
        for field in self.parameters.get("required", []):
            if field not in args:
                return f"Missing required argument: {field}"
        return None

    @property
    def has_user(self) -> bool:
        return self.user_id is not None and str(self.user_id).strip() != ""


def _key_param(description: str) -> dict[str, Any]:
    return {"type": "string", "description": description}


class MemorySetTool(MemoryTool):
    """Save or update a fact about the user."""

    @property
    def name(self) -> str:
        return "memory_set"

    @property
    def description(self) -> str:
        return (
            "Save a fact about the user for future conversations. "
            "Overwrites an existing fact with the same key."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "key": _key_param("Descriptive snake_case name, e.g. 'preferred_language'"),
                "value": {"description": "The fact; objects are stored as JSON"},
            },
            "required": ["key", "value"],
        }

    async def run(self, **kwargs: Any) -> ToolResult:
        if not self.has_user:
            return ToolResult(success=False, output="", error=NO_USER_CONTEXT)

        value = kwargs.get("value")
        if not isinstance(value, str):
            value = json.dumps(value, ensure_ascii=False)

        fact = self.store.set(self.user_id, kwargs.get("key", ""), value)
        return ToolResult(
            success=True,
            output=f"Remembered: {fact.key} = {fact.value}",
            data={"success": True, **fact.to_dict()},
        )


class MemoryGetTool(MemoryTool):
    """Read one fact."""

    @property
    def name(self) -> str:
        return "memory_get"

    @property
    def description(self) -> str:
        return "Read a stored fact about the user by key."

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {"key": _key_param("Key of the fact to read")},
            "required": ["key"],
        }

    async def run(self, **kwargs: Any) -> ToolResult:
        if not self.has_user:
            return ToolResult(success=True, output="", data=None)

        raw = self.store.get(self.user_id, kwargs.get("key", ""))
        if raw is None:
            return ToolResult(success=True, output="", data=None)

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            data = raw
        return ToolResult(success=True, output=raw, data=data)


class MemoryListTool(MemoryTool):
    """List every fact."""

    @property
    def name(self) -> str:
        return "memory_list"

    @property
    def description(self) -> str:
        return "List all stored facts about the user."

    async def run(self, **kwargs: Any) -> ToolResult:
        facts = self.store.list(self.user_id) if self.has_user else []
        return ToolResult(
            success=True,
            output="\n".join(f"{f.key}: {f.value}" for f in facts),
            data=[f.to_dict() for f in facts],
        )


class MemoryDeleteTool(MemoryTool):
    """Forget one fact."""

    @property
    def name(self) -> str:
        return "memory_delete"

    @property
    def description(self) -> str:
        return "Forget a stored fact about the user by key."

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {"key": _key_param("Key of the fact to forget")},
            "required": ["key"],
        }

    async def run(self, **kwargs: Any) -> ToolResult:
        if not self.has_user:
            return ToolResult(success=False, output="", error=NO_USER_CONTEXT)

        key = kwargs.get("key", "")
        self.store.delete(self.user_id, key)
        return ToolResult(success=True, output=f"Forgot: {key}", data={"success": True})


class MemorySearchTool(MemoryTool):
    """Substring search over facts."""

    @property
    def name(self) -> str:
        return "memory_search"

    @property
    def description(self) -> str:
        return (
            "Search stored facts. Matches any whitespace-separated term "
            "against key and value, case-insensitively; returns up to 10 facts."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {"query": {"type": "string", "description": "Search terms"}},
            "required": ["query"],
        }

    async def run(self, **kwargs: Any) -> ToolResult:
        facts = self.store.search(self.user_id, kwargs.get("query") or "") if self.has_user else []
        return ToolResult(
            success=True,
            output="\n".join(f"{f.key}: {f.value}" for f in facts),
            data=[f.to_dict() for f in facts],
        )


TOOL_CLASSES: tuple[type[MemoryTool], ...] = (
    MemorySetTool,
    MemoryGetTool,
    MemoryListTool,
    MemoryDeleteTool,
    MemorySearchTool,
)


class MemoryToolkit:
    """The memory tools for one user, dispatchable by name."""

    def __init__(self, store: MemoryStore, user_id: Any) -> None:
        self._tools: dict[str, MemoryTool] = {}
        for cls in TOOL_CLASSES:
            tool = cls(store, user_id)
            self._tools[tool.name] = tool

    def get(self, name: str) -> MemoryTool | None:
        """Get a tool by name."""
        return self._tools.get(name)

    def list_tools(self) -> list[str]:
        """List all tool names."""
        return list(self._tools.keys())

    def get_tools_schema(self) -> list[dict[str, Any]]:
        """Get schemas for all tools (for LLM function calling)."""
        return [tool.get_schema() for tool in self._tools.values()]

    async def dispatch(self, tool_name: str, args: dict[str, Any]) -> ToolResult:
        """Dispatch a tool call by name with arguments."""
        tool = self._tools.get(tool_name)
        if tool is None:
            return ToolResult(success=False, output="", error=f"Unknown tool: {tool_name}")

        error = tool.validate_args(args)
        if error:
            return ToolResult(success=False, output="", error=error)

        try:
            return await tool.execute(**args)
        except Exception as e:
            return ToolResult(success=False, output="", error=f"Tool execution failed: {e}")
