"""Errors raised synchronously by the memory store."""

from typing import Any


class MemoryStoreError(Exception):
    """Base class for store validation errors.

    Each subclass carries the short ``code`` reported to HTTP and tool
    callers.
    """

    code = "memory_error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.code)

    def to_dict(self) -> dict[str, Any]:
        """Wire representation of the error."""
        return {"error": self.code}


class NoUserError(MemoryStoreError):
    """No user id was supplied."""

    code = "no_user"


class KeyRequiredError(MemoryStoreError):
    """The key was empty after trimming."""

    code = "key_required"


class SystemKeyError(MemoryStoreError):
    """The key uses the reserved system prefix."""

    code = "system_key"


class LimitReachedError(MemoryStoreError):
    """A new key would exceed the per-user capacity."""

    code = "limit_reached"

    def __init__(self, max: int) -> None:
        super().__init__(f"Memory limit reached ({max})")
        self.max = max

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "max": self.max}
