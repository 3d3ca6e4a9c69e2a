"""HTTP routes for managing a user's memory.

Authentication happens upstream; the authenticated user id arrives in the
``X-User-Id`` header.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import APIRouter, Depends, FastAPI, Header, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .app import MemoryApp
from .memory import MemoryStoreError

MOUNT_PATH = "/ai-persistent-memory"


class MemoryCreateRequest(BaseModel):
    """Loose body; the store validates and reports ``{"error": code}``."""

    key: Any = None
    value: Any = None


class MemoryItem(BaseModel):
    key: str
    value: str


class MemoryIndexResponse(BaseModel):
    memories: list[MemoryItem]
    summary: str | None
    count: int
    max: int


class MemoryCreateResponse(BaseModel):
    success: bool
    key: str
    value: str


class NotLoggedIn(Exception):
    """Raised when no authenticated user reached the route."""


def current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    if x_user_id is None or not x_user_id.strip():
        raise NotLoggedIn()
    return x_user_id.strip()


def create_router(memory_app: MemoryApp) -> APIRouter:
    """Build the memory routes bound to one MemoryApp."""
    router = APIRouter(tags=["memory"])
    store = memory_app.store

    @router.get("/")
    async def index(user_id: str = Depends(current_user_id)) -> MemoryIndexResponse:
        """List the user's facts with their profile summary."""
        memories = store.list(user_id)
        return MemoryIndexResponse(
            memories=[MemoryItem(key=f.key, value=f.value) for f in memories],
            summary=store.get_summary(user_id),
            count=len(memories),
            max=memory_app.config.max_memories,
        )

    @router.post("/", response_model=MemoryCreateResponse)
    async def create(
        body: MemoryCreateRequest,
        user_id: str = Depends(current_user_id),
    ) -> Any:
        """Create or update a fact."""
        try:
            fact = store.set(user_id, body.key, body.value)
        except MemoryStoreError as e:
            return JSONResponse({"error": e.code}, status_code=422)
        return MemoryCreateResponse(success=True, key=fact.key, value=fact.value)

    @router.delete("/{key}", status_code=204)
    async def destroy(key: str, user_id: str = Depends(current_user_id)) -> Response:
        """Delete a fact."""
        if not key.strip():
            return JSONResponse({"error": "Key required"}, status_code=400)
        try:
            store.delete(user_id, key)
        except MemoryStoreError as e:
            return JSONResponse({"error": e.code}, status_code=422)
        return Response(status_code=204)

    return router


def create_app(memory_app: MemoryApp) -> FastAPI:
    """Create a FastAPI app with the memory routes mounted."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await memory_app.scheduler.drain()
        memory_app.close()

    app = FastAPI(title="memoir", lifespan=lifespan)
    app.include_router(create_router(memory_app), prefix=MOUNT_PATH)

    @app.exception_handler(NotLoggedIn)
    async def _not_logged_in(request: Any, exc: NotLoggedIn) -> JSONResponse:
        return JSONResponse({"error": "not_logged_in"}, status_code=403)

    return app
