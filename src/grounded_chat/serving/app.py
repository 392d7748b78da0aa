"""FastAPI application exposing the chat service as a REST API.

Caller identity comes from the ``X-User-ID`` header, which an upstream
authenticating proxy is expected to set.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Annotated

from fastapi import Depends, FastAPI, Header, Query, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from grounded_chat import __version__
from grounded_chat.chat.service import DETAILS_PAGE_SIZE, ChatService
from grounded_chat.config import settings
from grounded_chat.errors import GatewayError, NotFoundError, PersistenceError, ValidationError
from grounded_chat.logging_utils import setup_logging
from grounded_chat.runtime import Runtime, build_runtime
from grounded_chat.store.models import Chat, Message

logger = logging.getLogger(__name__)


# ── Request / Response schemas ────────────────────────────────────────
class CreateChatRequest(BaseModel):
    """Optional first message of a new chat."""

    first_message: str | None = None


class ChatResponse(BaseModel):
    id: str
    title: str | None = None
    created_at: datetime

    @classmethod
    def from_chat(cls, chat: Chat) -> ChatResponse:
        return cls(id=chat.id, title=chat.title, created_at=chat.created_at)


class ChatWithMessagesResponse(ChatResponse):
    """Chat together with (a page of) its messages."""

    messages: list[Message] = []


class PostMessageRequest(BaseModel):
    content: str


class FeedbackRequest(BaseModel):
    negative: bool


# ── Dependencies ──────────────────────────────────────────────────────
def get_chat_service(request: Request) -> ChatService:
    runtime: Runtime = request.app.state.runtime
    return runtime.chat_service


UserId = Annotated[str, Header(alias="X-User-ID")]
Service = Annotated[ChatService, Depends(get_chat_service)]


# ── App factory ───────────────────────────────────────────────────────
def create_app(runtime: Runtime | None = None) -> FastAPI:
    """Build the app; a *runtime* passed in is used as-is and never closed."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if getattr(app.state, "runtime", None) is not None:
            yield
            return
        setup_logging(settings.log_level)
        app.state.runtime = build_runtime()
        try:
            yield
        finally:
            logger.info("Shutting down: waiting for background title tasks")
            app.state.runtime.close()

    app = FastAPI(
        title="Grounded Chat API",
        version=__version__,
        description="Retrieval-grounded chat with persistent conversations.",
        lifespan=lifespan,
    )
    app.state.runtime = runtime
    _register_error_handlers(app)
    _register_routes(app)
    return app


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationError)
    async def _validation(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})

    @app.exception_handler(NotFoundError)
    async def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})

    @app.exception_handler(GatewayError)
    async def _gateway(request: Request, exc: GatewayError) -> JSONResponse:
        logger.error("Gateway error on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content={"detail": "Upstream model unavailable"})

    @app.exception_handler(PersistenceError)
    async def _persistence(request: Request, exc: PersistenceError) -> JSONResponse:
        logger.error("Persistence error on %s: %s", request.url.path, exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": "Storage failure"}
        )


# ── Routes ────────────────────────────────────────────────────────────
def _register_routes(app: FastAPI) -> None:
    @app.get("/health")
    async def health() -> dict[str, str]:
        """Liveness probe."""
        return {"status": "ok"}

    @app.post("/chats", response_model=ChatWithMessagesResponse, status_code=status.HTTP_201_CREATED)
    def create_chat(user_id: UserId, service: Service, payload: CreateChatRequest | None = None) -> ChatWithMessagesResponse:
        """Create a chat, answering its first message when one is given."""
        first_message = payload.first_message if payload is not None else None
        chat, messages = service.create_chat(user_id, first_message)
        return ChatWithMessagesResponse(**ChatResponse.from_chat(chat).model_dump(), messages=messages)

    @app.get("/chats", response_model=list[ChatResponse])
    def list_chats(user_id: UserId, service: Service) -> list[ChatResponse]:
        return [ChatResponse.from_chat(c) for c in service.list_chats(user_id)]

    @app.get("/chats/{chat_id}", response_model=ChatWithMessagesResponse)
    def get_chat(
        chat_id: str,
        user_id: UserId,
        service: Service,
        limit: Annotated[int, Query(gt=0, le=1000)] = DETAILS_PAGE_SIZE,
        offset: Annotated[int, Query(ge=0)] = 0,
    ) -> ChatWithMessagesResponse:
        chat, messages = service.get_chat_details(chat_id, user_id, limit=limit, offset=offset)
        return ChatWithMessagesResponse(**ChatResponse.from_chat(chat).model_dump(), messages=messages)

    @app.post("/chats/{chat_id}/messages", response_model=Message)
    def post_message(chat_id: str, payload: PostMessageRequest, user_id: UserId, service: Service) -> Message:
        """Run one chat turn and return the model's reply."""
        return service.post_message(chat_id, user_id, payload.content)

    @app.post("/messages/{message_id}/feedback", status_code=status.HTTP_204_NO_CONTENT)
    def message_feedback(message_id: str, payload: FeedbackRequest, user_id: UserId, service: Service) -> None:
        service.set_message_feedback(message_id, user_id, payload.negative)


app = create_app()
