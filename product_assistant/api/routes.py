"""
API route aggregator: register endpoints; no logic, only delegate to handlers.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter

from product_assistant.api.handlers import handle_query
from product_assistant.schemas.chat import ChatRequest, ChatResponse, HealthResponse

logger = logging.getLogger(__name__)
router = APIRouter()


# --- System ---

@router.get("/", tags=["system"])
def root():
    return {"status": "Product assistant API running"}


@router.get("/health", response_model=HealthResponse, tags=["system"])
def health() -> HealthResponse:
    return HealthResponse(status="ok", timestamp=datetime.now(timezone.utc).isoformat())


# --- Chat ---

_CHAT_DESCRIPTION = (
    "Send a question (`query` or `question`) with an optional user profile; receive an answer and "
    "catalog rows for the related products. 400 when the query is missing, 503 when the RAG "
    "dependencies are not configured, 500 on pipeline failure."
)


@router.post(
    "/ask",
    response_model=ChatResponse,
    response_model_exclude_none=True,
    tags=["chat"],
    summary="Ask the product assistant",
    description=_CHAT_DESCRIPTION,
)
def post_ask(body: ChatRequest, userId: str | None = None):
    return handle_query(body, "/ask", userId)


@router.post(
    "/chat",
    response_model=ChatResponse,
    response_model_exclude_none=True,
    tags=["chat"],
    summary="Chat with the product assistant",
    description=_CHAT_DESCRIPTION,
)
def post_chat(body: ChatRequest, userId: str | None = None):
    return handle_query(body, "/chat", userId)
