"""
API handlers: read the chat request, call the pipeline, map results/errors to HTTP.

Responsibility: Bridge HTTP types and the agent. Marshalling and exception-to-HTTP mapping.
Lives in the API layer so the agent and services stay free of FastAPI/HTTP types.
"""

import logging
from typing import Any

from fastapi import status
from fastapi.responses import JSONResponse

from product_assistant.agent.graph import run_chat
from product_assistant.agent.llm import is_configured as llm_ready
from product_assistant.core.errors import ServiceUnavailableError
from product_assistant.core.prompts import get_prompt_config
from product_assistant.schemas.chat import ChatRequest
from product_assistant.services.vector_store import is_configured as vector_store_ready

logger = logging.getLogger(__name__)

DEFAULT_USER_ID = "default_user"


def resolve_user_id(body: ChatRequest, user_id_param: str | None) -> str:
    """user.id, then body userId, then the userId query parameter, then "default_user"."""
    user = body.user
    return (user.id if user else None) or body.userId or user_id_param or DEFAULT_USER_ID


def _error(status_code: int, answer: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"answer": answer, "relatedProducts": [], **extra})


def _ensure_ready(endpoint: str) -> None:
    message = f"RAG system or prompt configuration not initialized yet for {endpoint}"
    try:
        prompt_config = get_prompt_config()
    except (OSError, ValueError) as e:
        logger.error("[%s] prompt configuration failed to load: %s", endpoint, e)
        raise ServiceUnavailableError(message) from e
    if not vector_store_ready() or not llm_ready() or not prompt_config:
        raise ServiceUnavailableError(message)


def handle_query(body: ChatRequest, endpoint: str, user_id_param: str | None = None) -> dict | JSONResponse:
    """
    Run one chat turn. Returns the response dict on success, or a JSONResponse with
    {answer, relatedProducts: []} (plus details on 500) on failure.
    """
    user_id = resolve_user_id(body, user_id_param)
    logger.info("[%s] request received for user: %s", endpoint, user_id)
    query = body.query or body.question
    if not query or not query.strip():
        logger.info("[%s] query is missing", endpoint)
        return _error(status.HTTP_400_BAD_REQUEST, "Query is required.")

    user = body.user
    user_name = (user.name if user else None) or ""
    children = [c.model_dump(exclude_none=True) for c in (user.children or [])] if user else []

    try:
        _ensure_ready(endpoint)
        return run_chat(query, user_id, user_name=user_name, children=children)
    except ServiceUnavailableError as e:
        logger.error("[%s] %s", endpoint, e.message)
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, e.message)
    except Exception as e:
        logger.exception("[%s] error processing question", endpoint)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Error processing your question", details=str(e))
