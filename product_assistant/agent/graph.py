"""
LangGraph chat pipeline for one question:
check cache → (hit: done) → load memory → build prompt → retrieve → generate →
parse → enrich SKUs → (well-formed: persist) → done.

Orchestration only; retrieval, inference and storage are delegated to services.
"""

import logging
from typing import Any, Literal, TypedDict

from langgraph.graph import END, StateGraph

from product_assistant.agent.llm import complete
from product_assistant.agent.prompt import build_chat_prompt, build_rag_system_message
from product_assistant.core.catalog_db import get_products_by_skus
from product_assistant.core.errors import AnswerFormatError
from product_assistant.core.prompts import get_prompt_config
from product_assistant.services import cache_service, memory_service
from product_assistant.services.answer_parser import fallback_answer, is_persistable, parse_llm_answer
from product_assistant.services.retrieval_service import retrieve_context

logger = logging.getLogger(__name__)


class ChatState(TypedDict, total=False):
    user_id: str
    query: str
    user_name: str
    children: list  # list of {"name", "age", "gender", "birthday"}
    cached_response: dict | None
    memory: str
    history_text: str
    prompt: str
    chunks: list
    raw_output: str
    parsed: bool
    response: dict
    persisted: bool


def _cache_metadata(state: ChatState) -> dict[str, Any]:
    return {"name": state.get("user_name") or "", "children": state.get("children") or []}


def _check_cache(state: ChatState) -> dict:
    cached = cache_service.get_cached_result(state["user_id"], state["query"], _cache_metadata(state))
    return {"cached_response": cached}


def _route_after_cache(state: ChatState) -> Literal["load_memory", "__end__"]:
    return END if state.get("cached_response") else "load_memory"


def _load_memory(state: ChatState) -> dict:
    """Long-term summary plus the recent conversation window."""
    user_id = state["user_id"]
    memory = memory_service.get_conversation_memory(user_id)
    conversation = memory_service.get_conversation_history(user_id)
    history_text = memory_service.format_history(conversation.get("entries") or [])
    logger.info("[graph:load_memory] memory_len=%d history_len=%d", len(memory), len(history_text))
    return {"memory": memory, "history_text": history_text}


def _build_prompt(state: ChatState) -> dict:
    instructions = get_prompt_config()["jsonOutputInstructions"]
    prompt = build_chat_prompt(
        instructions,
        query=state["query"],
        user_id=state["user_id"],
        user_name=state.get("user_name") or "",
        children=state.get("children") or [],
        memory=state.get("memory") or "",
        history_text=state.get("history_text") or "",
    )
    logger.debug("[graph:build_prompt] prompt=\n%s", prompt)
    return {"prompt": prompt}


def _retrieve(state: ChatState) -> dict:
    chunks = retrieve_context(state["query"])
    logger.info("[graph:retrieve] chunks=%d skus=%s", len(chunks),
                [(c.get("metadata") or {}).get("sku") for c in chunks])
    return {"chunks": chunks}


def _generate(state: ChatState) -> dict:
    system = build_rag_system_message(state.get("chunks") or [])
    raw = complete(state["prompt"], system=system)
    logger.info("[graph:generate] raw_output_len=%d", len(raw))
    logger.debug("[graph:generate] raw_output=%r", raw)
    return {"raw_output": raw}


def _parse_response(state: ChatState) -> dict:
    raw = state.get("raw_output")
    try:
        return {"response": parse_llm_answer(raw), "parsed": True}
    except AnswerFormatError as e:
        logger.error("[graph:parse_response] %s LLM raw=%r", e, raw)
        return {"response": fallback_answer(raw), "parsed": False}


def _enrich_products(state: ChatState) -> dict:
    response = dict(state["response"])
    if state.get("parsed"):
        response["relatedProducts"] = get_products_by_skus(response["relatedProducts"])
    return {"response": response}


def _route_after_enrich(state: ChatState) -> Literal["persist", "__end__"]:
    return "persist" if is_persistable(state.get("response")) else END


def _persist(state: ChatState) -> dict:
    """Save both turns, cache the response, then run the periodic summary check."""
    user_id, query, response = state["user_id"], state["query"], state["response"]
    memory_service.add_conversation_entries(user_id, query, response["answer"])
    cache_service.set_cached_result(user_id, query, _cache_metadata(state), response)
    memory_service.summarize_and_store_memory(user_id, get_prompt_config()["summarizationInstruction"])
    return {"persisted": True}


def build_graph():
    graph = StateGraph(ChatState)

    graph.add_node("check_cache", _check_cache)
    graph.add_node("load_memory", _load_memory)
    graph.add_node("build_prompt", _build_prompt)
    graph.add_node("retrieve", _retrieve)
    graph.add_node("generate", _generate)
    graph.add_node("parse_response", _parse_response)
    graph.add_node("enrich_products", _enrich_products)
    graph.add_node("persist", _persist)

    graph.set_entry_point("check_cache")
    graph.add_conditional_edges("check_cache", _route_after_cache)
    graph.add_edge("load_memory", "build_prompt")
    graph.add_edge("build_prompt", "retrieve")
    graph.add_edge("retrieve", "generate")
    graph.add_edge("generate", "parse_response")
    graph.add_edge("parse_response", "enrich_products")
    graph.add_conditional_edges("enrich_products", _route_after_enrich)
    graph.add_edge("persist", END)

    return graph.compile()


def run_chat(
    query: str,
    user_id: str,
    user_name: str = "",
    children: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """
    Answer one question. Returns {"answer", "relatedProducts"} (cached or freshly generated).
    LLM/vector-store errors propagate to the caller.
    """
    if not query or not query.strip():
        raise ValueError("query is required")
    logger.info("[run_chat] START user_id=%s query=%r", user_id, query)
    initial: ChatState = {
        "user_id": user_id,
        "query": query,
        "user_name": user_name or "",
        "children": children or [],
        "cached_response": None,
        "parsed": False,
        "persisted": False,
    }
    final = build_graph().invoke(initial)
    if final.get("cached_response"):
        logger.info("[run_chat] END cache hit")
        return final["cached_response"]
    response = final["response"]
    logger.info("[run_chat] END persisted=%s related_products=%d",
                final.get("persisted", False), len(response.get("relatedProducts") or []))
    return response
