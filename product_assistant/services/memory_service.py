"""
Conversation memory: short-term history (conversation entries) and long-term
memory (a periodic LLM summary of the whole conversation).

Store failures are logged and degrade to empty memory/history; they never fail a chat request.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from product_assistant.agent.llm import complete
from product_assistant.core import document_store
from product_assistant.core.config import HISTORY_WINDOW, SUMMARY_INTERVAL, SUMMARY_MAX_TOKENS

logger = logging.getLogger(__name__)

SUMMARY_ERROR = "Error performing summarization."


def last_summary_key(user_id: str) -> str:
    return f"memory:{user_id}:last_summary"


def get_conversation_memory(user_id: str) -> str:
    """Return the stored summary text for the user, or "" when none."""
    key = last_summary_key(user_id)
    try:
        logger.info("[memory:get_conversation_memory] key=%s", key)
        record = document_store.custom_get(key)
    except Exception as e:
        logger.warning("[memory:get_conversation_memory] store error: %s", e)
        return ""
    if record and record.get("text"):
        logger.info("[memory:get_conversation_memory] summary found len=%d", len(record["text"]))
        return record["text"]
    logger.info("[memory:get_conversation_memory] no summary for user=%s", user_id)
    return ""


def get_conversation_history(user_id: str) -> dict[str, Any]:
    """Fetch the user's conversation, creating it if needed. Failures yield an empty conversation."""
    empty = {"conversationId": user_id, "entries": []}
    try:
        if document_store.has_conversation(user_id):
            logger.info("[memory:get_conversation_history] existing conversation for %s", user_id)
            return document_store.get_conversation(user_id) or empty
        logger.info("[memory:get_conversation_history] creating conversation for %s", user_id)
        document_store.add_conversation(user_id)
        conversation = document_store.get_conversation(user_id)
        if conversation is None:
            logger.error("[memory:get_conversation_history] conversation %s missing right after creation", user_id)
            return empty
        return conversation
    except Exception as e:
        logger.error("[memory:get_conversation_history] error: %s", e)
        return empty


def format_history(entries: list[dict[str, Any]], window: int | None = HISTORY_WINDOW) -> str:
    """Render the last `window` entries (all when window is None) as "role: content" lines."""
    recent = entries[-window:] if window else entries
    return "\n".join(f"{e.get('role', '')}: {e.get('content', '')}" for e in recent)


def add_conversation_entries(user_id: str, user_query: str, bot_response: str) -> bool:
    """Append the user turn then the bot turn. Returns False if the store write failed."""
    try:
        document_store.add_entry_to_conversation(
            user_id,
            {"role": "User", "content": user_query, "timestamp": datetime.now(timezone.utc)},
        )
        document_store.add_entry_to_conversation(
            user_id,
            {"role": "Bot", "content": bot_response, "timestamp": datetime.now(timezone.utc)},
        )
        logger.info("[memory:add_conversation_entries] added 2 entries for %s", user_id)
        return True
    except Exception as e:
        logger.error("[memory:add_conversation_entries] error: %s", e)
        return False


def summarize_conversation(user_id: str, history_text: str, prompt_template: str) -> str:
    """Fill the summarization template and ask the LLM. Any failure returns SUMMARY_ERROR."""
    filled = prompt_template.replace("{{userId}}", user_id).replace(
        "{{conversationHistoryText}}", history_text
    )
    try:
        return complete(filled, max_tokens=SUMMARY_MAX_TOKENS)
    except Exception:
        logger.exception("[memory:summarize_conversation] summarization LLM call failed")
        return SUMMARY_ERROR


def _is_usable_summary(summary: str) -> bool:
    return bool(summary) and not summary.startswith("Error") and not summary.startswith("Could not summarize")


def summarize_and_store_memory(user_id: str, prompt_template: str) -> bool:
    """
    Every SUMMARY_INTERVAL entries, summarize the full conversation and store it as the
    user's last summary. Returns True when a summary was stored.
    """
    try:
        conversation = document_store.get_conversation(user_id)
        entries = conversation["entries"] if conversation else []
        if not entries or len(entries) % SUMMARY_INTERVAL != 0:
            return False

        logger.info("[memory:summarize_and_store_memory] summarizing %d entries for %s", len(entries), user_id)
        summary = summarize_conversation(user_id, format_history(entries, window=None), prompt_template)
        if not _is_usable_summary(summary):
            logger.warning("[memory:summarize_and_store_memory] discarded summary=%r", summary[:80])
            return False

        document_store.custom_set(
            user_id,
            last_summary_key(user_id),
            {
                "text": summary,
                "type": "conversation_summary",
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )
        logger.info("[memory:summarize_and_store_memory] stored summary len=%d", len(summary))
        return True
    except Exception as e:
        logger.error("[memory:summarize_and_store_memory] error: %s", e)
        return False
