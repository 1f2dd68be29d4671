"""
Unit tests for conversation memory: history, entries, formatting and periodic summaries.
LLM calls are mocked.
"""

from unittest.mock import patch

from product_assistant.core import document_store
from product_assistant.services import memory_service
from product_assistant.services.memory_service import (
    SUMMARY_ERROR,
    add_conversation_entries,
    format_history,
    get_conversation_history,
    get_conversation_memory,
    last_summary_key,
    summarize_and_store_memory,
    summarize_conversation,
)

TEMPLATE = "Summarize for {{userId}}:\n{{conversationHistoryText}}"


def _fill(user_id: str, turns: int) -> None:
    for i in range(turns):
        add_conversation_entries(user_id, f"question {i}", f"answer {i}")


class TestConversationHistory:
    def test_creates_conversation_when_missing(self) -> None:
        assert not document_store.has_conversation("u1")
        conversation = get_conversation_history("u1")
        assert conversation == {"conversationId": "u1", "entries": []}
        assert document_store.has_conversation("u1")

    def test_entries_in_order_with_roles(self) -> None:
        assert add_conversation_entries("u1", "Any strollers?", "Yes, the S1.") is True
        entries = get_conversation_history("u1")["entries"]
        assert [(e["role"], e["content"]) for e in entries] == [
            ("User", "Any strollers?"),
            ("Bot", "Yes, the S1."),
        ]
        assert all(e["timestamp"] for e in entries)

    def test_store_error_yields_empty_conversation(self) -> None:
        with patch.object(document_store, "has_conversation", side_effect=RuntimeError("db down")):
            assert get_conversation_history("u1") == {"conversationId": "u1", "entries": []}

    def test_add_entries_store_error_returns_false(self) -> None:
        with patch.object(document_store, "add_entry_to_conversation", side_effect=RuntimeError("db down")):
            assert add_conversation_entries("u1", "q", "a") is False


class TestFormatHistory:
    def test_keeps_last_window_entries(self) -> None:
        entries = [{"role": "User", "content": str(i)} for i in range(12)]
        lines = format_history(entries, window=10).splitlines()
        assert len(lines) == 10
        assert lines[0] == "User: 2"
        assert lines[-1] == "User: 11"

    def test_window_none_keeps_all(self) -> None:
        entries = [{"role": "Bot", "content": str(i)} for i in range(12)]
        assert len(format_history(entries, window=None).splitlines()) == 12

    def test_empty(self) -> None:
        assert format_history([]) == ""


class TestLongTermMemory:
    def test_no_summary_returns_empty(self) -> None:
        assert get_conversation_memory("u1") == ""

    def test_store_error_returns_empty(self) -> None:
        with patch.object(document_store, "custom_get", side_effect=RuntimeError("db down")):
            assert get_conversation_memory("u1") == ""

    def test_summary_stored_on_tenth_entry(self) -> None:
        _fill("u1", 5)  # 10 entries
        with patch.object(memory_service, "complete", return_value="Has a 2 year old, likes strollers.") as llm:
            assert summarize_and_store_memory("u1", TEMPLATE) is True
        prompt = llm.call_args.args[0]
        assert prompt.startswith("Summarize for u1:\nUser: question 0\nBot: answer 0")
        assert "Bot: answer 4" in prompt
        assert get_conversation_memory("u1") == "Has a 2 year old, likes strollers."
        record = document_store.custom_get(last_summary_key("u1"))
        assert record["type"] == "conversation_summary"

    def test_no_summary_off_interval(self) -> None:
        _fill("u1", 4)  # 8 entries
        with patch.object(memory_service, "complete") as llm:
            assert summarize_and_store_memory("u1", TEMPLATE) is False
        llm.assert_not_called()

    def test_no_summary_for_empty_conversation(self) -> None:
        with patch.object(memory_service, "complete") as llm:
            assert summarize_and_store_memory("nobody", TEMPLATE) is False
        llm.assert_not_called()

    def test_error_summary_is_not_stored(self) -> None:
        _fill("u1", 5)
        with patch.object(memory_service, "complete", side_effect=RuntimeError("LLM down")):
            assert summarize_and_store_memory("u1", TEMPLATE) is False
        assert get_conversation_memory("u1") == ""

    def test_could_not_summarize_is_not_stored(self) -> None:
        _fill("u1", 5)
        with patch.object(memory_service, "complete", return_value="Could not summarize this."):
            assert summarize_and_store_memory("u1", TEMPLATE) is False


def test_summarize_conversation_error_message() -> None:
    with patch.object(memory_service, "complete", side_effect=TimeoutError()):
        assert summarize_conversation("u1", "User: hi", TEMPLATE) == SUMMARY_ERROR
