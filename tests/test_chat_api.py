"""
Integration tests for the chat endpoints (/ask, /chat) and health check.

The full LangGraph pipeline runs against tmp SQLite stores; retrieval and the LLM are
mocked so tests do not require Milvus, HF or OpenAI.
"""

import json
from collections.abc import Iterator
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from product_assistant.api.handlers import resolve_user_id
from product_assistant.core import catalog_db, document_store
from product_assistant.main import app
from product_assistant.schemas.chat import ChatRequest
from product_assistant.services import memory_service

CHUNKS = [{"id": 1, "text": "Sku: S1\nName: Stroller", "score": 0.9, "metadata": {"sku": "S1", "source": "products.csv"}}]
LLM_JSON = '```json\n{"answer": "The S1 stroller suits toddlers.", "relatedProducts": ["S1", 404]}\n```'


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def ready() -> Iterator[None]:
    with patch("product_assistant.api.handlers.vector_store_ready", return_value=True), \
            patch("product_assistant.api.handlers.llm_ready", return_value=True):
        yield


@pytest.fixture
def catalog() -> None:
    catalog_db.upsert_products([{"sku": "S1", "name": "Stroller", "price": "199"}])


@pytest.fixture
def llm(ready, catalog) -> Iterator[MagicMock]:
    with patch("product_assistant.agent.graph.retrieve_context", return_value=CHUNKS), \
            patch("product_assistant.agent.graph.complete", return_value=LLM_JSON) as complete:
        yield complete


# --- System ---

def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["timestamp"]


# --- Chat ---

def test_ask_answers_with_catalog_products(client: TestClient, llm: MagicMock) -> None:
    response = client.post("/ask", json={"query": "Stroller for a toddler?", "userId": "u1"})
    assert response.status_code == 200
    assert response.json() == {
        "answer": "The S1 stroller suits toddlers.",
        "relatedProducts": [{"sku": "S1", "name": "Stroller", "price": "199"}],
    }
    prompt = llm.call_args.args[0]
    assert "User's current query: Stroller for a toddler?" in prompt
    assert "Sku: S1" in llm.call_args.kwargs["system"]

    entries = document_store.get_conversation("u1")["entries"]
    assert [(e["role"], e["content"]) for e in entries] == [
        ("User", "Stroller for a toddler?"),
        ("Bot", "The S1 stroller suits toddlers."),
    ]


def test_repeat_question_is_served_from_cache(client: TestClient, llm: MagicMock) -> None:
    body = {"question": "Any strollers?", "user": {"id": "u1", "name": "Dana", "children": [{"name": "Noa", "age": 2}]}}
    first = client.post("/chat", json=body)
    second = client.post("/chat", json=body)
    assert first.status_code == second.status_code == 200
    assert first.json() == second.json()
    assert llm.call_count == 1
    # Cached turns are not added to the conversation again
    assert len(document_store.get_conversation("u1")["entries"]) == 2

    # A different profile is a different cache key
    body["user"]["children"][0]["age"] = 3
    client.post("/chat", json=body)
    assert llm.call_count == 2


def test_profile_memory_and_history_reach_prompt(client: TestClient, llm: MagicMock) -> None:
    document_store.custom_set("u1", "memory:u1:last_summary", {"text": "Prefers eco brands."})
    memory_service.add_conversation_entries("u1", "Hi", "Hello!")
    client.post("/ask", json={
        "query": "Gift ideas?",
        "user": {"id": "u1", "name": "Dana", "children": [{"name": "Noa", "age": 2, "gender": "female"}]},
    })
    prompt = llm.call_args.args[0]
    assert "- Name: Dana\n" in prompt
    assert "  - Name: Noa, Age: 2, Gender: female, Birthday: \n" in prompt
    assert "Relevant past information for u1:\nPrefers eco brands.\n" in prompt
    assert "Current conversation history:\nUser: Hi\nBot: Hello!\n" in prompt


def test_unparseable_output_falls_back_and_is_not_saved(client: TestClient, llm: MagicMock) -> None:
    llm.return_value = "We have the S1 stroller."
    response = client.post("/ask", json={"query": "strollers?", "userId": "u1"})
    assert response.status_code == 200
    data = response.json()
    assert data["relatedProducts"] == []
    assert data["answer"].endswith("Here's the main information: We have the S1 stroller.")
    assert document_store.get_conversation("u1")["entries"] == []
    client.post("/ask", json={"query": "strollers?", "userId": "u1"})
    assert llm.call_count == 2


def test_tenth_entry_triggers_summary(client: TestClient, llm: MagicMock) -> None:
    for i in range(4):
        memory_service.add_conversation_entries("u1", f"q{i}", f"a{i}")
    with patch.object(memory_service, "complete", return_value="Has a toddler.") as summarizer:
        client.post("/ask", json={"query": "strollers?", "userId": "u1"})
    summarizer.assert_called_once()
    assert memory_service.get_conversation_memory("u1") == "Has a toddler."


# --- Errors ---

@pytest.mark.parametrize("body", [{}, {"query": ""}, {"question": "   "}, {"userId": "u1"}])
def test_missing_query_returns_400(client: TestClient, body: dict) -> None:
    response = client.post("/ask", json=body)
    assert response.status_code == 400
    assert response.json() == {"answer": "Query is required.", "relatedProducts": []}


def test_not_configured_returns_503(client: TestClient) -> None:
    with patch("product_assistant.api.handlers.vector_store_ready", return_value=False):
        response = client.post("/chat", json={"query": "strollers?"})
    assert response.status_code == 503
    assert response.json() == {
        "answer": "RAG system or prompt configuration not initialized yet for /chat",
        "relatedProducts": [],
    }


def test_broken_prompt_config_returns_503(client: TestClient, ready: None) -> None:
    with patch("product_assistant.api.handlers.get_prompt_config", side_effect=ValueError("bad JSON")):
        response = client.post("/ask", json={"query": "strollers?"})
    assert response.status_code == 503
    assert response.json() == {
        "answer": "RAG system or prompt configuration not initialized yet for /ask",
        "relatedProducts": [],
    }


def test_llm_failure_returns_500(client: TestClient, llm: MagicMock) -> None:
    llm.side_effect = TimeoutError("Request timed out")
    response = client.post("/ask", json={"query": "strollers?"})
    assert response.status_code == 500
    assert response.json() == {
        "answer": "Error processing your question",
        "relatedProducts": [],
        "details": "Request timed out",
    }


def test_invalid_json_body_returns_422(client: TestClient) -> None:
    response = client.post("/ask", content="not json", headers={"Content-Type": "application/json"})
    assert response.status_code == 422


# --- User id resolution ---

@pytest.mark.parametrize(
    "body, param, expected",
    [
        ({"user": {"id": "from-user"}, "userId": "from-body"}, "from-param", "from-user"),
        ({"userId": "from-body"}, "from-param", "from-body"),
        ({"user": {"name": "Dana"}}, "from-param", "from-param"),
        ({}, None, "default_user"),
    ],
)
def test_resolve_user_id(body: dict, param: str | None, expected: str) -> None:
    assert resolve_user_id(ChatRequest(**body), param) == expected


def test_user_id_query_param(client: TestClient, llm: MagicMock) -> None:
    client.post("/ask?userId=qp-user", json={"query": "strollers?"})
    assert document_store.has_conversation("qp-user")


def test_cache_key_uses_profile_metadata(client: TestClient, llm: MagicMock) -> None:
    client.post("/ask", json={"query": "bibs?", "user": {"id": "u9", "name": "Dana"}})
    key = 'cache:u9:bibs?:' + json.dumps({"name": "Dana", "children": []}, separators=(",", ":"))
    assert document_store.custom_get(key)["data"]["answer"] == "The S1 stroller suits toddlers."


# --- Lenient request bodies ---

def test_null_children_treated_as_none(client: TestClient, llm: MagicMock) -> None:
    response = client.post("/ask", json={"query": "strollers?", "user": {"id": "u1", "name": "Dana", "children": None}})
    assert response.status_code == 200
    prompt = llm.call_args.args[0]
    assert "- Name: Dana\n" in prompt
    assert "- Children:" not in prompt


@pytest.mark.parametrize(
    "body, expected_user",
    [
        ({"query": "strollers?", "user": {"id": 42}}, "42"),
        ({"query": "strollers?", "userId": 42}, "42"),
    ],
)
def test_numeric_user_id_accepted(client: TestClient, llm: MagicMock, body: dict, expected_user: str) -> None:
    response = client.post("/ask", json=body)
    assert response.status_code == 200
    assert document_store.has_conversation(expected_user)


def test_numeric_query_accepted(client: TestClient, llm: MagicMock) -> None:
    response = client.post("/ask", json={"query": 123, "userId": "u1"})
    assert response.status_code == 200
    assert "User's current query: 123" in llm.call_args.args[0]


def test_numeric_user_without_query_returns_400(client: TestClient) -> None:
    response = client.post("/ask", json={"user": {"id": 42}})
    assert response.status_code == 400
    assert response.json() == {"answer": "Query is required.", "relatedProducts": []}
