"""
Retrieval: semantic product search, SKU boost, optional HF rerank.

Responsibility: Query Milvus with the user's question and return the product documents
used as context for the answer.
"""

import logging
import re

import httpx

from product_assistant.core.config import (
    COLLECTION_NAME,
    HF_API_KEY,
    HF_RERANK_MODEL,
    RERANK_API_TIMEOUT,
    RERANK_ENABLED,
    SEARCH_RESULT_COUNT,
)
from product_assistant.services.vector_store import embed_texts, get_milvus_client

logger = logging.getLogger(__name__)

HF_RERANK_URL = f"https://router.huggingface.co/hf-inference/models/{HF_RERANK_MODEL}"
# Candidate pool searched before reranking down to SEARCH_RESULT_COUNT
RERANK_POOL: int = 50

_TOKEN = re.compile(r"[\w\-]+")


def search_products(query: str, top_k: int = SEARCH_RESULT_COUNT) -> list[dict]:
    """
    Embed query, search Milvus, return candidates {id, text, score, metadata: {sku, source}}.
    """
    logger.info("[retrieval:search_products] IN  query=%r top_k=%d", query, top_k)
    if not query or not query.strip():
        return []

    query_vec = embed_texts([query.strip()])
    if not query_vec:
        logger.warning("[retrieval:search_products] embed_texts returned empty")
        return []

    client = get_milvus_client()
    results = client.search(
        collection_name=COLLECTION_NAME,
        data=query_vec,
        limit=top_k,
        output_fields=["text", "sku", "source"],
    )

    # results: list of list of hits (one list per query vector)
    hits = results[0] if results else []
    candidates = []
    for h in hits:
        entity = h.get("entity") or h
        candidates.append({
            "id": h.get("id", entity.get("id")),
            "text": entity.get("text", ""),
            "score": float(h.get("distance", h.get("score", 0.0))),
            "metadata": {
                "sku": entity.get("sku", ""),
                "source": entity.get("source", ""),
            },
        })
    logger.info("[retrieval:search_products] OUT candidates=%d first_skus=%s first_scores=%s",
                len(candidates),
                [c["metadata"]["sku"] for c in candidates[:5]],
                [round(c["score"], 4) for c in candidates[:5]])
    return candidates


def _boost_by_sku(query: str, candidates: list[dict]) -> list[dict]:
    """
    Move candidates whose SKU appears as a token in the query to the front (stable).
    """
    if not candidates or not query:
        return candidates
    tokens = {t.lower() for t in _TOKEN.findall(query)}
    if not tokens:
        return candidates
    matched = [c for c in candidates if (c["metadata"].get("sku") or "").lower() in tokens]
    if not matched:
        return candidates
    rest = [c for c in candidates if c not in matched]
    return matched + rest


def rerank_with_hf(query: str, results: list[dict], top_k: int = SEARCH_RESULT_COUNT) -> list[dict]:
    """
    Rerank candidates using Hugging Face Inference API (BAAI/bge-reranker-base).
    Falls back to the incoming order on any API failure.
    """
    if not results or not query or not HF_API_KEY:
        return results[:top_k]

    inputs = [{"text": query, "text_pair": r["text"]} for r in results]
    headers = {
        "Authorization": f"Bearer {HF_API_KEY}",
        "Content-Type": "application/json",
    }
    payload = {"inputs": inputs, "options": {"wait_for_model": True}}

    try:
        with httpx.Client(timeout=RERANK_API_TIMEOUT) as client:
            response = client.post(HF_RERANK_URL, json=payload, headers=headers)
        if response.status_code != 200:
            logger.warning("Reranker API error %s: %s", response.status_code, response.text[:200])
            return results[:top_k]
        data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("Reranker request failed: %s", e)
        return results[:top_k]

    # Router returns either [s1, s2, ...], [[s1, s2, ...]] or [{"score": s1}, ...]
    if isinstance(data, list) and len(data) == 1 and isinstance(data[0], list):
        data = data[0]
    if not isinstance(data, list) or len(data) != len(results):
        logger.warning("Reranker returned unexpected shape; keeping vector order")
        return results[:top_k]

    def to_score(item) -> float:
        if isinstance(item, (int, float)):
            return float(item)
        if isinstance(item, dict):
            return float(item.get("score", 0.0))
        if isinstance(item, list) and item and isinstance(item[0], (int, float)):
            return float(item[0])
        return 0.0

    order = sorted(range(len(results)), key=lambda i: -to_score(data[i]))
    reranked = [results[i] for i in order[:top_k]]
    logger.info("[retrieval:rerank_with_hf] OUT reranked=%d skus=%s",
                len(reranked), [r["metadata"].get("sku") for r in reranked])
    return reranked


def retrieve_context(query: str) -> list[dict]:
    """
    Pipeline: semantic search (Milvus) → optional HF rerank → SKU boost → top products.
    """
    logger.info("[retrieval:retrieve_context] IN  query=%r rerank=%s", query, RERANK_ENABLED)
    if not query or not query.strip():
        return []
    pool = max(RERANK_POOL, SEARCH_RESULT_COUNT) if RERANK_ENABLED else SEARCH_RESULT_COUNT
    candidates = search_products(query, top_k=pool)
    if RERANK_ENABLED:
        candidates = rerank_with_hf(query, candidates, top_k=SEARCH_RESULT_COUNT)
    top = _boost_by_sku(query, candidates)[:SEARCH_RESULT_COUNT]
    logger.info("[retrieval:retrieve_context] OUT products=%d", len(top))
    return top
