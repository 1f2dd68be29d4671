"""
Vector store client: Milvus connection, embeddings (HF Inference API), and product document storage.

Responsibility: Connect to Milvus, embed texts via all-MiniLM-L6-v2, store product documents
with their SKU so search hits can be traced back to the catalog.
"""

import logging
import threading
from typing import Any

import httpx
from pymilvus import MilvusClient

from product_assistant.core.config import (
    COLLECTION_NAME,
    EMBED_API_TIMEOUT,
    EMBED_BATCH_SIZE,
    HF_API_KEY,
    HF_EMBED_MODEL,
    MILVUS_TOKEN,
    MILVUS_URI,
    VECTOR_DIM,
)
from product_assistant.core.errors import ServiceUnavailableError

logger = logging.getLogger(__name__)

HF_API_URL_ROUTER = (
    "https://router.huggingface.co/hf-inference/models/"
    f"{HF_EMBED_MODEL}/pipeline/feature-extraction"
)
HF_API_URL_STANDARD = f"https://api-inference.huggingface.co/models/{HF_EMBED_MODEL}"

_client: MilvusClient | None = None
_client_lock = threading.Lock()


def is_configured() -> bool:
    """Milvus URI and HF key are both required to embed and search."""
    return bool(MILVUS_URI and HF_API_KEY)


def _normalize(vec: list[float]) -> list[float]:
    norm = sum(x * x for x in vec) ** 0.5
    if norm == 0:
        norm = 1.0
    return [x / norm for x in vec]


def embed_texts(
    texts: list[str], batch_size: int | None = None
) -> list[list[float]]:
    """
    Batch embed texts using Hugging Face Inference API (all-MiniLM-L6-v2).

    Returns list of 384-dim vectors (normalized for cosine similarity).
    """
    batch_size = batch_size if batch_size is not None else EMBED_BATCH_SIZE
    if not texts:
        return []
    if not HF_API_KEY:
        raise ServiceUnavailableError(
            "HF_API_KEY must be set in .env. Get a token from https://huggingface.co/settings/tokens"
        )

    headers = {
        "Authorization": f"Bearer {HF_API_KEY}",
        "Content-Type": "application/json",
    }
    all_embeddings: list[list[float]] = []

    with httpx.Client(timeout=EMBED_API_TIMEOUT) as client:
        for i in range(0, len(texts), batch_size):
            batch = texts[i : i + batch_size]
            payload = {"inputs": batch, "options": {"wait_for_model": True}}
            response = client.post(HF_API_URL_ROUTER, json=payload, headers=headers)
            if response.status_code == 403:
                # Some tokens are not allowed on the router; the standard endpoint may still accept them.
                response = client.post(HF_API_URL_STANDARD, json=payload, headers=headers)

            if response.status_code != 200:
                msg = response.text[:300]
                if response.status_code == 503:
                    raise RuntimeError(f"HF model is loading. Retry later. {msg}")
                if response.status_code == 401:
                    raise ValueError(
                        "Invalid HF API key. Check HF_API_KEY at https://huggingface.co/settings/tokens"
                    )
                if response.status_code == 403:
                    raise ValueError(
                        f"HF token lacks Inference API permission. Create a token with read access. {msg}"
                    )
                raise RuntimeError(f"HF API error {response.status_code}: {msg}")

            result = response.json()
            if isinstance(result, list) and result and isinstance(result[0], list):
                batch_emb = result
            else:
                raise RuntimeError(f"Unexpected HF embedding response shape: {str(result)[:200]}")
            all_embeddings.extend(_normalize(vec) for vec in batch_emb)

    logger.info("[vector_store:embed_texts] embedded %d texts", len(all_embeddings))
    return all_embeddings


def get_milvus_client() -> MilvusClient:
    """
    Return the shared Milvus client, connecting on first use. Creates the product
    collection if it does not exist (dim 384 for all-MiniLM-L6-v2).
    """
    global _client
    if not MILVUS_URI:
        raise ServiceUnavailableError("MILVUS_URI must be set in .env")

    with _client_lock:
        if _client is not None:
            return _client
        client = MilvusClient(uri=MILVUS_URI, token=MILVUS_TOKEN)
        logger.info("Milvus connection established")
        if not client.has_collection(COLLECTION_NAME):
            client.create_collection(
                collection_name=COLLECTION_NAME,
                dimension=VECTOR_DIM,
                primary_field_name="id",
                vector_field_name="vector",
                metric_type="COSINE",
                auto_id=True,
            )
            logger.info("Collection %s created (dim=%s)", COLLECTION_NAME, VECTOR_DIM)
        _client = client
        return _client


def close_client() -> None:
    """Close the shared Milvus client, if one was opened."""
    global _client
    with _client_lock:
        if _client is not None:
            _client.close()
            _client = None
            logger.info("Milvus connection closed")


def store_product_documents(docs: list[dict[str, Any]]) -> int:
    """
    Embed each product document ({"text", "sku", "source"}) and insert into Milvus,
    then flush the collection. Returns the number of rows inserted.
    """
    if not docs:
        return 0

    embeddings = embed_texts([d["text"] for d in docs])
    rows = [
        {
            "vector": emb,
            "text": d["text"],
            "sku": d.get("sku", ""),
            "source": d.get("source", ""),
        }
        for d, emb in zip(docs, embeddings)
    ]

    client = get_milvus_client()
    client.insert(collection_name=COLLECTION_NAME, data=rows)
    client.flush(collection_name=COLLECTION_NAME)
    logger.info("Embedded and stored %d product documents", len(rows))
    return len(rows)


def clear_collection() -> None:
    """
    Drop the product collection. It is recreated empty on the next client connection.
    """
    client = get_milvus_client()
    if client.has_collection(COLLECTION_NAME):
        client.drop_collection(collection_name=COLLECTION_NAME)
        logger.info("Collection %s dropped", COLLECTION_NAME)
    close_client()


def get_collection_stats() -> dict:
    """Return collection name and number of stored product documents."""
    client = get_milvus_client()
    stats = client.get_collection_stats(collection_name=COLLECTION_NAME)
    return {
        "collection_name": COLLECTION_NAME,
        "total_documents": int(stats.get("row_count", 0)),
    }
