"""
Response cache: full chat responses keyed by user, query, and profile metadata.

Store errors are treated as a cache miss (get) or a failed write (set); they never
fail the request.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any

from product_assistant.core import document_store

logger = logging.getLogger(__name__)


def generate_cache_key(user_id: str, query: str, user_metadata: dict[str, Any] | None) -> str:
    """cache:{user_id}:{query}:{compact JSON of metadata}. Key order of metadata is preserved."""
    metadata_string = json.dumps(user_metadata or {}, separators=(",", ":"), ensure_ascii=False)
    return f"cache:{user_id}:{query}:{metadata_string}"


def get_cached_result(
    user_id: str, query: str, user_metadata: dict[str, Any] | None
) -> dict[str, Any] | None:
    """Return the cached response for this key, or None on miss."""
    cache_key = generate_cache_key(user_id, query, user_metadata)
    try:
        logger.info("[cache:get] key=%s", cache_key[:120])
        document = document_store.custom_get(cache_key)
    except Exception as e:
        logger.warning("[cache:get] store error (treating as cache miss): %s", e)
        return None

    if document and document.get("data"):
        logger.info("[cache:get] HIT query=%r user=%s", query[:30], user_id)
        return document["data"]

    logger.info("[cache:get] MISS key=%s", cache_key[:120])
    return None


def set_cached_result(
    user_id: str, query: str, user_metadata: dict[str, Any] | None, data: dict[str, Any]
) -> bool:
    """Store data under the cache key. Returns False if the store write failed."""
    cache_key = generate_cache_key(user_id, query, user_metadata)
    try:
        logger.info("[cache:set] key=%s", cache_key[:120])
        document_store.custom_set(
            user_id,
            cache_key,
            {"data": data, "timestamp": datetime.now(timezone.utc).isoformat()},
        )
        return True
    except Exception as e:
        logger.error("[cache:set] error setting cache: %s", e)
        return False
