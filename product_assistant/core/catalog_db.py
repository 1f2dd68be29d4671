"""
SQLite product catalog keyed by SKU.

Creates data/catalog.db (CATALOG_DB_PATH). Table: products (sku, name, data, updated_at),
where data is the full CSV row as JSON. Used to enrich SKUs returned by the LLM.
"""

import json
import logging
import sqlite3
from datetime import datetime, timezone
from typing import Any, Iterable

from product_assistant.core.config import CATALOG_DB_PATH

logger = logging.getLogger(__name__)

_DB_PATH = CATALOG_DB_PATH
_TABLE = "products"
MISSING_SKU = "N/A"


def _get_conn() -> sqlite3.Connection:
    _DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    return sqlite3.connect(str(_DB_PATH))


def init_db() -> None:
    """Create the products table if it does not exist."""
    conn = _get_conn()
    try:
        conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {_TABLE} (
                sku TEXT PRIMARY KEY,
                name TEXT NOT NULL DEFAULT '',
                data TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """
        )
        conn.execute(f"CREATE INDEX IF NOT EXISTS idx_{_TABLE}_name ON {_TABLE} (name)")
        conn.commit()
    finally:
        conn.close()


def upsert_products(records: Iterable[dict[str, Any]]) -> tuple[int, int]:
    """
    Insert or update products by SKU. A blank or missing SKU is stored as "N/A".
    Returns (inserted, updated).
    """
    init_db()
    now = datetime.now(timezone.utc).isoformat()
    inserted = updated = 0
    conn = _get_conn()
    try:
        for record in records:
            sku = str(record.get("sku") or "").strip() or MISSING_SKU
            row = {**record, "sku": sku}
            exists = conn.execute(f"SELECT 1 FROM {_TABLE} WHERE sku = ?", (sku,)).fetchone()
            conn.execute(
                f"""
                INSERT INTO {_TABLE} (sku, name, data, updated_at) VALUES (?, ?, ?, ?)
                ON CONFLICT(sku) DO UPDATE SET
                    name = excluded.name, data = excluded.data, updated_at = excluded.updated_at
                """,
                (sku, str(row.get("name") or ""), json.dumps(row), now),
            )
            if exists:
                updated += 1
            else:
                inserted += 1
        conn.commit()
    finally:
        conn.close()
    logger.info("[catalog_db] upserted products: %d new, %d updated", inserted, updated)
    return inserted, updated


def get_products_by_skus(skus: Any) -> list[dict[str, Any]]:
    """
    Return catalog rows for the given SKUs, in request order. Unknown SKUs are skipped,
    duplicates collapse. Invalid input or a store error yields [].
    """
    if not isinstance(skus, list) or not skus:
        return []
    wanted = list(dict.fromkeys(str(s) for s in skus))
    try:
        init_db()
        conn = _get_conn()
        try:
            placeholders = ",".join("?" for _ in wanted)
            rows = conn.execute(
                f"SELECT sku, data FROM {_TABLE} WHERE sku IN ({placeholders})", wanted
            ).fetchall()
        finally:
            conn.close()
    except sqlite3.Error as e:
        logger.error("[catalog_db] error fetching products by SKUs: %s", e)
        return []
    by_sku = {sku: json.loads(data) for sku, data in rows}
    products = [by_sku[s] for s in wanted if s in by_sku]
    logger.info("[catalog_db:get_products_by_skus] requested=%d found=%d", len(wanted), len(products))
    return products


def count_products() -> int:
    init_db()
    conn = _get_conn()
    try:
        return conn.execute(f"SELECT COUNT(*) FROM {_TABLE}").fetchone()[0]
    finally:
        conn.close()
