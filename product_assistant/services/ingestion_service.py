"""
Product ingestion: load the products CSV, upsert it into the catalog, and embed each
product into Milvus.

Embedding is resumable: after every successful batch the index of the last processed
record is written to a progress file, and the next run starts right after it. A failing
batch does not advance the progress file. Called by scripts/ingest_products.py; no HTTP here.
"""

import csv
import json
import logging
import time
from pathlib import Path
from typing import Any

from product_assistant.core import catalog_db
from product_assistant.core.config import EMBED_BATCH_SIZE, MAX_CHARS_PER_EMBED_BATCH
from product_assistant.services.text_processing import product_to_text
from product_assistant.services.vector_store import store_product_documents

logger = logging.getLogger(__name__)


def load_products_csv(csv_path: str | Path) -> list[dict[str, str]]:
    """Read the CSV with a header row; fully blank lines are skipped."""
    with open(csv_path, newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        return [
            row for row in reader
            if any((v or "").strip() for v in row.values())
        ]


def import_products(csv_path: str | Path) -> int:
    """Upsert every CSV row into the catalog. Returns the number of rows read."""
    logger.info("Importing products from %s", csv_path)
    records = load_products_csv(csv_path)
    logger.info("Found %d products in CSV file", len(records))
    if records:
        catalog_db.upsert_products(records)
    return len(records)


def read_last_processed_index(progress_path: Path) -> int:
    """Index of the last embedded record, or -1 when there is no (readable) progress."""
    if not progress_path.is_file():
        return -1
    try:
        data = json.loads(progress_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Could not read progress file %s, starting from scratch: %s", progress_path, e)
        return -1
    index = data.get("lastProcessedRecordIndex") if isinstance(data, dict) else None
    return index if isinstance(index, int) else -1


def save_progress(progress_path: Path, index: int) -> None:
    progress_path.parent.mkdir(parents=True, exist_ok=True)
    progress_path.write_text(json.dumps({"lastProcessedRecordIndex": index}), encoding="utf-8")


def _record_size(record: dict[str, Any]) -> int:
    return len(",".join(str(v or "") for v in record.values()))


def _to_document(record: dict[str, Any], source: str) -> dict[str, str]:
    sku = str(record.get("sku") or "").strip()
    if not sku:
        logger.warning("Record is missing a valid SKU (will still be embedded): %s", json.dumps(record)[:200])
    return {"text": product_to_text(record), "sku": sku, "source": source}


def generate_embeddings(
    csv_path: str | Path,
    progress_path: str | Path,
    batch_size: int = EMBED_BATCH_SIZE,
    max_chars: int = MAX_CHARS_PER_EMBED_BATCH,
) -> int:
    """
    Embed products in batches of up to batch_size records and max_chars characters,
    resuming from the progress file. Returns the number of records embedded this run.

    A record larger than max_chars on its own is skipped (and counted as processed).
    Errors from the embedding/vector store propagate after the progress file has been
    left at the last good batch.
    """
    progress_path = Path(progress_path)
    records = load_products_csv(csv_path)
    total = len(records)
    source = Path(csv_path).name
    if not total:
        logger.info("CSV file is empty or has no header.")
        return 0

    current = read_last_processed_index(progress_path) + 1
    if current >= total:
        logger.info("All %d records were already processed according to %s", total, progress_path)
        return 0
    if current > 0:
        logger.info("Resuming from record index %d (approx %d%% completed)", current, round(current / total * 100))

    start_time = time.time()
    embedded = 0
    batch_number = 0
    while current < total:
        batch_number += 1
        batch: list[dict[str, Any]] = []
        batch_chars = 0
        batch_start = current

        while current < total and len(batch) < batch_size:
            size = _record_size(records[current])
            if batch and batch_chars + size > max_chars:
                break
            if not batch and size > max_chars:
                break
            batch.append(records[current])
            batch_chars += size
            current += 1

        if not batch:
            logger.error(
                "Record at index %d is too large by itself (~%d chars > %d). Skipping it.",
                current, _record_size(records[current]), max_chars,
            )
            save_progress(progress_path, current)
            current += 1
            continue

        logger.info(
            "Embedding batch %d (records %d to %d), ~%d characters",
            batch_number, batch_start + 1, current, batch_chars,
        )
        try:
            store_product_documents([_to_document(r, source) for r in batch])
        except Exception:
            logger.error(
                "Batch %d failed (records %d to %d); progress not saved, rerun to retry",
                batch_number, batch_start + 1, current,
            )
            raise
        save_progress(progress_path, current - 1)
        embedded += len(batch)
        logger.info("Processed %d of %d records (%d%%)", current, total, round(current / total * 100))

    logger.info("Embedding generation completed in %.1f s (%d records)", time.time() - start_time, embedded)
    return embedded
