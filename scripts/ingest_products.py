#!/usr/bin/env python3
"""
Import the products CSV into the catalog DB and embed every product into Milvus.

Step 1 upserts all rows into data/catalog.db (by SKU).
Step 2 embeds the products in batches; progress is saved after each batch, so an
interrupted run resumes where it stopped. Use --reset-progress to drop the collection
and embed from the start.

Run from project root:

    python scripts/ingest_products.py
    python scripts/ingest_products.py --csv data/products.csv --reset-progress
    python scripts/ingest_products.py --skip-embeddings
"""

import argparse
import logging
import sys
from pathlib import Path

# Project root on path so "product_assistant" resolves
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from product_assistant.core.config import EMBED_PROGRESS_PATH, LOG_LEVEL, PRODUCTS_CSV_PATH
from product_assistant.services.ingestion_service import generate_embeddings, import_products
from product_assistant.services.vector_store import clear_collection, close_client, get_collection_stats


def main() -> int:
    parser = argparse.ArgumentParser(description="Import products and generate embeddings.")
    parser.add_argument("--csv", default=str(PRODUCTS_CSV_PATH), help="Path to the products CSV.")
    parser.add_argument(
        "--reset-progress",
        action="store_true",
        help="Drop the vector collection and saved progress, then embed every product again.",
    )
    parser.add_argument(
        "--skip-embeddings",
        action="store_true",
        help="Only import the CSV into the catalog DB.",
    )
    args = parser.parse_args()
    logging.basicConfig(level=LOG_LEVEL)

    csv_path = Path(args.csv)
    if not csv_path.is_file():
        print(f"CSV file not found: {csv_path}", file=sys.stderr)
        return 1

    print("=== Step 1: importing products into the catalog ===")
    imported = import_products(csv_path)
    print(f"Imported {imported} products.")
    if args.skip_embeddings:
        return 0

    print("=== Step 2: generating embeddings ===")
    try:
        if args.reset_progress:
            clear_collection()
            print("Dropped the vector collection.")
            if EMBED_PROGRESS_PATH.exists():
                EMBED_PROGRESS_PATH.unlink()
                print(f"Removed progress file {EMBED_PROGRESS_PATH}.")
        embedded = generate_embeddings(csv_path, EMBED_PROGRESS_PATH)
        stats = get_collection_stats()
    except Exception as e:
        print(f"Embedding generation failed or was interrupted: {e}", file=sys.stderr)
        return 1
    finally:
        close_client()

    print(f"Embedded {embedded} products this run; collection {stats['collection_name']} "
          f"holds {stats['total_documents']} documents.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
