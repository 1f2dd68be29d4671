"""
Application configuration (env, settings, constants).

Responsibility: Centralize config loading, environment variables, and app-wide
constants. Keeps the rest of the app decoupled from how config is sourced.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Project root (paths below are relative to it unless absolute)
PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent.parent


def _path_from_env(name: str, default: str) -> Path:
    raw = os.getenv(name, "").strip() or default
    path = Path(raw)
    return path if path.is_absolute() else PROJECT_ROOT / path


# Server
PORT: int = int(os.getenv("PORT", "3000"))
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"

# OpenAI (answer + summary LLM). When set, OpenAI is used instead of Hugging Face.
OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "").strip()
OPENAI_LLM_MODEL: str = os.getenv("OPENAI_LLM_MODEL", "gpt-4o").strip() or "gpt-4o"

# Hugging Face (embeddings, optional rerank, fallback LLM)
HF_API_KEY: str = os.getenv("HF_API_KEY", "").strip()
HF_EMBED_MODEL: str = "sentence-transformers/all-MiniLM-L6-v2"
HF_RERANK_MODEL: str = "BAAI/bge-reranker-base"
HF_CHAT_URL: str = "https://router.huggingface.co/v1/chat/completions"
HF_LLM_MODEL: str = (
    os.getenv("HF_LLM_MODEL", "meta-llama/Llama-3.2-3B-Instruct").strip()
    or "meta-llama/Llama-3.2-3B-Instruct"
)

# RAG tuning
TEMPERATURE: float = float(os.getenv("TEMPERATURE", "0.1"))
SEARCH_RESULT_COUNT: int = int(os.getenv("SEARCH_RESULT_COUNT", "10"))
EMBED_BATCH_SIZE: int = int(os.getenv("EMBEDDING_BATCH_SIZE", "32"))
RERANK_ENABLED: bool = os.getenv("RERANK_ENABLED", "false").strip().lower() in ("1", "true", "yes")
ANSWER_MAX_TOKENS: int = 1000
SUMMARY_MAX_TOKENS: int = 400

# Milvus (from env). Token is optional for a local standalone Milvus.
MILVUS_URI: str = os.getenv("MILVUS_URI", "").strip()
MILVUS_TOKEN: str = os.getenv("MILVUS_TOKEN", "").strip()
COLLECTION_NAME: str = os.getenv("MILVUS_COLLECTION_NAME", "product_embeddings").strip() or "product_embeddings"
# sentence-transformers/all-MiniLM-L6-v2 = 384
VECTOR_DIM: int = 384

# SQLite stores
STORE_DB_PATH: Path = _path_from_env("STORE_DB_PATH", "data/store.db")
CATALOG_DB_PATH: Path = _path_from_env("CATALOG_DB_PATH", "data/catalog.db")

# Product ingestion
PRODUCTS_CSV_PATH: Path = _path_from_env("PRODUCTS_CSV_PATH", "data/products.csv")
EMBED_PROGRESS_PATH: Path = _path_from_env("EMBED_PROGRESS_PATH", "data/embedding_progress.json")
MAX_CHARS_PER_EMBED_BATCH: int = 750_000

# Conversation memory
HISTORY_WINDOW: int = 10
SUMMARY_INTERVAL: int = 10

# API timeouts (seconds). LLM_API_TIMEOUT bounds the answer call of a chat request.
EMBED_API_TIMEOUT: float = 30.0
RERANK_API_TIMEOUT: float = 60.0
LLM_API_TIMEOUT: float = float(os.getenv("LLM_API_TIMEOUT", "15"))

# Optional JSON file overriding the built-in prompt instructions
PROMPTS_CONFIG_PATH: str = os.getenv("PROMPTS_CONFIG_PATH", "").strip()
