# Run from project root: uvicorn product_assistant.main:app --reload
# or: python -m product_assistant.main

import logging
import time
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from product_assistant.api.routes import router
from product_assistant.core import catalog_db, document_store
from product_assistant.core.config import LOG_LEVEL, PORT
from product_assistant.core.network import log_server_urls
from product_assistant.core.prompts import get_prompt_config
from product_assistant.services.vector_store import close_client

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Initializing product catalog and document store...")
    catalog_db.init_db()
    document_store.init_db()
    get_prompt_config()
    logger.info("Product catalog: %d products", catalog_db.count_products())
    yield
    logger.info("Shutting down gracefully...")
    close_client()


app = FastAPI(title="Product Assistant RAG API", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    logger.info(
        "%s %s %d %.1f ms",
        request.method,
        request.url.path,
        response.status_code,
        (time.perf_counter() - start) * 1000,
    )
    return response


app.include_router(router)


if __name__ == "__main__":
    log_server_urls(PORT)
    uvicorn.run(app, host="0.0.0.0", port=PORT)
