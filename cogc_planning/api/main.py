"""COGC planning assistant FastAPI application: entry point.

Start with:
    uvicorn cogc_planning.api.main:app --reload --host 0.0.0.0 --port 8000

LLM and OCR clients are built from env (MISTRAL_API_KEY, or LLM_API_KEY /
OCR_API_KEY). Without a key the no-op clients are used: the server starts,
bulletin imports answer with a configuration message and planning questions
still work through the keyword classifier.
"""
from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from cogc_planning.api.errors import error_response, install_error_handlers
from cogc_planning.api.routers import chat
from cogc_planning.bulletin.structuring import StructuringAdapter
from cogc_planning.clients.llm.registry import build_llm_client
from cogc_planning.clients.ocr import build_ocr_client
from cogc_planning.clients.retry import RetryPolicy
from cogc_planning.config.assistant import load_assistant_config
from cogc_planning.core.exceptions import UnauthorizedError
from cogc_planning.core.logger import configure
from cogc_planning.infra.database.engine import (
    build_engine,
    build_session_factory,
    close_engine,
    ensure_database_exists,
    init_db,
)
from cogc_planning.qa.llm_classifier import QALLMClassifier
from cogc_planning.qa.pre_classifier import QAPreClassifier
from cogc_planning.qa.resolver import QAIntentResolver
from cogc_planning.services.catalog_service import load_service_catalog

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # ── Startup ──────────────────────────────────────────────────
    configure()

    await ensure_database_exists()
    engine = build_engine()
    session_factory = build_session_factory(engine)
    await init_db()

    app.state.session_factory = session_factory

    config = load_assistant_config()
    app.state.assistant_config = config

    llm_client = build_llm_client(config.llm_provider, config.llm_client_config())
    has_llm = llm_client.provider != "noop"
    logger.info("API: LLM provider %s (%s)", llm_client.provider, config.llm_model if has_llm else "-")

    ocr_client = build_ocr_client(api_key=config.ocr_api_key, url=config.ocr_url, model=config.ocr_model)
    app.state.ocr_client = ocr_client

    retry = RetryPolicy(
        max_attempts=config.retry_max_attempts,
        base_delay=config.retry_base_delay,
        max_delay=config.retry_max_delay,
    )
    app.state.ocr_retry = retry.with_timeout(config.ocr_timeout)
    app.state.structuring = StructuringAdapter(llm_client, retry.with_timeout(config.llm_timeout))

    # Catalog is loaded once; a restart picks up table changes
    async with session_factory() as session:
        catalog = await load_service_catalog(session)
    app.state.catalog = catalog
    logger.info("API: service catalog loaded (%d codes)", len(catalog))

    postes = tuple(sorted(catalog.postes))
    app.state.qa_resolver = QAIntentResolver(
        QAPreClassifier(postes) if postes else QAPreClassifier(),
        QALLMClassifier(llm_client, postes=postes, timeout_seconds=config.llm_timeout) if has_llm else None,
    )
    app.state.conversational_llm = llm_client if has_llm and config.conversational_fallback else None
    logger.info("API: chat-bulletin ready")

    yield

    # ── Shutdown ─────────────────────────────────────────────────
    await ocr_client.aclose()
    await close_engine()
    logger.info("API: engine disposed")


app = FastAPI(
    title="COGC Planning Assistant API",
    version="1.0.0",
    description="Shift-bulletin import and planning questions for COGC agents.",
    lifespan=lifespan,
)

# Per-route limits live on the router's limiter (CHAT_RATE_LIMIT)
app.state.limiter = chat.limiter
install_error_handlers(app)

# CORS: web front-end dev server plus CORS_ORIGINS
_allowed_origins = os.environ.get(
    "CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000"
).split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Optional API key authentication ──────────────────────────────
# Set ADMIN_API_KEY env var to protect all /api/v1/* endpoints.
# Requests must then include the header:  X-Api-Key: <value>
# If ADMIN_API_KEY is not set the check is skipped (dev/open mode).
_ADMIN_API_KEY = os.environ.get("ADMIN_API_KEY", "").strip() or None


@app.middleware("http")
async def api_key_middleware(request: Request, call_next):
    if _ADMIN_API_KEY and request.url.path.startswith("/api/v1"):
        provided = request.headers.get("X-Api-Key")
        if provided != _ADMIN_API_KEY:
            return error_response(UnauthorizedError("Missing or invalid X-Api-Key header"))
    return await call_next(request)


# ── Routers ───────────────────────────────────────────────────────

app.include_router(chat.router, prefix="/api/v1")


@app.get("/health", tags=["health"])
async def health():
    return {"status": "ok"}
