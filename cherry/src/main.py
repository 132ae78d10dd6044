"""
CherryAi - Application Entry Point
===================================
FastAPI application factory.  Builds the process-wide singletons once,
at startup:

    embedder      → ``GoogleGenerativeAIEmbeddings``
    vector store  → ``CherryVectorStore`` (fresh, empty table)
    RAG manager   → ``RAGManager`` (chat history, LLM, web search)

and exposes them to the routes through ``app.state.rag``.  Tests pass a
ready ``RAGManager`` to ``create_app`` and skip the startup wiring.

Run:
    uvicorn cherry.src.main:app
    python -m cherry.scripts.serve
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cherry.config.settings import settings
from cherry.src.api.routes import router
from cherry.src.core.rag_engine import RAGManager
from cherry.src.database.vector_store import CherryVectorStore
from cherry.src.utils.logger import get_logger

logger = get_logger(__name__)


def build_rag_manager() -> RAGManager:
    """Create the embedder, an empty vector store and the RAG manager."""
    from langchain_google_genai import GoogleGenerativeAIEmbeddings

    logger.info("Initialising embedding model: %s", settings.EMBEDDING_MODEL)
    embedder = GoogleGenerativeAIEmbeddings(model=settings.EMBEDDING_MODEL, google_api_key=settings.GOOGLE_API_KEY.get_secret_value())
    store = CherryVectorStore(embedder=embedder)
    return RAGManager(store)


def _validation_error_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request body"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    return f"{location}: {first.get('msg', 'invalid value')}" if location else str(first.get("msg", "Invalid request body"))


def create_app(rag_manager: RAGManager | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.rag is None:
            app.state.rag = build_rag_manager()
            logger.info("RAG manager ready.")
        yield

    app = FastAPI(title="CherryAi", version="1.0.0", lifespan=lifespan)
    app.state.rag = rag_manager

    if settings.ENV == "dev":
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.exception_handler(RequestValidationError)
    async def _invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        message = _validation_error_message(exc)
        logger.warning("Rejected request to %s: %s", request.url.path, message)
        return JSONResponse({"error": message}, status_code=400)

    app.include_router(router)
    return app


app = create_app()
