"""
CherryAi - API Routes
======================
Thin controllers between HTTP and ``RAGManager``:
  - ``GET  /``           → browser UI
  - ``POST /api/query``  → run the RAG pipeline for one query
  - ``GET  /health``     → liveness + memory sizes

The ``RAGManager`` singleton lives on ``app.state.rag`` (see
``cherry.src.main``).  No business logic lives in this file.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator

from cherry.config.prompt_templates import GENERIC_ERROR_MESSAGE
from cherry.config.settings import settings
from cherry.src.core.rag_engine import RAGManager
from cherry.src.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


class QueryRequest(BaseModel):
    query: str = Field(..., description="The user's question")

    @field_validator("query")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("query must not be blank")
        return v.strip()


class RelevantLink(BaseModel):
    title: str
    link: str
    snippet: str | None = None


class QueryResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    answer: str
    relevant_links: list[RelevantLink] = Field(default_factory=list, alias="relevantLinks")


class ErrorResponse(BaseModel):
    error: str


def _rag(request: Request) -> RAGManager:
    return request.app.state.rag


@router.get("/", response_class=HTMLResponse)
def home() -> HTMLResponse:
    return HTMLResponse((settings.STATIC_DIR / "index.html").read_text(encoding="utf-8"))


@router.post(
    "/api/query",
    response_model=QueryResponse,
    response_model_exclude_none=True,
    responses={500: {"model": ErrorResponse}},
)
async def api_query(req: QueryRequest, request: Request):
    rag = _rag(request)
    logger.info("Incoming query: %d chars (history=%d)", len(req.query), len(rag.history))
    try:
        result = await rag.generate_response(req.query)
    except Exception:
        logger.exception("Query processing failed.")
        return JSONResponse({"error": GENERIC_ERROR_MESSAGE}, status_code=500)

    return QueryResponse.model_validate(result)


@router.get("/health")
def health(request: Request) -> dict:
    rag = _rag(request)
    return {"status": "ok", "history_entries": len(rag.history), "vector_rows": rag.vector_store.count()}
