"""
CherryAi - Centralized Configuration
=====================================
Uses ``pydantic-settings`` (``BaseSettings``) to load *all* configuration
from environment variables and the project-level ``.env`` file.

Security
--------
- ``GOOGLE_API_KEY`` is typed as ``SecretStr`` and has **no default value**.
  If the key is missing at startup, Pydantic will raise a ``ValidationError``
  with a clear error message.  The raw value is never exposed in repr,
  logs, or tracebacks.

Memory
------
Server-side memory is process-local.  Each vector store gets a private
``cherry-lancedb-*`` scratch directory, created under ``LANCEDB_PATH``
when it is set and in the system temp dir otherwise.  The directory is
removed at exit, so nothing survives a restart and worker processes
never share a table.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import SecretStr, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application-wide settings.

    Every field is loaded from environment variables (or ``.env``).
    Fields *without* a default are **required** — the app will refuse
    to start until they are provided.

    Attributes
    ----------
    GOOGLE_API_KEY : SecretStr
        API key for Google AI Studio (Gemini).  **Required.**
    ENV : Literal["dev", "prod"]
        Environment mode controlling logging verbosity and CORS.
    LLM_MODEL / LLM_TEMPERATURE
        Chat model used to answer queries.
    EMBEDDING_MODEL : str
        Model identifier passed to ``GoogleGenerativeAIEmbeddings``.
    CHUNK_SIZE / CHUNK_OVERLAP
        Splitter parameters for exchanges written back to the index.
    RETRIEVAL_K : int
        Number of prior chunks retrieved per query.
    RETRIEVAL_QUERY_MAX_CHARS : int
        Tail of the joined chat history used as the retrieval query.
    HISTORY_PROMPT_WINDOW : int
        Number of recent history entries quoted in the prompt.
    WEB_SEARCH_ENABLED / SEARCH_URL / SEARCH_RESULTS_LIMIT / SEARCH_TIMEOUT_SECONDS
        Web search augmentation.
    """

    # ── Resolved Absolute Paths ────────────────────────────────────────
    BASE_DIR: Path = Path(__file__).resolve().parent.parent
    STATIC_DIR: Path = BASE_DIR / "static"
    LANCEDB_PATH: Path | None = None

    # ── Environment Mode ───────────────────────────────────────────────
    ENV: Literal["dev", "prod"] = "dev"

    # ── API Keys (REQUIRED — no default) ───────────────────────────────
    GOOGLE_API_KEY: SecretStr

    # ── Model Configuration ────────────────────────────────────────────
    LLM_MODEL: str = "gemini-2.0-flash"
    LLM_TEMPERATURE: float = 0.8
    EMBEDDING_MODEL: str = "models/gemini-embedding-001"

    # ── LanceDB ────────────────────────────────────────────────────────
    LANCEDB_TABLE_NAME: str = "chat_memory"

    # ── Memory Write-back ──────────────────────────────────────────────
    CHUNK_SIZE: int = 150
    CHUNK_OVERLAP: int = 10

    # ── Retrieval ──────────────────────────────────────────────────────
    RETRIEVAL_K: int = 3
    RETRIEVAL_QUERY_MAX_CHARS: int = 8000
    HISTORY_PROMPT_WINDOW: int = 6

    # ── Web Search ─────────────────────────────────────────────────────
    WEB_SEARCH_ENABLED: bool = True
    SEARCH_URL: str = "https://www.google.com/search"
    SEARCH_RESULTS_LIMIT: int = 5
    SEARCH_TIMEOUT_SECONDS: float = 10.0

    # ── Validators ─────────────────────────────────────────────────────

    @field_validator("CHUNK_SIZE", "RETRIEVAL_K", "RETRIEVAL_QUERY_MAX_CHARS", "SEARCH_RESULTS_LIMIT")
    @classmethod
    def _positive(cls, v: int, info: ValidationInfo) -> int:
        if v < 1:
            raise ValueError(f"{info.field_name} must be ≥ 1, got {v}")
        return v


    @field_validator("CHUNK_OVERLAP")
    @classmethod
    def _overlap_smaller_than_chunk(cls, v: int, info: ValidationInfo) -> int:
        chunk_size = info.data.get("CHUNK_SIZE")
        if v < 0:
            raise ValueError(f"CHUNK_OVERLAP must be ≥ 0, got {v}")
        if chunk_size is not None and v >= chunk_size:
            raise ValueError(f"CHUNK_OVERLAP ({v}) must be smaller than CHUNK_SIZE ({chunk_size})")
        return v


    @field_validator("LLM_TEMPERATURE")
    @classmethod
    def _temperature_range(cls, v: float) -> float:
        if not 0.0 <= v <= 2.0:
            raise ValueError(f"LLM_TEMPERATURE must be 0–2, got {v}")
        return v


    @field_validator("HISTORY_PROMPT_WINDOW")
    @classmethod
    def _window_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"HISTORY_PROMPT_WINDOW must be ≥ 0, got {v}")
        return v

    # ── Pydantic Settings Configuration ────────────────────────────────
    model_config = SettingsConfigDict(env_file=Path(__file__).resolve().parent.parent.parent / ".env", env_file_encoding="utf-8", extra="ignore")


# ── Singleton Instance ─────────────────────────────────────────────────
# Import this throughout the project:
#     from cherry.config.settings import settings
settings = Settings()
