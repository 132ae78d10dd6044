"""
CherryAi - CherryVectorStore
=============================
OOP wrapper around LanceDB providing the conversational memory index:
  • Lazy table creation with a fixed-size PyArrow vector column
  • Document insertion (embedding + metadata) with batching
  • Vector similarity search

Design decisions:
  • **Process-local memory** — unless a path is given, each store lives
    in its own scratch directory, so two worker processes never share
    (or drop) each other's table.  With ``fresh=True`` (the default)
    any table already at an explicit path is dropped on construction.
  • **Singleton DB connection** — ``_get_connection()`` caches the
    ``lancedb.DBConnection`` per path.
  • **Dependency Injection** — the embedder is injected, never
    hard-coded, making the store testable with fake embedders.
  • **Dimension on first write** — the vector width is taken from the
    first embedding, so any embedding model works without configuration.

Usage:
    from langchain_google_genai import GoogleGenerativeAIEmbeddings
    from cherry.src.database.vector_store import CherryVectorStore

    embedder = GoogleGenerativeAIEmbeddings(model=settings.EMBEDDING_MODEL, google_api_key=settings.GOOGLE_API_KEY.get_secret_value())
    store = CherryVectorStore(embedder)
    store.add_documents(texts=[...], metadatas=[...])
    results = store.search("query text", limit=3)
"""

from __future__ import annotations

import atexit
import shutil
import tempfile
import threading
from typing import Protocol, runtime_checkable

import lancedb
import pyarrow as pa

from cherry.config.settings import settings
from cherry.src.utils.logger import get_logger

logger = get_logger(__name__)

# ── Type Aliases ──────────────────────────────────────────────────────
DocumentMetadata = dict[str, str | int]
DocumentRecord = dict[str, str | int | list[float]]
SearchResult = dict[str, str | int | float | list[float]]


# ── Embedder Protocol ─────────────────────────────────────────────────

@runtime_checkable
class Embedder(Protocol):
    """Structural type for any LangChain-compatible embedding model."""

    def embed_documents(self, texts: list[str]) -> list[list[float]]: ...

    def embed_query(self, text: str) -> list[float]: ...


def memory_schema(dimension: int) -> pa.Schema:
    """LanceDB table schema for a vector width of *dimension*."""
    return pa.schema([
        pa.field("vector", pa.list_(pa.float32(), dimension)),
        pa.field("text", pa.utf8()),
        pa.field("source", pa.utf8()),
        pa.field("exchange_index", pa.int32()),
        pa.field("chunk_index", pa.int32()),
    ])


# ── Constants ──────────────────────────────────────────────────────────
_EMBED_BATCH_SIZE = 64
_DB_LOCK = threading.Lock()
_db_connection_cache: dict[str, lancedb.DBConnection] = {}


def _get_connection(db_path: str) -> lancedb.DBConnection:
    """Return a **singleton** ``lancedb.DBConnection`` for *db_path*."""
    if db_path not in _db_connection_cache:
        with _DB_LOCK:
            if db_path not in _db_connection_cache:
                logger.info("Opening new LanceDB connection: %s", db_path)
                _db_connection_cache[db_path] = lancedb.connect(db_path)
    return _db_connection_cache[db_path]


def _scratch_dir() -> str:
    """Create a private ``cherry-lancedb-*`` directory, removed at exit."""
    parent = settings.LANCEDB_PATH
    if parent is not None:
        parent.mkdir(parents=True, exist_ok=True)
    path = tempfile.mkdtemp(prefix="cherry-lancedb-", dir=parent)
    atexit.register(shutil.rmtree, path, ignore_errors=True)
    return path


class CherryVectorStore:
    """
    High-level abstraction over a LanceDB vector table.

    Parameters
    ----------
    embedder : Embedder
        Any object satisfying the ``Embedder`` protocol.
    db_path
        Override the database directory.  By default every store gets its
        own ``cherry-lancedb-*`` scratch directory (under
        ``settings.LANCEDB_PATH`` when set, else the system temp dir),
        removed at interpreter exit.
    table_name
        Override the table name.  Defaults to ``settings.LANCEDB_TABLE_NAME``.
    fresh
        Drop any existing table on construction (default ``True``).
    """

    __slots__ = ("embedder", "_db_path", "_table_name", "db", "table")

    def __init__(self, embedder: Embedder, db_path: str | None = None, table_name: str | None = None, fresh: bool = True) -> None:
        self.embedder: Embedder = embedder
        self._db_path: str = str(db_path) if db_path else _scratch_dir()
        self._table_name: str = table_name or settings.LANCEDB_TABLE_NAME
        self.db: lancedb.DBConnection | None = None
        self.table: lancedb.table.Table | None = None
        self._connect(fresh)


    def _connect(self, fresh: bool) -> None:
        """Open (or re-use) the LanceDB connection and pick up the table."""
        try:
            self.db = _get_connection(self._db_path)

            if fresh:
                self.db.drop_table(self._table_name, ignore_missing=True)
                logger.info("Memory table '%s' starts empty at %s.", self._table_name, self._db_path)
            else:
                self.table = self._open_existing()
                if self.table is not None:
                    logger.info("Opened existing table '%s' (%d rows).", self._table_name, self.table.count_rows())

        except OSError as exc:
            logger.error("LanceDB filesystem error at %s: %s", self._db_path, exc)
            raise
        except Exception:
            logger.exception("Unexpected error connecting to LanceDB.")
            raise


    def _open_existing(self) -> lancedb.table.Table | None:
        """Open the table if it exists, else ``None``."""
        try:
            return self.db.open_table(self._table_name)  # type: ignore[union-attr]
        except (ValueError, FileNotFoundError):
            return None


    def add_documents(self, texts: list[str], metadatas: list[DocumentMetadata]) -> int:
        """
        Embed a batch of text chunks and append them with metadata.

        The table is created on the first call, sized to the width of
        the first embedding.

        Parameters
        ----------
        texts
            List of plain-text chunks to embed and store.
        metadatas
            Parallel list of dicts (``source``, ``exchange_index``,
            ``chunk_index``).

        Returns
        -------
        int
            Number of rows added.

        Raises
        ------
        ValueError
            If ``texts`` and ``metadatas`` have mismatched lengths.
        """
        if len(texts) != len(metadatas):
            raise ValueError(f"Length mismatch: {len(texts)} texts vs {len(metadatas)} metadatas.")
        if not texts:
            return 0
        if self.db is None:
            raise RuntimeError("LanceDB connection is not initialised.")

        logger.debug("Embedding %d chunk(s) in batches of %d …", len(texts), _EMBED_BATCH_SIZE)

        all_vectors: list[list[float]] = []
        for i in range(0, len(texts), _EMBED_BATCH_SIZE):
            batch = texts[i : i + _EMBED_BATCH_SIZE]
            try:
                all_vectors.extend(self.embedder.embed_documents(batch))
            except Exception as exc:
                logger.error("Embedding batch %d–%d failed: %s", i, i + len(batch) - 1, exc)
                raise

        records: list[DocumentRecord] = [
            {"vector": [float(x) for x in vec], "text": txt, "source": str(meta.get("source", "unknown")), "exchange_index": int(meta.get("exchange_index", 0)), "chunk_index": int(meta.get("chunk_index", 0))}
            for txt, vec, meta in zip(texts, all_vectors, metadatas)
        ]

        try:
            if self.table is None:
                self.table = self.db.create_table(self._table_name, schema=memory_schema(len(records[0]["vector"])))
                logger.info("Created table '%s' (dimension=%d).", self._table_name, len(records[0]["vector"]))
            self.table.add(records)
        except OSError as exc:
            logger.error("Failed to write records to LanceDB: %s", exc)
            raise

        logger.info("Added %d chunk(s). Table '%s' now has %d total rows.", len(records), self._table_name, self.table.count_rows())
        return len(records)


    def search(self, query_text: str, limit: int = 3) -> list[SearchResult]:
        """
        Embed *query_text* and return the *limit* nearest rows.

        Rows carry a ``_distance`` score.  Returns ``[]`` while the
        store is empty.
        """
        if self.table is None:
            logger.debug("Search on empty memory — nothing stored yet.")
            return []

        try:
            query_vector = self.embedder.embed_query(query_text)
        except Exception as exc:
            logger.error("Failed to embed query: %s", exc)
            raise

        results: list[SearchResult] = self.table.search(query_vector).limit(limit).to_list()
        logger.info("Search returned %d result(s) (limit=%d).", len(results), limit)
        return results


    def count(self) -> int:
        """Return the total number of rows in the table."""
        if self.table is None:
            return 0
        return self.table.count_rows()


    def drop_table(self) -> None:
        """Drop the vector table, emptying the memory."""
        if self.db is None:
            logger.warning("No database connection; nothing to drop.")
            return
        try:
            self.db.drop_table(self._table_name, ignore_missing=True)
            self.table = None
            logger.info("Dropped table '%s'.", self._table_name)
        except OSError as exc:
            logger.error("Filesystem error dropping table '%s': %s", self._table_name, exc)
            raise


    def __repr__(self) -> str:
        return f"CherryVectorStore(db='{self._db_path}', table='{self._table_name}', rows={self.count()})"
