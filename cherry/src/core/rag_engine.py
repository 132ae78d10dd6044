"""
CherryAi - RAG Engine
======================
Orchestrates the retrieval-augmented generation pipeline behind the
query endpoint.

Architecture (OOP)
------------------
``ChatHistory``
    Process-local, append-only list of queries and answers.  Joined
    into the retrieval query and quoted in the prompt.

``RAGManager``
    Pipeline orchestrator.  Flow:
        1. Record query    → append to chat history
        2. Retrieve        → vector search with the joined history
        3. Web search      → optional, top results as snippets + links
        4. Build prompt    → system (context) + human (query)
        5. Call the LLM    → async chain invocation
        6. Record answer   → append to chat history
        7. Write back      → split "Query/Response" and embed into memory
        8. Return answer + relevant links

Concurrency
-----------
Shared state (chat history, vector store) is only touched inside
``generate_response``, which holds an ``asyncio.Lock`` for the whole run:
requests are served one at a time.  Blocking embedding and LanceDB calls
run in worker threads.

Usage:
    from cherry.src.core.rag_engine import RAGManager
    rag = RAGManager(vector_store)
    result = await rag.generate_response("What is LanceDB?")
"""

from __future__ import annotations

import asyncio
import time

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.prompts import ChatPromptTemplate
from langchain_text_splitters import RecursiveCharacterTextSplitter

from cherry.config.prompt_templates import CONTEXT_TEMPLATE, HUMAN_PROMPT, MEMORY_DOCUMENT_TEMPLATE, MEMORY_SOURCE, NO_HISTORY_CONTEXT, NO_MEMORY_CONTEXT, NO_WEB_CONTEXT, SYSTEM_PROMPT
from cherry.config.settings import settings
from cherry.src.core.web_search import WebSearchClient
from cherry.src.database.vector_store import CherryVectorStore
from cherry.src.utils.logger import get_logger
from cherry.src.utils.text_utils import clean_text, dedupe_links

logger = get_logger(__name__)

# ── Type aliases ───────────────────────────────────────────────────────
SearchResult = dict[str, str | int | float | list[float]]
RelevantLink = dict[str, str]
QueryResult = dict[str, str | list[RelevantLink]]


# ══════════════════════════════════════════════════════════════════════
#  CHAT HISTORY
# ══════════════════════════════════════════════════════════════════════


class ChatHistory:
    """
    Append-only conversation memory for the lifetime of the process.

    Entries are plain strings (queries and answers interleaved) kept in
    insertion order.  No removal operation is exposed.
    """

    __slots__ = ("_entries",)

    def __init__(self) -> None:
        self._entries: list[str] = []


    def append(self, text: str) -> None:
        self._entries.append(text)


    def entries(self) -> list[str]:
        """Copy of all entries, oldest first."""
        return list(self._entries)


    def recent(self, n: int) -> list[str]:
        """The last *n* entries, oldest first."""
        if n <= 0:
            return []
        return self._entries[-n:]


    def joined(self, max_chars: int | None = None) -> str:
        """All entries joined by a space, optionally keeping only the tail."""
        text = " ".join(self._entries)
        if max_chars is not None and len(text) > max_chars:
            return text[-max_chars:]
        return text


    def __len__(self) -> int:
        return len(self._entries)


# ══════════════════════════════════════════════════════════════════════
#  RAG MANAGER
# ══════════════════════════════════════════════════════════════════════


class RAGManager:
    """
    Orchestrates the pipeline: history → retrieve → search → generate → write back.

    Parameters
    ----------
    vector_store
        An initialised ``CherryVectorStore`` used as conversational memory.
    llm
        Optional chat model.  Defaults to Gemini via ``langchain-google-genai``.
    web_search
        Optional ``WebSearchClient``.  ``None`` with ``settings.WEB_SEARCH_ENABLED``
        builds the default client; pass ``enable_web_search=False`` to skip.
    history
        Optional pre-existing ``ChatHistory``.
    """

    __slots__ = ("_store", "_llm", "_search", "_history", "_splitter", "_chain", "_lock", "_exchanges")

    def __init__(self, vector_store: CherryVectorStore, llm: BaseChatModel | None = None, web_search: WebSearchClient | None = None, history: ChatHistory | None = None, enable_web_search: bool | None = None) -> None:
        self._store = vector_store
        self._llm = llm or self._init_llm()
        self._history = history or ChatHistory()

        enabled = settings.WEB_SEARCH_ENABLED if enable_web_search is None else enable_web_search
        self._search: WebSearchClient | None = (web_search or WebSearchClient()) if enabled else None

        self._splitter = RecursiveCharacterTextSplitter(chunk_size=settings.CHUNK_SIZE, chunk_overlap=settings.CHUNK_OVERLAP)
        prompt = ChatPromptTemplate.from_messages([("system", SYSTEM_PROMPT), ("human", HUMAN_PROMPT)])
        self._chain = prompt | self._llm
        self._lock = asyncio.Lock()
        self._exchanges = 0


    @staticmethod
    def _init_llm() -> BaseChatModel:
        """Initialise the Gemini LLM via LangChain."""
        from langchain_google_genai import ChatGoogleGenerativeAI

        llm = ChatGoogleGenerativeAI(model=settings.LLM_MODEL, temperature=settings.LLM_TEMPERATURE, google_api_key=settings.GOOGLE_API_KEY.get_secret_value())
        logger.info("LLM initialised: %s (temperature=%.1f)", settings.LLM_MODEL, settings.LLM_TEMPERATURE)
        return llm


    @property
    def history(self) -> ChatHistory:
        return self._history


    @property
    def vector_store(self) -> CherryVectorStore:
        return self._store


    async def generate_response(self, query: str) -> QueryResult:
        """
        Answer *query* and remember the exchange.

        Any failure propagates to the caller; the query already recorded
        in the chat history is kept.

        Returns
        -------
        QueryResult
            ``{"answer": str, "relevantLinks": [{"title", "link", "snippet"}, ...]}``
        """
        async with self._lock:
            t_start = time.perf_counter()

            # ── 1. Record query ───────────────────────────────────────
            self._history.append(query)

            # ── 2. Retrieve related exchanges ─────────────────────────
            t_search = time.perf_counter()
            retrieval_query = self._history.joined(settings.RETRIEVAL_QUERY_MAX_CHARS)
            documents: list[SearchResult] = await asyncio.to_thread(self._store.search, retrieval_query, settings.RETRIEVAL_K)
            retrieve_ms = (time.perf_counter() - t_search) * 1000
            logger.info("[RAG] Retrieved %d document(s) in %.1fms", len(documents), retrieve_ms)

            # ── 3. Web search ─────────────────────────────────────────
            t_web = time.perf_counter()
            web_results: list[RelevantLink] = []
            if self._search is not None:
                web_results = await self._search.search(query)
            web_ms = (time.perf_counter() - t_web) * 1000
            logger.info("[RAG] Web search: %d result(s) in %.1fms", len(web_results), web_ms)

            # ── 4. Build context ──────────────────────────────────────
            # The current query is the human message, so it is left out of the quoted history
            context = CONTEXT_TEMPLATE.format(memory=self._format_documents(documents), web=self._format_web_results(web_results), history=self._format_history(self._history.recent(settings.HISTORY_PROMPT_WINDOW + 1)[:-1]))

            # ── 5. Call the LLM ───────────────────────────────────────
            t_llm = time.perf_counter()
            response = await self._chain.ainvoke({"context": context, "query": query})
            answer = self._message_text(response)
            llm_ms = (time.perf_counter() - t_llm) * 1000
            logger.info("[RAG] LLM response: %.1fms (%d chars)", llm_ms, len(answer))

            # ── 6. Record answer ──────────────────────────────────────
            self._history.append(answer)

            # ── 7. Write the exchange back into memory ────────────────
            t_write = time.perf_counter()
            stored = await asyncio.to_thread(self._remember, query, answer)
            write_ms = (time.perf_counter() - t_write) * 1000

            total_ms = (time.perf_counter() - t_start) * 1000
            logger.info("[RAG] Pipeline total: %.1fms (retrieve=%.1f, web=%.1f, llm=%.1f, write=%.1f, stored=%d chunk(s))", total_ms, retrieve_ms, web_ms, llm_ms, write_ms, stored)

            return {"answer": answer, "relevantLinks": dedupe_links(web_results, settings.SEARCH_RESULTS_LIMIT)}

    # ══════════════════════════════════════════════════════════════════
    #  MEMORY WRITE-BACK
    # ══════════════════════════════════════════════════════════════════

    def _remember(self, query: str, answer: str) -> int:
        """Split the exchange into chunks and embed them into the store."""
        document = clean_text(MEMORY_DOCUMENT_TEMPLATE.format(query=query, answer=answer))
        chunks = self._splitter.split_text(document)
        metadatas = [
            {"source": MEMORY_SOURCE, "exchange_index": self._exchanges, "chunk_index": i}
            for i in range(len(chunks))
        ]
        added = self._store.add_documents(chunks, metadatas)
        self._exchanges += 1
        return added

    # ══════════════════════════════════════════════════════════════════
    #  PROMPT FORMATTING
    # ══════════════════════════════════════════════════════════════════

    @staticmethod
    def _format_documents(documents: list[SearchResult]) -> str:
        """Numbered block of retrieved memory chunks."""
        if not documents:
            return NO_MEMORY_CONTEXT

        blocks: list[str] = []
        for i, doc in enumerate(documents, 1):
            source = doc.get("source", "unknown")
            text = doc.get("text", "")
            blocks.append(f"[{i}] ({source}) {text}")
        return "\n".join(blocks)


    @staticmethod
    def _format_web_results(results: list[RelevantLink]) -> str:
        if not results:
            return NO_WEB_CONTEXT
        return "\n".join(f"[{i}] {r['title']} — {r['link']}\n    {r.get('snippet', '')}" for i, r in enumerate(results, 1))


    @staticmethod
    def _format_history(entries: list[str]) -> str:
        if not entries:
            return NO_HISTORY_CONTEXT
        return "\n".join(f"- {entry}" for entry in entries)


    @staticmethod
    def _message_text(message: object) -> str:
        """Plain text of a chat model reply (string or list of content parts)."""
        content = message.content if hasattr(message, "content") else message
        if isinstance(content, list):
            parts = [part if isinstance(part, str) else str(part.get("text", "")) for part in content if isinstance(part, (str, dict))]
            return "".join(parts)
        return str(content)
