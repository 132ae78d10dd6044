import os

# Settings are instantiated at import time and require an API key.
os.environ.setdefault("GOOGLE_API_KEY", "test-key")
os.environ.setdefault("ENV", "dev")

import httpx
import pytest
from fastapi.testclient import TestClient
from langchain_core.embeddings import DeterministicFakeEmbedding
from langchain_core.language_models import FakeListChatModel

from cherry.src.core.rag_engine import RAGManager
from cherry.src.core.web_search import WebSearchClient
from cherry.src.database.vector_store import CherryVectorStore
from cherry.src.main import create_app


def result_page(*results):
    """Minimal search-engine HTML with one ``div.g`` per (title, href, snippet)."""
    blocks = "".join(
        f'<div class="g"><a href="{href}"><h3>{title}</h3></a><div class="VwiC3b">{snippet}</div></div>'
        for title, href, snippet in results
    )
    return f"<html><body><div id='search'>{blocks}</div></body></html>"


DEFAULT_RESULTS = [
    ("LanceDB docs", "https://lancedb.github.io/lancedb/", "Developer-friendly serverless vector database."),
    ("LanceDB on GitHub", "https://github.com/lancedb/lancedb", "Source code and issues."),
]


@pytest.fixture
def embedder():
    return DeterministicFakeEmbedding(size=16)


@pytest.fixture
def store(tmp_path, embedder):
    return CherryVectorStore(embedder, db_path=str(tmp_path / "lancedb"), table_name="test_memory")


@pytest.fixture
def search_requests():
    return []


@pytest.fixture
def search_client(search_requests):
    def handler(request):
        search_requests.append(request)
        return httpx.Response(200, text=result_page(*DEFAULT_RESULTS))

    return WebSearchClient(search_url="https://search.test/search", limit=5, transport=httpx.MockTransport(handler))


@pytest.fixture
def llm():
    return FakeListChatModel(responses=["First answer, see https://example.com/a", "Second answer.", "Third answer."])


@pytest.fixture
def rag(store, llm, search_client):
    return RAGManager(store, llm=llm, web_search=search_client, enable_web_search=True)


@pytest.fixture
def client(rag):
    return TestClient(create_app(rag))
