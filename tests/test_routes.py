import httpx
from fastapi.testclient import TestClient
from langchain_core.language_models import FakeListChatModel

from cherry.config.prompt_templates import GENERIC_ERROR_MESSAGE
from cherry.src.core.rag_engine import RAGManager
from cherry.src.core.web_search import WebSearchClient
from cherry.src.database.vector_store import CherryVectorStore
from cherry.src.main import create_app


def test_query_returns_answer_and_relevant_links(client):
    resp = client.post("/api/query", json={"query": "What is LanceDB?"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["answer"] == "First answer, see https://example.com/a"
    assert body["relevantLinks"][0] == {
        "title": "LanceDB docs",
        "link": "https://lancedb.github.io/lancedb/",
        "snippet": "Developer-friendly serverless vector database.",
    }
    assert set(body) == {"answer", "relevantLinks"}


def test_query_strips_whitespace(client, rag):
    client.post("/api/query", json={"query": "  padded  "})

    assert rag.history.entries()[0] == "padded"


def test_history_grows_across_requests(client, rag):
    client.post("/api/query", json={"query": "one"})
    client.post("/api/query", json={"query": "two"})

    assert rag.history.entries()[::2] == ["one", "two"]
    assert client.get("/health").json()["history_entries"] == 4


def test_downstream_llm_failure_maps_to_500(store, search_client):
    class Broken(FakeListChatModel):
        def _call(self, messages, stop=None, run_manager=None, **kwargs):
            raise ConnectionError("upstream down")

    client = TestClient(create_app(RAGManager(store, llm=Broken(responses=["x"]), web_search=search_client, enable_web_search=True)))

    resp = client.post("/api/query", json={"query": "hello"})

    assert resp.status_code == 500
    assert resp.json() == {"error": GENERIC_ERROR_MESSAGE}


def test_downstream_search_failure_maps_to_500(store, llm):
    search = WebSearchClient(search_url="https://search.test/", transport=httpx.MockTransport(lambda r: httpx.Response(429)))
    client = TestClient(create_app(RAGManager(store, llm=llm, web_search=search, enable_web_search=True)))

    resp = client.post("/api/query", json={"query": "hello"})

    assert resp.status_code == 500
    assert resp.json() == {"error": GENERIC_ERROR_MESSAGE}


def test_downstream_embedding_failure_maps_to_500(tmp_path, llm, search_client):
    class FlakyEmbedder:
        def embed_documents(self, texts):
            raise TimeoutError("embedding API timed out")

        def embed_query(self, text):
            return [0.0] * 4

    store = CherryVectorStore(FlakyEmbedder(), db_path=str(tmp_path / "flaky"), table_name="memory")
    rag = RAGManager(store, llm=llm, web_search=search_client, enable_web_search=True)
    client = TestClient(create_app(rag))

    resp = client.post("/api/query", json={"query": "hello"})

    assert resp.status_code == 500
    assert resp.json() == {"error": GENERIC_ERROR_MESSAGE}
    # the answer was recorded before the write-back failed
    assert rag.history.entries() == ["hello", "First answer, see https://example.com/a"]
    assert store.count() == 0


def test_missing_query_is_rejected_with_json_error(client):
    resp = client.post("/api/query", json={})

    assert resp.status_code == 400
    assert "query" in resp.json()["error"]


def test_blank_query_is_rejected(client, rag):
    resp = client.post("/api/query", json={"query": "   "})

    assert resp.status_code == 400
    assert "error" in resp.json()
    assert len(rag.history) == 0


def test_non_string_query_is_rejected(client):
    resp = client.post("/api/query", json={"query": 42})

    assert resp.status_code == 400


def test_malformed_json_is_rejected(client):
    resp = client.post("/api/query", content=b"{not json", headers={"Content-Type": "application/json"})

    assert resp.status_code == 400
    assert "error" in resp.json()


def test_home_serves_ui(client):
    resp = client.get("/")

    assert resp.status_code == 200
    assert "CherryAi" in resp.text
    assert "/api/query" in resp.text


def test_ui_only_renders_http_links(client):
    page = client.get("/").text

    assert "function safeHref" in page
    assert 'url.protocol === "http:" || url.protocol === "https:"' in page
    assert "a.href = safe;" in page
    assert "a.href = href;" not in page


def test_health_reports_memory_sizes(client):
    assert client.get("/health").json() == {"status": "ok", "history_entries": 0, "vector_rows": 0}

    client.post("/api/query", json={"query": "hello"})

    health = client.get("/health").json()
    assert health["history_entries"] == 2
    assert health["vector_rows"] >= 1
