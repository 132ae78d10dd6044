import warnings

import pytest

from cherry.config.settings import settings
from cherry.src.database.vector_store import CherryVectorStore


def test_search_on_empty_store_returns_nothing(store):
    assert store.count() == 0
    assert store.search("anything", limit=3) == []


def test_add_documents_creates_table_and_counts_rows(store):
    added = store.add_documents(
        ["Query: hi\nResponse: hello", "Query: bye\nResponse: goodbye"],
        [{"source": "chat history", "exchange_index": 0, "chunk_index": 0}, {"source": "chat history", "exchange_index": 1, "chunk_index": 0}],
    )

    assert added == 2
    assert store.count() == 2


def test_search_returns_nearest_first_with_metadata(store):
    texts = ["alpha beta", "gamma delta", "epsilon zeta"]
    store.add_documents(texts, [{"source": "chat history", "exchange_index": i, "chunk_index": 0} for i in range(3)])

    results = store.search("gamma delta", limit=2)

    assert len(results) == 2
    assert results[0]["text"] == "gamma delta"
    assert results[0]["source"] == "chat history"
    assert results[0]["exchange_index"] == 1
    assert "_distance" in results[0]


def test_search_limit_larger_than_store(store):
    store.add_documents(["only one"], [{"source": "chat history"}])
    assert len(store.search("only one", limit=3)) == 1


def test_length_mismatch_raises(store):
    with pytest.raises(ValueError):
        store.add_documents(["a", "b"], [{"source": "x"}])


def test_empty_batch_is_a_noop(store):
    assert store.add_documents([], []) == 0
    assert store.count() == 0


def test_fresh_store_drops_previous_table(tmp_path, embedder):
    path = str(tmp_path / "restart")
    first = CherryVectorStore(embedder, db_path=path, table_name="memory")
    first.add_documents(["remember me"], [{"source": "chat history"}])
    assert first.count() == 1

    restarted = CherryVectorStore(embedder, db_path=path, table_name="memory")

    assert restarted.count() == 0
    assert restarted.search("remember me") == []


def test_non_fresh_store_reopens_table(tmp_path, embedder):
    path = str(tmp_path / "reopen")
    CherryVectorStore(embedder, db_path=path, table_name="memory").add_documents(["kept"], [{"source": "chat history"}])

    reopened = CherryVectorStore(embedder, db_path=path, table_name="memory", fresh=False)

    assert reopened.count() == 1


def test_drop_table_empties_memory(store):
    store.add_documents(["x"], [{"source": "chat history"}])
    store.drop_table()

    assert store.count() == 0
    assert store.search("x") == []
    # dropping again is harmless
    store.drop_table()


def test_embedding_failure_propagates(tmp_path):
    class BrokenEmbedder:
        def embed_documents(self, texts):
            raise RuntimeError("quota exceeded")

        def embed_query(self, text):
            raise RuntimeError("quota exceeded")

    broken = CherryVectorStore(BrokenEmbedder(), db_path=str(tmp_path / "broken"), table_name="memory")
    with pytest.raises(RuntimeError, match="quota"):
        broken.add_documents(["x"], [{"source": "chat history"}])


@pytest.mark.parametrize("parent", ["tmp", None])
def test_default_stores_are_isolated_per_process(monkeypatch, tmp_path, embedder, parent):
    monkeypatch.setattr(settings, "LANCEDB_PATH", tmp_path if parent else None)

    worker_a = CherryVectorStore(embedder)
    worker_a.add_documents(["worker A memory"], [{"source": "chat history"}])
    worker_b = CherryVectorStore(embedder)
    worker_b.add_documents(["worker B memory"], [{"source": "chat history"}])

    assert repr(worker_a) != repr(worker_b)
    assert (worker_a.count(), worker_b.count()) == (1, 1)
    assert [row["text"] for row in worker_a.search("memory", limit=5)] == ["worker A memory"]
    assert [row["text"] for row in worker_b.search("memory", limit=5)] == ["worker B memory"]


def test_table_lifecycle_avoids_deprecated_listing(tmp_path, embedder):
    path = str(tmp_path / "lifecycle")
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        store = CherryVectorStore(embedder, db_path=path, table_name="memory")
        store.add_documents(["x"], [{"source": "chat history"}])
        CherryVectorStore(embedder, db_path=path, table_name="memory", fresh=False)
        CherryVectorStore(embedder, db_path=path, table_name="missing", fresh=False)
        store.drop_table()

    assert not [w for w in caught if "table_names" in str(w.message)]
