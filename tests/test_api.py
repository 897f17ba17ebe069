"""
Tests for the HTTP API over an in-memory embedding store.
"""
import pytest
from fastapi.testclient import TestClient

from similar_links.api.routers import similar
from similar_links.main import app
from similar_links.models.embedding import EmbeddingDB
from similar_links.repositories.memory.embedding_repo import EmbeddingMemoryRepo
from similar_links.services.search_service import SearchService

client = TestClient(app)


@pytest.fixture(autouse=True)
def memory_service(monkeypatch, make_record):
    repo = EmbeddingMemoryRepo(EmbeddingDB([make_record(i) for i in ["a", "b", "c", "d"]]))
    svc = SearchService(repo, num_trees=2, leaf_size=4)
    monkeypatch.setattr(similar, "svc", svc)
    return repo


class TestSimilarEndpoint:

    def test_returns_ranked_neighbors(self):
        response = client.get("/similar/a", params={"k": 2})
        assert response.status_code == 200
        data = response.json()
        assert data["query_id"] == "a"
        assert len(data["matches"]) == 2
        assert all(m["id"] != "a" for m in data["matches"])
        dists = [m["distance"] for m in data["matches"]]
        assert dists == sorted(dists)

    def test_path_like_ids(self, memory_service, make_record):
        memory_service.save(memory_service.load().merge([make_record("docs/x.html")]))
        similar.svc.refresh()
        response = client.get("/similar/docs/x.html")
        assert response.status_code == 200
        assert response.json()["query_id"] == "docs/x.html"

    def test_unknown_id_404(self):
        response = client.get("/similar/zzz")
        assert response.status_code == 404
        assert "not found" in response.json()["detail"].lower()

    def test_k_validated(self):
        assert client.get("/similar/a", params={"k": 0}).status_code == 422


class TestEmbeddingsEndpoint:

    def test_status(self):
        response = client.get("/embeddings/status")
        assert response.status_code == 200
        assert response.json() == {"count": 4, "dim": 8, "store": "memory"}

    def test_refresh(self, memory_service, make_record):
        memory_service.save(memory_service.load().merge([make_record("e")]))
        assert client.get("/embeddings/status").json()["count"] == 4
        assert client.post("/embeddings/refresh").status_code == 200
        assert client.get("/embeddings/status").json()["count"] == 5
