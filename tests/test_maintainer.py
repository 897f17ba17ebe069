"""
Tests for incremental maintenance: fetch budget, failure policy, pruning
and the single commit point.
"""
from datetime import date

import httpx
import pytest

from similar_links.adapters.corpus.base import InMemoryBacklinks
from similar_links.adapters.embedding_providers.cohere_provider import CohereProvider
from similar_links.core.errors import EmbeddingFetchError
from similar_links.models.embedding import EmbeddingDB
from similar_links.repositories.memory.embedding_repo import EmbeddingMemoryRepo
from similar_links.services.embedding_service import EmbeddingFetcher, document_text
from similar_links.services.maintainer import IncrementalMaintainer

from conftest import FakeProvider


def maintainer_for(corpus, backlinks, provider, repo, cap=750):
    fetcher = EmbeddingFetcher(provider, clock=lambda: date(2024, 5, 1))
    return IncrementalMaintainer(repo, corpus, backlinks, fetcher, max_embed_at_once=cap)


class TestIncrementalMaintainer:

    def test_fetches_missing_and_commits_once(self, make_corpus, make_record, provider):
        corpus, backlinks = make_corpus(["a", "b"])
        repo = EmbeddingMemoryRepo(EmbeddingDB([make_record("a")]))
        report = maintainer_for(corpus, backlinks, provider, repo).run(repo.load())

        assert report.fetched == ["b"]
        assert report.written is True
        assert repo.saves == 1
        assert repo.load().ids() == ["a", "b"]
        assert repo.load().get("b").created == date(2024, 5, 1)
        assert repo.load().get("b").model == "fake-embed-v1"

    def test_noop_run_writes_nothing(self, make_corpus, make_record, provider):
        corpus, backlinks = make_corpus(["a", "b"])
        repo = EmbeddingMemoryRepo(EmbeddingDB([make_record("a"), make_record("b")]))
        report = maintainer_for(corpus, backlinks, provider, repo).run(repo.load())

        assert report.written is False
        assert repo.saves == 0
        assert provider.calls == []

    def test_budget_caps_fetches_and_defers_rest(self, make_corpus, provider):
        ids = [f"doc{i:04d}" for i in range(1000)]
        corpus, backlinks = make_corpus(ids)
        repo = EmbeddingMemoryRepo()
        m = maintainer_for(corpus, backlinks, provider, repo, cap=750)

        first = m.run(repo.load())
        assert len(first.fetched) == 750
        assert first.fetched == ids[:750]
        assert first.deferred == 250
        assert len(repo.load()) == 750

        second = m.run(repo.load())
        assert second.fetched == ids[750:]
        assert second.deferred == 0
        assert len(repo.load()) == 1000

    def test_fetch_failure_is_skipped_and_stays_missing(self, make_corpus):
        corpus, backlinks = make_corpus(["a", "b", "c", "d"])
        provider = FakeProvider(fail_on={"b"})
        repo = EmbeddingMemoryRepo()
        report = maintainer_for(corpus, backlinks, provider, repo, cap=3).run(repo.load())

        # the budget counts attempts; the failure is not replaced by "d"
        assert provider.calls == ["a", "b", "c"]
        assert report.fetched == ["a", "c"]
        assert report.failed == ["b"]
        assert report.deferred == 1
        assert repo.load().ids() == ["a", "c"]

    def test_all_failures_and_nothing_pruned_writes_nothing(self, make_corpus):
        corpus, backlinks = make_corpus(["a"])
        repo = EmbeddingMemoryRepo()
        report = maintainer_for(corpus, backlinks, FakeProvider(fail_on={"a"}), repo).run(repo.load())
        assert report.failed == ["a"]
        assert repo.saves == 0

    def test_wrong_dimension_counts_as_failure(self, make_corpus, make_record):
        corpus, backlinks = make_corpus(["a", "b"])
        provider = FakeProvider(vectors={"b": [1.0, 2.0]})
        repo = EmbeddingMemoryRepo(EmbeddingDB([make_record("a")]))
        report = maintainer_for(corpus, backlinks, provider, repo).run(repo.load())
        assert report.failed == ["b"]
        assert repo.saves == 0

    def test_prunes_removed_documents(self, make_corpus, make_record, provider):
        corpus, backlinks = make_corpus(["a", "b"])
        repo = EmbeddingMemoryRepo(EmbeddingDB([make_record(i) for i in "abd"]))
        report = maintainer_for(corpus, backlinks, provider, repo).run(repo.load())

        assert report.pruned == ["d"]
        assert report.written is True
        assert repo.load().ids() == ["a", "b"]
        assert provider.calls == []

    def test_documents_without_content_are_not_embedded(self, make_doc, make_record, provider):
        from similar_links.adapters.corpus.base import InMemoryCorpus
        corpus = InMemoryCorpus([make_doc("a"), make_doc("empty", abstract="   ")])
        repo = EmbeddingMemoryRepo()
        report = maintainer_for(corpus, InMemoryBacklinks(), provider, repo).run(repo.load())
        assert report.fetched == ["a"]


class TestEmbeddingFetcher:

    def test_document_text_includes_context(self, make_doc):
        meta = make_doc("a", title="Scaling Laws", author="Kaplan", date="2020-01-23",
                        tags=["ai", "scaling"], abstract="We study...")
        text = document_text(meta, ["/blog/x", "/blog/y"])
        assert text.startswith("Scaling Laws")
        assert "Kaplan, 2020-01-23" in text
        assert "Tags: ai, scaling" in text
        assert "We study..." in text
        assert "Linked from: /blog/x, /blog/y" in text

    def test_missing_metadata(self, provider):
        with pytest.raises(EmbeddingFetchError):
            EmbeddingFetcher(provider).fetch("a", None, [])

    def test_provider_error_wrapped(self, make_doc):
        class Broken:
            model = "x"

            def embed_text(self, text):
                raise httpx.ConnectError("boom")

        with pytest.raises(EmbeddingFetchError) as exc:
            EmbeddingFetcher(Broken()).fetch("a", make_doc("a"), [])
        assert exc.value.doc_id == "a"

    def test_non_numeric_vector_rejected(self, make_doc):
        provider = FakeProvider(vectors={"a": ["x", "y"]})
        with pytest.raises(EmbeddingFetchError):
            EmbeddingFetcher(provider).fetch("a", make_doc("a"), [])

    @pytest.mark.parametrize("bad", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_vector_rejected(self, make_doc, bad):
        """NaN or infinite components would poison every distance they touch."""
        provider = FakeProvider(vectors={"a": [0.5] * 7 + [bad]})
        with pytest.raises(EmbeddingFetchError) as exc:
            EmbeddingFetcher(provider).fetch("a", make_doc("a"), [])
        assert "NaN or infinite" in exc.value.reason


class TestCohereProvider:

    def test_posts_text_and_returns_embedding(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            import json
            seen["body"] = json.loads(request.content)
            seen["auth"] = request.headers["Authorization"]
            return httpx.Response(200, json={"embeddings": [[0.1, 0.2, 0.3]]})

        client = httpx.Client(transport=httpx.MockTransport(handler))
        p = CohereProvider(api_key="k", model="embed-english-v3.0", input_type="clustering", client=client)
        assert p.embed_text("hello") == [0.1, 0.2, 0.3]
        assert seen["body"]["texts"] == ["hello"]
        assert seen["body"]["input_type"] == "clustering"
        assert seen["auth"] == "Bearer k"

    def test_http_error_raises(self):
        client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(429)))
        p = CohereProvider(api_key="k", client=client)
        with pytest.raises(httpx.HTTPStatusError):
            p.embed_text("hello")

    def test_missing_key_fails_fetch(self, make_doc, monkeypatch):
        from similar_links.core.config import settings
        monkeypatch.setattr(settings, "COHERE_API_KEY", None)
        fetcher = EmbeddingFetcher(CohereProvider(api_key=None, client=httpx.Client()))
        with pytest.raises(EmbeddingFetchError):
            fetcher.fetch("a", make_doc("a"), [])
