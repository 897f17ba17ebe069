from datetime import date
import zlib

import numpy as np
import pytest

from similar_links.adapters.corpus.base import InMemoryBacklinks, InMemoryCorpus
from similar_links.models.document import DocumentMeta
from similar_links.models.embedding import EmbeddingRecord

DIM = 8


def vector_for(doc_id: str, dim: int = DIM) -> list:
    """Deterministic pseudo-random vector per id."""
    rng = np.random.default_rng(zlib.crc32(doc_id.encode("utf-8")))
    return [float(x) for x in rng.standard_normal(dim)]


class FakeProvider:
    """Stands in for the Cohere API: records calls, fails on request."""

    model = "fake-embed-v1"

    def __init__(self, fail_on=(), dim: int = DIM, vectors=None) -> None:
        self.fail_on = set(fail_on)
        self.dim = dim
        self.vectors = dict(vectors or {})
        self.calls = []

    def embed_text(self, text: str) -> list:
        doc_id = text.splitlines()[0]  # titles in these tests are the ids
        self.calls.append(doc_id)
        if doc_id in self.fail_on:
            raise ValueError("rate limited")
        if doc_id in self.vectors:
            return self.vectors[doc_id]
        return vector_for(doc_id, self.dim)


@pytest.fixture
def make_doc():
    def _make(doc_id: str, abstract: str = "Some annotation text.", **kw) -> DocumentMeta:
        return DocumentMeta(id=doc_id, title=kw.pop("title", doc_id), abstract=abstract, **kw)
    return _make


@pytest.fixture
def make_record():
    def _make(doc_id: str, vector=None, dim: int = DIM) -> EmbeddingRecord:
        return EmbeddingRecord(
            id=doc_id,
            vector=vector if vector is not None else vector_for(doc_id, dim),
            title=doc_id,
            created=date(2024, 1, 1),
            model="fake-embed-v1",
        )
    return _make


@pytest.fixture
def make_corpus(make_doc):
    def _make(ids, backlinks=None):
        return InMemoryCorpus(make_doc(i) for i in ids), InMemoryBacklinks(backlinks or {})
    return _make


@pytest.fixture
def provider():
    return FakeProvider()
