from __future__ import annotations
from typing import Dict, Iterable, List, Optional, Protocol

from similar_links.models.document import DocumentMeta


class CorpusView(Protocol):
    """The current universe of documents and their display metadata."""

    def embeddable_ids(self) -> List[str]:
        """Sorted ids of documents with non-empty content."""
        ...

    def get(self, doc_id: str) -> Optional[DocumentMeta]:
        ...


class BacklinkGraph(Protocol):
    """Who links to whom. Used for rendering and embedding context only."""

    def callers(self, doc_id: str) -> List[str]:
        ...


class InMemoryCorpus:
    def __init__(self, docs: Iterable[DocumentMeta] = ()) -> None:
        self._docs: Dict[str, DocumentMeta] = {d.id: d for d in docs}

    def embeddable_ids(self) -> List[str]:
        return sorted(k for k, d in self._docs.items() if d.embeddable)

    def get(self, doc_id: str) -> Optional[DocumentMeta]:
        return self._docs.get(doc_id)


class InMemoryBacklinks:
    def __init__(self, links: Dict[str, Iterable[str]] | None = None) -> None:
        self._links = {k: sorted(set(v)) for k, v in (links or {}).items()}

    def callers(self, doc_id: str) -> List[str]:
        return list(self._links.get(doc_id, []))
