from __future__ import annotations
from datetime import date
from numbers import Real
from typing import Callable, List, Optional, Protocol
import logging
import math

import httpx

from similar_links.core.errors import EmbeddingFetchError
from similar_links.models.document import DocumentMeta
from similar_links.models.embedding import EmbeddingRecord

logger = logging.getLogger(__name__)


class EmbeddingProvider(Protocol):
    model: str

    def embed_text(self, text: str) -> List[float]:
        ...


def document_text(meta: DocumentMeta, backlinks: List[str]) -> str:
    """
    Text sent to the provider for one document: the annotation itself plus
    its bibliographic fields and the pages that link to it.
    """
    parts = []
    if meta.title:
        parts.append(meta.title)
    byline = ", ".join(p for p in (meta.author, meta.date) if p)
    if byline:
        parts.append(byline)
    if meta.tags:
        parts.append("Tags: " + ", ".join(meta.tags))
    parts.append(meta.abstract.strip())
    if backlinks:
        parts.append("Linked from: " + ", ".join(backlinks))
    return "\n\n".join(p for p in parts if p)


class EmbeddingFetcher:
    """
    Turns one corpus document into an EmbeddingRecord via the provider.
    Every failure for a document comes out as EmbeddingFetchError so the
    caller can skip that id and carry on.
    """

    def __init__(self, provider: EmbeddingProvider, clock: Callable[[], date] = date.today) -> None:
        self.provider = provider
        self.clock = clock

    def fetch(self, doc_id: str, meta: Optional[DocumentMeta], backlinks: List[str]) -> EmbeddingRecord:
        if meta is None:
            raise EmbeddingFetchError(doc_id, "no metadata in corpus")
        text = document_text(meta, backlinks)
        if not meta.abstract.strip():
            raise EmbeddingFetchError(doc_id, "empty content")

        try:
            vector = self.provider.embed_text(text)
        except httpx.HTTPError as e:
            raise EmbeddingFetchError(doc_id, f"provider error: {e}") from e
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise EmbeddingFetchError(doc_id, f"malformed provider response: {e}") from e

        if not vector or not all(isinstance(x, Real) and not isinstance(x, bool) for x in vector):
            raise EmbeddingFetchError(doc_id, "provider returned an empty or non-numeric vector")
        if not all(math.isfinite(x) for x in vector):
            raise EmbeddingFetchError(doc_id, "provider returned a vector with NaN or infinite components")

        logger.debug(f"Embedded {doc_id} ({len(vector)} dims)")
        return EmbeddingRecord(
            id=doc_id,
            vector=[float(x) for x in vector],
            title=meta.title,
            created=self.clock(),
            model=getattr(self.provider, "model", ""),
        )
