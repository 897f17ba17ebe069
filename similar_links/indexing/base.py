from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, List, Optional, Protocol, Tuple
import numpy as np

from similar_links.models.embedding import EmbeddingRecord


@dataclass(frozen=True)
class Row:
    """
    A searchable document id with its embedding.
    Used internally by indexes for vector math — lightweight for speed.
    """
    doc_id: str
    embedding: np.ndarray


def rows_from_records(records: Iterable[EmbeddingRecord]) -> List[Row]:
    return [Row(doc_id=r.id, embedding=np.asarray(r.vector, dtype=float)) for r in records]


def unit(v: np.ndarray) -> np.ndarray:
    """Normalize vector to unit length."""
    n = float(np.linalg.norm(v))
    return v if n == 0.0 else v / n


class Index(Protocol):
    """
    Interface for all vector indexes.
    `search(query, k, iteration_limit, exclude)` returns up to k
    (row_index, cosine distance) pairs, nearest first, ties broken by row
    doc_id. `iteration_limit` bounds search effort for approximate indexes.
    """
    rows: List[Row]

    def position(self, doc_id: str) -> Optional[int]:
        ...

    def search(
        self,
        query: np.ndarray,
        k: int,
        iteration_limit: int = 2000,
        exclude: Optional[int] = None,
    ) -> List[Tuple[int, float]]:
        ...
