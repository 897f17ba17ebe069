from __future__ import annotations
from typing import List, Optional, Tuple
import numpy as np

from .base import Row, Index, unit


class BruteForceIndex(Index):
    """
    Exact cosine-distance search using NumPy.
    Build  : O(ND)   (normalization)
    Search : O(ND)   (one matrix-vector product)
    Space  : O(ND)

    Stands in for the forest when the whole store fits in one leaf, where
    partitioning would only repeat the same full scan in every tree.
    """

    def __init__(self, rows: List[Row]) -> None:
        self.rows = rows
        # store normalized vectors so cosine == dot
        self._vecs = np.vstack([unit(r.embedding.astype(float, copy=False)) for r in rows]) if rows else None
        self._dim = self._vecs.shape[1] if rows else 0
        self._positions = {r.doc_id: i for i, r in enumerate(rows)}

    def position(self, doc_id: str) -> Optional[int]:
        return self._positions.get(doc_id)

    def search(
        self,
        query: np.ndarray,
        k: int,
        iteration_limit: int = 0,
        exclude: Optional[int] = None,
    ) -> List[Tuple[int, float]]:
        # exact scan: iteration_limit does not apply
        if k <= 0 or self._vecs is None:
            return []
        if len(query) != self._dim:
            raise ValueError(f"query dim {len(query)} != index dim {self._dim}")

        q = unit(query.astype(float, copy=False))
        dists = 1.0 - self._vecs @ q
        scored = [(i, 0.0 if d < 0.0 else float(d)) for i, d in enumerate(dists) if i != exclude]
        scored.sort(key=lambda t: (t[1], self.rows[t[0]].doc_id))
        return scored[:k]
