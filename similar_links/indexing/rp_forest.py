from __future__ import annotations
from dataclasses import dataclass
from itertools import count
from typing import List, Optional, Tuple, Union
import heapq
import numpy as np

from .base import Row, Index, unit


@dataclass(frozen=True)
class _Leaf:
    items: np.ndarray  # row indices


@dataclass(frozen=True)
class _Split:
    normal: np.ndarray
    threshold: float
    left: "_Node"   # projection < threshold
    right: "_Node"  # projection >= threshold


_Node = Union[_Leaf, _Split]


class RPForest(Index):
    """
    Ensemble of random-projection trees for cosine distance.
    - Build: per tree, recursively pick a Gaussian random direction, project
      the node's points on it and split at the median, until a node holds
      at most `leaf_size` points (or all its points project identically).
    - Query: best-first descent over all trees at once. Every tree's greedy
      path is followed first; afterwards the far side of the split with the
      smallest margin is explored next. Stops at `iteration_limit` node
      visits or once k * num_trees candidates are pooled.
    - Rank: exact cosine distance over the deduplicated candidate pool.

    Space:  O(N·T) leaf entries + O(N/leaf_size·T·D) for split normals
    Build:  O(T·N·D·log(N/leaf_size))
    Query:  O(iteration_limit·D + C·D)  (C = pooled candidates)

    The forest is read-only after construction, so one instance can be
    searched from many threads.
    """
    def __init__(self, rows: List[Row], num_trees: int = 10, leaf_size: int = 16, seed: int = 42) -> None:
        if num_trees <= 0:
            raise ValueError("num_trees must be positive")
        if leaf_size <= 0:
            raise ValueError("leaf_size must be positive")
        self.rows = rows
        self.N = len(rows)
        self.D = len(rows[0].embedding) if rows else 0
        self.T = num_trees
        self.leaf_size = leaf_size
        rng = np.random.default_rng(seed)

        # Pre-normalize embeddings so cosine == dot
        self._vecs = (np.vstack([unit(r.embedding.astype(float, copy=False)) for r in rows])
                      if rows else np.zeros((0, 0)))
        self._positions = {r.doc_id: i for i, r in enumerate(rows)}

        all_idx = np.arange(self.N)
        self.trees: List[_Node] = [self._build(all_idx, rng) for _ in range(self.T)] if self.N else []

    def position(self, doc_id: str) -> Optional[int]:
        return self._positions.get(doc_id)

    def _build(self, idx: np.ndarray, rng: np.random.Generator) -> _Node:
        if len(idx) <= self.leaf_size:
            return _Leaf(idx)
        normal = unit(rng.standard_normal(self.D))
        proj = self._vecs[idx] @ normal
        order = np.argsort(proj, kind="stable")
        if proj[order[-1]] - proj[order[0]] <= 1e-12:
            # duplicates: no direction separates them
            return _Leaf(idx)
        mid = len(idx) // 2
        threshold = float(proj[order[mid - 1]] + proj[order[mid]]) / 2.0
        return _Split(
            normal=normal,
            threshold=threshold,
            left=self._build(idx[order[:mid]], rng),
            right=self._build(idx[order[mid:]], rng),
        )

    def search(
        self,
        query: np.ndarray,
        k: int,
        iteration_limit: int = 2000,
        exclude: Optional[int] = None,
    ) -> List[Tuple[int, float]]:
        if k <= 0 or self.N == 0 or iteration_limit <= 0:
            return []
        if len(query) != self.D:
            raise ValueError(f"query dim {len(query)} != index dim {self.D}")

        q = unit(query.astype(float, copy=False))
        want = k * self.T
        seq = count()
        heap: List[Tuple[float, int, _Node]] = [(0.0, next(seq), tree) for tree in self.trees]
        cand: set[int] = set()
        visits = 0

        while heap and visits < iteration_limit and len(cand) < want:
            priority, _, node = heapq.heappop(heap)
            visits += 1
            if isinstance(node, _Leaf):
                cand.update(i for i in node.items.tolist() if i != exclude)
                continue
            margin = float(q @ node.normal) - node.threshold
            near, far = (node.left, node.right) if margin < 0.0 else (node.right, node.left)
            heapq.heappush(heap, (priority, next(seq), near))
            heapq.heappush(heap, (max(priority, abs(margin)), next(seq), far))

        if not cand:
            return []

        # Score candidates by cosine distance (1 - dot on unit vectors)
        idx = np.fromiter(sorted(cand), dtype=int, count=len(cand))
        dists = 1.0 - self._vecs[idx] @ q
        scored = [(int(i), 0.0 if d < 0.0 else float(d)) for i, d in zip(idx, dists)]
        scored.sort(key=lambda t: (t[1], self.rows[t[0]].doc_id))
        return scored[:k]
