from __future__ import annotations
from typing import Optional
import logging
import threading
import numpy as np

from similar_links.indexing.base import Index, rows_from_records
from similar_links.indexing.brute_force import BruteForceIndex
from similar_links.indexing.rp_forest import RPForest
from similar_links.models.embedding import EmbeddingDB, EmbeddingRecord
from similar_links.models.match import Match, MatchResult
from similar_links.services.maintainer import EmbeddingRepo

logger = logging.getLogger(__name__)


def build_forest(db: EmbeddingDB, num_trees: int = 10, leaf_size: int = 16, seed: int = 42) -> Index:
    """
    Build a fresh index over every embedding in `db`. Never persisted.
    A store that fits in one leaf gets an exact scan instead of a forest.
    """
    rows = rows_from_records(db)
    if len(rows) <= leaf_size:
        logger.info(f"✓ {len(rows)} embeddings fit in one leaf; using exact search")
        return BruteForceIndex(rows)
    forest = RPForest(rows, num_trees=num_trees, leaf_size=leaf_size, seed=seed)
    logger.info(f"✓ Built forest: {forest.T} trees over {forest.N} embeddings ({forest.D} dims)")
    return forest


def find_n(forest: Index, n: int, iteration_limit: int, query: EmbeddingRecord) -> MatchResult:
    """
    Top-n neighbors of `query` by cosine distance, nearest first, never
    including the query's own id. Approximate: at most `iteration_limit`
    tree nodes are visited across the whole forest.
    """
    hits = forest.search(
        np.asarray(query.vector, dtype=float),
        n,
        iteration_limit,
        exclude=forest.position(query.id),
    )
    matches = [
        Match(id=forest.rows[i].doc_id, distance=d)
        for i, d in hits
        if forest.rows[i].doc_id != query.id
    ]
    return MatchResult(query_id=query.id, matches=matches[:n])


class SearchService:
    """
    On-demand neighbor lookups for the API: loads the store once and builds
    the forest on first use, then serves queries from that snapshot.
    """

    def __init__(
        self,
        repo: Optional[EmbeddingRepo] = None,
        *,
        num_trees: int = 10,
        leaf_size: int = 16,
        seed: int = 42,
        iteration_limit: int = 2000,
    ) -> None:
        self._repo = repo
        self.num_trees = num_trees
        self.leaf_size = leaf_size
        self.seed = seed
        self.iteration_limit = iteration_limit
        self._lock = threading.Lock()
        self._db: Optional[EmbeddingDB] = None
        self._forest: Optional[Index] = None

    @property
    def repo(self) -> EmbeddingRepo:
        if self._repo is None:
            from similar_links.repositories.factory import get_embedding_repo
            self._repo = get_embedding_repo()
        return self._repo

    def _snapshot(self) -> tuple[EmbeddingDB, Index]:
        with self._lock:
            if self._forest is None:
                self._db = self.repo.load()
                self._forest = build_forest(self._db, self.num_trees, self.leaf_size, self.seed)
            return self._db, self._forest

    def refresh(self) -> None:
        with self._lock:
            self._db = None
            self._forest = None

    def embeddings(self) -> EmbeddingDB:
        return self._snapshot()[0]

    def similar(self, doc_id: str, k: int = 20) -> Optional[MatchResult]:
        db, forest = self._snapshot()
        rec = db.get(doc_id)
        if rec is None:
            return None
        return find_n(forest, k, self.iteration_limit, rec)
