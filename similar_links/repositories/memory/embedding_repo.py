from __future__ import annotations
import threading

from similar_links.models.embedding import EmbeddingDB


class EmbeddingMemoryRepo:
    """
    Process-local embedding store. Holds one EmbeddingDB snapshot;
    `save` replaces the snapshot wholesale.
    """

    def __init__(self, db: EmbeddingDB | None = None) -> None:
        self._db = db if db is not None else EmbeddingDB()
        self._lock = threading.Lock()
        self.saves = 0

    @property
    def location(self) -> str:
        return "memory"

    def load(self) -> EmbeddingDB:
        with self._lock:
            return self._db

    def save(self, db: EmbeddingDB) -> None:
        with self._lock:
            self._db = db
            self.saves += 1
