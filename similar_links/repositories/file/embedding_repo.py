"""
JSON-file embedding store.
The whole store is one JSON list of records sorted by id, read fully at
startup and replaced in one step on commit.
"""

from __future__ import annotations
from pathlib import Path
import logging
import os
import tempfile

from similar_links.core.errors import StoreReadError, StoreWriteError
from similar_links.models.embedding import EmbeddingDB

logger = logging.getLogger(__name__)


class EmbeddingFileRepo:

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    @property
    def location(self) -> str:
        return str(self.path)

    def load(self) -> EmbeddingDB:
        if not self.path.exists():
            logger.info(f"No embedding store at {self.path}; starting empty")
            return EmbeddingDB()
        try:
            return EmbeddingDB.from_json(self.path.read_text(encoding="utf-8"))
        except (OSError, TypeError, ValueError) as e:
            raise StoreReadError(str(self.path), str(e)) from e

    def save(self, db: EmbeddingDB) -> None:
        data = db.to_json()
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(data)
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StoreWriteError(str(self.path), str(e)) from e
        logger.debug(f"Wrote {len(db)} embeddings to {self.path}")
