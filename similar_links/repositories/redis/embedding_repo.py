"""
Redis-based embedding store.
The store is kept as one JSON document under a single key, so a commit is
a single atomic SET.
"""

from __future__ import annotations
import logging
import redis

from similar_links.core.errors import StoreReadError, StoreWriteError
from similar_links.models.embedding import EmbeddingDB

logger = logging.getLogger(__name__)


class EmbeddingRepoRedis:
    """
    Redis-backed embedding store with persistence.
    Embeddings survive worker restarts and can be shared between hosts.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        key: str = "similar_links:embeddings",
        client: redis.Redis | None = None,
    ) -> None:
        self.redis_client = client if client is not None else redis.from_url(redis_url, decode_responses=False)
        self.key = key

    @property
    def location(self) -> str:
        return f"redis:{self.key}"

    def load(self) -> EmbeddingDB:
        try:
            data = self.redis_client.get(self.key)
        except redis.RedisError as e:
            raise StoreReadError(self.location, str(e)) from e
        if not data:
            return EmbeddingDB()
        try:
            return EmbeddingDB.from_json(data)
        except (TypeError, ValueError) as e:
            raise StoreReadError(self.location, str(e)) from e

    def save(self, db: EmbeddingDB) -> None:
        try:
            self.redis_client.set(self.key, db.to_json())
        except redis.RedisError as e:
            raise StoreWriteError(self.location, str(e)) from e
        logger.debug(f"Wrote {len(db)} embeddings to {self.location}")
