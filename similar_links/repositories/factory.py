from __future__ import annotations

from similar_links.core.config import Settings, settings


def get_embedding_repo(s: Settings = settings):
    """Pick the embedding store backend: Redis when USE_REDIS, else the JSON file."""
    if s.USE_REDIS:
        from similar_links.repositories.redis import EmbeddingRepoRedis
        return EmbeddingRepoRedis(s.REDIS_URL, key=s.REDIS_KEY)
    from similar_links.repositories.file.embedding_repo import EmbeddingFileRepo
    return EmbeddingFileRepo(s.EMBEDDINGS_PATH)
