"""
Redis repositories package.
"""

from .embedding_repo import EmbeddingRepoRedis

__all__ = ["EmbeddingRepoRedis"]
