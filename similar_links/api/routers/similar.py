from __future__ import annotations
from fastapi import APIRouter, HTTPException, Query
from fastapi import status as http

from similar_links.core.config import settings
from similar_links.models.match import MatchResult
from similar_links.services.search_service import SearchService

router = APIRouter()
svc = SearchService(
    num_trees=settings.FOREST_TREES,
    leaf_size=settings.LEAF_SIZE,
    seed=settings.FOREST_SEED,
    iteration_limit=settings.ITERATION_LIMIT,
)


@router.get("/{doc_id:path}", response_model=MatchResult)
def similar(doc_id: str, k: int = Query(settings.BEST_N_EMBEDDINGS, ge=1, le=200)):
    """Ranked neighbors of one document from the current embedding store."""
    result = svc.similar(doc_id, k)
    if result is None:
        raise HTTPException(http.HTTP_404_NOT_FOUND, detail="Embedding not found")
    return result
