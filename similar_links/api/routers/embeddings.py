from __future__ import annotations
from fastapi import APIRouter

from similar_links.api.routers import similar

router = APIRouter()


@router.get("/status")
def embeddings_status():
    db = similar.svc.embeddings()
    return {"count": len(db), "dim": db.dim, "store": similar.svc.repo.location}


@router.post("/refresh")
def refresh():
    # next lookup reloads the store and rebuilds the forest
    similar.svc.refresh()
    return {"refreshed": True}
