from fastapi import FastAPI
from similar_links.api.routers.similar import router as similar_router
from similar_links.api.routers.embeddings import router as embeddings_router

app = FastAPI(title="Similar Links")

app.include_router(embeddings_router, prefix="/embeddings", tags=["embeddings"])
app.include_router(similar_router, prefix="/similar", tags=["similar"])
