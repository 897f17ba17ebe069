from __future__ import annotations
from typing import List

from pydantic import BaseModel, Field


class Match(BaseModel):
    """One neighbor: its id and cosine distance to the query (smaller is closer)."""
    id: str
    distance: float

    model_config = {"frozen": True}


class MatchResult(BaseModel):
    """
    Ranked neighbors of `query_id`, ordered by (distance, id).
    Never contains the query itself.
    """
    query_id: str
    matches: List[Match] = Field(default_factory=list)

    model_config = {"frozen": True}

    def ids(self) -> List[str]:
        return [m.id for m in self.matches]
