from __future__ import annotations
from datetime import date
from typing import Dict, Iterable, Iterator, List, Optional, Union
import json
import math

from pydantic import BaseModel, Field, field_validator

from similar_links.core.errors import DimensionMismatchError


class EmbeddingRecord(BaseModel):
    """
    One document's embedding plus the few fields carried along for display.
    The auxiliary fields (title, created, model) are opaque to the search code.
    """
    id: str
    vector: List[float]
    title: str = ""
    created: date = Field(default_factory=date.today)
    model: str = ""

    model_config = {"frozen": True}

    @field_validator("vector")
    @classmethod
    def validate_vector(cls, v: List[float]) -> List[float]:
        if not v:
            raise ValueError("vector must not be empty")
        if not all(math.isfinite(x) for x in v):
            raise ValueError("vector components must be finite")
        return v


class EmbeddingDB:
    """
    Immutable, id-sorted set of EmbeddingRecords sharing one dimensionality.

    merge/prune return a new EmbeddingDB; nothing is changed in place, so a
    snapshot can be handed to many readers at once.
    """

    def __init__(self, records: Iterable[EmbeddingRecord] = ()) -> None:
        by_id: Dict[str, EmbeddingRecord] = {}
        dim: Optional[int] = None
        for r in records:
            if dim is None:
                dim = len(r.vector)
            elif len(r.vector) != dim:
                raise DimensionMismatchError(dim, len(r.vector), r.id)
            by_id[r.id] = r  # later record wins on duplicate id
        self._by_id = by_id
        self._records = tuple(by_id[k] for k in sorted(by_id))
        self.dim = dim or 0

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[EmbeddingRecord]:
        return iter(self._records)

    def __contains__(self, doc_id: object) -> bool:
        return doc_id in self._by_id

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EmbeddingDB):
            return NotImplemented
        return self._records == other._records

    def __repr__(self) -> str:
        return f"EmbeddingDB(n={len(self)}, dim={self.dim})"

    def ids(self) -> List[str]:
        return [r.id for r in self._records]

    def get(self, doc_id: str) -> Optional[EmbeddingRecord]:
        return self._by_id.get(doc_id)

    def merge(self, new: Iterable[EmbeddingRecord]) -> "EmbeddingDB":
        """Union with `new`; on a duplicate id the incoming record replaces the stored one."""
        return EmbeddingDB([*self._records, *new])

    def prune(self, corpus_ids: Iterable[str]) -> "EmbeddingDB":
        """Drop records whose id is no longer in the corpus (renames, deletions)."""
        keep = set(corpus_ids)
        return EmbeddingDB(r for r in self._records if r.id in keep)

    # --------- serialization (sorted by id) ----------
    def to_json(self) -> str:
        return json.dumps([r.model_dump(mode="json") for r in self._records], ensure_ascii=False)

    @classmethod
    def from_json(cls, data: Union[str, bytes]) -> "EmbeddingDB":
        return cls(EmbeddingRecord(**d) for d in json.loads(data))
