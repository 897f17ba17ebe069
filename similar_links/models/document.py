from __future__ import annotations
from typing import List

from pydantic import BaseModel, Field, field_validator


class DocumentMeta(BaseModel):
    """
    Display metadata for one corpus document, as supplied by the corpus view.
    Only documents with a non-empty abstract get embedded.
    """
    id: str
    title: str = ""
    author: str = ""
    date: str = ""
    tags: List[str] = Field(default_factory=list)
    abstract: str = ""

    @field_validator("title", "author", "abstract", mode="before")
    @classmethod
    def validate_text(cls, v):
        # YAML turns bare scalars like `title: 1984` into ints/floats/bools
        if v is None:
            return ""
        if isinstance(v, (int, float, bool)):
            return str(v)
        return v

    @field_validator("tags", mode="before")
    @classmethod
    def validate_tags(cls, v):
        """Accept a comma-separated string as well as a list."""
        if v is None:
            return []
        if isinstance(v, str):
            return [t.strip() for t in v.split(",") if t.strip()]
        if isinstance(v, (list, tuple)):
            return [str(t) for t in v]
        return v

    @field_validator("date", mode="before")
    @classmethod
    def validate_date(cls, v):
        # YAML parses bare dates into datetime.date
        return "" if v is None else str(v)

    @property
    def embeddable(self) -> bool:
        return bool(self.abstract.strip())
