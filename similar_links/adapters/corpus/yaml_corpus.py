"""
YAML-backed corpus view and backlink graph.

Metadata file: mapping of id -> {title, author, date, tags, abstract}.
Backlinks file: mapping of target id -> list of caller ids.

An entry that cannot be parsed is logged and left out; only an unreadable
file or a non-mapping top level is fatal.
"""

from __future__ import annotations
from pathlib import Path
from typing import Iterator
import logging

from pydantic import ValidationError
import yaml

from similar_links.adapters.corpus.base import InMemoryBacklinks, InMemoryCorpus
from similar_links.core.errors import CorpusLoadError
from similar_links.models.document import DocumentMeta

logger = logging.getLogger(__name__)


def _read_mapping(path: Path) -> dict:
    if not path.exists():
        logger.warning(f"{path} not found; treating as empty")
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise CorpusLoadError(str(path), str(e)) from e
    if not isinstance(data, dict):
        raise CorpusLoadError(str(path), f"expected a mapping at top level, got {type(data).__name__}")
    return data


def _documents(path: Path, raw: dict) -> Iterator[DocumentMeta]:
    for k, v in raw.items():
        if v is not None and not isinstance(v, dict):
            logger.warning(f"{path}: skipping {k}: expected a mapping, got {type(v).__name__}")
            continue
        fields = {key: val for key, val in (v or {}).items() if key != "id"}
        try:
            yield DocumentMeta(id=str(k), **fields)
        except ValidationError as e:
            logger.warning(f"{path}: skipping {k}: {e.error_count()} invalid field(s): {e.errors()[0]['msg']}")


class YamlCorpus(InMemoryCorpus):
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        super().__init__(_documents(self.path, _read_mapping(self.path)))


class YamlBacklinks(InMemoryBacklinks):
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        raw = _read_mapping(self.path)
        links = {}
        for k, v in raw.items():
            if isinstance(v, str):
                v = [v]
            elif not isinstance(v, (list, tuple)):
                if v is not None:
                    logger.warning(f"{self.path}: skipping {k}: expected a list of callers")
                continue
            links[str(k)] = [str(c) for c in v]
        super().__init__(links)
