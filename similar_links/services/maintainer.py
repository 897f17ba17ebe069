"""
Incremental maintenance of the embedding store against the corpus.

One run: find corpus ids without an embedding, fetch at most
`max_embed_at_once` of them, merge, prune ids that left the corpus, and
commit once, only if something changed. Ids over the cap (and ids whose
fetch failed) stay missing and are picked up by the next run.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterable, List, Protocol
import logging

from similar_links.adapters.corpus.base import BacklinkGraph, CorpusView
from similar_links.core.errors import DimensionMismatchError, EmbeddingFetchError
from similar_links.models.embedding import EmbeddingDB, EmbeddingRecord
from similar_links.services.embedding_service import EmbeddingFetcher

logger = logging.getLogger(__name__)

MAX_EMBED_AT_ONCE = 750


class EmbeddingRepo(Protocol):
    location: str

    def load(self) -> EmbeddingDB:
        ...

    def save(self, db: EmbeddingDB) -> None:
        ...


def missing_embeddings(corpus_ids: Iterable[str], store_ids: Iterable[str]) -> List[str]:
    """Corpus ids absent from the store, sorted."""
    have = set(store_ids)
    return sorted({i for i in corpus_ids if i not in have})


def prune_embeddings(corpus_ids: Iterable[str], db: EmbeddingDB) -> EmbeddingDB:
    return db.prune(corpus_ids)


@dataclass
class MaintenanceReport:
    db: EmbeddingDB
    fetched: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    pruned: List[str] = field(default_factory=list)
    deferred: int = 0
    written: bool = False


class IncrementalMaintainer:

    def __init__(
        self,
        repo: EmbeddingRepo,
        corpus: CorpusView,
        backlinks: BacklinkGraph,
        fetcher: EmbeddingFetcher,
        max_embed_at_once: int = MAX_EMBED_AT_ONCE,
    ) -> None:
        self.repo = repo
        self.corpus = corpus
        self.backlinks = backlinks
        self.fetcher = fetcher
        self.max_embed_at_once = max_embed_at_once

    def run(self, db: EmbeddingDB) -> MaintenanceReport:
        corpus_ids = self.corpus.embeddable_ids()
        missing = missing_embeddings(corpus_ids, db.ids())
        todo = missing[: max(self.max_embed_at_once, 0)]
        report = MaintenanceReport(db=db, deferred=len(missing) - len(todo))

        if todo:
            logger.info(f"Embedding {len(todo)} documents ({report.deferred} deferred to a later run)…")
        else:
            logger.info("All embeddings up to date.")

        new_records = self._fetch_all(todo, db.dim, report)

        merged = db.merge(new_records)
        pruned_db = prune_embeddings(corpus_ids, merged)
        report.pruned = sorted(set(merged.ids()) - set(pruned_db.ids()))
        report.db = pruned_db

        if new_records or report.pruned:
            self.repo.save(pruned_db)
            report.written = True
            logger.info(
                f"✓ Wrote embeddings to {self.repo.location}: {len(pruned_db)} total, "
                f"{len(report.fetched)} new, {len(report.pruned)} pruned, {len(report.failed)} failed"
            )
        return report

    def _fetch_all(self, todo: List[str], dim: int, report: MaintenanceReport) -> List[EmbeddingRecord]:
        records: List[EmbeddingRecord] = []
        for doc_id in todo:
            try:
                rec = self.fetcher.fetch(doc_id, self.corpus.get(doc_id), self.backlinks.callers(doc_id))
                if dim and len(rec.vector) != dim:
                    raise DimensionMismatchError(dim, len(rec.vector), doc_id)
            except (EmbeddingFetchError, DimensionMismatchError) as e:
                logger.warning(f"Skipping {doc_id}: {e}")
                report.failed.append(doc_id)
                continue
            dim = dim or len(rec.vector)
            records.append(rec)
            report.fetched.append(doc_id)
        return records
