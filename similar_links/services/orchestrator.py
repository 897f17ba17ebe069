"""
Run sequencing: maintain embeddings, build the forest, fan out per document.

Ordering is fixed: fetch, commit, build, query. The forest and the
EmbeddingDB snapshot are read-only once the fan-out starts; each worker
only touches its own output file.
"""

from __future__ import annotations
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, List, Optional
import logging

from similar_links.adapters.corpus.base import BacklinkGraph, CorpusView
from similar_links.core.config import Settings, settings
from similar_links.core.errors import ArtifactWriteError, SimilarLinksError
from similar_links.indexing.base import Index
from similar_links.models.embedding import EmbeddingDB
from similar_links.services.embedding_service import EmbeddingFetcher, EmbeddingProvider
from similar_links.services.maintainer import (
    MAX_EMBED_AT_ONCE,
    EmbeddingRepo,
    IncrementalMaintainer,
    MaintenanceReport,
)
from similar_links.services.match_writer import MatchWriter
from similar_links.services.search_service import build_forest, find_n

logger = logging.getLogger(__name__)


class RunMode(str, Enum):
    EMBED_ONLY = "embed-only"
    MISSING_ONLY = "missing-only"
    FULL_REBUILD = "full-rebuild"  # missing-only pass, then rewrite everything


WRITTEN = "written"
SKIPPED = "skipped"
EMPTY = "empty"


@dataclass
class FanOutReport:
    written: int = 0
    already_done: int = 0
    skipped: int = 0
    empty: int = 0
    failed: List[str] = field(default_factory=list)


@dataclass
class RunReport:
    mode: RunMode
    maintenance: MaintenanceReport
    missing_pass: Optional[FanOutReport] = None
    full_pass: Optional[FanOutReport] = None


class Orchestrator:

    def __init__(
        self,
        repo: EmbeddingRepo,
        corpus: CorpusView,
        backlinks: BacklinkGraph,
        fetcher: EmbeddingFetcher,
        writer: MatchWriter,
        *,
        max_embed_at_once: int = MAX_EMBED_AT_ONCE,
        best_n: int = 20,
        iteration_limit: int = 2000,
        num_trees: int = 10,
        leaf_size: int = 16,
        seed: int = 42,
        workers: int = 8,
    ) -> None:
        self.repo = repo
        self.corpus = corpus
        self.writer = writer
        self.maintainer = IncrementalMaintainer(repo, corpus, backlinks, fetcher, max_embed_at_once)
        self.best_n = best_n
        self.iteration_limit = iteration_limit
        self.num_trees = num_trees
        self.leaf_size = leaf_size
        self.seed = seed
        self.workers = max(1, workers)

    @classmethod
    def from_settings(cls, s: Settings = settings, provider: EmbeddingProvider | None = None) -> "Orchestrator":
        from similar_links.adapters.corpus.yaml_corpus import YamlBacklinks, YamlCorpus
        from similar_links.adapters.embedding_providers.cohere_provider import CohereProvider
        from similar_links.repositories.factory import get_embedding_repo

        corpus = YamlCorpus(s.METADATA_PATH)
        backlinks = YamlBacklinks(s.BACKLINKS_PATH)
        return cls(
            get_embedding_repo(s),
            corpus,
            backlinks,
            EmbeddingFetcher(provider or CohereProvider()),
            MatchWriter(s.SIMILARS_DIR, corpus, backlinks, s.BACKLINKS_URL_PREFIX),
            max_embed_at_once=s.MAX_EMBED_AT_ONCE,
            best_n=s.BEST_N_EMBEDDINGS,
            iteration_limit=s.ITERATION_LIMIT,
            num_trees=s.FOREST_TREES,
            leaf_size=s.LEAF_SIZE,
            seed=s.FOREST_SEED,
            workers=s.WORKERS,
        )

    def run(self, mode: RunMode = RunMode.FULL_REBUILD) -> RunReport:
        db = self.repo.load()
        logger.info(f"Read databases: {len(db)} embeddings, {len(self.corpus.embeddable_ids())} documents.")

        maintenance = self.maintainer.run(db)
        report = RunReport(mode=mode, maintenance=maintenance)
        if mode is RunMode.EMBED_ONLY:
            return report

        db = maintenance.db
        forest = build_forest(db, self.num_trees, self.leaf_size, self.seed)
        corpus_ids = self.corpus.embeddable_ids()

        logger.info("Computing missing similar-links…")
        report.missing_pass = self._fan_out(corpus_ids, db, forest, guard=self.should_compute)
        logger.info(f"✓ Wrote out missing: {self._summary(report.missing_pass)}")

        if mode is RunMode.FULL_REBUILD:
            logger.info("Rewriting all similar-links…")
            everything = sorted(set(db.ids()) | set(corpus_ids))
            report.full_pass = self._fan_out(everything, db, forest)
            logger.info(f"✓ Done: {self._summary(report.full_pass)}")
        return report

    def should_compute(self, doc_id: str) -> bool:
        """Guard for missing-only passes: no output file yet."""
        return not self.writer.exists(doc_id)

    def compute(self, doc_id: str, db: EmbeddingDB, forest: Index) -> str:
        """One unit of work: lookup, query, render, write."""
        record = db.get(doc_id)
        if record is None or self.corpus.get(doc_id) is None:
            logger.debug(f"No embedding or metadata for {doc_id}; skipping")
            return SKIPPED
        result = find_n(forest, self.best_n, self.iteration_limit, record)
        return WRITTEN if self.writer.write(result) else EMPTY

    def _fan_out(
        self,
        ids: Iterable[str],
        db: EmbeddingDB,
        forest: Index,
        guard: Optional[Callable[[str], bool]] = None,
    ) -> FanOutReport:
        ids = list(ids)
        todo = [i for i in ids if guard is None or guard(i)]
        report = FanOutReport(already_done=len(ids) - len(todo))
        fatal: Optional[ArtifactWriteError] = None

        with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="similar-links") as pool:
            futures = {pool.submit(self.compute, doc_id, db, forest): doc_id for doc_id in todo}
            for fut in as_completed(futures):
                doc_id = futures[fut]
                if fut.cancelled():
                    continue
                try:
                    outcome = fut.result()
                except ArtifactWriteError as e:
                    if fatal is None:
                        logger.error(f"❌ {e}; stopping run")
                        fatal = e
                        for f in futures:
                            f.cancel()
                    continue
                except SimilarLinksError as e:
                    logger.warning(f"Skipping {doc_id}: {e}")
                    report.failed.append(doc_id)
                    continue
                except Exception:
                    logger.exception(f"Unexpected failure computing similar-links for {doc_id}")
                    report.failed.append(doc_id)
                    continue
                if outcome == WRITTEN:
                    report.written += 1
                elif outcome == EMPTY:
                    report.empty += 1
                else:
                    report.skipped += 1

        if fatal is not None:
            raise fatal
        report.failed.sort()
        return report

    @staticmethod
    def _summary(r: FanOutReport) -> str:
        return (f"{r.written} written, {r.already_done} already present, {r.skipped} skipped, "
                f"{r.empty} without neighbors, {len(r.failed)} failed")
