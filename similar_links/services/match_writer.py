"""
Rendering and writing of per-document similar-links fragments.

One HTML file per document, named after the URL-quoted id. Whether that
file exists is what missing-only runs use to decide what still needs doing,
so writes always replace the whole file in one step.
"""

from __future__ import annotations
from html import escape
from pathlib import Path
from typing import List
from urllib.parse import quote
import hashlib
import logging
import math
import os
import tempfile

from similar_links.adapters.corpus.base import BacklinkGraph, CorpusView
from similar_links.core.errors import ArtifactWriteError, RenderError
from similar_links.models.match import MatchResult

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 240


def artifact_name(doc_id: str, suffix: str = ".html") -> str:
    """
    URL-safe file name for `doc_id`. Over-long names are cut and tagged with
    a hash of the full id so distinct ids never share a file.
    """
    name = quote(doc_id, safe="")
    if len(name) > MAX_NAME_LENGTH:
        digest = hashlib.sha1(doc_id.encode("utf-8")).hexdigest()[:12]
        name = f"{name[:MAX_NAME_LENGTH - 13]}-{digest}"
    return name + suffix


class MatchWriter:

    def __init__(
        self,
        out_dir: str | Path,
        corpus: CorpusView,
        backlinks: BacklinkGraph,
        backlinks_url_prefix: str = "/metadata/annotations/backlinks/",
    ) -> None:
        self.out_dir = Path(out_dir)
        self.corpus = corpus
        self.backlinks = backlinks
        self.backlinks_url_prefix = backlinks_url_prefix

    def path_for(self, doc_id: str) -> Path:
        return self.out_dir / artifact_name(doc_id)

    def exists(self, doc_id: str) -> bool:
        return self.path_for(doc_id).exists()

    def _item(self, neighbor_id: str, distance: float) -> str:
        meta = self.corpus.get(neighbor_id)
        title = (meta.title if meta and meta.title else neighbor_id)
        line = f'<a class="link-annotated" href="{escape(neighbor_id)}">{escape(title)}</a>'
        if meta:
            byline = " ".join(p for p in (meta.author, f"({meta.date})" if meta.date else "") if p)
            if byline:
                line += f' <span class="similar-meta">{escape(byline)}</span>'
        line += f' <span class="similar-distance">{distance:.4f}</span>'
        callers = self.backlinks.callers(neighbor_id)
        if callers:
            href = self.backlinks_url_prefix + artifact_name(neighbor_id)
            noun = "backlink" if len(callers) == 1 else "backlinks"
            line += f' <a class="backlinks" href="{escape(href)}">({len(callers)} {noun})</a>'
        return f"<li>{line}</li>"

    def render(self, result: MatchResult) -> str:
        meta = self.corpus.get(result.query_id)
        if meta is None:
            raise RenderError(result.query_id, "no metadata in corpus")
        for m in result.matches:
            if not math.isfinite(m.distance):
                raise RenderError(result.query_id, f"non-finite distance to {m.id}")

        title = meta.title or result.query_id
        lines: List[str] = [
            f"<!-- similar links for: {escape(result.query_id)} -->",
            '<section class="similars">',
            f'<p class="similars-header">Similar links for '
            f'<a href="{escape(result.query_id)}">{escape(title)}</a>:</p>',
            '<ol class="similars-list">',
        ]
        lines.extend(self._item(m.id, m.distance) for m in result.matches)
        lines.append("</ol>")
        lines.append("</section>")
        return "\n".join(lines) + "\n"

    def write(self, result: MatchResult) -> bool:
        """
        Render and persist `result`, replacing any earlier file.
        Returns False (and writes nothing) when there are no neighbors.
        """
        if not result.matches:
            logger.debug(f"No neighbors for {result.query_id}; nothing written")
            return False
        content = self.render(result)
        path = self.path_for(result.query_id)
        tmp_name = None
        try:
            self.out_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.out_dir, prefix=".similar-", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.chmod(tmp_name, 0o644)
            os.replace(tmp_name, path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise ArtifactWriteError(str(path), str(e)) from e
        logger.debug(f"Wrote {path}")
        return True
