"""
CLI for maintaining similar-links.

Usage:
    similar-links run                  # embed missing, fill gaps, then rewrite all
    similar-links run --only-embed     # just keep the embedding store warm
    similar-links run --only-missing   # embed missing, fill gaps only
    similar-links query /doc/foo -n 5
    similar-links status

`run --only-embed` is cheap enough to run from a file watcher, e.g.
    while true; do inotifywait metadata/*.yaml -e attrib && sleep 10s && similar-links run --only-embed; done
"""

from typing import Optional

import typer
from typing_extensions import Annotated

from .core.config import settings
from .core.errors import SimilarLinksError
from .core.logging_config import configure_logging
from .services.orchestrator import Orchestrator, RunMode

app = typer.Typer(
    name="similar-links",
    help="Embedding-based 'similar links' for an annotated corpus.",
    no_args_is_help=True,
    rich_markup_mode=None,
)


@app.command()
def run(
    only_embed: Annotated[bool, typer.Option(
        "--only-embed",
        help="Update the embedding store and stop before building the index",
    )] = False,
    only_missing: Annotated[bool, typer.Option(
        "--only-missing",
        help="Only write similar-links for documents that have none yet",
    )] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
):
    """Update embeddings and write similar-links fragments."""
    configure_logging(verbose)
    if only_embed and only_missing:
        typer.echo("Error: --only-embed and --only-missing are exclusive", err=True)
        raise typer.Exit(2)
    mode = RunMode.EMBED_ONLY if only_embed else RunMode.MISSING_ONLY if only_missing else RunMode.FULL_REBUILD

    try:
        report = Orchestrator.from_settings().run(mode)
    except SimilarLinksError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    m = report.maintenance
    typer.echo(f"embeddings: {len(m.db)} ({len(m.fetched)} new, {len(m.failed)} failed, "
               f"{len(m.pruned)} pruned, {m.deferred} deferred)")
    for name, p in (("missing", report.missing_pass), ("full", report.full_pass)):
        if p is not None:
            typer.echo(f"{name}: {p.written} written, {len(p.failed)} failed")


@app.command()
def query(
    doc_id: Annotated[str, typer.Argument(help="Document id (path or URL)")],
    n: Annotated[Optional[int], typer.Option("-n", help="Number of neighbors")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
):
    """Print the nearest neighbors of one document."""
    from .services.search_service import SearchService

    configure_logging(verbose)
    svc = SearchService(
        num_trees=settings.FOREST_TREES,
        leaf_size=settings.LEAF_SIZE,
        seed=settings.FOREST_SEED,
        iteration_limit=settings.ITERATION_LIMIT,
    )
    try:
        result = svc.similar(doc_id, n or settings.BEST_N_EMBEDDINGS)
    except SimilarLinksError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    if result is None:
        typer.echo(f"Error: no embedding for {doc_id}", err=True)
        raise typer.Exit(1)
    for m in result.matches:
        typer.echo(f"{m.distance:.4f}\t{m.id}")


@app.command()
def status():
    """Show embedding store size and how many documents still need embedding."""
    from .adapters.corpus.yaml_corpus import YamlCorpus
    from .repositories.factory import get_embedding_repo
    from .services.maintainer import missing_embeddings

    configure_logging(False)
    repo = get_embedding_repo()
    try:
        db = repo.load()
        corpus_ids = YamlCorpus(settings.METADATA_PATH).embeddable_ids()
    except SimilarLinksError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    missing = missing_embeddings(corpus_ids, db.ids())
    stale = len(set(db.ids()) - set(corpus_ids))
    typer.echo(f"store: {repo.location}")
    typer.echo(f"embeddings: {len(db)} (dim {db.dim})")
    typer.echo(f"documents: {len(corpus_ids)}")
    typer.echo(f"missing: {len(missing)}")
    typer.echo(f"stale: {stale}")


def main():
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Interrupted", err=True)
        raise SystemExit(130)


if __name__ == "__main__":
    main()
