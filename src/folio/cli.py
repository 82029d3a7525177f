"""CLI interface for folio."""

import json
import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn

from folio.assembler import published
from folio.config import FolioConfig, load_config, merge_cli_overrides
from folio.errors import SiteError
from folio.loader import PostLoader
from folio.models import DraftPolicy
from folio.pipeline import build_site

app = typer.Typer(
    name="folio",
    help="Build a static blog from a directory of Markdown posts and drafts.",
)

console = Console()
err_console = Console(stderr=True)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from folio import __version__

        console.print(f"folio {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """folio - Markdown posts in, static HTML out."""
    pass


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False, show_time=False)],
        force=True,
    )


def _fail(exc: Exception) -> typer.Exit:
    err_console.print(f"[red]{type(exc).__name__}:[/red] {escape(str(exc))}", soft_wrap=True)
    return typer.Exit(1)


SourceArg = Annotated[
    Path,
    typer.Argument(
        help="Site source directory containing _posts/ and _drafts/.",
        exists=True,
        file_okay=False,
        dir_okay=True,
        resolve_path=True,
    ),
]

ConfigOpt = Annotated[
    Optional[Path],
    typer.Option(
        "--config",
        "-c",
        help="Config file. Defaults to SOURCE/folio.toml.",
        dir_okay=False,
    ),
]


@app.command()
def build(
    source: SourceArg,
    destination: Annotated[
        Path,
        typer.Argument(help="Output directory. Created if missing."),
    ],
    config_path: ConfigOpt = None,
    drafts: Annotated[
        Optional[DraftPolicy],
        typer.Option(
            "--drafts",
            help="'exclude' skips drafts, 'preview' renders them to drafts/.",
            case_sensitive=False,
        ),
    ] = None,
    workers: Annotated[
        Optional[int],
        typer.Option(
            "--workers",
            "-j",
            min=1,
            help="Load and render posts on this many threads.",
        ),
    ] = None,
    clean: Annotated[
        Optional[bool],
        typer.Option(
            "--clean/--no-clean",
            help="Empty the destination before writing.",
        ),
    ] = None,
    site_url: Annotated[
        Optional[str],
        typer.Option(
            "--site-url",
            help="Absolute base URL; enables feed.xml and sitemap.xml.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log every file processed."),
    ] = False,
) -> None:
    """Render posts and write the static site.

    Exits non-zero on the first fatal error (invalid config, malformed
    header, duplicate slug, unresolved link reference, missing layout,
    unwritable output).
    """
    _setup_logging(verbose)

    try:
        config = load_config(source, config_path)
        config = merge_cli_overrides(
            config,
            drafts=drafts,
            workers=workers,
            clean=clean,
            site_url=site_url,
        )
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=err_console,
            transient=True,
        ) as progress:
            progress.add_task("Building site...", total=None)
            report = build_site(source, destination.resolve(), config)
    except SiteError as exc:
        raise _fail(exc) from exc
    except OSError as exc:
        raise _fail(exc) from exc

    console.print("[bold green]Build complete![/bold green]")
    console.print(f"  Posts: {report.posts}")
    console.print(f"  Pages: {report.pages}")
    if report.drafts:
        console.print(f"  Draft previews: {report.drafts}")
    console.print(f"  Assets: {report.assets}")
    console.print(f"  Output: {escape(str(destination))}", soft_wrap=True)


def _summary(config: FolioConfig, source: Path, include_drafts: bool) -> dict[str, object]:
    posts = PostLoader(config.content).load(source, workers=config.build.workers)
    live = published(posts)
    drafts = sorted((p for p in posts if p.is_draft), key=lambda p: p.slug)

    tag_counts: dict[str, int] = {}
    for post in live:
        for tag in post.tags:
            tag_counts[tag] = tag_counts.get(tag, 0) + 1

    listed = live + drafts if include_drafts else live
    return {
        "post_count": len(live),
        "draft_count": len(drafts),
        "date_range": {
            "start": live[-1].date_label if live else None,
            "end": live[0].date_label if live else None,
        },
        "tags": dict(sorted(tag_counts.items())),
        "posts": [
            {
                "slug": p.slug,
                "title": p.title,
                "date": p.date_label,
                "tags": list(p.tags),
                "category": p.category,
                "draft": p.is_draft,
            }
            for p in listed
        ],
    }


@app.command(name="posts")
def posts_cmd(
    source: SourceArg,
    config_path: ConfigOpt = None,
    include_drafts: Annotated[
        bool,
        typer.Option(
            "--drafts/--no-drafts",
            help="Also list drafts.",
        ),
    ] = False,
) -> None:
    """Load the collection and print a JSON summary.

    Runs the same header and slug checks as ``build`` without rendering
    or writing anything.
    """
    _setup_logging(False)

    try:
        config = load_config(source, config_path)
        summary = _summary(config, source, include_drafts)
    except SiteError as exc:
        raise _fail(exc) from exc

    console.print(
        json.dumps(summary, indent=2), markup=False, highlight=False, emoji=False, soft_wrap=True
    )


if __name__ == "__main__":
    app()
