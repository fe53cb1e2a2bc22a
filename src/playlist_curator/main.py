"""Command-line entry point for playlist-curator."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table
from yt_dlp.utils import YoutubeDLError

from playlist_curator.curation_engine import CurationEngine
from playlist_curator.models.batch import BatchCompleted, BatchStatus
from playlist_curator.models.media import Corpus, CurationResult, MediaItem
from playlist_curator.services.capability import Availability, UnavailableCapability, probe
from playlist_curator.services.corpus_source import load_queue_document
from playlist_curator.services.prompt_compiler import format_duration
from playlist_curator.services.youtube_service import YouTubeService
from playlist_curator.utils.config import load_config, setup_logging
from playlist_curator.utils.retry import RetryableError

logger = logging.getLogger(__name__)

app = typer.Typer(add_completion=False, help="Curate and classify videos with a generative classifier.")
console = Console()


def _build_engine(offline: bool, log_level: Optional[str]) -> CurationEngine:
    try:
        config = load_config()
    except ValueError as e:
        raise typer.BadParameter(f"Invalid configuration: {e}")
    setup_logging(log_level or config.get("log_level", "INFO"), config.get("log_file"))
    port = UnavailableCapability() if offline else None
    try:
        return CurationEngine(config, port=port)
    except ValueError as e:
        raise typer.BadParameter(str(e))


def _load_corpus(corpus: Optional[Path], playlist: Optional[str]) -> Corpus:
    if corpus is None and not playlist:
        raise typer.BadParameter("Provide --corpus FILE or --playlist URL")
    if corpus is not None:
        try:
            return load_queue_document(corpus)
        except (OSError, ValueError) as e:
            raise typer.BadParameter(f"Cannot read corpus {corpus}: {e}")
    try:
        return YouTubeService().fetch_corpus(playlist)
    except (YoutubeDLError, RetryableError) as e:
        raise typer.BadParameter(f"Cannot read playlist {playlist}: {e}")


async def _print_events(queue: "asyncio.Queue[Optional[BatchCompleted]]") -> None:
    while True:
        event = await queue.get()
        if event is None:
            return
        if event.status == BatchStatus.DONE:
            console.print(
                f"[cyan]Batch {event.batch_index}/{event.total_batches}[/cyan] "
                f"selected {len(event.new_items)} videos"
            )
        else:
            console.print(
                f"[yellow]Batch {event.batch_index}/{event.total_batches} failed[/yellow]"
            )


async def _curate_with_progress(
    engine: CurationEngine, objective: str, items: list
) -> CurationResult:
    queue: "asyncio.Queue[Optional[BatchCompleted]]" = asyncio.Queue()
    printer = asyncio.create_task(_print_events(queue))
    result = await engine.curate(objective, items, events=queue)
    await printer
    return result


def _render_result(result: CurationResult) -> None:
    source = "keyword fallback" if result.used_fallback else "classifier"
    table = Table(title=f"{result.label} ({source})")
    table.add_column("#", justify="right")
    table.add_column("Title")
    table.add_column("Duration", justify="right")
    table.add_column("Reason")
    for number, selected in enumerate(result.items, start=1):
        table.add_row(
            str(number),
            selected.item.title,
            format_duration(selected.item.duration_seconds),
            selected.reason,
        )
    console.print(table)
    console.print(
        f"{len(result.items)} videos, total {format_duration(result.total_duration_seconds)}"
    )
    if result.reasoning:
        console.print(result.reasoning)


@app.command()
def curate(
    objective: Annotated[str, typer.Argument(help='What to watch, e.g. "30 minute lunch trivia".')],
    corpus: Annotated[
        Optional[Path],
        typer.Option(exists=True, dir_okay=False, help="Queue document JSON file."),
    ] = None,
    playlist: Annotated[
        Optional[str], typer.Option(help="YouTube playlist URL to use as the corpus.")
    ] = None,
    category: Annotated[
        Optional[str], typer.Option(help="Only curate from this category.")
    ] = None,
    offline: Annotated[
        bool, typer.Option(help="Skip the classifier and use keyword matching only.")
    ] = False,
    as_json: Annotated[bool, typer.Option("--json", help="Print the result as JSON.")] = False,
    log_level: Annotated[Optional[str], typer.Option(help="Logging level.")] = None,
) -> None:
    """Build a playlist from the corpus for a natural-language objective."""
    engine = _build_engine(offline, log_level)
    items = _load_corpus(corpus, playlist).all_items(category)

    result = asyncio.run(_curate_with_progress(engine, objective, items))

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    else:
        _render_result(result)


@app.command()
def classify(
    title: Annotated[str, typer.Option(help="Title of the video to file.")],
    corpus: Annotated[
        Path, typer.Option(exists=True, dir_okay=False, help="Queue document JSON file.")
    ],
    url: Annotated[str, typer.Option(help="Video url.")] = "about:blank",
    channel: Annotated[Optional[str], typer.Option(help="Channel name.")] = None,
    duration: Annotated[int, typer.Option(min=0, help="Duration in seconds.")] = 0,
    thumbnail: Annotated[Optional[str], typer.Option(help="Thumbnail image URL.")] = None,
    offline: Annotated[
        bool, typer.Option(help="Skip the classifier and use the default category.")
    ] = False,
    log_level: Annotated[Optional[str], typer.Option(help="Logging level.")] = None,
) -> None:
    """Suggest the best existing category for one video."""
    engine = _build_engine(offline, log_level)
    queue = _load_corpus(corpus, None)
    item = MediaItem(
        url=url,
        title=title,
        duration_seconds=duration,
        channel_name=channel,
        thumbnail_ref=thumbnail,
    )

    classification = engine.classify(item, queue)
    typer.echo(classification.category)


@app.command()
def status(
    offline: Annotated[bool, typer.Option(help="Report on the offline capability.")] = False,
) -> None:
    """Report whether the classifier capability can be used."""
    engine = _build_engine(offline, "WARNING")
    availability = engine.port.availability()
    colour = "green" if availability == Availability.AVAILABLE else "yellow"
    console.print(f"Classifier: [{colour}]{availability.value}[/{colour}]")

    if availability == Availability.AVAILABLE:
        passed = probe(engine.port, engine.classify_timeout_ms)
        result = "[green]passed[/green]" if passed else "[red]failed[/red]"
        console.print(f"Probe (2+2): {result}")


def main():
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
