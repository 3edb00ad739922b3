"""Click CLI for deckassist — presentation asset helpers."""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from deckassist.config.hierarchy import load_settings
from deckassist.errors.exceptions import DeckAssistError
from deckassist.types import (
    CacheType,
    FilterOptions,
    GenerationRequest,
    PresentationRequest,
    ProcessOptions,
    ResizeOptions,
)

console = Console()
error_console = Console(stderr=True)

T = TypeVar("T")


def _setup_logging(verbosity: int, default_level: str = "WARNING") -> None:
    """Configure logging based on verbosity level."""
    level = logging.getLevelName(default_level.upper())
    if not isinstance(level, int):
        level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=error_console, show_time=False, show_path=False)],
    )


def _run(ctx: click.Context, action: Callable[[Any], Awaitable[T]]) -> T:
    """Run ``action`` against a fresh DeckAssist and close it afterwards."""
    from deckassist.core import DeckAssist

    async def _main() -> T:
        async with DeckAssist(ctx.obj["settings"]) as app:
            return await action(app)

    try:
        return asyncio.run(_main())
    except DeckAssistError as e:
        error_console.print(f"[red]Error:[/red] {e.message}")
        sys.exit(1)


@click.group()
@click.version_option(package_name="deckassist")
@click.option("--cache-db", type=click.Path(dir_okay=False), help="Cache database path.")
@click.option("--images-dir", type=click.Path(file_okay=False), help="Image directory.")
@click.option("-v", "--verbose", count=True, help="Increase verbosity (-v info, -vv debug).")
@click.pass_context
def cli(ctx: click.Context, cache_db: str | None, images_dir: str | None, verbose: int) -> None:
    """deckassist — image, text and translation helpers for slide decks."""
    settings = load_settings(cache_db_path=cache_db, images_dir=images_dir)
    _setup_logging(verbose, settings.log_level)
    ctx.obj = {"settings": settings}


@cli.command()
@click.pass_context
def health(ctx: click.Context) -> None:
    """Check which backends are reachable."""
    status = _run(ctx, lambda app: app.health())

    table = Table(title="Backend Health", show_header=True)
    table.add_column("Service", style="cyan")
    table.add_column("Status")
    for name, ok in status.items():
        table.add_row(name, "[green]ok[/green]" if ok else "[red]unavailable[/red]")
    console.print(table)


@cli.command()
@click.argument("prompt")
@click.option("--negative", default=None, help="Negative prompt.")
@click.option("--width", type=int, default=None)
@click.option("--height", type=int, default=None)
@click.option("--steps", type=int, default=None)
@click.option("--seed", type=int, default=None)
@click.pass_context
def generate(
    ctx: click.Context,
    prompt: str,
    negative: str | None,
    width: int | None,
    height: int | None,
    steps: int | None,
    seed: int | None,
) -> None:
    """Queue an image generation and wait for it to finish."""
    request = GenerationRequest(
        prompt=prompt,
        negative_prompt=negative,
        width=width,
        height=height,
        steps=steps,
        seed=seed,
    )

    async def _generate(app: Any) -> dict[str, Any]:
        job_id = app.submit_generation(request)
        await app.jobs.join()
        return app.get_job(job_id).to_public()

    job = _run(ctx, _generate)
    if job["status"] == "failed":
        error_console.print(f"[red]Generation failed:[/red] {job.get('error')}")
        sys.exit(1)
    console.print(f"[green]Generated:[/green] {job['result']}")


@cli.command()
@click.argument("prompt")
@click.option("--slides", "slide_count", type=click.IntRange(1, 50), default=5, show_default=True)
@click.option("--language", default=None, help="Language to write the slides in.")
@click.option("--model", default=None, help="Text model (default: configured model).")
@click.pass_context
def outline(
    ctx: click.Context,
    prompt: str,
    slide_count: int,
    language: str | None,
    model: str | None,
) -> None:
    """Draft a slide outline for PROMPT."""
    request = PresentationRequest(
        prompt=prompt, slide_count=slide_count, language=language, model=model
    )
    result = _run(ctx, lambda app: app.generate_presentation(request))
    if result.status == "failed":
        error_console.print(f"[red]Outline failed:[/red] {result.error}")
        sys.exit(1)

    console.print(f"[bold]{result.title}[/bold]")
    for number, slide in enumerate(result.slides, start=1):
        console.print(f"\n[cyan]{number}. {slide.title}[/cyan]")
        for bullet in slide.content:
            console.print(f"  • {bullet}")


@cli.command()
@click.argument("text")
@click.option("--to", "target", required=True, help="Target language code.")
@click.option("--from", "source", default=None, help="Source language code (default: detect).")
@click.pass_context
def translate(ctx: click.Context, text: str, target: str, source: str | None) -> None:
    """Translate TEXT into another language."""
    console.print(_run(ctx, lambda app: app.translate(text, target, source)))


@cli.command()
@click.argument("text")
@click.pass_context
def detect(ctx: click.Context, text: str) -> None:
    """Detect the language of TEXT."""
    result = _run(ctx, lambda app: app.detect_language(text))
    console.print(f"{result.language} ({result.confidence:.1f})")


@cli.command()
@click.pass_context
def languages(ctx: click.Context) -> None:
    """List languages the translation server supports."""
    items = _run(ctx, lambda app: app.languages())

    table = Table(title="Languages", show_header=True)
    table.add_column("Code", style="cyan")
    table.add_column("Name")
    for lang in items:
        table.add_row(lang.code, lang.name)
    console.print(table)


@cli.command()
@click.argument("query")
@click.option("--count", type=click.IntRange(1, 50), default=10, show_default=True)
@click.option("--scrape", is_flag=True, default=False, help="Scrape instead of using the API.")
@click.pass_context
def search(ctx: click.Context, query: str, count: int, scrape: bool) -> None:
    """Find candidate images for QUERY."""
    if scrape:
        results = _run(ctx, lambda app: app.scrape_images(query, count))
    else:
        results = _run(ctx, lambda app: app.search_images(query, count))

    if not results:
        error_console.print("[yellow]No images found.[/yellow]")
        return

    table = Table(title=f"Images for {query!r}", show_header=True)
    table.add_column("Title", style="cyan")
    table.add_column("URL")
    for item in results:
        table.add_row(item.title, item.url)
    console.print(table)


# ── Image files ──


@cli.group()
def image() -> None:
    """Process images in the image directory."""


@image.command("process")
@click.argument("filename")
@click.option("--width", type=int, default=None)
@click.option("--height", type=int, default=None)
@click.option("--grayscale", is_flag=True, default=False)
@click.option("--blur", type=float, default=None, help="Gaussian blur radius.")
@click.option("--sharpen", is_flag=True, default=False)
@click.option("--rotate", type=float, default=None, help="Clockwise degrees.")
@click.option(
    "--format", "fmt", type=click.Choice(["jpeg", "png", "webp"]), default="jpeg", show_default=True
)
@click.option("--quality", type=click.IntRange(1, 100), default=None)
@click.pass_context
def image_process(
    ctx: click.Context,
    filename: str,
    width: int | None,
    height: int | None,
    grayscale: bool,
    blur: float | None,
    sharpen: bool,
    rotate: float | None,
    fmt: str,
    quality: int | None,
) -> None:
    """Resize, filter and re-encode FILENAME."""
    options = ProcessOptions(
        resize=ResizeOptions(width=width, height=height) if width or height else None,
        filters=FilterOptions(grayscale=grayscale, blur=blur, sharpen=sharpen, rotate=rotate),
        format=fmt,
        quality=quality,
    )
    result = _run(ctx, lambda app: _sync(app.process_image, filename, options))
    console.print(f"[green]Saved:[/green] {result}")


@image.command("compress")
@click.argument("filename")
@click.option("--threshold", type=float, default=None, help="Size threshold in MB.")
@click.pass_context
def image_compress(ctx: click.Context, filename: str, threshold: float | None) -> None:
    """Re-encode FILENAME as webp when it is larger than the threshold."""
    result = _run(ctx, lambda app: _sync(app.compress_if_large, filename, threshold))
    if result == filename:
        console.print("Below threshold, unchanged.")
    else:
        console.print(f"[green]Compressed:[/green] {result}")


@image.command("remove-bg")
@click.argument("filename")
@click.pass_context
def image_remove_bg(ctx: click.Context, filename: str) -> None:
    """Make the light background of FILENAME transparent."""
    result = _run(ctx, lambda app: _sync(app.remove_background, filename))
    console.print(f"[green]Saved:[/green] {result}")


async def _sync(func: Callable[..., T], *args: Any) -> T:
    return func(*args)


# ── Cache ──


@cli.group()
def cache() -> None:
    """Cache management commands."""


@cache.command("stats")
@click.pass_context
def cache_stats(ctx: click.Context) -> None:
    """Show cache statistics."""
    stats = _run(ctx, lambda app: _sync(app.cache.stats))

    table = Table(title="Cache Statistics", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Value")
    table.add_row("Entries", str(stats.entries))
    table.add_row("Translations", str(stats.translation_entries))
    for cache_type, count in sorted(stats.by_type.items()):
        table.add_row(f"  {cache_type}", str(count))
    console.print(table)


@cache.command("clear")
@click.option(
    "--type", "cache_type", type=click.Choice([t.value for t in CacheType]), default=None,
    help="Only clear entries of this type.",
)
@click.confirmation_option(prompt="Are you sure you want to clear the cache?")
@click.pass_context
def cache_clear(ctx: click.Context, cache_type: str | None) -> None:
    """Clear cached data."""
    if cache_type:
        count = _run(ctx, lambda app: _sync(app.cache.clear_by_type, CacheType(cache_type)))
    else:
        count = _run(ctx, lambda app: _sync(app.cache.clear_all))
    console.print(f"[green]Cache cleared.[/green] {count} entries removed.")


@cache.command("sweep")
@click.pass_context
def cache_sweep(ctx: click.Context) -> None:
    """Remove expired cache entries."""
    count = _run(ctx, lambda app: _sync(app.sweep_cache))
    console.print(f"Removed {count} expired entries.")


def main() -> None:
    """Entry point for the CLI."""
    cli()
