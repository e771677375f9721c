"""
Command-line interface for the feed aggregator.

Uses Typer to expose the live feed, source listing, health probes, batch
ingestion and ad-hoc tagging. Supports loading .env files for API keys.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table
import typer

from .aggregator import build_components
from .config import AppConfig, load_config
from .core.tagger import Tagger
from .ingest import Ingestor
from .logging_utils import setup_logging

app = typer.Typer(add_completion=False)
console = Console()

ConfigOption = typer.Option(None, "--config", "-c", exists=True, help="YAML config file.")
LogLevelOption = typer.Option(None, "--log-level", help="Logging level.")


def _prepare(config: Path | None, log_level: str | None = None) -> AppConfig:
    load_dotenv()
    cfg = load_config(str(config) if config else None)
    if log_level:
        cfg.logging.level = log_level
    setup_logging(cfg.logging)
    return cfg


@app.command()
def live(
    category: str = typer.Option("general", "--category", help="Canonical category."),
    query: str = typer.Option("", "--query", "-q", help="Search query; blank for headlines."),
    limit: int | None = typer.Option(None, "--limit", "-n", help="Maximum articles."),
    use_cache: bool = typer.Option(True, "--cache/--no-cache"),
    timeout: float | None = typer.Option(None, "--timeout", help="Overall deadline in seconds."),
    as_json: bool = typer.Option(False, "--json", help="Print the raw feed as JSON."),
    config: Path | None = ConfigOption,
    log_level: str | None = LogLevelOption,
):
    """Fetch the aggregated live feed and print it."""
    cfg = _prepare(config, log_level)

    async def _run():
        components = build_components(cfg)
        try:
            return await components.aggregator.fetch_live_news(
                category=category, query=query, limit=limit, use_cache=use_cache, timeout=timeout
            )
        finally:
            await components.cache.close()

    feed = asyncio.run(_run())
    if as_json:
        console.print_json(json.dumps(feed.to_dict(), default=str))
        return

    table = Table(title=f"Live news: {category}" + (f" / {query}" if query else ""))
    table.add_column("Published")
    table.add_column("Source")
    table.add_column("Category")
    table.add_column("Title")
    for article in feed.articles:
        table.add_row(
            article.published_at.strftime("%Y-%m-%d %H:%M") if article.published_at else "-",
            article.api_source,
            article.category.value if article.category else "-",
            article.title,
        )
    console.print(table)
    meta = feed.metadata
    console.print(
        "[bold]Summary[/bold]: "
        f"total={meta.total_articles}, sources_used={meta.sources_used}, "
        f"sources_failed={meta.sources_failed}, cache_hit={meta.cache_hit}"
    )
    for source in meta.sources:
        if not source["success"]:
            console.print(f"[red]{source['source']}[/red]: {source['error']}")


@app.command()
def sources(config: Path | None = ConfigOption):
    """List the sources that will take part in fan-out."""
    cfg = _prepare(config)
    components = build_components(cfg)
    table = Table(title="Available sources")
    table.add_column("Name")
    table.add_column("Weight", justify="right")
    for info in components.aggregator.get_available_sources():
        table.add_row(info.name, f"{info.weight:.2f}")
    console.print(table)


@app.command()
def health(config: Path | None = ConfigOption, log_level: str | None = LogLevelOption):
    """Probe every configured source with a single-item fetch."""
    cfg = _prepare(config, log_level)

    async def _run():
        components = build_components(cfg)
        try:
            return await components.aggregator.health_check()
        finally:
            await components.cache.close()

    report = asyncio.run(_run())
    styles = {"healthy": "green", "disabled": "yellow", "error": "red"}
    table = Table(title="Source health")
    table.add_column("Source")
    table.add_column("Status")
    table.add_column("Time (ms)", justify="right")
    table.add_column("Articles", justify="right")
    table.add_column("Message")
    for name, status in report.items():
        style = styles.get(status.status, "white")
        table.add_row(
            name,
            f"[{style}]{status.status}[/{style}]",
            str(status.response_time_ms) if status.response_time_ms is not None else "-",
            str(status.articles_count) if status.articles_count is not None else "-",
            status.message,
        )
    console.print(table)


@app.command()
def ingest(
    category: list[str] = typer.Option(["general"], "--category", help="Repeat for several categories."),
    query: str = typer.Option("", "--query", "-q"),
    page_size: int = typer.Option(50, "--page-size"),
    config: Path | None = ConfigOption,
    log_level: str | None = LogLevelOption,
):
    """Run one ingestion batch: fetch, dedup, tag and store."""
    cfg = _prepare(config, log_level)

    async def _run():
        components = build_components(cfg)
        try:
            await components.deduplicator.initialize()
            await components.tagger.initialize(components.store)
            ingestor = Ingestor.from_components(components)
            return await ingestor.run(category, query=query, page_size=page_size)
        finally:
            await components.cache.close()

    stats = asyncio.run(_run())
    if stats is None:
        console.print("[yellow]Ingestion already running[/yellow]")
        raise typer.Exit(code=1)
    console.print(
        "[bold]Ingest summary[/bold]: "
        f"total={stats.total}, saved={stats.saved}, skipped={stats.skipped}, "
        f"failed={stats.failed}, duration_ms={stats.duration_ms}"
    )


@app.command()
def tag(
    title: str = typer.Argument(..., help="Article title."),
    description: str = typer.Option("", "--description", "-d"),
    config: Path | None = ConfigOption,
):
    """Extract tags for a title and optional description."""
    cfg = _prepare(config)
    tags = Tagger(cfg.tagger).extract_tags(title, description)
    console.print(", ".join(tags) if tags else "[yellow]no tags[/yellow]")


if __name__ == "__main__":
    app()
