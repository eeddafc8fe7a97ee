from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv

from image_search.config import MAX_SEARCH_RESULTS, ProcessingSettings, UnsplashSettings
from image_search.runner import run_sync

app = typer.Typer(add_completion=False, help="Search Unsplash and store resized copies of the results")


@app.command()
def search(
    query: str = typer.Argument(..., help="Search text sent to Unsplash"),
    limit: int = typer.Option(MAX_SEARCH_RESULTS, min=1, max=30, help="Number of photos to fetch"),
    output_dir: Optional[Path] = typer.Option(None, help="Directory for the small/thumb JPEGs"),
    concurrency: int = typer.Option(0, help="Parallel downloads (<= 0 uses IMAGE_MAX_CONCURRENCY or 3)"),
    as_json: bool = typer.Option(False, "--json", help="Print the visible results as JSON"),
    failed_log: Optional[Path] = typer.Option(None, help="Append per-item failures to this JSONL file"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    load_dotenv()
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    processing = ProcessingSettings.from_env()
    if output_dir is not None:
        processing.output_dir = output_dir
    if concurrency > 0:
        processing.max_concurrency = concurrency

    code, outcome = run_sync(
        query,
        limit=limit,
        unsplash=UnsplashSettings.from_env(),
        processing=processing,
        failed_log_path=failed_log,
    )
    if as_json and outcome is not None:
        typer.echo(json.dumps(outcome.to_dict(), ensure_ascii=False, indent=2))
    raise typer.Exit(code=code)


@app.command()
def settings() -> None:
    load_dotenv()
    unsplash = UnsplashSettings.from_env()
    processing = ProcessingSettings.from_env()
    typer.echo(f"unsplash_base_url: {unsplash.base_url}")
    typer.echo(f"unsplash_api_key: {'set' if unsplash.api_key else 'missing'}")
    typer.echo(f"output_dir: {processing.output_dir}")
    typer.echo(f"max_concurrency: {processing.max_concurrency}")
    typer.echo(f"small_dimension: {processing.small_dimension}")
    typer.echo(f"thumbnail_dimension: {processing.thumbnail_dimension}")


if __name__ == "__main__":
    app()
