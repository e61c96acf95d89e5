"""Command-line entrypoint (`sentiment-api ...`).

Every command loads the model state once, runs, and releases it on exit. Output
is JSON on stdout; errors go to stderr with exit code 1.
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

import typer

from sentiment_api.batch import BatchIngestor
from sentiment_api.classifier import Classifier
from sentiment_api.config import Settings
from sentiment_api.exceptions import SentimentApiError
from sentiment_api.model import model_state
from sentiment_api.persistence import DEFAULT_HISTORY_LIMIT, SqlPersistenceGateway
from sentiment_api.service import analyze_and_record, health_report
from sentiment_api.stats import StatisticsAggregator

logger = logging.getLogger(__name__)

app = typer.Typer(help="Classify text sentiment and inspect stored results.", no_args_is_help=True)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False, default=str))


def _fail(exc: Exception) -> None:
    typer.echo(f"Error: {exc}", err=True)
    raise typer.Exit(code=1)


@contextmanager
def _classifier(settings: Settings) -> Iterator[Classifier]:
    with model_state(settings.model_path, max_length=settings.max_length) as state:
        yield Classifier(state)


@contextmanager
def _gateway(settings: Settings) -> Iterator[SqlPersistenceGateway]:
    gateway = SqlPersistenceGateway(settings.database_url)
    try:
        yield gateway
    finally:
        gateway.close()


@app.callback()
def configure(
    ctx: typer.Context,
    model_path: Path | None = typer.Option(None, help="Directory of the saved model artifact."),
    database_url: str | None = typer.Option(None, help="SQLAlchemy database URL."),
    max_rows: int | None = typer.Option(None, min=1, help="Maximum number of CSV rows classified per batch."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Resolve settings from the environment and command-line overrides."""
    _setup_logging(verbose)
    try:
        settings = Settings.from_env().with_overrides(
            model_path=model_path,
            database_url=database_url,
            max_batch_rows=max_rows,
        )
    except SentimentApiError as exc:
        _fail(exc)
    ctx.obj = settings


@app.command()
def classify(ctx: typer.Context, text: str = typer.Argument(..., help="Text to classify.")) -> None:
    """Classify one text and record the result."""
    settings: Settings = ctx.obj
    try:
        with _classifier(settings) as classifier, _gateway(settings) as gateway:
            result = analyze_and_record(classifier, gateway, text)
    except SentimentApiError as exc:
        _fail(exc)
    _echo_json(result.to_dict())


@app.command()
def batch(
    ctx: typer.Context,
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="CSV file to classify."),
    text_column: str | None = typer.Option(None, help="Header of the column holding the text."),
) -> None:
    """Classify every row of a CSV file (up to the row cap) and record the results."""
    settings: Settings = ctx.obj
    try:
        with _classifier(settings) as classifier, _gateway(settings) as gateway:
            ingestor = BatchIngestor(classifier, gateway, max_rows=settings.max_batch_rows)
            outcome = ingestor.process_batch(file.read_bytes(), file.name, text_column)
    except SentimentApiError as exc:
        _fail(exc)
    _echo_json(outcome.to_dict())


@app.command()
def stats(ctx: typer.Context) -> None:
    """Print aggregate statistics of recorded classifications."""
    settings: Settings = ctx.obj
    try:
        with _gateway(settings) as gateway:
            statistics = StatisticsAggregator(gateway).get_statistics()
    except SentimentApiError as exc:
        _fail(exc)
    _echo_json(statistics.to_dict())


@app.command()
def history(
    ctx: typer.Context,
    limit: int = typer.Option(DEFAULT_HISTORY_LIMIT, min=1, help="Number of records to show."),
) -> None:
    """Print the most recent recorded classifications."""
    settings: Settings = ctx.obj
    try:
        with _gateway(settings) as gateway:
            items = gateway.recent(limit)
    except SentimentApiError as exc:
        _fail(exc)
    _echo_json([item.to_dict() for item in items])


@app.command()
def health(ctx: typer.Context) -> None:
    """Report whether the model artifact is loaded."""
    settings: Settings = ctx.obj
    with _classifier(settings) as classifier:
        report = health_report(classifier)
    _echo_json(report)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
