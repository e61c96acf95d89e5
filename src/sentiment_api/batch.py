"""CSV batch ingestion.

`BatchIngestor.process_batch` turns an uploaded CSV into a bounded, ordered
sequence of classification results:

1. Reject empty payloads and non-`.csv` filenames before parsing.
2. Parse the payload as UTF-8 CSV; the first record is the header.
3. Resolve the text column (explicit name, else `text`, else the first column).
4. Classify the first `max_rows` non-blank values in file order.
5. Record every result; record failures are collected in
   `BatchOutcome.persist_failures` and never drop a result or stop the batch.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import Final, Sequence

import pandas as pd
from pandas.errors import EmptyDataError, ParserError

from sentiment_api.classifier import ClassificationResult, Classifier
from sentiment_api.config import DEFAULT_MAX_BATCH_ROWS
from sentiment_api.exceptions import (
    ColumnNotFoundError,
    CsvParseError,
    EmptyFileError,
    InvalidFormatError,
    NoValidTextError,
)
from sentiment_api.persistence import PersistenceGateway

logger = logging.getLogger(__name__)

DEFAULT_TEXT_COLUMN: Final[str] = "text"
CSV_EXTENSION: Final[str] = ".csv"


@dataclass(frozen=True)
class BatchRow:
    row_index: int
    raw_text: str


@dataclass(frozen=True)
class PersistFailure:
    row_index: int
    source_text: str
    error: str


@dataclass(frozen=True)
class BatchOutcome:
    results: tuple[ClassificationResult, ...]
    persist_failures: tuple[PersistFailure, ...] = ()

    @property
    def total_processed(self) -> int:
        return len(self.results)

    def to_dict(self) -> dict[str, object]:
        return {
            "results": [result.to_dict() for result in self.results],
            "total_processed": self.total_processed,
            "persist_failures": len(self.persist_failures),
        }


def validate_upload(file_bytes: bytes, filename: str | None) -> None:
    """Reject uploads that cannot be CSV batches, without parsing them."""
    if not file_bytes:
        raise EmptyFileError()
    if not filename or not filename.lower().endswith(CSV_EXTENSION):
        raise InvalidFormatError(filename)


def parse_csv(file_bytes: bytes) -> pd.DataFrame:
    """Parse the payload as CSV with every cell kept as a string."""
    try:
        content = file_bytes.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise CsvParseError(f"File is not valid UTF-8: {exc}") from exc

    try:
        return pd.read_csv(io.StringIO(content), dtype=str, keep_default_na=False, index_col=False)
    except EmptyDataError as exc:
        raise NoValidTextError() from exc
    except ParserError as exc:
        raise CsvParseError(f"Malformed CSV: {exc}") from exc


def resolve_text_column(columns: Sequence[str], requested: str | None = None) -> str:
    """Pick the column holding text.

    An explicit `requested` name must match a header exactly. Without one, a
    column named `text` wins, otherwise the first column is used.
    """
    if requested is not None:
        if requested not in columns:
            raise ColumnNotFoundError(requested, columns)
        return requested
    if not columns:
        raise NoValidTextError()
    if DEFAULT_TEXT_COLUMN in columns:
        return DEFAULT_TEXT_COLUMN
    logger.info("No `%s` column in CSV, using first column `%s`", DEFAULT_TEXT_COLUMN, columns[0])
    return columns[0]


def extract_rows(frame: pd.DataFrame, column: str, *, max_rows: int) -> list[BatchRow]:
    """Return up to `max_rows` non-blank, trimmed values of `column` in file order."""
    rows: list[BatchRow] = []
    for row_index, value in enumerate(frame[column].tolist()):
        text = value.strip() if isinstance(value, str) else ""
        if not text:
            continue
        if len(rows) >= max_rows:
            logger.info("Row cap of %d reached, ignoring remaining rows", max_rows)
            break
        rows.append(BatchRow(row_index=row_index, raw_text=text))
    return rows


def persist_row(gateway: PersistenceGateway, row: BatchRow, result: ClassificationResult) -> PersistFailure | None:
    """Record one result, returning the failure instead of raising it."""
    try:
        gateway.record(result.source_text, result.label, result.confidence)
    except Exception as exc:
        logger.warning("Failed to persist row %d, continuing batch: %s", row.row_index, exc)
        return PersistFailure(row_index=row.row_index, source_text=result.source_text, error=str(exc))
    return None


class BatchIngestor:
    def __init__(
        self,
        classifier: Classifier,
        gateway: PersistenceGateway,
        *,
        max_rows: int = DEFAULT_MAX_BATCH_ROWS,
    ) -> None:
        if max_rows <= 0:
            raise ValueError("`max_rows` must be > 0.")
        self.classifier = classifier
        self.gateway = gateway
        self.max_rows = max_rows

    def process_batch(
        self,
        file_bytes: bytes,
        filename: str | None,
        text_column: str | None = None,
    ) -> BatchOutcome:
        """Classify and record the text column of an uploaded CSV.

        Args:
            file_bytes: Raw upload payload.
            filename: Upload filename; must end in `.csv` (any case).
            text_column: Optional header name of the text column.

        Returns:
            The results of the processed rows, in file order.

        Raises:
            EmptyFileError: If the payload has zero bytes.
            InvalidFormatError: If the filename is missing or not `.csv`.
            CsvParseError: If the payload is not UTF-8 or not parseable CSV.
            ColumnNotFoundError: If `text_column` is not a header.
            NoValidTextError: If no row has non-blank text.
            InferenceError: If the model fails on a row.
        """
        validate_upload(file_bytes, filename)
        frame = parse_csv(file_bytes)
        column = resolve_text_column([str(c) for c in frame.columns], text_column)
        rows = extract_rows(frame, column, max_rows=self.max_rows)
        if not rows:
            raise NoValidTextError(column)

        results: list[ClassificationResult] = []
        failures: list[PersistFailure] = []
        for row in rows:
            result = self.classifier.classify(row.raw_text)
            results.append(result)
            failure = persist_row(self.gateway, row, result)
            if failure is not None:
                failures.append(failure)

        logger.info(
            "Processed batch %s: %d rows from column `%s`, %d not persisted",
            filename,
            len(results),
            column,
            len(failures),
        )
        return BatchOutcome(results=tuple(results), persist_failures=tuple(failures))
