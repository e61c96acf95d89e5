"""Error taxonomy for sentiment classification and batch ingestion."""

from __future__ import annotations

from enum import Enum
from typing import Sequence


class SentimentApiError(Exception):
    """Base exception for all sentiment_api errors."""


class ConfigurationError(SentimentApiError):
    """Raised when a configuration value is invalid."""

    def __init__(self, message: str, *, parameter: str | None = None) -> None:
        self.parameter = parameter
        full_message = message if parameter is None else f"{message} (parameter: {parameter})"
        super().__init__(full_message)


class InferencePhase(str, Enum):
    INPUT_PREPARATION = "input_preparation"
    EXECUTION = "execution"


class InferenceError(SentimentApiError):
    """Raised when the loaded model fails to prepare inputs or run."""

    def __init__(self, message: str, *, phase: InferencePhase) -> None:
        self.phase = phase
        super().__init__(f"{message} (phase: {phase.value})")


class PersistenceError(SentimentApiError):
    """Raised when a database operation fails."""

    def __init__(self, message: str, *, operation: str) -> None:
        self.operation = operation
        super().__init__(f"{message} (operation: {operation})")


class BatchInputError(SentimentApiError):
    """Base class for rejected batch uploads. These are never retried."""


class EmptyFileError(BatchInputError):
    def __init__(self) -> None:
        super().__init__("Uploaded file is empty.")


class InvalidFormatError(BatchInputError):
    def __init__(self, filename: str | None) -> None:
        self.filename = filename
        super().__init__(f"Expected a `.csv` file, got {filename!r}.")


class CsvParseError(BatchInputError):
    """Raised when the upload is not valid UTF-8 or is malformed CSV."""


class ColumnNotFoundError(BatchInputError):
    def __init__(self, column: str, available: Sequence[str]) -> None:
        self.column = column
        self.available = list(available)
        super().__init__(f"Column `{column}` not found in CSV. Available columns: {self.available}")


class NoValidTextError(BatchInputError):
    def __init__(self, column: str | None = None) -> None:
        self.column = column
        where = "the CSV" if column is None else f"column `{column}`"
        super().__init__(f"No valid text found in {where}.")
