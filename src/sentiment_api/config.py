"""Runtime settings read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Final, Mapping

from sentiment_api.exceptions import ConfigurationError

DEFAULT_MODEL_PATH: Final[Path] = Path("models/finbert/small/model")
DEFAULT_MAX_BATCH_ROWS: Final[int] = 100
DEFAULT_DATABASE_URL: Final[str] = "sqlite:///sentiment.db"
DEFAULT_MAX_LENGTH: Final[int] = 128

ENV_MODEL_PATH: Final[str] = "SENTIMENT_MODEL_PATH"
ENV_MAX_BATCH_ROWS: Final[str] = "SENTIMENT_MAX_BATCH_ROWS"
ENV_DATABASE_URL: Final[str] = "SENTIMENT_DATABASE_URL"
ENV_MAX_LENGTH: Final[str] = "SENTIMENT_MAX_LENGTH"


def _positive_int(raw: str, *, parameter: str) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Expected an integer, got {raw!r}", parameter=parameter) from None
    if value <= 0:
        raise ConfigurationError(f"Expected a value > 0, got {value}", parameter=parameter)
    return value


@dataclass(frozen=True)
class Settings:
    """Knobs consumed by the classifier, the batch ingestor and the database layer."""

    model_path: Path = DEFAULT_MODEL_PATH
    max_batch_rows: int = DEFAULT_MAX_BATCH_ROWS
    database_url: str = DEFAULT_DATABASE_URL
    max_length: int = DEFAULT_MAX_LENGTH

    def __post_init__(self) -> None:
        if self.max_batch_rows <= 0:
            raise ConfigurationError("`max_batch_rows` must be > 0.", parameter="max_batch_rows")
        if self.max_length <= 0:
            raise ConfigurationError("`max_length` must be > 0.", parameter="max_length")
        if not self.database_url:
            raise ConfigurationError("`database_url` must not be empty.", parameter="database_url")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build settings from `SENTIMENT_*` environment variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        if env.get(ENV_MODEL_PATH):
            values["model_path"] = Path(env[ENV_MODEL_PATH])
        if env.get(ENV_MAX_BATCH_ROWS):
            values["max_batch_rows"] = _positive_int(env[ENV_MAX_BATCH_ROWS], parameter="max_batch_rows")
        if env.get(ENV_DATABASE_URL):
            values["database_url"] = env[ENV_DATABASE_URL]
        if env.get(ENV_MAX_LENGTH):
            values["max_length"] = _positive_int(env[ENV_MAX_LENGTH], parameter="max_length")
        return cls(**values)

    def with_overrides(self, **overrides: Any) -> Settings:
        """Return a copy with every non-`None` override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})
