from __future__ import annotations

from pathlib import Path

import pytest

from sentiment_api.config import DEFAULT_MAX_BATCH_ROWS, DEFAULT_MODEL_PATH, Settings
from sentiment_api.exceptions import ConfigurationError


def test_defaults():
    settings = Settings.from_env({})
    assert settings.model_path == DEFAULT_MODEL_PATH
    assert settings.max_batch_rows == DEFAULT_MAX_BATCH_ROWS == 100
    assert settings.database_url.startswith("sqlite")


def test_from_env_reads_values():
    settings = Settings.from_env(
        {
            "SENTIMENT_MODEL_PATH": "artifacts/model",
            "SENTIMENT_MAX_BATCH_ROWS": "25",
            "SENTIMENT_DATABASE_URL": "sqlite://",
            "SENTIMENT_MAX_LENGTH": "64",
        }
    )
    assert settings.model_path == Path("artifacts/model")
    assert settings.max_batch_rows == 25
    assert settings.database_url == "sqlite://"
    assert settings.max_length == 64


@pytest.mark.parametrize("raw", ["abc", "0", "-3", "1.5"])
def test_from_env_rejects_invalid_row_cap(raw):
    with pytest.raises(ConfigurationError) as excinfo:
        Settings.from_env({"SENTIMENT_MAX_BATCH_ROWS": raw})
    assert excinfo.value.parameter == "max_batch_rows"


def test_from_env_uses_process_environment(monkeypatch):
    monkeypatch.setenv("SENTIMENT_MAX_BATCH_ROWS", "7")
    assert Settings.from_env().max_batch_rows == 7


def test_with_overrides_ignores_none():
    settings = Settings().with_overrides(max_batch_rows=None, database_url="sqlite://")
    assert settings.max_batch_rows == DEFAULT_MAX_BATCH_ROWS
    assert settings.database_url == "sqlite://"


def test_direct_construction_is_validated():
    with pytest.raises(ConfigurationError):
        Settings(max_batch_rows=0)
