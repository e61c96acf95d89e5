from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

import sentiment_api.cli as cli

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    monkeypatch.setenv("SENTIMENT_MODEL_PATH", str(tmp_path / "missing-model"))
    monkeypatch.setenv("SENTIMENT_DATABASE_URL", f"sqlite:///{tmp_path / 'cli.db'}")
    monkeypatch.delenv("SENTIMENT_MAX_BATCH_ROWS", raising=False)
    monkeypatch.setattr(cli, "_setup_logging", lambda verbose: None)


def _invoke(*args: str):
    result = runner.invoke(cli.app, list(args))
    return result


def test_classify_prints_result_and_records():
    result = _invoke("classify", "Este produto é incrível, adoro")
    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["sentiment"] == "POSITIVE"
    assert payload["text"] == "Este produto é incrível, adoro"

    history = _invoke("history")
    assert history.exit_code == 0, history.output
    assert [item["text"] for item in json.loads(history.stdout)] == ["Este produto é incrível, adoro"]


def test_batch_command(tmp_path):
    csv_path = tmp_path / "reviews.csv"
    csv_path.write_text("id,comentario\n1,Péssimo\n2,Ótimo\n3,bom\n", encoding="utf-8")

    result = _invoke("--max-rows", "2", "batch", str(csv_path), "--text-column", "comentario")
    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["total_processed"] == 2
    assert [r["sentiment"] for r in payload["results"]] == ["NEGATIVE", "POSITIVE"]

    stats = json.loads(_invoke("stats").stdout)
    assert stats["total"] == 2
    assert stats["negative_percentage"] == 50.0


def test_batch_command_unknown_column_fails(tmp_path):
    csv_path = tmp_path / "reviews.csv"
    csv_path.write_text("text\nbom\n", encoding="utf-8")

    result = _invoke("batch", str(csv_path), "--text-column", "nonexistent")
    assert result.exit_code == 1
    assert "nonexistent" in result.output


def test_batch_command_rejects_non_csv(tmp_path):
    txt_path = tmp_path / "reviews.txt"
    txt_path.write_text("text\nbom\n", encoding="utf-8")

    result = _invoke("batch", str(txt_path))
    assert result.exit_code == 1


def test_health_reports_heuristic_mode():
    result = _invoke("health")
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout)["model_status"] == "UNAVAILABLE"


def test_invalid_env_configuration_fails(monkeypatch):
    monkeypatch.setenv("SENTIMENT_MAX_BATCH_ROWS", "zero")
    result = _invoke("health")
    assert result.exit_code == 1
    assert "max_batch_rows" in result.output
