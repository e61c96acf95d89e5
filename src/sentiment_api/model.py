"""Loading and running the sentiment model artifact.

The artifact is a directory written by `save_pretrained` (tokenizer + sequence
classification model). Loading happens once per process and produces a
`ModelState`:

- `ModelBacked` wraps the loaded handle.
- `Heuristic` marks that no usable artifact was found and the keyword fallback
  must be used for the lifetime of the process.

A load failure of any kind (missing directory, unreadable files, incompatible
`transformers` version) yields `Heuristic`; it is never retried.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Union

import torch
from transformers import (
    AutoModelForSequenceClassification,
    AutoTokenizer,
    PreTrainedModel,
    PreTrainedTokenizerBase,
)

from sentiment_api.config import DEFAULT_MAX_LENGTH
from sentiment_api.exceptions import InferenceError, InferencePhase

logger = logging.getLogger(__name__)


def build_tokenizer(model_path: Path, *, use_fast: bool = True) -> PreTrainedTokenizerBase:
    """Build a tokenizer from a local artifact directory."""
    return AutoTokenizer.from_pretrained(str(model_path), use_fast=use_fast, local_files_only=True)


def build_pretrained_model(model_path: Path) -> PreTrainedModel:
    """Build a sequence classification model from a local artifact directory, in eval mode."""
    model = AutoModelForSequenceClassification.from_pretrained(str(model_path), local_files_only=True)
    model.eval()
    return model


def tokenize_batch(
    tokenizer: PreTrainedTokenizerBase,
    texts: list[str],
    *,
    max_length: int = DEFAULT_MAX_LENGTH,
) -> dict[str, Any]:
    """Tokenize a list of texts into a batch suitable for Transformer models."""
    return tokenizer(
        texts,
        padding=True,
        truncation=True,
        max_length=max_length,
        return_tensors="pt",
    )


class SentimentModel:
    """Read-only inference handle shared across requests.

    `predict` keeps no per-call state on the instance and runs under
    `torch.inference_mode()`, so concurrent calls only share the frozen weights.
    """

    def __init__(
        self,
        tokenizer: PreTrainedTokenizerBase,
        model: PreTrainedModel,
        *,
        max_length: int = DEFAULT_MAX_LENGTH,
    ) -> None:
        self.tokenizer = tokenizer
        self.model = model
        self.max_length = max_length

    def predict(self, text: str) -> tuple[str, dict[str, float]]:
        """Return the predicted raw label and the probability of every label.

        Raises:
            InferenceError: If tokenization (`input_preparation`) or the forward
                pass (`execution`) fails.
        """
        try:
            inputs = tokenize_batch(self.tokenizer, [text], max_length=self.max_length)
        except Exception as exc:
            logger.error("Failed to prepare model input: %s", exc, exc_info=True)
            raise InferenceError(f"Failed to prepare model input: {exc}", phase=InferencePhase.INPUT_PREPARATION) from exc

        try:
            with torch.inference_mode():
                logits = self.model(**inputs).logits
            probs = torch.softmax(logits, dim=-1)[0].tolist()
            id2label = self.model.config.id2label
            probabilities = {str(id2label[idx]): float(p) for idx, p in enumerate(probs)}
            predicted = max(probabilities, key=probabilities.__getitem__)
        except Exception as exc:
            logger.error("Failed to run inference: %s", exc, exc_info=True)
            raise InferenceError(f"Failed to run inference: {exc}", phase=InferencePhase.EXECUTION) from exc
        return predicted, probabilities


class ModelBacked:
    """Model state holding a loaded handle until `release` is called."""

    def __init__(self, handle: SentimentModel) -> None:
        self._handle: SentimentModel | None = handle

    @property
    def handle(self) -> SentimentModel:
        if self._handle is None:
            raise InferenceError("Model handle has been released.", phase=InferencePhase.EXECUTION)
        return self._handle

    @property
    def released(self) -> bool:
        return self._handle is None

    def release(self) -> None:
        """Drop the model handle. Calling it more than once is a no-op."""
        if self._handle is None:
            return
        self._handle = None
        if torch.cuda.is_available():
            torch.cuda.empty_cache()
        logger.info("Released sentiment model")


@dataclass(frozen=True)
class Heuristic:
    """Model state for the keyword fallback."""

    reason: str = "model artifact not loaded"

    def release(self) -> None:
        return None


ModelState = Union[ModelBacked, Heuristic]


def load_model_state(model_path: Path, *, max_length: int = DEFAULT_MAX_LENGTH) -> ModelState:
    """Try to load the model artifact once, falling back to `Heuristic` on any failure."""
    if not model_path.exists():
        logger.warning("Model artifact not found at %s. Using keyword heuristic.", model_path)
        return Heuristic(reason=f"model artifact not found at {model_path}")

    try:
        tokenizer = build_tokenizer(model_path)
        model = build_pretrained_model(model_path)
    except Exception as exc:
        logger.warning("Failed to load model artifact from %s: %s. Using keyword heuristic.", model_path, exc)
        return Heuristic(reason=f"failed to load model artifact: {exc}")

    logger.info("Loaded sentiment model from %s (labels=%s)", model_path, dict(model.config.id2label))
    return ModelBacked(SentimentModel(tokenizer, model, max_length=max_length))


@contextmanager
def model_state(model_path: Path, *, max_length: int = DEFAULT_MAX_LENGTH) -> Iterator[ModelState]:
    """Acquire the process-wide model state and release it on exit."""
    state = load_model_state(model_path, max_length=max_length)
    try:
        yield state
    finally:
        state.release()
