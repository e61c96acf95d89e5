"""Binary sentiment classification with a keyword fallback.

`Classifier` runs in one of two modes, fixed by the `ModelState` it is built
with:

- Model mode: the loaded model predicts a raw label (possibly `neutral` or a
  Portuguese spelling) that is normalized to `POSITIVE` or `NEGATIVE`.
- Heuristic mode: substring counts against two fixed keyword sets.

Neutral predictions are never surfaced; they are reported as `POSITIVE` with at
least 50% confidence.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Final

from sentiment_api.exceptions import InferenceError, InferencePhase
from sentiment_api.model import Heuristic, ModelBacked, ModelState

logger = logging.getLogger(__name__)

POSITIVE_KEYWORDS: Final[tuple[str, ...]] = (
    "incrível",
    "ótimo",
    "excelente",
    "bom",
    "maravilhoso",
    "recomendo",
    "adoro",
    "amo",
    "perfeito",
    "fantástico",
    "sensacional",
    "gostei",
    "satisfeito",
    "feliz",
    "amor",
    "adorar",
    "recomendado",
)
NEGATIVE_KEYWORDS: Final[tuple[str, ...]] = (
    "ruim",
    "péssimo",
    "horrível",
    "terrível",
    "odiei",
    "detesto",
    "não gostei",
    "insatisfeito",
    "decepcionado",
    "lixo",
    "fraco",
    "desapontado",
    "triste",
    "raiva",
    "ódio",
)

KEYWORD_BASE_CONFIDENCE: Final[float] = 0.7
KEYWORD_STEP: Final[float] = 0.1
KEYWORD_MAX_CONFIDENCE: Final[float] = 0.95
TIE_CONFIDENCE_RANGE: Final[tuple[float, float]] = (0.5, 0.7)
NEUTRAL_MIN_CONFIDENCE: Final[float] = 0.5

_NEUTRAL_LABELS: Final[frozenset[str]] = frozenset({"NEUTRAL", "NEUTRO"})
_POSITIVE_LABELS: Final[frozenset[str]] = frozenset({"POSITIVE", "POSITIVO"})
_NEGATIVE_LABELS: Final[frozenset[str]] = frozenset({"NEGATIVE", "NEGATIVO"})


class Label(str, Enum):
    POSITIVE = "POSITIVE"
    NEGATIVE = "NEGATIVE"


def _clamp(value: float) -> float:
    return min(max(float(value), 0.0), 1.0)


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome of classifying one text. Confidence is clamped to `[0, 1]`."""

    label: Label
    confidence: float
    source_text: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "confidence", _clamp(self.confidence))

    def to_dict(self) -> dict[str, object]:
        return {"sentiment": self.label.value, "score": self.confidence, "text": self.source_text}


def normalize_label(raw_label: str | None, confidence: float) -> tuple[Label, float]:
    """Map a raw model label onto the binary label set.

    Unrecognized labels default to `POSITIVE`, like neutral ones, with the same
    confidence floor.
    """
    key = "" if raw_label is None else raw_label.strip().upper()
    if key in _POSITIVE_LABELS:
        return Label.POSITIVE, confidence
    if key in _NEGATIVE_LABELS:
        return Label.NEGATIVE, confidence
    if key not in _NEUTRAL_LABELS:
        logger.warning("Unrecognized model label %r, defaulting to %s", raw_label, Label.POSITIVE.value)
    return Label.POSITIVE, max(NEUTRAL_MIN_CONFIDENCE, confidence)


def count_keywords(text: str, keywords: tuple[str, ...]) -> int:
    """Count how many keywords occur in `text` as plain substrings."""
    return sum(1 for word in keywords if word in text)


class Classifier:
    """Classifies text as `POSITIVE` or `NEGATIVE` with a confidence score."""

    def __init__(self, state: ModelState, *, rng: random.Random | None = None) -> None:
        self.state = state
        self._rng = rng or random.Random()

    def is_available(self) -> bool:
        """Whether a model is backing the classifier (as opposed to the keyword heuristic)."""
        return isinstance(self.state, ModelBacked)

    def classify(self, text: str) -> ClassificationResult:
        if isinstance(self.state, Heuristic):
            return self._classify_keywords(text)
        return self._classify_model(self.state, text)

    def _classify_model(self, state: ModelBacked, text: str) -> ClassificationResult:
        raw_label, probabilities = state.handle.predict(text)
        confidence = probabilities.get(raw_label)
        if confidence is None:
            raise InferenceError(
                f"Model returned no probability for label {raw_label!r}",
                phase=InferencePhase.EXECUTION,
            )
        label, confidence = normalize_label(raw_label, confidence)
        return ClassificationResult(label=label, confidence=confidence, source_text=text)

    def _classify_keywords(self, text: str) -> ClassificationResult:
        lowered = text.lower()
        positive = count_keywords(lowered, POSITIVE_KEYWORDS)
        negative = count_keywords(lowered, NEGATIVE_KEYWORDS)

        if positive > negative:
            label = Label.POSITIVE
            confidence = min(KEYWORD_BASE_CONFIDENCE + KEYWORD_STEP * positive, KEYWORD_MAX_CONFIDENCE)
        elif negative > positive:
            label = Label.NEGATIVE
            confidence = min(KEYWORD_BASE_CONFIDENCE + KEYWORD_STEP * negative, KEYWORD_MAX_CONFIDENCE)
        else:
            # Ties, including texts with no keyword at all, lean positive.
            low, high = TIE_CONFIDENCE_RANGE
            label = Label.POSITIVE
            confidence = low + self._rng.random() * (high - low)
        return ClassificationResult(label=label, confidence=confidence, source_text=text)
