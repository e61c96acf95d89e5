"""Single-text classification and health reporting."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from sentiment_api.classifier import ClassificationResult, Classifier
from sentiment_api.persistence import PersistenceGateway

logger = logging.getLogger(__name__)


def analyze_and_record(classifier: Classifier, gateway: PersistenceGateway, text: str) -> ClassificationResult:
    """Classify `text` and record the outcome.

    A failure to record is logged and does not affect the returned result.
    """
    result = classifier.classify(text)
    try:
        gateway.record(result.source_text, result.label, result.confidence)
    except Exception as exc:
        logger.warning("Failed to persist classification, returning result anyway: %s", exc)
    return result


def health_report(classifier: Classifier) -> dict[str, Any]:
    return {
        "status": "UP",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "model_status": "AVAILABLE" if classifier.is_available() else "UNAVAILABLE",
    }
