"""Aggregate statistics over persisted classifications."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Protocol

from sentiment_api.classifier import Label

DEFAULT_WINDOW_DAYS = 7


class StatisticsRepository(Protocol):
    def count(self) -> int: ...

    def count_by_label(self, label: Label) -> int: ...

    def average_confidence(self, label: Label | None = None) -> float | None: ...

    def daily_counts(self, since: datetime) -> list[tuple[date, int, int, int]]: ...


@dataclass(frozen=True)
class DailyStatistics:
    date: date
    positive: int
    negative: int
    total: int


@dataclass(frozen=True)
class Statistics:
    """Totals, percentages (0-100) and a daily timeline."""

    total: int
    positive: int
    negative: int
    positive_percentage: float
    negative_percentage: float
    average_confidence: float
    positive_average_confidence: float
    negative_average_confidence: float
    timeline: list[DailyStatistics] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["timeline"] = [{**asdict(day), "date": day.date.isoformat()} for day in self.timeline]
        return payload


def _percentage(part: int, total: int) -> float:
    return part * 100.0 / total if total > 0 else 0.0


def _confidence_percent(value: float | None) -> float:
    return 0.0 if value is None else value * 100.0


class StatisticsAggregator:
    def __init__(self, repository: StatisticsRepository, *, window_days: int = DEFAULT_WINDOW_DAYS) -> None:
        if window_days <= 0:
            raise ValueError("`window_days` must be > 0.")
        self.repository = repository
        self.window_days = window_days

    def get_statistics(self, *, now: datetime | None = None) -> Statistics:
        """Compute aggregate statistics. Repository errors propagate unchanged."""
        now = now or datetime.now(timezone.utc).replace(tzinfo=None)
        total = self.repository.count()
        positive = self.repository.count_by_label(Label.POSITIVE)
        negative = self.repository.count_by_label(Label.NEGATIVE)
        since = now - timedelta(days=self.window_days)
        timeline = [
            DailyStatistics(date=day, positive=pos, negative=neg, total=day_total)
            for day, pos, neg, day_total in self.repository.daily_counts(since)
        ]
        return Statistics(
            total=total,
            positive=positive,
            negative=negative,
            positive_percentage=_percentage(positive, total),
            negative_percentage=_percentage(negative, total),
            average_confidence=_confidence_percent(self.repository.average_confidence()),
            positive_average_confidence=_confidence_percent(self.repository.average_confidence(Label.POSITIVE)),
            negative_average_confidence=_confidence_percent(self.repository.average_confidence(Label.NEGATIVE)),
            timeline=timeline,
        )
