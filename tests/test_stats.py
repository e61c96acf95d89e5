from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from sentiment_api.classifier import Label
from sentiment_api.persistence import SqlPersistenceGateway
from sentiment_api.stats import DailyStatistics, StatisticsAggregator


class DummyRepository:
    def __init__(
        self,
        *,
        total: int = 0,
        positive: int = 0,
        negative: int = 0,
        average: float | None = None,
        average_by_label: dict[Label, float | None] | None = None,
        daily: list[tuple[date, int, int, int]] | None = None,
        error: Exception | None = None,
    ):
        self.total = total
        self.positive = positive
        self.negative = negative
        self.average = average
        self.average_by_label = average_by_label or {}
        self.daily = daily or []
        self.error = error
        self.since: datetime | None = None

    def count(self) -> int:
        if self.error is not None:
            raise self.error
        return self.total

    def count_by_label(self, label: Label) -> int:
        return self.positive if label is Label.POSITIVE else self.negative

    def average_confidence(self, label: Label | None = None) -> float | None:
        if label is None:
            return self.average
        return self.average_by_label.get(label)

    def daily_counts(self, since: datetime) -> list[tuple[date, int, int, int]]:
        self.since = since
        return self.daily


def test_balanced_statistics():
    repo = DummyRepository(
        total=10,
        positive=5,
        negative=5,
        average=0.85,
        average_by_label={Label.POSITIVE: 0.9, Label.NEGATIVE: 0.8},
    )
    stats = StatisticsAggregator(repo).get_statistics()

    assert stats.total == 10
    assert stats.positive_percentage == 50.0
    assert stats.negative_percentage == 50.0
    assert stats.average_confidence == pytest.approx(85.0)
    assert stats.positive_average_confidence == pytest.approx(90.0)
    assert stats.negative_average_confidence == pytest.approx(80.0)
    assert stats.timeline == []


def test_zero_statistics_without_data():
    stats = StatisticsAggregator(DummyRepository(average=0.0)).get_statistics()
    assert stats.total == 0
    assert stats.positive_percentage == 0.0
    assert stats.negative_percentage == 0.0
    assert stats.average_confidence == 0.0


@pytest.mark.parametrize(
    ("total", "positive", "negative", "expected_positive", "expected_negative"),
    [
        (100, 75, 25, 75.0, 25.0),
        (20, 20, 0, 100.0, 0.0),
        (15, 0, 15, 0.0, 100.0),
        (3, 2, 1, 66.66666666666667, 33.33333333333333),
    ],
)
def test_percentages(total, positive, negative, expected_positive, expected_negative):
    repo = DummyRepository(total=total, positive=positive, negative=negative, average=0.9)
    stats = StatisticsAggregator(repo).get_statistics()
    assert stats.positive_percentage == pytest.approx(expected_positive)
    assert stats.negative_percentage == pytest.approx(expected_negative)


def test_missing_average_confidence_reports_zero():
    stats = StatisticsAggregator(DummyRepository(total=5, positive=3, negative=2)).get_statistics()
    assert stats.average_confidence == 0.0
    assert stats.positive_average_confidence == 0.0


def test_timeline_uses_window():
    daily = [(date(2026, 1, 7), 5, 3, 8), (date(2026, 1, 6), 1, 1, 2)]
    repo = DummyRepository(total=10, positive=6, negative=4, average=0.85, daily=daily)
    now = datetime(2026, 1, 8, 12, 0)

    stats = StatisticsAggregator(repo).get_statistics(now=now)

    assert repo.since == now - timedelta(days=7)
    assert stats.timeline == [
        DailyStatistics(date=date(2026, 1, 7), positive=5, negative=3, total=8),
        DailyStatistics(date=date(2026, 1, 6), positive=1, negative=1, total=2),
    ]
    assert stats.to_dict()["timeline"][0] == {"date": "2026-01-07", "positive": 5, "negative": 3, "total": 8}


def test_repository_errors_propagate():
    repo = DummyRepository(error=RuntimeError("Database error"))
    with pytest.raises(RuntimeError, match="Database error"):
        StatisticsAggregator(repo).get_statistics()


def test_window_days_must_be_positive():
    with pytest.raises(ValueError):
        StatisticsAggregator(DummyRepository(), window_days=0)


def test_statistics_from_database():
    gateway = SqlPersistenceGateway("sqlite://")
    try:
        gateway.record("a", Label.POSITIVE, 0.9)
        gateway.record("b", Label.NEGATIVE, 0.7)
        stats = StatisticsAggregator(gateway).get_statistics()
    finally:
        gateway.close()

    assert stats.total == 2
    assert stats.positive == 1
    assert stats.average_confidence == pytest.approx(80.0)
    assert sum(day.total for day in stats.timeline) == 2
