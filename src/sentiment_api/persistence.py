"""SQLAlchemy-backed storage of classification outcomes.

Every classification is recorded as one row of `sentiment_analysis`. The same
gateway serves the read side: recent history and the aggregate queries used by
`sentiment_api.stats`.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Iterator, Protocol

from sqlalchemy import DateTime, Float, Integer, String, Text, case, create_engine, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from sentiment_api.classifier import Label
from sentiment_api.exceptions import PersistenceError

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 100


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


class SentimentRecord(Base):
    """One persisted classification."""

    __tablename__ = "sentiment_analysis"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    text_content: Mapped[str] = mapped_column(Text, nullable=False)
    sentiment_result: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    confidence_score: Mapped[float] = mapped_column(Float, nullable=False)
    analyzed_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, nullable=False, index=True)


@dataclass(frozen=True)
class HistoryItem:
    id: int
    text: str
    label: str
    confidence: float
    analyzed_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "sentiment": self.label,
            "score": self.confidence,
            "analyzed_at": self.analyzed_at.isoformat(),
        }


class PersistenceGateway(Protocol):
    """Durable sink for classification outcomes. `record` may raise."""

    def record(self, text: str, label: Label, confidence: float) -> None: ...


def _label_value(label: Label | str) -> str:
    return label.value if isinstance(label, Label) else str(label).strip().upper()


def _engine_kwargs(database_url: str) -> dict[str, Any]:
    if database_url.lower().startswith("sqlite"):
        return {
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }
    return {"pool_pre_ping": True}


def _as_date(value: Any) -> date:
    # SQLite returns `date(...)` as text, other backends as a date.
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


class SqlPersistenceGateway:
    """Persistence gateway and statistics repository over a SQLAlchemy engine."""

    def __init__(self, database_url: str, *, create_tables: bool = True) -> None:
        self.database_url = database_url
        try:
            self.engine: Engine = create_engine(database_url, **_engine_kwargs(database_url))
            self._session_factory = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)
            if create_tables:
                Base.metadata.create_all(bind=self.engine)
        except Exception as exc:
            raise PersistenceError(f"Failed to initialize database: {exc}", operation="initialize") from exc

    @contextmanager
    def session(self, operation: str) -> Iterator[Session]:
        """Yield a session that commits on success and rolls back on error."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception as exc:
            session.rollback()
            raise PersistenceError(f"Database error: {exc}", operation=operation) from exc
        finally:
            session.close()

    def record(self, text: str, label: Label | str, confidence: float) -> None:
        with self.session("record") as session:
            session.add(
                SentimentRecord(
                    text_content=text,
                    sentiment_result=_label_value(label),
                    confidence_score=float(confidence),
                )
            )

    def recent(self, limit: int = DEFAULT_HISTORY_LIMIT) -> list[HistoryItem]:
        """Return the most recent records, newest first."""
        stmt = (
            select(SentimentRecord)
            .order_by(SentimentRecord.analyzed_at.desc(), SentimentRecord.id.desc())
            .limit(limit)
        )
        with self.session("recent") as session:
            rows = session.scalars(stmt).all()
            return [
                HistoryItem(
                    id=row.id,
                    text=row.text_content,
                    label=row.sentiment_result,
                    confidence=row.confidence_score,
                    analyzed_at=row.analyzed_at,
                )
                for row in rows
            ]

    def count(self) -> int:
        with self.session("count") as session:
            return int(session.scalar(select(func.count(SentimentRecord.id))) or 0)

    def count_by_label(self, label: Label | str) -> int:
        stmt = select(func.count(SentimentRecord.id)).where(SentimentRecord.sentiment_result == _label_value(label))
        with self.session("count_by_label") as session:
            return int(session.scalar(stmt) or 0)

    def average_confidence(self, label: Label | str | None = None) -> float | None:
        stmt = select(func.avg(SentimentRecord.confidence_score))
        if label is not None:
            stmt = stmt.where(SentimentRecord.sentiment_result == _label_value(label))
        with self.session("average_confidence") as session:
            value = session.scalar(stmt)
        return None if value is None else float(value)

    def daily_counts(self, since: datetime) -> list[tuple[date, int, int, int]]:
        """Return `(day, positive, negative, total)` per day since `since`, newest day first."""
        day = func.date(SentimentRecord.analyzed_at).label("day")
        is_positive = case((SentimentRecord.sentiment_result == Label.POSITIVE.value, 1), else_=0)
        is_negative = case((SentimentRecord.sentiment_result == Label.NEGATIVE.value, 1), else_=0)
        stmt = (
            select(day, func.sum(is_positive), func.sum(is_negative), func.count(SentimentRecord.id))
            .where(SentimentRecord.analyzed_at >= since)
            .group_by(day)
            .order_by(day.desc())
        )
        with self.session("daily_counts") as session:
            rows = session.execute(stmt).all()
        return [(_as_date(d), int(pos or 0), int(neg or 0), int(total or 0)) for d, pos, neg, total in rows]

    def close(self) -> None:
        self.engine.dispose()
