"""SQLAlchemy ORM persistence for the local SQLite deal warehouse."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import cast

from sqlalchemy import Column, DateTime, Integer, String, Text, create_engine, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from fx_deals.db import DEFAULT_SQLITE_DB_PATH
from fx_deals.db.base_backend import PersistenceError
from fx_deals.ingestion.models import DealErrorRecord, DealRecord, ErrorReason
from fx_deals.utils.logger import get_logger

LOGGER = get_logger(__name__)


class Base(DeclarativeBase):
    pass


class _Deal(Base):
    __tablename__ = "fx_deals"

    deal_unique_id = Column(String, primary_key=True)
    from_currency = Column(String(3), nullable=False)
    to_currency = Column(String(3), nullable=False)
    deal_timestamp = Column(DateTime, nullable=False)
    # SQLite has no exact decimal type; the canonical string keeps full precision.
    amount = Column(String, nullable=False)
    created_at = Column(DateTime, server_default=text("CURRENT_TIMESTAMP"))


class _DealError(Base):
    __tablename__ = "fx_deal_errors"

    id = Column(Integer, primary_key=True, autoincrement=True)
    deal_unique_id = Column(String, nullable=True, index=True)
    raw_deal_id = Column(Text, nullable=True)
    raw_from_currency = Column(Text, nullable=True)
    raw_to_currency = Column(Text, nullable=True)
    raw_deal_timestamp = Column(Text, nullable=True)
    raw_amount = Column(Text, nullable=True)
    reason = Column(String, nullable=False)
    detail = Column(Text, nullable=True)
    source_row = Column(Integer, nullable=True)
    occurred_at = Column(DateTime, nullable=False)


def _deal_from_model(model: _Deal) -> DealRecord:
    return DealRecord(
        deal_id=cast(str, model.deal_unique_id),
        from_currency=cast(str, model.from_currency),
        to_currency=cast(str, model.to_currency),
        deal_timestamp=cast(datetime, model.deal_timestamp),
        amount=Decimal(cast(str, model.amount)),
    )


def _error_from_model(model: _DealError) -> DealErrorRecord:
    return DealErrorRecord(
        reason=ErrorReason(cast(str, model.reason)),
        occurred_at=cast(datetime, model.occurred_at),
        deal_id=cast("str | None", model.deal_unique_id),
        raw_deal_id=cast("str | None", model.raw_deal_id),
        raw_from_currency=cast("str | None", model.raw_from_currency),
        raw_to_currency=cast("str | None", model.raw_to_currency),
        raw_deal_timestamp=cast("str | None", model.raw_deal_timestamp),
        raw_amount=cast("str | None", model.raw_amount),
        source_row=cast("int | None", model.source_row),
        detail=cast("str | None", model.detail),
    )


class SQLiteManager:
    """Session-per-operation access to the ``fx_deals`` SQLite database."""

    def __init__(self, db_path: str | Path = DEFAULT_SQLITE_DB_PATH) -> None:
        self.db_path = Path(db_path).expanduser().resolve()
        self.engine: Engine = create_engine(
            f"sqlite:///{self.db_path}",
            echo=False,
            future=True,
            connect_args={"check_same_thread": False},
        )
        Base.metadata.create_all(self.engine)
        self._SessionFactory: sessionmaker[Session] = sessionmaker(
            bind=self.engine, expire_on_commit=False, future=True
        )
        LOGGER.info("Using SQLite deal database at %s", self.db_path)

    def deal_exists(self, deal_id: str) -> bool:
        with self._SessionFactory() as session:
            return session.get(_Deal, deal_id) is not None

    def find_deal(self, deal_id: str) -> DealRecord | None:
        with self._SessionFactory() as session:
            model = session.get(_Deal, deal_id)
            return None if model is None else _deal_from_model(model)

    def save_deal(self, record: DealRecord) -> None:
        with self._SessionFactory() as session:
            session.add(
                _Deal(
                    deal_unique_id=record.deal_id,
                    from_currency=record.from_currency,
                    to_currency=record.to_currency,
                    deal_timestamp=record.deal_timestamp,
                    amount=str(record.amount),
                )
            )
            try:
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                raise PersistenceError(f"Failed to save deal {record.deal_id}: {exc}") from exc

    def save_error(self, error: DealErrorRecord) -> None:
        with self._SessionFactory() as session:
            session.add(
                _DealError(
                    deal_unique_id=error.deal_id,
                    raw_deal_id=error.raw_deal_id,
                    raw_from_currency=error.raw_from_currency,
                    raw_to_currency=error.raw_to_currency,
                    raw_deal_timestamp=error.raw_deal_timestamp,
                    raw_amount=error.raw_amount,
                    reason=error.reason.value,
                    detail=error.detail,
                    source_row=error.source_row,
                    occurred_at=error.occurred_at,
                )
            )
            try:
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                raise PersistenceError(f"Failed to save deal error: {exc}") from exc

    def error_exists(self, deal_id: str, occurred_at: datetime | None = None) -> bool:
        with self._SessionFactory() as session:
            stmt = select(_DealError.id).where(_DealError.deal_unique_id == deal_id)
            if occurred_at is not None:
                stmt = stmt.where(_DealError.occurred_at == occurred_at)
            return session.execute(stmt.limit(1)).first() is not None

    def fetch_deals(self) -> list[DealRecord]:
        with self._SessionFactory() as session:
            stmt = select(_Deal).order_by(_Deal.deal_unique_id)
            return [_deal_from_model(model) for model in session.execute(stmt).scalars()]

    def fetch_errors(self) -> list[DealErrorRecord]:
        with self._SessionFactory() as session:
            stmt = select(_DealError).order_by(_DealError.occurred_at, _DealError.id)
            return [_error_from_model(model) for model in session.execute(stmt).scalars()]

    def close(self) -> None:  # pragma: no cover - trivial
        self.engine.dispose()

    def __enter__(self) -> "SQLiteManager":  # pragma: no cover - trivial
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # pragma: no cover - trivial
        self.close()


__all__ = ["SQLiteManager"]
