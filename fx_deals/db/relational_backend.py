"""Shared logic for SQL (Postgres/MySQL) backends."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Mapping
from uuid import uuid4

from sqlalchemy import DateTime, bindparam, create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from fx_deals.db.base_backend import BackendStrategy, PersistenceError
from fx_deals.ingestion.models import DealErrorRecord, DealRecord, ErrorReason
from fx_deals.utils.logger import get_logger

LOGGER = get_logger(__name__)

AMOUNT_PRECISION = 38
AMOUNT_SCALE = 10

SCHEMA_SQL_DEALS = f"""
CREATE TABLE IF NOT EXISTS fx_deals (
    deal_unique_id VARCHAR(255) NOT NULL,
    from_currency VARCHAR(3) NOT NULL,
    to_currency VARCHAR(3) NOT NULL,
    deal_timestamp TIMESTAMP NOT NULL,
    amount NUMERIC({AMOUNT_PRECISION}, {AMOUNT_SCALE}) NOT NULL,
    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    PRIMARY KEY(deal_unique_id)
);
"""

SCHEMA_SQL_ERRORS = """
CREATE TABLE IF NOT EXISTS fx_deal_errors (
    error_id VARCHAR(32) NOT NULL,
    deal_unique_id VARCHAR(255) NULL,
    raw_deal_id TEXT NULL,
    raw_from_currency TEXT NULL,
    raw_to_currency TEXT NULL,
    raw_deal_timestamp TEXT NULL,
    raw_amount TEXT NULL,
    reason VARCHAR(64) NOT NULL,
    detail TEXT NULL,
    source_row INTEGER NULL,
    occurred_at TIMESTAMP NOT NULL,
    PRIMARY KEY(error_id)
);
"""

INSERT_DEAL_SQL = text(
    """
INSERT INTO fx_deals(deal_unique_id, from_currency, to_currency, deal_timestamp, amount)
VALUES(:deal_unique_id, :from_currency, :to_currency, :deal_timestamp, :amount)
"""
).bindparams(bindparam("deal_timestamp", type_=DateTime()))

INSERT_ERROR_SQL = text(
    """
INSERT INTO fx_deal_errors(
    error_id,
    deal_unique_id,
    raw_deal_id,
    raw_from_currency,
    raw_to_currency,
    raw_deal_timestamp,
    raw_amount,
    reason,
    detail,
    source_row,
    occurred_at
)
VALUES(
    :error_id,
    :deal_unique_id,
    :raw_deal_id,
    :raw_from_currency,
    :raw_to_currency,
    :raw_deal_timestamp,
    :raw_amount,
    :reason,
    :detail,
    :source_row,
    :occurred_at
)
"""
).bindparams(bindparam("occurred_at", type_=DateTime()))

SELECT_DEAL_COLUMNS = "deal_unique_id, from_currency, to_currency, deal_timestamp, amount"
DEAL_EXISTS_SQL = text("SELECT 1 FROM fx_deals WHERE deal_unique_id = :deal_id LIMIT 1")
FIND_DEAL_SQL = text(f"SELECT {SELECT_DEAL_COLUMNS} FROM fx_deals WHERE deal_unique_id = :deal_id")
FETCH_DEALS_SQL = text(f"SELECT {SELECT_DEAL_COLUMNS} FROM fx_deals ORDER BY deal_unique_id")
FETCH_ERRORS_SQL = text("SELECT * FROM fx_deal_errors ORDER BY occurred_at, source_row")


class RelationalBackend(BackendStrategy):
    """Base class that encapsulates SQLAlchemy powered interactions."""

    def __init__(self, url: str) -> None:
        self.url = url
        self._engine_instance: Engine | None = None

    def _get_engine(self) -> Engine:
        if self._engine_instance is None:
            self._engine_instance = create_engine(self.url, future=True)
        return self._engine_instance

    def ensure_schema(self) -> None:
        engine = self._get_engine()
        try:
            with engine.begin() as connection:
                LOGGER.info("Ensuring fx_deals schema exists")
                connection.execute(text("SELECT 1"))
                connection.execute(text(SCHEMA_SQL_DEALS))
                connection.execute(text(SCHEMA_SQL_ERRORS))
        except SQLAlchemyError as exc:  # pragma: no cover - error path
            raise RuntimeError(f"Failed to ensure relational schema: {exc}") from exc

    def deal_exists(self, deal_id: str) -> bool:
        with self._get_engine().connect() as connection:
            return connection.execute(DEAL_EXISTS_SQL, {"deal_id": deal_id}).first() is not None

    def find_deal(self, deal_id: str) -> DealRecord | None:
        with self._get_engine().connect() as connection:
            row = connection.execute(FIND_DEAL_SQL, {"deal_id": deal_id}).first()
        return None if row is None else _deal_from_mapping(row._mapping)

    def save_deal(self, record: DealRecord) -> None:
        if not _fits_amount_column(record.amount):
            raise PersistenceError(
                f"Failed to save deal {record.deal_id}: amount {record.amount} does not fit "
                f"NUMERIC({AMOUNT_PRECISION}, {AMOUNT_SCALE})"
            )
        params = {
            "deal_unique_id": record.deal_id,
            "from_currency": record.from_currency,
            "to_currency": record.to_currency,
            "deal_timestamp": record.deal_timestamp,
            # Bound as text so drivers without native Decimal support keep precision.
            "amount": str(record.amount),
        }
        try:
            with self._get_engine().begin() as connection:
                connection.execute(INSERT_DEAL_SQL, params)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to save deal {record.deal_id}: {exc}") from exc

    def save_error(self, error: DealErrorRecord) -> None:
        params = {
            "error_id": uuid4().hex,
            "deal_unique_id": error.deal_id,
            "raw_deal_id": error.raw_deal_id,
            "raw_from_currency": error.raw_from_currency,
            "raw_to_currency": error.raw_to_currency,
            "raw_deal_timestamp": error.raw_deal_timestamp,
            "raw_amount": error.raw_amount,
            "reason": error.reason.value,
            "detail": error.detail,
            "source_row": error.source_row,
            "occurred_at": error.occurred_at,
        }
        try:
            with self._get_engine().begin() as connection:
                connection.execute(INSERT_ERROR_SQL, params)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to save deal error: {exc}") from exc

    def error_exists(self, deal_id: str, occurred_at: datetime | None = None) -> bool:
        query = "SELECT 1 FROM fx_deal_errors WHERE deal_unique_id = :deal_id"
        params: dict[str, object] = {"deal_id": deal_id}
        statement = text(query + " LIMIT 1")
        if occurred_at is not None:
            statement = text(query + " AND occurred_at = :occurred_at LIMIT 1").bindparams(
                bindparam("occurred_at", type_=DateTime())
            )
            params["occurred_at"] = occurred_at
        with self._get_engine().connect() as connection:
            return connection.execute(statement, params).first() is not None

    def fetch_deals(self) -> list[DealRecord]:
        with self._get_engine().connect() as connection:
            return [_deal_from_mapping(row._mapping) for row in connection.execute(FETCH_DEALS_SQL)]

    def fetch_errors(self) -> list[DealErrorRecord]:
        records: list[DealErrorRecord] = []
        with self._get_engine().connect() as connection:
            for row in connection.execute(FETCH_ERRORS_SQL):
                mapping = row._mapping
                records.append(
                    DealErrorRecord(
                        reason=ErrorReason(mapping["reason"]),
                        occurred_at=_normalise_timestamp(mapping["occurred_at"]),
                        deal_id=mapping["deal_unique_id"],
                        raw_deal_id=mapping["raw_deal_id"],
                        raw_from_currency=mapping["raw_from_currency"],
                        raw_to_currency=mapping["raw_to_currency"],
                        raw_deal_timestamp=mapping["raw_deal_timestamp"],
                        raw_amount=mapping["raw_amount"],
                        source_row=mapping["source_row"],
                        detail=mapping["detail"],
                    )
                )
        return records

    def close(self) -> None:  # pragma: no cover - trivial resource cleanup
        if self._engine_instance is not None:
            self._engine_instance.dispose()


def _deal_from_mapping(mapping: Mapping[str, Any]) -> DealRecord:
    return DealRecord(
        deal_id=mapping["deal_unique_id"],
        from_currency=mapping["from_currency"],
        to_currency=mapping["to_currency"],
        deal_timestamp=_normalise_timestamp(mapping["deal_timestamp"]),
        amount=_normalise_amount(mapping["amount"]),
    )


def _fits_amount_column(amount: Decimal) -> bool:
    """Return True when ``amount`` is stored without rounding by the amount column."""

    _, digits, exponent = amount.as_tuple()
    if not isinstance(exponent, int):
        return False
    # trailing fractional zeros do not count towards the scale
    while exponent < 0 and len(digits) > 1 and digits[-1] == 0:
        digits = digits[:-1]
        exponent += 1
    fraction_digits = max(0, -exponent)
    integer_digits = max(0, len(digits) + exponent)
    return fraction_digits <= AMOUNT_SCALE and integer_digits <= AMOUNT_PRECISION - AMOUNT_SCALE


def _normalise_timestamp(value: object) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _normalise_amount(value: object) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


__all__ = ["RelationalBackend"]
