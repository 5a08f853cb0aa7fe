"""MongoDB backend strategy."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal, DecimalException
from typing import Any

from bson.decimal128 import Decimal128
from pymongo import ASCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from fx_deals.db.base_backend import BackendStrategy, PersistenceError
from fx_deals.ingestion.models import DealErrorRecord, DealRecord, ErrorReason
from fx_deals.utils.logger import get_logger

LOGGER = get_logger(__name__)


class MongoBackend(BackendStrategy):
    """Backend strategy that persists deals inside MongoDB.

    Deals use the business identifier as ``_id`` so MongoDB itself enforces
    uniqueness; amounts are stored as ``Decimal128``.
    """

    def __init__(self, url: str, *, database: str | None = None) -> None:
        self.url = url
        self._client = MongoClient(url)
        db = self._client.get_default_database() if database is None else self._client[database]
        if db is None:
            raise ValueError("MongoDB connection URI must include a database name")
        self._deals: Collection = db["fx_deals"]
        self._errors: Collection = db["fx_deal_errors"]

    def ensure_schema(self) -> None:
        try:
            LOGGER.info("Ensuring MongoDB deal collections exist")
            self._client.admin.command("ping")
            self._errors.create_index([("deal_unique_id", ASCENDING)], unique=False)
        except PyMongoError as exc:  # pragma: no cover - error path
            raise RuntimeError(f"Failed to ensure MongoDB schema: {exc}") from exc

    def deal_exists(self, deal_id: str) -> bool:
        return self._deals.count_documents({"_id": deal_id}, limit=1) > 0

    def find_deal(self, deal_id: str) -> DealRecord | None:
        doc = self._deals.find_one({"_id": deal_id})
        return None if doc is None else _deal_from_document(doc)

    def save_deal(self, record: DealRecord) -> None:
        try:
            doc = {
                "_id": record.deal_id,
                "from_currency": record.from_currency,
                "to_currency": record.to_currency,
                "deal_timestamp": record.deal_timestamp,
                "amount": Decimal128(record.amount),
                "created_at": datetime.now(timezone.utc),
            }
            self._deals.insert_one(doc)
        except (PyMongoError, DecimalException) as exc:
            raise PersistenceError(f"Failed to save deal {record.deal_id}: {exc}") from exc

    def save_error(self, error: DealErrorRecord) -> None:
        doc = {
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
            self._errors.insert_one(doc)
        except PyMongoError as exc:
            raise PersistenceError(f"Failed to save deal error: {exc}") from exc

    def error_exists(self, deal_id: str, occurred_at: datetime | None = None) -> bool:
        query: dict[str, Any] = {"deal_unique_id": deal_id}
        if occurred_at is not None:
            query["occurred_at"] = occurred_at
        return self._errors.count_documents(query, limit=1) > 0

    def fetch_deals(self) -> list[DealRecord]:
        return [_deal_from_document(doc) for doc in self._deals.find({}).sort("_id", ASCENDING)]

    def fetch_errors(self) -> list[DealErrorRecord]:
        return [
            DealErrorRecord(
                reason=ErrorReason(doc["reason"]),
                occurred_at=doc["occurred_at"],
                deal_id=doc.get("deal_unique_id"),
                raw_deal_id=doc.get("raw_deal_id"),
                raw_from_currency=doc.get("raw_from_currency"),
                raw_to_currency=doc.get("raw_to_currency"),
                raw_deal_timestamp=doc.get("raw_deal_timestamp"),
                raw_amount=doc.get("raw_amount"),
                source_row=doc.get("source_row"),
                detail=doc.get("detail"),
            )
            for doc in self._errors.find({}).sort("occurred_at", ASCENDING)
        ]

    def close(self) -> None:  # pragma: no cover - trivial cleanup
        self._client.close()


def _deal_from_document(doc: dict[str, Any]) -> DealRecord:
    amount = doc["amount"]
    return DealRecord(
        deal_id=doc["_id"],
        from_currency=doc["from_currency"],
        to_currency=doc["to_currency"],
        deal_timestamp=doc["deal_timestamp"],
        amount=amount.to_decimal() if isinstance(amount, Decimal128) else Decimal(str(amount)),
    )


__all__ = ["MongoBackend"]
