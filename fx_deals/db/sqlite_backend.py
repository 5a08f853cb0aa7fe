"""SQLite backend strategy implementation."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from fx_deals.db import DEFAULT_SQLITE_DB_PATH
from fx_deals.db.base_backend import BackendStrategy
from fx_deals.db.sqlite_manager import SQLiteManager
from fx_deals.ingestion.models import DealErrorRecord, DealRecord


class SQLiteBackend(BackendStrategy):
    """Backend strategy that stores deals in a local SQLite database."""

    def __init__(
        self,
        db_path: str | Path = DEFAULT_SQLITE_DB_PATH,
        *,
        manager: SQLiteManager | None = None,
    ) -> None:
        self.manager = manager or SQLiteManager(db_path)
        self.db_path = Path(self.manager.db_path)

    def ensure_schema(self) -> None:
        # ``SQLiteManager`` creates the schema in its constructor, so nothing else
        # is required here.
        return None

    def deal_exists(self, deal_id: str) -> bool:
        return self.manager.deal_exists(deal_id)

    def find_deal(self, deal_id: str) -> DealRecord | None:
        return self.manager.find_deal(deal_id)

    def save_deal(self, record: DealRecord) -> None:
        self.manager.save_deal(record)

    def save_error(self, error: DealErrorRecord) -> None:
        self.manager.save_error(error)

    def error_exists(self, deal_id: str, occurred_at: datetime | None = None) -> bool:
        return self.manager.error_exists(deal_id, occurred_at)

    def fetch_deals(self) -> list[DealRecord]:
        return self.manager.fetch_deals()

    def fetch_errors(self) -> list[DealErrorRecord]:
        return self.manager.fetch_errors()

    def close(self) -> None:  # pragma: no cover - trivial delegator
        self.manager.close()


__all__ = ["SQLiteBackend"]
