"""Shared fixtures: in-memory stores and CSV builders for engine tests."""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Sequence

import pytest

from fx_deals.db.base_backend import PersistenceError
from fx_deals.ingestion.models import DealErrorRecord, DealRecord

HEADER = (
    "Deal Unique Id",
    "From Currency ISO Code",
    "To Currency ISO Code",
    "Deal timestamp",
    "Deal Amount",
)
FIXED_NOW = datetime(2025, 11, 14, 9, 30, 0)


class MemoryDealStore:
    """Deal store double that enforces id uniqueness like a real table."""

    def __init__(self) -> None:
        self.deals: dict[str, DealRecord] = {}
        self.saved: list[DealRecord] = []
        self.refuse: set[str] = set()

    def deal_exists(self, deal_id: str) -> bool:
        return deal_id in self.deals

    def find_deal(self, deal_id: str) -> DealRecord | None:
        return self.deals.get(deal_id)

    def save_deal(self, record: DealRecord) -> None:
        if record.deal_id in self.refuse or record.deal_id in self.deals:
            raise PersistenceError(f"duplicate key value violates unique constraint: {record.deal_id}")
        self.deals[record.deal_id] = record
        self.saved.append(record)


class MemoryErrorStore:
    def __init__(self) -> None:
        self.errors: list[DealErrorRecord] = []

    def save_error(self, error: DealErrorRecord) -> None:
        self.errors.append(error)

    def error_exists(self, deal_id: str, occurred_at: datetime | None = None) -> bool:
        return any(
            error.deal_id == deal_id and (occurred_at is None or error.occurred_at == occurred_at)
            for error in self.errors
        )

    @property
    def reasons(self) -> list[str]:
        return [error.reason.value for error in self.errors]


@pytest.fixture
def deal_store() -> MemoryDealStore:
    return MemoryDealStore()


@pytest.fixture
def error_store() -> MemoryErrorStore:
    return MemoryErrorStore()


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


@pytest.fixture
def deal_csv() -> Callable[..., bytes]:
    """Build CSV bytes from row tuples, header first."""

    def _build(rows: Sequence[Sequence[str]], header: Sequence[str] = HEADER) -> bytes:
        lines = [",".join(header)]
        lines.extend(",".join(row) for row in rows)
        return ("\n".join(lines) + "\n").encode("utf-8")

    return _build
