from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from fx_deals.ingestion.duplicates import DuplicateDetector
from fx_deals.ingestion.models import CandidateRecord, DealRecord


def _candidate(deal_id: str, deal_timestamp: str = "2025-11-13T10:00:00") -> CandidateRecord:
    return CandidateRecord(
        deal_id=deal_id,
        from_currency="GBP",
        to_currency="JPY",
        deal_timestamp=deal_timestamp,
        amount="1",
    )


def _store_deal(deal_store, deal_id: str = "D1") -> None:
    deal_store.save_deal(
        DealRecord(
            deal_id=deal_id,
            from_currency="USD",
            to_currency="EUR",
            deal_timestamp=datetime(2025, 11, 13, 10, 0, 0),
            amount=Decimal("100.00"),
        )
    )


def test_id_collision_alone_is_a_duplicate(deal_store) -> None:
    _store_deal(deal_store)
    detector = DuplicateDetector(deal_store)

    assert detector.is_duplicate(_candidate("D1", "2026-01-01T00:00:00")) is True
    assert detector.is_duplicate(_candidate("D2")) is False


def test_match_timestamp_requires_same_timestamp(deal_store) -> None:
    _store_deal(deal_store)
    detector = DuplicateDetector(deal_store, match_timestamp=True)

    assert detector.is_duplicate(_candidate("D1", "2025-11-13T10:00:00")) is True
    assert detector.is_duplicate(_candidate("D1", "2025-11-13T10:00:01")) is False
    assert detector.is_duplicate(_candidate("D9")) is False
