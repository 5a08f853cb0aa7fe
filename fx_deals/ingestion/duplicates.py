"""Duplicate detection against already committed deals."""

from __future__ import annotations

from fx_deals.db.base_backend import DealStore
from fx_deals.ingestion.models import CandidateRecord
from fx_deals.utils.deal_fields import parse_deal_timestamp


class DuplicateDetector:
    """Decide whether a structurally valid candidate is already stored.

    By default an id collision alone makes a duplicate. With
    ``match_timestamp`` the stored deal must also carry the same timestamp.
    """

    def __init__(self, deal_store: DealStore, *, match_timestamp: bool = False) -> None:
        self.deal_store = deal_store
        self.match_timestamp = match_timestamp

    def is_duplicate(self, candidate: CandidateRecord) -> bool:
        if not self.match_timestamp:
            return self.deal_store.deal_exists(candidate.deal_id)
        existing = self.deal_store.find_deal(candidate.deal_id)
        if existing is None:
            return False
        return existing.deal_timestamp == parse_deal_timestamp(candidate.deal_timestamp)


__all__ = ["DuplicateDetector"]
