"""Turn validated candidates into committed deals."""

from __future__ import annotations

from fx_deals.db.base_backend import DealStore, PersistenceError
from fx_deals.ingestion.error_sink import ErrorSink
from fx_deals.ingestion.models import CandidateRecord, DealRecord, ErrorReason
from fx_deals.utils.deal_fields import normalise_currency, parse_amount, parse_deal_timestamp
from fx_deals.utils.logger import get_logger

LOGGER = get_logger(__name__)


class DealPersister:
    """Normalise and commit candidates that passed validation and dedupe."""

    def __init__(self, deal_store: DealStore, error_sink: ErrorSink) -> None:
        self.deal_store = deal_store
        self.error_sink = error_sink

    def persist(self, candidate: CandidateRecord) -> DealRecord | None:
        """Commit ``candidate``; return ``None`` if the store refused it."""

        record = DealRecord(
            deal_id=candidate.deal_id,
            from_currency=normalise_currency(candidate.from_currency),
            to_currency=normalise_currency(candidate.to_currency),
            deal_timestamp=parse_deal_timestamp(candidate.deal_timestamp),
            amount=parse_amount(candidate.amount),
        )
        try:
            self.deal_store.save_deal(record)
        except PersistenceError as exc:
            LOGGER.warning("Failed to save deal %s: %s", record.deal_id, exc)
            self.error_sink.reject(
                candidate, ErrorReason.PERSISTENCE_FAILURE, detail=f"Database error: {exc}"
            )
            return None
        LOGGER.info("Successfully saved deal: %s", record.deal_id)
        return record


__all__ = ["DealPersister"]
