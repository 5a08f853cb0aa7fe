"""Write rejected rows to the error store."""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Mapping

from fx_deals.db.base_backend import ErrorStore
from fx_deals.ingestion.deal_csv import (
    DEAL_AMOUNT_COLUMN,
    DEAL_ID_COLUMN,
    DEAL_TIMESTAMP_COLUMN,
    FROM_CURRENCY_COLUMN,
    TO_CURRENCY_COLUMN,
)
from fx_deals.ingestion.models import CandidateRecord, DealErrorRecord, ErrorReason
from fx_deals.utils.logger import get_logger

LOGGER = get_logger(__name__)


class ErrorSink:
    """Build :class:`DealErrorRecord` objects and hand them to an error store."""

    def __init__(
        self,
        error_store: ErrorStore,
        *,
        suppress_repeats: bool = False,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.error_store = error_store
        self.suppress_repeats = suppress_repeats
        self.clock = clock

    def reject(
        self,
        candidate: CandidateRecord,
        reason: ErrorReason,
        *,
        detail: str | None = None,
    ) -> DealErrorRecord | None:
        return self.reject_raw(
            candidate.raw, reason, source_row=candidate.source_row, detail=detail
        )

    def reject_raw(
        self,
        raw: Mapping[str, str | None],
        reason: ErrorReason,
        *,
        source_row: int | None = None,
        detail: str | None = None,
    ) -> DealErrorRecord | None:
        """Record a rejection; return ``None`` when a repeat was suppressed."""

        raw_deal_id = raw.get(DEAL_ID_COLUMN)
        deal_id = (raw_deal_id or "").strip() or None
        if self.suppress_repeats and deal_id and self.error_store.error_exists(deal_id):
            LOGGER.info("Suppressing repeated error for deal %s (%s)", deal_id, reason.value)
            return None

        error = DealErrorRecord(
            reason=reason,
            occurred_at=self.clock(),
            deal_id=deal_id,
            raw_deal_id=raw_deal_id,
            raw_from_currency=raw.get(FROM_CURRENCY_COLUMN),
            raw_to_currency=raw.get(TO_CURRENCY_COLUMN),
            raw_deal_timestamp=raw.get(DEAL_TIMESTAMP_COLUMN),
            raw_amount=raw.get(DEAL_AMOUNT_COLUMN),
            source_row=source_row,
            detail=detail,
        )
        self.error_store.save_error(error)
        LOGGER.warning("Saved deal error: %s - %s (row %s)", deal_id, reason.value, source_row)
        return error


__all__ = ["ErrorSink"]
