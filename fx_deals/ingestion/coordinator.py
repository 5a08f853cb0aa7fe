"""Drive a full deal import: read the source, then handle rows one by one."""

from __future__ import annotations

import csv
from datetime import datetime
from pathlib import Path
from typing import Callable, Sequence

from fx_deals.db.base_backend import DealStore, ErrorStore
from fx_deals.ingestion.deal_csv import (
    DealRowParser,
    DealSource,
    StructuralRowError,
    read_deal_table,
)
from fx_deals.ingestion.duplicates import DuplicateDetector
from fx_deals.ingestion.error_sink import ErrorSink
from fx_deals.ingestion.models import ErrorReason, ImportPolicy, ImportSummary, RunState
from fx_deals.ingestion.persister import DealPersister
from fx_deals.ingestion.validation import DealValidator
from fx_deals.utils.logger import get_logger

LOGGER = get_logger(__name__)


class SourceUnavailableError(RuntimeError):
    """Raised when the deal source cannot be opened or read at all."""

    reason = ErrorReason.SOURCE_UNAVAILABLE


class ImportCoordinator:
    """Parse, validate, dedupe and persist every row of a CSV source.

    Rows are processed sequentially in source order so that duplicate checks
    see deals committed earlier in the same run. Every row either ends up as
    one committed deal or one logged error; only an unreadable source aborts
    the run, and it does so before any row is touched.
    """

    def __init__(
        self,
        deal_store: DealStore,
        error_store: ErrorStore,
        *,
        policy: ImportPolicy | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.policy = policy or ImportPolicy()
        self.error_sink = ErrorSink(
            error_store,
            suppress_repeats=self.policy.suppress_repeated_errors,
            clock=clock,
        )
        self.validator = DealValidator()
        self.detector = DuplicateDetector(deal_store, match_timestamp=self.policy.match_timestamp)
        self.persister = DealPersister(deal_store, self.error_sink)
        self.state = RunState.OPENING

    def run(self, source: DealSource) -> ImportSummary:
        self.state = RunState.OPENING
        label = _describe_source(source)
        LOGGER.info("Starting CSV import from %s", label)
        try:
            table = read_deal_table(source)
        except (OSError, UnicodeDecodeError, csv.Error) as exc:
            self.state = RunState.ABORTED
            LOGGER.error("Failed to read deal source %s: %s", label, exc)
            raise SourceUnavailableError(f"CSV file reading failed: {exc}") from exc

        self.state = RunState.PROCESSING
        parser = DealRowParser(table.header)
        if parser.missing_labels:
            LOGGER.warning(
                "Deal source %s is missing columns %s; every row will be rejected",
                label,
                ", ".join(parser.missing_labels),
            )
        summary = ImportSummary()
        for source_row, row in table.rows:
            if self._import_row(parser, source_row, row):
                summary.succeeded += 1
            else:
                summary.failed += 1

        self.state = RunState.COMPLETED
        LOGGER.info(
            "CSV import completed. Successful: %s, Failed: %s",
            summary.succeeded,
            summary.failed,
        )
        return summary

    def _import_row(self, parser: DealRowParser, source_row: int, row: Sequence[str]) -> bool:
        try:
            return self._process_row(parser, source_row, row)
        except Exception as exc:
            LOGGER.exception("Failed to process record %s", source_row)
            self._record_unexpected(parser, source_row, row, exc)
            return False

    def _process_row(self, parser: DealRowParser, source_row: int, row: Sequence[str]) -> bool:
        try:
            candidate = parser.parse(row, source_row=source_row)
        except StructuralRowError as exc:
            self.error_sink.reject_raw(
                parser.raw_values(row),
                ErrorReason.STRUCTURAL_ROW_ERROR,
                source_row=source_row,
                detail=str(exc),
            )
            return False

        reason = self.validator.validate(candidate)
        if reason is not None:
            self.error_sink.reject(candidate, reason)
            return False

        if self.detector.is_duplicate(candidate):
            self.error_sink.reject(candidate, ErrorReason.DUPLICATE_ID)
            return False

        return self.persister.persist(candidate) is not None

    def _record_unexpected(
        self,
        parser: DealRowParser,
        source_row: int,
        row: Sequence[str],
        exc: Exception,
    ) -> None:
        try:
            self.error_sink.reject_raw(
                parser.raw_values(row),
                ErrorReason.UNEXPECTED_ERROR,
                source_row=source_row,
                detail=f"{type(exc).__name__}: {exc}",
            )
        except Exception as sink_exc:
            LOGGER.error("Failed to save deal error for record %s: %s", source_row, sink_exc)


def _describe_source(source: DealSource) -> str:
    if isinstance(source, (str, Path)):
        return str(source)
    if isinstance(source, (bytes, bytearray)):
        return f"<{len(source)} bytes>"
    name = getattr(source, "name", None)
    return str(name) if name else f"<{type(source).__name__}>"


__all__ = ["ImportCoordinator", "SourceUnavailableError"]
