"""Data models shared across the deal import pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum


class ErrorReason(str, Enum):
    """Why a row ended up in the error store."""

    MISSING_FIELD = "MissingField"
    MALFORMED_TIMESTAMP = "MalformedTimestamp"
    MALFORMED_AMOUNT = "MalformedAmount"
    NON_POSITIVE_AMOUNT = "NonPositiveAmount"
    INVALID_CURRENCY_CODE_LENGTH = "InvalidCurrencyCodeLength"
    DUPLICATE_ID = "DuplicateId"
    PERSISTENCE_FAILURE = "PersistenceFailure"
    STRUCTURAL_ROW_ERROR = "StructuralRowError"
    UNEXPECTED_ERROR = "UnexpectedError"
    SOURCE_UNAVAILABLE = "SourceUnavailable"


class RunState(str, Enum):
    """Lifecycle of a single import run."""

    OPENING = "opening"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass(slots=True, frozen=True)
class DealRecord:
    """A validated FX deal as committed to the deal store."""

    deal_id: str
    from_currency: str
    to_currency: str
    deal_timestamp: datetime
    amount: Decimal


@dataclass(slots=True, frozen=True)
class DealErrorRecord:
    """A rejected row together with the values it was submitted with."""

    reason: ErrorReason
    occurred_at: datetime
    deal_id: str | None = None
    raw_deal_id: str | None = None
    raw_from_currency: str | None = None
    raw_to_currency: str | None = None
    raw_deal_timestamp: str | None = None
    raw_amount: str | None = None
    source_row: int | None = None
    detail: str | None = None


@dataclass(slots=True)
class CandidateRecord:
    """Trimmed, still untyped values extracted from one CSV row.

    ``raw`` keeps the untouched cell values keyed by header label so rejected
    rows can be logged exactly as they were submitted.
    """

    deal_id: str
    from_currency: str
    to_currency: str
    deal_timestamp: str
    amount: str
    raw: dict[str, str] = field(default_factory=dict)
    source_row: int | None = None

    def values(self) -> tuple[str, str, str, str, str]:
        return (
            self.deal_id,
            self.from_currency,
            self.to_currency,
            self.deal_timestamp,
            self.amount,
        )


@dataclass(slots=True, frozen=True)
class ImportPolicy:
    """Switches for the behaviours that differ between deployments.

    ``match_timestamp`` makes the duplicate check require the stored deal to
    share the candidate's timestamp as well as its id. ``suppress_repeated_errors``
    stops a second error row from being written for an id that already has one.
    """

    match_timestamp: bool = False
    suppress_repeated_errors: bool = False


@dataclass(slots=True)
class ImportSummary:
    """Running tally of an import run."""

    succeeded: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        """Return the number of rows processed."""

        return self.succeeded + self.failed

    def as_dict(self) -> dict[str, int]:
        return {"rows_succeeded": self.succeeded, "rows_failed": self.failed}


__all__ = [
    "CandidateRecord",
    "DealErrorRecord",
    "DealRecord",
    "ErrorReason",
    "ImportPolicy",
    "ImportSummary",
    "RunState",
]
