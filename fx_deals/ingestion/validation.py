"""Ordered validation rules for candidate deal rows.

Rules are evaluated top to bottom and the first failing predicate decides the
reported reason; nothing after it runs. The amount check is split into a
"parses" and an "is positive" rule so the second never sees an unparsable value.
"""

from __future__ import annotations

from typing import Callable

from fx_deals.ingestion.models import CandidateRecord, ErrorReason
from fx_deals.utils.deal_fields import CURRENCY_CODE_LENGTH, parse_amount, parse_deal_timestamp

Rule = tuple[Callable[[CandidateRecord], bool], ErrorReason]


def _parses(parser: Callable[[str], object], value: str) -> bool:
    try:
        parser(value)
    except ValueError:
        return False
    return True


def has_required_fields(candidate: CandidateRecord) -> bool:
    return all(candidate.values())


def has_valid_timestamp(candidate: CandidateRecord) -> bool:
    return _parses(parse_deal_timestamp, candidate.deal_timestamp)


def has_valid_amount(candidate: CandidateRecord) -> bool:
    return _parses(parse_amount, candidate.amount)


def has_positive_amount(candidate: CandidateRecord) -> bool:
    return parse_amount(candidate.amount) > 0


def has_valid_currency_codes(candidate: CandidateRecord) -> bool:
    return (
        len(candidate.from_currency) == CURRENCY_CODE_LENGTH
        and len(candidate.to_currency) == CURRENCY_CODE_LENGTH
    )


VALIDATION_RULES: tuple[Rule, ...] = (
    (has_required_fields, ErrorReason.MISSING_FIELD),
    (has_valid_timestamp, ErrorReason.MALFORMED_TIMESTAMP),
    (has_valid_amount, ErrorReason.MALFORMED_AMOUNT),
    (has_positive_amount, ErrorReason.NON_POSITIVE_AMOUNT),
    (has_valid_currency_codes, ErrorReason.INVALID_CURRENCY_CODE_LENGTH),
)


class DealValidator:
    """Classify candidates against :data:`VALIDATION_RULES`."""

    rules: tuple[Rule, ...] = VALIDATION_RULES

    def validate(self, candidate: CandidateRecord) -> ErrorReason | None:
        """Return the reason of the first violated rule, or ``None`` when valid."""

        for predicate, reason in self.rules:
            if not predicate(candidate):
                return reason
        return None


__all__ = [
    "VALIDATION_RULES",
    "DealValidator",
    "Rule",
    "has_positive_amount",
    "has_required_fields",
    "has_valid_amount",
    "has_valid_currency_codes",
    "has_valid_timestamp",
]
