"""Parsing and normalisation helpers for individual deal fields."""

from __future__ import annotations

import re
from datetime import datetime
from decimal import Decimal, InvalidOperation

DEAL_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"
CURRENCY_CODE_LENGTH = 3

# ``strptime`` happily accepts single digit fields, so the literal shape is
# checked first.
_TIMESTAMP_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}")
_AMOUNT_PATTERN = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


def parse_deal_timestamp(value: str) -> datetime:
    """Parse ``YYYY-MM-DDTHH:MM:SS`` into a naive :class:`datetime`."""

    if not _TIMESTAMP_PATTERN.fullmatch(value):
        raise ValueError(f"Invalid timestamp format {value!r}. Expected: YYYY-MM-DDTHH:MM:SS")
    return datetime.strptime(value, DEAL_TIMESTAMP_FORMAT)


def parse_amount(value: str) -> Decimal:
    """Parse a plain decimal string into a finite :class:`Decimal`."""

    if not _AMOUNT_PATTERN.fullmatch(value):
        raise ValueError(f"Invalid amount format {value!r}")
    try:
        return Decimal(value)
    except InvalidOperation as exc:  # pragma: no cover - guarded by the pattern
        raise ValueError(f"Invalid amount format {value!r}") from exc


def normalise_currency(value: str) -> str:
    """Return the trimmed, upper-cased ISO code."""

    return value.strip().upper()


__all__ = [
    "CURRENCY_CODE_LENGTH",
    "DEAL_TIMESTAMP_FORMAT",
    "normalise_currency",
    "parse_amount",
    "parse_deal_timestamp",
]
