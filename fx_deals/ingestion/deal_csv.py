"""CSV helpers for reading deal uploads and splitting rows into candidates."""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Sequence, Union

from fx_deals.ingestion.models import CandidateRecord

DEAL_ID_COLUMN = "Deal Unique Id"
FROM_CURRENCY_COLUMN = "From Currency ISO Code"
TO_CURRENCY_COLUMN = "To Currency ISO Code"
DEAL_TIMESTAMP_COLUMN = "Deal timestamp"
DEAL_AMOUNT_COLUMN = "Deal Amount"
REQUIRED_HEADERS = (
    DEAL_ID_COLUMN,
    FROM_CURRENCY_COLUMN,
    TO_CURRENCY_COLUMN,
    DEAL_TIMESTAMP_COLUMN,
    DEAL_AMOUNT_COLUMN,
)

DealSource = Union[str, Path, bytes, IO[str], IO[bytes]]


class StructuralRowError(ValueError):
    """Raised when a row cannot be split into the expected deal columns."""


@dataclass(slots=True)
class DealTable:
    """Header plus data rows of a deal CSV, keyed by record number."""

    header: list[str]
    rows: list[tuple[int, list[str]]] = field(default_factory=list)


def read_deal_table(source: DealSource) -> DealTable:
    """Read ``source`` completely and split it into CSV records.

    Record numbers count the header as record 1. Blank lines are dropped.
    """

    reader = csv.reader(io.StringIO(_read_text(source)))
    table = DealTable(header=[])
    for record_number, row in enumerate(reader, start=1):
        if record_number == 1:
            table.header = [cell.strip() for cell in row]
            continue
        if not row:
            continue
        table.rows.append((record_number, row))
    return table


def _read_text(source: DealSource) -> str:
    if isinstance(source, (bytes, bytearray)):
        return bytes(source).decode("utf-8-sig")
    if isinstance(source, (str, Path)):
        path = Path(source)
        if not path.exists():
            raise FileNotFoundError(path)
        with path.open("r", newline="", encoding="utf-8-sig") as handle:
            return handle.read()
    content = source.read()
    if isinstance(content, bytes):
        return content.decode("utf-8-sig")
    return content.removeprefix("\ufeff")


class DealRowParser:
    """Map raw CSV rows onto :class:`CandidateRecord` objects by header label."""

    def __init__(self, header: Sequence[str]) -> None:
        self.header = [label.strip() for label in header]
        self._positions: dict[str, int] = {}
        for position, label in enumerate(self.header):
            self._positions.setdefault(label, position)
        self.missing_labels = tuple(
            label for label in REQUIRED_HEADERS if label not in self._positions
        )

    def parse(self, row: Sequence[str], *, source_row: int | None = None) -> CandidateRecord:
        if self.missing_labels:
            raise StructuralRowError(
                "Header is missing required columns: " + ", ".join(self.missing_labels)
            )
        if len(row) != len(self.header):
            raise StructuralRowError(
                f"Expected {len(self.header)} columns but found {len(row)}"
            )
        raw = {label: row[self._positions[label]] for label in REQUIRED_HEADERS}
        return CandidateRecord(
            deal_id=raw[DEAL_ID_COLUMN].strip(),
            from_currency=raw[FROM_CURRENCY_COLUMN].strip(),
            to_currency=raw[TO_CURRENCY_COLUMN].strip(),
            deal_timestamp=raw[DEAL_TIMESTAMP_COLUMN].strip(),
            amount=raw[DEAL_AMOUNT_COLUMN].strip(),
            raw=raw,
            source_row=source_row,
        )

    def raw_values(self, row: Sequence[str]) -> dict[str, str | None]:
        """Best-effort lookup of the required cells, ``None`` where absent."""

        values: dict[str, str | None] = {}
        for label in REQUIRED_HEADERS:
            position = self._positions.get(label)
            if position is None or position >= len(row):
                values[label] = None
            else:
                values[label] = row[position]
        return values


__all__ = [
    "DEAL_AMOUNT_COLUMN",
    "DEAL_ID_COLUMN",
    "DEAL_TIMESTAMP_COLUMN",
    "FROM_CURRENCY_COLUMN",
    "REQUIRED_HEADERS",
    "TO_CURRENCY_COLUMN",
    "DealRowParser",
    "DealSource",
    "DealTable",
    "StructuralRowError",
    "read_deal_table",
]
