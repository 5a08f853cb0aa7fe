"""Storage interfaces used by the deal import engine."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Protocol

from fx_deals.ingestion.models import DealErrorRecord, DealRecord


class PersistenceError(RuntimeError):
    """Raised when a store refuses to commit a record."""


class DealStore(Protocol):
    """Capabilities the engine needs from the committed-deal collection."""

    def deal_exists(self, deal_id: str) -> bool:
        ...  # pragma: no cover - protocol definition

    def find_deal(self, deal_id: str) -> DealRecord | None:
        ...  # pragma: no cover - protocol definition

    def save_deal(self, record: DealRecord) -> None:
        ...  # pragma: no cover - protocol definition


class ErrorStore(Protocol):
    """Capabilities the engine needs from the rejected-row collection."""

    def save_error(self, error: DealErrorRecord) -> None:
        ...  # pragma: no cover - protocol definition

    def error_exists(self, deal_id: str, occurred_at: datetime | None = None) -> bool:
        ...  # pragma: no cover - protocol definition


class BackendStrategy(ABC):
    """Common interface implemented by every database backend.

    A backend serves as both the :class:`DealStore` and the :class:`ErrorStore`
    of an import run.
    """

    @abstractmethod
    def ensure_schema(self) -> None:
        """Create required tables/collections and verify connectivity."""

    @abstractmethod
    def deal_exists(self, deal_id: str) -> bool:
        """Return True when a deal with ``deal_id`` is already committed."""

    @abstractmethod
    def find_deal(self, deal_id: str) -> DealRecord | None:
        """Return the committed deal with ``deal_id`` if there is one."""

    @abstractmethod
    def save_deal(self, record: DealRecord) -> None:
        """Commit ``record``; raise :class:`PersistenceError` when refused."""

    @abstractmethod
    def save_error(self, error: DealErrorRecord) -> None:
        """Append ``error`` to the error log."""

    @abstractmethod
    def error_exists(self, deal_id: str, occurred_at: datetime | None = None) -> bool:
        """Return True when an error is logged for ``deal_id`` (at ``occurred_at``)."""

    @abstractmethod
    def fetch_deals(self) -> list[DealRecord]:
        """Return every committed deal ordered by id."""

    @abstractmethod
    def fetch_errors(self) -> list[DealErrorRecord]:
        """Return every logged error ordered by time of rejection."""

    def close(self) -> None:  # pragma: no cover - optional cleanup hook
        """Backends may override to release connections/resources."""


__all__ = ["BackendStrategy", "DealStore", "ErrorStore", "PersistenceError"]
