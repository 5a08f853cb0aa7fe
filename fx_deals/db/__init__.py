"""Storage backends for imported deals and rejected rows."""

from __future__ import annotations

from pathlib import Path
from typing import Final

__all__ = ["DEFAULT_SQLITE_DB_PATH"]

DEFAULT_SQLITE_DB_PATH: Final[Path] = Path(__file__).resolve().with_name("fx_deals.db")
