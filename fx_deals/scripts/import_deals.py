"""CLI for importing FX deals from a CSV file into the configured database."""

from __future__ import annotations

import argparse
import sys
from typing import Sequence

from fx_deals import FxDeals, ImportPolicy, ImportSummary, SourceUnavailableError
from fx_deals.db import DEFAULT_SQLITE_DB_PATH
from fx_deals.utils.logger import get_logger, set_log_level

LOGGER = get_logger(__name__)

__all__ = ["import_deals", "parse_args", "main"]


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--file", dest="csv_path", required=True, help="CSV file with deals")
    parser.add_argument(
        "--db",
        dest="db_url",
        default=None,
        help=f"Database URL (defaults to the SQLite file at {DEFAULT_SQLITE_DB_PATH})",
    )
    parser.add_argument(
        "--match-timestamp",
        dest="match_timestamp",
        action="store_true",
        default=False,
        help="Only treat a deal as duplicate when id and timestamp both match",
    )
    parser.add_argument(
        "--suppress-repeated-errors",
        dest="suppress_repeated_errors",
        action="store_true",
        default=False,
        help="Log at most one error row per deal id",
    )
    parser.add_argument("--log-level", dest="log_level", default="INFO", help="Logging level")
    return parser.parse_args(argv)


def import_deals(
    csv_path: str,
    *,
    db_url: str | None = None,
    match_timestamp: bool = False,
    suppress_repeated_errors: bool = False,
) -> ImportSummary:
    """Import ``csv_path`` into the database described by ``db_url``."""

    policy = ImportPolicy(
        match_timestamp=match_timestamp,
        suppress_repeated_errors=suppress_repeated_errors,
    )
    with FxDeals(db_url, policy=policy) as fx:
        return fx.import_csv(csv_path)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    set_log_level(args.log_level)
    try:
        summary = import_deals(
            args.csv_path,
            db_url=args.db_url,
            match_timestamp=args.match_timestamp,
            suppress_repeated_errors=args.suppress_repeated_errors,
        )
    except SourceUnavailableError as exc:
        LOGGER.error("Import aborted: %s", exc)
        return 1
    LOGGER.info("Import summary: %s", summary.as_dict())
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
