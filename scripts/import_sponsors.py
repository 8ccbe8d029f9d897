"""
CLI helper to import sponsors from a CSV export through the bulk-create path.

Uses the same backend selection as the API: the primary store when
DATABASE_URL is set and reachable, the flat files otherwise.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sponsor_api.dependencies import get_persistence_facade
from sponsor_api.importer import read_sponsor_rows

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Import sponsors from a CSV file")
    parser.add_argument("path", type=Path, help="CSV file with a header row")
    parser.add_argument(
        "--encoding",
        type=str,
        default="utf-8-sig",
        help="File encoding (default handles Excel's BOM)",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    with open(args.path, newline="", encoding=args.encoding) as handle:
        rows = list(read_sponsor_rows(handle))

    facade = get_persistence_facade()
    facade.refresh()
    result = facade.bulk_create_sponsors(rows)
    logger.info(
        "Imported %d of %d rows into %s store (%d skipped)",
        result.added,
        result.total,
        facade.source.value,
        result.skipped,
    )
    facade.connection.dispose()
    return 0 if result.added > 0 else 1


if __name__ == "__main__":
    raise SystemExit(main())
