#!/usr/bin/env python3
"""Mini-README: CLI utility to bring the billing database schema up to date.

Runs Alembic migrations to the requested revision, then the SQLite safety net
that backfills write-off and discount columns on legacy local databases.
"""

from __future__ import annotations

import argparse
import logging
import sys

from sqlalchemy.exc import SQLAlchemyError

from lexbill.config import settings
from lexbill.database import run_migrations


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Apply LexBill schema migrations.")
    parser.add_argument(
        "--revision",
        dest="revision",
        default="head",
        help="Target Alembic revision. Defaults to head.",
    )
    return parser


def main() -> int:
    args = _build_parser().parse_args()
    logging.basicConfig(level=settings.log_level.upper())

    try:
        run_migrations(args.revision)
    except SQLAlchemyError as exc:
        print(f"[migrate] ERROR: migration failed against {settings.database_url}: {exc}")
        return 1

    print(f"[migrate] Success: schema upgraded to {args.revision}.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
