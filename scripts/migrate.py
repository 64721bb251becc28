#!/usr/bin/env python3
"""Apply or inspect schema migrations without booting the API.

    python scripts/migrate.py upgrade            # to head
    python scripts/migrate.py downgrade -1
    python scripts/migrate.py --db-url postgresql+asyncpg://u:p@db/medidiagnose current
    python scripts/migrate.py stamp head

``--db-url`` is exported as ``DATABASE_URL`` before Alembic loads
``alembic/env.py``; without it the environment or the application
settings decide.
"""
from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Callable
from pathlib import Path

from alembic import command
from alembic.config import Config
from alembic.util import CommandError
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError

ROOT = Path(__file__).resolve().parents[1]

Action = Callable[[Config, list[str]], None]

ACTIONS: dict[str, Action] = {
    "upgrade": lambda cfg, rest: command.upgrade(cfg, rest[0] if rest else "head"),
    "downgrade": lambda cfg, rest: command.downgrade(cfg, rest[0] if rest else "-1"),
    "stamp": lambda cfg, rest: command.stamp(cfg, rest[0] if rest else "head"),
    "current": lambda cfg, rest: command.current(cfg, verbose=True),
    "history": lambda cfg, rest: command.history(cfg, verbose=bool({"-v", "--verbose"} & set(rest))),
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--db-url", help="Overrides DATABASE_URL for this run")
    parser.add_argument("--config", default=str(ROOT / "alembic.ini"), help="alembic.ini location")
    parser.add_argument("action", choices=sorted(ACTIONS))
    parser.add_argument("rest", nargs=argparse.REMAINDER, help="Revision and flags")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if args.db_url:
        os.environ["DATABASE_URL"] = args.db_url
    target = os.environ.get("DATABASE_URL")
    shown = make_url(target).render_as_string(hide_password=True) if target else "application settings"
    print(f"migrate: {args.action} {' '.join(args.rest)} against {shown}".rstrip())

    try:
        ACTIONS[args.action](Config(args.config), args.rest)
    except (CommandError, SQLAlchemyError) as exc:
        print(f"migrate: failed: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
