"""Apply the site operations schema migrations to a SQLite database."""

from __future__ import annotations

import argparse
import json
import sqlite3
from pathlib import Path

from siteops.config.settings import resolve_db_path
from siteops.persistence.migration_runner import apply_sqlite_migrations, known_versions


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Apply SQLite schema migrations")
    parser.add_argument("--db", default="", help="target SQLite DB path (defaults to SITEOPS_DB_PATH)")
    parser.add_argument(
        "--target",
        default=None,
        choices=known_versions(),
        help="stop after this migration version",
    )
    args = parser.parse_args(argv)

    raw = str(args.db).strip()
    db_path = Path(raw) if raw else resolve_db_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)

    with sqlite3.connect(db_path) as conn:
        applied = apply_sqlite_migrations(conn, target=args.target)

    report = {
        "db_path": str(db_path),
        "applied_count": len(applied),
        "applied_versions": applied,
    }
    print(json.dumps(report, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
