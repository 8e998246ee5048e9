"""Online backup and restore of the SQLite database."""

from __future__ import annotations

import argparse
import json
import sqlite3
import time
from pathlib import Path

from siteops.config.settings import resolve_db_path

_DEFAULT_BACKUP_DIR = Path("data") / "backups"


def _copy(source: Path, target: Path) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(source) as src, sqlite3.connect(target) as dst:
        src.backup(dst)


def backup_sqlite(source_db: Path, backup_path: Path) -> dict[str, str]:
    if not source_db.exists():
        raise FileNotFoundError(f"source db not found: {source_db}")
    _copy(source_db, backup_path)
    return {"source_db": str(source_db), "backup_path": str(backup_path)}


def restore_sqlite(backup_path: Path, target_db: Path) -> dict[str, str]:
    if not backup_path.exists():
        raise FileNotFoundError(f"backup file not found: {backup_path}")
    _copy(backup_path, target_db)
    return {"backup_path": str(backup_path), "target_db": str(target_db)}


def _default_backup_path(backup_dir: Path) -> Path:
    stamp = time.strftime("%Y%m%d_%H%M%S", time.gmtime())
    return backup_dir / f"siteops_{stamp}.sqlite3"


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Back up or restore the SQLite DB")
    commands = parser.add_subparsers(dest="command", required=True)

    backup_cmd = commands.add_parser("backup", help="copy the live DB to a backup file")
    backup_cmd.add_argument("--source-db", default="")
    backup_cmd.add_argument("--backup-path", default="")
    backup_cmd.add_argument("--backup-dir", default=str(_DEFAULT_BACKUP_DIR))

    restore_cmd = commands.add_parser("restore", help="overwrite the live DB from a backup file")
    restore_cmd.add_argument("--backup-path", required=True)
    restore_cmd.add_argument("--target-db", default="")

    args = parser.parse_args(argv)

    if args.command == "backup":
        source_db = Path(args.source_db.strip()) if args.source_db.strip() else resolve_db_path()
        raw = str(args.backup_path).strip()
        backup_path = Path(raw) if raw else _default_backup_path(Path(str(args.backup_dir)))
        report = backup_sqlite(source_db, backup_path)
    else:
        target_db = Path(args.target_db.strip()) if args.target_db.strip() else resolve_db_path()
        report = restore_sqlite(Path(str(args.backup_path)), target_db)

    print(json.dumps(report, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
