#!/usr/bin/env python3
"""Alembic Database Migration Helper.

Runs Alembic from the project root so alembic.ini is found, copying the
SQLite database aside before anything that changes the schema.

Usage:
    python scripts/alembic_migrate.py upgrade head    # Upgrade to latest
    python scripts/alembic_migrate.py downgrade -1    # Downgrade one version
    python scripts/alembic_migrate.py history         # Show migration history
    python scripts/alembic_migrate.py current         # Show current version
    python scripts/alembic_migrate.py stamp head      # Mark an init_db() database as migrated
"""

import shutil
import subprocess
import sys
from datetime import datetime
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from momo.config import get_settings


def run_alembic(*args):
    """Run an alembic command."""
    cmd = ["alembic"] + list(args)
    print(f"Running: {' '.join(cmd)}")
    result = subprocess.run(cmd, cwd=PROJECT_ROOT)
    return result.returncode


def sqlite_path():
    """Path of the SQLite database file, None for other databases."""
    url = get_settings().database_url_sync
    if not url.startswith("sqlite:///") or ":memory:" in url:
        return None
    return PROJECT_ROOT / url[len("sqlite:///"):]


def backup_database():
    """Copy the database next to itself with a timestamp suffix."""
    path = sqlite_path()
    if path is None or not path.exists():
        return None

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    backup_path = path.with_name(f"{path.stem}_pre_migration_{timestamp}{path.suffix}")
    shutil.copy2(path, backup_path)
    return backup_path


def main():
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)

    command = sys.argv[1]
    args = sys.argv[2:]

    if command in ("upgrade", "downgrade"):
        backup_path = backup_database()
        if backup_path:
            print(f"Backup created: {backup_path}")
        else:
            print("No SQLite database to back up")

        default_target = "head" if command == "upgrade" else "-1"
        return run_alembic(command, args[0] if args else default_target)

    elif command == "history":
        return run_alembic("history", "--verbose")

    elif command == "stamp":
        return run_alembic("stamp", args[0] if args else "head")

    else:
        # Pass through to alembic
        return run_alembic(command, *args)


if __name__ == "__main__":
    sys.exit(main() or 0)
