from __future__ import annotations

import argparse
import sys
from pathlib import Path


def _bootstrap_import_path() -> None:
    root = Path(__file__).resolve().parents[1]
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))


_bootstrap_import_path()

from skill_backend.config import get_settings  # noqa: E402
from skill_backend.database import StoreOpenError, open_engine  # noqa: E402
from skill_backend.db.migrator import MigrationError, SchemaMigrator, load_steps  # noqa: E402


def main(argv: list[str] | None = None) -> int:
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Apply versioned schema migrations to the skill store.")
    parser.add_argument("--db-path", default=settings.db_path, help="SQLite file (defaults to DB_PATH).")
    parser.add_argument(
        "--source",
        default=settings.migration_source_url,
        help="Migration directory or file:// URL (defaults to MIGRATION_SOURCE_URL or the bundled migrations).",
    )
    parser.add_argument(
        "--target",
        type=int,
        default=settings.migration_target_version,
        help="Version to migrate to; 0 reverts everything. Defaults to the newest available.",
    )
    parser.add_argument("--show-version", action="store_true", help="Print the current version and exit.")
    args = parser.parse_args(argv)

    try:
        engine = open_engine(args.db_path)
    except StoreOpenError as exc:
        print("error:", exc)
        return 1

    try:
        migrator = SchemaMigrator(engine, load_steps(args.source))
        if args.show_version:
            print("DB version is", migrator.current_version())
            return 0

        applied = migrator.migrate(args.target)
        print(f"applied {applied} step(s); DB version is {migrator.current_version()}")
        return 0
    except MigrationError as exc:
        print("error:", exc)
        return 1
    finally:
        engine.dispose()


if __name__ == "__main__":
    raise SystemExit(main())
