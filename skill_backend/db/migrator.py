"""Versioned schema migrations for the SQLite store.

A migration source is a directory of step files::

    000001_create_skill.up.sql
    000001_create_skill.down.sql   (optional)

The applied version lives in the store itself, in a one-row
``schema_migrations (version, dirty)`` table. Version 0 means "nothing
applied yet". Each step runs in its own transaction together with the
version update, so a failing step leaves the previous version in place.

The migrator only works on an ordered list of ``MigrationStep``; the file
naming above is handled by ``load_steps``.
"""

from __future__ import annotations

import logging
import re
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import unquote, urlsplit

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

_STEP_FILE_RE = re.compile(r"^(\d+)_([A-Za-z0-9_\-]+)\.(up|down)\.sql$")


class MigrationError(RuntimeError):
    pass


@dataclass(frozen=True)
class MigrationStep:
    version: int
    title: str
    up_sql: str
    down_sql: str | None = None


def resolve_source_dir(source_url: str) -> Path:
    """
    Accept a plain directory path or a ``file://`` URL.

    ``file://migrations`` (relative) and ``file:///srv/migrations`` (absolute)
    are both understood.
    """
    raw = (source_url or "").strip()
    if not raw:
        raise MigrationError("Migration source is not set.")

    if raw.startswith("file://"):
        parts = urlsplit(raw)
        raw = unquote(parts.netloc + parts.path)
    elif "://" in raw:
        raise MigrationError(f"Unsupported migration source: {source_url}")

    if not raw:
        raise MigrationError(f"Migration source has no path: {source_url}")
    return Path(raw)


def load_steps(source_url: str) -> list[MigrationStep]:
    source_dir = resolve_source_dir(source_url)
    if not source_dir.is_dir():
        raise MigrationError(f"Migration source directory not found: {source_dir}")

    ups: dict[int, tuple[str, str]] = {}
    downs: dict[int, str] = {}

    for path in sorted(source_dir.iterdir()):
        match = _STEP_FILE_RE.match(path.name)
        if not match or not path.is_file():
            continue

        version = int(match.group(1))
        title = match.group(2)
        direction = match.group(3)
        if version <= 0:
            raise MigrationError(f"Migration versions start at 1: {path.name}")

        sql = path.read_text(encoding="utf-8")
        if direction == "up":
            if version in ups:
                raise MigrationError(f"Duplicate up migration for version {version}: {path.name}")
            ups[version] = (title, sql)
        else:
            if version in downs:
                raise MigrationError(f"Duplicate down migration for version {version}: {path.name}")
            downs[version] = sql

    orphans = sorted(set(downs) - set(ups))
    if orphans:
        raise MigrationError(f"Down migrations without an up step: {orphans}")

    return [
        MigrationStep(version=v, title=ups[v][0], up_sql=ups[v][1], down_sql=downs.get(v))
        for v in sorted(ups)
    ]


def split_statements(sql: str) -> list[str]:
    """
    Cut a step file into single statements for the DBAPI cursor.

    Chunks between semicolons are joined until SQLite reports a complete
    statement, so trigger bodies and quoted semicolons stay intact.
    """
    lines = [line for line in sql.splitlines() if not line.strip().startswith("--")]
    statements: list[str] = []
    buffer = ""
    for chunk in "\n".join(lines).split(";"):
        buffer += chunk + ";"
        if sqlite3.complete_statement(buffer):
            stmt = buffer.strip()[:-1].strip()
            if stmt:
                statements.append(stmt)
            buffer = ""
    # The final chunk carries the ";" added above, which the file may not have had.
    leftover = buffer.strip()[:-1].strip()
    if leftover:
        statements.append(leftover)
    return statements


class SchemaMigrator:
    def __init__(self, engine: Engine, steps: list[MigrationStep]):
        self.engine = engine
        self.steps = sorted(steps, key=lambda s: s.version)

    @staticmethod
    def _ensure_version_table(conn: Connection) -> None:
        conn.execute(
            text(
                """
                CREATE TABLE IF NOT EXISTS schema_migrations (
                    version INTEGER NOT NULL,
                    dirty BOOLEAN NOT NULL
                )
                """
            )
        )

    @staticmethod
    def _set_version(conn: Connection, version: int) -> None:
        conn.execute(text("DELETE FROM schema_migrations"))
        if version > 0:
            conn.execute(
                text("INSERT INTO schema_migrations (version, dirty) VALUES (:version, :dirty)"),
                {"version": version, "dirty": False},
            )

    def current_version(self) -> int:
        try:
            with self.engine.begin() as conn:
                self._ensure_version_table(conn)
                row = conn.execute(text("SELECT version, dirty FROM schema_migrations LIMIT 1")).first()
        except SQLAlchemyError as exc:
            raise MigrationError(f"Can't get DB version: {exc}") from exc

        if row is None:
            return 0
        version, dirty = int(row[0]), bool(row[1])
        # Only written by other migration tools; this migrator never leaves a step half applied.
        if dirty:
            raise MigrationError(f"Database is dirty at version {version}; fix it manually before migrating.")
        return version

    def _plan(self, current: int, target: int) -> list[tuple[MigrationStep, str, int]]:
        versions = [s.version for s in self.steps]
        if target != 0 and target not in versions:
            raise MigrationError(f"No migration found for target version {target}")

        if current < target:
            return [(s, "up", s.version) for s in self.steps if current < s.version <= target]

        if current > target:
            if current not in versions:
                raise MigrationError(f"No migration found for current version {current}")
            plan: list[tuple[MigrationStep, str, int]] = []
            descending = [s for s in reversed(self.steps) if target < s.version <= current]
            for idx, step in enumerate(descending):
                if step.down_sql is None:
                    raise MigrationError(f"Migration {step.version} ({step.title}) has no down step")
                next_version = descending[idx + 1].version if idx + 1 < len(descending) else target
                plan.append((step, "down", next_version))
            return plan

        return []

    def _apply(self, step: MigrationStep, direction: str, new_version: int) -> None:
        sql = step.up_sql if direction == "up" else (step.down_sql or "")
        logger.info("Applying migration %06d_%s (%s)", step.version, step.title, direction)
        try:
            with self.engine.begin() as conn:
                for statement in split_statements(sql):
                    conn.exec_driver_sql(statement)
                self._set_version(conn, new_version)
        except SQLAlchemyError as exc:
            raise MigrationError(f"Migration {step.version} ({step.title}) {direction} failed: {exc}") from exc
        logger.info("DB version is now %s", new_version)

    def migrate(self, target: int | None = None) -> int:
        """
        Move the store to ``target`` (newest available when None).

        Returns the number of steps applied; 0 when there is nothing to do.
        """
        if target is None:
            target = self.steps[-1].version if self.steps else 0
        if target < 0:
            raise MigrationError(f"Invalid target version {target}")

        current = self.current_version()
        logger.info("DB version is %s", current)

        plan = self._plan(current, target)
        if not plan:
            logger.info("No migrations to run")
            return 0

        for step, direction, new_version in plan:
            self._apply(step, direction, new_version)
        return len(plan)


def run_migrations(engine: Engine, source_url: str, target: int | None = None) -> int:
    steps = load_steps(source_url)
    return SchemaMigrator(engine, steps).migrate(target)
