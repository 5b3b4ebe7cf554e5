"""Versioned schema migrations.

Migrations are plain data: an ordered sequence of ``Migration`` steps handed
to ``ensure_schema`` at startup. Each step runs in its own transaction
together with the row that records it in ``schema_migrations``, so a step is
either fully applied and recorded or not applied at all.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Sequence, Tuple

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from .errors import MigrationError

logger = logging.getLogger(__name__)

VERSION_TABLE = "schema_migrations"


@dataclass(frozen=True)
class Migration:
    version: int
    name: str
    statements: Tuple[str, ...]


MIGRATIONS: Tuple[Migration, ...] = (
    Migration(
        version=1,
        name="create_tasks",
        statements=(
            """
            CREATE TABLE tasks (
                id INTEGER PRIMARY KEY AUTOINCREMENT NOT NULL,
                title VARCHAR NOT NULL,
                description TEXT,
                completed BOOLEAN NOT NULL DEFAULT 0
            )
            """,
        ),
    ),
)


def _check_order(migrations: Sequence[Migration]) -> None:
    previous = 0
    for m in migrations:
        if m.version <= previous:
            raise MigrationError(
                f"Migration versions must be positive and strictly increasing "
                f"(got {m.version} after {previous})"
            )
        if not m.statements:
            raise MigrationError(f"Migration {m.version} ({m.name}) has no statements")
        previous = m.version


def _ensure_version_table(engine: Engine) -> None:
    with engine.begin() as conn:
        conn.execute(
            text(
                f"""
                CREATE TABLE IF NOT EXISTS {VERSION_TABLE} (
                    version INTEGER PRIMARY KEY NOT NULL,
                    name TEXT NOT NULL,
                    applied_at TEXT NOT NULL
                )
                """
            )
        )


def _recorded(engine: Engine) -> Dict[int, str]:
    with engine.connect() as conn:
        rows = conn.execute(text(f"SELECT version, name FROM {VERSION_TABLE}"))
        return {int(version): name for version, name in rows}


def applied_versions(engine: Engine) -> List[int]:
    try:
        if not inspect(engine).has_table(VERSION_TABLE):
            return []
        return sorted(_recorded(engine))
    except SQLAlchemyError as exc:
        raise MigrationError(f"Cannot read migration history: {exc}") from exc


def _apply(engine: Engine, migration: Migration) -> None:
    with engine.begin() as conn:
        for statement in migration.statements:
            conn.execute(text(statement))
        conn.execute(
            text(
                f"INSERT INTO {VERSION_TABLE} (version, name, applied_at) "
                "VALUES (:version, :name, :applied_at)"
            ),
            {
                "version": migration.version,
                "name": migration.name,
                "applied_at": datetime.now(timezone.utc).isoformat(),
            },
        )


def ensure_schema(engine: Engine, migrations: Sequence[Migration]) -> List[int]:
    """
    Apply every migration not yet recorded, in ascending version order.

    Returns the versions applied by this call (empty if already up to date).
    Raises MigrationError if the history does not match ``migrations`` or if
    any step fails; a failed step leaves no trace in the database.
    """
    _check_order(migrations)
    known = {m.version: m for m in migrations}

    try:
        _ensure_version_table(engine)
        recorded = _recorded(engine)
    except SQLAlchemyError as exc:
        raise MigrationError(f"Cannot read migration history: {exc}") from exc

    for version, name in sorted(recorded.items()):
        m = known.get(version)
        if m is None:
            raise MigrationError(f"Database has unknown migration {version} ({name})")
        if m.name != name:
            raise MigrationError(
                f"Migration {version} was recorded as {name!r} but is defined as {m.name!r}"
            )

    applied: List[int] = []
    for m in migrations:
        if m.version in recorded:
            continue
        try:
            _apply(engine, m)
        except SQLAlchemyError as exc:
            raise MigrationError(f"Migration {m.version} ({m.name}) failed: {exc}") from exc
        logger.info("Migration applied version=%s name=%s", m.version, m.name)
        applied.append(m.version)

    return applied
