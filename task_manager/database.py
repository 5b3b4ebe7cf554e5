import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Sequence

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import ArgumentError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .config import Settings
from .errors import StorageError
from .migrations import MIGRATIONS, Migration, ensure_schema

logger = logging.getLogger(__name__)

Base = declarative_base()


def _enable_sqlite_transactions(engine: Engine) -> None:
    # pysqlite commits implicitly before DDL; take over BEGIN so that a
    # migration and its version marker share one transaction.
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    try:
        url = make_url(database_url)
    except ArgumentError as exc:
        raise StorageError(f"Invalid database URL {database_url!r}: {exc}") from exc

    connect_args = {}
    if url.get_backend_name() == "sqlite":
        connect_args["check_same_thread"] = False
        if url.database and url.database != ":memory:":
            try:
                Path(url.database).expanduser().parent.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise StorageError(f"Cannot create directory for {url.database!r}: {exc}") from exc

    try:
        engine = create_engine(url, echo=echo, connect_args=connect_args)
    except (ArgumentError, SQLAlchemyError, ImportError) as exc:
        raise StorageError(f"Cannot create engine for {database_url!r}: {exc}") from exc

    if url.get_backend_name() == "sqlite":
        _enable_sqlite_transactions(engine)
    return engine


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def session_scope(session_factory: sessionmaker) -> Iterator[Session]:
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def establish_connection(
    settings: Settings,
    migrations: Optional[Sequence[Migration]] = None,
) -> Iterator[Session]:
    """Open a session on the configured database after running pending migrations.

    Any failure here is raised as StorageError (or MigrationError) before the
    caller gets a session, so no command runs against a stale schema.
    """
    engine = create_db_engine(settings.database_url, echo=settings.echo_sql)
    try:
        applied = ensure_schema(engine, MIGRATIONS if migrations is None else migrations)
        if applied:
            logger.info("Applied migrations %s on %s", applied, engine.url)
        with session_scope(make_session_factory(engine)) as db:
            yield db
    finally:
        engine.dispose()
