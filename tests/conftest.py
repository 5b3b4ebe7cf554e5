import logging

import pytest

from task_manager.database import create_db_engine, make_session_factory, session_scope
from task_manager.migrations import MIGRATIONS, ensure_schema


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'tasks.db'}"


@pytest.fixture
def bare_engine(db_url):
    """Engine on an empty database file, no migrations applied."""
    engine = create_db_engine(db_url)
    yield engine
    engine.dispose()


@pytest.fixture
def engine(bare_engine):
    ensure_schema(bare_engine, MIGRATIONS)
    return bare_engine


@pytest.fixture
def db_session(engine):
    with session_scope(make_session_factory(engine)) as db:
        yield db


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    root = logging.getLogger()
    for h in list(root.handlers):
        if getattr(h, "_task_manager_handler", False):
            root.removeHandler(h)
            h.close()
