# tests/test_config.py

import logging
from pathlib import Path

import pytest

from task_manager.config import get_settings, normalize_database_url
from task_manager.errors import ConfigError
from task_manager.logging_setup import setup_logging

ENV_NAMES = (
    "TASK_MANAGER_DATABASE_URL",
    "DATABASE_URL",
    "TASK_MANAGER_LOG_LEVEL",
    "TASK_MANAGER_LOG_FILE",
    "TASK_MANAGER_ECHO_SQL",
)


@pytest.fixture
def clean_env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for name in ENV_NAMES:
        # setenv first so monkeypatch restores the original state, including
        # variables that a .env file sets during the test.
        monkeypatch.setenv(name, "placeholder")
        monkeypatch.delenv(name)
    return monkeypatch


def test_normalize_keeps_urls():
    assert normalize_database_url("sqlite:///tasks.db") == "sqlite:///tasks.db"
    assert normalize_database_url(" postgresql://u@h/db ") == "postgresql://u@h/db"


def test_normalize_turns_paths_into_sqlite_urls(tmp_path):
    path = tmp_path / "tasks.db"
    assert normalize_database_url(str(path)) == f"sqlite:///{path}"


def test_normalize_rejects_empty():
    with pytest.raises(ConfigError):
        normalize_database_url("  ")


def test_missing_database_url(clean_env):
    with pytest.raises(ConfigError):
        get_settings()


def test_defaults(clean_env):
    clean_env.setenv("TASK_MANAGER_DATABASE_URL", "sqlite:///tasks.db")
    settings = get_settings()
    assert settings.database_url == "sqlite:///tasks.db"
    assert settings.log_level == "WARNING"
    assert settings.log_file is None
    assert settings.echo_sql is False


def test_prefixed_url_wins_over_legacy(clean_env):
    clean_env.setenv("DATABASE_URL", "sqlite:///legacy.db")
    clean_env.setenv("TASK_MANAGER_DATABASE_URL", "sqlite:///preferred.db")
    assert get_settings().database_url == "sqlite:///preferred.db"


def test_legacy_url_is_used_alone(clean_env):
    clean_env.setenv("DATABASE_URL", "tasks.db")
    assert get_settings().database_url == "sqlite:///tasks.db"


def test_optional_values(clean_env, tmp_path):
    clean_env.setenv("TASK_MANAGER_DATABASE_URL", "sqlite:///tasks.db")
    clean_env.setenv("TASK_MANAGER_LOG_LEVEL", "debug")
    clean_env.setenv("TASK_MANAGER_LOG_FILE", str(tmp_path / "logs" / "tm.log"))
    clean_env.setenv("TASK_MANAGER_ECHO_SQL", "yes")

    settings = get_settings()
    assert settings.log_level == "DEBUG"
    assert settings.log_file == tmp_path / "logs" / "tm.log"
    assert settings.echo_sql is True


def test_dotenv_in_working_directory(clean_env, tmp_path):
    (tmp_path / ".env").write_text("DATABASE_URL=sqlite:///from_dotenv.db\n")
    assert get_settings().database_url == "sqlite:///from_dotenv.db"


def test_environment_beats_dotenv(clean_env, tmp_path):
    (tmp_path / ".env").write_text("DATABASE_URL=sqlite:///from_dotenv.db\n")
    clean_env.setenv("DATABASE_URL", "sqlite:///from_env.db")
    assert get_settings().database_url == "sqlite:///from_env.db"


def test_setup_logging_writes_file(tmp_path):
    log_file = tmp_path / "logs" / "task_manager.log"
    setup_logging("INFO", log_file=log_file)
    setup_logging("INFO", log_file=log_file)

    logging.getLogger("task_manager.test").info("hello from test")
    for h in logging.getLogger().handlers:
        h.flush()

    assert Path(log_file).read_text(encoding="utf-8").count("hello from test") == 1
