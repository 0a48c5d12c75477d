from collections import deque
from typing import List, Tuple

import pytest
from sqlalchemy import create_engine, inspect

from src.app import AppSettings, build_review_service
from src.db import Base, run_migrations, run_migrations_if_needed


def test_settings_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("APP_NAME", "APP_ENV", "LOG_LEVEL", "SRS_STRICT_TAGS", "SRS_HISTORY_SIZE"):
        monkeypatch.delenv(name, raising=False)

    settings = AppSettings.from_env()

    assert settings.app_name == "Review Scheduler"
    assert settings.app_env == "development"
    assert settings.log_level == "INFO"
    assert settings.strict_tags is False
    assert settings.history_size == 20


def test_settings_read_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("SRS_STRICT_TAGS", "yes")
    monkeypatch.setenv("SRS_HISTORY_SIZE", "5")

    settings = AppSettings.from_env()

    assert settings.log_level == "DEBUG"
    assert settings.strict_tags is True
    assert settings.history_size == 5


@pytest.mark.parametrize("value", ["many", "0"])
def test_settings_reject_invalid_history_size(monkeypatch: pytest.MonkeyPatch, value: str) -> None:
    monkeypatch.setenv("SRS_HISTORY_SIZE", value)

    with pytest.raises(RuntimeError, match="SRS_HISTORY_SIZE"):
        AppSettings.from_env()


def test_build_review_service_uses_configured_session_factory(monkeypatch: pytest.MonkeyPatch) -> None:
    sentinel = object()
    monkeypatch.setattr("src.app.runtime.get_session_factory", lambda: sentinel)
    monkeypatch.setenv("SRS_STRICT_TAGS", "true")

    service = build_review_service(AppSettings.from_env(), item_lookup=object())

    assert service._session_factory is sentinel
    assert service._strict_tags is True


def test_run_migrations_if_needed_invokes_upgrade(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: List[Tuple[object, str]] = []

    def fake_upgrade(config: object, target: str) -> None:
        calls.append((config, target))

    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
    monkeypatch.setenv("RUN_MIGRATIONS_ON_STARTUP", "true")
    monkeypatch.setattr("src.db.command.upgrade", fake_upgrade)

    run_migrations_if_needed()

    assert calls and calls[0][1] == "head"
    assert calls[0][0].get_main_option("sqlalchemy.url") == "sqlite+aiosqlite:///:memory:"


def test_run_migrations_if_needed_skips_when_disabled(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
    monkeypatch.setenv("RUN_MIGRATIONS_ON_STARTUP", "false")

    calls: deque[str] = deque()

    def fake_upgrade(_: object, target: str) -> None:
        calls.append(target)

    monkeypatch.setattr("src.db.command.upgrade", fake_upgrade)

    run_migrations_if_needed()

    assert not calls


def test_migrations_build_the_review_schema(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    db_path = tmp_path / "reviews.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{db_path}")

    run_migrations()

    engine = create_engine(f"sqlite:///{db_path}")
    try:
        inspector = inspect(engine)
        tables = set(inspector.get_table_names())
        columns = {column["name"] for column in inspector.get_columns("review_schedules")}
    finally:
        engine.dispose()

    assert {"study_subjects", "study_topics", "review_schedules", "review_attempts"} <= tables
    assert {"last_confidence", "last_room", "correct_streak"} <= columns


def test_migrated_indexes_match_the_models(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    db_path = tmp_path / "reviews.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{db_path}")

    run_migrations()

    engine = create_engine(f"sqlite:///{db_path}")
    try:
        inspector = inspect(engine)
        migrated = {
            table.name: {index["name"] for index in inspector.get_indexes(table.name)}
            for table in Base.metadata.sorted_tables
        }
    finally:
        engine.dispose()

    declared = {
        table.name: {index.name for index in table.indexes} for table in Base.metadata.sorted_tables
    }
    assert migrated == declared
    assert "ix_study_topics_subject_id" in declared["study_topics"]
