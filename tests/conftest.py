from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient


def pytest_configure() -> None:
    # Keep a developer's .env out of test runs.
    os.environ["ENVIRONMENT"] = "test"


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch) -> Any:
    for name in ("DB_PATH", "DEV", "MIGRATION_SOURCE_URL", "MIGRATION_TARGET_VERSION", "HOST", "PORT", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)

    from skill_backend.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def engine(tmp_path: Path) -> Any:
    from skill_backend.config import BUNDLED_MIGRATIONS_DIR
    from skill_backend.database import open_engine
    from skill_backend.db.migrator import run_migrations

    store = open_engine(str(tmp_path / "skills.db"))
    run_migrations(store, str(BUNDLED_MIGRATIONS_DIR))
    yield store
    store.dispose()


@pytest.fixture()
def frontend_dir(tmp_path: Path) -> Path:
    build = tmp_path / "build"
    build.mkdir()
    (build / "index.html").write_text("<html><body>skills frontend</body></html>", encoding="utf-8")
    return build


@pytest.fixture()
def client(engine: Any, frontend_dir: Path) -> Any:
    from skill_backend.frontend import StaticDelivery
    from skill_backend.main import create_app

    app = create_app(engine=engine, frontend=StaticDelivery(frontend_dir))
    with TestClient(app) as c:
        yield c
