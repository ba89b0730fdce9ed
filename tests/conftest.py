import importlib
import os
from contextlib import ExitStack
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from fastapi.testclient import TestClient

from tests.db_utils import throwaway_postgres_database

ROOT = Path(__file__).resolve().parents[1]


def _setup_app(database_url: str):
    os.environ["DATABASE_URL"] = database_url
    os.environ["SECRET_KEY"] = "test-secret"

    import app.estore.core.config as config
    import app.estore.db.session as session
    import app.main as main

    importlib.reload(config)
    importlib.reload(session)
    importlib.reload(main)

    return main.create_app(), session


def _run_migrations(database_url: str):
    os.environ["DATABASE_URL"] = database_url
    config = Config(str(ROOT / "alembic.ini"))
    config.set_main_option("script_location", str(ROOT / "migrations"))
    config.set_main_option("sqlalchemy.url", database_url)
    command.upgrade(config, "head")


@pytest.fixture()
def client(tmp_path: Path):
    with ExitStack() as stack:
        database_url = os.getenv("DATABASE_URL", "")
        if database_url.startswith("postgres"):
            database_url = stack.enter_context(throwaway_postgres_database(database_url))
        else:
            database_url = f"sqlite+pysqlite:///{tmp_path / 'test.db'}"

        _run_migrations(database_url)
        app, session = _setup_app(database_url)

        with TestClient(app) as test_client:
            yield test_client

        session.engine.dispose()


@pytest.fixture()
def db_session(client):
    from app.estore.db.session import SessionLocal

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
