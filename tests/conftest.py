import importlib
import os
import uuid
from contextlib import contextmanager
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, text
from sqlalchemy.engine import make_url

ROOT = Path(__file__).resolve().parents[1]

# Point at a PostgreSQL server to run the suite there; each test gets its own throwaway database.
POSTGRES_URL = os.getenv("SHOPGATE_TEST_POSTGRES_URL", "")


def _admin_execute(admin_url, *statements):
    engine = create_engine(admin_url, isolation_level="AUTOCOMMIT", future=True)
    try:
        with engine.connect() as conn:
            for statement, params in statements:
                conn.execute(text(statement), params)
    finally:
        engine.dispose()


@contextmanager
def _isolated_database(tmp_path: Path):
    if not POSTGRES_URL:
        yield f"sqlite+pysqlite:///{tmp_path / 'shopgate.db'}"
        return

    url = make_url(POSTGRES_URL)
    admin_url = url.set(database="postgres")
    name = f"shopgate_test_{uuid.uuid4().hex}"
    _admin_execute(admin_url, (f'CREATE DATABASE "{name}"', {}))
    try:
        yield url.set(database=name).render_as_string(hide_password=False)
    finally:
        _admin_execute(
            admin_url,
            ("SELECT pg_terminate_backend(pid) FROM pg_stat_activity WHERE datname = :name", {"name": name}),
            (f'DROP DATABASE IF EXISTS "{name}"', {}),
        )


def _migrate(database_url: str) -> None:
    config = Config(str(ROOT / "alembic.ini"))
    config.set_main_option("script_location", str(ROOT / "migrations"))
    config.set_main_option("sqlalchemy.url", database_url)
    config.attributes["configure_logger"] = False
    command.upgrade(config, "head")


def _load_app(database_url: str):
    """Re-import settings, engine and app so module-level singletons see this test's database."""
    os.environ["DATABASE_URL"] = database_url
    os.environ["SECRET_KEY"] = "test-secret"

    import app.main as main
    import app.shopgate.core.config as config
    import app.shopgate.db.session as session

    for module in (config, session, main):
        importlib.reload(module)
    return main.app, session


@pytest.fixture()
def client(tmp_path: Path):
    with _isolated_database(tmp_path) as database_url:
        _migrate(database_url)
        app, session = _load_app(database_url)
        try:
            with TestClient(app) as test_client:
                yield test_client
        finally:
            session.engine.dispose()


@pytest.fixture()
def db_session(client):
    from app.shopgate.db.session import SessionLocal

    with SessionLocal() as db:
        yield db


@pytest.fixture()
def session_factory(client):
    """Extra independent sessions, for tests that race two reviewers."""
    from app.shopgate.db.session import SessionLocal

    opened = []

    def factory():
        db = SessionLocal()
        opened.append(db)
        return db

    yield factory
    for db in opened:
        db.close()
