# ruff: noqa: E402
import os

import pytest
from fastapi.testclient import TestClient

# Set testing environment flags before importing the app or settings
os.environ["APP_ENV"] = "test"
os.environ["LEDGER_ENABLED"] = "0"
os.environ["LEDGER_CORROBORATION"] = "0"
os.environ.setdefault("USE_JSON_LOGS", "0")
test_db_url = (
    os.environ.get("TEST_DATABASE_URL")
    or os.environ.get("LOCAL_TEST_DATABASE_URL")
    or "sqlite:///./tests/test.db"
)
os.environ["TEST_DATABASE_URL"] = test_db_url
os.environ["DATABASE_URL"] = test_db_url

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker

import app.models.registry  # noqa: F401
from app.api.dependencies import get_ledger
from app.core.config import settings
from app.core.database import Base, build_engine, get_db
from app.main import app
from tests.factories import FakeLedger, make_user, png_bytes

object.__setattr__(settings, "environment", "test")

# Safety: never run tests against a non-test Postgres database.
_parsed = make_url(test_db_url)
if _parsed.drivername.startswith("postgresql") and not (_parsed.database or "").endswith("_test"):
    raise RuntimeError(
        f"Refusing to run tests against non-test database '{_parsed.database}'. "
        "Set TEST_DATABASE_URL to a dedicated *_test database."
    )

engine = build_engine(test_db_url)
Base.metadata.drop_all(bind=engine)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base.metadata.create_all(bind=engine)


@pytest.fixture(scope="function")
def session():
    """Fresh database session per test, with every table emptied first."""
    with engine.begin() as connection:
        if engine.dialect.name == "sqlite":
            for table in reversed(Base.metadata.sorted_tables):
                connection.execute(table.delete())
        else:
            table_names = ", ".join(f'"{tbl.name}"' for tbl in Base.metadata.sorted_tables)
            if table_names:
                connection.execute(text(f"TRUNCATE {table_names} RESTART IDENTITY CASCADE"))
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def ledger():
    return FakeLedger()


@pytest.fixture(scope="function")
def client(session, ledger):
    def override_get_db():
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_ledger] = lambda: ledger
    with TestClient(app) as test_client:
        try:
            yield test_client
        finally:
            app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def fallback_images(tmp_path, monkeypatch):
    """Point the fallback image pool at a temp dir holding one generated image."""
    pool = tmp_path / "material_images"
    pool.mkdir()
    (pool / "default.png").write_bytes(png_bytes(size=(640, 480), color="navy"))
    monkeypatch.setattr(settings, "fallback_images_dir", str(pool))
    return pool


@pytest.fixture
def user_factory(session):
    def _factory(**kwargs):
        return make_user(session, **kwargs)

    return _factory
