"""Shared fixtures: a fresh in-memory database per test and an API client bound to it."""
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from pilllog.core.config import settings
from pilllog.core.database import build_engine, build_sessionmaker, get_db, init_db
from pilllog.core.dependencies import get_upload_worker_pool
from pilllog.main import app


@pytest.fixture
def engine():
    engine = build_engine("sqlite+pysqlite:///:memory:")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_sessionmaker(engine)


@pytest.fixture
def db(session_factory):
    with session_factory() as session:
        yield session


@pytest.fixture
def demo_user_id():
    return settings.DEMO_USER_ID


@pytest.fixture
def mock_pool():
    """Stand-in worker pool; accepted jobs are only recorded."""
    return MagicMock()


@pytest.fixture
def client(session_factory, mock_pool):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_upload_worker_pool] = lambda: mock_pool

    yield TestClient(app)

    app.dependency_overrides.clear()
