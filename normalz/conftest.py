# normalz/conftest.py
import os
import random

import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("ENV", "test")


@pytest.fixture(autouse=True)
def reset_metrics():
    """Metrics are process-global; start every test from zero."""
    from normalz.core.metrics import METRICS

    METRICS.reset()
    yield
    METRICS.reset()


@pytest.fixture
def test_settings():
    from normalz.core.config import Settings

    return Settings(ENV="test", DATABASE_URL=None, TEST_DATABASE_URL=None, QUESTION_SEED_PATH=None, LEADERBOARD_URL=None)


@pytest.fixture
def services(test_settings):
    """In-memory services with a seeded selector, so question order is reproducible."""
    from normalz.main import build_services

    return build_services(test_settings, rng=random.Random(7))


@pytest.fixture
def app(test_settings, services):
    from normalz.main import create_app

    return create_app(test_settings, services=services)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def session_factory():
    """SQL stores backed by a private in-memory sqlite database."""
    from normalz.core.database import build_engine, create_all_tables, drop_all_tables, make_session_factory

    engine = build_engine("sqlite://")
    create_all_tables(engine)
    yield make_session_factory(engine)
    drop_all_tables(engine)
    engine.dispose()
