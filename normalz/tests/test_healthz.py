from fastapi.testclient import TestClient

from normalz.core.config import Settings
from normalz.main import build_services, create_app


def test_healthz_always_ok(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_readyz_requires_questions(client, services):
    assert client.get("/readyz").status_code == 503

    services.store.create(["A", "B"])
    resp = client.get("/readyz")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "activeQuestions": 1}


def test_readyz_with_sqlite_database(tmp_path):
    cfg = Settings(ENV="test", TEST_DATABASE_URL=f"sqlite:///{tmp_path / 'normalz.db'}", DATABASE_URL=None)
    services = build_services(cfg)
    services.store.create(["A", "B"])

    with TestClient(create_app(cfg, services=services)) as client:
        resp = client.get("/readyz")

    assert services.engine is not None
    assert resp.status_code == 200
    assert resp.json()["activeQuestions"] == 1
