import json

from fastapi.testclient import TestClient

from normalz.core.config import Settings
from normalz.features.questions.persistence import SqlQuestionStore
from normalz.features.questions.seed import load_seed_questions
from normalz.features.questions.store import InMemoryQuestionStore
from normalz.main import build_services, create_app
from normalz.scripts.seed_questions import main as seed_main

SEED = [
    {"questionId": "pets", "prompt": "Cats or dogs?", "options": ["Cats", "Dogs"]},
    {"options": ["Tea", "Coffee"]},
]


def write_seed(tmp_path):
    path = tmp_path / "questions.json"
    path.write_text(json.dumps(SEED), encoding="utf-8")
    return str(path)


def test_seed_skips_existing_ids(tmp_path):
    path = write_seed(tmp_path)
    store = InMemoryQuestionStore()

    assert load_seed_questions(store, path) == 2
    assert store.get("pets").prompt == "Cats or dogs?"
    # Entries without an id are created again; fixed ids are not
    assert load_seed_questions(store, path) == 1
    assert len(store.active_ids()) == 3


def test_seed_into_sql_store(tmp_path, session_factory):
    store = SqlQuestionStore(session_factory)
    assert load_seed_questions(store, write_seed(tmp_path)) == 2
    assert store.get("pets").options == ("Cats", "Dogs")


def test_app_seeds_on_startup(tmp_path):
    cfg = Settings(ENV="test", DATABASE_URL=None, TEST_DATABASE_URL=None, QUESTION_SEED_PATH=write_seed(tmp_path))
    services = build_services(cfg)

    client = TestClient(create_app(cfg, services=services))

    assert client.get("/readyz").json()["activeQuestions"] == 2


def test_seed_script(tmp_path, capsys):
    url = f"sqlite:///{tmp_path / 'seed.db'}"
    assert seed_main([write_seed(tmp_path), "--database-url", url]) == 0
    assert "Seeded 2 question(s)" in capsys.readouterr().out


def test_seed_script_without_database(tmp_path):
    assert seed_main([write_seed(tmp_path), "--database-url", ""]) == 2
