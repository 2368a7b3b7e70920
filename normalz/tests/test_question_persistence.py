"""SqlQuestionStore against an in-memory sqlite database."""

import pytest

from normalz.core.errors import InvalidOptionsError, NotFoundError, QuestionRetiredError, UnknownOptionError
from normalz.features.questions.persistence import SqlQuestionStore
from normalz.features.tally.engine import TallyEngine


@pytest.fixture
def store(session_factory):
    return SqlQuestionStore(session_factory)


def test_create_and_get_round_trip(store):
    question = store.create(["Spring", "Summer", "Autumn"], prompt="Favourite season?")

    loaded = store.get(question.question_id)
    assert loaded.options == ("Spring", "Summer", "Autumn")
    assert loaded.prompt == "Favourite season?"
    assert loaded.active is True
    assert store.snapshot(question.question_id).answer_counts() == {"Spring": 0, "Summer": 0, "Autumn": 0}


def test_create_rejects_invalid_options_without_writing(store):
    with pytest.raises(InvalidOptionsError):
        store.create(["Same", "Same"])
    assert store.active_ids() == []


def test_duplicate_id_rejected(store):
    store.create(["A", "B"], question_id="fixed")
    with pytest.raises(InvalidOptionsError):
        store.create(["A", "B"], question_id="fixed")


def test_increment_updates_option_and_total_together(store):
    qid = store.create(["A", "B", "C"]).question_id
    for option in ["A", "B", "A", "C", "A"]:
        store.increment(qid, option)

    snapshot = store.snapshot(qid)
    assert snapshot.answer_counts() == {"A": 3, "B": 1, "C": 1}
    assert snapshot.total == 5
    snapshot.verify()


def test_unknown_option_rolls_back(store):
    qid = store.create(["A", "B"]).question_id
    with pytest.raises(UnknownOptionError):
        store.increment(qid, "nope")
    assert store.snapshot(qid).total == 0


def test_missing_question(store):
    with pytest.raises(NotFoundError):
        store.get("missing")
    with pytest.raises(NotFoundError):
        store.increment("missing", "A")
    with pytest.raises(NotFoundError):
        store.retire("missing")


def test_receipt_replay_keeps_first_option_and_snapshot(store):
    qid = store.create(["A", "B"]).question_id
    first = store.increment(qid, "B", receipt_key="tap-1")
    store.increment(qid, "A")

    replay = store.increment(qid, "A", receipt_key="tap-1")

    assert replay.replayed is True
    assert replay.option == "B"
    assert replay.snapshot.answer_counts() == first.snapshot.answer_counts()
    assert replay.snapshot.total == 1
    assert store.snapshot(qid).total == 2


def test_retired_question_rejects_votes(store):
    qid = store.create(["A", "B"]).question_id
    store.retire(qid)

    assert qid not in store.active_ids()
    with pytest.raises(QuestionRetiredError):
        store.increment(qid, "A")


def test_engine_over_sql_store(store):
    engine = TallyEngine(store)
    qid = store.create(["Yes", "No"]).question_id

    for _ in range(3):
        engine.apply_vote(qid, "Yes")
    result = engine.apply_vote(qid, "No", idempotency_key="k")
    again = engine.apply_vote(qid, "No", idempotency_key="k")

    assert result.snapshot.answer_counts() == {"Yes": 3, "No": 1}
    assert again.replayed is True
    assert store.snapshot(qid).total == 4


def test_streak_flag_is_kept_on_the_receipt(store):
    qid = store.create(["A", "B"]).question_id
    other = store.create(["A", "B"]).question_id
    store.increment(qid, "A", receipt_key="tap-1")
    store.increment(other, "A", receipt_key="tap-1")

    assert store.streak_recorded(qid, "tap-1") is False
    store.mark_streak_recorded(qid, "tap-1")

    assert store.streak_recorded(qid, "tap-1") is True
    assert store.streak_recorded(other, "tap-1") is False
    assert store.streak_recorded(qid, "never-applied") is False
